"""
Error taxonomy for the context engine.

Every failure an operation can report is a ContextEngineError subclass with
an ErrorKind, so callers can tell a user-correctable problem (no API key,
nothing to index) from a provider or storage failure without matching on
message text.
"""

from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    CONFIGURATION = "configuration"   # user-correctable: set the API key
    INPUT = "input"                   # user-correctable: change the request
    PROVIDER = "provider"             # external HTTP provider failed
    STORAGE = "storage"               # persisted store unreadable or contended
    INTERNAL = "internal"


class ContextEngineError(Exception):
    """Base class for all engine errors."""

    kind = ErrorKind.INTERNAL


class NoCredentialError(ContextEngineError):
    kind = ErrorKind.CONFIGURATION

    def __init__(self, message: str = "No OpenAI API key configured"):
        super().__init__(message)


class EmptyInputError(ContextEngineError):
    kind = ErrorKind.INPUT

    def __init__(self, message: str = "Nothing to index: content is empty after normalization"):
        super().__init__(message)


class InvalidRequestError(ContextEngineError):
    """A request at the service boundary could not be parsed."""

    kind = ErrorKind.INPUT


class ProviderError(ContextEngineError):
    """
    The embedding or chat provider answered with a non-success status.

    status is None when no HTTP response was received at all
    (connection failure or timeout).
    """

    kind = ErrorKind.PROVIDER

    def __init__(self, status: Optional[int], body: str = "", provider: str = "provider"):
        self.status = status
        self.body = body
        self.provider = provider
        if status is None:
            message = f"{provider} request failed: {body}"
        else:
            message = f"{provider} request failed: {status} {body}"
        super().__init__(message.rstrip())


class MalformedResponseError(ContextEngineError):
    """A success response did not carry the expected fields."""

    kind = ErrorKind.PROVIDER


class EmptyCompletionError(ContextEngineError):
    kind = ErrorKind.PROVIDER

    def __init__(self, message: str = "No content returned from the chat provider"):
        super().__init__(message)


class DimensionMismatchError(ContextEngineError):
    """Raised by cosine_similarity; the ranker turns it into an exclusion."""

    def __init__(self, left: int, right: int):
        self.left = left
        self.right = right
        super().__init__(f"Vector dimensions differ: {left} != {right}")


class StoreFormatError(ContextEngineError):
    kind = ErrorKind.STORAGE


class StoreConflictError(ContextEngineError):
    """Another process rewrote the store between our load and our save."""

    kind = ErrorKind.STORAGE


class StoreAccessError(ContextEngineError):
    """A store or credential file could not be read or written (permissions, disk full)."""

    kind = ErrorKind.STORAGE
