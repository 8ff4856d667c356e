"""
Invocation surface for external callers (UI, message transport, CLI).

Requests and responses are a closed set of tagged variants. Callers either
build a request object and call handle(), or pass a plain dict such as
{"type": "agent-chat", "prompt": "..."} to handle_message() and get a dict
back. Failures never escape: they come back as an ErrorResponse
{"type": "error", "error": <message>, "kind": <ErrorKind>}, with kind
"internal" for anything that is not an engine error.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Union

from context_agent.errors import ContextEngineError, ErrorKind, InvalidRequestError
from context_agent.rag_pipeline import RAGPipeline

logger = logging.getLogger(__name__)


# Requests

@dataclass
class SaveCredentialRequest:
    value: str
    type = "save-api-key"


@dataclass
class LoadCredentialRequest:
    type = "load-api-key"


@dataclass
class IngestContentRequest:
    content: str
    source: Optional[str] = None
    type = "ingest-content"


@dataclass
class AgentChatRequest:
    prompt: str
    type = "agent-chat"


Request = Union[SaveCredentialRequest, LoadCredentialRequest, IngestContentRequest, AgentChatRequest]
REQUEST_TYPES = (SaveCredentialRequest, LoadCredentialRequest, IngestContentRequest, AgentChatRequest)


# Responses

@dataclass
class SaveCredentialResponse:
    ack: bool = True
    type = "save-api-key:success"

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.type, "ack": self.ack}


@dataclass
class LoadCredentialResponse:
    value: str
    type = "load-api-key:success"

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.type, "value": self.value}


@dataclass
class IngestContentResponse:
    entries: int
    type = "ingest-content:success"

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.type, "entries": self.entries}


@dataclass
class AgentChatResponse:
    text: str
    type = "agent-chat:success"

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.type, "text": self.text}


@dataclass
class ErrorResponse:
    error: str
    kind: ErrorKind
    type = "error"

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.type, "error": self.error, "kind": self.kind.value}


Response = Union[
    SaveCredentialResponse,
    LoadCredentialResponse,
    IngestContentResponse,
    AgentChatResponse,
    ErrorResponse,
]


def _require_str(payload: Dict[str, Any], key: str, optional: bool = False) -> Optional[str]:
    value = payload.get(key)
    if value is None and optional:
        return None
    if not isinstance(value, str):
        raise InvalidRequestError(f"'{key}' must be a string")
    return value


def parse_request(payload: Any) -> Request:
    """Turn a transport-level dict into a request variant."""
    if not isinstance(payload, dict):
        raise InvalidRequestError("Message must be an object")

    message_type = payload.get("type")
    if message_type == SaveCredentialRequest.type:
        return SaveCredentialRequest(value=_require_str(payload, "value"))
    if message_type == LoadCredentialRequest.type:
        return LoadCredentialRequest()
    if message_type == IngestContentRequest.type:
        return IngestContentRequest(
            content=_require_str(payload, "content"),
            source=_require_str(payload, "source", optional=True),
        )
    if message_type == AgentChatRequest.type:
        return AgentChatRequest(prompt=_require_str(payload, "prompt"))

    raise InvalidRequestError(f"Unknown message type: {message_type!r}")


class AgentService:
    """
    The four operations exposed to callers, each returning a response
    variant instead of raising.
    """

    def __init__(self, pipeline: RAGPipeline):
        self.pipeline = pipeline
        self.credentials = pipeline.credentials

    def ingest(self, content: str, source: Optional[str] = None) -> Response:
        return self.handle(IngestContentRequest(content=content, source=source))

    def answer(self, prompt: str) -> Response:
        return self.handle(AgentChatRequest(prompt=prompt))

    def get_credential(self) -> Response:
        return self.handle(LoadCredentialRequest())

    def set_credential(self, value: str) -> Response:
        return self.handle(SaveCredentialRequest(value=value))

    def handle(self, request: Request) -> Response:
        """
        Run one request to completion.

        Engine errors become ErrorResponse with their kind; anything else
        that goes wrong is logged and reported with kind "internal". A
        request object outside the known variants is a programming error
        and raises TypeError.
        """
        if not isinstance(request, REQUEST_TYPES):
            raise TypeError(f"Unhandled request variant: {type(request).__name__}")

        try:
            return self._dispatch(request)
        except ContextEngineError as exc:
            logger.warning("%s failed (%s): %s", request.type, exc.kind.value, exc)
            return ErrorResponse(error=str(exc), kind=exc.kind)
        except Exception as exc:
            logger.exception("%s failed unexpectedly", request.type)
            return ErrorResponse(error=str(exc) or type(exc).__name__, kind=ErrorKind.INTERNAL)

    def handle_message(self, payload: Any) -> Dict[str, Any]:
        """Parse a dict message, handle it, and return the response as a dict."""
        try:
            request = parse_request(payload)
        except InvalidRequestError as exc:
            return ErrorResponse(error=str(exc), kind=exc.kind).to_dict()
        return self.handle(request).to_dict()

    def _dispatch(self, request: Request) -> Response:
        if isinstance(request, SaveCredentialRequest):
            self.credentials.set(request.value)
            return SaveCredentialResponse()
        if isinstance(request, LoadCredentialRequest):
            return LoadCredentialResponse(value=self.credentials.get() or "")
        if isinstance(request, IngestContentRequest):
            result = self.pipeline.ingest(request.content, request.source)
            return IngestContentResponse(entries=result.entries)
        if isinstance(request, AgentChatRequest):
            result = self.pipeline.answer(request.prompt)
            return AgentChatResponse(text=result.answer)

        raise TypeError(f"Unhandled request variant: {type(request).__name__}")
