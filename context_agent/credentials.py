"""
Credential providers: where the provider API key lives.

A credential is one opaque string. An empty string counts as "not
configured", the same as None.
"""

import json
import logging
import os
from pathlib import Path
from typing import Optional

from context_agent.errors import NoCredentialError, StoreAccessError, StoreFormatError

logger = logging.getLogger(__name__)

CREDENTIAL_KEY = "openai_api_key"


class CredentialProvider:
    """Interface: get() returns the secret or None, set() replaces it."""

    def get(self) -> Optional[str]:
        raise NotImplementedError

    def set(self, secret: str) -> None:
        raise NotImplementedError

    def require(self) -> str:
        """Return the secret, raising NoCredentialError when none is set."""
        secret = self.get()
        if not secret:
            raise NoCredentialError()
        return secret


class MemoryCredentialProvider(CredentialProvider):
    """Keeps the key in memory, optionally seeded from settings/environment."""

    def __init__(self, secret: Optional[str] = None):
        self._secret = secret or None

    def get(self) -> Optional[str]:
        return self._secret

    def set(self, secret: str) -> None:
        self._secret = secret or None


class FileCredentialProvider(CredentialProvider):
    """
    Persists the key as {"openai_api_key": "..."} in a JSON file.

    The file is created with owner-only permissions.
    """

    def __init__(self, path: str):
        self.path = Path(path)

    def get(self) -> Optional[str]:
        if not self.path.exists():
            return None
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except ValueError as exc:
            raise StoreFormatError(f"Credential file {self.path} is not valid JSON: {exc}") from exc
        except OSError as exc:
            raise StoreAccessError(f"Cannot read credential file {self.path}: {exc}") from exc
        if not isinstance(data, dict):
            return None
        secret = data.get(CREDENTIAL_KEY)
        return secret if isinstance(secret, str) and secret else None

    def set(self, secret: str) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd = os.open(self.path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump({CREDENTIAL_KEY: secret}, f)
        except OSError as exc:
            raise StoreAccessError(f"Cannot write credential file {self.path}: {exc}") from exc
        logger.info("Saved API key to %s", self.path)
