"""
Shared construction of OpenAI clients and translation of SDK failures.

Both the embedding client and the generator talk to the provider through
the openai SDK. Credentials arrive per call (they live in the credential
provider, not in settings), so clients are built on demand and cached per
key.
"""

import logging
from contextlib import contextmanager
from typing import Optional

import httpx
import openai
from openai import AzureOpenAI, OpenAI

from config.settings import ProviderConfig
from context_agent.errors import MalformedResponseError, ProviderError

logger = logging.getLogger(__name__)


class ClientCache:
    """Builds an OpenAI (or AzureOpenAI) client for a credential and reuses it."""

    def __init__(self, config: ProviderConfig, http_client: Optional[httpx.Client] = None):
        self.config = config
        self.http_client = http_client
        self._client = None
        self._credential = None

    def get(self, credential: str):
        if self._client is None or credential != self._credential:
            self._client = self._build(credential)
            self._credential = credential
        return self._client

    def _build(self, credential: str):
        # max_retries=0: one attempt per request, failures go straight to the caller
        if self.config.use_azure:
            return AzureOpenAI(
                azure_endpoint=self.config.azure_endpoint,
                api_key=credential,
                api_version=self.config.api_version,
                timeout=self.config.timeout,
                max_retries=0,
                http_client=self.http_client,
            )
        return OpenAI(
            api_key=credential,
            base_url=self.config.base_url,
            timeout=self.config.timeout,
            max_retries=0,
            http_client=self.http_client,
        )


@contextmanager
def provider_errors(provider: str):
    """
    Translate openai SDK exceptions into engine errors.

    Non-success statuses and transport failures become ProviderError. A
    success status whose body cannot be parsed becomes MalformedResponseError.
    """
    try:
        yield
    except openai.APIStatusError as exc:
        body = exc.response.text if exc.response is not None else str(exc)
        logger.warning("%s returned HTTP %s", provider, exc.status_code)
        raise ProviderError(exc.status_code, body, provider=provider) from exc
    except openai.APIConnectionError as exc:
        # Includes APITimeoutError: no HTTP status to report
        logger.warning("%s unreachable: %s", provider, exc)
        raise ProviderError(None, str(exc), provider=provider) from exc
    except (openai.APIResponseValidationError, ValueError) as exc:
        # ValueError covers the JSONDecodeError raised for a non-JSON 2xx body
        logger.warning("%s returned an unparseable response: %s", provider, exc)
        raise MalformedResponseError(f"{provider} returned an unparseable response: {exc}") from exc
