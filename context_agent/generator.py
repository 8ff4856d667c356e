"""
Generator Module

WHAT THIS DOES:
Takes a user prompt + retrieved context and asks the chat-completion
provider for an answer. This is the "G" in RAG - the Generation part.

PROMPT TEMPLATE ANATOMY:

┌─────────────────────────────────────────────────┐
│ SYSTEM MESSAGE                                  │
│ - Fixed instruction: use the supplied context   │
│   when it is relevant                           │
└─────────────────────────────────────────────────┘
                    +
┌─────────────────────────────────────────────────┐
│ USER MESSAGE                                    │
│ Context:                                        │
│ <source>:                                       │
│ <chunk text>                                    │
│                                                 │
│ User prompt:                                    │
│ <prompt>                                        │
└─────────────────────────────────────────────────┘

With no retrieved context the user message is the prompt itself,
unmodified.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional

import httpx

from config.settings import ProviderConfig, get_settings
from context_agent.errors import EmptyCompletionError
from context_agent.openai_client import ClientCache, provider_errors
from context_agent.ranking import SearchResult

logger = logging.getLogger(__name__)


DEFAULT_SYSTEM_PROMPT = (
    "You are an AI agent embedded in a browser extension. "
    "Use the supplied context when it is relevant."
)

UNKNOWN_SOURCE = "unknown"


@dataclass
class GenerationResult:
    """
    Result of generating an answer.

    - answer: What we show the user
    - model: Debugging and cost tracking
    - usage: Token consumption, when the provider reports it
    - prompt: The exact user message that was sent
    """
    answer: str
    model: str
    prompt: str
    usage: dict = field(default_factory=dict)


def build_context(results: List[SearchResult]) -> str:
    """
    Build the context block from ranked chunks.

    FORMAT (one block per chunk, separated by a blank line):
        <source or "unknown">:
        <chunk text>
    """
    return "\n\n".join(
        f"{result.chunk.source or UNKNOWN_SOURCE}:\n{result.chunk.content}"
        for result in results
    )


def build_user_message(prompt: str, context: str) -> str:
    """Prefix the prompt with the context block, or return it as-is when there is none."""
    if not context:
        return prompt
    return f"Context:\n{context}\n\nUser prompt:\n{prompt}"


class Generator:
    """
    Generate answers with the chat-completion provider.

    RESPONSIBILITIES:
    1. Call the chat completions API once per answer
    2. Reject empty completions
    3. Report usage for cost monitoring
    """

    def __init__(
        self,
        config: Optional[ProviderConfig] = None,
        system_prompt: Optional[str] = None,
        http_client: Optional[httpx.Client] = None
    ):
        """
        Initialize the generator.

        Args:
            config: Provider settings (defaults to settings)
            system_prompt: Custom system prompt (defaults to DEFAULT_SYSTEM_PROMPT)
            http_client: Transport override, used by tests
        """
        self.config = config or get_settings().provider
        self.model = self.config.chat_model
        self.system_prompt = system_prompt or DEFAULT_SYSTEM_PROMPT
        self._clients = ClientCache(self.config, http_client)

    def generate(self, credential: str, user_message: str) -> GenerationResult:
        """
        Send the system instruction and user message, return the answer.

        Raises:
            ProviderError: non-success HTTP status or no response
            EmptyCompletionError: no choices, or blank message content
        """
        client = self._clients.get(credential)

        with provider_errors("Chat provider"):
            response = client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": self.system_prompt},
                    {"role": "user", "content": user_message}
                ]
            )

        answer = _extract_answer(response)

        usage = {}
        reported = getattr(response, "usage", None)
        if reported is not None:
            usage = {
                "prompt_tokens": getattr(reported, "prompt_tokens", None),
                "completion_tokens": getattr(reported, "completion_tokens", None),
                "total_tokens": getattr(reported, "total_tokens", None),
            }

        return GenerationResult(
            answer=answer,
            model=self.model,
            prompt=user_message,
            usage=usage
        )


def _extract_answer(response) -> str:
    choices = getattr(response, "choices", None)
    if not choices:
        raise EmptyCompletionError()

    message = getattr(choices[0], "message", None)
    content = getattr(message, "content", None) if message is not None else None
    if not isinstance(content, str) or not content.strip():
        raise EmptyCompletionError()

    return content.strip()
