"""
Configuration settings for the retrieval-augmented context engine.

WHY THIS FILE EXISTS:
- Centralizes all configuration in one place
- Makes it easy to switch between environments (dev/prod)
- Keeps secrets separate from code (loaded from .env)

PROVIDER CONCEPTS:
- API key: Authentication for the embedding and chat providers. It is
  optional here; operations that need it fail with NoCredentialError.
- Base URL: Any OpenAI-compatible endpoint (defaults to api.openai.com)
- Azure endpoint: When set, requests go to an Azure OpenAI resource instead
  and the model names are deployment names.
"""

import os
from dataclasses import dataclass, field
from typing import Optional

from dotenv import load_dotenv

# Load environment variables from .env file
# WHY: Keeps secrets out of code, different values for different environments
load_dotenv()


@dataclass
class ProviderConfig:
    """
    Configuration for the embedding and chat-completion providers.

    WHY ONE CONFIG FOR BOTH:
    - Both are reached through the same OpenAI client
    - They share credentials, endpoint and timeout
    """
    api_key: Optional[str] = None
    base_url: Optional[str] = None
    azure_endpoint: Optional[str] = None
    api_version: str = "2024-02-15-preview"
    embedding_model: str = "text-embedding-3-small"
    chat_model: str = "gpt-4o-mini"
    timeout: float = 30.0           # Seconds per request, single attempt

    @property
    def use_azure(self) -> bool:
        return bool(self.azure_endpoint)


@dataclass
class ChunkingConfig:
    """
    Configuration for text chunking.

    WHY THESE DEFAULTS:
    - chunk_size=1000: ~250 words, fits well in an embedding request
    - chunk_overlap=200: 20% overlap preserves context at boundaries
    - overlap must stay below chunk_size or splitting would never advance
    """
    chunk_size: int = 1000       # Characters per chunk
    chunk_overlap: int = 200     # Overlap between chunks

    def __post_init__(self):
        if self.chunk_size <= 0:
            raise ValueError(f"chunk_size must be positive, got {self.chunk_size}")
        if self.chunk_overlap < 0:
            raise ValueError(f"chunk_overlap must not be negative, got {self.chunk_overlap}")
        if self.chunk_overlap >= self.chunk_size:
            raise ValueError(
                f"chunk_overlap ({self.chunk_overlap}) must be smaller than "
                f"chunk_size ({self.chunk_size})"
            )


@dataclass
class RetrievalConfig:
    """
    Configuration for context retrieval.

    top_k=3: the three most similar chunks are placed in the prompt.
    """
    top_k: int = 3


@dataclass
class StoreConfig:
    """
    Configuration for the persisted vector store.

    WHY A CAPACITY:
    - The whole store is read and written on every mutation
    - Bounding it bounds the cost of each ingest and answer
    """
    path: str = os.path.join("data", "vector_store.json")
    max_entries: int = 500
    credential_path: Optional[str] = None

    def __post_init__(self):
        if self.max_entries < 1:
            raise ValueError(f"max_entries must be at least 1, got {self.max_entries}")


@dataclass
class TruncationConfig:
    """
    Optional character budgets applied before embedding/sending.

    None disables truncation for that input.
    """
    max_content_chars: Optional[int] = None
    max_prompt_chars: Optional[int] = None


@dataclass
class Settings:
    """
    Main settings container.

    WHY NESTED CONFIGS:
    - Organized by domain (provider, chunking, retrieval, store)
    - Easy to modify one area without affecting others
    - Clear what settings belong together
    """
    provider: ProviderConfig = field(default_factory=ProviderConfig)
    chunking: ChunkingConfig = field(default_factory=ChunkingConfig)
    retrieval: RetrievalConfig = field(default_factory=RetrievalConfig)
    store: StoreConfig = field(default_factory=StoreConfig)
    truncation: TruncationConfig = field(default_factory=TruncationConfig)
    log_level: str = "INFO"


def _env_int(name: str, default: Optional[int]) -> Optional[int]:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}")


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}")


def load_settings() -> Settings:
    """
    Load settings from environment variables.

    WHY ENVIRONMENT VARIABLES:
    - Security: Secrets not in code
    - Flexibility: Different values per environment

    RECOGNIZED ENVIRONMENT VARIABLES (all optional):
    - OPENAI_API_KEY, OPENAI_BASE_URL
    - AZURE_OPENAI_ENDPOINT, AZURE_OPENAI_API_VERSION
    - EMBEDDING_MODEL, CHAT_MODEL, REQUEST_TIMEOUT
    - CHUNK_SIZE, CHUNK_OVERLAP, TOP_K
    - STORE_PATH, STORE_MAX_ENTRIES, CREDENTIAL_PATH
    - MAX_CONTENT_CHARS, MAX_PROMPT_CHARS
    - LOG_LEVEL
    """
    provider = ProviderConfig(
        api_key=os.getenv("OPENAI_API_KEY") or None,
        base_url=os.getenv("OPENAI_BASE_URL") or None,
        azure_endpoint=os.getenv("AZURE_OPENAI_ENDPOINT") or None,
        api_version=os.getenv("AZURE_OPENAI_API_VERSION", ProviderConfig.api_version),
        embedding_model=os.getenv("EMBEDDING_MODEL", ProviderConfig.embedding_model),
        chat_model=os.getenv("CHAT_MODEL", ProviderConfig.chat_model),
        timeout=_env_float("REQUEST_TIMEOUT", ProviderConfig.timeout),
    )

    return Settings(
        provider=provider,
        chunking=ChunkingConfig(
            chunk_size=_env_int("CHUNK_SIZE", ChunkingConfig.chunk_size),
            chunk_overlap=_env_int("CHUNK_OVERLAP", ChunkingConfig.chunk_overlap),
        ),
        retrieval=RetrievalConfig(
            top_k=_env_int("TOP_K", RetrievalConfig.top_k),
        ),
        store=StoreConfig(
            path=os.getenv("STORE_PATH", StoreConfig.path),
            max_entries=_env_int("STORE_MAX_ENTRIES", StoreConfig.max_entries),
            credential_path=os.getenv("CREDENTIAL_PATH") or None,
        ),
        truncation=TruncationConfig(
            max_content_chars=_env_int("MAX_CONTENT_CHARS", None),
            max_prompt_chars=_env_int("MAX_PROMPT_CHARS", None),
        ),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
    )


# Singleton pattern - load settings once and reuse
# WHY: Avoid repeated file I/O and validation
_settings = None

def get_settings() -> Settings:
    """Get the global settings instance."""
    global _settings
    if _settings is None:
        _settings = load_settings()
    return _settings


def reset_settings():
    """Forget the cached settings so the next get_settings() reloads them."""
    global _settings
    _settings = None
