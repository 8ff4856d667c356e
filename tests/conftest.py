"""Shared fixtures: fake providers, a temp-file store, and HTTP mocking helpers."""

import json

import httpx
import pytest

from config.settings import (
    ChunkingConfig,
    ProviderConfig,
    RetrievalConfig,
    Settings,
    StoreConfig,
    TruncationConfig,
)
from context_agent.credentials import MemoryCredentialProvider
from context_agent.generator import GenerationResult
from context_agent.rag_pipeline import RAGPipeline
from context_agent.vector_store import VectorStore


class FakeEmbeddingClient:
    """Returns a fixed vector per text (or a default) and records every call."""

    def __init__(self, vectors=None, default=(1.0, 0.0, 0.0), fail_at=None, error=None):
        self.vectors = vectors or {}
        self.default = list(default)
        self.fail_at = fail_at
        self.error = error
        self.calls = []

    def embed(self, credential, text):
        self.calls.append((credential, text))
        if self.fail_at is not None and len(self.calls) - 1 == self.fail_at:
            raise self.error
        return list(self.vectors.get(text, self.default))


class FakeGenerator:
    """Records the user messages it is asked to answer."""

    def __init__(self, answer="fake answer", error=None):
        self.answer = answer
        self.error = error
        self.messages = []

    def generate(self, credential, user_message):
        self.messages.append(user_message)
        if self.error is not None:
            raise self.error
        return GenerationResult(answer=self.answer, model="fake-chat", prompt=user_message)


@pytest.fixture
def store_path(tmp_path):
    return str(tmp_path / "store.json")


@pytest.fixture
def make_pipeline(store_path):
    """Factory for a pipeline wired to fakes and a temp-file store."""

    def factory(
        embedder=None,
        generator=None,
        api_key="sk-test",
        chunk_size=1000,
        chunk_overlap=200,
        max_entries=500,
        top_k=3,
        max_content_chars=None,
        max_prompt_chars=None,
    ):
        settings = Settings(
            provider=ProviderConfig(api_key=api_key),
            chunking=ChunkingConfig(chunk_size=chunk_size, chunk_overlap=chunk_overlap),
            retrieval=RetrievalConfig(top_k=top_k),
            store=StoreConfig(path=store_path, max_entries=max_entries),
            truncation=TruncationConfig(
                max_content_chars=max_content_chars,
                max_prompt_chars=max_prompt_chars,
            ),
        )
        return RAGPipeline(
            store=VectorStore(store_path, max_entries),
            credentials=MemoryCredentialProvider(api_key),
            embedding_client=embedder or FakeEmbeddingClient(),
            generator=generator or FakeGenerator(),
            settings=settings,
        )

    return factory


@pytest.fixture
def provider_config():
    return ProviderConfig(
        base_url="http://provider.test/v1",
        embedding_model="embed-test",
        chat_model="chat-test",
        timeout=5.0,
    )


@pytest.fixture
def mock_http():
    """
    Build an httpx.Client whose requests go to a handler function.

    The returned object also exposes .requests, the list of requests seen.
    """

    class MockHttp:
        def __init__(self):
            self.requests = []

        def client(self, handler):
            def recording_handler(request):
                self.requests.append(request)
                return handler(request)

            return httpx.Client(transport=httpx.MockTransport(recording_handler))

        def body(self, index=-1):
            return json.loads(self.requests[index].content)

    return MockHttp()


def read_store_file(path):
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


@pytest.fixture
def read_store():
    return read_store_file
