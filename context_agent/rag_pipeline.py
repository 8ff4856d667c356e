"""
RAG Pipeline - The Complete System

This module orchestrates all the components into the two core operations:
1. Ingest: Text → Chunking → Embedding → Vector Store (append + evict)
2. Answer: Prompt → Embedding → Ranking → Generation → Answer

THE RAG FLOW VISUALIZED:

INGEST (run for each piece of captured text):
┌──────────┐    ┌──────────┐    ┌──────────┐    ┌──────────┐
│   Text   │───▶│ Chunking │───▶│Embedding │───▶│  Vector  │
│ + source │    │ (window) │    │ (1/chunk)│    │  Store   │
└──────────┘    └──────────┘    └──────────┘    └──────────┘

ANSWER (run for each prompt):
┌──────────┐    ┌──────────┐    ┌──────────┐    ┌──────────┐
│  Prompt  │───▶│Embedding │───▶│  Top K   │───▶│   Chat   │───▶ answer
│          │    │          │    │  Chunks  │    │Completion│
└──────────┘    └──────────┘    └──────────┘    └──────────┘

An empty store skips embedding and ranking: the raw prompt is sent.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from config.settings import Settings, get_settings
from context_agent.chunking import Chunk, DocumentLoader, TextChunker, truncate
from context_agent.credentials import (
    CredentialProvider,
    FileCredentialProvider,
    MemoryCredentialProvider,
)
from context_agent.embeddings import EmbeddingClient
from context_agent.errors import EmptyInputError
from context_agent.generator import Generator, build_context, build_user_message
from context_agent.ranking import SearchResult, rank
from context_agent.vector_store import VectorStore

logger = logging.getLogger(__name__)


@dataclass
class IndexingResult:
    """
    Result of ingesting a piece of text.

    entries is the number of chunks embedded and stored by this call.
    """
    source: Optional[str]
    entries: int
    store_size: int
    time_seconds: float
    chunk_ids: List[str] = field(default_factory=list)


@dataclass
class QueryResult:
    """
    Result of answering a prompt.

    THE COMPLETE PICTURE:
    - answer: What we tell the user
    - sources: Where the context came from
    - retrieved: The ranked chunks that were placed in the prompt
    - user_message: Exactly what was sent as the user turn
    - timing: Milliseconds per phase
    """
    prompt: str
    answer: str
    sources: List[str]
    retrieved: List[SearchResult]
    user_message: str
    timing: Dict[str, float]


class RAGPipeline:
    """
    Retrieval-augmented chat over a persisted vector store.

    USAGE:
        rag = RAGPipeline(store=VectorStore("data/store.json", max_entries=500))
        rag.ingest("Some page text...", source="https://example.com")
        result = rag.answer("What did that page say about pricing?")
        print(result.answer)

    COMPONENTS:
    - TextChunker: Splits ingested text into overlapping windows
    - EmbeddingClient: Converts text to vectors
    - VectorStore: Stores chunks, evicts the oldest, persists
    - Generator: Creates answers from context

    Every collaborator can be passed in; missing ones are built from
    settings.
    """

    def __init__(
        self,
        store: Optional[VectorStore] = None,
        credentials: Optional[CredentialProvider] = None,
        embedding_client: Optional[EmbeddingClient] = None,
        generator: Optional[Generator] = None,
        settings: Optional[Settings] = None
    ):
        settings = settings or get_settings()
        self.settings = settings

        self.vector_store = store or VectorStore(
            settings.store.path, settings.store.max_entries
        )
        self.credentials = credentials or MemoryCredentialProvider(settings.provider.api_key)
        self.embedding_client = embedding_client or EmbeddingClient(settings.provider)
        self.generator = generator or Generator(settings.provider)

        self.chunker = TextChunker(
            chunk_size=settings.chunking.chunk_size,
            chunk_overlap=settings.chunking.chunk_overlap
        )
        self.top_k = settings.retrieval.top_k
        self.max_content_chars = settings.truncation.max_content_chars
        self.max_prompt_chars = settings.truncation.max_prompt_chars

    def ingest(self, text: str, source: Optional[str] = None) -> IndexingResult:
        """
        Index text into the store.

        WHAT HAPPENS:
        1. Check that an API key is configured
        2. Truncate (if configured) and split into chunks
        3. Embed each chunk, one request at a time
        4. Append all embedded chunks, evict, persist once

        Raises:
            NoCredentialError: no API key configured
            EmptyInputError: the text has no content after normalization
            ProviderError / MalformedResponseError: an embedding call failed
        """
        start_time = time.time()
        credential = self.credentials.require()

        text = truncate(text, self.max_content_chars)
        segments = self.chunker.split(text)
        if not segments:
            raise EmptyInputError()

        logger.info("Ingesting %d chunks from %s", len(segments), source or "unknown source")

        # Persistence happens once per call. When an embedding fails, the
        # chunks embedded before it are still stored (one write), then the
        # failure is raised: the call reports an error even though part of
        # the text is indexed. A Chunk only exists once its embedding does,
        # so nothing without an embedding is ever written.
        indexed: List[Chunk] = []
        failure: Optional[Exception] = None

        for position, segment in enumerate(segments):
            try:
                embedding = self.embedding_client.embed(credential, segment)
            except Exception as exc:
                logger.warning(
                    "Embedding chunk %d/%d failed, keeping %d already embedded: %s",
                    position + 1, len(segments), len(indexed), exc
                )
                failure = exc
                break
            indexed.append(Chunk(content=segment, source=source, embedding=embedding))

        store_size = None
        if indexed:
            store_size = len(self.vector_store.append(indexed))

        if failure is not None:
            raise failure

        elapsed_time = time.time() - start_time
        logger.info("Indexed %d chunks in %.2f seconds", len(indexed), elapsed_time)

        return IndexingResult(
            source=source,
            entries=len(indexed),
            store_size=store_size,
            time_seconds=elapsed_time,
            chunk_ids=[chunk.id for chunk in indexed]
        )

    def ingest_file(self, file_path: str) -> IndexingResult:
        """Load a .txt/.md/.pdf file and ingest it, using the path as source."""
        text, metadata = DocumentLoader.load(file_path)
        return self.ingest(text, source=metadata["source"])

    def answer(self, prompt: str, top_k: Optional[int] = None) -> QueryResult:
        """
        Answer a prompt, grounded in the most similar stored chunks.

        WHAT HAPPENS:
        1. Empty store: send the prompt as-is
        2. Otherwise embed the prompt and rank the store
        3. Put the top chunks in front of the prompt
        4. One chat completion

        Raises:
            NoCredentialError, ProviderError, MalformedResponseError,
            EmptyCompletionError
        """
        timing = {}
        credential = self.credentials.require()
        prompt = truncate(prompt, self.max_prompt_chars)

        start = time.time()
        entries = self.vector_store.load()
        results: List[SearchResult] = []

        if entries:
            query_embedding = self.embedding_client.embed(credential, prompt)
            timing["embedding_ms"] = (time.time() - start) * 1000

            start = time.time()
            results = rank(query_embedding, entries, top_k if top_k is not None else self.top_k)
            timing["search_ms"] = (time.time() - start) * 1000
        else:
            logger.debug("Vector store is empty, sending prompt without context")

        user_message = build_user_message(prompt, build_context(results))

        start = time.time()
        generation = self.generator.generate(credential, user_message)
        timing["generation_ms"] = (time.time() - start) * 1000
        timing["total_ms"] = sum(timing.values())

        sources = list(dict.fromkeys(
            result.chunk.source for result in results if result.chunk.source
        ))

        return QueryResult(
            prompt=prompt,
            answer=generation.answer,
            sources=sources,
            retrieved=results,
            user_message=user_message,
            timing=timing
        )

    def get_stats(self) -> Dict[str, Any]:
        """Get statistics about the store."""
        entries = self.vector_store.load()
        return {
            "total_chunks": len(entries),
            "max_entries": self.vector_store.max_entries,
            "sources": list(dict.fromkeys(e.source for e in entries if e.source)),
        }

    def reset(self):
        """Drop every stored chunk."""
        self.vector_store.clear()


# Convenience function for quick start
def create_rag_system(settings: Optional[Settings] = None) -> RAGPipeline:
    """
    Create a pipeline from settings.

    The API key is persisted in CREDENTIAL_PATH when that is set, otherwise
    it is kept in memory, seeded from OPENAI_API_KEY.
    """
    settings = settings or get_settings()
    credentials = None
    if settings.store.credential_path:
        credentials = FileCredentialProvider(settings.store.credential_path)
        if not credentials.get() and settings.provider.api_key:
            credentials.set(settings.provider.api_key)
    return RAGPipeline(credentials=credentials, settings=settings)
