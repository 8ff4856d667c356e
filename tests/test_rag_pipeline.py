"""Tests for the ingest and answer operations."""

import os

import pytest

from conftest import FakeEmbeddingClient, FakeGenerator
from context_agent.errors import (
    EmptyCompletionError,
    EmptyInputError,
    NoCredentialError,
    ProviderError,
)


# ingest

def test_ingest_requires_a_credential(make_pipeline, store_path):
    embedder = FakeEmbeddingClient()
    pipeline = make_pipeline(embedder=embedder, api_key=None)

    with pytest.raises(NoCredentialError):
        pipeline.ingest("some text")

    assert embedder.calls == []
    assert not os.path.exists(store_path)


@pytest.mark.parametrize("text", ["", "   \n\t "])
def test_ingest_of_blank_text_is_empty_input(make_pipeline, store_path, text):
    pipeline = make_pipeline()

    with pytest.raises(EmptyInputError):
        pipeline.ingest(text)

    assert not os.path.exists(store_path)


def test_ingest_embeds_each_chunk_and_persists_once(make_pipeline, store_path, read_store):
    embedder = FakeEmbeddingClient()
    pipeline = make_pipeline(embedder=embedder, chunk_size=10, chunk_overlap=3)

    result = pipeline.ingest("abcdefghijklmnopqrstuvwxy", source="page.html")

    assert result.entries == 4
    assert result.store_size == 4
    assert len(result.chunk_ids) == 4
    assert [text for _, text in embedder.calls] == [
        "abcdefghij", "hijklmnopq", "opqrstuvwx", "vwxy"
    ]
    assert all(credential == "sk-test" for credential, _ in embedder.calls)

    document = read_store(store_path)
    assert document["revision"] == 1
    assert [e["id"] for e in document["entries"]] == result.chunk_ids
    assert all(e["source"] == "page.html" for e in document["entries"])
    assert all(e["embedding"] == [1.0, 0.0, 0.0] for e in document["entries"])


def test_embedding_401_persists_nothing(make_pipeline, store_path):
    """Test a 401 on the first chunk fails the ingest and stores no chunk."""
    embedder = FakeEmbeddingClient(fail_at=0, error=ProviderError(401, "invalid key"))
    pipeline = make_pipeline(embedder=embedder, chunk_size=10, chunk_overlap=3)

    with pytest.raises(ProviderError) as excinfo:
        pipeline.ingest("abcdefghijklmnopqrstuvwxy")

    assert excinfo.value.status == 401
    assert len(embedder.calls) == 1
    assert pipeline.vector_store.load() == []


def test_failure_mid_ingest_keeps_earlier_chunks(make_pipeline):
    """Test chunks embedded before the failure are stored and the call still fails."""
    embedder = FakeEmbeddingClient(fail_at=2, error=ProviderError(500, "boom"))
    pipeline = make_pipeline(embedder=embedder, chunk_size=10, chunk_overlap=3)

    with pytest.raises(ProviderError):
        pipeline.ingest("abcdefghijklmnopqrstuvwxy", source="page")

    assert len(embedder.calls) == 3
    entries = pipeline.vector_store.load()
    assert [e.content for e in entries] == ["abcdefghij", "hijklmnopq"]
    assert all(e.embedding is not None for e in entries)


def test_unexpected_embed_error_still_keeps_earlier_chunks(make_pipeline):
    """Test a non-engine exception mid-ingest also persists what was embedded before it."""
    embedder = FakeEmbeddingClient(fail_at=1, error=ValueError("bad payload"))
    pipeline = make_pipeline(embedder=embedder, chunk_size=10, chunk_overlap=3)

    with pytest.raises(ValueError, match="bad payload"):
        pipeline.ingest("abcdefghijklmnopqrstuvwxy")

    assert [e.content for e in pipeline.vector_store.load()] == ["abcdefghij"]


def test_ingest_respects_capacity(make_pipeline):
    pipeline = make_pipeline(max_entries=2)

    for text in ("A", "B", "C"):
        pipeline.ingest(text)

    assert [e.content for e in pipeline.vector_store.load()] == ["B", "C"]


def test_ingest_truncates_content_when_configured(make_pipeline):
    embedder = FakeEmbeddingClient()
    pipeline = make_pipeline(embedder=embedder, max_content_chars=8)

    pipeline.ingest("a long piece of page text")

    assert [text for _, text in embedder.calls] == ["a lon..."]


def test_ingest_file(make_pipeline, tmp_path):
    path = tmp_path / "notes.txt"
    path.write_text("Remember the milk.", encoding="utf-8")
    pipeline = make_pipeline()

    result = pipeline.ingest_file(str(path))

    assert result.entries == 1
    assert pipeline.vector_store.load()[0].source == str(path)


# answer

def test_answer_with_empty_store_sends_raw_prompt(make_pipeline):
    """Test an empty store skips retrieval and sends the prompt unmodified."""
    embedder = FakeEmbeddingClient()
    generator = FakeGenerator(answer="hi there")
    pipeline = make_pipeline(embedder=embedder, generator=generator)

    result = pipeline.answer("hello")

    assert generator.messages == ["hello"]
    assert embedder.calls == []
    assert result.answer == "hi there"
    assert result.retrieved == []


def test_answer_places_top_chunks_before_prompt(make_pipeline):
    embedder = FakeEmbeddingClient(vectors={
        "Alpha facts": [1.0, 0.0, 0.0],
        "Beta facts": [0.0, 1.0, 0.0],
        "Gamma facts": [0.0, 0.0, 1.0],
        "Delta facts": [-1.0, 0.0, 0.0],
        "question": [1.0, 0.2, 0.1],
    })
    generator = FakeGenerator()
    pipeline = make_pipeline(embedder=embedder, generator=generator)

    pipeline.ingest("Alpha facts", source="a.txt")
    pipeline.ingest("Beta facts")
    pipeline.ingest("Gamma facts", source="g.txt")
    pipeline.ingest("Delta facts", source="d.txt")

    result = pipeline.answer("question")

    expected = (
        "Context:\n"
        "a.txt:\nAlpha facts\n\n"
        "unknown:\nBeta facts\n\n"
        "g.txt:\nGamma facts\n\n"
        "User prompt:\nquestion"
    )
    assert generator.messages == [expected]
    assert result.user_message == expected
    assert [r.chunk.content for r in result.retrieved] == ["Alpha facts", "Beta facts", "Gamma facts"]
    assert result.sources == ["a.txt", "g.txt"]


def test_answer_without_rankable_entries_sends_raw_prompt(make_pipeline):
    """Test entries of another dimensionality are excluded, leaving no context."""
    embedder = FakeEmbeddingClient(vectors={"old": [1.0, 0.0], "question": [1.0, 0.0, 0.0]})
    generator = FakeGenerator()
    pipeline = make_pipeline(embedder=embedder, generator=generator)
    pipeline.ingest("old")

    pipeline.answer("question")

    assert generator.messages == ["question"]


def test_answer_requires_a_credential(make_pipeline):
    generator = FakeGenerator()
    pipeline = make_pipeline(generator=generator, api_key="")

    with pytest.raises(NoCredentialError):
        pipeline.answer("hello")

    assert generator.messages == []


def test_answer_truncates_prompt_when_configured(make_pipeline):
    embedder = FakeEmbeddingClient()
    generator = FakeGenerator()
    pipeline = make_pipeline(embedder=embedder, generator=generator, max_prompt_chars=10)
    pipeline.ingest("stored")
    embedder.calls.clear()

    pipeline.answer("a very long question indeed")

    assert embedder.calls == [("sk-test", "a very ...")]
    assert generator.messages[0].endswith("User prompt:\na very ...")


def test_answer_propagates_provider_failures(make_pipeline):
    pipeline = make_pipeline(generator=FakeGenerator(error=EmptyCompletionError()))

    with pytest.raises(EmptyCompletionError):
        pipeline.answer("hello")

    embedder = FakeEmbeddingClient(fail_at=1, error=ProviderError(429, "slow down"))
    pipeline = make_pipeline(embedder=embedder)
    pipeline.ingest("stored")

    with pytest.raises(ProviderError):
        pipeline.answer("hello")


def test_stats_and_reset(make_pipeline):
    pipeline = make_pipeline(max_entries=7)
    pipeline.ingest("one", source="x")
    pipeline.ingest("two", source="x")
    pipeline.ingest("three", source="y")

    stats = pipeline.get_stats()
    assert stats == {"total_chunks": 3, "max_entries": 7, "sources": ["x", "y"]}

    pipeline.reset()
    assert pipeline.get_stats()["total_chunks"] == 0
