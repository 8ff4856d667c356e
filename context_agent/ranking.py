"""
Similarity ranking over the stored chunks.

Brute force: the query is compared against every stored embedding. The
store is capacity-bounded, so a linear scan stays cheap and exact.
"""

import logging
from dataclasses import dataclass
from typing import Iterable, List, Sequence

from context_agent.chunking import Chunk
from context_agent.embeddings import cosine_similarity
from context_agent.errors import DimensionMismatchError

logger = logging.getLogger(__name__)


@dataclass
class SearchResult:
    """
    A single ranked chunk.

    WHY SEPARATE FROM Chunk:
    - The score only means something relative to one query
    """
    chunk: Chunk
    score: float

    def __repr__(self):
        text = self.chunk.content
        preview = text[:50] + "..." if len(text) > 50 else text
        return f"SearchResult(score={self.score:.4f}, text='{preview}')"


def rank(
    query_embedding: Sequence[float],
    entries: Iterable[Chunk],
    top_k: int
) -> List[SearchResult]:
    """
    Return the top_k entries most similar to the query, best first.

    Entries without an embedding, or whose embedding has a different
    dimensionality than the query, are left out. Ties keep insertion order.
    """
    if top_k <= 0:
        return []

    scored = []
    skipped = 0

    for entry in entries:
        if entry.embedding is None:
            skipped += 1
            continue
        try:
            score = cosine_similarity(query_embedding, entry.embedding)
        except DimensionMismatchError:
            skipped += 1
            continue
        scored.append(SearchResult(chunk=entry, score=score))

    if skipped:
        logger.debug("Excluded %d unrankable entries", skipped)

    # list.sort is stable, also with reverse=True
    scored.sort(key=lambda result: result.score, reverse=True)

    return scored[:top_k]
