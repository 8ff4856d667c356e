"""
Embeddings Module

WHAT ARE EMBEDDINGS:
Embeddings convert text into vectors (lists of numbers) that capture meaning.
Similar texts have similar vectors, allowing us to find related content
using mathematical distance calculations instead of keyword matching.

EXAMPLE:
"How do I return a product?"  →  [0.023, -0.041, 0.089, ..., 0.012]
"What's your return policy?"  →  [0.025, -0.038, 0.091, ..., 0.010]
                                  ↑ Very similar vectors

"What's the weather today?"   →  [0.512, 0.103, -0.234, ..., 0.891]
                                  ↑ Very different vector

DISTANCE METRIC - Cosine Similarity:
  - 1.0 = identical direction
  - 0.0 = perpendicular (unrelated)
  - -1.0 = opposite (rare in practice)

The provider is an I/O boundary: one request per text, no batching, no
caching, no retries. Whatever goes wrong is raised to the caller.
"""

import logging
import math
from numbers import Real
from typing import List, Optional, Sequence

import httpx
import numpy as np

from config.settings import ProviderConfig, get_settings
from context_agent.errors import DimensionMismatchError, MalformedResponseError
from context_agent.openai_client import ClientCache, provider_errors

logger = logging.getLogger(__name__)

# Score for a zero-magnitude vector: below every real cosine value,
# so a degenerate entry can never outrank a valid match.
DEGENERATE_SCORE = float("-inf")


class EmbeddingClient:
    """
    Client for generating embeddings through the OpenAI API.

    WHY A CLASS:
    - Holds the provider configuration and the cached SDK client
    - Provides consistent interface
    - Easy to mock for testing (pass an httpx.Client with a mock transport)
    """

    def __init__(
        self,
        config: Optional[ProviderConfig] = None,
        http_client: Optional[httpx.Client] = None
    ):
        """
        Initialize the embedding client.

        Args:
            config: Provider settings (defaults to settings)
            http_client: Transport override, used by tests
        """
        self.config = config or get_settings().provider
        self.model = self.config.embedding_model
        self._clients = ClientCache(self.config, http_client)

    def embed(self, credential: str, text: str) -> List[float]:
        """
        Generate the embedding for a single text.

        Args:
            credential: API key for the provider
            text: The text to embed

        Returns:
            The embedding vector

        Raises:
            ProviderError: non-success HTTP status or no response
            MalformedResponseError: success response without a usable vector
        """
        client = self._clients.get(credential)

        with provider_errors("Embedding provider"):
            response = client.embeddings.create(
                model=self.model,
                input=text,
                encoding_format="float",
            )

        embedding = _extract_embedding(response)
        logger.debug("Embedded %d chars into %d dimensions", len(text), len(embedding))
        return embedding


def _extract_embedding(response) -> List[float]:
    data = getattr(response, "data", None)
    if not data:
        raise MalformedResponseError("Embedding response has no data")

    embedding = getattr(data[0], "embedding", None)
    if not isinstance(embedding, list) or not embedding:
        raise MalformedResponseError("Embedding response has no embedding vector")

    if not all(isinstance(x, Real) and not isinstance(x, bool) for x in embedding):
        raise MalformedResponseError("Embedding vector contains non-numeric values")

    vector = [float(x) for x in embedding]
    if not all(math.isfinite(x) for x in vector):
        raise MalformedResponseError("Embedding vector contains non-finite values")
    return vector


def cosine_similarity(vec1: Sequence[float], vec2: Sequence[float]) -> float:
    """
    Calculate cosine similarity between two vectors.

    FORMULA:
    cosine_similarity = (A · B) / (||A|| * ||B||)

    Raises DimensionMismatchError when the vectors differ in length, and
    returns DEGENERATE_SCORE when either one has zero magnitude.
    """
    if len(vec1) != len(vec2):
        raise DimensionMismatchError(len(vec1), len(vec2))

    a = np.asarray(vec1, dtype=float)
    b = np.asarray(vec2, dtype=float)

    magnitude_a = np.linalg.norm(a)
    magnitude_b = np.linalg.norm(b)

    if magnitude_a == 0 or magnitude_b == 0:
        return DEGENERATE_SCORE

    return float(np.dot(a, b) / (magnitude_a * magnitude_b))
