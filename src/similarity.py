"""Text similarity: lexical edit-distance ratio and embedding-based semantic relevance."""

import asyncio
import logging
import math
import os
from abc import ABC, abstractmethod

from openai import AsyncOpenAI

from config.config_loader import SimilarityConfig

logger = logging.getLogger(__name__)


class ScorerError(Exception):
    """Raised when the semantic similarity service fails."""


def levenshtein_distance(a: str, b: str) -> int:
    """Minimum number of single-character insertions, deletions or substitutions."""
    if len(a) < len(b):
        a, b = b, a
    if not b:
        return len(a)
    previous = list(range(len(b) + 1))
    for i, ca in enumerate(a, start=1):
        current = [i]
        for j, cb in enumerate(b, start=1):
            current.append(min(
                previous[j] + 1,
                current[j - 1] + 1,
                previous[j - 1] + (ca != cb),
            ))
        previous = current
    return previous[-1]


def lexical_similarity(a: str, b: str) -> float:
    """Return 1 - levenshtein(a, b) / max(len(a), len(b)), in [0, 1]."""
    longest = max(len(a), len(b))
    if longest == 0:
        return 1.0
    return 1.0 - levenshtein_distance(a, b) / longest


def cosine_similarity(u: list[float], v: list[float]) -> float:
    dot = sum(x * y for x, y in zip(u, v))
    norm = math.sqrt(sum(x * x for x in u)) * math.sqrt(sum(y * y for y in v))
    if norm == 0:
        return 0.0
    return dot / norm


class SemanticScorer(ABC):
    """Scores how relevant a response text is to a prompt."""

    @abstractmethod
    async def score(self, prompt: str, text: str) -> float:
        """Return a relevance score in [0, 1].

        Raises:
            ScorerError: On service failure.
        """
        ...


class EmbeddingScorer(SemanticScorer):
    """Cosine similarity of OpenAI-compatible sentence embeddings."""

    def __init__(self, config: SimilarityConfig) -> None:
        self._config = config
        api_key = os.environ.get(config.api_key_env, "").strip()
        if not api_key:
            raise ScorerError(f"Missing API key: {config.api_key_env}")
        self._client = AsyncOpenAI(api_key=api_key, base_url=config.base_url)

    async def score(self, prompt: str, text: str) -> float:
        try:
            response = await asyncio.wait_for(
                self._client.embeddings.create(model=self._config.model, input=[prompt, text]),
                timeout=self._config.timeout_sec,
            )
        except TimeoutError as exc:
            raise ScorerError(f"Similarity request timed out after {self._config.timeout_sec}s") from exc
        except Exception as exc:
            raise ScorerError(f"Similarity call failed: {exc}") from exc

        if len(response.data) != 2:
            raise ScorerError(f"Expected 2 embeddings, got {len(response.data)}")

        similarity = cosine_similarity(response.data[0].embedding, response.data[1].embedding)
        return min(max(similarity, 0.0), 1.0)
