"""Consensus strategies: reduce several candidate responses to one answer.

Two interchangeable strategies share the ``ConsensusStrategy`` interface:

- ``WeightedSummarize`` repeats each relevant response in proportion to its
  model's feedback weight and asks a summarization service to compress the
  result. It runs after the relevance filter and reports the contributing
  models so the caller can send feedback on them.
- ``MajorityVote`` clusters the raw responses by edit-distance similarity and
  returns the largest cluster's representative, cleaned up.
"""

import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field

from src.feedback import FeedbackStore
from src.models import CandidateResponse, ConsensusResult
from src.similarity import lexical_similarity
from src.summarizer import ProviderSummarizer

logger = logging.getLogger(__name__)

DEFAULT_CLUSTER_THRESHOLD = 0.8
MAX_ANSWER_FRAGMENTS = 20

_SENTENCE_BOUNDARY = re.compile(r"---|#|\.\s+")
_ANSWER_LABEL = re.compile(r"^\s*answer:\s*", re.IGNORECASE)


class ConsensusStrategy(ABC):
    """Reduces candidate responses to a single answer."""

    name: str = ""
    uses_relevance_filter: bool = False

    @abstractmethod
    async def build(self, prompt: str, responses: list[CandidateResponse]) -> ConsensusResult:
        """Return the consensus answer for responses.

        Args:
            prompt: The original user prompt.
            responses: Relevance-filtered responses when uses_relevance_filter
                is set, otherwise the raw fanout output. Never empty.
        """
        ...


def _weighted_block(text: str, weight: int) -> str:
    return " ".join([text] * max(weight, 1))


class WeightedSummarize(ConsensusStrategy):
    """Feedback-weighted concatenation, compressed by a summarizer."""

    name = "weighted_summarize"
    uses_relevance_filter = True

    def __init__(self, feedback: FeedbackStore, summarizer: ProviderSummarizer) -> None:
        self._feedback = feedback
        self._summarizer = summarizer

    def combine(self, responses: list[CandidateResponse]) -> str:
        """Repeat each text by its model's weight (at least once) and join blocks by a blank line."""
        blocks = []
        for response in responses:
            weight = self._feedback.weight_of(response.model_id)
            if weight < 1:
                logger.debug("Weight %d for %s floored to 1", weight, response.model_id)
            blocks.append(_weighted_block(response.text.strip(), weight))
        return "\n\n".join(blocks)

    async def build(self, prompt: str, responses: list[CandidateResponse]) -> ConsensusResult:
        combined = self.combine(responses)
        summary = await self._summarizer.summarize(combined)
        return ConsensusResult(
            answer=summary.strip(),
            contributing_model_ids=[r.model_id for r in responses],
            report_models=True,
        )


@dataclass
class _Cluster:
    representative: str
    count: int = 1
    model_ids: list[str] = field(default_factory=list)


def cluster_responses(
    responses: list[CandidateResponse],
    threshold: float = DEFAULT_CLUSTER_THRESHOLD,
) -> list[_Cluster]:
    """Group responses incrementally; the first representative reaching threshold absorbs a text."""
    clusters: list[_Cluster] = []
    for response in responses:
        for cluster in clusters:
            if lexical_similarity(response.text, cluster.representative) >= threshold:
                cluster.count += 1
                cluster.model_ids.append(response.model_id)
                break
        else:
            clusters.append(_Cluster(representative=response.text, model_ids=[response.model_id]))
    return clusters


def pick_majority(clusters: list[_Cluster]) -> _Cluster:
    """Largest cluster; ties go to the one seen first."""
    best = clusters[0]
    for cluster in clusters[1:]:
        if cluster.count > best.count:
            best = cluster
    return best


def split_fragments(text: str, max_fragments: int = MAX_ANSWER_FRAGMENTS) -> str:
    """Split on sentence boundaries, drop blanks and repeats, rejoin the first max_fragments."""
    fragments: list[str] = []
    for fragment in _SENTENCE_BOUNDARY.split(text):
        fragment = fragment.strip()
        if fragment and fragment not in fragments:
            fragments.append(fragment)
    if len(fragments) > 1:
        return " ".join(fragments[:max_fragments])
    return fragments[0] if fragments else ""


def clean_answer(prompt: str, text: str, max_fragments: int = MAX_ANSWER_FRAGMENTS) -> str:
    """Strip a prompt echo and an 'Answer:' label, then de-duplicate sentences."""
    answer = text.strip()
    echo = re.match(re.escape(prompt.strip()), answer, re.IGNORECASE) if prompt.strip() else None
    if echo:
        answer = answer[echo.end():]
    answer = _ANSWER_LABEL.sub("", answer, count=1)
    return split_fragments(answer, max_fragments)


class MajorityVote(ConsensusStrategy):
    """Edit-distance clustering; the biggest cluster's representative wins."""

    name = "majority_vote"
    uses_relevance_filter = False

    def __init__(
        self,
        threshold: float = DEFAULT_CLUSTER_THRESHOLD,
        max_fragments: int = MAX_ANSWER_FRAGMENTS,
    ) -> None:
        self._threshold = threshold
        self._max_fragments = max_fragments

    async def build(self, prompt: str, responses: list[CandidateResponse]) -> ConsensusResult:
        clusters = cluster_responses(responses, self._threshold)
        winner = pick_majority(clusters)
        logger.info(
            "Majority vote: %d clusters, winner has %d/%d votes",
            len(clusters), winner.count, len(responses),
        )
        return ConsensusResult(
            answer=clean_answer(prompt, winner.representative, self._max_fragments),
            contributing_model_ids=list(winner.model_ids),
            report_models=False,
        )


def build_strategy(
    name: str,
    *,
    feedback: FeedbackStore | None = None,
    summarizer: ProviderSummarizer | None = None,
    cluster_threshold: float = DEFAULT_CLUSTER_THRESHOLD,
) -> ConsensusStrategy:
    """Instantiate a strategy by its config name.

    Raises:
        ValueError: On an unknown name, or when weighted_summarize lacks its
            feedback store or summarizer.
    """
    if name == WeightedSummarize.name:
        if feedback is None or summarizer is None:
            raise ValueError("weighted_summarize needs a feedback store and a summarizer")
        return WeightedSummarize(feedback, summarizer)
    if name == MajorityVote.name:
        return MajorityVote(threshold=cluster_threshold)
    raise ValueError(f"Unknown consensus strategy: {name}")
