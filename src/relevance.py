"""Drop candidate responses that are not relevant enough to the prompt."""

import dataclasses
import logging

from src.models import CandidateResponse
from src.similarity import SemanticScorer

logger = logging.getLogger(__name__)

DEFAULT_RELEVANCE_THRESHOLD = 0.5


async def filter_relevant(
    prompt: str,
    responses: list[CandidateResponse],
    scorer: SemanticScorer,
    threshold: float = DEFAULT_RELEVANCE_THRESHOLD,
) -> list[CandidateResponse]:
    """Keep responses whose semantic similarity to the prompt is >= threshold.

    Kept responses are copies carrying their relevance_score; order is preserved.
    An empty result is a valid outcome, not an error.
    """
    kept: list[CandidateResponse] = []
    for response in responses:
        score = await scorer.score(prompt, response.text)
        if score >= threshold:
            kept.append(dataclasses.replace(response, relevance_score=score))
            logger.debug("Kept %s (score %.3f)", response.model_id, score)
        else:
            logger.debug("Dropped %s (score %.3f < %.2f)", response.model_id, score, threshold)

    logger.info("Relevance filter kept %d/%d responses", len(kept), len(responses))
    return kept
