"""Per-model feedback weights, adjusted by user ratings and read by the weighted strategy."""

import logging
import threading
from collections.abc import Mapping

logger = logging.getLogger(__name__)

DEFAULT_WEIGHT = 1
VALID_RATINGS = (1, -1)


class FeedbackStore:
    """In-memory weight table that lives as long as its owner.

    Increments are serialized by a lock so concurrent feedback submissions
    never lose updates. Weights have no lower bound.
    """

    def __init__(self, initial_weights: Mapping[str, int] | None = None) -> None:
        self._weights: dict[str, int] = dict(initial_weights or {})
        self._lock = threading.Lock()

    def record_feedback(self, model_id: str, rating: int) -> int:
        """Apply a +1/-1 rating and return the new weight.

        Raises:
            ValueError: If rating is not +1 or -1.
        """
        if isinstance(rating, bool) or rating not in VALID_RATINGS:
            raise ValueError(f"rating must be +1 or -1, got {rating!r}")
        with self._lock:
            weight = self._weights.get(model_id, DEFAULT_WEIGHT) + rating
            self._weights[model_id] = weight
        logger.info("Feedback for %s: %+d -> weight %d", model_id, rating, weight)
        return weight

    def weight_of(self, model_id: str) -> int:
        with self._lock:
            return self._weights.get(model_id, DEFAULT_WEIGHT)

    def snapshot(self) -> dict[str, int]:
        with self._lock:
            return dict(self._weights)
