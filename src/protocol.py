"""Wire format: parse inbound JSON requests, serialize events to NDJSON."""

import json
from typing import Any

from src.events import AckEvent, ErrorEvent, ProgressEvent, ResultEvent, StageEvent
from src.feedback import VALID_RATINGS
from src.models import ChatRequest, FeedbackRequest


class MalformedRequestError(ValueError):
    """Raised when a request payload is neither a valid prompt nor valid feedback."""


def parse_request(payload: Any) -> ChatRequest | FeedbackRequest:
    """Turn ``{"prompt": ...}`` or ``{"feedback": {"modelId", "rating"}}`` into a request.

    Feedback takes precedence when both keys are present.

    Raises:
        MalformedRequestError: On a missing/empty prompt or invalid feedback.
    """
    if not isinstance(payload, dict):
        raise MalformedRequestError("Request body must be a JSON object")

    feedback = payload.get("feedback")
    if feedback is not None:
        if not isinstance(feedback, dict):
            raise MalformedRequestError("feedback must be an object")
        model_id = feedback.get("modelId")
        rating = feedback.get("rating")
        if not isinstance(model_id, str) or not model_id.strip():
            raise MalformedRequestError("feedback.modelId must be a non-empty string")
        if isinstance(rating, bool) or rating not in VALID_RATINGS:
            raise MalformedRequestError("feedback.rating must be 1 or -1")
        return FeedbackRequest(model_id=model_id, rating=int(rating))

    prompt = payload.get("prompt")
    if not isinstance(prompt, str) or not prompt.strip():
        raise MalformedRequestError("prompt must be a non-empty string")
    return ChatRequest(prompt=prompt)


def to_wire(event: ProgressEvent) -> dict[str, Any]:
    """Map an event to its JSON shape, discriminated by which key is present."""
    if isinstance(event, StageEvent):
        return {"stage": event.stage}
    if isinstance(event, ResultEvent):
        data: dict[str, Any] = {"finalAnswer": event.answer}
        if event.report_models:
            data["models"] = [{"modelId": model_id} for model_id in event.contributing_model_ids]
        return data
    if isinstance(event, ErrorEvent):
        return {"error": event.message}
    if isinstance(event, AckEvent):
        return {"message": event.message}
    raise TypeError(f"Unknown event type: {type(event).__name__}")


def encode_ndjson(event: ProgressEvent) -> str:
    return json.dumps(to_wire(event), ensure_ascii=False) + "\n"
