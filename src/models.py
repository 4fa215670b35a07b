"""Pure dataclasses for the response-synthesis pipeline. No I/O, no deps."""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class GenerationParams:
    max_tokens: int
    temperature: float

    def __post_init__(self) -> None:
        if self.max_tokens <= 0:
            raise ValueError(f"max_tokens must be positive, got {self.max_tokens}")
        if not 0.0 <= self.temperature <= 1.0:
            raise ValueError(f"temperature must be in [0, 1], got {self.temperature}")


@dataclass(frozen=True)
class ModelSpec:
    id: str                # vendor model string, e.g. "mistralai/Mistral-7B-Instruct-v0.3"
    label: str             # display label
    stage: str             # progress tag emitted before the call ("model1", ...)
    params: GenerationParams


@dataclass(frozen=True)
class CandidateResponse:
    model_id: str
    text: str
    latency_sec: float = 0.0
    token_count: int | None = None
    relevance_score: float | None = None


@dataclass(frozen=True)
class ConsensusResult:
    answer: str
    contributing_model_ids: list[str] = field(default_factory=list)
    report_models: bool = False    # True when the terminal event lists models for feedback


@dataclass(frozen=True)
class ChatRequest:
    prompt: str


@dataclass(frozen=True)
class FeedbackRequest:
    model_id: str
    rating: int            # +1 or -1
