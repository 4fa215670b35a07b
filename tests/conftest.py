"""Shared pytest fixtures."""

from unittest.mock import AsyncMock

import pytest

from config.config_loader import (
    AppConfig,
    DefaultsConfig,
    FeedbackConfig,
    ModelConfig,
    PromptsConfig,
    SimilarityConfig,
)
from src.feedback import FeedbackStore
from src.models import CandidateResponse, GenerationParams, ModelSpec
from src.providers.base import AIProvider
from src.similarity import SemanticScorer


@pytest.fixture
def sample_model_config() -> ModelConfig:
    return ModelConfig(
        name="test_model",
        label="Test Model",
        sdk="openai",
        model="vendor/test-model-1",
        api_key_env="TEST_API_KEY",
        timeout_sec=30,
        max_tokens=400,
        temperature=0.3,
        base_url=None,
    )


@pytest.fixture
def sample_app_config() -> AppConfig:
    models = {
        "phi": ModelConfig("phi", "Model 1", "openai", "microsoft/Phi-3.5-mini-instruct", "HF_TOKEN", 60, 400, 0.3),
        "mistral": ModelConfig("mistral", "Model 2", "openai", "mistralai/Mistral-7B-Instruct-v0.3", "HF_TOKEN", 60, 400, 0.4),
        "summarizer": ModelConfig("summarizer", "Summarizer", "openai", "gpt-4o-mini", "OPENAI_API_KEY", 60, 600, 0.2),
    }
    return AppConfig(
        defaults=DefaultsConfig(strategy="majority_vote", summarizer="summarizer", panel=["phi", "mistral"]),
        models=models,
        similarity=SimilarityConfig("openai", "text-embedding-3-small", "OPENAI_API_KEY", 30),
        prompts=PromptsConfig(summarize="Summarize:\n{text}"),
        feedback=FeedbackConfig(),
        available_providers={"phi", "mistral", "summarizer"},
    )


class MockProvider(AIProvider):
    """Test double AIProvider."""

    def __init__(
        self,
        model_id: str = "vendor/mock",
        response_text: str = "Mock response",
        stage: str = "model1",
        provider_name: str | None = None,
    ) -> None:
        self._name = provider_name or model_id.split("/")[-1]
        self._spec = ModelSpec(
            id=model_id,
            label=self._name,
            stage=stage,
            params=GenerationParams(max_tokens=400, temperature=0.3),
        )
        self._response_text = response_text
        # Shadow the class method with an AsyncMock at the instance level.
        # ABC check passes because generate is defined in the class body below.
        self.generate = AsyncMock(  # type: ignore[assignment]
            return_value=CandidateResponse(model_id=model_id, text=response_text, latency_sec=0.1, token_count=10)
        )

    def name(self) -> str:
        return self._name

    def spec(self) -> ModelSpec:
        return self._spec

    async def generate(self, prompt: str, params: GenerationParams) -> CandidateResponse:  # type: ignore[override]
        """Default implementation; replaced by AsyncMock in __init__."""
        return CandidateResponse(model_id=self._spec.id, text=self._response_text)


class FakeScorer(SemanticScorer):
    """Returns a fixed score per response text; default_score for anything else."""

    def __init__(self, scores: dict[str, float] | None = None, default_score: float = 0.9) -> None:
        self.scores = scores or {}
        self.default_score = default_score
        self.calls: list[tuple[str, str]] = []

    async def score(self, prompt: str, text: str) -> float:
        self.calls.append((prompt, text))
        return self.scores.get(text, self.default_score)


def make_panel(*texts: str) -> list[MockProvider]:
    """One MockProvider per text, staged model1..modelN with ids vendor/m1..mN."""
    return [
        MockProvider(f"vendor/m{i}", text, stage=f"model{i}")
        for i, text in enumerate(texts, start=1)
    ]


async def no_sleep(_seconds: float) -> None:
    return None


@pytest.fixture
def feedback_store() -> FeedbackStore:
    return FeedbackStore()


@pytest.fixture
def fake_scorer() -> FakeScorer:
    return FakeScorer()


@pytest.fixture
def fake_summarizer() -> AsyncMock:
    summarizer = AsyncMock()
    summarizer.summarize = AsyncMock(return_value="  A concise summary.  ")
    return summarizer

