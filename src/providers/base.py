"""Abstract base for all generation providers."""

from abc import ABC, abstractmethod

from config.config_loader import ModelConfig
from src.models import CandidateResponse, GenerationParams, ModelSpec


class ProviderError(Exception):
    """Raised when a provider call fails."""

    def __init__(self, provider_name: str, message: str) -> None:
        self.provider_name = provider_name
        super().__init__(f"[{provider_name}] {message}")


def spec_from_config(config: ModelConfig, stage: str) -> ModelSpec:
    """Build the immutable ModelSpec a provider reports for its panel position."""
    return ModelSpec(
        id=config.model,
        label=config.label,
        stage=stage,
        params=GenerationParams(max_tokens=config.max_tokens, temperature=config.temperature),
    )


class AIProvider(ABC):
    """Abstract base for all generation providers."""

    @abstractmethod
    def name(self) -> str:
        """Return the short config name (e.g. 'phi', 'claude')."""
        ...

    @abstractmethod
    def spec(self) -> ModelSpec:
        """Return the ModelSpec this provider serves."""
        ...

    @abstractmethod
    async def generate(self, prompt: str, params: GenerationParams) -> CandidateResponse:
        """Generate a response for the given prompt.

        Args:
            prompt: The full prompt text to send.
            params: Token budget and sampling temperature.

        Returns:
            CandidateResponse carrying the model id and text.

        Raises:
            ProviderError: On API failure, timeout, or invalid response.
        """
        ...
