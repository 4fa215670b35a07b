"""OpenAI provider using openai SDK with native async.

Also serves any OpenAI-compatible endpoint (Hugging Face router, xAI,
DeepSeek) when the model config sets base_url.
"""

import asyncio
import logging
import os
import time

from openai import AsyncOpenAI

from config.config_loader import ModelConfig
from src.models import CandidateResponse, GenerationParams, ModelSpec
from src.providers.base import AIProvider, ProviderError, spec_from_config

logger = logging.getLogger(__name__)


class OpenAIProvider(AIProvider):
    """OpenAI (or OpenAI-compatible) chat completions provider."""

    def __init__(self, config: ModelConfig, stage: str = "model1") -> None:
        self._config = config
        self._spec = spec_from_config(config, stage)
        api_key = os.environ.get(config.api_key_env, "").strip()
        if not api_key:
            raise ProviderError(config.name, f"Missing API key: {config.api_key_env}")
        self._client = AsyncOpenAI(api_key=api_key, base_url=config.base_url)

    def name(self) -> str:
        return self._config.name

    def spec(self) -> ModelSpec:
        return self._spec

    async def generate(self, prompt: str, params: GenerationParams) -> CandidateResponse:
        start = time.monotonic()
        try:
            response = await asyncio.wait_for(
                self._client.chat.completions.create(
                    model=self._config.model,
                    messages=[{"role": "user", "content": prompt}],
                    max_tokens=params.max_tokens,
                    temperature=params.temperature,
                ),
                timeout=self._config.timeout_sec,
            )
        except TimeoutError as exc:
            raise ProviderError(self._config.name, f"Request timed out after {self._config.timeout_sec}s") from exc
        except Exception as exc:
            raise ProviderError(self._config.name, f"API call failed: {exc}") from exc

        latency = time.monotonic() - start

        choice = response.choices[0] if response.choices else None
        if not choice or not choice.message.content:
            raise ProviderError(self._config.name, "Empty response content")

        token_count: int | None = None
        if response.usage:
            token_count = response.usage.total_tokens

        logger.info("%s: %.2fs, %s tokens", self._config.model, latency, token_count)

        return CandidateResponse(
            model_id=self._config.model,
            text=choice.message.content,
            latency_sec=latency,
            token_count=token_count,
        )
