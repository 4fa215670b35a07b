"""Summarization service backed by a generation provider."""

import logging

from src.providers.base import AIProvider

logger = logging.getLogger(__name__)


class ProviderSummarizer:
    """Compress text by prompting a provider with the summarize template.

    The template must contain a ``{text}`` placeholder.
    """

    def __init__(self, provider: AIProvider, template: str) -> None:
        self._provider = provider
        self._template = template

    async def summarize(self, text: str) -> str:
        """Return the provider's summary of text.

        Raises:
            ProviderError: If the summarizer call fails.
            RuntimeError: If the summarizer returns blank content.
        """
        logger.info("Summarizing %d chars via %s", len(text), self._provider.name())
        response = await self._provider.generate(
            self._template.format(text=text),
            self._provider.spec().params,
        )
        if not response.text.strip():
            raise RuntimeError(f"Summarizer {self._provider.name()} returned empty content")
        return response.text
