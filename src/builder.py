"""Build providers, scorer, strategy and orchestrator from AppConfig."""

import logging

from config.config_loader import AppConfig, ModelConfig
from src.consensus import build_strategy
from src.feedback import FeedbackStore
from src.pipeline import PipelineOrchestrator
from src.providers.anthropic import AnthropicProvider
from src.providers.base import AIProvider
from src.providers.gemini import GeminiProvider
from src.providers.openai_provider import OpenAIProvider
from src.similarity import EmbeddingScorer, SemanticScorer
from src.summarizer import ProviderSummarizer

logger = logging.getLogger(__name__)

PROVIDER_CLASSES: dict[str, type[AIProvider]] = {
    "openai": OpenAIProvider,
    "anthropic": AnthropicProvider,
    "gemini": GeminiProvider,
}


def build_provider(model_cfg: ModelConfig, stage: str) -> AIProvider:
    """Instantiate the provider class registered for the model's sdk.

    Raises:
        ValueError: If the sdk is unknown.
        ProviderError: If the API key is missing.
    """
    if model_cfg.sdk not in PROVIDER_CLASSES:
        raise ValueError(f"Model '{model_cfg.name}' uses unknown sdk '{model_cfg.sdk}'")
    return PROVIDER_CLASSES[model_cfg.sdk](model_cfg, stage)


def build_panel(config: AppConfig, panel_names: list[str] | None = None) -> list[AIProvider]:
    """Build the ordered panel; stage tags follow panel position (model1, model2, ...).

    Panel members without an API key are skipped with a warning, so stage
    numbering covers only the models that will actually be queried.
    """
    names = panel_names if panel_names is not None else config.defaults.panel
    usable = []
    for name in names:
        if name not in config.models:
            raise ValueError(f"Unknown model in panel: {name}")
        if name not in config.available_providers:
            logger.warning("Panel model '%s' skipped: %s not set", name, config.models[name].api_key_env)
            continue
        usable.append(name)
    return [
        build_provider(config.models[name], f"model{position}")
        for position, name in enumerate(usable, start=1)
    ]


def build_orchestrator(
    config: AppConfig,
    feedback: FeedbackStore | None = None,
    strategy_name: str | None = None,
    panel: list[AIProvider] | None = None,
) -> PipelineOrchestrator:
    """Wire a PipelineOrchestrator from configuration.

    The semantic scorer and summarizer are only built for the weighted
    strategy, which is the only one that uses them.
    """
    feedback = feedback if feedback is not None else FeedbackStore(config.feedback.initial_weights)
    strategy_name = strategy_name or config.defaults.strategy
    providers = panel if panel is not None else build_panel(config)

    scorer: SemanticScorer | None = None
    summarizer: ProviderSummarizer | None = None
    if strategy_name == "weighted_summarize":
        scorer = EmbeddingScorer(config.similarity)
        summarizer_cfg = config.models[config.defaults.summarizer]
        summarizer = ProviderSummarizer(
            build_provider(summarizer_cfg, "summarizer"),
            config.prompts.summarize,
        )

    strategy = build_strategy(
        strategy_name,
        feedback=feedback,
        summarizer=summarizer,
        cluster_threshold=config.defaults.cluster_threshold,
    )
    return PipelineOrchestrator(
        providers=providers,
        strategy=strategy,
        feedback=feedback,
        scorer=scorer,
        relevance_threshold=config.defaults.relevance_threshold,
        thinking_delay_sec=config.defaults.thinking_delay_sec,
        ensembling_delay_sec=config.defaults.ensembling_delay_sec,
    )
