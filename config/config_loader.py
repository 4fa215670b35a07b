"""Load settings.yaml into typed dataclasses. Validates API keys at startup."""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml

logger = logging.getLogger(__name__)

_SETTINGS_PATH = Path(__file__).parent / "settings.yaml"

_STRATEGIES = ("weighted_summarize", "majority_vote")


@dataclass
class ModelConfig:
    name: str
    label: str
    sdk: str
    model: str
    api_key_env: str
    timeout_sec: int
    max_tokens: int
    temperature: float
    base_url: str | None = None


@dataclass
class SimilarityConfig:
    sdk: str
    model: str
    api_key_env: str
    timeout_sec: int
    base_url: str | None = None


@dataclass
class PromptsConfig:
    summarize: str


@dataclass
class FeedbackConfig:
    initial_weights: dict[str, int] = field(default_factory=dict)


@dataclass
class DefaultsConfig:
    strategy: str
    summarizer: str
    panel: list[str] = field(default_factory=list)
    relevance_threshold: float = 0.5
    cluster_threshold: float = 0.8
    thinking_delay_sec: float = 1.5
    ensembling_delay_sec: float = 1.0
    host: str = "127.0.0.1"
    port: int = 8000


@dataclass
class AppConfig:
    defaults: DefaultsConfig
    models: dict[str, ModelConfig]
    similarity: SimilarityConfig
    prompts: PromptsConfig
    feedback: FeedbackConfig = field(default_factory=FeedbackConfig)
    available_providers: set[str] = field(default_factory=set)


def _parse_model(name: str, raw: dict) -> ModelConfig:
    temperature = float(raw.get("temperature", 0.5))
    if not 0.0 <= temperature <= 1.0:
        raise ValueError(f"Model '{name}': temperature must be in [0, 1], got {temperature}")
    max_tokens = int(raw["max_tokens"])
    if max_tokens <= 0:
        raise ValueError(f"Model '{name}': max_tokens must be positive, got {max_tokens}")
    return ModelConfig(
        name=name,
        label=str(raw.get("label", name)),
        sdk=raw["sdk"],
        model=raw["model"],
        api_key_env=raw["api_key_env"],
        timeout_sec=int(raw["timeout_sec"]),
        max_tokens=max_tokens,
        temperature=temperature,
        base_url=raw.get("base_url"),
    )


def load_config(settings_path: Path = _SETTINGS_PATH) -> AppConfig:
    """Load and validate configuration from settings.yaml.

    Raises FileNotFoundError if settings file missing, ValueError on invalid
    values (unknown strategy, panel member without a model entry, out of range
    generation parameters).
    Logs missing API keys but does not raise — callers check
    available_providers.
    """
    if not settings_path.exists():
        raise FileNotFoundError(f"Settings file not found: {settings_path}")

    with settings_path.open("r", encoding="utf-8") as f:
        raw = yaml.safe_load(f)

    defaults_raw = raw["defaults"]
    defaults = DefaultsConfig(
        strategy=str(defaults_raw["strategy"]),
        summarizer=str(defaults_raw["summarizer"]),
        panel=list(defaults_raw["panel"]),
        relevance_threshold=float(defaults_raw.get("relevance_threshold", 0.5)),
        cluster_threshold=float(defaults_raw.get("cluster_threshold", 0.8)),
        thinking_delay_sec=float(defaults_raw.get("thinking_delay_sec", 1.5)),
        ensembling_delay_sec=float(defaults_raw.get("ensembling_delay_sec", 1.0)),
        host=str(defaults_raw.get("host", "127.0.0.1")),
        port=int(defaults_raw.get("port", 8000)),
    )
    if defaults.strategy not in _STRATEGIES:
        raise ValueError(f"Unknown strategy '{defaults.strategy}', expected one of {_STRATEGIES}")

    similarity_raw = raw["similarity"]
    similarity = SimilarityConfig(
        sdk=similarity_raw["sdk"],
        model=similarity_raw["model"],
        api_key_env=similarity_raw["api_key_env"],
        timeout_sec=int(similarity_raw.get("timeout_sec", 30)),
        base_url=similarity_raw.get("base_url"),
    )

    prompts = PromptsConfig(summarize=raw["prompts"]["summarize"])

    feedback_raw = raw.get("feedback") or {}
    feedback = FeedbackConfig(
        initial_weights={str(k): int(v) for k, v in (feedback_raw.get("initial_weights") or {}).items()},
    )

    models: dict[str, ModelConfig] = {}
    available_providers: set[str] = set()

    for provider_name, model_raw in raw["models"].items():
        models[provider_name] = _parse_model(provider_name, model_raw)

        api_key = os.environ.get(model_raw["api_key_env"], "").strip()
        if api_key:
            available_providers.add(provider_name)
            logger.info("Provider available: %s", provider_name)
        else:
            logger.info(
                "Provider skipped (no API key): %s — set %s in .env",
                provider_name,
                model_raw["api_key_env"],
            )

    for name in [*defaults.panel, defaults.summarizer]:
        if name not in models:
            raise ValueError(f"'{name}' is referenced in defaults but has no entry under models")

    return AppConfig(
        defaults=defaults,
        models=models,
        similarity=similarity,
        prompts=prompts,
        feedback=feedback,
        available_providers=available_providers,
    )
