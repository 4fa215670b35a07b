"""Panel health checks: ping every panel model with its own generation settings.

Each ping uses the model's ``GenerationParams`` with the token budget
trimmed, so a model that rejects its configured temperature fails here
rather than on the first real prompt.
"""

import asyncio
import dataclasses
import logging
import time
from dataclasses import dataclass

from src.models import GenerationParams, ModelSpec
from src.providers.base import AIProvider

logger = logging.getLogger(__name__)

_PING_PROMPT = "Reply with the word OK only."
_PING_MAX_TOKENS = 5
_TIMEOUT_SEC = 15.0


@dataclass(frozen=True)
class PanelHealth:
    """Outcome of pinging one panel member."""

    name: str
    spec: ModelSpec
    ok: bool
    error: str = ""
    latency_sec: float = 0.0


def ping_params(spec: ModelSpec) -> GenerationParams:
    return dataclasses.replace(spec.params, max_tokens=min(spec.params.max_tokens, _PING_MAX_TOKENS))


async def _ping(provider: AIProvider) -> PanelHealth:
    spec = provider.spec()
    start = time.monotonic()
    try:
        await asyncio.wait_for(provider.generate(_PING_PROMPT, ping_params(spec)), timeout=_TIMEOUT_SEC)
    except TimeoutError:
        logger.debug("Health check for %s (%s) timed out", spec.id, spec.stage)
        return PanelHealth(provider.name(), spec, False, f"No reply within {_TIMEOUT_SEC}s")
    except Exception as exc:
        logger.debug("Health check for %s (%s) failed: %s", spec.id, spec.stage, exc)
        return PanelHealth(provider.name(), spec, False, str(exc) or type(exc).__name__)
    return PanelHealth(provider.name(), spec, True, latency_sec=time.monotonic() - start)


async def check_panel(providers: list[AIProvider]) -> list[PanelHealth]:
    """Ping all panel members in parallel; results keep panel order."""
    return list(await asyncio.gather(*(_ping(p) for p in providers)))
