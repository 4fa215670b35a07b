"""Sequential, stage-ordered querying of the configured model panel."""

import logging
from collections.abc import Awaitable, Callable

from src.events import ProgressEvent, StageEvent
from src.models import CandidateResponse
from src.providers.base import AIProvider

logger = logging.getLogger(__name__)


async def run_fanout(
    prompt: str,
    providers: list[AIProvider],
    emit: Callable[[ProgressEvent], Awaitable[None]],
) -> list[CandidateResponse]:
    """Query each provider in order, announcing its stage before the call.

    Calls are deliberately sequential: the stage events must reach the caller
    in configured order.

    Args:
        prompt: The user prompt, sent unchanged to every model.
        providers: Ordered panel.
        emit: Coroutine that publishes a progress event.

    Returns:
        One CandidateResponse per provider, in panel order.

    Raises:
        ProviderError: From the first provider that fails; later providers
            are never called.
    """
    responses: list[CandidateResponse] = []
    for provider in providers:
        spec = provider.spec()
        await emit(StageEvent(spec.stage))
        logger.info("Querying %s (%s)", spec.label, spec.id)
        response = await provider.generate(prompt, spec.params)
        responses.append(response)

    logger.info("Fanout complete: %d responses", len(responses))
    return responses
