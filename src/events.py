"""Progress events and the per-run channel the pipeline writes them to.

A run produces an ordered, append-only sequence of events: any number of
``StageEvent`` followed by exactly one terminal event (``ResultEvent``,
``ErrorEvent`` or ``AckEvent``). ``ProgressEmitter`` enforces that shape:
once a terminal event is emitted the channel is sealed.

Typical usage::

    emitter = ProgressEmitter()
    await emitter.emit(StageEvent(Stage.THINKING))
    await emitter.emit(ResultEvent(answer="42"))
    emitter.close()

    async for event in emitter:
        ...
"""

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum

logger = logging.getLogger(__name__)


class Stage(str, Enum):
    THINKING = "thinking"
    FILTERING = "filtering"
    ENSEMBLING = "ensembling"


@dataclass(frozen=True)
class StageEvent:
    stage: str             # a Stage value, or a model's stage tag ("model1", ...)

    @property
    def is_terminal(self) -> bool:
        return False


@dataclass(frozen=True)
class ResultEvent:
    answer: str
    contributing_model_ids: list[str] = field(default_factory=list)
    report_models: bool = False

    @property
    def is_terminal(self) -> bool:
        return True


@dataclass(frozen=True)
class ErrorEvent:
    message: str

    @property
    def is_terminal(self) -> bool:
        return True


@dataclass(frozen=True)
class AckEvent:
    message: str

    @property
    def is_terminal(self) -> bool:
        return True


ProgressEvent = StageEvent | ResultEvent | ErrorEvent | AckEvent


class ChannelClosedError(RuntimeError):
    """Raised when emitting into a sealed or closed channel."""


_CLOSED = object()


class ProgressEmitter:
    """Single-producer, single-consumer event channel for one pipeline run."""

    def __init__(self) -> None:
        self._queue: asyncio.Queue = asyncio.Queue()
        self._history: list[ProgressEvent] = []
        self._sealed = False
        self._closed = False

    @property
    def history(self) -> list[ProgressEvent]:
        return list(self._history)

    @property
    def sealed(self) -> bool:
        """True once a terminal event has been emitted."""
        return self._sealed

    async def emit(self, event: ProgressEvent) -> None:
        if self._closed or self._sealed:
            raise ChannelClosedError(f"Cannot emit {event!r}: channel already terminated")
        self._history.append(event)
        if event.is_terminal:
            self._sealed = True
        logger.debug("Emit %r", event)
        await self._queue.put(event)

    def close(self) -> None:
        """End iteration for the consumer. Idempotent."""
        if self._closed:
            return
        self._closed = True
        self._queue.put_nowait(_CLOSED)

    def __aiter__(self) -> "ProgressEmitter":
        return self

    async def __anext__(self) -> ProgressEvent:
        item = await self._queue.get()
        if item is _CLOSED:
            # Keep the sentinel for any later reader.
            self._queue.put_nowait(_CLOSED)
            raise StopAsyncIteration
        return item
