"""Pipeline orchestration: thinking, fanout, filtering, ensembling, result.

``PipelineOrchestrator.stream`` runs one pipeline for a prompt and yields its
progress events as they happen. The run executes in its own task writing to a
``ProgressEmitter``; closing the stream early cancels that task, so no further
external calls are issued and no further events are produced.

Event order for a successful run::

    thinking, model1 .. modelN, [filtering,] ensembling, result

Any failure ends the stream with a single ``ErrorEvent`` instead.
"""

import asyncio
import logging
from collections.abc import AsyncIterator, Awaitable, Callable

from src.consensus import ConsensusStrategy
from src.events import (
    AckEvent,
    ErrorEvent,
    ProgressEmitter,
    ProgressEvent,
    ResultEvent,
    Stage,
    StageEvent,
)
from src.fanout import run_fanout
from src.feedback import FeedbackStore
from src.models import ChatRequest, FeedbackRequest
from src.providers.base import AIProvider
from src.relevance import DEFAULT_RELEVANCE_THRESHOLD, filter_relevant
from src.similarity import SemanticScorer

logger = logging.getLogger(__name__)

NO_RELEVANT_ANSWER = "I'm sorry, I couldn't generate a relevant response."
FEEDBACK_ACK = "Feedback received. Thank you!"


class PipelineOrchestrator:
    """Sequences fanout, relevance filtering and consensus for one prompt at a time.

    Args:
        providers: Ordered model panel.
        strategy: Consensus strategy used for every run.
        feedback: Weight table updated by feedback requests.
        scorer: Semantic scorer; required when the strategy filters for relevance.
        relevance_threshold: Inclusive minimum relevance score.
        thinking_delay_sec: Pause after the thinking event.
        ensembling_delay_sec: Pause after the ensembling event.
        sleep: Awaitable delay function, replaceable in tests.
    """

    def __init__(
        self,
        providers: list[AIProvider],
        strategy: ConsensusStrategy,
        feedback: FeedbackStore,
        scorer: SemanticScorer | None = None,
        relevance_threshold: float = DEFAULT_RELEVANCE_THRESHOLD,
        thinking_delay_sec: float = 1.5,
        ensembling_delay_sec: float = 1.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        if not providers:
            raise ValueError("Model panel must contain at least one provider")
        if strategy.uses_relevance_filter and scorer is None:
            raise ValueError(f"Strategy {strategy.name} needs a semantic scorer")
        self._providers = list(providers)
        self._strategy = strategy
        self._feedback = feedback
        self._scorer = scorer
        self._relevance_threshold = relevance_threshold
        self._thinking_delay_sec = thinking_delay_sec
        self._ensembling_delay_sec = ensembling_delay_sec
        self._sleep = sleep

    @property
    def strategy(self) -> ConsensusStrategy:
        return self._strategy

    @property
    def feedback(self) -> FeedbackStore:
        return self._feedback

    @property
    def providers(self) -> list[AIProvider]:
        return list(self._providers)

    async def handle(self, request: ChatRequest | FeedbackRequest) -> AsyncIterator[ProgressEvent]:
        """Dispatch a parsed request; feedback never enters the pipeline."""
        if isinstance(request, FeedbackRequest):
            yield self.record_feedback(request)
            return
        events = self.stream(request.prompt)
        try:
            async for event in events:
                yield event
        finally:
            await events.aclose()

    def record_feedback(self, request: FeedbackRequest) -> ProgressEvent:
        try:
            self._feedback.record_feedback(request.model_id, request.rating)
        except ValueError as exc:
            logger.warning("Rejected feedback for %s: %s", request.model_id, exc)
            return ErrorEvent(str(exc))
        return AckEvent(FEEDBACK_ACK)

    async def stream(self, prompt: str) -> AsyncIterator[ProgressEvent]:
        """Run the pipeline for prompt, yielding events until the terminal one."""
        emitter = ProgressEmitter()
        task = asyncio.create_task(self._run(prompt, emitter))
        try:
            async for event in emitter:
                yield event
        finally:
            if not task.done():
                logger.info("Consumer went away, cancelling pipeline run")
                task.cancel()
                await asyncio.wait([task])

    async def _run(self, prompt: str, emitter: ProgressEmitter) -> None:
        try:
            terminal = await self._execute(prompt, emitter)
            await emitter.emit(terminal)
        except Exception as exc:
            message = str(exc) or "Unknown error occurred"
            logger.error("Pipeline run failed: %s", message)
            if not emitter.sealed:
                await emitter.emit(ErrorEvent(message))
        finally:
            emitter.close()

    async def _execute(self, prompt: str, emitter: ProgressEmitter) -> ResultEvent:
        await emitter.emit(StageEvent(Stage.THINKING.value))
        await self._sleep(self._thinking_delay_sec)

        responses = await run_fanout(prompt, self._providers, emitter.emit)

        if self._strategy.uses_relevance_filter:
            await emitter.emit(StageEvent(Stage.FILTERING.value))
            responses = await filter_relevant(prompt, responses, self._scorer, self._relevance_threshold)
            if not responses:
                logger.info("No relevant responses, answering with apology")
                return ResultEvent(answer=NO_RELEVANT_ANSWER)

        await emitter.emit(StageEvent(Stage.ENSEMBLING.value))
        await self._sleep(self._ensembling_delay_sec)

        result = await self._strategy.build(prompt, responses)
        logger.info("Consensus via %s from %s", self._strategy.name, ", ".join(result.contributing_model_ids))
        return ResultEvent(
            answer=result.answer,
            contributing_model_ids=list(result.contributing_model_ids),
            report_models=result.report_models,
        )
