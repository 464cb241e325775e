"""
Generation Scheduler - Bounded worker pool for explanation generation.

K workers drain one shared queue. A record is popped and claimed with no
suspension point in between, so no record is ever dispatched twice.
Every record a worker claims ends in exactly one terminal update, unless
cancellation is observed while its call is in flight; that result is
dropped.
"""
import asyncio
import logging
from collections import deque
from typing import Deque, Dict, Iterable, List, Optional

from core.constants import DEFAULT_GENERATION_PARAMS, FAILURE_MESSAGE, FAILURE_PHRASES, GENERATING_MESSAGE
from core.models import Explanation, ExplanationMode
from services.cancellation import CancellationToken
from services.explanation_generator import ExplanationGenerator
from services.failure_log import FailureLogger
from services.progress import ProgressSink

logger = logging.getLogger(__name__)


def detect_soft_failure(text: str, phrases: Iterable[str] = FAILURE_PHRASES) -> Optional[str]:
    """
    Check a reply for phrases meaning "the model declined to answer".

    Returns:
        The matching phrase, or None
    """
    lowered = (text or "").lower()
    for phrase in phrases:
        if phrase.lower() in lowered:
            return phrase
    return None


class GenerationScheduler:
    """Drives generation for cache misses under a fixed concurrency ceiling."""

    def __init__(
        self,
        generator: ExplanationGenerator,
        failure_log: FailureLogger,
        concurrency: int = DEFAULT_GENERATION_PARAMS['concurrency'],
        failure_phrases: Iterable[str] = FAILURE_PHRASES
    ):
        """
        Initialize generation scheduler.

        Args:
            generator: Single-problem generation collaborator
            failure_log: Best-effort failure recorder
            concurrency: Number of workers (K)
            failure_phrases: Soft-failure phrases, matched case-insensitively
        """
        if concurrency < 1:
            raise ValueError("concurrency must be at least 1")
        self.generator = generator
        self.failure_log = failure_log
        self.concurrency = concurrency
        self.failure_phrases = tuple(failure_phrases)

    async def run(
        self,
        records: List[Explanation],
        mode: ExplanationMode,
        use_guidelines: bool,
        progress: ProgressSink,
        cancel: Optional[CancellationToken] = None
    ) -> List[Explanation]:
        """
        Generate explanations for all records.

        Returns once every worker has stopped.

        Returns:
            The records in their final state, in input order. Records left
            unfinished by cancellation keep their loading state.
        """
        cancel = cancel or CancellationToken()
        queue: Deque[Explanation] = deque(records)
        results: Dict[str, Explanation] = {record.id: record for record in records}
        total = len(records)
        started = [0]

        workers = [
            self._worker(queue, results, total, started, mode, use_guidelines, progress, cancel)
            for _ in range(min(self.concurrency, total))
        ]
        await asyncio.gather(*workers)

        return [results[record.id] for record in records]

    async def _worker(
        self,
        queue: Deque[Explanation],
        results: Dict[str, Explanation],
        total: int,
        started: List[int],
        mode: ExplanationMode,
        use_guidelines: bool,
        progress: ProgressSink,
        cancel: CancellationToken
    ):
        while True:
            if cancel.is_cancelled or not queue:
                return

            record = queue.popleft()
            started[0] += 1
            progress.status(f"Creating explanation {started[0]} of {total}...")

            record = record.with_status(GENERATING_MESSAGE.format(
                page=record.page_number, number=record.problem_number
            ))
            results[record.id] = record
            progress.update(record)

            final = await self._generate_one(record, mode, use_guidelines, cancel)
            if final is not None:
                results[record.id] = final
                progress.update(final)

    async def _generate_one(
        self,
        record: Explanation,
        mode: ExplanationMode,
        use_guidelines: bool,
        cancel: CancellationToken
    ) -> Optional[Explanation]:
        """
        Generate one record.

        Returns:
            The terminal record, or None if cancellation fired mid-call
        """
        try:
            result = await self.generator.generate(record.original_problem_text, mode, use_guidelines)
        except Exception as e:
            if cancel.is_cancelled:
                return None
            logger.error(
                "Generation failed for problem %d (page %d): %s",
                record.problem_number, record.page_number, e
            )
            await self.failure_log.log_failure(record, str(e) or type(e).__name__, _mode_value(mode))
            return record.failed(FAILURE_MESSAGE)

        if cancel.is_cancelled:
            return None

        phrase = detect_soft_failure(result.markdown, self.failure_phrases)
        if phrase is not None or not result.markdown.strip():
            logger.warning(
                "Generation declined problem %d (page %d)%s",
                record.problem_number, record.page_number,
                f": matched '{phrase}'" if phrase else ": empty reply"
            )
            reason = result.raw.strip() or result.markdown or "empty reply"
            await self.failure_log.log_failure(record, reason, _mode_value(mode))
            return record.failed(FAILURE_MESSAGE)

        return record.succeeded(result)


def _mode_value(mode) -> str:
    return mode.value if isinstance(mode, ExplanationMode) else str(mode)
