"""
Progress sinks.

Every pipeline stage reports through a sink with two push operations:
a free-text status message and a full replacement Explanation. Updates
for one record arrive in the order they were issued.
"""
import logging
from typing import Callable, Dict, List, Optional, Protocol

from core.models import Explanation

logger = logging.getLogger(__name__)


class ProgressSink(Protocol):
    """Push interface the pipeline reports through."""

    def status(self, message: str) -> None:
        ...

    def update(self, explanation: Explanation) -> None:
        ...


class CallbackProgressSink:
    """Adapts two plain callables to the sink interface."""

    def __init__(
        self,
        on_status: Optional[Callable[[str], None]] = None,
        on_update: Optional[Callable[[Explanation], None]] = None
    ):
        self.on_status = on_status
        self.on_update = on_update

    def status(self, message: str) -> None:
        if self.on_status:
            self.on_status(message)

    def update(self, explanation: Explanation) -> None:
        if self.on_update:
            self.on_update(explanation)


class LoggingProgressSink:
    """Writes progress to the log."""

    def status(self, message: str) -> None:
        logger.info(message)

    def update(self, explanation: Explanation) -> None:
        if explanation.is_loading:
            state = 'loading'
        elif explanation.is_error:
            state = 'error'
        else:
            state = 'golden' if explanation.is_golden else 'done'
        logger.debug(
            "Problem %d (page %d): %s",
            explanation.problem_number, explanation.page_number, state
        )


class CollectingProgressSink:
    """
    Keeps status history and the latest state of every record.

    Records are upserted by ID, so a later update always replaces an
    earlier one for the same record.
    """

    def __init__(self, forward: Optional[ProgressSink] = None):
        self.messages: List[str] = []
        self.history: List[Explanation] = []
        self.latest: Dict[str, Explanation] = {}
        self.forward = forward

    def status(self, message: str) -> None:
        self.messages.append(message)
        if self.forward:
            self.forward.status(message)

    def update(self, explanation: Explanation) -> None:
        self.history.append(explanation)
        self.latest[explanation.id] = explanation
        if self.forward:
            self.forward.update(explanation)

    def updates_for(self, explanation_id: str) -> List[Explanation]:
        """All updates for one record, in arrival order."""
        return [e for e in self.history if e.id == explanation_id]

    def explanations(self) -> List[Explanation]:
        """Latest state of every record, ordered by problem number."""
        return sorted(self.latest.values(), key=lambda e: e.problem_number)
