"""
Failure Logger - Best-effort persistence of generation failures.
"""
import asyncio
import logging
from typing import Optional

from core.models import Explanation
from data.database import DatabaseManager
from data.repositories import FailureLogRepository
from utils.image_utils import png_bytes_to_base64

logger = logging.getLogger(__name__)


class FailureLogger:
    """Records failed explanations for later review. Never raises."""

    def __init__(self, db_manager: DatabaseManager):
        self.db_manager = db_manager

    def _write(self, record: Explanation, reason: str, mode: Optional[str]):
        with self.db_manager.session() as session:
            FailureLogRepository(session).create(
                explanation_id=record.id,
                reason=reason,
                page_number=record.page_number,
                problem_number=record.problem_number,
                problem_text=record.original_problem_text,
                problem_image_base64=(
                    png_bytes_to_base64(record.problem_image)
                    if record.problem_image else None
                ),
                mode=mode
            )

    async def log_failure(
        self,
        record: Explanation,
        reason: str,
        mode: Optional[str] = None
    ) -> bool:
        """
        Persist one failure entry.

        Returns:
            True if the entry was written
        """
        try:
            await asyncio.to_thread(self._write, record, reason, mode)
        except Exception as e:
            logger.warning(
                "Could not log failure for problem %d: %s", record.problem_number, e
            )
            return False
        return True
