"""
Cache Store - Content-addressed lookup of curated explanations.

The key is a digest of the cropped problem image's PNG bytes. The
pipeline only reads; entries are written by the curation path.
"""
import asyncio
import hashlib
import logging
from typing import List, Optional, Tuple

from core.models import CachedExplanation, Explanation
from data.database import DatabaseManager
from data.repositories import GoldenExplanationRepository
from services.cancellation import CancellationToken
from services.progress import ProgressSink

logger = logging.getLogger(__name__)


def compute_cache_key(image: bytes) -> str:
    """Stable digest of encoded image bytes (SHA-256, hex)."""
    return hashlib.sha256(image).hexdigest()


class CacheStore:
    """Read-side access to the golden explanation table."""

    def __init__(self, db_manager: DatabaseManager):
        self.db_manager = db_manager

    def _lookup(self, key: str) -> Optional[CachedExplanation]:
        with self.db_manager.session() as session:
            return GoldenExplanationRepository(session).get(key)

    async def lookup(self, key: str) -> Optional[CachedExplanation]:
        """
        Look up a curated explanation.

        Errors are logged and reported as a miss.
        """
        try:
            return await asyncio.to_thread(self._lookup, key)
        except Exception as e:
            logger.warning("Cache lookup failed for key %s: %s", key[:12], e)
            return None

    async def apply(
        self,
        records: List[Explanation],
        progress: ProgressSink,
        cancel: Optional[CancellationToken] = None
    ) -> Tuple[List[Explanation], List[Explanation]]:
        """
        Resolve records against the cache, one at a time, in order.

        A hit moves the record straight to the golden success state.
        Records that are already terminal are left alone.

        Returns:
            Tuple of (all records in their current state, records still needing generation)
        """
        current: List[Explanation] = []
        pending: List[Explanation] = []
        total = len(records)

        for index, record in enumerate(records, start=1):
            if cancel and cancel.is_cancelled:
                current.extend(records[index - 1:])
                break

            if record.is_terminal or not record.problem_image:
                current.append(record)
                continue

            progress.status(f"Checking saved explanations ({index}/{total})...")
            cached = await self.lookup(compute_cache_key(record.problem_image))

            if cached is not None:
                record = record.golden(cached)
                progress.update(record)
            else:
                pending.append(record)
            current.append(record)

        return current, pending
