"""
Prompt Service - Loads named instruction sets.

Instruction sets live in the prompts table and are cached in memory
for the lifetime of the service. A missing or empty set is a
configuration error.
"""
import asyncio
import logging
from typing import Dict

from core.exceptions import PromptNotFoundError
from data.database import DatabaseManager
from data.repositories import PromptRepository

logger = logging.getLogger(__name__)


class PromptService:
    """Service for loading instruction sets with an in-memory cache."""

    def __init__(self, db_manager: DatabaseManager):
        self.db_manager = db_manager
        self._cache: Dict[str, str] = {}
        self._lock = asyncio.Lock()

    def _load(self, name: str) -> str:
        with self.db_manager.session() as session:
            content = PromptRepository(session).get(name)
        if not isinstance(content, str) or not content.strip():
            raise PromptNotFoundError(name)
        return content

    async def get(self, name: str) -> str:
        """
        Get an instruction set by name.

        Raises:
            PromptNotFoundError: If the set does not exist or is empty
        """
        if name in self._cache:
            return self._cache[name]

        # Concurrent callers wait for the first load instead of repeating it
        async with self._lock:
            if name in self._cache:
                return self._cache[name]

            try:
                content = await asyncio.to_thread(self._load, name)
            except PromptNotFoundError:
                logger.error("Instruction set '%s' is missing", name)
                raise
            except Exception as e:
                logger.error("Error loading instruction set '%s': %s", name, e)
                raise PromptNotFoundError(name) from e

            self._cache[name] = content
            return content

    def clear_cache(self):
        self._cache.clear()
