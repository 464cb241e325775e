"""
Repository pattern for data access.

Provides clean separation between data access and business logic.
"""
from typing import Dict, List, Optional
from sqlalchemy.orm import Session

from core.models import CachedExplanation
from data.db_models import GoldenExplanation, FailureLog, Prompt


class GoldenExplanationRepository:
    """Repository for curated (golden) explanations."""

    def __init__(self, session: Session):
        self.session = session

    def get(self, cache_key: str) -> Optional[CachedExplanation]:
        """Get a curated explanation by cache key."""
        row = self.session.get(GoldenExplanation, cache_key)
        if row is None:
            return None
        return CachedExplanation(
            markdown=row.markdown,
            core_concepts=row.core_concepts,
            difficulty=row.difficulty,
            variation_problem=row.variation_problem
        )

    def put(self, cache_key: str, cached: CachedExplanation) -> GoldenExplanation:
        """Create or replace a curated explanation."""
        row = self.session.get(GoldenExplanation, cache_key)
        if row is None:
            row = GoldenExplanation(cache_key=cache_key)
            self.session.add(row)
        row.markdown = cached.markdown
        row.core_concepts = cached.core_concepts
        row.difficulty = cached.difficulty
        row.variation_problem = cached.variation_problem
        self.session.commit()
        return row

    def count(self) -> int:
        return self.session.query(GoldenExplanation).count()


class FailureLogRepository:
    """Repository for generation failure logs."""

    def __init__(self, session: Session):
        self.session = session

    def create(
        self,
        explanation_id: str,
        reason: str,
        page_number: Optional[int] = None,
        problem_number: Optional[int] = None,
        problem_text: str = "",
        problem_image_base64: Optional[str] = None,
        mode: Optional[str] = None
    ) -> FailureLog:
        """Create a new failure log entry."""
        entry = FailureLog(
            explanation_id=explanation_id,
            reason=reason,
            page_number=page_number,
            problem_number=problem_number,
            problem_text=problem_text,
            problem_image_base64=problem_image_base64,
            mode=mode
        )
        self.session.add(entry)
        self.session.commit()
        return entry

    def list_recent(self, limit: int = 50) -> List[FailureLog]:
        """List failure logs, newest first."""
        return self.session.query(FailureLog)\
            .order_by(FailureLog.created_at.desc())\
            .limit(limit)\
            .all()


class PromptRepository:
    """Repository for named instruction sets."""

    def __init__(self, session: Session):
        self.session = session

    def get(self, name: str) -> Optional[str]:
        row = self.session.get(Prompt, name)
        return row.content if row else None

    def upsert(self, name: str, content: str) -> Prompt:
        row = self.session.get(Prompt, name)
        if row is None:
            row = Prompt(name=name, content=content)
            self.session.add(row)
        else:
            row.content = content
        self.session.commit()
        return row

    def seed(self, prompts: Dict[str, str], overwrite: bool = False) -> List[str]:
        """
        Insert prompts that are not stored yet.

        Returns:
            Names of prompts written
        """
        written = []
        for name, content in prompts.items():
            if overwrite or self.session.get(Prompt, name) is None:
                self.upsert(name, content)
                written.append(name)
        return written
