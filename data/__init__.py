"""Data access layer - Database models, connections and repositories."""

from .db_models import Base, GoldenExplanation, FailureLog, Prompt
from .database import DatabaseManager
from .repositories import (
    GoldenExplanationRepository,
    FailureLogRepository,
    PromptRepository
)

__all__ = [
    # Models
    'Base',
    'GoldenExplanation',
    'FailureLog',
    'Prompt',

    # Database
    'DatabaseManager',

    # Repositories
    'GoldenExplanationRepository',
    'FailureLogRepository',
    'PromptRepository'
]
