"""
API Dependencies - Dependency injection for FastAPI.

The database manager and pipeline live on app.state; they are built
once per app, on first use.
"""
import logging

from fastapi import HTTPException, Request

from core.exceptions import ConfigurationError
from data.database import DatabaseManager
from services.pipeline import ExplanationPipeline, build_pipeline

logger = logging.getLogger(__name__)


def get_db_manager(request: Request) -> DatabaseManager:
    """
    Dependency for the database manager.

    Returns:
        DatabaseManager configured for this app
    """
    state = request.app.state
    if getattr(state, 'db_manager', None) is None:
        state.db_manager = DatabaseManager(state.settings.database_url)
    return state.db_manager


def get_pipeline(request: Request) -> ExplanationPipeline:
    """
    Dependency for the explanation pipeline.

    Returns:
        ExplanationPipeline built from the app settings

    Raises:
        HTTPException: 500 if the LLM client cannot be configured
    """
    state = request.app.state
    if getattr(state, 'pipeline', None) is None:
        try:
            state.pipeline = build_pipeline(state.settings, get_db_manager(request))
        except ConfigurationError as e:
            logger.error("Pipeline misconfigured: %s", e)
            raise HTTPException(status_code=500, detail=f"Pipeline misconfigured: {str(e)}")
    return state.pipeline
