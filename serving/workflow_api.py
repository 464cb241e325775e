"""
Workflow API for the document-to-explanation pipeline.

Provides endpoints for:
- Explanation generation from uploaded PDFs / images
- Health check
"""
import logging
from typing import List, Optional

from fastapi import Depends, FastAPI, File, Form, HTTPException, UploadFile

from api.dependencies import get_pipeline
from api.schemas import ExplanationBatchResponse, ExplanationResponse, HealthResponse
from config.settings import Settings, settings as default_settings
from core.exceptions import ConfigurationError, ExtractionError
from core.models import ExplanationMode, InputFile
from data.database import DatabaseManager
from services.pipeline import ExplanationPipeline
from services.progress import CollectingProgressSink, LoggingProgressSink

API_VERSION = "1.0.0"

logger = logging.getLogger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    db_manager: Optional[DatabaseManager] = None
) -> FastAPI:
    """
    Create the FastAPI application.

    Args:
        settings: Application settings (default: from environment)
        db_manager: Database manager override (default: from settings)
    """
    settings = settings or default_settings

    app = FastAPI(
        title="Explanation Workflow API",
        description="Problem detection and step-by-step explanation generation for scanned problem sets",
        version=API_VERSION
    )
    app.state.settings = settings
    app.state.db_manager = db_manager
    app.state.pipeline = None

    @app.on_event("startup")
    async def startup_event():
        """Configure logging and make sure tables exist."""
        logging.basicConfig(
            level=settings.log_level.upper(),
            format="%(asctime)s %(levelname)s %(name)s: %(message)s"
        )
        if app.state.db_manager is None:
            app.state.db_manager = DatabaseManager(settings.database_url)
        app.state.db_manager.create_tables()
        logger.info("Workflow API initialized")

    @app.post("/explanations", response_model=ExplanationBatchResponse)
    async def create_explanations(
        files: List[UploadFile] = File(...),
        mode: ExplanationMode = Form(ExplanationMode.DEFAULT),
        use_guidelines: bool = Form(False),
        pipeline: ExplanationPipeline = Depends(get_pipeline)
    ):
        """
        Detect problems in the uploaded files and explain each one.

        Args:
            files: PDFs and/or images, processed in upload order
            mode: Explanation mode (fast, default, quality)
            use_guidelines: Apply the writing guidelines

        Returns:
            All explanations ordered by problem number, plus the status history
        """
        inputs = [
            InputFile(name=file.filename or f"upload-{i + 1}", data=await file.read())
            for i, file in enumerate(files)
        ]
        progress = CollectingProgressSink(forward=LoggingProgressSink())

        try:
            explanations = await pipeline.run(inputs, mode, use_guidelines, progress)
        except ExtractionError as e:
            raise HTTPException(status_code=400, detail=str(e))
        except ConfigurationError as e:
            logger.error("Pipeline misconfigured: %s", e)
            raise HTTPException(status_code=500, detail=f"Pipeline misconfigured: {str(e)}")

        return ExplanationBatchResponse(
            explanations=[ExplanationResponse.from_explanation(e) for e in explanations],
            messages=progress.messages,
            total=len(explanations),
            failed=sum(1 for e in explanations if e.is_error),
            golden=sum(1 for e in explanations if e.is_golden)
        )

    @app.get("/health", response_model=HealthResponse)
    async def health():
        """Liveness check."""
        return HealthResponse(status="ok", version=API_VERSION)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=default_settings.api_host, port=default_settings.api_port)
