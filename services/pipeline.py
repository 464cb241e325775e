"""
Explanation Pipeline - Document to per-problem explanations.

Stages:
1. Extract page images from the input files
2. Detect problems on every page (concurrently)
3. Number problems and crop their images
4. Resolve records against the curated cache (sequentially)
5. Generate explanations for the remaining records (bounded pool)

The pipeline is an explicitly constructed object; build one per
configuration with build_pipeline() and pass it to callers.
"""
import logging
from typing import List, Optional

from config.settings import Settings
from core.models import Explanation, ExplanationMode, InputFile
from data.database import DatabaseManager
from llm.client_factory import LLMClientFactory
from llm.llm_client_base import BaseLLMClient
from services.cache_store import CacheStore
from services.cancellation import CancellationToken
from services.explanation_generator import ExplanationGenerator
from services.failure_log import FailureLogger
from services.generation_scheduler import GenerationScheduler
from services.numbering import NumberingAssembler
from services.page_extractor import PageExtractor
from services.problem_detector import ProblemDetector
from services.progress import ProgressSink
from services.prompt_service import PromptService

logger = logging.getLogger(__name__)


class ExplanationPipeline:
    """Runs all stages for one batch of input files."""

    def __init__(
        self,
        extractor: PageExtractor,
        detector: ProblemDetector,
        assembler: NumberingAssembler,
        cache_store: CacheStore,
        scheduler: GenerationScheduler
    ):
        self.extractor = extractor
        self.detector = detector
        self.assembler = assembler
        self.cache_store = cache_store
        self.scheduler = scheduler

    async def close(self):
        """Release LLM transport resources."""
        clients = {id(c): c for c in (self.detector.client, self.scheduler.generator.client)}
        for client in clients.values():
            await client.close()

    async def run(
        self,
        files: List[InputFile],
        mode: ExplanationMode,
        use_guidelines: bool,
        progress: ProgressSink,
        cancel: Optional[CancellationToken] = None
    ) -> List[Explanation]:
        """
        Process a batch of files.

        Args:
            files: Input files, in order
            mode: Explanation mode, passed through to generation
            use_guidelines: Append the guideline instruction set
            progress: Receives status messages and record updates
            cancel: Cooperative cancellation token

        Returns:
            One Explanation per detected problem, ordered by problem number

        Raises:
            ExtractionError: If an input file is unreadable
            ConfigurationError: If detection is misconfigured
        """
        cancel = cancel or CancellationToken()
        mode = ExplanationMode(mode)

        pages = await self.extractor.extract(files, progress, cancel)
        if cancel.is_cancelled:
            progress.status("Cancelled.")
            return []
        if not pages:
            progress.status("No pages could be read from the input files.")
            return []

        progress.status(f"Analysing {len(pages)} pages...")
        problems = await self.detector.detect_all(pages, progress, cancel)
        if cancel.is_cancelled:
            progress.status("Cancelled.")
            return []
        if not problems:
            progress.status("No problems were found.")
            return []

        drafts = await self.assembler.assemble(problems, pages, progress)
        if cancel.is_cancelled:
            progress.status("Cancelled.")
            return drafts

        records, pending = await self.cache_store.apply(drafts, progress, cancel)
        logger.info(
            "%d problems: %d from cache, %d to generate",
            len(records), sum(1 for r in records if r.is_golden), len(pending)
        )

        if pending and not cancel.is_cancelled:
            generated = await self.scheduler.run(pending, mode, use_guidelines, progress, cancel)
            by_id = {record.id: record for record in generated}
            records = [by_id.get(record.id, record) for record in records]

        if cancel.is_cancelled:
            progress.status("Cancelled.")
        else:
            failed = sum(1 for r in records if r.is_error)
            progress.status(
                f"Done: {len(records)} explanations ({failed} failed)."
            )

        return sorted(records, key=lambda r: r.problem_number)


def build_pipeline(
    settings: Settings,
    db_manager: DatabaseManager,
    client: Optional[BaseLLMClient] = None
) -> ExplanationPipeline:
    """
    Construct a pipeline from settings.

    Args:
        settings: Application settings
        db_manager: Database holding prompts, cache and failure log
        client: LLM client override (default: built from settings)
    """
    if client is None:
        client = LLMClientFactory.from_settings(settings)

    prompts = PromptService(db_manager)
    generator = ExplanationGenerator(
        client,
        prompts,
        mode_models=settings.get_mode_models(),
        max_attempts=settings.retry_max_attempts,
        initial_delay=settings.retry_initial_delay
    )

    return ExplanationPipeline(
        extractor=PageExtractor(settings.render_dpi, settings.max_image_size),
        detector=ProblemDetector(
            client,
            prompts,
            model=settings.detection_model,
            max_width=settings.detection_max_width
        ),
        assembler=NumberingAssembler(settings.crop_padding),
        cache_store=CacheStore(db_manager),
        scheduler=GenerationScheduler(
            generator,
            FailureLogger(db_manager),
            concurrency=settings.generation_concurrency
        )
    )
