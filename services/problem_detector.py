"""
Problem Detector - Locates problems on page images via a vision LLM.

All pages of a batch are analysed concurrently. A failing page
contributes no problems; a configuration error aborts the batch.
"""
import asyncio
import json
import logging
from typing import List, Optional

from core.constants import DEFAULT_IMAGE_PARAMS, MULTIPLE_CHOICE_LABELS, PROMPT_DETECT_PROBLEMS
from core.exceptions import ConfigurationError, DetectionError
from core.models import DetectedProblem, PageImage, ProblemType
from llm.llm_client_base import BaseLLMClient
from services.cancellation import CancellationToken
from services.progress import ProgressSink
from services.prompt_service import PromptService
from utils.bbox_utils import parse_bbox
from utils.image_utils import preprocess_for_detection

logger = logging.getLogger(__name__)


def normalize_problem_type(raw) -> ProblemType:
    """Map a detection label onto ProblemType; unknown labels are free-response."""
    if isinstance(raw, str) and raw.strip().lower() in MULTIPLE_CHOICE_LABELS:
        return ProblemType.MULTIPLE_CHOICE
    return ProblemType.FREE_RESPONSE


def _as_text(value) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, list):
        value = "\n".join(str(v) for v in value if v is not None)
    elif isinstance(value, dict):
        value = "\n".join(f"{k}. {v}" for k, v in value.items())
    text = str(value).strip()
    return text or None


class ProblemDetector:
    """Service for detecting problems on page images."""

    def __init__(
        self,
        client: BaseLLMClient,
        prompts: PromptService,
        model: Optional[str] = None,
        max_width: int = DEFAULT_IMAGE_PARAMS['detection_max_width']
    ):
        """
        Initialize problem detector.

        Args:
            client: Vision-capable LLM client
            prompts: Instruction-set loader
            model: Model override (default: the client's model)
            max_width: Width pages are downscaled to before detection
        """
        self.client = client
        self.prompts = prompts
        self.model = model
        self.max_width = max_width

    async def detect_page(self, page: PageImage) -> List[DetectedProblem]:
        """
        Detect problems on a single page.

        Raises:
            ConfigurationError: If the detection instruction set is missing
            DetectionError: If the service reply cannot be parsed
        """
        prompt = await self.prompts.get(PROMPT_DETECT_PROBLEMS)
        optimized = await asyncio.to_thread(preprocess_for_detection, page.image, self.max_width)

        kwargs = {'temperature': 0.0}
        if self.model:
            kwargs['model'] = self.model
        response = await self.client.chat_completion(prompt, images=[optimized], **kwargs)

        return self.parse_response(response, page.page_number)

    def parse_response(self, response: str, page_number: int) -> List[DetectedProblem]:
        """
        Parse the detection reply into clamped DetectedProblem records.

        Entries without a usable bbox are dropped.
        """
        try:
            data = self.client.extract_json(response)
        except json.JSONDecodeError as e:
            raise DetectionError(f"Page {page_number}: detection reply is not JSON") from e

        if isinstance(data, dict):
            data = data.get('problems', [])
        if not isinstance(data, list):
            raise DetectionError(f"Page {page_number}: detection reply is not a list")

        problems = []
        for item in data:
            if not isinstance(item, dict):
                continue

            bbox = parse_bbox(item.get('bbox'))
            if bbox is None:
                logger.warning("Page %d: dropping problem without bbox", page_number)
                continue

            body = _as_text(item.get('body') or item.get('lines') or item.get('text')) or ""
            problems.append(DetectedProblem(
                bbox=bbox,
                problem_type=normalize_problem_type(item.get('type') or item.get('problem_type')),
                body=body,
                page_number=page_number,
                choices=_as_text(item.get('choices')),
                problem_number=_as_text(item.get('problem_number'))
            ))

        return problems

    async def detect_all(
        self,
        pages: List[PageImage],
        progress: ProgressSink,
        cancel: Optional[CancellationToken] = None
    ) -> List[DetectedProblem]:
        """
        Detect problems on all pages concurrently, without a concurrency cap.

        Returns:
            Problems of all pages, flattened in page order

        Raises:
            ConfigurationError: Re-raised from any page, after all pages settle
        """
        if cancel and cancel.is_cancelled:
            return []

        results = await asyncio.gather(
            *(self._detect_page_safely(page, progress) for page in pages),
            return_exceptions=True
        )

        detected: List[DetectedProblem] = []
        for result in results:
            if isinstance(result, BaseException):
                raise result
            detected.extend(result)

        if cancel and cancel.is_cancelled:
            return []
        return detected

    async def _detect_page_safely(
        self,
        page: PageImage,
        progress: ProgressSink
    ) -> List[DetectedProblem]:
        progress.status(f"Locating problems on page {page.page_number}...")
        try:
            problems = await self.detect_page(page)
        except ConfigurationError:
            raise
        except Exception as e:
            logger.error("Problem detection failed for page %d: %s", page.page_number, e)
            progress.status(f"Could not analyse page {page.page_number}; skipping it.")
            return []

        progress.status(f"Found {len(problems)} problems on page {page.page_number}.")
        return problems
