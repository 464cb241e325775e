"""
Numbering Assembler - Turns detected problems into numbered drafts.

Numbering is deterministic:
1. Problems are put in reading order: page, then top edge.
2. Each takes its printed label (reported label first, then body text).
   A label already taken by an earlier problem counts as missing.
3. Problems without a label get SENTINEL_BASE + k, k counting unlabeled
   problems in reading order, skipping numbers already used by labels.
4. Drafts are ordered by final number.
"""
import asyncio
import logging
import re
from dataclasses import dataclass
from typing import Dict, List, Optional

from core.constants import DEFAULT_IMAGE_PARAMS, FAILURE_MESSAGE, PLACEHOLDER_MESSAGE, SENTINEL_BASE
from core.exceptions import CropError
from core.models import DetectedProblem, Explanation, PageImage, new_explanation_id
from services.progress import ProgressSink
from utils.bbox_utils import crop_problem_image
from utils.text_utils import parse_problem_label

logger = logging.getLogger(__name__)

_BARE_LABEL_RE = re.compile(r'^\s*(\d{1,4})\s*$')


@dataclass(frozen=True)
class NumberedProblem:
    problem: DetectedProblem
    problem_number: int


def reading_order(problems: List[DetectedProblem]) -> List[DetectedProblem]:
    """Sort by (page number, top edge)."""
    return sorted(problems, key=lambda p: (p.page_number, p.bbox.y_min))


def parse_reported_label(label: Optional[str]) -> Optional[int]:
    """Parse the label field reported by detection; bare digits are accepted."""
    number = parse_problem_label(label)
    if number is None and label:
        match = _BARE_LABEL_RE.match(label)
        if match:
            number = int(match.group(1))
    return number


def assign_problem_numbers(problems: List[DetectedProblem]) -> List[NumberedProblem]:
    """
    Assign unique problem numbers.

    Returns:
        Numbered problems ordered by problem number
    """
    ordered = reading_order(problems)

    used = set()
    labels: List[Optional[int]] = []
    for problem in ordered:
        number = parse_reported_label(problem.problem_number)
        if number is None:
            number = parse_problem_label(problem.body)
        if number is not None and number in used:
            number = None
        if number is not None:
            used.add(number)
        labels.append(number)

    numbered = []
    sentinel_index = 0
    for problem, number in zip(ordered, labels):
        if number is None:
            while SENTINEL_BASE + sentinel_index in used:
                sentinel_index += 1
            number = SENTINEL_BASE + sentinel_index
            sentinel_index += 1
            used.add(number)
        numbered.append(NumberedProblem(problem=problem, problem_number=number))

    return sorted(numbered, key=lambda n: n.problem_number)


class NumberingAssembler:
    """Builds loading-state Explanation drafts with cropped problem images."""

    def __init__(self, crop_padding: int = DEFAULT_IMAGE_PARAMS['crop_padding']):
        """
        Args:
            crop_padding: Padding around each problem, in source pixels
        """
        self.crop_padding = crop_padding

    async def assemble(
        self,
        problems: List[DetectedProblem],
        pages: List[PageImage],
        progress: ProgressSink
    ) -> List[Explanation]:
        """
        Number, crop and announce every detected problem.

        Crops run in parallel. A record whose crop fails is created
        directly in the error state; its siblings are unaffected.

        Returns:
            One Explanation per detected problem, ordered by problem number
        """
        numbered = assign_problem_numbers(problems)
        page_images: Dict[int, bytes] = {page.page_number: page.image for page in pages}

        progress.status(f"Creating {len(numbered)} problem cards...")
        crops = await asyncio.gather(
            *(self._crop(item, page_images) for item in numbered),
            return_exceptions=True
        )

        drafts = []
        for item, crop in zip(numbered, crops):
            if isinstance(crop, BaseException) and not isinstance(crop, Exception):
                raise crop

            problem = item.problem
            draft = Explanation(
                id=new_explanation_id(),
                markdown=PLACEHOLDER_MESSAGE,
                page_number=problem.page_number,
                problem_number=item.problem_number,
                problem_image=None if isinstance(crop, Exception) else crop,
                original_problem_text=problem.full_text
            )

            if isinstance(crop, Exception):
                logger.error(
                    "Could not crop problem %d on page %d: %s",
                    item.problem_number, problem.page_number, crop
                )
                draft = draft.failed(FAILURE_MESSAGE)

            progress.update(draft)
            drafts.append(draft)

        return drafts

    async def _crop(self, item: NumberedProblem, page_images: Dict[int, bytes]) -> bytes:
        page_image = page_images.get(item.problem.page_number)
        if page_image is None:
            raise CropError(f"No image for page {item.problem.page_number}")
        return await asyncio.to_thread(
            crop_problem_image, page_image, item.problem.bbox, self.crop_padding
        )
