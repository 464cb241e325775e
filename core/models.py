"""
Core domain models for the explanation pipeline.

These are pure data structures; the only behavior they carry is
normalization (bbox clamping) and building replacement copies of an
Explanation for each lifecycle transition.
"""
import base64
import uuid
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import List, Optional


class ProblemType(str, Enum):
    """Kind of problem reported by detection."""
    MULTIPLE_CHOICE = 'multiple-choice'
    FREE_RESPONSE = 'free-response'


class ExplanationMode(str, Enum):
    """Explanation mode selector, passed through to generation."""
    FAST = 'fast'
    DEFAULT = 'default'
    QUALITY = 'quality'


def _clamp_unit(value: float) -> float:
    return min(1.0, max(0.0, float(value)))


@dataclass(frozen=True)
class BBox:
    """Bounding box normalized to the page size, coordinates in [0, 1]."""
    x_min: float
    y_min: float
    x_max: float
    y_max: float

    def clamped(self) -> 'BBox':
        """Clamp into [0, 1] and order min/max on each axis."""
        x1, x2 = sorted((_clamp_unit(self.x_min), _clamp_unit(self.x_max)))
        y1, y2 = sorted((_clamp_unit(self.y_min), _clamp_unit(self.y_max)))
        return BBox(x_min=x1, y_min=y1, x_max=x2, y_max=y2)

    @property
    def width(self) -> float:
        return self.x_max - self.x_min

    @property
    def height(self) -> float:
        return self.y_max - self.y_min

    @property
    def is_degenerate(self) -> bool:
        """True when the box has zero area."""
        return self.width <= 0 or self.height <= 0

    def to_dict(self) -> dict:
        return {
            'x_min': self.x_min,
            'y_min': self.y_min,
            'x_max': self.x_max,
            'y_max': self.y_max
        }


@dataclass(frozen=True)
class PageImage:
    """One rendered page: PNG-encoded bytes plus its 1-based page number."""
    image: bytes
    page_number: int
    source_name: str = ""


@dataclass(frozen=True)
class InputFile:
    """An uploaded file: a name for messages and its raw bytes."""
    name: str
    data: bytes


@dataclass(frozen=True)
class DetectedProblem:
    """A problem candidate located on a page by the detection service."""
    bbox: BBox
    problem_type: ProblemType
    body: str
    page_number: int
    choices: Optional[str] = None
    problem_number: Optional[str] = None

    @property
    def full_text(self) -> str:
        """Body and choices, as sent to the generation service."""
        if self.choices:
            return f"{self.body}\n{self.choices}"
        return self.body


@dataclass(frozen=True)
class GenerationResult:
    """Successful reply from the generation service."""
    markdown: str
    core_concepts: List[str] = field(default_factory=list)
    difficulty: Optional[int] = None
    raw: str = ""


@dataclass(frozen=True)
class CachedExplanation:
    """A curated explanation found in the cache."""
    markdown: str
    core_concepts: Optional[List[str]] = None
    difficulty: Optional[int] = None
    variation_problem: Optional[dict] = None


def new_explanation_id() -> str:
    """Generate a unique explanation ID."""
    return uuid.uuid4().hex


@dataclass(frozen=True)
class Explanation:
    """
    Per-problem record threaded through the pipeline.

    Instances are never mutated; each lifecycle step produces a full
    replacement that is pushed to the progress sink.
    """
    id: str
    markdown: str
    page_number: int
    problem_number: int
    problem_image: Optional[bytes] = None
    original_problem_text: str = ""
    is_loading: bool = True
    is_error: bool = False
    is_golden: bool = False
    core_concepts: Optional[List[str]] = None
    difficulty: Optional[int] = None
    variation_problem: Optional[dict] = None

    @property
    def is_terminal(self) -> bool:
        return not self.is_loading

    def with_status(self, markdown: str) -> 'Explanation':
        """Loading-state copy with a new progress message."""
        return replace(self, markdown=markdown, is_loading=True, is_error=False)

    def succeeded(self, result: GenerationResult) -> 'Explanation':
        return replace(
            self,
            markdown=result.markdown,
            core_concepts=list(result.core_concepts) or None,
            difficulty=result.difficulty,
            is_loading=False,
            is_error=False
        )

    def golden(self, cached: CachedExplanation) -> 'Explanation':
        return replace(
            self,
            markdown=cached.markdown,
            core_concepts=cached.core_concepts,
            difficulty=cached.difficulty,
            variation_problem=cached.variation_problem,
            is_loading=False,
            is_error=False,
            is_golden=True
        )

    def failed(self, message: str) -> 'Explanation':
        return replace(self, markdown=message, is_loading=False, is_error=True)

    def to_dict(self) -> dict:
        """Convert to a JSON-serializable dictionary."""
        return {
            'id': self.id,
            'markdown': self.markdown,
            'page_number': self.page_number,
            'problem_number': self.problem_number,
            'problem_image': (
                base64.b64encode(self.problem_image).decode()
                if self.problem_image else None
            ),
            'original_problem_text': self.original_problem_text,
            'is_loading': self.is_loading,
            'is_error': self.is_error,
            'is_golden': self.is_golden,
            'core_concepts': self.core_concepts,
            'difficulty': self.difficulty,
            'variation_problem': self.variation_problem
        }
