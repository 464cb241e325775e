"""Core package - Domain models, constants and exceptions."""

from .models import (
    BBox,
    CachedExplanation,
    DetectedProblem,
    Explanation,
    ExplanationMode,
    GenerationResult,
    InputFile,
    PageImage,
    ProblemType,
    new_explanation_id,
)
from .constants import (
    PDF_MAGIC,
    SENTINEL_BASE,
    FAILURE_PHRASES,
    FAILURE_MESSAGE,
    DEFAULT_IMAGE_PARAMS,
    DEFAULT_GENERATION_PARAMS,
    DEFAULT_PROMPTS,
)
from .exceptions import (
    PipelineError,
    ExtractionError,
    DetectionError,
    ConfigurationError,
    PromptNotFoundError,
    CropError,
    GenerationError,
    TransientServiceError,
    QuotaExceededError,
    EmptyResponseError,
)

__all__ = [
    'BBox',
    'CachedExplanation',
    'DetectedProblem',
    'Explanation',
    'ExplanationMode',
    'GenerationResult',
    'InputFile',
    'PageImage',
    'ProblemType',
    'new_explanation_id',
    'PDF_MAGIC',
    'SENTINEL_BASE',
    'FAILURE_PHRASES',
    'FAILURE_MESSAGE',
    'DEFAULT_IMAGE_PARAMS',
    'DEFAULT_GENERATION_PARAMS',
    'DEFAULT_PROMPTS',
    'PipelineError',
    'ExtractionError',
    'DetectionError',
    'ConfigurationError',
    'PromptNotFoundError',
    'CropError',
    'GenerationError',
    'TransientServiceError',
    'QuotaExceededError',
    'EmptyResponseError',
]
