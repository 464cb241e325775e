"""
Exception hierarchy for the explanation pipeline.
"""


class PipelineError(Exception):
    """Base class for all pipeline errors."""


class ExtractionError(PipelineError):
    """A file could not be turned into any page image."""


class DetectionError(PipelineError):
    """Problem detection failed for a page."""


class ConfigurationError(PipelineError):
    """The pipeline is misconfigured; aborts the whole analysis."""


class PromptNotFoundError(ConfigurationError):
    """A required instruction set is missing or empty."""

    def __init__(self, name: str):
        super().__init__(f"Instruction set '{name}' is missing or empty.")
        self.name = name


class CropError(PipelineError):
    """A problem region could not be cropped from its page."""


class GenerationError(PipelineError):
    """The generation service failed for one problem."""


class TransientServiceError(GenerationError):
    """Rate limit or temporary unavailability; safe to retry."""


class QuotaExceededError(GenerationError):
    """Usage quota exhausted; never retried."""


class EmptyResponseError(GenerationError):
    """The service answered with no content."""
