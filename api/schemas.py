"""
Pydantic schemas for API request/response validation.
"""
from typing import List, Optional
from pydantic import BaseModel

from core.models import Explanation


class ExplanationResponse(BaseModel):
    """One explanation record. The problem image is base64-encoded PNG."""
    id: str
    markdown: str
    page_number: int
    problem_number: int
    problem_image: Optional[str] = None
    original_problem_text: str = ""
    is_loading: bool
    is_error: bool
    is_golden: bool
    core_concepts: Optional[List[str]] = None
    difficulty: Optional[int] = None
    variation_problem: Optional[dict] = None

    @classmethod
    def from_explanation(cls, explanation: Explanation) -> "ExplanationResponse":
        return cls(**explanation.to_dict())


class ExplanationBatchResponse(BaseModel):
    """Response for one pipeline run."""
    explanations: List[ExplanationResponse]
    messages: List[str]
    total: int
    failed: int
    golden: int


class HealthResponse(BaseModel):
    status: str
    version: str
