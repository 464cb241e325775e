"""
Text utilities for the explanation pipeline.

Handles problem-label parsing and JSON extraction from model replies.
"""
import json
import re
from typing import Any, Optional

from core.constants import PROBLEM_LABEL_PATTERN

_LABEL_RE = re.compile(PROBLEM_LABEL_PATTERN, re.IGNORECASE)


def parse_problem_label(text: Optional[str]) -> Optional[int]:
    """
    Parse a leading problem number from a label or problem body.

    Recognizes "12.", "12번", "12 number" and "[12]" with 1-4 digits.

    Returns:
        The number, or None if the text does not start with a label
    """
    if not text:
        return None

    match = _LABEL_RE.match(text)
    if not match:
        return None

    digits = match.group(1) or match.group(2)
    return int(digits)


def strip_code_fences(response: str) -> str:
    """
    Extract content from markdown code blocks.

    Args:
        response: Response text that may contain ```json ... ``` blocks

    Returns:
        Inner content, or the stripped text if there is no fence
    """
    text = response.strip()
    match = re.search(r'```(?:json)?\s*(.*?)\s*```', text, re.DOTALL)
    if match:
        return match.group(1).strip()
    return text


def extract_json(content: str) -> Any:
    """
    Extract JSON from an LLM response.

    This handles common cases like:
    - JSON wrapped in markdown code blocks
    - JSON with extra text before/after

    Raises:
        json.JSONDecodeError: If no valid JSON found
    """
    try:
        return json.loads(content)
    except json.JSONDecodeError:
        pass

    inner = strip_code_fences(content)
    try:
        return json.loads(inner)
    except json.JSONDecodeError:
        pass

    # Outermost array or object, whichever starts first
    patterns = [r'\{.*\}', r'\[.*\]']
    first_bracket, first_brace = inner.find('['), inner.find('{')
    if first_bracket != -1 and (first_brace == -1 or first_bracket < first_brace):
        patterns.reverse()

    for pattern in patterns:
        match = re.search(pattern, inner, re.DOTALL)
        if match:
            try:
                return json.loads(match.group(0))
            except json.JSONDecodeError:
                pass

    raise json.JSONDecodeError(
        f"Could not extract valid JSON from content: {content[:200]}...",
        content,
        0
    )
