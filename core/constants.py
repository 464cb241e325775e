"""
Constants and configuration values for the explanation pipeline.
"""

# Magic-number prefix of a paginated (PDF) document
PDF_MAGIC = b'%PDF'

# Default rendering / image parameters
DEFAULT_IMAGE_PARAMS = {
    'render_dpi': 200,
    'max_image_size': 2048,
    'detection_max_width': 1500,
    'crop_padding': 20,
}

# Detection preprocessing (high-contrast greyscale)
DETECTION_CONTRAST = 1.5
DETECTION_BRIGHTNESS = 1.1

# Unlabeled problems are numbered from here, in reading order
SENTINEL_BASE = 1000

# Leading problem label: "12.", "12번", "12 number", "[12]"
PROBLEM_LABEL_PATTERN = r'^\s*(?:\[\s*(\d{1,4})\s*\]|(\d{1,4})\s*(?:\.|번|number\b))'

# Generation scheduling / retry defaults
DEFAULT_GENERATION_PARAMS = {
    'concurrency': 3,
    'retry_max_attempts': 3,
    'retry_initial_delay': 2.0,
    'max_tokens': 8192,
    'quality_max_tokens': 32768,
    'temperature': 0.0,
}

# Error-message signatures used to classify service failures
QUOTA_SIGNATURES = ('quota',)
TRANSIENT_SIGNATURES = (
    '429',
    'resource_exhausted',
    'rate limit',
    'rate_limit',
    '503',
    'unavailable',
)

# Phrases meaning "the model declined to answer"
FAILURE_PHRASES = (
    'cannot provide a solution',
    "can't provide a solution",
    'unable to solve this problem',
    'unable to provide a solution',
    'cannot solve this problem',
    '풀이를 제공할 수 없습니다',
    '해설을 제공할 수 없습니다',
)

# User-facing text
FAILURE_MESSAGE = 'Failed to generate an explanation for this problem. Please try again.'
PLACEHOLDER_MESSAGE = 'Waiting for explanation...'
GENERATING_MESSAGE = '[Page {page} problem {number}] Generating explanation...'

# Problem type labels reported by the detection service
MULTIPLE_CHOICE_LABELS = {
    'multiple-choice',
    'multiple_choice',
    'multiple choice',
    'mcq',
    'choice',
    '객관식',
}

# Instruction-set names
PROMPT_DETECT_PROBLEMS = 'detectProblems'
PROMPT_SYSTEM_INSTRUCTION = 'systemInstruction'
PROMPT_GENERATE_EXPLANATION = 'generateExplanation'
PROMPT_GUIDELINES = 'guidelines'

# Built-in instruction sets, seeded into the prompts table by init_db.py
DEFAULT_PROMPTS = {
    PROMPT_DETECT_PROBLEMS: """You are given one page of a scanned problem set.
Find every separate problem on the page.

Return ONLY a JSON array (no markdown, no explanation). Each element:
{
  "type": "multiple-choice" or "free-response",
  "problem_number": the printed label exactly as written (e.g. "3.", "[12]") or null,
  "body": full transcription of the problem text, LaTeX for math,
  "choices": the answer choices as one string, or null,
  "bbox": {"x_min": 0-1, "y_min": 0-1, "x_max": 0-1, "y_max": 0-1}
}

Bounding boxes are normalized to the page width and height and must cover
the whole problem including figures and choices.""",

    PROMPT_SYSTEM_INSTRUCTION: """You are a patient mathematics teacher who writes step-by-step explanations
for students. Use Markdown and LaTeX ($...$) for all mathematics.""",

    PROMPT_GENERATE_EXPLANATION: """Write a complete explanation for the following problem.

Problem:
{{problemText}}

Return ONLY a JSON object:
{"explanation": "<markdown explanation>",
 "core_concepts": ["<concept>", ...],
 "difficulty": <integer 1-5>}""",

    PROMPT_GUIDELINES: """Every sentence ends with a period.
Separate sentences with a blank line.
State the final answer on its own line.""",
}
