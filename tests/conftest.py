"""
Pytest configuration and global fixtures.
"""
import asyncio
import inspect
import sys
from io import BytesIO
from pathlib import Path

import pytest

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from core.constants import DEFAULT_PROMPTS
from core.models import BBox, DetectedProblem, Explanation, ProblemType, new_explanation_id
from data.database import DatabaseManager
from data.repositories import PromptRepository
from llm.llm_client_base import BaseLLMClient
from services.progress import CollectingProgressSink
from services.prompt_service import PromptService


class FakeLLMClient(BaseLLMClient):
    """
    Scripted LLM client.

    Replies come from `handler(prompt, system_instruction, images, kwargs)`
    when given, otherwise from the `responses` list in order. A reply may
    be a string, a (text, finish_reason) tuple, or an exception to raise.
    """

    def __init__(self, responses=None, handler=None):
        super().__init__("fake-model")
        self.responses = list(responses or [])
        self.handler = handler
        self.calls = []
        self.closed = False

    async def chat_completion_with_finish_reason(
        self, prompt, system_instruction=None, images=None, **kwargs
    ):
        self.calls.append({
            'prompt': prompt,
            'system_instruction': system_instruction,
            'images': images,
            'kwargs': kwargs,
        })
        if self.handler is not None:
            reply = self.handler(prompt, system_instruction, images, kwargs)
            if inspect.isawaitable(reply):
                reply = await reply
        else:
            reply = self.responses.pop(0)

        if isinstance(reply, BaseException):
            raise reply
        if isinstance(reply, tuple):
            return reply
        return reply, 'finished'

    async def close(self):
        self.closed = True


class RecordingFailureLog:
    """Failure logger stand-in that records calls."""

    def __init__(self, fail: bool = False):
        self.entries = []
        self.fail = fail

    async def log_failure(self, record, reason, mode=None):
        self.entries.append((record, reason, mode))
        return not self.fail


async def no_sleep(delay):
    await asyncio.sleep(0)


def make_png(width=400, height=600, color='white', boxes=None) -> bytes:
    """Build a PNG, optionally with filled black rectangles (pixel coords)."""
    from PIL import Image, ImageDraw

    img = Image.new('RGB', (width, height), color=color)
    if boxes:
        draw = ImageDraw.Draw(img)
        for box in boxes:
            draw.rectangle(box, fill='black')
    buf = BytesIO()
    img.save(buf, format='PNG')
    return buf.getvalue()


def make_pdf(page_count=2, text="1. Solve for x.") -> bytes:
    """Build a small PDF with one line of text per page."""
    import fitz

    doc = fitz.open()
    for i in range(page_count):
        page = doc.new_page(width=300, height=400)
        page.insert_text((40, 60), f"{text} (page {i + 1})")
    data = doc.tobytes()
    doc.close()
    return data


def make_problem(page_number=1, y_min=0.1, body="", label=None, choices=None) -> DetectedProblem:
    return DetectedProblem(
        bbox=BBox(0.1, y_min, 0.9, min(1.0, y_min + 0.2)),
        problem_type=ProblemType.FREE_RESPONSE,
        body=body,
        page_number=page_number,
        choices=choices,
        problem_number=label
    )


def make_record(problem_number=1, page_number=1, text="1. Solve x + 1 = 2.", image=None) -> Explanation:
    return Explanation(
        id=new_explanation_id(),
        markdown="Waiting for explanation...",
        page_number=page_number,
        problem_number=problem_number,
        problem_image=image if image is not None else make_png(20, 20),
        original_problem_text=text
    )


@pytest.fixture
def db_manager():
    """In-memory database with tables and default prompts."""
    manager = DatabaseManager("sqlite://")
    manager.create_tables()
    with manager.session() as session:
        PromptRepository(session).seed(DEFAULT_PROMPTS)
    yield manager
    manager.dispose()


@pytest.fixture
def empty_db_manager():
    """In-memory database with tables but no prompts."""
    manager = DatabaseManager("sqlite://")
    manager.create_tables()
    yield manager
    manager.dispose()


@pytest.fixture
def prompts(db_manager):
    return PromptService(db_manager)


@pytest.fixture
def progress():
    return CollectingProgressSink()


@pytest.fixture
def page_png():
    """A 400x600 page with two dark problem regions."""
    return make_png(400, 600, boxes=[(40, 60, 360, 180), (40, 300, 360, 420)])


@pytest.fixture
def sample_pdf_bytes():
    return make_pdf(page_count=2)


@pytest.fixture
def fake_llm():
    """FakeLLMClient class; instantiate with responses= or handler=."""
    return FakeLLMClient


@pytest.fixture
def failure_log():
    return RecordingFailureLog()


@pytest.fixture
def png_factory():
    return make_png


@pytest.fixture
def pdf_factory():
    return make_pdf


@pytest.fixture
def problem_factory():
    return make_problem


@pytest.fixture
def record_factory():
    return make_record


@pytest.fixture
def sleep():
    """Awaitable sleep that does not wait."""
    return no_sleep
