"""
Unit tests for services.problem_detector module.
"""
import asyncio
import json

import pytest

from core.exceptions import DetectionError, PromptNotFoundError
from core.models import BBox, PageImage, ProblemType
from services.cancellation import CancellationToken
from services.problem_detector import ProblemDetector, normalize_problem_type
from services.prompt_service import PromptService


def _reply(*problems):
    return json.dumps(list(problems))


class TestNormalizeProblemType:
    """Tests for normalize_problem_type function."""

    @pytest.mark.parametrize("raw", ["multiple-choice", "Multiple Choice", "객관식", "MCQ", "multiple_choice"])
    def test_multiple_choice_labels(self, raw):
        """Test the multiple-choice spellings."""
        assert normalize_problem_type(raw) == ProblemType.MULTIPLE_CHOICE

    @pytest.mark.parametrize("raw", ["free-response", "주관식", "essay", None, 3])
    def test_everything_else_is_free_response(self, raw):
        """Test unknown labels default to free-response."""
        assert normalize_problem_type(raw) == ProblemType.FREE_RESPONSE


class TestParseResponse:
    """Tests for ProblemDetector.parse_response."""

    def _detector(self, fake_llm, prompts):
        return ProblemDetector(fake_llm(), prompts)

    def test_parses_problems(self, fake_llm, prompts):
        """Test a well-formed reply."""
        reply = _reply({
            "type": "multiple-choice",
            "problem_number": "3.",
            "body": "3. Which is largest?",
            "choices": ["① 1", "② 2"],
            "bbox": {"x_min": 0.1, "y_min": 0.2, "x_max": 0.9, "y_max": 0.4}
        })

        problems = self._detector(fake_llm, prompts).parse_response(reply, page_number=2)

        assert len(problems) == 1
        problem = problems[0]
        assert problem.page_number == 2
        assert problem.problem_type == ProblemType.MULTIPLE_CHOICE
        assert problem.problem_number == "3."
        assert problem.choices == "① 1\n② 2"
        assert problem.bbox == BBox(0.1, 0.2, 0.9, 0.4)

    def test_bbox_is_clamped(self, fake_llm, prompts):
        """Test out-of-range boxes are clamped."""
        reply = _reply({"body": "x", "bbox": [1.2, 0.5, -0.1, 0.3]})

        problem = self._detector(fake_llm, prompts).parse_response(reply, 1)[0]

        assert problem.bbox == BBox(0.0, 0.3, 1.0, 0.5)

    def test_wrapped_and_fenced_reply(self, fake_llm, prompts):
        """Test {"problems": [...]} inside a code fence."""
        reply = "```json\n" + json.dumps({"problems": [{"text": "1. A", "bbox": [0, 0, 1, 1]}]}) + "\n```"

        problems = self._detector(fake_llm, prompts).parse_response(reply, 1)

        assert [p.body for p in problems] == ["1. A"]

    def test_items_without_bbox_are_dropped(self, fake_llm, prompts):
        """Test entries missing a usable bbox are skipped."""
        reply = _reply({"body": "no box"}, {"body": "ok", "bbox": [0, 0, 0.5, 0.5]}, "junk")

        problems = self._detector(fake_llm, prompts).parse_response(reply, 1)

        assert [p.body for p in problems] == ["ok"]

    def test_not_json(self, fake_llm, prompts):
        """Test a non-JSON reply raises DetectionError."""
        with pytest.raises(DetectionError):
            self._detector(fake_llm, prompts).parse_response("I see two problems.", 1)


class TestDetectAll:
    """Tests for ProblemDetector.detect_all."""

    def _pages(self, png_factory, count):
        return [PageImage(image=png_factory(200, 300), page_number=i + 1) for i in range(count)]

    def test_flattens_in_page_order(self, fake_llm, prompts, png_factory, progress):
        """Test problems of all pages are returned page by page."""
        def handler(prompt, system_instruction, images, kwargs):
            return _reply({"body": "a", "bbox": [0, 0.1, 1, 0.2]}, {"body": "b", "bbox": [0, 0.5, 1, 0.6]})

        client = fake_llm(handler=handler)
        detector = ProblemDetector(client, prompts, model="vision-model")

        problems = asyncio.run(detector.detect_all(self._pages(png_factory, 3), progress))

        assert [p.page_number for p in problems] == [1, 1, 2, 2, 3, 3]
        assert len(client.calls) == 3
        assert client.calls[0]['kwargs']['model'] == "vision-model"
        assert len(client.calls[0]['images']) == 1

    def test_pages_run_concurrently(self, fake_llm, prompts, png_factory, progress):
        """Test all page calls are in flight together (no cap)."""
        state = {'active': 0, 'peak': 0}

        async def handler(prompt, system_instruction, images, kwargs):
            state['active'] += 1
            state['peak'] = max(state['peak'], state['active'])
            await asyncio.sleep(0.05)
            state['active'] -= 1
            return "[]"

        detector = ProblemDetector(fake_llm(handler=handler), prompts)
        asyncio.run(detector.detect_all(self._pages(png_factory, 5), progress))

        assert state['peak'] == 5

    def test_failed_page_contributes_nothing(self, fake_llm, prompts, png_factory, progress):
        """Test one page's failure does not abort the batch."""
        calls = {'n': 0}

        def handler(prompt, system_instruction, images, kwargs):
            calls['n'] += 1
            if calls['n'] == 2:
                raise RuntimeError("503 service unavailable")
            return _reply({"body": "ok", "bbox": [0, 0, 1, 0.5]})

        detector = ProblemDetector(fake_llm(handler=handler), prompts)
        problems = asyncio.run(detector.detect_all(self._pages(png_factory, 3), progress))

        assert len(problems) == 2
        assert any("Could not analyse page" in m for m in progress.messages)

    def test_malformed_reply_contributes_nothing(self, fake_llm, prompts, png_factory, progress):
        """Test a page with an unparseable reply yields no problems."""
        detector = ProblemDetector(fake_llm(responses=["not json"]), prompts)

        assert asyncio.run(detector.detect_all(self._pages(png_factory, 1), progress)) == []

    def test_missing_prompt_aborts(self, fake_llm, empty_db_manager, png_factory, progress):
        """Test a configuration error is re-raised."""
        detector = ProblemDetector(fake_llm(responses=["[]"]), PromptService(empty_db_manager))

        with pytest.raises(PromptNotFoundError):
            asyncio.run(detector.detect_all(self._pages(png_factory, 2), progress))

    def test_cancelled(self, fake_llm, prompts, png_factory, progress):
        """Test no calls are made once cancelled."""
        client = fake_llm(responses=["[]"])
        cancel = CancellationToken()
        cancel.cancel()

        result = asyncio.run(ProblemDetector(client, prompts).detect_all(
            self._pages(png_factory, 1), progress, cancel
        ))

        assert result == []
        assert client.calls == []
