"""
Unit tests for services.numbering module.
"""
import asyncio

import pytest

from core.constants import FAILURE_MESSAGE, PLACEHOLDER_MESSAGE
from core.models import BBox, DetectedProblem, PageImage, ProblemType
from services.numbering import (
    NumberingAssembler,
    assign_problem_numbers,
    parse_reported_label,
    reading_order
)
from utils.image_utils import get_image_dimensions


def _numbers(numbered):
    return [n.problem_number for n in numbered]


class TestReadingOrder:
    """Tests for reading_order function."""

    def test_page_then_top_edge(self, problem_factory):
        """Test sort by page number, then y_min."""
        a = problem_factory(page_number=2, y_min=0.1, body="a")
        b = problem_factory(page_number=1, y_min=0.6, body="b")
        c = problem_factory(page_number=1, y_min=0.2, body="c")

        assert [p.body for p in reading_order([a, b, c])] == ["c", "b", "a"]


class TestParseReportedLabel:
    """Tests for parse_reported_label function."""

    @pytest.mark.parametrize("label,expected", [
        ("3.", 3), ("[12]", 12), ("5번", 5), ("7", 7), (" 42 ", 42), (None, None), ("", None), ("A", None),
    ])
    def test_labels(self, label, expected):
        """Test reported label formats, including bare digits."""
        assert parse_reported_label(label) == expected


class TestAssignProblemNumbers:
    """Tests for assign_problem_numbers function."""

    def test_two_page_scenario(self, problem_factory):
        """Test a labeled and an unlabeled problem give [1, 1000]."""
        problems = [
            problem_factory(page_number=2, body="Find the area of the triangle."),
            problem_factory(page_number=1, body="1. Solve for x.", label="1."),
        ]

        assert _numbers(assign_problem_numbers(problems)) == [1, 1000]

    def test_reported_label_preferred_over_body(self, problem_factory):
        """Test the reported label wins over the body text."""
        problems = [problem_factory(body="4. text", label="[9]")]

        assert _numbers(assign_problem_numbers(problems)) == [9]

    def test_body_label_used_when_reported_label_missing(self, problem_factory):
        """Test falling back to the body."""
        problems = [problem_factory(body="[15] text", label="unreadable")]

        assert _numbers(assign_problem_numbers(problems)) == [15]

    def test_sentinels_follow_reading_order(self, problem_factory):
        """Test unlabeled problems get 1000 + index among unlabeled ones."""
        problems = [
            problem_factory(page_number=1, y_min=0.7, body="second unlabeled"),
            problem_factory(page_number=1, y_min=0.4, body="2. labeled"),
            problem_factory(page_number=1, y_min=0.1, body="first unlabeled"),
        ]

        numbered = assign_problem_numbers(problems)

        assert _numbers(numbered) == [2, 1000, 1001]
        assert [n.problem.body for n in numbered] == ["2. labeled", "first unlabeled", "second unlabeled"]

    def test_duplicate_label_gets_sentinel(self, problem_factory):
        """Test a repeated label keeps the first in reading order."""
        problems = [
            problem_factory(page_number=2, body="1. again"),
            problem_factory(page_number=1, body="1. first"),
        ]

        numbered = assign_problem_numbers(problems)

        assert _numbers(numbered) == [1, 1000]
        assert numbered[0].problem.body == "1. first"

    def test_sentinel_skips_used_label(self, problem_factory):
        """Test sentinels never collide with a printed 1000."""
        problems = [
            problem_factory(y_min=0.1, body="1000. big label"),
            problem_factory(y_min=0.5, body="no label"),
        ]

        assert _numbers(assign_problem_numbers(problems)) == [1000, 1001]

    def test_numbers_are_unique(self, problem_factory):
        """Test uniqueness across a mixed batch."""
        problems = [
            problem_factory(page_number=p, y_min=y, body=body)
            for p in (1, 2)
            for y, body in ((0.1, "1. a"), (0.4, "b"), (0.7, "1. c"), (0.8, "[2] d"))
        ]

        numbers = _numbers(assign_problem_numbers(problems))

        assert len(numbers) == len(problems)
        assert len(set(numbers)) == len(numbers)
        assert numbers == sorted(numbers)

    def test_empty(self):
        """Test no problems."""
        assert assign_problem_numbers([]) == []


class TestNumberingAssembler:
    """Tests for NumberingAssembler.assemble."""

    def test_builds_loading_drafts(self, problem_factory, page_png, progress):
        """Test drafts are loading, cropped and announced in number order."""
        problems = [
            problem_factory(page_number=1, y_min=0.5, body="2. second", choices="① a"),
            problem_factory(page_number=1, y_min=0.1, body="1. first"),
        ]
        pages = [PageImage(image=page_png, page_number=1)]

        drafts = asyncio.run(NumberingAssembler(crop_padding=0).assemble(problems, pages, progress))

        assert [d.problem_number for d in drafts] == [1, 2]
        assert all(d.is_loading and d.markdown == PLACEHOLDER_MESSAGE for d in drafts)
        assert drafts[1].original_problem_text == "2. second\n① a"
        # 0.8 x 0.2 of a 400x600 page
        width, height = get_image_dimensions(drafts[0].problem_image)
        assert abs(width - 320) <= 1  # Allow small rounding
        assert abs(height - 120) <= 1
        assert [e.id for e in progress.history] == [d.id for d in drafts]

    def test_degenerate_box_gets_placeholder(self, page_png, progress):
        """Test a zero-area box produces a 1x1 image, not an error."""
        problem = DetectedProblem(
            bbox=BBox(0.5, 0.5, 0.5, 0.9),
            problem_type=ProblemType.FREE_RESPONSE,
            body="1. x",
            page_number=1
        )

        drafts = asyncio.run(NumberingAssembler().assemble(
            [problem], [PageImage(image=page_png, page_number=1)], progress
        ))

        assert not drafts[0].is_error
        assert get_image_dimensions(drafts[0].problem_image) == (1, 1)

    def test_crop_failure_is_isolated(self, problem_factory, page_png, progress):
        """Test a corrupt page fails only its own records."""
        problems = [
            problem_factory(page_number=1, body="1. good"),
            problem_factory(page_number=2, body="2. bad page"),
        ]
        pages = [
            PageImage(image=page_png, page_number=1),
            PageImage(image=b"corrupt", page_number=2),
        ]

        drafts = asyncio.run(NumberingAssembler().assemble(problems, pages, progress))

        assert len(drafts) == 2
        good, bad = drafts
        assert good.is_loading and good.problem_image
        assert bad.is_error and not bad.is_loading
        assert bad.markdown == FAILURE_MESSAGE
        assert bad.problem_image is None

    def test_missing_page_image(self, problem_factory, progress):
        """Test a problem whose page is unknown becomes an error record."""
        drafts = asyncio.run(NumberingAssembler().assemble(
            [problem_factory(page_number=5, body="1. x")], [], progress
        ))

        assert drafts[0].is_error
