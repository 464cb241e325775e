"""
Unit tests for services.page_extractor module.
"""
import asyncio

import pytest

import services.page_extractor as page_extractor_module
from core.exceptions import ExtractionError
from core.models import InputFile
from services.cancellation import CancellationToken
from services.page_extractor import PageExtractor
from utils.image_utils import get_image_dimensions


class TestPageExtractor:
    """Tests for PageExtractor."""

    def test_pdf_pages_in_order(self, sample_pdf_bytes, progress):
        """Test each PDF page becomes one page image."""
        extractor = PageExtractor(render_dpi=72)

        pages = asyncio.run(extractor.extract([InputFile("a.pdf", sample_pdf_bytes)], progress))

        assert [p.page_number for p in pages] == [1, 2]
        assert all(p.source_name == "a.pdf" for p in pages)
        assert get_image_dimensions(pages[0].image) == (300, 400)
        assert any("page 1/2" in m for m in progress.messages)

    def test_single_image(self, png_factory, progress):
        """Test an image file becomes one page."""
        pages = asyncio.run(PageExtractor().extract(
            [InputFile("scan.png", png_factory(100, 80))], progress
        ))

        assert len(pages) == 1
        assert pages[0].page_number == 1
        assert get_image_dimensions(pages[0].image) == (100, 80)

    def test_numbering_continues_across_files(self, pdf_factory, png_factory, progress):
        """Test page numbers run on from one file to the next."""
        files = [
            InputFile("a.pdf", pdf_factory(page_count=2)),
            InputFile("b.png", png_factory(50, 50)),
            InputFile("c.pdf", pdf_factory(page_count=1)),
        ]

        pages = asyncio.run(PageExtractor(render_dpi=72).extract(files, progress))

        assert [p.page_number for p in pages] == [1, 2, 3, 4]
        assert [p.source_name for p in pages] == ["a.pdf", "a.pdf", "b.png", "c.pdf"]

    def test_failed_page_is_skipped(self, pdf_factory, progress, monkeypatch):
        """Test one page failing to render does not stop the others."""
        real_render = page_extractor_module.render_pdf_page_to_png

        def flaky_render(doc, index, dpi):
            if index == 1:
                raise RuntimeError("broken page")
            return real_render(doc, index, dpi)

        monkeypatch.setattr(page_extractor_module, 'render_pdf_page_to_png', flaky_render)

        pages = asyncio.run(PageExtractor(render_dpi=72).extract(
            [InputFile("a.pdf", pdf_factory(page_count=3))], progress
        ))

        assert [p.page_number for p in pages] == [1, 3]
        assert any("Skipped page 2" in m for m in progress.messages)

    def test_unopenable_pdf_falls_back_to_image(self, png_factory, progress, monkeypatch):
        """Test a document that fails to open is read as a single image."""
        def broken_open(data):
            raise RuntimeError("cannot open broken document")

        monkeypatch.setattr(page_extractor_module, 'is_pdf_bytes', lambda data: True)
        monkeypatch.setattr(page_extractor_module, 'open_pdf_document', broken_open)

        pages = asyncio.run(PageExtractor().extract(
            [InputFile("odd.pdf", png_factory(60, 40))], progress
        ))

        assert len(pages) == 1
        assert get_image_dimensions(pages[0].image) == (60, 40)

    def test_unreadable_file_raises(self, progress):
        """Test a file that is neither PDF nor image raises ExtractionError."""
        with pytest.raises(ExtractionError):
            asyncio.run(PageExtractor().extract([InputFile("x.bin", b"\x00garbage")], progress))

    def test_corrupt_pdf_raises(self, progress):
        """Test a corrupt PDF that is not an image either raises ExtractionError."""
        with pytest.raises(ExtractionError):
            asyncio.run(PageExtractor().extract(
                [InputFile("bad.pdf", b"%PDF-1.4 truncated garbage")], progress
            ))

    def test_cancelled_before_start(self, sample_pdf_bytes, progress):
        """Test nothing is extracted after cancellation."""
        cancel = CancellationToken()
        cancel.cancel()

        pages = asyncio.run(PageExtractor().extract(
            [InputFile("a.pdf", sample_pdf_bytes)], progress, cancel
        ))

        assert pages == []
