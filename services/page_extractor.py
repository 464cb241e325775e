"""
Page Extractor - Turns uploaded files into page images.

PDFs (recognized by magic number) are rendered page by page; a page that
fails to render is skipped. A file that cannot be opened as a PDF is
treated as a single raster image.
"""
import asyncio
import logging
from typing import List, Optional

import fitz  # PyMuPDF

from core.exceptions import ExtractionError
from core.models import InputFile, PageImage
from services.cancellation import CancellationToken
from services.progress import ProgressSink
from utils.image_utils import (
    is_pdf_bytes,
    open_pdf_document,
    render_pdf_page_to_png,
    normalize_image_bytes
)

logger = logging.getLogger(__name__)


class PageExtractor:
    """Extracts ordered page images from input files."""

    def __init__(self, render_dpi: int = 200, max_image_size: int = 2048):
        """
        Initialize page extractor.

        Args:
            render_dpi: DPI for rendering PDF pages
            max_image_size: Maximum dimension for single-image inputs
        """
        self.render_dpi = render_dpi
        self.max_image_size = max_image_size

    async def extract(
        self,
        files: List[InputFile],
        progress: ProgressSink,
        cancel: Optional[CancellationToken] = None
    ) -> List[PageImage]:
        """
        Extract pages from all files, numbered consecutively across files.

        Raises:
            ExtractionError: If a file is neither a readable PDF nor an image
        """
        pages: List[PageImage] = []
        next_page_number = 1

        for file in files:
            if cancel and cancel.is_cancelled:
                break

            file_pages, page_count = await self.extract_file(
                file, next_page_number, progress, cancel
            )
            pages.extend(file_pages)
            next_page_number += page_count

        return pages

    async def extract_file(
        self,
        file: InputFile,
        first_page_number: int,
        progress: ProgressSink,
        cancel: Optional[CancellationToken] = None
    ) -> tuple:
        """
        Extract pages from one file.

        Returns:
            Tuple of (pages, number of page slots the file occupies)
        """
        if is_pdf_bytes(file.data):
            try:
                doc = await asyncio.to_thread(open_pdf_document, file.data)
            except Exception as e:
                logger.warning(
                    "Could not open '%s' as PDF, falling back to image: %s", file.name, e
                )
            else:
                try:
                    pages = await self._render_document(
                        doc, file.name, first_page_number, progress, cancel
                    )
                    return pages, doc.page_count
                finally:
                    doc.close()

        page = await self._load_image(file, first_page_number, progress)
        return [page], 1

    async def _render_document(
        self,
        doc: fitz.Document,
        name: str,
        first_page_number: int,
        progress: ProgressSink,
        cancel: Optional[CancellationToken]
    ) -> List[PageImage]:
        total = doc.page_count
        progress.status(f"Rendering {total} pages of '{name}'...")

        pages = []
        for index in range(total):
            if cancel and cancel.is_cancelled:
                break

            progress.status(f"Rendering page {index + 1}/{total} of '{name}'...")
            try:
                image = await asyncio.to_thread(
                    render_pdf_page_to_png, doc, index, self.render_dpi
                )
            except Exception as e:
                logger.warning("Failed to render page %d of '%s': %s", index + 1, name, e)
                progress.status(f"Skipped page {index + 1} of '{name}' (could not be rendered).")
                continue

            pages.append(PageImage(
                image=image,
                page_number=first_page_number + index,
                source_name=name
            ))
            progress.status(f"Rendered page {index + 1}/{total} of '{name}'.")

        return pages

    async def _load_image(
        self,
        file: InputFile,
        page_number: int,
        progress: ProgressSink
    ) -> PageImage:
        progress.status(f"Processing image '{file.name}'...")
        try:
            image = await asyncio.to_thread(
                normalize_image_bytes, file.data, self.max_image_size
            )
        except Exception as e:
            raise ExtractionError(
                f"'{file.name}' could not be read as a document or an image: {e}"
            ) from e

        progress.status(f"Processed image '{file.name}'.")
        return PageImage(image=image, page_number=page_number, source_name=file.name)
