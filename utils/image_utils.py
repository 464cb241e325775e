"""
Image utilities for the explanation pipeline.

Handles file sniffing, PDF page rendering, image normalization and
detection preprocessing. All images travel between stages as PNG bytes.
"""
import base64
from io import BytesIO
from typing import Tuple

import fitz  # PyMuPDF
from PIL import Image, ImageEnhance, ImageOps

from core.constants import PDF_MAGIC, DETECTION_CONTRAST, DETECTION_BRIGHTNESS


def is_pdf_bytes(data: bytes) -> bool:
    """
    Check the magic-number prefix of a file.

    Only the leading bytes are inspected; extensions and declared MIME
    types are ignored.
    """
    return data[:len(PDF_MAGIC)] == PDF_MAGIC


def open_pdf_document(data: bytes) -> fitz.Document:
    """
    Open a PDF from raw bytes.

    Raises:
        ValueError: If the document has no pages
        Exception from PyMuPDF if the document cannot be parsed
    """
    doc = fitz.open(stream=data, filetype="pdf")
    if doc.page_count == 0:
        doc.close()
        raise ValueError("PDF has no pages")
    return doc


def render_pdf_page_to_png(doc: fitz.Document, page_index: int, target_dpi: int = 200) -> bytes:
    """
    Render one PDF page to PNG bytes.

    Args:
        doc: Open PyMuPDF document
        page_index: 0-indexed page number
        target_dpi: Target DPI for rendering (default 200)

    Returns:
        PNG-encoded page image
    """
    page = doc.load_page(page_index)

    # Render at target DPI
    mat = fitz.Matrix(target_dpi / 72, target_dpi / 72)
    pix = page.get_pixmap(matrix=mat, alpha=False)
    return pix.tobytes("png")


def normalize_image_bytes(data: bytes, max_size: int = 2048) -> bytes:
    """
    Decode a raster image and re-encode it as RGB PNG.

    Args:
        data: Raw image bytes in any format Pillow understands
        max_size: Maximum dimension (width or height) before resizing

    Returns:
        PNG-encoded image
    """
    img = Image.open(BytesIO(data))

    # Fix EXIF orientation
    img = ImageOps.exif_transpose(img)

    if img.mode != 'RGB':
        img = img.convert('RGB')

    if max(img.size) > max_size:
        img.thumbnail((max_size, max_size), Image.Resampling.LANCZOS)

    return image_to_png_bytes(img)


def preprocess_for_detection(png_bytes: bytes, max_width: int = 1500) -> bytes:
    """
    Downscale and convert a page to high-contrast greyscale for detection.

    Coordinates returned by detection are normalized, so the smaller
    image does not affect cropping from the full-resolution page.
    """
    img = Image.open(BytesIO(png_bytes))

    scale = min(1.0, max_width / img.width)
    if scale < 1.0:
        new_size = (max(1, int(img.width * scale)), max(1, int(img.height * scale)))
        img = img.resize(new_size, Image.Resampling.LANCZOS)

    img = ImageOps.grayscale(img)
    img = ImageEnhance.Contrast(img).enhance(DETECTION_CONTRAST)
    img = ImageEnhance.Brightness(img).enhance(DETECTION_BRIGHTNESS)
    return image_to_png_bytes(img)


def image_to_png_bytes(img: Image.Image) -> bytes:
    buf = BytesIO()
    img.save(buf, format='PNG')
    return buf.getvalue()


def png_bytes_to_base64(data: bytes) -> str:
    return base64.b64encode(data).decode()


def decode_png_bytes(data: bytes) -> Image.Image:
    """
    Decode image bytes to a fully loaded PIL Image.

    Raises:
        PIL.UnidentifiedImageError / OSError on corrupt data
    """
    img = Image.open(BytesIO(data))
    img.load()
    return img


def get_image_dimensions(data: bytes) -> Tuple[int, int]:
    """Get (width, height) of encoded image bytes."""
    return Image.open(BytesIO(data)).size
