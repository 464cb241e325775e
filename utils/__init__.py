"""Utilities package - Helper functions for image, bbox, and text processing."""

from .image_utils import (
    is_pdf_bytes,
    open_pdf_document,
    render_pdf_page_to_png,
    normalize_image_bytes,
    preprocess_for_detection,
    png_bytes_to_base64,
    get_image_dimensions
)

from .bbox_utils import (
    parse_bbox,
    bbox_to_pixel_rect,
    crop_problem_image,
    placeholder_image
)

from .text_utils import (
    parse_problem_label,
    strip_code_fences,
    extract_json
)

__all__ = [
    # Image utils
    'is_pdf_bytes',
    'open_pdf_document',
    'render_pdf_page_to_png',
    'normalize_image_bytes',
    'preprocess_for_detection',
    'png_bytes_to_base64',
    'get_image_dimensions',

    # BBox utils
    'parse_bbox',
    'bbox_to_pixel_rect',
    'crop_problem_image',
    'placeholder_image',

    # Text utils
    'parse_problem_label',
    'strip_code_fences',
    'extract_json'
]
