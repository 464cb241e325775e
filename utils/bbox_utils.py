"""
Bounding box utilities for the explanation pipeline.

Handles parsing detection boxes, clamping, pixel conversion and cropping.
"""
import math
from typing import Optional, Tuple

from PIL import Image

from core.exceptions import CropError
from core.models import BBox
from utils.image_utils import decode_png_bytes, image_to_png_bytes


def parse_bbox(raw) -> Optional[BBox]:
    """
    Parse a bounding box reported by the detection service.

    Accepts a dict with x_min/y_min/x_max/y_max keys or a 4-item list
    [x_min, y_min, x_max, y_max]. Coordinates outside [0, 1] are clamped
    to the page edge.

    Returns:
        Clamped BBox, or None if the value cannot be parsed
    """
    try:
        if isinstance(raw, dict):
            coords = [float(raw[k]) for k in ('x_min', 'y_min', 'x_max', 'y_max')]
        elif isinstance(raw, (list, tuple)) and len(raw) == 4:
            coords = [float(v) for v in raw]
        else:
            return None
    except (KeyError, TypeError, ValueError):
        return None

    if any(math.isnan(v) for v in coords):
        return None

    return BBox(*coords).clamped()


def bbox_to_pixel_rect(
    bbox: BBox,
    img_width: int,
    img_height: int,
    padding: int = 0
) -> Tuple[int, int, int, int]:
    """
    Convert a normalized bbox to a padded pixel rectangle.

    Padding is in source pixels; the rectangle is clamped to image bounds.

    Returns:
        (left, top, right, bottom)
    """
    left = max(0, math.floor(bbox.x_min * img_width) - padding)
    top = max(0, math.floor(bbox.y_min * img_height) - padding)
    right = min(img_width, math.ceil(bbox.x_max * img_width) + padding)
    bottom = min(img_height, math.ceil(bbox.y_max * img_height) + padding)
    return left, top, right, bottom


def placeholder_image() -> bytes:
    """Minimal 1x1 white PNG used for zero-area regions."""
    return image_to_png_bytes(Image.new('RGB', (1, 1), color='white'))


def crop_problem_image(page_png: bytes, bbox: BBox, padding: int = 20) -> bytes:
    """
    Crop a problem region from a page image.

    Args:
        page_png: Encoded page image
        bbox: Normalized bounding box (clamped before use)
        padding: Fixed padding in source pixels

    Returns:
        PNG-encoded crop; a 1x1 placeholder for a degenerate box

    Raises:
        CropError: If the page image cannot be decoded
    """
    bbox = bbox.clamped()
    if bbox.is_degenerate:
        return placeholder_image()

    try:
        image = decode_png_bytes(page_png)
    except Exception as e:
        raise CropError(f"Could not decode page image for cropping: {e}") from e

    if image.mode != 'RGB':
        image = image.convert('RGB')

    left, top, right, bottom = bbox_to_pixel_rect(bbox, image.width, image.height, padding)
    if right <= left or bottom <= top:
        return placeholder_image()

    return image_to_png_bytes(image.crop((left, top, right, bottom)))
