"""Post-crop page edits: quarter-turn rotation and color filters."""

import enum
import logging

import cv2
import numpy as np

from .codec import decode_image, encode_image

logger = logging.getLogger(__name__)

# Contrast limit and tile grid of the "enhanced" filter
CLAHE_CLIP_LIMIT = 2.0
CLAHE_TILE_GRID = (8, 8)

_ROTATIONS = {
    90: cv2.ROTATE_90_CLOCKWISE,
    180: cv2.ROTATE_180,
    270: cv2.ROTATE_90_COUNTERCLOCKWISE,
}


class ColorFilter(enum.Enum):
    """Color treatments applied to a flattened page."""

    NONE = "none"
    GRAYSCALE = "grayscale"
    ENHANCED = "enhanced"
    BLACK_WHITE = "black_white"


def normalize_rotation(degrees: int) -> int:
    """Reduce a clockwise rotation to 0, 90, 180 or 270.

    Raises:
        ValueError: If ``degrees`` is not a multiple of 90.
    """
    if degrees % 90 != 0:
        raise ValueError(f"rotation must be a multiple of 90 degrees, got {degrees}")
    return degrees % 360


def rotate_image(image: np.ndarray, degrees: int) -> np.ndarray:
    """Rotate clockwise by a multiple of 90 degrees."""
    degrees = normalize_rotation(degrees)
    if degrees == 0:
        return image.copy()
    return cv2.rotate(image, _ROTATIONS[degrees])


def _to_gray(image: np.ndarray) -> np.ndarray:
    if image.ndim == 2:
        return image.copy()
    return cv2.cvtColor(image, cv2.COLOR_BGR2GRAY)


def apply_color_filter(image: np.ndarray, color_filter: ColorFilter) -> np.ndarray:
    """
    Apply one color filter to a BGR or grayscale page.

    Args:
        image: uint8 page image
        color_filter: Treatment to apply

    Returns:
        New image; GRAYSCALE and BLACK_WHITE return a single channel
    """
    if color_filter is ColorFilter.NONE:
        return image.copy()
    if color_filter is ColorFilter.GRAYSCALE:
        return _to_gray(image)
    if color_filter is ColorFilter.BLACK_WHITE:
        _, bw = cv2.threshold(_to_gray(image), 0, 255, cv2.THRESH_BINARY + cv2.THRESH_OTSU)
        return bw

    # Enhanced: contrast-limited equalization of each channel
    clahe = cv2.createCLAHE(clipLimit=CLAHE_CLIP_LIMIT, tileGridSize=CLAHE_TILE_GRID)
    if image.ndim == 2:
        return clahe.apply(image)
    return cv2.merge([clahe.apply(channel) for channel in cv2.split(image)])


def edit_page(
    image: np.ndarray,
    rotation: int = 0,
    color_filter: ColorFilter = ColorFilter.NONE,
) -> np.ndarray:
    """Rotate, then filter, a flattened page."""
    return apply_color_filter(rotate_image(image, rotation), color_filter)


def apply_image_editing(
    image_bytes: bytes,
    rotation: int = 0,
    color_filter: ColorFilter = ColorFilter.NONE,
    quality: int = 95,
) -> bytes:
    """
    Edit an already encoded page and re-encode it as JPEG.

    Args:
        image_bytes: Encoded page, for example an auto-crop result
        rotation: Clockwise rotation in multiples of 90 degrees
        color_filter: Color treatment
        quality: JPEG quality of the result

    Returns:
        Encoded edited page

    Raises:
        DecodeError: If the bytes cannot be decoded
        ValueError: If the rotation is not a multiple of 90
    """
    edited = edit_page(decode_image(image_bytes), rotation, color_filter)
    logger.debug("Edited page: rotation %d, filter %s", rotation, color_filter.value)
    return encode_image(edited, quality)
