"""
Image codec helpers: decoding uploads, encoding crops, and debug overlays.
"""

import io
import logging
from typing import Iterable

import cv2
import numpy as np
from PIL import Image, ImageOps, UnidentifiedImageError

from .errors import DecodeError, EncodeError
from .geometry import to_points

logger = logging.getLogger(__name__)


def decode_image(image_bytes: bytes) -> np.ndarray:
    """
    Decode raw image bytes into a BGR array.

    EXIF orientation is applied so the pixels are upright.

    Args:
        image_bytes: Encoded image (JPEG, PNG, ...)

    Returns:
        uint8 array of shape (height, width, 3) in BGR order

    Raises:
        DecodeError: If the bytes are empty or not a readable image
    """
    if not image_bytes:
        raise DecodeError("Failed to decode image: no data")

    try:
        image = Image.open(io.BytesIO(image_bytes))
        image.load()
        image = ImageOps.exif_transpose(image)
    except (UnidentifiedImageError, OSError, ValueError, EOFError,
            Image.DecompressionBombError) as exc:
        raise DecodeError(f"Failed to decode image: {exc}") from exc

    # Convert to RGB if necessary
    if image.mode != 'RGB':
        logger.debug("Converting %s image to RGB", image.mode)
        image = image.convert('RGB')

    return cv2.cvtColor(np.array(image), cv2.COLOR_RGB2BGR)


def encode_image(image: np.ndarray, quality: int = 95, format: str = 'JPEG') -> bytes:
    """
    Encode a BGR or grayscale array.

    Args:
        image: uint8 image array
        quality: JPEG quality (ignored for PNG)
        format: 'JPEG' or 'PNG'

    Returns:
        Encoded bytes

    Raises:
        EncodeError: If OpenCV rejects the image
    """
    if format.upper() in ('JPEG', 'JPG'):
        ext = '.jpg'
        params = [cv2.IMWRITE_JPEG_QUALITY, int(quality)]
    elif format.upper() == 'PNG':
        ext = '.png'
        params = [cv2.IMWRITE_PNG_COMPRESSION, 3]
    else:
        raise EncodeError(f"Unsupported output format: {format}")

    if image is None or image.size == 0:
        raise EncodeError("Cannot encode an empty image")

    try:
        ok, buffer = cv2.imencode(ext, image, params)
    except cv2.error as exc:
        raise EncodeError(f"OpenCV failed to encode {image.shape} image as {format}: {exc}") from exc
    if not ok:
        raise EncodeError(f"OpenCV failed to encode {image.shape} image as {format}")
    return buffer.tobytes()


def draw_corners(
    image: np.ndarray,
    corners: Iterable,
    color=(80, 175, 76),
    thickness: int = 2,
) -> np.ndarray:
    """
    Draw a quadrilateral and its corner handles on a copy of the image.

    Args:
        image: BGR image
        corners: 4 points in image coordinates
        color: BGR line color
        thickness: Line thickness in pixels

    Returns:
        New image with the overlay drawn
    """
    overlay = image.copy()
    if overlay.ndim == 2:
        overlay = cv2.cvtColor(overlay, cv2.COLOR_GRAY2BGR)

    pts = np.array([(p.x, p.y) for p in to_points(corners)], dtype=np.float64)
    poly = np.rint(pts).astype(np.int32).reshape(-1, 1, 2)
    cv2.polylines(overlay, [poly], True, color, thickness, cv2.LINE_AA)

    radius = max(3, thickness * 3)
    for x, y in poly.reshape(-1, 2):
        cv2.circle(overlay, (int(x), int(y)), radius, (255, 255, 255), -1, cv2.LINE_AA)
        cv2.circle(overlay, (int(x), int(y)), radius, color, thickness, cv2.LINE_AA)

    return overlay
