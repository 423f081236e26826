import cv2
import numpy as np
import pytest

from docscan import AutoCropper, CropSettings

# Corners of the bright page drawn by make_page_photo, at 400x300
PAGE_CORNERS = [(60, 40), (330, 60), (350, 260), (40, 240)]


def encode_png(image: np.ndarray) -> bytes:
    ok, buffer = cv2.imencode(".png", image)
    assert ok
    return buffer.tobytes()


def make_bordered_square() -> np.ndarray:
    """White 100x100 frame with a 3px black square outline at (20, 20), 60x60."""
    image = np.full((100, 100, 3), 255, dtype=np.uint8)
    image[20:80, 20:80] = 0
    image[23:77, 23:77] = 255
    return image


def make_page_photo(scale: int = 1) -> np.ndarray:
    """Bright, perspective-skewed page on a dark desk."""
    image = np.full((300 * scale, 400 * scale, 3), 40, dtype=np.uint8)
    pts = np.array(PAGE_CORNERS, dtype=np.int32) * scale
    cv2.fillPoly(image, [pts.reshape(-1, 1, 2)], (230, 230, 230))
    return image


def make_desk_photo(scale: int = 4) -> np.ndarray:
    """Skewed page with lines of text on a lightly textured desk."""
    rng = np.random.default_rng(11)
    h, w = 300 * scale, 400 * scale
    grain = rng.integers(0, 24, size=(h, w), dtype=np.uint8)
    desk = cv2.GaussianBlur(grain, (0, 0), 3) + 50
    image = cv2.cvtColor(desk, cv2.COLOR_GRAY2BGR)

    pts = np.array(PAGE_CORNERS, dtype=np.int32) * scale
    cv2.fillPoly(image, [pts.reshape(-1, 1, 2)], (225, 225, 225))
    for i in range(8):
        y = (90 + 18 * i) * scale
        cv2.line(image, (110 * scale, y), (280 * scale, y), (60, 60, 60), max(1, scale // 2))
    return image


def encode_jpeg(image: np.ndarray) -> bytes:
    ok, buffer = cv2.imencode(".jpg", image, [cv2.IMWRITE_JPEG_QUALITY, 92])
    assert ok
    return buffer.tobytes()


@pytest.fixture
def bordered_square():
    return make_bordered_square()


@pytest.fixture
def page_photo():
    return make_page_photo()


@pytest.fixture
def solid_image():
    return np.full((100, 100, 3), 128, dtype=np.uint8)


@pytest.fixture
def cropper():
    # Generous budget so slow CI machines do not hit the timeout branch
    return AutoCropper(CropSettings(budget_ms=60_000))
