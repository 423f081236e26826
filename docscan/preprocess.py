"""Downscaling and denoising of the detection working copy."""

from dataclasses import dataclass

import cv2
import numpy as np


@dataclass(frozen=True)
class WorkingImage:
    """Blurred grayscale working copy plus the factor back to the original."""

    image: np.ndarray
    scale: float
    inverse_scale: float


class Preprocessor:
    """Prepares a decoded image for edge detection.

    The longer edge is reduced to ``max_dimension`` pixels, the image is
    converted to luminance and blurred to suppress sensor noise.
    """

    def __init__(self, max_dimension: int = 800, blur_kernel_size: int = 5):
        """Initialize the preprocessor.

        Args:
            max_dimension: Longest allowed side of the working image.
            blur_kernel_size: Gaussian kernel size (5 means radius 2).
        """
        self.max_dimension = max_dimension
        self.blur_kernel_size = blur_kernel_size

    def downscale(self, image: np.ndarray) -> WorkingImage:
        """Shrink the image so its longer side fits ``max_dimension``."""
        h, w = image.shape[:2]
        scale = 1.0
        if max(h, w) > self.max_dimension:
            scale = self.max_dimension / max(h, w)
            new_size = (max(1, round(w * scale)), max(1, round(h * scale)))
            resized = cv2.resize(image, new_size, interpolation=cv2.INTER_AREA)
        else:
            resized = image.copy()
        return WorkingImage(resized, scale, 1.0 / scale)

    def to_grayscale(self, image: np.ndarray) -> np.ndarray:
        """Luminance (0.299 R + 0.587 G + 0.114 B) of a BGR image."""
        if image.ndim == 2:
            return image.copy()
        if image.shape[2] == 4:
            return cv2.cvtColor(image, cv2.COLOR_BGRA2GRAY)
        return cv2.cvtColor(image, cv2.COLOR_BGR2GRAY)

    def blur(self, gray: np.ndarray) -> np.ndarray:
        k = self.blur_kernel_size
        return cv2.GaussianBlur(gray, (k, k), 0)

    def prepare(self, image: np.ndarray) -> WorkingImage:
        """Downscale, convert to grayscale and blur.

        Args:
            image: Decoded image at native resolution (BGR or grayscale).

        Returns:
            WorkingImage holding the blurred grayscale copy and its scale.
        """
        working = self.downscale(image)
        gray = self.to_grayscale(working.image)
        return WorkingImage(self.blur(gray), working.scale, working.inverse_scale)
