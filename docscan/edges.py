"""Canny-style edge detection and edge-map dilation."""

import math
from typing import Tuple

import cv2
import numpy as np


class EdgeDetector:
    """Produces a thin binary edge map from a blurred grayscale image.

    Runs the three Canny stages: Sobel gradients, non-maximum suppression
    along the quantized gradient direction, and hysteresis thresholding
    relative to the strongest gradient in the image.
    """

    def __init__(
        self,
        high_threshold_ratio: float = 0.15,
        low_threshold_ratio: float = 0.5,
    ):
        """Initialize the edge detector.

        Args:
            high_threshold_ratio: Strong-edge threshold as a fraction of
                the maximum gradient magnitude.
            low_threshold_ratio: Weak-edge threshold as a fraction of the
                strong-edge threshold.
        """
        self.high_threshold_ratio = high_threshold_ratio
        self.low_threshold_ratio = low_threshold_ratio

    def detect(self, gray: np.ndarray) -> np.ndarray:
        """Run the full Canny pipeline.

        Args:
            gray: Blurred single-channel image.

        Returns:
            uint8 edge map with values 0 and 255.
        """
        magnitude, direction = self.gradients(gray)
        max_magnitude = float(magnitude.max()) if magnitude.size else 0.0
        if max_magnitude <= 0:
            return np.zeros(gray.shape, dtype=np.uint8)

        suppressed = self.suppress_non_maxima(magnitude, direction)
        high = max_magnitude * self.high_threshold_ratio
        low = high * self.low_threshold_ratio
        return self.hysteresis(suppressed, low, high)

    def gradients(self, gray: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        """3x3 Sobel gradient magnitude and direction (radians in [0, 2*pi))."""
        src = gray.astype(np.float32)
        gx = cv2.Sobel(src, cv2.CV_32F, 1, 0, ksize=3)
        gy = cv2.Sobel(src, cv2.CV_32F, 0, 1, ksize=3)
        return cv2.cartToPolar(gx, gy)

    def suppress_non_maxima(
        self, magnitude: np.ndarray, direction: np.ndarray
    ) -> np.ndarray:
        """Keep only pixels at least as strong as both gradient-wise neighbours.

        Directions are binned to 0, 45, 90 and 135 degrees; opposite
        directions share a bin. The one-pixel image frame is always cleared.
        """
        h, w = magnitude.shape
        result = np.zeros_like(magnitude)
        if h < 3 or w < 3:
            return result

        inner = direction[1:-1, 1:-1]
        # floor(angle / 45deg + 0.5) mod 4 folds [0, 2pi) onto four bins
        inner_bins = np.floor(inner * (4.0 / math.pi) + 0.5).astype(np.int32) & 3
        center = magnitude[1:-1, 1:-1]

        def shifted(dy, dx):
            return magnitude[1 + dy:h - 1 + dy, 1 + dx:w - 1 + dx]

        # (forward, backward) neighbour along the gradient for each bin
        pairs = {
            0: (shifted(0, 1), shifted(0, -1)),     # horizontal gradient
            1: (shifted(1, 1), shifted(-1, -1)),    # 45 degrees
            2: (shifted(1, 0), shifted(-1, 0)),     # vertical gradient
            3: (shifted(-1, 1), shifted(1, -1)),    # 135 degrees
        }

        keep = np.zeros(center.shape, dtype=bool)
        for b, (q, r) in pairs.items():
            keep |= (inner_bins == b) & (center >= q) & (center >= r)

        result[1:-1, 1:-1] = np.where(keep, center, 0)
        return result

    def hysteresis(
        self, suppressed: np.ndarray, low: float, high: float
    ) -> np.ndarray:
        """Keep weak edges that are 8-connected to a strong edge.

        Every pixel at or above ``low`` is labelled into 8-connected
        components; a component survives when any of its pixels reaches
        ``high``.
        """
        candidate = (suppressed >= low) & (suppressed > 0)
        count, labels = cv2.connectedComponents(candidate.astype(np.uint8), connectivity=8)
        if count <= 1:
            return np.zeros(suppressed.shape, dtype=np.uint8)

        keep = np.zeros(count, dtype=bool)
        keep[labels[candidate & (suppressed >= high)]] = True
        keep[0] = False
        return np.where(keep[labels], 255, 0).astype(np.uint8)


def dilate_edges(edges: np.ndarray) -> np.ndarray:
    """Close small gaps by growing every edge pixel into its 3x3 neighbourhood.

    Args:
        edges: Binary uint8 edge map (0/255).

    Returns:
        New binary map where any pixel touching an edge is foreground.
    """
    binary = np.where(edges > 128, 255, 0).astype(np.uint8)
    return cv2.dilate(binary, np.ones((3, 3), dtype=np.uint8))
