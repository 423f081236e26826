"""Contour tracing and reduction of the best contour to four corners."""

import logging
import math
from typing import List, Optional, Tuple

import cv2
import numpy as np

from .errors import DegenerateQuadrilateralError
from .geometry import Quadrilateral, polygon_area

logger = logging.getLogger(__name__)


class ContourTracer:
    """Extracts 8-connected foreground regions from a binary map."""

    def __init__(self, min_points: int = 10):
        """Initialize the tracer.

        Args:
            min_points: Contours with fewer pixels are dropped as noise.
        """
        self.min_points = min_points

    def trace(self, binary: np.ndarray) -> List[np.ndarray]:
        """Trace every connected foreground region.

        Pixels above 128 are foreground. Regions are 8-connected components
        labelled by OpenCV; each region's pixels are listed in raster order.

        Args:
            binary: uint8 map (0/255).

        Returns:
            List of (N, 2) int arrays of (x, y) pixel coordinates, in
            raster order of each region's first pixel.
        """
        _, w = binary.shape
        foreground = (binary > 128).astype(np.uint8)
        count, labels = cv2.connectedComponents(foreground, connectivity=8)
        if count <= 1:
            return []

        flat = labels.ravel()
        pixels = np.flatnonzero(flat)
        # stable sort keeps each region's pixels in raster order
        order = np.argsort(flat[pixels], kind="stable")
        pixels = pixels[order]
        sizes = np.bincount(flat[pixels], minlength=count)[1:]
        regions = np.split(pixels, np.cumsum(sizes)[:-1])

        contours = []
        for region in sorted(regions, key=lambda r: r[0]):
            if len(region) < self.min_points:
                continue
            ys, xs = np.divmod(region, w)
            contours.append(np.stack([xs, ys], axis=1).astype(np.int64))

        return contours


def contour_area(contour: np.ndarray) -> float:
    """Shoelace area of the contour's ordered boundary (its convex hull)."""
    if len(contour) < 3:
        return 0.0
    hull = cv2.convexHull(contour.astype(np.int32).reshape(-1, 1, 2))
    return polygon_area(hull.reshape(-1, 2))


class QuadrilateralApproximator:
    """Picks the largest contour and reduces it to four ordered corners."""

    def __init__(
        self,
        min_area: float = 10000.0,
        min_area_ratio: float = 0.1,
        corner_margin: float = 0.1,
    ):
        """Initialize the approximator.

        Args:
            min_area: Minimum contour area in working pixels.
            min_area_ratio: Cap on ``min_area`` as a fraction of the image
                area, so small frames can still hold a document.
            corner_margin: Width of the corner search band as a fraction
                of the contour's bounding box.
        """
        self.min_area = min_area
        self.min_area_ratio = min_area_ratio
        self.corner_margin = corner_margin

    def select_largest(
        self, contours: List[np.ndarray]
    ) -> Tuple[Optional[np.ndarray], float]:
        """Return the contour with the largest area, and that area.

        Contours are connected pixel regions, so an n-pixel region lies in a
        disk of radius n*sqrt(2) and its hull area is at most 2*pi*n**2.
        """
        best, best_area = None, 0.0
        for contour in contours:
            if best is not None and 2 * math.pi * len(contour) ** 2 <= best_area:
                continue
            area = contour_area(contour)
            if best is None or area > best_area:
                best, best_area = contour, area
        return best, best_area

    def approximate(
        self, contours: List[np.ndarray], image_shape: Tuple[int, ...]
    ) -> Tuple[Optional[Quadrilateral], float]:
        """Find the document quadrilateral among the traced contours.

        Args:
            contours: Output of ContourTracer.trace.
            image_shape: Shape of the working image.

        Returns:
            Tuple of (quadrilateral or None, area of the chosen contour).
        """
        contour, area = self.select_largest(contours)
        if contour is None:
            return None, 0.0

        image_area = float(image_shape[0] * image_shape[1])
        min_area = min(self.min_area, self.min_area_ratio * image_area)
        if area < min_area:
            logger.debug("Largest contour area %.0f below minimum %.0f", area, min_area)
            return None, area

        if len(contour) <= 4:
            candidates = [tuple(p) for p in contour]
            if len(candidates) != 4:
                return None, area
        else:
            candidates = self.find_corner_candidates(contour)
            if candidates is None:
                return None, area

        try:
            return Quadrilateral.from_points(candidates), area
        except DegenerateQuadrilateralError as exc:
            logger.debug("Rejecting contour corners: %s", exc)
            return None, area

    def find_corner_candidates(
        self, contour: np.ndarray
    ) -> Optional[List[Tuple[float, float]]]:
        """Nearest contour point to each bounding-box corner.

        Each candidate must lie within the margin band at its corner, and
        all four must be distinct points.
        """
        pts = contour.astype(np.float64)
        xs, ys = pts[:, 0], pts[:, 1]
        min_x, max_x = xs.min(), xs.max()
        min_y, max_y = ys.min(), ys.max()
        band_x = (max_x - min_x) * self.corner_margin
        band_y = (max_y - min_y) * self.corner_margin

        near_left = xs < min_x + band_x
        near_right = xs > max_x - band_x
        near_top = ys < min_y + band_y
        near_bottom = ys > max_y - band_y

        corners = [
            ((min_x, min_y), near_left & near_top),
            ((max_x, min_y), near_right & near_top),
            ((max_x, max_y), near_right & near_bottom),
            ((min_x, max_y), near_left & near_bottom),
        ]

        found = []
        for (cx, cy), band in corners:
            if not band.any():
                return None
            idx = np.flatnonzero(band)
            dist = np.hypot(xs[idx] - cx, ys[idx] - cy)
            best = idx[int(np.argmin(dist))]
            found.append((float(xs[best]), float(ys[best])))

        if len(set(found)) != 4:
            return None
        return found
