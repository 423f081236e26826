"""Document boundary detection on a preprocessed working image."""

import logging
import time
from dataclasses import dataclass
from typing import Optional

import numpy as np

from .config import CropSettings
from .contours import ContourTracer, QuadrilateralApproximator
from .edges import EdgeDetector, dilate_edges
from .geometry import Quadrilateral
from .scoring import ConfidenceScorer

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DetectionResult:
    """Outcome of one detection pass, in working-image coordinates."""

    quadrilateral: Optional[Quadrilateral]
    confidence: float
    contour_area: float

    @property
    def found(self) -> bool:
        return self.quadrilateral is not None


class DocumentDetector:
    """Finds the page quadrilateral in a blurred grayscale image.

    Chains Canny edge detection, dilation, contour tracing, corner
    approximation and confidence scoring. Holds configuration only, so
    one instance can serve concurrent calls.
    """

    def __init__(self, settings: Optional[CropSettings] = None):
        """Initialize the detector.

        Args:
            settings: Thresholds to use. Defaults to CropSettings().
        """
        self.settings = settings or CropSettings()
        s = self.settings
        self.edge_detector = EdgeDetector(s.high_threshold_ratio, s.low_threshold_ratio)
        self.tracer = ContourTracer(s.min_contour_points)
        self.approximator = QuadrilateralApproximator(
            min_area=s.min_contour_area,
            min_area_ratio=s.min_contour_area_ratio,
            corner_margin=s.corner_margin,
        )
        self.scorer = ConfidenceScorer(s.target_coverage, s.min_confidence)

    def detect(self, gray: np.ndarray) -> DetectionResult:
        """Detect the document boundary.

        Args:
            gray: Blurred grayscale working image (see Preprocessor.prepare).

        Returns:
            DetectionResult; ``quadrilateral`` is None when no document
            was found, in which case ``confidence`` is 0.
        """
        t0 = time.perf_counter()
        edges = self.edge_detector.detect(gray)
        dilated = dilate_edges(edges)
        t1 = time.perf_counter()
        contours = self.tracer.trace(dilated)
        t2 = time.perf_counter()
        quad, area = self.approximator.approximate(contours, gray.shape)

        logger.debug(
            "Edges %.1f ms, %d contours in %.1f ms, largest area %.0f",
            (t1 - t0) * 1000, len(contours), (t2 - t1) * 1000, area,
        )

        if quad is None:
            return DetectionResult(None, 0.0, area)

        confidence = self.scorer.score(quad, float(gray.shape[0] * gray.shape[1]))
        return DetectionResult(quad, confidence, area)
