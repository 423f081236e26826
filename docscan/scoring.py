"""Confidence scoring for detected document quadrilaterals."""

import math

from .geometry import Quadrilateral


class ConfidenceScorer:
    """Rates how much a detected quadrilateral can be trusted.

    The score averages two terms: coverage of the frame (a hand-held
    document shot typically fills about half of it) and rectangularity
    (mean deviation of the interior angles from 90 degrees).
    """

    def __init__(self, target_coverage: float = 0.5, min_confidence: float = 0.3):
        self.target_coverage = target_coverage
        self.min_confidence = min_confidence

    def area_score(self, quad: Quadrilateral, image_area: float) -> float:
        if image_area <= 0:
            return 0.0
        return min((quad.area() / image_area) / self.target_coverage, 1.0)

    def shape_score(self, quad: Quadrilateral) -> float:
        angles = quad.interior_angles()
        deviation = sum(abs(a - math.pi / 2) for a in angles) / 4.0
        return max(0.0, 1.0 - deviation / (math.pi / 4))

    def score(self, quad: Quadrilateral, image_area: float) -> float:
        """Confidence in [0, 1] for ``quad`` inside an image of ``image_area``."""
        return (self.area_score(quad, image_area) + self.shape_score(quad)) / 2.0

    def accepts(self, confidence: float) -> bool:
        return confidence >= self.min_confidence
