"""
Capture quality heuristics: blur, brightness and contrast.
"""

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List

import cv2
import numpy as np

# Laplacian variance below this counts as blurry
BLUR_VARIANCE_THRESHOLD = 100.0


@dataclass
class QualityReport:
    width: int
    height: int
    aspect_ratio: float
    is_blurry: bool
    brightness: float
    contrast: float
    has_document: bool
    suggestions: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def analyze_image_quality(image: np.ndarray) -> QualityReport:
    """
    Rate a decoded photo and suggest how to retake it.

    Args:
        image: BGR or grayscale image

    Returns:
        QualityReport with metrics normalized to [0, 1]
    """
    gray = image if image.ndim == 2 else cv2.cvtColor(image, cv2.COLOR_BGR2GRAY)
    height, width = gray.shape[:2]

    laplacian = cv2.Laplacian(gray, cv2.CV_64F)
    is_blurry = bool(laplacian.var() < BLUR_VARIANCE_THRESHOLD)
    brightness = float(gray.mean()) / 255.0
    contrast = float(int(gray.max()) - int(gray.min())) / 255.0
    aspect_ratio = width / height

    suggestions = []
    if is_blurry:
        suggestions.append('Image appears blurry - try holding camera steady')
    if brightness < 0.3:
        suggestions.append('Image is too dark - try better lighting')
    if brightness > 0.8:
        suggestions.append('Image is too bright - reduce lighting or avoid flash')
    if contrast < 0.3:
        suggestions.append('Low contrast - ensure good lighting on document')

    return QualityReport(
        width=width,
        height=height,
        aspect_ratio=aspect_ratio,
        is_blurry=is_blurry,
        brightness=brightness,
        contrast=contrast,
        has_document=0.5 < aspect_ratio < 2.0,
        suggestions=suggestions,
    )
