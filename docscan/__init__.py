"""Document boundary detection and perspective correction."""

from .config import CropSettings
from .cropper import AutoCropper, AutoCropResult, auto_crop
from .detector import DetectionResult, DocumentDetector
from .editing import ColorFilter, apply_image_editing
from .errors import (
    DecodeError,
    DegenerateQuadrilateralError,
    DocumentScannerError,
    EncodeError,
    SingularHomographyError,
)
from .geometry import Point, Quadrilateral, order_corners
from .transformer import DocumentFormat, Homography, HomographyEstimator, PerspectiveTransformer

__all__ = [
    "AutoCropResult",
    "AutoCropper",
    "ColorFilter",
    "CropSettings",
    "DecodeError",
    "DegenerateQuadrilateralError",
    "DetectionResult",
    "DocumentDetector",
    "DocumentFormat",
    "DocumentScannerError",
    "EncodeError",
    "Homography",
    "HomographyEstimator",
    "PerspectiveTransformer",
    "Point",
    "Quadrilateral",
    "SingularHomographyError",
    "apply_image_editing",
    "auto_crop",
    "order_corners",
]
