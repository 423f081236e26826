"""
Auto-crop orchestration: detection, perspective correction and fallback.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Optional

import numpy as np

from .codec import decode_image, encode_image
from .config import CropSettings
from .detector import DocumentDetector
from .editing import ColorFilter, edit_page
from .errors import (
    EncodeError,
    FALLBACK_ERROR_PREFIX,
    FALLBACK_LOW_CONFIDENCE,
    FALLBACK_TIMEOUT,
)
from .geometry import Point, Quadrilateral
from .preprocess import Preprocessor
from .transformer import DocumentFormat, PerspectiveTransformer

logger = logging.getLogger(__name__)

METHOD_CONTOUR_WARP = "contour_warp"
METHOD_BOUNDING_BOX = "bounding_box"


@dataclass
class AutoCropResult:
    """Result of one auto-crop call.

    ``corners`` are in original-image coordinates, ordered clockwise from
    the top-left. ``metadata`` carries originalWidth, originalHeight,
    detectionTimeMs and detectionMethod, plus contourArea on success or
    fallbackReason on fallback.
    """

    cropped_image: bytes
    corners: List[Point]
    confidence: float
    fallback_used: bool
    duration_ms: int
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def fallback_reason(self) -> Optional[str]:
        return self.metadata.get("fallbackReason")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "corners": [[p.x, p.y] for p in self.corners],
            "confidence": round(self.confidence, 4),
            "fallbackUsed": self.fallback_used,
            "durationMs": self.duration_ms,
            "croppedBytes": len(self.cropped_image),
            "metadata": dict(self.metadata),
        }


class AutoCropper:
    """Locates a photographed page and returns a flattened crop.

    Detection is advisory: every failure after decoding degrades to a
    full-frame crop. The instance keeps configuration only, so it is safe
    to share between threads.
    """

    def __init__(
        self,
        settings: Optional[CropSettings] = None,
        clock: Callable[[], float] = time.perf_counter,
    ):
        """Initialize the cropper.

        Args:
            settings: Pipeline thresholds. Defaults to CropSettings().
            clock: Monotonic clock in seconds used for the time budget.
        """
        self.settings = settings or CropSettings()
        self.clock = clock
        self.preprocessor = Preprocessor(
            self.settings.max_dimension, self.settings.blur_kernel_size
        )
        self.detector = DocumentDetector(self.settings)
        self.transformer = PerspectiveTransformer()

    def _encode(self, image: np.ndarray) -> bytes:
        """JPEG at the configured quality, PNG when JPEG cannot hold the image."""
        try:
            return encode_image(image, self.settings.jpeg_quality)
        except EncodeError as exc:
            logger.warning("%s, writing PNG instead", exc)
            return encode_image(image, format="PNG")

    def _elapsed_ms(self, start: float) -> int:
        return int(round((self.clock() - start) * 1000))

    def _run_detection(self, image: np.ndarray):
        working = self.preprocessor.prepare(image)
        return working, self.detector.detect(working.image)

    def auto_crop(self, image_bytes: bytes) -> AutoCropResult:
        """
        Detect the document in an encoded photo and flatten it.

        Args:
            image_bytes: Raw encoded image bytes

        Returns:
            AutoCropResult with the encoded crop, corners and diagnostics

        Raises:
            DecodeError: If the bytes cannot be decoded; no other failure
                escapes, they all produce a fallback result
        """
        start = self.clock()
        image = decode_image(image_bytes)

        height, width = image.shape[:2]
        metadata = {"originalWidth": width, "originalHeight": height}

        try:
            working, detection = self._run_detection(image)

            # Checkpoint: the budget is only checked here, not preemptively
            elapsed = self._elapsed_ms(start)
            if elapsed > self.settings.budget_ms:
                logger.info(
                    "Detection took %d ms (budget %.0f ms), using full frame",
                    elapsed, self.settings.budget_ms,
                )
                return self._fallback(image, start, metadata, FALLBACK_TIMEOUT)

            if not detection.found or not self.detector.scorer.accepts(detection.confidence):
                logger.info(
                    "No confident document boundary (confidence %.2f), using full frame",
                    detection.confidence,
                )
                return self._fallback(image, start, metadata, FALLBACK_LOW_CONFIDENCE)

            quad = detection.quadrilateral.scaled(working.inverse_scale)
            cropped = self.transformer.transform(image, quad)
            encoded = self._encode(cropped)
        except Exception as exc:
            logger.exception("Auto-crop failed, using full frame")
            return self._fallback(image, start, metadata, f"{FALLBACK_ERROR_PREFIX}{exc}")

        duration = self._elapsed_ms(start)
        metadata["detectionTimeMs"] = duration
        metadata["detectionMethod"] = METHOD_CONTOUR_WARP
        metadata["contourArea"] = detection.contour_area

        return AutoCropResult(
            cropped_image=encoded,
            corners=quad.corners,
            confidence=detection.confidence,
            fallback_used=False,
            duration_ms=duration,
            metadata=metadata,
        )

    def _fallback(
        self,
        image: np.ndarray,
        start: float,
        metadata: Dict[str, Any],
        reason: str,
    ) -> AutoCropResult:
        """Full-frame result used whenever detection cannot be trusted."""
        height, width = image.shape[:2]
        encoded = self._encode(image)

        duration = self._elapsed_ms(start)
        metadata["detectionTimeMs"] = duration
        metadata["detectionMethod"] = METHOD_BOUNDING_BOX
        metadata["fallbackReason"] = reason

        return AutoCropResult(
            cropped_image=encoded,
            corners=Quadrilateral.full_frame(width, height).corners,
            confidence=self.settings.fallback_confidence,
            fallback_used=True,
            duration_ms=duration,
            metadata=metadata,
        )

    def detect_corners(self, image_bytes: bytes) -> List[Point]:
        """
        Detect corners without warping, for seeding a manual crop editor.

        Returns:
            4 corners in original-image coordinates; the full frame when
            no document is confidently detected
        """
        image = decode_image(image_bytes)
        height, width = image.shape[:2]
        try:
            working, detection = self._run_detection(image)
        except Exception:
            logger.exception("Corner detection failed, using full frame")
            return Quadrilateral.full_frame(width, height).corners
        if not detection.found or not self.detector.scorer.accepts(detection.confidence):
            return Quadrilateral.full_frame(width, height).corners
        return detection.quadrilateral.scaled(working.inverse_scale).corners

    def crop_with_corners(
        self,
        image_bytes: bytes,
        corners: Iterable,
        document_format: Optional[DocumentFormat] = None,
        rotation: int = 0,
        color_filter: ColorFilter = ColorFilter.NONE,
    ) -> bytes:
        """
        Flatten the region bounded by user-adjusted corners.

        Uses the same homography and warp as auto_crop, then rotates and
        filters the flattened page.

        Args:
            image_bytes: Raw encoded image bytes
            corners: 4 points in original-image coordinates, any order
            document_format: Optional paper format for the output ratio
            rotation: Clockwise rotation of the page, a multiple of 90
            color_filter: Color treatment of the page

        Returns:
            Encoded crop

        Raises:
            DecodeError: If the bytes cannot be decoded
            DegenerateQuadrilateralError: If the corners are unusable
            ValueError: If the rotation is not a multiple of 90
        """
        image = decode_image(image_bytes)
        quad = Quadrilateral.from_points(corners)
        cropped = self.transformer.transform(image, quad, document_format=document_format)
        return self._encode(edit_page(cropped, rotation, color_filter))


def auto_crop(image_bytes: bytes, settings: Optional[CropSettings] = None) -> AutoCropResult:
    """Auto-crop a photographed document with a one-off AutoCropper."""
    return AutoCropper(settings).auto_crop(image_bytes)
