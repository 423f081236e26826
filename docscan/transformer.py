"""Perspective transformation for document correction."""

import enum
import math
from dataclasses import dataclass
from typing import Iterable, Optional, Tuple

import cv2
import numpy as np

from .errors import SingularHomographyError
from .geometry import Point, Quadrilateral

# Pivots smaller than this make the projective system unsolvable
PIVOT_EPSILON = 1e-12


class DocumentFormat(enum.Enum):
    """Paper formats with their width/height ratio."""

    AUTO = "auto"
    ISO_A = "iso_a"
    US_LETTER = "us_letter"
    US_LEGAL = "us_legal"
    SQUARE = "square"
    RECEIPT = "receipt"
    BUSINESS_CARD = "business_card"

    @property
    def aspect_ratio(self) -> Optional[float]:
        return _FORMAT_RATIOS.get(self)


_FORMAT_RATIOS = {
    DocumentFormat.ISO_A: 1.0 / math.sqrt(2.0),   # A3, A4, A5
    DocumentFormat.US_LETTER: 8.5 / 11.0,
    DocumentFormat.US_LEGAL: 8.5 / 14.0,
    DocumentFormat.SQUARE: 1.0,
    DocumentFormat.RECEIPT: 0.6,
    DocumentFormat.BUSINESS_CARD: 3.5 / 2.0,
}


def fit_to_format(width: float, height: float, fmt: DocumentFormat) -> Tuple[int, int]:
    """Largest box with the format's aspect ratio inside ``width`` x ``height``.

    The ratio is flipped to landscape when the detected region is wider
    than it is tall. ``DocumentFormat.AUTO`` keeps the size unchanged.
    """
    ratio = fmt.aspect_ratio
    if ratio is None:
        return max(1, int(round(width))), max(1, int(round(height)))

    ratio = min(ratio, 1.0 / ratio)
    if width > height:
        ratio = 1.0 / ratio

    out_w, out_h = width, width / ratio
    if out_h > height:
        out_w, out_h = height * ratio, height
    return max(1, int(round(out_w))), max(1, int(round(out_h)))


@dataclass(frozen=True)
class Homography:
    """3x3 projective matrix mapping destination to source coordinates.

    Stored as the 9 coefficients h0..h8 in row-major order, h8 == 1.
    """

    coefficients: Tuple[float, ...]

    def __post_init__(self):
        if len(self.coefficients) != 9:
            raise ValueError("a homography has exactly 9 coefficients")

    @property
    def matrix(self) -> np.ndarray:
        return np.array(self.coefficients, dtype=np.float64).reshape(3, 3)

    def apply(self, x: float, y: float) -> Point:
        """Map one destination point to source coordinates."""
        h = self.coefficients
        w = h[6] * x + h[7] * y + h[8]
        return Point((h[0] * x + h[1] * y + h[2]) / w, (h[3] * x + h[4] * y + h[5]) / w)


def solve_linear_system(a: np.ndarray, b: np.ndarray) -> np.ndarray:
    """Solve ``a @ x = b`` by Gaussian elimination with partial pivoting.

    Args:
        a: Square coefficient matrix.
        b: Right-hand side vector.

    Returns:
        Solution vector in float64.

    Raises:
        SingularHomographyError: If a pivot falls below PIVOT_EPSILON.
    """
    m = np.array(a, dtype=np.float64)
    rhs = np.array(b, dtype=np.float64)
    n = m.shape[0]

    for col in range(n):
        pivot_row = col + int(np.argmax(np.abs(m[col:, col])))
        if abs(m[pivot_row, col]) < PIVOT_EPSILON:
            raise SingularHomographyError(
                f"near-singular system at column {col} (pivot {m[pivot_row, col]:.3g})"
            )
        if pivot_row != col:
            m[[col, pivot_row]] = m[[pivot_row, col]]
            rhs[[col, pivot_row]] = rhs[[pivot_row, col]]

        factors = m[col + 1:, col] / m[col, col]
        m[col + 1:, col:] -= np.outer(factors, m[col, col:])
        rhs[col + 1:] -= factors * rhs[col]

    x = np.zeros(n, dtype=np.float64)
    for row in range(n - 1, -1, -1):
        x[row] = (rhs[row] - np.dot(m[row, row + 1:], x[row + 1:])) / m[row, row]
    return x


class HomographyEstimator:
    """Computes the transform from an upright rectangle to a quadrilateral."""

    def output_size(self, quad: Quadrilateral) -> Tuple[int, int]:
        """Rectified size keeping the quadrilateral's proportions.

        Width is the mean of the top and bottom sides, height the mean of
        the left and right sides.
        """
        top, right, bottom, left = quad.side_lengths()
        width = max(1, int(round((top + bottom) / 2.0)))
        height = max(1, int(round((left + right) / 2.0)))
        return width, height

    def estimate(self, quad: Quadrilateral, width: int, height: int) -> Homography:
        """Solve for the homography taking the output rectangle onto ``quad``.

        Args:
            quad: Source corners, ordered TL, TR, BR, BL.
            width: Output width W; destination corners are (0,0), (W,0),
                (W,H), (0,H).
            height: Output height H.

        Returns:
            Homography mapping output pixels to source pixels.
        """
        dst = [(0.0, 0.0), (float(width), 0.0), (float(width), float(height)), (0.0, float(height))]
        a = np.zeros((8, 8), dtype=np.float64)
        b = np.zeros(8, dtype=np.float64)
        for i, ((u, v), p) in enumerate(zip(dst, quad.corners)):
            a[2 * i] = [u, v, 1.0, 0.0, 0.0, 0.0, -u * p.x, -v * p.x]
            a[2 * i + 1] = [0.0, 0.0, 0.0, u, v, 1.0, -u * p.y, -v * p.y]
            b[2 * i] = p.x
            b[2 * i + 1] = p.y

        h = solve_linear_system(a, b)
        return Homography(tuple(float(v) for v in h) + (1.0,))


class PerspectiveTransformer:
    """Applies perspective transformation to flatten photographed documents.

    Given 4 corner points of a page, the source image is resampled through
    the homography into an upright rectangle with the page's proportions.
    Detected corners and manually adjusted corners both go through here.
    """

    def __init__(self, fill_value: int = 255):
        """Initialize the transformer.

        Args:
            fill_value: Value written in every channel for output pixels
                that map outside the source image (opaque white).
        """
        self.fill_value = fill_value
        self.estimator = HomographyEstimator()

    def order_points(self, pts: Iterable) -> Quadrilateral:
        """Order points clockwise from top-left and reject degenerate ones."""
        if isinstance(pts, Quadrilateral):
            return pts
        return Quadrilateral.from_points(pts)

    def compute_output_dimensions(
        self, pts: Iterable, document_format: Optional[DocumentFormat] = None
    ) -> Tuple[int, int]:
        """Compute output (width, height) for the given corners.

        Args:
            pts: 4 corner points.
            document_format: Optional paper format to snap the ratio to.

        Returns:
            Tuple of (width, height) for the output image.
        """
        quad = self.order_points(pts)
        width, height = self.estimator.output_size(quad)
        if document_format is not None and document_format is not DocumentFormat.AUTO:
            width, height = fit_to_format(width, height, document_format)
        return width, height

    def get_transformation_matrix(
        self,
        pts: Iterable,
        output_size: Optional[Tuple[int, int]] = None,
    ) -> Tuple[Homography, Tuple[int, int]]:
        """Get the homography without applying it.

        Args:
            pts: 4 corner points in source coordinates.
            output_size: Optional (width, height) for output.

        Returns:
            Tuple of (homography, output size).
        """
        quad = self.order_points(pts)
        if output_size is None:
            output_size = self.estimator.output_size(quad)
        width, height = output_size
        return self.estimator.estimate(quad, width, height), (width, height)

    def warp(
        self,
        image: np.ndarray,
        homography: Homography,
        output_size: Tuple[int, int],
    ) -> np.ndarray:
        """Resample ``image`` through ``homography`` with bilinear sampling.

        Args:
            image: Source image, (H, W) or (H, W, C) uint8.
            homography: Destination-to-source mapping.
            output_size: (width, height) of the result.

        Returns:
            New uint8 image; pixels sampled outside the source, or behind
            the projection (w <= 0), are white.
        """
        out_w, out_h = output_size
        size = (out_w, out_h)
        flags = cv2.INTER_LINEAR | cv2.WARP_INVERSE_MAP
        matrix = homography.matrix
        warped = cv2.warpPerspective(
            image, matrix, size, flags=flags, borderMode=cv2.BORDER_REPLICATE
        )

        # Any bilinear tap outside the source pulls coverage below 255
        coverage = cv2.warpPerspective(
            np.full(image.shape[:2], 255, dtype=np.uint8), matrix, size,
            flags=flags, borderMode=cv2.BORDER_CONSTANT, borderValue=0,
        )
        outside = coverage < 255

        # w is linear in (x, y), so its minimum over the output is at a corner
        h = homography.coefficients
        corner_w = [
            h[6] * x + h[7] * y + h[8]
            for x in (0, out_w - 1) for y in (0, out_h - 1)
        ]
        if min(corner_w) <= 0:
            xs = np.arange(out_w, dtype=np.float64)
            ys = np.arange(out_h, dtype=np.float64)
            outside |= np.add.outer(h[7] * ys + h[8], h[6] * xs) <= 0

        warped[outside] = self.fill_value

        return warped

    def transform(
        self,
        image: np.ndarray,
        pts: Iterable,
        output_size: Optional[Tuple[int, int]] = None,
        document_format: Optional[DocumentFormat] = None,
    ) -> np.ndarray:
        """Extract the document bounded by ``pts`` as a flat rectangle.

        Args:
            image: Source image.
            pts: 4 corner points in source coordinates, any order.
            output_size: Optional (width, height). If None, dimensions
                follow the corners (and ``document_format`` if given).
            document_format: Optional paper format for the output ratio.

        Returns:
            Transformed image with perspective correction applied.

        Raises:
            DegenerateQuadrilateralError: If the corners are unusable.
        """
        quad = self.order_points(pts)
        if output_size is None:
            output_size = self.compute_output_dimensions(quad, document_format)
        homography, size = self.get_transformation_matrix(quad, output_size)
        return self.warp(image, homography, size)

