"""Toolkit-independent geometry types: points and ordered quadrilaterals."""

import math
from dataclasses import dataclass
from typing import Iterable, List, Sequence, Tuple

import numpy as np

from .errors import DegenerateQuadrilateralError

# sin of the smallest angle allowed between two sides meeting at a corner
COLLINEAR_TOLERANCE = 1e-3


@dataclass(frozen=True)
class Point:
    """A 2D point in image coordinates (x to the right, y down)."""

    x: float
    y: float

    def scaled(self, factor: float) -> "Point":
        return Point(self.x * factor, self.y * factor)

    def distance_to(self, other: "Point") -> float:
        return math.hypot(self.x - other.x, self.y - other.y)

    def as_tuple(self) -> Tuple[float, float]:
        return (self.x, self.y)


def to_points(pts: Iterable) -> List[Point]:
    """Coerce Points, (x, y) pairs or an (N, 2) array into Points."""
    result = []
    for p in pts:
        if isinstance(p, Point):
            result.append(p)
        else:
            x, y = p
            result.append(Point(float(x), float(y)))
    return result


def polygon_area(pts: Sequence) -> float:
    """Area of an ordered polygon via the shoelace formula."""
    arr = np.asarray([(p.x, p.y) if isinstance(p, Point) else p for p in pts],
                     dtype=np.float64)
    if len(arr) < 3:
        return 0.0
    x, y = arr[:, 0], arr[:, 1]
    return float(abs(np.dot(x, np.roll(y, -1)) - np.dot(np.roll(x, -1), y)) / 2.0)


def order_corners(pts: Iterable) -> List[Point]:
    """Order 4 points clockwise starting at the top-left-most point.

    Points are sorted by polar angle around their centroid (clockwise on
    screen, since y grows downwards) and the list is rotated so that the
    point with the smallest ``x + y`` comes first. The result does not
    depend on the input order.

    Args:
        pts: Four points as Points, pairs or a (4, 2) array.

    Returns:
        List of 4 Points: [top-left, top-right, bottom-right, bottom-left].
    """
    points = to_points(pts)
    if len(points) != 4:
        raise DegenerateQuadrilateralError(
            f"expected 4 corners, got {len(points)}"
        )

    cx = sum(p.x for p in points) / 4.0
    cy = sum(p.y for p in points) / 4.0
    ordered = sorted(
        points,
        key=lambda p: (math.atan2(p.y - cy, p.x - cx), p.x, p.y),
    )

    start = min(range(4), key=lambda i: ordered[i].x + ordered[i].y)
    return ordered[start:] + ordered[:start]


def is_degenerate(pts: Sequence[Point], tolerance: float = COLLINEAR_TOLERANCE) -> bool:
    """True if any two points coincide or any three are nearly collinear."""
    for i in range(len(pts)):
        for j in range(i + 1, len(pts)):
            if pts[i].distance_to(pts[j]) < 1e-9:
                return True

    for i in range(len(pts)):
        for j in range(len(pts)):
            for k in range(j + 1, len(pts)):
                if i in (j, k):
                    continue
                ax, ay = pts[j].x - pts[i].x, pts[j].y - pts[i].y
                bx, by = pts[k].x - pts[i].x, pts[k].y - pts[i].y
                cross = abs(ax * by - ay * bx)
                if cross <= tolerance * math.hypot(ax, ay) * math.hypot(bx, by):
                    return True
    return False


@dataclass(frozen=True)
class Quadrilateral:
    """Four corners ordered clockwise from the top-left-most point."""

    top_left: Point
    top_right: Point
    bottom_right: Point
    bottom_left: Point

    @classmethod
    def from_points(cls, pts: Iterable) -> "Quadrilateral":
        """Order arbitrary corner points and validate them.

        Raises:
            DegenerateQuadrilateralError: If the points coincide or three
                of them lie on a line.
        """
        ordered = order_corners(pts)
        if is_degenerate(ordered):
            raise DegenerateQuadrilateralError(
                "corners are coincident or collinear: "
                + ", ".join(f"({p.x:.1f}, {p.y:.1f})" for p in ordered)
            )
        return cls(*ordered)

    @classmethod
    def full_frame(cls, width: int, height: int) -> "Quadrilateral":
        """The rectangle covering a whole ``width`` x ``height`` image."""
        right, bottom = float(width - 1), float(height - 1)
        return cls(
            Point(0.0, 0.0),
            Point(right, 0.0),
            Point(right, bottom),
            Point(0.0, bottom),
        )

    @property
    def corners(self) -> List[Point]:
        return [self.top_left, self.top_right, self.bottom_right, self.bottom_left]

    def area(self) -> float:
        return polygon_area(self.corners)

    def scaled(self, factor: float) -> "Quadrilateral":
        return Quadrilateral(*(p.scaled(factor) for p in self.corners))

    def side_lengths(self) -> Tuple[float, float, float, float]:
        """Lengths of the top, right, bottom and left sides."""
        tl, tr, br, bl = self.corners
        return (
            tl.distance_to(tr),
            tr.distance_to(br),
            br.distance_to(bl),
            bl.distance_to(tl),
        )

    def interior_angles(self) -> List[float]:
        """Interior angle at each corner, in radians."""
        corners = self.corners
        angles = []
        for i in range(4):
            prev_pt = corners[i - 1]
            pt = corners[i]
            next_pt = corners[(i + 1) % 4]
            v1 = (prev_pt.x - pt.x, prev_pt.y - pt.y)
            v2 = (next_pt.x - pt.x, next_pt.y - pt.y)
            norm = math.hypot(*v1) * math.hypot(*v2)
            if norm == 0:
                angles.append(0.0)
                continue
            cos = (v1[0] * v2[0] + v1[1] * v2[1]) / norm
            angles.append(math.acos(max(-1.0, min(1.0, cos))))
        return angles

    def as_array(self) -> np.ndarray:
        """Corners as a (4, 2) float64 array."""
        return np.array([p.as_tuple() for p in self.corners], dtype=np.float64)
