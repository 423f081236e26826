import cv2
import numpy as np
import pytest

from docscan.errors import DegenerateQuadrilateralError, SingularHomographyError
from docscan.geometry import Quadrilateral
from docscan.transformer import (
    DocumentFormat,
    Homography,
    HomographyEstimator,
    PerspectiveTransformer,
    fit_to_format,
    solve_linear_system,
)


def test_solve_linear_system_needs_pivoting():
    a = np.array([[0.0, 2.0, 1.0], [1.0, 1.0, 0.0], [3.0, 0.0, 1.0]])
    x = np.array([1.0, -2.0, 0.5])
    assert solve_linear_system(a, a @ x) == pytest.approx(x)


def test_solve_linear_system_rejects_singular_matrix():
    a = np.array([[1.0, 2.0], [2.0, 4.0]])
    with pytest.raises(SingularHomographyError):
        solve_linear_system(a, np.array([1.0, 2.0]))


def test_homography_maps_rectangle_onto_quad():
    quad = Quadrilateral.from_points([(30, 20), (260, 45), (280, 230), (15, 200)])
    estimator = HomographyEstimator()
    width, height = estimator.output_size(quad)

    homography = estimator.estimate(quad, width, height)

    assert homography.coefficients[8] == 1.0
    targets = [(0, 0), (width, 0), (width, height), (0, height)]
    for (u, v), corner in zip(targets, quad.corners):
        mapped = homography.apply(u, v)
        assert mapped.x == pytest.approx(corner.x, abs=1e-6)
        assert mapped.y == pytest.approx(corner.y, abs=1e-6)
    assert homography.matrix.shape == (3, 3)


def test_output_size_averages_opposite_sides():
    quad = Quadrilateral.from_points([(0, 0), (100, 0), (90, 60), (10, 60)])
    # top 100, bottom 80; left and right both sqrt(100 + 3600)
    assert HomographyEstimator().output_size(quad) == (90, 61)


def test_axis_aligned_round_trip_reproduces_region():
    rng = np.random.default_rng(7)
    image = rng.integers(0, 256, size=(100, 120, 3), dtype=np.uint8)
    corners = [(20, 15), (90, 15), (90, 75), (20, 75)]

    warped = PerspectiveTransformer().transform(image, corners)

    region = image[15:75, 20:90]
    assert warped.shape == region.shape
    diff = np.abs(warped.astype(np.float64) - region.astype(np.float64)).mean()
    assert diff < 2.0


def test_out_of_bounds_samples_are_white():
    image = np.zeros((60, 60, 3), dtype=np.uint8)
    corners = [(-20, -20), (50, -20), (50, 50), (-20, 50)]

    warped = PerspectiveTransformer().transform(image, corners)

    assert warped.shape == (70, 70, 3)
    assert (warped[0, 0] == 255).all()
    assert (warped[:20, :] == 255).all()
    assert (warped[25:, 25:] == 0).all()


def test_perspective_quad_is_flattened():
    image = np.zeros((300, 400, 3), dtype=np.uint8)
    corners = [(60, 40), (330, 60), (350, 260), (40, 240)]
    cv2.fillPoly(image, [np.array(corners, dtype=np.int32).reshape(-1, 1, 2)], (255, 255, 255))

    warped = PerspectiveTransformer().transform(image, corners)

    h, w = warped.shape[:2]
    assert warped[5:h - 5, 5:w - 5].min() > 200


def test_grayscale_warp_keeps_two_dimensions():
    image = np.full((50, 50), 77, dtype=np.uint8)
    warped = PerspectiveTransformer().transform(image, [(5, 5), (40, 5), (40, 40), (5, 40)])
    assert warped.ndim == 2
    assert (warped == 77).all()


def test_degenerate_corners_raise():
    image = np.zeros((50, 50, 3), dtype=np.uint8)
    with pytest.raises(DegenerateQuadrilateralError):
        PerspectiveTransformer().transform(image, [(0, 0), (10, 10), (20, 20), (0, 30)])


def test_output_size_and_format():
    transformer = PerspectiveTransformer()
    corners = [(0, 0), (1000, 0), (1000, 1000), (0, 1000)]
    assert transformer.compute_output_dimensions(corners) == (1000, 1000)
    assert transformer.compute_output_dimensions(corners, DocumentFormat.ISO_A) == (707, 1000)


@pytest.mark.parametrize("width,height,fmt,expected", [
    (1000, 1000, DocumentFormat.SQUARE, (1000, 1000)),
    (1400, 1000, DocumentFormat.US_LETTER, (1294, 1000)),
    (700, 400, DocumentFormat.BUSINESS_CARD, (700, 400)),
    (300, 900, DocumentFormat.RECEIPT, (300, 500)),
    (640, 480, DocumentFormat.AUTO, (640, 480)),
])
def test_fit_to_format(width, height, fmt, expected):
    assert fit_to_format(width, height, fmt) == expected


def test_explicit_output_size():
    image = np.full((40, 40, 3), 9, dtype=np.uint8)
    warped = PerspectiveTransformer().transform(
        image, [(0, 0), (39, 0), (39, 39), (0, 39)], output_size=(10, 20)
    )
    assert warped.shape == (20, 10, 3)


def test_points_behind_the_projection_are_white():
    # w = 1 - 0.1 x, so columns x >= 10 fall behind the camera
    homography = Homography((1.0, 0.0, 0.0, 0.0, 1.0, 0.0, -0.1, 0.0, 1.0))
    image = np.full((50, 50), 50, dtype=np.uint8)

    warped = PerspectiveTransformer().warp(image, homography, (20, 5))

    assert (warped[:, :5] == 50).all()
    assert (warped[:, 10:] == 255).all()


def test_warp_keeps_source_dtype_and_channels():
    image = np.zeros((30, 30, 3), dtype=np.uint8)
    image[:, :, 2] = 180
    warped = PerspectiveTransformer().transform(image, [(2, 2), (27, 2), (27, 27), (2, 27)])
    assert warped.dtype == np.uint8
    assert (warped[:, :, 2] == 180).all()
    assert not warped[:, :, :2].any()
