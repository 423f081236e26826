import cv2
import numpy as np

from docscan.edges import EdgeDetector, dilate_edges


def test_flat_image_has_no_edges():
    gray = np.full((40, 40), 128, dtype=np.uint8)
    edges = EdgeDetector().detect(gray)
    assert edges.dtype == np.uint8
    assert not edges.any()


def test_vertical_step_gives_thin_edge():
    gray = np.zeros((50, 50), dtype=np.uint8)
    gray[:, 25:] = 255
    gray = cv2.GaussianBlur(gray, (5, 5), 0)

    edges = EdgeDetector().detect(gray)

    assert set(np.unique(edges)) <= {0, 255}
    cols = np.unique(np.nonzero(edges)[1])
    assert set(cols.tolist()) <= {23, 24, 25, 26}
    for row in range(1, 49):
        assert edges[row].any()
    # Non-maximum suppression clears the frame
    assert not edges[0].any() and not edges[-1].any()


def test_non_maximum_suppression_keeps_ridge():
    magnitude = np.tile(np.array([1.0, 3.0, 5.0, 3.0, 1.0]), (5, 1))
    direction = np.zeros_like(magnitude)

    result = EdgeDetector().suppress_non_maxima(magnitude, direction)

    assert result[1:4, 2].tolist() == [5.0, 5.0, 5.0]
    assert not result[:, [0, 1, 3, 4]].any()
    assert not result[0].any() and not result[4].any()


def test_non_maximum_suppression_uses_gradient_direction():
    # Ridge along a row; gradient points vertically
    magnitude = np.tile(np.array([[1.0], [3.0], [5.0], [3.0], [1.0]]), (1, 5))
    direction = np.full_like(magnitude, np.pi / 2)

    result = EdgeDetector().suppress_non_maxima(magnitude, direction)

    assert result[2, 1:4].tolist() == [5.0, 5.0, 5.0]
    assert not result[[1, 3]].any()


def test_hysteresis_follows_weak_edges_from_strong_seed():
    suppressed = np.zeros((10, 10))
    suppressed[2, 2] = 100          # strong seed
    suppressed[3, 3] = 20           # weak, diagonal neighbour of the seed
    suppressed[4, 4] = 20           # weak, chained
    suppressed[8, 8] = 20           # weak, isolated
    suppressed[5, 5] = 5            # below the low threshold

    edges = EdgeDetector().hysteresis(suppressed, low=10, high=50)

    assert edges[2, 2] == edges[3, 3] == edges[4, 4] == 255
    assert edges[8, 8] == 0
    assert edges[5, 5] == 0


def test_hysteresis_on_large_connected_region_does_not_recurse():
    suppressed = np.full((300, 300), 20.0)
    suppressed[150, 150] = 100

    edges = EdgeDetector().hysteresis(suppressed, low=10, high=50)

    assert (edges == 255).all()


def test_dilate_grows_single_pixel_to_3x3():
    edges = np.zeros((11, 11), dtype=np.uint8)
    edges[5, 5] = 255

    dilated = dilate_edges(edges)

    assert dilated.sum() == 9 * 255
    assert (dilated[4:7, 4:7] == 255).all()
    assert edges.sum() == 255  # input untouched


def test_dilate_bridges_one_pixel_gap():
    edges = np.zeros((5, 9), dtype=np.uint8)
    edges[2, :4] = 255
    edges[2, 5:] = 255

    dilated = dilate_edges(edges)

    assert (dilated[2] == 255).all()
