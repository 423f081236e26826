import pytest

from docscan.geometry import Quadrilateral
from docscan.scoring import ConfidenceScorer


def test_half_frame_rectangle_scores_one():
    quad = Quadrilateral.from_points([(0, 0), (100, 0), (100, 50), (0, 50)])
    assert ConfidenceScorer().score(quad, 100 * 100) == pytest.approx(1.0)


def test_area_score_grows_with_coverage():
    scorer = ConfidenceScorer()
    quad = Quadrilateral.from_points([(0, 0), (20, 0), (20, 20), (0, 20)])
    assert scorer.area_score(quad, 100 * 100) == pytest.approx(0.08)
    assert scorer.score(quad, 100 * 100) == pytest.approx(0.54)


def test_area_score_is_capped():
    quad = Quadrilateral.full_frame(100, 100)
    assert ConfidenceScorer().area_score(quad, 100 * 100) == 1.0


def test_parallelogram_with_45_degree_corners_has_no_shape_score():
    quad = Quadrilateral.from_points([(0, 0), (100, 0), (150, 50), (50, 50)])
    assert ConfidenceScorer().shape_score(quad) == pytest.approx(0.0, abs=1e-9)


def test_acceptance_threshold():
    scorer = ConfidenceScorer()
    assert scorer.accepts(0.3)
    assert not scorer.accepts(0.29)
