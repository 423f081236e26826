import pytest

from docscan.config import CropSettings


def test_defaults():
    settings = CropSettings()
    assert settings.max_dimension == 800
    assert settings.budget_ms == 100
    assert settings.min_confidence == 0.3
    assert settings.fallback_confidence == 0.1
    assert settings.min_contour_area == 10000


def test_from_env_reads_prefixed_variables():
    env = {"DOCSCAN_BUDGET_MS": "250", "DOCSCAN_MAX_DIMENSION": "640", "OTHER": "1"}
    settings = CropSettings.from_env(env)
    assert settings.budget_ms == 250.0
    assert settings.max_dimension == 640
    assert isinstance(settings.max_dimension, int)


def test_explicit_overrides_win_over_environment():
    settings = CropSettings.from_env({"DOCSCAN_JPEG_QUALITY": "70"}, jpeg_quality=85)
    assert settings.jpeg_quality == 85


def test_from_env_rejects_non_numbers():
    with pytest.raises(ValueError, match="DOCSCAN_BUDGET_MS"):
        CropSettings.from_env({"DOCSCAN_BUDGET_MS": "fast"})


def test_from_env_uses_process_environment(monkeypatch):
    monkeypatch.setenv("DOCSCAN_MIN_CONFIDENCE", "0.5")
    assert CropSettings.from_env().min_confidence == 0.5


@pytest.mark.parametrize("field,value", [
    ("blur_kernel_size", 4),
    ("max_dimension", 0),
    ("jpeg_quality", 101),
    ("high_threshold_ratio", 0),
])
def test_invalid_values_are_rejected(field, value):
    with pytest.raises(ValueError):
        CropSettings(**{field: value})

