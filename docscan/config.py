"""Tunable parameters for the auto-crop pipeline."""

import os
from dataclasses import dataclass, fields
from typing import Mapping, Optional

ENV_PREFIX = "DOCSCAN_"


@dataclass(frozen=True)
class CropSettings:
    """All thresholds used by detection, scoring and the fallback policy.

    Areas are in pixels at working resolution. ``budget_ms`` is the
    advisory wall-clock budget checked before the homography stage.
    """

    # Preprocessing
    max_dimension: int = 800
    blur_kernel_size: int = 5

    # Canny hysteresis, relative to the strongest gradient
    high_threshold_ratio: float = 0.15
    low_threshold_ratio: float = 0.5

    # Contours
    min_contour_points: int = 10
    min_contour_area: float = 10000.0
    min_contour_area_ratio: float = 0.1
    corner_margin: float = 0.1

    # Scoring
    target_coverage: float = 0.5
    min_confidence: float = 0.3

    # Fallback and output
    budget_ms: float = 100.0
    fallback_confidence: float = 0.1
    jpeg_quality: int = 95

    def __post_init__(self):
        if self.max_dimension < 1:
            raise ValueError("max_dimension must be positive")
        if self.blur_kernel_size < 1 or self.blur_kernel_size % 2 == 0:
            raise ValueError("blur_kernel_size must be a positive odd number")
        if not 0 < self.high_threshold_ratio <= 1:
            raise ValueError("high_threshold_ratio must be in (0, 1]")
        if not 0 < self.low_threshold_ratio <= 1:
            raise ValueError("low_threshold_ratio must be in (0, 1]")
        if not 0 <= self.corner_margin <= 0.5:
            raise ValueError("corner_margin must be in [0, 0.5]")
        if not 1 <= self.jpeg_quality <= 100:
            raise ValueError("jpeg_quality must be in [1, 100]")

    @classmethod
    def from_env(
        cls,
        environ: Optional[Mapping[str, str]] = None,
        **overrides,
    ) -> "CropSettings":
        """Build settings from ``DOCSCAN_*`` environment variables.

        Args:
            environ: Mapping to read instead of ``os.environ``.
            **overrides: Explicit values that win over the environment.

        Returns:
            A new CropSettings instance.
        """
        environ = os.environ if environ is None else environ
        values = {}
        for f in fields(cls):
            raw = environ.get(ENV_PREFIX + f.name.upper())
            if raw is None:
                continue
            caster = int if f.type in (int, "int") else float
            try:
                values[f.name] = caster(raw)
            except ValueError:
                raise ValueError(
                    f"{ENV_PREFIX}{f.name.upper()} must be a number, got {raw!r}"
                ) from None
        values.update(overrides)
        return cls(**values)

