"""Energy gate: cheap per-frame loudness test."""

from dataclasses import dataclass

import numpy as np

from ..config import SegmenterConfig


@dataclass(frozen=True)
class GateResult:
    """Outcome of classifying one frame."""
    active: bool
    metric: float


def calculate_rms(samples: np.ndarray) -> float:
    """Root mean square of the samples, treated as real values."""
    if len(samples) == 0:
        return 0.0
    values = np.asarray(samples, dtype=np.float64)
    return float(np.sqrt(np.mean(values * values)))


class EnergyGate:
    """Flags frames whose RMS loudness exceeds a minimum volume."""

    def __init__(self, config: SegmenterConfig):
        self.threshold = config.min_volume

    def classify(self, frame: np.ndarray) -> GateResult:
        metric = calculate_rms(frame)
        return GateResult(active=metric > self.threshold, metric=metric)
