"""Sample rate conversion for candidate segments."""

from fractions import Fraction

import numpy as np
from scipy.signal import resample_poly

from ..errors import InvalidRate

INT16_MIN = np.iinfo(np.int16).min
INT16_MAX = np.iinfo(np.int16).max


def resample(samples: np.ndarray, source_rate: float, target_rate: float) -> np.ndarray:
    """
    Resample int16 PCM with a polyphase filter.

    Always returns a new array; the input is never modified.

    Raises:
        InvalidRate: if either rate is not positive
    """
    if source_rate <= 0 or target_rate <= 0:
        raise InvalidRate(f"Sample rates must be positive, got {source_rate} -> {target_rate}")

    if source_rate == target_rate:
        return np.array(samples, dtype=np.int16, copy=True)

    if len(samples) == 0:
        return np.zeros(0, dtype=np.int16)

    ratio = (Fraction(target_rate) / Fraction(source_rate)).limit_denominator(1000)
    resampled = resample_poly(
        np.asarray(samples, dtype=np.float64), ratio.numerator, ratio.denominator
    )
    return np.clip(np.round(resampled), INT16_MIN, INT16_MAX).astype(np.int16)
