"""Fundamental-period detection by normalized autocorrelation.

Runs once per short recording (about half a second), so the brute-force
lag scan is fine; it is never called per display frame.
"""
import logging
from typing import Optional

import numpy as np

_LOGGER = logging.getLogger("ondas.dsp.pitch")

MIN_FREQUENCY = 50.0
MAX_FREQUENCY = 2000.0
SILENCE_RMS = 0.01
MIN_CONFIDENCE = 0.5
# Shortest-lag peak within this fraction of the best score wins. Keeps a clean
# tone from locking onto 2x/3x its period when those lags score marginally higher.
OCTAVE_TOLERANCE = 0.98


def search_band(sample_rate: float):
    """Return (min_lag, max_lag) in samples for the 50-2000 Hz range."""
    return int(np.floor(sample_rate / MAX_FREQUENCY)), int(np.ceil(sample_rate / MIN_FREQUENCY))


def normalized_correlation(samples: np.ndarray, lag: int) -> float:
    """sum(x[i]*x[i+lag]) / sqrt(sum(x[i]^2) * sum(x[i+lag]^2)) over the overlap."""
    n = len(samples)
    if lag <= 0 or lag >= n:
        return 0.0
    head = samples[: n - lag]
    tail = samples[lag:]
    denom = np.sqrt(np.dot(head, head) * np.dot(tail, tail))
    if denom == 0:
        return 0.0
    return float(np.dot(head, tail) / denom)


def _pick_lag(scores: np.ndarray, min_lag: int, best_index: int) -> int:
    threshold = scores[best_index] * OCTAVE_TOLERANCE
    for i in range(1, len(scores) - 1):
        if scores[i] >= threshold and scores[i] >= scores[i - 1] and scores[i] >= scores[i + 1]:
            return min_lag + i
    return min_lag + best_index


def detect_pitch(samples, sample_rate: float) -> Optional[float]:
    """Estimate the fundamental period of ``samples`` in (fractional) samples.

    Args:
        samples: Mono PCM, floats roughly in [-1, 1].
        sample_rate: Samples per second.

    Returns:
        The period in samples, or None when the buffer is shorter than the
        search band, quieter than SILENCE_RMS, or no lag correlates above
        MIN_CONFIDENCE.
    """
    x = np.asarray(samples, dtype=np.float64).reshape(-1)
    n = len(x)
    min_lag, max_lag = search_band(sample_rate)
    min_lag = max(1, min_lag)

    if max_lag >= n:
        _LOGGER.debug("Buffer of %d samples cannot hold lag %d", n, max_lag)
        return None

    rms = float(np.sqrt(np.mean(x * x)))
    if rms < SILENCE_RMS:
        _LOGGER.debug("Signal too quiet for pitch detection (rms=%.4f)", rms)
        return None

    scores = np.array([normalized_correlation(x, lag) for lag in range(min_lag, max_lag + 1)])
    best_index = int(np.argmax(scores))
    best_score = float(scores[best_index])
    if best_score < MIN_CONFIDENCE:
        _LOGGER.debug("No periodicity found (best correlation %.3f)", best_score)
        return None

    lag = _pick_lag(scores, min_lag, best_index)
    corr = float(scores[lag - min_lag])

    if min_lag < lag < max_lag and lag < n - 1:
        before = float(scores[lag - 1 - min_lag])
        after = float(scores[lag + 1 - min_lag])
        with np.errstate(divide="ignore", invalid="ignore"):
            shift = np.float64(before - after) / (2.0 * (before - 2.0 * corr + after))
        if np.isfinite(shift):
            return lag + float(shift)

    return float(lag)
