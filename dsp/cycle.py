"""Single-cycle extraction from a recording and linear resampling."""
import logging
from dataclasses import dataclass
from typing import Optional

import numpy as np

from dsp.harmonics import WAVEFORM_RESOLUTION, as_waveform
from dsp.pitch import detect_pitch

_LOGGER = logging.getLogger("ondas.dsp.cycle")


@dataclass(frozen=True)
class CaptureResult:
    """Outcome of turning a recording into one waveform cycle."""

    waveform: np.ndarray
    period: Optional[float]

    @property
    def pitched(self) -> bool:
        return self.period is not None

    def frequency(self, sample_rate: float) -> Optional[float]:
        if not self.period:
            return None
        return sample_rate / self.period


def find_rising_zero_crossing(samples: np.ndarray, period: int) -> int:
    """Index of the negative→positive crossing nearest the buffer centre, or -1.

    Searches outward, alternating forward then backward, up to
    min(period, centre) samples away. Only starts that leave room for a full
    period after them are accepted.
    """
    n = len(samples)
    center = n // 2
    radius = min(period, center)

    def _rises_at(idx: int) -> bool:
        return 0 < idx and idx + period < n and samples[idx - 1] <= 0 < samples[idx]

    for offset in range(radius):
        if _rises_at(center + offset):
            return center + offset
        if _rises_at(center - offset):
            return center - offset
    return -1


def extract_one_cycle(samples, period: float) -> np.ndarray:
    """Slice exactly round(period) samples starting at a rising zero crossing.

    Starting on a crossing keeps the looped cycle free of a DC step. Falls
    back to a window centred on the middle of the buffer when no crossing is
    near enough.
    """
    x = np.asarray(samples, dtype=np.float64).reshape(-1)
    int_period = int(round(period))
    start = find_rising_zero_crossing(x, int_period)
    if start < 0:
        start = max(0, len(x) // 2 - int_period // 2)
        _LOGGER.debug("No rising zero crossing near centre, using offset %d", start)
    return x[start : start + int_period].copy()


def resample_to_length(samples, target_length: int) -> np.ndarray:
    """Linear-interpolation resample; first and last samples map onto each other."""
    src = np.asarray(samples, dtype=np.float64).reshape(-1)
    if target_length <= 0 or len(src) == 0:
        return np.zeros(max(0, target_length))
    if len(src) == 1:
        return np.full(target_length, src[0])
    if target_length == 1:
        return src[:1].copy()

    t = np.arange(target_length) * ((len(src) - 1) / (target_length - 1))
    i0 = np.floor(t).astype(np.int64)
    i1 = np.minimum(len(src) - 1, i0 + 1)
    frac = t - i0
    return src[i0] * (1.0 - frac) + src[i1] * frac


def waveform_from_recording(samples, sample_rate: float,
                            length: int = WAVEFORM_RESOLUTION) -> CaptureResult:
    """Recorded voice → one canonical-length waveform.

    Without a detectable pitch the whole recording is squashed into one
    cycle instead, so a capture never fails outright.
    """
    period = detect_pitch(samples, sample_rate)
    if period:
        cycle = extract_one_cycle(samples, period)
        resampled = resample_to_length(cycle, length)
        _LOGGER.info("Captured cycle: period %.2f samples (%.1f Hz)", period, sample_rate / period)
    else:
        resampled = resample_to_length(samples, length)
        _LOGGER.info("No pitch detected, resampling the whole recording")
    return CaptureResult(as_waveform(resampled), period)
