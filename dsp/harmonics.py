"""Waveform → Fourier-series coefficients for periodic wavetable oscillators.

Two analysis strategies share one interface:

- ``FFTAnalysis``: full resolution (H = N/2 harmonics) through the radix-2
  kernel, O(N log N). Requires a power-of-two waveform length.
- ``DirectSumAnalysis``: a fixed harmonic cap (e.g. 64) computed with one
  correlation sum per harmonic, O(N * H). Works for any length >= 2.

``strategy_for`` picks between them from configuration (a harmonic cap, or
``None`` for full resolution).
"""
import logging
from dataclasses import dataclass
from typing import Optional

import numpy as np

from dsp.fft import fft_in_place, ifft_in_place, is_power_of_two

_LOGGER = logging.getLogger("ondas.dsp.harmonics")

WAVEFORM_RESOLUTION = 2048
DEFAULT_HARMONIC_CAP = 64


def as_waveform(samples) -> np.ndarray:
    """Return a read-only float64 copy of ``samples`` clipped to [-1, 1].

    Waveforms are published to the engine and the scope by reference, so the
    copy is frozen here and never mutated afterwards.
    """
    wave = np.clip(np.array(samples, dtype=np.float64).reshape(-1), -1.0, 1.0)
    wave.flags.writeable = False
    return wave


def _frozen(values: np.ndarray) -> np.ndarray:
    out = np.array(values, dtype=np.float64)
    out.flags.writeable = False
    return out


@dataclass(frozen=True)
class SpectralCoefficients:
    """Cosine/sine amplitudes for harmonics 0..H of one waveform.

    ``cosine[0]`` is the DC offset and ``sine[0]`` is always zero.
    """

    cosine: np.ndarray
    sine: np.ndarray

    def __post_init__(self):
        if len(self.cosine) != len(self.sine):
            raise ValueError("cosine and sine coefficient arrays must have the same length")
        object.__setattr__(self, "cosine", _frozen(self.cosine))
        object.__setattr__(self, "sine", _frozen(self.sine))

    @property
    def harmonics(self) -> int:
        return len(self.cosine) - 1


class AnalysisStrategy:
    """Turns a single-cycle waveform into ``SpectralCoefficients``."""

    name = "base"

    def supports(self, length: int) -> bool:
        return length >= 2

    def analyze(self, waveform: np.ndarray) -> SpectralCoefficients:
        raise NotImplementedError


class FFTAnalysis(AnalysisStrategy):
    """Full-resolution analysis: H = N/2 harmonics from one FFT."""

    name = "fft"

    def supports(self, length: int) -> bool:
        return length >= 2 and is_power_of_two(length)

    def analyze(self, waveform: np.ndarray) -> SpectralCoefficients:
        n = len(waveform)
        re = np.array(waveform, dtype=np.float64)
        im = np.zeros(n, dtype=np.float64)
        fft_in_place(re, im)

        h = n // 2
        cosine = 2.0 * re[: h + 1] / n
        sine = -2.0 * im[: h + 1] / n
        cosine[0] = re[0] / n
        sine[0] = 0.0
        return SpectralCoefficients(cosine, sine)


class DirectSumAnalysis(AnalysisStrategy):
    """Capped analysis: one correlation sum per harmonic, any length >= 2."""

    name = "direct"

    def __init__(self, harmonics: int = DEFAULT_HARMONIC_CAP):
        if harmonics < 1:
            raise ValueError(f"harmonic cap must be at least 1, got {harmonics}")
        self.harmonics = harmonics

    def analyze(self, waveform: np.ndarray) -> SpectralCoefficients:
        n = len(waveform)
        x = np.asarray(waveform, dtype=np.float64)
        cosine = np.zeros(self.harmonics + 1)
        sine = np.zeros(self.harmonics + 1)
        cosine[0] = x.sum() / n

        # A cycle of n samples holds nothing above n/2; higher slots stay zero
        top = min(self.harmonics, n // 2)
        base = 2.0 * np.pi * np.arange(n) / n
        for k in range(1, top + 1):
            phase = base * k
            cosine[k] = (2.0 / n) * np.dot(x, np.cos(phase))
            sine[k] = (2.0 / n) * np.dot(x, np.sin(phase))
        return SpectralCoefficients(cosine, sine)


def strategy_for(harmonic_cap: Optional[int] = None) -> AnalysisStrategy:
    """Full FFT resolution when no cap is configured, direct sums otherwise."""
    if harmonic_cap is None:
        return FFTAnalysis()
    return DirectSumAnalysis(int(harmonic_cap))


def synthesize(waveform, strategy: Optional[AnalysisStrategy] = None) -> Optional[SpectralCoefficients]:
    """Compute the Fourier series of one waveform cycle.

    Returns None when the waveform is too short or its length is not usable by
    the chosen strategy; callers keep whatever spectrum they had before.
    """
    strategy = strategy or FFTAnalysis()
    if waveform is None:
        return None
    n = len(waveform)
    if not strategy.supports(n):
        _LOGGER.warning("Skipping %s analysis of a %d-sample waveform", strategy.name, n)
        return None
    return strategy.analyze(waveform)


def render_wavetable(spectrum: SpectralCoefficients, length: int = WAVEFORM_RESOLUTION,
                     max_harmonic: Optional[int] = None) -> np.ndarray:
    """Evaluate the Fourier series at ``length`` points, peak-normalised to 1.

    The DC term is not rendered, so the oscillator stays centred on zero.
    Harmonics at or above length/2 are dropped, as are harmonics above
    ``max_harmonic`` when given. A spectrum with nothing left
    after that yields a silent table.
    """
    if not is_power_of_two(length) or length < 2:
        raise ValueError(f"wavetable length must be a power of two >= 2, got {length}")

    re = np.zeros(length)
    im = np.zeros(length)
    top = min(spectrum.harmonics, length // 2 - 1)
    if max_harmonic is not None:
        top = min(top, max_harmonic)
    if top >= 1:
        k = np.arange(1, top + 1)
        re[k] = (length / 2.0) * spectrum.cosine[1 : top + 1]
        im[k] = -(length / 2.0) * spectrum.sine[1 : top + 1]
        re[length - k] = re[k]
        im[length - k] = -im[k]
    ifft_in_place(re, im)

    peak = float(np.max(np.abs(re)))
    if peak > 1e-12:
        re /= peak
    return re.astype(np.float32)


def sine_table(length: int = WAVEFORM_RESOLUTION) -> np.ndarray:
    """Plain sine cycle, the oscillator used before any waveform is set."""
    return np.sin(2.0 * np.pi * np.arange(length) / length).astype(np.float32)
