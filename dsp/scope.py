"""Phase-locking a live audio tap to a reference cycle for the oscilloscope.

The live oscillator and the scope's sampling are not sample-synchronised, so a
fixed window drifts ("crawls") from frame to frame. Each frame finds the
circular rotation of the captured buffer that best matches the reference
shape and hands one aligned period to the renderer.
"""
import time
from typing import Dict, Optional

import numpy as np

from dsp.cycle import resample_to_length

DEFAULT_DISPLAY_FREQUENCY = 440.0
DEFAULT_MAX_SEARCH = 1024


def find_alignment_offset(reference, captured, search_limit: Optional[int] = None) -> int:
    """Offset in [0, limit) maximising sum(reference[i] * captured[(i + offset) % n]).

    ``limit`` is ``search_limit`` capped to the captured length. Ties go to
    the smallest offset. Empty inputs give 0.
    """
    ref = np.asarray(reference, dtype=np.float64).reshape(-1)
    cap = np.asarray(captured, dtype=np.float64).reshape(-1)
    n = len(cap)
    if n == 0 or len(ref) == 0:
        return 0
    limit = n if search_limit is None else max(1, min(int(search_limit), n))

    # One row per candidate offset; limit * len(ref) stays small at scope sizes.
    index = (np.arange(limit)[:, None] + np.arange(len(ref))[None, :]) % n
    scores = cap[index] @ ref
    return int(np.argmax(scores))


def aligned_period(captured, offset: int, length: int) -> np.ndarray:
    """``length`` samples of ``captured`` starting at ``offset``, wrapping around."""
    cap = np.asarray(captured, dtype=np.float64).reshape(-1)
    if len(cap) == 0:
        return np.zeros(length)
    return cap[(offset + np.arange(length)) % len(cap)]


def first_rising_crossing(captured) -> int:
    cap = np.asarray(captured, dtype=np.float64).reshape(-1)
    rising = np.nonzero((cap[:-1] < 0) & (cap[1:] >= 0))[0]
    return int(rising[0] + 1) if len(rising) else 0


class ScopeAligner:
    """Per-frame alignment of a live tap against the current reference waveform."""

    def __init__(self, display_frequency: float = DEFAULT_DISPLAY_FREQUENCY,
                 max_search: int = DEFAULT_MAX_SEARCH):
        self.display_frequency = display_frequency
        self.max_search = max_search
        self._reference: Optional[np.ndarray] = None
        self._resampled: Dict[int, np.ndarray] = {}
        self.last_offset = 0

    def set_reference(self, waveform) -> None:
        """Swap in a new reference cycle. None clears it."""
        self._reference = None if waveform is None else np.asarray(waveform, dtype=np.float64)
        self._resampled.clear()

    def has_reference(self) -> bool:
        return self._reference is not None

    def reference_samples(self, num_samples: int) -> Optional[np.ndarray]:
        """The reference resampled to ``num_samples`` points, cached per size."""
        if self._reference is None or num_samples < 2:
            return None
        cached = self._resampled.get(num_samples)
        if cached is None:
            cached = resample_to_length(self._reference, num_samples)
            self._resampled[num_samples] = cached
        return cached

    def period_samples(self, sample_rate: float) -> int:
        return max(2, int(sample_rate // self.display_frequency))

    def align(self, captured, sample_rate: float) -> Optional[np.ndarray]:
        """One display-frequency period of ``captured``, phase-locked if possible."""
        cap = np.asarray(captured, dtype=np.float64).reshape(-1)
        if len(cap) < 2:
            return None
        length = self.period_samples(sample_rate)
        reference = self.reference_samples(length)
        if reference is None:
            offset = first_rising_crossing(cap)
        else:
            offset = find_alignment_offset(reference, cap, self.max_search)
        self.last_offset = offset
        return aligned_period(cap, offset, length)


class FrameClock:
    """Cooperative frame gate: a frame that overran its budget costs the next tick.

    Ticks are never queued. ``begin()`` returns False for a tick that should
    be skipped; ``end()`` records how long the frame's work took.
    """

    def __init__(self, fps: float = 60.0, clock=time.perf_counter):
        self.budget = 1.0 / fps
        self._clock = clock
        self._started: Optional[float] = None
        self._skip_next = False
        self.frames_drawn = 0
        self.frames_skipped = 0

    def begin(self) -> bool:
        if self._skip_next:
            self._skip_next = False
            self.frames_skipped += 1
            return False
        self._started = self._clock()
        return True

    def end(self) -> None:
        if self._started is None:
            return
        elapsed = self._clock() - self._started
        self._started = None
        self.frames_drawn += 1
        if elapsed > self.budget:
            self._skip_next = True
