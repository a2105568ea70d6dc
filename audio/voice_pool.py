"""Active-voice bookkeeping: one voice per sounding frequency."""
import logging
import math
import threading
from dataclasses import dataclass
from typing import Dict, List, Optional

import numpy as np

from dsp.harmonics import AnalysisStrategy, SpectralCoefficients, as_waveform, synthesize

_LOGGER = logging.getLogger("ondas.audio.voices")

# Summed voice gain never exceeds this, whatever the polyphony
DEFAULT_CEILING = 0.8


def frequency_key(frequency: float) -> int:
    """Quantise a frequency to whole centihertz for use as a dict key.

    261.63 and 261.6300000001 land on the same key; 261.63 and 261.64 do not.
    """
    return int(round(frequency * 100.0))


@dataclass
class ActiveVoice:
    frequency: float
    handle: int
    spectrum: Optional[SpectralCoefficients]
    gain: float = 0.0


class VoicePool:
    """Starts and stops engine voices keyed by frequency.

    Each voice keeps the spectrum that was current at note-on; publishing a
    new waveform only affects notes started afterwards. Gains are rebalanced
    to ``ceiling / active_count`` on every play and stop.
    """

    def __init__(self, engine, ceiling: float = DEFAULT_CEILING):
        self.engine = engine
        self.ceiling = ceiling
        self.spectrum: Optional[SpectralCoefficients] = None
        self.waveform: Optional[np.ndarray] = None
        self._voices: Dict[int, ActiveVoice] = {}
        self._lock = threading.RLock()

    def set_waveform(self, waveform, strategy: Optional[AnalysisStrategy] = None) -> bool:
        """Synthesize ``waveform`` and publish its spectrum to the engine.

        Returns False (keeping the previous spectrum) when the waveform cannot
        be analysed.
        """
        if waveform is None:
            return False
        wave = as_waveform(waveform)
        spectrum = synthesize(wave, strategy)
        if spectrum is None:
            return False
        with self._lock:
            self.waveform = wave
            self.spectrum = spectrum
            self.engine.set_spectrum(spectrum)
        _LOGGER.debug("Published %d-harmonic spectrum", spectrum.harmonics)
        return True

    def play(self, frequency: float) -> bool:
        """Start a note. Returns False if that frequency is already sounding."""
        if not (frequency > 0 and math.isfinite(frequency)):
            raise ValueError(f"frequency must be a positive finite number, got {frequency!r}")
        key = frequency_key(frequency)
        with self._lock:
            if key in self._voices:
                return False
            handle = self.engine.create_voice(frequency, self.spectrum)
            self._voices[key] = ActiveVoice(frequency, handle, self.spectrum)
            self._rebalance()
        return True

    def stop(self, frequency: float) -> bool:
        """Stop a note. Returns False (and does nothing) if it was not sounding."""
        with self._lock:
            voice = self._voices.pop(frequency_key(frequency), None)
            if voice is None:
                return False
            self.engine.stop(voice.handle)
            self._rebalance()
        return True

    def stop_all(self):
        with self._lock:
            for voice in self._voices.values():
                self.engine.stop(voice.handle)
            self._voices.clear()

    def _rebalance(self):
        if not self._voices:
            return
        gain = self.ceiling / len(self._voices)
        for voice in self._voices.values():
            voice.gain = gain
            self.engine.set_voice_gain(voice.handle, gain)

    def active_frequencies(self) -> List[float]:
        with self._lock:
            return sorted(v.frequency for v in self._voices.values())

    def voice_for(self, frequency: float) -> Optional[ActiveVoice]:
        with self._lock:
            return self._voices.get(frequency_key(frequency))

    def total_gain(self) -> float:
        with self._lock:
            return sum(v.gain for v in self._voices.values())

    def __len__(self) -> int:
        with self._lock:
            return len(self._voices)

    def __contains__(self, frequency: float) -> bool:
        with self._lock:
            return frequency_key(frequency) in self._voices
