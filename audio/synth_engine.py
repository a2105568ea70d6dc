"""Wavetable synthesizer engine: renders voices from spectral coefficients."""
import itertools
import logging
import queue
import threading
from typing import Dict, Optional

import numpy as np

from dsp.harmonics import WAVEFORM_RESOLUTION, SpectralCoefficients, render_wavetable, sine_table

# Check for PyAudio availability
try:
    import pyaudio
    AUDIO_AVAILABLE = True
except ImportError:
    AUDIO_AVAILABLE = False
    pyaudio = None

_LOGGER = logging.getLogger("ondas.audio.engine")

# Gain ramp used on voice start/stop and gain changes (~5 ms at 48 kHz)
RAMP_SECONDS = 0.005


def harmonic_limit(frequency: float, sample_rate: int) -> int:
    """Highest harmonic of ``frequency`` that stays below the Nyquist frequency."""
    return max(1, int(np.ceil(sample_rate / (2.0 * frequency))) - 1)


class Voice:
    """One wavetable oscillator at a fixed frequency."""

    def __init__(self, handle: int, frequency: float, table: np.ndarray, sample_rate: int):
        self.handle = handle
        self.frequency = frequency
        self.table = table
        self.sample_rate = sample_rate
        self.phase = 0.0  # position in the table, in samples
        self.gain_current = 0.0
        self.gain_target = 0.0
        self.releasing = False
        # Full-scale gain change per sample
        self.slope = 1.0 / max(1.0, RAMP_SECONDS * sample_rate)

    def set_gain(self, gain: float):
        if not self.releasing:
            self.gain_target = max(0.0, float(gain))

    def release(self):
        self.releasing = True
        self.gain_target = 0.0

    def is_finished(self) -> bool:
        return self.releasing and self.gain_current <= 0.0

    def _gain_ramp(self, num_samples: int) -> np.ndarray:
        delta = self.gain_target - self.gain_current
        if delta == 0.0:
            return np.full(num_samples, self.gain_current, dtype=np.float32)
        steps = self.gain_current + np.sign(delta) * self.slope * np.arange(1, num_samples + 1)
        if delta > 0:
            gains = np.minimum(steps, self.gain_target)
        else:
            gains = np.maximum(steps, self.gain_target)
        self.gain_current = float(gains[-1])
        return gains.astype(np.float32)

    def render(self, num_samples: int) -> np.ndarray:
        return read_table(self, num_samples) * self._gain_ramp(num_samples)


def read_table(osc, num_samples: int) -> np.ndarray:
    """Advance ``osc.phase`` through ``osc.table`` with linear interpolation.

    Phase is free-running and carried across buffers, so consecutive calls
    join without a discontinuity.
    """
    size = len(osc.table)
    inc = osc.frequency * size / osc.sample_rate
    pos = osc.phase + inc * np.arange(num_samples)
    i0 = np.floor(pos).astype(np.int64)
    frac = (pos - i0).astype(np.float32)
    i0 %= size
    i1 = (i0 + 1) % size
    samples = osc.table[i0] * (1.0 - frac) + osc.table[i1] * frac
    osc.phase = (osc.phase + inc * num_samples) % size
    return samples.astype(np.float32)


class _Monitor:
    """Silent oscillator that feeds the scope tap at the display frequency."""

    def __init__(self, frequency: float, table: np.ndarray, sample_rate: int):
        self.frequency = frequency
        self.table = table
        self.sample_rate = sample_rate
        self.phase = 0.0


class SynthEngine:
    """Polyphonic wavetable engine with a PyAudio output stream and a scope tap.

    Control calls (``set_spectrum``, ``create_voice``, ``set_voice_gain``,
    ``stop``, ``stop_all``) only enqueue events. They are applied on the audio
    thread at the start of the next buffer, never mid-buffer.
    """

    def __init__(self, sample_rate: int = 48000, buffer_size: int = 256,
                 table_size: int = WAVEFORM_RESOLUTION, scope_size: int = 2048,
                 display_frequency: float = 440.0, scope_source: str = "monitor",
                 open_stream: bool = True):
        if scope_source not in ("monitor", "output"):
            raise ValueError(f"scope_source must be 'monitor' or 'output', got {scope_source!r}")
        self.sample_rate = sample_rate
        self.buffer_size = buffer_size
        self.table_size = table_size
        self.scope_size = scope_size
        self.scope_source = scope_source
        self.audio = None
        self.stream = None
        self.running = False
        self.last_error: Optional[str] = None

        self.spectrum: Optional[SpectralCoefficients] = None
        self._table = sine_table(table_size)
        self._table_spectrum: Optional[SpectralCoefficients] = None
        self._voice_tables: Dict[int, np.ndarray] = {}
        self._table_lock = threading.Lock()

        self.voices: Dict[int, Voice] = {}
        self.event_queue: queue.Queue = queue.Queue()
        self._handles = itertools.count(1)

        self._monitor = _Monitor(display_frequency, self._table, sample_rate)
        self._scope_buf = np.zeros(scope_size, dtype=np.float32)
        self._scope_write = 0
        self._scope_lock = threading.Lock()

        if open_stream:
            self._open_stream()

    def _open_stream(self):
        if not AUDIO_AVAILABLE or pyaudio is None:
            self.last_error = "PyAudio is not installed"
            _LOGGER.warning("Audio output disabled: %s", self.last_error)
            return
        try:
            self.audio = pyaudio.PyAudio()
            default_output = self.audio.get_default_output_device_info()
            self.stream = self.audio.open(
                format=pyaudio.paInt16, channels=2, rate=self.sample_rate,
                output=True, output_device_index=default_output['index'],
                frames_per_buffer=self.buffer_size, stream_callback=self._audio_callback, start=False
            )
            self.stream.start_stream()
            self.running = True
            _LOGGER.info("Audio output open: %d Hz, %d-frame buffers", self.sample_rate, self.buffer_size)
        except Exception as e:
            self.last_error = str(e)
            _LOGGER.warning("Audio initialization failed: %s", e, exc_info=True)
            self.running = False
            if self.audio is not None:
                self.audio.terminate()
                self.audio = None

    # ── Wavetables ───────────────────────────────────────────────

    def _table_for(self, spectrum: Optional[SpectralCoefficients]) -> np.ndarray:
        if spectrum is None:
            return sine_table(self.table_size)
        with self._table_lock:
            if spectrum is self._table_spectrum:
                return self._table
        table = render_wavetable(spectrum, self.table_size)
        with self._table_lock:
            self._table_spectrum = spectrum
            self._table = table
            self._voice_tables = {}
        return table

    def _voice_table(self, frequency: float, spectrum: Optional[SpectralCoefficients]) -> np.ndarray:
        """Wavetable for one note, without harmonics that would fold back past Nyquist.

        Tables are cached per harmonic limit for the current spectrum.
        """
        if spectrum is None:
            return sine_table(self.table_size)
        self._table_for(spectrum)
        limit = harmonic_limit(frequency, self.sample_rate)
        with self._table_lock:
            cached = self._voice_tables.get(limit)
            if cached is not None and spectrum is self._table_spectrum:
                return cached
        table = render_wavetable(spectrum, self.table_size, max_harmonic=limit)
        with self._table_lock:
            if spectrum is self._table_spectrum:
                self._voice_tables[limit] = table
        return table

    # ── Control API (any thread) ─────────────────────────────────

    def set_spectrum(self, spectrum: Optional[SpectralCoefficients]):
        """Publish the spectrum used by the scope monitor and by callers' new voices."""
        self.spectrum = spectrum
        table = self._table_for(spectrum)
        self.event_queue.put({'type': 'spectrum', 'table': table})

    def create_voice(self, frequency: float, spectrum: Optional[SpectralCoefficients]) -> int:
        """Start a voice at ``frequency`` (sine when ``spectrum`` is None); returns its handle."""
        handle = next(self._handles)
        voice = Voice(handle, frequency, self._voice_table(frequency, spectrum), self.sample_rate)
        self.event_queue.put({'type': 'voice_on', 'voice': voice})
        return handle

    def set_voice_gain(self, handle: int, gain: float):
        self.event_queue.put({'type': 'voice_gain', 'handle': handle, 'gain': gain})

    def stop(self, handle: int):
        self.event_queue.put({'type': 'voice_off', 'handle': handle})

    def stop_all(self):
        self.event_queue.put({'type': 'all_off'})

    def set_display_frequency(self, frequency: float):
        self.event_queue.put({'type': 'display_frequency', 'frequency': float(frequency)})

    # ── Audio thread ─────────────────────────────────────────────

    def _process_events(self):
        """Drain the control queue at the start of a buffer."""
        while True:
            try:
                e = self.event_queue.get_nowait()
            except queue.Empty:
                break
            kind = e['type']
            if kind == 'voice_on':
                voice = e['voice']
                self.voices[voice.handle] = voice
            elif kind == 'voice_gain':
                voice = self.voices.get(e['handle'])
                if voice is not None:
                    voice.set_gain(e['gain'])
            elif kind == 'voice_off':
                voice = self.voices.get(e['handle'])
                if voice is not None:
                    voice.release()
            elif kind == 'all_off':
                for voice in self.voices.values():
                    voice.release()
            elif kind == 'spectrum':
                self._monitor.table = e['table']
            elif kind == 'display_frequency':
                self._monitor.frequency = e['frequency']

    def render(self, frame_count: int) -> np.ndarray:
        """Render ``frame_count`` mono samples and feed the scope tap."""
        self._process_events()

        mixed = np.zeros(frame_count, dtype=np.float32)
        for voice in list(self.voices.values()):
            mixed += voice.render(frame_count)
            if voice.is_finished():
                del self.voices[voice.handle]
        mixed = np.clip(mixed, -1.0, 1.0)

        if self.scope_source == "monitor":
            self._write_scope(read_table(self._monitor, frame_count))
        else:
            self._write_scope(mixed)
        return mixed

    def _audio_callback(self, in_data, frame_count, time_info, status):
        try:
            mono = self.render(frame_count)
            out = np.empty(frame_count * 2, dtype=np.int16)
            pcm = np.clip(mono * 32767, -32767, 32767)
            out[0::2] = pcm
            out[1::2] = pcm
            return (out.tobytes(), pyaudio.paContinue)
        except Exception:
            _LOGGER.exception("Audio callback failed, emitting silence")
            return (np.zeros(frame_count * 2, dtype=np.int16).tobytes(), pyaudio.paContinue)

    # ── Scope tap ────────────────────────────────────────────────

    def _write_scope(self, samples: np.ndarray):
        size = self.scope_size
        with self._scope_lock:
            if len(samples) >= size:
                self._scope_buf[:] = samples[-size:]
                self._scope_write = 0
                return
            end = self._scope_write + len(samples)
            if end <= size:
                self._scope_buf[self._scope_write:end] = samples
            else:
                split = size - self._scope_write
                self._scope_buf[self._scope_write:] = samples[:split]
                self._scope_buf[:end - size] = samples[split:]
            self._scope_write = end % size

    def read_scope(self) -> np.ndarray:
        """Copy of the most recent ``scope_size`` samples, oldest first."""
        with self._scope_lock:
            return np.roll(self._scope_buf, -self._scope_write).copy()

    # ── Lifecycle ────────────────────────────────────────────────

    def is_available(self) -> bool:
        return AUDIO_AVAILABLE and self.running

    def close(self):
        self.running = False
        self.stop_all()
        if self.stream:
            self.stream.stop_stream()
            self.stream.close()
            self.stream = None
        if self.audio:
            self.audio.terminate()
            self.audio = None
        self.voices.clear()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False
