"""Microphone capture: scoped device access and the capture session state machine."""
import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

import numpy as np

from audio.errors import CaptureCancelled, DecodeError, DeviceUnavailableError
from dsp.cycle import CaptureResult, waveform_from_recording
from dsp.harmonics import WAVEFORM_RESOLUTION

try:
    import pyaudio
    AUDIO_AVAILABLE = True
except ImportError:
    AUDIO_AVAILABLE = False
    pyaudio = None

_LOGGER = logging.getLogger("ondas.audio.recorder")

RECORD_SECONDS = 0.5
RECORD_SAMPLE_RATE = 44100
COUNTDOWN_SECONDS = 3


@dataclass(frozen=True)
class RecordedAudio:
    samples: np.ndarray
    sample_rate: int

    @property
    def duration(self) -> float:
        return len(self.samples) / self.sample_rate if self.sample_rate else 0.0


def decode_float32(raw: bytes) -> np.ndarray:
    """Raw little-endian float32 PCM bytes → float64 samples.

    Raises:
        DecodeError: On a truncated frame, an empty buffer or non-finite samples.
    """
    if not raw:
        raise DecodeError("No audio data was captured")
    if len(raw) % 4:
        raise DecodeError(f"Captured {len(raw)} bytes, not a whole number of float32 samples")
    samples = np.frombuffer(raw, dtype="<f4").astype(np.float64)
    if not np.all(np.isfinite(samples)):
        raise DecodeError("Captured audio contains non-finite samples")
    return samples


def _default_audio_factory():
    if not AUDIO_AVAILABLE or pyaudio is None:
        raise DeviceUnavailableError("PyAudio is not installed")
    return pyaudio.PyAudio()


class MicrophoneSession:
    """Mono float32 input stream, released on every exit path.

    Use as a context manager::

        with MicrophoneSession(44100) as mic:
            raw = mic.read(1024)
    """

    def __init__(self, sample_rate: int = RECORD_SAMPLE_RATE, chunk_size: int = 1024,
                 audio_factory: Optional[Callable] = None):
        self.sample_rate = sample_rate
        self.chunk_size = chunk_size
        self._audio_factory = audio_factory or _default_audio_factory
        self.audio = None
        self.stream = None

    def __enter__(self):
        try:
            self.audio = self._audio_factory()
            self.stream = self.audio.open(
                format=pyaudio.paFloat32 if pyaudio is not None else None,
                channels=1, rate=self.sample_rate, input=True,
                frames_per_buffer=self.chunk_size,
            )
        except DeviceUnavailableError:
            self._release()
            raise
        except Exception as e:
            self._release()
            raise DeviceUnavailableError(f"Microphone access denied or unavailable: {e}") from e
        return self

    def read(self, frames: int) -> bytes:
        if self.stream is None:
            raise DeviceUnavailableError("Microphone stream is not open")
        try:
            return self.stream.read(frames, exception_on_overflow=False)
        except OSError as e:
            raise DeviceUnavailableError(f"Microphone stopped delivering audio: {e}") from e

    def __exit__(self, exc_type, exc, tb):
        self._release()
        return False

    def _release(self):
        stream, audio = self.stream, self.audio
        self.stream = None
        self.audio = None
        try:
            if stream is not None:
                try:
                    stream.stop_stream()
                finally:
                    stream.close()
        finally:
            if audio is not None:
                audio.terminate()

    @property
    def is_open(self) -> bool:
        return self.stream is not None


class Recorder:
    """Records a fixed-length clip from the default microphone."""

    def __init__(self, duration: float = RECORD_SECONDS, sample_rate: int = RECORD_SAMPLE_RATE,
                 chunk_size: int = 1024, audio_factory: Optional[Callable] = None):
        self.duration = duration
        self.sample_rate = sample_rate
        self.chunk_size = chunk_size
        self._audio_factory = audio_factory

    def record(self, cancel_event: Optional[threading.Event] = None) -> RecordedAudio:
        """Block for ``duration`` seconds of input and return the decoded samples.

        Raises:
            DeviceUnavailableError: The input device could not be opened.
            CaptureCancelled: ``cancel_event`` was set mid-capture.
            DecodeError: The captured bytes are not valid float32 PCM.
        """
        frames_needed = max(1, int(round(self.duration * self.sample_rate)))
        chunks = []
        with MicrophoneSession(self.sample_rate, self.chunk_size, self._audio_factory) as mic:
            captured = 0
            while captured < frames_needed:
                if cancel_event is not None and cancel_event.is_set():
                    raise CaptureCancelled("Recording cancelled")
                frames = min(self.chunk_size, frames_needed - captured)
                chunks.append(mic.read(frames))
                captured += frames
        samples = decode_float32(b"".join(chunks))
        return RecordedAudio(samples, self.sample_rate)


class CaptureState(Enum):
    IDLE = "idle"
    COUNTDOWN = "countdown"
    RECORDING = "recording"
    CAPTURED = "captured"
    ERROR = "error"


class CaptureSession:
    """Drives one capture at a time: countdown, record, turn into a waveform.

    ``start()`` cancels whatever capture is in flight before arming a new one,
    and results from a superseded capture are discarded.
    """

    def __init__(self, recorder: Recorder, length: int = WAVEFORM_RESOLUTION):
        self.recorder = recorder
        self.length = length
        self.state = CaptureState.IDLE
        self.warning = ""
        self.error = ""
        self.result: Optional[CaptureResult] = None
        self._cancel = threading.Event()
        self._generation = 0
        self._lock = threading.Lock()

    def start(self) -> int:
        """Arm a new capture (countdown state). Returns its generation id."""
        with self._lock:
            self._cancel.set()
            self._cancel = threading.Event()
            self._generation += 1
            self.state = CaptureState.COUNTDOWN
            self.warning = ""
            self.error = ""
            return self._generation

    def cancel(self):
        with self._lock:
            self._cancel.set()
            self._generation += 1
            if self.state in (CaptureState.COUNTDOWN, CaptureState.RECORDING):
                self.state = CaptureState.IDLE

    def is_busy(self) -> bool:
        return self.state in (CaptureState.COUNTDOWN, CaptureState.RECORDING)

    def capture(self, generation: int) -> Optional[CaptureResult]:
        """Record and process; meant to run on a worker thread.

        Returns the result, or None when the capture failed, was cancelled or
        was superseded. Failures are reported through ``state``, ``warning``
        and ``error`` rather than raised.
        """
        with self._lock:
            if generation != self._generation:
                return None
            self.state = CaptureState.RECORDING
            cancel_event = self._cancel

        try:
            recorded = self.recorder.record(cancel_event)
        except (CaptureCancelled, DecodeError, DeviceUnavailableError) as e:
            self.fail(generation, e)
            return None
        return self.finish(generation, recorded)

    def finish(self, generation: int, recorded: RecordedAudio) -> Optional[CaptureResult]:
        """Turn a finished recording into the captured waveform."""
        result = waveform_from_recording(recorded.samples, recorded.sample_rate, self.length)
        with self._lock:
            if generation != self._generation:
                return None
            self.state = CaptureState.CAPTURED
            self.result = result
        return result

    def fail(self, generation: int, exc: Exception):
        """Record why a capture produced nothing.

        Cancellation leaves the state alone, a decode failure drops back to
        IDLE with a warning and a device failure moves to ERROR.
        """
        if isinstance(exc, CaptureCancelled):
            _LOGGER.info("Capture %d cancelled", generation)
            return
        with self._lock:
            if generation != self._generation:
                return
            if isinstance(exc, DecodeError):
                _LOGGER.warning("Could not decode audio: %s", exc)
                self.state = CaptureState.IDLE
                self.warning = "Could not decode audio"
            else:
                _LOGGER.error("Microphone unavailable: %s", exc)
                self.state = CaptureState.ERROR
                self.error = "Microphone access denied or unavailable."
