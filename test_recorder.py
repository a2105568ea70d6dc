#!/usr/bin/env python3
"""Tests for microphone capture with an injected fake PyAudio."""
import sys
import threading
from pathlib import Path

import numpy as np
import pytest

sys.path.insert(0, str(Path(__file__).parent))

from audio.errors import CaptureCancelled, DecodeError, DeviceUnavailableError
from audio.recorder import (
    CaptureSession, CaptureState, MicrophoneSession, RecordedAudio, Recorder, decode_float32,
)

SR = 44100


class FakeStream:
    def __init__(self, signal, fail_after=None, on_read=None, raw_chunk=None):
        self.signal = signal
        self.position = 0
        self.reads = 0
        self.fail_after = fail_after
        self.on_read = on_read
        self.raw_chunk = raw_chunk
        self.stopped = False
        self.closed = False

    def read(self, frames, exception_on_overflow=True):
        assert exception_on_overflow is False
        self.reads += 1
        if self.fail_after is not None and self.reads > self.fail_after:
            raise OSError("device unplugged")
        if self.on_read is not None:
            self.on_read()
        if self.raw_chunk is not None:
            return self.raw_chunk
        chunk = self.signal[self.position:self.position + frames]
        self.position += frames
        return chunk.astype("<f4").tobytes()

    def stop_stream(self):
        self.stopped = True

    def close(self):
        self.closed = True


class FakeAudio:
    def __init__(self, stream=None, open_error=None):
        self.stream = stream
        self.open_error = open_error
        self.open_kwargs = None
        self.terminated = False

    def open(self, **kwargs):
        self.open_kwargs = kwargs
        if self.open_error is not None:
            raise self.open_error
        return self.stream

    def terminate(self):
        self.terminated = True


def sine(freq=220.0, seconds=0.5, amp=0.6):
    t = np.arange(int(SR * seconds)) / SR
    return amp * np.sin(2 * np.pi * freq * t)


def test_decode_float32():
    raw = np.array([0.25, -0.5], dtype="<f4").tobytes()
    assert decode_float32(raw).tolist() == [0.25, -0.5]


@pytest.mark.parametrize("raw", [b"", b"abc", np.array([np.nan], dtype="<f4").tobytes()])
def test_decode_rejects_bad_buffers(raw):
    with pytest.raises(DecodeError):
        decode_float32(raw)


def test_record_reads_requested_duration_and_releases():
    stream = FakeStream(sine())
    audio = FakeAudio(stream)
    recorder = Recorder(duration=0.5, sample_rate=SR, chunk_size=1024, audio_factory=lambda: audio)
    recorded = recorder.record()
    assert isinstance(recorded, RecordedAudio)
    assert len(recorded.samples) == 22050
    assert recorded.duration == pytest.approx(0.5)
    assert audio.open_kwargs["input"] is True
    assert audio.open_kwargs["channels"] == 1
    assert stream.stopped and stream.closed and audio.terminated


def test_open_failure_becomes_device_error_and_releases():
    audio = FakeAudio(open_error=OSError("permission denied"))
    with pytest.raises(DeviceUnavailableError):
        with MicrophoneSession(SR, audio_factory=lambda: audio):
            pass
    assert audio.terminated


def test_factory_failure_propagates():
    def no_device():
        raise DeviceUnavailableError("PyAudio is not installed")

    with pytest.raises(DeviceUnavailableError):
        Recorder(audio_factory=no_device).record()


def test_read_failure_releases_device():
    stream = FakeStream(sine(), fail_after=2)
    audio = FakeAudio(stream)
    with pytest.raises(DeviceUnavailableError):
        Recorder(sample_rate=SR, audio_factory=lambda: audio).record()
    assert stream.closed and audio.terminated


def test_cancel_stops_recording_and_releases():
    cancel = threading.Event()
    stream = FakeStream(sine(), on_read=cancel.set)
    audio = FakeAudio(stream)
    with pytest.raises(CaptureCancelled):
        Recorder(sample_rate=SR, audio_factory=lambda: audio).record(cancel)
    assert stream.reads == 1
    assert stream.closed and audio.terminated


def session_for(stream=None, open_error=None):
    audio = FakeAudio(stream, open_error)
    recorder = Recorder(duration=0.5, sample_rate=SR, audio_factory=lambda: audio)
    return CaptureSession(recorder, 2048), audio


def test_capture_produces_waveform():
    session, audio = session_for(FakeStream(sine(220.0)))
    generation = session.start()
    assert session.state == CaptureState.COUNTDOWN
    assert session.is_busy()
    result = session.capture(generation)
    assert session.state == CaptureState.CAPTURED
    assert session.result is result
    assert result.frequency(SR) == pytest.approx(220.0, abs=0.6)
    assert len(result.waveform) == 2048
    assert audio.terminated


def test_capture_reports_missing_microphone():
    session, _ = session_for(open_error=OSError("denied"))
    result = session.capture(session.start())
    assert result is None
    assert session.state == CaptureState.ERROR
    assert session.error == "Microphone access denied or unavailable."


def test_capture_reports_decode_failure():
    session, audio = session_for(FakeStream(None, raw_chunk=b"abc"))
    result = session.capture(session.start())
    assert result is None
    assert session.state == CaptureState.IDLE
    assert session.warning == "Could not decode audio"
    assert audio.terminated


def test_superseded_capture_is_discarded():
    session, audio = session_for(FakeStream(sine()))
    stale = session.start()
    session.start()
    assert session.capture(stale) is None
    assert session.state == CaptureState.COUNTDOWN
    assert audio.open_kwargs is None


def test_cancel_during_capture():
    holder = {}
    stream = FakeStream(sine(), on_read=lambda: holder["session"].cancel())
    session, audio = session_for(stream)
    holder["session"] = session
    generation = session.start()
    assert session.capture(generation) is None
    assert session.state == CaptureState.IDLE
    assert session.result is None
    assert audio.terminated


def test_failures_of_superseded_captures_are_ignored():
    session, _ = session_for(FakeStream(sine()))
    stale = session.start()
    current = session.start()
    session.fail(stale, DeviceUnavailableError("gone"))
    assert session.state == CaptureState.COUNTDOWN
    session.fail(current, DecodeError("bad bytes"))
    assert session.state == CaptureState.IDLE
    assert session.warning == "Could not decode audio"


def test_finish_turns_recording_into_waveform():
    session, _ = session_for()
    generation = session.start()
    result = session.finish(generation, RecordedAudio(sine(330.0), SR))
    assert session.state == CaptureState.CAPTURED
    assert result.frequency(SR) == pytest.approx(330.0, abs=1.0)
