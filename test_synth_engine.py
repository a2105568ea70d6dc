#!/usr/bin/env python3
"""Tests for the wavetable engine, run without an audio device."""
import sys
from pathlib import Path

import numpy as np
import pytest

sys.path.insert(0, str(Path(__file__).parent))

from audio.synth_engine import RAMP_SECONDS, SynthEngine, Voice, harmonic_limit, read_table
from dsp.harmonics import render_wavetable, sine_table, synthesize

SR = 48000
PHASE = 2 * np.pi * np.arange(2048) / 2048


@pytest.fixture
def engine():
    eng = SynthEngine(sample_rate=SR, open_stream=False)
    yield eng
    eng.close()


def test_silent_without_voices(engine):
    out = engine.render(256)
    assert out.dtype == np.float32
    assert len(out) == 256
    assert np.all(out == 0.0)
    assert not engine.is_available()


def test_voice_sounds_after_next_buffer(engine):
    handle = engine.create_voice(440.0, None)
    engine.set_voice_gain(handle, 0.5)
    assert handle not in engine.voices
    out = engine.render(1024)
    assert handle in engine.voices
    assert np.max(np.abs(out)) == pytest.approx(0.5, abs=0.01)


def test_gain_ramps_in_without_a_click(engine):
    handle = engine.create_voice(440.0, None)
    engine.set_voice_gain(handle, 1.0)
    out = engine.render(64)
    # First samples are bounded by the ramp, not the full amplitude
    assert np.all(np.abs(out) <= np.arange(1, 65) / (RAMP_SECONDS * SR) + 1e-6)


def test_stopped_voice_is_removed_after_release(engine):
    handle = engine.create_voice(440.0, None)
    engine.set_voice_gain(handle, 0.5)
    engine.render(512)
    engine.stop(handle)
    engine.render(512)
    assert handle not in engine.voices
    assert np.all(engine.render(128) == 0.0)


def test_stop_unknown_handle_is_ignored(engine):
    engine.stop(999)
    engine.render(64)
    assert engine.voices == {}


def test_stop_all_releases_everything(engine):
    for f in (220.0, 330.0, 440.0):
        engine.set_voice_gain(engine.create_voice(f, None), 0.2)
    engine.render(512)
    assert len(engine.voices) == 3
    engine.stop_all()
    engine.render(512)
    assert engine.voices == {}


def test_output_is_clipped(engine):
    for f in (220.0, 277.0, 330.0):
        engine.set_voice_gain(engine.create_voice(f, None), 1.0)
    out = engine.render(4096)
    assert np.max(np.abs(out)) <= 1.0


def test_voice_uses_spectrum_wavetable(engine):
    spectrum = synthesize(np.sign(np.sin(PHASE)))
    handle = engine.create_voice(375.0, spectrum)
    engine.set_voice_gain(handle, 1.0)
    engine.render(1024)
    voice = engine.voices[handle]
    assert not np.allclose(voice.table, sine_table(2048), atol=0.05)
    # Same spectrum and harmonic limit reuse the rendered table
    other = engine.create_voice(380.0, spectrum)
    engine.render(64)
    assert engine.voices[other].table is voice.table


def test_scope_ring_is_oldest_first():
    eng = SynthEngine(scope_size=8, open_stream=False)
    eng._write_scope(np.arange(5, dtype=np.float32))
    eng._write_scope(np.arange(5, 10, dtype=np.float32))
    assert eng.read_scope().tolist() == [2, 3, 4, 5, 6, 7, 8, 9]
    eng._write_scope(np.arange(20, 40, dtype=np.float32))
    assert eng.read_scope().tolist() == list(range(32, 40))


def test_monitor_feeds_scope_while_silent(engine):
    engine.render(2048)
    tap = engine.read_scope()
    assert np.max(np.abs(tap)) > 0.9


def test_output_scope_source_follows_the_mix():
    eng = SynthEngine(scope_source="output", open_stream=False)
    eng.render(2048)
    assert np.all(eng.read_scope() == 0.0)


def test_rejects_unknown_scope_source():
    with pytest.raises(ValueError):
        SynthEngine(scope_source="speaker", open_stream=False)


def test_phase_is_continuous_across_buffers():
    a = Voice(1, 440.0, sine_table(2048), SR)
    b = Voice(2, 440.0, sine_table(2048), SR)
    joined = np.concatenate([read_table(a, 100), read_table(a, 100)])
    assert np.allclose(joined, read_table(b, 200), atol=1e-4)


def test_display_frequency_change_is_applied_on_render(engine):
    engine.set_display_frequency(220.0)
    engine.render(16)
    assert engine._monitor.frequency == 220.0


def test_close_clears_voices():
    eng = SynthEngine(open_stream=False)
    eng.set_voice_gain(eng.create_voice(440.0, None), 0.5)
    eng.render(64)
    with eng:
        pass
    assert eng.voices == {}
    assert eng.stream is None


def test_harmonic_limit_stays_below_nyquist():
    assert harmonic_limit(700.0, SR) == 34
    assert harmonic_limit(1000.0, SR) == 23
    assert harmonic_limit(30000.0, SR) == 1


def test_high_notes_drop_harmonics_above_nyquist(engine):
    spectrum = synthesize(np.linspace(-1.0, 1.0, 2048, endpoint=False))
    low = engine.create_voice(110.0, spectrum)
    high = engine.create_voice(3000.0, spectrum)
    engine.render(16)
    assert np.allclose(engine.voices[low].table, render_wavetable(spectrum, 2048, max_harmonic=218))
    assert np.allclose(engine.voices[high].table, render_wavetable(spectrum, 2048, max_harmonic=7))


def test_sawtooth_note_has_no_folded_partials(engine):
    spectrum = synthesize(np.linspace(-1.0, 1.0, 2048, endpoint=False))
    engine.set_voice_gain(engine.create_voice(700.0, spectrum), 0.5)
    engine.render(1024)  # past the gain ramp
    # One second at 48 kHz: bin i is i Hz, and 700 Hz partials land on exact bins
    power = np.abs(np.fft.rfft(engine.render(SR))) ** 2
    partials = power[700:24000:700].sum()
    assert 1.0 - partials / power.sum() < 0.01
