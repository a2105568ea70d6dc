#!/usr/bin/env python3
"""Tests for waveform analysis strategies and wavetable rendering."""
import sys
from pathlib import Path

import numpy as np
import pytest

sys.path.insert(0, str(Path(__file__).parent))

from dsp.harmonics import (
    DirectSumAnalysis, FFTAnalysis, SpectralCoefficients, as_waveform, render_wavetable,
    sine_table, strategy_for, synthesize,
)

N = 2048
PHASE = 2.0 * np.pi * np.arange(N) / N


def test_dc_term_is_the_mean():
    rng = np.random.default_rng(1)
    wave = rng.uniform(-1, 1, N)
    spectrum = synthesize(wave)
    assert spectrum.cosine[0] == pytest.approx(wave.mean(), abs=1e-12)
    assert spectrum.sine[0] == 0.0


def test_pure_sine_has_one_sine_coefficient():
    spectrum = synthesize(0.7 * np.sin(PHASE))
    assert spectrum.harmonics == N // 2
    assert spectrum.sine[1] == pytest.approx(0.7, abs=1e-9)
    assert abs(spectrum.cosine[1]) < 1e-9
    assert np.all(np.abs(spectrum.sine[2:]) < 1e-9)
    assert np.all(np.abs(spectrum.cosine[2:]) < 1e-9)


def test_cosine_third_harmonic():
    spectrum = synthesize(0.4 * np.cos(3 * PHASE))
    assert spectrum.cosine[3] == pytest.approx(0.4, abs=1e-9)
    assert abs(spectrum.sine[3]) < 1e-9


def test_direct_sum_agrees_with_fft():
    rng = np.random.default_rng(2)
    wave = rng.uniform(-1, 1, N)
    full = synthesize(wave, FFTAnalysis())
    capped = synthesize(wave, DirectSumAnalysis(64))
    assert capped.harmonics == 64
    assert np.allclose(capped.cosine, full.cosine[:65], atol=1e-9)
    assert np.allclose(capped.sine, full.sine[:65], atol=1e-9)


def test_direct_sum_accepts_any_length():
    wave = np.sin(2.0 * np.pi * np.arange(1000) / 1000)
    assert synthesize(wave, FFTAnalysis()) is None
    spectrum = synthesize(wave, DirectSumAnalysis(8))
    assert spectrum.sine[1] == pytest.approx(1.0, abs=1e-9)


def test_direct_sum_leaves_harmonics_above_half_length_empty():
    wave = np.sin(2.0 * np.pi * np.arange(8) / 8)
    spectrum = synthesize(wave, DirectSumAnalysis(64))
    assert spectrum.harmonics == 64
    assert spectrum.sine[1] == pytest.approx(1.0, abs=1e-9)
    assert np.all(spectrum.cosine[5:] == 0.0)
    assert np.all(spectrum.sine[5:] == 0.0)


def test_unusable_input_gives_none():
    assert synthesize(None) is None
    assert synthesize(np.array([0.5])) is None
    assert synthesize(np.array([0.5]), DirectSumAnalysis(4)) is None


def test_harmonic_cap_must_be_positive():
    with pytest.raises(ValueError):
        DirectSumAnalysis(0)


def test_strategy_for_cap():
    assert isinstance(strategy_for(None), FFTAnalysis)
    capped = strategy_for(16)
    assert isinstance(capped, DirectSumAnalysis)
    assert capped.harmonics == 16


def test_coefficients_are_read_only():
    spectrum = synthesize(np.sin(PHASE))
    with pytest.raises(ValueError):
        spectrum.cosine[1] = 1.0
    with pytest.raises(ValueError):
        SpectralCoefficients(np.zeros(3), np.zeros(4))


def test_as_waveform_clips_and_freezes():
    source = np.array([-2.0, 0.5, 3.0])
    wave = as_waveform(source)
    assert wave.tolist() == [-1.0, 0.5, 1.0]
    assert not wave.flags.writeable
    source[1] = 0.0
    assert wave[1] == 0.5


def test_rendered_sine_matches_sine_table():
    table = render_wavetable(synthesize(0.5 * np.sin(PHASE)), N)
    assert table.dtype == np.float32
    assert np.allclose(table, sine_table(N), atol=1e-5)


def test_render_drops_dc_and_normalises():
    table = render_wavetable(synthesize(0.5 + 0.25 * np.sin(PHASE) + 0.1 * np.sin(5 * PHASE)), N)
    assert abs(float(table.mean())) < 1e-6
    assert float(np.max(np.abs(table))) == pytest.approx(1.0, abs=1e-6)


def test_render_capped_spectrum_into_larger_table():
    wave = np.sin(PHASE) + 0.5 * np.sin(2 * PHASE)
    table = render_wavetable(synthesize(wave, DirectSumAnalysis(4)), 256)
    expected = np.sin(2 * np.pi * np.arange(256) / 256) + 0.5 * np.sin(4 * np.pi * np.arange(256) / 256)
    expected /= np.max(np.abs(expected))
    assert np.allclose(table, expected, atol=1e-5)


def test_silent_spectrum_renders_silence():
    table = render_wavetable(synthesize(np.zeros(N)), N)
    assert np.all(table == 0.0)


def test_render_requires_power_of_two():
    with pytest.raises(ValueError):
        render_wavetable(synthesize(np.sin(PHASE)), 1000)


def test_single_cycle_cosine_has_only_first_harmonic():
    spectrum = synthesize(0.8 * np.cos(PHASE))
    assert spectrum.cosine[1] == pytest.approx(0.8, abs=1e-9)
    rest = np.concatenate([spectrum.cosine[2:], spectrum.sine[1:]])
    assert np.all(np.abs(rest) < 1e-9)


@pytest.mark.parametrize("cap", [1, 8, 64])
def test_dc_term_is_the_mean_for_capped_analysis(cap):
    wave = np.random.default_rng(cap).uniform(-1, 1, 1000)
    spectrum = synthesize(wave, DirectSumAnalysis(cap))
    assert spectrum.cosine[0] == pytest.approx(wave.mean(), abs=1e-12)


def test_render_respects_max_harmonic():
    wave = np.sin(PHASE) + 0.5 * np.sin(9 * PHASE)
    table = render_wavetable(synthesize(wave), 256, max_harmonic=8)
    assert np.allclose(table, np.sin(2 * np.pi * np.arange(256) / 256), atol=1e-5)
