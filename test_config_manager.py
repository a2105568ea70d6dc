#!/usr/bin/env python3
"""Tests for ConfigManager persistence."""
import json
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent))

from config_manager import DEFAULT_CONFIG, ConfigManager


def test_defaults_without_file(tmp_path):
    config = ConfigManager(tmp_path / "config.json")
    assert config.get_harmonic_cap() is None
    assert config.get_display_frequency() == 440.0
    assert config.get_record_duration() == 0.5
    assert config.get_voice_ceiling() == 0.8
    assert config.get_last_waveform() is None


def test_settings_survive_reload(tmp_path):
    path = tmp_path / "config.json"
    config = ConfigManager(path)
    config.set_harmonic_cap(16)
    config.set_display_frequency(261.63)
    config.set_last_waveform([0.123456789, -1.0, 0.5])

    reloaded = ConfigManager(path)
    assert reloaded.get_harmonic_cap() == 16
    assert reloaded.get_display_frequency() == pytest.approx(261.63)
    assert reloaded.get_last_waveform() == [0.12346, -1.0, 0.5]


def test_display_frequency_is_clamped(tmp_path):
    config = ConfigManager(tmp_path / "config.json")
    config.set_display_frequency(10.0)
    assert config.get_display_frequency() == 50.0
    config.set_display_frequency(5000.0)
    assert config.get_display_frequency() == 2000.0


@pytest.mark.parametrize("stored, expected", [(0, 50.0), (-3.5, 50.0), (1e6, 2000.0), ("fast", 440.0), (None, 440.0)])
def test_hand_edited_display_frequency_is_clamped_on_load(tmp_path, stored, expected):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"display_frequency": stored}))
    assert ConfigManager(path).get_display_frequency() == expected


def test_clearing_harmonic_cap(tmp_path):
    config = ConfigManager(tmp_path / "config.json")
    config.set_harmonic_cap(64)
    config.set_harmonic_cap(None)
    assert config.get_harmonic_cap() is None


def test_corrupt_file_falls_back_to_defaults(tmp_path):
    path = tmp_path / "config.json"
    path.write_text("{not json")
    assert ConfigManager(path).config == DEFAULT_CONFIG
    path.write_text(json.dumps([1, 2, 3]))
    assert ConfigManager(path).config == DEFAULT_CONFIG


def test_partial_file_is_merged_with_defaults(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"voice_ceiling": 0.5}))
    config = ConfigManager(path)
    assert config.get_voice_ceiling() == 0.5
    assert config.get_display_frequency() == 440.0


def test_short_stored_waveform_is_ignored(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"last_waveform": [0.5]}))
    assert ConfigManager(path).get_last_waveform() is None
