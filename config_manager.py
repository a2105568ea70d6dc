"""Configuration file management."""
import json
import logging
from pathlib import Path
from typing import List, Optional

_LOGGER = logging.getLogger("ondas.config")

DEFAULT_CONFIG = {
    "harmonic_cap": None,
    "display_frequency": 440.0,
    "record_duration": 0.5,
    "voice_ceiling": 0.8,
    "last_waveform": None,
}


def _clamp_display_frequency(value) -> float:
    try:
        frequency = float(value)
    except (TypeError, ValueError):
        return DEFAULT_CONFIG["display_frequency"]
    if frequency != frequency:  # NaN
        return DEFAULT_CONFIG["display_frequency"]
    return max(50.0, min(2000.0, frequency))


class ConfigManager:
    """Manages application configuration."""

    def __init__(self, config_file: Optional[Path] = None):
        self.config_file = Path(config_file) if config_file else Path(__file__).parent / "config.json"
        self.config = self._load_config()

    def _load_config(self) -> dict:
        """Load configuration from file, filling gaps with defaults."""
        config = self._default_config()
        if self.config_file.exists():
            try:
                with open(self.config_file, 'r') as f:
                    stored = json.load(f)
                if isinstance(stored, dict):
                    config.update(stored)
                else:
                    _LOGGER.warning("Ignoring %s: top level is not an object", self.config_file)
            except (OSError, ValueError) as e:
                _LOGGER.warning("Could not read %s, using defaults: %s", self.config_file, e)
        return config

    def _default_config(self) -> dict:
        """Return default configuration."""
        return dict(DEFAULT_CONFIG)

    def save_config(self):
        """Save configuration to file."""
        try:
            with open(self.config_file, 'w') as f:
                json.dump(self.config, f, indent=2)
        except OSError as e:
            _LOGGER.error("Error saving config: %s", e)

    # ── Analysis ─────────────────────────────────────────────────

    def get_harmonic_cap(self) -> Optional[int]:
        """Harmonic cap for analysis, or None for full FFT resolution."""
        cap = self.config.get("harmonic_cap")
        return int(cap) if cap else None

    def set_harmonic_cap(self, cap: Optional[int]):
        self.config["harmonic_cap"] = int(cap) if cap else None
        self.save_config()

    # ── Scope / capture / output ─────────────────────────────────

    def get_display_frequency(self) -> float:
        """Scope display frequency, clamped to [50, 2000] Hz even if the file was hand-edited."""
        return _clamp_display_frequency(self.config.get("display_frequency", 440.0))

    def set_display_frequency(self, frequency: float):
        """Persist the scope display frequency. Clamped to [50, 2000] Hz."""
        self.config["display_frequency"] = _clamp_display_frequency(frequency)
        self.save_config()

    def get_record_duration(self) -> float:
        return float(self.config.get("record_duration", 0.5))

    def get_voice_ceiling(self) -> float:
        return float(self.config.get("voice_ceiling", 0.8))

    # ── Last waveform ────────────────────────────────────────────

    def get_last_waveform(self) -> Optional[List[float]]:
        """Return the last published waveform, or None."""
        wave = self.config.get("last_waveform")
        if not isinstance(wave, list) or len(wave) < 2:
            return None
        return [float(v) for v in wave]

    def set_last_waveform(self, waveform):
        """Persist a waveform so it is restored on the next start."""
        self.config["last_waveform"] = None if waveform is None else [round(float(v), 5) for v in waveform]
        self.save_config()
