"""Synth Mode: play the current waveform from the computer keyboard and watch the scope."""
import logging
from functools import partial
from typing import TYPE_CHECKING, Dict, Optional

from textual import events
from textual.binding import Binding
from textual.containers import Center, Vertical

from audio.keyboard_map import KEYBOARD_NOTES, frequency_for_key, note_name_for_key
from components.header_widget import HeaderWidget
from components.keyboard_widget import KeyboardWidget
from components.oscilloscope import Oscilloscope

if TYPE_CHECKING:
    from audio.synth_engine import SynthEngine
    from audio.voice_pool import VoicePool
    from config_manager import ConfigManager
    from dsp.scope import ScopeAligner

_LOGGER = logging.getLogger("ondas.modes.synth")

# Terminals report key presses only; a note rings this long after its last press
NOTE_HOLD = 0.6
SEMITONE = 2.0 ** (1.0 / 12.0)


class SynthMode(Vertical):
    """Keyboard-driven player with a live oscilloscope."""

    DEFAULT_CSS = """
    SynthMode {
        width: 100%;
        height: 100%;
        padding: 0 1;
    }

    SynthMode:focus {
        border: heavy $accent;
    }

    #keyboard-row {
        width: 100%;
        height: auto;
        margin-top: 1;
    }
    """

    BINDINGS = [
        Binding("space", "panic", "All notes off", show=False),
        Binding("up", "display_up", "Scope +", show=False),
        Binding("down", "display_down", "Scope -", show=False),
    ]

    can_focus = True

    def __init__(self, engine: 'SynthEngine', pool: 'VoicePool', aligner: 'ScopeAligner',
                 config_manager: 'ConfigManager', **kwargs):
        super().__init__(**kwargs)
        self.engine = engine
        self.pool = pool
        self.aligner = aligner
        self.config_manager = config_manager
        self.header: Optional[HeaderWidget] = None
        self.keyboard: Optional[KeyboardWidget] = None
        self._release_timers: Dict[str, object] = {}
        self._held: set = set()

    def compose(self):
        self.header = HeaderWidget(title="S Y N T H", subtitle=self._idle_status())
        yield self.header
        yield Oscilloscope(self.engine, self.aligner, id="oscilloscope")
        with Center(id="keyboard-row"):
            self.keyboard = KeyboardWidget(id="keyboard")
            yield self.keyboard

    def on_mount(self):
        self.focus()
        if not self.engine.is_available():
            reason = self.engine.last_error or "no output device"
            self.header.update_subtitle(f"Audio output unavailable ({reason}); the scope still runs", "error")

    def on_unmount(self):
        for timer in self._release_timers.values():
            timer.stop()
        self._release_timers.clear()
        self._held.clear()
        self.pool.stop_all()

    def _idle_status(self) -> str:
        return f"Keys A–' play C4–F5 • scope locked to {self.aligner.display_frequency:.1f} Hz"

    # ── Notes ────────────────────────────────────────────────────

    def on_key(self, event: events.Key) -> None:
        if event.key in KEYBOARD_NOTES:
            event.stop()
            self.press(event.key)
            self._arm_release(event.key)

    def press(self, key: str) -> bool:
        frequency = frequency_for_key(key)
        if frequency is None:
            return False
        started = self.pool.play(frequency)
        if started:
            self._held.add(key)
            self.keyboard.set_active(self._held)
            self.header.update_subtitle(f"♪ {note_name_for_key(key)} • {frequency:.2f} Hz • {len(self.pool)} voice(s)")
        return started

    def release(self, key: str) -> bool:
        timer = self._release_timers.pop(key, None)
        if timer is not None:
            timer.stop()
        frequency = frequency_for_key(key)
        stopped = frequency is not None and self.pool.stop(frequency)
        self._held.discard(key)
        self.keyboard.set_active(self._held)
        if not self._held:
            self.header.update_subtitle(self._idle_status())
        return stopped

    def _arm_release(self, key: str):
        """(Re)start the hold timer; keyboard auto-repeat keeps a note ringing."""
        timer = self._release_timers.pop(key, None)
        if timer is not None:
            timer.stop()
        self._release_timers[key] = self.set_timer(NOTE_HOLD, partial(self.release, key))

    def on_keyboard_widget_pressed(self, message: KeyboardWidget.Pressed) -> None:
        self.press(message.key)

    def on_keyboard_widget_released(self, message: KeyboardWidget.Released) -> None:
        self.release(message.key)

    def action_panic(self):
        for timer in self._release_timers.values():
            timer.stop()
        self._release_timers.clear()
        self._held.clear()
        self.pool.stop_all()
        self.keyboard.set_active(self._held)
        self.header.update_subtitle("All notes off", "warning")

    # ── Scope display frequency ──────────────────────────────────

    def _set_display_frequency(self, frequency: float):
        self.config_manager.set_display_frequency(frequency)
        frequency = self.config_manager.get_display_frequency()
        self.aligner.display_frequency = frequency
        self.engine.set_display_frequency(frequency)
        _LOGGER.debug("Scope display frequency %.2f Hz", frequency)
        self.header.update_subtitle(self._idle_status())

    def action_display_up(self):
        self._set_display_frequency(self.aligner.display_frequency * SEMITONE)

    def action_display_down(self):
        self._set_display_frequency(self.aligner.display_frequency / SEMITONE)
