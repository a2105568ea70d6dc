#!/usr/bin/env python3
"""Ondas - draw or sing a waveform, then play it. Main entry point."""
import logging
from typing import Optional

from textual.app import App
from textual.binding import Binding
from textual.containers import Container
from textual.screen import Screen
from textual.widgets import Footer, Header, Static

from audio.recorder import CaptureSession, Recorder
from audio.synth_engine import SynthEngine
from audio.voice_pool import VoicePool
from components.confirmation_dialog import ConfirmationDialog
from config_manager import ConfigManager
from dsp.harmonics import DEFAULT_HARMONIC_CAP, WAVEFORM_RESOLUTION, strategy_for
from dsp.scope import ScopeAligner
from logging_utils import configure_logging, log_exception
from modes.draw_mode import DrawMode
from modes.main_menu_mode import MainMenuMode
from modes.synth_mode import SynthMode
from modes.voice_mode import VoiceMode

_LOGGER = logging.getLogger("ondas.app")

# "m" cycles through these; None is full FFT resolution
HARMONIC_CAPS = [None, DEFAULT_HARMONIC_CAP, 16, 4]


class HelpBar(Static):
    """Mode-specific key hints shown above the footer."""

    HINTS = {
        "draw": "Mouse: Draw | ENTER: Publish | S: Reset to sine | C: Clear | M: Harmonic cap",
        "voice": "R / SPACE: Record (3 s countdown) | X / ESC: Cancel",
        "synth": "A W S E D F T G Y H U J K O L P ; ': Play | SPACE: All off | ↑↓: Scope frequency | M: Harmonic cap",
    }

    def __init__(self, mode_name: str, **kwargs):
        super().__init__(**kwargs)
        self.mode_name = mode_name

    def render(self) -> str:
        return self.HINTS.get(self.mode_name, "")


class MainScreen(Screen):
    """Main screen: one mode at a time in the content area."""

    CSS = """
    MainScreen {
        layout: vertical;
    }

    #content-area {
        height: 1fr;
        width: 100%;
        align: center middle;
    }

    #content-area > .mode-mounting {
        display: none;
    }

    #help-bar {
        width: 100%;
        height: auto;
        text-align: center;
        color: $text-muted;
        border-top: solid $accent;
    }
    """

    BINDINGS = [
        Binding("0", "show_main_menu", "Menu", show=True),
        Binding("1", "show_draw", "Draw", show=True),
        Binding("2", "show_voice", "Voice", show=True),
        Binding("3", "show_synth", "Synth", show=True),
        Binding("m", "cycle_harmonics", "Harmonics", show=True),
        Binding("backspace", "go_back", "Back", show=True),
        Binding("escape", "quit_app", "Quit", show=True),
    ]

    def __init__(self, app_context):
        super().__init__()
        self.app_context = app_context
        self.mode_history = []
        self._help_bar: Optional[HelpBar] = None

    def compose(self):
        yield Header()
        with Container(id="content-area"):
            pass
        yield Footer()

    def on_mount(self):
        self.action_show_main_menu(save_history=False)

    def _record_history(self):
        current = self.app_context.get("current_mode")
        if current and (not self.mode_history or self.mode_history[-1] != current):
            self.mode_history.append(current)

    def _show(self, mode_name: str, save_history: bool = True):
        actions = {
            "main_menu": self.action_show_main_menu,
            "draw": self.action_show_draw,
            "voice": self.action_show_voice,
            "synth": self.action_show_synth,
        }
        actions[mode_name](save_history=save_history)

    def action_go_back(self):
        if not self.mode_history:
            if self.app_context.get("current_mode") != "main_menu":
                self.action_show_main_menu(save_history=False)
            return
        self._show(self.mode_history.pop(), save_history=False)

    def _switch_mode(self, mode_widget, mode_name: str):
        """Swap the content area to ``mode_widget``; held notes never carry over."""
        self.app_context["voice_pool"].stop_all()

        content = self.query_one("#content-area")
        content.remove_children()
        mode_widget.add_class("mode-mounting")
        content.mount(mode_widget)

        def show_mode():
            mode_widget.remove_class("mode-mounting")

        self.call_later(show_mode)

        if self._help_bar is not None:
            self._help_bar.remove()
            self._help_bar = None
        if mode_name in HelpBar.HINTS:
            self._help_bar = HelpBar(mode_name, id="help-bar")
            self.mount(self._help_bar, before=self.query_one(Footer))

        self.app_context["current_mode"] = mode_name

    def action_show_main_menu(self, save_history=True):
        if save_history:
            self._record_history()
        self._switch_mode(MainMenuMode(self), "main_menu")

    def action_show_draw(self, save_history=True):
        if save_history:
            self._record_history()
        self._switch_mode(self.app_context["create_draw"](), "draw")

    def action_show_voice(self, save_history=True):
        if save_history:
            self._record_history()
        self._switch_mode(self.app_context["create_voice"](), "voice")

    def action_show_synth(self, save_history=True):
        if save_history:
            self._record_history()
        self._switch_mode(self.app_context["create_synth"](), "synth")

    def action_cycle_harmonics(self):
        self.app.cycle_harmonic_cap()

    def action_quit_app(self):
        def check_quit(result):
            if result:
                self.app.exit()

        self.app.push_screen(ConfirmationDialog("Quit Ondas?"), check_quit)


class OndasApp(App):
    """Waveform drawing and voice-capture synthesizer."""

    VERSION = "0.1.0"

    def __init__(self, config_manager: Optional[ConfigManager] = None, engine: Optional[SynthEngine] = None):
        super().__init__()
        self.title = f"Ondas v{self.VERSION}"
        self.config_manager = config_manager or ConfigManager()
        display_frequency = self.config_manager.get_display_frequency()
        self.engine = engine or SynthEngine(display_frequency=display_frequency)
        self.pool = VoicePool(self.engine, self.config_manager.get_voice_ceiling())
        self.aligner = ScopeAligner(display_frequency)
        self.capture_session = CaptureSession(
            Recorder(duration=self.config_manager.get_record_duration()), WAVEFORM_RESOLUTION
        )

        restored = self.config_manager.get_last_waveform()
        if restored is not None and self.publish_waveform(restored, persist=False):
            _LOGGER.info("Restored last waveform (%d samples)", len(restored))

        self.app_context = {
            "engine": self.engine,
            "voice_pool": self.pool,
            "aligner": self.aligner,
            "config_manager": self.config_manager,
            "create_draw": self._create_draw_mode,
            "create_voice": self._create_voice_mode,
            "create_synth": self._create_synth_mode,
            "current_mode": "main_menu",
        }

    def on_mount(self):
        self.push_screen(MainScreen(self.app_context))
        self.update_sub_title()

    def update_sub_title(self):
        cap = self.config_manager.get_harmonic_cap()
        analysis = "full resolution" if cap is None else f"{cap} harmonics"
        audio = "audio on" if self.engine.is_available() else "⚠ audio off"
        self.sub_title = f"{analysis} • {audio}"

    def publish_waveform(self, waveform, persist: bool = True) -> bool:
        """Make ``waveform`` the sound of new notes and the scope reference."""
        strategy = strategy_for(self.config_manager.get_harmonic_cap())
        if not self.pool.set_waveform(waveform, strategy):
            return False
        self.aligner.set_reference(self.pool.waveform)
        if persist:
            self.config_manager.set_last_waveform(self.pool.waveform)
        return True

    def cycle_harmonic_cap(self):
        current = self.config_manager.get_harmonic_cap()
        index = HARMONIC_CAPS.index(current) if current in HARMONIC_CAPS else 0
        cap = HARMONIC_CAPS[(index + 1) % len(HARMONIC_CAPS)]
        self.config_manager.set_harmonic_cap(cap)
        if self.pool.waveform is not None:
            self.publish_waveform(self.pool.waveform, persist=False)
        self.update_sub_title()

    def _create_draw_mode(self):
        return DrawMode(self.publish_waveform, self.pool.waveform)

    def _create_voice_mode(self):
        return VoiceMode(self.capture_session, self.publish_waveform)

    def _create_synth_mode(self):
        return SynthMode(self.engine, self.pool, self.aligner, self.config_manager)

    def on_unmount(self):
        self.capture_session.cancel()
        self.pool.stop_all()
        self.engine.close()


def main():
    """Main entry point."""
    configure_logging()
    app = OndasApp()
    try:
        app.run()
    except Exception as exc:
        path = log_exception("Ondas", exc)
        if path:
            print(f"Ondas crashed; details were written to {path}")
        raise


if __name__ == "__main__":
    main()
