"""Voice Mode: record a short sung note and turn one cycle of it into the waveform."""
import logging
import threading
from typing import Callable, Optional

import numpy as np
from textual.binding import Binding
from textual.containers import Vertical
from textual.widgets import Static

from audio.recorder import COUNTDOWN_SECONDS, CaptureSession, CaptureState
from components.header_widget import HeaderWidget
from components.plot import plot_waveform
from dsp.cycle import CaptureResult

_LOGGER = logging.getLogger("ondas.modes.voice")

BIG_DIGITS = {
    "3": ["███", "  █", "███", "  █", "███"],
    "2": ["███", "  █", "███", "█  ", "███"],
    "1": [" █ ", "██ ", " █ ", " █ ", "███"],
    "0": ["███", "█ █", "█ █", "█ █", "███"],
}


class VoiceMode(Vertical):
    """Countdown, capture on a worker thread, then publish the extracted cycle."""

    DEFAULT_CSS = """
    VoiceMode {
        width: 100%;
        height: 100%;
        padding: 0 1;
    }

    VoiceMode:focus {
        border: heavy $accent;
    }

    #countdown {
        width: 100%;
        height: 5;
        text-align: center;
        color: #ffd700;
    }

    #capture-preview {
        width: 100%;
        height: 1fr;
        min-height: 7;
        color: #00ff88;
        background: #0a0a0a;
        border: round #444444;
    }
    """

    BINDINGS = [
        Binding("r", "record", "Record", show=False),
        Binding("space", "record", "Record", show=False),
        Binding("x", "cancel", "Cancel", show=False),
        Binding("escape", "cancel", "Cancel", show=False),
    ]

    can_focus = True

    def __init__(self, session: CaptureSession, publish: Callable[[np.ndarray], bool], **kwargs):
        super().__init__(**kwargs)
        self.session = session
        self.publish = publish
        self.header: Optional[HeaderWidget] = None
        self._generation = 0
        self._remaining = 0
        self._countdown_timer = None
        self._preview: Optional[np.ndarray] = None

    def compose(self):
        self.header = HeaderWidget(title="V O I C E", subtitle="Press R to record half a second of a sung note")
        yield self.header
        yield Static("", id="countdown")
        yield Static(plot_waveform([], 60, 9), id="capture-preview")

    def on_mount(self):
        self.focus()

    def on_unmount(self):
        self._stop_countdown()
        if self.session.is_busy():
            self.session.cancel()

    def on_resize(self, event) -> None:
        self._draw_preview()

    # ── Countdown ────────────────────────────────────────────────

    def action_record(self):
        if self.session.is_busy():
            return
        self._generation = self.session.start()
        self._remaining = COUNTDOWN_SECONDS
        self._show_countdown()
        self.header.update_subtitle("Get ready…", "busy")
        self._countdown_timer = self.set_interval(1.0, self._count_down)

    def _count_down(self):
        self._remaining -= 1
        self._show_countdown()
        if self._remaining > 0:
            return
        self._stop_countdown()
        self.header.update_subtitle("Recording…", "busy")
        generation = self._generation
        threading.Thread(target=self._run_capture, args=(generation,), daemon=True).start()

    def _stop_countdown(self):
        if self._countdown_timer:
            self._countdown_timer.stop()
            self._countdown_timer = None

    def _show_countdown(self):
        display = self.query_one("#countdown", Static)
        if self._remaining <= 0 and not self.session.is_busy():
            display.update("")
            return
        digits = str(max(0, self._remaining))
        rows = ["  ".join(BIG_DIGITS[d][i] for d in digits) for i in range(5)]
        display.update("\n".join(rows))

    def action_cancel(self):
        if not self.session.is_busy():
            return
        self._stop_countdown()
        self.session.cancel()
        self._remaining = 0
        self._show_countdown()
        self.header.update_subtitle("Recording cancelled", "warning")

    # ── Capture (worker thread) ──────────────────────────────────

    def _run_capture(self, generation: int):
        result = self.session.capture(generation)
        try:
            self.app.call_from_thread(self._capture_finished, generation, result)
        except RuntimeError:
            # App already shut down
            _LOGGER.debug("Dropping capture %d result after exit", generation)

    def _capture_finished(self, generation: int, result: Optional[CaptureResult]):
        if generation != self._generation or not self.is_mounted:
            return
        self._remaining = 0
        self._show_countdown()
        state = self.session.state
        if state == CaptureState.ERROR:
            self.header.update_subtitle(self.session.error, "error")
            return
        if result is None:
            if self.session.warning:
                self.header.update_subtitle(self.session.warning, "warning")
            return

        self._preview = np.asarray(result.waveform)
        self._draw_preview()
        if not self.publish(result.waveform):
            self.header.update_subtitle("Captured audio could not be analysed", "warning")
            return
        frequency = result.frequency(self.session.recorder.sample_rate)
        if frequency:
            self.header.update_subtitle(f"Captured a {frequency:.1f} Hz cycle • now playing in Synth mode")
        else:
            self.header.update_subtitle("No clear pitch found, using the whole recording", "warning")

    def _draw_preview(self):
        preview = self.query_one("#capture-preview", Static)
        width = max(1, preview.size.width)
        height = max(1, preview.size.height)
        data = [] if self._preview is None else self._preview
        preview.update(plot_waveform(data, width, height))
