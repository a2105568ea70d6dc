"""Draw Mode: sketch one cycle with the mouse and hear it."""
from typing import Callable, Optional

import numpy as np
from textual.binding import Binding
from textual.containers import Vertical

from components.confirmation_dialog import ConfirmationDialog
from components.header_widget import HeaderWidget
from components.wave_canvas import WaveCanvas

# Mouse drags fire many events; spectra are published at most this often
PUBLISH_DELAY = 0.15


class DrawMode(Vertical):
    """Waveform editor that publishes to the synth while drawing."""

    DEFAULT_CSS = """
    DrawMode {
        width: 100%;
        height: 100%;
        padding: 0 1;
    }

    DrawMode:focus {
        border: heavy $accent;
    }
    """

    BINDINGS = [
        Binding("c", "clear", "Clear", show=False),
        Binding("s", "reset_sine", "Sine", show=False),
        Binding("enter", "publish", "Publish", show=False),
    ]

    can_focus = True

    def __init__(self, publish: Callable[[np.ndarray], bool], waveform=None, **kwargs):
        super().__init__(**kwargs)
        self.publish = publish
        self.initial_waveform = waveform
        self.header: Optional[HeaderWidget] = None
        self.canvas: Optional[WaveCanvas] = None
        self._pending: Optional[np.ndarray] = None
        self._publish_timer = None

    def compose(self):
        self.header = HeaderWidget(title="D R A W", subtitle="Click and drag to draw one cycle")
        yield self.header
        self.canvas = WaveCanvas(self.initial_waveform, id="wave-canvas")
        yield self.canvas

    def on_mount(self):
        self.focus()

    def on_unmount(self):
        if self._publish_timer:
            self._publish_timer.stop()
            self._publish_timer = None
        if self._pending is not None:
            self.publish(self._pending)
            self._pending = None

    def on_wave_canvas_changed(self, message: WaveCanvas.Changed) -> None:
        self._pending = message.waveform
        if message.final:
            self._flush()
        elif self._publish_timer is None:
            self._publish_timer = self.set_timer(PUBLISH_DELAY, self._flush)

    def _flush(self):
        if self._publish_timer:
            self._publish_timer.stop()
        self._publish_timer = None
        waveform, self._pending = self._pending, None
        if waveform is None:
            return
        if self.publish(waveform):
            self.header.update_subtitle("Waveform updated • play it with the keyboard in Synth mode")
        else:
            self.header.update_subtitle("Could not analyse this drawing", "warning")

    def action_publish(self):
        self._pending = self.canvas.waveform.copy()
        self._flush()

    def action_reset_sine(self):
        self.canvas.set_waveform(np.sin(2.0 * np.pi * np.arange(self.canvas.resolution) / self.canvas.resolution))
        self.action_publish()

    def action_clear(self):
        def on_answer(confirmed):
            if confirmed:
                self.canvas.clear()

        self.app.push_screen(ConfirmationDialog("Clear the drawing?", "The synth falls silent until you draw again."), on_answer)
