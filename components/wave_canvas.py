"""Mouse-drawn single-cycle waveform editor."""
from typing import Optional, Tuple

import numpy as np
from textual import events
from textual.message import Message
from textual.widget import Widget

from components.plot import amp_from_row, index_from_column, interpolate_segment, plot_waveform
from dsp.harmonics import WAVEFORM_RESOLUTION, sine_table


class WaveCanvas(Widget):
    """Click and drag to draw one period; x is time, y is amplitude.

    Posts ``WaveCanvas.Changed`` while drawing (``final=False``) and once more
    when the button is released (``final=True``).
    """

    DEFAULT_CSS = """
    WaveCanvas {
        width: 100%;
        height: 1fr;
        min-height: 9;
        color: #00ff88;
        background: #0a0a0a;
        border: round #ffd700;
    }

    WaveCanvas:focus {
        border: round $accent;
    }
    """

    can_focus = True

    class Changed(Message):
        """The drawn waveform was edited."""

        def __init__(self, canvas: "WaveCanvas", waveform: np.ndarray, final: bool):
            super().__init__()
            self.canvas = canvas
            self.waveform = waveform
            self.final = final

    def __init__(self, waveform=None, resolution: int = WAVEFORM_RESOLUTION, **kwargs):
        super().__init__(**kwargs)
        self.resolution = resolution
        if waveform is not None and len(waveform) == resolution:
            self.waveform = np.clip(np.asarray(waveform, dtype=np.float64), -1.0, 1.0)
        else:
            self.waveform = sine_table(resolution).astype(np.float64)
        self._drawing = False
        self._last: Optional[Tuple[int, float]] = None

    def render(self) -> str:
        return plot_waveform(self.waveform, self.size.width, self.size.height)

    def set_waveform(self, waveform):
        self.waveform = np.clip(np.asarray(waveform, dtype=np.float64), -1.0, 1.0)
        self.refresh()

    def clear(self):
        self.waveform = np.zeros(self.resolution)
        self.refresh()
        self._post_change(final=True)

    def _point(self, x: float, y: float) -> Tuple[int, float]:
        return (index_from_column(x, self.size.width, self.resolution),
                amp_from_row(y, self.size.height))

    def _paint_to(self, x: float, y: float):
        idx, amp = self._point(x, y)
        if self._last is None:
            self.waveform[idx] = amp
        else:
            last_idx, last_amp = self._last
            if last_idx == idx:
                self.waveform[idx] = amp
            else:
                interpolate_segment(self.waveform, last_idx, idx, last_amp, amp)
        self._last = (idx, amp)
        self.refresh()

    def _post_change(self, final: bool):
        self.post_message(self.Changed(self, self.waveform.copy(), final))

    def on_mouse_down(self, event: events.MouseDown) -> None:
        self._drawing = True
        self._last = None
        self.capture_mouse()
        self._paint_to(event.x, event.y)
        self._post_change(final=False)

    def on_mouse_move(self, event: events.MouseMove) -> None:
        if not self._drawing:
            return
        self._paint_to(event.x, event.y)
        self._post_change(final=False)

    def on_mouse_up(self, event: events.MouseUp) -> None:
        if not self._drawing:
            return
        self._drawing = False
        self._last = None
        self.release_mouse()
        self._post_change(final=True)
