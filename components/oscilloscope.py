"""Live oscilloscope fed by the engine's scope tap."""
from typing import Optional

import numpy as np
from textual.widget import Widget

from components.plot import plot_waveform
from dsp.scope import FrameClock, ScopeAligner

SCOPE_FPS = 60


class Oscilloscope(Widget):
    """Draws one phase-locked period of the engine output every frame."""

    DEFAULT_CSS = """
    Oscilloscope {
        width: 100%;
        height: 1fr;
        min-height: 7;
        color: #ffd700;
        background: #0a0a0a;
        border: round #444444;
    }
    """

    def __init__(self, engine, aligner: ScopeAligner, fps: float = SCOPE_FPS, **kwargs):
        super().__init__(**kwargs)
        self.engine = engine
        self.aligner = aligner
        self.fps = fps
        self.frame_clock = FrameClock(fps)
        self._frame: Optional[np.ndarray] = None
        self._timer = None

    def on_mount(self):
        self._timer = self.set_interval(1.0 / self.fps, self.tick)

    def on_unmount(self):
        if self._timer:
            self._timer.stop()
            self._timer = None

    def tick(self):
        """One animation frame: read the tap, align it and redraw."""
        if not self.frame_clock.begin():
            return
        try:
            captured = self.engine.read_scope()
            self._frame = self.aligner.align(captured, self.engine.sample_rate)
            self.refresh()
        finally:
            self.frame_clock.end()

    def render(self) -> str:
        if self._frame is None:
            return plot_waveform([], self.size.width, self.size.height)
        return plot_waveform(self._frame, self.size.width, self.size.height)
