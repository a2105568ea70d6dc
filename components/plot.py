"""Text rendering of waveforms and screen ↔ waveform coordinate mapping."""
from typing import List

import numpy as np

GRID_CHAR = "·"
MIDLINE_CHAR = "─"
TRACE_CHAR = "█"
STEM_CHAR = "│"
GRID_LINE_COUNT = 10


def index_from_column(x: float, width: int, resolution: int) -> int:
    """Screen column → waveform index, clamped to [0, resolution - 1]."""
    if width <= 1:
        return 0
    return max(0, min(resolution - 1, int(round(x / (width - 1) * (resolution - 1)))))


def amp_from_row(y: float, height: int) -> float:
    """Screen row → amplitude in [-1, 1]; row 0 is +1, the last row is -1."""
    if height <= 1:
        return 0.0
    mid = (height - 1) / 2.0
    return max(-1.0, min(1.0, (mid - y) / mid))


def row_from_amp(amp: float, height: int) -> int:
    if height <= 1:
        return 0
    amp = max(-1.0, min(1.0, float(amp)))
    return int(round((1.0 - amp) / 2.0 * (height - 1)))


def interpolate_segment(waveform: np.ndarray, start_idx: int, end_idx: int,
                        start_amp: float, end_amp: float):
    """Write a straight line from (start_idx, start_amp) to (end_idx, end_amp).

    Mouse moves skip indices, so every index between two samples is filled.
    Nothing happens when both indices are equal.
    """
    dx = end_idx - start_idx
    if dx == 0:
        return
    steps = abs(dx)
    t = np.arange(steps + 1) / steps
    idx = start_idx + np.sign(dx) * np.arange(steps + 1)
    waveform[idx] = start_amp + (end_amp - start_amp) * t


def _grid(width: int, height: int, lines: int) -> List[List[str]]:
    rows = [[" "] * width for _ in range(height)]
    for i in range(1, lines):
        y = int(round(height * i / lines))
        x = int(round(width * i / lines))
        if 0 <= y < height:
            for col in range(0, width, 2):
                rows[y][col] = GRID_CHAR
        if 0 <= x < width:
            for row in rows:
                row[x] = GRID_CHAR
    mid = (height - 1) // 2
    rows[mid] = [MIDLINE_CHAR] * width
    return rows


def plot_waveform(samples, width: int, height: int, lines: int = GRID_LINE_COUNT) -> str:
    """Draw ``samples`` across a ``width`` x ``height`` character grid.

    Consecutive columns are joined with vertical stems so steep edges stay
    connected.
    """
    width = max(1, int(width))
    height = max(1, int(height))
    rows = _grid(width, height, lines)
    data = np.asarray(samples, dtype=np.float64).reshape(-1)
    if len(data):
        prev_row = None
        for x in range(width):
            value = data[index_from_column(x, width, len(data))]
            row = row_from_amp(value, height)
            if prev_row is not None and abs(row - prev_row) > 1:
                lo, hi = sorted((prev_row, row))
                for r in range(lo + 1, hi):
                    rows[r][x] = STEM_CHAR
            rows[row][x] = TRACE_CHAR
            prev_row = row
    return "\n".join("".join(r) for r in rows)
