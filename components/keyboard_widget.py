"""Two-octave on-screen keyboard, playable with the mouse."""
from typing import List, Optional, Set

from textual import events
from textual.message import Message
from textual.reactive import reactive
from textual.widget import Widget

from audio.keyboard_map import BLACK_KEYS, KEYBOARD_NOTES, WHITE_KEYS, key_label, white_index

KEY_WIDTH = 4  # columns per white key, left border included
ROWS = 5


class KeyboardWidget(Widget):
    """Displays the computer-keyboard note layout with sounding keys highlighted."""

    DEFAULT_CSS = """
    KeyboardWidget {
        width: auto;
        height: 5;
        color: #ffffff;
    }
    """

    active_keys: reactive[Set[str]] = reactive(set, init=False)

    class Pressed(Message):
        def __init__(self, key: str):
            super().__init__()
            self.key = key

    class Released(Message):
        def __init__(self, key: str):
            super().__init__()
            self.key = key

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self._mouse_key: Optional[str] = None

    def get_content_width(self, container, viewport) -> int:
        return KEY_WIDTH * len(WHITE_KEYS) + 1

    def get_content_height(self, container, viewport, width) -> int:
        return ROWS

    def set_active(self, keys):
        self.active_keys = set(keys)

    def watch_active_keys(self, keys: Set[str]):
        self.refresh()

    @staticmethod
    def black_key_column(key: str) -> int:
        """Leftmost column of a black key; it straddles the white-key border."""
        return KEY_WIDTH * white_index(key) - 1

    def key_at(self, x: int, y: int) -> Optional[str]:
        """Keyboard key under a widget-relative cell, or None."""
        if y < 0 or y >= ROWS or x < 0:
            return None
        if y <= 1:
            for key in BLACK_KEYS:
                col = self.black_key_column(key)
                if col <= x < col + 3:
                    return key
        idx = x // KEY_WIDTH
        if idx < len(WHITE_KEYS):
            return WHITE_KEYS[idx]
        return None

    def build_rows(self, active: Set[str]) -> List[str]:
        width = KEY_WIDTH * len(WHITE_KEYS) + 1
        grid = [[" "] * width for _ in range(ROWS)]

        for i, key in enumerate(WHITE_KEYS):
            left = i * KEY_WIDTH
            name = KEYBOARD_NOTES[key][0]
            pressed = key in active
            for row in range(ROWS - 1):
                grid[row][left] = "│"
            grid[ROWS - 1][left] = "└" if i == 0 else "┴"
            for col in range(left + 1, left + KEY_WIDTH):
                grid[ROWS - 1][col] = "─"
            label = name.ljust(KEY_WIDTH - 1)
            for j, ch in enumerate(label[:KEY_WIDTH - 1]):
                grid[2][left + 1 + j] = ch
            marker = "●" if pressed else key_label(key)
            grid[3][left + 2] = marker
        for row in range(ROWS - 1):
            grid[row][width - 1] = "│"
        grid[ROWS - 1][width - 1] = "┘"

        for key in BLACK_KEYS:
            col = self.black_key_column(key)
            pressed = key in active
            fill = "░" if pressed else "▓"
            for c in range(col, col + 3):
                grid[0][c] = fill
                grid[1][c] = fill
            grid[1][col + 1] = "●" if pressed else key_label(key)

        return ["".join(r) for r in grid]

    def render(self) -> str:
        return "\n".join(self.build_rows(self.active_keys))

    def on_mouse_down(self, event: events.MouseDown) -> None:
        key = self.key_at(event.x, event.y)
        if key is None:
            return
        self._mouse_key = key
        self.capture_mouse()
        self.post_message(self.Pressed(key))

    def on_mouse_up(self, event: events.MouseUp) -> None:
        if self._mouse_key is None:
            return
        key = self._mouse_key
        self._mouse_key = None
        self.release_mouse()
        self.post_message(self.Released(key))
