"""Main Menu Mode for Ondas."""

from textual import events
from textual.app import ComposeResult
from textual.containers import Center, Horizontal, Vertical
from textual.widgets import Button, Static

from components.header_widget import HeaderWidget

MENU_ENTRIES = [
    ("draw_button", "Draw", "Sketch one cycle with the mouse"),
    ("voice_button", "Voice", "Record your voice as a waveform"),
    ("synth_button", "Synth", "Play the current waveform"),
]


class MainMenuMode(Vertical):
    """Mode picker shown on start-up."""

    DEFAULT_CSS = """
    MainMenuMode {
        align: center middle;
        width: 100%;
        height: 100%;
        border: heavy $accent;
        padding: 1;
    }

    #main-menu-buttons {
        width: auto;
        height: auto;
        align: center middle;
    }

    #main-menu-buttons Button {
        width: 18;
        height: 7;
        margin: 0 1;
        border: tall $primary;
    }

    #main-menu-buttons Button:focus {
        background: $accent;
        color: $text;
        text-style: bold;
        border: tall $primary-lighten-3;
    }

    #menu-hint {
        width: 100%;
        text-align: center;
        color: $text-muted;
        margin-top: 1;
    }
    """

    def __init__(self, main_screen, **kwargs):
        super().__init__(**kwargs)
        self.main_screen = main_screen

    def compose(self) -> ComposeResult:
        yield HeaderWidget(title="O N D A S", subtitle="Draw or sing a waveform, then play it")

        with Center():
            with Horizontal(id="main-menu-buttons"):
                for button_id, label, _ in MENU_ENTRIES:
                    yield Button(label, id=button_id, variant="primary")
        yield Static(MENU_ENTRIES[0][2], id="menu-hint")

    def on_mount(self) -> None:
        self.query_one("#draw_button").focus()

    def on_descendant_focus(self, event: events.DescendantFocus) -> None:
        for button_id, _, hint in MENU_ENTRIES:
            if event.widget.id == button_id:
                self.query_one("#menu-hint", Static).update(hint)

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "draw_button":
            self.main_screen.action_show_draw()
        elif event.button.id == "voice_button":
            self.main_screen.action_show_voice()
        elif event.button.id == "synth_button":
            self.main_screen.action_show_synth()

    def on_key(self, event: events.Key) -> None:
        """Arrow keys move focus between the buttons."""
        if event.key in ("left", "up"):
            self.app.action_focus_previous()
        elif event.key in ("right", "down"):
            self.app.action_focus_next()
