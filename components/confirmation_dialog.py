"""Yes/no modal used before quitting and before discarding a drawing."""
from textual.binding import Binding
from textual.containers import Horizontal, Vertical
from textual.screen import ModalScreen
from textual.widgets import Button, Label


class ConfirmationDialog(ModalScreen[bool]):
    """Dismisses with True on confirm, False on cancel."""

    BINDINGS = [
        Binding("y", "answer(True)", "Yes", show=False),
        Binding("n", "answer(False)", "No", show=False),
        Binding("escape", "answer(False)", "Cancel", show=False),
    ]

    CSS = """
    ConfirmationDialog {
        align: center middle;
    }

    #dialog {
        width: 50;
        height: auto;
        border: thick #ffd700;
        background: #1a1a1a;
        padding: 1 2;
    }

    #message {
        width: 100%;
        content-align: center middle;
        color: #ffd700;
    }

    #detail {
        width: 100%;
        content-align: center middle;
        color: #888888;
    }

    #options {
        width: 100%;
        height: auto;
        align: center middle;
        margin-top: 1;
    }

    #options Button {
        margin: 0 1;
    }
    """

    def __init__(self, message: str = "Quit Ondas?", detail: str = ""):
        super().__init__()
        self.message = message
        self.detail = detail

    def compose(self):
        with Vertical(id="dialog"):
            yield Label(self.message, id="message")
            if self.detail:
                yield Label(self.detail, id="detail")
            with Horizontal(id="options"):
                yield Button("Yes", id="yes", variant="primary")
                yield Button("No", id="no")

    def on_mount(self):
        self.query_one("#no", Button).focus()

    def on_button_pressed(self, event: Button.Pressed) -> None:
        self.dismiss(event.button.id == "yes")

    def action_answer(self, confirmed: bool):
        self.dismiss(confirmed)
