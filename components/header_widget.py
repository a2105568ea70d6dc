"""Mode header: boxed title plus a one-line status that modes keep current."""
from textual.app import ComposeResult
from textual.containers import Center, Vertical
from textual.css.query import NoMatches
from textual.widgets import Static

STATUS_STYLES = {
    "info": "italic #666666",
    "busy": "bold #ffd700",
    "warning": "bold #ff9900",
    "error": "bold #ff4444",
}


def boxed_title(title: str, width: int = 48) -> str:
    """Centre ``title`` inside a double-line box ``width`` columns wide."""
    inner = max(width - 2, len(title) + 2)
    padded = f" {title} ".center(inner)
    return f"╔{'═' * inner}╗\n║{padded}║\n╚{'═' * inner}╝"


def status_markup(text: str, level: str = "info") -> str:
    style = STATUS_STYLES.get(level, STATUS_STYLES["info"])
    return f"[{style}]{text}[/]"


class HeaderWidget(Vertical):
    """Title box with a status line underneath."""

    DEFAULT_CSS = """
    HeaderWidget {
        width: 100%;
        height: auto;
        align: center top;
        margin-bottom: 1;
    }

    .header-boxed {
        width: auto;
        height: auto;
        text-align: center;
        color: #ffd700;
    }

    #header-status {
        width: 100%;
        text-align: center;
        content-align: center middle;
    }
    """

    def __init__(self, title: str, subtitle: str = "", **kwargs):
        super().__init__(**kwargs)
        self.title_text = title
        self.subtitle_text = subtitle
        self.level = "info"

    def compose(self) -> ComposeResult:
        with Center():
            yield Static(boxed_title(self.title_text), classes="header-boxed")
        with Center():
            yield Static(status_markup(self.subtitle_text), id="header-status")

    def update_subtitle(self, new_subtitle: str, level: str = "info"):
        """Replace the status line; ``level`` is one of info, busy, warning, error."""
        self.subtitle_text = new_subtitle
        self.level = level
        try:
            self.query_one("#header-status", Static).update(status_markup(new_subtitle, level))
        except NoMatches:
            # Not composed yet; compose() picks up subtitle_text
            pass
