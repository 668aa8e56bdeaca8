"""Modal screens used by the interactive session."""
from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Vertical
from textual.screen import ModalScreen
from textual.widgets import Input, Label


class PathPromptScreen(ModalScreen[str]):
    """
    Asks for one or more file paths.

    Dismisses with the entered text (possibly several paths, quoted or as
    `file://` URIs), or with an empty string when cancelled.
    """

    BINDINGS = [Binding("escape", "cancel", "Cancel")]

    DEFAULT_CSS = """
    PathPromptScreen {
        align: center middle;
    }

    #prompt {
        width: 80%;
        height: auto;
        padding: 1 2;
        border: round $primary;
        background: $surface;
    }
    """

    def compose(self) -> ComposeResult:
        with Vertical(id="prompt"):
            yield Label("Add files (paths separated by spaces, quote paths with spaces):")
            yield Input(placeholder="/path/to/video.mp4", id="path_input")

    def on_mount(self) -> None:
        self.query_one("#path_input", Input).focus()

    def on_input_submitted(self, event: Input.Submitted) -> None:
        self.dismiss(event.value)

    def action_cancel(self) -> None:
        self.dismiss("")
