"""
The terminal front end of the interactive session.

`TinythisApp` is a thin textual shell around a `SessionController`: key
presses become controller events, a timer calls `controller.tick()` every
80 ms, and after every event the widgets are redrawn from the controller's
state. The app holds no state of its own besides the widgets.
"""
import threading
from pathlib import Path
from typing import Callable, Optional

from loguru import logger
from rich.table import Table
from rich.text import Text
from textual import events
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Vertical
from textual.widgets import Footer, Header, ProgressBar, Static

from ..config.common import OPTIONS_PATH, TICK_INTERVAL_SECONDS
from ..config.options import Options, save_options
from ..domain.presets import AcceleratorMode
from ..pipeline.session import SessionController
from ..services.encode_job import EncodeJob, JobState
from ..utils.format_utils import format_percent, format_seconds, formatted_size, size_ratio
from ..utils.path_utils import parse_paste_paths
from .screens import PathPromptScreen

_STATE_STYLES = {
    JobState.PENDING: "dim",
    JobState.RUNNING: "bold cyan",
    JobState.SUCCEEDED: "green",
    JobState.FAILED: "bold red",
    JobState.CANCELLED: "yellow",
}

LANDING_TEXT = "drop or paste video files here, or press [a] to add them"


def _job_detail(job: EncodeJob) -> str:
    if job.state is JobState.RUNNING:
        return f"{format_percent(job.progress)}  {format_seconds(job.duration)}"
    if job.state is JobState.SUCCEEDED and job.result:
        size = job.result.output_size
        return f"{formatted_size(size)} ({size_ratio(job.input_file.size, size)})"
    if job.result and job.result.error:
        return str(job.result.error)
    return ""


class TinythisApp(App):
    TITLE = "tinythis"

    BINDINGS = [
        Binding("a", "add_files", "Add"),
        Binding("enter", "run", "Compress"),
        Binding("up", "select_prev", "Up", show=False),
        Binding("down", "select_next", "Down", show=False),
        Binding("left", "prev_preset", "Preset", show=False),
        Binding("right", "next_preset", "Preset"),
        Binding("backspace,delete", "remove_selected", "Remove"),
        Binding("g", "toggle_gpu", "GPU"),
        Binding("r", "retry_failed", "Retry"),
        Binding("c", "clear_finished", "Clear"),
        Binding("escape", "cancel", "Cancel"),
        Binding("q", "quit", "Quit"),
    ]

    CSS = """
    #root {
        height: 1fr;
        padding: 0 1;
    }

    #settings {
        height: auto;
        padding: 0 1;
        border: round $secondary;
    }

    #queue_view {
        height: 1fr;
        padding: 0 1;
        border: round $primary;
    }

    #progress {
        height: auto;
        padding: 0 1;
    }

    #status {
        height: 1;
        padding: 0 1;
        color: $warning;
    }
    """

    def __init__(self, controller: SessionController, initial_status: Optional[str] = None):
        super().__init__()
        self.controller = controller
        self.stopping = False
        self._quit_after_stop = False
        if initial_status:
            self.controller.state.status = initial_status

    def compose(self) -> ComposeResult:
        yield Header()
        with Vertical(id="root"):
            yield Static("", id="settings")
            yield Static("", id="queue_view")
            yield ProgressBar(total=100, show_eta=False, id="progress")
            yield Static("", id="status")
        yield Footer()

    def on_mount(self) -> None:
        self._settings = self.query_one("#settings", Static)
        self._queue_view = self.query_one("#queue_view", Static)
        self._progress = self.query_one("#progress", ProgressBar)
        self._status = self.query_one("#status", Static)
        self.set_interval(TICK_INTERVAL_SECONDS, self._on_tick)
        self._refresh_view()

    # --- Events ---
    def _on_tick(self) -> None:
        if self.stopping:
            return
        self.controller.tick()
        self._refresh_view()
        if self.controller.state.should_quit:
            self.exit()

    def on_paste(self, event: events.Paste) -> None:
        if isinstance(self.screen, PathPromptScreen):
            return
        paths = parse_paste_paths(event.text)
        if paths:
            self._dispatch(self.controller.add_paths, paths)

    def action_add_files(self) -> None:
        if self.controller.is_browsing and not self.stopping:
            self.push_screen(PathPromptScreen(), self._handle_prompt)

    def _handle_prompt(self, result: Optional[str]) -> None:
        if result:
            self._dispatch(self.controller.add_paths, parse_paste_paths(result))
        else:
            self._refresh_view()

    def action_run(self) -> None:
        self._dispatch(self.controller.trigger_run)

    def action_select_prev(self) -> None:
        self._dispatch(self.controller.select_prev)

    def action_select_next(self) -> None:
        self._dispatch(self.controller.select_next)

    def action_prev_preset(self) -> None:
        self._dispatch(self.controller.prev_preset)

    def action_next_preset(self) -> None:
        self._dispatch(self.controller.next_preset)

    def action_remove_selected(self) -> None:
        self._dispatch(self.controller.remove_selected)

    def action_toggle_gpu(self) -> None:
        self._dispatch(self.controller.toggle_accelerator)

    def action_retry_failed(self) -> None:
        self._dispatch(self.controller.retry_failed)

    def action_clear_finished(self) -> None:
        self._dispatch(self.controller.clear_finished)

    def action_cancel(self) -> None:
        if self.controller.is_compressing and not self.stopping:
            self._stop_in_background(self.controller.cancel)

    async def action_quit(self) -> None:
        if self.stopping:
            self._quit_after_stop = True
            return
        if self.controller.is_compressing:
            self._stop_in_background(self.controller.quit)
            return
        self.controller.quit()
        self.exit()

    def _dispatch(self, handler: Callable, *args) -> None:
        # Input is dropped while the stop worker owns the queue.
        if self.stopping:
            return
        handler(*args)
        self._refresh_view()

    # --- Stopping the encoder ---
    def _stop_in_background(self, stop: Callable[[], object]) -> None:
        """
        Runs `stop` (the controller's cancel or quit) on a worker thread.

        The encoder may take up to the grace period to exit. Ticks and input
        are paused until the worker reports back, so the queue is only ever
        touched by one thread.
        """
        self.stopping = True
        self.controller.state.status = "stopping encoder..."
        self._refresh_view()
        threading.Thread(target=self._stop_worker, args=(stop,), name="tinythis-stop", daemon=True).start()

    def _stop_worker(self, stop: Callable[[], object]) -> None:
        try:
            stop()
        finally:
            self.call_from_thread(self._apply_stop_result)

    def _apply_stop_result(self) -> None:
        self.stopping = False
        if self._quit_after_stop:
            self.controller.quit()
        self._refresh_view()
        if self.controller.state.should_quit:
            self.exit()

    # --- Rendering ---
    def _refresh_view(self) -> None:
        state = self.controller.state
        preset = state.preset
        mode = "compressing" if self.controller.is_compressing else "ready"
        self._settings.update(
            Text.assemble(
                ("preset: ", "bold"), (preset.value, "cyan"), f"  {preset.description}    ",
                ("encoder: ", "bold"), (state.accelerator.value, "cyan"), "    ",
                ("state: ", "bold"), mode,
            )
        )
        self._queue_view.update(self._queue_table())

        current = self.controller.current_job
        self._progress.update(progress=current.progress * 100 if current else 0)

        banner = state.status or ""
        if current is not None:
            index, total = self.controller.run_position
            banner = f"compressing ({index}/{total}) [{current.preset.value}] {current.input_file.filename}"
        self._status.update(banner)

    def _queue_table(self):
        if not len(self.controller.queue):
            return Text(LANDING_TEXT, style="dim")
        table = Table(expand=True, box=None, header_style="bold")
        table.add_column("#", justify="right", width=3)
        table.add_column("file", ratio=3, no_wrap=True, overflow="ellipsis")
        table.add_column("size", justify="right")
        table.add_column("preset")
        table.add_column("state")
        table.add_column("", ratio=2, no_wrap=True, overflow="ellipsis")
        selected = self.controller.state.selected
        for index, job in enumerate(self.controller.queue):
            table.add_row(
                str(index + 1),
                job.input_file.filename,
                formatted_size(job.input_file.size),
                f"{job.preset.value}/{job.accelerator.value}",
                Text(job.state.value, style=_STATE_STYLES[job.state]),
                _job_detail(job),
                style="reverse" if index == selected else None,
            )
        return table


def persist_accelerator(options_path: Path = OPTIONS_PATH):
    """Returns a callback that stores the accelerator choice in the options file."""

    def _save(mode: AcceleratorMode) -> None:
        try:
            save_options(Options(gpu=mode is AcceleratorMode.GPU), options_path)
        except OSError as e:
            logger.warning(f"Could not save options to '{options_path}': {e}")

    return _save
