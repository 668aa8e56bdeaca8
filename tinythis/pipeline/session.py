"""
The interactive session state machine.

`SessionController` owns a JobQueue and a SessionState and turns user events
into queue operations. It knows nothing about the terminal: the textual front
end (`tinythis.ui.app`) forwards key presses as method calls, calls `tick()`
from a timer, and renders `controller.state` and `controller.queue`.

Modes:
    browsing -> compressing   trigger_run() with pending jobs
    compressing -> browsing   queue drained, cancel(), or no encoder

While compressing, only tick(), cancel() and quit() do anything; every other
event is ignored until the run is over.
"""
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable, Iterable, List, Optional

from loguru import logger

from ..domain.exceptions import (
    DuplicateInputError,
    JobStateError,
    MissingInputError,
    ResourceUnavailable,
    UnsupportedInputError,
)
from ..domain.presets import DEFAULT_PRESET, AcceleratorMode, Preset
from ..services.encode_job import EncodeJob, JobState
from ..services.job_queue import JobQueue


def _plural(count: int, word: str) -> str:
    return f"{count} {word}{'' if count == 1 else 's'}"


class SessionMode(str, Enum):
    BROWSING = "browsing"
    COMPRESSING = "compressing"


@dataclass
class SessionState:
    """
    Everything the front end needs besides the queue itself.

    Attributes:
        preset: Preset for newly added jobs and for pending jobs.
        accelerator: CPU or GPU for newly added and pending jobs.
        selected: Index of the selected queue row, None when the queue is empty.
        mode: browsing or compressing.
        status: Last status banner shown to the user.
        should_quit: Set once the user asked to leave.
    """

    preset: Preset = DEFAULT_PRESET
    accelerator: AcceleratorMode = AcceleratorMode.CPU
    selected: Optional[int] = None
    mode: SessionMode = SessionMode.BROWSING
    status: Optional[str] = None
    should_quit: bool = False


@dataclass
class RunSummary:
    """Outcome of one run (one trigger_run until the queue drained or was cancelled)."""

    succeeded: int = 0
    failed: int = 0
    cancelled: int = 0
    output_bytes: int = 0

    @classmethod
    def of(cls, jobs: Iterable[EncodeJob]) -> "RunSummary":
        summary = cls()
        for job in jobs:
            if job.state is JobState.SUCCEEDED:
                summary.succeeded += 1
                summary.output_bytes += job.result.output_size if job.result else 0
            elif job.state is JobState.FAILED:
                summary.failed += 1
            elif job.state is JobState.CANCELLED:
                summary.cancelled += 1
        return summary

    @property
    def total(self) -> int:
        return self.succeeded + self.failed + self.cancelled

    @property
    def all_succeeded(self) -> bool:
        return self.total > 0 and self.succeeded == self.total

    def describe(self) -> str:
        if self.all_succeeded:
            return f"done: {_plural(self.succeeded, 'file')}"
        return f"done: {self.succeeded} succeeded, {self.failed} failed, {self.cancelled} cancelled"


@dataclass
class _AddReport:
    added: int = 0
    unsupported: int = 0
    invalid: int = 0
    duplicate: int = 0

    def describe(self) -> str:
        if not (self.added or self.unsupported or self.invalid or self.duplicate):
            return "no files"
        parts = []
        if self.added:
            parts.append(f"added {_plural(self.added, 'file')}")
        if self.unsupported:
            parts.append(f"ignored {self.unsupported} unsupported")
        if self.invalid:
            parts.append(f"ignored {self.invalid} invalid")
        if self.duplicate:
            parts.append(f"ignored {self.duplicate} already queued")
        return ", ".join(parts)


class SessionController:
    """
    Applies user events to the queue and the session state.

    Args:
        queue: The job queue this session drives.
        preset: Initial preset.
        accelerator: Initial accelerator.
        on_accelerator_change: Called with the new mode after every toggle,
                               used by the front end to persist the choice.
    """

    def __init__(
        self,
        queue: JobQueue,
        preset: Preset = DEFAULT_PRESET,
        accelerator: AcceleratorMode = AcceleratorMode.CPU,
        on_accelerator_change: Optional[Callable[[AcceleratorMode], None]] = None,
    ):
        self.queue = queue
        self.state = SessionState(preset=Preset(preset), accelerator=AcceleratorMode(accelerator))
        self.on_accelerator_change = on_accelerator_change
        self.last_summary: Optional[RunSummary] = None
        self._run_jobs: List[EncodeJob] = []

    # --- Views ---
    @property
    def is_browsing(self) -> bool:
        return self.state.mode is SessionMode.BROWSING

    @property
    def is_compressing(self) -> bool:
        return self.state.mode is SessionMode.COMPRESSING

    @property
    def current_job(self) -> Optional[EncodeJob]:
        return self.queue.running

    @property
    def run_position(self) -> tuple:
        """(index of the current job within this run, starting at 1; jobs in this run)."""
        current = self.current_job
        total = len(self._run_jobs)
        if current is None or current not in self._run_jobs:
            return 0, total
        return self._run_jobs.index(current) + 1, total

    # --- Browsing events ---
    def add_paths(self, paths: Iterable[Path]) -> List[EncodeJob]:
        """
        Queues every acceptable file among `paths` with the active settings.

        Unsupported, missing and already queued files are counted and reported
        in the status banner; they never stop the other paths from being added.
        """
        if not self.is_browsing:
            return []
        report = _AddReport()
        added: List[EncodeJob] = []
        for path in paths:
            try:
                added.append(self.queue.enqueue(path, self.state.preset, self.state.accelerator))
                report.added += 1
            except UnsupportedInputError:
                report.unsupported += 1
            except MissingInputError:
                report.invalid += 1
            except DuplicateInputError:
                report.duplicate += 1
        if added and self.state.selected is None:
            self.state.selected = 0
        self.state.status = report.describe()
        logger.debug(f"Add files: {self.state.status}")
        return added

    def remove_selected(self) -> Optional[EncodeJob]:
        if not self.is_browsing or self.state.selected is None:
            return None
        try:
            removed = self.queue.remove(self.state.selected)
        except JobStateError as e:
            self.state.status = str(e)
            return None
        self._clamp_selection()
        self.state.status = f"removed {removed.input_file.filename}" if len(self.queue) else "no files"
        return removed

    def select_prev(self) -> None:
        if not self.is_browsing or not len(self.queue):
            return
        if self.state.selected is None:
            self.state.selected = len(self.queue) - 1
        else:
            self.state.selected = max(self.state.selected - 1, 0)

    def select_next(self) -> None:
        if not self.is_browsing or not len(self.queue):
            return
        if self.state.selected is None:
            self.state.selected = 0
        else:
            self.state.selected = min(self.state.selected + 1, len(self.queue) - 1)

    def next_preset(self) -> None:
        if self.is_browsing:
            self._set_preset(self.state.preset.next())

    def prev_preset(self) -> None:
        if self.is_browsing:
            self._set_preset(self.state.preset.previous())

    def toggle_accelerator(self) -> None:
        if not self.is_browsing:
            return
        self.state.accelerator = self.state.accelerator.toggled()
        self.queue.retarget_pending(self.state.preset, self.state.accelerator)
        self.state.status = f"encoder: {self.state.accelerator.value}"
        if self.on_accelerator_change is not None:
            self.on_accelerator_change(self.state.accelerator)

    def trigger_run(self) -> Optional[EncodeJob]:
        """
        Starts compressing the pending jobs.

        When no encoder is available the session stays in browsing mode and
        the banner says so; nothing is spawned.
        """
        if not self.is_browsing:
            return None
        if not self.queue.has_pending:
            self.state.status = "no files"
            return None
        self._run_jobs = self.queue.pending_jobs
        try:
            job = self.queue.run_next()
        except ResourceUnavailable as e:
            logger.error(str(e))
            self.state.status = str(e)
            self._run_jobs = []
            return None
        self.state.mode = SessionMode.COMPRESSING
        self.state.status = None
        logger.info(f"Run started: {_plural(len(self._run_jobs), 'file')} [{self.state.preset.value}]")
        self._advance()
        return job

    def retry_failed(self) -> List[EncodeJob]:
        if not self.is_browsing:
            return []
        created = self.queue.retry_failed()
        self.state.status = f"requeued {_plural(len(created), 'file')}" if created else "nothing to retry"
        if created and self.state.selected is None:
            self.state.selected = 0
        return created

    def clear_finished(self) -> int:
        if not self.is_browsing:
            return 0
        count = self.queue.clear_finished()
        self._clamp_selection()
        self.state.status = f"cleared {_plural(count, 'finished job')}" if count else "nothing to clear"
        return count

    # --- Any mode ---
    def tick(self) -> List[EncodeJob]:
        """
        Applies pending encoder messages and keeps the run going.

        Returns:
            Jobs that finished during this tick.
        """
        finished = self.queue.poll()
        if self.is_compressing:
            self._advance()
        return finished

    def cancel(self) -> Optional[EncodeJob]:
        """Cancels the running job and returns to browsing. Pending jobs stay queued."""
        if not self.is_compressing:
            return None
        job = self.queue.cancel_running()
        self._finish_run()
        return job

    def quit(self) -> None:
        if self.is_compressing:
            self.cancel()
        self.state.should_quit = True

    # --- Internals ---
    def _set_preset(self, preset: Preset) -> None:
        self.state.preset = preset
        self.queue.retarget_pending(self.state.preset, self.state.accelerator)
        self.state.status = f"preset: {preset.value}"

    def _clamp_selection(self) -> None:
        if not len(self.queue):
            self.state.selected = None
        elif self.state.selected is not None:
            self.state.selected = min(self.state.selected, len(self.queue) - 1)

    def _advance(self) -> None:
        # Jobs that fail before spawning end immediately; keep starting until one runs.
        while self.queue.running is None:
            if not any(job.state is JobState.PENDING for job in self._run_jobs):
                self._finish_run()
                return
            try:
                self.queue.run_next()
            except ResourceUnavailable as e:
                logger.error(str(e))
                self._finish_run(status=str(e))
                return

    def _finish_run(self, status: Optional[str] = None) -> None:
        summary = RunSummary.of(self._run_jobs)
        self.last_summary = summary
        self._run_jobs = []
        self.state.mode = SessionMode.BROWSING
        self.state.status = status or summary.describe()
        self._clamp_selection()
        if summary.total:
            logger.success(f"Run finished: {summary.describe()}")
