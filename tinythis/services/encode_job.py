"""
This module defines EncodeJob, one input file's compression attempt.

A job owns the FFmpeg process that encodes its file. The process output is read
by a background thread, which turns it into progress events and posts them to
the queue's message box; it never touches the job itself. The owner (the job
queue, on the controller's thread) hands those messages back to `handle()`,
which is the only place a running job changes state.

Lifecycle:
    pending -> running -> succeeded | failed | cancelled

- pending -> running: `start()` resolves the output path and spawns FFmpeg.
- running -> succeeded: exit status 0 and a non-empty output file.
- running -> failed: non-zero exit status, or exit status 0 with a missing or
  empty output. The exit status alone is not trusted.
- running -> cancelled: `cancel()` terminates the process.

Whatever the outcome, a job that does not succeed leaves nothing at its output
path, and the process handle is released on every terminal transition.
"""
import itertools
import os
import queue
import shlex
import subprocess
import threading
import weakref
from collections import deque
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from pathlib import Path
from typing import IO, Iterator, List, Optional

from loguru import logger

from ..config.common import (
    JOB_STATUS_CANCELLED,
    JOB_STATUS_FAILED,
    JOB_STATUS_PENDING,
    JOB_STATUS_RUNNING,
    JOB_STATUS_SUCCEEDED,
    OUTPUT_TAIL_LINES,
    PROGRESS_CAP,
)
from ..domain.exceptions import (
    CancellationError,
    ExecutionError,
    FilesystemError,
    JobError,
    JobStateError,
)
from ..domain.media import InputFile
from ..domain.presets import AcceleratorMode, EncodeProfile, Preset, arguments_for, build_encoder_args
from ..utils.format_utils import formatted_size
from .output_paths import resolve_output_path
from .progress import (
    DurationFound,
    EncoderEvent,
    OutputLine,
    ProgressEnd,
    ProgressUpdate,
    compute_fraction,
    iter_encoder_events,
)

_job_ids = itertools.count(1)

# How long to wait for the output reader thread once the process is gone.
_READER_JOIN_TIMEOUT = 2.0


class JobState(str, Enum):
    PENDING = JOB_STATUS_PENDING
    RUNNING = JOB_STATUS_RUNNING
    SUCCEEDED = JOB_STATUS_SUCCEEDED
    FAILED = JOB_STATUS_FAILED
    CANCELLED = JOB_STATUS_CANCELLED

    @property
    def is_terminal(self) -> bool:
        return self in (JobState.SUCCEEDED, JobState.FAILED, JobState.CANCELLED)


@dataclass(frozen=True)
class JobResult:
    """
    The outcome of a finished job.

    Attributes:
        state: The terminal state (succeeded, failed or cancelled).
        output_path: The written file on success, otherwise None.
        output_size: Size of the written file in bytes (0 unless succeeded).
        error: The job-level error for failed and cancelled jobs.
    """

    state: JobState
    output_path: Optional[Path] = None
    output_size: int = 0
    error: Optional[JobError] = None


# --- Messages posted by the reader thread ---
@dataclass(frozen=True)
class JobEvent:
    job_id: int
    event: EncoderEvent


@dataclass(frozen=True)
class JobExited:
    job_id: int
    return_code: int


def _pump_output(job_id: int, process: subprocess.Popen, input_file: InputFile,
                 ffprobe: Optional[Path], outbox: "queue.Queue") -> None:
    """
    Background unit of work for one job.

    Forwards every event from the process output to `outbox` and finally posts
    the exit status. Runs until the process closes its output.
    """
    try:
        if ffprobe is not None:
            duration = input_file.probe_duration(ffprobe)
            if duration:
                outbox.put(JobEvent(job_id, DurationFound(seconds=duration)))
        for event in read_events(process.stdout):
            outbox.put(JobEvent(job_id, event))
    except (OSError, ValueError) as e:
        # The pipe was closed underneath us (cancellation); the exit status follows.
        logger.debug(f"Output reader for job {job_id} stopped: {e}")
    finally:
        outbox.put(JobExited(job_id, process.wait()))


def read_events(stream: Optional[IO[str]]) -> Iterator[EncoderEvent]:
    """Lazy sequence of events from one process output stream."""
    if stream is None:
        return iter(())
    return iter_encoder_events(stream)


def _abandon_process(process: subprocess.Popen, output_path: Optional[Path]) -> None:
    # Last-resort cleanup for a job dropped (or an interpreter exiting) while
    # its encoder still runs.
    if process.poll() is None:
        process.kill()
        try:
            process.wait(timeout=_READER_JOIN_TIMEOUT)
        except subprocess.TimeoutExpired:
            pass
        if output_path is not None:
            try:
                output_path.unlink(missing_ok=True)
            except OSError:
                pass


class EncodeJob:
    """
    One input file's transcode.

    The preset and accelerator are bound when the job is created. While the
    job is still pending they can be changed with `retarget()`; once it has
    started they are fixed. A failed job is never restarted: retrying means
    creating a new job for the same input.

    Attributes:
        id (int): Process-wide unique job number.
        input_file (InputFile): The source file.
        preset (Preset): Quality tier.
        accelerator (AcceleratorMode): CPU or GPU encode path.
        state (JobState): Current lifecycle state.
        progress (float): Completion estimate in [0, 1]; never above 0.99 until
                          the job has succeeded.
        output_path (Optional[Path]): Resolved when the job starts.
        duration (Optional[float]): Input duration in seconds, once known.
        result (Optional[JobResult]): Set on the terminal transition.
    """

    def __init__(self, input_file: InputFile, preset: Preset = Preset.BALANCED,
                 accelerator: AcceleratorMode = AcceleratorMode.CPU):
        self.id = next(_job_ids)
        self.input_file = input_file
        self.preset = Preset(preset)
        self.accelerator = AcceleratorMode(accelerator)
        self.state = JobState.PENDING
        self.progress = 0.0
        self.output_path: Optional[Path] = None
        self.duration: Optional[float] = None
        self.result: Optional[JobResult] = None
        self.command: List[str] = []
        self.started_at: Optional[datetime] = None
        self.finished_at: Optional[datetime] = None
        self._output_tail: deque = deque(maxlen=OUTPUT_TAIL_LINES)
        self._process: Optional[subprocess.Popen] = None
        self._reader: Optional[threading.Thread] = None
        self._finalizer: Optional[weakref.finalize] = None

    def __repr__(self) -> str:
        return f"EncodeJob(id={self.id}, file={self.input_file.filename!r}, preset={self.preset.value}, " \
               f"accelerator={self.accelerator.value}, state={self.state.value})"

    # --- Properties ---
    @property
    def profile(self) -> EncodeProfile:
        return arguments_for(self.preset, self.accelerator)

    @property
    def is_terminal(self) -> bool:
        return self.state.is_terminal

    @property
    def command_line(self) -> str:
        return shlex.join(self.command) if self.command else ""

    @property
    def output_tail_text(self) -> str:
        return "\n".join(self._output_tail)

    @property
    def elapsed(self) -> timedelta:
        if self.started_at is None:
            return timedelta(0)
        return (self.finished_at or datetime.now()) - self.started_at

    @property
    def has_process(self) -> bool:
        return self._process is not None

    # --- Transitions ---
    def retarget(self, preset: Preset, accelerator: AcceleratorMode) -> None:
        """Changes preset and accelerator of a job that has not started yet."""
        if self.state is not JobState.PENDING:
            raise JobStateError(f"cannot change settings of a {self.state.value} job")
        self.preset = Preset(preset)
        self.accelerator = AcceleratorMode(accelerator)

    def start(self, ffmpeg: Path, outbox: "queue.Queue", ffprobe: Optional[Path] = None) -> None:
        """
        Moves the job from pending to running.

        The output path is resolved against the filesystem as it is now, then
        FFmpeg is spawned and a reader thread starts forwarding its output to
        `outbox`. Problems that prevent the process from starting (no free
        output name, unwritable directory, encoder not executable) end the job
        as failed immediately instead of raising.

        Raises:
            JobStateError: The job is not pending.
        """
        if self.state is not JobState.PENDING:
            raise JobStateError(f"cannot start a {self.state.value} job")

        self.state = JobState.RUNNING
        self.started_at = datetime.now()
        logger.info(f"Starting job {self.id}: {self.input_file.filename} [{self.preset.value}/{self.accelerator.value}]")

        try:
            self.output_path = resolve_output_path(self.input_file.path, self.preset)
        except FilesystemError as e:
            self._fail(e)
            return

        if not os.access(self.output_path.parent, os.W_OK):
            self._fail(FilesystemError(f"output directory is not writable: {self.output_path.parent}"))
            return

        self.command = [str(ffmpeg), *build_encoder_args(self.profile, self.input_file.path, self.output_path)]
        logger.debug(f"Encoder command for job {self.id}: {self.command_line}")

        try:
            self._process = subprocess.Popen(
                self.command,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                encoding="utf-8",
                errors="replace",
                bufsize=1,
            )
        except OSError as e:
            self._fail(ExecutionError(f"could not start encoder '{ffmpeg}': {e}"))
            return

        self._finalizer = weakref.finalize(self, _abandon_process, self._process, self.output_path)
        self._reader = threading.Thread(
            target=_pump_output,
            args=(self.id, self._process, self.input_file, ffprobe, outbox),
            name=f"encode-job-{self.id}",
            daemon=True,
        )
        self._reader.start()

    def handle(self, message) -> bool:
        """
        Applies one message from the reader thread.

        Messages for a job that is no longer running (for example output that
        arrives after a cancellation) are ignored.

        Returns:
            True if the job reached a terminal state.
        """
        if self.state is not JobState.RUNNING or getattr(message, "job_id", None) != self.id:
            return False
        if isinstance(message, JobExited):
            self._complete(message.return_code)
            return True
        if isinstance(message, JobEvent):
            self._apply_event(message.event)
        return False

    def _apply_event(self, event: EncoderEvent) -> None:
        if isinstance(event, DurationFound):
            if self.duration is None:
                self.duration = event.seconds
        elif isinstance(event, ProgressUpdate):
            self.progress = compute_fraction(event.out_time, self.duration, self.progress)
        elif isinstance(event, ProgressEnd):
            # Encoding is over; only finalizing the container remains.
            self.progress = max(self.progress, PROGRESS_CAP)
            logger.debug(f"Job {self.id}: encoder wrote its final progress block")
        elif isinstance(event, OutputLine):
            self._output_tail.append(event.text)

    def cancel(self, grace_period: float) -> None:
        """
        Stops a running job.

        The encoder gets SIGTERM and `grace_period` seconds to exit before it
        is killed. Any partial output is deleted.

        Raises:
            JobStateError: The job is not running.
        """
        if self.state is not JobState.RUNNING:
            raise JobStateError(f"cannot cancel a {self.state.value} job")
        process = self._process
        if process is not None and process.poll() is None:
            logger.info(f"Cancelling job {self.id} ({self.input_file.filename})")
            process.terminate()
            try:
                process.wait(timeout=grace_period)
            except subprocess.TimeoutExpired:
                logger.warning(f"Encoder for job {self.id} did not exit within {grace_period}s; killing it.")
                process.kill()
                process.wait()
        self._release()
        self._remove_partial_output()
        self._finish(JobResult(state=JobState.CANCELLED, error=CancellationError()))

    def _complete(self, return_code: int) -> None:
        self._release()
        tail = self.output_tail_text
        if return_code != 0:
            self._fail(ExecutionError(f"encoder exited with status {return_code}", return_code, tail))
            return

        size = self.output_path.stat().st_size if self.output_path and self.output_path.is_file() else 0
        if size == 0:
            self._fail(ExecutionError("encoder reported success but the output file is missing or empty", 0, tail))
            return

        self.progress = 1.0
        self._finish(JobResult(state=JobState.SUCCEEDED, output_path=self.output_path, output_size=size))
        logger.info(
            f"Job {self.id} succeeded: {self.input_file.filename} -> {self.output_path.name} "
            f"({formatted_size(self.input_file.size)} -> {formatted_size(size)})"
        )

    def _fail(self, error: JobError) -> None:
        self._release()
        self._remove_partial_output()
        self._finish(JobResult(state=JobState.FAILED, error=error))
        logger.error(f"Job {self.id} failed ({self.input_file.filename}): {error}")

    def _finish(self, result: JobResult) -> None:
        self.state = result.state
        self.result = result
        self.finished_at = datetime.now()

    def _release(self) -> None:
        """Drops the process handle and joins the reader thread."""
        if self._finalizer is not None:
            self._finalizer.detach()
            self._finalizer = None
        process, self._process = self._process, None
        reader, self._reader = self._reader, None
        if reader is not None and reader is not threading.current_thread():
            reader.join(timeout=_READER_JOIN_TIMEOUT)
        if process is not None and process.stdout is not None:
            try:
                process.stdout.close()
            except OSError:
                pass

    def _remove_partial_output(self) -> None:
        if self.output_path is None:
            return
        try:
            if self.output_path.exists():
                self.output_path.unlink()
                logger.debug(f"Removed partial output {self.output_path}")
        except OSError as e:
            logger.error(f"Could not remove partial output {self.output_path}: {e}")
