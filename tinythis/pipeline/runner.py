"""
Non-interactive mode: compress the files given on the command line and exit.

The runner goes through the same JobQueue as the interactive session, so
validation, output naming and failure handling are identical. It prints one
line per file and a live percentage:

    compressing (1/2) [balanced] /videos/a.mp4 -> /videos/a.tinythis.balanced.mp4
    100%
"""
import sys
from pathlib import Path
from typing import List, Optional, Sequence, TextIO

from loguru import logger

from ..config.common import CANCEL_GRACE_PERIOD_SECONDS
from ..domain.exceptions import EmptyInputError, ResourceUnavailable, ValidationError
from ..domain.presets import DEFAULT_PRESET, AcceleratorMode, Preset
from ..services.encode_job import EncodeJob, JobState
from ..services.encoder_locator import EncoderLocator
from ..services.job_queue import JobQueue
from ..services.logging_service import FailureLog
from ..utils.format_utils import format_percent, format_timedelta, formatted_size, size_ratio
from .session import RunSummary

# --- Exit codes ---
EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_USAGE = 2
EXIT_UNAVAILABLE = 3
EXIT_INTERRUPTED = 130

# How long one poll waits for encoder messages before the loop checks again.
POLL_TIMEOUT_SECONDS = 0.25


class CLIRunner:
    """
    Runs one batch of files to completion without interaction.

    Args:
        preset: Preset for every file.
        accelerator: CPU or GPU for every file.
        locator: Finds ffmpeg; the default searches the usual places.
        failure_log: Receives reports for failed jobs.
        out: Where progress lines go.
        err: Where rejected inputs and fatal errors go.
    """

    def __init__(
        self,
        preset: Preset = DEFAULT_PRESET,
        accelerator: AcceleratorMode = AcceleratorMode.CPU,
        locator: Optional[EncoderLocator] = None,
        failure_log: Optional[FailureLog] = None,
        out: Optional[TextIO] = None,
        err: Optional[TextIO] = None,
        grace_period: float = CANCEL_GRACE_PERIOD_SECONDS,
    ):
        self.preset = Preset(preset)
        self.accelerator = AcceleratorMode(accelerator)
        self.locator = locator or EncoderLocator()
        self.failure_log = failure_log
        self.out = out or sys.stdout
        self.err = err or sys.stderr
        self.grace_period = grace_period
        self.rejected: List[ValidationError] = []
        self.summary: Optional[RunSummary] = None

    def _print(self, text: str = "", end: str = "\n") -> None:
        self.out.write(text + end)
        self.out.flush()

    def _error(self, text: str) -> None:
        self.err.write(f"error: {text}\n")
        self.err.flush()

    def run(self, paths: Sequence[Path]) -> int:
        """
        Compresses `paths` one after another.

        Returns:
            EXIT_OK when every file was accepted and compressed, EXIT_FAILURE
            when any file was rejected, failed or cancelled, EXIT_USAGE when no
            file was acceptable, EXIT_UNAVAILABLE when ffmpeg was not found and
            EXIT_INTERRUPTED after Ctrl+C.
        """
        with JobQueue(locator=self.locator, failure_log=self.failure_log, grace_period=self.grace_period) as queue:
            try:
                self._enqueue_all(queue, paths)
            except EmptyInputError as e:
                self._error(str(e))
                return EXIT_USAGE

            binaries = self.locator.locate()
            if binaries is None:
                self._error(str(ResourceUnavailable()))
                return EXIT_UNAVAILABLE
            if binaries.source == "local":
                self._print("local mode: using ffmpeg next to tinythis")

            jobs = list(queue)
            try:
                for index, job in enumerate(jobs, start=1):
                    self._run_one(queue, job, index, len(jobs))
            except ResourceUnavailable as e:
                self._error(str(e))
                return EXIT_UNAVAILABLE
            except KeyboardInterrupt:
                self._print()
                cancelled = queue.cancel_running()
                if cancelled is not None:
                    self._error(f"cancelled: {cancelled.input_file.filename}")
                logger.warning("Interrupted; remaining files were not compressed.")
                return EXIT_INTERRUPTED

            self.summary = RunSummary.of(jobs)

        logger.success(f"{self.summary.describe()} ({formatted_size(self.summary.output_bytes)} written)")
        if self.summary.all_succeeded and not self.rejected:
            return EXIT_OK
        return EXIT_FAILURE

    def _enqueue_all(self, queue: JobQueue, paths: Sequence[Path]) -> None:
        for path in paths:
            try:
                queue.enqueue(path, self.preset, self.accelerator)
            except ValidationError as e:
                self.rejected.append(e)
                self._error(str(e))
        if not len(queue):
            raise EmptyInputError("no valid input files provided")

    def _run_one(self, queue: JobQueue, job: EncodeJob, index: int, total: int) -> None:
        started = queue.run_next()
        if started is not job:
            raise RuntimeError(f"queue started {started!r} instead of {job!r}")

        target = job.output_path if job.output_path else "?"
        self._print(f"compressing ({index}/{total}) [{job.preset.value}] {job.input_file.path} -> {target}")

        last_percent = None
        while job.state is JobState.RUNNING:
            queue.poll(timeout=POLL_TIMEOUT_SECONDS)
            percent = format_percent(job.progress)
            if percent != last_percent and job.state is JobState.RUNNING:
                self._print(f"\r{percent}", end="")
                last_percent = percent

        if job.state is JobState.SUCCEEDED:
            self._print(f"\r{format_percent(1.0)}")
            logger.info(
                f"{job.output_path.name}: {formatted_size(job.input_file.size)} -> "
                f"{formatted_size(job.result.output_size)} "
                f"({size_ratio(job.input_file.size, job.result.output_size)}) in {format_timedelta(job.elapsed)}"
            )
        else:
            if last_percent is not None:
                self._print()
            self._error(f"{job.input_file.filename}: {job.result.error if job.result else job.state.value}")
