"""
This module defines the JobQueue, an ordered list of encode jobs with at most
one job running at a time.

The queue is the single owner of every job. The background reader threads of
running jobs only post messages into the queue's inbox (`queue.Queue`); all
state changes happen in `poll()`, on the thread that owns the queue. The
interactive session calls `poll()` on its timer tick, the command-line runner
calls it in a loop.

Order of execution is insertion order. Adding, removing, and cancelling are
all allowed while a job runs; starting the next job is always an explicit
`run_next()` call by the owner.
"""
import queue
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Iterator, List, Optional, Union

from loguru import logger

from ..config.common import CANCEL_GRACE_PERIOD_SECONDS
from ..domain.exceptions import DuplicateInputError, JobStateError, ResourceUnavailable, ValidationError
from ..domain.media import InputFile
from ..domain.presets import DEFAULT_PRESET, AcceleratorMode, Preset
from .encode_job import EncodeJob, JobState
from .encoder_locator import EncoderLocator
from .logging_service import FailureLog


@dataclass(frozen=True)
class QueueSummary:
    """Counts of jobs per state."""

    pending: int = 0
    running: int = 0
    succeeded: int = 0
    failed: int = 0
    cancelled: int = 0

    @property
    def total(self) -> int:
        return self.pending + self.running + self.succeeded + self.failed + self.cancelled

    @property
    def finished(self) -> int:
        return self.succeeded + self.failed + self.cancelled


class JobQueue:
    """
    Ordered collection of EncodeJobs.

    Attributes:
        jobs (List[EncodeJob]): The visible queue, in insertion order.
        history (List[EncodeJob]): Finished jobs removed by `clear_finished()`.
        locator (EncoderLocator): Finds ffmpeg each time a job is started.
        failure_log (Optional[FailureLog]): Receives a report for every failed job.
        grace_period (float): Seconds a cancelled encoder gets before it is killed.
    """

    def __init__(
        self,
        locator: Optional[EncoderLocator] = None,
        failure_log: Optional[FailureLog] = None,
        grace_period: float = CANCEL_GRACE_PERIOD_SECONDS,
    ):
        self.locator = locator or EncoderLocator()
        self.failure_log = failure_log
        self.grace_period = grace_period
        self.jobs: List[EncodeJob] = []
        self.history: List[EncodeJob] = []
        self._inbox: "queue.Queue" = queue.Queue()

    def __enter__(self) -> "JobQueue":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.shutdown()

    def __len__(self) -> int:
        return len(self.jobs)

    def __iter__(self) -> Iterator[EncodeJob]:
        return iter(self.jobs)

    def __getitem__(self, index: int) -> EncodeJob:
        return self.jobs[index]

    # --- Views ---
    @property
    def running(self) -> Optional[EncodeJob]:
        return next((job for job in self.jobs if job.state is JobState.RUNNING), None)

    @property
    def pending_jobs(self) -> List[EncodeJob]:
        return [job for job in self.jobs if job.state is JobState.PENDING]

    @property
    def has_pending(self) -> bool:
        return any(job.state is JobState.PENDING for job in self.jobs)

    @property
    def is_idle(self) -> bool:
        return self.running is None

    def summary(self, jobs: Optional[Iterable[EncodeJob]] = None) -> QueueSummary:
        counts = {state: 0 for state in JobState}
        for job in self.jobs if jobs is None else jobs:
            counts[job.state] += 1
        return QueueSummary(
            pending=counts[JobState.PENDING],
            running=counts[JobState.RUNNING],
            succeeded=counts[JobState.SUCCEEDED],
            failed=counts[JobState.FAILED],
            cancelled=counts[JobState.CANCELLED],
        )

    # --- Mutations ---
    def enqueue(
        self,
        source: Union[InputFile, Path, str],
        preset: Preset = DEFAULT_PRESET,
        accelerator: AcceleratorMode = AcceleratorMode.CPU,
    ) -> EncodeJob:
        """
        Validates a file and appends a pending job for it.

        Raises:
            UnsupportedInputError: The extension is not a supported video type.
            MissingInputError: The file does not exist.
            DuplicateInputError: The same file is already pending or running.
        """
        input_file = source if isinstance(source, InputFile) else InputFile.from_path(Path(source))
        for job in self.jobs:
            if not job.is_terminal and job.input_file.key == input_file.key:
                raise DuplicateInputError(input_file.path)
        job = EncodeJob(input_file, preset, accelerator)
        self.jobs.append(job)
        logger.debug(f"Queued {job}")
        return job

    def remove(self, index: int) -> EncodeJob:
        """
        Removes a pending job.

        Raises:
            IndexError: No job at `index`.
            JobStateError: The job is running or finished.
        """
        if not 0 <= index < len(self.jobs):
            raise IndexError(f"no job at position {index}")
        job = self.jobs[index]
        if job.state is not JobState.PENDING:
            raise JobStateError(f"cannot remove a {job.state.value} job")
        del self.jobs[index]
        logger.debug(f"Removed {job}")
        return job

    def retarget_pending(self, preset: Preset, accelerator: AcceleratorMode) -> int:
        """Applies preset and accelerator to every pending job. Returns how many changed."""
        pending = self.pending_jobs
        for job in pending:
            job.retarget(preset, accelerator)
        return len(pending)

    def run_next(self) -> Optional[EncodeJob]:
        """
        Starts the first pending job.

        Returns None without doing anything when a job is already running or
        nothing is pending. Otherwise the started job is returned; it may
        already be failed if its output location could not be used.

        Raises:
            ResourceUnavailable: No ffmpeg executable could be found. No job
                                 changes state in that case.
        """
        if self.running is not None:
            return None
        pending = self.pending_jobs
        if not pending:
            return None

        binaries = self.locator.locate()
        if binaries is None:
            raise ResourceUnavailable()

        job = pending[0]
        job.start(binaries.ffmpeg, self._inbox, ffprobe=binaries.ffprobe)
        if job.state is JobState.FAILED:
            self._report_failure(job)
        return job

    def poll(self, timeout: Optional[float] = None) -> List[EncodeJob]:
        """
        Applies the messages posted by reader threads since the last call.

        With a timeout, waits up to that many seconds for the first message.

        Returns:
            The jobs that reached a terminal state during this call.
        """
        finished: List[EncodeJob] = []
        block = timeout is not None and timeout > 0
        while True:
            try:
                message = self._inbox.get(block=block, timeout=timeout if block else None)
            except queue.Empty:
                break
            block = False
            job = self._find(message.job_id)
            if job is not None and job.handle(message):
                finished.append(job)
                if job.state is JobState.FAILED:
                    self._report_failure(job)
        return finished

    def cancel_running(self) -> Optional[EncodeJob]:
        """Cancels the running job, if any. Pending jobs are left as they are."""
        job = self.running
        if job is None:
            return None
        job.cancel(self.grace_period)
        return job

    def retry_failed(self) -> List[EncodeJob]:
        """
        Queues a new job for every failed or cancelled job.

        The old jobs stay in the list as history. Inputs that no longer exist,
        or that are already queued again, are skipped with a warning.
        """
        created = []
        for job in list(self.jobs):
            if job.state not in (JobState.FAILED, JobState.CANCELLED):
                continue
            try:
                created.append(self.enqueue(job.input_file.path, job.preset, job.accelerator))
            except DuplicateInputError as e:
                logger.debug(f"Not retrying {job.input_file.filename}: {e}")
            except ValidationError as e:
                logger.warning(f"Cannot retry {job.input_file.filename}: {e}")
        return created

    def clear_finished(self) -> int:
        """Moves finished jobs out of the queue into `history`."""
        finished = [job for job in self.jobs if job.is_terminal]
        self.jobs = [job for job in self.jobs if not job.is_terminal]
        self.history.extend(finished)
        return len(finished)

    def shutdown(self) -> None:
        """Cancels the running job so no encoder outlives the queue."""
        if self.running is not None:
            logger.info("Shutting down: cancelling the running job.")
            self.cancel_running()

    # --- Internals ---
    def _find(self, job_id: int) -> Optional[EncodeJob]:
        return next((job for job in self.jobs if job.id == job_id), None)

    def _report_failure(self, job: EncodeJob) -> None:
        if self.failure_log is not None:
            self.failure_log.write_job(job)
