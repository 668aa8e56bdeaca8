"""
Defines custom exception types for tinythis.

These exceptions let the queue, the session and the CLI react to specific
conditions instead of catching a generic `Exception`. They fall into two
groups:

- Errors raised to the caller of a queue operation (`ValidationError` and its
  subclasses, `ResourceUnavailable`). Nothing has been started when these are
  raised.
- Errors recorded on an individual job (`ExecutionError`, `FilesystemError`,
  `CancellationError`). These are stored on the job's result and never abort
  the other jobs in the queue.

All custom exceptions inherit from the base `TinythisException`.
"""
from pathlib import Path
from typing import Optional


class TinythisException(Exception):
    """Base class for all custom exceptions in tinythis."""

    pass


# --- Validation (raised before any job exists) ---
class ValidationError(TinythisException):
    """Base class for input that is rejected before a job is created."""

    pass


class UnsupportedInputError(ValidationError):
    """
    Raised when a file's extension is not one of the supported video extensions.

    Unsupported files are rejected at enqueue time with this error; they are
    never silently skipped.
    """

    def __init__(self, path: Path):
        self.path = path
        super().__init__(f"unsupported input extension: {path}")


class MissingInputError(ValidationError):
    """Raised when an input path does not exist or is not a regular file."""

    def __init__(self, path: Path):
        self.path = path
        super().__init__(f"input file not found: {path}")


class DuplicateInputError(ValidationError):
    """Raised when a file is already waiting or running in the queue."""

    def __init__(self, path: Path):
        self.path = path
        super().__init__(f"already queued: {path}")


class EmptyInputError(ValidationError):
    """Raised when a run is requested with no valid input files at all."""

    pass


class JobStateError(ValidationError):
    """
    Raised when an operation is not allowed in a job's current state.

    For example, removing a job that is running or has already finished.
    Running jobs must be cancelled first; finished jobs are history.
    """

    pass


# --- Resources ---
class ResourceUnavailable(TinythisException):
    """
    Raised when no encoder executable can be located.

    The run attempt fails fast: no subprocess is spawned and nothing is
    retried automatically.
    """

    def __init__(self, message: str = "ffmpeg not available; install it or set `paths.ffmpeg_dir` in config.user.yaml"):
        super().__init__(message)


# --- Job-level errors (recorded on the job, never raised through the queue) ---
class JobError(TinythisException):
    """Base class for errors that end a single job."""

    pass


class ExecutionError(JobError):
    """
    Raised when the encoder process does not produce a usable output.

    This covers a non-zero exit status as well as a zero exit status with a
    missing or empty output file: the exit status alone is not trusted.
    """

    def __init__(self, message: str, return_code: Optional[int] = None, output_tail: str = ""):
        self.return_code = return_code
        self.output_tail = output_tail
        super().__init__(message)


class FilesystemError(JobError):
    """
    Raised when the output location cannot be used.

    Typical causes are an output directory that is not writable or a file name
    for which every numbered candidate is already taken.
    """

    pass


class CancellationError(JobError):
    """
    Marks a job that was stopped on request.

    Cancellation is reported separately from failures; it says nothing about
    the input file or the preset.
    """

    def __init__(self, message: str = "cancelled by user"):
        super().__init__(message)
