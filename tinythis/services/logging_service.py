"""
This module provides the logging setup and the failure report log.

Real-time logging goes through loguru. In command-line mode the log is written
to stderr; in the interactive session the terminal belongs to the UI, so the
log goes to a rotating file in the application directory instead.

Failed jobs additionally get a plain-text report (`FailureLog`): the exact
encoder command, the paths involved and the last lines FFmpeg printed. This is
the first thing to look at when a file refuses to compress.
"""
import sys
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING

from loguru import logger

from ..config.common import LOG_DIR, LOG_RETENTION, LOG_ROTATION, LOGGER_FORMAT

if TYPE_CHECKING:
    from .encode_job import EncodeJob


def configure_console_logging(level: str = "INFO") -> None:
    """Routes all log output to stderr at `level`."""
    logger.remove()
    logger.add(sys.stderr, level=level, format=LOGGER_FORMAT)


def configure_file_logging(level: str = "DEBUG", log_dir: Path = LOG_DIR) -> Path:
    """
    Routes all log output to `tinythis.log` in `log_dir`.

    Returns:
        The path of the log file.
    """
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / "tinythis.log"
    logger.remove()
    logger.add(
        log_file,
        level=level,
        format=LOGGER_FORMAT,
        rotation=LOG_ROTATION,
        retention=LOG_RETENTION,
        encoding="utf-8",
        colorize=False,
    )
    return log_file


class FailureLog:
    """
    Appends human-readable reports for failed jobs to a text file.

    Each report is a block of lines followed by a separator, so the file reads
    as a chronological record of failures.
    """

    # A decorative separator line between reports.
    linesep_marker: str = "=" * 50

    DEFAULT_FILENAME = "failures.txt"

    def __init__(self, log_dir: Path, filename: str = DEFAULT_FILENAME):
        self.log_dir = log_dir
        self.log_file_path = self.log_dir / filename

    def write(self, *messages: str) -> None:
        if not messages:
            return
        content = "\n".join(messages) + "\n" + self.linesep_marker + "\n"
        try:
            self.log_dir.mkdir(parents=True, exist_ok=True)
            with self.log_file_path.open("a", encoding="utf-8") as f:
                f.write(content)
        except OSError as e:
            # Fall back to the main logger so the report is not lost.
            logger.error(f"Failed to write to failure log {self.log_file_path}: {e}")
            for msg in messages:
                logger.error(f"  - {msg}")

    def write_job(self, job: "EncodeJob") -> None:
        """Writes the report for a failed job."""
        result = job.result
        error = result.error if result else None
        return_code = getattr(error, "return_code", None)
        self.write(
            f"Time: {datetime.now().isoformat(timespec='seconds')}",
            f"Input: {job.input_file.path}",
            f"Output: {job.output_path or 'N/A'}",
            f"Preset: {job.preset.value} ({job.accelerator.value})",
            f"Command: {job.command_line or 'N/A'}",
            f"Return code: {return_code if return_code is not None else 'N/A'}",
            f"Error: {error}",
            "Encoder output (tail):",
            job.output_tail_text or "(none)",
        )
