"""Unit tests for log sink setup and the failure report log."""

from pathlib import Path

from loguru import logger

from tinythis.domain.exceptions import ExecutionError
from tinythis.domain.media import InputFile
from tinythis.services.encode_job import EncodeJob, JobResult, JobState
from tinythis.services.logging_service import FailureLog, configure_console_logging, configure_file_logging


def test_failure_log_appends_blocks(temp_dir: Path):
    log = FailureLog(temp_dir / "failures")
    log.write("first")
    log.write("second", "details")
    log.write()
    content = (temp_dir / "failures" / "failures.txt").read_text(encoding="utf-8")
    assert content == f"first\n{'=' * 50}\nsecond\ndetails\n{'=' * 50}\n"


def test_failure_log_job_report(temp_dir: Path, media_dir: Path):
    job = EncodeJob(InputFile.from_path(media_dir / "a.mp4"))
    job.command = ["ffmpeg", "-i", "a b.mp4", "out.mp4"]
    job.state = JobState.FAILED
    job.result = JobResult(state=JobState.FAILED, error=ExecutionError("encoder exited with status 1", 1))

    log = FailureLog(temp_dir)
    log.write_job(job)

    content = log.log_file_path.read_text(encoding="utf-8")
    assert f"Input: {job.input_file.path}" in content
    assert "Command: ffmpeg -i 'a b.mp4' out.mp4" in content
    assert "Return code: 1" in content
    assert "Error: encoder exited with status 1" in content
    assert "Preset: balanced (cpu)" in content


def test_failure_log_falls_back_to_logger(temp_dir: Path):
    blocker = temp_dir / "not-a-dir"
    blocker.write_text("")
    messages = []
    sink_id = logger.add(messages.append, level="ERROR", format="{message}")
    try:
        FailureLog(blocker).write("lost report")
    finally:
        logger.remove(sink_id)
    assert any("lost report" in m for m in messages)


def test_file_logging_writes_into_log_dir(temp_dir: Path):
    log_file = configure_file_logging(level="DEBUG", log_dir=temp_dir / "logs")
    try:
        logger.info("hello from the session")
    finally:
        configure_console_logging("WARNING")
    assert log_file == temp_dir / "logs" / "tinythis.log"
    assert "hello from the session" in log_file.read_text(encoding="utf-8")
