"""Unit tests for EncodeJob transitions that do not need a running encoder."""

import queue
from pathlib import Path

import pytest

from tinythis.domain.exceptions import ExecutionError, FilesystemError, JobStateError
from tinythis.domain.media import InputFile
from tinythis.domain.presets import AcceleratorMode, Preset
from tinythis.services.encode_job import EncodeJob, JobEvent, JobExited, JobState
from tinythis.services.progress import DurationFound, OutputLine, ProgressEnd, ProgressUpdate


@pytest.fixture
def job(media_dir: Path) -> EncodeJob:
    return EncodeJob(InputFile.from_path(media_dir / "a.mp4"), Preset.SPEED, AcceleratorMode.CPU)


def test_new_job_is_pending(job: EncodeJob):
    assert job.state is JobState.PENDING
    assert job.progress == 0.0
    assert job.output_path is None
    assert job.command_line == ""
    assert not job.is_terminal


def test_terminal_states():
    assert [s for s in JobState if s.is_terminal] == [JobState.SUCCEEDED, JobState.FAILED, JobState.CANCELLED]


def test_retarget_only_while_pending(job: EncodeJob):
    job.retarget(Preset.QUALITY, AcceleratorMode.GPU)
    assert job.profile.preset is Preset.QUALITY
    assert job.profile.accelerator is AcceleratorMode.GPU
    job.state = JobState.RUNNING
    with pytest.raises(JobStateError):
        job.retarget(Preset.SPEED, AcceleratorMode.CPU)


def test_start_twice_is_refused(job: EncodeJob):
    job.state = JobState.SUCCEEDED
    with pytest.raises(JobStateError):
        job.start(Path("/usr/bin/ffmpeg"), queue.Queue())


def test_cancel_requires_running(job: EncodeJob):
    with pytest.raises(JobStateError):
        job.cancel(1.0)


def test_unstartable_encoder_fails_the_job(job: EncodeJob, temp_dir: Path):
    job.start(temp_dir / "no-such-ffmpeg", queue.Queue())
    assert job.state is JobState.FAILED
    assert isinstance(job.result.error, ExecutionError)
    assert not job.has_process
    assert not job.output_path.exists()


def test_output_numbering_exhausted_fails_the_job(job: EncodeJob, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr("tinythis.services.output_paths.MAX_OUTPUT_CANDIDATES", 1)
    (job.input_file.path.parent / "a.tinythis.speed.mp4").touch()
    job.start(Path("/usr/bin/ffmpeg"), queue.Queue())
    assert job.state is JobState.FAILED
    assert isinstance(job.result.error, FilesystemError)
    assert (job.input_file.path.parent / "a.tinythis.speed.mp4").exists()


def test_unwritable_output_directory_fails_the_job(job: EncodeJob, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr("tinythis.services.encode_job.os.access", lambda path, mode: False)
    job.start(Path("/usr/bin/ffmpeg"), queue.Queue())
    assert job.state is JobState.FAILED
    assert isinstance(job.result.error, FilesystemError)
    assert "not writable" in str(job.result.error)
    assert job.command == []
    assert not job.has_process


def test_messages_update_a_running_job(job: EncodeJob):
    job.state = JobState.RUNNING
    assert not job.handle(JobEvent(job.id, ProgressUpdate(out_time=5.0)))
    assert job.progress == 0.0

    job.handle(JobEvent(job.id, DurationFound(seconds=10.0)))
    job.handle(JobEvent(job.id, DurationFound(seconds=99.0)))
    assert job.duration == 10.0

    job.handle(JobEvent(job.id, ProgressUpdate(out_time=5.0)))
    assert job.progress == pytest.approx(0.5)
    job.handle(JobEvent(job.id, ProgressUpdate(out_time=20.0)))
    assert job.progress == pytest.approx(0.99)

    job.handle(JobEvent(job.id, OutputLine(text="frame=1")))
    assert job.output_tail_text == "frame=1"


def test_messages_for_other_jobs_are_ignored(job: EncodeJob):
    job.state = JobState.RUNNING
    assert not job.handle(JobExited(job.id + 1000, 0))
    assert job.state is JobState.RUNNING


def test_exit_without_output_fails(job: EncodeJob, temp_dir: Path):
    job.state = JobState.RUNNING
    job.output_path = temp_dir / "never-written.mp4"
    assert job.handle(JobExited(job.id, 0))
    assert job.state is JobState.FAILED
    assert "missing or empty" in str(job.result.error)


def test_non_zero_exit_fails_and_removes_partial_output(job: EncodeJob, temp_dir: Path):
    job.state = JobState.RUNNING
    job.output_path = temp_dir / "partial.mp4"
    job.output_path.write_bytes(b"\x00" * 10)
    job.handle(JobEvent(job.id, OutputLine(text="Conversion failed!")))
    assert job.handle(JobExited(job.id, 187))
    assert job.state is JobState.FAILED
    assert job.result.error.return_code == 187
    assert "Conversion failed!" in job.result.error.output_tail
    assert not job.output_path.exists()


def test_zero_exit_with_output_succeeds(job: EncodeJob, temp_dir: Path):
    job.state = JobState.RUNNING
    job.output_path = temp_dir / "done.mp4"
    job.output_path.write_bytes(b"\x00" * 10)
    assert job.handle(JobExited(job.id, 0))
    assert job.state is JobState.SUCCEEDED
    assert job.progress == 1.0
    assert job.result.output_path == job.output_path
    assert job.result.output_size == 10


def test_final_progress_block_raises_progress_to_the_cap(job: EncodeJob):
    job.state = JobState.RUNNING
    job.handle(JobEvent(job.id, ProgressEnd()))
    assert job.progress == pytest.approx(0.99)
    assert job.state is JobState.RUNNING
