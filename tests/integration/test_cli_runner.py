"""Integration tests for the non-interactive runner against stub encoders.

Covers the end-to-end command-line scenarios:
- two supported inputs compress successfully and exit 0
- an existing output name is numbered around
- unsupported inputs are rejected before anything runs
- failing and empty-output encoders leave no file behind
"""

import io
import sys
from pathlib import Path

import pytest

from tinythis.domain.presets import AcceleratorMode, Preset
from tinythis.pipeline.runner import EXIT_FAILURE, EXIT_OK, EXIT_UNAVAILABLE, EXIT_USAGE, CLIRunner
from tinythis.services.logging_service import FailureLog

pytestmark = pytest.mark.skipif(sys.platform == "win32", reason="stub encoders are shebang scripts")


def _runner(locator, preset=Preset.BALANCED, accelerator=AcceleratorMode.CPU, failure_log=None):
    return CLIRunner(
        preset=preset,
        accelerator=accelerator,
        locator=locator,
        failure_log=failure_log,
        out=io.StringIO(),
        err=io.StringIO(),
    )


def test_two_files_succeed(make_locator, media_dir: Path, stub_calls):
    runner = _runner(make_locator("succeed"))

    code = runner.run([media_dir / "a.mp4", media_dir / "b.mov"])

    assert code == EXIT_OK
    assert runner.summary.succeeded == 2
    assert (media_dir / "a.tinythis.balanced.mp4").stat().st_size > 0
    assert (media_dir / "b.tinythis.balanced.mp4").stat().st_size > 0

    output = runner.out.getvalue()
    assert "compressing (1/2) [balanced]" in output
    assert "compressing (2/2) [balanced]" in output
    assert "100%" in output

    calls = stub_calls()
    assert len(calls) == 2
    assert calls[0][calls[0].index("-i") + 1] == str((media_dir / "a.mp4").resolve())
    assert calls[0][calls[0].index("-crf") + 1] == "23"
    assert calls[0][-3:-1] == ["-progress", "pipe:1"]


def test_existing_output_is_numbered(make_locator, media_dir: Path):
    existing = media_dir / "a.tinythis.speed.mp4"
    existing.write_bytes(b"keep me")

    code = _runner(make_locator("succeed"), preset=Preset.SPEED).run([media_dir / "a.mp4"])

    assert code == EXIT_OK
    assert existing.read_bytes() == b"keep me"
    assert (media_dir / "a.tinythis.speed.2.mp4").exists()


def test_gpu_run_passes_nvenc(make_locator, media_dir: Path, stub_calls):
    code = _runner(make_locator("succeed"), accelerator=AcceleratorMode.GPU).run([media_dir / "a.mp4"])
    assert code == EXIT_OK
    args = stub_calls()[0]
    assert args[args.index("-c:v") + 1] == "h264_nvenc"


def test_only_unsupported_input_is_a_usage_error(make_locator, media_dir: Path, stub_calls):
    runner = _runner(make_locator("succeed"))

    code = runner.run([media_dir / "a.txt"])

    assert code == EXIT_USAGE
    assert "unsupported input extension" in runner.err.getvalue()
    assert stub_calls() == []


def test_rejected_input_makes_the_run_fail(make_locator, media_dir: Path):
    runner = _runner(make_locator("succeed"))

    code = runner.run([media_dir / "a.mp4", media_dir / "a.txt"])

    assert code == EXIT_FAILURE
    assert runner.summary.succeeded == 1
    assert len(runner.rejected) == 1


def test_no_encoder(missing_locator, media_dir: Path):
    runner = _runner(missing_locator)
    assert runner.run([media_dir / "a.mp4"]) == EXIT_UNAVAILABLE
    assert "ffmpeg not available" in runner.err.getvalue()
    assert not (media_dir / "a.tinythis.balanced.mp4").exists()


@pytest.mark.parametrize("kind", ["fail", "empty"])
def test_failed_encode_leaves_no_output(kind, make_locator, media_dir: Path, temp_dir: Path):
    failure_log = FailureLog(temp_dir / "failures")
    runner = _runner(make_locator(kind), failure_log=failure_log)

    code = runner.run([media_dir / "a.mp4", media_dir / "b.mov"])

    assert code == EXIT_FAILURE
    assert runner.summary.failed == 2
    assert not (media_dir / "a.tinythis.balanced.mp4").exists()
    assert not (media_dir / "b.tinythis.balanced.mp4").exists()
    report = failure_log.log_file_path.read_text(encoding="utf-8")
    assert report.count("=" * 50) == 2
    assert "Command:" in report
