"""Unit tests for command-line argument handling."""

import argparse
from pathlib import Path

import pytest

from tinythis.cli import get_args, parse_inputs, resolve_accelerator
from tinythis.domain.presets import AcceleratorMode, Preset


def test_files_only_use_default_preset():
    args = get_args(["a.mp4", "b.mov"])
    assert args.preset is Preset.BALANCED
    assert args.files == [Path("a.mp4"), Path("b.mov")]


def test_leading_preset_name():
    args = get_args(["speed", "a.mp4"])
    assert args.preset is Preset.SPEED
    assert args.files == [Path("a.mp4")]


def test_mode_flag():
    args = get_args(["--mode", "Quality", "a.mp4"])
    assert args.preset is Preset.QUALITY


def test_matching_positional_and_flag():
    assert get_args(["speed", "--mode", "speed", "a.mp4"]).preset is Preset.SPEED


def test_flags_between_preset_and_files():
    args = get_args(["speed", "--gpu", "a.mp4", "b.mov"])
    assert args.preset is Preset.SPEED
    assert args.gpu
    assert args.files == [Path("a.mp4"), Path("b.mov")]


def test_conflicting_presets_are_a_usage_error(capsys: pytest.CaptureFixture):
    with pytest.raises(SystemExit) as exc_info:
        get_args(["speed", "--mode", "quality", "a.mp4"])
    assert exc_info.value.code == 2
    assert "conflicting presets" in capsys.readouterr().err


def test_unknown_mode_is_a_usage_error():
    with pytest.raises(SystemExit):
        get_args(["--mode", "ultra", "a.mp4"])


def test_gpu_and_cpu_are_exclusive():
    with pytest.raises(SystemExit):
        get_args(["--gpu", "--cpu", "a.mp4"])


def test_existing_file_named_like_a_preset_is_an_input(temp_dir: Path, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.chdir(temp_dir)
    (temp_dir / "speed").touch()
    preset, files = parse_inputs(["speed", "a.mp4"], None)
    assert preset is Preset.BALANCED
    assert files == [Path("speed"), Path("a.mp4")]


def test_no_arguments_means_interactive():
    args = get_args([])
    assert args.files == []
    assert args.inputs == []


@pytest.mark.parametrize(
    "flags,saved,expected",
    [
        ({"gpu": True, "cpu": False}, False, AcceleratorMode.GPU),
        ({"gpu": False, "cpu": True}, True, AcceleratorMode.CPU),
        ({"gpu": False, "cpu": False}, True, AcceleratorMode.GPU),
        ({"gpu": False, "cpu": False}, False, AcceleratorMode.CPU),
    ],
)
def test_resolve_accelerator(flags, saved, expected):
    assert resolve_accelerator(argparse.Namespace(**flags), saved) is expected
