"""Unit tests for the preset table and encoder argument building."""

from pathlib import Path

import pytest

from tinythis.domain.presets import (
    DEFAULT_PRESET,
    PRESET_TABLE,
    AcceleratorMode,
    Preset,
    arguments_for,
    build_encoder_args,
)


def _value_after(args, flag):
    return args[list(args).index(flag) + 1]


class TestPresetTable:
    def test_every_pair_has_a_non_empty_profile(self):
        assert len(PRESET_TABLE) == 6
        for preset in Preset:
            for accelerator in AcceleratorMode:
                profile = arguments_for(preset, accelerator)
                assert profile.preset is preset
                assert profile.accelerator is accelerator
                assert profile.arguments
                assert profile.extension == ".mp4"

    def test_lookup_is_deterministic(self):
        assert arguments_for(Preset.SPEED, AcceleratorMode.GPU) == arguments_for("speed", "gpu")

    @pytest.mark.parametrize(
        "preset,speed,crf,audio",
        [
            (Preset.QUALITY, "slow", "18", "160k"),
            (Preset.BALANCED, "medium", "23", "128k"),
            (Preset.SPEED, "veryfast", "28", "96k"),
        ],
    )
    def test_cpu_profiles(self, preset, speed, crf, audio):
        args = arguments_for(preset, AcceleratorMode.CPU).arguments
        assert _value_after(args, "-c:v") == "libx264"
        assert _value_after(args, "-preset") == speed
        assert _value_after(args, "-crf") == crf
        assert _value_after(args, "-c:a") == "aac"
        assert _value_after(args, "-b:a") == audio
        assert _value_after(args, "-pix_fmt") == "yuv420p"
        assert _value_after(args, "-movflags") == "+faststart"

    def test_gpu_profiles_use_nvenc_and_keep_the_tier_order(self):
        cq_values = []
        for preset in (Preset.QUALITY, Preset.BALANCED, Preset.SPEED):
            args = arguments_for(preset, AcceleratorMode.GPU).arguments
            assert _value_after(args, "-c:v") == "h264_nvenc"
            assert "-crf" not in args
            cq_values.append(int(_value_after(args, "-cq")))
        assert cq_values == sorted(cq_values)

    def test_accelerator_does_not_change_audio(self):
        for preset in Preset:
            cpu = arguments_for(preset, AcceleratorMode.CPU)
            gpu = arguments_for(preset, AcceleratorMode.GPU)
            assert cpu.audio_args == gpu.audio_args


class TestPresetCycling:
    def test_default_is_balanced(self):
        assert DEFAULT_PRESET is Preset.BALANCED

    def test_next_and_previous_wrap_around(self):
        assert Preset.QUALITY.next() is Preset.BALANCED
        assert Preset.SPEED.next() is Preset.QUALITY
        assert Preset.QUALITY.previous() is Preset.SPEED
        assert Preset.BALANCED.previous() is Preset.QUALITY

    def test_from_name_is_case_insensitive(self):
        assert Preset.from_name(" Speed ") is Preset.SPEED

    def test_from_name_rejects_unknown(self):
        with pytest.raises(ValueError, match="unknown preset"):
            Preset.from_name("ultra")

    def test_accelerator_toggle(self):
        assert AcceleratorMode.CPU.toggled() is AcceleratorMode.GPU
        assert AcceleratorMode.GPU.toggled() is AcceleratorMode.CPU


class TestBuildEncoderArgs:
    def test_full_command_layout(self):
        profile = arguments_for(Preset.BALANCED, AcceleratorMode.CPU)
        args = build_encoder_args(profile, Path("/in/a.mp4"), Path("/in/a.tinythis.balanced.mp4"))

        assert args[:6] == ["-hide_banner", "-nostdin", "-nostats", "-y", "-i", "/in/a.mp4"]
        assert args[6:10] == ["-map", "0:v:0", "-map", "0:a?"]
        assert args[-3:] == ["-progress", "pipe:1", "/in/a.tinythis.balanced.mp4"]
        assert args[10:-3] == list(profile.arguments)
