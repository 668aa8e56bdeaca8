"""
The fixed preset table.

A preset is one of three quality/speed/size tiers. Each tier has a CPU variant
(libx264) and a GPU variant (NVENC); switching the accelerator changes the
encode path but keeps the tier: `quality` is always the slowest and most
faithful, `speed` always the fastest and smallest.

`arguments_for` is a pure lookup over the 3x2 space of (preset, accelerator)
pairs. `build_encoder_args` wraps a profile into a complete ffmpeg command
line for a given input and output.
"""
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import List, Tuple

from ..config.video import (
    AUDIO_BITRATES,
    AUDIO_ENCODER,
    CPU_PRESET_PARAMS,
    CPU_VIDEO_ENCODER,
    GPU_PRESET_PARAMS,
    GPU_VIDEO_ENCODER,
    OUTPUT_EXTENSION,
    PIXEL_FORMAT,
    PRESET_DESCRIPTIONS,
)


class Preset(str, Enum):
    QUALITY = "quality"
    BALANCED = "balanced"
    SPEED = "speed"

    @property
    def description(self) -> str:
        return PRESET_DESCRIPTIONS[self.value]

    def next(self) -> "Preset":
        members = list(Preset)
        return members[(members.index(self) + 1) % len(members)]

    def previous(self) -> "Preset":
        members = list(Preset)
        return members[(members.index(self) - 1) % len(members)]

    @classmethod
    def from_name(cls, name: str) -> "Preset":
        """Case-insensitive lookup; raises ValueError for unknown names."""
        try:
            return cls(name.strip().lower())
        except ValueError:
            choices = ", ".join(p.value for p in cls)
            raise ValueError(f"unknown preset '{name}' (choose from: {choices})") from None


DEFAULT_PRESET = Preset.BALANCED


class AcceleratorMode(str, Enum):
    CPU = "cpu"
    GPU = "gpu"

    def toggled(self) -> "AcceleratorMode":
        return AcceleratorMode.GPU if self is AcceleratorMode.CPU else AcceleratorMode.CPU


@dataclass(frozen=True)
class EncodeProfile:
    """
    The encoder parameters for one (preset, accelerator) pair.

    Attributes:
        preset: The quality tier this profile implements.
        accelerator: CPU or GPU encode path.
        video_args: Codec selection, rate control and accelerator flags, in order.
        audio_args: Audio codec and bitrate.
        extension: Output container extension (always `.mp4`).
    """

    preset: Preset
    accelerator: AcceleratorMode
    video_args: Tuple[str, ...]
    audio_args: Tuple[str, ...]
    extension: str = OUTPUT_EXTENSION

    @property
    def arguments(self) -> Tuple[str, ...]:
        return self.video_args + ("-pix_fmt", PIXEL_FORMAT, "-movflags", "+faststart") + self.audio_args


def _video_args(preset: Preset, accelerator: AcceleratorMode) -> Tuple[str, ...]:
    if accelerator is AcceleratorMode.GPU:
        speed_preset, cq = GPU_PRESET_PARAMS[preset.value]
        return (
            "-c:v", GPU_VIDEO_ENCODER,
            "-preset", speed_preset,
            "-rc", "vbr",
            "-cq", str(cq),
            "-b:v", "0",
        )
    speed_preset, crf = CPU_PRESET_PARAMS[preset.value]
    return (
        "-c:v", CPU_VIDEO_ENCODER,
        "-preset", speed_preset,
        "-crf", str(crf),
    )


def _build_table() -> dict:
    table = {}
    for preset in Preset:
        audio_args = ("-c:a", AUDIO_ENCODER, "-b:a", AUDIO_BITRATES[preset.value])
        for accelerator in AcceleratorMode:
            table[(preset, accelerator)] = EncodeProfile(
                preset=preset,
                accelerator=accelerator,
                video_args=_video_args(preset, accelerator),
                audio_args=audio_args,
            )
    return table


PRESET_TABLE = _build_table()


def arguments_for(preset: Preset, accelerator: AcceleratorMode) -> EncodeProfile:
    """Returns the profile for a (preset, accelerator) pair. Total and pure."""
    return PRESET_TABLE[(Preset(preset), AcceleratorMode(accelerator))]


def build_encoder_args(profile: EncodeProfile, input_path: Path, output_path: Path) -> List[str]:
    """
    Builds the full ffmpeg argument list (without the executable) for one job.

    Progress is requested as key=value lines on stdout (`-progress pipe:1`);
    `-nostats` keeps the interactive status line out of the log output and
    `-nostdin` stops ffmpeg from reading the terminal.
    """
    return [
        "-hide_banner",
        "-nostdin",
        "-nostats",
        "-y",
        "-i", str(input_path),
        "-map", "0:v:0",
        "-map", "0:a?",
        *profile.arguments,
        "-progress", "pipe:1",
        str(output_path),
    ]
