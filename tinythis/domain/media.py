import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import ffmpeg
from loguru import logger

from .exceptions import MissingInputError, UnsupportedInputError
from ..config.video import VIDEO_EXTENSIONS

_TIMECODE_PATTERN = re.compile(r"(?:(\d{1,3}):)?(\d{1,2}):(\d{1,2}(?:\.\d+)?)")


def parse_duration(duration_str: str) -> Optional[float]:
    """
    Parses a duration string into total seconds.

    Two formats are accepted, both of which FFmpeg prints:
    1. A plain number of seconds (e.g., "3600.5").
    2. A timecode 'HH:MM:SS.sss' (e.g., "01:00:00.500"); hours are optional.

    Args:
        duration_str: The string containing the duration to parse.

    Returns:
        The duration in seconds, or None if the string is not a duration
        (FFmpeg prints "N/A" for unknown values).
    """
    text = duration_str.strip()
    try:
        return float(text)
    except ValueError:
        pass
    match = _TIMECODE_PATTERN.fullmatch(text)
    if not match:
        return None
    hours_str, minutes_str, seconds_str = match.groups()
    hours = int(hours_str) if hours_str else 0
    return hours * 3600 + int(minutes_str) * 60 + float(seconds_str)


def is_supported_video(path: Path) -> bool:
    """True if the file extension is one of the accepted inputs (case-insensitive)."""
    return path.suffix.lower() in VIDEO_EXTENSIONS


@dataclass(frozen=True)
class InputFile:
    """
    A validated source file, as accepted by the job queue.

    Instances are created through `InputFile.from_path`, which enforces the
    extension allow-list and checks that the file exists at that moment.

    Attributes:
        path (Path): The absolute path to the media file.
        size (int): The size of the file in bytes when it was accepted.
    """

    path: Path
    size: int = field(default=0, compare=False)

    @classmethod
    def from_path(cls, path: Path) -> "InputFile":
        """
        Validates `path` and returns an InputFile for it.

        Raises:
            UnsupportedInputError: The extension is not in the allow-list.
            MissingInputError: The path does not exist or is not a regular file.
        """
        path = Path(path).expanduser()
        if not is_supported_video(path):
            raise UnsupportedInputError(path)
        resolved = path.resolve()
        if not resolved.is_file():
            raise MissingInputError(resolved)
        return cls(path=resolved, size=resolved.stat().st_size)

    @property
    def filename(self) -> str:
        return self.path.name

    @property
    def stem(self) -> str:
        return self.path.stem

    @property
    def key(self) -> str:
        """Identity used to detect the same file being queued twice."""
        return str(self.path).lower()

    def probe_duration(self, ffprobe_path: Path) -> Optional[float]:
        """
        Asks ffprobe (through ffmpeg-python) for the container duration.

        This is only a hint for progress reporting; the encoder prints the
        duration itself as well. Failures are logged and return None.
        """
        try:
            probe = ffmpeg.probe(str(self.path), cmd=str(ffprobe_path))
        except ffmpeg.Error as e:
            stderr = e.stderr.decode("utf-8", errors="replace") if e.stderr else ""
            logger.warning(f"ffprobe failed for {self.filename}: {stderr.strip() or e}")
            return None
        except OSError as e:
            logger.warning(f"Could not run ffprobe '{ffprobe_path}': {e}")
            return None

        duration_str = (probe.get("format") or {}).get("duration")
        if duration_str is None:
            logger.debug(f"No duration in probe output for {self.filename}.")
            return None
        duration = parse_duration(str(duration_str))
        if not duration or duration <= 0:
            return None
        logger.debug(f"Probed duration for {self.filename}: {duration:.2f}s")
        return duration
