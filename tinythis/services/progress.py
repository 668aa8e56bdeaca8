"""
Parsing of the encoder's output stream into progress events.

FFmpeg is started with `-progress pipe:1` and its log output merged into the
same pipe. The stream therefore mixes two kinds of lines:

- Progress blocks of `key=value` lines (`out_time_us=...`, `progress=continue`,
  `progress=end`), written periodically while encoding.
- Ordinary log lines, among them the input summary containing
  `Duration: 00:01:23.45, start: ...`.

`iter_encoder_events` turns the raw lines into a lazy, finite sequence of
typed events. It ends when the stream ends (the process closed its output)
and, like any generator, cannot be restarted.
"""
import re
from dataclasses import dataclass
from typing import Iterable, Iterator, Optional, Union

from ..config.common import PROGRESS_CAP
from ..domain.media import parse_duration

_PROGRESS_KEY = re.compile(r"^([a-z0-9_]+)=(.*)$")
_DURATION = re.compile(r"Duration:\s*([0-9:.]+)")


@dataclass(frozen=True)
class DurationFound:
    """The encoder reported the input duration (seconds)."""

    seconds: float


@dataclass(frozen=True)
class ProgressUpdate:
    """Encoded position within the input (seconds)."""

    out_time: float


@dataclass(frozen=True)
class ProgressEnd:
    """The encoder wrote its final progress block."""


@dataclass(frozen=True)
class OutputLine:
    """A log line from the encoder, kept for failure reports."""

    text: str


EncoderEvent = Union[DurationFound, ProgressUpdate, ProgressEnd, OutputLine]


def _parse_progress_value(key: str, value: str) -> Optional[EncoderEvent]:
    value = value.strip()
    if key == "progress":
        return ProgressEnd() if value == "end" else None
    if key in ("out_time_us", "out_time_ms"):
        # out_time_ms is in microseconds as well.
        try:
            return ProgressUpdate(out_time=int(value) / 1_000_000)
        except ValueError:
            return None
    if key == "out_time":
        seconds = parse_duration(value)
        return ProgressUpdate(out_time=seconds) if seconds is not None else None
    return None


def parse_line(line: str) -> list:
    """Parses one line of encoder output into zero or more events."""
    line = line.rstrip("\r\n")
    if not line.strip():
        return []

    match = _PROGRESS_KEY.match(line)
    if match:
        event = _parse_progress_value(match.group(1), match.group(2))
        return [event] if event is not None else []

    events = []
    duration_match = _DURATION.search(line)
    if duration_match:
        seconds = parse_duration(duration_match.group(1))
        if seconds:
            events.append(DurationFound(seconds=seconds))
    events.append(OutputLine(text=line))
    return events


def iter_encoder_events(lines: Iterable[str]) -> Iterator[EncoderEvent]:
    for line in lines:
        yield from parse_line(line)


def compute_fraction(out_time: float, duration: Optional[float], previous: float = 0.0) -> float:
    """
    Converts an encoded position into a completion fraction.

    The result never decreases (it is at least `previous`) and never exceeds
    PROGRESS_CAP; only a finished job reports 1.0. Without a known duration
    the previous value is kept.
    """
    if not duration or duration <= 0 or out_time < 0:
        return previous
    fraction = min(out_time / duration, PROGRESS_CAP)
    return max(previous, fraction)
