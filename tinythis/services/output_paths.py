"""
Output file naming.

Every compressed file is written next to its source as
`<stem>.tinythis.<preset>.mp4`. When that name is taken, a counter is inserted
before the extension (`.2`, `.3`, ...) until a free name is found, so an
existing file is never overwritten.

Resolution looks at the filesystem as it is right now. The queue therefore
resolves a job's output path only when the job starts, not when the file is
added, so two queued jobs cannot be handed the same name.
"""
from pathlib import Path

from loguru import logger

from ..config.video import MAX_OUTPUT_CANDIDATES, OUTPUT_EXTENSION, OUTPUT_TAG
from ..domain.exceptions import FilesystemError
from ..domain.presets import Preset


def output_base_name(input_path: Path, preset: Preset) -> str:
    return f"{input_path.stem}.{OUTPUT_TAG}.{Preset(preset).value}"


def resolve_output_path(input_path: Path, preset: Preset) -> Path:
    """
    Returns the first non-existing output path for `input_path` and `preset`.

    An unwritable directory is not detected here; the job that uses the path
    fails when it tries to write.

    Raises:
        FilesystemError: Every candidate up to MAX_OUTPUT_CANDIDATES exists.
    """
    parent = input_path.parent
    base = output_base_name(input_path, preset)

    candidate = parent / f"{base}{OUTPUT_EXTENSION}"
    if not candidate.exists():
        return candidate

    for n in range(2, MAX_OUTPUT_CANDIDATES + 1):
        candidate = parent / f"{base}.{n}{OUTPUT_EXTENSION}"
        if not candidate.exists():
            logger.debug(f"Output name collision for {input_path.name}; using {candidate.name}")
            return candidate

    raise FilesystemError(
        f"no free output name for {input_path.name}: "
        f"{base}{OUTPUT_EXTENSION} through {base}.{MAX_OUTPUT_CANDIDATES}{OUTPUT_EXTENSION} all exist"
    )
