"""
Persisted user options.

The interactive session remembers a few choices between runs (currently only
whether the GPU encoder was selected). They are stored as YAML in the
application directory and written atomically so an interrupted save never
leaves a half-written file behind.
"""
import os
import tempfile
from dataclasses import asdict, dataclass
from pathlib import Path

import yaml
from loguru import logger

from .common import OPTIONS_PATH


@dataclass
class Options:
    gpu: bool = False


def load_options(path: Path = OPTIONS_PATH) -> Options:
    """
    Loads the options file, falling back to defaults for anything missing.

    Unknown keys are ignored and values of the wrong type are replaced by the
    default, with a warning, rather than failing the session start.
    """
    options = Options()
    if not path.is_file():
        return options
    try:
        with path.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        logger.warning(f"Could not read options from '{path}': {e}. Using defaults.")
        return options

    if not isinstance(data, dict):
        logger.warning(f"Options file '{path}' is not a mapping. Using defaults.")
        return options

    gpu = data.get("gpu", options.gpu)
    if isinstance(gpu, bool):
        options.gpu = gpu
    else:
        logger.warning(f"Invalid value for 'gpu' in '{path}': {gpu!r}. Expected true/false.")
    return options


def save_options(options: Options, path: Path = OPTIONS_PATH) -> None:
    """Writes the options through a temporary file and an atomic replace."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=".options.", suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            yaml.safe_dump(asdict(options), f, default_flow_style=False, sort_keys=False)
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise
    logger.debug(f"Saved options to '{path}': {asdict(options)}")
