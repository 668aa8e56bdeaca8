"""
Common configuration settings used throughout the application.

This module contains globally shared settings and constants: where tinythis
keeps its files, how log lines look, and the timing constants of the job queue.
It also loads the optional user configuration file (`config.user.yaml`) so that
users can point tinythis at a specific FFmpeg build without touching the code.
"""
import os
from pathlib import Path

import yaml
from loguru import logger

# --- Application Directory ---
# Everything tinythis writes on its own behalf (options, logs, failure reports)
# lives here. `TINYTHIS_HOME` overrides the default location.

APP_DIR = Path(os.environ.get("TINYTHIS_HOME") or Path.home() / ".tinythis").expanduser()
USER_CONFIG_PATH = APP_DIR / "config.user.yaml"
OPTIONS_PATH = APP_DIR / "options.yaml"
LOG_DIR = APP_DIR / "logs"
FAILURE_LOG_DIR = APP_DIR / "failures"

# Environment variable that points directly at an ffmpeg executable. Checked
# before any configured or discovered location.
FFMPEG_ENV_VAR = "TINYTHIS_FFMPEG"


def load_user_config(config_path: Path = USER_CONFIG_PATH) -> dict:
    """
    Reads `config.user.yaml` and returns its contents as a dictionary.

    A missing file is normal (everything has a default). A file that cannot be
    parsed is reported and treated as empty, so a typo never prevents the tool
    from starting.

    Args:
        config_path: Location of the YAML file.

    Returns:
        The parsed mapping, or an empty dict.
    """
    if not config_path.is_file():
        logger.debug(f"User config '{config_path}' not found. Using defaults.")
        return {}
    try:
        with config_path.open("r", encoding="utf-8") as f:
            loaded = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        logger.warning(f"Could not load or parse '{config_path}': {e}")
        return {}
    if not isinstance(loaded, dict):
        logger.warning(f"Ignoring '{config_path}': expected a mapping at the top level.")
        return {}
    return loaded


_user_config = load_user_config()

# The directory containing the ffmpeg and ffprobe executables, from
# `paths.ffmpeg_dir`. None means "search next to tinythis, then PATH".
MODULE_PATH: Path | None = None
_ffmpeg_dir = (_user_config.get("paths") or {}).get("ffmpeg_dir")
if _ffmpeg_dir:
    MODULE_PATH = Path(_ffmpeg_dir).expanduser()


# --- Logging Configuration ---

LOGGER_FORMAT = (
    "<green>{time:MM-DD HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
    "<level>{message}</level>"
)

DEFAULT_LOG_LEVEL = str(_user_config.get("log_level") or "INFO").upper()

# Size at which the interactive session's log file is rotated.
LOG_ROTATION = "5 MB"
LOG_RETENTION = 3


# --- Queue and Process Timing ---

# How long a cancelled encoder gets to exit after SIGTERM before it is killed.
CANCEL_GRACE_PERIOD_SECONDS = 5.0

# Render/poll interval of the interactive session (seconds).
TICK_INTERVAL_SECONDS = 0.08

# Progress never reports completion before the job reaches a terminal state.
PROGRESS_CAP = 0.99

# Number of trailing encoder output lines kept for failure reports.
OUTPUT_TAIL_LINES = 30


# --- Job States ---
# Lifecycle of an EncodeJob. `pending` is initial; the last three are terminal.

JOB_STATUS_PENDING = "pending"
JOB_STATUS_RUNNING = "running"
JOB_STATUS_SUCCEEDED = "succeeded"
JOB_STATUS_FAILED = "failed"
JOB_STATUS_CANCELLED = "cancelled"
