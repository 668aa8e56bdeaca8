"""
This module provides the EncoderLocator, which finds the FFmpeg executables
that tinythis drives.

Installing or updating FFmpeg is not tinythis' job. The rest of the
application only needs one fact from here: is an encoder available, and where.
"""
import os
import shutil
import subprocess
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Optional

from loguru import logger

from ..config.common import FFMPEG_ENV_VAR, MODULE_PATH


def _exe_name(name: str) -> str:
    return f"{name}.exe" if sys.platform == "win32" else name


@dataclass(frozen=True)
class EncoderBinaries:
    """
    Paths of the executables used for one run.

    Attributes:
        ffmpeg: The encoder executable.
        ffprobe: The probe executable next to it, if there is one. Only used
                 to estimate progress early; encoding works without it.
        source: Where the encoder was found ("env", "config", "local", "path").
    """

    ffmpeg: Path
    ffprobe: Optional[Path] = None
    source: str = "path"


class EncoderLocator:
    """
    Resolves the FFmpeg executable.

    The search order is:
    1. The `TINYTHIS_FFMPEG` environment variable (path to the executable).
    2. `paths.ffmpeg_dir` from `config.user.yaml`.
    3. The directory that contains the running tinythis executable ("local
       mode": an ffmpeg dropped next to tinythis is used without setup).
    4. The system PATH.
    """

    def __init__(
        self,
        configured_dir: Optional[Path] = MODULE_PATH,
        local_dirs: Optional[Iterable[Path]] = None,
        use_env: bool = True,
        use_path: bool = True,
    ):
        self.configured_dir = configured_dir
        self.local_dirs: List[Path] = list(local_dirs) if local_dirs is not None else self._default_local_dirs()
        self.use_env = use_env
        self.use_path = use_path

    @staticmethod
    def _default_local_dirs() -> List[Path]:
        dirs = []
        if getattr(sys, "frozen", False):
            dirs.append(Path(sys.executable).resolve().parent)
        if sys.argv and sys.argv[0]:
            dirs.append(Path(sys.argv[0]).resolve().parent)
        return dirs

    @staticmethod
    def _usable(path: Path) -> bool:
        return path.is_file() and os.access(path, os.X_OK)

    def _with_probe(self, ffmpeg_path: Path, source: str) -> EncoderBinaries:
        probe = ffmpeg_path.with_name(_exe_name("ffprobe"))
        if not self._usable(probe):
            found = shutil.which(_exe_name("ffprobe")) if self.use_path else None
            probe = Path(found) if found else None
        return EncoderBinaries(ffmpeg=ffmpeg_path, ffprobe=probe, source=source)

    def locate(self) -> Optional[EncoderBinaries]:
        """
        Returns the binaries to use, or None when no ffmpeg can be found.

        The lookup is repeated on every call so that an ffmpeg installed while
        an interactive session is open is picked up by the next run.
        """
        ffmpeg_name = _exe_name("ffmpeg")

        if self.use_env:
            env_value = os.environ.get(FFMPEG_ENV_VAR)
            if env_value:
                env_path = Path(env_value).expanduser()
                if self._usable(env_path):
                    return self._with_probe(env_path, "env")
                logger.warning(f"{FFMPEG_ENV_VAR} is set to '{env_value}', which is not an executable file. Ignoring it.")

        if self.configured_dir:
            configured = Path(self.configured_dir) / ffmpeg_name
            if self._usable(configured):
                return self._with_probe(configured, "config")
            logger.warning(f"`ffmpeg_dir` is configured, but '{ffmpeg_name}' was not found in '{self.configured_dir}'.")

        for local_dir in self.local_dirs:
            local = local_dir / ffmpeg_name
            if self._usable(local):
                logger.debug(f"Using ffmpeg next to tinythis: '{local}'")
                return self._with_probe(local, "local")

        if self.use_path:
            found = shutil.which(ffmpeg_name)
            if found:
                return self._with_probe(Path(found), "path")

        logger.debug("No ffmpeg executable found.")
        return None

    @staticmethod
    def verify(binaries: EncoderBinaries) -> Optional[str]:
        """
        Runs `ffmpeg -version` and returns the first line of its output.

        Returns None (and logs why) when the executable cannot be run.
        """
        try:
            result = subprocess.run(
                [str(binaries.ffmpeg), "-version"],
                check=True,
                capture_output=True,
                text=True,
                encoding="utf-8",
                errors="replace",
                timeout=30,
            )
        except subprocess.CalledProcessError as e:
            logger.error(f"ffmpeg version command failed (return code {e.returncode}):\n{e.stderr}")
            return None
        except (OSError, subprocess.TimeoutExpired) as e:
            logger.error(f"Could not run '{binaries.ffmpeg}': {e}")
            return None
        lines = result.stdout.splitlines()
        return lines[0] if lines else ""
