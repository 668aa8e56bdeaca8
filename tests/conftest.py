"""Shared test fixtures for tinythis.

The encoder is replaced by small Python scripts installed as `ffmpeg` in a
temporary directory. They understand nothing of ffmpeg's arguments except
that the last one is the output path, and print just enough of ffmpeg's
output (a `Duration:` line and `-progress` blocks) to drive progress.
"""

import json
import os
import shutil
import sys
import tempfile
import textwrap
import time
from pathlib import Path

import pytest

# Keep options, logs and failure reports of the test run out of the real home.
os.environ["TINYTHIS_HOME"] = tempfile.mkdtemp(prefix="tinythis-test-home-")

from tinythis.services.encoder_locator import EncoderLocator  # noqa: E402

STUB_PROLOGUE = """
import json
import sys
import time
from pathlib import Path

out = Path(sys.argv[-1])
with open(Path(__file__).with_name("calls.jsonl"), "a", encoding="utf-8") as log:
    log.write(json.dumps(sys.argv[1:]) + "\\n")
sys.stdout.write("Input #0, mov,mp4,m4a,3gp,3g2,mj2, from 'in.mp4':\\n")
sys.stdout.write("  Duration: 00:00:10.00, start: 0.000000, bitrate: 1000 kb/s\\n")
sys.stdout.flush()


def progress(seconds):
    sys.stdout.write(f"out_time_us={int(seconds * 1000000)}\\n")
    sys.stdout.write("progress=continue\\n")
    sys.stdout.flush()
"""

STUB_BODIES = {
    "succeed": """
for t in (2.5, 5.0, 7.5, 10.0):
    progress(t)
out.write_bytes(b"\\x00" * 4096)
sys.stdout.write("progress=end\\n")
""",
    "fail": """
progress(2.5)
out.write_bytes(b"\\x00" * 100)
sys.stdout.write("in.mp4: Invalid data found when processing input\\n")
sys.exit(1)
""",
    "empty": """
progress(10.0)
out.write_bytes(b"")
sys.stdout.write("progress=end\\n")
""",
    "sleep": """
progress(1.0)
out.write_bytes(b"\\x00" * 100)
time.sleep(60)
""",
    "stubborn": """
import signal
signal.signal(signal.SIGTERM, signal.SIG_IGN)
progress(1.0)
out.write_bytes(b"\\x00" * 100)
time.sleep(60)
""",
}


def write_stub_encoder(directory: Path, kind: str) -> Path:
    """Installs the `kind` stub as `ffmpeg` in `directory`."""
    directory.mkdir(parents=True, exist_ok=True)
    script = directory / "ffmpeg"
    source = f"#!{sys.executable}\n" + textwrap.dedent(STUB_PROLOGUE) + textwrap.dedent(STUB_BODIES[kind])
    script.write_text(source, encoding="utf-8")
    script.chmod(0o755)
    return script


def read_stub_calls(directory: Path) -> list:
    """Argument lists the stub in `directory` was called with, oldest first."""
    log = directory / "calls.jsonl"
    if not log.exists():
        return []
    return [json.loads(line) for line in log.read_text(encoding="utf-8").splitlines() if line]


def wait_until(condition, timeout: float = 15.0, interval: float = 0.05) -> bool:
    """Polls `condition` until it is true or `timeout` seconds have passed."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if condition():
            return True
        time.sleep(interval)
    return condition()


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test isolation."""
    dir_path = tempfile.mkdtemp()
    yield Path(dir_path)
    shutil.rmtree(dir_path, ignore_errors=True)


@pytest.fixture
def media_dir(temp_dir: Path) -> Path:
    """A directory with a few small input files."""
    directory = temp_dir / "media"
    directory.mkdir()
    (directory / "a.mp4").write_bytes(b"\x00" * 2048)
    (directory / "b.mov").write_bytes(b"\x00" * 1024)
    (directory / "c.MKV").write_bytes(b"\x00" * 10)
    (directory / "a.txt").write_text("not a video")
    return directory


@pytest.fixture
def stub_dir(temp_dir: Path) -> Path:
    return temp_dir / "bin"


@pytest.fixture
def make_locator(stub_dir: Path):
    """Factory: installs a stub encoder and returns a locator that finds only it."""

    def _make(kind: str = "succeed") -> EncoderLocator:
        write_stub_encoder(stub_dir, kind)
        return EncoderLocator(configured_dir=stub_dir, local_dirs=[], use_env=False, use_path=False)

    return _make


@pytest.fixture
def missing_locator(temp_dir: Path) -> EncoderLocator:
    """A locator that never finds an encoder."""
    return EncoderLocator(configured_dir=None, local_dirs=[temp_dir / "nowhere"], use_env=False, use_path=False)


@pytest.fixture
def stub_calls(stub_dir: Path):
    """Callable returning the argument lists the stub encoder received."""
    return lambda: read_stub_calls(stub_dir)


@pytest.fixture
def wait_for():
    return wait_until
