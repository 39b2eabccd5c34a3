"""Shared pytest fixtures and configuration."""

import subprocess
import sys
import textwrap
import uuid

import pytest
from loguru import logger

from sessionbind.config import SupervisorConfig
from sessionbind.errors import StreamEndedError

# Stand-in for inotifywait: polls the given paths and prints one line per change.
FAKE_WATCHER = textwrap.dedent(
    """
    import os, sys, time

    args = sys.argv[1:]
    max_events = 0
    if args and args[0] == "--max-events":
        max_events = int(args[1])
        args = args[2:]

    def stamp(path):
        try:
            st = os.stat(path)
        except FileNotFoundError:
            return None
        return (st.st_mtime_ns, st.st_size, st.st_ino)

    seen = {p: stamp(p) for p in args}
    emitted = 0
    while True:
        time.sleep(0.01)
        for p in args:
            s = stamp(p)
            if s != seen[p]:
                seen[p] = s
                print(p, flush=True)
                emitted += 1
                if max_events and emitted >= max_events:
                    sys.exit(0)
    """
)

# Stand-in for loginctl: prints the session's state file, fails if it is missing.
FAKE_QUERY = textwrap.dedent(
    """
    import pathlib, sys

    state_file = pathlib.Path(sys.argv[1]) / sys.argv[2]
    if not state_file.exists():
        sys.exit(1)
    sys.stdout.write(state_file.read_text())
    """
)


@pytest.fixture
def unique_id():
    """Generate a unique session id."""
    return f"s{uuid.uuid4().hex[:8]}"


@pytest.fixture
def sessions_dir(tmp_path):
    path = tmp_path / "sessions"
    path.mkdir()
    return path


@pytest.fixture
def artifact_dir(tmp_path):
    path = tmp_path / "tmp"
    path.mkdir()
    return path


@pytest.fixture
def fake_watcher_script(tmp_path):
    path = tmp_path / "fake_watcher.py"
    path.write_text(FAKE_WATCHER)
    return path


@pytest.fixture
def fake_query_script(tmp_path):
    path = tmp_path / "fake_query.py"
    path.write_text(FAKE_QUERY)
    return path


@pytest.fixture
def write_state(sessions_dir):
    """Replace a session's state file the way logind does (write, then rename)."""

    def _write(session_id: str, state: str):
        tmp = sessions_dir / f".{session_id}.tmp"
        tmp.write_text(f"State={state}\n")
        tmp.replace(sessions_dir / session_id)

    return _write


@pytest.fixture
def target_process():
    """A real process for the supervisor to terminate."""
    proc = subprocess.Popen([sys.executable, "-c", "import time; time.sleep(60)"])
    yield proc
    if proc.poll() is None:
        proc.kill()
        proc.wait()


@pytest.fixture
def make_config(unique_id, sessions_dir, artifact_dir, fake_watcher_script, fake_query_script):
    """Build a SupervisorConfig wired to the fake watcher and query commands."""

    def _make(target_pid: int, **overrides) -> SupervisorConfig:
        values = {
            "session_id": unique_id,
            "target_pid": target_pid,
            "poll_timeout": 0.05,
            "max_ready_attempts": 100,
            "sessions_dir": sessions_dir,
            "watch_command": [sys.executable, "-u", str(fake_watcher_script)],
            "query_command": [sys.executable, str(fake_query_script), str(sessions_dir)],
            "query_timeout": 5.0,
            "temp_dir": artifact_dir,
            "reap_timeout": 2.0,
        }
        values.update(overrides)
        return SupervisorConfig(**values)

    return _make


class FakeWatcher:
    """In-memory watcher: hands out queued events, then reports end of stream.

    ``None`` entries in ``events`` simulate a read timeout.
    """

    def __init__(self, events=()):
        self.events = list(events)
        self.started_with = None
        self.reads = 0
        self.reaped = False

    async def start(self, paths):
        self.started_with = list(paths)

    async def next_event(self, timeout=None):
        self.reads += 1
        if not self.events:
            raise StreamEndedError("fake stream ended")
        return self.events.pop(0)

    async def reap(self, timeout):
        self.reaped = True
        return 0


class FakeOracle:
    """Returns queued answers from ``is_active`` and records every call."""

    def __init__(self, answers):
        self.answers = list(answers)
        self.calls = []

    async def is_active(self, session_id):
        self.calls.append(session_id)
        return self.answers.pop(0) if self.answers else False


@pytest.fixture
def fake_watcher_cls():
    return FakeWatcher


@pytest.fixture
def fake_oracle_cls():
    return FakeOracle


@pytest.fixture
def log_messages():
    """Collect sessionbind log messages for the duration of a test."""
    messages = []
    logger.enable("sessionbind")
    sink_id = logger.add(messages.append, level="DEBUG", format="{message}")
    yield messages
    logger.remove(sink_id)
    logger.disable("sessionbind")
