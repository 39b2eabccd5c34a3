"""
Unit tests for supervisor configuration.
"""

import signal
from pathlib import Path

import pytest
from pydantic import ValidationError

from sessionbind.config import (
    DEFAULT_MAX_READY_ATTEMPTS,
    DEFAULT_POLL_TIMEOUT,
    DEFAULT_SESSIONS_DIR,
    SupervisorConfig,
    parse_signal,
)


def test_defaults():
    config = SupervisorConfig(session_id="c1", target_pid=4242)

    assert config.poll_timeout == DEFAULT_POLL_TIMEOUT
    assert config.max_ready_attempts == DEFAULT_MAX_READY_ATTEMPTS
    assert config.sessions_dir == DEFAULT_SESSIONS_DIR
    assert config.watch_command[0] == "inotifywait"
    assert config.query_command[0] == "loginctl"
    assert config.active_states == ["active", "online"]
    assert config.target_signal == signal.SIGTERM


def test_session_state_path():
    config = SupervisorConfig(session_id="c1", target_pid=1, sessions_dir=Path("/run/s"))
    assert config.session_state_path == Path("/run/s/c1")


def test_watch_targets_order():
    config = SupervisorConfig(session_id="c1", target_pid=1, sessions_dir=Path("/run/s"))
    assert config.watch_targets(Path("/tmp/a")) == [Path("/run/s"), Path("/tmp/a")]


@pytest.mark.parametrize("pid", [0, -1])
def test_rejects_non_positive_pid(pid):
    with pytest.raises(ValidationError):
        SupervisorConfig(session_id="c1", target_pid=pid)


@pytest.mark.parametrize("session_id", ["", "../c1", "a/b", ".."])
def test_rejects_bad_session_id(session_id):
    with pytest.raises(ValidationError):
        SupervisorConfig(session_id=session_id, target_pid=1)


def test_rejects_zero_poll_timeout():
    with pytest.raises(ValidationError):
        SupervisorConfig(session_id="c1", target_pid=1, poll_timeout=0)


def test_is_frozen():
    config = SupervisorConfig(session_id="c1", target_pid=1)
    with pytest.raises(ValidationError):
        config.session_id = "c2"


def test_signal_by_name():
    config = SupervisorConfig(session_id="c1", target_pid=1, target_signal="KILL")
    assert config.target_signal == signal.SIGKILL


@pytest.mark.parametrize(
    "value,expected",
    [
        ("TERM", signal.SIGTERM),
        ("sigterm", signal.SIGTERM),
        ("SIGHUP", signal.SIGHUP),
        ("9", signal.SIGKILL),
        (15, signal.SIGTERM),
        (signal.SIGINT, signal.SIGINT),
    ],
)
def test_parse_signal(value, expected):
    assert parse_signal(value) == expected


def test_parse_signal_unknown():
    with pytest.raises(ValueError, match="Unknown signal"):
        parse_signal("NOPE")
