"""
Supervisor configuration.

Defaults target a systemd-logind machine with inotify-tools installed: the
session-tracking service keeps one state file per session under
``/run/systemd/sessions`` and ``loginctl`` reports the session state.
"""

import signal
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, PositiveInt, field_validator

DEFAULT_SESSIONS_DIR = Path("/run/systemd/sessions")
DEFAULT_POLL_TIMEOUT = 0.1  # seconds per readiness round
DEFAULT_MAX_READY_ATTEMPTS = 50  # 0 = retry forever
DEFAULT_QUERY_TIMEOUT = 5.0
DEFAULT_REAP_TIMEOUT = 1.0

# logind replaces state files by rename, so the directory is watched rather
# than the file itself; ATTRIB catches the readiness artifact being touched.
DEFAULT_WATCH_COMMAND = [
    "inotifywait",
    "--monitor",
    "--quiet",
    "--event",
    "attrib,close_write,moved_to,delete",
]
DEFAULT_QUERY_COMMAND = ["loginctl", "show-session", "--property=State"]
DEFAULT_ACTIVE_STATES = ["active", "online"]


def parse_signal(value) -> int:
    """Accept 15, "15", "TERM" or "SIGTERM" and return the signal number."""
    if isinstance(value, signal.Signals):
        return int(value)
    if isinstance(value, int):
        return int(signal.Signals(value))

    text = str(value).strip().upper()
    if text.isdigit():
        return int(signal.Signals(int(text)))
    if not text.startswith("SIG"):
        text = f"SIG{text}"
    try:
        return int(signal.Signals[text])
    except KeyError:
        raise ValueError(f"Unknown signal: {value}") from None


class SupervisorConfig(BaseModel):
    """Everything one supervisor run needs, fixed for its whole lifetime."""

    model_config = ConfigDict(frozen=True)

    session_id: str = Field(min_length=1)
    target_pid: PositiveInt
    poll_timeout: float = Field(default=DEFAULT_POLL_TIMEOUT, gt=0)
    max_ready_attempts: int = Field(default=DEFAULT_MAX_READY_ATTEMPTS, ge=0)
    sessions_dir: Path = DEFAULT_SESSIONS_DIR
    watch_command: list[str] = Field(
        default_factory=lambda: list(DEFAULT_WATCH_COMMAND), min_length=1
    )
    query_command: list[str] = Field(
        default_factory=lambda: list(DEFAULT_QUERY_COMMAND), min_length=1
    )
    active_states: list[str] = Field(
        default_factory=lambda: list(DEFAULT_ACTIVE_STATES), min_length=1
    )
    query_timeout: float = Field(default=DEFAULT_QUERY_TIMEOUT, gt=0)
    temp_dir: Optional[Path] = None
    target_signal: int = int(signal.SIGTERM)
    reap_timeout: float = Field(default=DEFAULT_REAP_TIMEOUT, ge=0)

    @field_validator("session_id")
    @classmethod
    def _no_path_separators(cls, v: str) -> str:
        if "/" in v or v in (".", ".."):
            raise ValueError("session id must be a plain name")
        return v

    @field_validator("target_signal", mode="before")
    @classmethod
    def _resolve_signal(cls, v):
        return parse_signal(v)

    @property
    def session_state_path(self) -> Path:
        """Per-session state file maintained by the session-tracking service."""
        return self.sessions_dir / self.session_id

    def watch_targets(self, artifact: Path) -> list[Path]:
        """Paths handed to the watch command: the state location, then the artifact."""
        return [self.sessions_dir, artifact]
