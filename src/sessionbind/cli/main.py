"""
The ``sessionbind PID`` command.
"""

import asyncio
from pathlib import Path
from typing import List, Optional

import typer
from dotenv import load_dotenv
from pydantic import ValidationError

from sessionbind.config import (
    DEFAULT_MAX_READY_ATTEMPTS,
    DEFAULT_POLL_TIMEOUT,
    DEFAULT_QUERY_TIMEOUT,
    DEFAULT_SESSIONS_DIR,
    SupervisorConfig,
)
from sessionbind.core.supervisor import LifecycleSupervisor
from sessionbind.errors import UsageError
from sessionbind.logger import get_logger, setup_logging

logger = get_logger(__name__)

EXIT_USAGE = 1


def configure_logging(verbose: bool = False, log_file: Optional[Path] = None):
    """Silent unless asked: stderr only with --verbose, file only with --log-file."""
    setup_logging(level="DEBUG" if verbose else None, log_file=log_file)


def load_environment(env_file: Optional[Path]) -> Optional[Path]:
    """Load KEY=VALUE pairs from an env file. Existing variables win."""
    if env_file:
        load_dotenv(env_file, override=False)
    return env_file


def build_config(
    args: Optional[List[str]],
    session_id: Optional[str],
    **options,
) -> SupervisorConfig:
    """Validate the command line into a config. Raises UsageError."""
    args = args or []
    if len(args) != 1:
        raise UsageError(f"expected exactly one PID argument, got {len(args)}")

    try:
        target_pid = int(args[0])
    except ValueError:
        raise UsageError(f"PID must be an integer: {args[0]!r}") from None

    if not session_id:
        raise UsageError("no session id (set XDG_SESSION_ID or pass --session-id)")

    try:
        return SupervisorConfig(
            session_id=session_id, target_pid=target_pid, **options
        )
    except ValidationError as e:
        raise UsageError(str(e)) from e


def bind(
    args: Optional[List[str]] = typer.Argument(
        None, metavar="PID", help="Process to terminate when the session ends"
    ),
    env_file: Optional[Path] = typer.Option(
        None,
        "--env-file",
        help="Read environment variables from this file first",
        is_eager=True,
        callback=load_environment,
    ),
    session_id: Optional[str] = typer.Option(
        None, "--session-id", envvar="XDG_SESSION_ID", help="Session to watch"
    ),
    poll_timeout: float = typer.Option(
        DEFAULT_POLL_TIMEOUT,
        "--poll-timeout",
        envvar="SESSIONBIND_POLL_TIMEOUT",
        help="Seconds to wait per readiness round",
    ),
    max_ready_attempts: int = typer.Option(
        DEFAULT_MAX_READY_ATTEMPTS,
        "--max-ready-attempts",
        envvar="SESSIONBIND_MAX_READY_ATTEMPTS",
        help="Readiness rounds before giving up (0 = forever)",
    ),
    query_timeout: float = typer.Option(
        DEFAULT_QUERY_TIMEOUT,
        "--query-timeout",
        envvar="SESSIONBIND_QUERY_TIMEOUT",
        help="Seconds before a session query is abandoned",
    ),
    sessions_dir: Path = typer.Option(
        DEFAULT_SESSIONS_DIR,
        "--sessions-dir",
        envvar="SESSIONBIND_SESSIONS_DIR",
        help="Directory holding per-session state files",
    ),
    signal_name: str = typer.Option(
        "TERM", "--signal", "-s", help="Signal sent to PID when the session ends"
    ),
    log_file: Optional[Path] = typer.Option(
        None, "--log-file", help="Write a debug log to this file"
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Log to stderr (DEBUG level)"
    ),
):
    """
    Terminate PID when the current login session ends.
    """
    configure_logging(verbose, log_file)

    try:
        config = build_config(
            args,
            session_id,
            poll_timeout=poll_timeout,
            max_ready_attempts=max_ready_attempts,
            query_timeout=query_timeout,
            sessions_dir=sessions_dir,
            target_signal=signal_name,
        )
    except UsageError as e:
        logger.error(f"Usage error: {e}")
        raise typer.Exit(code=EXIT_USAGE)

    supervisor = LifecycleSupervisor(config)
    code = asyncio.run(supervisor.run())
    raise typer.Exit(code=code)


def register_commands(app: typer.Typer):
    """Register the top-level command on the app."""
    # "-5" must reach build_config as a PID, not fail as an unknown option.
    app.command(context_settings={"ignore_unknown_options": True})(bind)
