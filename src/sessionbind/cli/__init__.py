"""
sessionbind CLI.

    sessionbind [OPTIONS] PID

Runs until the login session named by XDG_SESSION_ID ends, then terminates PID.
"""

import sys

import click
import typer

from sessionbind.cli.main import EXIT_USAGE, register_commands

app = typer.Typer(
    help="Terminate a process when the login session ends",
    add_completion=False,
)

register_commands(app)


def main():
    """Console entry point: every command-line error exits 1 without output."""
    try:
        code = app(prog_name="sessionbind", standalone_mode=False)
    except (click.ClickException, click.exceptions.Abort):
        code = EXIT_USAGE
    sys.exit(code or 0)


if __name__ == "__main__":
    main()
