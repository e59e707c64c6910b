"""Error display shared by CLI commands."""

import logging
import sys

import click

from pworch.exceptions import format_error_for_display

logger = logging.getLogger(__name__)


def exit_with_error(error: Exception, code: int = 1) -> None:
    """Show a clean error banner (no traceback) and exit."""
    user_message, recovery_hint = format_error_for_display(error)

    click.echo("\n" + "="*70, err=True)
    click.echo(f"ERROR: {user_message}", err=True)
    click.echo("="*70, err=True)

    if recovery_hint:
        click.echo(f"\n{recovery_hint}", err=True)

    click.echo("\nFor logging options, run: pworch --help", err=True)
    sys.exit(code)
