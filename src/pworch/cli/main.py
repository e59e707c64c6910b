"""Main CLI entry point."""

import logging
import logging.handlers
import os
import sys
from pathlib import Path
from typing import Optional

import click

from pworch import __version__

from .commands import config, graph_group, midi_group, run

logger = logging.getLogger(__name__)

DEBUG_ENV_VAR = "PW_ORCH_DEBUG"
CONSOLE_HANDLER_NAME = "pworch-console"


def debug_from_env() -> bool:
    return os.environ.get(DEBUG_ENV_VAR, "").lower() in ("1", "true")


def setup_logging(verbose: int, debug: bool, log_file: Optional[Path], log_level: str) -> None:
    """
    Configure logging for the application.

    Args:
        verbose: Verbosity count (0 = WARNING, 1 = INFO, 2+ = DEBUG)
        debug: If True, force DEBUG level
        log_file: Also log to this file, rotated (optional)
        log_level: Log level for file logging (DEBUG/INFO/WARNING/ERROR)
    """
    if debug or debug_from_env():
        level = logging.DEBUG
    elif verbose >= 2:
        level = logging.DEBUG
    elif verbose == 1:
        level = logging.INFO
    else:
        level = logging.WARNING

    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    # The daemon runs headless, so the console is the primary log sink
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.set_name(CONSOLE_HANDLER_NAME)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    for handler in list(root_logger.handlers):
        if handler.get_name() == CONSOLE_HANDLER_NAME:
            root_logger.removeHandler(handler)
    root_logger.addHandler(console_handler)
    root_level = level

    if log_file:
        file_level = logging.DEBUG if level == logging.DEBUG else getattr(logging, log_level.upper())
        log_file.parent.mkdir(parents=True, exist_ok=True)

        # Create rotating file handler (keeps last 5 files, max 10MB each)
        file_handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=10 * 1024 * 1024,  # 10MB
            backupCount=5
        )
        file_handler.setLevel(file_level)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)
        root_level = min(level, file_level)

    root_logger.setLevel(root_level)
    logger.info(f"Logging configured: level={logging.getLevelName(level)}, file={log_file}")


@click.group()
@click.version_option(version=__version__, prog_name="pworch")
@click.option(
    '-v', '--verbose',
    count=True,
    help='Increase verbosity (-v: INFO, -vv: DEBUG)'
)
@click.option(
    '--debug',
    is_flag=True,
    help=f'Enable debug logging (also enabled by {DEBUG_ENV_VAR}=1)'
)
@click.option(
    '--log-file',
    type=click.Path(path_type=Path),
    default=None,
    help='Also write logs to this file (rotated at 10MB)'
)
@click.option(
    '--log-level',
    type=click.Choice(['DEBUG', 'INFO', 'WARNING', 'ERROR'], case_sensitive=False),
    default='INFO',
    help='Log level for file logging (default: INFO)'
)
def cli(verbose: int, debug: bool, log_file: Optional[Path], log_level: str):
    """
    pworch - control-surface daemon for PipeWire setups.

    Turns button presses and dial moves on a MIDI controller into shell
    commands, audio-graph links, sequencer MIDI and plugin presets, and
    keeps the controller's LEDs in sync.

    \b
    Examples:
      # Run the daemon
      pworch -v run ~/.config/pworch/config.yaml

      # Check a config file
      pworch config validate config.yaml

      # Decode a captured amidi dump
      amidi -p hw:1,0,0 --dump | pworch midi decode

      # Show the current audio graph
      pworch graph dump
    """
    setup_logging(verbose, debug, log_file, log_level)


cli.add_command(run)
cli.add_command(config)
cli.add_command(midi_group)
cli.add_command(graph_group)

if __name__ == "__main__":
    cli()
