"""Run command - starts the daemon."""

import asyncio
import logging
import sys
from pathlib import Path

import click

from pworch.exceptions import PwOrchError
from pworch.orchestration import bootstrap

from .errors import exit_with_error

logger = logging.getLogger(__name__)


async def run_daemon(config_path: Path) -> int:
    orchestrator = await bootstrap(config_path)
    return await orchestrator.run()


@click.command()
@click.argument(
    'config_path',
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
def run(config_path: Path):
    """
    Run the daemon with CONFIG_PATH until a signal or a component failure.

    \b
    Exit codes:
      0   signal or clean shutdown
      1   startup or configuration failure
      N   exit code of the external component that failed
    """
    logger.info(f"Starting pworch daemon with {config_path}")

    try:
        code = asyncio.run(run_daemon(config_path))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        code = 0
    except (PwOrchError, FileNotFoundError) as e:
        logger.exception("Failed to start daemon")
        exit_with_error(e)
        return

    logger.info(f"Daemon exited with code {code}")
    sys.exit(code)
