"""Config commands."""

from pathlib import Path

import click

from pworch.devices import get_device
from pworch.exceptions import PwOrchError
from pworch.models import ButtonBinding, DialBinding, load_config

from .errors import exit_with_error


@click.group(name="config")
def config():
    """Configuration file commands."""
    pass


@config.command(name="validate")
@click.argument(
    'config_path',
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
def validate(config_path: Path):
    """Validate CONFIG_PATH against the schema and the device definition."""
    try:
        cfg = load_config(config_path)
        device = get_device(cfg.device)
    except PwOrchError as e:
        exit_with_error(e)
        return

    unknown = [
        label for label in cfg.bindings
        if device.button_by_label(label) is None and device.dial_by_label(label) is None
    ]
    buttons = sum(isinstance(b, ButtonBinding) for b in cfg.bindings.values())
    dials = sum(isinstance(b, DialBinding) for b in cfg.bindings.values())

    click.echo(f"Config OK: {config_path}")
    click.echo(f"  device:   {device.name}")
    click.echo(f"  bindings: {buttons} button(s), {dials} dial(s)")
    click.echo(f"  rules:    {len(cfg.pipewire.rules)}")
    click.echo(f"  plugins:  {len(cfg.pipewire.plugins)}")

    for label in unknown:
        click.echo(f"  warning: '{label}' is not a control on {device.name}", err=True)
