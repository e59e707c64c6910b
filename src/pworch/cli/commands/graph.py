"""Audio graph commands."""

import asyncio

import click

from pworch.exceptions import PwOrchError
from pworch.graph import dump_once

from .errors import exit_with_error


@click.group(name="graph")
def graph_group():
    """Audio graph commands."""
    pass


@graph_group.command(name="dump")
def dump():
    """Take one graph snapshot and print its nodes and links."""
    try:
        graph = asyncio.run(dump_once())
    except PwOrchError as e:
        exit_with_error(e)
        return

    click.echo("Nodes:\n")
    for node in graph.nodes:
        click.echo(f"  [{node.id}] {node.name} ({node.description})")

    click.echo("\nLinks:\n")
    for entry in graph.forward.values():
        for dest_node, dest_port in entry.links:
            src = f"{entry.node.name if entry.node else '?'}:{entry.port.name if entry.port else '?'}"
            dest = f"{dest_node.name if dest_node else '?'}:{dest_port.name if dest_port else '?'}"
            click.echo(f"  {src} -> {dest}")
