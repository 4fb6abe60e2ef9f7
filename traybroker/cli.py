#!/usr/bin/env python3
"""
Tray Broker CLI

Command-line interface for the StatusNotifier watcher/host broker.

Usage:
    traybroker start          # Run the broker, JSON frames on stdout
    traybroker items          # Show what a running watcher has registered
    traybroker config         # Print the effective configuration

Logs go to stderr so stdout stays a clean frame stream.
"""

import asyncio
import json
import logging
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from .broker import run_broker
from .bus import PROPERTIES_INTERFACE, WATCHER_INTERFACE, WATCHER_PATH, call, connect
from .config import EXAMPLE_CONFIG, load_config
from .exceptions import TrayError

console = Console(stderr=True)


def setup_logging(level: str = 'INFO', verbose: bool = False):
    """Configure logging with rich output on stderr."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else getattr(logging, level.upper(), logging.INFO),
        format="%(message)s",
        handlers=[RichHandler(console=console, show_time=False, show_path=False)]
    )


@click.group()
@click.option('-v', '--verbose', is_flag=True, help='Enable verbose output')
@click.option('--config', 'config_path', type=click.Path(dir_okay=False), help='JSON config file')
@click.option('--bus-address', default=None, help='Bus address (default: session bus)')
@click.option('--icon-dir', type=click.Path(file_okay=False), default=None, help='Icon cache directory')
@click.pass_context
def cli(ctx, verbose, config_path, bus_address, icon_dir):
    """Tray Broker - StatusNotifierItem watcher and host."""
    config = load_config(Path(config_path) if config_path else None)
    if bus_address:
        config.bus_address = bus_address
    if icon_dir:
        config.icon_dir = Path(icon_dir)

    setup_logging(config.log_level, verbose)
    ctx.ensure_object(dict)
    ctx.obj['config'] = config


@cli.command()
@click.pass_context
def start(ctx):
    """Run the broker until interrupted."""
    config = ctx.obj['config']

    try:
        asyncio.run(run_broker(config))
    except TrayError as e:
        console.print(f"[red]✗ {e}[/red]")
        raise SystemExit(1)


@cli.command()
@click.pass_context
def items(ctx):
    """Show the state of a running watcher."""
    config = ctx.obj['config']

    async def run():
        bus = await connect(config.bus_address)
        try:
            [properties] = await call(
                bus, config.watcher_name, WATCHER_PATH, PROPERTIES_INTERFACE,
                'GetAll', 's', [WATCHER_INTERFACE],
            )
        finally:
            bus.disconnect()
        return {name: variant.value for name, variant in properties.items()}

    try:
        properties = asyncio.run(run())
    except TrayError as e:
        console.print(f"[red]✗ {e}[/red]")
        raise SystemExit(1)

    host = properties.get('IsStatusNotifierHostRegistered', False)
    console.print(Panel.fit(
        f"[bold]Watcher[/bold] [cyan]{config.watcher_name}[/cyan]\n\n"
        f"Protocol version: [yellow]{properties.get('ProtocolVersion', '?')}[/yellow]\n"
        f"Host registered: [{'green' if host else 'red'}]{'Yes' if host else 'No'}[/]",
        title="Watcher Status"
    ))

    registered = properties.get('RegisteredStatusNotifierItems', [])
    if not registered:
        console.print("[yellow]No registered items[/yellow]")
        return

    table = Table(title="Registered Items")
    table.add_column("#", justify="right")
    table.add_column("Service", style="cyan")
    for index, service in enumerate(registered, 1):
        table.add_row(str(index), service)
    console.print(table)


@cli.command('config')
@click.option('--example', is_flag=True, help='Print an example config file instead')
@click.pass_context
def show_config(ctx, example):
    """Print the effective configuration as JSON."""
    if example:
        console.print("Example configuration file (config.json):")
        click.echo(EXAMPLE_CONFIG.strip())
        return
    click.echo(json.dumps(ctx.obj['config'].to_dict(), indent=2))


if __name__ == '__main__':
    cli()
