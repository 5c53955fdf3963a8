"""Command-line interface for fleetwatch."""

import json
import logging
import sys
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.table import Table

from fleetwatch import __version__
from fleetwatch.collectors import SSHCollector
from fleetwatch.config import Config, ConfigError, create_example_config
from fleetwatch.directory import ConfigResolver
from fleetwatch.display import ConsoleRenderer, JSONRenderer
from fleetwatch.monitor import PollScheduler
from fleetwatch.session import SessionPool

logger = logging.getLogger(__name__)

console = Console()

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR"]


def setup_logging(level: str) -> None:
    """Configure logging."""
    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def load_config(config_path: Optional[str]) -> Config:
    """Load the configuration or exit.

    A missing file or an empty host list exits with status 0; an unreadable
    or invalid file exits with status 1 before any host is contacted.
    """
    if config_path:
        path = Path(config_path).expanduser()
        if not path.exists():
            console.print(f"[yellow]Configuration file not found: {path}[/]")
            sys.exit(0)
    else:
        path = Config.find()
        if path is None:
            console.print("[yellow]No configuration file found.[/]")
            console.print("Create one with: [cyan]fleetwatch init[/]")
            sys.exit(0)

    try:
        cfg = Config.from_file(path)
    except ConfigError as e:
        logger.error(f"Invalid configuration: {e}")
        sys.exit(1)

    if not cfg.hosts:
        console.print("[yellow]No hosts configured, nothing to monitor.[/]")
        sys.exit(0)

    return cfg


config_option = click.option(
    "-c", "-i", "--config", "config_path",
    type=click.Path(dir_okay=False),
    help="Path to configuration file (JSON or YAML)",
)


@click.group()
@click.version_option(version=__version__)
def main() -> None:
    """fleetwatch - Monitor a fleet of remote hosts over SSH."""
    pass


@main.command()
@config_option
@click.option(
    "--once",
    is_flag=True,
    help="Run a single sweep and exit",
)
@click.option(
    "--json", "output_json",
    is_flag=True,
    help="Output one JSON document per host",
)
@click.option(
    "--log-level",
    default=None,
    type=click.Choice(LOG_LEVELS),
    help="Logging level (default: from config, else WARNING)",
)
def watch(
    config_path: Optional[str],
    once: bool,
    output_json: bool,
    log_level: Optional[str],
) -> None:
    """Connect to all configured hosts and display their metrics."""
    setup_logging(log_level or "WARNING")

    cfg = load_config(config_path)
    if log_level is None:
        logging.getLogger().setLevel(cfg.log_level.upper())

    pool = SessionPool.from_config(cfg)
    with pool:
        handles = pool.open(cfg.hosts)
        if not handles:
            logger.warning("None of the configured hosts could be reached")

        if output_json:
            renderer = JSONRenderer()
        else:
            renderer = ConsoleRenderer(console, clear=not once)

        scheduler = PollScheduler(
            handles,
            collector=SSHCollector(pool),
            renderer=renderer,
            interval=cfg.interval,
        )

        if once:
            scheduler.sweep()
        else:
            if not output_json:
                console.print(f"[dim]Watching {len(handles)} hosts (interval: {cfg.interval}s, Ctrl+C to stop)[/]")
            scheduler.run()
            if not output_json:
                console.print("\n[dim]Stopped watching.[/]")


@main.command()
@click.argument("name")
@config_option
@click.option("--json", "output_json", is_flag=True, help="Output JSON")
def resolve(name: str, config_path: Optional[str], output_json: bool) -> None:
    """Show the effective connection settings for a host name."""
    setup_logging("WARNING")

    cfg = load_config(config_path)
    effective = ConfigResolver(cfg.ssh_config).resolve(name)

    if output_json:
        click.echo(json.dumps(effective.to_dict(), indent=2))
        return

    table = Table(title=f"Effective config: {name}", show_header=False)
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    for key, value in effective.to_dict().items():
        table.add_row(key, str(value) if value else "[dim]-[/]")
    console.print(table)


@main.command()
@click.option(
    "-o", "--output",
    default="fleetwatch.json",
    help="Output file path (.json, .yaml or .yml)",
)
@click.option(
    "--force", "-f",
    is_flag=True,
    help="Overwrite existing file",
)
def init(output: str, force: bool) -> None:
    """Create an example configuration file."""
    path = Path(output)

    if path.exists() and not force:
        console.print(f"[red]File already exists: {path}[/]")
        console.print("Use --force to overwrite")
        sys.exit(1)

    example = create_example_config()
    example.to_file(path)

    console.print(f"[green]Created example configuration: {path}[/]")
    console.print("Edit this file to add your hosts and credentials.")


if __name__ == "__main__":
    main()
