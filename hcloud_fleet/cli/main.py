"""
Main CLI entry point for Hetzner Cloud Fleet.

Provides the "hcloud-fleet costs" and "hcloud-fleet snapshot-all" commands.
"""

import sys
from pathlib import Path
from typing import Optional

import click
from rich.console import Console

from hcloud_fleet import __version__
from hcloud_fleet.api.client import HCloudClient
from hcloud_fleet.cli.report import render_cost_report, render_snapshot_header, render_snapshot_report
from hcloud_fleet.core.config import Config, ConfigManager
from hcloud_fleet.core.exceptions import (
    ConfigurationError, FetchError, HCloudFleetError, UserCancelled, ValidationError,
)
from hcloud_fleet.core.logging import setup_logging
from hcloud_fleet.services.operations import FleetOperations
from hcloud_fleet.services.orchestrator import SnapshotOptions, SnapshotOrchestrator, default_prefix


console = Console()

# Exit codes for different error types
EXIT_SUCCESS = 0
EXIT_GENERAL_ERROR = 1
EXIT_CONFIG_ERROR = 2
EXIT_FETCH_ERROR = 4
EXIT_USER_CANCELLED = 130


def _create_client(config: Config) -> HCloudClient:
    return HCloudClient(config.token, base_url=config.api_url, timeout=config.timeout)


def _exit_on_error(error: BaseException) -> None:
    """Print an error and exit with the matching code."""
    if isinstance(error, (KeyboardInterrupt, UserCancelled)):
        console.print("\n⚠️  [yellow]Operation cancelled by user[/yellow]")
        sys.exit(EXIT_USER_CANCELLED)
    if isinstance(error, (ConfigurationError, ValidationError)):
        console.print(f"❌ [red]Configuration error: {error}[/red]")
        sys.exit(EXIT_CONFIG_ERROR)
    if isinstance(error, FetchError):
        console.print(f"❌ [red]Fetch error: {error}[/red]")
        sys.exit(EXIT_FETCH_ERROR)
    if isinstance(error, HCloudFleetError):
        console.print(f"❌ [red]{error}[/red]")
        sys.exit(EXIT_GENERAL_ERROR)
    console.print(f"💥 [red]Unexpected error: {error}[/red]")
    console.print("[dim]Please report this issue with the full error message.[/dim]")
    sys.exit(EXIT_GENERAL_ERROR)


@click.group()
@click.option(
    "--env-file",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Load HCLOUD_TOKEN and friends from this .env file",
)
@click.option("--verbose", "-v", is_flag=True, help="Show debug logging on stderr")
@click.version_option(version=__version__)
@click.pass_context
def main(ctx: click.Context, env_file: Optional[Path] = None, verbose: bool = False) -> None:
    """
    Hetzner Cloud Fleet - cost forecast and fleet-wide snapshots.
    """
    setup_logging("DEBUG" if verbose else None)
    ctx.ensure_object(dict)
    ctx.obj['config_manager'] = ConfigManager(env_file)


@main.command()
@click.option("--gross", is_flag=True, help="Show GROSS prices (incl. VAT) instead of NET")
@click.option("--summary-only", is_flag=True, help="Skip the per-resource section")
@click.pass_context
def costs(ctx: click.Context, gross: bool = False, summary_only: bool = False) -> None:
    """Estimate the monthly cost of every resource in the project."""
    try:
        config = ctx.obj['config_manager'].load_config(price_tier="gross" if gross else None)

        with _create_client(config) as client:
            breakdown = FleetOperations(client, config).estimate_costs()

        render_cost_report(console, breakdown, details=not summary_only)
    except (Exception, KeyboardInterrupt) as e:
        _exit_on_error(e)


@main.command(name="snapshot-all")
@click.option("--wait", is_flag=True, help="Wait for each snapshot action to complete")
@click.option("--force", is_flag=True, help="Force snapshot even if server state is not ideal")
@click.option("--prefix", help="Description prefix (default: snapshot-YYYY-MM-DD-)")
@click.option("--dry-run", is_flag=True, help="Print what would be done without calling the API")
@click.option("--max-workers", type=click.IntRange(min=1), help="Concurrent snapshot submissions")
@click.option("--poll-interval", type=click.FloatRange(min=0), help="Seconds between status polls")
@click.option("--max-wait", type=click.FloatRange(min=0, min_open=True), help="Stop waiting on an action after this many seconds")
@click.option("--max-polls", type=click.IntRange(min=1), help="Stop waiting on an action after this many polls")
@click.pass_context
def snapshot_all(
    ctx: click.Context,
    wait: bool = False,
    force: bool = False,
    prefix: Optional[str] = None,
    dry_run: bool = False,
    max_workers: Optional[int] = None,
    poll_interval: Optional[float] = None,
    max_wait: Optional[float] = None,
    max_polls: Optional[int] = None,
) -> None:
    """Create a snapshot of every server in the project."""
    try:
        config = ctx.obj['config_manager'].load_config(
            max_workers=max_workers,
            poll_interval=poll_interval,
            max_wait=max_wait,
            max_polls=max_polls,
        )
        options = SnapshotOptions(
            description_prefix=prefix if prefix is not None else default_prefix(),
            force=force,
            dry_run=dry_run,
            wait=wait,
            poll_interval=config.poll_interval,
            max_wait=config.max_wait,
            max_polls=config.max_polls,
            max_workers=config.max_workers,
        )

        with _create_client(config) as client:
            operations = FleetOperations(client, config)

            console.print("🔍 Finding servers…")
            servers = operations.list_servers()
            if not servers:
                console.print("No servers found.")
                return

            render_snapshot_header(console, len(servers), options)
            outcomes = operations.snapshot_all_servers(options, servers=servers)

        summary = SnapshotOrchestrator.get_operation_summary(outcomes)
        render_snapshot_report(console, outcomes, summary)
    except (Exception, KeyboardInterrupt) as e:
        _exit_on_error(e)

    if summary['failed'] > 0:
        sys.exit(EXIT_GENERAL_ERROR)


if __name__ == "__main__":
    main()
