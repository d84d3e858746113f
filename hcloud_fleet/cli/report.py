"""Rich rendering of cost breakdowns and snapshot outcomes."""

from decimal import ROUND_HALF_UP, Decimal
from typing import List, Optional

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from hcloud_fleet.core.enums import ResourceKind
from hcloud_fleet.services.models import (
    ActionStatus, CostBreakdown, KindCost, OutcomeStatus, SnapshotOutcome,
)
from hcloud_fleet.services.orchestrator import SnapshotOptions


CENT = Decimal('0.01')


def format_amount(amount: Decimal) -> str:
    """Round to cents for display only."""
    return f"{amount.quantize(CENT, rounding=ROUND_HALF_UP):.2f}"


def format_quantity(quantity: Decimal) -> str:
    normalized = quantity.normalize()
    return f"{normalized:f}"


def _kind_note(kind_cost: KindCost, breakdown: CostBreakdown) -> str:
    if kind_cost.kind in (ResourceKind.VOLUME, ResourceKind.SNAPSHOT):
        rate = format_quantity(kind_cost.unit_rate) if kind_cost.unit_rate is not None else 'n/a'
        return f"Total size: {format_quantity(kind_cost.quantity_total)} GB @ {rate}/GB"
    if kind_cost.kind is ResourceKind.PRIMARY_IP:
        counts = breakdown.ip_family_counts
        return f"{counts.get('ipv4', 0)} IPv4, {counts.get('ipv6', 0)} IPv6"
    if kind_cost.kind is ResourceKind.FLOATING_IP:
        return str(kind_cost.count)
    return ''


def _hidden(kind_cost: KindCost) -> bool:
    # Legacy floating IPs only show up when the account has any
    return kind_cost.kind is ResourceKind.FLOATING_IP and kind_cost.count == 0


def render_cost_report(console: Console, breakdown: CostBreakdown, details: bool = True) -> None:
    """Print the monthly cost estimate.

    Args:
        console: Rich console for output
        breakdown: Aggregated costs
        details: Also print the per-resource section
    """
    symbol = breakdown.currency_symbol

    console.print()
    console.print(f"💰 [bold]Hetzner Cloud Monthly Cost Estimate ({breakdown.tier.label})[/bold]")

    table = Table(show_header=False, box=None, pad_edge=False)
    table.add_column("Kind")
    table.add_column("Amount", justify="right")
    table.add_column("Note", style="dim")

    for kind_cost in breakdown.kinds:
        if _hidden(kind_cost):
            continue
        table.add_row(
            f"{kind_cost.kind.label}:",
            f"{format_amount(kind_cost.total)} {symbol}",
            _kind_note(kind_cost, breakdown),
        )
        if kind_cost.kind is ResourceKind.SERVER:
            table.add_row("  Backups (20%):", f"{format_amount(breakdown.backups_total)} {symbol}", "")

    table.add_section()
    table.add_row("[bold]TOTAL:[/bold]", f"[bold]{format_amount(breakdown.grand_total)} {symbol}[/bold]", "")
    console.print(table)

    missing = breakdown.missing_prices()
    if missing:
        console.print(
            f"⚠️  [yellow]{len(missing)} resource(s) had no catalog price and were counted as 0 {symbol}[/yellow]"
        )

    if details:
        render_cost_details(console, breakdown)


def render_cost_details(console: Console, breakdown: CostBreakdown) -> None:
    """Print one line per resource instance, grouped by kind."""
    symbol = breakdown.currency_symbol

    console.print()
    console.print("[bold]Per-Resource Costs[/bold]")
    console.print("━" * 18)

    for kind_cost in breakdown.kinds:
        if _hidden(kind_cost):
            continue
        console.print()
        console.print(f"{kind_cost.kind.label} ({kind_cost.count}):")
        if not kind_cost.items:
            console.print("  (none)")
            continue
        for item in kind_cost.items:
            line = f"  - {escape(item.name)} ({escape(item.detail)}): {format_amount(item.amount)} {symbol}"
            if item.surcharge:
                line += f" (backup +{format_amount(item.surcharge)} {symbol})"
            console.print(line)


def _outcome_line(outcome: SnapshotOutcome) -> List[str]:
    server = outcome.server
    name = escape(server.display_name)
    description = escape(outcome.description)

    if outcome.status is OutcomeStatus.DRY_RUN:
        return [f"- [dim]\\[dry-run][/dim] Would snapshot {name} (id {server.resource_id}) with description '{description}'"]

    if outcome.status is OutcomeStatus.FAILED:
        lines = [f"- {name} (id {server.resource_id}): [red]failed ({outcome.http_status})[/red]"]
        if outcome.error_message:
            lines.append(f"    Error: {escape(outcome.error_message)}")
        if outcome.hint:
            lines.append(f"    [yellow]Hint: {escape(outcome.hint)}[/yellow]")
        return lines

    if outcome.status is OutcomeStatus.UNKNOWN_FAILURE:
        lines = [f"- {name} (id {server.resource_id}): [red]failed[/red]"]
        lines.append(f"    Error: {escape(outcome.error_message or 'Unexpected response')}")
        return lines

    action = outcome.action
    action_id = action.action_id if action is not None else 'n/a'
    lines = [f"- {name} (id {server.resource_id}): [green]ok[/green] (action {action_id}, image {outcome.image_id or 'n/a'})"]
    if action is not None and action.polls:
        lines.append(f"    -> {_final_status_text(action.status, action.timed_out)}")
        if action.error_message:
            lines.append(f"    Error: {escape(action.error_message)}")
    return lines


def _final_status_text(status: ActionStatus, timed_out: bool) -> str:
    if timed_out:
        return f"[yellow]still {status.value} (stopped waiting)[/yellow]"
    if status is ActionStatus.SUCCESS:
        return "[green]completed[/green]"
    if status is ActionStatus.ERROR:
        return "[red]error[/red]"
    return f"[yellow]{status.value}[/yellow]"


def render_snapshot_header(console: Console, server_count: int, options: SnapshotOptions) -> None:
    console.print(f"Servers: {server_count}")
    flags = ''
    if options.force:
        flags += ' (force)'
    if options.wait:
        flags += ' and waiting'
    console.print()
    console.print(f"📸 Triggering snapshots{flags} with prefix '{escape(options.description_prefix)}'")


def render_snapshot_report(console: Console, outcomes: List[SnapshotOutcome], summary: Optional[dict] = None) -> None:
    """Print one outcome line per server, then a summary."""
    for outcome in outcomes:
        for line in _outcome_line(outcome):
            console.print(line)

    if summary is None:
        return

    console.print()
    if summary['dry_run']:
        console.print(f"Done. {summary['dry_run']} snapshot(s) would be created.")
    elif summary['failed']:
        console.print(
            f"❌ [red]Done with errors: {summary['submitted']} submitted, {summary['failed']} failed.[/red]"
        )
    else:
        console.print(f"✅ [green]Done. {summary['submitted']} snapshot(s) submitted.[/green]")
