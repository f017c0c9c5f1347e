#!/usr/bin/env python3
"""CLI tool for IBKR auto-investing.

This script plans and executes buys that move an IBKR account toward its
target allocation, using the Client Portal gateway.

Usage:
    python scripts/auto_invest.py status --wait
    python scripts/auto_invest.py accounts --select U1234567
    python scripts/auto_invest.py allocations set VOO 60
    python scripts/auto_invest.py allocations set BND 40
    python scripts/auto_invest.py buffer 0.05
    python scripts/auto_invest.py analyze
    python scripts/auto_invest.py plan
    python scripts/auto_invest.py execute --yes
"""

import sys
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.table import Table
from rich.text import Text

# Add src to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root / "src"))

from autoinvest.api.autoinvest_api import AutoInvestAPI
from autoinvest.execution.base import ConversionStatus, OrderResultStatus
from autoinvest.portfolio.base import AutoInvestPlan
from autoinvest.utils.exceptions import AutoInvestError
from autoinvest.utils.logging import setup_logging


console = Console()


def build_api(config_file: Optional[str]) -> AutoInvestAPI:
    """Create the API from the configuration file."""
    api = AutoInvestAPI.from_config(config_file)
    setup_logging(api.settings.log_level)
    return api


def get_api(ctx: click.Context) -> AutoInvestAPI:
    if ctx.obj.get("api") is None:
        ctx.obj["api"] = build_api(ctx.obj.get("config_file"))
    return ctx.obj["api"]


def create_plan_table(plan: AutoInvestPlan) -> Table:
    """Create planned orders table.

    Args:
        plan: Auto-invest plan

    Returns:
        Rich Table with one row per planned order
    """
    table = Table(title="Auto-Invest Plan", show_header=True, header_style="bold magenta")
    table.add_column("#", justify="right")
    table.add_column("Symbol", style="cyan", no_wrap=True)
    table.add_column("Shares", justify="right")
    table.add_column("Price", justify="right")
    table.add_column("Est. Cost", justify="right")
    table.add_column("Reason")

    for order in plan.orders:
        table.add_row(
            str(order.priority),
            order.symbol,
            str(order.shares),
            f"${order.price_per_share:,.2f}",
            f"${order.estimated_cost:,.2f}",
            order.reason,
        )

    if plan.orders:
        table.add_row("", "", "", "", "", "", end_section=True)
        table.add_row(
            "",
            "TOTAL",
            "",
            "",
            f"${plan.total_estimated_cost:,.2f}",
            "",
            style="bold",
        )

    return table


def print_plan(plan: AutoInvestPlan) -> None:
    console.print(f"Available: [bold]${plan.total_available:,.2f}[/bold]")
    if plan.secondary_to_convert > 0:
        console.print(
            f"To convert first: {plan.secondary_to_convert:,.2f} "
            f"(rate {plan.exchange_rate:.4f})"
        )
    if plan.orders:
        console.print(create_plan_table(plan))
    console.print(f"[dim]{plan.summary}[/dim]")


@click.group()
@click.option("--config", "config_file", default=None, help="Path to YAML configuration file")
@click.pass_context
def cli(ctx: click.Context, config_file: Optional[str]):
    """IBKR Auto-Invest.

    Invest available cash toward target allocations through the Client
    Portal gateway.
    """
    ctx.ensure_object(dict)
    ctx.obj["config_file"] = config_file


@cli.command()
@click.option("--wait", "-w", is_flag=True, help="Wait for the gateway to come up first")
@click.option("--timeout", "-t", default=None, type=float, help="Wait timeout in seconds")
@click.pass_context
def status(ctx: click.Context, wait: bool, timeout: Optional[float]):
    """Show gateway and session status."""
    try:
        api = get_api(ctx)
        if wait and not api.wait_for_gateway(timeout=timeout):
            console.print("[bold red]Gateway did not come up.[/bold red]")
            sys.exit(1)

        auth = api.auth_status()

        table = Table(title="Gateway Status", show_header=True, header_style="bold magenta")
        table.add_column("Metric", style="cyan", no_wrap=True)
        table.add_column("Value")
        table.add_row("Gateway", api.client.base_url)
        table.add_row(
            "Authenticated",
            Text("yes" if auth.authenticated else "no", style="green" if auth.authenticated else "red"),
        )
        table.add_row("Connected", "yes" if auth.connected else "no")
        table.add_row("Competing", "yes" if auth.competing else "no")
        if auth.message:
            table.add_row("Message", auth.message)
        console.print(table)

    except AutoInvestError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        sys.exit(1)


@cli.command()
@click.option("--select", "select_id", default=None, help="Store this account as the default")
@click.pass_context
def accounts(ctx: click.Context, select_id: Optional[str]):
    """List brokerage accounts."""
    try:
        api = get_api(ctx)
        account_list = api.list_accounts()

        if select_id:
            if select_id not in account_list.accounts:
                console.print(f"[bold red]Error:[/bold red] Unknown account {select_id}")
                sys.exit(1)
            api.set_selected_account_id(select_id)
            console.print(f"[green]Selected account {select_id}[/green]")

        active = account_list.choose(api.get_selected_account_id())

        table = Table(title="Accounts", show_header=True, header_style="bold magenta")
        table.add_column("Account", style="cyan", no_wrap=True)
        table.add_column("Alias")
        table.add_column("Active", justify="center")
        for account_id in account_list.accounts:
            table.add_row(
                account_id,
                account_list.aliases.get(account_id, ""),
                "*" if account_id == active else "",
            )
        console.print(table)

    except AutoInvestError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        sys.exit(1)


@cli.command()
@click.option("--account", "-a", "account_id", default=None, help="Account id")
@click.pass_context
def analyze(ctx: click.Context, account_id: Optional[str]):
    """Compare holdings with target allocations."""
    try:
        api = get_api(ctx)
        analysis = api.analyze_portfolio(account_id)
        currency = analysis.quote_currency

        console.print(f"Total value: [bold]{analysis.total_value:,.2f} {currency}[/bold]")
        console.print(
            f"Cash: {analysis.quote_cash:,.2f} {currency}, "
            f"{analysis.secondary_cash:,.2f} {analysis.secondary_currency} "
            f"(rate {analysis.exchange_rate:.4f})"
        )

        table = Table(title="Allocation Analysis", show_header=True, header_style="bold magenta")
        table.add_column("Symbol", style="cyan", no_wrap=True)
        table.add_column("Shares", justify="right")
        table.add_column("Value", justify="right")
        table.add_column("Current %", justify="right")
        table.add_column("Target %", justify="right")
        table.add_column("Deviation", justify="right")
        table.add_column("To Buy", justify="right")

        df = analysis.to_dataframe()
        for symbol, row in df.iterrows():
            deviation_color = "yellow" if row["deviation_percent"] > 0 else "green"
            table.add_row(
                symbol,
                f"{row['current_shares']:g}",
                f"{row['current_value']:,.2f}",
                f"{row['current_percent']:.2f}%",
                f"{row['target_percent']:.2f}%",
                Text(f"{row['deviation_percent']:+.2f}%", style=deviation_color),
                str(int(row["shares_to_buy"])),
            )
        console.print(table)

    except AutoInvestError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        sys.exit(1)


@cli.command()
@click.option("--account", "-a", "account_id", default=None, help="Account id")
@click.pass_context
def plan(ctx: click.Context, account_id: Optional[str]):
    """Show the orders an auto-invest run would place."""
    try:
        api = get_api(ctx)
        print_plan(api.create_auto_invest_plan(account_id))
    except AutoInvestError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        sys.exit(1)


@cli.command()
@click.option("--account", "-a", "account_id", default=None, help="Account id")
@click.option("--yes", "-y", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
def execute(ctx: click.Context, account_id: Optional[str], yes: bool):
    """Convert currency and place the planned orders."""
    try:
        api = get_api(ctx)
        account_id = api.resolve_account_id(account_id)
        preview = api.create_auto_invest_plan(account_id)
        print_plan(preview)

        if not preview.orders and preview.secondary_to_convert <= api.settings.min_conversion_amount:
            return

        if not yes and not click.confirm(f"Place these orders in {account_id}?"):
            console.print("[yellow]Aborted.[/yellow]")
            return

        result = api.execute_auto_invest(account_id)

        if result.currency_conversion is not None:
            conversion = result.currency_conversion
            color = "green" if conversion.status == ConversionStatus.CONVERTED else "yellow"
            console.print(f"[{color}]Conversion: {conversion.message}[/{color}]")

        table = Table(title="Order Results", show_header=True, header_style="bold magenta")
        table.add_column("Symbol", style="cyan", no_wrap=True)
        table.add_column("Shares", justify="right")
        table.add_column("Status")
        table.add_column("Order Id")
        table.add_column("Message")
        colors = {
            OrderResultStatus.SUCCESS: "green",
            OrderResultStatus.SKIPPED: "yellow",
            OrderResultStatus.FAILED: "red",
        }
        for order_result in result.results:
            table.add_row(
                order_result.symbol,
                str(order_result.shares),
                Text(order_result.status.value, style=colors[order_result.status]),
                order_result.order_id or "",
                order_result.message,
            )
        console.print(table)

        console.print(
            f"Placed {result.orders_placed}, failed {result.orders_failed}, "
            f"invested ~${result.total_invested:,.2f}"
        )
        for error in result.errors:
            console.print(f"[red]- {error}[/red]")

        if not result.success:
            sys.exit(1)

    except AutoInvestError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        sys.exit(1)


@cli.group()
def allocations():
    """Manage target allocations."""
    pass


@allocations.command("show")
@click.pass_context
def allocations_show(ctx: click.Context):
    """Show target allocations."""
    try:
        api = get_api(ctx)
        items = api.get_allocations()
    except AutoInvestError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        sys.exit(1)

    table = Table(title="Target Allocations", show_header=True, header_style="bold magenta")
    table.add_column("Symbol", style="cyan", no_wrap=True)
    table.add_column("Target %", justify="right")
    table.add_column("Instrument Id", justify="right")
    for allocation in items:
        table.add_row(
            allocation.symbol,
            f"{allocation.target_percent:.2f}%",
            str(allocation.instrument_id or ""),
        )
    table.add_row("", "", "", end_section=True)
    table.add_row("TOTAL", f"{sum(a.target_percent for a in items):.2f}%", "", style="bold")
    console.print(table)
    console.print(f"[dim]Buffer: {api.get_buffer_percent():.2%}[/dim]")


@allocations.command("set")
@click.argument("symbol")
@click.argument("target_percent", type=float)
@click.pass_context
def allocations_set(ctx: click.Context, symbol: str, target_percent: float):
    """Add or update SYMBOL with TARGET_PERCENT (0-100]."""
    try:
        api = get_api(ctx)
        api.upsert_allocation(symbol, target_percent)
    except AutoInvestError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        sys.exit(1)
    console.print(f"[green]{symbol.upper()} set to {target_percent:g}%[/green]")


@allocations.command("remove")
@click.argument("symbol")
@click.pass_context
def allocations_remove(ctx: click.Context, symbol: str):
    """Remove SYMBOL from the target allocations."""
    try:
        api = get_api(ctx)
        api.remove_allocation(symbol)
    except AutoInvestError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        sys.exit(1)
    console.print(f"[green]{symbol.upper()} removed[/green]")


@cli.command()
@click.argument("percent", type=float, required=False)
@click.pass_context
def buffer(ctx: click.Context, percent: Optional[float]):
    """Show or set the safety buffer as a fraction (e.g., 0.05)."""
    try:
        api = get_api(ctx)
        if percent is not None:
            api.set_buffer_percent(percent)
        console.print(f"Buffer: [bold]{api.get_buffer_percent():.2%}[/bold]")
    except AutoInvestError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        sys.exit(1)


if __name__ == "__main__":
    cli(obj={})
