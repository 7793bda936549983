"""CLI entry point for the live product set rotator.

This module provides the command-line interface for running the rotation
loop against one shop account, with a live status view, a final run report
and exit codes that tell an operator stop apart from a terminal alert.
"""

import asyncio
import signal
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

import click
from rich.console import Console
from rich.live import Live
from rich.table import Table

from live_rotator import __version__
from live_rotator.engine import ControlLoop, ErrorPolicy
from live_rotator.gateway import AsyncHTTPClient, GatewayError, LiveGateway
from live_rotator.gateway.protocols import CatalogGateway
from live_rotator.models.config import ConfigManager, RotatorConfig
from live_rotator.models.data_models import (
    ErrorRecord,
    LoopPhase,
    LoopStatus,
    ProductSet,
    TerminalAlert,
)
from live_rotator.monitoring.logger import StructuredLogger
from live_rotator.runner.output import RunReportFormatter

STATUS_REFRESH_SECONDS = 0.5

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_ALERT = 2
EXIT_INTERRUPTED = 130  # Standard exit code for SIGINT

console = Console()


@dataclass
class RunOutcome:
    """What a finished run hands back to the CLI."""
    status: LoopStatus
    errors: List[ErrorRecord] = field(default_factory=list)
    interrupted: bool = False


@click.group()
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default="config/config.yaml",
    help="Path to configuration YAML file",
)
@click.option(
    "--log-level",
    "-l",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    help="Logging level (overrides config)",
)
@click.version_option(version=__version__, prog_name="live-rotator")
@click.pass_context
def cli(ctx: click.Context, config_path: Path, log_level: Optional[str]) -> None:
    """
    Live Rotator - Rotate product sets through a live shopping session.

    Examples:

        # Rotate niche 3 into account 42 every 90 seconds
        $ live-rotator run --account 42 --niche 3 --delay 90

        # Check whether the account is live right now
        $ live-rotator sessions --account 42

        # See which product sets will rotate
        $ live-rotator sets --niche 3

        # Empty the product list of the account's live session
        $ live-rotator clear --account 42
    """
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    ctx.obj["log_level"] = log_level.upper() if log_level else None


@cli.command()
@click.option("--account", "-a", type=int, help="Shop account id (overrides config)")
@click.option("--niche", "-n", type=int, help="Niche whose product sets rotate (overrides config)")
@click.option("--delay", "-d", type=float, help="Seconds between ticks (overrides config)")
@click.option(
    "--output",
    "-o",
    type=click.Path(path_type=Path),
    help="Run report JSON path (overrides config)",
)
@click.option(
    "--no-progress",
    is_flag=True,
    help="Disable the live status view (useful for CI/CD)",
)
@click.pass_context
def run(
    ctx: click.Context,
    account: Optional[int],
    niche: Optional[int],
    delay: Optional[float],
    output: Optional[Path],
    no_progress: bool,
) -> None:
    """Run the rotation loop until Ctrl-C or a terminal alert."""
    try:
        rotator_config = _load_config(ctx, {
            "account_id": account,
            "niche_id": niche,
            "delay_seconds": delay,
        })
        if rotator_config.account_id is None:
            raise ValueError("An account id is required (--account or LIVEROTATOR_ACCOUNT_ID)")

        output_path = output if output else rotator_config.report_path

        _display_config_summary(rotator_config, no_progress)

        outcome = asyncio.run(_run_rotation(rotator_config, no_progress))

        RunReportFormatter().save(outcome.status, outcome.errors, str(output_path))
        _display_results(outcome, output_path)

        if outcome.status.alert is not None:
            sys.exit(EXIT_ALERT)
        if outcome.interrupted:
            sys.exit(EXIT_INTERRUPTED)
        sys.exit(EXIT_OK)

    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted by user[/yellow]")
        sys.exit(EXIT_INTERRUPTED)
    except Exception as e:
        console.print(f"\n[red]Error:[/red] {e}", style="bold red")
        sys.exit(EXIT_FAILURE)


@cli.command()
@click.option("--account", "-a", type=int, help="Shop account id (overrides config)")
@click.pass_context
def sessions(ctx: click.Context, account: Optional[int]) -> None:
    """Show the live session currently open for an account."""
    try:
        rotator_config = _load_config(ctx, {"account_id": account})
        if rotator_config.account_id is None:
            raise ValueError("An account id is required (--account or LIVEROTATOR_ACCOUNT_ID)")

        session_ids = asyncio.run(_find_sessions(rotator_config))

        if session_ids:
            console.print(f"Account {rotator_config.account_id} is live: session [green]{session_ids[0]}[/green]")
        else:
            console.print(f"Account {rotator_config.account_id} has [yellow]no active session[/yellow]")
        sys.exit(EXIT_OK)

    except Exception as e:
        console.print(f"\n[red]Error:[/red] {e}", style="bold red")
        sys.exit(EXIT_FAILURE)


@cli.command(name="sets")
@click.option("--niche", "-n", type=int, help="Niche to list (overrides config)")
@click.pass_context
def list_sets(ctx: click.Context, niche: Optional[int]) -> None:
    """List product sets and whether each one will rotate."""
    try:
        rotator_config = _load_config(ctx, {"niche_id": niche})
        product_sets = asyncio.run(_list_product_sets(rotator_config))

        if not product_sets:
            console.print("[yellow]No product sets found[/yellow]")
            sys.exit(EXIT_OK)

        table = Table(title="Product Sets")
        table.add_column("#", justify="right", style="cyan")
        table.add_column("Id", justify="right")
        table.add_column("Name", style="green")
        table.add_column("Items", justify="right")
        table.add_column("Rotates")

        for position, product_set in enumerate(product_sets):
            table.add_row(
                str(position),
                str(product_set.id),
                product_set.name,
                str(len(product_set.items)),
                "[yellow]skipped (empty)[/yellow]" if product_set.is_empty else "yes",
            )

        console.print(table)
        sys.exit(EXIT_OK)

    except Exception as e:
        console.print(f"\n[red]Error:[/red] {e}", style="bold red")
        sys.exit(EXIT_FAILURE)


@cli.command()
@click.option("--account", "-a", type=int, help="Shop account id (overrides config)")
@click.pass_context
def clear(ctx: click.Context, account: Optional[int]) -> None:
    """Remove every product from the account's live session."""
    try:
        rotator_config = _load_config(ctx, {"account_id": account})
        if rotator_config.account_id is None:
            raise ValueError("An account id is required (--account or LIVEROTATOR_ACCOUNT_ID)")

        session_id = asyncio.run(_clear_session(rotator_config))

        if session_id:
            console.print(f"Cleared products from session [green]{session_id}[/green]")
        else:
            console.print(f"Account {rotator_config.account_id} has [yellow]no active session[/yellow]")
        sys.exit(EXIT_OK)

    except Exception as e:
        console.print(f"\n[red]Error:[/red] {e}", style="bold red")
        sys.exit(EXIT_FAILURE)


def _load_config(ctx: click.Context, overrides: Dict) -> RotatorConfig:
    """Load configuration with CLI overrides and require member credentials."""
    cli_overrides = dict(overrides)
    if ctx.obj.get("log_level"):
        cli_overrides["log_level"] = ctx.obj["log_level"]

    config_manager = ConfigManager(ctx.obj["config_path"])
    rotator_config = config_manager.load_config(cli_overrides)

    if not rotator_config.member_email or not rotator_config.member_password:
        raise ValueError(
            "Member credentials are required (LIVEROTATOR_EMAIL and LIVEROTATOR_PASSWORD)"
        )
    return rotator_config


def _create_http_client(config: RotatorConfig) -> AsyncHTTPClient:
    return AsyncHTTPClient(
        base_url=config.base_url,
        connect_timeout=config.connect_timeout,
        read_timeout=config.read_timeout,
        write_timeout=config.write_timeout,
        pool_timeout=config.pool_timeout
    )


def _create_gateway(
    http_client: AsyncHTTPClient,
    config: RotatorConfig,
    logger: StructuredLogger
) -> LiveGateway:
    return LiveGateway(
        http_client,
        email=config.member_email,
        password=config.member_password,
        validation_status_codes=config.validation_status_codes,
        auth_mismatch_status_codes=config.auth_mismatch_status_codes,
        auth_mismatch_marker=config.auth_mismatch_marker,
        logger=logger
    )


async def _find_sessions(config: RotatorConfig) -> List[str]:
    logger = StructuredLogger(level=config.log_level)
    async with _create_http_client(config) as http_client:
        gateway = _create_gateway(http_client, config, logger)
        return list(await gateway.find_active_sessions(config.account_id))


async def _list_product_sets(config: RotatorConfig) -> List[ProductSet]:
    logger = StructuredLogger(level=config.log_level)
    async with _create_http_client(config) as http_client:
        gateway = _create_gateway(http_client, config, logger)
        return await gateway.list_product_sets(config.niche_id)


async def _clear_session(config: RotatorConfig) -> Optional[str]:
    """Clear the active session's products; returns the session id, or None when not live."""
    logger = StructuredLogger(level=config.log_level)
    async with _create_http_client(config) as http_client:
        gateway = _create_gateway(http_client, config, logger)
        session_ids = await gateway.find_active_sessions(config.account_id)
        if not session_ids:
            return None
        await gateway.clear_products(config.account_id, session_ids[0])
        return session_ids[0]


async def _run_rotation(config: RotatorConfig, no_progress: bool) -> RunOutcome:
    """
    Start the control loop and keep it running until it stops.

    Ctrl-C requests a clean stop: the current wait is cut short and any
    in-flight call finishes before the loop exits. SIGHUP re-reads the
    product sets and rebuilds the rotation without stopping it.

    Args:
        config: Rotator configuration
        no_progress: Whether to disable the live status view

    Returns:
        Final status, error history and whether the operator interrupted
    """
    logger = StructuredLogger(level=config.log_level)

    async with _create_http_client(config) as http_client:
        gateway = _create_gateway(http_client, config, logger)
        product_sets = await gateway.list_product_sets(config.niche_id)

        control_loop = ControlLoop(
            session_gateway=gateway,
            application_gateway=gateway,
            policy=ErrorPolicy(config.escalation_threshold),
            logger=logger,
            delay_seconds=config.delay_seconds,
            on_alert=_display_alert
        )
        await control_loop.start(config.account_id, product_sets)

        outcome = RunOutcome(status=control_loop.status())

        reloads = set()

        def on_interrupt() -> None:
            outcome.interrupted = True
            control_loop.request_stop()

        def on_reload() -> None:
            task = asyncio.ensure_future(_reload_product_sets(control_loop, gateway, config.niche_id))
            reloads.add(task)
            task.add_done_callback(reloads.discard)

        event_loop = asyncio.get_running_loop()
        event_loop.add_signal_handler(signal.SIGINT, on_interrupt)
        event_loop.add_signal_handler(signal.SIGHUP, on_reload)
        try:
            if no_progress:
                console.print("[cyan]Rotating product sets... (Ctrl-C to stop)[/cyan]")
                outcome.status = await control_loop.wait_stopped()
            else:
                outcome.status = await _wait_with_status(control_loop)
        finally:
            event_loop.remove_signal_handler(signal.SIGINT)
            event_loop.remove_signal_handler(signal.SIGHUP)
            if reloads:
                await asyncio.gather(*reloads)

        outcome.errors = list(control_loop.state.errors) if control_loop.state else []
        return outcome


async def _reload_product_sets(
    control_loop: ControlLoop,
    catalog: CatalogGateway,
    niche_id: Optional[int]
) -> None:
    """Rebuild the running rotation from the catalog, reporting failures to the console."""
    try:
        count = await control_loop.reload_product_sets(catalog, niche_id)
    except GatewayError as e:
        console.print(f"\n[yellow]Product set reload failed:[/yellow] {e}")
        return
    console.print(f"\n[cyan]Reloaded product sets: {count} rotating[/cyan]")


async def _wait_with_status(control_loop: ControlLoop) -> LoopStatus:
    """Render the loop status until the loop stops."""
    waiter = asyncio.ensure_future(control_loop.wait_stopped())

    with Live(_status_table(control_loop.status()), console=console, refresh_per_second=4) as live:
        while not waiter.done():
            await asyncio.wait({waiter}, timeout=STATUS_REFRESH_SECONDS)
            live.update(_status_table(control_loop.status()))

    return waiter.result()


def _status_table(status: LoopStatus) -> Table:
    """Build the status panel shown while the loop runs."""
    phase_style = {
        LoopPhase.RUNNING: "green",
        LoopPhase.STOPPING: "yellow",
        LoopPhase.STOPPED_ON_ERROR: "bold red",
    }.get(status.phase, "white")

    table = Table(title="Live Rotation", show_header=False)
    table.add_column("Field", style="cyan")
    table.add_column("Value")

    table.add_row("Phase", f"[{phase_style}]{status.phase.value}[/{phase_style}]")
    table.add_row("Account", str(status.account_id))
    table.add_row("Session", status.session_id or "-")
    table.add_row("Current set", status.current_set_name or "-")
    table.add_row("Next set", status.next_set_name or "-")
    table.add_row("Delay", f"{status.delay_seconds:g}s")
    if status.seconds_until_next_tick is not None:
        table.add_row("Next tick in", f"{status.seconds_until_next_tick:.0f}s")
    table.add_row("Applies", str(status.applies))
    table.add_row("Consecutive errors", str(status.consecutive_errors))
    if status.last_error is not None:
        table.add_row("Last error", f"[yellow]{status.last_error.error}[/yellow]")
    table.add_row("Last action", status.last_action or "-")
    return table


def _display_alert(alert: TerminalAlert) -> None:
    console.print(f"\n[bold red]Rotation stopped:[/bold red] {alert.reason}")
    console.print(f"  {alert.message}")


def _display_config_summary(config: RotatorConfig, no_progress: bool) -> None:
    """Display configuration summary before running."""
    if no_progress:
        return

    console.print("\n[bold cyan]Rotator Configuration[/bold cyan]")
    console.print(f"  API: {config.base_url}")
    console.print(f"  Account: {config.account_id}")
    console.print(f"  Niche: {config.niche_id if config.niche_id is not None else 'all'}")
    console.print(f"  Delay: {config.delay_seconds:g}s")
    console.print(f"  Escalation threshold: {config.escalation_threshold}")
    console.print()


def _display_results(outcome: RunOutcome, output_path: Path) -> None:
    """Display final results summary."""
    status = outcome.status

    if status.alert is not None:
        console.print(f"\n[bold red]Stopped on error:[/bold red] {status.alert.reason}")
    else:
        console.print("\n[bold green]Rotation stopped[/bold green]")

    console.print(f"  Applies: {status.applies}")
    console.print(f"  Errors: {len(outcome.errors)}")
    console.print(f"[bold]Run report saved to:[/bold] {output_path}")


if __name__ == "__main__":
    cli()
