"""CLI for the Incubator balance tracker."""

import asyncio
import json
import logging
from decimal import Decimal
from enum import StrEnum
from pathlib import Path

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table
from rich.traceback import install

from solana_incubator.balance import FETCH_ERROR_MESSAGE, BalancePoller, fetch_balance, submit_deposit
from solana_incubator.core.context import AppContext
from solana_incubator.core.models import BalanceSnapshot, IncubatorSettings
from solana_incubator.data import load_settings
from solana_incubator.rpc.exceptions import SolanaIncubatorError

# Install rich traceback handler
install(show_locals=True)

app = typer.Typer(
    name="solana-incubator",
    help="Track the Incubator deposit wallet through a pool of failover Solana RPC endpoints",
    add_completion=False,
)

console = Console()

logger = logging.getLogger(__name__)


class OutputFormat(StrEnum):
    """Output format options."""

    TABLE = "table"
    JSON = "json"


def _configure_logging(debug: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=debug)],
        force=True,
    )
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.DEBUG if debug else logging.WARNING)


def _load(config: Path | None, debug: bool) -> IncubatorSettings:
    """
    Configure logging and load settings.

    Raises
    ------
    typer.Exit
        If the configuration is invalid

    """
    _configure_logging(debug)
    try:
        return load_settings(config)
    except SolanaIncubatorError as e:
        console.print(f"[bold red]Configuration error:[/bold red] {e}")
        raise typer.Exit(code=1) from e


def _format_amount(value: Decimal) -> str:
    return f"{value:,.2f}"


@app.command()
def endpoints(
    config: Path | None = typer.Option(None, "--config", "-c", help="Network config YAML"),
    debug: bool = typer.Option(False, "--debug", "-d", help="Enable debug output"),
) -> None:
    """List configured RPC endpoints in failover order."""
    settings = _load(config, debug)

    table = Table(title="RPC Endpoints", show_header=True, header_style="bold magenta")
    table.add_column("#", style="dim", justify="right")
    table.add_column("URL", style="cyan")

    for index, url in enumerate(settings.rpc_endpoints):
        table.add_row(str(index), url)

    console.print(table)
    console.print(f"[dim]Commitment: {settings.commitment.value}, timeout: {settings.request_timeout}s[/dim]")


@app.command()
def probe(
    config: Path | None = typer.Option(None, "--config", "-c", help="Network config YAML"),
    debug: bool = typer.Option(False, "--debug", "-d", help="Enable debug output"),
) -> None:
    """Probe every endpoint and show its health."""
    settings = _load(config, debug)

    async def run():
        context = AppContext(settings)
        try:
            return await context.pool.probe_all()
        finally:
            await context.aclose()

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
    ) as progress:
        task = progress.add_task(f"Probing {len(settings.rpc_endpoints)} endpoints...", total=None)
        statuses = asyncio.run(run())
        progress.update(task, description="✓ Probe complete")

    table = Table(title="Endpoint Health", show_header=True, header_style="bold magenta")
    table.add_column("URL", style="cyan")
    table.add_column("Status")

    for status in statuses:
        label = "[green]✓ healthy[/green]" if status.healthy else "[red]✗ unhealthy[/red]"
        table.add_row(status.url, label)

    console.print(table)

    if not any(status.healthy for status in statuses):
        raise typer.Exit(code=1)


@app.command()
def balance(
    config: Path | None = typer.Option(None, "--config", "-c", help="Network config YAML"),
    format: OutputFormat = typer.Option(
        OutputFormat.TABLE,
        "--format",
        "-f",
        help="Output format",
    ),
    debug: bool = typer.Option(False, "--debug", "-d", help="Enable debug output"),
) -> None:
    """Fetch the deposit wallet balance once."""
    settings = _load(config, debug)

    async def run() -> Decimal:
        context = AppContext(settings)
        try:
            return await fetch_balance(context.pool, settings.owner_wallet, settings.token_mint)
        finally:
            await context.aclose()

    try:
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=console,
        ) as progress:
            progress.add_task("Fetching balance...", total=None)
            value = asyncio.run(run())
    except SolanaIncubatorError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        if debug:
            raise
        raise typer.Exit(1) from e

    snapshot = BalanceSnapshot(value=value)
    if format == OutputFormat.JSON:
        data = {
            "owner": settings.owner_wallet,
            "mint": settings.token_mint,
            "balance": str(value),
            "goal": str(settings.goal_amount),
            "progress": str(snapshot.progress(settings.goal_amount)),
        }
        console.print(json.dumps(data, indent=2))
        return

    table = Table(show_header=False, box=None)
    table.add_column("Label", style="bold")
    table.add_column("Value", style="bold green")
    table.add_row("Wallet:", settings.owner_wallet)
    table.add_row("Balance:", f"{_format_amount(value)} USDT")
    table.add_row("Goal:", f"{_format_amount(settings.goal_amount)} USDT")
    table.add_row("Progress:", f"{snapshot.progress(settings.goal_amount):.1f}%")
    console.print(table)


@app.command()
def watch(
    config: Path | None = typer.Option(None, "--config", "-c", help="Network config YAML"),
    interval: float | None = typer.Option(None, "--interval", "-i", help="Seconds between refreshes"),
    count: int | None = typer.Option(None, "--count", "-n", help="Stop after this many balance updates"),
    debug: bool = typer.Option(False, "--debug", "-d", help="Enable debug output"),
) -> None:
    """Poll the deposit wallet balance and print every update."""
    settings = _load(config, debug)
    if interval is not None:
        try:
            settings = IncubatorSettings.model_validate({**settings.model_dump(), "refresh_interval": interval})
        except ValidationError as e:
            console.print(f"[bold red]Configuration error:[/bold red] invalid --interval {interval}: must be positive")
            raise typer.Exit(code=1) from e

    async def run() -> None:
        context = AppContext(settings)
        poller = BalancePoller.from_settings(context.pool, settings)
        done = asyncio.Event()
        updates = 0

        def on_update(snapshot: BalanceSnapshot) -> None:
            nonlocal updates
            if snapshot.is_loading:
                console.print("[dim]Loading balance...[/dim]")
                return
            updates += 1
            line = (
                f"{_format_amount(snapshot.value)} USDT "
                f"({snapshot.progress(settings.goal_amount):.1f}% of goal)"
            )
            if snapshot.error:
                console.print(f"[yellow]{line} - {snapshot.error}[/yellow]")
            else:
                console.print(f"[green]{line}[/green]")
            if count is not None and updates >= count:
                done.set()

        poller.subscribe(on_update)
        try:
            async with poller:
                await done.wait()
        finally:
            await context.aclose()

    console.print(f"[bold cyan]Watching[/bold cyan] {settings.owner_wallet} every {settings.refresh_interval}s")
    try:
        asyncio.run(run())
    except KeyboardInterrupt:
        console.print("\n[dim]Stopped[/dim]")


@app.command()
def submit(
    transaction: Path = typer.Argument(
        ...,
        exists=True,
        dir_okay=False,
        readable=True,
        help="File holding a signed, base64 encoded transaction",
    ),
    config: Path | None = typer.Option(None, "--config", "-c", help="Network config YAML"),
    debug: bool = typer.Option(False, "--debug", "-d", help="Enable debug output"),
) -> None:
    """Submit a signed deposit transaction and show the updated balance."""
    settings = _load(config, debug)
    try:
        payload = transaction.read_text(encoding="utf-8").strip()
    except (OSError, UnicodeDecodeError) as e:
        console.print(f"[bold red]Error:[/bold red] cannot read transaction file: {e}")
        raise typer.Exit(1) from e
    if not payload:
        console.print("[bold red]Error:[/bold red] transaction file is empty")
        raise typer.Exit(1)

    async def run() -> tuple[str, Decimal | None]:
        context = AppContext(settings)
        try:
            signature = await submit_deposit(context.pool, payload)
            try:
                value = await fetch_balance(context.pool, settings.owner_wallet, settings.token_mint)
            except SolanaIncubatorError as e:
                logger.warning("Balance refresh after deposit failed: %s", e)
                value = None
            return signature, value
        finally:
            await context.aclose()

    try:
        signature, value = asyncio.run(run())
    except SolanaIncubatorError as e:
        console.print(f"[bold red]Failed to submit deposit:[/bold red] {e}")
        if debug:
            raise
        raise typer.Exit(1) from e

    console.print(f"[bold green]✓ Transaction submitted:[/bold green] {signature}")
    if value is None:
        console.print(f"[yellow]{FETCH_ERROR_MESSAGE}[/yellow]")
    else:
        console.print(f"Balance: {_format_amount(value)} USDT")


@app.command()
def rewards(
    amount: float = typer.Argument(..., min=0, help="USDT amount to deposit"),
    config: Path | None = typer.Option(None, "--config", "-c", help="Network config YAML"),
    debug: bool = typer.Option(False, "--debug", "-d", help="Enable debug output"),
) -> None:
    """Show the rewards a deposit would earn and where it leaves the goal."""
    settings = _load(config, debug)
    deposit = Decimal(str(amount))
    share = BalanceSnapshot(value=deposit).progress(settings.goal_amount)

    table = Table(show_header=False, box=None)
    table.add_column("Label", style="bold")
    table.add_column("Value", style="bold green")
    table.add_row("Deposit:", f"{_format_amount(deposit)} USDT")
    table.add_row("Expected rewards:", f"{_format_amount(settings.expected_rewards(deposit))} ${settings.reward_token}")
    table.add_row("Share of goal:", f"{share:.1f}%")
    console.print(table)


if __name__ == "__main__":
    app()
