"""
Main CLI application for Wallet Fun Facts.
"""

import asyncio
import json
import logging
from dataclasses import asdict
from pathlib import Path
from typing import Any, Dict, Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from web3 import Web3

from .api_clients import NansenClient
from .cache import AthCache, get_ath_cache
from .config import Config
from .constants import (
    ETH_BENCHMARK,
    FUN_FACT_TITLES,
    LABELS,
    PNL,
    PORTFOLIO_ATH,
    RUGGED_CLEAR_MESSAGE,
    RUGGED_PROJECTS,
    SMART_MONEY,
)
from .models import FunFactResult
from .price_providers import PriceService, build_price_service
from .report import WalletReport, analyze_wallet
from .utils import (
    format_number,
    format_percent,
    format_percent_colored,
    format_usd,
    truncate_address,
    validate_and_normalize_address,
)

logger = logging.getLogger(__name__)


app = typer.Typer(
    name="wallet-facts",
    help="Six fun facts about an EVM wallet: P&L, labels, smart money, rugs, ETH benchmark and ATH."
)

console = Console()


def load_config() -> Config:
    """Load application configuration."""
    try:
        return Config.from_env()
    except ValueError as e:
        console.print(f"[red]Configuration error: {e}[/red]")
        console.print(
            "\n[yellow]Please create a .env file with your API keys:[/yellow]")
        console.print("NANSEN_API_KEY=your_key_here")
        console.print("COINGECKO_API_KEY=your_key_here  # Optional")
        raise typer.Exit(1)


def setup_logging(config: Config, verbose: bool = False) -> None:
    level = logging.DEBUG if verbose else getattr(
        logging, config.log_level, logging.WARNING)
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def prompt_for_address() -> str:
    """Ask until a valid address is entered."""
    while True:
        raw = typer.prompt("Wallet address")
        try:
            return validate_and_normalize_address(raw)
        except ValueError as e:
            console.print(f"[red]{e}[/red]")


def render_fun_fact(kind: str, result: FunFactResult) -> Optional[str]:
    """Rich markup for one fun fact, or None when the card is skipped."""
    if result.skipped:
        return None
    if not result.success:
        return f"[yellow]{result.fallback}[/yellow]"

    data = result.data
    if kind == PNL:
        color = "green" if data.status == "GAIN" else "red"
        return (f"[{color}]{data.status}[/{color}] "
                f"{format_percent_colored(data.realized_pnl_percent)} "
                f"({format_usd(data.realized_pnl_usd)}) {data.timeframe}")

    if kind == LABELS:
        return f"This wallet is known as [bold magenta]{data.label}[/bold magenta]"

    if kind == SMART_MONEY:
        return f"Smart money detected: [bold green]{', '.join(data.labels)}[/bold green]"

    if kind == RUGGED_PROJECTS:
        if data.rugged_count == 0:
            return f"[green]{RUGGED_CLEAR_MESSAGE}[/green]"
        lines = [f"[red]{data.rugged_count} rugged project(s) in this wallet[/red]"]
        for token in data.rugged_tokens:
            lines.append(
                f"  • {token.name} ({token.symbol}): liquidity ${format_number(token.liquidity_usd)}")
        return "\n".join(lines)

    if kind == ETH_BENCHMARK:
        color = "green" if data.status == "OUTPERFORMED" else "red"
        return (f"[{color}]{data.status}[/{color}] ETH by "
                f"{format_percent_colored(data.performance_percent)}\n"
                f"Portfolio now: {format_usd(data.portfolio_value)}  |  "
                f"Same USD in ETH: {format_usd(data.eth_equivalent_value)}")

    if kind == PORTFOLIO_ATH:
        return (f"At all-time highs your holdings would be worth "
                f"[bold]{format_usd(data.ath_value)}[/bold] "
                f"(now {format_usd(data.current_value)}, "
                f"{format_percent(data.potential_gain_percent)} potential gain)")

    return str(data)


def display_report(report: WalletReport) -> None:
    """Display the fun facts as rich panels."""
    checksum = Web3.to_checksum_address(report.address)
    console.print(Panel(
        f"[bold blue]{checksum}[/bold blue]\n"
        f"Analyzed: {report.analyzed_at.strftime('%Y-%m-%d %H:%M UTC')}",
        title="Wallet",
        expand=False
    ))

    shown = 0
    for kind, result in report.ordered():
        content = render_fun_fact(kind, result)
        if content is None:
            continue
        shown += 1
        console.print(Panel(
            content,
            title=f"🎲 Fun Fact #{shown}: {FUN_FACT_TITLES[kind]}",
            title_align="left",
            expand=False
        ))

    table = Table(title="Timings")
    table.add_column("Fun fact", style="cyan")
    table.add_column("Result", style="white")
    table.add_column("Seconds", style="white", justify="right")
    for kind, result in report.ordered():
        status = "ok" if result.success else (
            "skipped" if result.skipped else "fallback")
        table.add_row(FUN_FACT_TITLES[kind], status,
                      f"{report.durations.get(kind, 0.0):.2f}")
    console.print(table)


def report_to_dict(report: WalletReport) -> Dict[str, Any]:
    """JSON-serializable view of a report."""
    return {
        "address": report.address,
        "analyzed_at": report.analyzed_at.isoformat(),
        "fun_facts": {
            kind: {
                "success": result.success,
                "data": asdict(result.data) if result.data is not None else None,
                "fallback": result.fallback,
                "duration_seconds": round(report.durations.get(kind, 0.0), 3),
            }
            for kind, result in report.ordered()
        },
    }


def export_to_json(report: WalletReport, filepath: str):
    """Export a report to JSON."""
    with open(filepath, 'w') as jsonfile:
        json.dump(report_to_dict(report), jsonfile, indent=2, default=str)


def run_analysis(address: str, nansen: NansenClient, prices: PriceService,
                 cache: AthCache, sequential: bool, output_format: str,
                 output_file: Optional[str]) -> WalletReport:
    with console.status(f"[cyan]Analyzing {truncate_address(address)}...[/cyan]"):
        report = asyncio.run(analyze_wallet(
            address, nansen, prices, cache, concurrent=not sequential))

    if output_format == "json" and not output_file:
        console.print_json(json.dumps(report_to_dict(report), default=str))
    else:
        display_report(report)

    if output_file:
        export_to_json(report, output_file)
        console.print(f"[green]Results exported to {output_file}[/green]")

    return report


@app.command()
def analyze(
    address: Optional[str] = typer.Argument(
        None, help="Wallet address (0x followed by 40 hex characters); prompted if omitted"),
    output_format: str = typer.Option(
        "table", "--format", "-f", help="Output format: table, json"),
    output_file: Optional[str] = typer.Option(
        None, "--output", "-o", help="Write the report as JSON to this file"),
    sequential: bool = typer.Option(
        False, "--sequential", help="Run the analyzers one after another"),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable debug logging"),
):
    """Analyze a wallet and print its fun facts."""
    if output_format not in ("table", "json"):
        console.print(f"[red]Unsupported output format: {output_format}[/red]")
        raise typer.Exit(1)

    config = load_config()
    setup_logging(config, verbose)

    nansen = NansenClient(config)
    prices = build_price_service(config)
    cache = get_ath_cache(ttl_seconds=config.ath_cache_ttl_hours * 3600,
                          max_entries=config.ath_cache_max_entries)

    if address is not None:
        try:
            wallet = validate_and_normalize_address(address)
        except ValueError as e:
            console.print(f"[red]{e}[/red]")
            raise typer.Exit(1)
        run_analysis(wallet, nansen, prices, cache,
                     sequential, output_format, output_file)
        return

    while True:
        wallet = prompt_for_address()
        run_analysis(wallet, nansen, prices, cache,
                     sequential, output_format, output_file)
        if not typer.confirm("Analyze another wallet?", default=False):
            break

    logger.debug(f"ATH cache stats at exit: {cache.stats()}")


@app.command()
def setup():
    """Setup the application by creating a .env file template."""
    env_content = """# Wallet Fun Facts Configuration

# Required: Nansen API key (https://www.nansen.ai/api)
NANSEN_API_KEY=your_nansen_api_key_here

# Optional: price APIs (CoinGecko works without a key on the free tier)
# COINGECKO_API_KEY=your_coingecko_api_key_here
# COINMARKETCAP_API_KEY=your_coinmarketcap_api_key_here

# HTTP and rate limiting
REQUEST_TIMEOUT=30
RATE_LIMIT_DELAY=1.0
ATH_BATCH_SIZE=5
MAX_TRANSACTION_PAGES=50

# ATH price cache
ATH_CACHE_TTL_HOURS=24
ATH_CACHE_MAX_ENTRIES=1000

# Logging
LOG_LEVEL=WARNING
"""

    env_path = Path(".env")
    if env_path.exists():
        console.print("[yellow].env file already exists![/yellow]")
        if not typer.confirm("Overwrite existing .env file?"):
            return

    with open(env_path, 'w') as f:
        f.write(env_content)

    console.print(f"[green]Created .env file at {env_path.absolute()}[/green]")
    console.print(
        "\n[yellow]Please edit the .env file and add your API key:[/yellow]")
    console.print("1. Get a Nansen API key from https://www.nansen.ai/api")
    console.print(
        "2. Replace 'your_nansen_api_key_here' with your real key")
    console.print(
        "3. Optional: Add CoinGecko/CoinMarketCap keys for better rate limits")
    console.print("4. Run: wallet-facts analyze <wallet_address>")


if __name__ == "__main__":
    app()
