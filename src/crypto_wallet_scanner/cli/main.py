"""CLI for crypto wallet scanner."""

import json
import logging
from enum import StrEnum

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from crypto_wallet_scanner.config import ScannerConfig
from crypto_wallet_scanner.core.chains import CHAIN_ALIASES, Chain, get_native_symbol, get_source
from crypto_wallet_scanner.core.errors import InvalidAddressError, ScanFailedError, ScannerError, UnsupportedChainError
from crypto_wallet_scanner.core.models import ChainSummary, CompositeResult, ScanStatus
from crypto_wallet_scanner.core.service import scan_wallet

app = typer.Typer(
    name="crypto-wallet-scanner",
    help="Scan a wallet address across EVM chains, Tron, Hyperliquid, the Avalanche P-Chain and Solana",
    add_completion=False,
)

console = Console()


class OutputFormat(StrEnum):
    """Output format options."""

    TABLE = "table"
    JSON = "json"


def _configure_logging(debug: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), rich_tracebacks=debug)],
        force=True,
    )
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.DEBUG if debug else logging.WARNING)


@app.command()
def scan(
    address: str = typer.Argument(..., help="EVM address (0x...), Avalanche P-Chain address (P-avax1...) or Solana address"),
    chain: str = typer.Option("auto", "--chain", "-c", help="Chain id, alias (avalanche) or auto"),
    p_address: str | None = typer.Option(None, "--p-address", "-p", help="Avalanche P-Chain address to scan too"),
    format: OutputFormat = typer.Option(
        OutputFormat.TABLE,
        "--format",
        "-f",
        help="Output format",
    ),
    debug: bool = typer.Option(False, "--debug", "-d", help="Enable debug logging"),
) -> None:
    """
    Scan a wallet for native balances, tokens and positions.

    Examples:

        # Scan every chain the address can be used on
        crypto-wallet-scanner scan 0xABC...

        # Scan a single chain
        crypto-wallet-scanner scan 0xABC... --chain base

        # Include the Avalanche P-Chain
        crypto-wallet-scanner scan 0xABC... --chain avalanche --p-address P-avax1...

        # Scan a Solana wallet
        crypto-wallet-scanner scan 83astBRguLMdt2h5U1Tpdq5tjFoJ6noeGwaY3mDLVcri

        # Output as JSON
        crypto-wallet-scanner scan 0xABC... --format json
    """
    _configure_logging(debug)
    config = ScannerConfig.from_env()

    try:
        if format == OutputFormat.JSON:
            result = scan_wallet(address, chain, p_address, config=config)
        else:
            console.print(f"\n[bold cyan]Scanning wallet:[/bold cyan] {address}")
            with Progress(
                SpinnerColumn(),
                TextColumn("[progress.description]{task.description}"),
                console=console,
                transient=True,
            ) as progress:
                progress.add_task(f"Scanning {chain} chains...", total=None)
                result = scan_wallet(address, chain, p_address, config=config)
    except (InvalidAddressError, UnsupportedChainError) as e:
        _print_error(e, format)
        raise typer.Exit(1)
    except ScanFailedError as e:
        _print_error(e, format)
        if format == OutputFormat.TABLE:
            _output_chain_results(e.chain_results)
        raise typer.Exit(1)
    except ScannerError as e:
        _print_error(e, format)
        raise typer.Exit(1)

    if format == OutputFormat.JSON:
        _output_json(result)
    else:
        _output_table(result)


@app.command()
def list_chains() -> None:
    """List all supported chains and aliases."""
    table = Table(title="Supported Chains", show_header=True, header_style="bold magenta")
    table.add_column("Chain", style="cyan")
    table.add_column("Source", style="green")
    table.add_column("Native", style="yellow")

    for chain in Chain:
        table.add_row(chain.value, get_source(chain).value, get_native_symbol(chain))

    console.print(table)

    aliases = Table(title="Aliases", show_header=True, header_style="bold magenta")
    aliases.add_column("Alias", style="cyan")
    aliases.add_column("Chains", style="green")
    for alias, members in CHAIN_ALIASES.items():
        aliases.add_row(alias, ", ".join(members))

    console.print(aliases)


def _print_error(error: ScannerError, format: OutputFormat) -> None:
    if format == OutputFormat.JSON:
        payload: dict = {"error": str(error)}
        if isinstance(error, InvalidAddressError) and error.details:
            payload["details"] = error.details
        if isinstance(error, UnsupportedChainError):
            payload["supportedChains"] = error.supported
        if isinstance(error, ScanFailedError):
            payload["chainResults"] = [
                summary.model_dump(mode="json", by_alias=True, exclude_none=True) for summary in error.chain_results
            ]
        typer.echo(json.dumps(payload, indent=2))
        return

    console.print(f"[bold red]Error:[/bold red] {error}")
    if isinstance(error, InvalidAddressError) and error.details:
        console.print(f"[dim]{error.details}[/dim]")
    if isinstance(error, UnsupportedChainError) and error.supported:
        console.print(f"[dim]Supported: {', '.join(error.supported)}[/dim]")


def _output_table(result: CompositeResult) -> None:
    """Output scan result as rich tables."""
    if not result.positions:
        console.print("\n[yellow]No balances found[/yellow]")
    else:
        table = Table(
            title=f"Wallet {result.address[:10]}...{result.address[-8:]}",
            show_header=True,
            header_style="bold magenta",
        )
        table.add_column("Chain", style="blue")
        table.add_column("Kind", style="yellow")
        table.add_column("Token", style="green")
        table.add_column("Name", style="cyan")
        table.add_column("Balance", style="white", justify="right")
        table.add_column("USD Value", style="bold green", justify="right")

        for position in result.positions:
            table.add_row(
                position.chain.value,
                position.position_kind.value,
                position.symbol,
                position.display_name,
                f"{position.balance:,.6f}",
                f"${position.value_usd:,.2f}" if position.value_usd else "-",
            )

        console.print("\n")
        console.print(table)

    _output_chain_results(result.chain_results)

    total = sum(p.value_usd for p in result.positions if p.value_usd)
    console.print(f"\n[bold]Positions:[/bold] {result.token_count}   [bold]Known USD value:[/bold] ${total:,.2f}\n")


def _output_chain_results(chain_results: list[ChainSummary]) -> None:
    table = Table(title="Chains", show_header=True, header_style="bold magenta")
    table.add_column("Chain", style="cyan")
    table.add_column("Source", style="blue")
    table.add_column("Status")
    table.add_column("Tokens", justify="right")
    table.add_column("Native", justify="right")
    table.add_column("Error", style="red")

    for summary in chain_results:
        status = "[green]ok[/green]" if summary.status == ScanStatus.OK else "[red]error[/red]"
        native = f"{summary.native_balance:,.6f} {summary.native_symbol}" if summary.native_symbol else "-"
        table.add_row(
            summary.chain.value,
            summary.source.value,
            status,
            str(summary.token_count),
            native,
            summary.error or "",
        )

    console.print(table)


def _output_json(result: CompositeResult) -> None:
    """Output scan result as JSON in the response shape."""
    typer.echo(json.dumps(result.to_response(), indent=2))


if __name__ == "__main__":
    app()
