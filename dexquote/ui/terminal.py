"""
Terminal rendering using Rich
Displays balance, price and swap simulation results
"""
from typing import Any, Optional

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from dexquote.core.structures import TokenEntry

console = Console()


def _key_value_table(title: str) -> Table:
    table = Table(
        title=title,
        show_header=False,
        border_style="dim",
        title_style="bold cyan",
    )
    table.add_column("Field", style="dim", no_wrap=True)
    table.add_column("Value", style="white")
    return table


def _token_label(token: dict[str, Any]) -> str:
    label = token["symbol"]
    if token.get("address"):
        label += f" ({token['address']})"
    return label


def render_balance(result: dict[str, Any]):
    """Print a get_balance result"""
    table = _key_value_table("💰 BALANCE")
    table.add_row("Address", result["address"])
    table.add_row("Token", _token_label(result["token"]))
    table.add_row("Balance", Text(f"{result['balance']} {result['token']['symbol']}", style="bold green"))
    table.add_row("Raw", result["balance_raw"])
    console.print(table)


def render_price(result: dict[str, Any]):
    """Print a get_token_price result"""
    table = _key_value_table("📈 TOKEN PRICE")
    table.add_row("Token", _token_label(result["token"]))
    table.add_row(
        "Price",
        Text(f"{result['price']} {result['quote_currency']}", style="bold green"),
    )
    table.add_row("Source", result["source"])
    table.add_row("Timestamp", str(result["timestamp"]))
    console.print(table)


def render_swap(result: dict[str, Any]):
    """Print a swap_tokens result"""
    route = result["route"]
    path = " → ".join(route["path"])
    protocol = route["protocol"].upper()
    if "fee_tier" in route:
        protocol += f" (fee {route['fee_tier'] / 10_000:g}%)"

    if result["simulation_success"]:
        status = Text("✓ would execute", style="bold green")
    else:
        status = Text(f"✗ {result.get('simulation_error', 'would revert')}", style="bold red")

    # Color price impact based on size
    impact = float(result["price_impact"])
    impact_style = "green"
    if impact >= 5:
        impact_style = "bold red"
    elif impact >= 1:
        impact_style = "bold yellow"

    table = _key_value_table("🔄 SWAP SIMULATION")
    table.add_row("Simulation", status)
    table.add_row("Route", f"{protocol}: {path}")
    table.add_row("Amount in", result["amount_in"])
    table.add_row("Expected out", Text(result["amount_out_expected"], style="bold green"))
    table.add_row("Minimum out", result["amount_out_minimum"])
    table.add_row("Price impact", Text(f"{result['price_impact']}%", style=impact_style))
    table.add_row("Gas", f"{result['gas_estimate']} @ {int(result['gas_price']) / 1e9:.2f} gwei")
    table.add_row("Gas cost", f"{result['gas_cost_eth']} ETH")
    console.print(table)

    tx = result["transaction"]
    console.print(Panel(
        Text(tx["data"], overflow="fold"),
        title=f"Unsigned transaction to {tx['to']} (value {tx['value']})",
        border_style="dim",
    ))


def render_tokens(tokens: list[TokenEntry], count: int, age_seconds: Optional[float]):
    """Print the cached token list"""
    table = Table(
        title="🪙 CACHED TOKENS",
        show_header=True,
        header_style="bold magenta",
        border_style="dim",
    )
    table.add_column("#", style="dim", width=5)
    table.add_column("Symbol", style="cyan")
    table.add_column("Name")
    table.add_column("Decimals", justify="right")
    table.add_column("Address", style="dim")

    for i, token in enumerate(tokens, 1):
        table.add_row(str(i), token.symbol, token.name, str(token.decimals), token.address)
    console.print(table)

    age = "never refreshed" if age_seconds is None else f"refreshed {age_seconds:.0f}s ago"
    console.print(f"[dim]{count} tokens cached, {age}[/dim]")


def render_error(message: str):
    console.print(f"[bold red]✗ {message}[/bold red]")
