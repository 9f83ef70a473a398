#!/usr/bin/env python3
"""
DEX Quote
=========
Read-only Ethereum market data and swap simulation

Commands:
- balance  ADDRESS [--token ADDRESS]      native or ERC-20 balance
- price    SYMBOL [--quote USD|ETH]       Chainlink / Uniswap V3 / V2 price
- swap     FROM TO AMOUNT [--slippage %]  build and dry-run a Uniswap swap
- tokens                                  list the cached token registry

Nothing is ever signed or broadcast.

Usage:
    dexquote price WETH
    dexquote swap WETH USDC 1.5 --slippage 0.5 --json
"""
import argparse
import asyncio
import json
import sys
from typing import Optional

from dexquote.config.chains import ChainConfig, get_chain_config
from dexquote.config.secrets import NodeCredentials, secret_manager
from dexquote.core.balance import BalanceService
from dexquote.core.errors import ConfigurationError, DexQuoteError
from dexquote.core.market_tools import MarketTools
from dexquote.core.price_discovery import PriceService
from dexquote.core.swap_router import SwapRouter
from dexquote.core.token_registry import TokenRegistry
from dexquote.core.wallet import WalletManager
from dexquote.ui import terminal
from dexquote.utils.http_client import close_global_session
from dexquote.utils.logger import get_logger, setup_logging
from dexquote.utils.rpc_manager import RPCManager

logger = get_logger(__name__)


def build_tools(credentials: NodeCredentials) -> tuple[MarketTools, RPCManager, ChainConfig]:
    """Wire configuration, RPC access, wallet and services together"""
    chain = get_chain_config(credentials.chain_id)
    rpc = RPCManager(credentials.rpc_urls)
    registry = TokenRegistry(chain.chain_id.value)
    balances = BalanceService(rpc, registry, chain)
    prices = PriceService(rpc, registry, chain, balances=balances)

    swaps: Optional[SwapRouter] = None
    if credentials.private_key:
        wallet = WalletManager.from_private_key(credentials.private_key)
        swaps = SwapRouter(
            rpc, wallet, registry, chain, v2=prices.v2, v3=prices.v3, balances=balances
        )
    else:
        logger.info("No wallet configured, swap simulation disabled")

    return MarketTools(registry, balances, prices, swaps), rpc, chain


async def verify_chain(rpc: RPCManager, chain: ChainConfig):
    """The node must serve the configured chain"""
    node_chain_id = await rpc.chain_id()
    if node_chain_id != chain.chain_id.value:
        raise ConfigurationError(
            f"RPC node is on chain {node_chain_id}, configured for {chain.chain_id.value}"
        )


async def execute(args: argparse.Namespace, tools: MarketTools) -> object:
    if args.command == "balance":
        return await tools.get_balance(args.address, args.token)
    if args.command == "price":
        return await tools.get_token_price(args.symbol, args.quote)
    if args.command == "swap":
        return await tools.swap_tokens(args.from_token, args.to_token, args.amount, args.slippage)

    tokens = await tools.registry.list_tokens()
    count, age = await tools.registry.cache_stats()
    if args.json:
        return {"count": count, "age_seconds": age, "tokens": [t.to_dict() for t in tokens]}
    terminal.render_tokens(tokens, count, age)
    return None


def render(args: argparse.Namespace, result: object):
    if result is None:
        return
    if args.json:
        terminal.console.print_json(json.dumps(result))
    elif args.command == "balance":
        terminal.render_balance(result)
    elif args.command == "price":
        terminal.render_price(result)
    elif args.command == "swap":
        terminal.render_swap(result)


async def main(args: argparse.Namespace) -> int:
    """Main entry point"""
    rpc: Optional[RPCManager] = None
    try:
        credentials = secret_manager.load(require_key=args.command == "swap")
        tools, rpc, chain = build_tools(credentials)
        if args.command != "tokens":
            await verify_chain(rpc, chain)
        render(args, await execute(args, tools))
        return 0
    except DexQuoteError as e:
        logger.debug(f"{type(e).__name__} ({e.category})")
        terminal.render_error(str(e))
        return 1
    finally:
        if rpc is not None:
            await rpc.close()
        await close_global_session()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="dexquote",
        description="Read-only Ethereum balances, prices and swap simulation",
    )
    parser.add_argument("--json", action="store_true", help="print raw JSON")
    parser.add_argument("--log-level", default=None, help="override LOG_LEVEL")
    commands = parser.add_subparsers(dest="command", required=True)

    balance = commands.add_parser("balance", help="native or ERC-20 balance")
    balance.add_argument("address")
    balance.add_argument("--token", default=None, help="ERC-20 contract address")

    price = commands.add_parser("price", help="token price in USD or ETH")
    price.add_argument("symbol")
    price.add_argument("--quote", default="USD", help="USD (default) or ETH")

    swap = commands.add_parser("swap", help="simulate an exact-input swap")
    swap.add_argument("from_token")
    swap.add_argument("to_token")
    swap.add_argument("amount")
    swap.add_argument("--slippage", default=None, help="percent, default 0.5")

    commands.add_parser("tokens", help="list cached tokens")
    return parser


def run():
    args = build_parser().parse_args()
    setup_logging(args.log_level)
    try:
        sys.exit(asyncio.run(main(args)))
    except KeyboardInterrupt:
        sys.exit(130)


if __name__ == "__main__":
    run()
