"""
DEX Price — Command Implementations
====================================

All CLI command handlers live here, keeping run.py as a thin
argparse dispatcher. Each public function corresponds to a
subcommand (price, pools, oracle, info).
"""

from __future__ import annotations

import json

from dex_price.central_config import (
    NETWORKS,
    PROJECT_NAME,
    PROJECT_VERSION,
    RPC_URL_ENV,
    load_config,
)
from dex_price.rpc_helpers import is_address


# ── Helpers ──────────────────────────────────────────────────────────────


def _valid_address(addr: str | None) -> bool:
    if is_address(addr):
        return True
    print("❌ Invalid address. Must be 42 hex characters starting with 0x.")
    return False


def _fmt(value: float | None, fmt: str = ",.10f") -> str:
    return "—" if value is None else format(value, fmt)


def _checker(network: str, rpc_url: str | None):
    from price_checker import PriceChecker

    return PriceChecker.from_network(network, rpc_url)


# ── Commands ─────────────────────────────────────────────────────────────


async def cmd_price(
    token: str, network: str = "ethereum", rpc_url: str | None = None, as_json: bool = False
) -> bool:
    """Resolve and print a token's WETH and USD price."""
    if not _valid_address(token):
        return False

    checker = _checker(network, rpc_url)
    cfg = checker.config
    if not as_json:
        print(f"\n🔍 Resolving {token[:12]}... on {cfg.name.title()}")

    quote = await checker.get_price(token)

    if as_json:
        print(json.dumps({"token": token, "network": cfg.name, **quote.to_dict()}, indent=2))
        return True

    print(f"\n💱 Price — {token}")
    print("=" * 55)
    print(f"  🦄 V2 pool   : {quote.constant_product_pool or 'not found'}")
    print(f"  🦄 V3 pool   : {quote.concentrated_liquidity_pool or 'not found'}")
    print(f"  📊 V2 price  : {_fmt(quote.constant_product_price)} {cfg.reference_symbol}")
    print(f"  📊 V3 price  : {_fmt(quote.concentrated_liquidity_price)} {cfg.reference_symbol}")
    print(f"  🔗 {cfg.reference_symbol}/{cfg.fiat_symbol} : {_fmt(quote.reference_fiat_rate, ',.2f')}")
    print("-" * 55)
    print(f"  💰 Price     : {_fmt(quote.price_in_reference_asset)} {cfg.reference_symbol}")
    print(f"  💵 Price     : {_fmt(quote.price_in_fiat, ',.8f')} {cfg.fiat_symbol}")
    if not quote.found:
        print(f"\n⚠️  No {cfg.reference_symbol} pool on Uniswap V2 or V3 for this token.")
    elif quote.concentrated_liquidity_price is not None:
        print("\nℹ️  V3 price is token1/token0 in pool order, not decimals-adjusted.")
    return True


async def cmd_pools(token: str, network: str = "ethereum", rpc_url: str | None = None) -> bool:
    """List the Uniswap pools discovered for a token against the reference asset."""
    if not _valid_address(token):
        return False

    checker = _checker(network, rpc_url)
    pools = await checker.locator.locate(token)

    print(f"\n🔭 Pools for {token} / {checker.config.reference_symbol}")
    print("=" * 55)
    if not pools:
        print("  ⚠️  None found")
    for ref in pools:
        fee = f" fee={ref.fee / 10_000:.2f}%" if ref.fee is not None else ""
        print(f"  ▸ {ref.design.value:<24} {ref.address}{fee}")
    return True


async def cmd_oracle(network: str = "ethereum", rpc_url: str | None = None) -> bool:
    """Print the Chainlink reference-asset/fiat rate."""
    checker = _checker(network, rpc_url)
    rate = await checker.get_reference_fiat_rate()
    cfg = checker.config
    print(f"\n🔗 {cfg.reference_symbol}/{cfg.fiat_symbol}: {rate:,.8f}  (Chainlink {cfg.oracle})")
    return True


def cmd_info(network: str = "ethereum", rpc_url: str | None = None) -> None:
    """Display configuration for a network."""
    cfg = load_config(network, rpc_url)
    print(f"\n📊 {PROJECT_NAME} v{PROJECT_VERSION}")
    print("=" * 55)
    print(f"🌐 Network    : {cfg.name.title()}  (available: {', '.join(NETWORKS)})")
    print(f"📡 RPC        : {cfg.rpc_url}  (override: --rpc or ${RPC_URL_ENV})")
    print(f"🦄 V2 Factory : {cfg.constant_product_factory}")
    print(f"🦄 V3 Factory : {cfg.concentrated_liquidity_factory}")
    print(f"   Fee tiers  : {', '.join(str(f) for f in cfg.fee_tiers)}  (queried in order)")
    print(f"🔗 Oracle     : {cfg.oracle}  ({cfg.oracle_decimals} decimals)")
    print(f"💎 Reference  : {cfg.reference_symbol} {cfg.reference_asset}")
    print()
    print("📚 References:")
    print("   Uniswap V2 Docs : https://docs.uniswap.org/contracts/v2/overview")
    print("   Uniswap V3 Docs : https://docs.uniswap.org/")
    print("   Chainlink Feeds : https://data.chain.link/")
