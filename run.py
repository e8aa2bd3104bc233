#!/usr/bin/env python3
"""
DEX Price -- On-Chain Token Price Checker
=========================================

Token price in WETH and USD from Uniswap V2/V3 pools and Chainlink.

Usage:
  python run.py price  <token>                     Token price (WETH + USD)
  python run.py price  <token> --json              Machine-readable output
  python run.py pools  <token>                     List discovered V2/V3 pools
  python run.py oracle                             Chainlink ETH/USD rate
  python run.py info                               Network configuration

Sources:
  Uniswap V2 Docs   : https://docs.uniswap.org/contracts/v2/overview
  Uniswap V3 Docs   : https://docs.uniswap.org/
  Chainlink Feeds   : https://data.chain.link/
"""

import sys
import asyncio
import argparse
import logging
from pathlib import Path

# ── Imports ───────────────────────────────────────────────────────────────

project_root = Path(__file__).parent
sys.path.insert(0, str(project_root))

from dex_price.central_config import PROJECT_VERSION
from dex_price.commands import cmd_info, cmd_oracle, cmd_pools, cmd_price
from dex_price.errors import PriceError


# ── CLI Parser ────────────────────────────────────────────────────────────


def _add_network_args(p: argparse.ArgumentParser) -> None:
    p.add_argument(
        "--network",
        type=str,
        default="ethereum",
        help="Network preset (default: ethereum)",
    )
    p.add_argument(
        "--rpc",
        type=str,
        default=None,
        help="JSON-RPC endpoint (default: $DEX_PRICE_RPC_URL or https://1rpc.io/eth)",
    )


def create_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="dex-price",
        description=f"DEX Price v{PROJECT_VERSION} — On-Chain Token Price Checker",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python run.py price  0x34F5C9449Bae9b1D96044690164BD66f2f604c1e
  python run.py price  0x34F5C9449Bae9b1D96044690164BD66f2f604c1e --json
  python run.py pools  0x1f9840a85d5aF5bf1D1762F925BDADdC4201F984
  python run.py oracle --rpc https://eth.llamarpc.com

Notes:
  • If both V2 and V3 pools exist, the V3 price is reported.
  • Prices are raw reserve/sqrtPrice ratios, not adjusted for token decimals.
""",
    )
    parser.add_argument(
        "--version", action="version", version=f"DEX Price v{PROJECT_VERSION}"
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Log every contract call"
    )

    sub = parser.add_subparsers(dest="command", help="Available commands")

    price_p = sub.add_parser("price", help="Token price in WETH and USD")
    price_p.add_argument("token", help="ERC-20 token address (0x…)")
    price_p.add_argument("--json", action="store_true", help="Print JSON")
    _add_network_args(price_p)

    pools_p = sub.add_parser("pools", help="List Uniswap V2/V3 pools for a token")
    pools_p.add_argument("token", help="ERC-20 token address (0x…)")
    _add_network_args(pools_p)

    oracle_p = sub.add_parser("oracle", help="Chainlink reference/fiat rate")
    _add_network_args(oracle_p)

    info_p = sub.add_parser("info", help="Network configuration")
    _add_network_args(info_p)

    return parser


# ── Main ──────────────────────────────────────────────────────────────────


def main(argv=None) -> int:
    parser = create_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 0

    if args.verbose:
        logging.basicConfig(
            level=logging.DEBUG, format="%(asctime)s %(levelname)s %(name)s: %(message)s"
        )

    try:
        if args.command == "info":
            cmd_info(args.network, args.rpc)
            return 0
        if args.command == "oracle":
            ok = asyncio.run(cmd_oracle(args.network, args.rpc))
        elif args.command == "pools":
            ok = asyncio.run(cmd_pools(args.token, args.network, args.rpc))
        else:
            ok = asyncio.run(cmd_price(args.token, args.network, args.rpc, args.json))
    except PriceError as e:
        print(f"\n❌ {e}")
        return 2
    except ValueError as e:
        print(f"\n❌ {e}")
        return 1

    return 0 if ok else 1


if __name__ == "__main__":
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        print("\n❌ Cancelled.")
        sys.exit(130)
