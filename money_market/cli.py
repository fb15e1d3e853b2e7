"""Command-line interface for the money market."""
from __future__ import annotations

import argparse
import asyncio
import logging
import sys
import time

from .config import AppConfig, load_config
from .constants import BPS, WAD
from .errors import ProtocolError
from .fixed_point import from_wad
from .interest import InterestRateModel, InterestRateParams
from .logging_setup import configure_logging
from .oracles import PythPriceSource, build_price_source

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse CLI parser."""
    parser = argparse.ArgumentParser(
        prog="money-market",
        description="Collateralized lending market ledger",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to config.yaml (default: config.yaml in project root)",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: INFO)",
    )

    sub = parser.add_subparsers(dest="command")

    sub.add_parser("markets", help="List configured assets and risk parameters")
    sub.add_parser("prices", help="Refresh and print oracle prices")

    rates_parser = sub.add_parser("rates", help="Print borrow/supply rate curves")
    rates_parser.add_argument(
        "--step",
        type=int,
        default=10,
        help="Utilization step in percent (default: 10)",
    )

    return parser


def _pct(bps: int) -> str:
    return f"{bps * 100 / BPS:.2f}%"


def _print_markets(config: AppConfig) -> None:
    print(f"Market {config.market.address} (admin {config.market.admin})")
    print(f"Flash loan fee: {_pct(config.market.flash_loan_fee_bps)}")
    for asset, cfg in config.assets.items():
        flags = [
            name
            for name, enabled in (
                ("active", cfg.is_active),
                ("borrow", cfg.can_borrow),
                ("collateral", cfg.can_use_as_collateral),
            )
            if enabled
        ]
        print(
            f"  {asset:<8} LTV {_pct(cfg.collateral_factor):>7}  "
            f"LT {_pct(cfg.liquidation_threshold):>7}  "
            f"bonus {_pct(cfg.liquidation_bonus):>6}  "
            f"reserve {_pct(cfg.reserve_factor):>7}  "
            f"decimals {cfg.decimals:>2}  [{', '.join(flags) or '-'}]"
        )


def _print_rates(config: AppConfig, step: int) -> None:
    step = max(1, min(step, 100))
    for asset, cfg in config.assets.items():
        model = InterestRateModel(config.interest_rates.get(asset, InterestRateParams()))
        print(f"{asset}:")
        print(f"  {'util':>6}  {'borrow APR':>10}  {'supply APR':>10}")
        for pct in range(0, 101, step):
            borrows = pct * WAD // 100
            borrow_rate = model.borrow_rate(model.utilization(borrows, WAD))
            supply_rate = model.supply_rate(borrows, WAD, cfg.reserve_factor)
            print(
                f"  {pct:>5}%  {float(from_wad(borrow_rate)) * 100:>9.2f}%  "
                f"{float(from_wad(supply_rate)) * 100:>9.2f}%"
            )


async def _print_prices(config: AppConfig) -> None:
    source = build_price_source(config.price_oracle)
    if isinstance(source, PythPriceSource):
        await source.refresh()

    now = int(time.time())
    for asset in config.assets:
        try:
            price, updated_at = source.get_price_with_timestamp(asset)
        except ProtocolError as e:
            print(f"  {asset:<8} unavailable ({e})")
            continue
        print(f"  {asset:<8} ${from_wad(price):,.4f}  ({now - updated_at}s old)")


def _run(args: argparse.Namespace) -> None:
    """Execute the selected command."""
    configure_logging(args.log_level)
    config = load_config(args.config)

    if args.command == "markets":
        _print_markets(config)
    elif args.command == "rates":
        _print_rates(config, args.step)
    elif args.command == "prices":
        asyncio.run(_print_prices(config))
    else:
        build_parser().print_help()
        sys.exit(1)


def main() -> None:
    """Entry point."""
    parser = build_parser()
    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    try:
        _run(args)
    except (FileNotFoundError, ValueError, ProtocolError) as e:
        logger.error("%s", e)
        sys.exit(2)
