#!/usr/bin/env python3
"""
Decode Pump.fun events from a saved transaction log dump

Input is a JSON file holding either a plain list of log lines or a
getTransaction RPC response (logs read from meta.logMessages).

Usage:
    python -m pumplog.scripts.decode_logs tx.json
    python -m pumplog.scripts.decode_logs tx.json --slot 301234567 --bot-wallet <ADDR>
    python -m pumplog.scripts.decode_logs tx.json --config config/config.yml --diagnostics
    python -m pumplog.scripts.decode_logs tx.json --quote-buy 1000000000 --metrics
"""

import argparse
import json
import sys
from pathlib import Path
from typing import List, Optional

from solders.pubkey import Pubkey

from pumplog.core.account_cache import AccountCache
from pumplog.core.bonding_curve import get_token_price, quote_buy
from pumplog.core.config import ConfigurationManager, PricingConfig, ScannerConfig
from pumplog.core.events import DomainEvent, TradeInfo
from pumplog.core.logger import get_logger, setup_logging, setup_logging_from_config
from pumplog.core.metrics import get_metrics, init_metrics
from pumplog.services.log_processor import LogEventProcessor, TransactionLogs


logger = get_logger(__name__)


def load_transaction(path: Path, slot: Optional[int]) -> TransactionLogs:
    """Read a log dump into TransactionLogs"""
    with open(path, 'r') as f:
        raw = json.load(f)

    if isinstance(raw, list):
        tx = TransactionLogs(signature=path.stem, slot=0, logs=[str(line) for line in raw])
    elif isinstance(raw, dict):
        tx = TransactionLogs.from_rpc_response(raw)
    else:
        raise ValueError(f"Unsupported log dump format in {path}")

    if slot is not None:
        tx.slot = slot
    return tx


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Decode Pump.fun events from transaction logs")
    parser.add_argument("file", type=Path, help="JSON log dump (list of lines or getTransaction response)")
    parser.add_argument("--slot", type=int, default=None, help="Slot to stamp on decoded records")
    parser.add_argument("--bot-wallet", default=None, help="Wallet whose trades are reported as bot trades")
    parser.add_argument("--config", default=None, help="YAML config file")
    parser.add_argument(
        "--format",
        choices=["json", "console"],
        default=None,
        help="Log format (default: logging.format from --config, else console)"
    )
    parser.add_argument("--diagnostics", action="store_true", help="Emit Error events for undecodable payloads")
    parser.add_argument("--include-failed", action="store_true", help="Scan transactions that failed on-chain")
    parser.add_argument(
        "--quote-buy",
        type=int,
        default=None,
        metavar="LAMPORTS",
        help="Quote a buy of this size on every traded curve, using pricing.default_slippage_bps"
    )
    parser.add_argument("--metrics", action="store_true", help="Print collected metrics to stderr")
    return parser


def quote_traded_curves(
    events: List[DomainEvent],
    curve_cache: AccountCache,
    amount_sol: int,
    slippage_bps: int
) -> List[dict]:
    """Buy quotes against each traded mint's post-trade reserves, one per mint"""
    quotes = []
    seen = set()

    for event in events:
        if not isinstance(event.data, TradeInfo) or event.data.mint in seen:
            continue
        mint = event.data.mint
        seen.add(mint)

        curve = curve_cache.get(mint)
        if curve is None:
            continue
        try:
            quote = quote_buy(curve, amount_sol, slippage_bps)
        except ValueError as e:
            logger.warning("quote_unavailable", mint=mint, error=str(e))
            continue

        quotes.append({
            "event": "buy_quote",
            "mint": str(mint),
            "sol_in": quote.sol_in,
            "tokens_out": quote.tokens_out,
            "max_sol_cost": quote.max_sol_cost,
            "slippage_bps": slippage_bps,
            "price_impact_pct": quote.price_impact_pct,
            "token_price": get_token_price(curve.virtual_sol_reserves, curve.virtual_token_reserves),
        })

    return quotes


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.quote_buy is not None and args.quote_buy <= 0:
        parser.error("--quote-buy must be a positive number of lamports")

    bot_wallet = None
    if args.bot_wallet:
        try:
            bot_wallet = Pubkey.from_string(args.bot_wallet)
        except ValueError:
            parser.error(f"--bot-wallet is not a valid address: {args.bot_wallet}")

    if args.config:
        try:
            app_config = ConfigurationManager(args.config).load_config()
        except (OSError, ValueError) as e:
            setup_logging(level="WARNING", format=args.format or "console")
            logger.error("config_unreadable", config=args.config, error=str(e))
            return 1
        setup_logging_from_config(app_config.log_config, format=args.format)
        init_metrics(
            app_config.metrics_config.enable_histogram,
            app_config.metrics_config.histogram_buckets
        )
        scanner_config = app_config.scanner_config
        pricing_config = app_config.pricing_config
    else:
        setup_logging(level="WARNING", format=args.format or "console")
        scanner_config = ScannerConfig()
        pricing_config = PricingConfig()

    if bot_wallet is not None:
        scanner_config.bot_wallet = bot_wallet
    if args.diagnostics:
        scanner_config.emit_decode_errors = True
    if args.include_failed:
        scanner_config.skip_failed_transactions = False

    try:
        tx = load_transaction(args.file, args.slot)
    except (OSError, ValueError) as e:
        logger.error("log_dump_unreadable", file=str(args.file), error=str(e))
        return 1

    curve_cache = AccountCache(ttl_seconds=pricing_config.account_cache_ttl_s)
    processor = LogEventProcessor(scanner_config, curve_cache=curve_cache)
    events = processor.process_transaction(tx)

    for event in events:
        print(json.dumps(event.to_dict()))

    if args.quote_buy is not None:
        quotes = quote_traded_curves(
            events,
            curve_cache,
            args.quote_buy,
            pricing_config.default_slippage_bps
        )
        for quote in quotes:
            print(json.dumps(quote))

    stats = processor.get_stats()
    logger.info("decode_complete", events=len(events), dropped=stats.instructions_dropped)

    if args.metrics:
        print(json.dumps(get_metrics().export_metrics(), indent=2), file=sys.stderr)

    return 0


if __name__ == "__main__":
    sys.exit(main())
