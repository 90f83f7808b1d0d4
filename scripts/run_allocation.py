"""Risk budget allocation runner.

Usage:
    python scripts/run_allocation.py
    python scripts/run_allocation.py --total-risk 3 --max-risk 1 --share 0.8
    python scripts/run_allocation.py --data-dir data --deposit 5000 --currency EUR --no-prices
    python scripts/run_allocation.py --watch
"""
from __future__ import annotations

import argparse
import os
import sys
import time
from pathlib import Path

import yaml
from dotenv import load_dotenv

_PROJECT_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(_PROJECT_ROOT))

from riskcalc.allocation import AllocationSettings
from riskcalc.core.config import AccountConfig, Settings, load_settings
from riskcalc.core.exceptions import ConfigError
from riskcalc.core.logger import setup_logging_from_config
from riskcalc.data.store import TradeStore
from riskcalc.main import RiskCalculator
from riskcalc.reporting import format_report


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Risk budget allocation across saved trades")
    parser.add_argument(
        "--config", type=str, default=None,
        help="YAML config (default: $RISKCALC_CONFIG or config/config.yaml)",
    )
    parser.add_argument("--data-dir", type=str, default=None, help="Trade store directory")
    parser.add_argument("--total-risk", type=float, default=None, help="Total risk budget, %%")
    parser.add_argument("--max-risk", type=float, default=None, help="Per-trade cap, %%")
    parser.add_argument("--share", type=float, default=None, help="Usefulness share, 0..1")
    parser.add_argument("--deposit", type=float, default=None, help="Account deposit")
    parser.add_argument("--currency", type=str, default=None, help="Account currency")
    parser.add_argument(
        "--no-prices", action="store_true",
        help="Skip live quotes; only manual prices are used",
    )
    parser.add_argument(
        "--watch", action="store_true",
        help="Re-quote and re-allocate every pricing.refresh_interval_seconds",
    )
    return parser.parse_args()


def load_config(path: str | None) -> Settings:
    config_path = Path(path or os.getenv("RISKCALC_CONFIG") or _PROJECT_ROOT / "config" / "config.yaml")
    if not config_path.exists():
        if path:
            raise ConfigError(f"Configuration file not found: {config_path}")
        return Settings()
    try:
        return load_settings(config_path)
    except (ValueError, yaml.YAMLError) as exc:
        raise ConfigError(f"Invalid configuration {config_path}: {exc}") from exc


def main() -> None:
    args = parse_args()
    load_dotenv(_PROJECT_ROOT / "config" / ".env")

    try:
        settings = load_config(args.config)
    except ConfigError as exc:
        print(f"[ERROR] {exc}")
        sys.exit(1)

    account_overrides = {
        k: v for k, v in (("deposit", args.deposit), ("currency", args.currency)) if v is not None
    }
    if account_overrides:
        try:
            account = AccountConfig.model_validate(
                {**settings.account.model_dump(), **account_overrides},
            )
        except ValueError as exc:
            print(f"[ERROR] Invalid account override: {exc}")
            sys.exit(1)
        settings = settings.model_copy(update={"account": account})
    setup_logging_from_config(settings.system)

    store = TradeStore(args.data_dir or settings.storage.data_dir)
    calculator = RiskCalculator(settings, store=store)

    override = None
    if any(v is not None for v in (args.total_risk, args.max_risk, args.share)):
        base = calculator.resolve_settings().to_dict()
        base.update({
            k: v for k, v in (
                ("total_risk", args.total_risk),
                ("max_risk", args.max_risk),
                ("usefulness_share", args.share),
            ) if v is not None
        })
        override = AllocationSettings.from_raw(base)

    live_prices = settings.pricing.enabled and not args.no_prices
    interval = settings.pricing.refresh_interval_seconds

    while True:
        if live_prices:
            calculator.refresh_prices(force=True)
        report = calculator.run(override)
        print(format_report(report))
        if not args.watch or interval <= 0:
            break
        try:
            time.sleep(interval)
        except KeyboardInterrupt:
            break


if __name__ == "__main__":
    main()
