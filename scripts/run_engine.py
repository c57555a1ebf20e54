#!/usr/bin/env python3
"""Entry point for the paper trading engine.

Runs one evaluation cycle and exits; schedule it externally (cron,
systemd timer) every bar or as often as the review suggests.

Usage:
    # One cycle with settings from configs/config.yaml and .env
    python scripts/run_engine.py

    # Read-only operator review, printed as JSON
    python scripts/run_engine.py --review

    # Fall back to the bold profile when the account has none set
    python scripts/run_engine.py --profile bold

    # List available risk profiles
    python scripts/run_engine.py --list-profiles
"""
import sys
import json
import argparse
from pathlib import Path

from loguru import logger

# Setup paths
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from paper_engine.data import CcxtMarketData
from paper_engine.live import (
    ConfigurationError, EngineSettings, HttpTradeRecordStore, LiveEngine, StateManager,
)
from paper_engine.risk import CircuitBreaker
from paper_engine.strategies.profiles import RISK_PROFILES
from paper_engine.utils.config import Config
from paper_engine.utils.logger import setup_logger


def list_profiles():
    print("\nAvailable risk profiles:")
    print(f"{'Profile':<10} {'Cooldown':<10} {'Shorts':<8} {'RSI':<10} {'Min signals':<12} {'Description'}")
    print("-" * 80)
    for name, p in RISK_PROFILES.items():
        rsi = f"{p.rsi_oversold:.0f}/{p.rsi_overbought:.0f}"
        print(f"{name:<10} {p.cooldown_hours:<10g} {str(p.allow_shorts):<8} {rsi:<10} "
              f"{p.min_entry_signals:<12g} {p.description}")


def build_engine(config: Config, profile: str = None) -> LiveEngine:
    """Wire collaborators from configuration."""
    try:
        api_key = config.api_key
    except ValueError as e:
        raise ConfigurationError(str(e)) from e

    settings = EngineSettings.from_config(config)
    if profile:
        settings.default_profile = profile

    store = HttpTradeRecordStore(config.api_base_url, api_key, timeout=config.request_timeout)
    return LiveEngine(
        store=store,
        market_data=CcxtMarketData(config.exchange_id),
        settings=settings,
        state_manager=StateManager(str(config.state_file)),
        breaker=CircuitBreaker(),
    )


def main() -> int:
    parser = argparse.ArgumentParser(description='Paper Trading Engine')
    parser.add_argument('--review', action='store_true',
                        help='Print a read-only review snapshot and exit')
    parser.add_argument('--profile', type=str, default=None,
                        choices=list(RISK_PROFILES.keys()),
                        help='Risk profile used when the account has none set')
    parser.add_argument('--config-dir', type=str, default='configs',
                        help='Directory holding config.yaml (default: configs)')
    parser.add_argument('--list-profiles', action='store_true',
                        help='List available risk profiles')

    args = parser.parse_args()

    if args.list_profiles:
        list_profiles()
        return 0

    try:
        config = Config(config_dir=args.config_dir)
        setup_logger(config, console=not args.review)
        engine = build_engine(config, args.profile)
    except (FileNotFoundError, ConfigurationError) as e:
        logger.error(f"❌ Startup failed: {e}")
        return 2

    try:
        if args.review:
            print(json.dumps(engine.review(), indent=2, default=str))
            return 0

        report = engine.run_cycle()
    except Exception as e:
        logger.exception(f"❌ Fatal error: {e}")
        return 1
    finally:
        engine.store.close()

    if report['errors']:
        failed = ', '.join(err['step'] for err in report['errors'])
        logger.warning(f"Cycle finished with failed steps: {failed}")
    return 0


if __name__ == '__main__':
    sys.exit(main())
