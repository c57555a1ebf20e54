"""
Helper utilities for the paper trading engine
"""

import re
from datetime import datetime, timezone
from typing import Optional

QUOTE_CURRENCIES = ("USDT", "USDC", "BUSD", "BTC", "ETH")


def format_currency(amount: float, currency: str = "USD") -> str:
    """Format amount as currency"""
    return f"${amount:,.2f}" if currency == "USD" else f"{amount:,.2f} {currency}"


def format_price(price: Optional[float]) -> str:
    """Format a price with precision that suits its magnitude"""
    if price is None:
        return "n/a"
    if price > 1000:
        return f"${price:,.0f}"
    if price > 1:
        return f"${price:.2f}"
    return f"${price:.4f}"


def utc_now() -> datetime:
    """Get current UTC time"""
    return datetime.now(timezone.utc)


def ensure_utc(dt: datetime) -> datetime:
    """Attach UTC to naive datetimes"""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse an ISO timestamp, returning None for empty or malformed input"""
    if not value:
        return None
    try:
        return ensure_utc(datetime.fromisoformat(str(value).replace("Z", "+00:00")))
    except ValueError:
        return None


def normalize_pair(pair: Optional[str]) -> str:
    """
    Normalize a coin pair to exchange format

    Args:
        pair: Coin pair (e.g., "BTC-USDT", "btcusdt", "BTC/USDT", "BTC")

    Returns:
        Normalized pair (e.g., "BTC/USDT"), or "" for empty input
    """
    if not pair:
        return ""
    pair = pair.strip().upper().replace("-", "/").replace("_", "/")
    if "/" in pair:
        return pair
    pair = re.sub(r"[^A-Z0-9]", "", pair)
    for quote in QUOTE_CURRENCIES:
        if pair.endswith(quote) and len(pair) > len(quote):
            return f"{pair[:-len(quote)]}/{quote}"
    return f"{pair}/USDT"


def ticker_of(pair: str) -> str:
    """Base asset of a normalized pair (BTC/USDT -> BTC)"""
    return normalize_pair(pair).split("/")[0]


def timeframe_hours(timeframe: str) -> float:
    """Length of a ccxt-style timeframe in hours ('15m' -> 0.25, '4h' -> 4, '1d' -> 24)"""
    units = {"m": 1 / 60, "h": 1.0, "d": 24.0, "w": 168.0}
    match = re.fullmatch(r"(\d+)([mhdw])", timeframe.strip().lower())
    if not match:
        raise ValueError(f"Unsupported timeframe: {timeframe}")
    return int(match.group(1)) * units[match.group(2)]
