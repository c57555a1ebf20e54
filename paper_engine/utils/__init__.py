"""Utilities: configuration, logging and helpers."""

from .config import Config, get_config
from .helpers import normalize_pair, utc_now

__all__ = ['Config', 'get_config', 'normalize_pair', 'utc_now']
