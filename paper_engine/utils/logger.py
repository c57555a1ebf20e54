"""
Logging configuration for the paper trading engine

Three loguru sinks:
- console, colorized
- logs/paper_engine.log, everything at the configured level
- logs/journal.log, trade journal entries only (records bound with
  trade_id), so the journal survives record store outages
"""

import sys
from typing import Optional
from loguru import logger

from .config import Config, get_config

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan> - <level>{message}</level>"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}"
JOURNAL_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | #{extra[trade_id]} {extra[entry_type]} | {message}"


def is_journal_record(record) -> bool:
    return "trade_id" in record["extra"]


def setup_logger(config: Optional[Config] = None, console: bool = True):
    """
    Configure loguru sinks for an engine run.

    Args:
        config: Configuration (defaults to the global instance)
        console: Also log to stderr; off for --review so stdout stays clean JSON

    Returns:
        The configured loguru logger
    """
    config = config or get_config()
    logger.remove()

    if console:
        logger.add(sys.stderr, format=CONSOLE_FORMAT, level=config.log_level, colorize=True)

    log_file = config.logs_dir / "paper_engine.log"
    logger.add(log_file, rotation="10 MB", retention="30 days", compression="zip",
               format=FILE_FORMAT, level=config.log_level)

    journal_file = config.logs_dir / "journal.log"
    logger.add(journal_file, rotation="1 week", retention="90 days",
               format=JOURNAL_FORMAT, level="INFO", filter=is_journal_record)

    logger.debug(f"Logging to {log_file} (journal: {journal_file}) at {config.log_level}")
    return logger
