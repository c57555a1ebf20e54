"""
Configuration management for the paper trading engine
Loads and validates configuration from YAML files and environment variables
"""

import os
from pathlib import Path
from typing import Any, Dict, List, Optional
import yaml
from dotenv import load_dotenv


class Config:
    """Configuration manager for the paper trading engine"""

    def __init__(self, config_dir: str = "configs", project_root: Optional[Path] = None):
        """
        Initialize configuration manager

        Args:
            config_dir: Directory containing configuration files
            project_root: Root the config directory is resolved against
        """
        self.config_dir = Path(config_dir)
        self.project_root = Path(project_root) if project_root else Path(__file__).parent.parent.parent

        # Load environment variables
        load_dotenv(self.project_root / ".env")

        self.main_config = self._load_yaml("config.yaml")

    def _load_yaml(self, filename: str) -> Dict[str, Any]:
        """Load YAML configuration file"""
        config_path = self.project_root / self.config_dir / filename
        if not config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        with open(config_path, "r") as f:
            return yaml.safe_load(f) or {}

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get configuration value by dot-notation key

        Args:
            key: Configuration key in dot notation (e.g., 'engine.board_id')
            default: Default value if key not found

        Returns:
            Configuration value
        """
        keys = key.split(".")
        value = self.main_config

        for k in keys:
            if isinstance(value, dict) and k in value:
                value = value[k]
            else:
                return default

        return value

    def get_env(self, key: str, default: Any = None) -> Any:
        """Get environment variable"""
        return os.getenv(key, default)

    # Record store
    @property
    def api_base_url(self) -> str:
        """Base URL of the trade record store"""
        return self.get_env("RECORD_STORE_URL", self.get("record_store.base_url", "http://localhost:3000"))

    @property
    def api_key(self) -> str:
        """Get record store API key from environment"""
        key = self.get_env("RECORD_STORE_API_KEY")
        if not key:
            raise ValueError(
                "RECORD_STORE_API_KEY not set in .env file. "
                "Copy .env.example to .env and add your record store key."
            )
        return key

    @property
    def request_timeout(self) -> float:
        return float(self.get("record_store.timeout_seconds", 10.0))

    # Engine
    @property
    def board_id(self) -> int:
        return int(self.get_env("BOARD_ID", self.get("engine.board_id", 1)))

    @property
    def default_risk_profile(self) -> str:
        """Risk profile used when the account setting cannot be read"""
        return self.get_env("DEFAULT_RISK_PROFILE", self.get("engine.default_risk_profile", "balanced"))

    @property
    def max_positions(self) -> int:
        return int(self.get("engine.max_positions", 5))

    @property
    def pinned_symbols(self) -> List[str]:
        return self.get("symbols.pinned", ["BTC/USDT", "ETH/USDT", "SOL/USDT"])

    @property
    def core_symbols(self) -> List[str]:
        """Symbols re-queued for re-entry immediately after an exit"""
        return self.get("symbols.core", ["BTC/USDT", "ETH/USDT", "SOL/USDT"])

    @property
    def hedge_symbol(self) -> str:
        return self.get("symbols.hedge", "PAXG/USDT")

    @property
    def reference_symbol(self) -> str:
        return self.get("symbols.reference", "BTC/USDT")

    @property
    def correlation_groups(self) -> Dict[str, List[str]]:
        return self.get("correlation_groups", {})

    # Market data
    @property
    def exchange_id(self) -> str:
        return self.get("market_data.exchange", "binance")

    @property
    def timeframe(self) -> str:
        return self.get("market_data.timeframe", "4h")

    @property
    def candle_limit(self) -> int:
        return int(self.get("market_data.candle_limit", 60))

    @property
    def fetch_delay_seconds(self) -> float:
        """Courtesy delay between consecutive candle fetches"""
        return float(self.get("market_data.fetch_delay_seconds", 0.2))

    # Files
    @property
    def state_file(self) -> Path:
        return self.project_root / self.get_env("STATE_FILE", self.get("engine.state_file", "state/engine_state.json"))

    @property
    def news_file(self) -> Path:
        return self.project_root / self.get("review.news_file", "state/news.json")

    @property
    def logs_dir(self) -> Path:
        """Get logs directory path"""
        logs_path = self.project_root / "logs"
        logs_path.mkdir(parents=True, exist_ok=True)
        return logs_path

    # Logging Configuration
    @property
    def log_level(self) -> str:
        """Get log level"""
        return self.get_env("LOG_LEVEL", self.get("logging.level", "INFO"))

    def __repr__(self) -> str:
        return f"Config(store={self.api_base_url}, board={self.board_id})"


# Global configuration instance
_config = None


def get_config() -> Config:
    """Get global configuration instance (singleton)"""
    global _config
    if _config is None:
        _config = Config()
    return _config
