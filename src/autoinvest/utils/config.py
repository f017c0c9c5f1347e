"""Configuration management for IBKR Auto-Invest.

This module provides YAML configuration loading and a typed settings object
holding every tunable of the gateway client, the order protocol and the
planning engine.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

import yaml
from dotenv import load_dotenv

from autoinvest.utils.exceptions import ConfigurationError

ROOT_DIR = Path(__file__).resolve().parents[3]


class Config:
    """Simple configuration loader and accessor.

    Loads YAML configuration files and provides dict-like access to settings.

    Example:
        >>> config = Config.from_file("config/default.yaml")
        >>> log_level = config.get("logging.level", "INFO")
    """

    def __init__(self, config_dict: dict[str, Any]) -> None:
        """Initialize with configuration dictionary.

        Args:
            config_dict: Configuration data as nested dictionary
        """
        self._config = config_dict

    @classmethod
    def from_file(cls, filepath: str | Path) -> "Config":
        """Load configuration from YAML file.

        Args:
            filepath: Path to YAML configuration file

        Returns:
            Config instance with loaded configuration

        Raises:
            FileNotFoundError: If config file doesn't exist
            yaml.YAMLError: If YAML parsing fails
        """
        path = Path(filepath)
        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {filepath}")

        with open(path, "r", encoding="utf-8") as f:
            config_dict = yaml.safe_load(f)

        if config_dict is None:
            config_dict = {}

        return cls(config_dict)

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value using dot notation.

        Supports nested keys using dot notation (e.g., "gateway.base_url").

        Args:
            key: Configuration key (supports dot notation for nested keys)
            default: Default value if key not found

        Returns:
            Configuration value or default

        Example:
            >>> config.get("orders.fill_poll_interval")
            2.0
            >>> config.get("missing.key", "fallback")
            'fallback'
        """
        keys = key.split(".")
        value = self._config

        for k in keys:
            if isinstance(value, dict):
                value = value.get(k)
                if value is None:
                    return default
            else:
                return default

        return value

    def __getitem__(self, key: str) -> Any:
        """Get configuration value using bracket notation.

        Raises:
            KeyError: If key not found
        """
        value = self.get(key)
        if value is None:
            raise KeyError(f"Configuration key not found: {key}")
        return value

    def to_dict(self) -> dict[str, Any]:
        """Get the full configuration as dictionary."""
        return self._config.copy()


@dataclass
class AutoInvestSettings:
    """Typed view of every tunable used by the auto-invest engine.

    Attributes:
        gateway_url: Base URL of the Client Portal API
        request_timeout: Default per-request timeout in seconds
        max_redirects: Redirect hops followed before failing
        health_poll_interval: Gateway health poll interval in seconds
        health_poll_timeout: Gateway health poll timeout in seconds
        fill_poll_interval: Order fill poll interval in seconds
        fill_poll_timeout: Default order fill timeout in seconds
        max_confirmations: Confirmation rounds accepted per order
        quote_currency: Valuation currency of the account
        secondary_currency: Second cash currency that gets converted
        forex_pair: Forex contract symbol used for conversion (BASE.QUOTE)
        min_conversion_amount: Secondary cash below this is not converted
        conversion_fill_timeout: Fill wait for the conversion order in seconds
        min_remaining_cash: Plan walk stops once remaining cash drops below
        exchange_rate_fallback: Rate used when the gateway has none. None
            means the analysis fails instead
        store_path: YAML file holding allocations and buffer percent
        log_level: Root logging level
    """

    gateway_url: str = "https://localhost:5003/v1/api"
    request_timeout: float = 30.0
    max_redirects: int = 5
    health_poll_interval: float = 1.0
    health_poll_timeout: float = 30.0
    fill_poll_interval: float = 2.0
    fill_poll_timeout: float = 60.0
    max_confirmations: int = 5
    quote_currency: str = "USD"
    secondary_currency: str = "ILS"
    forex_pair: str = "USD.ILS"
    min_conversion_amount: float = 100.0
    conversion_fill_timeout: float = 180.0
    min_remaining_cash: float = 10.0
    exchange_rate_fallback: Optional[float] = None
    store_path: str = "data/allocations.yaml"
    log_level: str = "INFO"

    def __post_init__(self):
        """Validate settings."""
        if self.request_timeout <= 0:
            raise ConfigurationError(
                f"request_timeout must be positive, got {self.request_timeout}"
            )
        if self.max_redirects < 0:
            raise ConfigurationError(
                f"max_redirects must be >= 0, got {self.max_redirects}"
            )
        if self.max_confirmations < 1:
            raise ConfigurationError(
                f"max_confirmations must be >= 1, got {self.max_confirmations}"
            )
        for name in (
            "health_poll_interval",
            "health_poll_timeout",
            "fill_poll_interval",
            "fill_poll_timeout",
            "conversion_fill_timeout",
        ):
            if getattr(self, name) <= 0:
                raise ConfigurationError(
                    f"{name} must be positive, got {getattr(self, name)}"
                )
        if self.exchange_rate_fallback is not None and self.exchange_rate_fallback <= 0:
            raise ConfigurationError(
                "exchange_rate_fallback must be positive when set, "
                f"got {self.exchange_rate_fallback}"
            )
        if self.quote_currency.upper() == self.secondary_currency.upper():
            raise ConfigurationError(
                "quote_currency and secondary_currency must differ"
            )

    @classmethod
    def from_config(cls, config: Config) -> "AutoInvestSettings":
        """Build settings from a loaded Config, keeping defaults for gaps.

        Args:
            config: Loaded configuration

        Returns:
            AutoInvestSettings instance
        """
        defaults = cls()
        fallback = config.get("analysis.exchange_rate_fallback")
        return cls(
            gateway_url=config.get("gateway.base_url", defaults.gateway_url),
            request_timeout=float(
                config.get("gateway.request_timeout", defaults.request_timeout)
            ),
            max_redirects=int(config.get("gateway.max_redirects", defaults.max_redirects)),
            health_poll_interval=float(
                config.get("gateway.health_poll_interval", defaults.health_poll_interval)
            ),
            health_poll_timeout=float(
                config.get("gateway.health_poll_timeout", defaults.health_poll_timeout)
            ),
            fill_poll_interval=float(
                config.get("orders.fill_poll_interval", defaults.fill_poll_interval)
            ),
            fill_poll_timeout=float(
                config.get("orders.fill_poll_timeout", defaults.fill_poll_timeout)
            ),
            max_confirmations=int(
                config.get("orders.max_confirmations", defaults.max_confirmations)
            ),
            quote_currency=config.get("currencies.quote", defaults.quote_currency),
            secondary_currency=config.get(
                "currencies.secondary", defaults.secondary_currency
            ),
            forex_pair=config.get("currencies.forex_pair", defaults.forex_pair),
            min_conversion_amount=float(
                config.get("conversion.min_amount", defaults.min_conversion_amount)
            ),
            conversion_fill_timeout=float(
                config.get("conversion.fill_timeout", defaults.conversion_fill_timeout)
            ),
            min_remaining_cash=float(
                config.get("plan.min_remaining_cash", defaults.min_remaining_cash)
            ),
            exchange_rate_fallback=float(fallback) if fallback is not None else None,
            store_path=config.get("store.path", defaults.store_path),
            log_level=config.get("logging.level", defaults.log_level),
        )


def load_config(filepath: str | Path = None) -> Config:
    """Helper function to load configuration.

    Args:
        filepath: Path to YAML configuration file. If None, uses default path.

    Returns:
        Config instance
    """
    if filepath is None:
        filepath = ROOT_DIR / "config" / "default.yaml"
    return Config.from_file(filepath)


def load_settings(
    config_file: str | Path = None,
    env_file: str | Path = None,
) -> AutoInvestSettings:
    """Load settings from YAML and apply environment overrides.

    Environment variables (optionally loaded from a .env file):
        - IBKR_GATEWAY_URL: overrides gateway.base_url
        - AUTOINVEST_STORE_PATH: overrides store.path
        - AUTOINVEST_LOG_LEVEL: overrides logging.level

    Args:
        config_file: Path to YAML file. If None, uses config/default.yaml.
        env_file: Path to .env file. If None, uses .env in project root.

    Returns:
        AutoInvestSettings instance

    Raises:
        ConfigurationError: If the file is missing or values are invalid
    """
    load_dotenv(env_file if env_file is not None else ROOT_DIR / ".env")

    try:
        config = load_config(config_file)
    except FileNotFoundError as e:
        raise ConfigurationError(str(e)) from e
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid configuration file: {e}") from e

    settings = AutoInvestSettings.from_config(config)

    if os.getenv("IBKR_GATEWAY_URL"):
        settings.gateway_url = os.getenv("IBKR_GATEWAY_URL")
    if os.getenv("AUTOINVEST_STORE_PATH"):
        settings.store_path = os.getenv("AUTOINVEST_STORE_PATH")
    if os.getenv("AUTOINVEST_LOG_LEVEL"):
        settings.log_level = os.getenv("AUTOINVEST_LOG_LEVEL")

    return settings
