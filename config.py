"""Application configuration module.

Reads settings from environment variables (and an optional ``.env`` file)
with defaults matching the marketplace's reference deployment.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv

from core.constants import DatabaseDefaults, HubDefaults
from core.exceptions import ConfigurationError

load_dotenv()


def _get_bool(name: str, default: bool = False) -> bool:
    """Get boolean from environment variable."""
    value = os.getenv(name)
    if value is None:
        return default
    return value.lower() in {"1", "true", "yes", "on"}


def _get_int(name: str, default: int) -> int:
    """Get integer from environment variable with fallback."""
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _get_str(name: str, default: str = "") -> str:
    """Get string from environment variable."""
    return os.getenv(name, default)


@dataclass(frozen=True)
class Config:
    environment: str
    debug: bool
    log_level: str
    log_folder: str
    database_path: str
    db_pool_size: int
    db_busy_timeout: int
    web_host: str
    web_port: int
    raffle_cut: int
    yolo_raffle_cut: int
    cancelation_fee: int
    yolo_raffle_duration: int
    qrng_file: str
    qrng_network: str
    addresses_folder: str


def _validate(config: Config) -> Config:
    for name in ("raffle_cut", "yolo_raffle_cut"):
        value = getattr(config, name)
        if not 0 <= value <= HubDefaults.MAX_PERCENTAGE:
            raise ConfigurationError(f"{name.upper()} must be between 0 and 100, got {value}")
    if config.cancelation_fee < 0:
        raise ConfigurationError("CANCELATION_FEE cannot be negative")
    if config.yolo_raffle_duration <= 0:
        raise ConfigurationError("YOLO_RAFFLE_DURATION must be positive")
    return config


def load_config() -> Config:
    """Load application configuration from environment variables.

    Returns:
        Config: Application configuration with validated values

    Raises:
        ConfigurationError: A marketplace parameter is out of range
    """
    config = Config(
        environment=_get_str("ENVIRONMENT", "development"),
        debug=_get_bool("DEBUG", False),
        log_level=_get_str("LOG_LEVEL", "INFO"),
        log_folder=_get_str("LOG_FOLDER", "logs"),
        database_path=_get_str("DATABASE_PATH", "data/fairhub.sqlite"),
        db_pool_size=_get_int("DB_POOL_SIZE", DatabaseDefaults.POOL_SIZE),
        db_busy_timeout=_get_int("DB_BUSY_TIMEOUT", DatabaseDefaults.BUSY_TIMEOUT),
        web_host=_get_str("WEB_HOST", "0.0.0.0"),
        web_port=_get_int("WEB_PORT", 5000),
        raffle_cut=_get_int("RAFFLE_CUT", HubDefaults.RAFFLE_CUT),
        yolo_raffle_cut=_get_int("YOLO_RAFFLE_CUT", HubDefaults.YOLO_RAFFLE_CUT),
        cancelation_fee=_get_int("CANCELATION_FEE", HubDefaults.CANCELATION_FEE),
        yolo_raffle_duration=_get_int("YOLO_RAFFLE_DURATION", HubDefaults.YOLO_RAFFLE_DURATION),
        qrng_file=_get_str("QRNG_FILE", "data/qrng.json"),
        qrng_network=_get_str("QRNG_NETWORK", "hardhat"),
        addresses_folder=_get_str("ADDRESSES_FOLDER", "data/addresses"),
    )

    return _validate(config)
