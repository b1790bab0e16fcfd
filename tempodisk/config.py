"""Configuration loading from YAML."""

import logging
from pathlib import Path
from typing import Any

import yaml

from .models import AdapterConfig

logger = logging.getLogger(__name__)


def _non_negative_int(data: dict[str, Any], key: str, default: int) -> int:
    """Read an integer that may be 0, e.g. poll_interval where 0 means keypress mode."""
    value = data.get(key, default)
    try:
        value = int(value)
    except (ValueError, TypeError):
        logger.warning("Invalid %s value: %s", key, value)
        return default
    if value < 0:
        logger.warning("Invalid %s value: %s", key, value)
        return default
    return value


def load_config(config_path: Path) -> AdapterConfig:
    """Load configuration from a YAML file."""
    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with open(config_path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f)

    if not data:
        data = {}

    if not isinstance(data, dict):
        logger.warning("Ignoring configuration that is not a mapping: %s", config_path)
        data = {}

    defaults = AdapterConfig()

    api_port = data.get("api_port")
    if api_port is not None:
        try:
            api_port = int(api_port)
        except (ValueError, TypeError):
            logger.warning("Invalid api_port value: %s", api_port)
            api_port = None

    adapter = data.get("adapter")
    if adapter is not None:
        adapter = str(adapter)

    config = AdapterConfig(
        display_name=str(data.get("display_name", defaults.display_name)),
        description=str(data.get("description", defaults.description)),
        poll_interval=_non_negative_int(data, "poll_interval", defaults.poll_interval),
        api_port=api_port,
        adapter=adapter,
    )
    logger.info(
        "Loaded configuration: %s (poll interval %ds)",
        config.display_name,
        config.poll_interval,
    )
    return config
