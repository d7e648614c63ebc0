"""Configuration loading utilities."""

from __future__ import annotations

import json
import logging
import os

from pydantic import ValidationError

from ..constants import CONFIG_FILE_DEFAULT
from .model import RelayConfig


def config_path() -> str:
    return os.environ.get("CHATRELAY_CONF_FILE", CONFIG_FILE_DEFAULT)


def load_config(path: str | os.PathLike[str] | None = None) -> RelayConfig:
    """Load and validate the relay configuration.

    Args:
        path: JSON config file; defaults to ``CHATRELAY_CONF_FILE``.

    Returns:
        The validated configuration. A missing file yields the defaults.

    Raises:
        ValueError: If the file is not valid JSON or fails validation.
    """
    path = path if path is not None else config_path()
    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError:
        logging.info(f"📁 Config file {path} not found, using defaults")
        return RelayConfig()
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON in {path}: {e}") from e

    if not isinstance(data, dict):
        raise ValueError(f"Config file {path} must contain a JSON object")
    try:
        config = RelayConfig.model_validate(data)
    except ValidationError as e:
        raise ValueError(f"Invalid configuration in {path}: {e}") from e
    logging.debug(
        f"📁 Loaded config from {path}: account={config.account.login if config.account else None}, "
        f"channels={len(config.channels)}"
    )
    return config
