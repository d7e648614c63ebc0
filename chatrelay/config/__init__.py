"""Configuration package exports."""

from .loader import config_path, load_config
from .model import AccountConfig, RelayConfig

__all__ = ["AccountConfig", "RelayConfig", "config_path", "load_config"]
