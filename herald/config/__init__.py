"""Configuration module for herald."""

from herald.config.loader import get_config_path, load_config, save_config
from herald.config.schema import Config, ShellConfig

__all__ = ["Config", "ShellConfig", "get_config_path", "load_config", "save_config"]
