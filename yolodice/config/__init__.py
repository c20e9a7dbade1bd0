"""Configuration module for yolodice."""

from yolodice.config.loader import get_config_path, load_config, save_config
from yolodice.config.schema import ClientConfig

__all__ = ["ClientConfig", "load_config", "save_config", "get_config_path"]
