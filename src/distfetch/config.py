"""
Configuration loading for distfetch.

Settings live in a YAML file (`distfetch.yaml` in the platform config
directory unless a path is given). Missing keys fall back to DEFAULT_CONFIG.
"""

import os
from typing import Any, Dict, Optional

import platformdirs
import yaml

from distfetch.constants import (
    APP_NAME,
    CONFIG_FILE_NAME,
    DEFAULT_CONNECT_RETRIES,
    DEFAULT_DOWNLOAD_SOURCES,
    DEFAULT_FETCH_LIMIT,
    DEFAULT_REQUEST_TIMEOUT,
)
from distfetch.download.fetchers import build_fetcher
from distfetch.download.interfaces import Fetcher
from distfetch.exceptions import ConfigFileError
from distfetch.log_utils import logger, set_log_level

DEFAULT_CONFIG: Dict[str, Any] = {
    "DOWNLOAD_SOURCES": list(DEFAULT_DOWNLOAD_SOURCES),
    "DIST_PATH": "",
    "USER_AGENT": "",
    "FETCH_LIMIT": DEFAULT_FETCH_LIMIT,
    "REQUEST_TIMEOUT": DEFAULT_REQUEST_TIMEOUT,
    "CONNECT_RETRIES": DEFAULT_CONNECT_RETRIES,
    "LOG_LEVEL": "",
}


def get_config_file() -> str:
    """Path of the configuration file in the platform config directory."""
    return os.path.join(platformdirs.user_config_dir(APP_NAME), CONFIG_FILE_NAME)


def load_config(config_path: Optional[str] = None) -> Dict[str, Any]:
    """
    Load the configuration YAML merged over DEFAULT_CONFIG.

    Parameters:
        config_path (Optional[str]): Explicit file to read; defaults to get_config_file().

    Returns:
        Dict[str, Any]: Configuration values. Defaults only when the file does not exist.

    Raises:
        ConfigFileError: The file cannot be read, is not valid YAML, or is not a mapping.
    """
    path = config_path or get_config_file()
    config = dict(DEFAULT_CONFIG)
    if not os.path.exists(path):
        logger.debug(f"No configuration file at {path}; using defaults")
        return config

    try:
        with open(path, "r", encoding="utf-8") as f:
            loaded = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigFileError(f"Invalid YAML in {path}", details=str(e)) from e
    except OSError as e:
        raise ConfigFileError(f"Cannot read {path}", details=str(e)) from e

    if loaded is None:
        return config
    if not isinstance(loaded, dict):
        raise ConfigFileError(
            f"Invalid configuration in {path}", details="top level must be a mapping"
        )

    config.update(loaded)
    if isinstance(config["DOWNLOAD_SOURCES"], str):
        config["DOWNLOAD_SOURCES"] = [config["DOWNLOAD_SOURCES"]]
    if config.get("LOG_LEVEL"):
        set_log_level(str(config["LOG_LEVEL"]))
    logger.debug(f"Loaded configuration from {path}")
    return config


def fetcher_from_config(config: Dict[str, Any]) -> Fetcher:
    """
    Build the fetcher chain described by a loaded configuration.

    Raises:
        ConfigurationError: No usable download source is configured.
        ValidationError: A configured gateway URL is malformed.
    """
    return build_fetcher(
        config.get("DOWNLOAD_SOURCES"),
        dist_path=config.get("DIST_PATH") or "",
        user_agent=config.get("USER_AGENT") or "",
        fetch_limit=config.get("FETCH_LIMIT"),
        timeout=config.get("REQUEST_TIMEOUT"),
        retries=int(config.get("CONNECT_RETRIES") or 0),
    )
