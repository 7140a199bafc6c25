"""
config.py – Settings for talking to the stationery backend.
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import yaml

logger = logging.getLogger(__name__)

# Path to the built-in settings shipped with the package.
_DEFAULT_CONFIG_FILE = Path(__file__).parent / "default_config.yaml"

_ENV_HOST = "STATIONERY_API_HOST"
_ENV_TOKEN = "STATIONERY_API_TOKEN"
_ENV_QUEUE = "STATIONERY_QUEUE_FILE"


@dataclass
class Config:
    api_host: str = "http://localhost:5000"
    token: Optional[str] = None
    timeout: float = 15
    queue_file: Optional[str] = None
    receipt_header: str = "PYDAH GROUP OF INSTITUTIONS"
    receipt_subheader: str = "Stationery Management System"


# key → accepted type(s)
_KEYS = {
    "api_host": str,
    "timeout": (int, float),
    "queue_file": str,
    "receipt_header": str,
    "receipt_subheader": str,
}


def load_config(path: Optional[str] = None) -> Config:
    """Load settings from a YAML file, then apply environment overrides.

    If *path* is None the built-in ``default_config.yaml`` is used.

    Example::

        api_host: https://stationery.example.edu
        timeout: 20
        queue_file: /var/lib/stationery/pending.json

    Raises ``SystemExit`` with a descriptive message when the file cannot be
    read or contains an invalid entry.
    """
    file_path = Path(path) if path else _DEFAULT_CONFIG_FILE
    try:
        with open(file_path) as fh:
            raw = yaml.safe_load(fh) or {}
    except FileNotFoundError:
        logger.error("Config file not found: %s", file_path)
        raise SystemExit(f"ERROR: config file not found: {file_path}")
    except yaml.YAMLError as exc:
        logger.error("Failed to parse config %s: %s", file_path, exc)
        raise SystemExit(f"ERROR: failed to parse YAML in {file_path}: {exc}")

    if not isinstance(raw, dict):
        raise SystemExit(f"ERROR: {file_path} must contain a mapping, got {type(raw).__name__!r}")

    values = {}
    for key, value in raw.items():
        expected = _KEYS.get(key)
        if expected is None:
            logger.warning("Ignoring unknown config key %r in %s", key, file_path)
            continue
        if value is None:
            continue
        if not isinstance(value, expected) or isinstance(value, bool):
            raise SystemExit(
                f"ERROR: invalid entry in {file_path}: key '{key}' has "
                f"type {type(value).__name__!r}"
            )
        values[key] = value

    config = Config(**values)

    if os.environ.get(_ENV_HOST):
        config.api_host = os.environ[_ENV_HOST]
    if os.environ.get(_ENV_TOKEN):
        config.token = os.environ[_ENV_TOKEN]
    if os.environ.get(_ENV_QUEUE):
        config.queue_file = os.environ[_ENV_QUEUE]

    if config.queue_file:
        config.queue_file = os.path.expanduser(config.queue_file)
    config.api_host = config.api_host.rstrip("/")
    return config
