# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Configuration loader for the mail sender.

The configuration is a JSON document with two sections::

    {
        "mailsetup": {
            "server": "smtp.example.com:465",
            "defaultmail": "noreply@example.com",
            "defaultpassword": "secret",
            "insecuretls": false,
            "mailservercafile": "",
            "usetls": true,
            "useauth": true,
            "starttls": false,
            "timeout": 10
        },
        "servicesetup": {
            "port": 8080,
            "certfile": "",
            "keyfile": "",
            "cafile": ""
        }
    }

``mailsetup.server`` must be set and ``servicesetup.port`` must be non-zero.

Environment variables:
    MAILSENDER_CONFIG - Path to the config file (default: config.json)
"""

from __future__ import annotations

import json
import os
from pathlib import Path

import pydantic

from .errors import ConfigError
from .logger import get_logger
from .models import ServiceConfig

DEFAULT_CONFIG_PATH = "config.json"

logger = get_logger("ConfigLoader")


def default_config_path() -> Path:
    return Path(os.getenv("MAILSENDER_CONFIG", DEFAULT_CONFIG_PATH))


def parse_config(text: str) -> ServiceConfig:
    """Parse and check a JSON configuration document.

    Raises:
        ConfigError: If the document is not valid JSON, does not match the
            schema, has no mail server or has no service port.
    """
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ConfigError(f"Invalid JSON config: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError("Invalid JSON config: expected an object")

    try:
        config = ServiceConfig.model_validate(data)
    except pydantic.ValidationError as exc:
        raise ConfigError(f"Invalid config: {exc}") from exc

    if not config.mail.server:
        raise ConfigError("Invalid Mail setup")
    if config.setup.port == 0:
        raise ConfigError("Invalid Setup format")
    return config


def load_config(path: str | Path | None = None) -> ServiceConfig:
    """Read and parse the configuration file.

    Args:
        path: Config file path; defaults to :func:`default_config_path`.

    Raises:
        ConfigError: If the file is missing, unreadable or invalid.
    """
    config_path = Path(path) if path is not None else default_config_path()
    if not config_path.exists():
        raise ConfigError(f"Config file not found: {config_path}")
    try:
        text = config_path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"Error reading config {config_path}: {exc}") from exc

    config = parse_config(text)
    logger.info("Loaded config from %s (mail server %s)", config_path, config.mail.server)
    return config
