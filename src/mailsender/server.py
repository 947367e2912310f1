# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""HTTP listener startup for the mail sender.

Listener modes, chosen from ``servicesetup``:

- no ``certfile``: plain HTTP
- ``certfile`` and ``keyfile``: HTTPS
- ``certfile``, ``keyfile`` and ``cafile``: HTTPS requiring client
  certificates signed by ``cafile`` (mutual TLS)

Usage:
    mailsender serve --config /etc/mailsender/config.json

Environment variables:
    MAILSENDER_CONFIG: Path to the JSON config (default: config.json)
    MAILSENDER_LOG_LEVEL: Logging level (default: INFO)
"""

from __future__ import annotations

import ssl
from pathlib import Path
from typing import Any

import uvicorn

from .api import create_app
from .errors import ConfigError
from .logger import get_logger
from .models import ServiceConfig, ServiceSetup
from .service import MailSenderService

logger = get_logger("Server")


def _require_file(kind: str, file_name: str) -> str:
    if not Path(file_name).is_file():
        raise ConfigError(f"{kind} {file_name} can't be used: file not found")
    return file_name


def build_server_options(setup: ServiceSetup, host: str | None = None) -> dict[str, Any]:
    """Translate ``servicesetup`` into keyword arguments for :func:`uvicorn.run`.

    Raises:
        ConfigError: If a configured certificate, key or CA file is missing,
            or a key or CA file is given without a certificate.
    """
    options: dict[str, Any] = {"host": host or setup.host, "port": setup.port}
    if not setup.cert_file:
        if setup.ca_file:
            raise ConfigError("CA file for client certificates requires certfile and keyfile")
        return options

    if not setup.key_file:
        raise ConfigError("KeyFile is required when certfile is set")
    options["ssl_certfile"] = _require_file("CertFile", setup.cert_file)
    options["ssl_keyfile"] = _require_file("KeyFile", setup.key_file)
    if setup.ca_file:
        options["ssl_ca_certs"] = _require_file("CA file", setup.ca_file)
        options["ssl_cert_reqs"] = ssl.CERT_REQUIRED
    return options


def run(config: ServiceConfig, host: str | None = None, log_level: str = "info") -> None:
    """Serve the API for ``config`` until interrupted."""
    options = build_server_options(config.setup, host)
    app = create_app(MailSenderService(config))
    scheme = "https" if "ssl_certfile" in options else "http"
    logger.info(
        "Listening on %s://%s:%s%s",
        scheme,
        options["host"],
        options["port"],
        " (client certificates required)" if "ssl_ca_certs" in options else "",
    )
    uvicorn.run(app, log_level=log_level, **options)
