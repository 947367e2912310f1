# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""TLS policies for connections to the SMTP server.

Three policies are available:

- :func:`insecure`: no certificate or hostname verification. Only for
  servers explicitly configured with ``insecuretls``.
- :func:`with_ca`: verify the server chain against the CA set read from a
  PEM file, typically for self-signed deployments.
- :func:`system_trust`: verify against the platform trust store.

Policies are immutable values; :meth:`TlsPolicy.ssl_context` builds a fresh
:class:`ssl.SSLContext` every time it is called.

Example:
    Building a context for a server with a private CA::

        policy = with_ca("smtp.internal", "/etc/mailsender/ca.pem")
        context = policy.ssl_context()
"""

from __future__ import annotations

import ssl
from dataclasses import dataclass
from pathlib import Path

from .errors import CAFileNotFoundError, CAParseError
from .logger import get_logger

logger = get_logger("TlsPolicy")

PEM_CERTIFICATE_MARKER = "-----BEGIN CERTIFICATE-----"


@dataclass(frozen=True)
class TlsPolicy:
    """Base of the TLS policy variants.

    Attributes:
        server_name: Host name checked against the server certificate.
    """

    server_name: str

    def ssl_context(self) -> ssl.SSLContext:
        raise NotImplementedError


@dataclass(frozen=True)
class InsecureTls(TlsPolicy):
    """Accept any certificate presented by the server."""

    def ssl_context(self) -> ssl.SSLContext:
        context = ssl.create_default_context()
        context.check_hostname = False
        context.verify_mode = ssl.CERT_NONE
        return context


@dataclass(frozen=True)
class CAValidatedTls(TlsPolicy):
    """Trust exactly the certificates in ``ca_data`` (PEM text)."""

    ca_data: str = ""

    def ssl_context(self) -> ssl.SSLContext:
        return ssl.create_default_context(cadata=self.ca_data)


@dataclass(frozen=True)
class SystemTrustTls(TlsPolicy):
    """Trust the platform default certificate store."""

    def ssl_context(self) -> ssl.SSLContext:
        return ssl.create_default_context()


def insecure(server_name: str) -> InsecureTls:
    """Return a policy that skips certificate verification entirely."""
    return InsecureTls(server_name)


def system_trust(server_name: str) -> SystemTrustTls:
    """Return a policy that verifies the server against the platform trust store."""
    return SystemTrustTls(server_name)


def with_ca(server_name: str, ca_file: str | Path) -> CAValidatedTls:
    """Return a policy pinned to the CA certificates stored in ``ca_file``.

    Args:
        server_name: Host name checked against the server certificate.
        ca_file: Path to a PEM file holding one or more CA certificates.

    Raises:
        CAFileNotFoundError: If ``ca_file`` does not exist.
        CAParseError: If the file holds no parseable certificate.
    """
    path = Path(ca_file)
    try:
        raw = path.read_bytes()
    except FileNotFoundError as exc:
        raise CAFileNotFoundError(f"CA file not found: {path}") from exc
    except OSError as exc:
        raise CAParseError(f"CA file {path} can't be read: {exc}") from exc

    try:
        ca_data = raw.decode("ascii")
    except UnicodeDecodeError as exc:
        raise CAParseError(f"Failed to parse CA from {path}: not a PEM file") from exc
    if PEM_CERTIFICATE_MARKER not in ca_data:
        raise CAParseError(f"Failed to parse CA from {path}: no certificate found")

    policy = CAValidatedTls(server_name, ca_data)
    try:
        policy.ssl_context()
    except ssl.SSLError as exc:
        raise CAParseError(f"Failed to parse CA from {path}: {exc}") from exc
    logger.debug("Loaded CA material for %s from %s", server_name, path)
    return policy
