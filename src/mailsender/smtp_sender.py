# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""SMTP transport built on aiosmtplib.

This module owns the connection lifecycle of a single send: dial, optional
TLS, optional PLAIN authentication, the ``MAIL FROM`` / ``RCPT TO`` /
``DATA`` envelope and a best-effort ``QUIT``. Every call opens its own
connection and closes it before returning, whatever the outcome; nothing is
pooled or retried.

Three entry points mirror the connection modes:

- :meth:`SMTPSender.send_without_auth`: plain connection, no AUTH.
- :meth:`SMTPSender.send_with_auth`: plain connection, AUTH PLAIN.
- :meth:`SMTPSender.send_with_auth_tls`: TLS connection, AUTH PLAIN.

TLS behavior of :meth:`SMTPSender.send_with_auth_tls`:

- ``starttls=False`` (default): implicit TLS from the first byte.
- ``starttls=True``: plain connection upgraded with STARTTLS.

In both cases the TCP connection goes to the host in ``server`` while the
certificate is verified against ``tls_policy.server_name``.

Example:
    Sending through an authenticated TLS server::

        sender = SMTPSender(timeout=10.0)
        written = await sender.send_with_auth_tls(
            "smtp.example.com:465",
            system_trust("smtp.example.com"),
            "user@example.com",
            "secret",
            request,
        )
"""

from __future__ import annotations

import asyncio
import re
import socket
import ssl
from typing import Protocol

import aiosmtplib

from .errors import (
    AddressFormatError,
    AuthenticationError,
    MessageRejectedError,
    RecipientRejectedError,
    SenderRejectedError,
    SMTPConnectionError,
    TLSHandshakeError,
)
from .logger import get_logger
from .message import format_message
from .models import MailRequest
from .tls import TlsPolicy

logger = get_logger("SMTPSender")

_PORT_PATTERN = re.compile(r"\d{1,5}", re.ASCII)


class MailSender(Protocol):
    """Capability used by the dispatch policy to deliver a message.

    Each method returns the number of message bytes written to the data
    stream and raises a :class:`~mailsender.errors.MailSenderError` on
    failure.
    """

    async def send_without_auth(self, server: str, request: MailRequest) -> int: ...

    async def send_with_auth(self, server: str, user: str, password: str, request: MailRequest) -> int: ...

    async def send_with_auth_tls(
        self, server: str, tls_policy: TlsPolicy, user: str, password: str, request: MailRequest
    ) -> int: ...


def split_host_port(server: str) -> tuple[str, int]:
    """Split ``host:port`` (or ``[ipv6]:port``) into its parts.

    Raises:
        AddressFormatError: If the host or the numeric port is missing.
    """
    if server.startswith("["):
        end = server.find("]")
        if end < 0:
            raise AddressFormatError(f"address {server}: missing ']' in address")
        host, rest = server[1:end], server[end + 1:]
        if not rest.startswith(":"):
            raise AddressFormatError(f"address {server}: missing port in address")
        port_text = rest[1:]
    else:
        host, sep, port_text = server.rpartition(":")
        if not sep:
            raise AddressFormatError(f"address {server}: missing port in address")
        if ":" in host:
            raise AddressFormatError(f"address {server}: too many colons in address")
    if not host:
        raise AddressFormatError(f"address {server}: missing host in address")
    if not _PORT_PATTERN.fullmatch(port_text) or not 0 < int(port_text) < 65536:
        raise AddressFormatError(f"address {server}: invalid port {port_text!r}")
    return host, int(port_text)


def _is_tls_failure(exc: BaseException) -> bool:
    """Return True if ``exc`` or any exception it chains is an SSL error."""
    seen: set[int] = set()
    current: BaseException | None = exc
    while current is not None and id(current) not in seen:
        if isinstance(current, (ssl.SSLError, ssl.CertificateError)):
            return True
        seen.add(id(current))
        current = current.__cause__ or current.__context__
    return False


def _smtp_code(exc: BaseException) -> int | None:
    if isinstance(exc, aiosmtplib.SMTPResponseException):
        return exc.code
    return None


class SMTPSender:
    """Stateless SMTP transport; one connection per call.

    Attributes:
        timeout: Seconds allowed for each SMTP network operation.
        starttls: Upgrade with STARTTLS instead of implicit TLS in
            :meth:`send_with_auth_tls`.
    """

    def __init__(self, timeout: float = 10.0, starttls: bool = False):
        self.timeout = timeout
        self.starttls = starttls

    async def send_without_auth(self, server: str, request: MailRequest) -> int:
        """Deliver ``request`` without authentication over a plain connection."""
        return await self._deliver(server, request)

    async def send_with_auth(self, server: str, user: str, password: str, request: MailRequest) -> int:
        """Deliver ``request`` with AUTH PLAIN over a plain connection."""
        return await self._deliver(server, request, credentials=(user, password))

    async def send_with_auth_tls(
        self, server: str, tls_policy: TlsPolicy, user: str, password: str, request: MailRequest
    ) -> int:
        """Deliver ``request`` with AUTH PLAIN over a connection secured by ``tls_policy``."""
        return await self._deliver(server, request, tls_policy=tls_policy, credentials=(user, password))

    def _client(
        self, host: str, port: int, tls_policy: TlsPolicy | None, sock: socket.socket | None = None
    ) -> aiosmtplib.SMTP:
        """Create an unconnected client for the requested connection mode.

        - No policy: plain SMTP to ``host:port``, opportunistic STARTTLS disabled.
        - Policy: TLS over the already connected ``sock``, with the server
          certificate checked against ``tls_policy.server_name``. STARTTLS
          when ``starttls`` is set, implicit TLS otherwise.
        """
        if tls_policy is None:
            return aiosmtplib.SMTP(hostname=host, port=port, use_tls=False, start_tls=False, timeout=self.timeout)
        return aiosmtplib.SMTP(
            hostname=tls_policy.server_name,
            sock=sock,
            use_tls=not self.starttls,
            start_tls=self.starttls,
            tls_context=tls_policy.ssl_context(),
            timeout=self.timeout,
        )

    async def _deliver(
        self,
        server: str,
        request: MailRequest,
        tls_policy: TlsPolicy | None = None,
        credentials: tuple[str, str] | None = None,
    ) -> int:
        host, port = split_host_port(server)
        smtp = await self._connect(host, port, tls_policy)
        try:
            if credentials is not None:
                await self._authenticate(smtp, *credentials)
            return await self._send_envelope(smtp, request)
        finally:
            await self._quit(smtp)

    async def _dial(self, host: str, port: int) -> socket.socket:
        """Open the TCP connection that a TLS client is layered on."""
        try:
            return await asyncio.to_thread(socket.create_connection, (host, port), self.timeout)
        except OSError as exc:
            raise SMTPConnectionError(f"Error connecting to {host}:{port}: {exc}") from exc

    async def _connect(self, host: str, port: int, tls_policy: TlsPolicy | None) -> aiosmtplib.SMTP:
        """Open the connection, performing the TLS handshake when configured.

        Raises:
            TLSHandshakeError: If the handshake or certificate verification fails.
            SMTPConnectionError: For any other dial or greeting failure.
        """
        sock = await self._dial(host, port) if tls_policy is not None else None
        smtp = self._client(host, port, tls_policy, sock)
        try:
            # Outer bound in case the library timeout does not fire
            await asyncio.wait_for(smtp.connect(), timeout=self.timeout + 5.0)
        except (aiosmtplib.SMTPException, OSError, asyncio.TimeoutError) as exc:
            smtp.close()
            if sock is not None:
                sock.close()
            if _is_tls_failure(exc):
                raise TLSHandshakeError(f"TLS handshake with {host}:{port} failed: {exc}") from exc
            raise SMTPConnectionError(f"Error connecting to {host}:{port}: {exc}") from exc
        logger.debug("Connected to %s:%s", host, port)
        return smtp

    async def _authenticate(self, smtp: aiosmtplib.SMTP, user: str, password: str) -> None:
        try:
            await smtp.ehlo()
            await smtp.auth_plain(user, password)
        except (aiosmtplib.SMTPException, OSError, asyncio.TimeoutError) as exc:
            raise AuthenticationError(f"Authentication as {user} failed: {exc}", _smtp_code(exc)) from exc

    async def _send_envelope(self, smtp: aiosmtplib.SMTP, request: MailRequest) -> int:
        """Run MAIL FROM, RCPT TO and DATA, returning the bytes written."""
        sender = request.from_addr.address
        recipient = request.to.address
        try:
            await smtp.mail(sender)
        except (aiosmtplib.SMTPException, OSError, asyncio.TimeoutError) as exc:
            raise SenderRejectedError(f"MAIL FROM:<{sender}> failed: {exc}", _smtp_code(exc)) from exc
        try:
            await smtp.rcpt(recipient)
        except (aiosmtplib.SMTPException, OSError, asyncio.TimeoutError) as exc:
            raise RecipientRejectedError(f"RCPT TO:<{recipient}> failed: {exc}", _smtp_code(exc)) from exc

        payload = format_message(request)
        try:
            await smtp.data(payload)
        except (aiosmtplib.SMTPException, OSError, asyncio.TimeoutError) as exc:
            raise MessageRejectedError(f"DATA failed: {exc}", _smtp_code(exc)) from exc
        return len(payload)

    async def _quit(self, smtp: aiosmtplib.SMTP) -> None:
        """Send QUIT and close the connection, never raising."""
        try:
            await smtp.quit()
        except (aiosmtplib.SMTPException, OSError, asyncio.TimeoutError) as exc:
            logger.debug("QUIT failed, closing connection anyway: %s", exc)
        finally:
            smtp.close()
