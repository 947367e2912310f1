# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Dispatch policy: choose the transport entry point for a configuration.

Decision table, evaluated in order:

1. ``use_auth`` is false: :meth:`MailSender.send_without_auth`. TLS settings
   are ignored.
2. ``use_auth`` without ``use_tls``: :meth:`MailSender.send_with_auth` with
   the request sender and password.
3. ``use_auth`` with ``use_tls``: pick a TLS policy, then
   :meth:`MailSender.send_with_auth_tls`. ``use_insecure_tls`` wins over
   ``server_ca_file``, which wins over the system trust store.

Exactly one attempt is made; every error propagates to the caller.
"""

from __future__ import annotations

import asyncio

from .logger import get_logger
from .models import MailRequest, MailSetup, SendMode, SendResult
from .smtp_sender import MailSender, split_host_port
from .tls import TlsPolicy, insecure, system_trust, with_ca

logger = get_logger("Dispatch")


def select_mode(config: MailSetup) -> SendMode:
    if not config.use_auth:
        return SendMode.NO_AUTH
    if not config.use_tls:
        return SendMode.AUTH
    return SendMode.AUTH_TLS


def build_tls_policy(config: MailSetup) -> TlsPolicy:
    """Build the TLS policy for ``config.server``.

    Raises:
        AddressFormatError: If ``config.server`` is not ``host:port``.
        CAFileNotFoundError: If the configured CA file is missing.
        CAParseError: If the configured CA file holds no certificate.
    """
    host, _port = split_host_port(config.server)
    if config.use_insecure_tls:
        logger.warning("Certificate verification disabled for %s", host)
        return insecure(host)
    if config.server_ca_file:
        return with_ca(host, config.server_ca_file)
    return system_trust(host)


async def dispatch(config: MailSetup, request: MailRequest, sender: MailSender) -> SendResult:
    """Deliver a validated ``request`` according to ``config``.

    Args:
        config: SMTP dispatch configuration.
        request: Request already passed through validation.
        sender: Transport implementing :class:`MailSender`.

    Returns:
        SendResult with the bytes written and the mode used.

    Raises:
        MailSenderError: Any transport or TLS policy error, unchanged.
    """
    mode = select_mode(config)
    server = config.server
    user = request.from_addr.address
    logger.debug("Dispatching to %s in mode %s", server, mode.value)

    if mode is SendMode.NO_AUTH:
        written = await sender.send_without_auth(server, request)
    elif mode is SendMode.AUTH:
        written = await sender.send_with_auth(server, user, request.password, request)
    else:
        # CA material is read from disk
        tls_policy = await asyncio.to_thread(build_tls_policy, config)
        written = await sender.send_with_auth_tls(server, tls_policy, user, request.password, request)

    return SendResult(bytes_written=written, mode=mode)
