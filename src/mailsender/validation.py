# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Validation of mail requests before dispatch."""

from __future__ import annotations

import re

from .errors import (
    InvalidRecipientError,
    InvalidSenderError,
    MissingCredentialsError,
    MissingRecipientError,
)
from .models import MailAddress, MailRequest

# Lowercase only, 2-4 letter top level domains
EMAIL_PATTERN = re.compile(r"^[a-z0-9._%+\-]+@[a-z0-9.\-]+\.[a-z]{2,4}$")


def is_valid_email(address: str) -> bool:
    return EMAIL_PATTERN.fullmatch(address) is not None


def validate_mail_request(request: MailRequest, default_mail: str, default_password: str) -> MailRequest:
    """Check ``request`` against the addressing rules.

    A request without a sender address gets ``default_mail`` as sender and
    ``default_password`` as password; the sender display name is kept.

    Returns:
        The validated request, possibly a modified copy.

    Raises:
        MissingRecipientError: ``to.address`` is empty.
        InvalidRecipientError: ``to.address`` is not a valid address.
        InvalidSenderError: ``from.address`` is set but not a valid address.
        MissingCredentialsError: ``from.address`` is set but no password is.
    """
    if not request.to.address:
        raise MissingRecipientError()
    if not is_valid_email(request.to.address):
        raise InvalidRecipientError(f"{request.to.address} is not a valid destination address")

    if not request.from_addr.address:
        sender = MailAddress(name=request.from_addr.name, address=default_mail)
        return request.model_copy(update={"from_addr": sender, "password": default_password})
    if not is_valid_email(request.from_addr.address):
        raise InvalidSenderError(f"{request.from_addr} is not a valid mail address")
    if not request.password:
        raise MissingCredentialsError()
    return request
