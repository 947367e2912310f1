# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Formatting of the SMTP ``DATA`` payload.

The payload is plain text: ``From``, ``To`` and ``Subject`` header lines, an
empty line, then the body, with CRLF line endings throughout. No MIME
structure is produced.
"""

from __future__ import annotations

import re

from .models import MailRequest

CRLF = "\r\n"
_LINE_BREAK = re.compile(r"\r\n|\r|\n")


def format_message(request: MailRequest) -> bytes:
    """Build the wire-ready message for ``request``.

    Address headers are rendered as ``name <address>`` when a display name is
    present, otherwise as the bare address. Headers are always emitted in the
    order From, To, Subject.
    """
    headers = (
        ("From", str(request.from_addr)),
        ("To", str(request.to)),
        ("Subject", request.subject),
    )
    message = "".join(f"{name}: {value}{CRLF}" for name, value in headers)
    message += CRLF + _LINE_BREAK.sub(CRLF, request.body)
    return message.encode("utf-8")
