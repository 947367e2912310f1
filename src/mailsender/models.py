# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Pydantic models for the mail sender.

This module defines the data models used throughout the application for
validation, serialization, and type safety.

Models:
    - MailAddress: Display name plus email address
    - MailRequest: Message payload accepted by ``POST /sendmail``
    - SendResult: Outcome of a successful dispatch
    - MailSetup: SMTP dispatch configuration (``mailsetup`` section)
    - ServiceSetup: HTTP listener configuration (``servicesetup`` section)
    - ServiceConfig: Complete configuration file
"""

from __future__ import annotations

from email.utils import formataddr, parseaddr
from enum import Enum
from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, Field, model_validator


def _lower_keys(data: Any) -> Any:
    """Match JSON object keys case-insensitively, dropping explicit nulls."""
    if isinstance(data, dict):
        return {str(key).lower(): value for key, value in data.items() if value is not None}
    return data


class SendMode(str, Enum):
    """Transport entry point selected by the dispatch policy.

    Attributes:
        NO_AUTH: Plain connection without authentication.
        AUTH: PLAIN authentication over a plain connection.
        AUTH_TLS: PLAIN authentication over a TLS connection.
    """

    NO_AUTH = "no_auth"
    AUTH = "auth"
    AUTH_TLS = "auth_tls"


class MailAddress(BaseModel):
    """An email address with an optional display name.

    Accepts either an object (``{"name": ..., "address": ...}``, keys matched
    case-insensitively) or a single string such as
    ``"Jane Doe <jane@example.com>"``.
    """

    model_config = ConfigDict(frozen=True)

    name: Annotated[str, Field(default="", description="Display name")]
    address: Annotated[str, Field(default="", description="Email address")]

    @model_validator(mode="before")
    @classmethod
    def parse_wire_value(cls, data: Any) -> Any:
        if isinstance(data, str):
            name, address = parseaddr(data)
            if not address and not name:
                address = data.strip()
            return {"name": name, "address": address}
        return _lower_keys(data)

    def __str__(self) -> str:
        return formataddr((self.name, self.address))


class MailRequest(BaseModel):
    """Message payload accepted by ``POST /sendmail``.

    Attributes:
        from_addr: Sender (JSON key ``from``). An empty address is replaced
            by the configured default during validation.
        to: Recipient.
        subject: Subject line.
        body: Plain-text body.
        password: SMTP password for ``from_addr`` when authentication is used.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    from_addr: MailAddress = Field(default_factory=MailAddress, alias="from")
    to: MailAddress = Field(default_factory=MailAddress)
    subject: str = ""
    body: str = ""
    password: str = ""

    @model_validator(mode="before")
    @classmethod
    def match_keys(cls, data: Any) -> Any:
        return _lower_keys(data)


class SendResult(BaseModel):
    """Outcome of a successful dispatch."""

    bytes_written: int
    mode: SendMode


class MailSetup(BaseModel):
    """SMTP dispatch configuration, the ``mailsetup`` section of the config file.

    Attributes:
        server: SMTP server as ``host:port``.
        default_mail: Sender used when a request carries no sender.
        default_password: Password paired with ``default_mail``.
        use_insecure_tls: Skip certificate verification (takes priority over
            ``server_ca_file``).
        server_ca_file: PEM file with the CA set trusted for the SMTP server.
        use_tls: Connect over TLS (only honoured when ``use_auth`` is set).
        use_auth: Authenticate with PLAIN credentials.
        starttls: Upgrade a plain connection with STARTTLS instead of
            connecting with implicit TLS.
        timeout: Seconds allowed for each SMTP network operation.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    server: Annotated[str, Field(default="", description="SMTP server host:port")]
    default_mail: Annotated[str, Field(default="", alias="defaultmail")]
    default_password: Annotated[str, Field(default="", alias="defaultpassword")]
    use_insecure_tls: Annotated[bool, Field(default=False, alias="insecuretls")]
    server_ca_file: Annotated[str, Field(default="", alias="mailservercafile")]
    use_tls: Annotated[bool, Field(default=False, alias="usetls")]
    use_auth: Annotated[bool, Field(default=False, alias="useauth")]
    starttls: Annotated[bool, Field(default=False, description="Use STARTTLS instead of implicit TLS")]
    timeout: Annotated[float, Field(default=10.0, gt=0, description="SMTP operation timeout in seconds")]


class ServiceSetup(BaseModel):
    """HTTP listener configuration, the ``servicesetup`` section.

    Attributes:
        host: Listen address.
        port: Listen port (required, non-zero).
        cert_file: Server certificate; enables HTTPS when set.
        key_file: Private key for ``cert_file``.
        ca_file: CA used to require and verify client certificates.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    host: Annotated[str, Field(default="0.0.0.0")]
    port: Annotated[int, Field(default=0, ge=0, le=65535)]
    cert_file: Annotated[str, Field(default="", alias="certfile")]
    key_file: Annotated[str, Field(default="", alias="keyfile")]
    ca_file: Annotated[str, Field(default="", alias="cafile")]


class ServiceConfig(BaseModel):
    """Complete configuration file."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    mail: MailSetup = Field(default_factory=MailSetup, alias="mailsetup")
    setup: ServiceSetup = Field(default_factory=ServiceSetup, alias="servicesetup")
