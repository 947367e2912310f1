# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Exception hierarchy for the mail sender.

Every error raised by the package derives from :class:`MailSenderError` and
carries a machine-readable ``code``. The HTTP layer maps
:class:`ValidationError` subclasses to client errors and every other
:class:`MailSenderError` to server errors.

Hierarchy::

    MailSenderError
    ├── AddressFormatError        malformed ``host:port``
    ├── SMTPConnectionError       dial failure
    ├── TLSHandshakeError         handshake or certificate verification failure
    ├── CAFileNotFoundError       CA file missing
    ├── CAParseError              CA file holds no usable certificate
    ├── AuthenticationError       AUTH refused
    ├── SMTPRejectedError
    │   ├── SenderRejectedError   MAIL FROM refused
    │   ├── RecipientRejectedError RCPT TO refused
    │   └── MessageRejectedError  DATA refused
    ├── ValidationError
    │   ├── MissingRecipientError
    │   ├── InvalidRecipientError
    │   ├── InvalidSenderError
    │   └── MissingCredentialsError
    └── ConfigError
"""

from __future__ import annotations


class MailSenderError(RuntimeError):
    """Base class for every error raised by the mail sender."""

    code = "mail_sender_error"

    def __init__(self, message: str):
        super().__init__(message)


class AddressFormatError(MailSenderError):
    """Raised when a server address cannot be split into host and port."""

    code = "address_format"


class SMTPConnectionError(MailSenderError):
    """Raised when the TCP connection to the SMTP server cannot be opened."""

    code = "connection_error"


class TLSHandshakeError(MailSenderError):
    """Raised when the TLS handshake or certificate verification fails."""

    code = "tls_handshake"


class CAFileNotFoundError(MailSenderError):
    code = "ca_file_not_found"


class CAParseError(MailSenderError):
    code = "ca_parse_error"


class AuthenticationError(MailSenderError):
    """Raised when the server refuses the supplied credentials."""

    code = "authentication_failed"

    def __init__(self, message: str, smtp_code: int | None = None):
        super().__init__(message)
        self.smtp_code = smtp_code


class SMTPRejectedError(MailSenderError):
    """Base for protocol level rejections during the envelope sequence."""

    code = "smtp_rejected"

    def __init__(self, message: str, smtp_code: int | None = None):
        super().__init__(message)
        self.smtp_code = smtp_code


class SenderRejectedError(SMTPRejectedError):
    code = "sender_rejected"


class RecipientRejectedError(SMTPRejectedError):
    code = "recipient_rejected"


class MessageRejectedError(SMTPRejectedError):
    code = "message_rejected"


class ValidationError(MailSenderError):
    """Base for errors found while validating a mail request."""

    code = "validation_error"


class MissingRecipientError(ValidationError):
    code = "missing_recipient"

    def __init__(self, message: str = "No destination address provided"):
        super().__init__(message)


class InvalidRecipientError(ValidationError):
    code = "invalid_recipient"


class InvalidSenderError(ValidationError):
    code = "invalid_sender"


class MissingCredentialsError(ValidationError):
    code = "missing_credentials"

    def __init__(self, message: str = "No password provided for this address"):
        super().__init__(message)


class ConfigError(MailSenderError):
    """Raised when the startup configuration is malformed or incomplete."""

    code = "config_error"
