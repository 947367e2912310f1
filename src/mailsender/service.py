# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Mail sender service: validation, dispatch, logging and metrics.

:class:`MailSenderService` is the object the HTTP API and the CLI talk to. It
binds the loaded configuration to a transport and records every outcome.

Example:
    Wiring the service to the API::

        from mailsender.api import create_app
        from mailsender.config_loader import load_config
        from mailsender.service import MailSenderService

        service = MailSenderService(load_config("config.json"))
        app = create_app(service)
"""

from __future__ import annotations

from .dispatch import dispatch, select_mode
from .errors import MailSenderError, ValidationError
from .logger import get_logger
from .models import MailRequest, MailSetup, SendResult, ServiceConfig
from .prometheus import MailMetrics
from .smtp_sender import MailSender, SMTPSender
from .validation import validate_mail_request


class MailSenderService:
    """Validate and send mail requests for one configuration.

    Attributes:
        config: Loaded service configuration (read-only).
        sender: Transport used for every dispatch.
        metrics: Prometheus counters for this instance.
    """

    def __init__(
        self,
        config: ServiceConfig,
        sender: MailSender | None = None,
        metrics: MailMetrics | None = None,
    ):
        self.config = config
        self.sender = sender or SMTPSender(timeout=config.mail.timeout, starttls=config.mail.starttls)
        self.metrics = metrics or MailMetrics()
        self.logger = get_logger("MailSenderService")

    @property
    def mail_setup(self) -> MailSetup:
        return self.config.mail

    def validate(self, request: MailRequest) -> MailRequest:
        """Apply the addressing rules with the configured defaults.

        Raises:
            ValidationError: If the request breaks an addressing rule.
        """
        try:
            return validate_mail_request(request, self.mail_setup.default_mail, self.mail_setup.default_password)
        except ValidationError as exc:
            self.metrics.inc_rejected(exc.code)
            self.logger.info("Rejected mail request: %s", exc)
            raise

    async def send(self, request: MailRequest) -> SendResult:
        """Dispatch a validated ``request``.

        Raises:
            MailSenderError: Whatever the dispatch policy or transport raised.
        """
        mode = select_mode(self.mail_setup).value
        try:
            result = await dispatch(self.mail_setup, request, self.sender)
        except MailSenderError as exc:
            self.metrics.inc_error(mode, exc.code)
            self.logger.error(
                "Sending mail from %s to %s via %s failed: %s",
                request.from_addr.address,
                request.to.address,
                self.mail_setup.server,
                exc,
            )
            raise
        self.metrics.inc_sent(mode, result.bytes_written)
        self.logger.info(
            "Sent %d bytes from %s to %s via %s (%s)",
            result.bytes_written,
            request.from_addr.address,
            request.to.address,
            self.mail_setup.server,
            mode,
        )
        return result
