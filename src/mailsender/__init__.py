"""SMTP mail sender exposed through a small JSON HTTP service.

This package sends plain-text email messages over SMTP and wraps that
capability in a single ``POST /sendmail`` endpoint. Features include:

- Three connection modes: no authentication, PLAIN authentication over a
  plain connection, PLAIN authentication over TLS
- TLS policies trusting the system store, a pinned CA file, or nothing at all
- Validation and defaulting of sender credentials before dispatch
- JSON configuration file, FastAPI REST API, click CLI

Example:
    Sending one message programmatically::

        from mailsender.config_loader import load_config
        from mailsender.models import MailRequest
        from mailsender.service import MailSenderService

        service = MailSenderService(load_config("config.json"))
        request = service.validate(MailRequest.model_validate(payload))
        result = await service.send(request)

Authors:
    Softwell S.r.l.
"""

__version__ = "0.1.0"
