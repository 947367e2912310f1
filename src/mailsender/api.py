"""FastAPI application factory for the mail sender.

This module provides the REST interface of the service:

- ``POST /sendmail``: validate and send one message
- ``GET /health``: liveness probe
- ``GET /metrics``: Prometheus metrics

Every call to :func:`create_app` returns a new, independent application bound
to the given service; no routing or service state lives at module level.

Responses of ``/sendmail`` are plain text:

- ``200 OK`` with body ``OK``
- ``400`` with the error message for malformed JSON or a rejected request
- ``405`` for any method other than POST
- ``500`` with the error message when dispatch fails

Example:
    Creating and running the API application::

        from mailsender.api import create_app
        from mailsender.service import MailSenderService

        app = create_app(MailSenderService(config))

        # Run with uvicorn
        uvicorn.run(app, host="0.0.0.0", port=8080)
"""

from typing import AsyncContextManager, Callable, Optional
import logging

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import PlainTextResponse, Response

from .errors import MailSenderError, ValidationError
from .models import MailRequest
from .service import MailSenderService

logger = logging.getLogger(__name__)

METHOD_NOT_ALLOWED_MESSAGE = "Sorry, only POST allowed!"


def get_service(request: Request) -> MailSenderService:
    """Return the service bound to the application handling ``request``."""
    service = getattr(request.app.state, "service", None)
    if service is None:
        raise HTTPException(500, "Service not initialized")
    return service


def _describe_validation_error(exc: RequestValidationError) -> str:
    messages = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        message = error.get("msg", "invalid value")
        messages.append(f"{location}: {message}" if location else message)
    return "; ".join(messages) or "Invalid request body"


def create_app(
    svc: MailSenderService,
    lifespan: Optional[Callable[[FastAPI], AsyncContextManager]] = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Parameters
    ----------
    svc:
        Instance of :class:`mailsender.service.MailSenderService` that
        validates and sends the requests.
    lifespan:
        Optional lifespan context manager for startup/shutdown events.

    Returns
    -------
    FastAPI
        A configured application ready to be served by Uvicorn or any ASGI
        server.
    """
    api = FastAPI(title="Mail Sender", lifespan=lifespan)
    api.state.service = svc

    @api.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """Reject undecodable bodies with a plain-text 400.

        Only locations and messages are logged; the body and the offending
        input values may carry the SMTP password.
        """
        message = _describe_validation_error(exc)
        logger.error(f"Validation error on {request.method} {request.url.path}: {message}")
        return PlainTextResponse(message, status_code=400)

    @api.get("/health")
    async def health():
        """Health check endpoint for container monitoring."""
        return {"status": "ok"}

    @api.get("/metrics")
    async def metrics(service: MailSenderService = Depends(get_service)):
        """Expose Prometheus metrics collected by the service."""
        return Response(content=service.metrics.generate_latest(), media_type="text/plain; version=0.0.4")

    @api.post("/sendmail", response_class=PlainTextResponse)
    async def send_mail(payload: MailRequest, service: MailSenderService = Depends(get_service)):
        """Validate ``payload`` and send it through the configured SMTP server."""
        try:
            request = service.validate(payload)
        except ValidationError as exc:
            return PlainTextResponse(str(exc), status_code=400)
        try:
            await service.send(request)
        except MailSenderError as exc:
            return PlainTextResponse(str(exc), status_code=500)
        return PlainTextResponse("OK")

    @api.api_route("/sendmail", methods=["GET", "PUT", "PATCH", "DELETE"], include_in_schema=False)
    async def send_mail_wrong_method():
        return PlainTextResponse(METHOD_NOT_ALLOWED_MESSAGE, status_code=405)

    return api
