"""Shared fixtures for the mail sender tests."""

import pytest

from mailsender.models import MailAddress, MailRequest, MailSetup, ServiceConfig, ServiceSetup


class RecordingSender:
    """MailSender double recording every call and returning canned sizes."""

    def __init__(self, written: int = 10, error: Exception | None = None):
        self.calls = []
        self.written = written
        self.error = error

    async def _record(self, *call):
        self.calls.append(call)
        if self.error is not None:
            raise self.error
        return self.written

    async def send_without_auth(self, server, request):
        return await self._record("send_without_auth", server, request)

    async def send_with_auth(self, server, user, password, request):
        return await self._record("send_with_auth", server, user, password, request)

    async def send_with_auth_tls(self, server, tls_policy, user, password, request):
        return await self._record("send_with_auth_tls", server, tls_policy, user, password, request)

    @property
    def methods(self):
        return [call[0] for call in self.calls]


@pytest.fixture
def recording_sender():
    return RecordingSender()


@pytest.fixture
def mail_request():
    return MailRequest(
        from_addr=MailAddress(address="src@server.com"),
        to=MailAddress(address="dest@server.com"),
        subject="Greetings",
        body="Just a test mail\nOn two lines",
        password="secret",
    )


@pytest.fixture
def mail_setup():
    return MailSetup(
        server="exampleserver.com:654",
        default_mail="mail@exampleserver.com",
        default_password="secret",
    )


@pytest.fixture
def service_config(mail_setup):
    return ServiceConfig(mail=mail_setup, setup=ServiceSetup(port=8080))


@pytest.fixture
def sender_factory():
    return RecordingSender
