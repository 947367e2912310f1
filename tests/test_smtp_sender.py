import ssl

import aiosmtplib
import pytest

from mailsender.errors import (
    AddressFormatError,
    AuthenticationError,
    MessageRejectedError,
    RecipientRejectedError,
    SenderRejectedError,
    SMTPConnectionError,
)
from mailsender.message import format_message
from mailsender.smtp_sender import SMTPSender, split_host_port
from mailsender.tls import insecure


class DummySMTP:
    def __init__(
        self, hostname=None, port=None, use_tls=False, start_tls=None, tls_context=None, timeout=None, sock=None
    ):
        self.hostname = hostname
        self.port = port
        self.sock = sock
        self.use_tls = use_tls
        self.start_tls = start_tls
        self.tls_context = tls_context
        self.timeout = timeout
        self.commands = []
        self.connected = False
        self.closed = False
        self.failures = {}

    def _step(self, name, *args):
        self.commands.append((name, *args))
        if name in self.failures:
            raise self.failures[name]

    async def connect(self):
        self._step("connect")
        self.connected = True

    async def ehlo(self):
        self._step("ehlo")

    async def auth_plain(self, user, password):
        self._step("auth_plain", user, password)

    async def mail(self, sender):
        self._step("mail", sender)

    async def rcpt(self, recipient):
        self._step("rcpt", recipient)

    async def data(self, message):
        self._step("data", message)

    async def quit(self):
        self._step("quit")

    def close(self):
        self.closed = True


@pytest.fixture
def failures():
    return {}


class DummySocket:
    def __init__(self, address, timeout):
        self.address = address
        self.timeout = timeout
        self.closed = False

    def close(self):
        self.closed = True


@pytest.fixture(autouse=True)
def dialed(monkeypatch):
    sockets = []

    def create_connection(address, timeout=None):
        sock = DummySocket(address, timeout)
        sockets.append(sock)
        return sock

    monkeypatch.setattr("mailsender.smtp_sender.socket.create_connection", create_connection)
    return sockets


@pytest.fixture(autouse=True)
def patch_aiosmtplib(monkeypatch, failures):
    created = []

    def factory(**kwargs):
        smtp = DummySMTP(**kwargs)
        smtp.failures = failures
        created.append(smtp)
        return smtp

    monkeypatch.setattr("mailsender.smtp_sender.aiosmtplib.SMTP", factory)
    return created


def _names(smtp):
    return [command[0] for command in smtp.commands]


class TestSplitHostPort:
    def test_host_and_port(self):
        assert split_host_port("smtp.example.com:587") == ("smtp.example.com", 587)

    def test_ipv6(self):
        assert split_host_port("[::1]:25") == ("::1", 25)

    @pytest.mark.parametrize(
        "server",
        ["no-port", "smtp.example.com:", ":25", "a:b:25", "smtp.example.com:smtp", "host:70000", "[::1]25", "[::1:25"],
    )
    def test_malformed(self, server):
        with pytest.raises(AddressFormatError):
            split_host_port(server)


@pytest.mark.asyncio
async def test_send_without_auth_runs_envelope(patch_aiosmtplib, mail_request):
    written = await SMTPSender(timeout=5.0).send_without_auth("smtp.local:25", mail_request)

    smtp = patch_aiosmtplib[0]
    payload = format_message(mail_request)
    assert written == len(payload)
    assert smtp.hostname == "smtp.local"
    assert smtp.port == 25
    assert smtp.use_tls is False
    assert smtp.start_tls is False
    assert smtp.timeout == 5.0
    assert smtp.commands == [
        ("connect",),
        ("mail", "src@server.com"),
        ("rcpt", "dest@server.com"),
        ("data", payload),
        ("quit",),
    ]
    assert smtp.closed is True


@pytest.mark.asyncio
async def test_send_with_auth_authenticates_plain(patch_aiosmtplib, mail_request):
    await SMTPSender().send_with_auth("smtp.local:587", "user@server.com", "pw", mail_request)

    smtp = patch_aiosmtplib[0]
    assert smtp.use_tls is False
    assert smtp.start_tls is False
    assert _names(smtp) == ["connect", "ehlo", "auth_plain", "mail", "rcpt", "data", "quit"]
    assert ("auth_plain", "user@server.com", "pw") in smtp.commands


@pytest.mark.asyncio
async def test_send_with_auth_tls_uses_implicit_tls(patch_aiosmtplib, dialed, mail_request):
    await SMTPSender().send_with_auth_tls("smtp.local:465", insecure("smtp.local"), "u@s.com", "pw", mail_request)

    smtp = patch_aiosmtplib[0]
    assert dialed[0].address == ("smtp.local", 465)
    assert smtp.sock is dialed[0]
    assert smtp.hostname == "smtp.local"
    assert smtp.port is None
    assert smtp.use_tls is True
    assert smtp.start_tls is False
    assert isinstance(smtp.tls_context, ssl.SSLContext)
    assert smtp.tls_context.verify_mode == ssl.CERT_NONE
    assert _names(smtp) == ["connect", "ehlo", "auth_plain", "mail", "rcpt", "data", "quit"]


@pytest.mark.asyncio
async def test_send_with_auth_tls_starttls(patch_aiosmtplib, mail_request):
    sender = SMTPSender(starttls=True)
    await sender.send_with_auth_tls("smtp.local:587", insecure("smtp.local"), "u@s.com", "pw", mail_request)

    smtp = patch_aiosmtplib[0]
    assert smtp.use_tls is False
    assert smtp.start_tls is True


@pytest.mark.asyncio
async def test_malformed_server_fails_before_dialing(patch_aiosmtplib, mail_request):
    sender = SMTPSender()
    with pytest.raises(AddressFormatError):
        await sender.send_without_auth("no-port", mail_request)
    with pytest.raises(AddressFormatError):
        await sender.send_with_auth("no-port", "u", "p", mail_request)
    with pytest.raises(AddressFormatError):
        await sender.send_with_auth_tls("no-port", insecure("x"), "u", "p", mail_request)
    assert patch_aiosmtplib == []


@pytest.mark.asyncio
async def test_dial_failure_is_reported(patch_aiosmtplib, failures, mail_request):
    failures["connect"] = aiosmtplib.SMTPConnectError("Error connecting to smtp.local on port 25")

    with pytest.raises(SMTPConnectionError):
        await SMTPSender().send_without_auth("smtp.local:25", mail_request)

    smtp = patch_aiosmtplib[0]
    assert _names(smtp) == ["connect"]
    assert smtp.closed is True


@pytest.mark.asyncio
async def test_tls_verifies_policy_server_name(patch_aiosmtplib, dialed, mail_request):
    policy = insecure("smtp.example.com")
    await SMTPSender().send_with_auth_tls("192.0.2.10:465", policy, "u@s.com", "pw", mail_request)

    smtp = patch_aiosmtplib[0]
    assert dialed[0].address == ("192.0.2.10", 465)
    assert smtp.hostname == "smtp.example.com"


@pytest.mark.asyncio
async def test_tls_dial_failure_is_reported(patch_aiosmtplib, monkeypatch, mail_request):
    def refuse(address, timeout=None):
        raise ConnectionRefusedError("Connection refused")

    monkeypatch.setattr("mailsender.smtp_sender.socket.create_connection", refuse)

    with pytest.raises(SMTPConnectionError, match="smtp.local:465"):
        await SMTPSender().send_with_auth_tls("smtp.local:465", insecure("smtp.local"), "u", "p", mail_request)
    assert patch_aiosmtplib == []


@pytest.mark.asyncio
async def test_tls_connect_failure_closes_socket(patch_aiosmtplib, failures, dialed, mail_request):
    failures["connect"] = aiosmtplib.SMTPConnectError("Error connecting to smtp.local")

    with pytest.raises(SMTPConnectionError):
        await SMTPSender().send_with_auth_tls("smtp.local:465", insecure("smtp.local"), "u", "p", mail_request)
    assert patch_aiosmtplib[0].closed is True
    assert dialed[0].closed is True


@pytest.mark.asyncio
async def test_auth_refused(patch_aiosmtplib, failures, mail_request):
    failures["auth_plain"] = aiosmtplib.SMTPAuthenticationError(535, "Authentication credentials invalid")

    with pytest.raises(AuthenticationError) as excinfo:
        await SMTPSender().send_with_auth("smtp.local:587", "u@s.com", "bad", mail_request)

    assert excinfo.value.smtp_code == 535
    smtp = patch_aiosmtplib[0]
    assert "mail" not in _names(smtp)
    assert _names(smtp)[-1] == "quit"
    assert smtp.closed is True


@pytest.mark.parametrize(
    "step, error, expected",
    [
        ("mail", aiosmtplib.SMTPSenderRefused(550, "sender refused", "src@server.com"), SenderRejectedError),
        ("rcpt", aiosmtplib.SMTPRecipientRefused(550, "no such user", "dest@server.com"), RecipientRejectedError),
        ("data", aiosmtplib.SMTPDataError(554, "message rejected"), MessageRejectedError),
    ],
)
@pytest.mark.asyncio
async def test_envelope_rejections(patch_aiosmtplib, failures, mail_request, step, error, expected):
    failures[step] = error

    with pytest.raises(expected) as excinfo:
        await SMTPSender().send_without_auth("smtp.local:25", mail_request)

    assert excinfo.value.smtp_code == error.code
    assert excinfo.value.__cause__ is error
    smtp = patch_aiosmtplib[0]
    assert _names(smtp)[-1] == "quit"
    assert smtp.closed is True


@pytest.mark.asyncio
async def test_quit_failure_does_not_mask_success(patch_aiosmtplib, failures, mail_request):
    failures["quit"] = aiosmtplib.SMTPServerDisconnected("Connection lost")

    written = await SMTPSender().send_without_auth("smtp.local:25", mail_request)

    assert written == len(format_message(mail_request))
    assert patch_aiosmtplib[0].closed is True


@pytest.mark.asyncio
async def test_quit_failure_does_not_mask_rejection(patch_aiosmtplib, failures, mail_request):
    failures["rcpt"] = aiosmtplib.SMTPRecipientRefused(550, "no such user", "dest@server.com")
    failures["quit"] = aiosmtplib.SMTPServerDisconnected("Connection lost")

    with pytest.raises(RecipientRejectedError):
        await SMTPSender().send_without_auth("smtp.local:25", mail_request)
