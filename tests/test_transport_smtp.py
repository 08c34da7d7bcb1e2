import aiosmtplib
import pytest

from mail_dispatch.config_loader import DispatchSettings
from mail_dispatch.envelope import Envelope
from mail_dispatch.errors import TransportError
from mail_dispatch.models import MailDocument
from mail_dispatch.transports import resolve_transport
from mail_dispatch.transports.smtp import SmtpTransport


class DummySMTP:
    def __init__(self, hostname, port, start_tls=True, use_tls=False, timeout=None):
        self.hostname = hostname
        self.port = port
        self.start_tls = start_tls
        self.use_tls = use_tls
        self.timeout = timeout
        self.login_credentials = None
        self.is_connected = False
        self.sent = []
        self.quit_called = False
        self.closed = False
        self.send_error = None
        self.quit_error = None

    async def connect(self):
        self.is_connected = True

    async def login(self, user, password):
        self.login_credentials = (user, password)

    async def send_message(self, message, sender=None, recipients=None):
        if self.send_error is not None:
            raise self.send_error
        self.sent.append((message, sender, recipients))
        return {}, "250 OK queued"

    async def quit(self):
        self.quit_called = True
        if self.quit_error is not None:
            raise self.quit_error
        self.is_connected = False

    def close(self):
        self.closed = True
        self.is_connected = False


@pytest.fixture(autouse=True)
def patch_aiosmtplib(monkeypatch):
    created = []

    def factory(**kwargs):
        smtp = DummySMTP(**kwargs)
        created.append(smtp)
        return smtp

    monkeypatch.setattr("mail_dispatch.transports.smtp.aiosmtplib.SMTP", factory)
    return created


def _envelope(**overrides):
    document = {
        "from": {"address": "sender@example.com"},
        "to": [{"address": "a@example.com"}],
        "bcc": [{"address": "hidden@example.com"}],
        "subject": "Hello",
        "text": {"body": "hi", "charset": "utf-8"},
    }
    document.update(overrides)
    return Envelope.build(MailDocument.model_validate(document), [])


@pytest.mark.parametrize(
    "port, use_tls, start_tls, implicit_tls",
    [(465, True, False, True), (587, True, True, False), (25, False, False, False)],
)
def test_tls_mode_follows_port(patch_aiosmtplib, port, use_tls, start_tls, implicit_tls):
    SmtpTransport("smtp.local", port, use_tls=use_tls)._client()

    smtp = patch_aiosmtplib[0]
    assert smtp.start_tls is start_tls
    assert smtp.use_tls is implicit_tls


@pytest.mark.asyncio
async def test_send_logs_in_and_delivers_to_all_recipients(patch_aiosmtplib):
    transport = SmtpTransport("smtp.local", 587, "user", "pass", timeout=5)
    envelope = _envelope()

    receipt = await transport.send(envelope)

    smtp = patch_aiosmtplib[0]
    assert smtp.timeout == 5
    assert smtp.login_credentials == ("user", "pass")
    message, sender, recipients = smtp.sent[0]
    assert sender == "sender@example.com"
    assert recipients == ["a@example.com", "hidden@example.com"]
    assert message["Bcc"] is None
    assert smtp.quit_called is True
    assert receipt.message_id == envelope.message_id
    assert receipt.raw["response"] == "250 OK queued"


@pytest.mark.asyncio
async def test_send_without_credentials_skips_login(patch_aiosmtplib):
    await SmtpTransport("smtp.local", 25, use_tls=False).send(_envelope())
    assert patch_aiosmtplib[0].login_credentials is None


@pytest.mark.asyncio
async def test_no_valid_recipients(patch_aiosmtplib):
    envelope = _envelope(to=[{"address": "broken"}], bcc=[])

    with pytest.raises(TransportError, match="No valid recipient"):
        await SmtpTransport("smtp.local", 25).send(envelope)

    assert patch_aiosmtplib == []


@pytest.mark.asyncio
async def test_smtp_errors_become_transport_errors(patch_aiosmtplib, monkeypatch):
    transport = SmtpTransport("smtp.local", 587)
    original_client = transport._client

    def failing_client():
        smtp = original_client()
        smtp.send_error = aiosmtplib.SMTPResponseException(550, "mailbox unavailable")
        return smtp

    monkeypatch.setattr(transport, "_client", failing_client)

    with pytest.raises(TransportError, match="mailbox unavailable"):
        await transport.send(_envelope())

    assert patch_aiosmtplib[0].quit_called is True


@pytest.mark.asyncio
async def test_failed_quit_closes_connection(patch_aiosmtplib, monkeypatch):
    transport = SmtpTransport("smtp.local", 587)
    original_client = transport._client

    def client():
        smtp = original_client()
        smtp.quit_error = aiosmtplib.SMTPServerDisconnected("gone")
        return smtp

    monkeypatch.setattr(transport, "_client", client)

    await transport.send(_envelope())

    assert patch_aiosmtplib[0].closed is True


class TestBindings:
    settings = DispatchSettings(smtp_timeout=7)

    def _resolve(self, provider_config, data):
        return resolve_transport(provider_config(data), self.settings)

    def test_generic_smtp_defaults_port_from_tls(self, provider_config):
        transport = self._resolve(provider_config, {"provider": "smtp", "host": "smtp.example.com"})
        assert (transport.host, transport.port, transport.timeout) == ("smtp.example.com", 465, 7)

        plain = self._resolve(provider_config, {"provider": "smtp", "host": "smtp.example.com", "tls": False})
        assert plain.port == 25

    @pytest.mark.parametrize(
        "data, host, port, username, password",
        [
            ({"provider": "gmail", "username": "me@gmail.com", "password": "app"}, "smtp.gmail.com", 465, "me@gmail.com", "app"),
            ({"provider": "ses", "driver": "smtp", "username": "AKIA", "password": "pw", "region": "eu-west-1"},
             "email-smtp.eu-west-1.amazonaws.com", 587, "AKIA", "pw"),
            ({"provider": "mailgun", "driver": "smtp", "username": "postmaster", "password": "pw", "region": "eu"},
             "smtp.eu.mailgun.org", 587, "postmaster", "pw"),
            ({"provider": "mailjet", "driver": "smtp", "access_key": "ak", "secret_key": "sk"}, "in-v3.mailjet.com", 587, "ak", "sk"),
            ({"provider": "postmark", "driver": "smtp", "id": "tok"}, "smtp.postmarkapp.com", 587, "tok", "tok"),
            ({"provider": "sendgrid", "driver": "smtp", "key": "SG.x"}, "smtp.sendgrid.net", 587, "apikey", "SG.x"),
            ({"provider": "sendinblue", "driver": "smtp", "username": "u", "password": "p"}, "smtp-relay.brevo.com", 587, "u", "p"),
            ({"provider": "ohmysmtp", "driver": "smtp", "api_token": "t"}, "smtp.ohmysmtp.com", 587, "t", "t"),
        ],
    )
    def test_relay_bindings(self, provider_config, data, host, port, username, password):
        transport = self._resolve(provider_config, data)

        assert isinstance(transport, SmtpTransport)
        assert (transport.host, transport.port) == (host, port)
        assert (transport.username, transport.password) == (username, password)
