from unittest.mock import AsyncMock, MagicMock

import pytest
from botocore.exceptions import ClientError, EndpointConnectionError

from mail_dispatch.attachments import ResolvedAttachment
from mail_dispatch.config_loader import DispatchSettings
from mail_dispatch.envelope import Envelope
from mail_dispatch.errors import TransportError
from mail_dispatch.models import MailDocument
from mail_dispatch.transports import resolve_transport
from mail_dispatch.transports.ses import SesTransport


@pytest.fixture
def ses_client(monkeypatch):
    client = AsyncMock()
    client.send_email.return_value = {"MessageId": "0100018c-ses"}
    context = MagicMock()
    context.__aenter__ = AsyncMock(return_value=client)
    context.__aexit__ = AsyncMock(return_value=False)
    session = MagicMock()
    session.client.return_value = context
    session_cls = MagicMock(return_value=session)
    monkeypatch.setattr("mail_dispatch.transports.ses.aioboto3.Session", session_cls)
    client.session_cls = session_cls
    client.session = session
    return client


def _envelope(attachments=()):
    document = MailDocument.model_validate(
        {
            "from": {"address": "shop@example.com", "name": "Shop"},
            "to": [{"address": "ann@example.com"}],
            "bcc": [{"address": "audit@example.com"}],
            "replyTo": {"address": "help@example.com"},
            "subject": "Receipt",
            "text": {"body": "plain", "charset": "utf-8"},
        }
    )
    return Envelope.build(document, list(attachments))


@pytest.mark.asyncio
async def test_simple_content_without_attachments(ses_client):
    transport = SesTransport("AKIA", "secret", region="eu-west-1")

    receipt = await transport.send(_envelope())

    ses_client.session_cls.assert_called_once_with(
        aws_access_key_id="AKIA", aws_secret_access_key="secret", region_name="eu-west-1"
    )
    assert ses_client.session.client.call_args.args == ("sesv2",)
    request = ses_client.send_email.await_args.kwargs
    assert request["FromEmailAddress"] == "Shop <shop@example.com>"
    assert request["Destination"]["ToAddresses"] == ["ann@example.com"]
    assert request["Destination"]["BccAddresses"] == ["audit@example.com"]
    assert request["ReplyToAddresses"] == ["help@example.com"]
    assert request["Content"]["Simple"]["Subject"]["Data"] == "Receipt"
    assert request["Content"]["Simple"]["Body"]["Text"]["Data"] == "plain"
    assert receipt.message_id == "0100018c-ses"


@pytest.mark.asyncio
async def test_attachments_switch_to_raw(ses_client):
    attachment = ResolvedAttachment(name="r.txt", content_type="text/plain", body=b"hello")

    await SesTransport("AKIA", "secret").send(_envelope([attachment]))

    raw = ses_client.send_email.await_args.kwargs["Content"]["Raw"]["Data"]
    assert b"Subject: Receipt" in raw
    assert b'filename="r.txt"' in raw


@pytest.mark.asyncio
async def test_raw_only_mode(ses_client):
    await SesTransport("AKIA", "secret", raw_only=True).send(_envelope())
    assert "Raw" in ses_client.send_email.await_args.kwargs["Content"]


@pytest.mark.asyncio
async def test_client_error_becomes_transport_error(ses_client):
    ses_client.send_email.side_effect = ClientError(
        {"Error": {"Code": "MessageRejected", "Message": "Email address is not verified."}}, "SendEmail"
    )

    with pytest.raises(TransportError, match="Email address is not verified"):
        await SesTransport("AKIA", "secret").send(_envelope())


@pytest.mark.asyncio
async def test_connection_error_becomes_transport_error(ses_client):
    ses_client.send_email.side_effect = EndpointConnectionError(endpoint_url="https://email.us-east-1.amazonaws.com")

    with pytest.raises(TransportError, match="ses"):
        await SesTransport("AKIA", "secret").send(_envelope())


@pytest.mark.parametrize("driver, raw_only", [("api", False), ("http", True)])
def test_ses_bindings(ses_client, provider_config, driver, raw_only):
    config = provider_config({"provider": "ses", "driver": driver, "access_key": "AKIA", "secret_key": "s"})

    transport = resolve_transport(config, DispatchSettings())

    assert isinstance(transport, SesTransport)
    assert transport.raw_only is raw_only
    assert transport.region == "us-east-1"
