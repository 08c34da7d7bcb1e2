"""Tests for the Maildocker gateway document and client."""

import asyncio
import base64
import json

import pytest
from aioresponses import aioresponses
from yarl import URL

from mail_dispatch.attachments import ResolvedAttachment
from mail_dispatch.errors import TransportError
from mail_dispatch.gateway import MaildockerClient, build_gateway_document
from mail_dispatch.models import MailDocument

GATEWAY_URL = "http://gateway.example.com:8080/api/maildocker/v1/mail/"


def _document(**overrides):
    document = {
        "from": {"address": "sender@example.com"},
        "to": [{"address": "a@example.com", "name": "Ann"}],
        "subject": "Hello",
    }
    document.update(overrides)
    return MailDocument.model_validate(document)


def _client(**kwargs):
    return MaildockerClient("key", "secret", host="http://gateway.example.com", port=8080, **kwargs)


class TestBuildGatewayDocument:
    @pytest.mark.asyncio
    async def test_from_name_defaults_to_address(self):
        payload = await build_gateway_document(_document(), [])
        assert payload["from"] == {"email": "sender@example.com", "name": "sender@example.com"}

    @pytest.mark.asyncio
    async def test_invalid_from_is_omitted(self):
        payload = await build_gateway_document(_document(**{"from": {"address": "broken"}}), [])
        assert "from" not in payload

    @pytest.mark.asyncio
    async def test_empty_fields_are_suppressed(self):
        payload = await build_gateway_document(_document(), [])
        assert set(payload) == {"from", "to", "subject"}
        assert payload["to"] == [{"email": "a@example.com", "name": "Ann"}]

    @pytest.mark.asyncio
    async def test_first_cc_is_promoted_when_no_valid_to(self):
        document = _document(
            to=[],
            cc=[{"address": "a@b.com"}],
            bcc=[{"address": "c@d.com"}],
        )

        payload = await build_gateway_document(document, [])

        assert payload["to"] == [{"email": "a@b.com"}]
        assert "cc" not in payload
        assert payload["bcc"] == [{"email": "c@d.com"}]

    @pytest.mark.asyncio
    async def test_bcc_is_promoted_when_no_cc(self):
        document = _document(to=[{"address": "invalid"}], bcc=[{"address": "x@example.com"}, {"address": "y@example.com"}])

        payload = await build_gateway_document(document, [])

        assert payload["to"] == [{"email": "x@example.com"}]
        assert payload["bcc"] == [{"email": "y@example.com"}]

    @pytest.mark.asyncio
    async def test_bodies_reply_to_date_and_attachments(self):
        document = _document(
            text={"body": "plain", "charset": "utf-8"},
            html={"body": "<b>html</b>", "charset": "utf-8"},
            replyTo={"address": "reply@example.com", "name": "Desk"},
            date="Mon, 06 Jan 2025 10:00:00 +0000",
        )
        attachments = [ResolvedAttachment(name="a.txt", content_type="text/plain", body=b"hello")]

        payload = await build_gateway_document(document, attachments)

        assert payload["text"] == "plain"
        assert payload["html"] == "<b>html</b>"
        assert payload["replyTo"] == "reply@example.com"
        assert payload["date"] == "Mon, 06 Jan 2025 10:00:00 +0000"
        assert payload["attachments"] == [
            {"name": "a.txt", "type": "text/plain", "content": base64.b64encode(b"hello").decode()}
        ]


class TestMaildockerClient:
    def test_defaults(self):
        client = MaildockerClient("key", "secret")
        assert client.mail_url == "https://ecentry.io:443/api/maildocker/v1/mail/"
        assert client.proxy is None

    def test_proxy_url(self):
        assert _client(proxy={"host": "proxy.local", "port": 3128}).proxy == "http://proxy.local:3128"
        assert _client(proxy={"host": "https://proxy.local", "port": 3128}).proxy == "https://proxy.local:3128"

    @pytest.mark.asyncio
    async def test_send_success(self):
        client = _client(proxy={"host": "proxy.local", "port": 3128})
        with aioresponses() as m:
            m.post(GATEWAY_URL, status=200, payload={"id": "md-1", "status": "queued"})

            result = await client.send({"subject": "Hello"})

            request = m.requests[("POST", URL(GATEWAY_URL))][0]
            expected_auth = "Basic " + base64.b64encode(b"key:secret").decode()
            assert request.kwargs["headers"]["Authorization"] == expected_auth
            assert request.kwargs["headers"]["Content-Type"] == "application/json"
            assert request.kwargs["proxy"] == "http://proxy.local:3128"
            assert json.loads(request.kwargs["data"]) == {"subject": "Hello"}

        assert result.ok is True
        assert result.message == "OK"
        assert result.extra == {"id": "md-1", "status": "queued"}

    @pytest.mark.asyncio
    async def test_user_message_is_a_rejection(self):
        with aioresponses() as m:
            m.post(GATEWAY_URL, status=400, payload={"user_message": "Sender domain not verified"})
            result = await _client().send({})

        assert result.ok is False
        assert result.message == "Sender domain not verified"
        assert result.code == "gateway_rejected"

    @pytest.mark.asyncio
    async def test_server_error_raises(self):
        with aioresponses() as m:
            m.post(GATEWAY_URL, status=502, body="Bad Gateway")
            with pytest.raises(TransportError) as exc_info:
                await _client().send({})

        assert exc_info.value.status == 502

    @pytest.mark.asyncio
    async def test_error_status_without_user_message_is_ok(self):
        with aioresponses() as m:
            m.post(GATEWAY_URL, status=500, payload={"detail": "queued for retry"})
            result = await _client().send({})

        assert result.ok is True
        assert result.extra == {"detail": "queued for retry"}

    @pytest.mark.asyncio
    async def test_non_object_response_is_folded(self):
        with aioresponses() as m:
            m.post(GATEWAY_URL, status=200, payload=["md-1", "md-2"])
            result = await _client().send({})

        assert result.ok is True
        assert result.extra == {"response": ["md-1", "md-2"]}

    @pytest.mark.asyncio
    async def test_timeout_raises(self):
        with aioresponses() as m:
            m.post(GATEWAY_URL, exception=asyncio.TimeoutError())
            with pytest.raises(TransportError, match="timed out after 2.5s"):
                await _client(timeout=2.5).send({})
