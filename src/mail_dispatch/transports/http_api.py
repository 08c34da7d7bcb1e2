# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""HTTP API transports for transactional email providers.

Each transport translates an ``Envelope`` into the provider's request
format and posts it with aiohttp:

- Mailgun: form API (``api``) and raw MIME endpoint (``http``)
- Mailjet: Send API v3.1
- Postmark: ``/email`` with a server token
- SendGrid: v3 ``/mail/send`` (id from the ``X-Message-Id`` header)
- Sendinblue (Brevo): v3 ``/smtp/email``
- OhMySMTP: ``/api/v1/send``

A non-2xx response raises ``TransportError`` carrying the status and an
excerpt of the body.
"""

from __future__ import annotations

import asyncio
import base64
import json
from typing import Any

import aiohttp

from ..config_loader import DispatchSettings
from ..envelope import Envelope, format_address
from ..errors import TransportError
from ..models import Address
from .base import SendReceipt, Transport, register

ERROR_EXCERPT_LENGTH = 300


def _b64(content: bytes) -> str:
    return base64.b64encode(content).decode("ascii")


class HttpApiTransport(Transport):
    """Shared request handling for JSON/form based provider APIs."""

    name = "http_api"

    def __init__(self, timeout: float = 30.0):
        self.timeout = timeout

    async def _post(
        self,
        url: str,
        *,
        headers: dict[str, str] | None = None,
        json_body: dict[str, Any] | None = None,
        data: Any = None,
        auth: aiohttp.BasicAuth | None = None,
    ) -> tuple[int, dict[str, str], Any]:
        """POST and return ``(status, headers, decoded_body)``.

        Raises:
            TransportError: On network failure, timeout or non-2xx status.
        """
        try:
            async with aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=self.timeout)) as session:
                async with session.post(url, headers=headers, json=json_body, data=data, auth=auth) as response:
                    status = response.status
                    response_headers = dict(response.headers)
                    text = await response.text()
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            raise TransportError(f"{self.name}: {str(exc) or exc.__class__.__name__}") from exc

        if not 200 <= status < 300:
            raise TransportError(
                f"{self.name} API error (HTTP {status}): {text[:ERROR_EXCERPT_LENGTH]}", status=status
            )
        try:
            payload = json.loads(text) if text else {}
        except json.JSONDecodeError:
            payload = {"body": text}
        return status, response_headers, payload

    async def _attachments(self, envelope: Envelope) -> list[tuple[str, str, bytes]]:
        return [(att.name, att.content_type, await att.read()) for att in envelope.attachments]


class MailgunApiTransport(HttpApiTransport):
    """Mailgun ``/v3/{domain}/messages`` form API."""

    name = "mailgun"

    def __init__(self, key: str, domain: str, region: str = "us", timeout: float = 30.0):
        super().__init__(timeout)
        self.key = key
        self.domain = domain
        self.base_url = "https://api.eu.mailgun.net" if region == "eu" else "https://api.mailgun.net"

    async def send(self, envelope: Envelope) -> SendReceipt:
        form = aiohttp.FormData()
        if envelope.sender:
            form.add_field("from", format_address(envelope.sender))
        for field_name, addresses in (("to", envelope.to), ("cc", envelope.cc), ("bcc", envelope.bcc)):
            for addr in addresses:
                form.add_field(field_name, format_address(addr))
        form.add_field("subject", envelope.subject)
        if envelope.text:
            form.add_field("text", envelope.text.body)
        if envelope.html:
            form.add_field("html", envelope.html.body)
        if envelope.reply_to:
            form.add_field("h:Reply-To", format_address(envelope.reply_to[0]))
        if envelope.date:
            form.add_field("h:Date", envelope.date)
        form.add_field("h:X-Priority", str(envelope.priority))
        for name, content_type, content in await self._attachments(envelope):
            form.add_field("attachment", content, filename=name, content_type=content_type)

        _, _, payload = await self._post(
            f"{self.base_url}/v3/{self.domain}/messages", data=form, auth=aiohttp.BasicAuth("api", self.key)
        )
        return SendReceipt(message_id=payload.get("id"), raw=payload)


class MailgunMimeTransport(MailgunApiTransport):
    """Mailgun ``/v3/{domain}/messages.mime`` endpoint taking a raw MIME message."""

    async def send(self, envelope: Envelope) -> SendReceipt:
        message = await envelope.to_mime()
        form = aiohttp.FormData()
        form.add_field("to", ", ".join(envelope.recipients))
        form.add_field("message", message.as_bytes(), filename="message.mime", content_type="message/rfc822")

        _, _, payload = await self._post(
            f"{self.base_url}/v3/{self.domain}/messages.mime", data=form, auth=aiohttp.BasicAuth("api", self.key)
        )
        return SendReceipt(message_id=payload.get("id"), raw=payload)


def _mailjet_address(addr: Address) -> dict[str, str]:
    item = {"Email": addr.address}
    if addr.name:
        item["Name"] = addr.name
    return item


class MailjetApiTransport(HttpApiTransport):
    """Mailjet Send API v3.1."""

    name = "mailjet"
    url = "https://api.mailjet.com/v3.1/send"

    def __init__(self, access_key: str, secret_key: str, timeout: float = 30.0):
        super().__init__(timeout)
        self.access_key = access_key
        self.secret_key = secret_key

    async def send(self, envelope: Envelope) -> SendReceipt:
        message: dict[str, Any] = {"Subject": envelope.subject}
        if envelope.sender:
            message["From"] = _mailjet_address(envelope.sender)
        for key, addresses in (("To", envelope.to), ("Cc", envelope.cc), ("Bcc", envelope.bcc)):
            if addresses:
                message[key] = [_mailjet_address(a) for a in addresses]
        if envelope.reply_to:
            message["ReplyTo"] = _mailjet_address(envelope.reply_to[0])
        if envelope.text:
            message["TextPart"] = envelope.text.body
        if envelope.html:
            message["HTMLPart"] = envelope.html.body
        attachments = await self._attachments(envelope)
        if attachments:
            message["Attachments"] = [
                {"ContentType": ctype, "Filename": name, "Base64Content": _b64(content)}
                for name, ctype, content in attachments
            ]

        _, _, payload = await self._post(
            self.url,
            json_body={"Messages": [message]},
            auth=aiohttp.BasicAuth(self.access_key, self.secret_key),
        )
        result = (payload.get("Messages") or [{}])[0]
        if result.get("Status") != "success":
            errors = result.get("Errors") or []
            detail = "; ".join(e.get("ErrorMessage", "") for e in errors) or "message rejected"
            raise TransportError(f"mailjet: {detail}")
        recipients = result.get("To") or [{}]
        message_id = recipients[0].get("MessageID")
        return SendReceipt(message_id=str(message_id) if message_id is not None else None, raw=payload)


class PostmarkApiTransport(HttpApiTransport):
    """Postmark ``/email`` endpoint."""

    name = "postmark"
    url = "https://api.postmarkapp.com/email"

    def __init__(self, server_token: str, timeout: float = 30.0):
        super().__init__(timeout)
        self.server_token = server_token

    async def send(self, envelope: Envelope) -> SendReceipt:
        body: dict[str, Any] = {"Subject": envelope.subject}
        if envelope.sender:
            body["From"] = format_address(envelope.sender)
        for key, addresses in (("To", envelope.to), ("Cc", envelope.cc), ("Bcc", envelope.bcc)):
            if addresses:
                body[key] = ", ".join(format_address(a) for a in addresses)
        if envelope.reply_to:
            body["ReplyTo"] = format_address(envelope.reply_to[0])
        if envelope.text:
            body["TextBody"] = envelope.text.body
        if envelope.html:
            body["HtmlBody"] = envelope.html.body
        attachments = await self._attachments(envelope)
        if attachments:
            body["Attachments"] = [
                {"Name": name, "Content": _b64(content), "ContentType": ctype}
                for name, ctype, content in attachments
            ]

        headers = {"X-Postmark-Server-Token": self.server_token, "Accept": "application/json"}
        _, _, payload = await self._post(self.url, headers=headers, json_body=body)
        if payload.get("ErrorCode", 0) != 0:
            raise TransportError(f"postmark: {payload.get('Message', 'message rejected')}")
        return SendReceipt(message_id=payload.get("MessageID"), raw=payload)


def _email_name_pair(addr: Address) -> dict[str, str]:
    item = {"email": addr.address}
    if addr.name:
        item["name"] = addr.name
    return item


class SendgridApiTransport(HttpApiTransport):
    """SendGrid v3 ``/mail/send``."""

    name = "sendgrid"
    url = "https://api.sendgrid.com/v3/mail/send"

    def __init__(self, key: str, timeout: float = 30.0):
        super().__init__(timeout)
        self.key = key

    async def send(self, envelope: Envelope) -> SendReceipt:
        personalization: dict[str, Any] = {}
        for key, addresses in (("to", envelope.to), ("cc", envelope.cc), ("bcc", envelope.bcc)):
            if addresses:
                personalization[key] = [_email_name_pair(a) for a in addresses]
        body: dict[str, Any] = {"personalizations": [personalization], "subject": envelope.subject}
        if envelope.sender:
            body["from"] = _email_name_pair(envelope.sender)
        if envelope.reply_to:
            body["reply_to"] = _email_name_pair(envelope.reply_to[0])
        # text/plain must precede text/html
        content = []
        if envelope.text:
            content.append({"type": "text/plain", "value": envelope.text.body})
        if envelope.html:
            content.append({"type": "text/html", "value": envelope.html.body})
        if content:
            body["content"] = content
        attachments = await self._attachments(envelope)
        if attachments:
            body["attachments"] = [
                {"content": _b64(data), "filename": name, "type": ctype, "disposition": "attachment"}
                for name, ctype, data in attachments
            ]

        headers = {"Authorization": f"Bearer {self.key}"}
        _, response_headers, payload = await self._post(self.url, headers=headers, json_body=body)
        message_id = next((v for k, v in response_headers.items() if k.lower() == "x-message-id"), None)
        return SendReceipt(message_id=message_id, raw=payload)


class SendinblueApiTransport(HttpApiTransport):
    """Sendinblue (Brevo) v3 ``/smtp/email``."""

    name = "sendinblue"
    url = "https://api.brevo.com/v3/smtp/email"

    def __init__(self, key: str, timeout: float = 30.0):
        super().__init__(timeout)
        self.key = key

    async def send(self, envelope: Envelope) -> SendReceipt:
        body: dict[str, Any] = {"subject": envelope.subject}
        if envelope.sender:
            body["sender"] = _email_name_pair(envelope.sender)
        for key, addresses in (("to", envelope.to), ("cc", envelope.cc), ("bcc", envelope.bcc)):
            if addresses:
                body[key] = [_email_name_pair(a) for a in addresses]
        if envelope.reply_to:
            body["replyTo"] = _email_name_pair(envelope.reply_to[0])
        if envelope.text:
            body["textContent"] = envelope.text.body
        if envelope.html:
            body["htmlContent"] = envelope.html.body
        attachments = await self._attachments(envelope)
        if attachments:
            body["attachment"] = [{"content": _b64(data), "name": name} for name, _ctype, data in attachments]

        headers = {"api-key": self.key, "Accept": "application/json"}
        _, _, payload = await self._post(self.url, headers=headers, json_body=body)
        return SendReceipt(message_id=payload.get("messageId"), raw=payload)


class OhMySmtpApiTransport(HttpApiTransport):
    """OhMySMTP ``/api/v1/send``."""

    name = "ohmysmtp"
    url = "https://app.ohmysmtp.com/api/v1/send"

    def __init__(self, api_token: str, timeout: float = 30.0):
        super().__init__(timeout)
        self.api_token = api_token

    async def send(self, envelope: Envelope) -> SendReceipt:
        body: dict[str, Any] = {"subject": envelope.subject}
        if envelope.sender:
            body["from"] = format_address(envelope.sender)
        for key, addresses in (("to", envelope.to), ("cc", envelope.cc), ("bcc", envelope.bcc)):
            if addresses:
                body[key] = ",".join(format_address(a) for a in addresses)
        if envelope.reply_to:
            body["replyto"] = format_address(envelope.reply_to[0])
        if envelope.text:
            body["textbody"] = envelope.text.body
        if envelope.html:
            body["htmlbody"] = envelope.html.body
        attachments = await self._attachments(envelope)
        if attachments:
            body["attachments"] = [
                {"name": name, "content": _b64(data), "content_type": ctype}
                for name, ctype, data in attachments
            ]

        headers = {"OhMySMTP-Server-Token": self.api_token, "Accept": "application/json"}
        _, _, payload = await self._post(self.url, headers=headers, json_body=body)
        message_id = payload.get("id")
        return SendReceipt(message_id=str(message_id) if message_id is not None else None, raw=payload)


@register("mailgun", "api")
def _mailgun_api(config, settings: DispatchSettings) -> MailgunApiTransport:
    return MailgunApiTransport(config.key, config.domain, config.region, settings.http_timeout)


@register("mailgun", "http")
def _mailgun_http(config, settings: DispatchSettings) -> MailgunMimeTransport:
    return MailgunMimeTransport(config.key, config.domain, config.region, settings.http_timeout)


@register("mailjet", "api")
def _mailjet_api(config, settings: DispatchSettings) -> MailjetApiTransport:
    return MailjetApiTransport(config.access_key, config.secret_key, settings.http_timeout)


@register("postmark", "api")
def _postmark_api(config, settings: DispatchSettings) -> PostmarkApiTransport:
    return PostmarkApiTransport(config.key, settings.http_timeout)


@register("sendgrid", "api")
def _sendgrid_api(config, settings: DispatchSettings) -> SendgridApiTransport:
    return SendgridApiTransport(config.key, settings.http_timeout)


@register("sendinblue", "api")
def _sendinblue_api(config, settings: DispatchSettings) -> SendinblueApiTransport:
    return SendinblueApiTransport(config.key, settings.http_timeout)


@register("ohmysmtp", "api")
def _ohmysmtp_api(config, settings: DispatchSettings) -> OhMySmtpApiTransport:
    return OhMySmtpApiTransport(config.api_token, settings.http_timeout)
