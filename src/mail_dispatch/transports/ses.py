# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Amazon SES transport using the SESv2 API through aioboto3.

Two bindings share this class:

- ``ses/api``: structured ``Simple`` content, switching to raw MIME when
  the message carries attachments.
- ``ses/http``: always posts the rendered raw MIME message.

The SES ``smtp`` driver is served by the SMTP transport.
"""

from __future__ import annotations

import aioboto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from ..config_loader import DispatchSettings
from ..envelope import Envelope, format_address
from ..errors import TransportError
from .base import SendReceipt, Transport, register


class SesTransport(Transport):
    """Deliver an envelope with ``sesv2.send_email``.

    Attributes:
        region: AWS region hosting the SES identity.
        raw_only: Always send raw MIME content.
        timeout: Connect and read timeout in seconds.
    """

    name = "ses"

    def __init__(
        self,
        access_key: str,
        secret_key: str,
        region: str = "us-east-1",
        raw_only: bool = False,
        timeout: float = 30.0,
    ):
        self._session = aioboto3.Session(
            aws_access_key_id=access_key,
            aws_secret_access_key=secret_key,
            region_name=region,
        )
        self.region = region
        self.raw_only = raw_only
        # single attempt: retries are left to the caller
        self._client_config = Config(
            retries={"max_attempts": 1, "mode": "standard"},
            connect_timeout=timeout,
            read_timeout=timeout,
        )

    async def _content(self, envelope: Envelope) -> dict:
        if self.raw_only or envelope.attachments:
            message = await envelope.to_mime()
            return {"Raw": {"Data": message.as_bytes()}}

        body = {}
        if envelope.text:
            body["Text"] = {"Data": envelope.text.body, "Charset": envelope.text.charset}
        if envelope.html:
            body["Html"] = {"Data": envelope.html.body, "Charset": envelope.html.charset}
        return {"Simple": {"Subject": {"Data": envelope.subject, "Charset": "UTF-8"}, "Body": body}}

    async def send(self, envelope: Envelope) -> SendReceipt:
        request = {
            "Destination": {
                "ToAddresses": [format_address(a) for a in envelope.to],
                "CcAddresses": [format_address(a) for a in envelope.cc],
                "BccAddresses": [format_address(a) for a in envelope.bcc],
            },
            "Content": await self._content(envelope),
        }
        if envelope.sender:
            request["FromEmailAddress"] = format_address(envelope.sender)
        if envelope.reply_to:
            request["ReplyToAddresses"] = [format_address(envelope.reply_to[0])]

        try:
            async with self._session.client("sesv2", config=self._client_config) as ses:
                response = await ses.send_email(**request)
        except ClientError as exc:
            error = exc.response.get("Error", {})
            raise TransportError(f"ses: {error.get('Message') or error.get('Code') or exc}") from exc
        except BotoCoreError as exc:
            raise TransportError(f"ses: {exc}") from exc

        return SendReceipt(
            message_id=response.get("MessageId"),
            raw={"MessageId": response.get("MessageId")},
        )


@register("ses", "api")
def _ses_api(config, settings: DispatchSettings) -> SesTransport:
    return SesTransport(config.access_key, config.secret_key, config.region, False, settings.http_timeout)


@register("ses", "http")
def _ses_http(config, settings: DispatchSettings) -> SesTransport:
    return SesTransport(config.access_key, config.secret_key, config.region, True, settings.http_timeout)
