# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Client for the Maildocker HTTP mail gateway.

The gateway takes one flat JSON document per message, using
``{"email", "name"}`` pairs for participants, and authenticates with HTTP
Basic auth built from the API key and secret.

Document rules:
- Only fields with a non-empty value are sent.
- From is included only when its address is syntactically valid.
- Invalid recipient addresses are dropped.
- When no valid ``to`` exists, the first valid cc (or, failing that, the
  first valid bcc) is promoted to ``to``.
- Attachments are embedded base64-encoded.

Example:
    Sending a prepared document::

        client = MaildockerClient("key", "secret", timeout=20)
        result = await client.send(await build_gateway_document(document, resolved))
"""

from __future__ import annotations

import asyncio
import base64
import json
from typing import Any

import aiohttp

from .attachments import ResolvedAttachment
from .config_loader import (
    DEFAULT_GATEWAY_ENDPOINT,
    DEFAULT_GATEWAY_HOST,
    DEFAULT_GATEWAY_PORT,
)
from .errors import TransportError
from .logger import get_logger
from .models import Address, MailDocument, is_valid_address
from .results import ResultCode, SendResult

logger = get_logger("MaildockerClient")


def _participant(addr: Address) -> dict[str, str]:
    item = {"email": addr.address}
    if addr.name:
        item["name"] = addr.name
    return item


async def build_gateway_document(
    document: MailDocument, attachments: list[ResolvedAttachment]
) -> dict[str, Any]:
    """Translate a validated message into the gateway's JSON document."""
    payload: dict[str, Any] = {}

    if is_valid_address(document.from_.address):
        payload["from"] = {
            "email": document.from_.address,
            "name": document.from_.name or document.from_.address,
        }

    to: list[dict[str, str]] = [_participant(a) for a in document.to if is_valid_address(a.address)]
    cc: list[dict[str, str]] = []
    bcc: list[dict[str, str]] = []
    for source, target in ((document.cc, cc), (document.bcc, bcc)):
        for addr in source:
            if not is_valid_address(addr.address):
                continue
            if not to:
                to.append(_participant(addr))
            else:
                target.append(_participant(addr))

    payload["to"] = to
    payload["cc"] = cc
    payload["bcc"] = bcc
    payload["subject"] = document.subject
    payload["text"] = document.text.body if document.text else None
    payload["html"] = document.html.body if document.html else None
    if document.reply_to and is_valid_address(document.reply_to.address):
        payload["replyTo"] = document.reply_to.address
    payload["date"] = document.date
    payload["attachments"] = [
        {
            "name": att.name,
            "type": att.content_type,
            "content": base64.b64encode(await att.read()).decode("ascii"),
        }
        for att in attachments
    ]
    return {key: value for key, value in payload.items() if value}


class MaildockerClient:
    """HTTP client posting gateway documents.

    Attributes:
        mail_url: Full endpoint URL (``{host}:{port}{endpoint}``).
        proxy: Proxy URL, or None for a direct connection.
        timeout: Total request timeout in seconds.
    """

    def __init__(
        self,
        api_key: str,
        api_secret: str,
        host: str | None = None,
        port: int | None = None,
        endpoint: str | None = None,
        proxy: dict[str, Any] | None = None,
        timeout: float = 30.0,
    ):
        self._api_key = api_key
        self._api_secret = api_secret
        host = host or DEFAULT_GATEWAY_HOST
        port = port or DEFAULT_GATEWAY_PORT
        endpoint = endpoint or DEFAULT_GATEWAY_ENDPOINT
        self.mail_url = f"{host.rstrip('/')}:{port}{endpoint}"
        self.proxy = None
        if proxy and proxy.get("host") and proxy.get("port"):
            proxy_host = proxy["host"]
            if "://" not in proxy_host:
                proxy_host = f"http://{proxy_host}"
            self.proxy = f"{proxy_host}:{proxy['port']}"
        self.timeout = timeout

    def _headers(self) -> dict[str, str]:
        credentials = base64.b64encode(f"{self._api_key}:{self._api_secret}".encode()).decode()
        return {
            "Content-Type": "application/json",
            "Authorization": f"Basic {credentials}",
        }

    async def send(self, document: dict[str, Any]) -> SendResult:
        """POST ``document`` to the gateway.

        Returns:
            ERROR ``gateway_rejected`` with the gateway's ``user_message``
            when the response carries one. Any other JSON answer is OK with
            its fields in ``extra`` (a non-object body under ``response``).

        Raises:
            TransportError: On network failure, timeout, or a body that is
                not JSON.
        """
        try:
            async with aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=self.timeout)) as session:
                async with session.post(
                    self.mail_url,
                    data=json.dumps(document),
                    headers=self._headers(),
                    proxy=self.proxy,
                ) as response:
                    status = response.status
                    text = await response.text()
        except asyncio.TimeoutError as exc:
            raise TransportError(f"Gateway request timed out after {self.timeout}s") from exc
        except aiohttp.ClientError as exc:
            raise TransportError(f"Gateway request failed: {exc}") from exc

        try:
            response_data = json.loads(text) if text else {}
        except json.JSONDecodeError as exc:
            raise TransportError(f"Invalid gateway response (HTTP {status}): {text[:300]}", status=status) from exc

        if isinstance(response_data, dict) and "user_message" in response_data:
            logger.warning("Gateway rejected message (HTTP %s): %s", status, response_data["user_message"])
            return SendResult.failure(str(response_data["user_message"]), ResultCode.GATEWAY_REJECTED)

        if status >= 400:
            logger.warning("Gateway answered HTTP %s without user_message: %s", status, text[:300])
        if not isinstance(response_data, dict):
            response_data = {"response": response_data}
        return SendResult.success("OK", ResultCode.SENT, response_data)
