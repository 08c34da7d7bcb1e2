# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Provider dispatch for validated messages.

The dispatcher takes a validated ``MailDocument`` and provider
configuration and performs one send:

1. select the binding: the HTTP gateway, or a native transport looked up
   by ``(provider, driver)``; an unknown pair fails before any network call
2. resolve attachments (any failure aborts the send)
3. build the outbound representation (gateway JSON or ``Envelope``)
4. call the backend and convert the outcome into a ``SendResult``

Nothing raised while building the outbound representation or calling the
backend escapes ``dispatch()``.

Example:
    Dispatching outside the ``Message`` builder::

        dispatcher = Dispatcher(DispatchSettings(http_timeout=10))
        result = await dispatcher.dispatch(document, config)
"""

from __future__ import annotations

from typing import Any, Callable

from .attachments import AttachmentResolver
from .attachments.url_fetcher import UrlFetcher
from .config_loader import DispatchSettings
from .envelope import Envelope
from .errors import AttachmentNotFoundError, UnresolvedProviderError
from .gateway import MaildockerClient, build_gateway_document
from .logger import get_logger
from .models import GATEWAY_PROVIDER, MailDocument, MaildockerConfig
from .results import ResultCode, SendResult
from .transports import Transport, resolve_transport

logger = get_logger("Dispatcher")


class Dispatcher:
    """Send one validated message through the configured backend.

    Attributes:
        settings: Timeouts and gateway defaults.
        resolver: Attachment resolver used for every send.
    """

    def __init__(
        self,
        settings: DispatchSettings | None = None,
        resolver: AttachmentResolver | None = None,
        transport_resolver: Callable[[Any, DispatchSettings], Transport] = resolve_transport,
    ):
        self.settings = settings or DispatchSettings()
        self.resolver = resolver or AttachmentResolver(UrlFetcher(timeout=self.settings.attachment_timeout))
        self._resolve_transport = transport_resolver

    async def dispatch(self, document: MailDocument, config: Any) -> SendResult:
        """Send ``document`` with the backend described by ``config``.

        Args:
            document: Validated message document.
            config: Validated provider configuration model.

        Returns:
            The single ``SendResult`` for this send.
        """
        if config.provider == GATEWAY_PROVIDER:
            return await self._dispatch_gateway(document, config)

        try:
            transport = self._resolve_transport(config, self.settings)
        except UnresolvedProviderError as exc:
            logger.warning("No transport for provider=%s driver=%s", config.provider, config.driver)
            return SendResult.failure(str(exc), ResultCode.UNRESOLVED_PROVIDER)

        try:
            attachments = await self.resolver.resolve(document.attachments)
        except AttachmentNotFoundError as exc:
            return SendResult.failure(str(exc), ResultCode.ATTACHMENT_NOT_FOUND)

        envelope = Envelope.build(document, attachments)
        try:
            receipt = await transport.send(envelope)
        except Exception as exc:
            logger.error(
                "Send failed via provider=%s driver=%s: %s", config.provider, config.driver, exc
            )
            return SendResult.failure(str(exc) or exc.__class__.__name__, ResultCode.TRANSPORT_FAILURE)

        logger.info(
            "Mail sent via provider=%s driver=%s (message_id=%s)",
            config.provider,
            config.driver,
            receipt.message_id,
        )
        return SendResult.success("Mail sent", ResultCode.SENT, {"message_id": receipt.message_id})

    async def _dispatch_gateway(self, document: MailDocument, config: MaildockerConfig) -> SendResult:
        try:
            attachments = await self.resolver.resolve(document.attachments)
        except AttachmentNotFoundError as exc:
            return SendResult.failure(str(exc), ResultCode.ATTACHMENT_NOT_FOUND)

        client = MaildockerClient(
            config.access_key,
            config.secret_key,
            host=config.host or self.settings.gateway_host,
            port=config.port or self.settings.gateway_port,
            endpoint=config.endpoint or self.settings.gateway_endpoint,
            proxy=config.proxy.model_dump() if config.proxy else None,
            timeout=config.timeout or self.settings.http_timeout,
        )
        try:
            payload = await build_gateway_document(document, attachments)
            result = await client.send(payload)
        except Exception as exc:
            logger.error("Gateway send failed: %s", exc)
            return SendResult.failure(str(exc) or exc.__class__.__name__, ResultCode.TRANSPORT_FAILURE)

        if result.ok:
            logger.info("Mail sent via gateway %s", client.mail_url)
        return result
