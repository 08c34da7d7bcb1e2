# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Transport interface and the (provider, driver) lookup table.

Each transport module registers a factory for the bindings it serves:

    @register("mailgun", "api")
    def _mailgun_api(config, settings):
        return MailgunApiTransport(config.key, config.domain, ...)

``resolve_transport()`` looks the pair up and builds the transport from the
provider configuration; an unknown pair raises ``UnresolvedProviderError``
without touching the network.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable

from ..config_loader import DispatchSettings
from ..envelope import Envelope
from ..errors import UnresolvedProviderError

TransportFactory = Callable[[Any, DispatchSettings], "Transport"]

TRANSPORTS: dict[tuple[str, str | None], TransportFactory] = {}


@dataclass
class SendReceipt:
    """What a backend returned for an accepted message.

    Attributes:
        message_id: Identifier assigned by the backend (or the Message-ID
            header for SMTP relays).
        raw: Backend response fields, when the backend returns any.
    """

    message_id: str | None
    raw: dict[str, Any] = field(default_factory=dict)


class Transport:
    """Base class for delivery backends.

    Subclasses implement ``send``. Failures are reported by raising
    ``TransportError``; the dispatcher converts anything a transport raises
    into an ERROR result.
    """

    name = "transport"

    async def send(self, envelope: Envelope) -> SendReceipt:
        raise NotImplementedError


def register(provider: str, *drivers: str | None) -> Callable[[TransportFactory], TransportFactory]:
    """Register a factory for ``provider`` under each of ``drivers``."""

    def decorator(factory: TransportFactory) -> TransportFactory:
        for driver in drivers:
            TRANSPORTS[(provider, driver)] = factory
        return factory

    return decorator


def resolve_transport(config: Any, settings: DispatchSettings) -> Transport:
    """Build the transport bound to ``(config.provider, config.driver)``.

    Raises:
        UnresolvedProviderError: If no factory is registered for the pair.
    """
    factory = TRANSPORTS.get((config.provider, config.driver))
    if factory is None:
        raise UnresolvedProviderError(config.provider, config.driver)
    return factory(config, settings)


def supported_bindings() -> list[tuple[str, str | None]]:
    """All registered (provider, driver) pairs, sorted for display."""
    return sorted(TRANSPORTS, key=lambda key: (key[0], key[1] or ""))
