# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Provider-agnostic email dispatch.

Build a message once and send it through SMTP, a transactional email API
or the Maildocker HTTP gateway, chosen by configuration::

    from mail_dispatch import Message

    result = await (
        Message()
        .set_from("noreply@example.com")
        .add_to("user@example.com")
        .set_subject("Hello")
        .set_text("Hi there")
        .send({"provider": "smtp", "host": "smtp.example.com", "port": 587})
    )

Every send reports exactly one ``SendResult``.
"""

from .config_loader import DispatchSettings, load_dispatch_settings, load_provider_config
from .dispatcher import Dispatcher
from .errors import (
    AttachmentNotFoundError,
    MailDispatchError,
    TransportError,
    UnresolvedProviderError,
)
from .message import Message
from .models import Address, AddressField, MailDocument, ProviderConfig, is_valid_address
from .results import ResultCode, SendResult, Severity
from .validation import SchemaValidator, validate_send

__version__ = "0.1.0"

__all__ = [
    "Address",
    "AddressField",
    "AttachmentNotFoundError",
    "DispatchSettings",
    "Dispatcher",
    "MailDispatchError",
    "MailDocument",
    "Message",
    "ProviderConfig",
    "ResultCode",
    "SchemaValidator",
    "SendResult",
    "Severity",
    "TransportError",
    "UnresolvedProviderError",
    "is_valid_address",
    "load_dispatch_settings",
    "load_provider_config",
    "validate_send",
]
