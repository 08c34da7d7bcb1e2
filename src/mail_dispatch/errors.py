# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Internal exception types.

These exceptions are raised inside the package and converted into a
``SendResult`` before reaching the caller of ``Message.send()``.
"""

from __future__ import annotations


class MailDispatchError(RuntimeError):
    """Base class for failures that end a send attempt."""

    code = "mail_dispatch_error"


class AttachmentNotFoundError(MailDispatchError):
    """Raised when a path or URL attachment cannot be located."""

    code = "attachment_not_found"

    def __init__(self, location: str):
        super().__init__(f"Attachment not found: {location}")
        self.location = location


class UnresolvedProviderError(MailDispatchError):
    """Raised when no transport is registered for a (provider, driver) pair."""

    code = "unresolved_provider"

    def __init__(self, provider: str, driver: str | None = None):
        super().__init__(f"Invalid provider: {provider}")
        self.provider = provider
        self.driver = driver


class TransportError(MailDispatchError):
    """Raised by a transport when the backend refuses or cannot take the message."""

    code = "transport_failure"

    def __init__(self, message: str, status: int | None = None):
        super().__init__(message)
        self.status = status
