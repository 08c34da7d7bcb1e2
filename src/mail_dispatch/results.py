# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Uniform outcome type for every public operation that can fail.

Validation failures, missing attachments, unresolved providers, transport
failures and successful sends are all reported through ``SendResult``.

Example:
    Inspecting a result::

        result = await message.send(config)
        if result.ok:
            print(result.extra["message_id"])
        else:
            print(result.code, result.message)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping


class Severity(str, Enum):
    """Severity classification of a result.

    Attributes:
        OK: The operation succeeded.
        ERROR: The operation failed; see ``code`` for the reason.
    """

    OK = "OK"
    ERROR = "ERROR"


class ResultCode(str, Enum):
    """Machine readable status codes carried by ``SendResult.code``."""

    OK = "ok"
    SENT = "sent"
    CONFIG_INVALID = "config_invalid"
    MESSAGE_INVALID = "message_invalid"
    ATTACHMENT_NOT_FOUND = "attachment_not_found"
    UNRESOLVED_PROVIDER = "unresolved_provider"
    TRANSPORT_FAILURE = "transport_failure"
    GATEWAY_REJECTED = "gateway_rejected"


@dataclass(frozen=True)
class SendResult:
    """Immutable outcome of a validation or send operation.

    Attributes:
        message: Human readable description.
        code: Machine status code (a ``ResultCode`` value).
        severity: ``Severity.OK`` or ``Severity.ERROR``.
        ok: True when the operation succeeded.
        extra: Optional structured data (message id, validation errors,
            gateway response fields). Exposed read-only.
    """

    message: str
    code: str
    severity: Severity
    ok: bool
    extra: Mapping[str, Any] | None = field(default=None)

    def __post_init__(self) -> None:
        if self.extra is not None and not isinstance(self.extra, MappingProxyType):
            object.__setattr__(self, "extra", MappingProxyType(dict(self.extra)))

    @classmethod
    def success(
        cls,
        message: str = "OK",
        code: ResultCode | str = ResultCode.OK,
        extra: Mapping[str, Any] | None = None,
    ) -> SendResult:
        return cls(message, _code_value(code), Severity.OK, True, extra)

    @classmethod
    def failure(
        cls,
        message: str,
        code: ResultCode | str,
        extra: Mapping[str, Any] | None = None,
    ) -> SendResult:
        return cls(message, _code_value(code), Severity.ERROR, False, extra)

    def to_dict(self) -> dict[str, Any]:
        """Plain dictionary view, suitable for JSON output."""
        return {
            "message": self.message,
            "code": self.code,
            "severity": self.severity.value,
            "ok": self.ok,
            "extra": dict(self.extra) if self.extra is not None else None,
        }


def _code_value(code: ResultCode | str) -> str:
    return code.value if isinstance(code, ResultCode) else str(code)
