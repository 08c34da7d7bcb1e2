# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Two-phase shape validation gating every send.

The ``SchemaValidator`` checks a document against a named schema and keeps
the readable error list of the last failed call. ``validate_send`` runs the
provider configuration check first and the message check second, stopping
at the first failure, so message errors never show up for a configuration
that is already invalid.

Example:
    Validating before sending::

        result = validate_send(config, message.to_document())
        if not result.ok:
            for error in result.extra["errors"]:
                print(error["path"], error["message"])
"""

from __future__ import annotations

from typing import Any

from pydantic import TypeAdapter, ValidationError

from .logger import get_logger
from .models import MailDocument, ProviderConfig
from .results import ResultCode, SendResult

PROVIDER_CONFIG_SCHEMA = "provider_config"
MAIL_SCHEMA = "mail"

SCHEMAS: dict[str, TypeAdapter] = {
    PROVIDER_CONFIG_SCHEMA: TypeAdapter(ProviderConfig),
    MAIL_SCHEMA: TypeAdapter(MailDocument),
}

logger = get_logger("Validator")


class SchemaValidator:
    """Validate documents against the registered schemas.

    Attributes:
        value: The parsed model produced by the last successful call.
        values: Parsed models of every successful call, keyed by schema id.
    """

    def __init__(self) -> None:
        self._errors: list[dict[str, str]] = []
        self.value: Any = None
        self.values: dict[str, Any] = {}

    def validate_document(self, document: Any, schema_id: str) -> bool:
        """Check ``document`` against the schema registered as ``schema_id``.

        Raises:
            KeyError: If ``schema_id`` is not a registered schema.
        """
        adapter = SCHEMAS[schema_id]
        self._errors = []
        self.value = None
        self.values.pop(schema_id, None)
        try:
            self.value = adapter.validate_python(document)
            self.values[schema_id] = self.value
        except ValidationError as exc:
            self._errors = [
                {"path": _format_location(err["loc"]), "message": err["msg"]}
                for err in exc.errors(include_url=False)
            ]
            return False
        return True

    def get_readable_errors(self) -> list[dict[str, str]]:
        """Return ``{path, message}`` entries for the last failed validation."""
        return list(self._errors)


def _format_location(loc: tuple[Any, ...]) -> str:
    return ".".join(str(part) for part in loc) or "<root>"


def validate_send(
    config: Any,
    document: dict[str, Any],
    validator: SchemaValidator | None = None,
) -> SendResult:
    """Validate a provider configuration and then a message document.

    Args:
        config: Provider configuration (mapping or config model).
        document: Message document as produced by ``Message.to_document()``.
        validator: Validator to use; a fresh one is created when omitted.

    Returns:
        ERROR "Invalid configuration" or "Invalid message" with
        ``extra={"errors": [...]}``, or OK when both documents pass.
    """
    validator = validator or SchemaValidator()

    if not validator.validate_document(config, PROVIDER_CONFIG_SCHEMA):
        errors = validator.get_readable_errors()
        logger.warning("Invalid provider configuration: %d error(s)", len(errors))
        return SendResult.failure(
            "Invalid configuration", ResultCode.CONFIG_INVALID, {"errors": errors}
        )

    if not validator.validate_document(document, MAIL_SCHEMA):
        errors = validator.get_readable_errors()
        logger.warning("Invalid message: %d error(s)", len(errors))
        return SendResult.failure(
            "Invalid message", ResultCode.MESSAGE_INVALID, {"errors": errors}
        )

    return SendResult.success()
