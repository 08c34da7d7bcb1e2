# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Fluent message builder.

A ``Message`` accumulates sender, recipients, subject, bodies and
attachment descriptors. Nothing is checked while building beyond
programming errors (unknown field name, priority out of range); shape
validation happens in ``validate()`` and ``send()``, and path/URL
attachments are resolved only at send time.

Example:
    Building and sending a message::

        message = (
            Message()
            .set_from("noreply@example.com", "Shop")
            .add_to("customer@example.com")
            .set_subject("Your order")
            .set_text("Thanks for your order.")
            .add_attachment({"path": "/tmp/invoice.pdf"})
        )
        result = await message.send({"provider": "sendgrid", "driver": "api", "key": "..."})
"""

from __future__ import annotations

from typing import Any, Iterable, Mapping

from pydantic import BaseModel

from .dispatcher import Dispatcher
from .errors import MailDispatchError
from .logger import get_logger
from .models import AddressField
from .results import SendResult
from .validation import MAIL_SCHEMA, PROVIDER_CONFIG_SCHEMA, SchemaValidator, validate_send

logger = get_logger("Message")


def _participant(address: str, name: str | None = None) -> dict[str, str]:
    item = {"address": address}
    if name:
        item["name"] = name
    return item


def _attachment_descriptor(item: Any) -> Any:
    """Normalize one attachment entry; returns None for an empty entry."""
    if not item:
        return None
    if isinstance(item, str):
        if item.startswith(("http://", "https://")):
            return {"url": item}
        return {"path": item}
    return item


class Message:
    """Builder for one outgoing message.

    All setters return the builder so calls can be chained. ``to``, ``cc``
    and ``bcc`` are append-only; ``reply_to`` keeps the last value set.
    """

    def __init__(self) -> None:
        self._from: dict[str, str] | None = None
        self._reply_to: dict[str, str] | None = None
        self._recipients: dict[AddressField, list[dict[str, str]]] = {
            AddressField.TO: [],
            AddressField.CC: [],
            AddressField.BCC: [],
        }
        self._subject = ""
        self._text: dict[str, str] | None = None
        self._html: dict[str, str] | None = None
        self._date: str | None = None
        self._priority = 5
        self._attachments: list[Any] = []

    # ------------------------------------------------------------------
    # Participants
    # ------------------------------------------------------------------

    def set_from(self, address: str, name: str | None = None) -> Message:
        self._from = _participant(address, name)
        return self

    def add_to(self, address: str, name: str | None = None) -> Message:
        return self._add_address(AddressField.TO, address, name)

    def add_cc(self, address: str, name: str | None = None) -> Message:
        return self._add_address(AddressField.CC, address, name)

    def add_bcc(self, address: str, name: str | None = None) -> Message:
        return self._add_address(AddressField.BCC, address, name)

    def set_reply_to(self, address: str, name: str | None = None) -> Message:
        return self._add_address(AddressField.REPLY_TO, address, name)

    def add_recipients(
        self,
        field: AddressField | str,
        recipients: Mapping[str, str | None] | Iterable[str | tuple[str, str | None]],
    ) -> Message:
        """Add several participants to ``field`` at once.

        Args:
            field: Target field (``to``, ``cc``, ``bcc`` or ``replyTo``).
            recipients: Either a ``{address: name}`` mapping or an iterable
                of bare addresses and ``(address, name)`` pairs. Empty
                addresses are skipped.

        Raises:
            ValueError: If ``field`` is not a participant field.
        """
        field = AddressField(field)
        if isinstance(recipients, Mapping):
            entries = list(recipients.items())
        else:
            entries = [(item, None) if isinstance(item, str) else tuple(item) for item in recipients]
        for address, name in entries:
            if address:
                self._add_address(field, address, name)
        return self

    def _add_address(self, field: AddressField | str, address: str, name: str | None) -> Message:
        field = AddressField(field)
        if field is AddressField.REPLY_TO:
            self._reply_to = _participant(address, name)
        else:
            self._recipients[field].append(_participant(address, name))
        return self

    # ------------------------------------------------------------------
    # Content
    # ------------------------------------------------------------------

    def set_subject(self, subject: str) -> Message:
        self._subject = subject
        return self

    def set_text(self, body: str, charset: str = "utf-8") -> Message:
        self._text = {"body": body, "charset": charset}
        return self

    def set_html(self, body: str, charset: str = "utf-8") -> Message:
        self._html = {"body": body, "charset": charset}
        return self

    def set_date(self, date: str) -> Message:
        self._date = date
        return self

    def set_priority(self, priority: int) -> Message:
        """Set the priority, 1 (highest) to 5 (lowest).

        Raises:
            ValueError: If ``priority`` is outside 1..5.
        """
        if isinstance(priority, bool) or not isinstance(priority, int) or not 1 <= priority <= 5:
            raise ValueError(f"priority must be an integer between 1 and 5, got {priority!r}")
        self._priority = priority
        return self

    def add_attachment(self, attachment: Any) -> Message:
        """Add one attachment descriptor or a sequence of them.

        A descriptor is an attachment model, a dict with ``body``/``path``/
        ``url`` keys, or a string (``http(s)://`` URLs become URL
        attachments, anything else a path). Empty entries are skipped.
        """
        if isinstance(attachment, (list, tuple)):
            items = attachment
        else:
            items = [attachment]
        for item in items:
            descriptor = _attachment_descriptor(item)
            if descriptor is not None:
                self._attachments.append(descriptor)
        return self

    # ------------------------------------------------------------------
    # Documents and sending
    # ------------------------------------------------------------------

    def to_document(self) -> dict[str, Any]:
        """Return the message document checked by the ``mail`` schema."""
        return {
            "from": self._from,
            "replyTo": self._reply_to,
            "to": list(self._recipients[AddressField.TO]),
            "cc": list(self._recipients[AddressField.CC]),
            "bcc": list(self._recipients[AddressField.BCC]),
            "subject": self._subject,
            "text": self._text,
            "html": self._html,
            "date": self._date,
            "priority": self._priority,
            "attachments": [
                a.model_dump() if isinstance(a, BaseModel) else a for a in self._attachments
            ],
        }

    def validate(self, config: Any) -> SendResult:
        """Run the configuration check, then the message check."""
        return validate_send(config, self.to_document())

    async def send(self, config: Any, dispatcher: Dispatcher | None = None) -> SendResult:
        """Validate and send this message through the configured backend.

        Args:
            config: Provider configuration (mapping or config model).
            dispatcher: Dispatcher to use; a default one is created when
                omitted.

        Returns:
            Exactly one ``SendResult``. Failures are reported, never raised.
        """
        validator = SchemaValidator()
        result = validate_send(config, self.to_document(), validator)
        if not result.ok:
            return result

        dispatcher = dispatcher or Dispatcher()
        try:
            return await dispatcher.dispatch(
                validator.values[MAIL_SCHEMA], validator.values[PROVIDER_CONFIG_SCHEMA]
            )
        except MailDispatchError as exc:
            logger.error("Send aborted: %s", exc)
            return SendResult.failure(str(exc), exc.code)
