# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Generic MIME-style envelope shared by all native transports.

``Envelope.build()`` turns a validated ``MailDocument`` and its resolved
attachments into the representation native transports consume. Any
participant whose address fails email syntax validation is dropped here,
silently, and never reaches a transport.
"""

from __future__ import annotations

import socket
from dataclasses import dataclass, field
from email.message import EmailMessage
from email.utils import formataddr, formatdate, make_msgid
from functools import lru_cache

from .attachments import ResolvedAttachment
from .models import Address, BodyPart, MailDocument, is_valid_address

PRIORITY_LABELS = {
    1: "Highest",
    2: "High",
    3: "Normal",
    4: "Low",
    5: "Lowest",
}


@lru_cache(maxsize=None)
def message_id_domain() -> str:
    """Host name used on the right side of generated Message-IDs (looked up once)."""
    return socket.getfqdn()


def new_message_id() -> str:
    return make_msgid(domain=message_id_domain())


def valid_addresses(addresses: list[Address]) -> list[Address]:
    """Keep only the participants with a syntactically valid address."""
    return [addr for addr in addresses if is_valid_address(addr.address)]


def format_address(address: Address) -> str:
    """Render ``Name <address>`` (or the bare address when unnamed)."""
    return formataddr((address.name or "", address.address))


@dataclass
class Envelope:
    """Outbound message for native transports.

    Attributes:
        sender: From participant, None if missing or invalid.
        to: Valid primary recipients.
        cc: Valid carbon copy recipients.
        bcc: Valid blind carbon copy recipients.
        reply_to: Valid Reply-To participants (zero or one).
        subject: Subject line.
        priority: 1 (highest) to 5 (lowest).
        text: Plain text body.
        html: HTML body.
        date: Explicit Date header value, if any.
        attachments: Resolved attachments in message order.
        message_id: Message-ID assigned to this envelope.
    """

    sender: Address | None
    to: list[Address]
    cc: list[Address]
    bcc: list[Address]
    reply_to: list[Address]
    subject: str
    priority: int = 5
    text: BodyPart | None = None
    html: BodyPart | None = None
    date: str | None = None
    attachments: list[ResolvedAttachment] = field(default_factory=list)
    message_id: str = field(default_factory=new_message_id)

    @classmethod
    def build(cls, document: MailDocument, attachments: list[ResolvedAttachment]) -> Envelope:
        sender = document.from_ if is_valid_address(document.from_.address) else None
        reply_to = [document.reply_to] if document.reply_to else []
        return cls(
            sender=sender,
            to=valid_addresses(document.to),
            cc=valid_addresses(document.cc),
            bcc=valid_addresses(document.bcc),
            reply_to=valid_addresses(reply_to),
            subject=document.subject,
            priority=document.priority,
            text=document.text,
            html=document.html,
            date=document.date,
            attachments=list(attachments),
        )

    @property
    def recipients(self) -> list[str]:
        """All delivery addresses (to, cc and bcc) in order."""
        return [addr.address for addr in (*self.to, *self.cc, *self.bcc)]

    async def to_mime(self) -> EmailMessage:
        """Render the envelope as an ``EmailMessage``.

        Bcc recipients are not written to the headers; transports pass them
        through ``recipients`` instead.
        """
        msg = EmailMessage()
        if self.sender:
            msg["From"] = format_address(self.sender)
        if self.to:
            msg["To"] = ", ".join(format_address(a) for a in self.to)
        if self.cc:
            msg["Cc"] = ", ".join(format_address(a) for a in self.cc)
        if self.reply_to:
            msg["Reply-To"] = format_address(self.reply_to[0])
        msg["Subject"] = self.subject
        msg["Date"] = self.date or formatdate(localtime=True)
        msg["Message-ID"] = self.message_id
        msg["X-Priority"] = f"{self.priority} ({PRIORITY_LABELS[self.priority]})"

        if self.text and self.html:
            msg.set_content(self.text.body, charset=self.text.charset)
            msg.add_alternative(self.html.body, subtype="html", charset=self.html.charset)
        elif self.html:
            msg.set_content(self.html.body, subtype="html", charset=self.html.charset)
        elif self.text:
            msg.set_content(self.text.body, charset=self.text.charset)
        else:
            msg.set_content("")

        for att in self.attachments:
            content = await att.read()
            msg.add_attachment(content, maintype=att.maintype, subtype=att.subtype, filename=att.name)
        return msg
