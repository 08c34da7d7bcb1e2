# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Pydantic models for messages and provider configurations.

This module defines the two documents that gate every send:

- ``MailDocument``: the shape of an assembled message (schema id ``mail``).
- ``ProviderConfig``: a discriminated union with one variant per delivery
  backend (schema id ``provider_config``).

Models only check document *shape*. Per-address email syntax is checked by
``is_valid_address()`` when an outbound envelope is built, and attachment
existence is checked at send time by the attachment resolver.
"""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Any, ClassVar, Literal, Union

from email_validator import EmailNotValidError, validate_email
from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Discriminator,
    Field,
    Tag,
    model_validator,
)


class AddressField(str, Enum):
    """Message fields that hold participants.

    Attributes:
        TO: Primary recipients (append-only).
        CC: Carbon copy recipients (append-only).
        BCC: Blind carbon copy recipients (append-only).
        REPLY_TO: Reply-To participant (single valued, last call wins).
    """

    TO = "to"
    CC = "cc"
    BCC = "bcc"
    REPLY_TO = "replyTo"


def is_valid_address(address: str | None) -> bool:
    """Return True if ``address`` is a syntactically valid email address."""
    if not address:
        return False
    try:
        validate_email(address, check_deliverability=False)
    except EmailNotValidError:
        return False
    return True


class Address(BaseModel):
    """An email participant: address plus optional display name."""

    model_config = ConfigDict(extra="forbid")

    address: Annotated[str, Field(min_length=1, description="Email address")]
    name: Annotated[str | None, Field(default=None, description="Display name")]


class BodyPart(BaseModel):
    """A text or HTML body with its charset."""

    model_config = ConfigDict(extra="forbid")

    body: Annotated[str, Field(description="Body content")]
    charset: Annotated[str, Field(default="utf-8", min_length=1, description="Body charset")]


class InlineAttachment(BaseModel):
    """Attachment whose content is supplied directly."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    body: Annotated[bytes, Field(description="Raw attachment content")]
    name: Annotated[str, Field(min_length=1, description="Attachment filename")]
    content_type: Annotated[
        str,
        Field(
            default="application/octet-stream",
            validation_alias=AliasChoices("content_type", "content-type"),
            description="MIME type",
        ),
    ]


class PathAttachment(BaseModel):
    """Attachment read from the local filesystem at send time."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    path: Annotated[str, Field(min_length=1, description="Local filesystem path")]
    name: Annotated[str | None, Field(default=None, description="Attachment filename")]
    content_type: Annotated[
        str | None,
        Field(
            default=None,
            validation_alias=AliasChoices("content_type", "content-type"),
            description="MIME type override",
        ),
    ]


class UrlAttachment(BaseModel):
    """Attachment downloaded from a URL at send time."""

    model_config = ConfigDict(extra="forbid")

    url: Annotated[str, Field(min_length=1, description="HTTP/HTTPS URL")]
    name: Annotated[str | None, Field(default=None, description="Attachment filename")]


def _attachment_kind(value: Any) -> str | None:
    if isinstance(value, InlineAttachment):
        return "inline"
    if isinstance(value, PathAttachment):
        return "path"
    if isinstance(value, UrlAttachment):
        return "url"
    if not isinstance(value, dict):
        return None
    keys = set(value)
    if "url" in keys:
        return "url"
    if "path" in keys:
        return "path"
    if "body" in keys:
        return "inline"
    return None


Attachment = Annotated[
    Union[
        Annotated[InlineAttachment, Tag("inline")],
        Annotated[PathAttachment, Tag("path")],
        Annotated[UrlAttachment, Tag("url")],
    ],
    Discriminator(
        _attachment_kind,
        custom_error_type="invalid_attachment",
        custom_error_message="Attachment needs one of 'body', 'path' or 'url'",
    ),
]


class MailDocument(BaseModel):
    """Validated message document (schema id ``mail``).

    Built from the ``Message`` builder state; the dispatcher only ever reads
    this model.
    """

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    from_: Annotated[Address, Field(alias="from", description="Sender")]
    reply_to: Annotated[
        Address | None,
        Field(default=None, alias="replyTo", description="Reply-To participant"),
    ]
    to: Annotated[list[Address], Field(default_factory=list)]
    cc: Annotated[list[Address], Field(default_factory=list)]
    bcc: Annotated[list[Address], Field(default_factory=list)]
    subject: Annotated[str, Field(description="Message subject")]
    text: Annotated[BodyPart | None, Field(default=None, description="Plain text body")]
    html: Annotated[BodyPart | None, Field(default=None, description="HTML body")]
    date: Annotated[str | None, Field(default=None, description="Date header value")]
    priority: Annotated[int, Field(default=5, ge=1, le=5, description="Priority (1=highest, 5=lowest)")]
    attachments: Annotated[list[Attachment], Field(default_factory=list)]

    @model_validator(mode="after")
    def require_recipient(self) -> MailDocument:
        if not (self.to or self.cc or self.bcc):
            raise ValueError("at least one recipient (to, cc or bcc) is required")
        return self


# ---------------------------------------------------------------------------
# Provider configurations
# ---------------------------------------------------------------------------


class _ProviderConfigBase(BaseModel):
    """Common behavior for provider configuration variants.

    ``DRIVER_CREDENTIALS`` maps each supported driver to the credential
    fields it needs. ``driver`` itself is only a string at the shape level:
    an unsupported driver passes validation and is later reported by the
    dispatcher as an invalid provider.
    """

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    DRIVER_CREDENTIALS: ClassVar[dict[str | None, tuple[str, ...]]] = {}

    driver: Annotated[str | None, Field(default=None, description="Delivery mode (api, http, smtp)")]

    @model_validator(mode="after")
    def require_driver_credentials(self):
        required = self.DRIVER_CREDENTIALS.get(self.driver)
        if required is None:
            return self
        missing = [name for name in required if getattr(self, name, None) in (None, "")]
        if missing:
            mode = self.driver or "default"
            raise ValueError(f"{', '.join(missing)} required for driver '{mode}'")
        return self


class SmtpConfig(_ProviderConfigBase):
    """Plain SMTP server."""

    DRIVER_CREDENTIALS: ClassVar[dict[str | None, tuple[str, ...]]] = {
        None: ("host",),
        "smtp": ("host",),
    }

    provider: Literal["smtp"]
    host: Annotated[
        str | None,
        Field(default=None, validation_alias=AliasChoices("host", "domain"), description="SMTP hostname"),
    ]
    port: Annotated[int | None, Field(default=None, ge=1, le=65535, description="SMTP port")]
    username: Annotated[str | None, Field(default=None)]
    password: Annotated[str | None, Field(default=None)]
    tls: Annotated[bool, Field(default=True, description="Use TLS (implicit on 465, STARTTLS otherwise)")]


class SesConfig(_ProviderConfigBase):
    """Amazon SES through its API, HTTPS API or SMTP interface."""

    DRIVER_CREDENTIALS: ClassVar[dict[str | None, tuple[str, ...]]] = {
        "api": ("access_key", "secret_key"),
        "http": ("access_key", "secret_key"),
        "smtp": ("username", "password"),
    }

    provider: Literal["ses"]
    access_key: Annotated[str | None, Field(default=None)]
    secret_key: Annotated[str | None, Field(default=None)]
    username: Annotated[str | None, Field(default=None)]
    password: Annotated[str | None, Field(default=None)]
    region: Annotated[str, Field(default="us-east-1", min_length=1)]


class GmailConfig(_ProviderConfigBase):
    """Gmail SMTP with an account (or app) password."""

    DRIVER_CREDENTIALS: ClassVar[dict[str | None, tuple[str, ...]]] = {
        None: ("username", "password"),
        "smtp": ("username", "password"),
    }

    provider: Literal["gmail"]
    username: Annotated[str | None, Field(default=None)]
    password: Annotated[str | None, Field(default=None)]


class MailgunConfig(_ProviderConfigBase):
    """Mailgun API, raw MIME HTTP endpoint or SMTP relay."""

    DRIVER_CREDENTIALS: ClassVar[dict[str | None, tuple[str, ...]]] = {
        "api": ("key", "domain"),
        "http": ("key", "domain"),
        "smtp": ("username", "password"),
    }

    provider: Literal["mailgun"]
    key: Annotated[str | None, Field(default=None)]
    domain: Annotated[str | None, Field(default=None)]
    username: Annotated[str | None, Field(default=None)]
    password: Annotated[str | None, Field(default=None)]
    region: Annotated[Literal["us", "eu"], Field(default="us")]


class MailjetConfig(_ProviderConfigBase):
    """Mailjet Send API or SMTP relay."""

    DRIVER_CREDENTIALS: ClassVar[dict[str | None, tuple[str, ...]]] = {
        "api": ("access_key", "secret_key"),
        "smtp": ("access_key", "secret_key"),
    }

    provider: Literal["mailjet"]
    access_key: Annotated[str | None, Field(default=None)]
    secret_key: Annotated[str | None, Field(default=None)]


class PostmarkConfig(_ProviderConfigBase):
    """Postmark API (server token) or SMTP (server id token)."""

    DRIVER_CREDENTIALS: ClassVar[dict[str | None, tuple[str, ...]]] = {
        "api": ("key",),
        "smtp": ("id",),
    }

    provider: Literal["postmark"]
    key: Annotated[str | None, Field(default=None)]
    id: Annotated[str | None, Field(default=None)]


class SendgridConfig(_ProviderConfigBase):
    """SendGrid v3 API or SMTP relay, both keyed by an API key."""

    DRIVER_CREDENTIALS: ClassVar[dict[str | None, tuple[str, ...]]] = {
        "api": ("key",),
        "smtp": ("key",),
    }

    provider: Literal["sendgrid"]
    key: Annotated[str | None, Field(default=None)]


class SendinblueConfig(_ProviderConfigBase):
    """Sendinblue (Brevo) API or SMTP relay."""

    DRIVER_CREDENTIALS: ClassVar[dict[str | None, tuple[str, ...]]] = {
        "api": ("key",),
        "smtp": ("username", "password"),
    }

    provider: Literal["sendinblue"]
    key: Annotated[str | None, Field(default=None)]
    username: Annotated[str | None, Field(default=None)]
    password: Annotated[str | None, Field(default=None)]


class OhMySmtpConfig(_ProviderConfigBase):
    """OhMySMTP API or SMTP relay, both keyed by an API token."""

    DRIVER_CREDENTIALS: ClassVar[dict[str | None, tuple[str, ...]]] = {
        "api": ("api_token",),
        "smtp": ("api_token",),
    }

    provider: Literal["ohmysmtp"]
    api_token: Annotated[str | None, Field(default=None)]


class GatewayProxy(BaseModel):
    """HTTP proxy override for the gateway client."""

    model_config = ConfigDict(extra="forbid")

    host: Annotated[str, Field(min_length=1)]
    port: Annotated[int, Field(ge=1, le=65535)]


class MaildockerConfig(_ProviderConfigBase):
    """The Maildocker HTTP mail gateway."""

    provider: Literal["maildocker"]
    access_key: Annotated[str, Field(min_length=1, description="API key")]
    secret_key: Annotated[str, Field(min_length=1, description="API secret")]
    host: Annotated[str | None, Field(default=None, description="Gateway base URL")]
    port: Annotated[int | None, Field(default=None, ge=1, le=65535)]
    endpoint: Annotated[str | None, Field(default=None, description="Mail endpoint path")]
    proxy: Annotated[GatewayProxy | None, Field(default=None)]
    timeout: Annotated[float | None, Field(default=None, gt=0, description="Total request timeout in seconds")]


ProviderConfig = Annotated[
    Union[
        SmtpConfig,
        SesConfig,
        GmailConfig,
        MailgunConfig,
        MailjetConfig,
        PostmarkConfig,
        SendgridConfig,
        SendinblueConfig,
        OhMySmtpConfig,
        MaildockerConfig,
    ],
    Field(discriminator="provider"),
]

GATEWAY_PROVIDER = "maildocker"
