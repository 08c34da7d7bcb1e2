# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""SMTP transport built on aiosmtplib.

One class serves every SMTP-based binding: the generic ``smtp`` provider,
``gmail``, and the ``smtp`` driver of the transactional providers, which
differ only in relay host and credential shape.

TLS behavior based on port and ``use_tls``:
- Port 465 with use_tls=True: direct TLS (implicit TLS)
- Other ports with use_tls=True: STARTTLS
- use_tls=False: plain SMTP
"""

from __future__ import annotations

import asyncio

import aiosmtplib

from ..config_loader import DispatchSettings
from ..envelope import Envelope
from ..errors import TransportError
from ..logger import get_logger
from .base import SendReceipt, Transport, register

logger = get_logger("SmtpTransport")

SMTP_SUBMISSION_PORT = 587
SMTPS_PORT = 465


class SmtpTransport(Transport):
    """Deliver an envelope through an SMTP relay.

    Attributes:
        host: Relay hostname.
        port: Relay port.
        username: Login user, or None for unauthenticated relays.
        password: Login password.
        use_tls: Whether to encrypt (implicit TLS on 465, STARTTLS otherwise).
        timeout: Timeout in seconds for connect and each SMTP command.
    """

    name = "smtp"

    def __init__(
        self,
        host: str,
        port: int,
        username: str | None = None,
        password: str | None = None,
        use_tls: bool = True,
        timeout: float = 10.0,
    ):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.use_tls = use_tls
        self.timeout = timeout

    def _client(self) -> aiosmtplib.SMTP:
        if self.use_tls and self.port == SMTPS_PORT:
            return aiosmtplib.SMTP(hostname=self.host, port=self.port, start_tls=False, use_tls=True, timeout=self.timeout)
        if self.use_tls:
            return aiosmtplib.SMTP(hostname=self.host, port=self.port, start_tls=True, use_tls=False, timeout=self.timeout)
        return aiosmtplib.SMTP(hostname=self.host, port=self.port, start_tls=False, use_tls=False, timeout=self.timeout)

    async def send(self, envelope: Envelope) -> SendReceipt:
        if not envelope.recipients:
            raise TransportError("No valid recipient address")
        message = await envelope.to_mime()
        sender = envelope.sender.address if envelope.sender else None

        smtp = self._client()
        try:
            await smtp.connect()
            if self.username and self.password:
                await smtp.login(self.username, self.password)
            errors, response = await smtp.send_message(
                message, sender=sender, recipients=envelope.recipients
            )
        except (aiosmtplib.SMTPException, OSError, asyncio.TimeoutError) as exc:
            raise TransportError(str(exc) or exc.__class__.__name__) from exc
        finally:
            if smtp.is_connected:
                try:
                    await smtp.quit()
                except (aiosmtplib.SMTPException, OSError, asyncio.TimeoutError):
                    smtp.close()

        if errors:
            logger.warning("Relay %s refused %d recipient(s): %s", self.host, len(errors), sorted(errors))
        return SendReceipt(
            message_id=envelope.message_id,
            raw={"response": response, "refused": {addr: str(err) for addr, err in errors.items()}},
        )


@register("smtp", None, "smtp")
def _smtp(config, settings: DispatchSettings) -> SmtpTransport:
    port = config.port or (SMTPS_PORT if config.tls else 25)
    return SmtpTransport(config.host, port, config.username, config.password, config.tls, settings.smtp_timeout)


@register("gmail", None, "smtp")
def _gmail(config, settings: DispatchSettings) -> SmtpTransport:
    return SmtpTransport("smtp.gmail.com", SMTPS_PORT, config.username, config.password, True, settings.smtp_timeout)


@register("ses", "smtp")
def _ses_smtp(config, settings: DispatchSettings) -> SmtpTransport:
    host = f"email-smtp.{config.region}.amazonaws.com"
    return SmtpTransport(host, SMTP_SUBMISSION_PORT, config.username, config.password, True, settings.smtp_timeout)


@register("mailgun", "smtp")
def _mailgun_smtp(config, settings: DispatchSettings) -> SmtpTransport:
    host = "smtp.eu.mailgun.org" if config.region == "eu" else "smtp.mailgun.org"
    return SmtpTransport(host, SMTP_SUBMISSION_PORT, config.username, config.password, True, settings.smtp_timeout)


@register("mailjet", "smtp")
def _mailjet_smtp(config, settings: DispatchSettings) -> SmtpTransport:
    return SmtpTransport(
        "in-v3.mailjet.com", SMTP_SUBMISSION_PORT, config.access_key, config.secret_key, True, settings.smtp_timeout
    )


@register("postmark", "smtp")
def _postmark_smtp(config, settings: DispatchSettings) -> SmtpTransport:
    # the server token is both user and password
    return SmtpTransport("smtp.postmarkapp.com", SMTP_SUBMISSION_PORT, config.id, config.id, True, settings.smtp_timeout)


@register("sendgrid", "smtp")
def _sendgrid_smtp(config, settings: DispatchSettings) -> SmtpTransport:
    return SmtpTransport("smtp.sendgrid.net", SMTP_SUBMISSION_PORT, "apikey", config.key, True, settings.smtp_timeout)


@register("sendinblue", "smtp")
def _sendinblue_smtp(config, settings: DispatchSettings) -> SmtpTransport:
    return SmtpTransport(
        "smtp-relay.brevo.com", SMTP_SUBMISSION_PORT, config.username, config.password, True, settings.smtp_timeout
    )


@register("ohmysmtp", "smtp")
def _ohmysmtp_smtp(config, settings: DispatchSettings) -> SmtpTransport:
    return SmtpTransport(
        "smtp.ohmysmtp.com", SMTP_SUBMISSION_PORT, config.api_token, config.api_token, True, settings.smtp_timeout
    )
