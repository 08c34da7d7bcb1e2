# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Delivery transports keyed by (provider, driver).

Importing this package registers every built-in binding:

================  =====================  =========================
provider          drivers                transport
================  =====================  =========================
smtp              (none), smtp           SmtpTransport
gmail             (none), smtp           SmtpTransport
ses               api, http / smtp       SesTransport / SmtpTransport
mailgun           api, http / smtp       Mailgun*Transport / SmtpTransport
mailjet           api / smtp             MailjetApiTransport / SmtpTransport
postmark          api / smtp             PostmarkApiTransport / SmtpTransport
sendgrid          api / smtp             SendgridApiTransport / SmtpTransport
sendinblue        api / smtp             SendinblueApiTransport / SmtpTransport
ohmysmtp          api / smtp             OhMySmtpApiTransport / SmtpTransport
================  =====================  =========================

The HTTP gateway (``maildocker``) is not a transport; see ``gateway``.
"""

from . import http_api, ses, smtp  # noqa: F401  (registration side effects)
from .base import (
    TRANSPORTS,
    SendReceipt,
    Transport,
    register,
    resolve_transport,
    supported_bindings,
)

__all__ = [
    "TRANSPORTS",
    "SendReceipt",
    "Transport",
    "register",
    "resolve_transport",
    "supported_bindings",
]
