"""Shared fixtures for mail_dispatch tests."""

from unittest.mock import AsyncMock

import pytest

from mail_dispatch import Message
from mail_dispatch.transports import SendReceipt, Transport
from mail_dispatch.validation import PROVIDER_CONFIG_SCHEMA, SCHEMAS


class RecordingTransport(Transport):
    """Transport double that records envelopes instead of sending them."""

    name = "recording"

    def __init__(self, error=None):
        self.envelopes = []
        self.error = error
        self.send = AsyncMock(side_effect=self._send)

    async def _send(self, envelope):
        self.envelopes.append(envelope)
        if self.error is not None:
            raise self.error
        return SendReceipt(message_id=envelope.message_id, raw={})


@pytest.fixture
def message():
    return (
        Message()
        .set_from("sender@example.com", "Sender")
        .add_to("rcpt@example.com", "Recipient")
        .set_subject("Hello")
        .set_text("Hello there")
    )


@pytest.fixture
def transport():
    return RecordingTransport()


@pytest.fixture
def provider_config():
    """Parse a provider configuration mapping into its config model."""

    def parse(data):
        return SCHEMAS[PROVIDER_CONFIG_SCHEMA].validate_python(data)

    return parse


@pytest.fixture
def make_transport():
    return RecordingTransport
