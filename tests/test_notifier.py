import asyncio
import logging

import pytest
from twilio.base.exceptions import TwilioRestException

import notifier


class FakeMessages:
    def __init__(self, error=None):
        self.error = error
        self.created = []

    def create(self, body, from_, to):
        self.created.append({"body": body, "from_": from_, "to": to})
        if self.error:
            raise self.error
        return type("Message", (), {"sid": "SM1"})()


@pytest.fixture
def credentials(monkeypatch):
    monkeypatch.setattr(notifier, "TWILIO_ACCOUNT_SID", "AC123")
    monkeypatch.setattr(notifier, "TWILIO_AUTH_TOKEN", "token")
    monkeypatch.setattr(notifier, "TWILIO_FROM", "whatsapp:+14155238886")


@pytest.fixture
def fake_client(monkeypatch):
    clients = []

    def install(error=None):
        messages = FakeMessages(error)

        class FakeClient:
            def __init__(self, username, password, http_client=None):
                clients.append((username, password))
                self.messages = messages

        monkeypatch.setattr(notifier, "Client", FakeClient)
        return messages, clients

    return install


def test_dispatch_sends_one_message(credentials, fake_client, caplog):
    messages, clients = fake_client()

    with caplog.at_level(logging.INFO, logger="notifier"):
        assert asyncio.run(notifier.dispatch("whatsapp:+100", "hello")) is True

    assert clients == [("AC123", "token")]
    assert messages.created == [
        {"body": "hello", "from_": "whatsapp:+14155238886", "to": "whatsapp:+100"}
    ]
    assert "sid=SM1" in caplog.text


def test_dispatch_reports_provider_error(credentials, fake_client, caplog):
    fake_client(TwilioRestException(400, "/Messages.json", msg="invalid To number"))

    with caplog.at_level(logging.ERROR, logger="notifier"):
        assert asyncio.run(notifier.dispatch("bad", "hello")) is False
    assert "rejected the message" in caplog.text


def test_dispatch_reports_transport_error(credentials, fake_client, caplog):
    fake_client(ConnectionError("unreachable"))

    with caplog.at_level(logging.ERROR, logger="notifier"):
        assert asyncio.run(notifier.dispatch("whatsapp:+100", "hello")) is False
    assert "unreachable" in caplog.text


def test_dispatch_without_credentials_does_not_call_provider(monkeypatch, fake_client):
    monkeypatch.setattr(notifier, "TWILIO_ACCOUNT_SID", "")
    monkeypatch.setattr(notifier, "TWILIO_AUTH_TOKEN", "")
    messages, clients = fake_client()

    assert asyncio.run(notifier.dispatch("whatsapp:+100", "hello")) is False
    assert clients == []
    assert messages.created == []


def test_dispatch_without_destination_fails(credentials, fake_client):
    messages, _ = fake_client()

    assert asyncio.run(notifier.dispatch("", "hello")) is False
    assert messages.created == []
