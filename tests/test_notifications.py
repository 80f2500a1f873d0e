import asyncio
from email.message import EmailMessage

import pytest

from forms.notifications import NotificationDispatcher, SmtpMailer


def _message(to="owner@example.com"):
    message = EmailMessage()
    message["To"] = to
    message["Subject"] = "New submission for form: C"
    message.set_content("k: v\n")
    return message


class BlockingMailer:
    def __init__(self):
        self.release = asyncio.Event()
        self.sent = []

    async def send(self, message):
        await self.release.wait()
        self.sent.append(message)


class FailingMailer:
    def __init__(self):
        self.attempts = 0

    async def send(self, message):
        self.attempts += 1
        raise ConnectionRefusedError("smtp down")


@pytest.mark.asyncio
async def test_dispatch_returns_before_send_completes():
    mailer = BlockingMailer()
    dispatcher = NotificationDispatcher(mailer)

    dispatcher.dispatch(_message())
    await asyncio.sleep(0)

    assert mailer.sent == []
    assert dispatcher.pending == 1

    mailer.release.set()
    await dispatcher.drain()

    assert len(mailer.sent) == 1
    assert dispatcher.pending == 0


@pytest.mark.asyncio
async def test_send_failure_is_swallowed_after_one_attempt():
    mailer = FailingMailer()
    dispatcher = NotificationDispatcher(mailer)

    dispatcher.dispatch(_message())
    await dispatcher.drain()

    assert mailer.attempts == 1
    assert dispatcher.pending == 0


@pytest.mark.asyncio
async def test_send_survives_cancellation_of_dispatching_task():
    mailer = BlockingMailer()
    dispatcher = NotificationDispatcher(mailer)

    async def handler():
        dispatcher.dispatch(_message())
        await asyncio.sleep(3600)

    request = asyncio.create_task(handler())
    await asyncio.sleep(0)
    request.cancel()
    with pytest.raises(asyncio.CancelledError):
        await request

    mailer.release.set()
    await dispatcher.drain()

    assert len(mailer.sent) == 1


@pytest.mark.asyncio
async def test_smtp_mailer_passes_relay_settings(monkeypatch):
    calls = []

    async def fake_send(message, **kwargs):
        calls.append((message, kwargs))

    monkeypatch.setattr("forms.notifications.aiosmtplib.send", fake_send)
    message = _message()

    await SmtpMailer("smtp.example.com", 465, "mailer", "pw").send(message)

    assert calls == [(message, {
        "hostname": "smtp.example.com",
        "port": 465,
        "username": "mailer",
        "password": "pw",
        "use_tls": True,
    })]
