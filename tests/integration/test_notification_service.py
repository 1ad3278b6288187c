import asyncio
import logging

import pytest

from app.config import settings
from app.services import notification_service
from app.services.notification_service import drain_pending_pushes


@pytest.fixture()
def slow_telegram(monkeypatch):
    monkeypatch.setattr(settings, "TELEGRAM_ENABLED", True)
    release = asyncio.Event()
    sent = []

    async def fake_send(text, chat_id=None):
        await release.wait()
        sent.append(text)
        return True

    monkeypatch.setattr(notification_service, "send_telegram_message", fake_send)
    return release, sent


@pytest.mark.asyncio
@pytest.mark.integration
async def test_submit_does_not_wait_for_telegram(
    services, seeded_plans, make_user, submit_and_decide, slow_telegram
):
    release, sent = slow_telegram
    user = await make_user(name="Olga")

    request = await submit_and_decide(user, "150", decision=None)

    assert request.id
    assert sent == []
    inbox = await services.notifications.list_for_admins()
    assert inbox.total == 1

    release.set()
    await drain_pending_pushes()

    assert len(sent) == 1
    assert "Olga" in sent[0]
    assert not notification_service._pending_pushes


@pytest.mark.asyncio
@pytest.mark.integration
async def test_failed_push_is_logged_not_raised(services, monkeypatch, caplog):
    monkeypatch.setattr(settings, "TELEGRAM_ENABLED", True)

    async def exploding_send(text, chat_id=None):
        raise RuntimeError("bot api down")

    monkeypatch.setattr(notification_service, "send_telegram_message", exploding_send)

    with caplog.at_level(logging.ERROR, logger="app.services.notification_service"):
        stored = await services.notifications.notify_admins("Payout queue stalled", title="Ops")
        await drain_pending_pushes()
        await asyncio.sleep(0)

    assert stored is True
    assert "Telegram push failed" in caplog.text
    assert not notification_service._pending_pushes


@pytest.mark.asyncio
@pytest.mark.integration
async def test_push_skipped_when_telegram_disabled(services, monkeypatch):
    monkeypatch.setattr(settings, "TELEGRAM_ENABLED", False)

    await services.notifications.notify_admins("Quiet night")

    assert not notification_service._pending_pushes
