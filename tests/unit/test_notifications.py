import httpx
import pytest

from app.config import settings
from app.utils import notifications
from app.utils.notifications import TELEGRAM_MAX_LENGTH, format_message, send_telegram_message


@pytest.fixture()
def telegram(monkeypatch):
    monkeypatch.setattr(settings, "TELEGRAM_ENABLED", True)
    monkeypatch.setattr(settings, "TELEGRAM_BOT_TOKEN", "123:abc")
    monkeypatch.setattr(settings, "TELEGRAM_CHAT_ID", "-100200")
    sent = []
    state = {"status": 200, "body": {"ok": True}}

    def handler(request: httpx.Request) -> httpx.Response:
        sent.append(request)
        return httpx.Response(state["status"], json=state["body"])

    real_client = httpx.AsyncClient

    def client_factory(**kwargs):
        return real_client(transport=httpx.MockTransport(handler), **kwargs)

    monkeypatch.setattr(notifications.httpx, "AsyncClient", client_factory)
    return sent, state


@pytest.mark.unit
def test_format_message_escapes_and_bolds_title():
    text = format_message("New <Deposit>", "Alice & Bob sent 100")

    assert text == "<b>New &lt;Deposit&gt;</b>\n\nAlice &amp; Bob sent 100"
    assert format_message(None, "  plain  ") == "plain"


@pytest.mark.unit
def test_format_message_truncates():
    assert len(format_message("t", "x" * 5000)) == TELEGRAM_MAX_LENGTH


@pytest.mark.asyncio
@pytest.mark.unit
async def test_disabled_alerts_are_skipped(monkeypatch):
    monkeypatch.setattr(settings, "TELEGRAM_ENABLED", False)
    assert await send_telegram_message("hello") is False


@pytest.mark.asyncio
@pytest.mark.unit
async def test_sends_to_configured_chat(telegram):
    sent, _ = telegram

    assert await send_telegram_message("hello") is True
    assert len(sent) == 1
    assert sent[0].url.path == "/bot123:abc/sendMessage"
    assert b'"chat_id":"-100200"' in sent[0].content.replace(b" ", b"")


@pytest.mark.asyncio
@pytest.mark.unit
async def test_api_failures_return_false(telegram):
    _, state = telegram

    state["status"] = 502
    assert await send_telegram_message("hello") is False

    state["status"] = 200
    state["body"] = {"ok": False, "description": "chat not found"}
    assert await send_telegram_message("hello") is False
