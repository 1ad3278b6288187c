"""Admin alert delivery over the Telegram Bot API."""

import html
import logging
from typing import Optional

import httpx

from app.config import settings

logger = logging.getLogger(__name__)

TELEGRAM_API_URL = "https://api.telegram.org"
TELEGRAM_MAX_LENGTH = 4096


def format_message(title: Optional[str], body: str) -> str:
    """HTML body for parse_mode=HTML; title in bold, text escaped"""
    body = html.escape(body.strip())
    if title:
        body = f"<b>{html.escape(title.strip())}</b>\n\n{body}"
    if len(body) > TELEGRAM_MAX_LENGTH:
        body = body[: TELEGRAM_MAX_LENGTH - 1] + "…"
    return body


async def send_telegram_message(text: str, chat_id: Optional[str] = None) -> bool:
    """
    Push `text` to the admin chat.

    Returns False (never raises) when alerts are disabled, unconfigured,
    or the Bot API call fails.
    """
    if not settings.TELEGRAM_ENABLED:
        return False

    token = settings.TELEGRAM_BOT_TOKEN
    chat_id = chat_id or settings.TELEGRAM_CHAT_ID
    if not token or not chat_id:
        logger.info("Telegram alert skipped (missing TELEGRAM_BOT_TOKEN or TELEGRAM_CHAT_ID)")
        return False

    payload = {
        "chat_id": chat_id,
        "text": text,
        "parse_mode": "HTML",
        "disable_web_page_preview": True,
    }

    try:
        async with httpx.AsyncClient(base_url=TELEGRAM_API_URL, timeout=15.0) as client:
            resp = await client.post(f"/bot{token}/sendMessage", json=payload)
            resp.raise_for_status()
            body = resp.json()
    except (httpx.HTTPError, ValueError) as exc:
        logger.error(f"Telegram alert failed: {exc}")
        return False

    if not body.get("ok", False):
        logger.error(f"Telegram alert rejected: {body.get('description')}")
        return False
    return True
