"""
Telegram Bot API adapter.

POST https://api.telegram.org/bot<token>/sendMessage with a Markdown body.
The API answers {"ok": true, ...} or {"ok": false, "description": "..."}.
"""
from __future__ import annotations

import json
import logging

import httpx

from ...models import Lead, NotificationConfig
from ...notifications.messages import TEST_TELEGRAM_TEXT, telegram_text

logger = logging.getLogger(__name__)

BASE_URL = "https://api.telegram.org"


async def _send_message(
    client: httpx.AsyncClient,
    config: NotificationConfig,
    text: str,
    disable_preview: bool = True,
) -> tuple[bool, str]:
    url = f"{BASE_URL}/bot{config.telegram_bot_token}/sendMessage"
    body = {
        "chat_id": config.telegram_chat_id,
        "text": text,
        "parse_mode": "Markdown",
    }
    if disable_preview:
        body["disable_web_page_preview"] = True

    try:
        resp = await client.post(url, json=body)
        data = resp.json()
    except (httpx.HTTPError, ValueError) as e:
        return False, repr(e)

    if isinstance(data, dict) and data.get("ok") is True:
        return True, "ok"
    detail = data.get("description") if isinstance(data, dict) else None
    return False, str(detail or f"HTTP {resp.status_code}")


async def send_lead_telegram(lead: Lead, config: NotificationConfig, client: httpx.AsyncClient) -> bool:
    ok, detail = await _send_message(client, config, telegram_text(lead))
    if ok:
        logger.info(json.dumps({"event": "notification_sent", "channel": "telegram", "lead_id": lead.id}))
    else:
        # the bot token is part of the URL and can leak into httpx errors
        if config.telegram_bot_token:
            detail = detail.replace(config.telegram_bot_token, "***")
        logger.warning(json.dumps({
            "event": "notification_failed",
            "channel": "telegram",
            "lead_id": lead.id,
            "error": detail[:300],
        }))
    return ok


async def send_test_telegram(config: NotificationConfig, client: httpx.AsyncClient) -> tuple[bool, str]:
    ok, detail = await _send_message(client, config, TEST_TELEGRAM_TEXT, disable_preview=False)
    return ok, ("Telegram message sent!" if ok else detail)
