"""
WhatsApp bridge adapter.

Talks to the self-hosted whatsapp-web.js REST wrapper:
  POST {base}/client/sendMessage/{session}   {chatId, message}
  GET  {base}/session/status/{session}       {state: "CONNECTED" | ...}
  GET  {base}/session/qr/{session}/image     pairing QR code (PNG)

The x-api-key header is sent only when a key is configured.
"""
from __future__ import annotations

import json
import logging
from typing import Any

import httpx

from ...models import Lead, NotificationConfig
from ...notifications.messages import TEST_WHATSAPP_TEXT, whatsapp_chat_id, whatsapp_text

logger = logging.getLogger(__name__)


async def _send_message(client: httpx.AsyncClient, config: NotificationConfig, message: str) -> tuple[bool, str]:
    url = f"{config.whatsapp_base_url}/client/sendMessage/{config.whatsapp_session_id}"
    body = {
        "chatId": whatsapp_chat_id(config.whatsapp_admin_number),
        "message": message,
    }
    try:
        resp = await client.post(url, json=body, headers=config.whatsapp_headers())
    except httpx.HTTPError as e:
        return False, repr(e)

    if resp.is_success:
        return True, "ok"
    try:
        data = resp.json()
        detail = data.get("message") if isinstance(data, dict) else None
    except ValueError:
        detail = None
    return False, str(detail or f"HTTP {resp.status_code}")


async def send_lead_whatsapp(lead: Lead, config: NotificationConfig, client: httpx.AsyncClient) -> bool:
    ok, detail = await _send_message(client, config, whatsapp_text(lead))
    if ok:
        logger.info(json.dumps({"event": "notification_sent", "channel": "whatsapp", "lead_id": lead.id}))
    else:
        logger.warning(json.dumps({
            "event": "notification_failed",
            "channel": "whatsapp",
            "lead_id": lead.id,
            "error": detail[:300],
        }))
    return ok


async def send_test_whatsapp(config: NotificationConfig, client: httpx.AsyncClient) -> tuple[bool, str]:
    ok, detail = await _send_message(client, config, TEST_WHATSAPP_TEXT)
    return ok, ("WhatsApp message sent!" if ok else detail or "Failed to send")


async def session_status(config: NotificationConfig, client: httpx.AsyncClient) -> dict[str, Any]:
    """Connection state of the bridge session: connected | disconnected | unconfigured."""
    if not config.whatsapp_api_url:
        return {"status": "unconfigured", "state": None}

    url = f"{config.whatsapp_base_url}/session/status/{config.whatsapp_session_id}"
    try:
        resp = await client.get(url, headers=config.whatsapp_headers(json_body=False))
        data = resp.json()
    except (httpx.HTTPError, ValueError) as e:
        logger.warning("whatsapp session status check failed: %r", e)
        return {"status": "disconnected", "state": None}

    state = data.get("state") if isinstance(data, dict) else None
    return {
        "status": "connected" if state == "CONNECTED" else "disconnected",
        "state": state,
    }


def qr_image_url(config: NotificationConfig) -> str | None:
    if not config.whatsapp_api_url:
        return None
    return f"{config.whatsapp_base_url}/session/qr/{config.whatsapp_session_id}/image"
