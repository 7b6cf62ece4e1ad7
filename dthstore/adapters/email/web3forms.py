"""
Web3Forms email adapter.

Sends via POST https://api.web3forms.com/submit. The provider answers
{"success": true|false, "message": "..."}; anything but success=true counts
as a failed delivery.
"""
from __future__ import annotations

import json
import logging
from typing import Any

import httpx

from ...models import Lead, NotificationConfig
from ...notifications.messages import (
    EMAIL_FROM_NAME,
    TEST_EMAIL_MESSAGE,
    TEST_EMAIL_SUBJECT,
    email_payload,
)

logger = logging.getLogger(__name__)

SUBMIT_URL = "https://api.web3forms.com/submit"


async def _submit(client: httpx.AsyncClient, body: dict[str, Any]) -> tuple[bool, str]:
    try:
        resp = await client.post(SUBMIT_URL, json=body)
        data = resp.json()
    except (httpx.HTTPError, ValueError) as e:
        return False, repr(e)
    if isinstance(data, dict) and data.get("success") is True:
        return True, str(data.get("message") or "ok")
    detail = data.get("message") if isinstance(data, dict) else None
    return False, str(detail or f"HTTP {resp.status_code}")


async def send_lead_email(lead: Lead, config: NotificationConfig, client: httpx.AsyncClient) -> bool:
    ok, detail = await _submit(client, email_payload(lead, config))
    if ok:
        logger.info(json.dumps({"event": "notification_sent", "channel": "email", "lead_id": lead.id}))
    else:
        logger.warning(json.dumps({
            "event": "notification_failed",
            "channel": "email",
            "lead_id": lead.id,
            "error": detail[:300],
        }))
    return ok


async def send_test_email(config: NotificationConfig, client: httpx.AsyncClient) -> tuple[bool, str]:
    ok, detail = await _submit(client, {
        "access_key": config.web3forms_key,
        "subject": TEST_EMAIL_SUBJECT,
        "from_name": EMAIL_FROM_NAME,
        "message": TEST_EMAIL_MESSAGE,
    })
    return ok, ("Email sent successfully!" if ok else detail)
