"""
Lead notification fan-out.

For one lead:
1. Every channel whose flag is on and whose credentials are all present is
   eligible; the rest are skipped with a debug log (partial config == off).
2. Eligible channels run concurrently under asyncio.gather(return_exceptions=True):
   all attempts settle, none can cancel or alter another.
3. delivered/attempted is logged and returned.

Delivery is best-effort. Adapters convert their own failures to False and an
unexpected exception is counted as a failure, so nothing raised by a channel
ever reaches the caller.
"""
from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable

import httpx

from ..adapters.desktop import DesktopFeed
from ..adapters.email import web3forms
from ..adapters.messaging import telegram, whatsapp
from ..models import Channel, Lead, NotificationConfig
from .messages import follow_up_reminder_body

logger = logging.getLogger(__name__)

CHANNEL_ORDER = (Channel.EMAIL, Channel.TELEGRAM, Channel.WHATSAPP, Channel.DESKTOP)


@dataclass
class FanOutResult:
    lead_id: str
    attempted: list[Channel] = field(default_factory=list)
    delivered: list[Channel] = field(default_factory=list)
    skipped: list[Channel] = field(default_factory=list)

    @property
    def failed(self) -> list[Channel]:
        return [c for c in self.attempted if c not in self.delivered]

    @property
    def ok(self) -> bool:
        """At least one delivery, or nothing was configured to deliver to."""
        return bool(self.delivered) or not self.attempted

    def to_dict(self) -> dict[str, Any]:
        return {
            "lead_id": self.lead_id,
            "ok": self.ok,
            "attempted": [c.value for c in self.attempted],
            "delivered": [c.value for c in self.delivered],
            "failed": [c.value for c in self.failed],
            "skipped": [c.value for c in self.skipped],
        }


def _senders(
    lead: Lead,
    config: NotificationConfig,
    client: httpx.AsyncClient,
    feed: DesktopFeed,
) -> dict[Channel, Callable[[], Awaitable[bool]]]:
    return {
        Channel.EMAIL: lambda: web3forms.send_lead_email(lead, config, client),
        Channel.TELEGRAM: lambda: telegram.send_lead_telegram(lead, config, client),
        Channel.WHATSAPP: lambda: whatsapp.send_lead_whatsapp(lead, config, client),
        Channel.DESKTOP: lambda: feed.push_lead(lead),
    }


async def notify_lead(
    lead: Lead,
    config: NotificationConfig,
    *,
    client: httpx.AsyncClient,
    feed: DesktopFeed,
) -> FanOutResult:
    result = FanOutResult(lead_id=lead.id)
    senders = _senders(lead, config, client, feed)

    for channel in CHANNEL_ORDER:
        if config.is_ready(channel):
            result.attempted.append(channel)
        else:
            result.skipped.append(channel)
            logger.debug("[%s] not enabled or not configured, skipping", channel.value)

    outcomes = await asyncio.gather(
        *(senders[channel]() for channel in result.attempted),
        return_exceptions=True,
    )

    for channel, outcome in zip(result.attempted, outcomes):
        if isinstance(outcome, BaseException):
            logger.error(
                "[%s] unexpected error for lead %s: %r", channel.value, lead.id, outcome
            )
        elif outcome is True:
            result.delivered.append(channel)

    logger.info(json.dumps({
        "event": "lead_notification_fanout",
        "lead_id": lead.id,
        "delivered": len(result.delivered),
        "attempted": len(result.attempted),
        "failed": [c.value for c in result.failed],
    }))
    return result


async def send_test_notification(
    channel: Channel,
    config: NotificationConfig,
    *,
    client: httpx.AsyncClient,
    feed: DesktopFeed,
) -> dict[str, Any]:
    """Admin 'test this channel' button: one fixed message, same readiness rule."""
    if not config.is_ready(channel):
        return {
            "channel": channel.value,
            "success": False,
            "message": "Please enable and configure this channel first",
        }

    if channel is Channel.EMAIL:
        ok, message = await web3forms.send_test_email(config, client)
    elif channel is Channel.TELEGRAM:
        ok, message = await telegram.send_test_telegram(config, client)
    elif channel is Channel.WHATSAPP:
        ok, message = await whatsapp.send_test_whatsapp(config, client)
    else:
        ok = await feed.push("🔔 Test Notification", "Desktop notifications are working!", "test")
        message = "Desktop notification queued!" if ok else "Failed to queue notification"

    return {"channel": channel.value, "success": ok, "message": message}


async def push_follow_up_reminder(leads: list[Lead], config: NotificationConfig, feed: DesktopFeed) -> bool:
    """Desktop reminder for today's follow-ups; False when nothing was pushed."""
    if not leads or not config.is_ready(Channel.DESKTOP):
        return False
    return await feed.push(
        "DTH Store - Follow-up Reminder",
        follow_up_reminder_body(len(leads)),
        "follow-up-reminder",
    )
