"""Per-channel message templates for a new lead."""
from __future__ import annotations

from datetime import datetime
from typing import Any, Optional
from zoneinfo import ZoneInfo

from ..models import Lead, NotificationConfig

LOCAL_TZ = ZoneInfo("Asia/Kolkata")

EMAIL_FROM_NAME = "DTH Store Website"
DESKTOP_TITLE = "🔔 New Lead Received!"
DESKTOP_TAG = "new-lead"

TEST_EMAIL_SUBJECT = "🔔 Test Notification - DTH Store"
TEST_EMAIL_MESSAGE = "This is a test notification. Your email integration is working!"
TEST_TELEGRAM_TEXT = "🔔 *Test Notification*\n\nYour Telegram integration is working!\n\n_From DTH Store CMS_"
TEST_WHATSAPP_TEXT = "🔔 *Test Notification*\n\nYour WhatsApp integration is working!\n\n_From DTH Store CMS_"


def format_time(now: Optional[datetime] = None) -> str:
    """Indian locale style, e.g. 18/10/2026, 8:56:03 pm."""
    now = (now or datetime.now(LOCAL_TZ)).astimezone(LOCAL_TZ)
    hour = now.hour % 12 or 12
    return f"{now:%d/%m/%Y}, {hour}:{now:%M:%S} {'am' if now.hour < 12 else 'pm'}"


def _service(lead: Lead) -> str:
    return lead.service_type.value if lead.service_type else "Unknown"


def _operator(lead: Lead) -> str:
    return lead.operator.value if lead.operator else "Unknown"


def email_payload(lead: Lead, config: NotificationConfig, now: Optional[datetime] = None) -> dict[str, Any]:
    return {
        "access_key": config.web3forms_key,
        "subject": f"🔔 New Lead: {lead.name} - {_service(lead)}",
        "from_name": EMAIL_FROM_NAME,
        "to_email": config.admin_email,
        "name": lead.name,
        "mobile": lead.mobile,
        "service": _service(lead),
        "operator": _operator(lead),
        "location": lead.location,
        "source": lead.source.value,
        "time": format_time(now),
    }


def telegram_text(lead: Lead, now: Optional[datetime] = None) -> str:
    return (
        "🔔 *New Lead Alert!*\n"
        "\n"
        f"👤 *Name:* {lead.name}\n"
        f"📱 *Mobile:* {lead.mobile}\n"
        f"🏠 *Location:* {lead.location}\n"
        f"📺 *Service:* {_service(lead)}\n"
        f"🎯 *Operator:* {_operator(lead)}\n"
        f"🌐 *Source:* {lead.source.value}\n"
        f"📅 *Time:* {format_time(now)}\n"
        "\n"
        f"[📞 Call Now](tel:+91{lead.mobile})\n"
        f"[💬 WhatsApp](https://wa.me/91{lead.mobile})\n"
    )


def whatsapp_text(lead: Lead, now: Optional[datetime] = None) -> str:
    return (
        "🔔 *New Lead - DTH Store*\n"
        "\n"
        f"👤 *Name:* {lead.name}\n"
        f"📱 *Mobile:* {lead.mobile}\n"
        f"🏠 *Location:* {lead.location}\n"
        f"📺 *Service:* {_service(lead)} - {_operator(lead)}\n"
        f"🌐 *Source:* {lead.source.value}\n"
        f"⏰ *Time:* {format_time(now)}\n"
        "\n"
        f"📞 Call: tel:+91{lead.mobile}\n"
        f"💬 WhatsApp: https://wa.me/91{lead.mobile}"
    )


def whatsapp_chat_id(number: str) -> str:
    """E.164 without '+', e.g. 919311252564@c.us."""
    return f"{number.strip().lstrip('+')}@c.us"


def desktop_body(lead: Lead) -> str:
    return f"{lead.name} - {lead.mobile}\n{_service(lead)} | {lead.location}"


def follow_up_reminder_body(count: int) -> str:
    return f"You have {count} follow-up(s) scheduled for today!"
