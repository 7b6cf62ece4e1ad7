"""
Sales pitch generation for a lead (admin dashboard "Generate script" button).

Returns {"whatsapp": ..., "script": ...} or None when no API key is set or the
model call / JSON parsing fails.
"""
from __future__ import annotations

import json
import logging
from typing import Any, Optional

from anthropic import AsyncAnthropic, APIError

from .config import settings
from .models import Lead

logger = logging.getLogger(__name__)

SCRIPT_MODEL = "claude-haiku-4-5-20251001"


def build_prompt(lead: Lead) -> str:
    service = lead.service_type.value if lead.service_type else "DTH / Broadband"
    operator = lead.operator.value if lead.operator else "any operator"
    return f"""You are an expert sales agent for "DTH Store", a reseller of DTH and Broadband services.
Generate a personalized sales pitch for a lead with the following details:
Name: {lead.name}
Service Interested: {service}
Operator: {operator}
Location: {lead.location}

Goal: Convince them to book the installation today. Mention "Fast Installation" and "Best Offer".

Return ONLY valid JSON with two fields:
1. "whatsapp": A short, emoji-rich, friendly WhatsApp message (max 50 words).
2. "script": A professional phone call opening script (max 100 words)."""


def _parse(text: str) -> Optional[dict[str, str]]:
    text = text.strip()
    # tolerate a fenced ```json block
    if text.startswith("```"):
        text = text.strip("`")
        text = text[text.find("{"):]
    try:
        data: Any = json.loads(text)
    except json.JSONDecodeError:
        return None
    if not isinstance(data, dict):
        return None
    whatsapp, script = data.get("whatsapp"), data.get("script")
    if not isinstance(whatsapp, str) or not isinstance(script, str):
        return None
    return {"whatsapp": whatsapp, "script": script}


async def generate_sales_script(lead: Lead, client: Optional[AsyncAnthropic] = None) -> Optional[dict[str, str]]:
    if client is None:
        if not settings.anthropic_api_key:
            logger.warning("ANTHROPIC_API_KEY not set, cannot generate sales script")
            return None
        client = AsyncAnthropic(api_key=settings.anthropic_api_key)

    try:
        msg = await client.messages.create(
            model=SCRIPT_MODEL,
            max_tokens=600,
            messages=[{"role": "user", "content": build_prompt(lead)}],
        )
        result = _parse(msg.content[0].text)
    except (APIError, IndexError, AttributeError) as e:
        logger.warning("Sales script generation failed for lead %s: %s", lead.id, e)
        return None

    if result is None:
        logger.warning("Sales script response for lead %s was not the expected JSON", lead.id)
    return result
