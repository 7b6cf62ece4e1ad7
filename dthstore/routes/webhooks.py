"""
Facebook Lead Ads webhook.

GET  /webhooks/facebook  subscription handshake (hub.mode / hub.verify_token / hub.challenge)
POST /webhooks/facebook  page events; every `leadgen` change becomes a lead

Facebook only sends the leadgen id, so the lead is stored as a placeholder
("Facebook Lead (<id>)", mobile "Check FB") for staff to complete from the
Ads Manager.
"""
from __future__ import annotations

import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import PlainTextResponse, Response

from ..config import settings
from ..models import Lead, LeadSource, LeadStatus, now_ms
from ..runtime import Runtime, get_runtime

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/webhooks", tags=["webhooks"])


def _leadgen_ids(body: dict[str, Any]) -> list[str]:
    ids: list[str] = []
    for entry in body.get("entry") or []:
        for change in (entry or {}).get("changes") or []:
            if change.get("field") != "leadgen":
                continue
            leadgen_id = (change.get("value") or {}).get("leadgen_id")
            if leadgen_id:
                ids.append(str(leadgen_id))
    return ids


def facebook_placeholder_lead(leadgen_id: str) -> Lead:
    return Lead(
        id=f"fb_{leadgen_id}",
        name=f"Facebook Lead ({leadgen_id})",
        mobile="Check FB",
        status=LeadStatus.NEW,
        source=LeadSource.FACEBOOK,
        created_at=now_ms(),
    )


@router.get("/facebook")
async def facebook_verify(
    mode: Optional[str] = Query(default=None, alias="hub.mode"),
    token: Optional[str] = Query(default=None, alias="hub.verify_token"),
    challenge: Optional[str] = Query(default=None, alias="hub.challenge"),
) -> Response:
    if not mode or not token:
        return Response(status_code=400)
    if mode == "subscribe" and token == settings.fb_verify_token:
        logger.info("facebook webhook verified")
        return PlainTextResponse(challenge or "")
    return Response(status_code=403)


@router.post("/facebook")
async def facebook_event(request: Request, runtime: Runtime = Depends(get_runtime)) -> Response:
    try:
        body: dict[str, Any] = await request.json()
    except ValueError:
        body = {}

    if body.get("object") != "page":
        return Response(status_code=404)

    for leadgen_id in _leadgen_ids(body):
        lead = await runtime.orchestrator.ingest(facebook_placeholder_lead(leadgen_id))
        logger.info("facebook leadgen %s stored as lead %s", leadgen_id, lead.id)

    return PlainTextResponse("EVENT_RECEIVED")
