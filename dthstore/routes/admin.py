from __future__ import annotations

from datetime import date, datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel

from ..adapters.messaging import whatsapp
from ..auth import TOKEN_COOKIE, authenticate, create_jwt, require_admin, require_staff
from ..leads import (
    add_note,
    change_status,
    due_follow_ups,
    export_csv,
    filter_leads,
    schedule_follow_up,
)
from ..models import (
    CamelModel,
    Channel,
    Lead,
    LeadCaptureForm,
    LeadSource,
    LeadStatus,
    NotificationConfig,
    Product,
    SiteConfig,
    User,
)
from ..notifications.dispatcher import push_follow_up_reminder, send_test_notification
from ..runtime import Runtime, get_runtime
from ..sales_script import generate_sales_script

router = APIRouter(prefix="/admin", tags=["admin"])


class LoginRequest(BaseModel):
    username: str
    password: str


class StatusChange(BaseModel):
    status: LeadStatus


class NoteRequest(BaseModel):
    text: str


class FollowUpRequest(CamelModel):
    follow_up_date: Optional[datetime] = None


def _leads_json(leads: list[Lead]) -> list[dict]:
    return [lead.to_json() for lead in leads]


async def _load_lead(runtime: Runtime, lead_id: str) -> Lead:
    lead = await runtime.leads.find_lead(lead_id)
    if lead is None:
        raise HTTPException(status_code=404, detail="Lead not found")
    return lead


async def _apply(runtime: Runtime, updated: Lead) -> dict:
    leads = await runtime.leads.update_lead(updated)
    current = next((lead for lead in leads if lead.id == updated.id), updated)
    return {"lead": current.to_json(), "leads": _leads_json(leads)}


# ---------------------------------------------------------------------------
# Login
# ---------------------------------------------------------------------------

@router.post("/login")
async def login(body: LoginRequest):
    user = authenticate(body.username, body.password)
    if user is None:
        raise HTTPException(status_code=401, detail="Invalid username or password")
    token = create_jwt(user)
    response = JSONResponse({"token": token, "user": user.to_json()})
    response.set_cookie(key=TOKEN_COOKIE, value=token, httponly=True, samesite="lax")
    return response


@router.post("/logout")
async def logout():
    response = JSONResponse({"ok": True})
    response.delete_cookie(TOKEN_COOKIE)
    return response


# ---------------------------------------------------------------------------
# Leads
# ---------------------------------------------------------------------------

@router.get("/leads")
async def list_leads(
    status: Optional[LeadStatus] = None,
    q: Optional[str] = None,
    user_id: Optional[str] = Query(default=None, alias="userId"),
    runtime: Runtime = Depends(get_runtime),
    _: User = Depends(require_staff),
):
    if user_id:
        leads = await runtime.leads.get_leads_for_user(user_id)
    else:
        leads = await runtime.leads.get_leads()
    return _leads_json(filter_leads(leads, status, q))


@router.get("/leads/export.csv")
async def export_leads(runtime: Runtime = Depends(get_runtime), _: User = Depends(require_staff)):
    content = export_csv(await runtime.leads.get_leads())
    filename = f"leads_export_{date.today().isoformat()}.csv"
    return Response(
        content=content,
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.post("/leads", status_code=201)
async def create_manual_lead(
    form: LeadCaptureForm,
    runtime: Runtime = Depends(get_runtime),
    _: User = Depends(require_staff),
):
    lead = await runtime.orchestrator.capture(form, LeadSource.MANUAL)
    return lead.to_json()


@router.put("/leads/{lead_id}")
async def update_lead(
    lead_id: str,
    lead: Lead,
    runtime: Runtime = Depends(get_runtime),
    _: User = Depends(require_staff),
):
    return await _apply(runtime, lead.model_copy(update={"id": lead_id}))


@router.post("/leads/{lead_id}/status")
async def set_status(
    lead_id: str,
    body: StatusChange,
    runtime: Runtime = Depends(get_runtime),
    _: User = Depends(require_staff),
):
    lead = await _load_lead(runtime, lead_id)
    return await _apply(runtime, change_status(lead, body.status))


@router.post("/leads/{lead_id}/notes")
async def create_note(
    lead_id: str,
    body: NoteRequest,
    runtime: Runtime = Depends(get_runtime),
    user: User = Depends(require_staff),
):
    lead = await _load_lead(runtime, lead_id)
    try:
        noted = add_note(lead, body.text, user.name)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return await _apply(runtime, noted)


@router.post("/leads/{lead_id}/follow-up")
async def set_follow_up(
    lead_id: str,
    body: FollowUpRequest,
    runtime: Runtime = Depends(get_runtime),
    _: User = Depends(require_staff),
):
    lead = await _load_lead(runtime, lead_id)
    return await _apply(runtime, schedule_follow_up(lead, body.follow_up_date))


@router.delete("/leads/{lead_id}")
async def delete_lead(
    lead_id: str,
    runtime: Runtime = Depends(get_runtime),
    _: User = Depends(require_admin),
):
    return _leads_json(await runtime.leads.delete_lead(lead_id))


@router.post("/leads/{lead_id}/sales-script")
async def sales_script(
    lead_id: str,
    runtime: Runtime = Depends(get_runtime),
    _: User = Depends(require_staff),
):
    lead = await _load_lead(runtime, lead_id)
    result = await generate_sales_script(lead)
    if result is None:
        raise HTTPException(status_code=503, detail="Sales script generation unavailable")
    return result


# ---------------------------------------------------------------------------
# Notifications
# ---------------------------------------------------------------------------

@router.get("/notifications/config")
async def get_notification_config(runtime: Runtime = Depends(get_runtime), _: User = Depends(require_admin)):
    return runtime.notification_config.current().model_dump(mode="json", by_alias=True)


@router.put("/notifications/config")
async def put_notification_config(
    config: NotificationConfig,
    runtime: Runtime = Depends(get_runtime),
    _: User = Depends(require_admin),
):
    saved = await runtime.notification_config.save(config)
    return saved.model_dump(mode="json", by_alias=True)


@router.post("/notifications/test/{channel}")
async def test_notification(
    channel: Channel,
    runtime: Runtime = Depends(get_runtime),
    _: User = Depends(require_admin),
):
    return await send_test_notification(
        channel,
        runtime.notification_config.current(),
        client=runtime.client,
        feed=runtime.feed,
    )


@router.get("/notifications/feed")
async def notification_feed(
    since: Optional[int] = None,
    runtime: Runtime = Depends(get_runtime),
    _: User = Depends(require_staff),
):
    return runtime.feed.entries(since)


@router.delete("/notifications/feed")
async def clear_notification_feed(runtime: Runtime = Depends(get_runtime), _: User = Depends(require_staff)):
    await runtime.feed.clear()
    return {"ok": True}


@router.post("/notifications/reminders")
async def follow_up_reminders(runtime: Runtime = Depends(get_runtime), _: User = Depends(require_staff)):
    due = due_follow_ups(await runtime.leads.get_leads())
    pushed = await push_follow_up_reminder(due, runtime.notification_config.current(), runtime.feed)
    return {"due": _leads_json(due), "pushed": pushed}


# ---------------------------------------------------------------------------
# WhatsApp bridge session
# ---------------------------------------------------------------------------

@router.get("/whatsapp/status")
async def whatsapp_status(runtime: Runtime = Depends(get_runtime), _: User = Depends(require_admin)):
    return await whatsapp.session_status(runtime.notification_config.current(), runtime.client)


@router.get("/whatsapp/qr")
async def whatsapp_qr(runtime: Runtime = Depends(get_runtime), _: User = Depends(require_admin)):
    url = whatsapp.qr_image_url(runtime.notification_config.current())
    if url is None:
        raise HTTPException(status_code=404, detail="WhatsApp API URL not configured")
    return {"url": url}


# ---------------------------------------------------------------------------
# Catalog / CMS
# ---------------------------------------------------------------------------

@router.post("/products")
async def save_product(
    product: Product,
    runtime: Runtime = Depends(get_runtime),
    _: User = Depends(require_admin),
):
    return [p.to_json() for p in await runtime.catalog.save_product(product)]


@router.delete("/products/{product_id}")
async def delete_product(
    product_id: str,
    runtime: Runtime = Depends(get_runtime),
    _: User = Depends(require_admin),
):
    return [p.to_json() for p in await runtime.catalog.delete_product(product_id)]


@router.put("/site-config")
async def save_site_config(
    config: SiteConfig,
    runtime: Runtime = Depends(get_runtime),
    _: User = Depends(require_admin),
):
    return (await runtime.catalog.save_site_config(config)).to_json()
