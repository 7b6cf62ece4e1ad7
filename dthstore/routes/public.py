"""
Public website endpoints.

POST /leads is the lead form. Validation errors come back as 422 before
anything is stored; once valid, the request always succeeds from the
visitor's point of view, whatever the state of the backends and channels.
"""
from __future__ import annotations

from fastapi import APIRouter, Depends

from ..models import LeadCaptureForm, LeadSource
from ..runtime import Runtime, get_runtime

router = APIRouter(tags=["public"])


@router.post("/leads", status_code=201)
async def capture_lead(form: LeadCaptureForm, runtime: Runtime = Depends(get_runtime)):
    lead = await runtime.orchestrator.capture(form, LeadSource.WEBSITE)
    return {"success": True, "lead": lead.to_json()}


@router.get("/products")
async def list_products(runtime: Runtime = Depends(get_runtime)):
    return [p.to_json() for p in await runtime.catalog.get_products()]


@router.get("/site-config")
async def site_config(runtime: Runtime = Depends(get_runtime)):
    return (await runtime.catalog.get_site_config()).to_json()
