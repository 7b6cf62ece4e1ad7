"""
REST lead backends.

RestApiBackend talks to the SQL-backed API (/api/leads). Depending on the
deployment it answers with a raw array / echoed lead, or with a
{success, leads} / {success, lead} envelope; both shapes are accepted.

MessagingBridgeBackend talks to the WhatsApp bridge's /leads surface, which
always uses the envelope and is authenticated with an optional x-api-key.
"""
from __future__ import annotations

import json
import logging
from typing import Any

import httpx

from ..models import Lead
from .base import BackendKind, BackendUnavailable, LeadBackend, parse_lead, parse_leads

logger = logging.getLogger(__name__)


class _JsonLeadBackend(LeadBackend):
    leads_path = "/leads"

    def __init__(self, base_url: str, client: httpx.AsyncClient, headers: dict[str, str] | None = None):
        self.base_url = base_url.rstrip("/")
        self.client = client
        self.headers = {"Content-Type": "application/json", **(headers or {})}

    def _url(self, suffix: str = "") -> str:
        return f"{self.base_url}{self.leads_path}{suffix}"

    async def _request(self, method: str, url: str, body: dict[str, Any] | None = None) -> Any:
        try:
            resp = await self.client.request(method, url, json=body, headers=self.headers)
        except httpx.HTTPError as e:
            raise BackendUnavailable(f"{method} {url}: {e!r}") from e

        logger.info(json.dumps({
            "event": "lead_backend_response",
            "backend": self.kind.value,
            "method": method,
            "url": url,
            "status": resp.status_code,
        }))

        if not resp.is_success:
            raise BackendUnavailable(f"{method} {url}: HTTP {resp.status_code}")
        if not resp.content:
            return None
        try:
            data = resp.json()
        except ValueError as e:
            raise BackendUnavailable(f"{method} {url}: invalid JSON body") from e
        if isinstance(data, dict) and data.get("success") is False:
            raise BackendUnavailable(f"{method} {url}: {data.get('message') or 'success=false'}")
        return data

    async def list_leads(self) -> list[Lead]:
        data = await self._request("GET", self._url())
        if isinstance(data, dict):
            data = data.get("leads")
        return parse_leads(data)

    async def create_lead(self, lead: Lead) -> Lead:
        data = await self._request("POST", self._url(), lead.to_json())
        if isinstance(data, dict) and isinstance(data.get("lead"), dict):
            return parse_lead(data["lead"])
        if isinstance(data, dict) and "id" in data:
            return parse_lead(data)
        return lead

    async def update_lead(self, lead: Lead) -> None:
        await self._request("PUT", self._url(f"/{lead.id}"), lead.to_json())

    async def delete_lead(self, lead_id: str) -> None:
        await self._request("DELETE", self._url(f"/{lead_id}"))

    def describe(self) -> dict[str, Any]:
        return {"kind": self.kind.value, "url": self._url()}


class RestApiBackend(_JsonLeadBackend):
    kind = BackendKind.REST_API
    leads_path = "/api/leads"


class MessagingBridgeBackend(_JsonLeadBackend):
    kind = BackendKind.MESSAGING_BRIDGE
    leads_path = "/leads"
