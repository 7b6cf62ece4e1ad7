"""
Lead persistence router.

Every operation tries the active remote backend first. Any failure (network,
non-2xx, malformed body) is logged as a warning and the operation is replayed
against the local cache instead, so callers always get a result and never an
exception. After a successful remote update/delete the full list is fetched
again so the caller ends up with the authoritative server state.

There is no retry and no "backend is down" memory: the next call goes to the
remote again from scratch.
"""
from __future__ import annotations

import csv
import io
import logging
import secrets
import string
import time
from datetime import date, datetime
from typing import Any, Iterable, Optional
from zoneinfo import ZoneInfo

from pydantic import ValidationError

from .backends import BackendUnavailable, LeadBackend
from .cache import LocalCache
from .constants import LEADS_KEY, initial_leads
from .models import Lead, LeadCaptureForm, LeadNote, LeadSource, LeadStatus, now_ms

logger = logging.getLogger(__name__)

LOCAL_TZ = ZoneInfo("Asia/Kolkata")

_ID_ALPHABET = string.digits + string.ascii_lowercase


def _base36(n: int) -> str:
    out = ""
    while n:
        n, r = divmod(n, 36)
        out = _ID_ALPHABET[r] + out
    return out or "0"


def generate_lead_id() -> str:
    """Client-side id: base36 ms timestamp plus a random suffix."""
    suffix = "".join(secrets.choice(_ID_ALPHABET) for _ in range(9))
    return _base36(now_ms()) + suffix


def generate_order_id() -> str:
    return f"ORD-{str(time.time_ns() // 1_000_000)[-6:]}"


def new_lead(form: LeadCaptureForm, source: LeadSource = LeadSource.WEBSITE) -> Lead:
    return Lead(
        id=generate_lead_id(),
        name=form.name,
        mobile=form.mobile,
        location=form.location,
        service_type=form.service_type,
        operator=form.operator,
        status=LeadStatus.NEW,
        source=source,
        created_at=now_ms(),
    )


def _cached_items(items: Any) -> list[dict[str, Any]]:
    """Only dict entries of a cached list; anything else is dropped."""
    if not isinstance(items, list):
        return []
    return [item for item in items if isinstance(item, dict)]


def _parse_cached(items: Any) -> list[Lead]:
    leads: list[Lead] = []
    for item in _cached_items(items):
        try:
            leads.append(Lead.model_validate(item))
        except ValidationError as e:
            logger.warning("Skipping malformed cached lead %r: %s", item.get("id"), e)
    return leads


class LeadStore:
    def __init__(self, cache: LocalCache, backend: Optional[LeadBackend] = None):
        self.cache = cache
        self.backend = backend

    def set_backend(self, backend: Optional[LeadBackend]) -> None:
        self.backend = backend
        logger.info("Lead backend now %s", backend.describe() if backend else {"kind": "none"})

    # ------------------------------------------------------------------
    # Local cache
    # ------------------------------------------------------------------

    def cached_leads(self) -> list[Lead]:
        return _parse_cached(self.cache.get(LEADS_KEY, initial_leads()))

    async def _mutate_cache(self, fn) -> list[Lead]:
        updated = await self.cache.update(LEADS_KEY, initial_leads(), fn)
        return _parse_cached(updated)

    # ------------------------------------------------------------------
    # Router
    # ------------------------------------------------------------------

    async def get_leads(self) -> list[Lead]:
        if self.backend is not None:
            try:
                return await self.backend.list_leads()
            except BackendUnavailable as e:
                logger.warning("Remote leads fetch failed, falling back to local cache: %s", e)
        return self.cached_leads()

    async def get_leads_for_user(self, user_id: str) -> list[Lead]:
        if self.backend is not None:
            try:
                return await self.backend.list_leads_for_user(user_id)
            except BackendUnavailable as e:
                logger.warning("Remote user leads fetch failed, falling back to local cache: %s", e)
        return [lead for lead in self.cached_leads() if lead.user_id == user_id]

    async def find_lead(self, lead_id: str) -> Optional[Lead]:
        for lead in await self.get_leads():
            if lead.id == lead_id:
                return lead
        return None

    async def save_lead(self, lead: Lead) -> Lead:
        """
        Persist a new lead. Locally, an id that is already cached is not added
        again (webhook redeliveries); the stored lead is returned instead.
        """
        if self.backend is not None:
            try:
                return await self.backend.create_lead(lead)
            except BackendUnavailable as e:
                logger.warning("Remote save failed, saving locally: %s", e)

        payload = lead.to_json()
        existing: list[dict[str, Any]] = []

        def _prepend(items: Any) -> list[dict[str, Any]]:
            items = _cached_items(items)
            existing.extend(item for item in items if item.get("id") == lead.id)
            return items if existing else [payload, *items]

        await self._mutate_cache(_prepend)
        if existing:
            logger.info("Lead %s already cached, not saved again", lead.id)
            stored = _parse_cached(existing[:1])
            if stored:
                return stored[0]
        return lead

    async def update_lead(self, lead: Lead) -> list[Lead]:
        lead = await self._with_order_id(lead)

        if self.backend is not None:
            try:
                await self.backend.update_lead(lead)
                return await self.get_leads()
            except BackendUnavailable as e:
                logger.warning("Remote update failed, patching local cache: %s", e)

        payload = lead.to_json()

        def _patch(items: Any) -> list[dict[str, Any]]:
            out = []
            for item in _cached_items(items):
                if item.get("id") == lead.id:
                    # the cached order id wins over whatever the caller sent
                    order_id = item.get("orderId")
                    item = {**payload, "orderId": order_id} if order_id else payload
                out.append(item)
            return out

        return await self._mutate_cache(_patch)

    async def delete_lead(self, lead_id: str) -> list[Lead]:
        if self.backend is not None:
            try:
                await self.backend.delete_lead(lead_id)
                return await self.get_leads()
            except BackendUnavailable as e:
                logger.warning("Remote delete failed, removing from local cache: %s", e)

        return await self._mutate_cache(
            lambda items: [item for item in _cached_items(items) if item.get("id") != lead_id]
        )

    async def _with_order_id(self, lead: Lead) -> Lead:
        """
        An order id is assigned once, on the first move to Installed. After
        that the stored value is carried forward whatever the caller sends,
        so a status round-trip or a full-lead edit can neither drop nor
        replace it.
        """
        existing = await self.find_lead(lead.id)
        if existing is not None and existing.order_id:
            if lead.order_id != existing.order_id:
                if lead.order_id:
                    logger.warning(
                        "Ignoring order id %s for lead %s, keeping %s",
                        lead.order_id, lead.id, existing.order_id,
                    )
                lead = lead.model_copy(update={"order_id": existing.order_id})
            return lead
        if lead.status is LeadStatus.INSTALLED and not lead.order_id:
            return lead.model_copy(update={"order_id": generate_order_id()})
        return lead


# ---------------------------------------------------------------------------
# Dashboard workflow helpers (pure: return a new Lead for update_lead)
# ---------------------------------------------------------------------------

def change_status(lead: Lead, status: LeadStatus) -> Lead:
    return lead.model_copy(update={"status": status})


def add_note(lead: Lead, text: str, author: str) -> Lead:
    """Append a note. Raises ValueError for blank text."""
    text = text.strip()
    if not text:
        raise ValueError("Note text is required")
    ts = now_ms()
    note = LeadNote(id=str(ts), text=text, created_at=ts, created_by=author)
    return lead.model_copy(update={"notes": [*(lead.notes or []), note]})


def schedule_follow_up(lead: Lead, when: Optional[datetime]) -> Lead:
    """Set (or clear, with None) the follow-up timestamp."""
    follow_up = None
    if when is not None:
        if when.tzinfo is None:
            when = when.replace(tzinfo=LOCAL_TZ)
        follow_up = int(when.timestamp() * 1000)
    return lead.model_copy(update={"follow_up_date": follow_up})


def due_follow_ups(leads: Iterable[Lead], day: Optional[date] = None) -> list[Lead]:
    day = day or datetime.now(LOCAL_TZ).date()
    due = []
    for lead in leads:
        if lead.follow_up_date is None:
            continue
        if datetime.fromtimestamp(lead.follow_up_date / 1000, LOCAL_TZ).date() == day:
            due.append(lead)
    return due


def filter_leads(
    leads: Iterable[Lead],
    status: Optional[LeadStatus] = None,
    search: Optional[str] = None,
) -> list[Lead]:
    term = (search or "").strip().lower()
    out = []
    for lead in leads:
        if status is not None and lead.status is not status:
            continue
        if term and term not in lead.name.lower() and term not in lead.mobile:
            continue
        out.append(lead)
    return out


EXPORT_HEADERS = [
    "Name", "Mobile", "Location", "Service Type", "Operator",
    "Status", "Source", "Created At", "Order ID", "Follow-up Date",
]


def export_csv(leads: Iterable[Lead]) -> str:
    buf = io.StringIO()
    writer = csv.writer(buf, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(EXPORT_HEADERS)
    for lead in leads:
        created = datetime.fromtimestamp(lead.created_at / 1000, LOCAL_TZ)
        follow_up = (
            datetime.fromtimestamp(lead.follow_up_date / 1000, LOCAL_TZ).date().isoformat()
            if lead.follow_up_date is not None
            else ""
        )
        writer.writerow([
            lead.name,
            lead.mobile,
            lead.location,
            lead.service_type.value if lead.service_type else "",
            lead.operator.value if lead.operator else "",
            lead.status.value,
            lead.source.value,
            created.strftime("%Y-%m-%d %H:%M"),
            lead.order_id or "",
            follow_up,
        ])
    return buf.getvalue()
