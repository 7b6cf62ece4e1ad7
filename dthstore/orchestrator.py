"""
Lead orchestrator.

capture() is the critical path for a website visitor: validate, persist
(remote or local cache), then hand the lead to the notification fan-out as a
background task. The visitor's request completes as soon as the lead is
persisted; notification outcomes are only logged.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Mapping

import httpx

from .adapters.desktop import DesktopFeed
from .leads import LeadStore, new_lead
from .models import Lead, LeadCaptureForm, LeadSource
from .notifications.config_store import NotificationConfigProvider
from .notifications.dispatcher import FanOutResult, notify_lead

logger = logging.getLogger(__name__)


class LeadOrchestrator:
    def __init__(
        self,
        store: LeadStore,
        config_provider: NotificationConfigProvider,
        client: httpx.AsyncClient,
        feed: DesktopFeed,
    ):
        self.store = store
        self.config_provider = config_provider
        self.client = client
        self.feed = feed
        self._pending: set[asyncio.Task[FanOutResult]] = set()

    async def save(self, lead: Lead) -> Lead:
        return await self.store.save_lead(lead)

    async def notify(self, lead: Lead) -> FanOutResult:
        logger.info("Processing notifications for lead: %s", lead.name)
        return await notify_lead(
            lead,
            self.config_provider.current(),
            client=self.client,
            feed=self.feed,
        )

    def notify_in_background(self, lead: Lead) -> asyncio.Task[FanOutResult]:
        task = asyncio.create_task(self.notify(lead), name=f"notify-{lead.id}")
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def capture(
        self,
        form: LeadCaptureForm | Mapping[str, Any],
        source: LeadSource = LeadSource.WEBSITE,
    ) -> Lead:
        """
        Validate and persist a new lead, then fan it out without waiting.

        Raises pydantic.ValidationError for a bad form, before anything is
        persisted. Nothing after validation can fail the capture.
        """
        if not isinstance(form, LeadCaptureForm):
            form = LeadCaptureForm.model_validate(form)
        lead = await self.save(new_lead(form, source))
        self.notify_in_background(lead)
        return lead

    async def ingest(self, lead: Lead) -> Lead:
        """Persist and notify an already-built lead (webhooks)."""
        saved = await self.save(lead)
        self.notify_in_background(saved)
        return saved

    async def drain(self) -> list[FanOutResult]:
        """Wait for every in-flight fan-out (shutdown, tests)."""
        if not self._pending:
            return []
        results = await asyncio.gather(*list(self._pending), return_exceptions=True)
        return [r for r in results if isinstance(r, FanOutResult)]
