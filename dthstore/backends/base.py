from __future__ import annotations

from abc import ABC, abstractmethod
from enum import Enum
from typing import Any

from pydantic import ValidationError

from ..models import Lead


class BackendKind(str, Enum):
    NONE = "none"
    REST_API = "rest"
    DOCUMENT_STORE = "firestore"
    MESSAGING_BRIDGE = "bridge"


class BackendUnavailable(Exception):
    """Remote lead backend failed: network error, non-2xx, or unusable body."""


def parse_leads(items: Any) -> list[Lead]:
    if not isinstance(items, list):
        raise BackendUnavailable(f"expected a list of leads, got {type(items).__name__}")
    try:
        leads = [Lead.model_validate(item) for item in items]
    except ValidationError as e:
        raise BackendUnavailable(f"malformed lead in response: {e.error_count()} errors") from e
    leads.sort(key=lambda lead: lead.created_at, reverse=True)
    return leads


def parse_lead(item: Any) -> Lead:
    try:
        return Lead.model_validate(item)
    except ValidationError as e:
        raise BackendUnavailable(f"malformed lead in response: {e.error_count()} errors") from e


class LeadBackend(ABC):
    """A remote persistence target for leads. Every failure raises BackendUnavailable."""

    kind: BackendKind

    @abstractmethod
    async def list_leads(self) -> list[Lead]:
        """All leads, newest first."""

    @abstractmethod
    async def create_lead(self, lead: Lead) -> Lead:
        """Persist a new lead; the returned lead may carry a backend-assigned id."""

    @abstractmethod
    async def update_lead(self, lead: Lead) -> None:
        ...

    @abstractmethod
    async def delete_lead(self, lead_id: str) -> None:
        ...

    async def list_leads_for_user(self, user_id: str) -> list[Lead]:
        return [lead for lead in await self.list_leads() if lead.user_id == user_id]

    def describe(self) -> dict[str, Any]:
        return {"kind": self.kind.value}
