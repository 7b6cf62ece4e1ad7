"""
Firestore lead backend.

Collection `leads`, documents keyed by store-assigned ids. Stored fields mirror
the Lead JSON minus `id`; the document id is substituted back on read.
"""
from __future__ import annotations

import logging
from typing import Any

from google.api_core import exceptions as gcp_exceptions
from google.cloud import firestore
from google.cloud.firestore_v1.base_query import FieldFilter

from ..models import Lead
from .base import BackendKind, BackendUnavailable, LeadBackend, parse_leads

logger = logging.getLogger(__name__)

LEADS_COLLECTION = "leads"


class FirestoreBackend(LeadBackend):
    kind = BackendKind.DOCUMENT_STORE

    def __init__(self, db: firestore.AsyncClient):
        self.db = db

    @classmethod
    def from_project(cls, project: str) -> "FirestoreBackend":
        return cls(firestore.AsyncClient(project=project or None))

    def _collection(self):
        return self.db.collection(LEADS_COLLECTION)

    async def _stream(self, query) -> list[Lead]:
        items: list[dict[str, Any]] = []
        try:
            async for doc in query.stream():
                items.append({**(doc.to_dict() or {}), "id": doc.id})
        except gcp_exceptions.GoogleAPIError as e:
            raise BackendUnavailable(f"firestore query failed: {e}") from e
        return parse_leads(items)

    async def list_leads(self) -> list[Lead]:
        query = self._collection().order_by("createdAt", direction=firestore.Query.DESCENDING)
        return await self._stream(query)

    async def list_leads_for_user(self, user_id: str) -> list[Lead]:
        query = (
            self._collection()
            .where(filter=FieldFilter("userId", "==", user_id))
            .order_by("createdAt", direction=firestore.Query.DESCENDING)
        )
        return await self._stream(query)

    async def create_lead(self, lead: Lead) -> Lead:
        try:
            _, doc_ref = await self._collection().add(lead.core_fields())
        except gcp_exceptions.GoogleAPIError as e:
            raise BackendUnavailable(f"firestore add failed: {e}") from e
        return lead.model_copy(update={"id": doc_ref.id})

    async def update_lead(self, lead: Lead) -> None:
        try:
            await self._collection().document(lead.id).update(lead.core_fields())
        except gcp_exceptions.GoogleAPIError as e:
            raise BackendUnavailable(f"firestore update failed: {e}") from e

    async def delete_lead(self, lead_id: str) -> None:
        try:
            await self._collection().document(lead_id).delete()
        except gcp_exceptions.GoogleAPIError as e:
            raise BackendUnavailable(f"firestore delete failed: {e}") from e

    def describe(self) -> dict[str, Any]:
        return {"kind": self.kind.value, "collection": LEADS_COLLECTION}
