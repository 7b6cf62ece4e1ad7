"""
Backend selection and the Firestore variant.
"""
from unittest.mock import patch

import httpx
import pytest
from google.api_core import exceptions as gcp_exceptions
from google.auth.exceptions import DefaultCredentialsError

from dthstore.backends import BackendKind, MessagingBridgeBackend, RestApiBackend, select_backend
from dthstore.backends.firestore import FirestoreBackend
from dthstore.config import Settings
from dthstore.leads import LeadStore
from dthstore.models import Lead, NotificationConfig
from dthstore.runtime import build_runtime

from .conftest import Recorder, unexpected


def _lead(lead_id: str, created_at: int, user_id=None) -> Lead:
    return Lead(id=lead_id, name=f"Lead {lead_id}", mobile="9000000000", created_at=created_at, user_id=user_id)


class TestSelectBackend:
    @pytest.fixture
    def client(self):
        return Recorder(unexpected).client()

    def test_none(self, client):
        assert select_backend(Settings(leads_backend="none"), NotificationConfig(), client) is None

    def test_unknown_kind_means_cache_only(self, client):
        assert select_backend(Settings(leads_backend="mongo"), NotificationConfig(), client) is None

    def test_rest_needs_url(self, client):
        assert select_backend(Settings(leads_backend="rest", rest_api_url=""), NotificationConfig(), client) is None
        backend = select_backend(
            Settings(leads_backend="REST", rest_api_url="http://api.local/"), NotificationConfig(), client
        )
        assert isinstance(backend, RestApiBackend)
        assert backend.describe() == {"kind": "rest", "url": "http://api.local/api/leads"}

    def test_bridge_follows_whatsapp_settings(self, client):
        cfg = Settings(leads_backend="bridge")
        assert select_backend(cfg, NotificationConfig(whatsapp_enabled=False, whatsapp_api_url="http://wa"), client) is None
        assert select_backend(cfg, NotificationConfig(whatsapp_enabled=True, whatsapp_api_url=""), client) is None

        backend = select_backend(
            cfg,
            NotificationConfig(whatsapp_enabled=True, whatsapp_api_url="http://wa/", whatsapp_api_key="k"),
            client,
        )
        assert isinstance(backend, MessagingBridgeBackend)
        assert backend.kind is BackendKind.MESSAGING_BRIDGE
        assert backend.headers["x-api-key"] == "k"
        assert backend.describe()["url"] == "http://wa/leads"

    def test_firestore_without_credentials(self, client):
        with patch.object(
            FirestoreBackend, "from_project", side_effect=DefaultCredentialsError("no credentials")
        ):
            assert select_backend(Settings(leads_backend="firestore"), NotificationConfig(), client) is None

    @pytest.mark.asyncio
    async def test_saving_notification_settings_reselects_bridge(self, tmp_path):
        async with Recorder(unexpected).client() as client:
            runtime = build_runtime(
                Settings(leads_backend="bridge", cache_path=str(tmp_path / "cache.json")), client
            )
            assert runtime.leads.backend is None

            await runtime.notification_config.save(
                NotificationConfig(whatsapp_enabled=True, whatsapp_api_url="http://wa.local")
            )
            assert isinstance(runtime.leads.backend, MessagingBridgeBackend)

            await runtime.notification_config.save(NotificationConfig(whatsapp_enabled=False))
            assert runtime.leads.backend is None


# ---------------------------------------------------------------------------
# Firestore (in-memory stand-in for the async client)
# ---------------------------------------------------------------------------

class _Doc:
    def __init__(self, doc_id, data):
        self.id = doc_id
        self._data = data

    def to_dict(self):
        return dict(self._data)


class _DocRef:
    def __init__(self, db, doc_id):
        self.db = db
        self.id = doc_id

    async def update(self, data):
        self.db.docs[self.id].update(data)

    async def delete(self):
        self.db.docs.pop(self.id, None)


class _Query:
    def __init__(self, db, docs):
        self.db = db
        self.docs = docs

    def where(self, filter):
        self.db.filters.append((filter.field_path, filter.op_string, filter.value))
        return _Query(self.db, [d for d in self.docs if d._data.get(filter.field_path) == filter.value])

    def order_by(self, field, direction=None):
        self.db.orderings.append((field, direction))
        return _Query(self.db, sorted(self.docs, key=lambda d: d._data.get(field, 0), reverse=True))

    async def stream(self):
        if self.db.fail:
            raise gcp_exceptions.ServiceUnavailable("firestore down")
        for doc in self.docs:
            yield doc


class _Collection(_Query):
    async def add(self, data):
        if self.db.fail:
            raise gcp_exceptions.ServiceUnavailable("firestore down")
        doc_id = f"fs-{len(self.db.docs) + 1}"
        self.db.docs[doc_id] = dict(data)
        return None, _DocRef(self.db, doc_id)

    def document(self, doc_id):
        return _DocRef(self.db, doc_id)


class FakeFirestore:
    def __init__(self):
        self.docs: dict[str, dict] = {}
        self.filters = []
        self.orderings = []
        self.collections = []
        self.fail = False

    def collection(self, name):
        self.collections.append(name)
        return _Collection(self, [_Doc(k, v) for k, v in self.docs.items()])


class TestFirestoreBackend:
    @pytest.mark.asyncio
    async def test_create_assigns_store_id(self):
        db = FakeFirestore()
        backend = FirestoreBackend(db)

        saved = await backend.create_lead(_lead("client-id", created_at=5))

        assert saved.id == "fs-1"
        assert "id" not in db.docs["fs-1"]
        assert db.docs["fs-1"]["name"] == "Lead client-id"
        assert db.collections == ["leads"]

    @pytest.mark.asyncio
    async def test_list_newest_first_with_doc_ids(self):
        db = FakeFirestore()
        backend = FirestoreBackend(db)
        await backend.create_lead(_lead("a", created_at=1))
        await backend.create_lead(_lead("b", created_at=9))

        leads = await backend.list_leads()

        assert [lead.id for lead in leads] == ["fs-2", "fs-1"]
        assert db.orderings[0][0] == "createdAt"

    @pytest.mark.asyncio
    async def test_user_query(self):
        db = FakeFirestore()
        backend = FirestoreBackend(db)
        await backend.create_lead(_lead("a", created_at=1, user_id="u1"))
        await backend.create_lead(_lead("b", created_at=2, user_id="u2"))

        leads = await backend.list_leads_for_user("u1")

        assert [lead.user_id for lead in leads] == ["u1"]
        assert db.filters == [("userId", "==", "u1")]

    @pytest.mark.asyncio
    async def test_update_and_delete(self):
        db = FakeFirestore()
        backend = FirestoreBackend(db)
        saved = await backend.create_lead(_lead("a", created_at=1))

        await backend.update_lead(saved.model_copy(update={"name": "Renamed"}))
        assert db.docs["fs-1"]["name"] == "Renamed"

        await backend.delete_lead("fs-1")
        assert db.docs == {}

    @pytest.mark.asyncio
    async def test_store_errors_fall_back_to_cache(self, cache):
        db = FakeFirestore()
        db.fail = True
        store = LeadStore(cache, FirestoreBackend(db))

        saved = await store.save_lead(_lead("local-1", created_at=1))
        leads = await store.get_leads()

        assert saved.id == "local-1"
        assert leads[0].id == "local-1"
