"""
HTTP surface: public lead form, staff dashboard and the Facebook webhook.

Each test gets a fresh runtime on a temp cache with no remote backend and an
HTTP client that fails the test on any outbound call.
"""
from datetime import datetime
from unittest.mock import AsyncMock, patch
from zoneinfo import ZoneInfo

import pytest
from fastapi.testclient import TestClient

from dthstore.config import Settings, settings
from dthstore.constants import LEADS_KEY
from dthstore.leads import EXPORT_HEADERS
from dthstore.main import app
from dthstore.runtime import build_runtime, set_runtime

from .conftest import Recorder, unexpected

FORM = {
    "name": "Rahul",
    "mobile": "9876543210",
    "location": "Mumbai",
    "serviceType": "DTH Connection",
    "operator": "Tata Play",
}


@pytest.fixture
def runtime(tmp_path):
    runtime = build_runtime(
        Settings(leads_backend="none", rest_api_url="", cache_path=str(tmp_path / "cache.json")),
        Recorder(unexpected).client(),
    )
    set_runtime(runtime)
    yield runtime
    set_runtime(None)


@pytest.fixture
def client(runtime):
    with TestClient(app) as c:
        yield c


def _token(client, username="admin", password=None):
    password = password or f"{username}123"
    resp = client.post("/admin/login", json={"username": username, "password": password})
    assert resp.status_code == 200
    return resp.json()["token"]


@pytest.fixture
def admin(client):
    return {"Authorization": f"Bearer {_token(client, 'admin')}"}


@pytest.fixture
def staff(client):
    return {"Authorization": f"Bearer {_token(client, 'staff')}"}


class TestPublic:
    def test_health(self, client):
        body = client.get("/health").json()
        assert body["ok"] is True
        assert body["leads_backend"] == {"kind": "none"}

    def test_capture_lead(self, client, runtime):
        resp = client.post("/leads", json=FORM)

        assert resp.status_code == 201
        body = resp.json()
        assert body["success"] is True
        assert body["lead"]["source"] == "Website"
        assert body["lead"]["status"] == "New"
        assert runtime.cache.get(LEADS_KEY)[0]["id"] == body["lead"]["id"]

    @pytest.mark.parametrize("field,value", [
        ("mobile", "98765"),
        ("name", ""),
        ("location", ""),
        ("operator", "Jio Fiber"),
    ])
    def test_invalid_lead_is_not_stored(self, client, runtime, field, value):
        resp = client.post("/leads", json={**FORM, field: value})
        assert resp.status_code == 422
        assert not runtime.cache.has(LEADS_KEY)

    def test_products_and_site_config(self, client):
        assert [p["id"] for p in client.get("/products").json()] == ["p1", "p2", "p3"]
        assert client.get("/site-config").json()["logoText"] == "DTH Store"


class TestAuth:
    def test_dashboard_needs_token(self, client):
        resp = client.get("/admin/leads")
        assert resp.status_code == 401
        assert resp.json() == {"detail": "Not authenticated"}

    def test_bad_login(self, client):
        resp = client.post("/admin/login", json={"username": "admin", "password": "nope"})
        assert resp.status_code == 401

    def test_cookie_session(self, client):
        _token(client, "staff")
        assert client.get("/admin/leads").status_code == 200

        client.post("/admin/logout")
        assert client.get("/admin/leads").status_code == 401

    def test_staff_is_not_admin(self, client, staff):
        assert client.get("/admin/notifications/config", headers=staff).status_code == 403
        assert client.delete("/admin/leads/lead-1", headers=staff).status_code == 403


class TestDashboard:
    def test_list_and_filter(self, client, admin):
        leads = client.get("/admin/leads", headers=admin).json()
        assert [lead["id"] for lead in leads] == ["lead-1", "lead-2", "lead-3"]

        contacted = client.get("/admin/leads", params={"status": "Contacted"}, headers=admin).json()
        assert [lead["id"] for lead in contacted] == ["lead-2"]

        found = client.get("/admin/leads", params={"q": "amit"}, headers=admin).json()
        assert [lead["id"] for lead in found] == ["lead-3"]

    def test_install_assigns_order_id_once(self, client, staff):
        first = client.post("/admin/leads/lead-1/status", json={"status": "Installed"}, headers=staff).json()
        order_id = first["lead"]["orderId"]
        assert order_id.startswith("ORD-")

        client.post("/admin/leads/lead-1/status", json={"status": "Contacted"}, headers=staff)
        again = client.post("/admin/leads/lead-1/status", json={"status": "Installed"}, headers=staff).json()
        assert again["lead"]["orderId"] == order_id

    def test_edit_cannot_replace_order_id(self, client, staff):
        installed = client.post("/admin/leads/lead-1/status", json={"status": "Installed"}, headers=staff).json()
        lead = installed["lead"]

        edited = client.put(
            "/admin/leads/lead-1", json={**lead, "orderId": "ORD-HACK"}, headers=staff
        ).json()
        assert edited["lead"]["orderId"] == lead["orderId"]

        dropped = {k: v for k, v in lead.items() if k != "orderId"}
        edited = client.put(
            "/admin/leads/lead-1", json={**dropped, "status": "Contacted"}, headers=staff
        ).json()
        assert edited["lead"]["orderId"] == lead["orderId"]

    def test_unknown_lead(self, client, staff):
        resp = client.post("/admin/leads/missing/status", json={"status": "Contacted"}, headers=staff)
        assert resp.status_code == 404

    def test_notes(self, client, staff):
        assert client.post("/admin/leads/lead-2/notes", json={"text": "  "}, headers=staff).status_code == 422

        body = client.post("/admin/leads/lead-2/notes", json={"text": "Call after 6pm"}, headers=staff).json()
        assert body["lead"]["notes"][0]["text"] == "Call after 6pm"
        assert body["lead"]["notes"][0]["createdBy"] == "Demo Staff"

    def test_follow_up_and_reminders(self, client, staff):
        today = datetime.now(ZoneInfo("Asia/Kolkata")).replace(tzinfo=None, microsecond=0)
        body = client.post(
            "/admin/leads/lead-1/follow-up",
            json={"followUpDate": today.isoformat()},
            headers=staff,
        ).json()
        assert isinstance(body["lead"]["followUpDate"], int)

        reminders = client.post("/admin/notifications/reminders", headers=staff).json()
        assert [lead["id"] for lead in reminders["due"]] == ["lead-1"]
        assert reminders["pushed"] is True

        feed = client.get("/admin/notifications/feed", headers=staff).json()
        assert feed[0]["tag"] == "follow-up-reminder"

        client.delete("/admin/notifications/feed", headers=staff)
        assert client.get("/admin/notifications/feed", headers=staff).json() == []

    def test_manual_lead_and_edit(self, client, staff):
        created = client.post("/admin/leads", json=FORM, headers=staff)
        assert created.status_code == 201
        lead = created.json()
        assert lead["source"] == "Manual"

        edited = client.put(
            f"/admin/leads/{lead['id']}",
            json={**lead, "location": "Thane"},
            headers=staff,
        ).json()
        assert edited["lead"]["location"] == "Thane"

    def test_admin_delete(self, client, admin, runtime):
        leads = client.delete("/admin/leads/lead-2", headers=admin).json()
        assert [lead["id"] for lead in leads] == ["lead-1", "lead-3"]
        assert [item["id"] for item in runtime.cache.get(LEADS_KEY)] == ["lead-1", "lead-3"]

    def test_export_csv(self, client, staff):
        resp = client.get("/admin/leads/export.csv", headers=staff)
        assert resp.status_code == 200
        assert resp.headers["content-type"].startswith("text/csv")
        assert "attachment" in resp.headers["content-disposition"]
        lines = resp.text.strip().split("\n")
        assert lines[0] == ",".join(f'"{h}"' for h in EXPORT_HEADERS)
        assert len(lines) == 4

    def test_sales_script(self, client, staff):
        script = {"whatsapp": "Hi", "script": "Hello"}
        with patch("dthstore.routes.admin.generate_sales_script", new=AsyncMock(return_value=script)):
            assert client.post("/admin/leads/lead-1/sales-script", headers=staff).json() == script
        with patch("dthstore.routes.admin.generate_sales_script", new=AsyncMock(return_value=None)):
            assert client.post("/admin/leads/lead-1/sales-script", headers=staff).status_code == 503


class TestNotificationSettings:
    def test_save_and_read_back(self, client, admin, runtime):
        payload = client.get("/admin/notifications/config", headers=admin).json()
        payload.update({"telegramEnabled": True, "telegramChatId": "42", "whatsappApiUrl": ""})

        saved = client.put("/admin/notifications/config", json=payload, headers=admin)
        assert saved.status_code == 200
        assert client.get("/admin/notifications/config", headers=admin).json()["telegramChatId"] == "42"
        assert runtime.notification_config.current().telegram_enabled is True

        # token still missing
        result = client.post("/admin/notifications/test/telegram", headers=admin).json()
        assert result["success"] is False

        assert client.get("/admin/whatsapp/qr", headers=admin).status_code == 404
        assert client.get("/admin/whatsapp/status", headers=admin).json()["status"] == "unconfigured"

    def test_desktop_test_notification(self, client, admin):
        result = client.post("/admin/notifications/test/desktop", headers=admin).json()
        assert result == {"channel": "desktop", "success": True, "message": "Desktop notification queued!"}


class TestFacebookWebhook:
    def test_verify(self, client):
        params = {"hub.mode": "subscribe", "hub.verify_token": settings.fb_verify_token, "hub.challenge": "c-123"}
        resp = client.get("/webhooks/facebook", params=params)
        assert resp.status_code == 200
        assert resp.text == "c-123"

    def test_verify_wrong_token(self, client):
        params = {"hub.mode": "subscribe", "hub.verify_token": "wrong", "hub.challenge": "c"}
        assert client.get("/webhooks/facebook", params=params).status_code == 403

    def test_verify_missing_params(self, client):
        assert client.get("/webhooks/facebook").status_code == 400

    def test_leadgen_event(self, client, runtime):
        event = {
            "object": "page",
            "entry": [{"changes": [
                {"field": "leadgen", "value": {"leadgen_id": "444"}},
                {"field": "feed", "value": {}},
            ]}],
        }
        resp = client.post("/webhooks/facebook", json=event)

        assert resp.status_code == 200
        assert resp.text == "EVENT_RECEIVED"
        stored = runtime.cache.get(LEADS_KEY)[0]
        assert stored["id"] == "fb_444"
        assert stored["name"] == "Facebook Lead (444)"
        assert stored["mobile"] == "Check FB"
        assert stored["source"] == "Facebook"

    def test_redelivered_event_stored_once(self, client, runtime):
        event = {"object": "page", "entry": [{"changes": [{"field": "leadgen", "value": {"leadgen_id": "555"}}]}]}
        assert client.post("/webhooks/facebook", json=event).status_code == 200
        assert client.post("/webhooks/facebook", json=event).status_code == 200

        ids = [item["id"] for item in runtime.cache.get(LEADS_KEY)]
        assert ids.count("fb_555") == 1

    def test_non_page_object(self, client):
        assert client.post("/webhooks/facebook", json={"object": "user"}).status_code == 404
