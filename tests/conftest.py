"""
Shared fixtures.

Outbound HTTP never leaves the process: every client is an httpx.AsyncClient
on a MockTransport whose handler records each request, so tests can assert
exact call counts per host.
"""
from __future__ import annotations

from typing import Callable

import httpx
import pytest

from dthstore.adapters.desktop import DesktopFeed
from dthstore.cache import LocalCache
from dthstore.models import Lead, LeadSource, LeadStatus, NotificationConfig, Operator, ServiceType


class Recorder:
    """Wraps a MockTransport handler and keeps every request it saw."""

    def __init__(self, handler: Callable):
        self.handler = handler
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request):
        self.requests.append(request)
        return self.handler(request)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self))

    def hosts(self) -> list[str]:
        return [r.url.host for r in self.requests]

    def to(self, host: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.host == host]


def refuse(request: httpx.Request) -> httpx.Response:
    raise httpx.ConnectError("connection refused", request=request)


def unexpected(request: httpx.Request) -> httpx.Response:
    raise AssertionError(f"unexpected outbound call to {request.url}")


@pytest.fixture
def cache(tmp_path) -> LocalCache:
    return LocalCache(tmp_path / "cache.json")


@pytest.fixture
def feed(cache) -> DesktopFeed:
    return DesktopFeed(cache)


@pytest.fixture
def rahul() -> Lead:
    return Lead(
        id="lead-rahul-1",
        name="Rahul",
        mobile="9876543210",
        location="Mumbai",
        service_type=ServiceType.DTH,
        operator=Operator.TATA_PLAY,
        status=LeadStatus.NEW,
        source=LeadSource.WEBSITE,
        created_at=1_760_000_000_000,
    )


@pytest.fixture
def all_off() -> NotificationConfig:
    return NotificationConfig(
        email_enabled=False,
        telegram_enabled=False,
        whatsapp_enabled=False,
        browser_notifications_enabled=False,
    )
