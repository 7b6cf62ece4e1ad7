"""
Process-wide services: one HTTP client, one local cache, and the stores and
orchestrator built on them. Created at startup, closed at shutdown.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

import httpx

from .adapters.desktop import DesktopFeed
from .backends import select_backend
from .cache import LocalCache
from .catalog import CatalogStore
from .config import Settings, settings
from .leads import LeadStore
from .models import NotificationConfig
from .notifications.config_store import NotificationConfigProvider
from .orchestrator import LeadOrchestrator

logger = logging.getLogger(__name__)


@dataclass
class Runtime:
    settings: Settings
    client: httpx.AsyncClient
    cache: LocalCache
    feed: DesktopFeed
    notification_config: NotificationConfigProvider
    leads: LeadStore
    catalog: CatalogStore
    orchestrator: LeadOrchestrator


_runtime: Runtime | None = None


def build_runtime(cfg: Settings, client: httpx.AsyncClient) -> Runtime:
    cache = LocalCache(cfg.cache_path)
    feed = DesktopFeed(cache)
    provider = NotificationConfigProvider(cache)
    notification_config = provider.load()

    store = LeadStore(cache, select_backend(cfg, notification_config, client))
    logger.info(
        "Lead backend: %s",
        store.backend.describe() if store.backend else {"kind": "none"},
    )

    def _reselect_backend(new_config: NotificationConfig) -> None:
        store.set_backend(select_backend(cfg, new_config, client))

    provider.on_reload(_reselect_backend)

    return Runtime(
        settings=cfg,
        client=client,
        cache=cache,
        feed=feed,
        notification_config=provider,
        leads=store,
        catalog=CatalogStore(cache, client, cfg.rest_api_url),
        orchestrator=LeadOrchestrator(store, provider, client, feed),
    )


async def init_runtime(cfg: Optional[Settings] = None) -> Runtime:
    global _runtime
    if _runtime is None:
        cfg = cfg or settings
        client = httpx.AsyncClient(timeout=cfg.http_timeout_seconds)
        _runtime = build_runtime(cfg, client)
    return _runtime


async def close_runtime() -> None:
    global _runtime
    if _runtime is not None:
        await _runtime.orchestrator.drain()
        await _runtime.client.aclose()
        _runtime = None


def set_runtime(runtime: Runtime | None) -> None:
    """Install a prebuilt runtime (tests)."""
    global _runtime
    _runtime = runtime


async def get_runtime() -> Runtime:
    if _runtime is None:
        return await init_runtime()
    return _runtime
