"""
Desktop notification feed.

The admin dashboard polls this feed and shows each entry with the browser's
native Notification API, so delivery here is a local cache write and never a
network call.
"""
from __future__ import annotations

import logging
from typing import Any

from ..cache import LocalCache
from ..constants import DESKTOP_FEED_KEY
from ..models import Lead, now_ms
from ..notifications.messages import DESKTOP_TAG, DESKTOP_TITLE, desktop_body

logger = logging.getLogger(__name__)

MAX_ENTRIES = 50
ICON = "/favicon.ico"


class DesktopFeed:
    def __init__(self, cache: LocalCache):
        self.cache = cache

    async def push(self, title: str, body: str, tag: str) -> bool:
        ts = now_ms()
        entry = {
            "id": f"{tag}-{ts}",
            "title": title,
            "body": body,
            "tag": tag,
            "icon": ICON,
            "createdAt": ts,
        }
        try:
            await self.cache.update(DESKTOP_FEED_KEY, [], lambda items: [entry, *items][:MAX_ENTRIES])
        except OSError as e:
            logger.warning("desktop feed write failed: %s", e)
            return False
        return True

    async def push_lead(self, lead: Lead) -> bool:
        return await self.push(DESKTOP_TITLE, desktop_body(lead), DESKTOP_TAG)

    def entries(self, since: int | None = None) -> list[dict[str, Any]]:
        items = self.cache.get(DESKTOP_FEED_KEY, [])
        if since is None:
            return items
        return [item for item in items if item.get("createdAt", 0) > since]

    async def clear(self) -> None:
        await self.cache.remove(DESKTOP_FEED_KEY)
