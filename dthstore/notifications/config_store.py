"""
Notification settings provider.

The config is loaded once from the local cache at startup and handed to the
fan-out as a value; nothing re-reads storage per notification. It changes only
through save() (admin settings page) or an explicit refresh(). Reload
listeners run after every change so dependants (the messaging bridge lead
backend) can rebuild themselves from the new values.
"""
from __future__ import annotations

import logging
from typing import Awaitable, Callable, Optional

from pydantic import ValidationError

from ..cache import LocalCache
from ..constants import NOTIFICATION_CONFIG_KEY
from ..models import NotificationConfig

logger = logging.getLogger(__name__)

ReloadListener = Callable[[NotificationConfig], Optional[Awaitable[None]]]


class NotificationConfigProvider:
    def __init__(self, cache: LocalCache):
        self.cache = cache
        self._config = NotificationConfig()
        self._listeners: list[ReloadListener] = []

    def current(self) -> NotificationConfig:
        return self._config

    def on_reload(self, listener: ReloadListener) -> None:
        self._listeners.append(listener)

    def load(self) -> NotificationConfig:
        raw = self.cache.get(NOTIFICATION_CONFIG_KEY)
        if raw is None:
            self._config = NotificationConfig()
        else:
            try:
                self._config = NotificationConfig.model_validate(raw)
            except ValidationError as e:
                logger.warning("Stored notification config invalid, using defaults: %s", e)
                self._config = NotificationConfig()
        return self._config

    async def refresh(self) -> NotificationConfig:
        config = self.load()
        await self._notify(config)
        return config

    async def save(self, config: NotificationConfig) -> NotificationConfig:
        await self.cache.set(NOTIFICATION_CONFIG_KEY, config.model_dump(mode="json", by_alias=True))
        self._config = config
        await self._notify(config)
        return config

    async def _notify(self, config: NotificationConfig) -> None:
        for listener in self._listeners:
            result = listener(config)
            if result is not None:
                await result
