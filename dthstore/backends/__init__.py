"""
Remote lead backends.

Exactly one backend is active at a time. It is chosen once, from LEADS_BACKEND,
when configuration is loaded (and again whenever notification settings are
saved, since the messaging bridge backend reuses the WhatsApp URL and key).
"""
from __future__ import annotations

import logging
from typing import Optional

import httpx

from ..config import Settings
from ..models import NotificationConfig
from .base import BackendKind, BackendUnavailable, LeadBackend
from .rest import MessagingBridgeBackend, RestApiBackend

logger = logging.getLogger(__name__)

__all__ = [
    "BackendKind",
    "BackendUnavailable",
    "LeadBackend",
    "MessagingBridgeBackend",
    "RestApiBackend",
    "select_backend",
]


def _kind(value: str) -> BackendKind:
    try:
        return BackendKind(value.strip().lower())
    except ValueError:
        logger.warning("Unknown LEADS_BACKEND=%r, using local cache only", value)
        return BackendKind.NONE


def select_backend(
    settings: Settings,
    notification_config: NotificationConfig,
    client: httpx.AsyncClient,
) -> Optional[LeadBackend]:
    """Build the configured backend, or None when leads live only in the local cache."""
    kind = _kind(settings.leads_backend)

    if kind is BackendKind.REST_API:
        if not settings.rest_api_url:
            logger.warning("LEADS_BACKEND=rest but REST_API_URL is empty; using local cache only")
            return None
        return RestApiBackend(settings.rest_api_url, client)

    if kind is BackendKind.MESSAGING_BRIDGE:
        cfg = notification_config
        if not (cfg.whatsapp_enabled and cfg.whatsapp_api_url):
            logger.info("Messaging bridge not enabled; using local cache only")
            return None
        return MessagingBridgeBackend(
            cfg.whatsapp_base_url,
            client,
            headers=cfg.whatsapp_headers(json_body=False),
        )

    if kind is BackendKind.DOCUMENT_STORE:
        from google.auth.exceptions import GoogleAuthError

        from .firestore import FirestoreBackend

        try:
            return FirestoreBackend.from_project(settings.firestore_project)
        except GoogleAuthError as e:
            logger.warning("Firestore credentials unavailable (%s); using local cache only", e)
            return None

    return None
