"""
Products and site config (CMS).

Same availability policy as leads: try the REST API, and on any failure apply
the change to / read from the local cache. Built-in defaults are used when the
cache has never been written.
"""
from __future__ import annotations

import logging
from typing import Any, Callable, Optional, TypeVar

import httpx
from pydantic import ValidationError

from .cache import LocalCache
from .constants import DEFAULT_SITE_CONFIG, PRODUCTS, PRODUCTS_KEY, SITE_CONFIG_KEY
from .models import Product, SiteConfig

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CatalogStore:
    def __init__(self, cache: LocalCache, client: httpx.AsyncClient, api_url: str = ""):
        self.cache = cache
        self.client = client
        self.api_url = api_url.rstrip("/")

    async def _api_call(self, method: str, path: str, body: Any, parse: Callable[[Any], T]) -> Optional[T]:
        """Parsed response, or None when the API is unconfigured or unusable."""
        if not self.api_url:
            return None
        url = f"{self.api_url}/api{path}"
        try:
            resp = await self.client.request(method, url, json=body)
            resp.raise_for_status()
            return parse(resp.json())
        except (httpx.HTTPError, ValueError, ValidationError) as e:
            logger.warning("API unreachable (%s %s), using local cache fallback: %r", method, url, e)
            return None

    # ------------------------------------------------------------------
    # Products
    # ------------------------------------------------------------------

    def _cached_products(self) -> list[Product]:
        return [Product.model_validate(p) for p in self.cache.get(PRODUCTS_KEY, PRODUCTS)]

    async def get_products(self) -> list[Product]:
        remote = await self._api_call("GET", "/products", None, _parse_products)
        return remote if remote is not None else self._cached_products()

    async def save_product(self, product: Product) -> list[Product]:
        remote = await self._api_call("POST", "/products", product.to_json(), _parse_products)
        if remote is not None:
            return remote
        payload = product.to_json()
        items = await self.cache.update(PRODUCTS_KEY, PRODUCTS, lambda items: [payload, *items])
        return [Product.model_validate(p) for p in items]

    async def delete_product(self, product_id: str) -> list[Product]:
        remote = await self._api_call("DELETE", f"/products/{product_id}", None, _parse_products)
        if remote is not None:
            return remote
        items = await self.cache.update(
            PRODUCTS_KEY, PRODUCTS, lambda items: [p for p in items if p.get("id") != product_id]
        )
        return [Product.model_validate(p) for p in items]

    # ------------------------------------------------------------------
    # Site config
    # ------------------------------------------------------------------

    async def get_site_config(self) -> SiteConfig:
        remote = await self._api_call("GET", "/config", None, SiteConfig.model_validate)
        if remote is not None:
            return remote
        return SiteConfig.model_validate(self.cache.get(SITE_CONFIG_KEY, DEFAULT_SITE_CONFIG))

    async def save_site_config(self, config: SiteConfig) -> SiteConfig:
        remote = await self._api_call("POST", "/config", config.to_json(), SiteConfig.model_validate)
        if remote is not None:
            return remote
        await self.cache.set(SITE_CONFIG_KEY, config.to_json())
        return config


def _parse_products(data: Any) -> list[Product]:
    if not isinstance(data, list):
        raise ValueError("expected a product list")
    return [Product.model_validate(p) for p in data]
