"""Image URL resolver: decides which URLs go through the proxy, backed by UrlCache."""

from __future__ import annotations

import logging
from urllib.parse import quote

import httpx

from imgcache.api.client import ImageClient
from imgcache.config import Settings
from imgcache.services.cache import UrlCache

log = logging.getLogger(__name__)


class ImageResolver:
    """Maps image URLs to the URL a client should load, with fallbacks."""

    def __init__(
        self,
        settings: Settings,
        cache: UrlCache | None = None,
        client: ImageClient | None = None,
    ) -> None:
        self.settings = settings
        self.cache = cache if cache is not None else UrlCache(
            ttl=settings.cache_ttl,
            capacity=settings.cache_capacity,
            eviction_ratio=settings.cache_eviction_ratio,
            sweep_interval=settings.sweep_interval,
        )
        self.client = client if client is not None else ImageClient(
            timeout=settings.preload_timeout, referer=settings.referer
        )

    async def close(self) -> None:
        await self.cache.stop_sweeper()
        await self.client.close()

    @property
    def default_avatar(self) -> str:
        return self.settings.default_avatar

    def _is_placeholder(self, url: str | None) -> bool:
        return not url or url == self.default_avatar

    def is_proxy_url(self, url: str) -> bool:
        return self.settings.proxy_path in url

    def needs_proxy(self, url: str) -> bool:
        return any(host in url for host in self.settings.proxied_hosts)

    def build_proxy_url(self, url: str) -> str:
        return f"{self.settings.proxy_base}?url={quote(url, safe='')}"

    def get_proxied_image_url(self, url: str | None) -> str:
        """Return the URL to load for ``url``, routing storage hosts via the proxy."""
        cached = self.cache.get(url)
        if cached:
            return cached
        if self._is_placeholder(url):
            return self.default_avatar
        if self.is_proxy_url(url):
            return url
        if self.needs_proxy(url):
            proxied = self.build_proxy_url(url)
            self.cache.set(url, proxied)
            return proxied
        # External http(s) and relative URLs are loaded as-is.
        return url

    def get_smart_avatar_url(self, url: str | None, fallback: str | None = None) -> str:
        if self._is_placeholder(url):
            return fallback or self.default_avatar
        return url

    def get_smart_image_url(self, url: str | None) -> str:
        if self._is_placeholder(url):
            return self.default_avatar
        return url

    def _check_timeout(self, url: str) -> float:
        if self.is_proxy_url(url):
            return self.settings.proxy_preload_timeout
        return self.settings.preload_timeout

    async def preload_image(self, url: str | None) -> str:
        """Download ``url`` once; fall back to the default avatar if it fails."""
        if self._is_placeholder(url):
            return self.default_avatar
        try:
            await self.client.get(url, timeout=self._check_timeout(url))
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            log.warning("Image preload failed for %s: %s", url, exc)
            return self.default_avatar
        log.debug("Image preloaded: %s", url)
        return url

    async def refresh_image_url(self, url: str | None) -> str:
        """Check ``url`` is still reachable with a HEAD request."""
        if self._is_placeholder(url):
            return self.default_avatar
        try:
            await self.client.head(url, timeout=self._check_timeout(url))
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            log.warning("Image refresh failed for %s: %s", url, exc)
            return self.default_avatar
        return url
