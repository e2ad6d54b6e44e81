"""Fetch storage images on behalf of clients, with regional endpoint fallback."""

from __future__ import annotations

import logging
from urllib.parse import unquote, urlparse

import httpx

from imgcache.api.client import ImageClient
from imgcache.api.models import ProxiedImage
from imgcache.config import Settings
from imgcache.errors import (
    DomainNotAllowedError,
    ImageFetchError,
    ImageFetchTimeoutError,
    ImageNotAccessibleError,
    InvalidImageURLError,
    ProxyLoopError,
)

log = logging.getLogger(__name__)

NOT_ACCESSIBLE_STATUSES = {403, 404}


def _host_matches(host: str, domain: str) -> bool:
    return host == domain or host.endswith("." + domain)


class ImageProxy:
    """Validates image URLs and fetches them from the first endpoint that answers."""

    def __init__(self, settings: Settings, client: ImageClient | None = None) -> None:
        self.settings = settings
        self.client = client if client is not None else ImageClient(
            timeout=settings.proxy_timeout, referer=settings.referer
        )

    async def close(self) -> None:
        await self.client.close()

    def is_allowed(self, url: str) -> bool:
        """Host is an allowed domain (or a subdomain), or the path names a storage bucket."""
        parsed = urlparse(url)
        host = (parsed.hostname or "").lower()
        first_segment = parsed.path.lstrip("/").split("/", 1)[0].lower()
        if any(_host_matches(host, d) for d in self.settings.allowed_domains):
            return True
        if any(_host_matches(host, h) for h in self.settings.proxied_hosts):
            return True
        return bool(first_segment) and first_segment in self.storage_buckets()

    def storage_buckets(self) -> set[str]:
        """Bucket names taken from allowed domains that live under a storage host."""
        buckets = set()
        for domain in self.settings.allowed_domains:
            if not any(_host_matches(domain, h) for h in self.settings.proxied_hosts):
                continue
            # Path-style buckets: s3.wasabisys.com/<bucket>/key
            bucket = domain.split(".", 1)[0]
            if bucket != "s3":
                buckets.add(bucket)
        return buckets

    def validate(self, raw_url: str | None) -> str:
        """Decode and check ``raw_url``. Returns the decoded URL or raises a ProxyError."""
        if not raw_url:
            raise InvalidImageURLError("URL parameter is required")
        url = unquote(raw_url)
        if self.settings.proxy_loop_marker in url:
            raise ProxyLoopError("Cannot proxy proxy URLs", url=url)
        try:
            parsed = urlparse(url)
        except ValueError as exc:
            raise InvalidImageURLError(f"Invalid URL format: {exc}", url=url) from exc
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise InvalidImageURLError("Invalid URL format", url=url)
        if not self.is_allowed(url):
            log.warning("Rejected image from unauthorized domain: %s", parsed.hostname)
            raise DomainNotAllowedError(f"Unauthorized domain: {parsed.hostname}", url=url)
        return url

    def candidate_endpoints(self, url: str) -> list[str]:
        """Original URL first, then regional rewrites, without duplicates."""
        global_host = self.settings.global_host
        candidates = [url]
        candidates += [url.replace(global_host, r) for r in self.settings.regional_hosts]
        candidates += [url.replace(r, global_host) for r in self.settings.regional_hosts]
        return list(dict.fromkeys(candidates))

    async def fetch(self, raw_url: str | None) -> ProxiedImage:
        url = self.validate(raw_url)
        last_error: Exception | None = None

        for endpoint in self.candidate_endpoints(url):
            try:
                response = await self.client.get(endpoint, timeout=self.settings.proxy_timeout)
            except httpx.HTTPStatusError as exc:
                status = exc.response.status_code
                if status == 403:
                    log.info("403 from %s, image may be private", endpoint)
                elif status == 404:
                    log.info("404 from %s, image may not exist here", endpoint)
                else:
                    log.warning("HTTP %d from %s", status, endpoint)
                last_error = exc
                continue
            except httpx.HTTPError as exc:
                log.warning("Endpoint %s failed: %s", endpoint, exc)
                last_error = exc
                continue

            content_type = response.headers.get("content-type") or "image/jpeg"
            log.info("Proxied %s via %s (%d bytes)", url, endpoint, len(response.content))
            return ProxiedImage(
                url=endpoint,
                original_url=url,
                content_type=content_type,
                content=response.content,
            )

        if isinstance(last_error, httpx.HTTPStatusError) and (
            last_error.response.status_code in NOT_ACCESSIBLE_STATUSES
        ):
            raise ImageNotAccessibleError(
                "The requested image is not publicly accessible or does not exist", url=url
            ) from last_error
        if isinstance(last_error, httpx.TimeoutException):
            raise ImageFetchTimeoutError("Image request timed out", url=url) from last_error
        raise ImageFetchError(f"All endpoints failed: {last_error}", url=url) from last_error
