"""Async httpx wrapper for fetching and probing remote images."""

from __future__ import annotations

from typing import Any

import httpx

USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)


class ImageClient:
    """Async HTTP client for image storage endpoints."""

    def __init__(
        self,
        timeout: float = 10.0,
        referer: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        headers = {
            "User-Agent": USER_AGENT,
            "Accept": "image/*,*/*;q=0.8",
            "Cache-Control": "no-cache",
            "Pragma": "no-cache",
        }
        if referer:
            headers["Referer"] = referer
            headers["Origin"] = referer
        kwargs: dict[str, Any] = {
            "timeout": timeout,
            "follow_redirects": True,
            "headers": headers,
        }
        if transport is not None:
            kwargs["transport"] = transport
        self._client = httpx.AsyncClient(**kwargs)

    async def close(self) -> None:
        await self._client.aclose()

    async def get(self, url: str, timeout: float | None = None) -> httpx.Response:
        """GET an image. Raises httpx.HTTPStatusError on non-2xx."""
        kwargs: dict[str, Any] = {}
        if timeout is not None:
            kwargs["timeout"] = timeout
        response = await self._client.get(url, **kwargs)
        response.raise_for_status()
        return response

    async def head(self, url: str, timeout: float | None = None) -> httpx.Response:
        """HEAD request used to check an image is still reachable."""
        kwargs: dict[str, Any] = {}
        if timeout is not None:
            kwargs["timeout"] = timeout
        response = await self._client.head(url, **kwargs)
        response.raise_for_status()
        return response
