"""Tests for the command-line entry point."""

from __future__ import annotations

from unittest.mock import AsyncMock, patch

import pytest

from imgcache.api.models import ProxiedImage
from imgcache.errors import ImageNotAccessibleError
from imgcache.main import build_parser, run

WASABI_URL = "https://rushd-system.s3.wasabisys.com/avatars/user1.jpg"


def test_parser_requires_command():
    with pytest.raises(SystemExit):
        build_parser().parse_args([])


async def test_resolve_prints_proxied_urls(settings, capsys):
    args = build_parser().parse_args(["resolve", WASABI_URL, "https://example.com/a.png"])
    assert await run(args, settings) == 0
    out = capsys.readouterr().out.splitlines()
    assert out[0].startswith(f"{WASABI_URL} -> http://api.test/api/auth/image-proxy/?url=")
    assert out[1] == "https://example.com/a.png -> https://example.com/a.png"


async def test_fetch_reports_success(settings, capsys):
    image = ProxiedImage(url=WASABI_URL, original_url=WASABI_URL, content_type="image/png", content=b"1234")
    with patch("imgcache.main.ImageProxy.fetch", new_callable=AsyncMock) as mock_fetch:
        mock_fetch.return_value = image
        args = build_parser().parse_args(["fetch", WASABI_URL])
        assert await run(args, settings) == 0
    assert capsys.readouterr().out.strip() == f"200 image/png 4 bytes via {WASABI_URL}"


async def test_fetch_reports_proxy_error(settings, capsys):
    with patch("imgcache.main.ImageProxy.fetch", new_callable=AsyncMock) as mock_fetch:
        mock_fetch.side_effect = ImageNotAccessibleError("gone", url=WASABI_URL)
        args = build_parser().parse_args(["fetch", WASABI_URL])
        assert await run(args, settings) == 1
    assert capsys.readouterr().err.strip() == "404 gone"


async def test_check_reports_reachability(settings, capsys):
    with patch("imgcache.main.ImageResolver.refresh_image_url", new_callable=AsyncMock) as mock_refresh:
        mock_refresh.return_value = "/default-avatar.png"
        args = build_parser().parse_args(["check", WASABI_URL])
        assert await run(args, settings) == 0
    assert capsys.readouterr().out.strip() == f"{WASABI_URL} -> /default-avatar.png"
