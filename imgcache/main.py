"""Entry point for the imgcache command-line tool."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys

from imgcache.config import Settings, load_settings
from imgcache.errors import ProxyError
from imgcache.services.proxy import ImageProxy
from imgcache.services.resolver import ImageResolver

log = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="imgcache", description="Resolve and proxy image URLs.")
    sub = parser.add_subparsers(dest="command", required=True)

    resolve = sub.add_parser("resolve", help="Print the URL a client should load")
    resolve.add_argument("urls", nargs="+")

    fetch = sub.add_parser("fetch", help="Fetch an image through the proxy")
    fetch.add_argument("url")

    check = sub.add_parser("check", help="Check images are still reachable")
    check.add_argument("urls", nargs="+")
    return parser


async def run(args: argparse.Namespace, settings: Settings) -> int:
    if args.command == "resolve":
        resolver = ImageResolver(settings)
        try:
            for url in args.urls:
                print(f"{url} -> {resolver.get_proxied_image_url(url)}")
        finally:
            await resolver.close()
        return 0

    if args.command == "check":
        resolver = ImageResolver(settings)
        try:
            for url in args.urls:
                print(f"{url} -> {await resolver.refresh_image_url(url)}")
        finally:
            await resolver.close()
        return 0

    proxy = ImageProxy(settings)
    try:
        image = await proxy.fetch(args.url)
    except ProxyError as exc:
        print(f"{exc.status_code} {exc}", file=sys.stderr)
        return 1
    finally:
        await proxy.close()
    print(f"200 {image.content_type} {image.size} bytes via {image.url}")
    return 0


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    settings = load_settings()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    return asyncio.run(run(args, settings))


if __name__ == "__main__":
    sys.exit(main())
