#!/usr/bin/env python3
"""
scripts/warm_cache.py — Prefetch Blog Metadata Against a Running Server
========================================================================
Lists the blog, preloads the metadata of every post through the shared
PreloadManager (optionally the content too) and prints the cache stats.

Usage:
  python scripts/warm_cache.py --base-url http://localhost:8000 [--content] [--tag python]
"""

import argparse
import asyncio
import logging

import httpx

from _term import _bold

from client.debug import format_cache_stats
from client.preload import DEFAULT_BASE_URL, PreloadManager

logging.basicConfig(level=logging.INFO, format='%(levelname)s - %(message)s')
log = logging.getLogger("portfolio.warm_cache")


async def list_slugs(client: httpx.AsyncClient, tag: str = None, limit: int = 100) -> list:
    slugs, page = [], 1
    while True:
        params = {"page": page, "limit": limit}
        if tag:
            params["tag"] = tag
        resp = await client.get("/api/blog", params=params)
        resp.raise_for_status()
        body = resp.json()
        slugs.extend(p["slug"] for p in body["posts"])
        if not body["pagination"]["hasNext"]:
            return slugs
        page += 1


async def warm(base_url: str, with_content: bool = False, tag: str = None) -> dict:
    async with httpx.AsyncClient(base_url=base_url, timeout=15) as client:
        manager = PreloadManager(client=client)
        slugs = await list_slugs(client, tag=tag)
        log.info(f"Warming {len(slugs)} posts")

        await asyncio.gather(*(manager.preload_blog_metadata(s) for s in slugs))
        if with_content:
            await asyncio.gather(*(manager.load_blog_content(s) for s in slugs))

        stats = manager.get_cache_stats()
        await manager.aclose()
    return stats


def main():
    parser = argparse.ArgumentParser(description="Preload blog metadata (and content) into the client cache")
    parser.add_argument("--base-url", default=DEFAULT_BASE_URL, help="API base URL")
    parser.add_argument("--content", action="store_true", help="Also load post bodies")
    parser.add_argument("--tag", help="Only posts with this tag")
    args = parser.parse_args()

    stats = asyncio.run(warm(args.base_url, with_content=args.content, tag=args.tag))
    print()
    print(_bold(format_cache_stats(stats)))
    print()


if __name__ == "__main__":
    main()
