#!/usr/bin/env python3
"""
downloader.py - Async Blocklist Fetcher

Retrieves the raw text of one source over HTTP. Every way a fetch can go
wrong (connection error, timeout, HTTP error status, undecodable body)
is reported as a single FetchError carrying the URL and a readable reason.
There are no retries: a failure is final for that source in this run.

Usage:
    python -m listmerge.downloader <url>
"""
from __future__ import annotations

import asyncio
import codecs
import sys

import aiohttp


DEFAULT_CHARSET = "utf-8"


class FetchError(Exception):
    """A source could not be downloaded."""

    def __init__(self, url: str, reason: str):
        super().__init__(f"{url}: {reason}")
        self.url = url
        self.reason = reason


def open_session(concurrency: int = 0) -> aiohttp.ClientSession:
    """
    Create the shared client session used for every fetch in a run.

    Args:
        concurrency: Connection pool limit, 0 for no limit

    Timeouts are applied per source by the caller, so the session itself
    has none.
    """
    connector = aiohttp.TCPConnector(limit=max(concurrency, 0))
    return aiohttp.ClientSession(
        connector=connector,
        timeout=aiohttp.ClientTimeout(total=None),
    )


async def fetch_text(session: aiohttp.ClientSession, url: str) -> str:
    """
    Download a single source and return its body as text.

    Raises:
        FetchError: on any network, status or decode failure
    """
    try:
        async with session.get(url, allow_redirects=True) as response:
            if not 200 <= response.status < 300:
                raise FetchError(url, f"HTTP {response.status}")

            content = await response.read()
            charset = response.charset or DEFAULT_CHARSET
    except asyncio.TimeoutError:
        raise FetchError(url, "Timeout") from None
    except aiohttp.ClientError as e:
        raise FetchError(url, f"{type(e).__name__}: {e}") from e

    try:
        return content.decode(_bom_aware(charset))
    except (UnicodeDecodeError, LookupError) as e:
        raise FetchError(url, f"Could not decode body as {charset}: {e}") from e


def _bom_aware(charset: str) -> str:
    """Use utf-8-sig for UTF-8 bodies so a leading BOM is dropped."""
    if codecs.lookup(charset).name == "utf-8":
        return "utf-8-sig"
    return charset


async def _fetch_one(url: str) -> str:
    async with open_session() as session:
        return await fetch_text(session, url)


def main() -> int:
    """Download one URL and print its body."""
    if len(sys.argv) < 2:
        print("Usage: python -m listmerge.downloader <url>")
        return 2

    try:
        body = asyncio.run(_fetch_one(sys.argv[1]))
    except FetchError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1

    sys.stdout.write(body)
    return 0


if __name__ == "__main__":
    sys.exit(main())
