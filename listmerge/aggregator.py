#!/usr/bin/env python3
"""
aggregator.py - Concurrent Fetch-and-Merge

Runs one task per source, each downloading and parsing its list, then joins
them all and merges the successful entry sets into one deduplicated set.

Failure isolation:
    A source that fails (network error, bad status, timeout, or anything
    else raised while handling it) becomes a FailureReport. It never aborts
    the run and never removes entries contributed by other sources. If every
    source fails the merged set is simply empty.

Merging:
    Tasks only return values. The coordinating coroutine is the single
    writer of the merged set and merges after the join barrier, so no lock
    is needed. Set union is commutative, so the merged content does not
    depend on the order in which tasks finish.

Usage:
    python -m listmerge.aggregator <sources_file>
"""
from __future__ import annotations

import asyncio
import logging
import sys
from typing import Awaitable, Callable, Iterable, NamedTuple

import aiohttp

from listmerge.downloader import FetchError, fetch_text, open_session
from listmerge.parser import parse_entries, parse_stats
from listmerge.sources import SourcesError, load_sources

logger = logging.getLogger(__name__)

Fetcher = Callable[[aiohttp.ClientSession, str], Awaitable[str]]


class SourceResult(NamedTuple):
    """
    Outcome of one task unit: either parsed entries or a failure reason.

    Use the ``parsed`` and ``failed`` constructors; exactly one of
    ``entries`` and ``error`` is set.
    """
    url: str
    entries: frozenset[str] | None
    error: str | None

    @classmethod
    def parsed(cls, url: str, entries: Iterable[str]) -> SourceResult:
        return cls(url, frozenset(entries), None)

    @classmethod
    def failed(cls, url: str, reason: str) -> SourceResult:
        return cls(url, None, reason)

    @property
    def ok(self) -> bool:
        return self.error is None


class FailureReport(NamedTuple):
    """A source that contributed nothing to this run, and why."""
    url: str
    reason: str


class AggregateResult(NamedTuple):
    """Merged entries plus the failures recorded while building them."""
    merged: set[str]
    failures: list[FailureReport]
    succeeded: int


async def run_source(
    session: aiohttp.ClientSession,
    url: str,
    *,
    fetcher: Fetcher = fetch_text,
    timeout: float | None = None,
) -> SourceResult:
    """
    Download and parse one source.

    Never raises for a source-level problem: every failure is returned as a
    failed SourceResult.

    Args:
        session: Shared HTTP session
        url: Source to fetch
        fetcher: Coroutine returning the body text, raising FetchError
        timeout: Seconds allowed for the fetch, None for no limit
    """
    logger.info("Downloading and parsing: %s", url)
    try:
        body = await asyncio.wait_for(fetcher(session, url), timeout)
    except asyncio.TimeoutError:
        reason = "Timeout" if timeout is None else f"Timed out after {timeout}s"
    except FetchError as e:
        reason = e.reason
    except Exception as e:
        reason = f"{type(e).__name__}: {e}"
    else:
        entries = parse_entries(body)
        logger.info("Done downloading and parsing: %s (%d entries)", url, len(entries))
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug("Parse stats for %s: %s", url, parse_stats(body))
        return SourceResult.parsed(url, entries)

    logger.warning("Error downloading and parsing %s: %s", url, reason)
    return SourceResult.failed(url, reason)


def merge_results(results: Iterable[SourceResult]) -> AggregateResult:
    """Union parsed entry sets and collect failure reports."""
    merged: set[str] = set()
    failures: list[FailureReport] = []
    succeeded = 0

    for result in results:
        if result.ok:
            merged.update(result.entries)
            succeeded += 1
        else:
            failures.append(FailureReport(result.url, result.error))

    return AggregateResult(merged, failures, succeeded)


async def aggregate(
    urls: list[str],
    *,
    concurrency: int = 0,
    timeout: float | None = None,
    fetcher: Fetcher = fetch_text,
    session: aiohttp.ClientSession | None = None,
) -> AggregateResult:
    """
    Fetch and parse every source concurrently and merge the results.

    Args:
        urls: Sources to fetch
        concurrency: Max sources in flight at once, 0 for no limit
        timeout: Per-source timeout in seconds, None for no limit
        fetcher: Coroutine used to download one source
        session: Existing session to reuse; one is created when omitted

    Returns:
        AggregateResult with the merged set and one FailureReport per
        failed source, in input order
    """
    if not urls:
        return AggregateResult(set(), [], 0)

    semaphore = asyncio.Semaphore(concurrency) if concurrency > 0 else None

    async def run_with_limit(client: aiohttp.ClientSession, url: str) -> SourceResult:
        if semaphore is None:
            return await run_source(client, url, fetcher=fetcher, timeout=timeout)
        async with semaphore:
            return await run_source(client, url, fetcher=fetcher, timeout=timeout)

    async def run_all(client: aiohttp.ClientSession) -> list:
        tasks = [run_with_limit(client, url) for url in urls]
        return await asyncio.gather(*tasks, return_exceptions=True)

    if session is None:
        async with open_session(concurrency) as client:
            outcomes = await run_all(client)
    else:
        outcomes = await run_all(session)

    # A task that could not be awaited still counts as a failed source
    results = []
    for url, outcome in zip(urls, outcomes):
        if isinstance(outcome, BaseException):
            reason = f"task error: {type(outcome).__name__}: {outcome}"
            logger.error("Task for %s did not complete: %s", url, reason)
            results.append(SourceResult.failed(url, reason))
        else:
            results.append(outcome)

    return merge_results(results)


def main() -> int:
    """Aggregate a sources file and print the merged entries."""
    if len(sys.argv) < 2:
        print("Usage: python -m listmerge.aggregator <sources_file>")
        return 2

    logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(levelname)s - %(message)s")

    try:
        urls = load_sources(sys.argv[1])
    except SourcesError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1

    result = asyncio.run(aggregate(urls))
    for entry in sorted(result.merged):
        print(entry)

    print(f"Merged {len(result.merged)} entries from {result.succeeded}/{len(urls)} sources", file=sys.stderr)
    return 0


if __name__ == "__main__":
    sys.exit(main())
