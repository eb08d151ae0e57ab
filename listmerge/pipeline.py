#!/usr/bin/env python3
"""
pipeline.py

Main entry point: rebuild the consolidated blocklist.

Usage:
    python -m listmerge.pipeline --sources links.txt --output ads_list.txt

Pipeline stages:
1. Load source URLs
2. Download and parse every source concurrently
3. Merge into one deduplicated set (failed sources are reported, not fatal)
4. Sort and write the artifact
5. Move it into the publish directory (Linux only)
6. Optionally trigger the downstream refresh

Exit codes:
    0  artifact published (even if some or all sources failed)
    1  no usable sources list, or the artifact could not be written/moved
    3  artifact published but the downstream refresh failed
"""
from __future__ import annotations

import argparse
import asyncio
import logging
import sys
import time
from pathlib import Path
from typing import Any

from listmerge.aggregator import aggregate
from listmerge.publisher import (
    DEFAULT_OUTPUT_FILE,
    DEFAULT_PUBLISH_DIR,
    DEFAULT_REFRESH_COMMAND,
    DownstreamRefreshError,
    PublishError,
    publish,
    refresh_downstream,
    relocate_output,
    write_output,
)
from listmerge.sources import DEFAULT_SOURCES_FILE, SourcesError, load_sources

logger = logging.getLogger(__name__)

# Default configuration
DEFAULT_TIMEOUT = 30
DEFAULT_CONCURRENCY = 0  # 0 = one connection per source, no cap

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_REFRESH_FAILED = 3

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"


def configure_logging(verbose: bool = False, quiet: bool = False) -> None:
    """Configure root logging once, before any task starts."""
    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.WARNING
    else:
        level = logging.INFO
    logging.basicConfig(level=level, format=LOG_FORMAT)


async def run_pipeline(
    urls: list[str],
    output_file: str | Path,
    *,
    publish_dir: str | Path | None = DEFAULT_PUBLISH_DIR,
    concurrency: int = DEFAULT_CONCURRENCY,
    timeout: float | None = DEFAULT_TIMEOUT,
) -> dict[str, Any]:
    """
    Fetch, merge, sort and write the list.

    Args:
        urls: Source URLs
        output_file: Where to write the artifact
        publish_dir: Directory to move the artifact into, None to leave it
        concurrency: Max sources in flight, 0 for no limit
        timeout: Per-source timeout in seconds, None for no limit

    Returns:
        Statistics dictionary

    Raises:
        PublishError: if the artifact cannot be written or moved
    """
    stats: dict[str, Any] = {
        "sources": len(urls),
        "succeeded": 0,
        "failures": [],
        "entries": 0,
        "artifact": None,
    }

    result = await aggregate(urls, concurrency=concurrency, timeout=timeout)
    stats["succeeded"] = result.succeeded
    stats["failures"] = result.failures

    entries = publish(result.merged)
    stats["entries"] = len(entries)

    artifact = await write_output(entries, output_file)
    if publish_dir is not None:
        artifact = relocate_output(artifact, publish_dir) or artifact
    stats["artifact"] = artifact

    return stats


def print_summary(stats: dict[str, Any]) -> None:
    """Print formatted summary."""
    print("\n" + "=" * 60)
    print("📊 PIPELINE SUMMARY")
    print("=" * 60)

    print(f"\n✅ Fetched: {stats['succeeded']}/{stats['sources']} sources")
    failures = stats["failures"]
    if failures:
        print(f"⚠️  Failed: {len(failures)}")
        for failure in failures:
            print(f"   - {failure.url}: {failure.reason}")

    print(f"\n📦 Entries written: {stats['entries']:,}")
    print(f"   Artifact: {stats['artifact']}")


def parse_arguments(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Merge remote blocklists into one sorted list")
    parser.add_argument("--sources", default=DEFAULT_SOURCES_FILE, help="Path to the source URL list")
    parser.add_argument("--output", default=DEFAULT_OUTPUT_FILE, help="Path of the merged list to write")
    parser.add_argument("--publish-dir", default=DEFAULT_PUBLISH_DIR, help="Directory to move the list into (Linux only)")
    parser.add_argument("--no-relocate", action="store_true", help="Leave the list where it was written")
    parser.add_argument("--concurrency", type=int, default=DEFAULT_CONCURRENCY, help="Max concurrent downloads, 0 for no limit")
    parser.add_argument("--timeout", type=float, default=DEFAULT_TIMEOUT, help="Per-source timeout in seconds, 0 for none")
    parser.add_argument("--refresh", action="store_true", help="Run the refresh command after publishing")
    parser.add_argument("--refresh-command", default=DEFAULT_REFRESH_COMMAND, help="Downstream refresh command")
    group = parser.add_mutually_exclusive_group()
    group.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    group.add_argument("-q", "--quiet", action="store_true", help="Only log warnings and errors")

    args = parser.parse_args(argv)
    if args.concurrency < 0:
        parser.error("--concurrency must be >= 0")
    if args.timeout < 0:
        parser.error("--timeout must be >= 0")
    return args


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = parse_arguments(argv)
    configure_logging(args.verbose, args.quiet)

    try:
        urls = load_sources(args.sources)
    except SourcesError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return EXIT_FAILED

    print("🚀 Starting blocklist merge...")
    print(f"🔄 Fetching {len(urls)} sources...")
    print("-" * 60)

    start_time = time.time()
    try:
        stats = asyncio.run(run_pipeline(
            urls,
            args.output,
            publish_dir=None if args.no_relocate else args.publish_dir,
            concurrency=args.concurrency,
            timeout=args.timeout or None,
        ))
    except PublishError as e:
        logger.error("Publishing failed: %s", e)
        print(f"\n❌ ERROR: {e}", file=sys.stderr)
        return EXIT_FAILED

    print_summary(stats)
    print(f"\n⏱️  Total time: {time.time() - start_time:.1f}s")

    if args.refresh:
        try:
            refresh_downstream(args.refresh_command)
        except DownstreamRefreshError as e:
            logger.error("Downstream refresh failed: %s", e)
            print(f"\n❌ Refresh failed, list is still published: {e}", file=sys.stderr)
            return EXIT_REFRESH_FAILED

    print("✅ Pipeline completed successfully!")
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
