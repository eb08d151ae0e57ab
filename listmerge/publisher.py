#!/usr/bin/env python3
"""
publisher.py - Sorting and Publishing the Merged List

Stages:
    1. publish: sort the merged set into the final ordered list
    2. write_output: write it to disk, one entry per line (atomic replace)
    3. relocate_output: move it into the web root (Linux only)
    4. refresh_downstream: ask the filtering service to reload its lists

Only stages 2 and 3 can fail fatally (PublishError): without an artifact on
disk the run has produced nothing. A failed refresh (DownstreamRefreshError)
leaves the already written artifact in place.
"""
from __future__ import annotations

import contextlib
import logging
import platform
import shlex
import shutil
import subprocess
from pathlib import Path
from typing import Iterable

import aiofiles

logger = logging.getLogger(__name__)

DEFAULT_OUTPUT_FILE = "ads_list.txt"
DEFAULT_PUBLISH_DIR = "/var/www/html"
DEFAULT_REFRESH_COMMAND = "pihole -g"

# Relocation into the web root only happens on these systems
RELOCATION_PLATFORMS = frozenset({"Linux"})


class PublishError(Exception):
    """The final artifact could not be written or relocated."""


class DownstreamRefreshError(Exception):
    """The downstream refresh command failed."""


def publish(merged: Iterable[str]) -> list[str]:
    """
    Sort the merged entries into the final output.

    Python compares strings by code point, which matches the byte order of
    their UTF-8 encoding, so the result is in strict ascending byte order.

    Example:
        >>> publish({"c.com", "a.com", "b.com"})
        ['a.com', 'b.com', 'c.com']
    """
    return sorted(merged)


async def write_output(entries: list[str], output_file: str | Path) -> Path:
    """
    Write entries to output_file, one per line.

    The file is written to a temporary sibling first and moved into place,
    so readers never see a half-written list.

    Raises:
        PublishError: if the file cannot be written
    """
    output_path = Path(output_file)
    temp_path = output_path.with_name(output_path.name + ".tmp")
    try:
        output_path.parent.mkdir(parents=True, exist_ok=True)
        async with aiofiles.open(temp_path, "w", encoding="utf-8", newline="\n") as f:
            await f.write("".join(f"{entry}\n" for entry in entries))
        temp_path.replace(output_path)
    except OSError as e:
        with contextlib.suppress(OSError):
            temp_path.unlink(missing_ok=True)
        raise PublishError(f"Could not write {output_path}: {e}") from e

    logger.info("Wrote %d entries to %s", len(entries), output_path)
    return output_path


def relocate_output(output_file: str | Path, publish_dir: str | Path = DEFAULT_PUBLISH_DIR) -> Path | None:
    """
    Move the written artifact into publish_dir.

    Returns:
        The new path, or None when relocation is not supported on this
        platform (the artifact then stays where it was written)

    Raises:
        PublishError: if the directory cannot be created or the move fails
    """
    system = platform.system()
    if system not in RELOCATION_PLATFORMS:
        logger.error("Cannot move file to %s: Not running on Linux (%s)", publish_dir, system)
        return None

    source = Path(output_file)
    target_dir = Path(publish_dir)
    target = target_dir / source.name
    try:
        target_dir.mkdir(parents=True, exist_ok=True)
        shutil.move(str(source), str(target))
    except OSError as e:
        raise PublishError(f"Could not move {source} to {target_dir}: {e}") from e

    logger.info("Moved %s to %s", source, target)
    return target


def refresh_downstream(command: str = DEFAULT_REFRESH_COMMAND) -> None:
    """
    Run the downstream refresh command (e.g. a Pi-hole gravity update).

    Raises:
        DownstreamRefreshError: if the command is missing or exits non-zero
    """
    args = shlex.split(command)
    if not args:
        raise DownstreamRefreshError("Empty refresh command")

    logger.info("Running refresh command: %s", command)
    try:
        subprocess.run(args, check=True)
    except FileNotFoundError as e:
        raise DownstreamRefreshError(f"Refresh command not found: {args[0]}") from e
    except OSError as e:
        raise DownstreamRefreshError(f"Could not run {args[0]}: {e}") from e
    except subprocess.CalledProcessError as e:
        raise DownstreamRefreshError(f"Refresh command exited with status {e.returncode}") from e
