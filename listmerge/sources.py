"""
sources.py - Source List Loading

Reads the newline-delimited list of blocklist URLs the pipeline fetches.
"""
from __future__ import annotations

from pathlib import Path


DEFAULT_SOURCES_FILE = "links.txt"


class SourcesError(Exception):
    """The source list is missing, unreadable or empty."""


def load_sources(sources_file: str | Path) -> list[str]:
    """Load URLs from sources file, skipping comments and empty lines."""
    path = Path(sources_file)
    if not path.exists():
        raise SourcesError(f"Sources file not found: {sources_file}")

    urls = []
    try:
        with open(path, encoding="utf-8") as f:
            for line in f:
                line = line.strip()
                # Skip empty lines and comments
                if not line or line.startswith("#"):
                    continue
                urls.append(line)
    except (OSError, UnicodeDecodeError) as e:
        raise SourcesError(f"Could not read sources file {sources_file}: {e}") from e

    if not urls:
        raise SourcesError(f"No URLs found in sources file: {sources_file}")

    return urls
