#!/usr/bin/env python3
"""
parser.py - Entry Extraction

Turns the raw text of one downloaded list into a set of entries.

Rules:
    1. Every line is trimmed of surrounding whitespace
    2. Empty lines are discarded
    3. Lines starting with # are discarded as comments
    4. Everything else is kept verbatim (no syntax validation)

The result is a set, so line order is irrelevant and duplicates inside one
body collapse silently. Parsing never fails: malformed input just yields
fewer entries.

Usage:
    python -m listmerge.parser <input_file>
"""
from __future__ import annotations

import sys
from typing import Final, NamedTuple


COMMENT_MARKER: Final[str] = "#"


class ParseStats(NamedTuple):
    """
    Line counts from parsing one body.

    Attributes:
        total_lines: Lines seen
        kept: Distinct entries produced
        comments: Comment lines dropped
        empty: Blank lines dropped
        duplicates: Entry lines collapsed into an earlier identical entry

    Example:
        >>> parse_stats("# c\\n\\na.com\\na.com\\n")
        ParseStats(total_lines=4, kept=1, comments=1, empty=1, duplicates=1)
    """
    total_lines: int
    kept: int
    comments: int
    empty: int
    duplicates: int


def is_comment(line: str) -> bool:
    """
    Check if an already trimmed line is a comment.

    Example:
        >>> is_comment("# This is a comment")
        True
        >>> is_comment("example.com")
        False
    """
    return line.startswith(COMMENT_MARKER)


def clean_line(line: str) -> str | None:
    """
    Normalize a single line into an entry.

    Returns:
        The trimmed entry, or None if the line is blank or a comment

    Example:
        >>> clean_line("  ads.example.com \\t")
        'ads.example.com'
        >>> clean_line("   # hosted by someone") is None
        True
    """
    line = line.strip()
    if not line or is_comment(line):
        return None
    return line


def split_lines(body: str) -> list[str]:
    """
    Split a body on \\n only.

    Other characters str.splitlines treats as breaks (form feed, NEL,
    U+2028, lone \\r) stay inside the line; a trailing \\r is left for
    strip() to remove. A final newline does not start an extra line.

    Example:
        >>> split_lines("a\\r\\nb\\x0cc\\n")
        ['a\\r', 'b\\x0cc']
    """
    lines = body.split("\n")
    if lines[-1] == "":
        lines.pop()
    return lines


def parse_entries(body: str) -> set[str]:
    """Extract the set of entries contained in a list body."""
    entries: set[str] = set()
    for line in split_lines(body):
        entry = clean_line(line)
        if entry is not None:
            entries.add(entry)
    return entries


def parse_stats(body: str) -> ParseStats:
    """Count what parse_entries would keep and drop for a body."""
    total = comments = empty = 0
    seen: set[str] = set()
    duplicates = 0

    for line in split_lines(body):
        total += 1
        line = line.strip()
        if not line:
            empty += 1
        elif is_comment(line):
            comments += 1
        elif line in seen:
            duplicates += 1
        else:
            seen.add(line)

    return ParseStats(total, len(seen), comments, empty, duplicates)


def main() -> int:
    """Parse a local list file and print its entries, sorted."""
    if len(sys.argv) < 2:
        print("Usage: python -m listmerge.parser <input_file>")
        return 2

    with open(sys.argv[1], encoding="utf-8-sig", errors="replace") as f:
        body = f.read()

    for entry in sorted(parse_entries(body)):
        print(entry)

    stats = parse_stats(body)
    print(
        f"Parsed: {stats.total_lines} lines, {stats.kept} entries "
        f"({stats.comments} comments, {stats.empty} empty, {stats.duplicates} duplicates)",
        file=sys.stderr,
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
