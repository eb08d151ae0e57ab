"""
listmerge package - Blocklist Merger

Modules:
    sources: Load the list of source URLs
    parser: Extract entries from a downloaded list
    downloader: Fetch source bodies over HTTP
    aggregator: Concurrent fetch-and-parse with per-source failure isolation
    publisher: Sort the merged set and write/relocate/refresh the artifact
    pipeline: Command line entry point
"""

__version__ = "1.0.0"
