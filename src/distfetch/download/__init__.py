"""
distfetch Download Subsystem

This package resolves, downloads and unpacks versioned release binaries from a
distribution point, falling back across several gateways.

Core Components:
- interfaces: Fetcher base class and the FetchStream it returns
- fetchers: HTTP gateway fetcher, fallback chain, dist path resolution
- version: Version manifest parsing and ordering
- archive: tar+gzip and zip member lookup
- binary: Fetch-then-extract pipeline
- cancel: Cooperative cancellation token
"""

from .archive import ArchiveFormat, extract_entry, list_entries
from .binary import fetch_binary
from .cancel import CancelToken
from .fetchers import HttpFetcher, MultiFetcher, build_fetcher, get_dist_path_env
from .interfaces import Fetcher, FetchStream
from .version import (
    DistVersion,
    dist_versions,
    latest_dist_version,
    parse_dist_version,
)

__all__ = [
    # Interfaces
    "Fetcher",
    "FetchStream",
    "CancelToken",
    # Fetchers
    "HttpFetcher",
    "MultiFetcher",
    "build_fetcher",
    "get_dist_path_env",
    # Versions
    "DistVersion",
    "dist_versions",
    "latest_dist_version",
    "parse_dist_version",
    # Archives and binaries
    "ArchiveFormat",
    "extract_entry",
    "list_entries",
    "fetch_binary",
]
