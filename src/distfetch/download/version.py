"""
Version Management for the distfetch Download Subsystem

This module reads a dist's `versions` manifest, keeps the well-formed
`v`-prefixed tags, and orders them by semantic-version precedence.
"""

import posixpath
import re
from dataclasses import dataclass
from functools import total_ordering
from typing import Dict, List, Optional, Tuple

from distfetch.constants import VERSION_TAG_PREFIX, VERSIONS_FILE_NAME
from distfetch.exceptions import VersionError
from distfetch.log_utils import logger

from .cancel import CancelToken
from .interfaces import Fetcher

DIST_TAG_RX = re.compile(
    r"^" + re.escape(VERSION_TAG_PREFIX)
    + r"(?P<major>\d+)\.(?P<minor>\d+)\.(?P<patch>\d+)"
    r"(?:-(?P<pre>[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*))?"
    r"(?:\+(?P<build>[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*))?$"
)

_PreKey = Tuple[Tuple[int, int, str], ...]


def _identifier_key(identifier: str) -> Tuple[int, int, str]:
    # Numeric identifiers sort below alphanumeric ones
    if identifier.isdigit():
        return (0, int(identifier), "")
    return (1, 0, identifier)


@total_ordering
@dataclass(frozen=True, eq=False)
class DistVersion:
    """
    A parsed `v<major>.<minor>.<patch>[-<prerelease>][+<build>]` tag.

    Ordering follows semantic-version precedence. Pre-release identifiers are
    compared one by one: numeric identifiers as numbers, the rest as ASCII
    text, numeric before alphanumeric, and a longer set wins when every
    shared identifier is equal. A release sorts after all of its
    pre-releases. Build metadata is ignored for ordering and equality.
    """

    major: int
    minor: int
    patch: int
    prerelease: Tuple[str, ...] = ()
    build: str = ""

    @property
    def is_prerelease(self) -> bool:
        return bool(self.prerelease)

    @property
    def sort_key(self) -> Tuple[int, int, int, Tuple[int, _PreKey]]:
        if not self.prerelease:
            return (self.major, self.minor, self.patch, (1, ()))
        pre_key = tuple(_identifier_key(p) for p in self.prerelease)
        return (self.major, self.minor, self.patch, (0, pre_key))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, DistVersion):
            return NotImplemented
        return self.sort_key == other.sort_key

    def __lt__(self, other: "DistVersion") -> bool:
        if not isinstance(other, DistVersion):
            return NotImplemented
        return self.sort_key < other.sort_key

    def __hash__(self) -> int:
        return hash(self.sort_key)

    def __str__(self) -> str:
        text = f"{VERSION_TAG_PREFIX}{self.major}.{self.minor}.{self.patch}"
        if self.prerelease:
            text += "-" + ".".join(self.prerelease)
        if self.build:
            text += "+" + self.build
        return text


def parse_dist_version(tag: Optional[str]) -> Optional[DistVersion]:
    """
    Parse a distribution version tag.

    Only tags of the form `v<major>.<minor>.<patch>[-<prerelease>][+<build>]`
    are accepted, where the pre-release and build parts are dot-separated
    identifiers of ASCII letters, digits and hyphens. Any such label is
    valid (`rc1`, `alpha.2`, `dev`, `snapshot`, `x.7.z.92`).

    Args:
        tag: Raw tag, e.g. `v0.18.0-rc2`.

    Returns:
        The parsed DistVersion, or None when the tag is malformed.
    """
    if tag is None:
        return None
    match = DIST_TAG_RX.match(tag.strip())
    if not match:
        return None

    pre = match.group("pre")
    return DistVersion(
        major=int(match.group("major")),
        minor=int(match.group("minor")),
        patch=int(match.group("patch")),
        prerelease=tuple(pre.split(".")) if pre else (),
        build=match.group("build") or "",
    )


def dist_versions(
    fetcher: Fetcher,
    dist: str,
    sort_desc: bool = False,
    cancel_token: Optional[CancelToken] = None,
) -> List[str]:
    """
    List the published versions of a dist.

    Fetches `<dist>/versions`, drops malformed and duplicate tags, and returns
    the remaining tags ordered by precedence (a pre-release sorts before its
    release).

    Parameters:
        fetcher (Fetcher): Fetcher used to read the manifest.
        dist (str): Dist name, e.g. `kubo` or `fs-repo-migrations/fs-repo-11-to-12`.
        sort_desc (bool): Return newest first instead of oldest first.
        cancel_token (Optional[CancelToken]): Token that aborts the fetch.

    Returns:
        List[str]: Version tags as spelled in the manifest; empty for an empty manifest.

    Raises:
        NotFoundError: The manifest does not exist.
        DownloadError: Any other fetch failure, unchanged.
    """
    manifest_path = posixpath.join(dist, VERSIONS_FILE_NAME)
    with fetcher.fetch(manifest_path, cancel_token=cancel_token) as stream:
        text = stream.read_text()

    versions: Dict[DistVersion, str] = {}
    for line in text.splitlines():
        tag = line.strip()
        if not tag:
            continue
        version = parse_dist_version(tag)
        if version is None:
            logger.debug(f"Ignoring malformed version {tag!r} in {manifest_path}")
            continue
        versions.setdefault(version, tag)

    ordered = sorted(versions, reverse=sort_desc)
    return [versions[v] for v in ordered]


def latest_dist_version(
    fetcher: Fetcher,
    dist: str,
    stable_only: bool = False,
    cancel_token: Optional[CancelToken] = None,
) -> str:
    """
    Return the newest published version of a dist.

    Parameters:
        stable_only (bool): Skip pre-release tags.

    Raises:
        VersionError: The manifest lists no eligible version.
    """
    tags = dist_versions(fetcher, dist, sort_desc=True, cancel_token=cancel_token)
    for tag in tags:
        version = parse_dist_version(tag)
        if stable_only and version is not None and version.is_prerelease:
            continue
        return tag
    raise VersionError(f"no versions found for {dist}", field="dist", value=dist)
