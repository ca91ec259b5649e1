"""
Binary fetching for the distfetch Download Subsystem

fetch_binary() turns a (dist, version) pair into an executable on local disk:
it downloads the platform's release archive into a private staging directory,
extracts the one member named like the binary, and links it into the
destination directory without ever replacing an existing file.
"""

import os
import shutil
import stat
import tempfile
from typing import Optional

from distfetch.constants import EXECUTABLE_PERMISSIONS, LATEST_VERSION
from distfetch.exceptions import AlreadyExistsError, FileSystemError
from distfetch.log_utils import logger
from distfetch.utils import (
    archive_path,
    archive_type,
    dist_base_name,
    resolve_binary_name,
    resolve_temp_root,
)

from .archive import extract_entry
from .cancel import CancelToken
from .interfaces import Fetcher
from .version import latest_dist_version


def _check_destination(out_dir: str, binary_name: str) -> str:
    """Return the target path for `binary_name` in `out_dir`, refusing collisions."""
    try:
        st = os.stat(out_dir)
    except FileNotFoundError as e:
        raise FileSystemError(
            "destination directory does not exist", path=out_dir
        ) from e
    if not stat.S_ISDIR(st.st_mode):
        raise AlreadyExistsError(out_dir)

    target = os.path.join(out_dir, binary_name)
    if os.path.lexists(target):
        raise AlreadyExistsError(target)
    return target


def _download_archive(
    fetcher: Fetcher,
    arc_dist_path: str,
    arc_path: str,
    cancel_token: Optional[CancelToken],
) -> int:
    with fetcher.fetch(arc_dist_path, cancel_token=cancel_token) as stream:
        with open(arc_path, "wb") as arc_file:
            for chunk in stream.iter_chunks():
                arc_file.write(chunk)
        return stream.bytes_read


def _copy_exclusive(staged: str, target: str) -> None:
    with open(staged, "rb") as src:
        try:
            dst = open(target, "xb")
        except FileExistsError as e:
            raise AlreadyExistsError(target) from e
        try:
            with dst:
                shutil.copyfileobj(src, dst)
            os.chmod(target, EXECUTABLE_PERMISSIONS)
        except Exception:
            try:
                os.remove(target)
            except OSError as e_rm:
                logger.error(f"Error removing partial file {target}: {e_rm}")
            raise


def _place(staged: str, target: str) -> None:
    """
    Move the staged binary to `target` unless something already lives there.

    A hard link is atomic and fails on an existing target, so of two racing
    placements exactly one wins. Across filesystems an exclusive-create copy
    is used instead.
    """
    try:
        os.link(staged, target)
    except FileExistsError as e:
        raise AlreadyExistsError(target) from e
    except OSError as e:
        logger.debug(f"Cannot link {staged} to {target} ({e}); copying instead")
        _copy_exclusive(staged, target)


def _remove_staging(staging_dir: str) -> None:
    try:
        shutil.rmtree(staging_dir)
    except OSError as e:
        logger.warning(f"Failed to remove staging directory {staging_dir}: {e}")


def fetch_binary(
    fetcher: Fetcher,
    dist: str,
    version: str,
    bin_name: str = "",
    out_dir: str = ".",
    cancel_token: Optional[CancelToken] = None,
) -> str:
    """
    Download a dist release and install its binary into `out_dir`.

    The archive `<dist>/<version>/<name>_<version>_<platform>.<ext>` is fetched
    into a fresh staging directory under the temp root, the member whose base
    name equals the binary name is extracted, and the result is placed at
    `<out_dir>/<binary name>`. The staging directory is removed on every exit
    path; `out_dir` gains at most one new file.

    Parameters:
        fetcher (Fetcher): Fetcher used to download the archive.
        dist (str): Dist name, e.g. `kubo` or `fs-repo-migrations/fs-repo-11-to-12`.
        version (str): Version tag; empty or `latest` selects the newest published version.
        bin_name (str): Binary name inside the archive; defaults to the dist's base name.
        out_dir (str): Existing directory that receives the binary.
        cancel_token (Optional[CancelToken]): Token that aborts the download.

    Returns:
        str: Absolute path of the installed binary.

    Raises:
        AlreadyExistsError: `out_dir` is not a directory, or the binary is already there.
        FileSystemError: `out_dir` does not exist.
        PermissionError: The staging directory cannot be created.
        NotFoundError: The archive is not published.
        NoBinaryInArchiveError: The archive does not contain the binary.
        FetchCancelledError: `cancel_token` was cancelled.
    """
    if not version or version == LATEST_VERSION:
        version = latest_dist_version(fetcher, dist, cancel_token=cancel_token)
        logger.info(f"Latest version of {dist} is {version}")

    binary_name = resolve_binary_name(dist, bin_name)
    out_dir = os.path.abspath(out_dir)
    target = _check_destination(out_dir, binary_name)

    arc_dist_path, arc_file_name = archive_path(dist, version, archive_type())
    staging_dir = tempfile.mkdtemp(
        prefix=f"{dist_base_name(dist)}-", dir=resolve_temp_root()
    )
    try:
        arc_path = os.path.join(staging_dir, arc_file_name)
        size = _download_archive(fetcher, arc_dist_path, arc_path, cancel_token)
        logger.debug(f"Downloaded {arc_file_name} ({size} bytes)")

        staged = os.path.join(staging_dir, "bin", binary_name)
        os.mkdir(os.path.dirname(staged))
        with open(staged, "xb") as writer:
            extract_entry(arc_path, binary_name, writer)
        os.chmod(staged, EXECUTABLE_PERMISSIONS)

        _place(staged, target)
    finally:
        _remove_staging(staging_dir)

    logger.info(f"Installed {dist} {version} to {target}")
    return target
