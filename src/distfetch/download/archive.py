"""
Archive reading for the distfetch Download Subsystem

Release archives are tar+gzip or zip files. Both formats are handled behind
the same two operations: list the member names, and copy the single member
whose base name matches into a writer. Members may sit at any depth.
"""

import gzip
import shutil
import tarfile
import zipfile
import zlib
from enum import Enum
from typing import BinaryIO, Callable, Dict, List, Optional, Tuple

from distfetch.constants import TAR_GZ_EXTENSION, TGZ_EXTENSION, ZIP_EXTENSION
from distfetch.exceptions import (
    ArchiveError,
    CorruptedArchiveError,
    NoBinaryInArchiveError,
)
from distfetch.log_utils import logger


class ArchiveFormat(Enum):
    TAR_GZ = "tar.gz"
    ZIP = "zip"

    @classmethod
    def from_name(cls, name: str) -> "ArchiveFormat":
        """
        Pick the format from an archive file name's suffix.

        Raises:
            ArchiveError: The suffix is neither `.tar.gz`/`.tgz` nor `.zip`.
        """
        lowered = name.lower()
        if lowered.endswith(TAR_GZ_EXTENSION) or lowered.endswith(TGZ_EXTENSION):
            return cls.TAR_GZ
        if lowered.endswith(ZIP_EXTENSION):
            return cls.ZIP
        raise ArchiveError("unsupported archive type", archive_path=name)


def member_base_name(member_name: str) -> str:
    """Base name of an archive member, accepting `/` and `\\` separators."""
    return member_name.replace("\\", "/").rstrip("/").rsplit("/", 1)[-1]


# tar+gzip ---------------------------------------------------------------------

_TAR_READ_ERRORS = (tarfile.TarError, EOFError, zlib.error, gzip.BadGzipFile)


def _tar_list(archive_path: str) -> List[str]:
    with tarfile.open(archive_path, "r|gz") as tf:
        return [member.name for member in tf]


def _tar_extract(archive_path: str, base_name: str, writer: BinaryIO) -> Optional[str]:
    # Stream mode: one linear pass, no index
    with tarfile.open(archive_path, "r|gz") as tf:
        for member in tf:
            if not member.isfile() or member_base_name(member.name) != base_name:
                continue
            source = tf.extractfile(member)
            if source is None:
                continue
            shutil.copyfileobj(source, writer)
            return member.name
    return None


# zip --------------------------------------------------------------------------

_ZIP_READ_ERRORS = (zipfile.BadZipFile, zlib.error, EOFError)


def _zip_list(archive_path: str) -> List[str]:
    with zipfile.ZipFile(archive_path, "r") as zf:
        return zf.namelist()


def _zip_extract(archive_path: str, base_name: str, writer: BinaryIO) -> Optional[str]:
    with zipfile.ZipFile(archive_path, "r") as zf:
        for info in zf.infolist():
            if info.is_dir() or member_base_name(info.filename) != base_name:
                continue
            with zf.open(info) as source:
                shutil.copyfileobj(source, writer)
            return info.filename
    return None


_HANDLERS: Dict[
    ArchiveFormat,
    Tuple[
        Callable[[str], List[str]],
        Callable[[str, str, BinaryIO], Optional[str]],
        Tuple[type, ...],
    ],
] = {
    ArchiveFormat.TAR_GZ: (_tar_list, _tar_extract, _TAR_READ_ERRORS),
    ArchiveFormat.ZIP: (_zip_list, _zip_extract, _ZIP_READ_ERRORS),
}


def list_entries(
    archive_path: str, archive_format: Optional[ArchiveFormat] = None
) -> List[str]:
    """
    Return the member names of an archive in stored order.

    The format defaults to the one implied by the file name.

    Raises:
        CorruptedArchiveError: The archive cannot be read.
    """
    fmt = archive_format or ArchiveFormat.from_name(archive_path)
    lister, _, read_errors = _HANDLERS[fmt]
    try:
        return lister(archive_path)
    except read_errors as e:
        raise CorruptedArchiveError(
            f"cannot read {fmt.value} archive", archive_path=archive_path, details=str(e)
        ) from e


def extract_entry(
    archive_path: str,
    base_name: str,
    writer: BinaryIO,
    archive_format: Optional[ArchiveFormat] = None,
) -> str:
    """
    Copy the first regular member named `base_name` into `writer`.

    The member is matched on its base name, regardless of the directories it
    sits in.

    Parameters:
        archive_path (str): Path of the archive on disk.
        base_name (str): File name to look for.
        writer (BinaryIO): Binary file object receiving the member's contents.
        archive_format (Optional[ArchiveFormat]): Format override; defaults to the suffix of `archive_path`.

    Returns:
        str: Full member name that was extracted.

    Raises:
        NoBinaryInArchiveError: No member has that base name.
        CorruptedArchiveError: The archive cannot be read.
    """
    fmt = archive_format or ArchiveFormat.from_name(archive_path)
    _, extractor, read_errors = _HANDLERS[fmt]
    try:
        member_name = extractor(archive_path, base_name, writer)
    except read_errors as e:
        raise CorruptedArchiveError(
            f"cannot read {fmt.value} archive", archive_path=archive_path, details=str(e)
        ) from e

    if member_name is None:
        raise NoBinaryInArchiveError(base_name, archive_path=archive_path)
    logger.debug(f"Extracted {member_name} from {archive_path}")
    return member_name
