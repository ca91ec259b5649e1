"""
Archive lookup and extraction tests for tar+gzip and zip release archives.
"""

import io
import tarfile
import zipfile

import pytest
from conftest import build_tar_gz, build_zip

from distfetch.download.archive import (
    ArchiveFormat,
    extract_entry,
    list_entries,
    member_base_name,
)
from distfetch.exceptions import (
    ArchiveError,
    CorruptedArchiveError,
    NoBinaryInArchiveError,
)

ARCHIVE_FILES = {
    "kubo/README.md": b"readme",
    "kubo/LICENSE": b"license",
    "kubo/bin/deeper/ipfs": b"\x7fELF binary payload" * 50,
    "kubo/install.sh": b"#!/bin/sh\n",
}


@pytest.fixture(params=[ArchiveFormat.TAR_GZ, ArchiveFormat.ZIP], ids=["tar.gz", "zip"])
def archive_file(request, tmp_path):
    """Write ARCHIVE_FILES as an archive of the parametrized format."""
    fmt = request.param
    if fmt is ArchiveFormat.TAR_GZ:
        path = tmp_path / "kubo_v0.1.0_linux-amd64.tar.gz"
        path.write_bytes(build_tar_gz(ARCHIVE_FILES))
    else:
        path = tmp_path / "kubo_v0.1.0_windows-amd64.zip"
        path.write_bytes(build_zip(ARCHIVE_FILES))
    return str(path)


@pytest.mark.unit
@pytest.mark.parametrize(
    "name, expected",
    [
        ("kubo_v0.1.0_linux-amd64.tar.gz", ArchiveFormat.TAR_GZ),
        ("KUBO.TGZ", ArchiveFormat.TAR_GZ),
        ("kubo_v0.1.0_windows-amd64.zip", ArchiveFormat.ZIP),
    ],
)
def test_archive_format_from_name(name, expected):
    assert ArchiveFormat.from_name(name) is expected


@pytest.mark.unit
@pytest.mark.parametrize("name", ["kubo.tar", "kubo.tar.bz2", "kubo", "kubo.gz"])
def test_archive_format_unsupported(name):
    with pytest.raises(ArchiveError):
        ArchiveFormat.from_name(name)


@pytest.mark.unit
@pytest.mark.parametrize(
    "member, expected",
    [("ipfs", "ipfs"), ("kubo/ipfs", "ipfs"), ("a\\b\\ipfs.exe", "ipfs.exe"), ("dir/", "dir")],
)
def test_member_base_name(member, expected):
    assert member_base_name(member) == expected


@pytest.mark.unit
def test_list_entries(archive_file):
    assert sorted(list_entries(archive_file)) == sorted(ARCHIVE_FILES)


@pytest.mark.unit
def test_extract_nested_entry(archive_file):
    """The binary is found by base name however deeply it is nested."""
    out = io.BytesIO()
    member = extract_entry(archive_file, "ipfs", out)

    assert member == "kubo/bin/deeper/ipfs"
    assert out.getvalue() == ARCHIVE_FILES["kubo/bin/deeper/ipfs"]


@pytest.mark.unit
def test_extract_missing_entry(archive_file):
    """A missing binary is the same condition for both formats."""
    out = io.BytesIO()
    with pytest.raises(NoBinaryInArchiveError) as exc_info:
        extract_entry(archive_file, "not-such-bin", out)

    assert str(exc_info.value) == "no binary found in archive"
    assert exc_info.value.binary_name == "not-such-bin"
    assert out.getvalue() == b""


@pytest.mark.unit
def test_extract_partial_name_does_not_match(archive_file):
    with pytest.raises(NoBinaryInArchiveError):
        extract_entry(archive_file, "ipf", io.BytesIO())


@pytest.mark.unit
def test_tar_and_zip_yield_identical_bytes(tmp_path):
    """Extracting the same member from equivalent tar.gz and zip archives gives the same bytes."""
    tar_path = tmp_path / "same.tar.gz"
    zip_path = tmp_path / "same.zip"
    tar_path.write_bytes(build_tar_gz(ARCHIVE_FILES))
    zip_path.write_bytes(build_zip(ARCHIVE_FILES))

    for name in ("ipfs", "LICENSE", "install.sh"):
        from_tar, from_zip = io.BytesIO(), io.BytesIO()
        extract_entry(str(tar_path), name, from_tar)
        extract_entry(str(zip_path), name, from_zip)
        assert from_tar.getvalue() == from_zip.getvalue()


@pytest.mark.unit
def test_tar_directory_with_binary_name_is_skipped(tmp_path):
    """Only regular files match; a directory named like the binary is ignored."""
    buf = io.BytesIO()
    with tarfile.open(fileobj=buf, mode="w:gz") as tf:
        dir_info = tarfile.TarInfo("kubo/ipfs")
        dir_info.type = tarfile.DIRTYPE
        tf.addfile(dir_info)
        data = b"real binary"
        file_info = tarfile.TarInfo("kubo/ipfs/ipfs")
        file_info.size = len(data)
        tf.addfile(file_info, io.BytesIO(data))
    path = tmp_path / "dirs.tar.gz"
    path.write_bytes(buf.getvalue())

    out = io.BytesIO()
    assert extract_entry(str(path), "ipfs", out) == "kubo/ipfs/ipfs"
    assert out.getvalue() == b"real binary"


@pytest.mark.unit
def test_zip_directory_entry_is_skipped(tmp_path):
    path = tmp_path / "dirs.zip"
    with zipfile.ZipFile(path, "w") as zf:
        zf.writestr("ipfs/", b"")
    with pytest.raises(NoBinaryInArchiveError):
        extract_entry(str(path), "ipfs", io.BytesIO())


@pytest.mark.unit
@pytest.mark.parametrize("suffix", [".tar.gz", ".zip"])
def test_corrupted_archive(tmp_path, suffix):
    path = tmp_path / f"broken{suffix}"
    path.write_bytes(b"this is not an archive")

    with pytest.raises(CorruptedArchiveError):
        extract_entry(str(path), "ipfs", io.BytesIO())
    with pytest.raises(CorruptedArchiveError):
        list_entries(str(path))


@pytest.mark.unit
def test_format_override(tmp_path):
    """An explicit format wins over the file name."""
    path = tmp_path / "download.bin"
    path.write_bytes(build_zip({"x/ipfs": b"zip data"}))
    out = io.BytesIO()
    extract_entry(str(path), "ipfs", out, archive_format=ArchiveFormat.ZIP)
    assert out.getvalue() == b"zip data"
