import io
import posixpath
import tarfile
import zipfile
from http import HTTPStatus
from typing import Dict, List
from unittest.mock import MagicMock
from urllib.parse import urlparse

import platformdirs
import pytest
import requests

from distfetch.download.fetchers import HttpFetcher
from distfetch.utils import exe_name

_NETWORK_BLOCK_MSG = (
    "Network access is blocked during tests. Mock requests.* or Session.request."
)

GATEWAY_URL = "http://gateway.test"
MANIFEST_TEXT = "v1.0.0\nv1.1.0\nv1.1.2\nv2.0.0-rc1\n2.0.0\nv2.0.1\n"
FAKE_DATA = b"FAKE DATA"


def _block_network(*_args, **_kwargs):
    """
    Prevent network calls in tests by raising a RuntimeError.

    Raises:
        RuntimeError: with `_NETWORK_BLOCK_MSG` indicating that network access is blocked during tests.
    """
    raise RuntimeError(_NETWORK_BLOCK_MSG)


def pytest_configure(config):
    """Register the markers used across the suite."""
    for marker in (
        "unit: fast isolated tests",
        "core_downloads: fetch and install pipeline tests",
        "integration: tests spanning several modules",
    ):
        config.addinivalue_line("markers", marker)


@pytest.fixture(autouse=True)
def _isolate_test_environment(tmp_path_factory, monkeypatch):
    """
    Point platform directories at a temporary layout and clear distfetch environment overrides.
    """
    base = tmp_path_factory.mktemp("distfetch")
    config_dir = base / "config"
    log_dir = base / "log"
    for path in (config_dir, log_dir):
        path.mkdir(parents=True, exist_ok=True)

    monkeypatch.setenv("XDG_CONFIG_HOME", str(config_dir))
    monkeypatch.delenv("IPFS_DIST_PATH", raising=False)
    monkeypatch.delenv("DISTFETCH_LOG_LEVEL", raising=False)

    monkeypatch.setattr(
        platformdirs, "user_config_dir", lambda *_args, **_kwargs: str(config_dir)
    )
    monkeypatch.setattr(
        platformdirs, "user_log_dir", lambda *_args, **_kwargs: str(log_dir)
    )


def pytest_runtest_setup():
    """
    Prevent real network requests during tests by replacing HTTP entry points with blocking callables.
    """
    requests.get = _block_network
    requests.head = _block_network
    requests.Session.request = _block_network


# =============================================================================
# Fake distribution gateway
# =============================================================================


def build_tar_gz(files: Dict[str, bytes]) -> bytes:
    """Build a gzip-compressed tarball holding `files` (member name -> content)."""
    buf = io.BytesIO()
    with tarfile.open(fileobj=buf, mode="w:gz") as tf:
        for name, data in files.items():
            info = tarfile.TarInfo(name)
            info.size = len(data)
            info.mode = 0o755
            tf.addfile(info, io.BytesIO(data))
    return buf.getvalue()


def build_zip(files: Dict[str, bytes]) -> bytes:
    """Build a deflated zip archive holding `files` (member name -> content)."""
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w", compression=zipfile.ZIP_DEFLATED) as zf:
        for name, data in files.items():
            zf.writestr(name, data)
    return buf.getvalue()


def make_response(status_code: int = 200, body: bytes = b"", url: str = ""):
    """Create a real requests.Response whose streamed body is `body`."""
    response = requests.Response()
    response.status_code = status_code
    response.reason = HTTPStatus(status_code).phrase
    response.raw = io.BytesIO(body)
    response.url = url
    return response


class FakeGateway:
    """
    Callable standing in for `requests.Session.get` against a dist gateway.

    Paths containing `not-here` are missing. Paths ending in `versions` serve
    the manifest. Archive paths serve an archive holding `<dist>/<binary>`,
    where the binary is named after the archive prefix (`go-ipfs` ships `ipfs`).
    Everything else is missing.
    """

    def __init__(self, manifest: str = MANIFEST_TEXT) -> None:
        self.manifest = manifest
        self.requests: List[str] = []
        self.headers: List[dict] = []

    def __call__(self, url, headers=None, stream=False, timeout=None, **_kwargs):
        self.requests.append(url)
        self.headers.append(dict(headers or {}))
        path = urlparse(url).path

        if "not-here" in path:
            return make_response(404, b"404 page not found\n", url)
        if path.endswith("versions"):
            return make_response(200, self.manifest.encode(), url)
        if path.endswith(".tar.gz"):
            return make_response(200, build_tar_gz(self._archive_files(path)), url)
        if path.endswith("zip"):
            return make_response(200, build_zip(self._archive_files(path)), url)
        return make_response(404, b"404 page not found\n", url)

    @staticmethod
    def _archive_files(path: str) -> Dict[str, bytes]:
        file_name = posixpath.basename(path).split("_")[0]
        root = posixpath.basename(posixpath.dirname(posixpath.dirname(path)))
        if file_name == "go-ipfs":
            file_name = "ipfs"
        return {f"{root}/{exe_name(file_name)}": FAKE_DATA}


@pytest.fixture
def fake_gateway():
    return FakeGateway()


@pytest.fixture
def mock_session(fake_gateway):
    session = MagicMock(spec=requests.Session)
    session.get.side_effect = fake_gateway
    return session


@pytest.fixture
def http_fetcher(mock_session):
    fetcher = HttpFetcher(gateway=GATEWAY_URL, session=mock_session)
    yield fetcher
    fetcher.close()
