"""
Fetcher implementations for the distfetch Download Subsystem

HttpFetcher reads files from a distribution path through one HTTP(S) gateway.
MultiFetcher tries several fetchers in order until one succeeds. The helpers at
the bottom resolve the distribution path and assemble fetcher chains from a
list of download sources.
"""

import os
import posixpath
from typing import Iterable, List, Optional, Sequence, Tuple
from urllib.parse import urlparse

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry  # type: ignore

from distfetch.constants import (
    DEFAULT_BACKOFF_FACTOR,
    DEFAULT_CONNECT_RETRIES,
    DEFAULT_DOWNLOAD_SOURCES,
    DEFAULT_FETCH_LIMIT,
    DEFAULT_GATEWAY_URL,
    DEFAULT_REQUEST_TIMEOUT,
    DIST_PATH_ENV_VAR,
    ERROR_BODY_EXCERPT_BYTES,
    IPNS_DIST_PATH,
    SOURCE_HTTPS,
    SOURCE_IPFS,
)
from distfetch.exceptions import (
    ConfigurationError,
    FetchCancelledError,
    HTTPError,
    NetworkError,
    NotFoundError,
    ValidationError,
)
from distfetch.log_utils import logger
from distfetch.utils import get_user_agent

from .cancel import CancelToken
from .interfaces import Fetcher, FetchStream


def get_dist_path_env(default: str = "") -> str:
    """
    Resolve the distribution path.

    Returns, in priority order: the value of the IPFS_DIST_PATH environment
    variable if set and non-empty, `default` if non-empty, or the built-in
    IPNS distribution path.
    """
    env_path = os.environ.get(DIST_PATH_ENV_VAR, "")
    if env_path:
        return env_path
    if default:
        return default
    return IPNS_DIST_PATH


def _validate_gateway(url: str) -> str:
    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ValidationError(
            "Invalid gateway URL",
            field="gateway",
            value=url,
            details="expected an absolute http(s) URL",
        )
    return url.rstrip("/")


class HttpFetcher(Fetcher):
    """
    Fetcher backed by a single HTTP(S) gateway.

    Files are requested from `gateway + dist_path + file_path`. The fetcher owns
    a `requests.Session`; close it (or use the fetcher as a context manager) when
    done.

    Parameters:
        dist_path (str): Distribution root; empty resolves through get_dist_path_env().
        gateway (str): Gateway base URL; empty selects the public default gateway.
        user_agent (str): User-Agent header value; empty selects `distfetch/<version>`.
        fetch_limit (Optional[int]): Maximum body size in bytes; `0` disables the limit.
        timeout (Optional[float]): Request timeout in seconds.
        retries (int): Transport-level retries for connection errors.
        session (Optional[requests.Session]): Session to use instead of a new one.
    """

    def __init__(
        self,
        dist_path: str = "",
        gateway: str = "",
        user_agent: str = "",
        fetch_limit: Optional[int] = None,
        timeout: Optional[float] = None,
        retries: int = DEFAULT_CONNECT_RETRIES,
        session: Optional[requests.Session] = None,
    ) -> None:
        self._dist_path = get_dist_path_env(dist_path)
        self._gateway = _validate_gateway(gateway or DEFAULT_GATEWAY_URL)
        self.user_agent = user_agent or get_user_agent()
        self.fetch_limit = DEFAULT_FETCH_LIMIT if fetch_limit is None else fetch_limit
        self.timeout = DEFAULT_REQUEST_TIMEOUT if timeout is None else timeout
        self._owns_session = session is None
        self._session = session if session is not None else self._new_session(retries)

    @staticmethod
    def _new_session(retries: int) -> requests.Session:
        session = requests.Session()
        # Status codes are never retried; a 404 must surface immediately
        retry_strategy: Retry = Retry(
            total=retries,
            connect=retries,
            read=retries,
            status=0,
            backoff_factor=DEFAULT_BACKOFF_FACTOR,
            allowed_methods=frozenset({"GET"}),
            raise_on_status=False,
        )
        adapter = HTTPAdapter(max_retries=retry_strategy)
        session.mount("https://", adapter)
        session.mount("http://", adapter)
        return session

    @property
    def gateway(self) -> str:
        return self._gateway

    def set_gateway(self, gateway: str) -> None:
        """
        Replace the gateway URL.

        Raises:
            ValidationError: `gateway` is not an absolute http(s) URL. The current gateway is kept.
        """
        self._gateway = _validate_gateway(gateway)

    @property
    def dist_path(self) -> str:
        return self._dist_path

    def set_dist_path(self, dist_path: str) -> None:
        self._dist_path = dist_path

    def url_for(self, file_path: str) -> str:
        """
        Absolute URL of `file_path` under the current gateway and dist path.

        Raises:
            ValidationError: `file_path` contains a `..` segment.
        """
        if ".." in file_path.split("/"):
            raise ValidationError(
                "Invalid file path",
                field="file_path",
                value=file_path,
                details="'..' segments are not allowed",
            )
        joined = posixpath.normpath(
            posixpath.join("/", self._dist_path.strip("/"), file_path.lstrip("/"))
        )
        return self._gateway + joined

    def fetch(
        self, file_path: str, cancel_token: Optional[CancelToken] = None
    ) -> FetchStream:
        url = self.url_for(file_path)
        if cancel_token is not None:
            cancel_token.raise_if_cancelled()

        timeout = self.timeout
        if cancel_token is not None and cancel_token.remaining() is not None:
            timeout = min(timeout, cancel_token.remaining() or 0.001)

        logger.debug(f"Fetching {url}")
        try:
            response = self._session.get(
                url,
                headers={"User-Agent": self.user_agent},
                stream=True,
                timeout=timeout,
            )
        except requests.RequestException as e:
            if cancel_token is not None and cancel_token.cancelled:
                raise FetchCancelledError(cancel_token.reason) from e
            raise NetworkError(
                f"GET {url} failed", url=url, details=str(e)
            ) from e

        logger.debug(
            f"Received HTTP response status code: {response.status_code} for URL: {url}"
        )
        if response.status_code != 200:
            try:
                excerpt = self._error_excerpt(response)
            finally:
                response.close()
            message = (
                f"GET {url} error: {response.status_code} {response.reason}: {excerpt}"
            )
            if response.status_code == 404:
                raise NotFoundError(message, path=file_path, url=url)
            raise HTTPError(message, status_code=response.status_code, url=url)

        stream = FetchStream(
            response, url, limit=self.fetch_limit, cancel_token=cancel_token
        )
        if cancel_token is not None and cancel_token.cancelled:
            stream.close()
            raise FetchCancelledError(cancel_token.reason)
        return stream

    @staticmethod
    def _error_excerpt(response: requests.Response) -> str:
        try:
            body = next(response.iter_content(ERROR_BODY_EXCERPT_BYTES), b"")
        except (requests.RequestException, OSError, ValueError):
            return ""
        if isinstance(body, bytes):
            body = body.decode("utf-8", errors="replace")
        return body.strip()

    def close(self) -> None:
        if self._owns_session:
            self._session.close()

    def __repr__(self) -> str:
        return f"HttpFetcher(gateway={self._gateway!r}, dist_path={self._dist_path!r})"


class MultiFetcher(Fetcher):
    """
    Fetcher that tries an ordered list of fetchers until one succeeds.

    When every fetcher fails, the last failure is raised. A cancelled fetch
    stops the chain at once.
    """

    def __init__(self, *fetchers: Fetcher) -> None:
        if not fetchers:
            raise ConfigurationError("MultiFetcher requires at least one fetcher")
        self._fetchers: Tuple[Fetcher, ...] = tuple(fetchers)

    @property
    def fetchers(self) -> Tuple[Fetcher, ...]:
        return self._fetchers

    @property
    def dist_path(self) -> str:
        return self._fetchers[0].dist_path

    def set_dist_path(self, dist_path: str) -> None:
        """
        Set the distribution path on every child, in order.

        An exception from a child stops propagation; children before it keep
        the new path.
        """
        for fetcher in self._fetchers:
            fetcher.set_dist_path(dist_path)

    def fetch(
        self, file_path: str, cancel_token: Optional[CancelToken] = None
    ) -> FetchStream:
        errors: List[Exception] = []
        for fetcher in self._fetchers:
            if cancel_token is not None:
                cancel_token.raise_if_cancelled()
            try:
                return fetcher.fetch(file_path, cancel_token=cancel_token)
            except FetchCancelledError:
                raise
            except Exception as e:
                logger.warning(f"Error fetching {file_path} via {fetcher!r}: {e}")
                errors.append(e)
        raise errors[-1]

    def close(self) -> None:
        for fetcher in self._fetchers:
            fetcher.close()

    def __repr__(self) -> str:
        return f"MultiFetcher({', '.join(repr(f) for f in self._fetchers)})"


def _normalize_sources(download_sources: Optional[Iterable[str]]) -> List[str]:
    sources: List[str] = []
    for source in download_sources or ():
        source = str(source).strip()
        if not source:
            continue
        if source.upper() in (SOURCE_HTTPS, SOURCE_IPFS):
            source = source.upper()
        if source not in sources:
            sources.append(source)
    return sources or list(DEFAULT_DOWNLOAD_SOURCES)


def build_fetcher(
    download_sources: Optional[Sequence[str]] = None,
    dist_path: str = "",
    **http_kwargs,
) -> Fetcher:
    """
    Build the fetcher chain for a list of download sources.

    Each source is `HTTPS` (the default public gateway), `IPFS` (an in-process
    IPFS node, not available in this package and skipped), or a custom gateway
    URL. An empty list means `["HTTPS"]`; duplicates are ignored.

    Parameters:
        download_sources (Optional[Sequence[str]]): Sources in preference order.
        dist_path (str): Distribution path default, resolved through get_dist_path_env().
        **http_kwargs: Extra keyword arguments for every HttpFetcher.

    Returns:
        Fetcher: A single HttpFetcher, or a MultiFetcher when several sources remain.

    Raises:
        ConfigurationError: No usable source remains.
        ValidationError: A custom gateway URL is malformed.
    """
    resolved_path = get_dist_path_env(dist_path)
    fetchers: List[Fetcher] = []
    for source in _normalize_sources(download_sources):
        if source == SOURCE_IPFS:
            logger.warning("IPFS download source is not supported here; skipping")
            continue
        gateway = "" if source == SOURCE_HTTPS else source
        fetchers.append(
            HttpFetcher(dist_path=resolved_path, gateway=gateway, **http_kwargs)
        )

    if not fetchers:
        raise ConfigurationError(
            "no usable download sources",
            details=", ".join(_normalize_sources(download_sources)),
        )
    if len(fetchers) == 1:
        return fetchers[0]
    return MultiFetcher(*fetchers)
