"""
Core Interfaces for the distfetch Download Subsystem

This module defines the Fetcher capability and the byte stream it returns.
Fetchers resolve paths relative to a distribution root; the concrete
implementations live in `distfetch.download.fetchers`.
"""

from abc import ABC, abstractmethod
from typing import Iterator, Optional

import requests

from distfetch.constants import DEFAULT_CHUNK_SIZE
from distfetch.exceptions import FetchCancelledError, FetchLimitError, NetworkError

from .cancel import CancelToken


class FetchStream:
    """
    Readable body of a successful fetch.

    Wraps a streamed `requests.Response`. The stream must be closed by the
    caller; use it as a context manager so the connection is released on every
    exit path, including read errors. Every chunk read checks the cancel token,
    and the fetcher's size limit is enforced while reading.
    """

    def __init__(
        self,
        response: requests.Response,
        url: str,
        limit: int = 0,
        cancel_token: Optional[CancelToken] = None,
    ) -> None:
        self._response = response
        self.url = url
        self._limit = limit
        self._token = cancel_token
        self._closed = False
        self.bytes_read = 0
        if self._token is not None:
            self._token.add_callback(self._response.close)

    def __enter__(self) -> "FetchStream":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    @property
    def closed(self) -> bool:
        return self._closed

    def _check_cancelled(self) -> None:
        if self._token is not None:
            self._token.raise_if_cancelled()

    def iter_chunks(self, chunk_size: int = DEFAULT_CHUNK_SIZE) -> Iterator[bytes]:
        """Yield the body in chunks of at most `chunk_size` bytes."""
        self._check_cancelled()
        try:
            for chunk in self._response.iter_content(chunk_size=chunk_size):
                self._check_cancelled()
                if not chunk:
                    continue
                self.bytes_read += len(chunk)
                if self._limit and self.bytes_read > self._limit:
                    raise FetchLimitError(self._limit, url=self.url)
                yield chunk
        except (requests.RequestException, OSError, ValueError) as e:
            # Closing the response on cancel surfaces as an I/O error here
            if self._token is not None and self._token.cancelled:
                raise FetchCancelledError(self._token.reason) from e
            raise NetworkError(
                f"error reading response body from {self.url}",
                url=self.url,
                details=str(e),
            ) from e

    def read(self) -> bytes:
        return b"".join(self.iter_chunks())

    def read_text(self, encoding: str = "utf-8") -> str:
        return self.read().decode(encoding)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self._token is not None:
            self._token.remove_callback(self._response.close)
        self._response.close()


class Fetcher(ABC):
    """
    Abstract base class for fetchers.

    A Fetcher retrieves files published under a distribution path. Its
    configuration (distribution path, and for HTTP fetchers the gateway) is
    mutable and not internally synchronized: callers that reconfigure a
    fetcher while fetches are in flight must serialize that themselves.
    """

    @abstractmethod
    def fetch(
        self, file_path: str, cancel_token: Optional[CancelToken] = None
    ) -> FetchStream:
        """
        Fetch a file relative to the distribution path.

        Parameters:
            file_path (str): Path below the distribution root, e.g. `kubo/versions`.
            cancel_token (Optional[CancelToken]): Token that aborts the request and any read of the returned stream.

        Returns:
            FetchStream: Open stream over the file contents; the caller closes it.

        Raises:
            NotFoundError: The file does not exist at the distribution point.
            HTTPError: The gateway answered with another non-success status.
            NetworkError: The request failed in transport.
            FetchCancelledError: `cancel_token` was cancelled.
        """

    @property
    @abstractmethod
    def dist_path(self) -> str:
        """The distribution path this fetcher resolves files against."""

    @abstractmethod
    def set_dist_path(self, dist_path: str) -> None:
        """
        Replace the distribution path used by subsequent fetches.

        Parameters:
            dist_path (str): New distribution root, e.g. `/ipns/dist.ipfs.tech`.
        """

    def close(self) -> None:
        """Release resources held by the fetcher."""

    def __enter__(self):
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
