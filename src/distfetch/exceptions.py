"""
Custom exceptions for distfetch.

This module defines domain-specific exceptions that let callers tell a missing
remote resource apart from a transport failure, a cancelled fetch, or a
destination collision.
"""

NO_BINARY_FOUND_MESSAGE = "no binary found in archive"


class DistFetchError(Exception):
    """
    Base exception for all distfetch errors.

    All custom exceptions in distfetch inherit from this class so that callers
    can catch every application-specific error at once.
    """

    def __init__(self, message: str, details: str | None = None) -> None:
        """
        Initialize the exception.

        Args:
            message: The primary error message.
            details: Optional additional context about the error.
        """
        self.message = message
        self.details = details
        super().__init__(message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} - {self.details}"
        return self.message


# =============================================================================
# Configuration Errors
# =============================================================================


class ConfigurationError(DistFetchError):
    """
    Exception raised when configuration is invalid or missing.

    This includes:
    - Empty fetcher chains
    - Download source lists with no usable entry
    - Invalid configuration values
    """

    pass


class ConfigFileError(ConfigurationError):
    """Exception raised when the configuration file cannot be read or parsed."""

    pass


# =============================================================================
# Validation Errors
# =============================================================================


class ValidationError(DistFetchError):
    """
    Exception raised when validation of a caller-supplied value fails.

    Attributes:
        field: The name of the field that failed validation.
        value: The value that failed validation.
    """

    def __init__(
        self,
        message: str,
        field: str | None = None,
        value: str | None = None,
        details: str | None = None,
    ) -> None:
        super().__init__(message, details)
        self.field = field
        self.value = value


class VersionError(ValidationError):
    """Exception raised when no usable version can be determined."""

    pass


# =============================================================================
# Download Errors
# =============================================================================


class DownloadError(DistFetchError):
    """
    Base exception for fetch-related errors.

    Attributes:
        url: The URL that was being fetched when the error occurred.
    """

    def __init__(
        self,
        message: str,
        url: str | None = None,
        details: str | None = None,
    ) -> None:
        super().__init__(message, details)
        self.url = url


class NetworkError(DownloadError):
    """
    Exception raised for transport failures.

    This includes:
    - Connection timeouts
    - DNS resolution failures
    - Connection resets while streaming a body
    - SSL/TLS errors
    """

    pass


class FetchLimitError(DownloadError):
    """Exception raised when a response body exceeds the fetcher's size limit."""

    def __init__(self, limit: int, url: str | None = None) -> None:
        super().__init__(f"fetch limit of {limit} bytes exceeded", url=url)
        self.limit = limit


class HTTPError(DownloadError):
    """
    Exception raised when the gateway answers with a non-success status.

    Attributes:
        status_code: The HTTP status code returned by the server.
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        url: str | None = None,
        details: str | None = None,
    ) -> None:
        super().__init__(message, url, details)
        self.status_code = status_code


class NotFoundError(HTTPError):
    """
    Exception raised when a manifest or archive is absent from the distribution.

    Attributes:
        path: The path, relative to the distribution root, that was requested.
    """

    def __init__(
        self,
        message: str,
        path: str,
        status_code: int = 404,
        url: str | None = None,
    ) -> None:
        super().__init__(message, status_code=status_code, url=url)
        self.path = path


class FetchCancelledError(DistFetchError):
    """Exception raised when a fetch is aborted through its cancel token."""

    def __init__(self, message: str = "fetch cancelled", details: str | None = None):
        super().__init__(message, details)


# =============================================================================
# File System Errors
# =============================================================================


class FileSystemError(DistFetchError):
    """
    Exception raised for destination directory problems.

    Attributes:
        path: The file path that caused the error.
    """

    def __init__(
        self,
        message: str,
        path: str | None = None,
        details: str | None = None,
    ) -> None:
        super().__init__(message, details)
        self.path = path


class AlreadyExistsError(FileSystemError):
    """Exception raised when the destination of a binary is already taken."""

    def __init__(self, path: str) -> None:
        super().__init__(f"{path}: file already exists", path=path)


# =============================================================================
# Archive Errors
# =============================================================================


class ArchiveError(DistFetchError):
    """
    Exception raised for archive-related errors.

    Attributes:
        archive_path: Path to the problematic archive.
    """

    def __init__(
        self,
        message: str,
        archive_path: str | None = None,
        details: str | None = None,
    ) -> None:
        super().__init__(message, details)
        self.archive_path = archive_path


class CorruptedArchiveError(ArchiveError):
    """Exception raised when an archive cannot be read."""

    pass


class NoBinaryInArchiveError(ArchiveError):
    """Exception raised when an archive holds no entry named like the binary."""

    def __init__(
        self, binary_name: str | None = None, archive_path: str | None = None
    ) -> None:
        super().__init__(NO_BINARY_FOUND_MESSAGE, archive_path=archive_path)
        self.binary_name = binary_name
