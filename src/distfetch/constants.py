"""
Constants and configuration values for distfetch.

This module contains all hardcoded values, URLs, timeouts, and other constants
used throughout the application.
"""

# Distribution defaults
DEFAULT_GATEWAY_URL = "https://ipfs.io"
IPNS_DIST_PATH = "/ipns/dist.ipfs.tech"
DIST_PATH_ENV_VAR = "IPFS_DIST_PATH"
VERSIONS_FILE_NAME = "versions"
VERSION_TAG_PREFIX = "v"
LATEST_VERSION = "latest"

# Download sources understood by build_fetcher
SOURCE_HTTPS = "HTTPS"
SOURCE_IPFS = "IPFS"
DEFAULT_DOWNLOAD_SOURCES = (SOURCE_HTTPS,)

# Packages whose archive holds a binary under a different name
BINARY_NAME_ALIASES = {
    "go-ipfs": "ipfs",
}

# Archive types
TAR_GZ_EXTENSION = ".tar.gz"
TGZ_EXTENSION = ".tgz"
ZIP_EXTENSION = ".zip"
ARCHIVE_TYPE_TAR_GZ = "tar.gz"
ARCHIVE_TYPE_ZIP = "zip"
WINDOWS_EXE_EXTENSION = ".exe"

# Network timeouts and limits
DEFAULT_REQUEST_TIMEOUT = 30
DEFAULT_CONNECT_RETRIES = 0
DEFAULT_BACKOFF_FACTOR = 0.3
DEFAULT_CHUNK_SIZE = 8192
DEFAULT_FETCH_LIMIT = 512 * 1024 * 1024  # 512 MiB
ERROR_BODY_EXCERPT_BYTES = 512

EXECUTABLE_PERMISSIONS = 0o755

# Go-style names for platform.system() / platform.machine()
GO_OS_NAMES = {
    "linux": "linux",
    "darwin": "darwin",
    "windows": "windows",
    "freebsd": "freebsd",
    "openbsd": "openbsd",
    "netbsd": "netbsd",
}
GO_ARCH_NAMES = {
    "x86_64": "amd64",
    "amd64": "amd64",
    "aarch64": "arm64",
    "arm64": "arm64",
    "i386": "386",
    "i686": "386",
    "x86": "386",
    "armv6l": "arm",
    "armv7l": "arm",
    "ppc64le": "ppc64le",
    "riscv64": "riscv64",
}

# Configuration
APP_NAME = "distfetch"
CONFIG_FILE_NAME = "distfetch.yaml"

# Logging configuration
LOGGER_NAME = "distfetch"
LOG_FILE_NAME = "distfetch.log"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
INFO_LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"
DEBUG_LOG_FORMAT = "%(asctime)s - %(levelname)s - %(name)s: %(message)s"
LOG_FILE_MAX_BYTES = 10 * 1024 * 1024  # 10 MB
LOG_FILE_BACKUP_COUNT = 5

# Environment variable names
LOG_LEVEL_ENV_VAR = "DISTFETCH_LOG_LEVEL"
TEMP_DIR_ENV_VARS = ("TMPDIR", "TEMP", "TMP")
