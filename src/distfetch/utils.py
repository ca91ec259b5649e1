# src/distfetch/utils.py
import importlib.metadata
import os
import platform
import posixpath
import tempfile
from typing import Optional, Tuple

from distfetch.constants import (
    ARCHIVE_TYPE_TAR_GZ,
    ARCHIVE_TYPE_ZIP,
    BINARY_NAME_ALIASES,
    GO_ARCH_NAMES,
    GO_OS_NAMES,
    TEMP_DIR_ENV_VARS,
    WINDOWS_EXE_EXTENSION,
)

# Cache for the User-Agent string to avoid repeated metadata lookups
_USER_AGENT_CACHE = None


def get_user_agent() -> str:
    """
    Get the User-Agent string used for HTTP requests.

    Returns:
        The string `distfetch/{version}`, where `{version}` is the installed package version or `unknown` if the version cannot be determined.
    """
    global _USER_AGENT_CACHE

    if _USER_AGENT_CACHE is None:
        try:
            app_version = importlib.metadata.version("distfetch")
        except importlib.metadata.PackageNotFoundError:
            app_version = "unknown"

        _USER_AGENT_CACHE = f"distfetch/{app_version}"

    return _USER_AGENT_CACHE


def is_windows() -> bool:
    return platform.system() == "Windows"


def platform_tag() -> str:
    """
    Return the `<os>-<arch>` tag used in release archive names.

    Names follow the Go toolchain convention the distribution uses
    (e.g. `linux-amd64`, `darwin-arm64`, `windows-386`). Unknown values are
    lower-cased and passed through.
    """
    system = platform.system().lower()
    machine = platform.machine().lower()
    return f"{GO_OS_NAMES.get(system, system)}-{GO_ARCH_NAMES.get(machine, machine)}"


def archive_type() -> str:
    """Archive type published for this platform: `zip` on Windows, else `tar.gz`."""
    return ARCHIVE_TYPE_ZIP if is_windows() else ARCHIVE_TYPE_TAR_GZ


def exe_name(name: str) -> str:
    """Append the executable extension the current platform requires."""
    if is_windows() and not name.lower().endswith(WINDOWS_EXE_EXTENSION):
        return name + WINDOWS_EXE_EXTENSION
    return name


def dist_base_name(dist: str) -> str:
    """Last path segment of a (possibly nested) dist name."""
    return posixpath.basename(dist.rstrip("/"))


def resolve_binary_name(dist: str, bin_name: Optional[str] = None) -> str:
    """
    Name of the binary expected inside a dist's archive.

    Uses `bin_name` when given, else the base name of `dist`. The alias table
    maps packages that ship a differently named binary (go-ipfs holds `ipfs`).
    The platform executable extension is applied last.
    """
    name = posixpath.basename(bin_name) if bin_name else dist_base_name(dist)
    name = BINARY_NAME_ALIASES.get(name, name)
    return exe_name(name)


def archive_path(dist: str, version: str, arc_type: str) -> Tuple[str, str]:
    """
    Build the dist-relative path and file name of a release archive.

    Returns:
        Tuple[str, str]: (`<dist>/<version>/<file name>`, `<file name>`), where the
        file name is `<name>_<version>_<platform>.<arc_type>`.
    """
    file_name = f"{dist_base_name(dist)}_{version}_{platform_tag()}.{arc_type}"
    return posixpath.join(dist, version, file_name), file_name


def resolve_temp_root() -> str:
    """
    Directory under which staging directories are created.

    The standard temp-directory environment variables are consulted on every
    call, in tempfile's order, so changes made after import take effect.
    """
    for env_var in TEMP_DIR_ENV_VARS:
        value = os.environ.get(env_var)
        if value:
            return value
    return tempfile.gettempdir()
