"""Cross-platform helpers for reposync."""

import os
import platform
import sys
from enum import Enum
from pathlib import Path
from typing import Optional, Dict, Any, Union


class PlatformType(Enum):
    """Supported platform types."""
    WINDOWS = "windows"
    MACOS = "macos"
    LINUX = "linux"
    UNKNOWN = "unknown"


class PlatformInfo:
    """Platform information and utilities."""

    def __init__(self):
        """Initialize platform detection."""
        self._platform_type = self._detect_platform()
        self._is_windows = self._platform_type == PlatformType.WINDOWS

    def _detect_platform(self) -> PlatformType:
        """Detect the current platform."""
        system = platform.system().lower()

        if system == "windows":
            return PlatformType.WINDOWS
        elif system == "darwin":
            return PlatformType.MACOS
        elif system == "linux":
            return PlatformType.LINUX
        else:
            return PlatformType.UNKNOWN

    @property
    def is_windows(self) -> bool:
        """Check if running on Windows."""
        return self._is_windows


# Global platform info instance
_platform_info: Optional[PlatformInfo] = None


def get_platform_info() -> PlatformInfo:
    """Get the global platform info instance."""
    global _platform_info
    if _platform_info is None:
        _platform_info = PlatformInfo()
    return _platform_info


def normalize_path(path: Union[str, Path]) -> Path:
    """
    Normalize a path for the current platform.

    Args:
        path: Path to normalize

    Returns:
        Absolute Path with ``~`` expanded and ``..`` segments resolved
    """
    if isinstance(path, str):
        path = Path(path)

    # Expand user home directory (~) first, then resolve to absolute path
    return path.expanduser().resolve()


def get_default_target_path() -> Path:
    """
    Per-user default location of the working copy.

    Every user sharing one installation and one deploy key gets an
    independent checkout under their own home directory.
    """
    return Path.home() / "reposync" / "checkout"


def get_default_credential_path() -> Path:
    """Location of the shared deploy key when none is configured."""
    if get_platform_info().is_windows:
        program_data = os.environ.get("PROGRAMDATA", r"C:\ProgramData")
        return Path(program_data) / "reposync" / "deploy_key"
    return Path("/etc/reposync/deploy_key")


def get_platform_specific_defaults() -> Dict[str, Any]:
    """
    Get platform-specific configuration defaults.

    Returns:
        Dictionary of platform-specific defaults
    """
    platform_info = get_platform_info()

    defaults = {
        'remote_url': "git@github.com:your-org/private-repo.git",
        'branch': "main",
        'target_path': get_default_target_path(),
        'credential_path': get_default_credential_path(),
        'log_level': "INFO",
        'lock_timeout': 30.0,
        # Console windows opened by a double-click close as soon as we exit
        'pause_on_error': platform_info.is_windows,
    }

    return defaults


def get_git_executable() -> str:
    """
    Get the Git executable name for the current platform.

    Returns:
        Git executable name
    """
    platform_info = get_platform_info()

    if platform_info.is_windows:
        return "git.exe"
    else:
        return "git"


def stdin_is_interactive() -> bool:
    """Return True when an operator can answer a prompt on stdin."""
    try:
        return sys.stdin is not None and sys.stdin.isatty()
    except (AttributeError, ValueError):
        return False
