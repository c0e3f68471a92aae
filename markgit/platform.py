"""Cross-platform compatibility utilities for markgit."""

import platform
import subprocess
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
        self._is_windows = self._detect_platform() == PlatformType.WINDOWS

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

    Expands ``~`` and resolves symlinks so that two spellings of the same
    directory (for example ``/tmp`` and ``/private/tmp`` on macOS) compare equal.
    The path does not need to exist.

    Args:
        path: Path to normalize

    Returns:
        Normalized absolute Path object
    """
    if isinstance(path, str):
        path = Path(path)

    return path.expanduser().resolve()


def get_platform_specific_defaults() -> Dict[str, Any]:
    """
    Get platform-specific configuration defaults.

    Returns:
        Dictionary of platform-specific defaults
    """
    platform_info = get_platform_info()

    defaults = {
        'log_level': "INFO",
        'remote_name': "origin",
        'lock_timeout': 30.0,
        'git_executable': get_git_executable(),
    }

    if platform_info.is_windows:
        # Antivirus scanners hold index.lock longer on Windows
        defaults.update({
            'lock_timeout': 60.0,
        })

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


def validate_git_availability(git_cmd: Optional[str] = None) -> tuple[bool, Optional[str]]:
    """
    Validate that Git is available on the current platform.

    Args:
        git_cmd: Executable to check, defaults to the platform executable name

    Returns:
        Tuple of (is_available, error_message)
    """
    git_cmd = git_cmd or get_git_executable()

    try:
        result = subprocess.run(
            [git_cmd, "--version"],
            capture_output=True,
            text=True,
            timeout=10
        )

        if result.returncode == 0:
            return True, None
        else:
            return False, f"Git command failed: {result.stderr}"

    except FileNotFoundError:
        return False, f"Git executable '{git_cmd}' not found"
    except subprocess.TimeoutExpired:
        return False, "Git command timed out"
    except OSError as e:
        return False, f"Error checking Git availability: {e}"
