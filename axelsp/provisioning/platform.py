"""Host platform detection and artifact naming."""

import enum
import functools
import sys
from typing import Dict


class PlatformId(enum.Enum):
    """Operating system families that ship a distinct axels build."""

    WINDOWS = "windows"
    MACOS = "macos"
    LINUX = "linux"


# Name the binary is installed under when users put it on PATH themselves.
_PATH_BINARY_NAMES: Dict[PlatformId, str] = {
    PlatformId.WINDOWS: "axels.exe",
    PlatformId.MACOS: "axels",
    PlatformId.LINUX: "axels",
}

# Name of the asset attached to each GitHub release.
_RELEASE_ASSET_NAMES: Dict[PlatformId, str] = {
    PlatformId.WINDOWS: "axels.exe",
    PlatformId.MACOS: "axels-macos",
    PlatformId.LINUX: "axels-linux",
}


def resolve_platform(system: str = sys.platform) -> PlatformId:
    """Map a ``sys.platform`` value to a platform identifier.

    Args:
        system: Platform string as reported by ``sys.platform``.

    Returns:
        The platform identifier. Anything that is neither Windows nor macOS is
        treated as Linux.
    """
    if system.startswith(("win32", "cygwin")):
        return PlatformId.WINDOWS
    if system == "darwin":
        return PlatformId.MACOS
    return PlatformId.LINUX


@functools.lru_cache(maxsize=None)
def current_platform() -> PlatformId:
    """Return the platform of the running interpreter."""
    return resolve_platform(sys.platform)


def path_binary_name(platform: PlatformId) -> str:
    """Get the executable name to look up on PATH.

    Args:
        platform: Target platform.

    Returns:
        The executable file name.
    """
    return _PATH_BINARY_NAMES[platform]


def release_asset_name(platform: PlatformId) -> str:
    """Get the release asset name, which is also the cached file name.

    Args:
        platform: Target platform.

    Returns:
        The asset file name.
    """
    return _RELEASE_ASSET_NAMES[platform]
