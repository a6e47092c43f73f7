import os
import sys
from typing import Optional

from ..config import Settings, settings as default_settings
from .base import HostPlatform
from .local import DirectoryChooser, LocalHostPlatform


def running_on_android() -> bool:
    return sys.platform == "android" or "ANDROID_ARGUMENT" in os.environ


def get_host_platform(settings: Optional[Settings] = None) -> HostPlatform:
    """Build the host platform named by ``HOST_PLATFORM``"""
    settings = settings or default_settings
    kind = settings.HOST_PLATFORM
    if kind == "auto":
        kind = "android" if running_on_android() else "local"

    if kind == "android":
        from .android import AndroidHostPlatform
        return AndroidHostPlatform()
    if kind == "local":
        return LocalHostPlatform(settings)
    raise ValueError(f"Unknown HOST_PLATFORM: {settings.HOST_PLATFORM!r}")


__all__ = [
    "DirectoryChooser",
    "HostPlatform",
    "LocalHostPlatform",
    "get_host_platform",
    "running_on_android",
]
