"""Development platform façade for devterm.

Public API:
    DevPlatform -- Abstract interface consumed by the command router
    LocalDevPlatform -- Files, device launchers and HTTP for a local project
"""

from devterm.platform.base import (
    OPEN_DEVTOOLS_AT_STARTUP,
    SEND_TO,
    DevPlatform,
    PlatformError,
    SettingsError,
)

__all__ = [
    "OPEN_DEVTOOLS_AT_STARTUP",
    "SEND_TO",
    "DevPlatform",
    "LocalDevPlatform",
    "PlatformError",
    "SettingsError",
]


def __getattr__(name: str) -> type:
    """Lazy import for the implementation that requires httpx."""
    if name == "LocalDevPlatform":
        from devterm.platform.local import LocalDevPlatform
        return LocalDevPlatform
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
