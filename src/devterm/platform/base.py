"""Abstract base class for the development platform façade.

The terminal control surface never opens emulators, talks to the account
service or restarts the bundler itself. It calls these operations and
reacts to their results, so any platform SDK can be plugged in by
implementing this interface.
"""

from __future__ import annotations

import asyncio
import logging
import webbrowser
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

from devterm.domain.models import HostType, OpenResult, PackagerInfo, ProjectSettings

logger = logging.getLogger(__name__)

OPEN_DEVTOOLS_AT_STARTUP = "openDevToolsAtStartup"
SEND_TO = "sendTo"


class DevPlatform(ABC):
    """Operations of the development platform consumed by the router.

    Every method is a suspension point. Failures of remote operations are
    raised as PlatformError; failures reading or writing persisted
    settings are raised as SettingsError.
    """

    # -- project settings -------------------------------------------------

    @abstractmethod
    async def read_project_settings(self, project_dir: Path) -> ProjectSettings:
        ...

    @abstractmethod
    async def write_project_settings(self, project_dir: Path, *, dev: bool, minify: bool) -> None:
        ...

    @abstractmethod
    async def read_packager_info(self, project_dir: Path) -> PackagerInfo:
        ...

    # -- user settings ----------------------------------------------------

    @abstractmethod
    async def get_setting(self, key: str, default: Any = None) -> Any:
        ...

    @abstractmethod
    async def set_setting(self, key: str, value: Any) -> None:
        ...

    # -- urls -------------------------------------------------------------

    @abstractmethod
    async def construct_shareable_url(
        self, project_dir: Path, host_type: HostType | None = None
    ) -> str:
        """Build the URL a device uses to load the project.

        Args:
            project_dir: The project being served.
            host_type: Address family to use. None means the project's
                       configured host type.
        """
        ...

    # -- account ----------------------------------------------------------

    @abstractmethod
    async def get_current_username(self) -> str | None:
        ...

    @abstractmethod
    async def get_session(self) -> str | None:
        """Return the session token, or None when signed out."""
        ...

    @abstractmethod
    async def logout(self) -> None:
        ...

    @abstractmethod
    async def interactive_login(self) -> str:
        """Ask the user for credentials on the terminal and sign in.

        The terminal is handed over in cooked mode for the duration.

        Returns:
            The signed-in username.

        Raises:
            PlatformError: If signing in fails or is aborted.
        """
        ...

    # -- devices ----------------------------------------------------------

    @abstractmethod
    async def open_on_android(self, project_dir: Path) -> OpenResult:
        ...

    @abstractmethod
    async def open_on_ios_simulator(self, project_dir: Path) -> OpenResult:
        ...

    # -- sharing and bundler ----------------------------------------------

    @abstractmethod
    async def send_link(self, recipient: str, url: str) -> None:
        """Send ``url`` to an email address or phone number.

        Raises:
            PlatformError: If the link could not be sent.
        """
        ...

    @abstractmethod
    async def restart_bundler(self, project_dir: Path, *, reset: bool = False) -> None:
        """Restart the bundler, optionally clearing its cache.

        Callers run this as a detached task and do not consume a result.
        """
        ...

    async def open_url_in_browser(self, url: str) -> None:
        """Open ``url`` in the system's default browser."""
        loop = asyncio.get_running_loop()
        opened = await loop.run_in_executor(None, webbrowser.open, url)
        if not opened:
            raise PlatformError(f"No browser available to open {url}", operation="open_url")
        logger.info("Opened %s in the browser", url)


class PlatformError(Exception):
    """Raised when a platform operation fails."""

    def __init__(self, message: str, operation: str = "") -> None:
        super().__init__(message)
        self.operation = operation


class SettingsError(Exception):
    """Raised when persisted settings cannot be read or written."""

    def __init__(self, message: str, path: Path | None = None) -> None:
        super().__init__(message)
        self.path = path
