"""Shared test fixtures for the devterm test suite.

Provides a scriptable input source, a renderer writing to memory, and a
mock development platform with in-memory settings.
"""

from __future__ import annotations

import asyncio
import io
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest
from rich.console import Console

from devterm.console.renderer import ConsoleRenderer
from devterm.controller.router import CommandRouter
from devterm.domain.models import OpenResult, PackagerInfo, ProjectSettings
from devterm.platform.base import DevPlatform
from devterm.terminal.base import InputSource
from devterm.terminal.session import InputSession


# ---------------------------------------------------------------------------
# Input
# ---------------------------------------------------------------------------


class FakeInput(InputSource):
    """An InputSource driven by the test instead of a tty."""

    def __init__(self) -> None:
        super().__init__()
        self.reading = False
        self.attach_count = 0
        self.closed = False

    def attach(self, callback) -> None:
        self.attach_count += 1
        super().attach(callback)

    async def open(self) -> None:
        self._is_open = True

    async def close(self) -> None:
        self.reading = False
        self._is_open = False
        self.closed = True

    def resume(self) -> None:
        self.reading = True

    def pause(self) -> None:
        self.reading = False

    def press(self, *tokens: str) -> None:
        """Deliver tokens exactly as a decoded terminal read would."""
        for token in tokens:
            if self._callback is not None:
                self._callback(token)

    def type(self, data: str) -> None:
        """Deliver a raw chunk through the key decoder."""
        self._emit(data)


async def settle(rounds: int = 10) -> None:
    """Let pending tasks run up to their next real suspension point."""
    for _ in range(rounds):
        await asyncio.sleep(0)


@pytest.fixture
def fake_input() -> FakeInput:
    return FakeInput()


@pytest.fixture
def input_session(fake_input: FakeInput) -> InputSession:
    return InputSession(fake_input)


# ---------------------------------------------------------------------------
# Output
# ---------------------------------------------------------------------------


@pytest.fixture
def output() -> io.StringIO:
    return io.StringIO()


@pytest.fixture
def renderer(output: io.StringIO) -> ConsoleRenderer:
    """A renderer writing plain text (no colors) to ``output``."""
    console = Console(file=output, width=100, color_system=None, force_terminal=False)
    return ConsoleRenderer(console=console, platform="linux", show_qr_code=False)


# ---------------------------------------------------------------------------
# Platform
# ---------------------------------------------------------------------------


@pytest.fixture
def user_settings() -> dict[str, Any]:
    return {}


@pytest.fixture
def project_settings() -> dict[str, ProjectSettings]:
    return {"current": ProjectSettings(dev=False, minify=True)}


@pytest.fixture
def mock_platform(
    user_settings: dict[str, Any],
    project_settings: dict[str, ProjectSettings],
) -> AsyncMock:
    """A mock DevPlatform whose settings live in plain dicts."""
    platform = AsyncMock(spec=DevPlatform)

    async def read_project_settings(project_dir: Path) -> ProjectSettings:
        return project_settings["current"]

    async def write_project_settings(project_dir: Path, *, dev: bool, minify: bool) -> None:
        project_settings["current"] = project_settings["current"].model_copy(
            update={"dev": dev, "minify": minify}
        )

    async def get_setting(key: str, default: Any = None) -> Any:
        return user_settings.get(key, default)

    async def set_setting(key: str, value: Any) -> None:
        user_settings[key] = value

    platform.read_project_settings.side_effect = read_project_settings
    platform.write_project_settings.side_effect = write_project_settings
    platform.get_setting.side_effect = get_setting
    platform.set_setting.side_effect = set_setting
    platform.read_packager_info.return_value = PackagerInfo(packager_port=8081, dev_tools_port=19002)
    platform.construct_shareable_url.return_value = "exp://192.168.1.5:8081"
    platform.get_current_username.return_value = None
    platform.get_session.return_value = None
    platform.open_on_android.return_value = OpenResult(success=True)
    platform.open_on_ios_simulator.return_value = OpenResult(success=True)
    return platform


@pytest.fixture
def on_interrupt() -> MagicMock:
    return MagicMock()


@pytest.fixture
def router(
    tmp_path: Path,
    mock_platform: AsyncMock,
    renderer: ConsoleRenderer,
    input_session: InputSession,
    on_interrupt: MagicMock,
) -> CommandRouter:
    return CommandRouter(
        project_dir=tmp_path,
        platform=mock_platform,
        renderer=renderer,
        input_session=input_session,
        on_interrupt=on_interrupt,
    )
