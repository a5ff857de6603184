"""Tests for the command router."""

from __future__ import annotations

import asyncio
import io
from pathlib import Path
from typing import Any, AsyncIterator
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio

from conftest import FakeInput, settle
from devterm.controller.router import CommandRouter
from devterm.domain.models import HostType, ListeningMode, OpenResult, ProjectSettings
from devterm.platform.base import OPEN_DEVTOOLS_AT_STARTUP, SEND_TO, PlatformError, SettingsError
from devterm.terminal.keys import CTRL_C, CTRL_D, CTRL_L, ESCAPE, RETURN

HELP_LINE = "Press ? to show a list of all available commands."


def _reset(output: io.StringIO) -> None:
    output.seek(0)
    output.truncate(0)


async def _run_key(router: CommandRouter, fake_input: FakeInput, *tokens: str) -> None:
    fake_input.press(*tokens)
    await settle()
    await router.drain()
    await settle()


@pytest_asyncio.fixture
async def started(router: CommandRouter, output: io.StringIO) -> AsyncIterator[CommandRouter]:
    await router.start()
    _reset(output)
    yield router
    await router.stop()


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_start_listens_and_shows_server_info(
        self,
        router: CommandRouter,
        fake_input: FakeInput,
        mock_platform: AsyncMock,
        output: io.StringIO,
    ) -> None:
        await router.start()

        assert router.is_running
        assert router.mode == ListeningMode.RAW_COMMAND
        assert fake_input.reading
        assert "exp://192.168.1.5:8081" in output.getvalue()
        assert output.getvalue().count(HELP_LINE) == 1
        await router.stop()

    @pytest.mark.asyncio
    async def test_double_start_raises(self, started: CommandRouter) -> None:
        with pytest.raises(RuntimeError):
            await started.start()

    @pytest.mark.asyncio
    async def test_start_survives_missing_server(
        self,
        router: CommandRouter,
        mock_platform: AsyncMock,
        output: io.StringIO,
    ) -> None:
        mock_platform.construct_shareable_url.side_effect = PlatformError("Packager is not running")

        await router.start()

        assert "Packager is not running" in output.getvalue()
        assert HELP_LINE in output.getvalue()
        assert router.mode == ListeningMode.RAW_COMMAND
        await router.stop()

    @pytest.mark.asyncio
    async def test_stop_releases_input(self, router: CommandRouter, fake_input: FakeInput) -> None:
        await router.start()
        await router.stop()

        assert not router.is_running
        assert router.mode == ListeningMode.SUSPENDED
        assert fake_input.closed

    @pytest.mark.asyncio
    async def test_stop_cancels_running_handlers(
        self,
        router: CommandRouter,
        fake_input: FakeInput,
    ) -> None:
        await router.start()
        fake_input.press("e")
        await settle()
        assert router.pending == 1

        await router.stop()

        assert router.pending == 0
        assert router.mode == ListeningMode.SUSPENDED


class TestDispatch:
    @pytest.mark.asyncio
    async def test_unknown_key_is_ignored(
        self,
        started: CommandRouter,
        fake_input: FakeInput,
        output: io.StringIO,
    ) -> None:
        await _run_key(started, fake_input, "z", "\x1b[A")

        assert output.getvalue() == ""
        assert started.pending == 0
        assert started.mode == ListeningMode.RAW_COMMAND

    @pytest.mark.asyncio
    @pytest.mark.parametrize("key", [CTRL_C, CTRL_D])
    async def test_interrupt_keys(
        self,
        key: str,
        started: CommandRouter,
        fake_input: FakeInput,
        on_interrupt: MagicMock,
    ) -> None:
        fake_input.press(key)
        on_interrupt.assert_called_once_with()

    @pytest.mark.asyncio
    async def test_ctrl_l_clears(
        self,
        started: CommandRouter,
        fake_input: FakeInput,
        output: io.StringIO,
    ) -> None:
        await _run_key(started, fake_input, CTRL_L)
        assert output.getvalue() == "\x1b[2J\x1b[3J\x1b[H"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("key", ["a", "i", "d", "D", "p", "r", "R", "s"])
    async def test_help_printed_once_per_command(
        self,
        key: str,
        started: CommandRouter,
        fake_input: FakeInput,
        mock_platform: AsyncMock,
        output: io.StringIO,
    ) -> None:
        mock_platform.interactive_login.return_value = "jane"

        await _run_key(started, fake_input, key)

        assert output.getvalue().count(HELP_LINE) == 1
        assert started.mode == ListeningMode.RAW_COMMAND

    @pytest.mark.asyncio
    async def test_usage_prints_no_extra_help(
        self,
        started: CommandRouter,
        fake_input: FakeInput,
        output: io.StringIO,
    ) -> None:
        await _run_key(started, fake_input, "?")

        assert "Press a to run on Android device/emulator." in output.getvalue()
        assert HELP_LINE not in output.getvalue()

    @pytest.mark.asyncio
    async def test_connection_info_prints_help_once(
        self,
        started: CommandRouter,
        fake_input: FakeInput,
        output: io.StringIO,
    ) -> None:
        await _run_key(started, fake_input, "c")

        assert "exp://192.168.1.5:8081" in output.getvalue()
        assert output.getvalue().count(HELP_LINE) == 1

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "key,opener,announce",
        [
            ("a", "open_on_android", "Trying to open the project on Android..."),
            ("i", "open_on_ios_simulator", "Trying to open the project in iOS simulator..."),
        ],
    )
    async def test_failed_open_still_prints_help(
        self,
        key: str,
        opener: str,
        announce: str,
        started: CommandRouter,
        fake_input: FakeInput,
        mock_platform: AsyncMock,
        output: io.StringIO,
    ) -> None:
        getattr(mock_platform, opener).return_value = OpenResult(
            success=False, error="No device found."
        )

        await _run_key(started, fake_input, key)

        text = output.getvalue()
        assert announce in text
        assert "No device found." in text
        assert text.count(HELP_LINE) == 1

    @pytest.mark.asyncio
    async def test_failed_usage_prints_help(
        self,
        started: CommandRouter,
        fake_input: FakeInput,
        mock_platform: AsyncMock,
        output: io.StringIO,
    ) -> None:
        mock_platform.read_project_settings.side_effect = SettingsError("settings.json is not valid JSON")

        await _run_key(started, fake_input, "?")

        assert "settings.json is not valid JSON" in output.getvalue()
        assert output.getvalue().count(HELP_LINE) == 1

    @pytest.mark.asyncio
    async def test_failed_connection_info_prints_help(
        self,
        started: CommandRouter,
        fake_input: FakeInput,
        mock_platform: AsyncMock,
        output: io.StringIO,
    ) -> None:
        mock_platform.construct_shareable_url.side_effect = PlatformError("server not running")

        await _run_key(started, fake_input, "c")

        assert "server not running" in output.getvalue()
        assert output.getvalue().count(HELP_LINE) == 1

    @pytest.mark.asyncio
    async def test_keys_dispatch_while_command_pending(
        self,
        started: CommandRouter,
        fake_input: FakeInput,
        mock_platform: AsyncMock,
        output: io.StringIO,
    ) -> None:
        gate = asyncio.Event()

        async def slow_open(project_dir: Path) -> OpenResult:
            await gate.wait()
            return OpenResult(success=False, error="No device found.")

        mock_platform.open_on_android.side_effect = slow_open

        fake_input.press("a")
        await settle()
        fake_input.press("p")
        await settle()

        text = output.getvalue()
        assert started.pending == 1
        assert "Bundler is now running in development mode." in text
        assert "No device found." not in text
        assert text.count(HELP_LINE) == 1

        gate.set()
        await started.drain()

        text = output.getvalue()
        assert text.index("development mode") < text.index("No device found.")
        assert text.count(HELP_LINE) == 2
        assert started.mode == ListeningMode.RAW_COMMAND

    @pytest.mark.asyncio
    async def test_settings_failure_is_rendered(
        self,
        started: CommandRouter,
        fake_input: FakeInput,
        mock_platform: AsyncMock,
        output: io.StringIO,
    ) -> None:
        mock_platform.read_project_settings.side_effect = SettingsError("settings.json is not valid JSON")

        await _run_key(started, fake_input, "p")

        assert "settings.json is not valid JSON" in output.getvalue()
        assert output.getvalue().count(HELP_LINE) == 1
        assert started.mode == ListeningMode.RAW_COMMAND

    @pytest.mark.asyncio
    async def test_unexpected_error_is_rendered(
        self,
        started: CommandRouter,
        fake_input: FakeInput,
        mock_platform: AsyncMock,
        output: io.StringIO,
    ) -> None:
        mock_platform.get_session.side_effect = ValueError("boom")

        await _run_key(started, fake_input, "s")

        assert "Command failed: boom" in output.getvalue()
        assert started.mode == ListeningMode.RAW_COMMAND


class TestCommands:
    @pytest.mark.asyncio
    async def test_toggle_production_mode_round_trip(
        self,
        started: CommandRouter,
        fake_input: FakeInput,
        project_settings: dict[str, ProjectSettings],
        output: io.StringIO,
    ) -> None:
        await _run_key(started, fake_input, "p")
        assert project_settings["current"].dev is True
        assert project_settings["current"].minify is False
        assert "Bundler is now running in development mode." in output.getvalue()

        _reset(output)
        await _run_key(started, fake_input, "p")
        assert project_settings["current"].dev is False
        assert project_settings["current"].minify is True
        assert "Bundler is now running in production mode." in output.getvalue()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("key,reset", [("r", False), ("R", True)])
    async def test_restart_bundler(
        self,
        key: str,
        reset: bool,
        started: CommandRouter,
        fake_input: FakeInput,
        mock_platform: AsyncMock,
    ) -> None:
        await _run_key(started, fake_input, key)
        mock_platform.restart_bundler.assert_awaited_once_with(
            started.context.project_dir, reset=reset
        )

    @pytest.mark.asyncio
    async def test_open_devtools(
        self,
        started: CommandRouter,
        fake_input: FakeInput,
        mock_platform: AsyncMock,
        output: io.StringIO,
    ) -> None:
        await _run_key(started, fake_input, "d")

        mock_platform.open_url_in_browser.assert_awaited_once_with("http://localhost:19002")
        assert "Opening DevTools in the browser..." in output.getvalue()

    @pytest.mark.asyncio
    async def test_toggle_devtools_at_startup(
        self,
        started: CommandRouter,
        fake_input: FakeInput,
        user_settings: dict[str, Any],
        output: io.StringIO,
    ) -> None:
        await _run_key(started, fake_input, "D")
        assert user_settings[OPEN_DEVTOOLS_AT_STARTUP] is False
        assert "Automatically opening DevTools disabled." in output.getvalue()

        await _run_key(started, fake_input, "D")
        assert user_settings[OPEN_DEVTOOLS_AT_STARTUP] is True

    @pytest.mark.asyncio
    async def test_sign_out(
        self,
        started: CommandRouter,
        fake_input: FakeInput,
        mock_platform: AsyncMock,
        output: io.StringIO,
    ) -> None:
        mock_platform.get_session.return_value = "secret"

        await _run_key(started, fake_input, "s")

        mock_platform.logout.assert_awaited_once()
        mock_platform.interactive_login.assert_not_awaited()
        assert "Signed out." in output.getvalue()

    @pytest.mark.asyncio
    async def test_sign_in(
        self,
        started: CommandRouter,
        fake_input: FakeInput,
        mock_platform: AsyncMock,
        output: io.StringIO,
    ) -> None:
        mock_platform.interactive_login.return_value = "jane"

        await _run_key(started, fake_input, "s")

        assert "Signed in as @jane." in output.getvalue()
        assert started.mode == ListeningMode.RAW_COMMAND

    @pytest.mark.asyncio
    async def test_failed_sign_in_restores_raw_mode(
        self,
        started: CommandRouter,
        fake_input: FakeInput,
        mock_platform: AsyncMock,
        output: io.StringIO,
    ) -> None:
        mock_platform.interactive_login.side_effect = PlatformError("Invalid credentials")

        await _run_key(started, fake_input, "s")

        assert "Sign in failed: Invalid credentials" in output.getvalue()
        assert output.getvalue().count(HELP_LINE) == 1
        assert started.mode == ListeningMode.RAW_COMMAND
        assert fake_input.reading


class TestSendLink:
    async def _open_prompt(self, router: CommandRouter, fake_input: FakeInput) -> None:
        fake_input.press("e")
        await settle()
        assert router.mode == ListeningMode.LINE_PROMPT

    @pytest.mark.asyncio
    async def test_prompt_owns_input(
        self,
        started: CommandRouter,
        fake_input: FakeInput,
        mock_platform: AsyncMock,
        input_session,
    ) -> None:
        await self._open_prompt(started, fake_input)

        assert input_session.listener != started.on_input
        assert fake_input.attach_count == 1
        mock_platform.construct_shareable_url.assert_awaited_with(
            started.context.project_dir, HostType.LAN
        )

        # Command keys are text while the prompt is active.
        fake_input.press("p", ESCAPE)
        await settle()
        await started.drain()
        mock_platform.write_project_settings.assert_not_awaited()
        assert input_session.listener == started.on_input

    @pytest.mark.asyncio
    async def test_sends_and_remembers_recipient(
        self,
        started: CommandRouter,
        fake_input: FakeInput,
        mock_platform: AsyncMock,
        user_settings: dict[str, Any],
        output: io.StringIO,
    ) -> None:
        await self._open_prompt(started, fake_input)
        await _run_key(started, fake_input, *"foo@bar.com", RETURN)

        mock_platform.send_link.assert_awaited_once_with("foo@bar.com", "exp://192.168.1.5:8081")
        assert user_settings[SEND_TO] == "foo@bar.com"
        assert "Sent link successfully." in output.getvalue()
        assert output.getvalue().count(HELP_LINE) == 1
        assert started.mode == ListeningMode.RAW_COMMAND

    @pytest.mark.asyncio
    async def test_empty_answer_uses_saved_recipient(
        self,
        started: CommandRouter,
        fake_input: FakeInput,
        mock_platform: AsyncMock,
        user_settings: dict[str, Any],
        output: io.StringIO,
    ) -> None:
        user_settings[SEND_TO] = "old@bar.com"

        await self._open_prompt(started, fake_input)
        assert "[default: old@bar.com]> " in output.getvalue()
        await _run_key(started, fake_input, RETURN)

        mock_platform.send_link.assert_awaited_once_with("old@bar.com", "exp://192.168.1.5:8081")

    @pytest.mark.asyncio
    async def test_empty_answer_without_default_sends_nothing(
        self,
        started: CommandRouter,
        fake_input: FakeInput,
        mock_platform: AsyncMock,
        user_settings: dict[str, Any],
        output: io.StringIO,
    ) -> None:
        await self._open_prompt(started, fake_input)
        await _run_key(started, fake_input, RETURN)

        mock_platform.send_link.assert_not_awaited()
        assert user_settings == {}
        assert output.getvalue().count(HELP_LINE) == 1
        assert started.mode == ListeningMode.RAW_COMMAND

    @pytest.mark.asyncio
    async def test_cancel_sends_nothing(
        self,
        started: CommandRouter,
        fake_input: FakeInput,
        mock_platform: AsyncMock,
        user_settings: dict[str, Any],
    ) -> None:
        user_settings[SEND_TO] = "old@bar.com"

        await self._open_prompt(started, fake_input)
        await _run_key(started, fake_input, "x", ESCAPE)

        mock_platform.send_link.assert_not_awaited()
        assert user_settings[SEND_TO] == "old@bar.com"
        assert started.mode == ListeningMode.RAW_COMMAND

    @pytest.mark.asyncio
    async def test_failed_send_is_not_remembered(
        self,
        started: CommandRouter,
        fake_input: FakeInput,
        mock_platform: AsyncMock,
        user_settings: dict[str, Any],
        output: io.StringIO,
    ) -> None:
        mock_platform.send_link.side_effect = PlatformError("Service unavailable")

        await self._open_prompt(started, fake_input)
        await _run_key(started, fake_input, *"foo@bar.com", RETURN)

        assert "Could not send link. Service unavailable" in output.getvalue()
        assert SEND_TO not in user_settings
        assert started.mode == ListeningMode.RAW_COMMAND

    @pytest.mark.asyncio
    async def test_unsaved_recipient_does_not_fail_the_send(
        self,
        started: CommandRouter,
        fake_input: FakeInput,
        mock_platform: AsyncMock,
        output: io.StringIO,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        mock_platform.set_setting.side_effect = SettingsError("state.json is read-only")

        await self._open_prompt(started, fake_input)
        with caplog.at_level("WARNING", logger="devterm.controller.commands"):
            await _run_key(started, fake_input, *"foo@bar.com", RETURN)

        text = output.getvalue()
        mock_platform.send_link.assert_awaited_once()
        assert "Sent link successfully." in text
        assert "state.json is read-only" not in text
        assert "state.json is read-only" in caplog.text
        assert text.count(HELP_LINE) == 1
        assert started.mode == ListeningMode.RAW_COMMAND

    @pytest.mark.asyncio
    async def test_keys_after_e_in_same_chunk_are_dropped(
        self,
        started: CommandRouter,
        fake_input: FakeInput,
        mock_platform: AsyncMock,
    ) -> None:
        fake_input.type("ep")
        await settle()

        assert started.mode == ListeningMode.LINE_PROMPT
        mock_platform.write_project_settings.assert_not_awaited()
        fake_input.press(ESCAPE)
        await settle()
        await started.drain()
