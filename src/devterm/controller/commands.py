"""The command table and its handlers.

Each handler is a coroutine taking a CommandContext. The router has
already done the synchronous part of the binding (suspend input, clear,
announce) before a handler runs, and renders the short help line after it
returns, so handlers only print what is specific to their outcome.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, Callable

from rich.markup import escape

from devterm.console.renderer import ConsoleRenderer
from devterm.controller.prompt import PromptSession, resolve_recipient
from devterm.domain.models import CommandBinding, HostType, ListeningMode
from devterm.platform.base import (
    OPEN_DEVTOOLS_AT_STARTUP,
    SEND_TO,
    DevPlatform,
    PlatformError,
    SettingsError,
)
from devterm.terminal.session import InputSession
from devterm.utils.tasks import spawn_detached

logger = logging.getLogger(__name__)

SEND_LINK_MESSAGE = "Please enter your phone number or email address (press ESC to cancel) "


class CommandContext:
    """Everything a command handler may touch."""

    def __init__(
        self,
        project_dir: Path,
        platform: DevPlatform,
        renderer: ConsoleRenderer,
        input_session: InputSession,
        resume_input: Callable[[], None],
        host_type: HostType | None = None,
        devtools_host: str = "localhost",
    ) -> None:
        self.project_dir = Path(project_dir)
        self.platform = platform
        self.renderer = renderer
        self.input = input_session
        self.resume_input = resume_input
        self.host_type = host_type
        self.devtools_host = devtools_host

    @asynccontextmanager
    async def input_suspended(self) -> AsyncIterator[None]:
        """Keep raw command dispatch unsubscribed for the block.

        Raw command listening is restored on exit however the block ends,
        unless something inside already restored it.
        """
        if self.input.mode != ListeningMode.SUSPENDED:
            self.input.suspend()
        try:
            yield
        finally:
            if self.input.mode != ListeningMode.RAW_COMMAND:
                self.resume_input()


# ---------------------------------------------------------------------------
# Shared rendering
# ---------------------------------------------------------------------------


async def render_server_info(
    platform: DevPlatform,
    renderer: ConsoleRenderer,
    project_dir: Path,
    host_type: HostType | None = None,
) -> None:
    url = await platform.construct_shareable_url(project_dir, host_type)
    username = await platform.get_current_username()
    renderer.print_server_info(url, username)


async def devtools_url(ctx: CommandContext) -> str | None:
    """URL of the DevTools UI, or None when the server has not published one."""
    info = await ctx.platform.read_packager_info(ctx.project_dir)
    if info.dev_tools_port is None:
        return None
    return f"http://{ctx.devtools_host}:{info.dev_tools_port}"


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------


async def show_usage(ctx: CommandContext) -> None:
    settings = await ctx.platform.read_project_settings(ctx.project_dir)
    open_devtools = await ctx.platform.get_setting(OPEN_DEVTOOLS_AT_STARTUP, True)
    username = await ctx.platform.get_current_username()
    ctx.renderer.print_usage(settings.dev, bool(open_devtools), username)


async def show_server_info(ctx: CommandContext) -> None:
    await render_server_info(ctx.platform, ctx.renderer, ctx.project_dir, ctx.host_type)


async def open_android(ctx: CommandContext) -> None:
    try:
        result = await ctx.platform.open_on_android(ctx.project_dir)
    except PlatformError as e:
        ctx.renderer.error(f"Could not open the project on Android. {e}")
        return
    if not result.success:
        ctx.renderer.error(result.error or "Could not open the project on Android.")


async def open_ios_simulator(ctx: CommandContext) -> None:
    try:
        result = await ctx.platform.open_on_ios_simulator(ctx.project_dir)
    except PlatformError as e:
        ctx.renderer.error(f"Could not open the project in iOS simulator. {e}")
        return
    if not result.success:
        ctx.renderer.error(result.error or "Could not open the project in iOS simulator.")


async def open_devtools(ctx: CommandContext) -> None:
    url = await devtools_url(ctx)
    if url is None:
        ctx.renderer.error("DevTools is not running for this project.")
        return
    ctx.renderer.log("Opening DevTools in the browser...")
    spawn_detached(ctx.platform.open_url_in_browser(url), "open DevTools")


async def toggle_devtools_at_startup(ctx: CommandContext) -> None:
    enabled = not await ctx.platform.get_setting(OPEN_DEVTOOLS_AT_STARTUP, True)
    await ctx.platform.set_setting(OPEN_DEVTOOLS_AT_STARTUP, enabled)
    ctx.renderer.log(
        f"Automatically opening DevTools [b]{'enabled' if enabled else 'disabled'}[/b].\n"
        "Press [b]d[/b] to open DevTools now."
    )


async def send_link(ctx: CommandContext) -> None:
    async with ctx.input_suspended():
        url = await ctx.platform.construct_shareable_url(ctx.project_dir, HostType.LAN)
        default = await ctx.platform.get_setting(SEND_TO, None)
        prompt = PromptSession(
            ctx.input,
            ctx.renderer,
            on_close=ctx.resume_input,
            message=SEND_LINK_MESSAGE,
            default=default,
        )
        answer = await prompt.run()

    recipient = resolve_recipient(answer, default)
    if recipient is None:
        ctx.renderer.clear()
        return

    ctx.renderer.log(f"Sending {escape(url)} to {escape(recipient)}...")
    try:
        await ctx.platform.send_link(recipient, url)
    except PlatformError as e:
        ctx.renderer.error(f"Could not send link. {e}")
        return
    ctx.renderer.log("Sent link successfully.")
    try:
        await ctx.platform.set_setting(SEND_TO, recipient)
    except SettingsError as e:
        logger.warning("Could not remember %s as the default recipient: %s", recipient, e)


async def toggle_production_mode(ctx: CommandContext) -> None:
    settings = await ctx.platform.read_project_settings(ctx.project_dir)
    dev = not settings.dev
    await ctx.platform.write_project_settings(ctx.project_dir, dev=dev, minify=not dev)
    mode = "development" if dev else "production"
    ctx.renderer.log(
        f"Bundler is now running in [b]{mode}[/b] mode.\n"
        "Please reload the project in the client app for the change to take effect."
    )


async def restart_bundler(ctx: CommandContext) -> None:
    spawn_detached(ctx.platform.restart_bundler(ctx.project_dir, reset=False), "restart bundler")


async def restart_bundler_clearing_cache(ctx: CommandContext) -> None:
    spawn_detached(
        ctx.platform.restart_bundler(ctx.project_dir, reset=True),
        "restart bundler and clear cache",
    )


async def toggle_session(ctx: CommandContext) -> None:
    if await ctx.platform.get_session():
        await ctx.platform.logout()
        ctx.renderer.log("Signed out.")
        return

    async with ctx.input_suspended():
        try:
            username = await ctx.platform.interactive_login()
        except Exception as e:
            logger.error("Sign in failed: %s", e)
            ctx.renderer.error(f"Sign in failed: {e}")
            return
    ctx.renderer.log(f"Signed in as [i]@{escape(username)}[/i].")


# ---------------------------------------------------------------------------
# Command table
# ---------------------------------------------------------------------------


COMMAND_TABLE: tuple[CommandBinding, ...] = (
    CommandBinding(
        token="?",
        handler=show_usage,
        description="show all available commands",
        own_banner=True,
    ),
    CommandBinding(
        token="a",
        handler=open_android,
        description="open on Android device/emulator",
        clears_screen=True,
        announce="Trying to open the project on Android...",
    ),
    CommandBinding(
        token="i",
        handler=open_ios_simulator,
        description="open in iOS simulator",
        clears_screen=True,
        announce="Trying to open the project in iOS simulator...",
    ),
    CommandBinding(
        token="c",
        handler=show_server_info,
        description="show info on connecting new devices",
        clears_screen=True,
        own_banner=True,
    ),
    CommandBinding(
        token="d",
        handler=open_devtools,
        description="open DevTools in the default browser",
    ),
    CommandBinding(
        token="D",
        handler=toggle_devtools_at_startup,
        description="toggle opening DevTools at startup",
        clears_screen=True,
    ),
    CommandBinding(
        token="e",
        handler=send_link,
        description="send an app link with email/SMS",
        suspends_input=True,
    ),
    CommandBinding(
        token="p",
        handler=toggle_production_mode,
        description="toggle production mode",
        clears_screen=True,
    ),
    CommandBinding(
        token="r",
        handler=restart_bundler,
        description="restart bundler",
        clears_screen=True,
        announce="Restarting bundler...",
    ),
    CommandBinding(
        token="R",
        handler=restart_bundler_clearing_cache,
        description="restart bundler and clear cache",
        clears_screen=True,
        announce="Restarting bundler and clearing cache...",
    ),
    CommandBinding(
        token="s",
        handler=toggle_session,
        description="sign in or out",
    ),
)
