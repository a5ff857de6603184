"""The command router: input state machine of the terminal UI.

Coordinates: key token -> classify -> command table -> handler task ->
short help. Tokens are dispatched synchronously in delivery order, while
handlers run as tasks so a slow platform call never blocks the next key.
"""

from __future__ import annotations

import asyncio
import logging
import signal
from pathlib import Path
from typing import Any, Callable, Iterable

from devterm.console.renderer import ConsoleRenderer
from devterm.controller.commands import COMMAND_TABLE, CommandContext, render_server_info
from devterm.domain.models import CommandBinding, HostType, ListeningMode, TokenKind
from devterm.platform.base import DevPlatform, PlatformError, SettingsError
from devterm.terminal.keys import classify_token
from devterm.terminal.session import InputSession

logger = logging.getLogger(__name__)


def raise_sigint() -> None:
    """Deliver SIGINT to this process, as a terminal would for Ctrl-C."""
    signal.raise_signal(signal.SIGINT)


class CommandRouter:
    """Maps single keypresses to platform commands.

    Example usage::

        router = CommandRouter(project_dir, platform, ConsoleRenderer(),
                               InputSession(StdinInput()))
        await router.start()
        ...
        await router.stop()
    """

    def __init__(
        self,
        project_dir: Path,
        platform: DevPlatform,
        renderer: ConsoleRenderer,
        input_session: InputSession,
        bindings: Iterable[CommandBinding] | None = None,
        on_interrupt: Callable[[], None] | None = None,
        host_type: HostType | None = None,
        devtools_host: str = "localhost",
    ) -> None:
        self._platform = platform
        self._renderer = renderer
        self._input = input_session
        self._bindings = {b.token: b for b in (bindings if bindings is not None else COMMAND_TABLE)}
        self._on_interrupt = on_interrupt or raise_sigint
        self._tasks: set[asyncio.Task[Any]] = set()
        self._started = False
        self._context = CommandContext(
            project_dir=project_dir,
            platform=platform,
            renderer=renderer,
            input_session=input_session,
            resume_input=self._listen,
            host_type=host_type,
            devtools_host=devtools_host,
        )

    @property
    def is_running(self) -> bool:
        return self._started

    @property
    def mode(self) -> ListeningMode:
        return self._input.mode

    @property
    def context(self) -> CommandContext:
        return self._context

    @property
    def pending(self) -> int:
        """Number of command handlers still running."""
        return len(self._tasks)

    async def start(self) -> None:
        """Listen for commands and show the server-info banner."""
        if self._started:
            raise RuntimeError("Command router is already started")
        self._started = True
        await self._input.open()
        self._listen()
        logger.info("Listening for commands in %s", self._context.project_dir)

        try:
            await render_server_info(
                self._platform, self._renderer, self._context.project_dir, self._context.host_type
            )
        except (PlatformError, SettingsError) as e:
            logger.error("Could not render server info: %s", e)
            self._renderer.error(str(e))
            self._renderer.print_help()

    async def stop(self) -> None:
        """Release the terminal and cancel handlers that are still running."""
        if not self._started:
            return
        self._started = False
        await self._input.release()
        for task in list(self._tasks):
            task.cancel()
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
        logger.info("Stopped listening for commands")

    async def drain(self) -> None:
        """Wait until no command handler is running."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def on_input(self, token: str) -> None:
        """Raw command listener: dispatch one token."""
        kind = classify_token(token)
        if kind == TokenKind.INTERRUPT:
            logger.debug("Interrupt key %r", token)
            self._on_interrupt()
            return
        if kind == TokenKind.CLEAR:
            self._renderer.clear()
            return

        binding = self._bindings.get(token)
        if binding is None:
            return

        logger.debug("Dispatching %r (%s)", token, binding.description)
        if binding.suspends_input:
            self._input.suspend()
        if binding.clears_screen:
            self._renderer.clear()
        if binding.announce:
            self._renderer.log(binding.announce)

        task = asyncio.get_running_loop().create_task(
            self._run(binding), name=f"command {token!r}"
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _run(self, binding: CommandBinding) -> None:
        failed = True
        try:
            await binding.handler(self._context)
            failed = False
        except asyncio.CancelledError:
            logger.debug("Command %r cancelled", binding.token)
            raise
        except PlatformError as e:
            logger.info("Command %r failed: %s", binding.token, e)
            self._renderer.error(str(e))
        except SettingsError as e:
            logger.error("Command %r could not access settings: %s", binding.token, e)
            self._renderer.error(str(e))
        except Exception as e:
            logger.exception("Command %r raised", binding.token)
            self._renderer.error(f"Command failed: {e}")

        if self._started and self._input.mode == ListeningMode.SUSPENDED:
            logger.warning("Command %r left input suspended, resuming", binding.token)
            self._listen()
        # A failed banner command drew no banner, so it gets the short help too.
        if failed or not binding.own_banner:
            self._renderer.print_help()

    def _listen(self) -> None:
        # Handlers cancelled by stop() must not reclaim a released terminal.
        if not self._started:
            return
        self._input.enter_raw(self.on_input)
