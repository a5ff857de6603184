"""Command-line interface for devterm.

Provides the ``start`` entry point that attaches the interactive command
surface to the terminal of a running development server, and ``info``
which prints the connection banner once.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import signal
import sys
from pathlib import Path

logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        prog="devterm",
        description="Interactive terminal controls for a development server",
    )
    parser.add_argument(
        "-c", "--config",
        type=Path,
        default=None,
        help="Path to YAML configuration file (default: devterm.yaml)",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    start_parser = subparsers.add_parser("start", help="Listen for single-key commands")
    start_parser.add_argument("project_dir", type=Path, help="Project being served")

    info_parser = subparsers.add_parser("info", help="Print how to connect devices and exit")
    info_parser.add_argument("project_dir", type=Path, help="Project being served")

    return parser.parse_args(argv)


def _host_type(settings):
    from devterm.domain.models import HostType

    if settings.terminal.host_type is None:
        return None
    return HostType(settings.terminal.host_type)


async def _start(settings, args) -> None:
    """Run the command router until an interrupt arrives."""
    from devterm.console.renderer import ConsoleRenderer
    from devterm.controller.commands import devtools_url
    from devterm.controller.router import CommandRouter
    from devterm.platform.base import OPEN_DEVTOOLS_AT_STARTUP, SettingsError
    from devterm.platform.local import LocalDevPlatform
    from devterm.terminal.session import InputSession
    from devterm.terminal.stdin import StdinInput
    from devterm.utils.tasks import spawn_detached

    loop = asyncio.get_running_loop()
    interrupted = asyncio.Event()
    loop.add_signal_handler(signal.SIGINT, interrupted.set)
    loop.add_signal_handler(signal.SIGTERM, interrupted.set)

    async with LocalDevPlatform(settings.platform) as platform:
        router = CommandRouter(
            project_dir=args.project_dir,
            platform=platform,
            renderer=ConsoleRenderer(show_qr_code=settings.terminal.show_qr_code),
            input_session=InputSession(StdinInput()),
            host_type=_host_type(settings),
            devtools_host=settings.terminal.devtools_host,
        )
        await router.start()
        try:
            try:
                if await platform.get_setting(OPEN_DEVTOOLS_AT_STARTUP, True):
                    url = await devtools_url(router.context)
                    if url is not None:
                        spawn_detached(platform.open_url_in_browser(url), "open DevTools at startup")
            except SettingsError as e:
                logger.warning("Skipping DevTools at startup: %s", e)
            await interrupted.wait()
        finally:
            await router.stop()
            loop.remove_signal_handler(signal.SIGINT)
            loop.remove_signal_handler(signal.SIGTERM)


async def _info(settings, args) -> None:
    """Print the server-info banner once."""
    from devterm.console.renderer import ConsoleRenderer
    from devterm.controller.commands import render_server_info
    from devterm.platform.local import LocalDevPlatform

    async with LocalDevPlatform(settings.platform) as platform:
        await render_server_info(
            platform,
            ConsoleRenderer(show_qr_code=settings.terminal.show_qr_code),
            args.project_dir,
            _host_type(settings),
        )


def main(argv: list[str] | None = None) -> None:
    """Main entry point for the devterm CLI."""
    args = parse_args(argv)

    if args.command is None:
        parse_args(["--help"])
        return

    from devterm.config.settings import load_settings
    from devterm.platform.base import PlatformError, SettingsError
    from devterm.terminal.base import InputError
    from devterm.utils.logging import setup_logging

    settings = load_settings(args.config)

    if args.verbose:
        settings.logging.level = "DEBUG"

    setup_logging(settings.logging)

    try:
        if args.command == "start":
            logger.info("Starting terminal UI for %s", args.project_dir)
            asyncio.run(_start(settings, args))

        elif args.command == "info":
            asyncio.run(_info(settings, args))

    except (InputError, PlatformError, SettingsError) as e:
        print(f"devterm: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
