"""Console rendering for the terminal control surface.

Stateless formatting over a ``rich`` console: screen clearing, the short
help line, the keybinding legend and the server-info banner with its QR
code. Every dynamic fact is passed in by the caller; nothing here reads
settings or talks to the platform.
"""

from __future__ import annotations

import io
import logging
import sys

import qrcode
from rich.console import Console
from rich.markup import escape
from rich.padding import Padding
from rich.table import Table
from rich.text import Text

logger = logging.getLogger(__name__)

CLEAR_WIN32 = "\x1bc"
CLEAR_ANSI = "\x1b[2J\x1b[3J\x1b[H"

BULLET = "•"
POINTER = "›"


def render_qr_code(data: str) -> str:
    """Render ``data`` as a QR code made of half-block characters."""
    qr = qrcode.QRCode(border=1)
    qr.add_data(data)
    qr.make(fit=True)
    out = io.StringIO()
    qr.print_ascii(out=out, invert=True)
    return out.getvalue()


class ConsoleRenderer:
    """Writes banners and status lines to the terminal.

    Args:
        console: Rich console to print to. Defaults to stdout.
        platform: ``sys.platform`` value deciding the clear sequence and
                  whether iOS simulator hints are shown.
        show_qr_code: Whether the server-info banner includes the QR code.
    """

    def __init__(
        self,
        console: Console | None = None,
        platform: str | None = None,
        show_qr_code: bool = True,
    ) -> None:
        self._console = console or Console(highlight=False)
        self._platform = platform or sys.platform
        self._show_qr_code = show_qr_code

    @property
    def console(self) -> Console:
        return self._console

    @property
    def is_darwin(self) -> bool:
        return self._platform == "darwin"

    def clear(self) -> None:
        """Clear the screen and the scrollback."""
        sequence = CLEAR_WIN32 if self._platform == "win32" else CLEAR_ANSI
        self._console.file.write(sequence)
        self._console.file.flush()

    def log(self, message: str) -> None:
        """Print an inline status line. ``message`` may carry rich markup."""
        self._console.print(message)

    def error(self, message: str) -> None:
        """Print an inline error line; ``message`` is taken literally."""
        self._console.print(Text(message, style="red"))

    def print_help(self) -> None:
        self._console.line()
        self._console.print("Press [b]?[/b] to show a list of all available commands.")

    def print_usage(
        self,
        dev: bool,
        open_devtools_at_startup: bool,
        username: str | None,
    ) -> None:
        """Print the keybinding legend for the current session state."""
        dev_mode = "development" if dev else "production"
        ios_info = ", or [b]i[/b] to run on [u]i[/u]OS simulator" if self.is_darwin else ""
        devtools_toggle = "disable" if open_devtools_at_startup else "enable"
        if username:
            sign = f"out. (Signed in as [i]@{escape(username)}[/i].)"
        else:
            sign = "in."

        lines = [
            f"Press [b]a[/b] to run on [u]A[/u]ndroid device/emulator{ios_info}.",
            "Press [b]c[/b] to show info on [u]c[/u]onnecting new devices.",
            "Press [b]d[/b] to open DevTools in the default web browser.",
            f"Press [b]shift-d[/b] to {devtools_toggle} automatically opening "
            "[u]D[/u]evTools at startup.",
            "Press [b]e[/b] to send an app link with [u]e[/u]mail/SMS.",
            f"Press [b]p[/b] to toggle [u]p[/u]roduction mode. (current mode: [i]{dev_mode}[/i])",
            "Press [b]r[/b] to [u]r[/u]estart bundler, or [b]shift-r[/b] to restart and clear cache.",
            f"Press [b]s[/b] to [u]s[/u]ign {sign}",
        ]
        self._console.line()
        for line in lines:
            self._console.print(f" {POINTER} {line}")
        self._console.line()

    def print_server_info(self, url: str, username: str | None) -> None:
        """Print the connection banner: URL, QR code and how to connect."""
        self._console.line()
        self._console.print(f"  [u]{escape(url)}[/u]")
        self._console.line()
        if self._show_qr_code:
            self._console.out(render_qr_code(url).rstrip("\n"), highlight=False)

        ios_info = ", or [b]i[/b] for iOS simulator" if self.is_darwin else ""
        items = []
        if username:
            items.append(
                f"Sign in as [i]@{escape(username)}[/i] in the client app on Android or iOS. "
                'Your projects will automatically appear in the "Projects" tab.'
            )
        items.append("Scan the QR code above with the client app (Android) or the Camera app (iOS).")
        items.append(f"Press [b]a[/b] for Android emulator{ios_info}.")
        items.append("Press [b]e[/b] to send a link to your phone with email/SMS.")
        if not username:
            items.append("Press [b]s[/b] to sign in and enable more options.")

        self._console.print(
            Padding("[u]To run the app with live reloading, choose one of:[/u]", (0, 0, 0, 2))
        )
        grid = Table.grid(padding=(0, 1))
        grid.add_column(no_wrap=True)
        grid.add_column()
        for item in items:
            grid.add_row(f"  {BULLET}", item)
        self._console.print(grid)
        self.print_help()
