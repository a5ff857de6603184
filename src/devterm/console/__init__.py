"""Console output module for devterm.

Public API:
    ConsoleRenderer -- Banners, help line and status lines
"""

from devterm.console.renderer import ConsoleRenderer, render_qr_code

__all__ = ["ConsoleRenderer", "render_qr_code"]
