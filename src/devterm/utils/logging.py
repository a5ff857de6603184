"""Logging setup utilities for devterm.

Diagnostics go through the stdlib ``logging`` tree rooted at ``devterm``;
user-facing console output goes through the console renderer instead.
"""

from __future__ import annotations

import logging
import sys

from devterm.config.settings import LoggingConfig

# Set on every handler setup_logging() installs, so a second call replaces
# them instead of printing each record twice.
_INSTALLED = "_devterm_installed"

HTTP_LOGGERS = ("httpx", "httpcore")


def setup_logging(config: LoggingConfig | None = None) -> logging.Logger:
    """Configure logging for the devterm application.

    Installs a stderr handler, plus a file handler when ``config.file`` is
    set, on the ``devterm`` logger. Stderr keeps diagnostics out of the
    interactive banner on stdout. At DEBUG level the same handlers are also
    attached to the HTTP client loggers so platform requests can be traced.

    Calling this again replaces the handlers from the previous call.

    Args:
        config: Logging configuration. If None, uses defaults
                (WARNING level, stderr output).

    Returns:
        The configured ``devterm`` logger.
    """
    if config is None:
        config = LoggingConfig()

    level = getattr(logging, config.level.upper(), logging.WARNING)
    formatter = logging.Formatter(config.format)

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if config.file:
        handlers.append(logging.FileHandler(config.file))
    for handler in handlers:
        handler.setFormatter(formatter)
        setattr(handler, _INSTALLED, True)

    app_logger = _install(logging.getLogger("devterm"), level, handlers)
    for name in HTTP_LOGGERS:
        http_logger = logging.getLogger(name)
        _remove_installed(http_logger)
        if level <= logging.DEBUG:
            _install(http_logger, level, handlers)
        else:
            http_logger.setLevel(logging.NOTSET)

    app_logger.info("Logging initialized at %s level", config.level)
    return app_logger


def _install(logger: logging.Logger, level: int, handlers: list[logging.Handler]) -> logging.Logger:
    _remove_installed(logger)
    logger.setLevel(level)
    for handler in handlers:
        logger.addHandler(handler)
    return logger


def _remove_installed(logger: logging.Logger) -> None:
    for handler in list(logger.handlers):
        if getattr(handler, _INSTALLED, False):
            logger.removeHandler(handler)
            handler.close()
