"""Configuration management for devterm.

Loads settings from a YAML configuration file with environment variable
overrides (DEVTERM_ prefix, ``__`` as the nested delimiter). Supports .env
files.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path("devterm.yaml")


class PlatformConfig(BaseModel):
    api_base_url: str = Field(default="https://api.devterm.dev")
    http_timeout: float = Field(default=10.0, gt=0)
    state_dir: Path = Field(
        default=Path("~/.devterm"),
        description="Directory holding user-level state (settings, session)",
    )
    project_dir_name: str = Field(
        default=".devterm",
        description="Per-project directory holding settings and packager info",
    )
    url_scheme: str = Field(default="exp")
    android_command: list[str] = Field(
        default_factory=lambda: [
            "adb", "shell", "am", "start", "-a", "android.intent.action.VIEW", "-d",
        ],
        description="Command used to open a URL on a device; the URL is appended",
    )
    ios_command: list[str] = Field(
        default_factory=lambda: ["xcrun", "simctl", "openurl", "booted"],
    )


class TerminalConfig(BaseModel):
    show_qr_code: bool = Field(default=True)
    host_type: Literal["lan", "localhost"] | None = Field(
        default=None,
        description="Host type for the server-info URL; None uses the project setting",
    )
    devtools_host: str = Field(default="localhost")


class LoggingConfig(BaseModel):
    level: str = Field(default="WARNING")
    format: str = Field(
        default="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    file: str | None = Field(default=None)


class Settings(BaseSettings):
    """Root configuration for devterm.

    Loads from YAML file and supports environment variable overrides.
    Reads .env files automatically.
    """

    model_config = {
        "env_prefix": "DEVTERM_",
        "env_nested_delimiter": "__",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    platform: PlatformConfig = Field(default_factory=PlatformConfig)
    terminal: TerminalConfig = Field(default_factory=TerminalConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


def load_settings(config_path: Path | str | None = None) -> Settings:
    """Load settings from YAML + .env + environment variables."""
    path = Path(config_path) if config_path else DEFAULT_CONFIG_PATH

    yaml_data = {}
    if path.exists():
        with open(path) as f:
            yaml_data = yaml.safe_load(f) or {}
        logger.info("Loaded configuration from %s", path)
    else:
        logger.warning("Config file %s not found, using defaults + env vars", path)

    return Settings(**yaml_data)
