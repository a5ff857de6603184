"""Configuration management for devterm.

Loads and validates YAML-based configuration with Pydantic models.
Supports environment variable overrides with the DEVTERM_ prefix.
"""

from devterm.config.settings import Settings, load_settings

__all__ = ["Settings", "load_settings"]
