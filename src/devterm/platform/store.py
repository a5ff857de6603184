"""JSON file persistence for project and user settings."""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any

from devterm.platform.base import SettingsError

logger = logging.getLogger(__name__)


class JsonFileStore:
    """A JSON object stored in one file, replaced atomically on write.

    A missing file reads as an empty object. A file that is not valid JSON
    or not an object raises SettingsError instead of being overwritten.
    """

    def __init__(self, path: Path) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def read(self) -> dict[str, Any]:
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8") or "{}")
        except (OSError, json.JSONDecodeError) as e:
            raise SettingsError(f"Cannot read {self._path}: {e}", path=self._path) from e
        if not isinstance(data, dict):
            raise SettingsError(f"{self._path} does not contain a JSON object", path=self._path)
        return data

    def write(self, data: dict[str, Any]) -> None:
        tmp_path = self._path.with_name(self._path.name + ".tmp")
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(json.dumps(data, indent=2) + "\n", encoding="utf-8")
            os.replace(tmp_path, self._path)
        except OSError as e:
            raise SettingsError(f"Cannot write {self._path}: {e}", path=self._path) from e
        logger.debug("Wrote %s", self._path)

    def update(self, **changes: Any) -> dict[str, Any]:
        """Read-modify-write ``changes`` into the stored object."""
        data = self.read()
        data.update(changes)
        self.write(data)
        return data
