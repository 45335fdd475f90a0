from __future__ import annotations

import json
import logging
import os
import tempfile
from collections.abc import Mapping
from pathlib import Path
from typing import Any


class JsonSecretStore:
    """File-backed store of named secrets.

    Values are kept in one flat JSON object. Writes go to a temporary file in
    the same directory which then replaces the store file, so the file on
    disk is always a complete document.
    """

    def __init__(self, path: str | os.PathLike[str]):
        if not isinstance(path, str | os.PathLike):
            raise TypeError("path must be str or os.PathLike")
        self.path = Path(path)
        self._cache: dict[str, str] | None = None

    def _load(self) -> dict[str, str]:
        if self._cache is not None:
            return self._cache
        data: Any = {}
        try:
            with self.path.open(encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            data = {}
        except (OSError, ValueError) as e:
            logging.error(f"Secret store load error: {type(e).__name__}")
            data = {}
        if not isinstance(data, dict):
            data = {}
        self._cache = {str(k): str(v) for k, v in data.items() if v is not None}
        return self._cache

    def get(self, name: str) -> str | None:
        return self._load().get(name)

    def set(self, name: str, value: str) -> None:
        self.set_many({name: value})

    def set_many(self, updates: Mapping[str, str]) -> None:
        """Store several secrets with a single file replacement."""
        values = dict(self._load())
        values.update(updates)
        self._atomic_write(values)
        self._cache = values

    def _atomic_write(self, values: dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        temp_path: str | None = None
        try:
            with tempfile.NamedTemporaryFile(
                mode="w",
                dir=self.path.parent,
                prefix=f".{self.path.name}.",
                suffix=".tmp",
                delete=False,
                encoding="utf-8",
            ) as tmp:
                temp_path = tmp.name
                json.dump(values, tmp, indent=2, sort_keys=True)
                tmp.flush()
                os.fsync(tmp.fileno())
            os.chmod(temp_path, 0o600)
            os.replace(temp_path, self.path)
            logging.debug(f"Secret store saved keys={len(values)}")
        except (OSError, ValueError):
            if temp_path and os.path.exists(temp_path):
                try:
                    os.unlink(temp_path)
                except OSError:
                    pass
            logging.error("Atomic secret store save failed")
            raise
