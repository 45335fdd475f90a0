from __future__ import annotations

import json
import logging
import os
from typing import Any


class ConfigRepository:
    """Loads the JSON configuration file.

    The parsed document is cached and only re-read when the file's mtime or
    size changes.
    """

    def __init__(self, path: str | os.PathLike[str]):
        if not isinstance(path, str | os.PathLike):
            raise TypeError("path must be str or os.PathLike")
        self.path = str(path)
        self._file_mtime: float | None = None
        self._file_size: int | None = None
        self._cached: dict[str, Any] | None = None

    def exists(self) -> bool:
        return os.path.isfile(self.path)

    def load_raw(self) -> dict[str, Any]:
        """Load the raw configuration object.

        Returns:
            The top-level JSON object, or an empty dict when the file is
            missing, unreadable or not an object.
        """
        try:
            st = os.stat(self.path)
            mtime = st.st_mtime
            size = st.st_size
            if (
                self._cached is not None
                and self._file_mtime == mtime
                and self._file_size == size
            ):
                return self._cached

            with open(self.path, encoding="utf-8") as f:
                data = json.load(f)
            if not isinstance(data, dict):
                logging.error("Configuration root must be a JSON object")
                return {}
            self._cached = data
            self._file_mtime = mtime
            self._file_size = size
            return data
        except FileNotFoundError:
            return {}
        except (OSError, ValueError) as e:
            logging.error(f"Configuration load error: {e}")
            return {}
