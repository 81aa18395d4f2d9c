"""Local single-device cache used for offline-first resume."""

import json
import logging
import os
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


class SessionStore(ABC):
    """Key/value cache of JSON values."""

    @abstractmethod
    def load(self, key: str) -> Optional[Any]:
        """Return the stored value, or None if absent or unreadable."""

    @abstractmethod
    def save(self, key: str, value: Any):
        pass

    @abstractmethod
    def delete(self, key: str):
        pass


class MemorySessionStore(SessionStore):

    def __init__(self):
        self.data: Dict[str, str] = {}

    def load(self, key):
        raw = self.data.get(key)
        return json.loads(raw) if raw is not None else None

    def save(self, key, value):
        # Stored serialised so callers never share mutable state with the cache.
        self.data[key] = json.dumps(value, ensure_ascii=False)

    def delete(self, key):
        self.data.pop(key, None)


class JsonFileSessionStore(SessionStore):
    """One JSON file per key under `directory`."""

    def __init__(self, directory: str):
        self.directory = directory
        os.makedirs(directory, exist_ok=True)

    def _path(self, key: str) -> str:
        if not key or os.sep in key or key.startswith("."):
            raise ValueError(f"invalid session key {key!r}")
        return os.path.join(self.directory, f"{key}.json")

    def load(self, key):
        path = self._path(key)
        try:
            with open(path, "r", encoding="utf-8") as f:
                return json.load(f)
        except FileNotFoundError:
            return None
        except (OSError, ValueError) as e:
            logger.warning("Ignoring corrupt cache entry %s: %s", path, e)
            return None

    def save(self, key, value):
        path = self._path(key)
        tmp = path + ".tmp"
        with open(tmp, "w", encoding="utf-8") as f:
            json.dump(value, f, ensure_ascii=False, indent=2)
        os.replace(tmp, path)

    def delete(self, key):
        try:
            os.remove(self._path(key))
        except FileNotFoundError:
            pass
