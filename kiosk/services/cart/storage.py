"""Tenant-scoped key/value storage for carts and cached data."""
import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, List, Optional
from urllib.parse import quote, unquote

logger = logging.getLogger(__name__)


class KeyValueStore(ABC):
    """Minimal string-keyed store holding JSON-compatible values."""

    @abstractmethod
    def get(self, key: str) -> Optional[Any]:
        """Return the stored value, or None when absent."""
        pass

    @abstractmethod
    def set(self, key: str, value: Any) -> None:
        """Store a value under ``key``, replacing any previous one."""
        pass

    @abstractmethod
    def remove(self, key: str) -> None:
        """Remove ``key``; missing keys are ignored."""
        pass

    @abstractmethod
    def keys(self, prefix: str = "") -> List[str]:
        """List stored keys starting with ``prefix``."""
        pass


class InMemoryStore(KeyValueStore):
    """Process-local store, values are kept as JSON text."""

    def __init__(self):
        self._data: Dict[str, str] = {}

    def get(self, key: str) -> Optional[Any]:
        raw = self._data.get(key)
        return json.loads(raw) if raw is not None else None

    def set(self, key: str, value: Any) -> None:
        self._data[key] = json.dumps(value)

    def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self, prefix: str = "") -> List[str]:
        return [k for k in self._data if k.startswith(prefix)]


class JsonFileStore(KeyValueStore):
    """One JSON file per key under a directory.

    File names are the percent-encoded key, so distinct keys never share
    a file and ``keys()`` returns the original keys.
    """

    def __init__(self, directory: str):
        self.directory = Path(directory)
        self.directory.mkdir(parents=True, exist_ok=True)

    def _path(self, key: str) -> Path:
        return self.directory / f"{quote(key, safe='')}.json"

    def get(self, key: str) -> Optional[Any]:
        path = self._path(key)
        if not path.exists():
            return None
        try:
            return json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning(f"[STORAGE] Unreadable entry {key}, ignoring - {type(e).__name__}: {str(e)}")
            return None

    def set(self, key: str, value: Any) -> None:
        path = self._path(key)
        tmp = path.with_name(path.name + ".tmp")
        tmp.write_text(json.dumps(value), encoding="utf-8")
        tmp.replace(path)

    def remove(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)

    def keys(self, prefix: str = "") -> List[str]:
        names = [unquote(p.name[: -len(".json")]) for p in self.directory.glob("*.json")]
        return sorted(n for n in names if n.startswith(prefix))
