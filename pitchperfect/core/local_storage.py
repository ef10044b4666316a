"""Device-local key-value storage.

Mirrors a browser-style storage surface (string keys, string values). Reads
never raise: missing, corrupt or unreadable storage degrades to ``None`` so
callers can fall back to their defaults. Writes log and continue.
"""

import json
from pathlib import Path
from typing import Any, Protocol

from pitchperfect.core.logging import get_logger

logger = get_logger(__name__)


class KeyValueStorage(Protocol):
    def get_item(self, key: str) -> str | None: ...

    def set_item(self, key: str, value: str) -> None: ...

    def remove_item(self, key: str) -> None: ...


class MemoryStorage:
    """In-process storage, used for tests and ephemeral sessions."""

    def __init__(self, initial: dict[str, str] | None = None):
        self._data: dict[str, str] = dict(initial or {})

    def get_item(self, key: str) -> str | None:
        return self._data.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._data[key] = value

    def remove_item(self, key: str) -> None:
        self._data.pop(key, None)


class JsonFileStorage:
    """Storage persisted as a single JSON object on disk."""

    def __init__(self, path: str | Path):
        self.path = Path(path).expanduser()

    def _load(self) -> dict[str, str]:
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        except OSError as e:
            logger.warning(f"Local storage unreadable at {self.path}: {e}")
            return {}

        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.warning(f"Local storage corrupt at {self.path}: {e}")
            return {}

        if not isinstance(data, dict):
            logger.warning(f"Local storage at {self.path} is not an object, ignoring")
            return {}
        return {str(k): str(v) for k, v in data.items()}

    def _save(self, data: dict[str, str]) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(json.dumps(data), encoding="utf-8")
        except OSError as e:
            logger.warning(f"Failed to write local storage at {self.path}: {e}")

    def get_item(self, key: str) -> str | None:
        return self._load().get(key)

    def set_item(self, key: str, value: str) -> None:
        data = self._load()
        data[key] = value
        self._save(data)

    def remove_item(self, key: str) -> None:
        data = self._load()
        if key in data:
            del data[key]
            self._save(data)


def get_local_storage() -> JsonFileStorage:
    """Get storage backed by the configured LOCAL_STORAGE_PATH."""
    from pitchperfect.core.config import get_settings

    return JsonFileStorage(get_settings().LOCAL_STORAGE_PATH)


def read_json(storage: KeyValueStorage, key: str) -> Any | None:
    """Read and decode a JSON value, returning None when absent or corrupt."""
    raw = storage.get_item(key)
    if raw is None:
        return None
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        logger.warning(f"Ignoring corrupt stored value for {key}")
        return None


def write_json(storage: KeyValueStorage, key: str, value: Any) -> None:
    storage.set_item(key, json.dumps(value))
