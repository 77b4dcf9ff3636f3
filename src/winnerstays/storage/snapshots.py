import json
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, Optional

from loguru import logger


def clock_key(fixture_id: str) -> str:
    """Key under which a fixture's clock snapshot is stored."""
    return f"fixture_timer_{fixture_id}"


class ClockSnapshotStore(ABC):
    """Opaque key/value store for clock snapshots.

    Writes are fire-and-forget: an implementation may lose a write, and the
    clock's recovery logic copes with a stale snapshot.
    """

    @abstractmethod
    def load(self, key: str) -> Optional[Dict[str, Any]]:
        pass

    @abstractmethod
    def save(self, key: str, snapshot: Dict[str, Any]) -> None:
        pass

    @abstractmethod
    def delete(self, key: str) -> None:
        pass


class MemorySnapshotStore(ClockSnapshotStore):
    def __init__(self) -> None:
        self._data: Dict[str, Dict[str, Any]] = {}

    def load(self, key: str) -> Optional[Dict[str, Any]]:
        snapshot = self._data.get(key)
        return dict(snapshot) if snapshot is not None else None

    def save(self, key: str, snapshot: Dict[str, Any]) -> None:
        self._data[key] = dict(snapshot)

    def delete(self, key: str) -> None:
        self._data.pop(key, None)


class JsonFileSnapshotStore(ClockSnapshotStore):
    """One JSON file per key inside ``directory``."""

    def __init__(self, directory: str | Path) -> None:
        self.directory = Path(directory)

    def _path(self, key: str) -> Path:
        return self.directory / f"{key}.json"

    def load(self, key: str) -> Optional[Dict[str, Any]]:
        path = self._path(key)
        if not path.exists():
            return None
        try:
            with open(path, "r", encoding="utf-8") as f:
                return json.load(f)
        except (IOError, json.JSONDecodeError) as e:
            logger.warning(f"Ignoring unreadable clock snapshot {path}: {e}")
            return None

    def save(self, key: str, snapshot: Dict[str, Any]) -> None:
        path = self._path(key)
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            tmp = path.with_suffix(".tmp")
            with open(tmp, "w", encoding="utf-8") as f:
                json.dump(snapshot, f)
            tmp.replace(path)
        except IOError as e:
            logger.warning(f"Failed to persist clock snapshot {path}: {e}")

    def delete(self, key: str) -> None:
        try:
            self._path(key).unlink(missing_ok=True)
        except IOError as e:
            logger.warning(f"Failed to delete clock snapshot for {key}: {e}")
