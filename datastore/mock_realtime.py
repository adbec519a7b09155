from __future__ import annotations

import copy
import itertools
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from threading import RLock
from typing import Any, Dict, List, Optional

from datastore.base import (
    ChangeCallback,
    ErrorCallback,
    StoreQuery,
    StoreReadError,
    normalize_path,
)

logger = logging.getLogger(__name__)


@dataclass
class _Listener:
    listener_id: int
    path: str
    query: Optional[StoreQuery]
    on_change: ChangeCallback
    on_error: Optional[ErrorCallback]


class MockListenerRegistration:

    def __init__(self, database: "MockRealtimeDatabase", listener_id: int) -> None:
        self._database = database
        self.listener_id = listener_id

    def close(self) -> None:
        self._database._remove_listener(self.listener_id)


class MockRealtimeDatabase:
    """In-process stand-in for the realtime database tree.

    Writes notify matching listeners synchronously, after the write is applied,
    with the full current result of their query.
    """

    def __init__(self, name: str = "mock", persistence_path: Optional[Path] = None) -> None:
        self.name = name
        self._tree: Dict[str, Any] = {}
        self._listeners: Dict[int, _Listener] = {}
        self._ids = itertools.count(1)
        self.persistence_path = persistence_path
        self._lock = RLock()
        if persistence_path:
            persistence_path.parent.mkdir(parents=True, exist_ok=True)
            self._load_from_disk()

    def get(self, path: str, query: Optional[StoreQuery] = None) -> Dict[str, Any]:
        with self._lock:
            return self._read(normalize_path(path), query)

    def shallow_keys(self, path: str = "") -> List[str]:
        with self._lock:
            node = self._node(normalize_path(path))
            if not isinstance(node, dict):
                return []
            return sorted(node)

    def listen(
        self,
        path: str,
        query: Optional[StoreQuery],
        on_change: ChangeCallback,
        on_error: Optional[ErrorCallback] = None,
    ) -> MockListenerRegistration:
        listener = _Listener(
            listener_id=next(self._ids),
            path=normalize_path(path),
            query=query,
            on_change=on_change,
            on_error=on_error,
        )
        with self._lock:
            self._listeners[listener.listener_id] = listener
        logger.debug(
            "Listener attached",
            extra={"path": listener.path, "listener_id": listener.listener_id},
        )
        self._deliver(listener)
        return MockListenerRegistration(self, listener.listener_id)

    def set_value(self, path: str, value: Any) -> None:
        """Write ``value`` at ``path`` (``None`` deletes) and notify listeners."""
        normalized = normalize_path(path)
        if not normalized:
            raise ValueError("Refusing to overwrite the database root.")
        parts = normalized.split("/")
        with self._lock:
            node = self._tree
            for part in parts[:-1]:
                child = node.get(part)
                if not isinstance(child, dict):
                    child = {}
                    node[part] = child
                node = child
            if value is None:
                node.pop(parts[-1], None)
            else:
                node[parts[-1]] = copy.deepcopy(value)
            self._persist()
            affected = [
                listener
                for listener in self._listeners.values()
                if _overlaps(listener.path, normalized)
            ]
        for listener in affected:
            self._deliver(listener)

    def delete(self, path: str) -> None:
        self.set_value(path, None)

    def emit_error(self, path: str, error: Exception) -> None:
        """Report ``error`` to every listener under ``path``, as a dropped stream would."""
        normalized = normalize_path(path)
        with self._lock:
            affected = [
                listener
                for listener in self._listeners.values()
                if _overlaps(listener.path, normalized)
            ]
        for listener in affected:
            if listener.on_error is not None:
                listener.on_error(error)

    def listener_count(self) -> int:
        with self._lock:
            return len(self._listeners)

    def close(self) -> None:
        with self._lock:
            self._listeners.clear()

    def _deliver(self, listener: _Listener) -> None:
        with self._lock:
            if listener.listener_id not in self._listeners:
                return
            failure: Optional[StoreReadError] = None
            try:
                snapshot = self._read(listener.path, listener.query)
            except StoreReadError as exc:
                failure = exc
        if failure is not None:
            logger.warning(
                "Listener read failed",
                extra={"path": listener.path, "listener_id": listener.listener_id, "error": str(failure)},
            )
            if listener.on_error is not None:
                listener.on_error(failure)
            return
        listener.on_change(snapshot)

    def _remove_listener(self, listener_id: int) -> None:
        with self._lock:
            removed = self._listeners.pop(listener_id, None)
        if removed is not None:
            logger.debug(
                "Listener detached",
                extra={"path": removed.path, "listener_id": listener_id},
            )

    def _read(self, path: str, query: Optional[StoreQuery]) -> Dict[str, Any]:
        node = self._node(path)
        if node is None:
            return {}
        if not isinstance(node, dict):
            raise StoreReadError(f"Path {path!r} does not hold a collection.")
        children = query.apply(node) if query is not None else node
        return copy.deepcopy(dict(children))

    def _node(self, path: str) -> Any:
        node: Any = self._tree
        if not path:
            return node
        for part in path.split("/"):
            if not isinstance(node, dict) or part not in node:
                return None
            node = node[part]
        return node

    def _persist(self) -> None:
        if not self.persistence_path:
            return
        self.persistence_path.write_text(json.dumps(self._tree, indent=2, sort_keys=True))

    def _load_from_disk(self) -> None:
        if not self.persistence_path or not self.persistence_path.exists():
            return

        try:
            raw = self.persistence_path.read_text() or "{}"
            data = json.loads(raw)
        except (OSError, json.JSONDecodeError):
            data = {}

        if isinstance(data, dict):
            self._tree = data


def _overlaps(listener_path: str, written_path: str) -> bool:
    if not listener_path or not written_path:
        return True
    return (
        written_path == listener_path
        or written_path.startswith(listener_path + "/")
        or listener_path.startswith(written_path + "/")
    )
