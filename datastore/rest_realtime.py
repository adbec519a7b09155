"""Realtime database client speaking the Firebase REST and streaming API."""

from __future__ import annotations

import itertools
import json
import logging
import threading
from typing import Any, ContextManager, Dict, Iterable, Iterator, List, Optional, Tuple

import httpx

from datastore.base import (
    ChangeCallback,
    ErrorCallback,
    StoreQuery,
    StoreReadError,
    normalize_path,
)

logger = logging.getLogger(__name__)

_listener_ids = itertools.count(1)


def _query_params(query: Optional[StoreQuery]) -> Dict[str, str]:
    if query is None:
        return {}
    params = {"orderBy": json.dumps("$key")}
    if query.start_at is not None:
        params["startAt"] = json.dumps(query.start_at)
    if query.end_at is not None:
        params["endAt"] = json.dumps(query.end_at)
    if query.limit_to_last is not None:
        params["limitToLast"] = str(query.limit_to_last)
    return params


def _as_collection(path: str, payload: Any) -> Dict[str, Any]:
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise StoreReadError(f"Path {path!r} does not hold a collection.")
    return payload


def iter_events(lines: Iterable[str]) -> Iterator[Tuple[str, str]]:
    """Group ``text/event-stream`` lines into ``(event, data)`` pairs."""
    event = ""
    data: List[str] = []
    for line in lines:
        if not line:
            if event or data:
                yield event, "\n".join(data)
            event, data = "", []
            continue
        if line.startswith(":"):
            continue
        name, _, value = line.partition(":")
        value = value[1:] if value.startswith(" ") else value
        if name == "event":
            event = value
        elif name == "data":
            data.append(value)
    if event or data:
        yield event, "\n".join(data)


class StreamSnapshot:
    """Local mirror of a streamed collection, patched by ``put``/``patch`` events."""

    def __init__(self) -> None:
        self.children: Dict[str, Any] = {}

    def apply(self, event: str, payload: Dict[str, Any]) -> None:
        parts = [part for part in str(payload.get("path", "/")).split("/") if part]
        data = payload.get("data")
        if event == "put":
            self._put(parts, data)
        elif event == "patch":
            for child, value in (data or {}).items():
                self._put(parts + [part for part in child.split("/") if part], value)
        else:
            raise ValueError(f"Unsupported stream event {event!r}.")

    def _put(self, parts: List[str], value: Any) -> None:
        if not parts:
            self.children = dict(value) if isinstance(value, dict) else {}
            return
        node = self.children
        for part in parts[:-1]:
            child = node.get(part)
            if not isinstance(child, dict):
                child = {}
                node[part] = child
            node = child
        if value is None:
            node.pop(parts[-1], None)
        else:
            node[parts[-1]] = value


class RestListenerRegistration:
    """A streaming listener running on a daemon thread until ``close``."""

    def __init__(
        self,
        database: "RestRealtimeDatabase",
        path: str,
        query: Optional[StoreQuery],
        on_change: ChangeCallback,
        on_error: Optional[ErrorCallback],
    ) -> None:
        self.listener_id = next(_listener_ids)
        self._database = database
        self._path = path
        self._query = query
        self._on_change = on_change
        self._on_error = on_error
        self._stopped = threading.Event()
        self._response: Optional[httpx.Response] = None
        self._response_lock = threading.Lock()
        self._thread = threading.Thread(
            target=self._run, name=f"rtdb-listener-{self.listener_id}", daemon=True
        )

    @property
    def closed(self) -> bool:
        return self._stopped.is_set()

    def start(self) -> None:
        self._thread.start()

    def close(self) -> None:
        self._stopped.set()
        with self._response_lock:
            response = self._response
        if response is not None:
            response.close()
        logger.debug(
            "Stream listener closed",
            extra={"path": self._path, "listener_id": self.listener_id},
        )

    def _run(self) -> None:
        while not self._stopped.is_set():
            try:
                self._consume()
            except (httpx.HTTPError, httpx.StreamError, StoreReadError, ValueError) as exc:
                if self._stopped.is_set():
                    return
                logger.warning(
                    "Stream listener interrupted; reconnecting",
                    extra={"path": self._path, "listener_id": self.listener_id, "error": str(exc)},
                )
                self._report(exc)
            self._stopped.wait(self._database.stream_retry_seconds)

    def _consume(self) -> None:
        snapshot = StreamSnapshot()
        with self._database._open_stream(self._path, self._query) as response:
            if response.is_error:
                raise StoreReadError(
                    f"Stream request failed with status {response.status_code}."
                )
            with self._response_lock:
                self._response = response
            try:
                for event, data in iter_events(response.iter_lines()):
                    if self._stopped.is_set():
                        return
                    if event == "keep-alive" or not event:
                        continue
                    if event in {"cancel", "auth_revoked"}:
                        raise StoreReadError(f"Stream {event}: {data}")
                    snapshot.apply(event, json.loads(data))
                    children = snapshot.children
                    if self._query is not None:
                        children = self._query.apply(children)
                    if self._stopped.is_set():
                        return
                    self._on_change(dict(children))
            finally:
                with self._response_lock:
                    self._response = None

    def _report(self, exc: Exception) -> None:
        if self._on_error is None:
            return
        error = exc if isinstance(exc, StoreReadError) else StoreReadError(str(exc))
        self._on_error(error)


class RestRealtimeDatabase:
    """Thin httpx client over ``<database_url>/<path>.json``."""

    def __init__(
        self,
        base_url: str,
        auth: Optional[str] = None,
        timeout: float = 30.0,
        stream_retry_seconds: float = 5.0,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.stream_retry_seconds = stream_retry_seconds
        self._auth = auth
        self._timeout = timeout
        self._client = httpx.Client(
            base_url=self.base_url,
            timeout=timeout,
            transport=transport,
            follow_redirects=True,
        )

    def get(self, path: str, query: Optional[StoreQuery] = None) -> Dict[str, Any]:
        normalized = normalize_path(path)
        payload = self._get_json(normalized, _query_params(query))
        children = _as_collection(normalized, payload)
        return query.apply(children) if query is not None else children

    def shallow_keys(self, path: str = "") -> List[str]:
        normalized = normalize_path(path)
        payload = self._get_json(normalized, {"shallow": "true"})
        return sorted(_as_collection(normalized, payload))

    def listen(
        self,
        path: str,
        query: Optional[StoreQuery],
        on_change: ChangeCallback,
        on_error: Optional[ErrorCallback] = None,
    ) -> RestListenerRegistration:
        registration = RestListenerRegistration(
            self, normalize_path(path), query, on_change, on_error
        )
        registration.start()
        return registration

    def close(self) -> None:
        self._client.close()

    def _url(self, path: str) -> str:
        return f"/{path}.json" if path else "/.json"

    def _params(self, params: Dict[str, str]) -> Dict[str, str]:
        if self._auth:
            return {**params, "auth": self._auth}
        return params

    def _get_json(self, path: str, params: Dict[str, str]) -> Any:
        try:
            response = self._client.get(self._url(path), params=self._params(params))
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as exc:
            raise StoreReadError(
                f"Read of {path!r} failed with status {exc.response.status_code}."
            ) from exc
        except httpx.HTTPError as exc:
            raise StoreReadError(f"Read of {path!r} failed: {exc}") from exc
        except ValueError as exc:
            raise StoreReadError(f"Read of {path!r} returned invalid JSON.") from exc

    def _open_stream(self, path: str, query: Optional[StoreQuery]) -> ContextManager[httpx.Response]:
        return self._client.stream(
            "GET",
            self._url(path),
            params=self._params(_query_params(query)),
            headers={"Accept": "text/event-stream"},
            timeout=httpx.Timeout(self._timeout, read=None),
        )
