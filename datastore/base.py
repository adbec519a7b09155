"""Shared pieces of the realtime store clients."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, Mapping, Optional

ChangeCallback = Callable[[Dict[str, Any]], None]
ErrorCallback = Callable[[Exception], None]


class StoreReadError(RuntimeError):
    """A read against the realtime store failed (network, permission, payload)."""


@dataclass(frozen=True)
class StoreQuery:
    """Key-ordered query: inclusive ``start_at``/``end_at`` then ``limit_to_last``."""

    start_at: Optional[str] = None
    end_at: Optional[str] = None
    limit_to_last: Optional[int] = None

    def apply(self, children: Mapping[str, Any]) -> Dict[str, Any]:
        keys = sorted(children)
        if self.start_at is not None:
            keys = [key for key in keys if key >= self.start_at]
        if self.end_at is not None:
            keys = [key for key in keys if key <= self.end_at]
        if self.limit_to_last is not None:
            keys = keys[-self.limit_to_last :] if self.limit_to_last > 0 else []
        return {key: children[key] for key in keys}


def normalize_path(path: str) -> str:
    return "/".join(part for part in path.split("/") if part)
