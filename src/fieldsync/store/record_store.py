from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional, Protocol, Tuple

from ..core.exceptions import ValidationError

ChangeListener = Callable[[str, Optional[Any]], None]
Unsubscribe = Callable[[], None]

_FORBIDDEN_SEGMENT_CHARS = set(".#$[]/")


class RecordStore(Protocol):
    """Keyed, hierarchical document store.

    Paths are slash separated (``attendance/2024-03-10/alice``). Reading a
    path that holds children returns the assembled subtree.
    """

    def read(self, path: str) -> Optional[Any]:
        raise NotImplementedError

    def write(self, path: str, value: Any) -> None:
        """Full overwrite of the addressed node."""

        raise NotImplementedError

    def delete(self, path: str) -> None:
        raise NotImplementedError

    def children(self, path: str) -> Dict[str, Any]:
        """One-level listing of the node at ``path`` ({} when absent)."""

        raise NotImplementedError

    def subscribe(self, path: str, on_change: ChangeListener) -> Unsubscribe:
        raise NotImplementedError


def join_path(*segments: str) -> str:
    parts: list[str] = []
    for segment in segments:
        text = str(segment).strip()
        if not text or _FORBIDDEN_SEGMENT_CHARS.intersection(text):
            raise ValidationError(f"Invalid path segment: {segment!r}")
        parts.append(text)
    return "/".join(parts)


def split_path(path: str) -> Tuple[str, ...]:
    return tuple(p for p in (path or "").strip("/").split("/") if p)


def is_under(path: str, prefix: str) -> bool:
    """True when ``path`` equals ``prefix`` or lies in its subtree."""
    p, q = split_path(path), split_path(prefix)
    return p[: len(q)] == q


class ChangeNotifier:
    """In-process change fan-out shared by the store implementations.

    Listeners registered on a path are called for any write/delete at, below
    or above that path (a write above replaces the watched node).
    """

    def __init__(self) -> None:
        self._listeners: List[Tuple[str, ChangeListener]] = []

    def subscribe(self, path: str, on_change: ChangeListener) -> Unsubscribe:
        entry = (path, on_change)
        self._listeners.append(entry)

        def unsubscribe() -> None:
            if entry in self._listeners:
                self._listeners.remove(entry)

        return unsubscribe

    def notify(self, changed_path: str, value: Optional[Any]) -> None:
        for watched, listener in list(self._listeners):
            if is_under(changed_path, watched) or is_under(watched, changed_path):
                listener(changed_path, value)
