from __future__ import annotations

import copy
from typing import Any, Dict, Optional

from .record_store import ChangeListener, ChangeNotifier, RecordStore, Unsubscribe, split_path


class InMemoryRecordStore(RecordStore):
    """Nested-dict store for development and tests (``STORE_BACKEND=memory``)."""

    def __init__(self, initial: Optional[Dict[str, Any]] = None):
        self._root: Dict[str, Any] = copy.deepcopy(initial) if initial else {}
        self._notifier = ChangeNotifier()

    def _node(self, path: str) -> Optional[Any]:
        node: Any = self._root
        for segment in split_path(path):
            if not isinstance(node, dict) or segment not in node:
                return None
            node = node[segment]
        return node

    def read(self, path: str) -> Optional[Any]:
        return copy.deepcopy(self._node(path))

    def write(self, path: str, value: Any) -> None:
        segments = split_path(path)
        node = self._root
        for segment in segments[:-1]:
            child = node.get(segment)
            if not isinstance(child, dict):
                child = {}
                node[segment] = child
            node = child
        node[segments[-1]] = copy.deepcopy(value)
        self._notifier.notify(path, copy.deepcopy(value))

    def delete(self, path: str) -> None:
        segments = split_path(path)
        trail = [self._root]
        for segment in segments[:-1]:
            child = trail[-1].get(segment)
            if not isinstance(child, dict):
                return
            trail.append(child)
        if segments[-1] not in trail[-1]:
            return
        del trail[-1][segments[-1]]
        # Prune parents left empty, the way a hierarchical store drops empty nodes.
        for depth in range(len(trail) - 1, 0, -1):
            if trail[depth]:
                break
            del trail[depth - 1][segments[depth - 1]]
        self._notifier.notify(path, None)

    def children(self, path: str) -> Dict[str, Any]:
        node = self._node(path)
        if not isinstance(node, dict):
            return {}
        return copy.deepcopy(node)

    def subscribe(self, path: str, on_change: ChangeListener) -> Unsubscribe:
        return self._notifier.subscribe(path, on_change)
