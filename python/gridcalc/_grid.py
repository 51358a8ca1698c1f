"""InMemoryGrid — a headless grid data source with change notifications."""

from __future__ import annotations

import itertools
from collections.abc import Mapping
from typing import Any, Callable


class InMemoryGrid:
    """Named grids, each holding the raw field values of its current record.

    Writes notify the grid's subscribers synchronously, in subscription
    order.  Reading a grid or field that does not exist raises ``KeyError``.
    """

    __slots__ = ("_grids", "_handlers", "_handles")

    def __init__(self) -> None:
        self._grids: dict[str, dict[str, Any]] = {}
        # handle -> (grid id, handler)
        self._handlers: dict[int, tuple[str, Callable[[str, Any], None]]] = {}
        self._handles = itertools.count(1)

    # ------------------------------------------------------------------
    # Field access
    # ------------------------------------------------------------------

    def read_field(self, grid_id: str, field_name: str) -> Any:
        if grid_id not in self._grids:
            raise KeyError(f"Grid '{grid_id}' does not exist")
        record = self._grids[grid_id]
        if field_name not in record:
            raise KeyError(f"Field '{field_name}' does not exist in grid '{grid_id}'")
        return record[field_name]

    def write_field(self, grid_id: str, field_name: str, value: Any) -> None:
        self._grids.setdefault(grid_id, {})[field_name] = value
        self._notify(grid_id, field_name, value)

    def load(self, grid_id: str, values: Mapping[str, Any], notify: bool = True) -> None:
        """Bulk-write a record; with *notify* each field raises a change."""
        record = self._grids.setdefault(grid_id, {})
        for field_name, value in values.items():
            record[field_name] = value
            if notify:
                self._notify(grid_id, field_name, value)

    def values(self, grid_id: str) -> dict[str, Any]:
        """Snapshot of a grid's fields (empty if the grid does not exist)."""
        return dict(self._grids.get(grid_id, {}))

    def __contains__(self, grid_id: str) -> bool:
        return grid_id in self._grids

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------

    def on_field_change(self, grid_id: str, handler: Callable[[str, Any], None]) -> int:
        handle = next(self._handles)
        self._handlers[handle] = (grid_id, handler)
        return handle

    def unsubscribe(self, handle: int) -> None:
        self._handlers.pop(handle, None)

    def subscriber_count(self, grid_id: str) -> int:
        return sum(1 for gid, _ in self._handlers.values() if gid == grid_id)

    def _notify(self, grid_id: str, field_name: str, value: Any) -> None:
        # Snapshot: handlers may subscribe or unsubscribe while running.
        for gid, handler in list(self._handlers.values()):
            if gid == grid_id:
                handler(field_name, value)

    def __repr__(self) -> str:
        return f"<InMemoryGrid grids={list(self._grids)}>"
