"""GridDataSource protocol and recalculation result dataclass."""

from __future__ import annotations

from collections.abc import Hashable
from dataclasses import dataclass
from typing import Any, Callable, Protocol, runtime_checkable

from gridcalc.calc._errors import GridCalcError

FieldChangeHandler = Callable[[str, Any], None]


@runtime_checkable
class GridDataSource(Protocol):
    """The grid layer the engine reads from, writes to and listens on."""

    def read_field(self, grid_id: str, field_name: str) -> Any:
        """Raw value of *field_name* in the grid's current record.

        May raise if the grid, record or field does not exist.
        """
        ...

    def write_field(self, grid_id: str, field_name: str, value: Any) -> None:
        """Store *value* and notify the grid's change handlers."""
        ...

    def on_field_change(self, grid_id: str, handler: FieldChangeHandler) -> Hashable:
        """Call ``handler(field_name, raw_value)`` on every change; return a handle."""
        ...

    def unsubscribe(self, handle: Hashable) -> None:
        """Stop delivering changes to the handler behind *handle*."""
        ...


@dataclass(frozen=True)
class RecalcResult:
    """Outcome of one recompute of a calculation unit."""

    config_id: str
    target_field: str
    old_value: Any = None  # raw target value before the write
    new_value: float | None = None  # rounded formula result
    written: bool = False  # False when unchanged or failed
    error: GridCalcError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None
