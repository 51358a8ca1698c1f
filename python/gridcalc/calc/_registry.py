"""Keyed store of calculation units, one per (grid, target field)."""

from __future__ import annotations

import logging

from gridcalc.calc._unit import CalculationUnit, make_config_id

logger = logging.getLogger(__name__)


class CalculationRegistry:
    """Maps ``"grid::target"`` config ids to :class:`CalculationUnit`.

    Registering under an existing id replaces the previous unit.  Iteration
    order is registration order, a replaced unit moving to the end.
    """

    __slots__ = ("_units",)

    def __init__(self) -> None:
        self._units: dict[str, CalculationUnit] = {}

    def register(self, unit: CalculationUnit) -> str | None:
        """Store *unit* and return its config id, or ``None`` if it is not a unit."""
        if not isinstance(unit, CalculationUnit):
            logger.error("Refusing to register %r: not a CalculationUnit", unit)
            return None
        config_id = unit.config_id
        replaced = self._units.pop(config_id, None)
        self._units[config_id] = unit
        if replaced is not None:
            logger.debug("Replaced calculation %s", config_id)
        return config_id

    def get(
        self, grid_id: str, target_field: str | None = None,
    ) -> CalculationUnit | list[CalculationUnit] | None:
        """Exact lookup when *target_field* is given, else every unit of the grid.

        A grid without units yields ``None``, never an empty list.
        """
        if target_field is not None:
            return self._units.get(make_config_id(grid_id, target_field))
        units = self.units_for_grid(grid_id)
        return units or None

    def lookup(self, config_id: str) -> CalculationUnit | None:
        return self._units.get(config_id)

    def units_for_grid(self, grid_id: str) -> list[CalculationUnit]:
        return [u for u in self._units.values() if u.grid_id == grid_id]

    def units_for_field(self, grid_id: str, field_name: str) -> list[CalculationUnit]:
        """Units of *grid_id* that list *field_name* among their sources."""
        return [
            u for u in self._units.values()
            if u.grid_id == grid_id and u.depends_on(field_name)
        ]

    def remove(self, grid_id: str, target_field: str | None = None) -> bool:
        """Remove one unit, or all units of the grid; ``True`` if any went."""
        if target_field is not None:
            return self._units.pop(make_config_id(grid_id, target_field), None) is not None
        doomed = [cid for cid, u in self._units.items() if u.grid_id == grid_id]
        for config_id in doomed:
            del self._units[config_id]
        return bool(doomed)

    def all(self, grid_id: str | None = None) -> dict[str, CalculationUnit]:
        """Snapshot of config id -> unit, optionally for one grid."""
        return {
            cid: u for cid, u in self._units.items()
            if grid_id is None or u.grid_id == grid_id
        }

    def grids(self) -> list[str]:
        return list(dict.fromkeys(u.grid_id for u in self._units.values()))

    def __contains__(self, config_id: object) -> bool:
        return config_id in self._units

    def __len__(self) -> int:
        return len(self._units)
