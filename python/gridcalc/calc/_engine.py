"""GridCalcEngine: the caller-facing calculation API for one data source."""

from __future__ import annotations

import asyncio
import functools
import logging
from collections.abc import Iterable
from typing import Any

from gridcalc.calc import _presets
from gridcalc.calc._debounce import DEFAULT_DEBOUNCE_MS, DebounceScheduler
from gridcalc.calc._dispatcher import ChangeDispatcher
from gridcalc.calc._errors import FormulaError, InvalidCalculationError
from gridcalc.calc._graph import DependencyGraph
from gridcalc.calc._numbers import DEFAULT_DECIMAL_PLACES, format_number, normalize_number
from gridcalc.calc._protocol import GridDataSource
from gridcalc.calc._registry import CalculationRegistry
from gridcalc.calc._unit import CalculationUnit, Formula

logger = logging.getLogger(__name__)

DEFAULT_REFRESH_DELAY_MS = 50


class GridCalcEngine:
    """Keeps computed grid fields in sync with their source fields.

    Usage::

        engine = GridCalcEngine(grid, loop=loop)
        engine.register_calculation(
            "inv", ["QTY", "PRICE"], "TOTAL",
            lambda v: v["QTY"] * v["PRICE"],
        )
        grid.write_field("inv", "QTY", 3)  # TOTAL follows after the debounce

    Public methods never raise for bad registrations or failing formulas:
    they log and return ``None``, ``False`` or ``0.0``.
    """

    def __init__(
        self,
        source: GridDataSource,
        *,
        loop: asyncio.AbstractEventLoop | None = None,
        debounce_ms: float = DEFAULT_DEBOUNCE_MS,
        registry: CalculationRegistry | None = None,
        scheduler: DebounceScheduler | None = None,
    ) -> None:
        self._source = source
        self._registry = registry if registry is not None else CalculationRegistry()
        self._scheduler = scheduler if scheduler is not None else DebounceScheduler(loop)
        self._dispatcher = ChangeDispatcher(
            source, self._registry, self._scheduler, debounce_ms,
        )

    @property
    def registry(self) -> CalculationRegistry:
        return self._registry

    @property
    def scheduler(self) -> DebounceScheduler:
        return self._scheduler

    @property
    def dispatcher(self) -> ChangeDispatcher:
        return self._dispatcher

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register_calculation(
        self,
        grid_id: str,
        source_fields: Iterable[str],
        target_field: str,
        formula: Formula,
        *,
        decimal_places: int = DEFAULT_DECIMAL_PLACES,
        auto_trigger: bool = True,
        trigger_on_register: bool = False,
    ) -> str | None:
        """Register (or replace) the calculation of *target_field*.

        Returns the config id ``"grid::target"``, or ``None`` when the
        parameters are invalid or the unit would close a cycle with other
        units of the grid, in which case nothing is changed.
        """
        try:
            unit = CalculationUnit(
                grid_id=grid_id,
                target_field=target_field,
                source_fields=source_fields,  # type: ignore[arg-type]
                formula=formula,
                decimal_places=decimal_places,
                auto_trigger=auto_trigger,
                trigger_on_register=trigger_on_register,
            )
        except InvalidCalculationError as exc:
            logger.error("Invalid calculation for %r -> %r: %s", grid_id, target_field, exc)
            return None

        cycle = self._find_cycle(unit)
        if cycle is not None:
            logger.error("Rejected calculation %s: %s", unit.config_id, cycle)
            return None

        config_id = self._registry.register(unit)
        if config_id is None:
            return None

        if auto_trigger:
            self._dispatcher.attach(grid_id)
        else:
            self._scheduler.cancel(config_id)
            if not self._has_live_units(grid_id):
                self._dispatcher.detach(grid_id)

        logger.info(
            "Registered calculation %s from %s", config_id, ", ".join(unit.source_fields),
        )
        if trigger_on_register:
            self._dispatcher.force_recalculate(unit)
        return config_id

    def _has_live_units(self, grid_id: str) -> bool:
        return any(u.auto_trigger for u in self._registry.units_for_grid(grid_id))

    def _find_cycle(self, unit: CalculationUnit) -> str | None:
        """Describe the cycle *unit* would close among its grid's units, if any."""
        units = [
            u for u in self._registry.units_for_grid(unit.grid_id)
            if u.config_id != unit.config_id
        ]
        try:
            DependencyGraph.from_units([*units, unit]).topological_order()
        except ValueError as exc:
            return str(exc)
        return None

    def get_calculation(
        self, grid_id: str, target_field: str | None = None,
    ) -> CalculationUnit | list[CalculationUnit] | None:
        return self._registry.get(grid_id, target_field)

    def all_calculations(self, grid_id: str | None = None) -> dict[str, CalculationUnit]:
        return self._registry.all(grid_id)

    def clear_calculation(self, grid_id: str, target_field: str | None = None) -> bool:
        """Remove one calculation, or every calculation of *grid_id*.

        Pending recomputes of removed units are cancelled and the grid's
        listener is detached once no auto-triggered unit remains.
        """
        if target_field is not None:
            unit = self._registry.get(grid_id, target_field)
            doomed = [unit] if isinstance(unit, CalculationUnit) else []
        else:
            doomed = self._registry.units_for_grid(grid_id)

        removed = self._registry.remove(grid_id, target_field)
        for unit in doomed:
            self._scheduler.cancel(unit.config_id)
        if not self._has_live_units(grid_id):
            self._dispatcher.detach(grid_id)

        if removed:
            logger.info("Cleared %d calculation(s) for grid %s", len(doomed), grid_id)
        else:
            logger.warning(
                "No calculation to clear for %s%s",
                grid_id, f" -> {target_field}" if target_field else "",
            )
        return removed

    # ------------------------------------------------------------------
    # Computation
    # ------------------------------------------------------------------

    def force_recalculate(self, grid_id: str, target_field: str) -> float:
        """Recompute a registered calculation immediately; ``0.0`` on failure."""
        unit = self._registry.get(grid_id, target_field)
        if not isinstance(unit, CalculationUnit):
            logger.warning("No calculation registered for %s -> %s", grid_id, target_field)
            return 0.0
        result = self._dispatcher.force_recalculate(unit)
        if result.new_value is None:
            return 0.0
        return result.new_value

    def calculate(
        self,
        grid_id: str,
        source_fields: Iterable[str],
        target_field: str,
        formula: Formula,
        decimal_places: int = DEFAULT_DECIMAL_PLACES,
    ) -> float:
        """One-off computation and write-back, without registering anything."""
        try:
            unit = CalculationUnit(
                grid_id, target_field, source_fields,  # type: ignore[arg-type]
                formula, decimal_places, auto_trigger=False,
            )
        except InvalidCalculationError as exc:
            logger.error("Invalid calculation for %r -> %r: %s", grid_id, target_field, exc)
            return 0.0
        result = self._dispatcher.run(unit)
        if result.new_value is None:
            return 0.0
        return result.new_value

    def evaluate(self, grid_id: str, target_field: str) -> float | None:
        """Formula result for current values, without writing it back."""
        unit = self._registry.get(grid_id, target_field)
        if not isinstance(unit, CalculationUnit):
            return None
        try:
            return self._dispatcher.evaluate(unit)
        except FormulaError as exc:
            logger.error("%s", exc)
            return None

    def refresh(
        self,
        grid_id: str,
        target_field: str | None = None,
        delay_ms: float = DEFAULT_REFRESH_DELAY_MS,
    ) -> bool:
        """Recompute one or all calculations of *grid_id* after *delay_ms*.

        Several calculations run in dependency order.  Returns ``False`` when
        nothing is registered for the request or no event loop is available.
        """
        if target_field is not None:
            unit = self._registry.get(grid_id, target_field)
            units = [unit] if isinstance(unit, CalculationUnit) else []
        else:
            units = self._registry.units_for_grid(grid_id)
        if not units:
            logger.warning(
                "Nothing to refresh for %s%s",
                grid_id, f" -> {target_field}" if target_field else "",
            )
            return False

        try:
            ordered = DependencyGraph.from_units(units).topological_order()
        except ValueError as exc:
            logger.warning("Grid %s: %s; refreshing in registration order", grid_id, exc)
            ordered = units

        config_ids = [u.config_id for u in ordered]
        key = f"refresh::{grid_id}" + (f"::{target_field}" if target_field else "")
        try:
            self._scheduler.schedule(
                key, functools.partial(self._refresh_now, config_ids), delay_ms,
            )
        except RuntimeError:
            logger.exception("Cannot schedule refresh of grid %s", grid_id)
            return False
        logger.debug("Refresh of %d calculation(s) for %s scheduled", len(config_ids), grid_id)
        return True

    def _refresh_now(self, config_ids: list[str]) -> None:
        for config_id in config_ids:
            self._dispatcher.recompute(config_id)

    # ------------------------------------------------------------------
    # Quick setups
    # ------------------------------------------------------------------

    def multiply_columns(
        self, grid_id: str, left: str, right: str, target_field: str,
        decimal_places: int = DEFAULT_DECIMAL_PLACES,
    ) -> str | None:
        return self.register_calculation(
            grid_id, [left, right], target_field,
            _presets.multiply(left, right), decimal_places=decimal_places,
        )

    def price_with_tax(
        self, grid_id: str, price: str, target_field: str,
        tax_percent: float = _presets.DEFAULT_TAX_PERCENT,
        decimal_places: int = DEFAULT_DECIMAL_PLACES,
    ) -> str | None:
        return self.register_calculation(
            grid_id, [price], target_field,
            _presets.add_tax(price, tax_percent), decimal_places=decimal_places,
        )

    def subtotal_with_discount(
        self, grid_id: str, quantity: str, price: str, discount: str, target_field: str,
        decimal_places: int = DEFAULT_DECIMAL_PLACES,
    ) -> str | None:
        return self.register_calculation(
            grid_id, [quantity, price, discount], target_field,
            _presets.subtotal_with_discount(quantity, price, discount),
            decimal_places=decimal_places,
        )

    # ------------------------------------------------------------------
    # Number helpers
    # ------------------------------------------------------------------

    @staticmethod
    def normalize_number(raw: Any) -> float | int:
        return normalize_number(raw)

    @staticmethod
    def format_number(
        value: Any, decimal_places: int = DEFAULT_DECIMAL_PLACES, use_thousands: bool = True,
    ) -> str:
        return format_number(value, decimal_places, use_thousands)

    # ------------------------------------------------------------------
    # Teardown
    # ------------------------------------------------------------------

    def close(self) -> None:
        """Detach every listener and cancel every pending timer."""
        self._dispatcher.detach_all()
        self._scheduler.clear()

    def __enter__(self) -> GridCalcEngine:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    def __repr__(self) -> str:
        return (
            f"<GridCalcEngine calculations={len(self._registry)} "
            f"grids={self._dispatcher.bound_grids}>"
        )
