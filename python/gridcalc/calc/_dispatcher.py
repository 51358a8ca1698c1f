"""ChangeDispatcher: turns field-change notifications into debounced recomputes.

Each grid is either UNBOUND (no listener on the data source) or BOUND (one
shared listener, however many units the grid has).  On a notification the
dispatcher looks up the units whose sources include the changed field and
schedules a recompute per unit, keyed by the unit's config id, so a burst of
changes collapses into one recompute.

A unit's target never appears among its own sources, so the notification
raised by writing the result cannot schedule that same unit again.  The
engine refuses registrations that would make units read each other's
targets in a cycle.  An unchanged result is not written back, so a chain of
units stops notifying once its values stop moving.
"""

from __future__ import annotations

import enum
import functools
import logging
import math
from collections.abc import Hashable
from typing import Any

from gridcalc.calc._debounce import DEFAULT_DEBOUNCE_MS, DebounceScheduler
from gridcalc.calc._errors import FormulaError, ReadFailure, WriteFailure
from gridcalc.calc._numbers import normalize_number, round_half_up
from gridcalc.calc._protocol import GridDataSource, RecalcResult
from gridcalc.calc._registry import CalculationRegistry
from gridcalc.calc._unit import CalculationUnit

logger = logging.getLogger(__name__)


class BindingState(enum.Enum):
    UNBOUND = "unbound"
    BOUND = "bound"


class ChangeDispatcher:
    """Listens on a :class:`GridDataSource` and recomputes registered units."""

    def __init__(
        self,
        source: GridDataSource,
        registry: CalculationRegistry,
        scheduler: DebounceScheduler,
        debounce_ms: float = DEFAULT_DEBOUNCE_MS,
    ) -> None:
        self._source = source
        self._registry = registry
        self._scheduler = scheduler
        self._debounce_ms = debounce_ms
        self._subscriptions: dict[str, Hashable] = {}  # grid id -> handle

    @property
    def debounce_ms(self) -> float:
        return self._debounce_ms

    # ------------------------------------------------------------------
    # Binding
    # ------------------------------------------------------------------

    def state(self, grid_id: str) -> BindingState:
        if grid_id in self._subscriptions:
            return BindingState.BOUND
        return BindingState.UNBOUND

    def attach(self, grid_id: str) -> bool:
        """Subscribe to *grid_id*'s changes; ``False`` if already bound."""
        if grid_id in self._subscriptions:
            return False
        handler = functools.partial(self._on_field_change, grid_id)
        self._subscriptions[grid_id] = self._source.on_field_change(grid_id, handler)
        logger.debug("Attached change listener to grid %s", grid_id)
        return True

    def detach(self, grid_id: str) -> bool:
        """Unsubscribe from *grid_id* and drop its pending recomputes."""
        handle = self._subscriptions.pop(grid_id, None)
        for unit in self._registry.units_for_grid(grid_id):
            self._scheduler.cancel(unit.config_id)
        if handle is None:
            return False
        self._source.unsubscribe(handle)
        logger.debug("Detached change listener from grid %s", grid_id)
        return True

    def detach_all(self) -> None:
        for grid_id in list(self._subscriptions):
            self.detach(grid_id)

    @property
    def bound_grids(self) -> list[str]:
        return list(self._subscriptions)

    # ------------------------------------------------------------------
    # Notifications
    # ------------------------------------------------------------------

    def _on_field_change(self, grid_id: str, field_name: str, raw_value: Any) -> None:
        units = [
            u for u in self._registry.units_for_field(grid_id, field_name)
            if u.auto_trigger
        ]
        for unit in units:
            logger.debug(
                "%s changed to %r, scheduling %s", field_name, raw_value, unit.config_id,
            )
            try:
                self._scheduler.schedule(
                    unit.config_id,
                    functools.partial(self.recompute, unit.config_id),
                    self._debounce_ms,
                )
            except RuntimeError:
                logger.exception("Cannot schedule recompute of %s", unit.config_id)

    # ------------------------------------------------------------------
    # Recompute
    # ------------------------------------------------------------------

    def recompute(self, config_id: str) -> RecalcResult | None:
        """Recompute the unit currently registered under *config_id*.

        Returns ``None`` if the unit was removed while its timer was pending.
        """
        unit = self._registry.lookup(config_id)
        if unit is None:
            logger.debug("Calculation %s no longer registered, skipping", config_id)
            return None
        return self.run(unit)

    def force_recalculate(self, unit: CalculationUnit) -> RecalcResult:
        """Recompute *unit* now, superseding any pending debounced recompute."""
        self._scheduler.cancel(unit.config_id)
        return self.run(unit)

    def run(self, unit: CalculationUnit) -> RecalcResult:
        """Read sources, apply the formula, round and write the target.

        Never raises: read failures count as ``0``, formula and write failures
        are logged and reported in the result, leaving the target untouched.
        """
        try:
            value = self.evaluate(unit)
        except FormulaError as exc:
            logger.error("%s", exc)
            return RecalcResult(unit.config_id, unit.target_field, error=exc)

        old_value = self._read_target(unit)
        if old_value not in (None, "") and normalize_number(old_value) == value:
            logger.debug("%s unchanged at %r, not writing", unit.config_id, value)
            return RecalcResult(unit.config_id, unit.target_field, old_value, value)

        try:
            self._source.write_field(unit.grid_id, unit.target_field, value)
        except Exception as exc:
            failure = WriteFailure(unit.grid_id, unit.target_field, exc)
            logger.error("%s", failure)
            return RecalcResult(
                unit.config_id, unit.target_field, old_value, value, error=failure,
            )

        logger.debug("%s = %r", unit.config_id, value)
        return RecalcResult(unit.config_id, unit.target_field, old_value, value, written=True)

    def evaluate(self, unit: CalculationUnit) -> float:
        """Rounded formula result for the grid's current source values."""
        values = {name: self._read_source(unit.grid_id, name) for name in unit.source_fields}
        try:
            result = float(unit.formula(values))
        except Exception as exc:
            raise FormulaError(unit.config_id, exc) from exc
        if not math.isfinite(result):
            raise FormulaError(unit.config_id, f"non-finite result {result!r}")
        return round_half_up(result, unit.decimal_places)

    def _read_source(self, grid_id: str, field_name: str) -> float | int:
        try:
            raw = self._source.read_field(grid_id, field_name)
        except Exception as exc:
            logger.warning("%s; using 0", ReadFailure(grid_id, field_name, exc))
            return 0
        return normalize_number(raw)

    def _read_target(self, unit: CalculationUnit) -> Any:
        try:
            return self._source.read_field(unit.grid_id, unit.target_field)
        except Exception:
            logger.debug("Target %s not readable before write", unit.config_id)
            return None
