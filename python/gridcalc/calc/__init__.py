"""gridcalc.calc - Reactive field calculations for grid data sources."""

from gridcalc.calc import _presets as presets
from gridcalc.calc._debounce import DebounceEntry, DebounceScheduler
from gridcalc.calc._dispatcher import BindingState, ChangeDispatcher
from gridcalc.calc._engine import GridCalcEngine
from gridcalc.calc._errors import (
    FormulaError,
    GridCalcError,
    InvalidCalculationError,
    ReadFailure,
    WriteFailure,
)
from gridcalc.calc._graph import DependencyGraph
from gridcalc.calc._numbers import format_number, normalize_number, round_half_up, to_display
from gridcalc.calc._protocol import GridDataSource, RecalcResult
from gridcalc.calc._registry import CalculationRegistry
from gridcalc.calc._unit import CalculationUnit, make_config_id

__all__ = [
    "BindingState",
    "CalculationRegistry",
    "CalculationUnit",
    "ChangeDispatcher",
    "DebounceEntry",
    "DebounceScheduler",
    "DependencyGraph",
    "FormulaError",
    "GridCalcEngine",
    "GridCalcError",
    "GridDataSource",
    "InvalidCalculationError",
    "ReadFailure",
    "RecalcResult",
    "WriteFailure",
    "format_number",
    "make_config_id",
    "normalize_number",
    "presets",
    "round_half_up",
    "to_display",
]
