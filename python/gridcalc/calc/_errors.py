"""Exception types raised by the calculation engine.

Only :class:`InvalidCalculationError` is ever visible to callers of the
low-level services; the recompute pipeline wraps everything else in
:class:`ReadFailure`, :class:`FormulaError` or :class:`WriteFailure` and
reports it through :class:`~gridcalc.calc.RecalcResult` instead of raising.
"""

from __future__ import annotations


class GridCalcError(Exception):
    """Base class for all engine errors."""


class InvalidCalculationError(GridCalcError, ValueError):
    """A calculation unit was built from missing or malformed parameters."""


class ReadFailure(GridCalcError):
    """A source field could not be read from the grid data source."""

    def __init__(self, grid_id: str, field: str, cause: BaseException | None = None) -> None:
        super().__init__(f"cannot read {grid_id}.{field}: {cause}")
        self.grid_id = grid_id
        self.field = field
        self.cause = cause


class FormulaError(GridCalcError):
    """The formula of a calculation unit raised or returned a non-number."""

    def __init__(self, config_id: str, cause: BaseException | str) -> None:
        super().__init__(f"formula for {config_id} failed: {cause}")
        self.config_id = config_id
        self.cause = cause


class WriteFailure(GridCalcError):
    """The grid data source rejected a target write."""

    def __init__(self, grid_id: str, field: str, cause: BaseException | None = None) -> None:
        super().__init__(f"cannot write {grid_id}.{field}: {cause}")
        self.grid_id = grid_id
        self.field = field
        self.cause = cause
