"""CalculationUnit: one target field, its formula and its trigger fields."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Callable

from gridcalc.calc._errors import InvalidCalculationError
from gridcalc.calc._numbers import DEFAULT_DECIMAL_PLACES

Formula = Callable[[Mapping[str, float]], float]

CONFIG_ID_SEPARATOR = "::"


def make_config_id(grid_id: str, target_field: str) -> str:
    """Composite registry key: ``"inv::TOTAL"``."""
    return f"{grid_id}{CONFIG_ID_SEPARATOR}{target_field}"


def _require_name(value: object, what: str) -> None:
    if not isinstance(value, str) or not value.strip():
        raise InvalidCalculationError(f"{what} must be a non-empty string, got {value!r}")


def _collapse_fields(fields: object) -> tuple[str, ...]:
    if isinstance(fields, str) or not isinstance(fields, Iterable):
        raise InvalidCalculationError(
            f"source_fields must be a list of field names, got {fields!r}"
        )
    seen: dict[str, None] = {}
    for name in fields:
        _require_name(name, "source field")
        seen.setdefault(name, None)
    if not seen:
        raise InvalidCalculationError("source_fields must not be empty")
    return tuple(seen)


@dataclass(frozen=True)
class CalculationUnit:
    """Immutable description of how one target field is computed.

    ``source_fields`` keeps first-seen order with duplicates removed.  A unit
    whose target is also one of its sources is rejected, since writing the
    result would trigger the unit again.
    """

    grid_id: str
    target_field: str
    source_fields: tuple[str, ...]
    formula: Formula = field(compare=False)
    decimal_places: int = DEFAULT_DECIMAL_PLACES
    auto_trigger: bool = True
    trigger_on_register: bool = False

    def __post_init__(self) -> None:
        _require_name(self.grid_id, "grid_id")
        _require_name(self.target_field, "target_field")
        sources = _collapse_fields(self.source_fields)
        if not callable(self.formula):
            raise InvalidCalculationError(f"formula must be callable, got {self.formula!r}")
        places = self.decimal_places
        if isinstance(places, bool) or not isinstance(places, int) or places < 0:
            raise InvalidCalculationError(
                f"decimal_places must be an integer >= 0, got {places!r}"
            )
        if self.target_field in sources:
            raise InvalidCalculationError(
                f"target field {self.target_field!r} cannot also be a source field"
            )
        object.__setattr__(self, "source_fields", sources)

    @property
    def config_id(self) -> str:
        return make_config_id(self.grid_id, self.target_field)

    def depends_on(self, field_name: str) -> bool:
        return field_name in self.source_fields
