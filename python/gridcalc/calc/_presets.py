"""Ready-made formulas for common line-item calculations.

Each builder returns a formula suitable for
:meth:`GridCalcEngine.register_calculation`, reading the normalized values
of the named fields.
"""

from __future__ import annotations

from collections.abc import Mapping

from gridcalc.calc._unit import Formula

DEFAULT_TAX_PERCENT = 10


def multiply(left: str, right: str) -> Formula:
    """``left * right``, e.g. quantity times unit price."""

    def formula(values: Mapping[str, float]) -> float:
        return values[left] * values[right]

    return formula


def add_tax(price: str, tax_percent: float = DEFAULT_TAX_PERCENT) -> Formula:
    """Price including a percentage tax."""

    def formula(values: Mapping[str, float]) -> float:
        return values[price] * (1 + tax_percent / 100)

    return formula


def subtotal_with_discount(quantity: str, price: str, discount: str) -> Formula:
    """``quantity * price`` reduced by the percentage held in *discount*."""

    def formula(values: Mapping[str, float]) -> float:
        subtotal = values[quantity] * values[price]
        return subtotal * (1 - values[discount] / 100)

    return formula


def total(*fields: str) -> Formula:
    def formula(values: Mapping[str, float]) -> float:
        return sum(values[f] for f in fields)

    return formula


def average(*fields: str) -> Formula:
    if not fields:
        raise ValueError("average() needs at least one field")

    def formula(values: Mapping[str, float]) -> float:
        return sum(values[f] for f in fields) / len(fields)

    return formula
