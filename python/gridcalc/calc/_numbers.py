"""Locale-ambiguous number normalization and display formatting.

Grid values arrive in whatever shape the user typed or the grid stored:
``"1.234,56"`` (dot thousands, comma decimal), ``"1234.56"``, ``"1234"``,
``"1,5"`` or an already numeric value.  :func:`normalize_number` maps all of
them onto a canonical Python number; :func:`format_number` goes the other
way and renders a number with ``,`` as the decimal separator and ``.`` as
the thousands separator.

The separator heuristic is lossy.  A single comma followed by at most three
digits is read as a decimal comma, so ``"1,234"`` is ``1.234`` and never
``1234``; a single comma followed by four or more digits is read as a
thousands separator.  Callers that need exact round-trips should format with
thousands separators and at most three decimals.
"""

from __future__ import annotations

import math
import re
from decimal import ROUND_HALF_UP, Context, Decimal
from typing import Any

DEFAULT_DECIMAL_PLACES = 2

# Longest leading numeric prefix, like a lenient float parser.
_LEADING_NUMBER = re.compile(r"[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")

# Swap the canonical separators for display ones.
_DISPLAY_SEPARATORS = str.maketrans({",": ".", ".": ","})

_MIN_PRECISION = 28


def _parse_leading(text: str) -> float:
    m = _LEADING_NUMBER.match(text)
    if not m:
        return 0.0
    return float(m.group())


def normalize_number(raw: Any) -> float | int:
    """Convert a raw grid value into a canonical number.

    ``None`` and blank strings become ``0``.  Native ``int``/``float`` values
    are returned unchanged (``NaN`` becomes ``0``), which keeps the function
    idempotent.  Strings are interpreted as follows:

    * both ``.`` and ``,`` present: ``.`` groups thousands, ``,`` is decimal
    * only ``,`` present: one comma with a fractional run of at most three
      digits is a decimal comma, anything else is thousands grouping
    * several ``.`` and no ``,``: every ``.`` groups thousands
    * otherwise the text is parsed as-is

    Unparseable text yields ``0``.
    """
    if raw is None:
        return 0
    if isinstance(raw, (int, float)):
        if isinstance(raw, float) and math.isnan(raw):
            return 0
        return raw

    text = str(raw).strip()
    if not text:
        return 0

    if "." in text and "," in text:
        text = text.replace(".", "").replace(",", ".")
    elif "," in text:
        fraction = text.rsplit(",", 1)[1]
        if text.count(",") == 1 and len(fraction) <= 3:
            text = text.replace(",", ".")
        else:
            text = text.replace(",", "")
    elif text.count(".") > 1:
        text = text.replace(".", "")

    return _parse_leading(text)


def _quantize(number: float, decimal_places: int) -> Decimal:
    """Exact binary value of *number* rounded half away from zero."""
    exact = Decimal(number)
    ctx = Context(prec=max(_MIN_PRECISION, exact.adjusted() + decimal_places + 2))
    return exact.quantize(
        Decimal(1).scaleb(-decimal_places), rounding=ROUND_HALF_UP, context=ctx,
    )


def round_half_up(value: float, decimal_places: int = DEFAULT_DECIMAL_PLACES) -> float:
    """Round to *decimal_places*, ties away from zero.

    Python's ``round()`` uses banker's rounding; grid totals are expected to
    round ``2.5`` up to ``3`` instead.
    """
    number = float(value)
    if not math.isfinite(number):
        return number
    return float(_quantize(number, decimal_places))


def format_number(
    value: Any,
    decimal_places: int = DEFAULT_DECIMAL_PLACES,
    use_thousands: bool = True,
) -> str:
    """Render *value* for display: ``1234.5`` -> ``"1.234,50"``.

    With ``use_thousands=False`` only the decimal separator is swapped
    (``"1234,50"``).  ``None``, ``NaN``, infinities and values that are not
    numbers format to ``"0"``.
    """
    if value is None or isinstance(value, str):
        return "0"
    try:
        number = float(value)
    except (TypeError, ValueError):
        return "0"
    if not math.isfinite(number):
        return "0"

    quantized = _quantize(number, decimal_places)
    text = format(quantized, ",f" if use_thousands else "f")
    return text.translate(_DISPLAY_SEPARATORS)


def to_display(raw: Any, decimal_places: int = DEFAULT_DECIMAL_PLACES) -> str:
    """Normalize a raw grid value and format it with thousands separators."""
    return format_number(normalize_number(raw), decimal_places, True)
