"""gridcalc — reactive field calculations for spreadsheet-like grids.

Usage::

    import asyncio
    from gridcalc import GridCalcEngine, InMemoryGrid

    loop = asyncio.new_event_loop()
    grid = InMemoryGrid()
    grid.load("inv", {"QTY": 3, "PRICE": "10,50"})

    engine = GridCalcEngine(grid, loop=loop)
    engine.register_calculation(
        "inv", ["QTY", "PRICE"], "TOTAL",
        lambda v: v["QTY"] * v["PRICE"],
        trigger_on_register=True,
    )
    grid.read_field("inv", "TOTAL")  # 31.5

    grid.write_field("inv", "QTY", 4)
    loop.run_until_complete(asyncio.sleep(0.1))
    grid.read_field("inv", "TOTAL")  # 42.0
"""

from gridcalc._grid import InMemoryGrid
from gridcalc.calc import (
    CalculationRegistry,
    CalculationUnit,
    DebounceScheduler,
    GridCalcEngine,
    GridDataSource,
    RecalcResult,
    format_number,
    normalize_number,
    to_display,
)

__version__ = "0.1.0"

__all__ = [
    "__version__",
    "CalculationRegistry",
    "CalculationUnit",
    "DebounceScheduler",
    "GridCalcEngine",
    "GridDataSource",
    "InMemoryGrid",
    "RecalcResult",
    "format_number",
    "normalize_number",
    "to_display",
]
