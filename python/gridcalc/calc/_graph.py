"""Field dependency graph between the calculation units of one grid."""

from __future__ import annotations

from collections import deque
from collections.abc import Iterable

from gridcalc.calc._unit import CalculationUnit


class DependencyGraph:
    """Tracks which target fields read which other fields.

    Nodes are field names of a single grid.  A unit contributes edges from
    each of its source fields to its target field.
    """

    __slots__ = ("dependencies", "dependents", "units")

    def __init__(self) -> None:
        # target field -> fields it reads from
        self.dependencies: dict[str, set[str]] = {}
        # field -> target fields that read from it (reverse edges)
        self.dependents: dict[str, set[str]] = {}
        # target field -> unit writing it
        self.units: dict[str, CalculationUnit] = {}

    def add_unit(self, unit: CalculationUnit) -> None:
        """Register a unit and its source dependencies."""
        target = unit.target_field
        self.units[target] = unit
        self.dependencies[target] = set(unit.source_fields)
        for source in unit.source_fields:
            self.dependents.setdefault(source, set()).add(target)

    def topological_order(self) -> list[CalculationUnit]:
        """Units in evaluation order (Kahn's algorithm).

        Units feeding another unit come first; independent units keep their
        registration order.  Raises ValueError if units form a cycle.
        """
        targets = list(self.units)
        if not targets:
            return []
        target_set = set(targets)

        # Only count dependencies that are themselves computed fields
        in_degree = {t: len(self.dependencies[t] & target_set) for t in targets}

        queue: deque[str] = deque(t for t in targets if in_degree[t] == 0)
        order: list[str] = []
        while queue:
            target = queue.popleft()
            order.append(target)
            for dep in sorted(self.dependents.get(target, ()), key=targets.index):
                in_degree[dep] -= 1
                if in_degree[dep] == 0:
                    queue.append(dep)

        if len(order) != len(targets):
            missing = sorted(target_set - set(order))
            raise ValueError(f"Circular calculation detected involving: {missing}")

        return [self.units[t] for t in order]

    @classmethod
    def from_units(cls, units: Iterable[CalculationUnit]) -> DependencyGraph:
        graph = cls()
        for unit in units:
            graph.add_unit(unit)
        return graph
