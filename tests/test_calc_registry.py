"""Tests for gridcalc.calc CalculationUnit and CalculationRegistry."""

from __future__ import annotations

import dataclasses

import pytest
from gridcalc.calc._errors import InvalidCalculationError
from gridcalc.calc._registry import CalculationRegistry
from gridcalc.calc._unit import CalculationUnit, make_config_id


def _product(values: dict[str, float]) -> float:
    return values["QTY"] * values["PRICE"]


def _unit(grid: str = "inv", target: str = "TOTAL", formula=_product, **kw) -> CalculationUnit:
    return CalculationUnit(grid, target, kw.pop("sources", ["QTY", "PRICE"]), formula, **kw)


class TestCalculationUnit:
    def test_config_id(self) -> None:
        assert _unit().config_id == "inv::TOTAL"
        assert make_config_id("a", "b") == "a::b"

    def test_defaults(self) -> None:
        u = _unit()
        assert u.decimal_places == 2
        assert u.auto_trigger is True
        assert u.trigger_on_register is False

    def test_duplicate_sources_collapse_in_order(self) -> None:
        u = _unit(sources=["PRICE", "QTY", "PRICE"])
        assert u.source_fields == ("PRICE", "QTY")
        assert u.depends_on("QTY")
        assert not u.depends_on("TOTAL")

    def test_frozen(self) -> None:
        with pytest.raises(dataclasses.FrozenInstanceError):
            _unit().target_field = "OTHER"  # type: ignore[misc]

    def test_target_in_sources_rejected(self) -> None:
        with pytest.raises(InvalidCalculationError, match="cannot also be a source"):
            _unit(sources=["QTY", "TOTAL"])

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"grid": ""},
            {"target": ""},
            {"target": None},
            {"sources": []},
            {"sources": "QTY"},
            {"sources": ["QTY", ""]},
            {"formula": None},
            {"decimal_places": -1},
            {"decimal_places": 1.5},
            {"decimal_places": True},
        ],
    )
    def test_invalid_parameters(self, kwargs: dict) -> None:
        with pytest.raises(InvalidCalculationError):
            _unit(**kwargs)

    def test_invalid_is_value_error(self) -> None:
        with pytest.raises(ValueError):
            _unit(sources=[])


class TestRegister:
    def test_register_returns_config_id(self) -> None:
        reg = CalculationRegistry()
        assert reg.register(_unit()) == "inv::TOTAL"
        assert "inv::TOTAL" in reg
        assert len(reg) == 1

    def test_last_write_wins(self) -> None:
        def second(values: dict[str, float]) -> float:
            return 0.0

        reg = CalculationRegistry()
        reg.register(_unit())
        reg.register(_unit(formula=second))
        assert len(reg) == 1
        assert reg.get("inv", "TOTAL").formula is second

    def test_non_unit_rejected(self) -> None:
        reg = CalculationRegistry()
        assert reg.register({"grid_id": "inv"}) is None  # type: ignore[arg-type]
        assert len(reg) == 0


class TestGet:
    def test_exact(self) -> None:
        reg = CalculationRegistry()
        u = _unit()
        reg.register(u)
        assert reg.get("inv", "TOTAL") is u
        assert reg.get("inv", "MISSING") is None
        assert reg.lookup("inv::TOTAL") is u

    def test_all_for_grid(self) -> None:
        reg = CalculationRegistry()
        a = _unit(target="TOTAL")
        b = _unit(target="NET")
        c = _unit(grid="other")
        for u in (a, b, c):
            reg.register(u)
        assert reg.get("inv") == [a, b]

    def test_unknown_grid_is_none_not_empty_list(self) -> None:
        assert CalculationRegistry().get("nope") is None

    def test_units_for_field(self) -> None:
        reg = CalculationRegistry()
        reg.register(_unit(target="TOTAL"))
        reg.register(_unit(target="TAX", sources=["PRICE"]))
        assert [u.target_field for u in reg.units_for_field("inv", "PRICE")] == ["TOTAL", "TAX"]
        assert [u.target_field for u in reg.units_for_field("inv", "QTY")] == ["TOTAL"]
        assert reg.units_for_field("other", "QTY") == []


class TestRemove:
    def test_remove_single(self) -> None:
        reg = CalculationRegistry()
        reg.register(_unit(target="TOTAL"))
        reg.register(_unit(target="NET"))
        assert reg.remove("inv", "TOTAL") is True
        assert reg.remove("inv", "TOTAL") is False
        assert list(reg.all()) == ["inv::NET"]

    def test_remove_grid(self) -> None:
        reg = CalculationRegistry()
        reg.register(_unit(target="TOTAL"))
        reg.register(_unit(target="NET"))
        reg.register(_unit(grid="other"))
        assert reg.remove("inv") is True
        assert reg.get("inv") is None
        assert reg.grids() == ["other"]
        assert reg.remove("inv") is False


class TestAll:
    def test_snapshot(self) -> None:
        reg = CalculationRegistry()
        reg.register(_unit(target="TOTAL"))
        reg.register(_unit(grid="other"))
        snap = reg.all()
        assert set(snap) == {"inv::TOTAL", "other::TOTAL"}
        snap.clear()
        assert len(reg) == 2

    def test_filtered(self) -> None:
        reg = CalculationRegistry()
        reg.register(_unit(target="TOTAL"))
        reg.register(_unit(grid="other"))
        assert list(reg.all("other")) == ["other::TOTAL"]
