"""Physical unit resolution."""

from __future__ import annotations

import pytest

from svg_laser.svg_reader import SvgDocument
from svg_laser.units import (
    UNRESOLVED,
    Unit,
    parse_physical_length,
    physical_width_of,
    resolve_units,
)


def test_millimetre_height_against_viewbox():
    r = resolve_units("50mm", "25mm", (0, 0, 100, 50))
    assert r.unit is Unit.MILLIMETER
    assert r.scale == pytest.approx(0.5)
    assert r.source == "height"


def test_height_preferred_over_width():
    r = resolve_units("100mm", "10mm", (0, 0, 100, 50))
    assert r.scale == pytest.approx(0.2)
    assert r.source == "height"


def test_width_used_when_height_not_physical():
    r = resolve_units("40mm", "100px", (0, 0, 80, 100))
    assert r.unit is Unit.MILLIMETER
    assert r.scale == pytest.approx(0.5)
    assert r.source == "width"


def test_inches():
    r = resolve_units("2in", "1in", (0, 0, 200, 100))
    assert r.unit is Unit.INCH
    assert r.scale == pytest.approx(0.01)


@pytest.mark.parametrize("height,vb_height,unit,scale", [
    ("2.5cm", 50, Unit.MILLIMETER, 0.5),
    ("72pt", 72, Unit.INCH, 1 / 72),
    ("6pc", 100, Unit.INCH, 0.01),
    ("10MM", 10, Unit.MILLIMETER, 1.0),
])
def test_other_suffixes(height, vb_height, unit, scale):
    r = resolve_units(None, height, (0, 0, 10, vb_height))
    assert r.unit is unit
    assert r.scale == pytest.approx(scale)


@pytest.mark.parametrize("width,height", [
    (None, None),
    ("100", "50"),
    ("100px", "50px"),
    ("100%", "100%"),
    ("-5mm", "0mm"),
    ("garbage", "mm"),
])
def test_no_physical_size_is_unresolved(width, height):
    r = resolve_units(width, height, (0, 0, 100, 50))
    assert r == UNRESOLVED
    assert r.unit.insunits == 0
    assert r.scale == 1.0
    assert not r.resolved


def test_model_extent_used_without_viewbox():
    r = resolve_units("80mm", "10mm", None, model_extent=(40.0, 20.0))
    assert r.scale == pytest.approx(0.5)
    assert r.source == "height"


def test_zero_extent_axis_falls_through_to_width():
    # A horizontal line has no height to scale against.
    r = resolve_units("20mm", "10mm", None, model_extent=(40.0, 0.0))
    assert r.source == "width"
    assert r.scale == pytest.approx(0.5)


def test_no_viewbox_and_no_geometry_is_unresolved():
    assert resolve_units("10mm", "10mm", None) == UNRESOLVED


def test_assume_mm_is_opt_in():
    assert resolve_units(None, None, (0, 0, 10, 10)) == UNRESOLVED
    r = resolve_units(None, None, (0, 0, 10, 10), assume_mm=True)
    assert r.unit is Unit.MILLIMETER
    assert r.scale == 1.0
    assert r.source == "assumed-mm"


def test_assume_mm_needs_a_viewbox():
    assert resolve_units(None, None, None, model_extent=(5, 5), assume_mm=True) == UNRESOLVED


def test_declared_size_wins_over_assume_mm():
    r = resolve_units("1in", "1in", (0, 0, 100, 100), assume_mm=True)
    assert r.unit is Unit.INCH
    assert r.scale == pytest.approx(0.01)


@pytest.mark.parametrize("text,expected", [
    ("25mm", (25.0, Unit.MILLIMETER)),
    (" 12.5 MM ", (12.5, Unit.MILLIMETER)),
    ("3cm", (30.0, Unit.MILLIMETER)),
    ("2in", (2.0, Unit.INCH)),
    ("1e1mm", (10.0, Unit.MILLIMETER)),
    ("12", None),
    ("12px", None),
    ("12em", None),
    ("", None),
    (None, None),
])
def test_parse_physical_length(text, expected):
    assert parse_physical_length(text) == expected


@pytest.mark.parametrize("width,inches", [
    ("50.8mm", 2.0),
    ("2.54cm", 1.0),
    ("3in", 3.0),
    ("144pt", 2.0),
    ("100px", None),
    (None, None),
])
def test_physical_width_of(width, inches):
    result = physical_width_of(SvgDocument(width=width))
    if inches is None:
        assert result is None
    else:
        assert result == pytest.approx(inches)


def test_insunits_codes():
    assert (Unit.NONE.insunits, Unit.MILLIMETER.insunits, Unit.INCH.insunits) == (0, 4, 1)
