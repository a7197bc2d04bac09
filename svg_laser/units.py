"""
Physical unit resolution.

The scale factor maps SVG user units to the target drafting unit:

    scale = declared physical length / internal extent

where the internal extent is the matching viewBox dimension, or the measured
model extent when there is no viewBox. Height wins over width, as the
original artwork is sized by height.

Without an explicit physical size the document exports unitless (scale 1,
$INSUNITS 0). Reading bare viewBox numbers as millimetres is only done when
the caller opts in with assume_mm.
"""
from __future__ import annotations

import enum
import logging
import re
from dataclasses import dataclass
from typing import Optional, Tuple

from .svg_reader import SvgDocument

logger = logging.getLogger(__name__)

_LENGTH_RE = re.compile(
    r"\s*([-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?)\s*([A-Za-z]+)\s*"
)


class Unit(str, enum.Enum):
    NONE = "none"
    MILLIMETER = "millimeter"
    INCH = "inch"

    @property
    def insunits(self) -> int:
        """DXF $INSUNITS code."""
        return {Unit.NONE: 0, Unit.MILLIMETER: 4, Unit.INCH: 1}[self]

    @property
    def symbol(self) -> str:
        return {Unit.NONE: "", Unit.MILLIMETER: "mm", Unit.INCH: "in"}[self]


# suffix -> (target unit, factor into that unit, factor into inches)
_SUFFIXES = {
    "mm": (Unit.MILLIMETER, 1.0, 1.0 / 25.4),
    "cm": (Unit.MILLIMETER, 10.0, 1.0 / 2.54),
    "in": (Unit.INCH, 1.0, 1.0),
    "pt": (Unit.INCH, 1.0 / 72.0, 1.0 / 72.0),
    "pc": (Unit.INCH, 1.0 / 6.0, 1.0 / 6.0),
}


@dataclass(frozen=True)
class UnitResolution:
    unit: Unit
    scale: float
    source: str   # "height" | "width" | "assumed-mm" | "unresolved"

    @property
    def resolved(self) -> bool:
        return self.unit is not Unit.NONE


UNRESOLVED = UnitResolution(Unit.NONE, 1.0, "unresolved")


def _split_length(text: Optional[str]) -> Optional[Tuple[float, str]]:
    if not text:
        return None
    m = _LENGTH_RE.fullmatch(text)
    if not m:
        return None
    value, suffix = float(m.group(1)), m.group(2).lower()
    if suffix not in _SUFFIXES or value <= 0:
        return None
    return value, suffix


def parse_physical_length(text: Optional[str]) -> Optional[Tuple[float, Unit]]:
    """'25mm' -> (25.0, MILLIMETER); '2in' -> (2.0, INCH).

    None for unitless, px, percentages or anything unparseable.
    """
    split = _split_length(text)
    if split is None:
        return None
    value, suffix = split
    unit, factor, _ = _SUFFIXES[suffix]
    return value * factor, unit


def physical_width_of(document: SvgDocument) -> Optional[float]:
    """Declared document width in inches, or None if it has no physical unit."""
    split = _split_length(document.width)
    if split is None:
        return None
    value, suffix = split
    return value * _SUFFIXES[suffix][2]


def resolve_units(
    width: Optional[str],
    height: Optional[str],
    viewbox: Optional[Tuple[float, float, float, float]],
    model_extent: Optional[Tuple[float, float]] = None,
    assume_mm: bool = False,
) -> UnitResolution:
    """Pick the target unit and user-unit scale factor for a document.

    model_extent is the measured (width, height) of the geometry, used when
    there is no viewBox.
    """
    for axis, text in (("height", height), ("width", width)):
        parsed = parse_physical_length(text)
        if parsed is None:
            continue
        length, unit = parsed
        idx = 1 if axis == "height" else 0
        if viewbox is not None:
            internal = viewbox[idx + 2]
        elif model_extent is not None:
            internal = model_extent[idx]
        else:
            internal = None
        if not internal or internal <= 0:
            logger.warning("Declared %s %r has no internal extent to scale against", axis, text)
            continue
        return UnitResolution(unit, length / internal, axis)

    if assume_mm and viewbox is not None:
        return UnitResolution(Unit.MILLIMETER, 1.0, "assumed-mm")
    return UNRESOLVED
