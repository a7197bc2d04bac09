"""
SVG file loading.

The document tree is read once with lxml and flattened into a list of shape
descriptors. Each descriptor carries the transform strings of its ancestors
(outermost first), so nothing downstream needs the live tree.

ellipse / rect / line are rewritten as equivalent path data here; circles
keep their own kind so they can become a single full-sweep arc.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from lxml import etree

from .errors import IOFailure

logger = logging.getLogger(__name__)

SHAPE_KINDS = ("path", "polyline", "polygon", "circle")

_SHAPE_TAGS = {"path", "polyline", "polygon", "circle", "ellipse", "rect", "line"}
# Containers whose content is never drawn directly.
_SKIP_TAGS = {
    "defs", "clipPath", "mask", "symbol", "pattern", "marker",
    "metadata", "style", "title", "desc", "script",
}
_SEP_RE = re.compile(r"[\s,]+")
_LENGTH_RE = re.compile(r"\s*([-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?)\s*(px)?\s*")


@dataclass(frozen=True)
class ShapeDescriptor:
    kind: str                                   # path | polyline | polygon | circle
    geometry: str                               # path data, points, or "cx cy r"
    transform: Optional[str] = None
    ancestor_transforms: Tuple[str, ...] = ()   # outermost first
    element_id: Optional[str] = None
    tag: Optional[str] = None                   # source element name


@dataclass(frozen=True)
class SvgDocument:
    shapes: Tuple[ShapeDescriptor, ...] = ()
    width: Optional[str] = None
    height: Optional[str] = None
    viewbox: Optional[Tuple[float, float, float, float]] = None
    source: Optional[str] = field(default=None, compare=False)


# -- Attribute helpers ------------------------------------------------------

def parse_viewbox(text: Optional[str]) -> Optional[Tuple[float, float, float, float]]:
    """'min-x min-y width height' -> 4-tuple, or None if absent/invalid."""
    if not text:
        return None
    parts = [p for p in _SEP_RE.split(text.strip()) if p]
    if len(parts) != 4:
        return None
    try:
        vals = tuple(float(p) for p in parts)
    except ValueError:
        return None
    if vals[2] <= 0 or vals[3] <= 0:
        return None
    return vals  # type: ignore[return-value]


def _user_length(value: Optional[str], default: Optional[float] = None) -> Optional[float]:
    """A plain user-unit length ("12", "12px"); None when malformed."""
    if value is None:
        return default
    m = _LENGTH_RE.fullmatch(value)
    return float(m.group(1)) if m else None


def _fmt(v: float) -> str:
    return repr(float(v))


def _ellipse_path(cx: float, cy: float, rx: float, ry: float) -> str:
    return (
        f"M {_fmt(cx - rx)},{_fmt(cy)} "
        f"A {_fmt(rx)},{_fmt(ry)} 0 1,0 {_fmt(cx + rx)},{_fmt(cy)} "
        f"A {_fmt(rx)},{_fmt(ry)} 0 1,0 {_fmt(cx - rx)},{_fmt(cy)} Z"
    )


def _rect_path(x: float, y: float, w: float, h: float, rx: float, ry: float) -> str:
    if rx <= 0 or ry <= 0:
        return (
            f"M {_fmt(x)},{_fmt(y)} H {_fmt(x + w)} V {_fmt(y + h)} "
            f"H {_fmt(x)} Z"
        )
    rx, ry = min(rx, w / 2), min(ry, h / 2)
    arc = f"A {_fmt(rx)},{_fmt(ry)} 0 0,1"
    return (
        f"M {_fmt(x + rx)},{_fmt(y)} H {_fmt(x + w - rx)} "
        f"{arc} {_fmt(x + w)},{_fmt(y + ry)} V {_fmt(y + h - ry)} "
        f"{arc} {_fmt(x + w - rx)},{_fmt(y + h)} H {_fmt(x + rx)} "
        f"{arc} {_fmt(x)},{_fmt(y + h - ry)} V {_fmt(y + ry)} "
        f"{arc} {_fmt(x + rx)},{_fmt(y)} Z"
    )


def _shape_geometry(el, tag: str) -> Tuple[str, str]:
    """(kind, geometry) for one shape element; geometry is "" when unusable."""
    get = el.get
    if tag == "path":
        return "path", get("d") or ""
    if tag in ("polyline", "polygon"):
        return tag, get("points") or ""

    if tag == "circle":
        cx, cy, r = _user_length(get("cx"), 0.0), _user_length(get("cy"), 0.0), _user_length(get("r"))
        if None in (cx, cy, r):
            return "circle", ""
        return "circle", f"{_fmt(cx)} {_fmt(cy)} {_fmt(r)}"

    if tag == "ellipse":
        cx, cy = _user_length(get("cx"), 0.0), _user_length(get("cy"), 0.0)
        rx, ry = _user_length(get("rx")), _user_length(get("ry"))
        if rx is None and ry is not None:
            rx = ry
        if ry is None and rx is not None:
            ry = rx
        if None in (cx, cy, rx, ry) or rx <= 0 or ry <= 0:
            return "path", ""
        if rx == ry:
            return "circle", f"{_fmt(cx)} {_fmt(cy)} {_fmt(rx)}"
        return "path", _ellipse_path(cx, cy, rx, ry)

    if tag == "rect":
        x, y = _user_length(get("x"), 0.0), _user_length(get("y"), 0.0)
        w, h = _user_length(get("width")), _user_length(get("height"))
        rx, ry = _user_length(get("rx")), _user_length(get("ry"))
        if rx is None:
            rx = ry
        if ry is None:
            ry = rx
        if None in (x, y, w, h) or w <= 0 or h <= 0:
            return "path", ""
        return "path", _rect_path(x, y, w, h, rx or 0.0, ry or 0.0)

    if tag == "line":
        x1, y1 = _user_length(get("x1"), 0.0), _user_length(get("y1"), 0.0)
        x2, y2 = _user_length(get("x2"), 0.0), _user_length(get("y2"), 0.0)
        if None in (x1, y1, x2, y2):
            return "path", ""
        return "path", f"M {_fmt(x1)},{_fmt(y1)} L {_fmt(x2)},{_fmt(y2)}"

    raise ValueError(f"not a shape element: {tag}")


def _collect(parent, chain: Sequence[str], shapes: List[ShapeDescriptor]) -> None:
    for el in parent:
        if not isinstance(el.tag, str):
            continue  # comment / processing instruction
        tag = etree.QName(el).localname
        if tag in _SKIP_TAGS:
            continue
        if tag in _SHAPE_TAGS:
            kind, geometry = _shape_geometry(el, tag)
            shapes.append(ShapeDescriptor(
                kind=kind,
                geometry=geometry,
                transform=el.get("transform"),
                ancestor_transforms=tuple(chain),
                element_id=el.get("id"),
                tag=tag,
            ))
            continue
        t = el.get("transform")
        _collect(el, [*chain, t] if t else chain, shapes)


# -- Entry points -----------------------------------------------------------

def read_svg_bytes(data: bytes, source: Optional[str] = None) -> SvgDocument:
    """Parse SVG content into an SvgDocument. Raises IOFailure on bad XML."""
    parser = etree.XMLParser(resolve_entities=False, no_network=True,
                             huge_tree=True, remove_comments=True)
    try:
        root = etree.fromstring(data, parser)
    except etree.XMLSyntaxError as e:
        raise IOFailure(f"not a well-formed SVG document: {e}") from e
    if root is None or etree.QName(root).localname != "svg":
        raise IOFailure("root element is not <svg>")

    shapes: List[ShapeDescriptor] = []
    root_t = root.get("transform")
    _collect(root, [root_t] if root_t else [], shapes)

    doc = SvgDocument(
        shapes=tuple(shapes),
        width=root.get("width"),
        height=root.get("height"),
        viewbox=parse_viewbox(root.get("viewBox")),
        source=source,
    )
    logger.info("Read %s: %d shapes, width=%r height=%r viewBox=%r",
                source or "<memory>", len(shapes), doc.width, doc.height, doc.viewbox)
    return doc


def read_svg(filepath: Path) -> SvgDocument:
    """Load an SVG file. Raises IOFailure if it cannot be read or parsed."""
    filepath = Path(filepath)
    try:
        data = filepath.read_bytes()
    except OSError as e:
        raise IOFailure(f"cannot read {filepath}: {e}") from e
    return read_svg_bytes(data, source=str(filepath))
