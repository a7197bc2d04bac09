"""
2D vector model shared by the importer and the exporters.

A VectorModel maps a shape id ("shape0", "shape1", ...) to that shape's
contours, in document order. Every segment in a model lives in the same
coordinate frame; the helpers here always return a new model rather than
editing one in place.
"""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Dict, List, Tuple, Union

from shapely.geometry import MultiPoint

from .transform import AffineTransform

# -- Primitive types --------------------------------------------------------

@dataclass(frozen=True)
class Line2D:
    x1: float; y1: float; x2: float; y2: float

@dataclass(frozen=True)
class Arc2D:
    cx: float; cy: float; r: float
    start_deg: float   # CCW from start_deg ...
    end_deg: float     # ... to end_deg; a circle sweeps 360

    @property
    def sweep_deg(self) -> float:
        return self.end_deg - self.start_deg

    @property
    def is_circle(self) -> bool:
        return abs(self.sweep_deg) >= 360.0 - 1e-9

    def point_at(self, angle_deg: float) -> Tuple[float, float]:
        a = math.radians(angle_deg)
        return (self.cx + self.r * math.cos(a), self.cy + self.r * math.sin(a))

Segment = Union[Line2D, Arc2D]

@dataclass
class Contour:
    segments: List[Segment] = field(default_factory=list)
    closed: bool = False

VectorModel = Dict[str, List[Contour]]


def shape_id(index: int) -> str:
    return f"shape{index}"


# -- Segment helpers --------------------------------------------------------

def transform_arc(arc: Arc2D, t: AffineTransform, radius_scale: float) -> Arc2D:
    """Map a circular arc through a (near) similarity transform.

    The caller decides that `t` is uniform enough and passes the radius
    factor. A mirroring transform reverses the direction of travel, so the
    start and end angles swap roles to keep the arc counter-clockwise.
    """
    cx, cy = t.apply(arc.cx, arc.cy)
    sweep = arc.sweep_deg
    if arc.is_circle:
        return Arc2D(cx, cy, arc.r * radius_scale, 0.0, 360.0)

    anchor = arc.start_deg if t.determinant > 0 else arc.end_deg
    px, py = t.apply(*arc.point_at(anchor))
    start = math.degrees(math.atan2(py - cy, px - cx))
    return Arc2D(cx, cy, arc.r * radius_scale, start, start + sweep)


def transform_line(line: Line2D, t: AffineTransform) -> Line2D:
    x1, y1 = t.apply(line.x1, line.y1)
    x2, y2 = t.apply(line.x2, line.y2)
    return Line2D(x1, y1, x2, y2)


def _scale_segment(seg: Segment, s: float) -> Segment:
    if isinstance(seg, Line2D):
        return Line2D(seg.x1 * s, seg.y1 * s, seg.x2 * s, seg.y2 * s)
    return Arc2D(seg.cx * s, seg.cy * s, seg.r * s, seg.start_deg, seg.end_deg)


def _flip_segment(seg: Segment) -> Segment:
    if isinstance(seg, Line2D):
        return Line2D(seg.x1, -seg.y1, seg.x2, -seg.y2)
    # Mirroring about the X axis maps angle a to -a and reverses direction.
    return Arc2D(seg.cx, -seg.cy, seg.r, -seg.end_deg, -seg.start_deg)


def _map_model(model: VectorModel, fn) -> VectorModel:
    return {
        sid: [Contour([fn(seg) for seg in c.segments], c.closed) for c in contours]
        for sid, contours in model.items()
    }


def scale_model(model: VectorModel, s: float) -> VectorModel:
    """Uniformly scale every coordinate and radius by s (s > 0)."""
    if s == 1.0:
        return _map_model(model, lambda seg: seg)
    return _map_model(model, lambda seg: _scale_segment(seg, s))


def flip_y(model: VectorModel) -> VectorModel:
    """Negate every Y coordinate. flip_y(flip_y(m)) == m exactly."""
    return _map_model(model, _flip_segment)


# -- Extents ----------------------------------------------------------------

def _arc_extreme_points(arc: Arc2D) -> List[Tuple[float, float]]:
    """Arc endpoints plus every axis extreme inside its sweep."""
    if arc.is_circle:
        return [arc.point_at(a) for a in (0.0, 90.0, 180.0, 270.0)]
    pts = [arc.point_at(arc.start_deg), arc.point_at(arc.end_deg)]
    first = math.ceil(arc.start_deg / 90.0) * 90.0
    a = first
    while a < arc.end_deg:
        pts.append(arc.point_at(a))
        a += 90.0
    return pts


def segment_points(seg: Segment) -> List[Tuple[float, float]]:
    if isinstance(seg, Line2D):
        return [(seg.x1, seg.y1), (seg.x2, seg.y2)]
    return _arc_extreme_points(seg)


def model_extents(model: VectorModel) -> Tuple[float, float, float, float] | None:
    """(xmin, ymin, xmax, ymax) of all geometry, or None for an empty model."""
    pts: List[Tuple[float, float]] = []
    for contours in model.values():
        for contour in contours:
            for seg in contour.segments:
                pts.extend(segment_points(seg))
    if not pts:
        return None
    return MultiPoint(pts).bounds


def segment_count(model: VectorModel) -> int:
    return sum(len(c.segments) for contours in model.values() for c in contours)
