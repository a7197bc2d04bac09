"""
SVG geometry -> VectorModel contours.

Path data is parsed with svgpathtools. The effective transform is applied to
every point before a segment is emitted, so a returned contour never mixes
coordinate frames.

Curves the DXF side cannot carry natively are flattened to line chains:

* Bezier segments: control points are transformed first (affine maps keep
  Beziers Bezier), then subdivided until the control polygon is within the
  chord tolerance of the chord.
* Circular arcs stay ARC entities only while the transform is uniform within
  `arc_anisotropy_tolerance`. Under a stretched transform a circle becomes an
  ellipse, and the arc is flattened instead of being given an averaged radius.
* Elliptical arcs are always flattened.
"""
from __future__ import annotations

import math
import re
from typing import Callable, List, Sequence, Tuple

from svgpathtools import Arc, CubicBezier, Line, QuadraticBezier, parse_path

from .config import DEFAULT_OPTIONS, ConversionOptions
from .errors import PathDataError
from .geometry import Arc2D, Contour, Line2D, Segment, transform_arc, transform_line
from .svg_reader import ShapeDescriptor
from .transform import AffineTransform, scan_numbers

_PATH_TOKEN_RE = re.compile(
    r"([MmZzLlHhVvCcSsQqTtAa])|([-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?)|[\s,]+|(.)"
)
_PATH_ARGS = {"m": 2, "l": 2, "h": 1, "v": 1, "c": 6, "s": 4, "q": 4, "t": 2, "a": 7}

_MAX_DEPTH = 16          # Bezier subdivision depth cap
_MAX_ARC_STEPS = 4096
_MIN_ARC_STEPS = 4
_CIRCULAR_EPS = 1e-9     # rx/ry relative difference still treated as a circle
_DEGENERATE = 1e-12


# -- Tolerance ---------------------------------------------------------------

def _chord_tolerance(bbox: Tuple[float, float, float, float],
                     t: AffineTransform, options: ConversionOptions) -> float:
    """Chord error allowed for one shape, in the transformed frame.

    bbox is (xmin, ymin, xmax, ymax) in source coordinates.
    """
    xmin, ymin, xmax, ymax = bbox
    corners = t.apply_points([(xmin, ymin), (xmax, ymin), (xmax, ymax), (xmin, ymax)])
    span = corners.max(axis=0) - corners.min(axis=0)
    diag = math.hypot(span[0], span[1])
    return max(options.curve_tolerance * diag, options.min_tolerance)


def _is_uniform(t: AffineTransform, tolerance: float) -> bool:
    s_max, s_min = t.singular_values()
    if s_max <= _DEGENERATE:
        return False
    return (s_max - s_min) <= tolerance * s_max


# -- Flattening --------------------------------------------------------------

def _dist_to_chord(p: complex, a: complex, b: complex) -> float:
    ab = b - a
    len2 = ab.real * ab.real + ab.imag * ab.imag
    if len2 == 0.0:
        return abs(p - a)
    u = ((p - a) * ab.conjugate()).real / len2
    u = min(1.0, max(0.0, u))
    return abs(p - (a + u * ab))


def _split_bezier(ctrl: Sequence[complex]) -> Tuple[List[complex], List[complex]]:
    """de Casteljau split at t=0.5, any degree."""
    left, right = [ctrl[0]], [ctrl[-1]]
    pts = list(ctrl)
    while len(pts) > 1:
        pts = [(p + q) / 2 for p, q in zip(pts, pts[1:])]
        left.append(pts[0])
        right.append(pts[-1])
    return left, right[::-1]


def flatten_bezier(ctrl: Sequence[complex], tolerance: float,
                   depth: int = 0) -> List[complex]:
    """Points along a Bezier (first and last included) within `tolerance`.

    The curve lies inside its control polygon's hull, so once every control
    point is within `tolerance` of the chord the chord is close enough.
    """
    a, b = ctrl[0], ctrl[-1]
    if depth >= _MAX_DEPTH or all(
        _dist_to_chord(p, a, b) <= tolerance for p in ctrl[1:-1]
    ):
        return [a, b]
    left, right = _split_bezier(ctrl)
    return (flatten_bezier(left, tolerance, depth + 1)
            + flatten_bezier(right, tolerance, depth + 1)[1:])


def _arc_steps(radius: float, sweep_rad: float, tolerance: float) -> int:
    if radius <= _DEGENERATE:
        return _MIN_ARC_STEPS
    if tolerance >= radius:
        step = math.pi / 2
    else:
        step = 2.0 * math.acos(1.0 - tolerance / radius)
    n = math.ceil(abs(sweep_rad) / step) if step > 0 else _MAX_ARC_STEPS
    return min(_MAX_ARC_STEPS, max(_MIN_ARC_STEPS, n))


def _sampled_lines(point_fn: Callable[[float], complex], steps: int,
                   t: AffineTransform) -> List[Segment]:
    raw = [point_fn(i / steps) for i in range(steps + 1)]
    pts = t.apply_points([(z.real, z.imag) for z in raw])
    return _polyline_segments([complex(x, y) for x, y in pts])


def _polyline_segments(points: Sequence[complex]) -> List[Segment]:
    segs: List[Segment] = []
    for p, q in zip(points, points[1:]):
        if abs(q - p) > _DEGENERATE:
            segs.append(Line2D(p.real, p.imag, q.real, q.imag))
    return segs


def _circular_arc(arc: Arc2D, t: AffineTransform, tolerance: float,
                  options: ConversionOptions) -> List[Segment]:
    """Emit `arc` (source frame) in the transformed frame."""
    if _is_uniform(t, options.arc_anisotropy_tolerance):
        s_max, s_min = t.singular_values()
        return [transform_arc(arc, t, (s_max + s_min) / 2)]

    s_max, _ = t.singular_values()
    src_tol = tolerance / s_max if s_max > _DEGENERATE else tolerance
    sweep = arc.sweep_deg
    steps = _arc_steps(arc.r, math.radians(sweep), src_tol)

    def point(u: float) -> complex:
        x, y = arc.point_at(arc.start_deg + sweep * u)
        return complex(x, y)

    return _sampled_lines(point, steps, t)


# -- svgpathtools segments ---------------------------------------------------

def _convert_segment(seg, t: AffineTransform, tolerance: float,
                     options: ConversionOptions) -> List[Segment]:
    if isinstance(seg, Line):
        line = transform_line(
            Line2D(seg.start.real, seg.start.imag, seg.end.real, seg.end.imag), t,
        )
        if math.hypot(line.x2 - line.x1, line.y2 - line.y1) <= _DEGENERATE:
            return []
        return [line]

    if isinstance(seg, (CubicBezier, QuadraticBezier)):
        ctrl = [complex(*t.apply(p.real, p.imag)) for p in seg.bpoints()]
        return _polyline_segments(flatten_bezier(ctrl, tolerance))

    if isinstance(seg, Arc):
        rx, ry = abs(seg.radius.real), abs(seg.radius.imag)
        circular = abs(rx - ry) <= _CIRCULAR_EPS * max(rx, ry, 1.0)
        if circular and _is_uniform(t, options.arc_anisotropy_tolerance):
            # svgpathtools hands back numpy scalars here
            cx, cy = float(seg.center.real), float(seg.center.imag)
            r, delta = float(rx + ry) / 2, float(seg.delta)
            s_deg = math.degrees(math.atan2(seg.start.imag - cy, seg.start.real - cx))
            e_deg = math.degrees(math.atan2(seg.end.imag - cy, seg.end.real - cx))
            if delta >= 0:
                arc = Arc2D(cx, cy, r, s_deg, s_deg + delta)
            else:
                arc = Arc2D(cx, cy, r, e_deg, e_deg - delta)
            s_max, s_min = t.singular_values()
            return [transform_arc(arc, t, (s_max + s_min) / 2)]

        # Elliptical, or circular under a stretching transform: sample the
        # source arc in its own direction of travel.
        s_max, _ = t.singular_values()
        src_tol = tolerance / s_max if s_max > _DEGENERATE else tolerance
        steps = _arc_steps(max(rx, ry), math.radians(seg.delta), src_tol)
        return _sampled_lines(seg.point, steps, t)

    raise PathDataError(f"unsupported path segment {type(seg).__name__}")


def _drop_empty_arcs(d: str) -> str:
    """Rewrite arc segments that end where they start as zero-length lines.

    Such an arc draws nothing in SVG, but svgpathtools cannot construct it.
    Path data that cannot be tokenized is returned unchanged so the parser
    reports it.
    """
    if "a" not in d and "A" not in d:
        return d
    tokens = []
    for cmd, num, junk in _PATH_TOKEN_RE.findall(d):
        if junk:
            return d
        if cmd or num:
            tokens.append(cmd or num)

    out: List[str] = []
    pos = start = 0j
    cmd = None
    changed = False
    i = 0
    while i < len(tokens):
        if tokens[i].isalpha():
            cmd = tokens[i]
            i += 1
            if cmd in "Zz":
                out.append(cmd)
                pos = start
            continue
        if cmd is None or cmd in "Zz":
            return d

        key = cmd.lower()
        args: List[str] = []
        while len(args) < _PATH_ARGS[key]:
            if i >= len(tokens) or tokens[i].isalpha():
                return d
            tok = tokens[i]
            if key == "a" and len(args) in (3, 4) and len(tok) > 1 and tok[0] in "01":
                # flags may run into the next number: "0 01 20 0"
                args.append(tok[0])
                tokens[i] = tok[1:]
            else:
                args.append(tok)
                i += 1
        try:
            vals = [float(a) for a in args]
        except ValueError:
            return d

        rel = cmd.islower()
        if key == "h":
            end = complex(vals[0] + (pos.real if rel else 0.0), pos.imag)
        elif key == "v":
            end = complex(pos.real, vals[0] + (pos.imag if rel else 0.0))
        else:
            end = (pos if rel else 0j) + complex(vals[-2], vals[-1])

        if key == "a" and end == pos:
            out.append(f"{'l' if rel else 'L'} {args[-2]} {args[-1]}")
            changed = True
        else:
            out.append(f"{cmd} {' '.join(args)}")
        if key == "m":
            start = end
            cmd = "l" if rel else "L"
        pos = end

    return " ".join(out) if changed else d


def _import_path(d: str, t: AffineTransform,
                 options: ConversionOptions) -> List[Contour]:
    try:
        path = parse_path(_drop_empty_arcs(d))
    except Exception as e:
        raise PathDataError(f"bad path data: {e}") from e
    if len(path) == 0:
        raise PathDataError("path data has no drawable segments")

    try:
        xmin, xmax, ymin, ymax = path.bbox()
        contours = []
        tolerance = _chord_tolerance((xmin, ymin, xmax, ymax), t, options)
        for sub in path.continuous_subpaths():
            contour = Contour(closed=sub.isclosed())
            for seg in sub:
                contour.segments.extend(_convert_segment(seg, t, tolerance, options))
            if contour.segments:
                contours.append(contour)
    except PathDataError:
        raise
    except (ValueError, ArithmeticError) as e:
        raise PathDataError(f"cannot evaluate path geometry: {e}") from e
    return contours


# -- Point lists and circles -------------------------------------------------

def parse_points(text: str) -> List[Tuple[float, float]]:
    """Parse a polyline/polygon `points` attribute."""
    values = []
    for value, raw in scan_numbers(text):
        if value is None:
            raise PathDataError(f"bad coordinate {raw!r} in points list")
        values.append(value)
    # An odd trailing coordinate is ignored, as browsers do.
    return list(zip(values[0::2], values[1::2]))


def _import_points(text: str, closed: bool, t: AffineTransform) -> List[Contour]:
    points = parse_points(text)
    if len(points) < 2:
        raise PathDataError("points list needs at least two points")
    pts = [complex(x, y) for x, y in t.apply_points(points)]
    if closed and abs(pts[-1] - pts[0]) > _DEGENERATE:
        pts.append(pts[0])
    segs = _polyline_segments(pts)
    if not segs:
        raise PathDataError("points list has no extent")
    return [Contour(segs, closed)]


def _import_circle(text: str, t: AffineTransform,
                   options: ConversionOptions) -> List[Contour]:
    vals = [value for value, _ in scan_numbers(text)]
    if len(vals) != 3 or None in vals:
        raise PathDataError(f"bad circle geometry {text!r}")
    cx, cy, r = vals
    if r <= 0:
        raise PathDataError("circle radius must be positive")
    tolerance = _chord_tolerance((cx - r, cy - r, cx + r, cy + r), t, options)
    segs = _circular_arc(Arc2D(cx, cy, r, 0.0, 360.0), t, tolerance, options)
    if not segs:
        raise PathDataError("circle collapses to a point under its transform")
    return [Contour(segs, True)]


# -- Entry point -------------------------------------------------------------

def import_shape(shape: ShapeDescriptor, transform: AffineTransform,
                 options: ConversionOptions = DEFAULT_OPTIONS) -> List[Contour]:
    """Convert one shape to contours in the frame given by `transform`.

    Raises PathDataError when the geometry cannot be used.
    """
    geometry = (shape.geometry or "").strip()
    if not geometry:
        raise PathDataError(f"<{shape.tag or shape.kind}> has no usable geometry")

    if shape.kind == "path":
        return _import_path(geometry, transform, options)
    if shape.kind in ("polyline", "polygon"):
        return _import_points(geometry, shape.kind == "polygon", transform)
    if shape.kind == "circle":
        return _import_circle(geometry, transform, options)
    raise PathDataError(f"unsupported shape kind {shape.kind!r}")
