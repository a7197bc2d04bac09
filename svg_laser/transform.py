"""
SVG transform attribute parsing and composition.

Only the affine subset is handled: matrix, translate, scale and rotate.
A transform list is composed left to right, so the right-most function is
the one applied to the geometry first. Skewed matrices are never decomposed;
they are applied to the geometry as a plain 6-coefficient map.
"""
from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass
from typing import Iterable, List, NamedTuple, Optional, Sequence, Tuple

import numpy as np

logger = logging.getLogger(__name__)

_FUNC_RE = re.compile(r"([A-Za-z]+)\s*\(([^()]*)\)")
_SEP_RE = re.compile(r"[\s,]+")
_NUMBER_RE = re.compile(r"[-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?")


class Decomposition(NamedTuple):
    translate_x: float
    translate_y: float
    scale_x: float
    scale_y: float
    rotation_deg: float


@dataclass(frozen=True)
class AffineTransform:
    """(x, y) -> (a*x + c*y + e, b*x + d*y + f)"""
    a: float = 1.0
    b: float = 0.0
    c: float = 0.0
    d: float = 1.0
    e: float = 0.0
    f: float = 0.0

    # -- constructors -----------------------------------------------------

    @classmethod
    def identity(cls) -> "AffineTransform":
        return cls()

    @classmethod
    def translate(cls, tx: float, ty: float = 0.0) -> "AffineTransform":
        return cls(1.0, 0.0, 0.0, 1.0, tx, ty)

    @classmethod
    def scale(cls, sx: float, sy: Optional[float] = None) -> "AffineTransform":
        if sy is None:
            sy = sx
        return cls(sx, 0.0, 0.0, sy, 0.0, 0.0)

    @classmethod
    def rotate(cls, angle_deg: float, cx: float = 0.0, cy: float = 0.0) -> "AffineTransform":
        rad = math.radians(angle_deg)
        cos_a, sin_a = math.cos(rad), math.sin(rad)
        rot = cls(cos_a, sin_a, -sin_a, cos_a, 0.0, 0.0)
        if cx == 0.0 and cy == 0.0:
            return rot
        return cls.translate(cx, cy) @ rot @ cls.translate(-cx, -cy)

    @classmethod
    def from_matrix(cls, m: np.ndarray) -> "AffineTransform":
        return cls(
            float(m[0, 0]), float(m[1, 0]),
            float(m[0, 1]), float(m[1, 1]),
            float(m[0, 2]), float(m[1, 2]),
        )

    # -- algebra ----------------------------------------------------------

    def as_matrix(self) -> np.ndarray:
        return np.array([
            [self.a, self.c, self.e],
            [self.b, self.d, self.f],
            [0.0, 0.0, 1.0],
        ])

    def __matmul__(self, other: "AffineTransform") -> "AffineTransform":
        """self @ other applies `other` first, then `self`."""
        if not isinstance(other, AffineTransform):
            return NotImplemented
        return AffineTransform.from_matrix(self.as_matrix() @ other.as_matrix())

    @property
    def determinant(self) -> float:
        return self.a * self.d - self.b * self.c

    @property
    def is_identity(self) -> bool:
        return self == AffineTransform()

    def apply(self, x: float, y: float) -> tuple[float, float]:
        return (
            self.a * x + self.c * y + self.e,
            self.b * x + self.d * y + self.f,
        )

    def apply_points(self, points: Sequence[Sequence[float]]) -> np.ndarray:
        """Transform an (N, 2) array-like of points."""
        pts = np.asarray(points, dtype=float).reshape(-1, 2)
        linear = np.array([[self.a, self.c], [self.b, self.d]])
        return pts @ linear.T + np.array([self.e, self.f])

    def singular_values(self) -> tuple[float, float]:
        """Principal stretch factors of the linear part, largest first.

        A circle maps to an ellipse whose semi-axes are r times these.
        """
        linear = np.array([[self.a, self.c], [self.b, self.d]])
        s = np.linalg.svd(linear, compute_uv=False)
        return float(s[0]), float(s[1])

    def decompose(self) -> Decomposition:
        """Split into translate / scale / rotation.

        Exact only without skew. The sign of scale_x follows `a` and the
        sign of scale_y follows `d`, so mirrored shapes stay mirrored.
        """
        sx = math.hypot(self.a, self.b)
        if sx == 0.0:
            return Decomposition(self.e, self.f, 0.0, math.hypot(self.c, self.d), 0.0)
        if self.a < 0:
            sx = -sx
            rotation = math.degrees(math.atan2(-self.b, -self.a))
        else:
            rotation = math.degrees(math.atan2(self.b, self.a))
        sy = self.determinant / sx
        return Decomposition(self.e, self.f, sx, sy, rotation)


IDENTITY = AffineTransform()


# -- parsing ---------------------------------------------------------------

def scan_numbers(text: str) -> List[Tuple[Optional[float], str]]:
    """Split an SVG number list into (value, raw) pairs.

    Numbers need no separator when the next one starts with a sign or a
    second decimal point ("10-5", ".5.5"). A run that does not start with a
    number comes back once as (None, raw) and ends its chunk.
    """
    out: List[Tuple[Optional[float], str]] = []
    for chunk in _SEP_RE.split(text.strip()):
        pos = 0
        while pos < len(chunk):
            m = _NUMBER_RE.match(chunk, pos)
            if m is None:
                out.append((None, chunk[pos:]))
                break
            out.append((float(m.group()), m.group()))
            pos = m.end()
    return out


def _or(value: Optional[float], default: float) -> float:
    return default if value is None else value


def _matrix(vals: List[Optional[float]]) -> Optional[AffineTransform]:
    if len(vals) != 6:
        return None
    defaults = (1.0, 0.0, 0.0, 1.0, 0.0, 0.0)
    return AffineTransform(*(_or(v, dv) for v, dv in zip(vals, defaults)))


def _translate(vals: List[Optional[float]]) -> Optional[AffineTransform]:
    if not vals:
        return None
    tx = _or(vals[0], 0.0)
    ty = _or(vals[1], 0.0) if len(vals) > 1 else 0.0
    return AffineTransform.translate(tx, ty)


def _scale(vals: List[Optional[float]]) -> Optional[AffineTransform]:
    if not vals:
        return None
    sx = _or(vals[0], 1.0)
    sy = _or(vals[1], 1.0) if len(vals) > 1 else sx
    return AffineTransform.scale(sx, sy)


def _rotate(vals: List[Optional[float]]) -> Optional[AffineTransform]:
    if not vals:
        return None
    angle = _or(vals[0], 0.0)
    if len(vals) >= 3:
        return AffineTransform.rotate(angle, _or(vals[1], 0.0), _or(vals[2], 0.0))
    return AffineTransform.rotate(angle)


_BUILDERS = {
    "matrix": _matrix,
    "translate": _translate,
    "scale": _scale,
    "rotate": _rotate,
}


def parse_transform(text: Optional[str],
                    degraded: Optional[List[str]] = None) -> Optional[AffineTransform]:
    """Parse an SVG transform attribute.

    Returns None when the string is empty or none of matrix / translate /
    scale / rotate can be recognized in it. Unknown functions inside an
    otherwise valid list are ignored.

    Malformed numbers take their identity default, and a recognized function
    with the wrong argument count is dropped. If `degraded` is given, each
    such token or function is appended to it.
    """
    if not text or not text.strip():
        return None

    result: Optional[AffineTransform] = None
    for name, args in _FUNC_RE.findall(text):
        builder = _BUILDERS.get(name)
        if builder is None:
            logger.debug("Ignoring unsupported transform function %r", name)
            continue
        scanned = scan_numbers(args)
        t = builder([value for value, _ in scanned])
        if t is None:
            logger.debug("Ignoring malformed %s(%s)", name, args)
            if degraded is not None:
                degraded.append(f"{name}({args.strip()})")
            continue
        if degraded is not None:
            degraded.extend(f"{raw!r} in {name}()" for value, raw in scanned if value is None)
        result = t if result is None else result @ t
    return result


def compose_chain(
    ancestor_transforms: Iterable[Optional[str]],
    own_transform: Optional[str] = None,
    warnings: Optional[List[str]] = None,
) -> AffineTransform:
    """Effective transform of a shape from its ancestors (outermost first)
    and its own transform attribute.

    A string that cannot be parsed contributes identity. If `warnings` is
    given, one message is appended for it, and one for every string that
    parsed only after replacing malformed parts with defaults.
    """
    result = IDENTITY
    for text in [*ancestor_transforms, own_transform]:
        if not text or not text.strip():
            continue
        degraded: List[str] = []
        t = parse_transform(text, degraded)
        if t is None:
            logger.warning("Unparseable transform %r, using identity", text)
            if warnings is not None:
                warnings.append(f"unparseable transform {text!r} treated as identity")
            continue
        if degraded:
            logger.warning("Transform %r: malformed %s", text, ", ".join(degraded))
            if warnings is not None:
                warnings.append(
                    f"transform {text!r}: malformed {', '.join(degraded)} replaced by defaults"
                )
        result = result @ t
    return result
