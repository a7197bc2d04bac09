"""
DXF exporter using ezdxf.

Resolves the physical unit of the document, scales the model into that unit,
flips it from SVG's Y-down frame to DXF's Y-up frame, and writes LINE / ARC /
CIRCLE entities. $INSUNITS is only set when a unit was actually resolved;
otherwise it stays at the DXF default (0, unitless).
"""
from __future__ import annotations

import io
import logging
from dataclasses import dataclass
from typing import Optional, Tuple

import ezdxf
from ezdxf.document import Drawing

from ..geometry import Arc2D, Line2D, VectorModel, flip_y, model_extents, scale_model
from ..units import Unit, UnitResolution, resolve_units

logger = logging.getLogger(__name__)

DXF_VERSION = "R2010"


@dataclass(frozen=True)
class ExchangeDocument:
    """Serialized DXF plus what it was built from. Produced once, never edited."""
    resolution: UnitResolution
    model: VectorModel      # scaled, Y-up
    data: bytes

    @property
    def unit(self) -> Unit:
        return self.resolution.unit

    @property
    def scale(self) -> float:
        return self.resolution.scale


def build_drawing(model: VectorModel, unit: Unit) -> Drawing:
    """Create an ezdxf drawing from an already normalized model."""
    doc = ezdxf.new(DXF_VERSION, units=unit.insunits)
    if unit is Unit.INCH:
        doc.header["$MEASUREMENT"] = 0   # imperial
    elif unit is Unit.MILLIMETER:
        doc.header["$MEASUREMENT"] = 1   # metric
    doc.header["$LUNITS"] = 2            # decimal
    msp = doc.modelspace()

    for contours in model.values():
        for contour in contours:
            for seg in contour.segments:
                if isinstance(seg, Line2D):
                    msp.add_line((seg.x1, seg.y1), (seg.x2, seg.y2))
                elif isinstance(seg, Arc2D):
                    if seg.is_circle:
                        msp.add_circle((seg.cx, seg.cy), seg.r)
                    else:
                        # DXF arcs always run CCW from start_angle to end_angle.
                        msp.add_arc(
                            center=(seg.cx, seg.cy),
                            radius=seg.r,
                            start_angle=seg.start_deg,
                            end_angle=seg.end_deg,
                        )

    extents = model_extents(model)
    if extents is not None:
        xmin, ymin, xmax, ymax = extents
        doc.header["$EXTMIN"] = (xmin, ymin, 0)
        doc.header["$EXTMAX"] = (xmax, ymax, 0)
    return doc


def serialize(doc: Drawing) -> bytes:
    stream = io.StringIO()
    doc.write(stream)
    return stream.getvalue().encode(doc.output_encoding)


def _measured_size(model: VectorModel) -> Optional[Tuple[float, float]]:
    extents = model_extents(model)
    if extents is None:
        return None
    xmin, ymin, xmax, ymax = extents
    return (xmax - xmin, ymax - ymin)


def export_dxf(
    model: VectorModel,
    width: Optional[str],
    height: Optional[str],
    viewbox: Optional[Tuple[float, float, float, float]],
    assume_mm: bool = False,
) -> ExchangeDocument:
    """Unit-normalize `model` (SVG frame) and serialize it to DXF.

    1. resolve unit and scale from the declared size
    2. scale every coordinate and radius
    3. flip Y (always, even at scale 1)
    4. serialize, tagging $INSUNITS only for a resolved unit
    """
    resolution = resolve_units(
        width, height, viewbox,
        model_extent=None if viewbox is not None else _measured_size(model),
        assume_mm=assume_mm,
    )
    logger.info("Resolved unit=%s scale=%g (%s)",
                resolution.unit.value, resolution.scale, resolution.source)

    normalized = flip_y(scale_model(model, resolution.scale))
    drawing = build_drawing(normalized, resolution.unit)
    return ExchangeDocument(resolution, normalized, serialize(drawing))
