"""
Read a DXF back and report its unit header and measured extents.

Used to check exported files: the measured size should equal the declared
physical size of the source SVG.
"""
from __future__ import annotations

import io
from dataclasses import dataclass
from pathlib import Path
from typing import Dict

import ezdxf
from ezdxf import bbox as ezdxf_bbox

from .errors import IOFailure

INSUNITS_NAMES = {0: "unitless", 1: "inches", 4: "millimeters"}


@dataclass(frozen=True)
class DxfMeasurement:
    insunits: int
    xmin: float
    ymin: float
    xmax: float
    ymax: float
    entity_counts: Dict[str, int]

    @property
    def width(self) -> float:
        return self.xmax - self.xmin

    @property
    def height(self) -> float:
        return self.ymax - self.ymin

    @property
    def unit_name(self) -> str:
        return INSUNITS_NAMES.get(self.insunits, f"code {self.insunits}")


def _measure(doc) -> DxfMeasurement:
    msp = doc.modelspace()
    counts: Dict[str, int] = {}
    for entity in msp:
        counts[entity.dxftype()] = counts.get(entity.dxftype(), 0) + 1

    extents = ezdxf_bbox.extents(msp)
    if extents.has_data:
        xmin, ymin = extents.extmin[0], extents.extmin[1]
        xmax, ymax = extents.extmax[0], extents.extmax[1]
    else:
        xmin = ymin = xmax = ymax = 0.0
    return DxfMeasurement(
        insunits=int(doc.header.get("$INSUNITS", 0)),
        xmin=xmin, ymin=ymin, xmax=xmax, ymax=ymax,
        entity_counts=counts,
    )


def measure_dxf(dxf_path: Path) -> DxfMeasurement:
    try:
        doc = ezdxf.readfile(str(dxf_path))
    except (IOError, ezdxf.DXFStructureError) as e:
        raise IOFailure(f"cannot read {dxf_path}: {e}") from e
    return _measure(doc)


def measure_dxf_bytes(data: bytes) -> DxfMeasurement:
    try:
        doc = ezdxf.read(io.StringIO(data.decode("utf8")))
    except ezdxf.DXFStructureError as e:
        raise IOFailure(f"not a DXF document: {e}") from e
    return _measure(doc)
