"""
One SVG -> DXF conversion run.

Shapes are handled independently in document order; a shape that cannot be
imported is left out and reported, it never aborts the run. Only unreadable
input, unwritable output and malformed requests are hard failures.
"""
from __future__ import annotations

import contextlib
import logging
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Tuple

from .config import DEFAULT_OPTIONS, ConversionOptions
from .errors import (
    ConversionWarning,
    InvalidRequest,
    IOFailure,
    PathDataError,
    WarningKind,
)
from .exporters.dxf_exporter import ExchangeDocument, export_dxf
from .geometry import VectorModel, shape_id
from .importer import import_shape
from .svg_reader import SHAPE_KINDS, SvgDocument, read_svg, read_svg_bytes
from .transform import compose_chain
from .units import Unit

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ConversionResult:
    document: ExchangeDocument
    warnings: Tuple[ConversionWarning, ...] = ()

    @property
    def unit(self) -> Unit:
        return self.document.unit

    @property
    def scale(self) -> float:
        return self.document.scale

    @property
    def data(self) -> bytes:
        return self.document.data


def validate_document(doc: SvgDocument) -> None:
    """Reject input that does not follow the shape descriptor contract."""
    for index, shape in enumerate(doc.shapes):
        if shape.kind not in SHAPE_KINDS:
            raise InvalidRequest(f"shape {index}: unknown kind {shape.kind!r}")
        if shape.geometry is None:
            raise InvalidRequest(f"shape {index}: missing geometry")


def build_model(
    doc: SvgDocument, options: ConversionOptions = DEFAULT_OPTIONS,
) -> Tuple[VectorModel, List[ConversionWarning]]:
    """Import every shape into one model in the SVG frame."""
    model: VectorModel = {}
    warnings: List[ConversionWarning] = []

    for index, shape in enumerate(doc.shapes):
        sid = shape_id(index)
        transform_notes: List[str] = []
        transform = compose_chain(shape.ancestor_transforms, shape.transform, transform_notes)
        warnings.extend(
            ConversionWarning(WarningKind.PARSE, sid, note) for note in transform_notes
        )

        try:
            contours = import_shape(shape, transform, options)
        except PathDataError as e:
            logger.warning("Skipping %s (%s): %s", sid, shape.element_id or shape.kind, e)
            warnings.append(ConversionWarning(WarningKind.SKIPPED, sid, str(e)))
            continue
        if not contours:
            warnings.append(ConversionWarning(
                WarningKind.SKIPPED, sid, "no drawable geometry after import",
            ))
            continue
        model[sid] = contours

    return model, warnings


def convert_document(
    doc: SvgDocument, options: ConversionOptions = DEFAULT_OPTIONS,
) -> ConversionResult:
    validate_document(doc)
    model, warnings = build_model(doc, options)
    document = export_dxf(model, doc.width, doc.height, doc.viewbox,
                          assume_mm=options.assume_mm)
    if not document.resolution.resolved:
        warnings.append(ConversionWarning(
            WarningKind.UNIT, None,
            "no physical size declared; exported unitless at scale 1",
        ))
    return ConversionResult(document, tuple(warnings))


def convert_bytes(
    data: bytes, options: ConversionOptions = DEFAULT_OPTIONS,
    source: Optional[str] = None,
) -> ConversionResult:
    return convert_document(read_svg_bytes(data, source=source), options)


def write_atomic(output_path: Path, data: bytes) -> None:
    """Write via a temporary sibling file and rename into place.

    On any failure the temporary file is removed and an existing file at
    `output_path` is left untouched.
    """
    output_path = Path(output_path)
    try:
        output_path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(
            prefix=f".{output_path.name}.", suffix=".tmp", dir=output_path.parent,
        )
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(data)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp, output_path)
        except BaseException:
            with contextlib.suppress(FileNotFoundError):
                os.unlink(tmp)
            raise
    except OSError as e:
        raise IOFailure(f"cannot write {output_path}: {e}") from e


def convert_file(
    svg_path: Path, output_path: Path,
    options: ConversionOptions = DEFAULT_OPTIONS,
) -> ConversionResult:
    """Read `svg_path`, convert it, and write the DXF to `output_path` once."""
    result = convert_document(read_svg(svg_path), options)
    write_atomic(output_path, result.data)
    return result
