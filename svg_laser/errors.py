"""
Error and warning types for SVG -> DXF conversion.

Only ConversionError subclasses abort a conversion. Everything else is
recorded as a ConversionWarning next to a best-effort result.
"""
from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Optional


class ConversionError(Exception):
    """Base class for failures that abort a single conversion."""


class IOFailure(ConversionError):
    """Input could not be read or output could not be written."""


class InvalidRequest(ConversionError):
    """Required input fields are missing or malformed."""


class PathDataError(ValueError):
    """Geometry of one shape could not be parsed."""


class WarningKind(str, enum.Enum):
    PARSE = "parse"
    SKIPPED = "skipped"
    UNIT = "unit"


@dataclass(frozen=True)
class ConversionWarning:
    kind: WarningKind
    shape_id: Optional[str]
    message: str

    def __str__(self) -> str:
        if self.shape_id:
            return f"[{self.kind.value}] {self.shape_id}: {self.message}"
        return f"[{self.kind.value}] {self.message}"
