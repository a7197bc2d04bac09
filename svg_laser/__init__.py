"""SVG -> DXF conversion with physical units, for laser engraving and decals."""

__version__ = "0.1.0"
