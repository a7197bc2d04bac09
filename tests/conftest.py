"""Shared SVG samples and fixtures."""

from __future__ import annotations

import io

import ezdxf
import pytest

from svg_laser.svg_reader import ShapeDescriptor, SvgDocument


# viewBox 100 x 50 drawn at 50mm x 25mm; one path along the full diagonal.
DIAGONAL_MM_SVG = '''<svg xmlns="http://www.w3.org/2000/svg" width="50mm" height="25mm" viewBox="0 0 100 50">
  <path d="M 0 0 L 100 50"/>
</svg>'''

# Declared size matches the viewBox 1:1 in millimetres.
FRAME_1TO1_SVG = '''<svg xmlns="http://www.w3.org/2000/svg" width="80mm" height="40mm" viewBox="0 0 80 40">
  <polygon points="0,0 80,0 80,40 0,40"/>
  <circle cx="40" cy="20" r="10"/>
</svg>'''

UNITLESS_SVG = '''<svg xmlns="http://www.w3.org/2000/svg" viewBox="0 0 10 10">
  <polyline points="0,0 10,10"/>
</svg>'''

BAD_TRANSFORM_SVG = '''<svg xmlns="http://www.w3.org/2000/svg" width="10mm" height="10mm" viewBox="0 0 10 10">
  <path transform="foo(1,2)" d="M 1 2 L 7 5"/>
</svg>'''

NESTED_SVG = '''<svg xmlns="http://www.w3.org/2000/svg" width="2in" height="1in" viewBox="0 0 200 100">
  <defs>
    <path id="hidden" d="M 0 0 L 1 1"/>
  </defs>
  <g transform="translate(10,20)">
    <g transform="scale(2)">
      <path id="inner" transform="rotate(90)" d="M 0 0 L 10 0"/>
    </g>
    <rect x="1" y="2" width="30" height="10"/>
  </g>
  <!-- comment -->
  <ellipse cx="50" cy="50" rx="20" ry="10"/>
  <ellipse cx="50" cy="50" rx="5" ry="5"/>
  <line x1="0" y1="0" x2="5" y2="5"/>
  <path d="M 10 10 L 20"/>
</svg>'''

STRETCHED_CIRCLE_SVG = '''<svg xmlns="http://www.w3.org/2000/svg" width="40mm" height="20mm" viewBox="0 0 40 20">
  <g transform="scale(2,1)">
    <circle cx="10" cy="10" r="10"/>
  </g>
</svg>'''


def read_dxf(data: bytes):
    """Parse DXF bytes back into an ezdxf document."""
    return ezdxf.read(io.StringIO(data.decode("utf8")))


@pytest.fixture
def diagonal_doc() -> SvgDocument:
    return SvgDocument(
        shapes=(ShapeDescriptor("path", "M 0 0 L 100 50"),),
        width="50mm", height="25mm", viewbox=(0.0, 0.0, 100.0, 50.0),
    )


@pytest.fixture
def svg_folder(tmp_path):
    """A folder with two convertible SVG files."""
    (tmp_path / "diagonal.svg").write_text(DIAGONAL_MM_SVG, encoding="utf-8")
    (tmp_path / "frame part.svg").write_text(FRAME_1TO1_SVG, encoding="utf-8")
    return tmp_path
