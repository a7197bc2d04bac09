"""
svg-laser: Convert SVG artwork to unit-tagged DXF for laser engraving and
decal cutting.

Usage:
    svg-laser convert <file-or-folder> [--output-dir DIR]
    svg-laser measure <file.dxf>
    svg-laser serve

`convert` writes <stem>.dxf for every .svg it is given, next to the input
unless --output-dir is set.
"""
from __future__ import annotations

import logging
import sys
import traceback
from concurrent.futures import ProcessPoolExecutor
from pathlib import Path
from typing import List, Optional, Tuple

import click

from .config import ConversionOptions, Settings
from .converter import ConversionResult, convert_file
from .errors import ConversionError
from .measure import measure_dxf


def process_svg_file(svg_path: Path, output_dir: Optional[Path],
                     options: ConversionOptions) -> Tuple[Path, ConversionResult]:
    """Convert a single SVG file: import, normalize units, export DXF."""
    stem = svg_path.stem.replace(" ", "_")
    out = (output_dir or svg_path.parent) / f"{stem}.dxf"
    result = convert_file(svg_path, out, options)
    return out, result


def _report(out: Path, result: ConversionResult) -> None:
    unit = result.unit.value
    click.echo(f"  Unit: {unit}  Scale: {result.scale:.6g}")
    click.echo(f"  Shapes exported: {len(result.document.model)}")
    for w in result.warnings:
        click.echo(f"  WARNING: {w}")
    click.echo(f"  Exported: {out.name}")


def _collect_inputs(path: Path) -> List[Path]:
    if path.is_file():
        return [path]
    return sorted(path.glob("*.svg"), key=lambda p: p.name.lower())


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Log pipeline details.")
def cli(verbose: bool) -> None:
    """Convert SVG artwork to DXF with physical units."""
    logging.basicConfig(
        level=logging.INFO if verbose else logging.ERROR,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )


@cli.command()
@click.argument("source", type=click.Path(exists=True, path_type=Path))
@click.option("-o", "--output-dir", type=click.Path(file_okay=False, path_type=Path),
              default=None, help="Directory for the .dxf files (default: next to input).")
@click.option("--curve-tolerance", type=float, default=ConversionOptions.curve_tolerance,
              show_default=True, help="Max chord error as a fraction of shape diagonal.")
@click.option("--arc-tolerance", type=float, default=ConversionOptions.arc_anisotropy_tolerance,
              show_default=True, help="Allowed scale anisotropy before arcs are flattened.")
@click.option("--assume-mm", is_flag=True,
              help="Read viewBox numbers as millimetres when no size is declared.")
@click.option("-j", "--jobs", type=click.IntRange(min=1), default=1, show_default=True,
              help="Files to convert in parallel.")
def convert(source: Path, output_dir: Optional[Path], curve_tolerance: float,
            arc_tolerance: float, assume_mm: bool, jobs: int) -> None:
    """Convert SOURCE (an .svg file or a folder of them) to DXF."""
    source = source.resolve()
    svg_files = _collect_inputs(source)
    if not svg_files:
        click.echo(f"No .svg files found in {source}")
        sys.exit(1)

    options = ConversionOptions(
        curve_tolerance=curve_tolerance,
        arc_anisotropy_tolerance=arc_tolerance,
        assume_mm=assume_mm,
    )
    click.echo(f"Found {len(svg_files)} SVG file(s) in: {source.name}\n")

    success = 0
    errors = []

    if jobs > 1 and len(svg_files) > 1:
        with ProcessPoolExecutor(max_workers=jobs) as pool:
            futures = [pool.submit(process_svg_file, p, output_dir, options)
                       for p in svg_files]
            for i, (svg_path, fut) in enumerate(zip(svg_files, futures), 1):
                click.echo(f"[{i}/{len(svg_files)}] Processing: {svg_path.name}")
                try:
                    _report(*fut.result())
                    success += 1
                    click.echo("  Done.\n")
                except ConversionError as e:
                    errors.append((svg_path.name, str(e)))
                    click.echo(f"  ERROR: {e}\n")
    else:
        for i, svg_path in enumerate(svg_files, 1):
            click.echo(f"[{i}/{len(svg_files)}] Processing: {svg_path.name}")
            try:
                _report(*process_svg_file(svg_path, output_dir, options))
                success += 1
                click.echo("  Done.\n")
            except ConversionError as e:
                errors.append((svg_path.name, str(e)))
                click.echo(f"  ERROR: {e}")
                if logging.getLogger().isEnabledFor(logging.INFO):
                    traceback.print_exc()
                click.echo()

    click.echo("=" * 50)
    click.echo(f"Processed: {success}/{len(svg_files)} files successfully")
    if errors:
        click.echo(f"Errors ({len(errors)}):")
        for name, err in errors:
            click.echo(f"  - {name}: {err}")
    click.echo(f"Output: {output_dir or (source if source.is_dir() else source.parent)}")
    if errors:
        sys.exit(1)


@cli.command()
@click.argument("dxf_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
def measure(dxf_file: Path) -> None:
    """Print the unit header and extents of DXF_FILE."""
    try:
        m = measure_dxf(dxf_file)
    except ConversionError as e:
        click.echo(f"ERROR: {e}")
        sys.exit(1)
    click.echo(f"Units: {m.unit_name} ($INSUNITS={m.insunits})")
    click.echo(f"Extents: ({m.xmin:.6f}, {m.ymin:.6f}) - ({m.xmax:.6f}, {m.ymax:.6f})")
    click.echo(f"Size: {m.width:.6f} × {m.height:.6f}")
    for name, count in sorted(m.entity_counts.items()):
        click.echo(f"  {name}: {count}")


@cli.command()
@click.option("--host", default=None, help="Bind address (default from settings).")
@click.option("--port", type=int, default=None, help="Port (default from settings).")
def serve(host: Optional[str], port: Optional[int]) -> None:
    """Run the HTTP conversion service."""
    import uvicorn

    from .service import create_app

    settings = Settings()
    uvicorn.run(
        create_app(settings),
        host=host or settings.host,
        port=port or settings.port,
        log_level=settings.log_level,
    )


if __name__ == "__main__":
    cli()
