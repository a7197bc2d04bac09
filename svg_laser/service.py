"""HTTP conversion service.

POST /convert takes SVG content plus a target directory and base name, runs
the same pipeline as the CLI, and writes <outputDir>/<baseName>.dxf.

At most one conversion per output path is in flight; a second request for
the same path gets 409. A conversion that exceeds the request timeout is
answered with 504 and writes nothing.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from contextlib import asynccontextmanager, contextmanager
from pathlib import Path
from typing import Iterator, Optional

from fastapi import APIRouter, FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from . import __version__
from .config import ConversionOptions, Settings
from .converter import convert_bytes, write_atomic
from .errors import InvalidRequest, IOFailure

logger = logging.getLogger(__name__)


class PathBusy(Exception):
    """Another conversion is already writing this output path."""


class PathLocks:
    """Tracks output paths with a conversion in flight."""

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._busy: set[str] = set()

    @contextmanager
    def claim(self, key: str) -> Iterator[None]:
        with self._guard:
            if key in self._busy:
                raise PathBusy(key)
            self._busy.add(key)
        try:
            yield
        finally:
            with self._guard:
                self._busy.discard(key)


class ConvertRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    svg_content: Optional[str] = Field(default=None, alias="svgContent")
    output_dir: Optional[str] = Field(default=None, alias="outputDir")
    base_name: Optional[str] = Field(default=None, alias="baseName")
    assume_mm: bool = Field(default=False, alias="assumeMm")


class ConvertResponse(BaseModel):
    message: str
    outputPath: str
    unit: str
    scale: float
    warnings: list[str] = Field(default_factory=list)


class HealthResponse(BaseModel):
    status: str
    version: str


router = APIRouter()


@router.get("/health", response_model=HealthResponse)
async def health() -> HealthResponse:
    return HealthResponse(status="ok", version=__version__)


def _output_path(req: ConvertRequest) -> Path:
    missing = [
        alias for alias, value in (
            ("svgContent", req.svg_content),
            ("outputDir", req.output_dir),
            ("baseName", req.base_name),
        ) if not value
    ]
    if missing:
        raise InvalidRequest(f"Missing required parameters: {', '.join(missing)}")
    if Path(req.base_name).name != req.base_name or req.base_name in (".", ".."):
        raise InvalidRequest("baseName must be a plain file name")
    return Path(req.output_dir) / f"{req.base_name}.dxf"


@router.post("/convert", response_model=ConvertResponse)
async def convert(req: ConvertRequest, request: Request):
    state = request.app.state
    output_path = _output_path(req)
    options = ConversionOptions(assume_mm=req.assume_mm)

    with state.path_locks.claim(str(output_path.resolve())):
        loop = asyncio.get_running_loop()
        job = loop.run_in_executor(
            state.executor, convert_bytes,
            req.svg_content.encode("utf-8"), options, req.base_name,
        )
        try:
            result = await asyncio.wait_for(job, timeout=state.settings.request_timeout)
        except asyncio.TimeoutError:
            logger.error("Conversion of %s timed out", output_path)
            return JSONResponse(status_code=504, content={"error": "Conversion timed out."})
        await loop.run_in_executor(state.executor, write_atomic, output_path, result.data)

    logger.info("Wrote %s (unit=%s, %d warnings)",
                output_path, result.unit.value, len(result.warnings))
    return ConvertResponse(
        message="Conversion successful.",
        outputPath=str(output_path),
        unit=result.unit.value,
        scale=result.scale,
        warnings=[str(w) for w in result.warnings],
    )


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or Settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )
    executor = ThreadPoolExecutor(max_workers=settings.worker_threads,
                                  thread_name_prefix="svg-laser")

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        executor.shutdown(wait=False, cancel_futures=True)

    app = FastAPI(
        title="svg-laser",
        description="SVG to unit-tagged DXF conversion",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.executor = executor
    app.state.path_locks = PathLocks()

    @app.exception_handler(InvalidRequest)
    async def _invalid(request: Request, exc: InvalidRequest) -> JSONResponse:
        return JSONResponse(status_code=400, content={"error": str(exc)})

    @app.exception_handler(PathBusy)
    async def _busy(request: Request, exc: PathBusy) -> JSONResponse:
        return JSONResponse(
            status_code=409,
            content={"error": f"A conversion is already writing {exc}."},
        )

    @app.exception_handler(IOFailure)
    async def _io(request: Request, exc: IOFailure) -> JSONResponse:
        logger.error("Conversion failed: %s", exc)
        return JSONResponse(status_code=500, content={"error": str(exc)})

    app.include_router(router)
    return app
