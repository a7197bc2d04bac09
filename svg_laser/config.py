"""Conversion options and service settings."""

from __future__ import annotations

from dataclasses import dataclass

from pydantic_settings import BaseSettings, SettingsConfigDict


@dataclass(frozen=True)
class ConversionOptions:
    # Max chord error when flattening curves, as a fraction of the shape's
    # bounding-box diagonal.
    curve_tolerance: float = 0.001
    # Absolute floor for the chord error, in source units.
    min_tolerance: float = 1e-6
    # Relative spread allowed between a transform's principal scale factors
    # before circular arcs are flattened instead of kept as arcs.
    arc_anisotropy_tolerance: float = 0.001
    # Read bare viewBox numbers as millimetres when no physical size is
    # declared. Off by default: such documents export unitless.
    assume_mm: bool = False


DEFAULT_OPTIONS = ConversionOptions()


class Settings(BaseSettings):
    host: str = "127.0.0.1"
    port: int = 3000
    log_level: str = "info"
    request_timeout: float = 30.0
    worker_threads: int = 4

    model_config = SettingsConfigDict(
        env_prefix="SVG_LASER_", env_file=".env", env_file_encoding="utf-8",
    )
