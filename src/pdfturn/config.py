"""Configuration loading and validation for pdfturn."""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

import yaml

from pdfturn.constants import (
    BYTES_PER_PAGE_ESTIMATE,
    FIT_MARGIN,
    HALF_TURN_COMPENSATION,
    QUARTER_TURN_COMPENSATION,
)
from pdfturn.exceptions import ConfigError


# ============================================================================
# Enums for constrained string values
# ============================================================================


class ServiceBackend(str, Enum):
    """Transformation service backends."""

    LOCAL = "local"  # Apply rotations in-process with pypdf
    HTTP = "http"  # Post to a remote transformation service
    MOCK = "mock"  # Record calls, for tests


# ============================================================================
# Config sections
# ============================================================================


@dataclass
class PreviewConfig:
    """Presentation settings for the rotated preview grid.

    The compensation factors are a presentation heuristic: after a cell's
    content is rotated it is shrunk by this factor so it stays inside the
    cell's fixed-aspect frame.
    """
    margin: float = FIT_MARGIN
    quarter_turn_compensation: float = QUARTER_TURN_COMPENSATION  # 90, 270
    half_turn_compensation: float = HALF_TURN_COMPENSATION  # 0, 180
    cell_aspect: tuple[int, int] = (3, 4)  # width:height of each cell
    cell_width: int = 240  # pixels
    columns: int = 3
    gap: int = 16  # pixels between cells
    dashed_unchanged: bool = True  # Dashed border on 0° cells

    @property
    def cell_size(self) -> tuple[int, int]:
        aspect_w, aspect_h = self.cell_aspect
        return self.cell_width, round(self.cell_width * aspect_h / aspect_w)


@dataclass
class RenderConfig:
    """Page rendering behaviour."""
    timeout: float = 15.0  # Seconds before a render counts as failed
    fallback_enabled: bool = True  # Offer the compatibility viewer on failure


@dataclass
class ResizeConfig:
    """Resize observation behaviour."""
    settle_delay: float = 0.15  # Seconds of quiet before re-rendering


@dataclass
class EngineConfig:
    """Document engine settings, passed to the engine at construction."""
    poppler_path: Path | None = None  # Directory holding pdftoppm, if not on PATH
    max_dpi: int = 300  # Upper bound on rasterization resolution
    thread_count: int = 1  # pdf2image conversion threads


@dataclass
class ServiceConfig:
    """Transformation service selection."""
    backend: ServiceBackend = ServiceBackend.LOCAL
    base_url: str = "http://localhost:8080/api"
    timeout: float = 60.0


@dataclass
class PageCountConfig:
    """Fallback page count estimation."""
    bytes_per_page: int = BYTES_PER_PAGE_ESTIMATE


@dataclass
class Config:
    """Root configuration object."""
    version: int = 1
    preview: PreviewConfig = field(default_factory=PreviewConfig)
    render: RenderConfig = field(default_factory=RenderConfig)
    resize: ResizeConfig = field(default_factory=ResizeConfig)
    engine: EngineConfig = field(default_factory=EngineConfig)
    service: ServiceConfig = field(default_factory=ServiceConfig)
    page_count: PageCountConfig = field(default_factory=PageCountConfig)


# ============================================================================
# Parsing helpers
# ============================================================================


def _parse_enum(enum_class: type[Enum], value: str, field: str) -> Enum:
    """Parse a string value into an enum, raising ConfigError on failure."""
    try:
        return enum_class(value)
    except ValueError:
        valid = ", ".join(e.value for e in enum_class)
        raise ConfigError(
            f"Invalid value '{value}'",
            context={"field": field, "suggestion": f"Valid values are: {valid}"},
        )


def _number(
    data: dict[str, Any],
    key: str,
    default: float,
    field: str,
    minimum: float | None = None,
    maximum: float | None = None,
    exclusive_minimum: bool = False,
) -> float:
    """Read a numeric value and check its range."""
    value = data.get(key, default)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigError(
            f"Expected a number, got {type(value).__name__}",
            context={"field": field},
        )
    if minimum is not None:
        too_small = value <= minimum if exclusive_minimum else value < minimum
        if too_small:
            bound = "greater than" if exclusive_minimum else "at least"
            raise ConfigError(
                f"Value {value} must be {bound} {minimum}",
                context={"field": field},
            )
    if maximum is not None and value > maximum:
        raise ConfigError(
            f"Value {value} must be at most {maximum}",
            context={"field": field},
        )
    return value


def _section(data: dict[str, Any], name: str) -> dict[str, Any]:
    """Return a config section, which must be a mapping when present."""
    section = data.get(name) or {}
    if not isinstance(section, dict):
        raise ConfigError(f"Section '{name}' must be a mapping", context={"field": name})
    return section


def parse_preview(data: dict[str, Any]) -> PreviewConfig:
    """Parse the preview section."""
    aspect = data.get("cell_aspect", [3, 4])
    if (
        not isinstance(aspect, (list, tuple))
        or len(aspect) != 2
        or not all(isinstance(v, int) and v > 0 for v in aspect)
    ):
        raise ConfigError(
            f"Invalid cell aspect {aspect!r}",
            context={"field": "preview.cell_aspect", "suggestion": "Use two positive integers, e.g. [3, 4]"},
        )

    return PreviewConfig(
        margin=_number(data, "margin", FIT_MARGIN, "preview.margin", 0, 1, exclusive_minimum=True),
        quarter_turn_compensation=_number(
            data, "quarter_turn_compensation", QUARTER_TURN_COMPENSATION,
            "preview.quarter_turn_compensation", 0, 1, exclusive_minimum=True,
        ),
        half_turn_compensation=_number(
            data, "half_turn_compensation", HALF_TURN_COMPENSATION,
            "preview.half_turn_compensation", 0, 1, exclusive_minimum=True,
        ),
        cell_aspect=(aspect[0], aspect[1]),
        cell_width=int(_number(data, "cell_width", 240, "preview.cell_width", 16)),
        columns=int(_number(data, "columns", 3, "preview.columns", 1)),
        gap=int(_number(data, "gap", 16, "preview.gap", 0)),
        dashed_unchanged=bool(data.get("dashed_unchanged", True)),
    )


def load_config(config_path: Path) -> Config:
    """Load and validate a configuration file."""
    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with open(config_path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f)

    if data is None:
        return Config()
    if not isinstance(data, dict):
        raise ConfigError("Configuration must be a YAML dictionary")

    render = _section(data, "render")
    resize = _section(data, "resize")
    engine = _section(data, "engine")
    service = _section(data, "service")
    page_count = _section(data, "page_count")

    poppler_path = engine.get("poppler_path")

    return Config(
        version=data.get("version", 1),
        preview=parse_preview(_section(data, "preview")),
        render=RenderConfig(
            timeout=_number(render, "timeout", 15.0, "render.timeout", 0, exclusive_minimum=True),
            fallback_enabled=bool(render.get("fallback", True)),
        ),
        resize=ResizeConfig(
            settle_delay=_number(resize, "settle_delay", 0.15, "resize.settle_delay", 0),
        ),
        engine=EngineConfig(
            poppler_path=Path(poppler_path) if poppler_path else None,
            max_dpi=int(_number(engine, "max_dpi", 300, "engine.max_dpi", 1)),
            thread_count=int(_number(engine, "thread_count", 1, "engine.thread_count", 1)),
        ),
        service=ServiceConfig(
            backend=_parse_enum(ServiceBackend, service.get("backend", "local"), "service.backend"),
            base_url=str(service.get("base_url", "http://localhost:8080/api")).rstrip("/"),
            timeout=_number(service, "timeout", 60.0, "service.timeout", 0, exclusive_minimum=True),
        ),
        page_count=PageCountConfig(
            bytes_per_page=int(
                _number(page_count, "bytes_per_page", BYTES_PER_PAGE_ESTIMATE, "page_count.bytes_per_page", 1)
            ),
        ),
    )
