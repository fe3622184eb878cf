"""Page geometry helpers: fit scaling and rotation-aware bounding boxes.

Every function here is pure. Dimensions are in the document engine's
natural units (PDF points at scale 1.0) for page sizes, and in pixels for
container sizes; a scale converts the former to the latter.
"""

import math
from dataclasses import dataclass
from typing import TYPE_CHECKING

from pdfturn.constants import FIT_MARGIN, QUARTER_TURNS, ROTATE_ANGLES
from pdfturn.exceptions import GeometryError

if TYPE_CHECKING:
    from pdfturn.config import PreviewConfig


@dataclass(frozen=True)
class Size:
    """A width/height pair."""

    width: float
    height: float


@dataclass(frozen=True)
class ViewportGeometry:
    """Scale and pixel size for one render request.

    Derived on every render request from the natural page size, the
    container size and the rotation; never cached across a resize.
    """

    scale: float
    render_width: int
    render_height: int

    @property
    def size(self) -> tuple[int, int]:
        return self.render_width, self.render_height


def _check_degrees(degrees: int) -> None:
    if degrees not in ROTATE_ANGLES:
        raise GeometryError(
            f"Rotation must be 0, 90, 180, or 270, got {degrees}",
            context={"degrees": degrees},
        )


def fit_scale(natural: Size, container: Size, margin: float = FIT_MARGIN) -> float:
    """
    Compute the scale that fits a page inside a container.

    The page keeps its aspect ratio and is shrunk by `margin` so it never
    touches the container edge.

    Args:
        natural: Page size at scale 1.0
        container: Available space
        margin: Fraction of the limiting dimension to use (0 < margin <= 1)

    Returns:
        A finite, positive scale

    Raises:
        GeometryError: If either size is degenerate
    """
    if not natural.width or not natural.height or natural.width < 0 or natural.height < 0:
        raise GeometryError(
            "degenerate source",
            context={"width": natural.width, "height": natural.height},
        )
    if container.width <= 0 or container.height <= 0:
        raise GeometryError(
            "degenerate container",
            context={"width": container.width, "height": container.height},
        )

    scale = min(container.width / natural.width, container.height / natural.height) * margin

    if not math.isfinite(scale) or scale <= 0:
        raise GeometryError(f"Computed scale {scale} is not usable")
    return scale


def rotated_box(natural: Size, degrees: int) -> Size:
    """Return the bounding box of a page after a clockwise rotation.

    Quarter turns swap width and height; 0 and 180 leave them unchanged.
    """
    _check_degrees(degrees)
    if degrees in QUARTER_TURNS:
        return Size(natural.height, natural.width)
    return Size(natural.width, natural.height)


def preview_scale_compensation(degrees: int, config: "PreviewConfig | None" = None) -> float:
    """Scale applied to a preview cell's content after rotating it.

    Quarter turns get the smaller factor since the rotated page is wider
    than the portrait cell it sits in.
    """
    _check_degrees(degrees)
    if config is None:
        from pdfturn.config import PreviewConfig

        config = PreviewConfig()
    if degrees in QUARTER_TURNS:
        return config.quarter_turn_compensation
    return config.half_turn_compensation


def scaled_pixels(length: float, scale: float) -> int:
    """Convert a natural length to whole pixels (floor, at least 1).

    The product is rounded to 6 places first so float noise such as
    284.99999999999997 does not lose a pixel.
    """
    return max(1, math.floor(round(length * scale, 6)))


def viewport_geometry(
    natural_width: float,
    natural_height: float,
    container_width: float,
    container_height: float,
    rotation_degrees: int = 0,
    margin: float = FIT_MARGIN,
) -> ViewportGeometry:
    """
    Derive the scale and pixel size of a page rendered into a container.

    The page is fitted by its rotated bounding box, so a portrait page
    rotated by 90 degrees is fitted as a landscape one.

    Returns:
        ViewportGeometry with dimensions floored to whole pixels
    """
    box = rotated_box(Size(natural_width, natural_height), rotation_degrees)
    scale = fit_scale(box, Size(container_width, container_height), margin)
    return ViewportGeometry(
        scale=scale,
        render_width=scaled_pixels(box.width, scale),
        render_height=scaled_pixels(box.height, scale),
    )
