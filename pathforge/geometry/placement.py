"""
Initial placement of newly added layers.

A new layer is sized to fit a fraction of the area the user can currently
see (never upscaled beyond its original size) and placed at the top-left or
center of that area. When a zoomed viewport is given, the visible area is
computed in preview pixels and the result is converted back to output
pixels.
"""

from dataclasses import dataclass
from typing import Optional

from pathforge.dimensions import round_half_up
from pathforge.models import Dimensions

from .position import Rect

DEFAULT_SCALE_FACTOR = 0.9
MIN_VISIBLE_RATIO = 0.3


@dataclass
class ViewportInfo:
    """Scroll state of the zoomable preview."""

    scroll_left: float
    scroll_top: float
    client_width: float
    client_height: float
    image_dimensions: Dimensions  # Rendered preview size
    actual_scale: float = 1.0


def calculate_visible_image_area(viewport: ViewportInfo) -> Rect:
    """
    Return the part of the preview image inside the viewport.

    The preview image sits centered in a wrapper twice its size, so it is
    offset by a quarter of the wrapper on each axis.
    """
    image = viewport.image_dimensions
    wrapper_width = image.width / 0.5
    wrapper_height = image.height / 0.5
    offset_x = wrapper_width * 0.25
    offset_y = wrapper_height * 0.25

    left = max(0, viewport.scroll_left - offset_x)
    top = max(0, viewport.scroll_top - offset_y)
    right = min(image.width, viewport.scroll_left + viewport.client_width - offset_x)
    bottom = min(image.height, viewport.scroll_top + viewport.client_height - offset_y)

    return Rect(x=left, y=top, width=max(0, right - left), height=max(0, bottom - top))


def calculate_layer_size_for_area(
    layer: Dimensions,
    area: Rect,
    scale_factor: float = DEFAULT_SCALE_FACTOR,
) -> Dimensions:
    """Fit the layer into ``scale_factor`` of the area without upscaling."""
    scale = min(
        area.width * scale_factor / layer.width,
        area.height * scale_factor / layer.height,
        1,
    )
    return Dimensions(
        width=round_half_up(layer.width * scale),
        height=round_half_up(layer.height * scale),
    )


def calculate_layer_position_in_area(
    area: Rect,
    layer: Dimensions,
    positioning: str = 'top-left',
) -> tuple[float, float]:
    """Return the layer origin for 'center' or 'top-left' placement."""
    if positioning == 'center':
        return (
            area.x + (area.width - layer.width) / 2,
            area.y + (area.height - layer.height) / 2,
        )
    return area.x, area.y


def convert_preview_to_output_coordinates(
    preview: Rect,
    preview_dimensions: Dimensions,
    output_dimensions: Dimensions,
) -> Rect:
    """Scale a preview rectangle into output pixels (rounded)."""
    scale_x = output_dimensions.width / preview_dimensions.width
    scale_y = output_dimensions.height / preview_dimensions.height
    return Rect(
        x=round_half_up(preview.x * scale_x),
        y=round_half_up(preview.y * scale_y),
        width=round_half_up(preview.width * scale_x),
        height=round_half_up(preview.height * scale_y),
    )


def calculate_optimal_layer_positioning(
    layer: Dimensions,
    output_dimensions: Dimensions,
    viewport: Optional[ViewportInfo] = None,
    scale_factor: float = DEFAULT_SCALE_FACTOR,
    positioning: str = 'top-left',
) -> Rect:
    """
    Compute position and size for a new layer.

    Args:
        layer: Original dimensions of the layer image
        output_dimensions: Output size of the canvas the layer is added to
        viewport: Zoomed preview viewport; None places against the full canvas
        scale_factor: Fraction of the target area the layer may fill
        positioning: 'top-left' or 'center'

    Returns:
        Rect in output pixels
    """
    if viewport is not None:
        area = calculate_visible_image_area(viewport)
        visible_ratio = min(
            area.width / viewport.image_dimensions.width,
            area.height / viewport.image_dimensions.height,
        )
        effective_scale = scale_factor * max(MIN_VISIBLE_RATIO, visible_ratio)
    else:
        area = Rect(x=0, y=0, width=output_dimensions.width, height=output_dimensions.height)
        effective_scale = scale_factor

    size = calculate_layer_size_for_area(layer, area, effective_scale)
    x, y = calculate_layer_position_in_area(area, size, positioning)
    result = Rect(x=x, y=y, width=size.width, height=size.height)

    if viewport is not None:
        return convert_preview_to_output_coordinates(
            result, viewport.image_dimensions, output_dimensions
        )
    return result
