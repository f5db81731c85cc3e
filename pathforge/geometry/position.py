"""
Layer position math.

Converts between imagor layer positions (keywords, canvas pixels, edge
offsets) and on-screen percentages, and maps an on-screen drag rectangle
back to layer positions and transform sizes.

All positioning is relative to the full parent canvas, padding included.
"""

from dataclasses import dataclass
from typing import Optional

from pathforge.dimensions import round_half_up
from pathforge.models import Absolute, Dimensions, Edge, EdgeAligned, LayerPosition


@dataclass
class Rect:
    """Axis-aligned rectangle in display or canvas pixels."""

    x: float
    y: float
    width: float
    height: float

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height


@dataclass
class Padding:
    """Padding on four sides."""

    left: float = 0
    top: float = 0
    right: float = 0
    bottom: float = 0


@dataclass
class LayerPlacement:
    """Resolved top-left corner of a layer, in pixels and percent of canvas."""

    left_px: float
    top_px: float
    left_percent: float
    top_percent: float


@dataclass
class LayerPositionUpdate:
    """Layer changes produced by a drag/resize on screen."""

    x: Optional[LayerPosition] = None
    y: Optional[LayerPosition] = None
    width: Optional[int] = None
    height: Optional[int] = None

    def to_layer_updates(self) -> dict:
        """Return ``update_layer`` keyword data (positions and transform size)."""
        updates: dict = {}
        if self.x is not None:
            updates['x'] = self.x
        if self.y is not None:
            updates['y'] = self.y
        transforms = {}
        if self.width is not None:
            transforms['width'] = self.width
        if self.height is not None:
            transforms['height'] = self.height
        if transforms:
            updates['transforms'] = transforms
        return updates


def resolve_axis(
    position: Optional[LayerPosition],
    layer_size: float,
    canvas_size: float,
    near_edge: Edge,
    far_edge: Edge,
    fallback: float = 0,
) -> float:
    """
    Resolve one axis of a layer position to a canvas pixel coordinate.

    Args:
        position: Position on this axis
        layer_size: Layer size on this axis (its own padding included)
        canvas_size: Parent canvas size on this axis
        near_edge: LEFT for x, TOP for y
        far_edge: RIGHT for x, BOTTOM for y
        fallback: Used for missing or foreign-axis keywords

    Returns:
        Pixel coordinate of the layer's near edge
    """
    if isinstance(position, Absolute):
        if position.px < 0:
            return canvas_size + position.px - layer_size
        return position.px
    if isinstance(position, EdgeAligned):
        if position.edge == Edge.CENTER:
            return (canvas_size - layer_size) / 2
        if position.edge == near_edge:
            return -position.offset
        if position.edge == far_edge:
            return canvas_size - layer_size + position.offset
    return fallback


def calculate_layer_position(
    x: Optional[LayerPosition],
    y: Optional[LayerPosition],
    layer_width: float,
    layer_height: float,
    canvas_width: float,
    canvas_height: float,
    padding_left: float = 0,
    padding_top: float = 0,
) -> LayerPlacement:
    """
    Calculate where a layer is drawn on its parent canvas.

    Keywords: left -> 0, center -> (canvas - layer) / 2, right -> canvas - layer.
    Numeric x >= 0 is canvas-absolute; x < 0 resolves to canvas + x - layer.
    ``left-N`` / ``right-N`` push the layer N px outside that edge. Anything
    else falls back to the base padding offset.
    """
    left = resolve_axis(x, layer_width, canvas_width, Edge.LEFT, Edge.RIGHT, padding_left)
    top = resolve_axis(y, layer_height, canvas_height, Edge.TOP, Edge.BOTTOM, padding_top)
    return LayerPlacement(
        left_px=left,
        top_px=top,
        left_percent=(left / canvas_width) * 100 if canvas_width else 0.0,
        top_percent=(top / canvas_height) * 100 if canvas_height else 0.0,
    )


def rotate_padding(
    padding_left: float,
    padding_right: float,
    padding_top: float,
    padding_bottom: float,
    rotation: Optional[int],
) -> Padding:
    """
    Map source-space padding to rotated canvas space.

    90: top->left, right->top, bottom->right, left->bottom.
    180: opposite sides swap. 270: inverse of 90.
    """
    if rotation == 90:
        return Padding(left=padding_top, top=padding_right, right=padding_bottom, bottom=padding_left)
    if rotation == 180:
        return Padding(left=padding_right, top=padding_bottom, right=padding_left, bottom=padding_top)
    if rotation == 270:
        return Padding(left=padding_bottom, top=padding_left, right=padding_top, bottom=padding_right)
    return Padding(left=padding_left, top=padding_top, right=padding_right, bottom=padding_bottom)


def calculate_layer_image_dimensions(
    display_width: float,
    display_height: float,
    padding_left: float,
    padding_right: float,
    padding_top: float,
    padding_bottom: float,
    rotation: Optional[int],
    fill_color: Optional[str] = None,
) -> tuple[float, float]:
    """
    Reverse padding and rotation to get the layer's image size.

    Padding is only subtracted when a fill color is set.
    """
    width, height = display_width, display_height
    if fill_color is not None:
        padding = rotate_padding(padding_left, padding_right, padding_top, padding_bottom, rotation)
        width = display_width - padding.left - padding.right
        height = display_height - padding.top - padding.bottom
    if rotation in (90, 270):
        return height, width
    return width, height


def convert_display_to_layer_position(
    display: Rect,
    overlay_width: float,
    overlay_height: float,
    canvas: Dimensions,
    layer_padding: Padding,
    rotation: Optional[int],
    current_x: Optional[LayerPosition],
    current_y: Optional[LayerPosition],
    fill_color: Optional[str] = None,
) -> LayerPositionUpdate:
    """
    Convert an on-screen layer rectangle into layer position updates.

    Args:
        display: Layer rectangle in preview pixels
        overlay_width: Width of the preview the rectangle is drawn on
        overlay_height: Height of the preview the rectangle is drawn on
        canvas: Parent canvas output dimensions
        layer_padding: The layer's own padding (source space)
        rotation: The layer's rotation
        current_x: Current x, decides left/right anchoring
        current_y: Current y, decides top/bottom anchoring
        fill_color: The layer's fill color (padding only counts when set)

    Returns:
        LayerPositionUpdate with transform size (min 1px) and, for axes that
        are not centered, the new position. A near-anchored axis leaving the
        canvas becomes ``left-N``/``top-N``; a far-anchored axis becomes a
        negative offset inside the canvas, the bare keyword when flush, or
        ``right-N``/``bottom-N`` outside.
    """
    total_width = round_half_up(display.width / overlay_width * canvas.width)
    total_height = round_half_up(display.height / overlay_height * canvas.height)

    image_w, image_h = calculate_layer_image_dimensions(
        total_width,
        total_height,
        layer_padding.left,
        layer_padding.right,
        layer_padding.top,
        layer_padding.bottom,
        rotation,
        fill_color,
    )
    update = LayerPositionUpdate(
        width=max(1, int(image_w)),
        height=max(1, int(image_h)),
    )

    if _can_drag(current_x):
        canvas_x = round_half_up(display.x / overlay_width * canvas.width)
        update.x = _convert_axis(canvas_x, total_width, canvas.width, current_x, Edge.LEFT, Edge.RIGHT)
    if _can_drag(current_y):
        canvas_y = round_half_up(display.y / overlay_height * canvas.height)
        update.y = _convert_axis(canvas_y, total_height, canvas.height, current_y, Edge.TOP, Edge.BOTTOM)
    return update


def _can_drag(position: Optional[LayerPosition]) -> bool:
    if position is None:
        return False
    return not (isinstance(position, EdgeAligned) and position.edge == Edge.CENTER)


def _is_far_anchored(position: LayerPosition, far_edge: Edge) -> bool:
    if isinstance(position, Absolute):
        return position.px < 0
    return position.edge == far_edge


def _convert_axis(
    canvas_pos: int,
    layer_size: int,
    canvas_size: int,
    current: LayerPosition,
    near_edge: Edge,
    far_edge: Edge,
) -> LayerPosition:
    if _is_far_anchored(current, far_edge):
        overflow = canvas_pos + layer_size - canvas_size
        if overflow > 0:
            return EdgeAligned(far_edge, overflow)
        if overflow == 0:
            return EdgeAligned(far_edge)
        return Absolute(overflow)
    if canvas_pos < 0:
        return EdgeAligned(near_edge, -canvas_pos)
    return Absolute(canvas_pos)
