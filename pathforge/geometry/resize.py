"""
Handle-driven layer resize.

Order of operations for one pointer move:

1. Apply the pointer delta to the edges owned by the handle.
2. With aspect lock, derive the secondary dimension from the primary one
   (e/w: width drives height, n/s: height drives width, corners: the larger
   change drives the other).
3. Snap the moving edges to the canvas bounds; a snapped dimension drives
   the other one again so the aspect ratio never goes stale.
4. Enforce the minimum size on both axes, re-applying the aspect ratio.

Edges opposite the handle stay anchored throughout. Edge handles under
aspect lock grow the other axis away from the fixed corner (bottom-right for
n/w, top-left for s/e) rather than around the center.
"""

from enum import Enum
from typing import Optional

from pathforge.config import settings

from .position import Rect
from .snapping import snap_edge


class ResizeHandle(str, Enum):
    """Resize handles around a layer overlay."""
    N = "n"
    NE = "ne"
    E = "e"
    SE = "se"
    S = "s"
    SW = "sw"
    W = "w"
    NW = "nw"


def resize_rect(
    handle: ResizeHandle,
    start: Rect,
    delta_x: float,
    delta_y: float,
    *,
    aspect_ratio: Optional[float] = None,
    canvas_width: Optional[float] = None,
    canvas_height: Optional[float] = None,
    snap_threshold: Optional[float] = None,
    min_size: Optional[float] = None,
) -> Rect:
    """
    Resize a layer rectangle by dragging ``handle``.

    Args:
        handle: Handle being dragged
        start: Rectangle when the drag started
        delta_x: Pointer movement since drag start
        delta_y: Pointer movement since drag start
        aspect_ratio: width / height to preserve, None for a free resize
        canvas_width: Canvas width for edge snapping (None disables)
        canvas_height: Canvas height for edge snapping (None disables)
        snap_threshold: Edge snap distance (default from settings)
        min_size: Minimum width and height (default from settings)

    Returns:
        New rectangle
    """
    handle = ResizeHandle(handle)
    if min_size is None:
        min_size = settings.MIN_LAYER_SIZE_PX
    name = handle.value
    left, top, width, height = start.x, start.y, start.width, start.height

    if 'n' in name:
        top = start.y + delta_y
        height = start.height - delta_y
    if 's' in name:
        height = start.height + delta_y
    if 'w' in name:
        left = start.x + delta_x
        width = start.width - delta_x
    if 'e' in name:
        width = start.width + delta_x

    primary = _primary_axis(handle, start, width, height)
    if aspect_ratio:
        width, height = _derive(primary, width, height, aspect_ratio)
        left, top = _anchor(handle, start, left, top, width, height)

    width_snapped = height_snapped = False
    if canvas_width is not None:
        if 'e' in name:
            right, width_snapped = snap_edge(left + width, canvas_width, snap_threshold)
            width = right - left
        if 'w' in name:
            right = left + width
            left, width_snapped = snap_edge(left, canvas_width, snap_threshold)
            width = right - left
    if canvas_height is not None:
        if 's' in name:
            bottom, height_snapped = snap_edge(top + height, canvas_height, snap_threshold)
            height = bottom - top
        if 'n' in name:
            bottom = top + height
            top, height_snapped = snap_edge(top, canvas_height, snap_threshold)
            height = bottom - top

    if aspect_ratio and (width_snapped or height_snapped):
        if width_snapped and (primary == 'width' or not height_snapped):
            width, height = _derive('width', width, height, aspect_ratio)
        else:
            width, height = _derive('height', width, height, aspect_ratio)
        left, top = _anchor(handle, start, left, top, width, height)

    if width < min_size:
        width = min_size
        if aspect_ratio:
            height = width / aspect_ratio
        left, top = _anchor(handle, start, left, top, width, height)
    if height < min_size:
        height = min_size
        if aspect_ratio:
            width = height * aspect_ratio
        left, top = _anchor(handle, start, left, top, width, height)

    return Rect(x=left, y=top, width=width, height=height)


def _primary_axis(handle: ResizeHandle, start: Rect, width: float, height: float) -> str:
    if handle in (ResizeHandle.E, ResizeHandle.W):
        return 'width'
    if handle in (ResizeHandle.N, ResizeHandle.S):
        return 'height'
    if abs(width - start.width) > abs(height - start.height):
        return 'width'
    return 'height'


def _derive(primary: str, width: float, height: float, aspect_ratio: float) -> tuple[float, float]:
    if primary == 'width':
        return width, width / aspect_ratio
    return height * aspect_ratio, height


def _anchor(
    handle: ResizeHandle,
    start: Rect,
    left: float,
    top: float,
    width: float,
    height: float,
) -> tuple[float, float]:
    """
    Keep the edges opposite the handle fixed.

    Under aspect lock an edge handle also resizes the other axis; ``n`` and
    ``w`` then keep the bottom-right corner, ``s`` and ``e`` the top-left one.
    """
    name = handle.value
    if 'w' in name or handle == ResizeHandle.N:
        left = start.right - width
    if 'n' in name or handle == ResizeHandle.W:
        top = start.bottom - height
    return left, top
