"""
Edge and center snapping for layer drags.

Rules per axis (axes are independent):
- Edge snap when the layer's near or far edge is closer than the pixel
  threshold to the matching canvas bound.
- Center snap when the layer center is closer than a percentage of the
  canvas size to the canvas midpoint.
- Edge snapping wins over center snapping.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from pathforge.config import settings

from .position import Rect


class SnapTarget(str, Enum):
    """What an axis snapped to."""
    START = "start"    # left / top canvas edge
    CENTER = "center"
    END = "end"        # right / bottom canvas edge


@dataclass
class SnapResult:
    """Snapped layer origin and which guide each axis snapped to."""

    x: float
    y: float
    snapped_x: Optional[SnapTarget] = None
    snapped_y: Optional[SnapTarget] = None


def snap_axis(
    position: float,
    size: float,
    canvas_size: float,
    edge_threshold: Optional[float] = None,
    center_percent: Optional[float] = None,
) -> tuple[float, Optional[SnapTarget]]:
    """
    Snap one axis of a dragged layer.

    Args:
        position: Layer near-edge coordinate
        size: Layer size on this axis
        canvas_size: Canvas size on this axis
        edge_threshold: Edge snap distance in px (strict, default from settings)
        center_percent: Center snap distance in percent of canvas_size

    Returns:
        (position, target) with target None when nothing snapped
    """
    if edge_threshold is None:
        edge_threshold = settings.SNAP_THRESHOLD_PX
    if center_percent is None:
        center_percent = settings.CENTER_SNAP_PERCENT

    start_distance = abs(position)
    end_distance = abs(position + size - canvas_size)
    if start_distance < edge_threshold or end_distance < edge_threshold:
        if start_distance <= end_distance:
            return 0, SnapTarget.START
        return canvas_size - size, SnapTarget.END

    center_distance = abs(position + size / 2 - canvas_size / 2)
    if center_distance < canvas_size * center_percent / 100:
        return (canvas_size - size) / 2, SnapTarget.CENTER

    return position, None


def snap_rect(
    rect: Rect,
    canvas_width: float,
    canvas_height: float,
    edge_threshold: Optional[float] = None,
    center_percent: Optional[float] = None,
) -> SnapResult:
    """Snap a dragged layer rectangle on both axes."""
    x, snapped_x = snap_axis(rect.x, rect.width, canvas_width, edge_threshold, center_percent)
    y, snapped_y = snap_axis(rect.y, rect.height, canvas_height, edge_threshold, center_percent)
    return SnapResult(x=x, y=y, snapped_x=snapped_x, snapped_y=snapped_y)


def snap_edge(
    value: float,
    canvas_size: float,
    edge_threshold: Optional[float] = None,
) -> tuple[float, bool]:
    """
    Snap a single moving edge (resize) to the canvas bounds.

    Returns:
        (value, snapped)
    """
    if edge_threshold is None:
        edge_threshold = settings.SNAP_THRESHOLD_PX
    start_distance = abs(value)
    end_distance = abs(value - canvas_size)
    if start_distance < edge_threshold and start_distance <= end_distance:
        return 0, True
    if end_distance < edge_threshold:
        return canvas_size, True
    return value, False
