"""
Layer geometry: position resolution, snapping, resize and placement.
"""

from .placement import (
    ViewportInfo,
    calculate_layer_position_in_area,
    calculate_layer_size_for_area,
    calculate_optimal_layer_positioning,
    calculate_visible_image_area,
    convert_preview_to_output_coordinates,
)
from .position import (
    LayerPlacement,
    LayerPositionUpdate,
    Padding,
    Rect,
    calculate_layer_image_dimensions,
    calculate_layer_position,
    convert_display_to_layer_position,
    resolve_axis,
    rotate_padding,
)
from .resize import ResizeHandle, resize_rect
from .snapping import SnapResult, SnapTarget, snap_axis, snap_edge, snap_rect

__all__ = [
    'ViewportInfo',
    'calculate_layer_position_in_area',
    'calculate_layer_size_for_area',
    'calculate_optimal_layer_positioning',
    'calculate_visible_image_area',
    'convert_preview_to_output_coordinates',
    'LayerPlacement',
    'LayerPositionUpdate',
    'Padding',
    'Rect',
    'calculate_layer_image_dimensions',
    'calculate_layer_position',
    'convert_display_to_layer_position',
    'resolve_axis',
    'rotate_padding',
    'ResizeHandle',
    'resize_rect',
    'SnapResult',
    'SnapTarget',
    'snap_axis',
    'snap_edge',
    'snap_rect',
]
