"""
Output dimension calculation.

Computes the pixel size an imagor path will produce for a state node,
following the backend's stage order:

1. Source: the crop rectangle when all four crop fields are set, else the
   node's original dimensions.
2. Target: explicit width/height, or a fill axis resolved as
   ``max(1, parent - offset)``, else the source size.
3. Fit: in fit-in mode the source is scaled by
   ``min(targetW / srcW, targetH / srcH, 1.0)`` (a missing target axis is
   unconstrained, no upscaling); otherwise the target size is used as is.
4. Padding is added only when a fill color is defined.
5. Rotation by 90/270 swaps the axes.
6. Proportion (canvas only) scales the final size.

The same pipeline serves the canvas and every layer.
"""

import math
from typing import Any, Optional

from pathforge.models import Dimensions, ImageEditorState


def round_half_up(value: float) -> int:
    """Round .5 away from zero for positive values (pixel rounding)."""
    return int(math.floor(value + 0.5))


def get_source_dimensions(state: ImageEditorState, original: Dimensions) -> Dimensions:
    """Return the size entering the resize stage (crop or original)."""
    if state.has_crop():
        return Dimensions(width=state.crop_width, height=state.crop_height)
    return original


def resolve_target_size(
    state: ImageEditorState,
    parent: Optional[Dimensions] = None,
) -> tuple[Optional[int], Optional[int]]:
    """
    Resolve the requested output size per axis.

    Fill axes resolve against ``parent``; without a parent they fall back to
    the explicit width/height.

    Returns:
        (width, height), each None when the axis is unconstrained
    """
    width = state.width or None
    height = state.height or None
    if state.width_full and parent is not None:
        width = max(1, parent.width - (state.width_full_offset or 0))
    if state.height_full and parent is not None:
        height = max(1, parent.height - (state.height_full_offset or 0))
    return width, height


def resolve_fill_axes(
    state: ImageEditorState,
    parent: Optional[Dimensions] = None,
) -> ImageEditorState:
    """Return a copy with fill axes replaced by concrete pixel sizes."""
    if not (state.width_full or state.height_full) or parent is None:
        return state
    width, height = resolve_target_size(state, parent)
    return state.model_copy(update={
        'width': width,
        'height': height,
        'width_full': None,
        'width_full_offset': None,
        'height_full': None,
        'height_full_offset': None,
    })


def calculate_resized_dimensions(
    state: ImageEditorState,
    original: Dimensions,
    parent: Optional[Dimensions] = None,
) -> Dimensions:
    """Size after crop and resize, before padding and rotation."""
    source = get_source_dimensions(state, original)
    target_w, target_h = resolve_target_size(state, parent)

    if target_w is None and target_h is None:
        return source

    if state.fit_in:
        if source.width <= 0 or source.height <= 0:
            return source
        scale = min(
            target_w / source.width if target_w else math.inf,
            target_h / source.height if target_h else math.inf,
            1.0,
        )
        return Dimensions(
            width=round_half_up(source.width * scale),
            height=round_half_up(source.height * scale),
        )

    return Dimensions(
        width=target_w or source.width,
        height=target_h or source.height,
    )


def calculate_output_dimensions(
    state: ImageEditorState,
    original: Dimensions,
    parent: Optional[Dimensions] = None,
    *,
    apply_proportion: bool = False,
) -> Dimensions:
    """
    Calculate the rendered size of a state node.

    Args:
        state: Transformation state (root state or layer transforms)
        original: Original dimensions of the node's image
        parent: Parent canvas size, needed for fill axes
        apply_proportion: Apply the canvas-level proportion scale

    Returns:
        Output dimensions after crop, resize, padding, rotation
    """
    resized = calculate_resized_dimensions(state, original, parent)
    width, height = resized.width, resized.height

    if state.has_fill():
        left, top, right, bottom = state.padding()
        width += left + right
        height += top + bottom

    if state.rotation in (90, 270):
        width, height = height, width

    if apply_proportion and state.proportion and state.proportion != 100:
        factor = state.proportion / 100
        width = round_half_up(width * factor)
        height = round_half_up(height * factor)

    return Dimensions(width=width, height=height)


def calculate_canvas_output_dimensions(
    state: ImageEditorState,
    original: Dimensions,
    parent: Optional[Dimensions] = None,
) -> Dimensions:
    """Output size of the editing canvas, proportion included."""
    return calculate_output_dimensions(state, original, parent, apply_proportion=True)


def calculate_layer_output_dimensions(
    original: Dimensions,
    transforms: Optional[ImageEditorState] = None,
    parent: Optional[Dimensions] = None,
) -> Dimensions:
    """Output size of a layer image inside its parent canvas."""
    if transforms is None:
        return original
    return calculate_output_dimensions(transforms, original, parent)


# =============================================================================
# Fill-mode helpers
# =============================================================================

_FILL_KEYS = {
    'width': ('width_full', 'width_full_offset'),
    'height': ('height_full', 'height_full_offset'),
}


def toggle_fill_mode(
    axis: str,
    current_full: bool,
    parent_px: int,
    current_px: int,
    current_offset: int,
    existing: Optional[ImageEditorState] = None,
) -> ImageEditorState:
    """
    Toggle one axis between fixed-pixel and fill mode.

    Entering fill mode keeps the current visual size as an inset
    (``parent - current``, clamped to 0). Leaving fill mode resolves the
    inset back to ``max(1, parent - offset)`` pixels.
    """
    full_key, offset_key = _FILL_KEYS[axis]
    base = existing or ImageEditorState()
    if not current_full:
        updates: dict[str, Any] = {
            full_key: True,
            offset_key: max(0, parent_px - current_px),
            axis: None,
        }
    else:
        updates = {
            full_key: False,
            offset_key: None,
            axis: max(1, parent_px - current_offset),
        }
    return base.merged(updates)


def clamp_fill_offset(value: int, parent_px: int) -> int:
    """Clamp a fill inset to ``[0, parent - 1]`` so the axis keeps 1px."""
    return min(max(0, value), parent_px - 1)


def enrich_transforms_for_fill_mode(
    incoming: dict[str, Any],
    current: ImageEditorState,
    parent: Dimensions,
) -> dict[str, Any]:
    """
    Convert absolute sizes from a resize into insets for fill axes.

    Axes not in fill mode pass through unchanged.
    """
    enriched = dict(incoming)
    if enriched.get('width') is not None and current.width_full:
        enriched['width_full'] = True
        enriched['width_full_offset'] = max(0, parent.width - enriched.pop('width'))
    if enriched.get('height') is not None and current.height_full:
        enriched['height_full'] = True
        enriched['height_full_offset'] = max(0, parent.height - enriched.pop('height'))
    return enriched
