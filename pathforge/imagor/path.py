# pathforge - imagor path encoding
"""
Compile an ImageEditorState into an imagor transformation path.

Path grammar (segments joined by ``/``, empty segments omitted)::

    [cropL x cropT : cropR x cropB]/[fit-in/][stretch/][-]W x [-]H/
    [padL x padT[:padR x padB]]/[hAlign]/[vAlign]/[smart]/
    filters:name(args):name(args).../imagePath

Filter chain order is fixed:

    brightness, contrast, saturation, hue, grayscale
    -> blur, sharpen -> round_corner -> fill -> rotate
    -> image(...) per visible layer
    -> format, quality, max_bytes (or the preview format)
    -> strip_icc, strip_exif, strip_metadata
    -> extra filters (e.g. attachment)
    -> proportion (canvas only, always last)

Layer sub-paths are produced by the same encoder, so nesting is unbounded.
"""

from __future__ import annotations

import base64
from dataclasses import dataclass, field
from typing import Optional, Sequence, Union

from pathforge.dimensions import (
    calculate_output_dimensions,
    calculate_resized_dimensions,
    resolve_fill_axes,
    round_half_up,
)
from pathforge.models import Absolute, BlendMode, Dimensions, ImageEditorState, ImageLayer, format_position

BASE64_PREFIX = "b64:"

# Characters that break path or filter-argument parsing
UNSAFE_PATH_CHARS = frozenset(" ?#&(),")

# Leading segments the backend would read as directives instead of image path
RESERVED_PREFIXES = (
    "unsafe/",
    "meta/",
    "params/",
    "trim/",
    "fit-in/",
    "full-fit-in/",
    "adaptive-fit-in/",
    "stretch/",
    "smart/",
    "filters:",
    "b64:",
)


@dataclass
class ImagorFilter:
    """A single ``name(args)`` entry of the filters segment."""

    name: str
    args: str = ""

    def to_string(self) -> str:
        """Format as ``name(args)``."""
        return f"{self.name}({self.args})"

    @classmethod
    def parse(cls, text: str) -> 'ImagorFilter':
        """Parse ``name(args)`` (args may contain nested parentheses)."""
        text = text.strip()
        open_idx = text.find("(")
        if open_idx <= 0 or not text.endswith(")"):
            raise ValueError(f"Invalid filter: {text!r}")
        return cls(name=text[:open_idx], args=text[open_idx + 1:-1])


def split_filters(segment: str) -> list[ImagorFilter]:
    """
    Split a ``filters:...`` segment into filters.

    Colons inside parentheses (nested image() paths) are not separators.
    """
    if segment.startswith("filters:"):
        segment = segment[len("filters:"):]
    result: list[ImagorFilter] = []
    depth = 0
    start = 0
    for i, char in enumerate(segment):
        if char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
        elif char == ":" and depth == 0:
            if i > start:
                result.append(ImagorFilter.parse(segment[start:i]))
            start = i + 1
    if start < len(segment):
        result.append(ImagorFilter.parse(segment[start:]))
    return result


def needs_base64(image_path: str) -> bool:
    """Check if an image path must be base64 escaped."""
    if any(char in UNSAFE_PATH_CHARS for char in image_path):
        return True
    return image_path.startswith(RESERVED_PREFIXES)


def encode_image_path(image_path: str) -> str:
    """Return the path verbatim, or ``b64:`` + url-safe base64 without padding."""
    if not needs_base64(image_path):
        return image_path
    encoded = base64.urlsafe_b64encode(image_path.encode("utf-8")).decode("ascii")
    return BASE64_PREFIX + encoded.rstrip("=")


def decode_image_path(segment: str) -> str:
    """Inverse of encode_image_path."""
    if not segment.startswith(BASE64_PREFIX):
        return segment
    data = segment[len(BASE64_PREFIX):]
    data += "=" * (-len(data) % 4)
    return base64.urlsafe_b64decode(data.encode("ascii")).decode("utf-8")


def format_number(value: Union[int, float]) -> str:
    """Format numbers the way the backend expects (``50``, ``1.5``)."""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


@dataclass
class EncodeOptions:
    """Output-related switches for a single encode call."""

    # Preview output ignores the user's format/quality/max_bytes
    for_preview: bool = False
    preview_format: str = "webp"
    # Multiplies dimensions, padding, blur/sharpen, radii and layer offsets
    scale: float = 1.0
    # Appended before proportion (e.g. attachment())
    extra_filters: Sequence[ImagorFilter] = field(default_factory=tuple)


def build_filters(
    state: ImageEditorState,
    *,
    canvas: Optional[Dimensions] = None,
    options: Optional[EncodeOptions] = None,
    is_layer: bool = False,
) -> list[ImagorFilter]:
    """
    Build the ordered filter chain for a state node.

    Args:
        state: State node to encode
        canvas: Output size of this node, used to resolve layer fill axes
        options: Output switches
        is_layer: Layer sub-paths carry no output, metadata or proportion filters

    Returns:
        Ordered list of filters
    """
    options = options or EncodeOptions()
    scale = options.scale
    filters: list[ImagorFilter] = []

    for name in ("brightness", "contrast", "saturation", "hue"):
        value = getattr(state, name)
        if value:
            filters.append(ImagorFilter(name, format_number(value)))
    if state.grayscale:
        filters.append(ImagorFilter("grayscale"))

    for name in ("blur", "sharpen"):
        value = getattr(state, name)
        if value:
            filters.append(ImagorFilter(name, format_number(_scaled_float(value, scale))))

    if state.round_corner_radius:
        radius = max(1, round_half_up(state.round_corner_radius * scale))
        filters.append(ImagorFilter("round_corner", str(radius)))

    if state.fill_color is not None:
        filters.append(ImagorFilter("fill", state.fill_color))

    if state.rotation:
        filters.append(ImagorFilter("rotate", str(state.rotation)))

    for layer in state.layers or []:
        if layer.visible:
            filters.append(build_layer_filter(layer, canvas=canvas, scale=scale))

    if not is_layer:
        if options.for_preview:
            filters.append(ImagorFilter("format", options.preview_format))
        else:
            if state.format:
                filters.append(ImagorFilter("format", state.format))
            if state.quality:
                filters.append(ImagorFilter("quality", str(state.quality)))
            if state.max_bytes:
                filters.append(ImagorFilter("max_bytes", str(state.max_bytes)))

        if state.strip_icc:
            filters.append(ImagorFilter("strip_icc"))
        if state.strip_exif:
            filters.append(ImagorFilter("strip_exif"))
        if state.strip_metadata:
            filters.append(ImagorFilter("strip_metadata"))

        filters.extend(options.extra_filters)

        if state.proportion and state.proportion != 100:
            filters.append(ImagorFilter("proportion", format_number(state.proportion)))

    return filters


def build_layer_filter(
    layer: ImageLayer,
    *,
    canvas: Optional[Dimensions] = None,
    scale: float = 1.0,
) -> ImagorFilter:
    """
    Build the ``image(path,x,y[,alpha,blendMode])`` filter for a layer.

    The sub-path always carries explicit dimensions; without transforms the
    layer's original dimensions are used. Alpha and blend mode are omitted
    when both are at their defaults.
    """
    transforms = resolve_fill_axes(
        (layer.transforms or ImageEditorState()).without_identity(), canvas
    )
    if not transforms.width and not transforms.height:
        resized = calculate_resized_dimensions(transforms, layer.original_dimensions)
        transforms = transforms.model_copy(update={
            'width': resized.width,
            'height': resized.height,
        })
    # proportion is canvas-level only
    transforms = transforms.model_copy(update={'proportion': None})

    layer_canvas = calculate_output_dimensions(transforms, layer.original_dimensions, canvas)
    sub_path = encode_path(
        transforms,
        layer.image_path,
        original=layer.original_dimensions,
        options=EncodeOptions(scale=scale),
        is_layer=True,
        canvas=layer_canvas,
    )

    args = [
        "/" + sub_path,
        _format_layer_position(layer.x, scale),
        _format_layer_position(layer.y, scale),
    ]
    if not layer.is_default_blend():
        args.append(str(layer.alpha))
        args.append(BlendMode(layer.blend_mode).value)
    return ImagorFilter("image", ",".join(args))


def encode_path(
    state: ImageEditorState,
    image_path: str,
    *,
    original: Optional[Dimensions] = None,
    options: Optional[EncodeOptions] = None,
    is_layer: bool = False,
    canvas: Optional[Dimensions] = None,
) -> str:
    """
    Encode a state node as an imagor path (without signature prefix).

    Args:
        state: State node (root state or layer transforms)
        image_path: Source image path of the node
        original: Original dimensions of the image (needed for scaling and
            for resolving layer fill axes)
        options: Output switches
        is_layer: Encode as a layer sub-path
        canvas: Output size of this node; computed from ``original`` if omitted

    Returns:
        Path string, e.g. ``fit-in/800x600/filters:brightness(20)/photo.jpg``
    """
    options = options or EncodeOptions()
    scale = options.scale
    parts: list[str] = []

    if state.has_crop():
        parts.append(
            f"{state.crop_left}x{state.crop_top}:"
            f"{state.crop_left + state.crop_width}x{state.crop_top + state.crop_height}"
        )

    if state.fit_in:
        parts.append("fit-in")
    if state.stretch:
        parts.append("stretch")

    width, height = _scaled_target(state, original, scale)
    padding = _scaled_padding(state, scale)
    if width or height or state.h_flip or state.v_flip or padding:
        w = ("-" if state.h_flip else "") + str(width or 0)
        h = ("-" if state.v_flip else "") + str(height or 0)
        parts.append(f"{w}x{h}")

    if padding:
        left, top, right, bottom = padding
        if left == right and top == bottom:
            parts.append(f"{left}x{top}")
        else:
            parts.append(f"{left}x{top}:{right}x{bottom}")

    if not state.fit_in:
        if state.h_align:
            parts.append(state.h_align)
        if state.v_align:
            parts.append(state.v_align)
    if state.smart:
        parts.append("smart")

    if canvas is None and original is not None:
        canvas = calculate_output_dimensions(state, original)
    filters = build_filters(state, canvas=canvas, options=options, is_layer=is_layer)
    if filters:
        parts.append("filters:" + ":".join(f.to_string() for f in filters))

    parts.append(encode_image_path(image_path))
    return "/".join(parts)


def _scaled_target(
    state: ImageEditorState,
    original: Optional[Dimensions],
    scale: float,
) -> tuple[Optional[int], Optional[int]]:
    width, height = state.width or None, state.height or None
    if scale == 1:
        return width, height
    if width is None and height is None:
        if original is None:
            return None, None
        resized = calculate_resized_dimensions(state, original)
        width, height = resized.width, resized.height
    return (
        max(1, round_half_up(width * scale)) if width else None,
        max(1, round_half_up(height * scale)) if height else None,
    )


def _scaled_padding(state: ImageEditorState, scale: float) -> Optional[tuple[int, int, int, int]]:
    if not state.has_fill():
        return None
    padding = tuple(round_half_up(value * scale) for value in state.padding())
    if not any(padding):
        return None
    return padding


def _scaled_float(value: float, scale: float) -> float:
    if scale == 1:
        return value
    return round(value * scale, 2)


def _format_layer_position(position, scale: float) -> str:
    if isinstance(position, Absolute) and scale != 1:
        position = Absolute(round_half_up(position.px * scale) if position.px >= 0
                            else -round_half_up(-position.px * scale))
    return str(format_position(position))
