"""
Layer position variant.

A layer coordinate on one axis is either:

- ``Absolute(px)``: a canvas pixel coordinate. Non-negative values are
  measured from the top-left corner, negative values are offsets from the
  right/bottom edge minus the layer size (``x=-100`` puts the layer's right
  edge 100px inside the canvas right edge).
- ``EdgeAligned(edge, offset)``: aligned to a canvas edge (or centered). A
  positive ``offset`` moves the layer that many pixels *outside* the edge,
  which is how drags beyond the canvas bounds are stored.

The wire format (imagor ``image()`` filter arguments, templates, API dicts)
is ``int | str``: ``100``, ``-50``, ``"center"``, ``"left-20"``. Short forms
``l-20``, ``r-20``, ``t-20`` and ``b-20`` are accepted on input and always
formatted back in long form.
"""

from dataclasses import dataclass
from enum import Enum
import re
from typing import Any, Union

from pathforge.exceptions import InvalidPositionError


class Edge(str, Enum):
    """Alignment keywords understood by the image() filter."""
    LEFT = "left"
    RIGHT = "right"
    TOP = "top"
    BOTTOM = "bottom"
    CENTER = "center"


SHORT_EDGES = {
    "l": Edge.LEFT,
    "r": Edge.RIGHT,
    "t": Edge.TOP,
    "b": Edge.BOTTOM,
}

_POSITION_RE = re.compile(
    r"^(?P<edge>left|right|top|bottom|center|l|r|t|b)(?:-(?P<offset>\d+))?$"
)
_NUMBER_RE = re.compile(r"^-?\d+(?:\.\d+)?$")


@dataclass(frozen=True)
class Absolute:
    """Canvas pixel coordinate (negative = measured from right/bottom)."""

    px: float

    @property
    def from_far_edge(self) -> bool:
        """True if the coordinate is an offset from the right/bottom edge."""
        return self.px < 0


@dataclass(frozen=True)
class EdgeAligned:
    """Edge or center alignment, optionally pushed ``offset`` px outside."""

    edge: Edge
    offset: int = 0

    def __post_init__(self):
        if self.edge == Edge.CENTER and self.offset:
            raise InvalidPositionError("center alignment does not take an offset")
        if self.offset < 0:
            raise InvalidPositionError(f"edge offset must be >= 0, got {self.offset}")

    @property
    def is_far_edge(self) -> bool:
        """True for right/bottom alignment."""
        return self.edge in (Edge.RIGHT, Edge.BOTTOM)


LayerPosition = Union[Absolute, EdgeAligned]

CENTER = EdgeAligned(Edge.CENTER)


def parse_position(value: Any) -> LayerPosition:
    """
    Parse a wire position into the tagged variant.

    Args:
        value: int/float, numeric string, keyword string, or an existing variant

    Returns:
        Absolute or EdgeAligned

    Raises:
        InvalidPositionError: If the value cannot be interpreted
    """
    if isinstance(value, (Absolute, EdgeAligned)):
        return value
    if isinstance(value, bool):
        raise InvalidPositionError(f"invalid layer position: {value!r}")
    if isinstance(value, (int, float)):
        return Absolute(_normalize_number(value))
    if isinstance(value, str):
        text = value.strip().lower()
        if _NUMBER_RE.match(text):
            return Absolute(_normalize_number(float(text)))
        match = _POSITION_RE.match(text)
        if match:
            edge_name = match.group("edge")
            edge = SHORT_EDGES.get(edge_name) or Edge(edge_name)
            offset = int(match.group("offset") or 0)
            return EdgeAligned(edge, offset)
    raise InvalidPositionError(f"invalid layer position: {value!r}")


def format_position(position: LayerPosition) -> Union[int, float, str]:
    """Format a position for the wire (inverse of parse_position)."""
    if isinstance(position, Absolute):
        return _normalize_number(position.px)
    if position.offset:
        return f"{position.edge.value}-{position.offset}"
    return position.edge.value


def offset_position(position: LayerPosition, delta: float) -> LayerPosition:
    """Shift a numeric position by ``delta``; keyword positions are untouched."""
    if isinstance(position, Absolute):
        return Absolute(_normalize_number(position.px + delta))
    return position


def _normalize_number(value: float) -> Union[int, float]:
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value
