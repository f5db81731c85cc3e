"""
Editing context: which node of the layer tree the editor is working on.

The context is a small immutable state machine with two states:

- ``RootContext``: editing the base image
- ``LayerContext(path)``: editing the layer addressed by an id path

Transitions return new context objects; the editor swaps them in.
"""

from dataclasses import dataclass
from typing import Optional, Union


@dataclass(frozen=True)
class RootContext:
    """Editing the base image."""

    @property
    def path(self) -> tuple[str, ...]:
        return ()

    @property
    def layer_id(self) -> Optional[str]:
        return None

    @property
    def depth(self) -> int:
        return 0

    def enter(self, layer_id: str) -> 'LayerContext':
        return LayerContext((layer_id,))

    def exit(self) -> 'RootContext':
        # Already at the top
        return self


@dataclass(frozen=True)
class LayerContext:
    """Editing a (possibly nested) layer."""

    path: tuple[str, ...]

    def __post_init__(self):
        if not self.path:
            raise ValueError("LayerContext requires a non-empty path")

    @property
    def layer_id(self) -> Optional[str]:
        """Id of the innermost layer."""
        return self.path[-1]

    @property
    def depth(self) -> int:
        return len(self.path)

    def enter(self, layer_id: str) -> 'LayerContext':
        return LayerContext(self.path + (layer_id,))

    def exit(self) -> 'EditingContext':
        if len(self.path) == 1:
            return RootContext()
        return LayerContext(self.path[:-1])


EditingContext = Union[RootContext, LayerContext]

ROOT = RootContext()


def context_for_path(path) -> EditingContext:
    """Build the context addressing ``path`` (empty = root)."""
    path = tuple(path)
    if not path:
        return ROOT
    return LayerContext(path)
