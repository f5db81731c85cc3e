"""Copy-on-write helpers for the layer tree.

Layers form a tree addressed by id paths: ``("a", "b")`` is layer ``b``
inside the transforms of layer ``a`` of the root. Updates copy only the nodes
on the path; untouched siblings are shared with the previous tree, so
states must be treated as immutable values.
"""

from typing import Callable, Optional, Sequence

from pathforge.exceptions import LayerNotFoundError
from pathforge.models import ImageEditorState, ImageLayer

LayerList = list[ImageLayer]


def find_layer(layers: Optional[Sequence[ImageLayer]], layer_id: str) -> Optional[ImageLayer]:
    """Find a direct child layer by id."""
    for layer in layers or []:
        if layer.id == layer_id:
            return layer
    return None


def get_layer_at_path(root: ImageEditorState, path: Sequence[str]) -> Optional[ImageLayer]:
    """
    Walk an id path from the root.

    Returns:
        The layer at the end of the path, or None if any step is missing
    """
    state = root
    layer: Optional[ImageLayer] = None
    for layer_id in path:
        layer = find_layer(state.layers, layer_id)
        if layer is None:
            return None
        state = layer.transforms or ImageEditorState()
    return layer


def get_state_at_path(root: ImageEditorState, path: Sequence[str]) -> Optional[ImageEditorState]:
    """Return the transforms of the node at ``path`` (root for an empty path)."""
    if not path:
        return root
    layer = get_layer_at_path(root, path)
    if layer is None:
        return None
    return layer.transforms or ImageEditorState()


def update_layers_at_path(
    root: ImageEditorState,
    path: Sequence[str],
    updater: Callable[[LayerList], LayerList],
) -> ImageEditorState:
    """
    Replace the layer list of the node at ``path``.

    Args:
        root: Complete tree
        path: Id path of the node whose ``layers`` are updated (empty = root)
        updater: Receives a copy of the current list, returns the new list

    Returns:
        New root; nodes off the path are shared

    Raises:
        LayerNotFoundError: If a path step does not exist
    """
    if not path:
        return root.model_copy(update={'layers': updater(list(root.layers or []))})

    head, rest = path[0], path[1:]
    layers = list(root.layers or [])
    for i, layer in enumerate(layers):
        if layer.id == head:
            transforms = layer.transforms or ImageEditorState()
            new_transforms = update_layers_at_path(transforms, rest, updater)
            layers[i] = layer.model_copy(update={'transforms': new_transforms})
            return root.model_copy(update={'layers': layers})
    raise LayerNotFoundError(f"Layer not found in context path: {head}")


def replace_layer_at_path(
    root: ImageEditorState,
    path: Sequence[str],
    updater: Callable[[ImageLayer], ImageLayer],
) -> ImageEditorState:
    """Replace the layer at the end of ``path`` (non-empty) with ``updater(layer)``."""
    if not path:
        raise ValueError("path must address a layer")
    parent_path, layer_id = path[:-1], path[-1]

    def apply(layers: LayerList) -> LayerList:
        for i, layer in enumerate(layers):
            if layer.id == layer_id:
                layers[i] = updater(layer)
                return layers
        raise LayerNotFoundError(f"Layer not found: {layer_id}")

    return update_layers_at_path(root, parent_path, apply)


def set_transforms_at_path(
    root: ImageEditorState,
    path: Sequence[str],
    transforms: ImageEditorState,
) -> ImageEditorState:
    """Write ``transforms`` into the layer at ``path``."""
    return replace_layer_at_path(
        root,
        path,
        lambda layer: layer.model_copy(update={'transforms': transforms.without_identity()}),
    )


def find_layer_path(root: ImageEditorState, layer_id: str) -> Optional[tuple[str, ...]]:
    """Return the id path of a layer anywhere in the tree, or None."""
    for layer in root.layers or []:
        if layer.id == layer_id:
            return (layer.id,)
        if layer.transforms is not None:
            found = find_layer_path(layer.transforms, layer_id)
            if found is not None:
                return (layer.id,) + found
    return None
