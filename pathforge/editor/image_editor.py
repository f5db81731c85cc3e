"""
ImageEditor - Editing session over one base image and its layer tree.

The editor holds the complete state tree (root state with nested layers) as
the single source of truth, plus an editing context addressing the node
currently being edited. Every edit is written straight into the tree with
copy-on-write helpers, so the base state is always complete and history
snapshots never depend on which context was active.

Each mutation:
- records a history snapshot (debounced, or immediately for destructive
  operations)
- notifies ``on_state_change``
- schedules a debounced preview regeneration

Example usage:
    editor = ImageEditor(EditorConfig('photo.jpg', Dimensions(width=1920, height=1080)))
    editor.initialize(EditorCallbacks(on_preview_update=show))
    editor.update_params({'brightness': 20})
    editor.add_layer(ImageLayer(image_path='logo.png',
                                original_dimensions=Dimensions(width=200, height=100)))
"""

import copy
import logging
import uuid
from dataclasses import dataclass
from typing import Any, Callable, Optional, Sequence, Union

from pathforge.config import Settings, settings as default_settings
from pathforge.dimensions import (
    calculate_canvas_output_dimensions,
    calculate_output_dimensions,
    calculate_resized_dimensions,
    resolve_fill_axes,
    round_half_up,
)
from pathforge.exceptions import LayerNotFoundError
from pathforge.imagor import EncodeOptions, ImagorFilter, ImagorUrlSigner, UrlGenerator, encode_path
from pathforge.models import (
    DimensionMode,
    Dimensions,
    ImageEditorState,
    ImageLayer,
    ImagorTemplate,
    TemplateImportResult,
    normalize_keys,
    offset_position,
)
from pathforge.templates import codec

from .context import ROOT, EditingContext, context_for_path
from .history import HistoryManager
from .preview import PreviewOrchestrator
from .scheduler import AsyncioScheduler, Scheduler
from .tree import (
    find_layer,
    find_layer_path,
    get_layer_at_path,
    get_state_at_path,
    replace_layer_at_path,
    set_transforms_at_path,
    update_layers_at_path,
)

logger = logging.getLogger(__name__)

IDENTITY_FIELDS = ('image_path', 'original_dimensions')

StateUpdates = Union[ImageEditorState, dict[str, Any]]


def _as_dimensions(value: Union[Dimensions, dict]) -> Dimensions:
    if isinstance(value, Dimensions):
        return value
    return Dimensions.model_validate(value)


@dataclass
class EditorConfig:
    """Base image of an editing session."""

    image_path: str
    original_dimensions: Dimensions
    # Preview URLs are scaled down to fit these bounds
    preview_max_dimensions: Optional[Dimensions] = None

    def __post_init__(self):
        self.original_dimensions = _as_dimensions(self.original_dimensions)
        if self.preview_max_dimensions is not None:
            self.preview_max_dimensions = _as_dimensions(self.preview_max_dimensions)


@dataclass
class EditorCallbacks:
    """Notifications emitted by the editor (all optional)."""

    on_preview_update: Optional[Callable[[str], None]] = None
    on_error: Optional[Callable[[Exception], None]] = None
    on_state_change: Optional[Callable[[ImageEditorState], None]] = None
    on_loading_change: Optional[Callable[[bool], None]] = None
    on_history_change: Optional[Callable[[], None]] = None


@dataclass
class DownloadResult:
    """Outcome of handle_download."""

    success: bool
    url: Optional[str] = None
    error: Optional[str] = None


class ImageEditor:
    """
    Editing session: state tree, editing context, history and previews.

    Args:
        config: Base image path and dimensions
        scheduler: Timer source; defaults to the running asyncio loop
        url_generator: Turns encoded paths into URLs; defaults to a local
            ImagorUrlSigner built from settings
        settings: Settings instance (defaults to the module singleton)
    """

    def __init__(
        self,
        config: EditorConfig,
        *,
        scheduler: Optional[Scheduler] = None,
        url_generator: Optional[UrlGenerator] = None,
        settings: Optional[Settings] = None,
    ):
        self._settings = settings or default_settings
        self._config = EditorConfig(
            image_path=config.image_path,
            original_dimensions=config.original_dimensions,
            preview_max_dimensions=config.preview_max_dimensions,
        )
        self._scheduler = scheduler or AsyncioScheduler()
        if url_generator is None:
            url_generator = ImagorUrlSigner(settings=self._settings)
        self._url_generator = url_generator
        self._callbacks = EditorCallbacks()

        self._root = self._initial_state()
        self._context: EditingContext = ROOT
        self._selected_layer_id: Optional[str] = None
        self._visual_crop_enabled = False
        self._aspect_locked = True
        self._locked_aspect_ratio: Optional[float] = None

        self._history = HistoryManager(
            self._scheduler,
            lambda: self._root,
            on_change=self._emit_history_change,
            settings=self._settings,
        )
        self._preview = PreviewOrchestrator(
            self._scheduler,
            self._build_preview_url,
            on_update=self._emit_preview_update,
            on_error=self._emit_error,
            on_loading=self._emit_loading_change,
            settings=self._settings,
        )

    # --- Lifecycle ---

    def initialize(self, callbacks: Optional[EditorCallbacks] = None) -> None:
        """Attach callbacks, reset to defaults and schedule the first preview."""
        self._callbacks = callbacks or EditorCallbacks()
        self._root = self._initial_state()
        self._context = ROOT
        self._selected_layer_id = None
        self._visual_crop_enabled = False
        self._history.clear()
        self._preview.reset()
        self._preview.schedule()

    def destroy(self) -> None:
        """Cancel pending timers and in-flight previews."""
        self._history.cancel()
        self._preview.cancel()
        self._callbacks = EditorCallbacks()

    def _initial_state(self) -> ImageEditorState:
        return ImageEditorState(**self._identity())

    def _identity(self) -> dict[str, Any]:
        return {
            'image_path': self._config.image_path,
            'original_dimensions': self._config.original_dimensions,
        }

    # --- State ---

    def get_state(self) -> ImageEditorState:
        """Return a copy of the state of the current editing context."""
        state = self._current_state()
        if self._visual_crop_enabled:
            state = state.model_copy(update={'visual_crop_enabled': True})
        return state.model_copy(deep=True)

    def update_params(
        self,
        updates: StateUpdates,
        *,
        add_to_history: bool = True,
        respect_aspect_lock: bool = False,
    ) -> None:
        """
        Merge parameter updates into the current context.

        Args:
            updates: Fields to change (camelCase or snake_case keys); None
                clears a field
            add_to_history: Record the change for undo
            respect_aspect_lock: Derive the other dimension from the locked
                aspect ratio when only width or height is given
        """
        changes = self._normalize_updates(updates)
        if 'visual_crop_enabled' in changes:
            self._visual_crop_enabled = bool(changes.pop('visual_crop_enabled'))
        for name in IDENTITY_FIELDS:
            changes.pop(name, None)

        if respect_aspect_lock and self._aspect_locked:
            ratio = self._aspect_ratio()
            if changes.get('width') is not None:
                changes['height'] = max(1, round_half_up(changes['width'] / ratio))
            elif changes.get('height') is not None:
                changes['width'] = max(1, round_half_up(changes['height'] * ratio))

        if add_to_history:
            self._history.schedule_snapshot()
        self._write_current(self._current_state().merged(changes))
        self._state_changed()

    def restore_state(self, state: StateUpdates) -> None:
        """Replace the current context's state without recording history."""
        if isinstance(state, dict):
            state = ImageEditorState.from_api_dict(state)
        else:
            state = state.model_copy(deep=True)
        if not self._context.path and state.image_path and state.original_dimensions:
            self._config.image_path = state.image_path
            self._config.original_dimensions = state.original_dimensions
        self._visual_crop_enabled = bool(state.visual_crop_enabled)
        self._write_current(state.model_copy(update={'visual_crop_enabled': None}))
        self._state_changed()

    def reset_params(self) -> None:
        """Clear every parameter of the current context (layers are kept)."""
        self._history.checkpoint()
        layers = self._current_state().layers
        self._visual_crop_enabled = False
        self._write_current(ImageEditorState(layers=layers))
        self._state_changed()

    def get_output_dimensions(self) -> Dimensions:
        """Rendered size of the current context."""
        state = self._current_state()
        if not self._context.path:
            return calculate_canvas_output_dimensions(state, self._config.original_dimensions)
        return calculate_output_dimensions(
            state, self.get_original_dimensions(), self.get_parent_canvas_dimensions()
        )

    def get_parent_canvas_dimensions(self) -> Optional[Dimensions]:
        """Canvas size the current layer is composited onto (None at root)."""
        path = self._context.path
        if not path:
            return None
        state = self._root
        canvas = calculate_output_dimensions(state, self._config.original_dimensions)
        for layer_id in path[:-1]:
            layer = find_layer(state.layers, layer_id)
            state = layer.transforms or ImageEditorState()
            canvas = calculate_output_dimensions(state, layer.original_dimensions, canvas)
        return canvas

    def get_imagor_path(self, *, for_preview: bool = False) -> str:
        """Encoded path of the current context."""
        return self._encode_current(for_preview=for_preview)

    def toggle_aspect_lock(self) -> bool:
        """Flip the aspect lock; locking captures the current width/height ratio."""
        self._aspect_locked = not self._aspect_locked
        state = self._current_state()
        if self._aspect_locked and state.width and state.height:
            self._locked_aspect_ratio = state.width / state.height
        elif not self._aspect_locked:
            self._locked_aspect_ratio = None
        return self._aspect_locked

    def is_aspect_locked(self) -> bool:
        return self._aspect_locked

    def _aspect_ratio(self) -> float:
        """Locked ratio, else the current width/height, else the image's own ratio."""
        if self._locked_aspect_ratio:
            return self._locked_aspect_ratio
        state = self._current_state()
        if state.width and state.height:
            return state.width / state.height
        original = self.get_original_dimensions()
        return original.width / original.height

    # --- History ---

    def undo(self) -> bool:
        """Restore the previous complete state. Returns False if there is none."""
        state = self._history.undo(self._root)
        if state is None:
            return False
        self._restore_tree(state)
        return True

    def redo(self) -> bool:
        """Re-apply an undone state. Returns False if there is none."""
        state = self._history.redo(self._root)
        if state is None:
            return False
        self._restore_tree(state)
        return True

    def can_undo(self) -> bool:
        return self._history.can_undo()

    def can_redo(self) -> bool:
        return self._history.can_redo()

    def get_history_snapshot(self) -> dict[str, list[dict[str, Any]]]:
        """Serialized undo/redo stacks (oldest first)."""
        return {
            'undo': [state.to_api_dict() for state in self._history.undo_stack],
            'redo': [state.to_api_dict() for state in self._history.redo_stack],
        }

    def _restore_tree(self, tree: ImageEditorState) -> None:
        if tree.image_path and tree.original_dimensions:
            self._config.image_path = tree.image_path
            self._config.original_dimensions = tree.original_dimensions
        self._root = tree.model_copy(update=self._identity())

        # The restored tree may no longer contain the edited layer
        path = self._context.path
        while path and get_layer_at_path(self._root, path) is None:
            path = path[:-1]
        if path != self._context.path:
            logger.debug("Context %s missing after restore, moving to %s", self._context.path, path)
            self._context = context_for_path(path)
            self._visual_crop_enabled = False
        if self._selected_layer_id and not find_layer(self._current_state().layers, self._selected_layer_id):
            self._selected_layer_id = None
        self._state_changed()

    # --- Layers ---

    def add_layer(self, layer: Union[ImageLayer, dict[str, Any]]) -> ImageLayer:
        """Append a layer to the current context."""
        if isinstance(layer, ImageLayer):
            layer = layer.model_copy(deep=True)
        else:
            layer = ImageLayer.from_api_dict(layer)
        self._history.checkpoint()
        self._root = update_layers_at_path(
            self._root, self._context.path, lambda layers: layers + [layer]
        )
        logger.debug("Added layer %s", layer.id)
        self._state_changed()
        return layer.model_copy(deep=True)

    def remove_layer(self, layer_id: str) -> None:
        """Remove a layer from the current context (no-op if missing)."""
        if find_layer(self._current_state().layers, layer_id) is None:
            return
        self._history.checkpoint()
        self._root = update_layers_at_path(
            self._root,
            self._context.path,
            lambda layers: [layer for layer in layers if layer.id != layer_id],
        )
        if self._selected_layer_id == layer_id:
            self._selected_layer_id = None
        logger.debug("Removed layer %s", layer_id)
        self._state_changed()

    def duplicate_layer(self, layer_id: str) -> Optional[ImageLayer]:
        """
        Copy a layer (with its whole subtree) to the end of the current context.

        Numeric positions are offset so the copy is visible; keyword
        positions are kept.

        Returns:
            The new layer, or None if ``layer_id`` does not exist
        """
        layer = find_layer(self._current_state().layers, layer_id)
        if layer is None:
            return None
        offset = self._settings.DUPLICATE_OFFSET_PX
        copy = layer.model_copy(deep=True, update={
            'id': str(uuid.uuid4()),
            'name': f"{layer.name} Copy",
            'x': offset_position(layer.x, offset),
            'y': offset_position(layer.y, offset),
        })
        self._history.checkpoint()
        self._root = update_layers_at_path(
            self._root, self._context.path, lambda layers: layers + [copy]
        )
        self._state_changed()
        return copy.model_copy(deep=True)

    def update_layer(
        self,
        layer_id: str,
        updates: dict[str, Any],
        *,
        replace_transforms: bool = False,
        add_to_history: bool = True,
    ) -> None:
        """
        Update layer properties in the current context.

        Args:
            layer_id: Layer to update (no-op if missing)
            updates: Layer fields; ``transforms`` is merged into the existing
                transforms unless ``replace_transforms`` is set
            replace_transforms: Replace transforms as a whole
            add_to_history: Record the change for undo
        """
        layer = find_layer(self._current_state().layers, layer_id)
        if layer is None:
            logger.debug("update_layer: no layer %s in current context", layer_id)
            return

        changes = dict(updates)
        changes.pop('id', None)
        has_transforms = 'transforms' in changes
        transforms = changes.pop('transforms', None)

        updated = layer.merged(changes) if changes else layer
        if has_transforms:
            if transforms is None:
                new_transforms = None
            elif replace_transforms or layer.transforms is None:
                if isinstance(transforms, dict):
                    transforms = ImageEditorState.from_api_dict(transforms)
                new_transforms = transforms.model_copy(deep=True).without_identity()
            else:
                new_transforms = layer.transforms.merged(transforms).without_identity()
            updated = updated.model_copy(update={'transforms': new_transforms})

        if add_to_history:
            self._history.schedule_snapshot()
        self._root = replace_layer_at_path(
            self._root, self._context.path + (layer_id,), lambda _: updated
        )
        self._state_changed()

    def reorder_layers(self, order: Sequence[Union[str, ImageLayer]]) -> None:
        """
        Reorder the layers of the current context.

        Args:
            order: Layer ids (or layers) in the new bottom-to-top order; must
                contain every layer of the context exactly once
        """
        ids = [item.id if isinstance(item, ImageLayer) else str(item) for item in order]
        layers = {layer.id: layer for layer in self._current_state().layers or []}
        if sorted(ids) != sorted(layers):
            raise ValueError("reorder_layers requires every layer of the context exactly once")
        self._history.schedule_snapshot()
        self._root = update_layers_at_path(
            self._root, self._context.path, lambda _: [layers[layer_id] for layer_id in ids]
        )
        self._state_changed()

    def get_layer(self, layer_id: str) -> Optional[ImageLayer]:
        """Return a copy of a layer of the current context, or None."""
        layer = find_layer(self._current_state().layers, layer_id)
        return layer.model_copy(deep=True) if layer is not None else None

    def get_layers(self) -> list[ImageLayer]:
        """Layers of the base image."""
        return [layer.model_copy(deep=True) for layer in self._root.layers or []]

    def get_context_layers(self) -> list[ImageLayer]:
        """Layers of the current editing context."""
        return [layer.model_copy(deep=True) for layer in self._current_state().layers or []]

    def select_layer(self, layer_id: Optional[str]) -> None:
        """Select a layer of the current context (None clears the selection)."""
        if layer_id is not None and find_layer(self._current_state().layers, layer_id) is None:
            raise LayerNotFoundError(f"Layer not found in current context: {layer_id}")
        self._selected_layer_id = layer_id

    def get_selected_layer_id(self) -> Optional[str]:
        return self._selected_layer_id

    # --- Editing context ---

    def switch_context(self, layer_id: Optional[str]) -> None:
        """
        Move the editing context.

        ``None`` ascends one level (no-op at the root). A layer id of the
        current context descends into it, an id on the current path ascends
        to it, any other id is searched in the whole tree.

        Raises:
            LayerNotFoundError: If ``layer_id`` is not in the tree
        """
        current = self._context.path
        if layer_id is None:
            if not current:
                return
            new_context = self._context.exit()
        elif current and current[-1] == layer_id:
            return
        elif layer_id in current:
            new_context = context_for_path(current[:current.index(layer_id) + 1])
        elif find_layer(self._current_state().layers, layer_id) is not None:
            new_context = self._context.enter(layer_id)
        else:
            path = find_layer_path(self._root, layer_id)
            if path is None:
                raise LayerNotFoundError(f"Layer not found: {layer_id}")
            new_context = context_for_path(path)

        self._history.flush()
        self._context = new_context
        target = new_context.path
        self._visual_crop_enabled = False

        if len(target) < len(current) and current[:len(target)] == target:
            # Ascending keeps the layer just left selected, except at the root
            self._selected_layer_id = current[len(target)] if target else None
        else:
            self._selected_layer_id = None

        logger.debug("Switched editing context to %s", target or 'root')
        self._state_changed()

    def get_editing_context(self) -> Optional[str]:
        """Id of the layer being edited, None at the root."""
        return self._context.layer_id

    def get_context_path(self) -> list[str]:
        return list(self._context.path)

    def get_context_depth(self) -> int:
        return self._context.depth

    def get_original_dimensions(self) -> Dimensions:
        """Original dimensions of the image of the current context."""
        if not self._context.path:
            return self._config.original_dimensions
        return self._current_layer().original_dimensions

    def get_current_image_path(self) -> str:
        """Image path of the current context."""
        if not self._context.path:
            return self._config.image_path
        return self._current_layer().image_path

    def get_base_image_path(self) -> str:
        return self._config.image_path

    def get_base_state(self) -> ImageEditorState:
        """
        Return the complete state tree.

        At the root the image identity is included; inside a layer it is not.
        """
        if not self._context.path:
            return self._root.model_copy(deep=True)
        return self._root.without_identity().model_copy(deep=True)

    def _current_layer(self) -> ImageLayer:
        layer = get_layer_at_path(self._root, self._context.path)
        if layer is None:
            raise LayerNotFoundError(f"Context path not found: {self._context.path}")
        return layer

    def _current_state(self) -> ImageEditorState:
        state = get_state_at_path(self._root, self._context.path)
        if state is None:
            raise LayerNotFoundError(f"Context path not found: {self._context.path}")
        return state

    def _write_current(self, state: ImageEditorState) -> None:
        if not self._context.path:
            self._root = state.without_identity().model_copy(update=self._identity())
        else:
            self._root = set_transforms_at_path(self._root, self._context.path, state)

    # --- Image swap ---

    def replace_image(
        self,
        image_path: str,
        dimensions: Union[Dimensions, dict],
        layer_id: Optional[str] = None,
    ) -> None:
        """
        Swap the image of the root, the current layer, or a named layer.

        Crop is always removed (it refers to the old image); all other
        transforms are kept. Swapping the current layer's image also moves
        its size to the new image when the size was not customized.

        Raises:
            LayerNotFoundError: If ``layer_id`` is not in the current context
        """
        dimensions = _as_dimensions(dimensions)
        if layer_id is not None and find_layer(self._current_state().layers, layer_id) is None:
            raise LayerNotFoundError(f"Layer not found in current context: {layer_id}")

        self._history.checkpoint()
        if layer_id is not None:
            def swap(layer: ImageLayer) -> ImageLayer:
                transforms = layer.transforms.without_crop() if layer.transforms else None
                return layer.model_copy(update={
                    'image_path': image_path,
                    'original_dimensions': dimensions,
                    'transforms': transforms,
                })

            self._root = replace_layer_at_path(self._root, self._context.path + (layer_id,), swap)
        elif not self._context.path:
            self._config.image_path = image_path
            self._config.original_dimensions = dimensions
            self._root = self._root.without_crop().model_copy(update=self._identity())
        else:
            layer = self._current_layer()
            old = layer.original_dimensions
            transforms = (layer.transforms or ImageEditorState()).without_crop()
            unset = transforms.width is None and transforms.height is None
            original = transforms.width == old.width and transforms.height == old.height
            if unset or original:
                transforms = transforms.model_copy(update={
                    'width': dimensions.width,
                    'height': dimensions.height,
                })
            self._root = replace_layer_at_path(
                self._root,
                self._context.path,
                lambda current: current.model_copy(update={
                    'image_path': image_path,
                    'original_dimensions': dimensions,
                    'transforms': transforms,
                }),
            )
        logger.debug("Replaced image with %s", image_path)
        self._state_changed()

    swap_image = replace_image

    # --- URLs ---

    def _preview_scale(self, state: ImageEditorState, original: Dimensions,
                       parent: Optional[Dimensions]) -> float:
        bounds = self._config.preview_max_dimensions
        if bounds is None:
            return 1.0
        output = calculate_output_dimensions(state, original, parent)
        if output.width <= bounds.width and output.height <= bounds.height:
            return 1.0
        return min(bounds.width / output.width, bounds.height / output.height)

    def _encode_current(self, *, for_preview: bool) -> str:
        state = self._current_state()
        if for_preview and self._visual_crop_enabled:
            state = state.without_crop()
        original = self.get_original_dimensions()
        parent = self.get_parent_canvas_dimensions()
        state = resolve_fill_axes(state, parent)
        options = EncodeOptions(
            for_preview=for_preview,
            preview_format=self._settings.PREVIEW_FORMAT,
            scale=self._preview_scale(state, original, parent) if for_preview else 1.0,
        )
        return encode_path(state, self.get_current_image_path(), original=original, options=options)

    def _encode_base(
        self,
        state: Optional[ImageEditorState] = None,
        extra_filters: Sequence[ImagorFilter] = (),
    ) -> str:
        state = (state or self._root).without_identity()
        return encode_path(
            state,
            self._config.image_path,
            original=self._config.original_dimensions,
            options=EncodeOptions(extra_filters=tuple(extra_filters)),
        )

    async def _build_preview_url(self) -> str:
        path = self._encode_current(for_preview=True)
        return await self._url_generator.generate_url(self.get_current_image_path(), path)

    async def generate_copy_url(self) -> str:
        """URL of the full composition with the user's output settings."""
        return await self._url_generator.generate_url(self._config.image_path, self._encode_base())

    async def generate_download_url(self) -> str:
        """Copy URL with the ``attachment()`` filter."""
        path = self._encode_base(extra_filters=[ImagorFilter("attachment")])
        return await self._url_generator.generate_url(self._config.image_path, path)

    async def handle_download(self) -> DownloadResult:
        """Generate the download URL, reporting failures in the result."""
        try:
            url = await self.generate_download_url()
        except Exception as e:
            logger.warning("Download URL generation failed: %s", e)
            return DownloadResult(success=False, error=str(e) or "Failed to download image")
        return DownloadResult(success=True, url=url)

    async def generate_thumbnail_url(self, width: Optional[int] = None, height: Optional[int] = None) -> str:
        """Small fit-in webp rendering of the full composition."""
        size = self._settings.THUMBNAIL_SIZE
        state = self._root.model_copy(update={
            'width': width or size,
            'height': height or size,
            'fit_in': True,
            'stretch': None,
            'format': 'webp',
            'quality': self._settings.THUMBNAIL_QUALITY,
            'max_bytes': None,
        })
        return await self._url_generator.generate_url(self._config.image_path, self._encode_base(state))

    # --- Preview ---

    def notify_preview_loaded(self) -> None:
        """Called by the consumer once the latest preview is displayed."""
        self._preview.notify_loaded()

    async def wait_for_preview_load(self, timeout: Optional[float] = None) -> bool:
        """Wait until the consumer reports the next preview as displayed."""
        return await self._preview.wait_for_load(timeout)

    async def wait_for_preview(self) -> None:
        """Wait for the in-flight preview request (if any) to finish."""
        await self._preview.wait_idle()

    def get_last_preview_url(self) -> Optional[str]:
        return self._preview.last_url

    def is_visual_crop_enabled(self) -> bool:
        return self._visual_crop_enabled

    async def set_visual_crop_enabled(self, enabled: bool, timeout: Optional[float] = None) -> None:
        """
        Toggle visual crop mode.

        Entering the mode first renders the uncropped preview and waits until
        it is displayed, so the crop overlay appears over the full image.
        """
        if enabled == self._visual_crop_enabled:
            return
        self._visual_crop_enabled = enabled
        if enabled and self._current_state().has_crop():
            self._preview.schedule()
            self._preview.flush()
            loaded = await self.wait_for_preview_load(
                self._settings.PREVIEW_LOAD_TIMEOUT_S if timeout is None else timeout
            )
            if not loaded:
                logger.debug("Preview did not report loaded before entering crop mode")
            self._emit_state_change()
            return
        self._state_changed()

    # --- Templates ---

    def export_template(
        self,
        name: str,
        *,
        dimension_mode: Union[DimensionMode, str] = DimensionMode.ADAPTIVE,
        description: Optional[str] = None,
    ) -> ImagorTemplate:
        """Build a template from the complete base state."""
        mode = DimensionMode(dimension_mode)
        output = None
        if mode == DimensionMode.PREDEFINED and not (self._root.width and self._root.height):
            output = calculate_resized_dimensions(self._root, self._config.original_dimensions)
        return codec.export_template(
            self._root,
            name,
            dimension_mode=mode,
            description=description,
            output_dimensions=output,
            settings=self._settings,
        )

    def import_template(self, json_text: str) -> TemplateImportResult:
        """
        Apply a template document to the base image.

        The base state is replaced (undoable) and the editor returns to the
        root context. Invalid documents leave the state untouched.
        """
        result = codec.import_template(
            json_text, self._config.original_dimensions, settings=self._settings
        )
        if not result.success:
            return result
        self._history.checkpoint()
        self._context = ROOT
        self._selected_layer_id = None
        self._visual_crop_enabled = False
        self._root = result.applied_state.model_copy(deep=True).model_copy(update=self._identity())
        logger.debug("Imported template %r with %d warning(s)", result.template.name, len(result.warnings))
        self._state_changed()
        return result

    # --- Notifications ---

    def _normalize_updates(self, updates: StateUpdates) -> dict[str, Any]:
        if isinstance(updates, ImageEditorState):
            updates = updates.model_copy(deep=True)
            return {name: getattr(updates, name) for name in updates.model_fields_set}
        return normalize_keys(copy.deepcopy(dict(updates)))

    def _state_changed(self) -> None:
        self._emit_state_change()
        self._preview.schedule()

    def _emit_state_change(self) -> None:
        if self._callbacks.on_state_change is not None:
            self._callbacks.on_state_change(self.get_state())

    def _emit_history_change(self) -> None:
        if self._callbacks.on_history_change is not None:
            self._callbacks.on_history_change()

    def _emit_preview_update(self, url: str) -> None:
        if self._callbacks.on_preview_update is not None:
            self._callbacks.on_preview_update(url)

    def _emit_error(self, error: Exception) -> None:
        if self._callbacks.on_error is not None:
            self._callbacks.on_error(error)

    def _emit_loading_change(self, loading: bool) -> None:
        if self._callbacks.on_loading_change is not None:
            self._callbacks.on_loading_change(loading)
