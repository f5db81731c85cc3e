"""
PathForge - Image transformation editing core for imagor

Builds imagor transformation paths from an editable state tree (base image,
filters, crop, padding and nested overlay layers) with undo/redo, debounced
previews, templates and shareable state hashes.
"""

from .config import Settings, settings
from .dimensions import (
    calculate_canvas_output_dimensions,
    calculate_layer_output_dimensions,
    calculate_output_dimensions,
)
from .editor import (
    AsyncioScheduler,
    DownloadResult,
    EditorCallbacks,
    EditorConfig,
    ImageEditor,
    ManualScheduler,
)
from .exceptions import (
    InvalidPositionError,
    LayerNotFoundError,
    PathForgeError,
    PreviewError,
    SignerError,
    TemplateError,
)
from .imagor import ImagorUrlSigner, UrlGenerator, encode_path
from .models import (
    Absolute,
    BlendMode,
    DimensionMode,
    Dimensions,
    Edge,
    EdgeAligned,
    ImageEditorState,
    ImageLayer,
    ImagorTemplate,
    TemplateImportResult,
)
from .state_hash import deserialize_state_from_hash, serialize_state_to_hash

__version__ = "0.1.0"

__all__ = [
    # Configuration
    "Settings",
    "settings",
    # Editor
    "ImageEditor",
    "EditorConfig",
    "EditorCallbacks",
    "DownloadResult",
    "AsyncioScheduler",
    "ManualScheduler",
    # Models
    "Absolute",
    "BlendMode",
    "DimensionMode",
    "Dimensions",
    "Edge",
    "EdgeAligned",
    "ImageEditorState",
    "ImageLayer",
    "ImagorTemplate",
    "TemplateImportResult",
    # Encoding
    "encode_path",
    "ImagorUrlSigner",
    "UrlGenerator",
    "serialize_state_to_hash",
    "deserialize_state_from_hash",
    # Dimensions
    "calculate_output_dimensions",
    "calculate_canvas_output_dimensions",
    "calculate_layer_output_dimensions",
    # Errors
    "PathForgeError",
    "LayerNotFoundError",
    "InvalidPositionError",
    "TemplateError",
    "SignerError",
    "PreviewError",
]
