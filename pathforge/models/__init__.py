"""
Pydantic models for the editing core.

Provides:
- ImageEditorState: transformation state for one image (root or layer)
- ImageLayer: overlay node with its own nested transforms
- Dimensions, BlendMode
- Layer position variant (Absolute, EdgeAligned)
- Template document models
"""

from .position import (
    CENTER,
    Absolute,
    Edge,
    EdgeAligned,
    LayerPosition,
    format_position,
    offset_position,
    parse_position,
)
from .state import BlendMode, Dimensions, ImageEditorState, ImageLayer, normalize_keys
from .template import (
    DimensionMode,
    ImagorTemplate,
    TemplateImportResult,
    TemplateMetadata,
    TemplateWarning,
    TemplateWarningType,
)

__all__ = [
    'CENTER',
    'Absolute',
    'Edge',
    'EdgeAligned',
    'LayerPosition',
    'format_position',
    'offset_position',
    'parse_position',
    'BlendMode',
    'Dimensions',
    'ImageEditorState',
    'ImageLayer',
    'normalize_keys',
    'DimensionMode',
    'ImagorTemplate',
    'TemplateImportResult',
    'TemplateMetadata',
    'TemplateWarning',
    'TemplateWarningType',
]
