"""
ImageEditorState / ImageLayer - Transformation description models.

An ImageEditorState describes how one image (the base image or a layer
image) is transformed: resize, fit mode, crop, filters, padding, rotation,
output encoding, and an ordered list of overlay layers. Each ImageLayer may
carry its own ``transforms`` state with nested ``layers``, so layers form a
tree.

Every field is optional: ``None`` means "not set", which is always the
no-op default. Uses Pydantic v2 with camelCase aliases so serialized dicts
match the template and state-hash formats.
"""

from enum import Enum
from typing import Any, ClassVar, Optional, Union
import uuid

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator

from .position import CENTER, LayerPosition, format_position, parse_position


class BlendMode(str, Enum):
    """Blend modes accepted by the image() filter."""
    NORMAL = "normal"
    MULTIPLY = "multiply"
    SCREEN = "screen"
    OVERLAY = "overlay"
    SOFT_LIGHT = "soft-light"
    HARD_LIGHT = "hard-light"
    COLOR_BURN = "color-burn"
    COLOR_DODGE = "color-dodge"
    DARKEN = "darken"
    LIGHTEN = "lighten"
    ADD = "add"
    DIFFERENCE = "difference"
    EXCLUSION = "exclusion"
    MASK = "mask"
    MASK_OUT = "mask-out"


class Dimensions(BaseModel):
    """Pixel size of an image."""

    model_config = ConfigDict(frozen=True)

    width: int
    height: int

    def swapped(self) -> 'Dimensions':
        """Return the dimensions with width and height exchanged."""
        return Dimensions(width=self.height, height=self.width)


_MODEL_CONFIG = ConfigDict(
    # Allow both snake_case and camelCase input
    populate_by_name=True,
    # Unknown keys (e.g. from newer templates) are dropped
    extra='ignore',
    # Serialize enums by value ("multiply" not "BlendMode.MULTIPLY")
    use_enum_values=True,
    validate_assignment=False,
)


class ImageEditorState(BaseModel):
    """
    Transformation state for one image.

    Serialized form (``to_api_dict``) only contains fields that are set:
    {
        "width": 800,
        "height": 600,
        "fitIn": true,
        "brightness": 20,
        "layers": [...]
    }
    """

    model_config = _MODEL_CONFIG

    VERSION: ClassVar[int] = 1

    # Image identity (root only, captured for swap-undo)
    image_path: Optional[str] = Field(default=None, alias='imagePath')
    original_dimensions: Optional[Dimensions] = Field(default=None, alias='originalDimensions')

    # Target size
    width: Optional[int] = None
    height: Optional[int] = None

    # Fill-mode axes (layers): size = parent - offset
    width_full: Optional[bool] = Field(default=None, alias='widthFull')
    width_full_offset: Optional[int] = Field(default=None, alias='widthFullOffset')
    height_full: Optional[bool] = Field(default=None, alias='heightFull')
    height_full_offset: Optional[int] = Field(default=None, alias='heightFullOffset')

    # Fitting
    stretch: Optional[bool] = None
    fit_in: Optional[bool] = Field(default=None, alias='fitIn')
    smart: Optional[bool] = None

    # Alignment (fill mode only)
    h_align: Optional[str] = Field(default=None, alias='hAlign')
    v_align: Optional[str] = Field(default=None, alias='vAlign')

    # Filters
    brightness: Optional[float] = None
    contrast: Optional[float] = None
    saturation: Optional[float] = None
    hue: Optional[float] = None
    blur: Optional[float] = None
    sharpen: Optional[float] = None
    grayscale: Optional[bool] = None
    round_corner_radius: Optional[int] = Field(default=None, alias='roundCornerRadius')

    # Transform
    h_flip: Optional[bool] = Field(default=None, alias='hFlip')
    v_flip: Optional[bool] = Field(default=None, alias='vFlip')
    rotation: Optional[int] = None  # 0, 90, 180, 270

    # Output encoding
    format: Optional[str] = None
    quality: Optional[int] = None
    max_bytes: Optional[int] = Field(default=None, alias='maxBytes')

    # Metadata stripping
    strip_icc: Optional[bool] = Field(default=None, alias='stripIcc')
    strip_exif: Optional[bool] = Field(default=None, alias='stripExif')
    strip_metadata: Optional[bool] = Field(default=None, alias='stripMetadata')

    # Crop rectangle (all four or none)
    crop_left: Optional[int] = Field(default=None, alias='cropLeft')
    crop_top: Optional[int] = Field(default=None, alias='cropTop')
    crop_width: Optional[int] = Field(default=None, alias='cropWidth')
    crop_height: Optional[int] = Field(default=None, alias='cropHeight')

    # UI only, never persisted to history or templates
    visual_crop_enabled: Optional[bool] = Field(default=None, alias='visualCropEnabled')

    # Padding (no effect unless fill_color is set; "none" = transparent)
    fill_color: Optional[str] = Field(default=None, alias='fillColor')
    padding_top: Optional[int] = Field(default=None, alias='paddingTop')
    padding_right: Optional[int] = Field(default=None, alias='paddingRight')
    padding_bottom: Optional[int] = Field(default=None, alias='paddingBottom')
    padding_left: Optional[int] = Field(default=None, alias='paddingLeft')

    # Canvas scale in percent (100 = no-op)
    proportion: Optional[float] = None

    layers: Optional[list['ImageLayer']] = None

    @field_validator('rotation', mode='before')
    @classmethod
    def _normalize_rotation(cls, v: Any) -> Any:
        """Accept any multiple of 90 and fold it into [0, 360)."""
        if v is None:
            return v
        value = int(v)
        if value % 90 != 0:
            raise ValueError(f"rotation must be a multiple of 90, got {v}")
        return value % 360

    def has_crop(self) -> bool:
        """Check if all four crop fields are set."""
        return (
            self.crop_left is not None
            and self.crop_top is not None
            and self.crop_width is not None
            and self.crop_height is not None
        )

    def has_fill(self) -> bool:
        """Check if padding is active (a fill color is defined)."""
        return self.fill_color is not None

    def padding(self) -> tuple[int, int, int, int]:
        """Return (left, top, right, bottom) padding, zero when unset."""
        return (
            self.padding_left or 0,
            self.padding_top or 0,
            self.padding_right or 0,
            self.padding_bottom or 0,
        )

    def without_crop(self) -> 'ImageEditorState':
        """Return a copy with the four crop fields removed."""
        return self.model_copy(update={
            'crop_left': None,
            'crop_top': None,
            'crop_width': None,
            'crop_height': None,
        })

    def without_identity(self) -> 'ImageEditorState':
        """Return a copy without the root-only image identity fields."""
        return self.model_copy(update={'image_path': None, 'original_dimensions': None})

    def merged(self, updates: Union['ImageEditorState', dict[str, Any]]) -> 'ImageEditorState':
        """
        Return a copy with ``updates`` applied on top.

        Dict keys may be camelCase or snake_case; a value of None clears the
        field. A state instance only contributes the fields it has set.
        """
        if isinstance(updates, ImageEditorState):
            changes = {name: getattr(updates, name) for name in updates.model_fields_set}
        else:
            changes = normalize_keys(updates)
        data = self.model_dump(exclude_none=True)
        for name, value in changes.items():
            if value is None:
                data.pop(name, None)
            else:
                data[name] = value
        return ImageEditorState.model_validate(data)

    def set_fields(self) -> dict[str, Any]:
        """Return snake_case fields that are not None (shallow)."""
        return {
            name: getattr(self, name)
            for name in type(self).model_fields
            if getattr(self, name) is not None
        }

    def to_api_dict(self) -> dict[str, Any]:
        """
        Convert to a camelCase dictionary with unset fields omitted.

        Returns:
            Dict matching the template/state-hash serialization format
        """
        return self.model_dump(by_alias=True, mode='json', exclude_none=True)

    @classmethod
    def from_api_dict(cls, data: dict[str, Any]) -> 'ImageEditorState':
        """
        Create state from a camelCase or snake_case dictionary.

        Args:
            data: Dictionary from to_api_dict() or an external source

        Returns:
            ImageEditorState instance
        """
        return cls.model_validate(cls.migrate(dict(data)))

    @classmethod
    def migrate(cls, data: dict[str, Any]) -> dict[str, Any]:
        """Migrate serialized data from older versions."""
        # v0: crop stored as right/bottom edges
        if 'cropRight' in data and 'cropWidth' not in data and 'cropLeft' in data:
            data['cropWidth'] = data.pop('cropRight') - data['cropLeft']
        if 'cropBottom' in data and 'cropHeight' not in data and 'cropTop' in data:
            data['cropHeight'] = data.pop('cropBottom') - data['cropTop']
        return data


class ImageLayer(BaseModel):
    """
    An overlay image composited onto its parent.

    Serializes to:
    {
        "id": "uuid",
        "imagePath": "overlay.png",
        "originalDimensions": {"width": 800, "height": 600},
        "x": 100,
        "y": "bottom",
        "alpha": 0,
        "blendMode": "normal",
        "visible": true,
        "name": "Logo",
        "transforms": {...}
    }
    """

    model_config = _MODEL_CONFIG

    VERSION: ClassVar[int] = 1

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    image_path: str = Field(alias='imagePath')
    original_dimensions: Dimensions = Field(alias='originalDimensions')

    x: LayerPosition = Field(default=CENTER)
    y: LayerPosition = Field(default=CENTER)

    # 0 = opaque, 100 = fully transparent
    alpha: int = Field(default=0, ge=0, le=100)
    blend_mode: BlendMode = Field(default=BlendMode.NORMAL.value, alias='blendMode')
    visible: bool = True
    name: str = 'Layer'

    transforms: Optional[ImageEditorState] = None

    @field_validator('x', 'y', mode='before')
    @classmethod
    def _parse_position(cls, v: Any) -> LayerPosition:
        """Accept wire positions (100, -50, "right", "left-20")."""
        return parse_position(v)

    @field_serializer('x', 'y')
    def _serialize_position(self, position: LayerPosition, _info) -> Union[int, float, str]:
        """Serialize positions back to their wire form."""
        return format_position(position)

    @field_validator('transforms', mode='before')
    @classmethod
    def _strip_identity(cls, v: Any) -> Any:
        """Image identity lives on the layer, never inside its transforms."""
        if isinstance(v, dict):
            return {
                k: val for k, val in v.items()
                if k not in ('imagePath', 'image_path', 'originalDimensions', 'original_dimensions')
            }
        if isinstance(v, ImageEditorState):
            return v.without_identity()
        return v

    def is_default_blend(self) -> bool:
        """Check if alpha and blend mode are both at their defaults."""
        return self.alpha == 0 and self.blend_mode == BlendMode.NORMAL.value

    def merged(self, updates: dict[str, Any]) -> 'ImageLayer':
        """Return a copy with ``updates`` (camelCase or snake_case) applied."""
        data = self.model_dump()
        data.update(_normalize_layer_keys(updates))
        return ImageLayer.model_validate(data)

    def to_api_dict(self) -> dict[str, Any]:
        """Convert to a camelCase dictionary."""
        return self.model_dump(by_alias=True, mode='json', exclude_none=True)

    @classmethod
    def from_api_dict(cls, data: dict[str, Any]) -> 'ImageLayer':
        """Create a layer from a camelCase or snake_case dictionary."""
        return cls.model_validate(data)


ImageEditorState.model_rebuild()


def normalize_keys(updates: dict[str, Any]) -> dict[str, Any]:
    """
    Map camelCase (alias) keys to snake_case field names.

    Unknown keys are dropped, matching the model's ``extra='ignore'``.
    """
    return _map_keys(ImageEditorState, updates)


def _normalize_layer_keys(updates: dict[str, Any]) -> dict[str, Any]:
    return _map_keys(ImageLayer, updates)


def _map_keys(model: type[BaseModel], updates: dict[str, Any]) -> dict[str, Any]:
    by_alias = {
        info.alias: name
        for name, info in model.model_fields.items()
        if info.alias
    }
    result = {}
    for key, value in updates.items():
        if key in model.model_fields:
            result[key] = value
        elif key in by_alias:
            result[by_alias[key]] = value
    return result
