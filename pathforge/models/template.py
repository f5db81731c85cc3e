"""
Template models - portable transformation documents.

A template captures the transformation state of an editing session so it
can be re-applied to other images:

{
    "version": "1.0",
    "name": "Instagram Square",
    "description": "1080x1080 with white border",
    "dimensionMode": "predefined",
    "predefinedDimensions": {"width": 1080, "height": 1080},
    "transformations": {...},
    "metadata": {"createdAt": "2025-01-01T00:00:00Z"}
}
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, ClassVar, Optional

from pydantic import BaseModel, ConfigDict, Field

from .state import Dimensions, ImageEditorState


class DimensionMode(str, Enum):
    """How a template's output size is resolved when applied."""
    ADAPTIVE = "adaptive"      # Track the target image's dimensions
    PREDEFINED = "predefined"  # Fixed output size regardless of target


class TemplateWarningType(str, Enum):
    """Warning categories reported by template import."""
    MISSING_LAYER = "missing-layer"
    INVALID_FILTER = "invalid-filter"
    VERSION_MISMATCH = "version-mismatch"
    INVALID_JSON = "invalid-json"


class TemplateWarning(BaseModel):
    """A single import warning."""

    model_config = ConfigDict(use_enum_values=True)

    type: TemplateWarningType
    message: str
    count: Optional[int] = None


class TemplateMetadata(BaseModel):
    """Template bookkeeping."""

    model_config = ConfigDict(populate_by_name=True, extra='ignore')

    created_at: str = Field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat(),
        alias='createdAt',
    )


class ImagorTemplate(BaseModel):
    """Portable template document."""

    model_config = ConfigDict(
        populate_by_name=True,
        extra='ignore',
        use_enum_values=True,
    )

    CURRENT_VERSION: ClassVar[str] = "1.0"

    version: str = CURRENT_VERSION
    name: Optional[str] = None
    description: Optional[str] = None
    dimension_mode: DimensionMode = Field(default=DimensionMode.ADAPTIVE, alias='dimensionMode')
    predefined_dimensions: Optional[Dimensions] = Field(default=None, alias='predefinedDimensions')
    transformations: ImageEditorState
    metadata: TemplateMetadata = Field(default_factory=TemplateMetadata)

    def to_api_dict(self) -> dict[str, Any]:
        """Convert to the JSON document shape (camelCase, unset omitted)."""
        return self.model_dump(by_alias=True, mode='json', exclude_none=True)

    def to_json(self, indent: Optional[int] = 2) -> str:
        """Serialize to a JSON string."""
        return self.model_dump_json(by_alias=True, exclude_none=True, indent=indent)


class TemplateImportResult(BaseModel):
    """Outcome of importing a template into an editor."""

    success: bool
    warnings: list[TemplateWarning] = Field(default_factory=list)
    template: Optional[ImagorTemplate] = None
    applied_state: Optional[ImageEditorState] = None
