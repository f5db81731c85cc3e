"""
Template export and import.

Export turns the editor's base state into a portable ImagorTemplate: UI-only
and image-identity fields are removed and, for adaptive templates, so are
width/height. Import validates a JSON document and resolves it into the
state to apply to the current image. Import never raises for bad input;
problems are reported as TemplateWarnings on the result.
"""

import json
import logging
from typing import Any, Optional

from pydantic import ValidationError

from pathforge.config import Settings, settings as default_settings
from pathforge.models import (
    Dimensions,
    DimensionMode,
    ImageEditorState,
    ImagorTemplate,
    TemplateImportResult,
    TemplateWarning,
    TemplateWarningType,
)

logger = logging.getLogger(__name__)

CROP_KEYS = ('cropLeft', 'cropTop', 'cropWidth', 'cropHeight')


def export_template(
    base_state: ImageEditorState,
    name: str,
    *,
    dimension_mode: DimensionMode = DimensionMode.ADAPTIVE,
    description: Optional[str] = None,
    output_dimensions: Optional[Dimensions] = None,
    settings: Optional[Settings] = None,
) -> ImagorTemplate:
    """
    Build a template from a complete base state.

    Args:
        base_state: Root state including layers
        name: Template name
        dimension_mode: Adaptive templates drop width/height
        description: Optional free text
        output_dimensions: Recorded as predefinedDimensions in predefined
            mode; falls back to the state's explicit width/height
    """
    cfg = settings or default_settings
    mode = DimensionMode(dimension_mode)
    state = base_state.without_identity().model_copy(update={'visual_crop_enabled': None})

    predefined = None
    if mode == DimensionMode.ADAPTIVE:
        state = state.model_copy(update={'width': None, 'height': None})
    else:
        predefined = output_dimensions
        if predefined is None and state.width and state.height:
            predefined = Dimensions(width=state.width, height=state.height)

    return ImagorTemplate(
        version=cfg.TEMPLATE_VERSION,
        name=name,
        description=description,
        dimension_mode=mode,
        predefined_dimensions=predefined,
        transformations=state,
    )


def parse_template_json(json_text: str) -> tuple[Optional[dict[str, Any]], Optional[TemplateWarning]]:
    """
    Parse and structurally validate a template document.

    Returns:
        (document, None) on success, (None, invalid-json warning) otherwise
    """
    try:
        data = json.loads(json_text)
    except (TypeError, ValueError) as e:
        return None, TemplateWarning(
            type=TemplateWarningType.INVALID_JSON,
            message=f"Template is not valid JSON: {e}",
        )
    if not isinstance(data, dict):
        return None, TemplateWarning(
            type=TemplateWarningType.INVALID_JSON,
            message="Template must be a JSON object",
        )
    missing = [key for key in ('version', 'transformations') if data.get(key) is None]
    if missing or not isinstance(data['transformations'], dict):
        return None, TemplateWarning(
            type=TemplateWarningType.INVALID_JSON,
            message=f"Template is missing required fields: {', '.join(missing) or 'transformations'}",
        )
    return data, None


def import_template(
    json_text: str,
    current_dimensions: Dimensions,
    *,
    settings: Optional[Settings] = None,
) -> TemplateImportResult:
    """
    Validate a template and resolve the state it applies.

    Args:
        json_text: Template document
        current_dimensions: Original dimensions of the image the template is
            applied to (adaptive mode)

    Returns:
        TemplateImportResult; ``applied_state`` is the new root state
        (without image identity) when ``success`` is True
    """
    cfg = settings or default_settings
    data, error = parse_template_json(json_text)
    if error is not None:
        logger.info("Rejected template: %s", error.message)
        return TemplateImportResult(success=False, warnings=[error])

    warnings: list[TemplateWarning] = []
    if str(data['version']) != cfg.TEMPLATE_VERSION:
        warnings.append(TemplateWarning(
            type=TemplateWarningType.VERSION_MISMATCH,
            message=(
                f"Template version {data['version']} differs from supported "
                f"version {cfg.TEMPLATE_VERSION}; some settings may not apply"
            ),
        ))

    transformations = {
        key: value for key, value in data['transformations'].items()
        if key not in CROP_KEYS
    }
    dropped = _drop_unusable_layers(transformations)
    if dropped:
        logger.warning("Dropped %d template layers without an image", dropped)
        warnings.append(TemplateWarning(
            type=TemplateWarningType.MISSING_LAYER,
            message=f"{dropped} layer(s) could not be loaded and were skipped",
            count=dropped,
        ))

    state, filter_warnings = _validate_transformations(transformations)
    warnings.extend(filter_warnings)
    if state is None:
        return TemplateImportResult(success=False, warnings=warnings + [TemplateWarning(
            type=TemplateWarningType.INVALID_JSON,
            message="Template transformations could not be read",
        )])

    document = {key: value for key, value in data.items() if key != 'transformations'}
    document['version'] = str(data['version'])
    try:
        template = ImagorTemplate.model_validate({**document, 'transformations': state})
    except ValidationError as e:
        return TemplateImportResult(success=False, warnings=warnings + [TemplateWarning(
            type=TemplateWarningType.INVALID_JSON,
            message=f"Invalid template document: {e.error_count()} error(s)",
        )])

    state = state.without_identity().model_copy(update={'visual_crop_enabled': None})
    if template.dimension_mode == DimensionMode.PREDEFINED.value:
        dims = template.predefined_dimensions
        if dims is not None:
            state = state.model_copy(update={'width': dims.width, 'height': dims.height})
    else:
        state = state.model_copy(update={
            'width': current_dimensions.width,
            'height': current_dimensions.height,
        })

    return TemplateImportResult(
        success=True,
        warnings=warnings,
        template=template,
        applied_state=state,
    )


def _drop_unusable_layers(transformations: dict[str, Any]) -> int:
    """Remove layers without image path or dimensions, recursively."""
    layers = transformations.get('layers')
    if not isinstance(layers, list):
        return 0
    kept = []
    dropped = 0
    for layer in layers:
        if not _is_usable_layer(layer):
            dropped += 1
            continue
        layer = dict(layer)
        if isinstance(layer.get('transforms'), dict):
            layer['transforms'] = dict(layer['transforms'])
            dropped += _drop_unusable_layers(layer['transforms'])
        kept.append(layer)
    transformations['layers'] = kept
    return dropped


def _is_usable_layer(layer: Any) -> bool:
    if not isinstance(layer, dict):
        return False
    path = layer.get('imagePath', layer.get('image_path'))
    dims = layer.get('originalDimensions', layer.get('original_dimensions'))
    if not isinstance(path, str) or not path:
        return False
    if not isinstance(dims, dict):
        return False
    return bool(dims.get('width')) and bool(dims.get('height'))


def _validate_transformations(
    transformations: dict[str, Any],
) -> tuple[Optional[ImageEditorState], list[TemplateWarning]]:
    """Validate, dropping top-level fields with invalid values."""
    warnings: list[TemplateWarning] = []
    data = dict(transformations)
    # Every failing field is removed at most once
    for _ in range(len(data) + 1):
        try:
            return ImageEditorState.from_api_dict(data), warnings
        except ValidationError as e:
            bad_keys = {err['loc'][0] for err in e.errors() if err['loc']}
            bad_keys &= set(data)
            if not bad_keys:
                return None, warnings
            for key in sorted(bad_keys, key=str):
                logger.warning("Ignoring invalid template value for %s", key)
                warnings.append(TemplateWarning(
                    type=TemplateWarningType.INVALID_FILTER,
                    message=f"Invalid value for '{key}' was ignored",
                ))
                data.pop(key)
    return None, warnings
