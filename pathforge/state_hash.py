"""
Compact, URL-fragment-safe encoding of an ImageEditorState.

The state is reduced to its non-default fields, serialized as compact JSON
(camelCase keys) and encoded with url-safe base64 without padding. Width and
height are never treated as defaults. Decoding tolerates malformed input by
returning None.
"""

import base64
import binascii
import json
import logging
from typing import Any, Optional

from pydantic import ValidationError

from pathforge.models import ImageEditorState

logger = logging.getLogger(__name__)

# Values equal to these are omitted from the hash
DEFAULT_VALUES: dict[str, Any] = {
    'fitIn': True,
    'stretch': False,
    'smart': False,
    'brightness': 0,
    'contrast': 0,
    'saturation': 0,
    'hue': 0,
    'blur': 0,
    'sharpen': 0,
    'grayscale': False,
    'hFlip': False,
    'vFlip': False,
    'rotation': 0,
}

ALWAYS_KEPT = frozenset({'width', 'height'})


def is_default_value(key: str, value: Any) -> bool:
    """Check if ``value`` is the default for camelCase ``key``."""
    if key in ALWAYS_KEPT:
        return False
    if key in DEFAULT_VALUES:
        default = DEFAULT_VALUES[key]
        # bool is an int subclass: False must not match a numeric 0 default
        if isinstance(value, bool) != isinstance(default, bool):
            return False
        return value == default
    return value is None


def serialize_state_to_hash(state: ImageEditorState) -> str:
    """
    Encode a state as a url-safe base64 fragment.

    Returns:
        Encoded string, or '' when every field is at its default
    """
    filtered = {
        key: value
        for key, value in state.to_api_dict().items()
        if not is_default_value(key, value)
    }
    if not filtered:
        return ''
    payload = json.dumps(filtered, separators=(',', ':'), ensure_ascii=False)
    encoded = base64.urlsafe_b64encode(payload.encode('utf-8')).decode('ascii')
    return encoded.rstrip('=')


def deserialize_state_from_hash(fragment: Optional[str]) -> Optional[ImageEditorState]:
    """
    Decode a fragment produced by serialize_state_to_hash.

    Returns:
        The decoded state, or None for empty or malformed input
    """
    if not fragment or not fragment.strip():
        return None
    data = fragment.strip().lstrip('#')
    data += '=' * (-len(data) % 4)
    try:
        raw = base64.urlsafe_b64decode(data.encode('ascii'))
        parsed = json.loads(raw.decode('utf-8'))
    except (binascii.Error, UnicodeError, ValueError) as e:
        logger.debug("Ignoring malformed state hash: %s", e)
        return None
    if not isinstance(parsed, dict):
        return None
    try:
        return ImageEditorState.from_api_dict(parsed)
    except ValidationError as e:
        logger.debug("Ignoring invalid state hash payload: %s", e)
        return None


def serialize_state_to_url(state: ImageEditorState) -> str:
    """Encode a state for a shareable URL (UI-only fields removed)."""
    return serialize_state_to_hash(state.model_copy(update={'visual_crop_enabled': None}))


def deserialize_state_from_url(fragment: Optional[str]) -> Optional[ImageEditorState]:
    """Decode a shareable URL fragment (UI-only fields dropped)."""
    state = deserialize_state_from_hash(fragment)
    if state is None:
        return None
    return state.model_copy(update={'visual_crop_enabled': None})
