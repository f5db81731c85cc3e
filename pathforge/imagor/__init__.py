"""
Imagor path encoding and URL signing.

Provides:
- encode_path: ImageEditorState -> imagor path string
- encode_image_path / decode_image_path: ``b64:`` escaping of image paths
- ImagorFilter, split_filters: filters segment helpers
- UrlGenerator protocol and the local ImagorUrlSigner implementation
"""

from .path import (
    BASE64_PREFIX,
    EncodeOptions,
    ImagorFilter,
    build_filters,
    build_layer_filter,
    decode_image_path,
    encode_image_path,
    encode_path,
    needs_base64,
    split_filters,
)
from .signer import HMACSigner, ImagorUrlSigner, UrlGenerator

__all__ = [
    'BASE64_PREFIX',
    'EncodeOptions',
    'ImagorFilter',
    'build_filters',
    'build_layer_filter',
    'decode_image_path',
    'encode_image_path',
    'encode_path',
    'needs_base64',
    'split_filters',
    'HMACSigner',
    'ImagorUrlSigner',
    'UrlGenerator',
]
