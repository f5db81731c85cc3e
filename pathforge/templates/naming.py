"""Template file naming."""

import re

from pathforge.config import settings

TEMPLATE_SUFFIX = ".imagor.json"
PREVIEW_SUFFIX = ".imagor.preview.webp"

# Characters not allowed in file names on common filesystems
_UNSAFE_CHARS = re.compile(r'[/\\:*?"<>|\x00-\x1f\x7f]')


def sanitize_template_name(name: str, max_length: int = settings.TEMPLATE_NAME_MAX_LENGTH) -> str:
    """
    Make a user-entered template name safe to use as a file name.

    Case and inner spaces are preserved. Returns '' when nothing usable
    remains.
    """
    cleaned = _UNSAFE_CHARS.sub("", name.strip())
    return cleaned[:max_length].strip()


def template_file_name(name: str) -> str:
    """``Instagram Square`` -> ``Instagram Square.imagor.json``"""
    return sanitize_template_name(name) + TEMPLATE_SUFFIX


def preview_file_name(name: str) -> str:
    """Name of the preview image stored next to a template."""
    return sanitize_template_name(name) + PREVIEW_SUFFIX
