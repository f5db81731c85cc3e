"""
Templates: portable transformation documents.

Provides:
- export_template / import_template: convert between editor state and
  template documents
- sanitize_template_name and file naming helpers
- TemplateStore: directory-backed persistence
"""

from .codec import export_template, import_template, parse_template_json
from .naming import (
    PREVIEW_SUFFIX,
    TEMPLATE_SUFFIX,
    preview_file_name,
    sanitize_template_name,
    template_file_name,
)
from .store import TemplateStore, validate_template_document

__all__ = [
    'export_template',
    'import_template',
    'parse_template_json',
    'PREVIEW_SUFFIX',
    'TEMPLATE_SUFFIX',
    'preview_file_name',
    'sanitize_template_name',
    'template_file_name',
    'TemplateStore',
    'validate_template_document',
]
