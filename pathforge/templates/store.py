"""
TemplateStore - File persistence for templates.

Templates live in a single directory:
- {name}.imagor.json: Template document
- {name}.imagor.preview.webp: Optional preview image

Names are sanitized before they are used as file names.
"""

import json
import logging
from pathlib import Path
from typing import Any, Optional, Union

from pydantic import ValidationError

from pathforge.config import Settings, settings as default_settings
from pathforge.exceptions import TemplateError
from pathforge.models import ImagorTemplate

from .naming import TEMPLATE_SUFFIX, preview_file_name, sanitize_template_name, template_file_name

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ('version', 'name', 'transformations')


def validate_template_document(data: Any) -> list[str]:
    """
    Check a parsed template document for required fields.

    Returns:
        List of problems (empty if valid)
    """
    if not isinstance(data, dict):
        return ['template must be a JSON object']
    problems = [f'missing field: {key}' for key in REQUIRED_FIELDS if data.get(key) in (None, '')]
    if data.get('transformations') is not None and not isinstance(data['transformations'], dict):
        problems.append('transformations must be an object')
    return problems


class TemplateStore:
    """
    Save and load templates under a directory.

    Example usage:
        store = TemplateStore('/data/templates')
        store.save(template, preview=webp_bytes)
        template = store.load('Instagram Square')
    """

    def __init__(self, directory: Optional[Union[str, Path]] = None, settings: Optional[Settings] = None):
        cfg = settings or default_settings
        self.directory = Path(directory) if directory is not None else cfg.TEMPLATES_DIR

    def _template_path(self, name: str) -> Path:
        if not sanitize_template_name(name):
            raise TemplateError(f'Invalid template name: {name!r}')
        return self.directory / template_file_name(name)

    def _preview_path(self, name: str) -> Path:
        return self.directory / preview_file_name(name)

    def save(self, template: ImagorTemplate, preview: Optional[bytes] = None) -> Path:
        """
        Write a template (and optional preview image).

        Args:
            template: Template to save; its name determines the file name
            preview: Encoded preview image bytes

        Returns:
            Path of the written template file

        Raises:
            TemplateError: If the name is unusable or the file cannot be written
        """
        path = self._template_path(template.name or '')
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            path.write_text(template.to_json(), encoding='utf-8')
            if preview is not None:
                self._preview_path(template.name).write_bytes(preview)
        except OSError as e:
            raise TemplateError(f'Failed to save template {template.name!r}: {e}') from e
        logger.debug('Saved template %s', path)
        return path

    def load(self, name: str) -> ImagorTemplate:
        """
        Load a template by name.

        Raises:
            TemplateError: If the file is missing or not a valid template
        """
        path = self._template_path(name)
        try:
            text = path.read_text(encoding='utf-8')
        except OSError as e:
            raise TemplateError(f'Template not found: {name!r}') from e
        return self.parse(text, source=str(path))

    def load_json(self, name: str) -> str:
        """Return the raw JSON text of a stored template."""
        path = self._template_path(name)
        try:
            return path.read_text(encoding='utf-8')
        except OSError as e:
            raise TemplateError(f'Template not found: {name!r}') from e

    def load_preview(self, name: str) -> Optional[bytes]:
        """Return the preview image bytes, or None if there is none."""
        path = self._preview_path(name)
        if not path.is_file():
            return None
        return path.read_bytes()

    @staticmethod
    def parse(text: str, source: str = '<string>') -> ImagorTemplate:
        """Parse and validate a template document."""
        try:
            data = json.loads(text)
        except ValueError as e:
            raise TemplateError(f'Invalid template file {source}: {e}') from e
        problems = validate_template_document(data)
        if problems:
            raise TemplateError(f'Invalid template file {source}: {"; ".join(problems)}')
        try:
            return ImagorTemplate.model_validate(data)
        except ValidationError as e:
            raise TemplateError(f'Invalid template file {source}: {e.error_count()} error(s)') from e

    def list_names(self) -> list[str]:
        """Return the names of all stored templates, sorted."""
        if not self.directory.is_dir():
            return []
        names = [
            path.name[:-len(TEMPLATE_SUFFIX)]
            for path in self.directory.iterdir()
            if path.is_file() and path.name.endswith(TEMPLATE_SUFFIX)
        ]
        return sorted(names)

    def exists(self, name: str) -> bool:
        return self._template_path(name).is_file()

    def delete(self, name: str) -> bool:
        """
        Delete a template and its preview.

        Returns:
            True if the template existed
        """
        path = self._template_path(name)
        if not path.is_file():
            return False
        path.unlink()
        preview = self._preview_path(name)
        if preview.is_file():
            preview.unlink()
        logger.debug('Deleted template %s', path)
        return True

