"""Exception classes for the editing core."""


class PathForgeError(Exception):
    """Base exception for editing core errors."""

    pass


class LayerNotFoundError(PathForgeError):
    """Raised when an operation targets a layer id that is not in the tree."""

    pass


class InvalidPositionError(PathForgeError, ValueError):
    """Raised for layer position values that cannot be parsed."""

    pass


class TemplateError(PathForgeError):
    """Raised for template persistence errors (unreadable, invalid file)."""

    pass


class SignerError(PathForgeError):
    """Raised when an imagor URL cannot be signed (missing secret, bad algorithm)."""

    pass


class PreviewError(PathForgeError):
    """Raised for preview generation failures reported through on_error."""

    pass
