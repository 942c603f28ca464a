"""Exception hierarchy for template parsing and manifest rendering.

Every failure aborts the current parse or render call; nothing is
retried and no partial document is returned.
"""

from __future__ import annotations

from typing import Optional


class ManifestError(Exception):
    """Base class for all habitat-manifest errors."""


class TemplateSyntaxError(ManifestError):
    """The template source is malformed.

    Attributes:
        line: 1-based line of the offending tag (``None`` if unknown).
        column: 1-based column of the offending tag (``None`` if unknown).
    """

    def __init__(
        self,
        message: str,
        *,
        line: Optional[int] = None,
        column: Optional[int] = None,
    ) -> None:
        self.message = message
        self.line = line
        self.column = column
        if line is not None:
            message = f"{message} (line {line}, column {column})"
        super().__init__(message)


class MissingRequiredFieldError(ManifestError):
    """A mandatory Context field is absent or empty."""

    def __init__(self, field: str) -> None:
        self.field = field
        super().__init__(f"Missing required field: {field}")


class InvalidReferenceError(ManifestError):
    """The template refers to a field path the Context does not define."""

    def __init__(self, path: str, reason: str = "unknown field") -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Invalid reference '{path}': {reason}")


class HelperExecutionError(ManifestError):
    """A helper could not produce output for its argument."""

    def __init__(self, helper: str, reason: str) -> None:
        self.helper = helper
        self.reason = reason
        super().__init__(f"Helper '{helper}' failed: {reason}")
