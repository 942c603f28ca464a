"""Template evaluator — walks a parsed :class:`Template` against a Context.

Rendering is a pure in-memory transformation: the template and helper
registry are only read, and output is collected in a per-call buffer
that is joined once the walk completes. Any error leaves nothing behind.
"""

from __future__ import annotations

import logging
from typing import Any, List, Optional, Sequence

from pydantic import BaseModel

from habitat_manifest.errors import (
    InvalidReferenceError,
    MissingRequiredFieldError,
)
from habitat_manifest.helpers import DEFAULT_HELPERS, HelperRegistry
from habitat_manifest.template.nodes import (
    Conditional,
    FieldPath,
    HelperCall,
    Loop,
    Node,
    Substitution,
    Template,
    Text,
)

logger = logging.getLogger(__name__)


def _lookup(path: FieldPath, root: BaseModel, scopes: Sequence[Any]) -> Any:
    """Resolve *path* against the Context or the innermost loop element."""
    if path.is_local:
        if not scopes:
            raise InvalidReferenceError(str(path), "'this' used outside an each block")
        value = scopes[-1]
        parts = path.parts[1:]
    else:
        value = root
        parts = path.parts

    for part in parts:
        if value is None:
            # Parent record absent, so every field below it is too.
            return None
        if not isinstance(value, BaseModel) or part not in type(value).model_fields:
            raise InvalidReferenceError(str(path))
        value = getattr(value, part)
    return value


def is_present(value: Any) -> bool:
    """Presence test used by ``if``: absent, empty and ``False`` are not present."""
    if value is None or value is False:
        return False
    if isinstance(value, (str, tuple, list)):
        return len(value) > 0
    return True


def to_text(path: FieldPath, value: Any) -> str:
    """Canonical, locale-independent text for a scalar value."""
    if value is None:
        raise MissingRequiredFieldError(str(path))
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (str, int)):
        return str(value)
    if isinstance(value, float):
        return repr(value)
    raise InvalidReferenceError(
        str(path), f"{type(value).__name__} value cannot be substituted"
    )


class _Walker:
    def __init__(self, context: BaseModel, helpers: HelperRegistry) -> None:
        self.context = context
        self.helpers = helpers
        self.scopes: List[Any] = []
        self.out: List[str] = []

    def walk(self, nodes: Sequence[Node]) -> None:
        for node in nodes:
            if isinstance(node, Text):
                self.out.append(node.text)
            elif isinstance(node, Substitution):
                value = _lookup(node.path, self.context, self.scopes)
                self.out.append(to_text(node.path, value))
            elif isinstance(node, HelperCall):
                value = _lookup(node.path, self.context, self.scopes)
                self.out.append(
                    self.helpers.apply(node.helper, to_text(node.path, value))
                )
            elif isinstance(node, Conditional):
                if is_present(_lookup(node.path, self.context, self.scopes)):
                    self.walk(node.body)
            elif isinstance(node, Loop):
                self._loop(node)
            else:
                raise TypeError(f"Unknown template node: {node!r}")

    def _loop(self, node: Loop) -> None:
        items = _lookup(node.path, self.context, self.scopes)
        if items is None:
            return
        if not isinstance(items, (tuple, list)):
            raise InvalidReferenceError(str(node.path), "each requires a sequence field")
        for item in items:
            self.scopes.append(item)
            try:
                self.walk(node.body)
            finally:
                self.scopes.pop()


def render(
    template: Template,
    context: BaseModel,
    *,
    helpers: Optional[HelperRegistry] = None,
) -> str:
    """Render *template* against *context* and return the document text.

    Raises
    ------
    MissingRequiredFieldError
        A substituted field has no value.
    InvalidReferenceError
        The template refers to a field or helper the context does not have.
    HelperExecutionError
        A helper could not transform its argument.
    """
    walker = _Walker(context, helpers if helpers is not None else DEFAULT_HELPERS)
    walker.walk(template.nodes)
    text = "".join(walker.out)
    logger.debug("Rendered template %s (%d bytes)", template.name, len(text))
    return text
