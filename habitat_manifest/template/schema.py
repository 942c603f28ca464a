"""Static field schema used to check template references at parse time.

The schema is derived from the pydantic Context model, so a template
that names a field the model does not define is rejected when it is
loaded rather than on the first render.
"""

from __future__ import annotations

import types
import typing
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Sequence, Type

from pydantic import BaseModel

from habitat_manifest.errors import InvalidReferenceError
from habitat_manifest.template.nodes import FieldPath


class FieldKind(str, Enum):
    SCALAR = "scalar"
    RECORD = "record"
    SEQUENCE = "sequence"


@dataclass(frozen=True)
class FieldShape:
    """Shape of one field: a scalar, a record of named fields, or a sequence."""

    kind: FieldKind
    fields: Dict[str, "FieldShape"] = field(default_factory=dict)
    element: Optional["FieldShape"] = None


SCALAR = FieldShape(FieldKind.SCALAR)


def _strip_optional(annotation: Any) -> Any:
    if typing.get_origin(annotation) in (typing.Union, types.UnionType):
        args = [a for a in typing.get_args(annotation) if a is not type(None)]
        if len(args) == 1:
            return args[0]
    return annotation


def _shape_of(annotation: Any) -> FieldShape:
    annotation = _strip_optional(annotation)
    origin = typing.get_origin(annotation)
    if origin in (tuple, list):
        args = [a for a in typing.get_args(annotation) if a is not Ellipsis]
        element = _shape_of(args[0]) if args else SCALAR
        return FieldShape(FieldKind.SEQUENCE, element=element)
    if isinstance(annotation, type) and issubclass(annotation, BaseModel):
        return FieldShape(FieldKind.RECORD, fields=_model_fields(annotation))
    return SCALAR


def _model_fields(model: Type[BaseModel]) -> Dict[str, FieldShape]:
    return {
        name: _shape_of(info.annotation)
        for name, info in model.model_fields.items()
    }


@dataclass(frozen=True)
class Schema:
    """Root record of the rendering context."""

    root: FieldShape

    @classmethod
    def from_model(cls, model: Type[BaseModel]) -> "Schema":
        return cls(root=FieldShape(FieldKind.RECORD, fields=_model_fields(model)))

    def resolve(
        self, path: FieldPath, loops: Sequence[FieldShape] = ()
    ) -> FieldShape:
        """Return the shape *path* points at.

        *loops* holds the element shapes of the enclosing ``each`` blocks,
        innermost last.

        Raises
        ------
        InvalidReferenceError
            If the path leaves the schema or uses ``this`` outside a loop.
        """
        if path.is_local:
            if not loops:
                raise InvalidReferenceError(str(path), "'this' used outside an each block")
            shape = loops[-1]
            rest = path.parts[1:]
        else:
            shape = self.root
            rest = path.parts

        for part in rest:
            if shape.kind is not FieldKind.RECORD or part not in shape.fields:
                raise InvalidReferenceError(str(path))
            shape = shape.fields[part]
        return shape
