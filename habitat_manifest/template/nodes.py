"""Template AST node types.

A parsed template is a tuple of nodes. All nodes are frozen dataclasses
holding tuples, so a :class:`Template` can be cached and shared between
threads.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple, Union

#: Name bound to the current element inside an ``each`` block.
LOOP_VARIABLE = "this"


@dataclass(frozen=True)
class FieldPath:
    """Dotted reference such as ``service_name`` or ``this.value``."""

    parts: Tuple[str, ...]

    @property
    def is_local(self) -> bool:
        """True when the path starts at the loop-local element."""
        return self.parts[0] == LOOP_VARIABLE

    def __str__(self) -> str:
        return ".".join(self.parts)


@dataclass(frozen=True)
class Text:
    text: str


@dataclass(frozen=True)
class Substitution:
    path: FieldPath


@dataclass(frozen=True)
class HelperCall:
    helper: str
    path: FieldPath


@dataclass(frozen=True)
class Conditional:
    path: FieldPath
    body: Tuple["Node", ...]


@dataclass(frozen=True)
class Loop:
    path: FieldPath
    body: Tuple["Node", ...]


Node = Union[Text, Substitution, HelperCall, Conditional, Loop]


@dataclass(frozen=True)
class Template:
    """Parsed, reusable rendering program."""

    nodes: Tuple[Node, ...]
    name: str = "<string>"
