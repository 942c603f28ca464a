"""Template AST, parser, and parse-time schema checks."""

from habitat_manifest.template.nodes import (
    LOOP_VARIABLE,
    Conditional,
    FieldPath,
    HelperCall,
    Loop,
    Node,
    Substitution,
    Template,
    Text,
)
from habitat_manifest.template.parser import parse_template, tokenize
from habitat_manifest.template.schema import FieldKind, FieldShape, Schema

__all__ = [
    "LOOP_VARIABLE",
    "Conditional",
    "FieldKind",
    "FieldPath",
    "FieldShape",
    "HelperCall",
    "Loop",
    "Node",
    "Schema",
    "Substitution",
    "Template",
    "Text",
    "parse_template",
    "tokenize",
]
