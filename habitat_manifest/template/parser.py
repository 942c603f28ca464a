"""Template parser — source text to an immutable :class:`Template`.

Syntax::

    {{path}}                    substitute a field value
    {{helper path}}             apply a registered helper to a field value
    {{#if path}} ... {{/if}}    emit the body when the field is present
    {{#each path}} ... {{/each}} emit the body once per element (``this``)
    {{! comment }}              ignored

A ``~`` just inside a delimiter (``{{~`` or ``~}}``) strips all
whitespace, newlines included, from the adjacent literal text. Stripping
is applied here, once, so rendering never has to look at it.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple

from habitat_manifest.errors import InvalidReferenceError, TemplateSyntaxError
from habitat_manifest.helpers import DEFAULT_HELPERS
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
from habitat_manifest.template.schema import FieldKind, FieldShape, Schema

logger = logging.getLogger(__name__)

OPEN = "{{"
CLOSE = "}}"
TRIM = "~"

#: Block keywords and the node type each one builds.
BLOCKS = {"if": Conditional, "each": Loop}

_PATH_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*(\.[A-Za-z_][A-Za-z0-9_]*)*$")


# ── tokens ───────────────────────────────────────────────────────────


@dataclass
class _Token:
    kind: str  # text | open | close | expr | comment
    text: str = ""
    keyword: str = ""
    helper: Optional[str] = None
    path: Optional[FieldPath] = None
    trim_left: bool = False
    trim_right: bool = False
    line: int = 0
    column: int = 0


def _position(source: str, offset: int) -> Tuple[int, int]:
    line = source.count("\n", 0, offset) + 1
    column = offset - (source.rfind("\n", 0, offset) + 1) + 1
    return line, column


def _parse_path(raw: str, line: int, column: int) -> FieldPath:
    if not _PATH_RE.match(raw):
        raise TemplateSyntaxError(
            f"Malformed field reference '{raw}'", line=line, column=column
        )
    parts = tuple(raw.split("."))
    if LOOP_VARIABLE in parts[1:]:
        raise TemplateSyntaxError(
            f"'{LOOP_VARIABLE}' may only start a field reference: '{raw}'",
            line=line,
            column=column,
        )
    return FieldPath(parts)


def _tag_token(
    content: str, helpers: Iterable[str], line: int, column: int
) -> _Token:
    if not content:
        raise TemplateSyntaxError("Empty tag", line=line, column=column)

    if content.startswith("!"):
        return _Token("comment", line=line, column=column)

    if content.startswith("#"):
        words = content[1:].split()
        if not words or words[0] not in BLOCKS:
            name = words[0] if words else ""
            raise TemplateSyntaxError(
                f"Unknown block '{name}'", line=line, column=column
            )
        if len(words) != 2:
            raise TemplateSyntaxError(
                f"Block '{words[0]}' takes exactly one field reference",
                line=line,
                column=column,
            )
        return _Token(
            "open",
            keyword=words[0],
            path=_parse_path(words[1], line, column),
            line=line,
            column=column,
        )

    if content.startswith("/"):
        keyword = content[1:].strip()
        if keyword not in BLOCKS:
            raise TemplateSyntaxError(
                f"Unknown closing tag '/{keyword}'", line=line, column=column
            )
        return _Token("close", keyword=keyword, line=line, column=column)

    words = content.split()
    if len(words) == 1:
        return _Token(
            "expr", path=_parse_path(words[0], line, column), line=line, column=column
        )
    if len(words) == 2:
        if words[0] not in helpers:
            raise TemplateSyntaxError(
                f"Unknown helper '{words[0]}'", line=line, column=column
            )
        return _Token(
            "expr",
            helper=words[0],
            path=_parse_path(words[1], line, column),
            line=line,
            column=column,
        )
    raise TemplateSyntaxError(
        f"Helper call takes exactly one argument: '{content}'",
        line=line,
        column=column,
    )


def tokenize(source: str, helpers: Iterable[str] = DEFAULT_HELPERS) -> List[_Token]:
    """Split *source* into text and tag tokens with whitespace trimming applied."""
    tokens: List[_Token] = []
    pos = 0
    while True:
        start = source.find(OPEN, pos)
        if start == -1:
            tokens.append(_Token("text", text=source[pos:]))
            break
        tokens.append(_Token("text", text=source[pos:start]))

        line, column = _position(source, start)
        end = source.find(CLOSE, start + len(OPEN))
        if end == -1:
            raise TemplateSyntaxError("Unterminated tag", line=line, column=column)

        raw = source[start + len(OPEN):end]
        trim_left = raw.startswith(TRIM)
        if trim_left:
            raw = raw[len(TRIM):]
        trim_right = raw.endswith(TRIM)
        if trim_right:
            raw = raw[: -len(TRIM)]

        token = _tag_token(raw.strip(), helpers, line, column)
        token.trim_left = trim_left
        token.trim_right = trim_right
        tokens.append(token)
        pos = end + len(CLOSE)

    for i, token in enumerate(tokens):
        if token.kind == "text":
            continue
        if token.trim_left and i > 0 and tokens[i - 1].kind == "text":
            tokens[i - 1].text = tokens[i - 1].text.rstrip()
        if token.trim_right and i + 1 < len(tokens) and tokens[i + 1].kind == "text":
            tokens[i + 1].text = tokens[i + 1].text.lstrip()

    return [
        t
        for t in tokens
        if t.kind != "comment" and not (t.kind == "text" and not t.text)
    ]


# ── tree building ────────────────────────────────────────────────────


@dataclass
class _Frame:
    keyword: str
    path: Optional[FieldPath]
    children: List[Node]
    line: int = 0
    column: int = 0


def _check_reference(
    token: _Token, schema: Optional[Schema], loops: List[FieldShape], depth: int
) -> Optional[FieldShape]:
    """Validate a token's field path; returns its shape when a schema is given."""
    assert token.path is not None
    if token.path.is_local and depth == 0:
        raise InvalidReferenceError(
            str(token.path), f"'{LOOP_VARIABLE}' used outside an each block"
        )
    if schema is None:
        return None

    shape = schema.resolve(token.path, loops)
    if token.kind == "expr" and shape.kind is not FieldKind.SCALAR:
        raise InvalidReferenceError(
            str(token.path), f"{shape.kind.value} field cannot be substituted"
        )
    if token.kind == "open" and token.keyword == "each":
        if shape.kind is not FieldKind.SEQUENCE:
            raise InvalidReferenceError(
                str(token.path), "each requires a sequence field"
            )
    return shape


def parse_template(
    source: str,
    *,
    helpers: Iterable[str] = DEFAULT_HELPERS,
    schema: Optional[Schema] = None,
    name: str = "<string>",
) -> Template:
    """Parse *source* into a :class:`Template`.

    Parameters
    ----------
    source:
        Template text.
    helpers:
        Names of the helpers the template may call.
    schema:
        When given, every field reference is checked against it.
    name:
        Label used in log messages.

    Raises
    ------
    TemplateSyntaxError
        Malformed tags, unknown helpers or blocks, unbalanced blocks.
    InvalidReferenceError
        A reference the schema does not define, or ``this`` outside a loop.
    """
    helpers = frozenset(helpers)
    root = _Frame("", None, [])
    stack: List[_Frame] = [root]
    loops: List[FieldShape] = []
    loop_depth = 0

    for token in tokenize(source, helpers):
        frame = stack[-1]
        if token.kind == "text":
            frame.children.append(Text(token.text))
        elif token.kind == "expr":
            _check_reference(token, schema, loops, loop_depth)
            assert token.path is not None
            if token.helper is None:
                frame.children.append(Substitution(token.path))
            else:
                frame.children.append(HelperCall(token.helper, token.path))
        elif token.kind == "open":
            shape = _check_reference(token, schema, loops, loop_depth)
            if token.keyword == "each":
                loop_depth += 1
                if shape is not None and shape.element is not None:
                    loops.append(shape.element)
            stack.append(
                _Frame(token.keyword, token.path, [], token.line, token.column)
            )
        else:
            if len(stack) == 1:
                raise TemplateSyntaxError(
                    f"Unexpected closing tag '/{token.keyword}'",
                    line=token.line,
                    column=token.column,
                )
            if token.keyword != frame.keyword:
                raise TemplateSyntaxError(
                    f"Mismatched closing tag '/{token.keyword}' for "
                    f"'#{frame.keyword}' opened at line {frame.line}",
                    line=token.line,
                    column=token.column,
                )
            stack.pop()
            if frame.keyword == "each":
                loop_depth -= 1
                if schema is not None:
                    loops.pop()
            assert frame.path is not None
            node_type = BLOCKS[frame.keyword]
            stack[-1].children.append(node_type(frame.path, tuple(frame.children)))

    if len(stack) > 1:
        frame = stack[-1]
        raise TemplateSyntaxError(
            f"Unterminated block '#{frame.keyword}'",
            line=frame.line,
            column=frame.column,
        )

    template = Template(nodes=tuple(root.children), name=name)
    logger.debug("Parsed template %s into %d top-level node(s)", name, len(template.nodes))
    return template
