"""Value-transformation helpers callable from templates.

Helpers are pure ``str -> str`` functions looked up by name in a
read-only :class:`HelperRegistry`. The default registry provides:

* ``quote`` — YAML double-quoted scalar that reads back to the input
* ``base64`` — standard base64 of the UTF-8 bytes
"""

from __future__ import annotations

import base64
from typing import Callable, Dict, Iterator, Mapping

import yaml

from habitat_manifest.errors import HelperExecutionError, InvalidReferenceError

Helper = Callable[[str], str]


def quote(value: str) -> str:
    """Return *value* as a YAML double-quoted scalar.

    The scalar is written by PyYAML on a single line: backslash, double
    quote, line breaks and non-printable characters come out as escapes,
    so colons, ``#``, leading or trailing whitespace, reserved words
    (``true``, ``null``, ``~``) and the empty string all read back
    unchanged. Failures surface through :meth:`HelperRegistry.apply` as
    :class:`HelperExecutionError`.
    """
    dumped = yaml.safe_dump(
        value, default_style='"', width=float("inf"), allow_unicode=True
    )
    return dumped.rstrip("\n")


def base64_encode(value: str) -> str:
    """Standard base64 (with padding) of the UTF-8 encoding of *value*."""
    try:
        data = value.encode("utf-8")
    except UnicodeEncodeError as exc:
        raise HelperExecutionError("base64", str(exc)) from exc
    return base64.b64encode(data).decode("ascii")


class HelperRegistry(Mapping[str, Helper]):
    """Read-only name → helper mapping, safe to share between threads."""

    def __init__(self, helpers: Mapping[str, Helper]) -> None:
        self._helpers: Dict[str, Helper] = dict(helpers)

    def __getitem__(self, name: str) -> Helper:
        return self._helpers[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._helpers)

    def __len__(self) -> int:
        return len(self._helpers)

    def extend(self, **extra: Helper) -> "HelperRegistry":
        """Return a new registry with *extra* helpers added or replaced."""
        return HelperRegistry({**self._helpers, **extra})

    def apply(self, name: str, value: str) -> str:
        """Call helper *name* on *value*.

        Raises
        ------
        InvalidReferenceError
            If no helper is registered under *name*.
        HelperExecutionError
            If the helper fails or returns something other than a string.
        """
        helper = self._helpers.get(name)
        if helper is None:
            raise InvalidReferenceError(name, "unknown helper")
        try:
            result = helper(value)
        except HelperExecutionError:
            raise
        except Exception as exc:
            raise HelperExecutionError(name, str(exc)) from exc
        if not isinstance(result, str):
            raise HelperExecutionError(
                name, f"returned {type(result).__name__}, expected str"
            )
        return result


DEFAULT_HELPERS = HelperRegistry({"quote": quote, "base64": base64_encode})
