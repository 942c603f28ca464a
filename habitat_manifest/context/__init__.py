"""Typed rendering inputs and parameter-file loading."""

from habitat_manifest.context.loader import context_from_mapping, load_context
from habitat_manifest.context.models import (
    DEFAULT_BIND_GROUP,
    Bind,
    Context,
    EnvVar,
    PersistentStorage,
    encode_user_config,
)

__all__ = [
    "DEFAULT_BIND_GROUP",
    "Bind",
    "Context",
    "EnvVar",
    "PersistentStorage",
    "context_from_mapping",
    "encode_user_config",
    "load_context",
]
