"""Pydantic models for manifest rendering parameters.

Defines the data structures for:
- Environment variables passed to the supervisor (``EnvVar``)
- The optional persistent volume request (``PersistentStorage``)
- Service binds to other workloads (``Bind``)
- The full rendering input (``Context``)

Every model is frozen: a Context is built once per render request and
is never mutated while a template walks it.
"""

from __future__ import annotations

import base64
import re
from typing import Any, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from habitat_manifest.errors import MissingRequiredFieldError

#: Group used when a bind spec omits one (``db:database``).
DEFAULT_BIND_GROUP = "default"


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


# Plain-substituted values must stay on a single manifest line.
_CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f-\x9f\u2028\u2029]")


def _single_line(value: Optional[str]) -> Optional[str]:
    if value is not None and _CONTROL_CHARS.search(value):
        raise ValueError("must not contain line breaks or control characters")
    return value


def _require(data: Any, fields: Tuple[Tuple[str, str], ...]) -> Any:
    """Raise :class:`MissingRequiredFieldError` for absent or empty fields.

    *fields* holds ``(field_name, alias)`` pairs; either spelling counts.
    Non-mapping input is left for pydantic to reject.
    """
    if not isinstance(data, dict):
        return data
    for name, alias in fields:
        value = data.get(name, data.get(alias))
        if _is_blank(value):
            raise MissingRequiredFieldError(name)
    return data


class _FrozenModel(BaseModel):
    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        extra="forbid",
        coerce_numbers_to_str=True,
    )


# ---------------------------------------------------------------------------
# EnvVar
# ---------------------------------------------------------------------------


class EnvVar(_FrozenModel):
    """A single ``name``/``value`` environment entry."""

    name: str
    value: str = ""

    @model_validator(mode="before")
    @classmethod
    def _check_required(cls, data: Any) -> Any:
        return _require(data, (("name", "name"),))

    @field_validator("name")
    @classmethod
    def _plain_name(cls, value: str) -> str:
        return _single_line(value)

    @field_validator("value", mode="before")
    @classmethod
    def _bool_as_text(cls, value: Any) -> Any:
        # YAML reads yes/no/true/false as booleans.
        if isinstance(value, bool):
            return "true" if value else "false"
        return value

    @classmethod
    def parse(cls, spec: str) -> "EnvVar":
        """Parse ``NAME=value``. The value may itself contain ``=``."""
        name, sep, value = spec.partition("=")
        if not sep or not name.strip():
            raise ValueError(f"Invalid environment spec {spec!r}: expected NAME=value")
        return cls(name=name.strip(), value=value)


# ---------------------------------------------------------------------------
# PersistentStorage
# ---------------------------------------------------------------------------


class PersistentStorage(_FrozenModel):
    """Durable volume request. All three fields are required together."""

    size: str
    storage_class_name: str = Field(alias="storageClassName")
    mount_path: str = Field(alias="mountPath")

    @model_validator(mode="before")
    @classmethod
    def _check_required(cls, data: Any) -> Any:
        return _require(
            data,
            (
                ("size", "size"),
                ("storage_class_name", "storageClassName"),
                ("mount_path", "mountPath"),
            ),
        )

    @field_validator("size", "storage_class_name", "mount_path")
    @classmethod
    def _plain_fields(cls, value: str) -> str:
        return _single_line(value)

    @classmethod
    def parse(cls, spec: str) -> "PersistentStorage":
        """Parse ``SIZE:MOUNT_PATH:STORAGE_CLASS`` (e.g. ``10Gi:/data:standard``)."""
        parts = spec.split(":")
        if len(parts) != 3 or any(not p for p in parts):
            raise ValueError(
                f"Invalid persistent storage spec {spec!r}: "
                "expected SIZE:MOUNT_PATH:STORAGE_CLASS"
            )
        size, mount_path, storage_class_name = parts
        return cls(
            size=size,
            mount_path=mount_path,
            storage_class_name=storage_class_name,
        )


# ---------------------------------------------------------------------------
# Bind
# ---------------------------------------------------------------------------


class Bind(_FrozenModel):
    """A named reference from this service to another service group."""

    name: str
    service: str
    group: str = DEFAULT_BIND_GROUP

    @model_validator(mode="before")
    @classmethod
    def _check_required(cls, data: Any) -> Any:
        return _require(data, (("name", "name"), ("service", "service")))

    @field_validator("name", "service", "group")
    @classmethod
    def _plain_fields(cls, value: str) -> str:
        return _single_line(value)

    @classmethod
    def parse(cls, spec: str) -> "Bind":
        """Parse ``NAME:SERVICE[.GROUP]`` (e.g. ``db:database.default``).

        Exactly one ``:`` is allowed. The supervisor's three-part
        ``SERVICE:NAME:GROUP`` form names the binding service, which a
        manifest bind has no field for, so it is rejected too.
        """
        parts = spec.split(":")
        if len(parts) != 2:
            raise ValueError(
                f"Invalid bind spec {spec!r}: expected NAME:SERVICE[.GROUP]"
            )
        name, target = parts
        service, _, group = target.partition(".")
        if not name or not service:
            raise ValueError(
                f"Invalid bind spec {spec!r}: expected NAME:SERVICE[.GROUP]"
            )
        return cls(name=name, service=service, group=group or DEFAULT_BIND_GROUP)


# ---------------------------------------------------------------------------
# Context
# ---------------------------------------------------------------------------


class Context(_FrozenModel):
    """Full set of inputs for rendering one manifest.

    Optional fields are either absent (``None`` / empty tuple) or fully
    populated; empty strings are normalised to ``None`` so a blank value
    never produces a half-filled section.
    """

    metadata_name: str = Field(alias="metadataName")
    image: str
    count: int = Field(gt=0)
    environment: Tuple[EnvVar, ...] = ()
    persistent_storage: Optional[PersistentStorage] = Field(
        default=None, alias="persistentStorage"
    )
    service_name: str = Field(alias="serviceName")
    service_topology: str = Field(alias="serviceTopology")
    service_group: Optional[str] = Field(default=None, alias="serviceGroup")
    config: Optional[str] = None
    ring_secret_name: Optional[str] = Field(default=None, alias="ringSecretName")
    binds: Tuple[Bind, ...] = ()

    @model_validator(mode="before")
    @classmethod
    def _check_required(cls, data: Any) -> Any:
        return _require(
            data,
            (
                ("metadata_name", "metadataName"),
                ("image", "image"),
                ("count", "count"),
                ("service_name", "serviceName"),
                ("service_topology", "serviceTopology"),
            ),
        )

    @field_validator("service_group", "config", "ring_secret_name", mode="before")
    @classmethod
    def _blank_to_none(cls, value: Any) -> Any:
        return None if _is_blank(value) else value

    @field_validator(
        "metadata_name",
        "image",
        "service_name",
        "service_topology",
        "service_group",
        "config",
        "ring_secret_name",
    )
    @classmethod
    def _plain_fields(cls, value: Optional[str]) -> Optional[str]:
        return _single_line(value)

    @field_validator("persistent_storage", mode="before")
    @classmethod
    def _coerce_storage(cls, value: Any) -> Any:
        if isinstance(value, str):
            return PersistentStorage.parse(value) if value.strip() else None
        return value or None

    @field_validator("environment", mode="before")
    @classmethod
    def _coerce_environment(cls, value: Any) -> Any:
        if value is None:
            return ()
        if isinstance(value, dict):
            # Mapping form keeps insertion order.
            return tuple({"name": k, "value": v} for k, v in value.items())
        return tuple(EnvVar.parse(v) if isinstance(v, str) else v for v in value)

    @field_validator("binds", mode="before")
    @classmethod
    def _coerce_binds(cls, value: Any) -> Any:
        if value is None:
            return ()
        return tuple(Bind.parse(v) if isinstance(v, str) else v for v in value)


def encode_user_config(data: bytes) -> str:
    """Base64-encode raw user configuration for :attr:`Context.config`."""
    return base64.b64encode(data).decode("ascii")
