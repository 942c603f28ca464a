"""Build a :class:`Context` from plain data or a YAML parameter file.

Parameter files are flat YAML mappings using either snake_case or the
manifest's camelCase spelling::

    metadataName: web
    image: org/web:1.0
    count: 3
    serviceName: web
    serviceTopology: standalone
    environment:
      - {name: PORT, value: "8080"}
    binds:
      - db:database.default
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Mapping

import yaml

from habitat_manifest.context.models import Context

logger = logging.getLogger(__name__)


def context_from_mapping(data: Mapping[str, Any]) -> Context:
    """Validate *data* into a :class:`Context`.

    Raises
    ------
    MissingRequiredFieldError
        If a required parameter is absent or blank.
    pydantic.ValidationError
        If a parameter has the wrong type or an unknown key is present.
    """
    return Context.model_validate(dict(data))


def load_context(path: str | Path) -> Context:
    """Load and validate a YAML parameter file.

    Raises
    ------
    FileNotFoundError
        If *path* does not exist.
    ValueError
        If the document is not a mapping.
    """
    path = Path(path)
    if not path.is_file():
        raise FileNotFoundError(f"Parameter file not found: {path}")

    with open(path, encoding="utf-8") as fh:
        raw = yaml.safe_load(fh) or {}

    if not isinstance(raw, dict):
        raise ValueError(
            f"Parameter file {path} must contain a mapping, got {type(raw).__name__}"
        )

    logger.debug("Loaded %d parameter(s) from %s", len(raw), path)
    return context_from_mapping(raw)
