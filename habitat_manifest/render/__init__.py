"""Template evaluation and the bundled Habitat manifest."""

from habitat_manifest.render.evaluator import is_present, render, to_text
from habitat_manifest.render.manifest import (
    CONFIG_SECRET_KEY,
    CONFIG_SECRET_NAME,
    CONTEXT_SCHEMA,
    DEFAULT_TEMPLATE_NAME,
    load_default_template,
    load_template,
    render_manifest,
    write_manifest,
)

__all__ = [
    "CONFIG_SECRET_KEY",
    "CONFIG_SECRET_NAME",
    "CONTEXT_SCHEMA",
    "DEFAULT_TEMPLATE_NAME",
    "is_present",
    "load_default_template",
    "load_template",
    "render",
    "render_manifest",
    "to_text",
    "write_manifest",
]
