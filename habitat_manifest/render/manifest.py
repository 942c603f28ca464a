"""Render Habitat custom-resource manifests from the bundled template.

The bundled template (``templates/habitat.yaml.hbs``) emits, in fixed
order: the resource header, ``metadata.name``, ``spec.v1beta2.image``
and ``count``, then the optional ``env`` and ``persistentStorage``
sections and the ``service`` block with its optional ``group``,
``configSecretName``, ``ringSecretName`` and ``bind`` entries. When
``config`` is set a second YAML document follows: an opaque Secret
carrying the pre-encoded blob under ``user.toml``.
"""

from __future__ import annotations

import functools
import logging
from importlib import resources
from pathlib import Path
from typing import Optional

from habitat_manifest.context.models import Context
from habitat_manifest.helpers import DEFAULT_HELPERS
from habitat_manifest.render.evaluator import render
from habitat_manifest.template.nodes import Template
from habitat_manifest.template.parser import parse_template
from habitat_manifest.template.schema import Schema

logger = logging.getLogger(__name__)

# ── constants ────────────────────────────────────────────────────────

#: File name of the bundled template inside ``habitat_manifest/templates``.
DEFAULT_TEMPLATE_NAME = "habitat.yaml.hbs"

#: Secret emitted when ``config`` is present. This and ``CONFIG_SECRET_KEY``
#: mirror literals in the bundled template.
CONFIG_SECRET_NAME = "user-toml-secret"

#: Key of the user config blob inside the Secret's ``data``.
CONFIG_SECRET_KEY = "user.toml"

#: Field schema every template is checked against.
CONTEXT_SCHEMA = Schema.from_model(Context)


# ── template loading ─────────────────────────────────────────────────


def load_template(path: str | Path) -> Template:
    """Read and parse a template file, checking it against the Context schema.

    Raises
    ------
    FileNotFoundError
        If *path* does not exist.
    TemplateSyntaxError, InvalidReferenceError
        If the template is malformed or names unknown fields.
    """
    path = Path(path)
    if not path.is_file():
        raise FileNotFoundError(f"Template not found: {path}")
    source = path.read_text(encoding="utf-8")
    return parse_template(
        source, helpers=DEFAULT_HELPERS, schema=CONTEXT_SCHEMA, name=str(path)
    )


@functools.lru_cache(maxsize=1)
def load_default_template() -> Template:
    """Parse the bundled template once; later calls return the cached AST."""
    source = (
        (resources.files("habitat_manifest") / "templates" / DEFAULT_TEMPLATE_NAME)
        .read_text(encoding="utf-8")
    )
    logger.debug("Loading bundled template %s", DEFAULT_TEMPLATE_NAME)
    return parse_template(
        source,
        helpers=DEFAULT_HELPERS,
        schema=CONTEXT_SCHEMA,
        name=DEFAULT_TEMPLATE_NAME,
    )


# ── public API ───────────────────────────────────────────────────────


def render_manifest(context: Context, *, template: Optional[Template] = None) -> str:
    """Render the manifest for *context*.

    Parameters
    ----------
    context:
        Validated rendering inputs.
    template:
        Parsed template to use instead of the bundled one.

    Returns
    -------
    str
        The manifest document (two YAML documents when ``config`` is set).
    """
    if template is None:
        template = load_default_template()
    return render(template, context, helpers=DEFAULT_HELPERS)


def write_manifest(
    context: Context,
    dest: str | Path,
    *,
    template: Optional[Template] = None,
) -> Path:
    """Render the manifest for *context* and write it to *dest*.

    Parent directories are created as needed. Rendering happens before
    anything touches the filesystem, so a failed render writes nothing.

    Returns
    -------
    Path
        The written file.
    """
    rendered = render_manifest(context, template=template)

    dest = Path(dest)
    dest.parent.mkdir(parents=True, exist_ok=True)
    dest.write_text(rendered, encoding="utf-8")
    logger.info("Manifest for %s written to %s", context.metadata_name, dest)
    return dest
