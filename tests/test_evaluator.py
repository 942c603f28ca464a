"""Tests for habitat_manifest.render.evaluator — walking templates against a Context."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor

import pytest
from pydantic import BaseModel

from habitat_manifest.context import Context
from habitat_manifest.errors import (
    HelperExecutionError,
    InvalidReferenceError,
    MissingRequiredFieldError,
)
from habitat_manifest.helpers import DEFAULT_HELPERS, HelperRegistry
from habitat_manifest.render import is_present, render
from habitat_manifest.template import (
    FieldPath,
    Substitution,
    Template,
    parse_template,
)


BASE = dict(
    metadata_name="web",
    image="org/web:1.0",
    count=3,
    service_name="web",
    service_topology="standalone",
)


def _ctx(**overrides) -> Context:
    return Context(**{**BASE, **overrides})


class _Flags(BaseModel):
    enabled: bool
    ratio: float = 0.5


# ── Substitution ─────────────────────────────────────────────────────


class TestSubstitution:
    def test_scalar_fields(self):
        tpl = parse_template("{{metadata_name}} {{image}} x{{count}}")
        assert render(tpl, _ctx()) == "web org/web:1.0 x3"

    def test_bool_and_float_canonical(self):
        tpl = parse_template("{{enabled}} {{ratio}}")
        assert render(tpl, _Flags(enabled=True)) == "true 0.5"
        assert render(tpl, _Flags(enabled=False, ratio=2.0)) == "false 2.0"

    def test_record_subfield(self):
        tpl = parse_template("{{persistent_storage.mount_path}}")
        ctx = _ctx(persistent_storage="1Gi:/data:fast")
        assert render(tpl, ctx) == "/data"

    def test_absent_value_raises_missing(self):
        tpl = parse_template("group: {{service_group}}")
        with pytest.raises(MissingRequiredFieldError, match="service_group"):
            render(tpl, _ctx())

    def test_absent_parent_record_raises_missing(self):
        tpl = parse_template("{{persistent_storage.size}}")
        with pytest.raises(MissingRequiredFieldError, match="persistent_storage.size"):
            render(tpl, _ctx())

    def test_unknown_field_raises_invalid_reference(self):
        tpl = parse_template("{{replicas}}")
        with pytest.raises(InvalidReferenceError, match="replicas"):
            render(tpl, _ctx())

    def test_non_scalar_raises_invalid_reference(self):
        tpl = parse_template("{{binds}}")
        with pytest.raises(InvalidReferenceError, match="tuple"):
            render(tpl, _ctx(binds=["db:database"]))


# ── Conditionals ─────────────────────────────────────────────────────


class TestConditional:
    def test_absent_optional_emits_nothing(self):
        tpl = parse_template("a{{#if service_group}}-{{service_group}}{{/if}}b")
        assert render(tpl, _ctx()) == "ab"

    def test_present_optional(self):
        tpl = parse_template("a{{#if service_group}}-{{service_group}}{{/if}}b")
        assert render(tpl, _ctx(service_group="prod")) == "a-prodb"

    def test_empty_sequence_is_absent(self):
        tpl = parse_template("{{#if binds}}binds{{/if}}")
        assert render(tpl, _ctx(binds=[])) == ""

    def test_false_is_absent(self):
        tpl = parse_template("{{#if enabled}}on{{/if}}")
        assert render(tpl, _Flags(enabled=False)) == ""
        assert render(tpl, _Flags(enabled=True)) == "on"

    @pytest.mark.parametrize(
        "value, expected",
        [(None, False), ("", False), ((), False), (False, False),
         ("x", True), (0, True), ((1,), True), (True, True)],
    )
    def test_is_present(self, value, expected):
        assert is_present(value) is expected


# ── Loops ────────────────────────────────────────────────────────────


class TestLoop:
    def test_iterates_in_order(self):
        tpl = parse_template("{{#each binds}}[{{this.name}}>{{this.service}}]{{/each}}")
        ctx = _ctx(binds=["b:beta", "a:alpha", "c:gamma"])
        assert render(tpl, ctx) == "[b>beta][a>alpha][c>gamma]"

    def test_zero_iterations(self):
        tpl = parse_template("x{{#each environment}}{{this.name}}{{/each}}y")
        assert render(tpl, _ctx()) == "xy"

    def test_root_fields_visible_inside_loop(self):
        tpl = parse_template("{{#each binds}}{{service_name}}:{{this.name}};{{/each}}")
        assert render(tpl, _ctx(binds=["db:database"])) == "web:db;"

    def test_nested_loops_bind_innermost(self):
        tpl = parse_template(
            "{{#each environment}}{{#each binds}}{{this.name}}{{/each}}|{{this.name}};{{/each}}"
        )
        ctx = _ctx(environment=["A=1", "B=2"], binds=["x:s", "y:s"])
        assert render(tpl, ctx) == "xy|A;xy|B;"

    def test_each_over_scalar_raises(self):
        tpl = parse_template("{{#each image}}{{/each}}")
        with pytest.raises(InvalidReferenceError, match="sequence"):
            render(tpl, _ctx())

    def test_this_outside_loop_at_render_time(self):
        tpl = Template(nodes=(Substitution(FieldPath(("this", "name"))),))
        with pytest.raises(InvalidReferenceError, match="outside an each block"):
            render(tpl, _ctx())


# ── Helpers ──────────────────────────────────────────────────────────


class TestHelperCalls:
    def test_quote(self):
        tpl = parse_template("{{#each environment}}{{quote this.value}}{{/each}}")
        assert render(tpl, _ctx(environment=["A=x: y"])) == '"x: y"'

    def test_quote_number_uses_canonical_text(self):
        tpl = parse_template("{{quote count}}")
        assert render(tpl, _ctx()) == '"3"'

    def test_base64(self):
        tpl = parse_template("{{base64 metadata_name}}")
        assert render(tpl, _ctx()) == "d2Vi"

    def test_custom_registry(self):
        helpers = DEFAULT_HELPERS.extend(upper=str.upper)
        tpl = parse_template("{{upper image}}", helpers=helpers)
        assert render(tpl, _ctx(), helpers=helpers) == "ORG/WEB:1.0"

    def test_helper_missing_from_render_registry(self):
        tpl = parse_template("{{upper image}}", helpers={"upper"})
        with pytest.raises(InvalidReferenceError, match="upper"):
            render(tpl, _ctx())

    def test_helper_failure_aborts_render(self):
        def reject(value: str) -> str:
            raise ValueError(f"cannot handle {value}")

        helpers = HelperRegistry({"reject": reject})
        tpl = parse_template("ok {{reject image}}", helpers=helpers)
        with pytest.raises(HelperExecutionError, match="cannot handle org/web"):
            render(tpl, _ctx(), helpers=helpers)


# ── Determinism & sharing ────────────────────────────────────────────


class TestDeterminism:
    def test_same_inputs_same_output(self):
        tpl = parse_template("{{#each binds}}{{this.name}}{{/each}}{{count}}")
        ctx = _ctx(binds=["a:s", "b:s"])
        assert render(tpl, ctx) == render(tpl, ctx)

    def test_shared_template_across_threads(self):
        tpl = parse_template("{{metadata_name}}:{{#each binds}}{{this.name}}{{/each}}")
        contexts = [
            _ctx(metadata_name=f"svc{i}", binds=[f"b{i}:s"]) for i in range(32)
        ]
        with ThreadPoolExecutor(max_workers=8) as pool:
            results = list(pool.map(lambda c: render(tpl, c), contexts))
        assert results == [f"svc{i}:b{i}" for i in range(32)]
