"""Tests for template rendering."""

from __future__ import annotations

import hashlib

import pytest

from unitsync.config import ServiceSpec
from unitsync.errors import RenderError
from unitsync.formatting import safe_format
from unitsync.rendering import RenderedUnit, TemplateRenderer, content_hash, render_units


def test_safe_format_substitutes_known_variables():
    result, unresolved = safe_format("ExecStart=/bin/{cmd} --port {{port}}", {
        "cmd": "app",
        "port": "8000",
    })

    assert result == "ExecStart=/bin/app --port 8000"
    assert unresolved == set()


def test_safe_format_reports_unresolved_variables():
    result, unresolved = safe_format("User={user}\nGroup={group}", {"user": "www"})

    assert result == "User=www\nGroup={group}"
    assert unresolved == {"group"}


@pytest.mark.parametrize(
    "text",
    [
        "ExecStart=/bin/sh -c 'echo ${HOME}'",
        "Environment=PATH=${path}",
        "ExecStart=/bin/echo {NotOurs}",
        "ExecStart=/usr/bin/awk '{ print $1 }'",
    ],
)
def test_safe_format_leaves_foreign_braces_alone(text):
    result, unresolved = safe_format(text, {})

    assert result == text
    assert unresolved == set()


def test_safe_format_keeps_shell_expansion_of_a_known_variable():
    result, unresolved = safe_format(
        "ExecStart=/bin/sh -c 'echo ${port}' --port {port}", {"port": "80"}
    )

    assert result == "ExecStart=/bin/sh -c 'echo ${port}' --port 80"
    assert unresolved == set()


def test_content_hash_is_sha256_of_utf8_content():
    assert content_hash("héllo") == hashlib.sha256("héllo".encode()).hexdigest()
    assert content_hash("a") != content_hash("a\n")


def test_render_reads_template_from_directory(templates_dir):
    renderer = TemplateRenderer(templates_dir)

    content = renderer.render("t", {"x": "7"})

    assert "Description=Worker 7" in content
    assert "--id 7" in content


def test_render_missing_template(templates_dir):
    renderer = TemplateRenderer(templates_dir)

    with pytest.raises(RenderError) as exc:
        renderer.render("nope.service", {})

    assert exc.value.template_name == "nope.service"
    assert "not found" in exc.value.cause


def test_render_unresolved_variable(templates_dir):
    renderer = TemplateRenderer(templates_dir)

    with pytest.raises(RenderError) as exc:
        renderer.render("t", {})

    assert exc.value.template_name == "t"
    assert "x" in exc.value.cause


def test_render_units_keeps_input_order(templates_dir):
    specs = [
        ServiceSpec(template="t", unit=f"w{i}.service", variables={"x": str(i)})
        for i in range(20)
    ]

    units = render_units(specs, TemplateRenderer(templates_dir), max_workers=4)

    assert [u.unit for u in units] == [s.unit for s in specs]
    assert units[3] == RenderedUnit.from_content(
        "w3.service", "t", TemplateRenderer(templates_dir).render("t", {"x": "3"})
    )


def test_render_units_same_input_same_hash(templates_dir):
    spec = ServiceSpec(template="t", unit="a.service", variables={"x": "1"})
    renderer = TemplateRenderer(templates_dir)

    first, second = render_units([spec, spec], renderer)

    assert first.content_hash == second.content_hash


def test_render_units_propagates_render_error(templates_dir):
    specs = [
        ServiceSpec(template="t", unit="a.service", variables={"x": "1"}),
        ServiceSpec(template="missing", unit="b.service"),
    ]

    with pytest.raises(RenderError, match="missing"):
        render_units(specs, TemplateRenderer(templates_dir))


def test_render_units_empty():
    assert render_units([], TemplateRenderer("nowhere")) == []
