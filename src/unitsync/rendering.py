from __future__ import annotations

import hashlib
import logging
from collections.abc import Mapping, Sequence
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Protocol

import msgspec

from unitsync.config import ServiceSpec
from unitsync.errors import RenderError
from unitsync.formatting import safe_format

logger = logging.getLogger(__name__)


class RenderedUnit(msgspec.Struct, frozen=True):
    unit: str
    template: str
    content: str
    content_hash: str

    @classmethod
    def from_content(cls, unit: str, template: str, content: str) -> RenderedUnit:
        return cls(
            unit=unit,
            template=template,
            content=content,
            content_hash=content_hash(content),
        )


class Renderer(Protocol):
    def render(self, template_name: str, variables: Mapping[str, str]) -> str: ...


def content_hash(content: str) -> str:
    """SHA-256 hex digest of the unit text, used for change detection."""
    return hashlib.sha256(content.encode("utf-8")).hexdigest()


class TemplateRenderer:
    """Render unit templates stored as plain files in a directory."""

    def __init__(self, templates_dir: Path):
        self.templates_dir = Path(templates_dir)

    def render(self, template_name: str, variables: Mapping[str, str]) -> str:
        template_path = self.templates_dir / template_name
        if not template_path.is_file():
            raise RenderError(template_name, f"template not found at {template_path}")

        try:
            template = template_path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise RenderError(template_name, f"could not read template: {e}") from e

        content, unresolved = safe_format(template, variables)
        if unresolved:
            raise RenderError(
                template_name,
                f"unresolved variables: {', '.join(sorted(unresolved))}",
            )
        return content


def render_units(
    specs: Sequence[ServiceSpec],
    renderer: Renderer,
    *,
    max_workers: int | None = None,
) -> list[RenderedUnit]:
    """
    Render every spec, in parallel.

    Rendering is a pure function of (template, variables), so specs are
    rendered concurrently and the results are returned in input order. The
    first RenderError aborts the whole batch.
    """

    def _render(spec: ServiceSpec) -> RenderedUnit:
        logger.debug("Rendering %s from %s", spec.unit, spec.template)
        content = renderer.render(spec.template, spec.variables)
        return RenderedUnit.from_content(spec.unit, spec.template, content)

    if not specs:
        return []

    with ThreadPoolExecutor(max_workers=max_workers) as pool:
        return list(pool.map(_render, specs))
