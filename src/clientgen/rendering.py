"""
Template rendering for generated client sources.

The orchestrator never formats source text itself. It hands a template id,
a bindings mapping and a target path to a :class:`TemplateRenderer`; the
shipped implementation renders Jinja2 templates named
``<template_id>.java.j2`` from the package's ``templates`` directory or a
configured override directory.

Manifesto:
    The compiler decides *what* is generated and *where*; templates decide
    how it reads. Swapping the renderer (a recording fake in tests, a
    different template set for another runtime) must never change the
    manifest or the binding metadata.

Architecture:
    ::

        GenerationOrchestrator ──► TemplateRenderer.render(id, bindings, target)
                                          │
                                          ▼
                                  Jinja2 Environment
                                  (FileSystemLoader, StrictUndefined)
                                          │
                                          ▼
                                  <target>.java

Tags:
    renderer, template, jinja2, clientgen
"""

from __future__ import annotations

from collections.abc import Mapping
from enum import Enum
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

from jinja2 import Environment, FileSystemLoader, StrictUndefined, TemplateError

from clientgen.errors import ClientGenError
from clientgen.logging import get_logger
from clientgen.model import capitalize, split_qualified_name

log = get_logger(__name__)

TEMPLATE_SUFFIX = ".java.j2"
DEFAULT_TEMPLATE_DIR = Path(__file__).parent / "templates"


class TemplateId(str, Enum):
    """Templates the orchestrator renders."""

    # Common phase
    REQUEST_BEAN = "request-bean"
    RESPONSE_BEAN = "response-bean"
    FAULT_BEAN = "fault-bean"
    ENUM_TYPE_BINDING = "enum-type-binding"
    SIMPLE_TYPE_BINDING = "simple-type-binding"
    COMPLEX_TYPE_BINDING = "complex-type-binding"

    # Variant phases
    ENDPOINT_INTERFACE = "endpoint-interface"
    ENDPOINT_IMPL = "endpoint-impl"
    WEB_FAULT = "web-fault"
    LEGACY_ENUM_TYPE = "legacy-enum-type"
    MODERN_ENUM_TYPE = "modern-enum-type"
    SIMPLE_TYPE = "simple-type"
    COMPLEX_TYPE = "complex-type"


@runtime_checkable
class TemplateRenderer(Protocol):
    """Renders one template to one file and returns the written path."""

    def render(self, template_id: str, bindings: Mapping[str, Any], target: Path) -> Path: ...


def simple_name(identifier: str) -> str:
    return split_qualified_name(identifier)[1]


def package_of(identifier: str) -> str:
    return split_qualified_name(identifier)[0]


class JinjaTemplateRenderer:
    """
    Jinja2-backed :class:`TemplateRenderer`.

    Undefined template variables raise instead of rendering as empty text,
    so a bindings mapping that is missing a field fails loudly.
    """

    def __init__(self, template_dir: Path | None = None):
        self.template_dir = Path(template_dir) if template_dir else DEFAULT_TEMPLATE_DIR
        self.env = Environment(
            loader=FileSystemLoader(str(self.template_dir)),
            undefined=StrictUndefined,
            trim_blocks=True,
            lstrip_blocks=True,
            keep_trailing_newline=True,
        )
        self.env.filters["simple_name"] = simple_name
        self.env.filters["package_of"] = package_of
        self.env.filters["upper_first"] = capitalize

    def render(self, template_id: str, bindings: Mapping[str, Any], target: Path) -> Path:
        template_id = getattr(template_id, "value", template_id)
        target = Path(target)
        try:
            template = self.env.get_template(f"{template_id}{TEMPLATE_SUFFIX}")
            text = template.render(**bindings)
        except TemplateError as e:
            raise ClientGenError(f"Cannot render template '{template_id}'", cause=e).with_context(
                entity=str(target)
            ) from e

        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(text, encoding="utf-8")
        log.debug("template_rendered", template=template_id, target=str(target))
        return target
