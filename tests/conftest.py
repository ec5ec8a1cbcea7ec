"""
Shared pytest fixtures for clientgen tests.

This module provides:
- A recording template renderer and a fake source compiler, so the
  orchestrator can be exercised without Jinja templates or a JDK
- Service model documents for the common scenarios
- Settings pointing at a per-test output directory with a fixed run id
"""

from __future__ import annotations

import threading
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any

import pytest

from clientgen.compiler import CompileReport
from clientgen.config import ClientGenSettings
from clientgen.loader import model_from_dict
from clientgen.logging import clear_context
from clientgen.model import ServiceModel, Variant

RUN_ID = "1700000000000"


# =============================================================================
# Test doubles
# =============================================================================


class RecordingRenderer:
    """Writes a one-line placeholder per render call and remembers the call."""

    def __init__(self):
        self.calls: list[tuple[str, dict[str, Any], Path]] = []
        self._lock = threading.Lock()

    def render(self, template_id: str, bindings: Mapping[str, Any], target: Path) -> Path:
        target = Path(target)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(f"// {template_id} {bindings['identifier']}\n", encoding="utf-8")
        with self._lock:
            self.calls.append((template_id, dict(bindings), target))
        return target

    def identifiers(self, template_id: str) -> list[str]:
        return [bindings["identifier"] for tid, bindings, _ in self.calls if tid == template_id]

    def bindings_for(self, template_id: str, identifier: str) -> list[dict[str, Any]]:
        return [
            bindings
            for tid, bindings, _ in self.calls
            if tid == template_id and bindings["identifier"] == identifier
        ]


class FakeCompiler:
    """Writes one ``.class`` placeholder per source; fails for the given variants."""

    def __init__(self, fail: Sequence[Variant] = ()):
        self.fail = {Variant(v) for v in fail}
        self.calls: list[tuple[Variant, list[Path], Path]] = []

    def compile(self, sources, classpath, output_dir, variant) -> CompileReport:
        output_dir = Path(output_dir)
        self.calls.append((Variant(variant), list(sources), output_dir))
        output_dir.mkdir(parents=True, exist_ok=True)
        if Variant(variant) in self.fail:
            return CompileReport(
                success=False,
                returncode=1,
                output="Svc.java:3: error: cannot find symbol\n",
                sources=len(sources),
            )
        for source in sources:
            (output_dir / f"{Path(source).stem}.class").write_bytes(b"\xca\xfe\xba\xbe")
        return CompileReport(success=True, sources=len(sources))


# =============================================================================
# Model documents
# =============================================================================


def do_thing_document() -> dict[str, Any]:
    """One endpoint, one document/literal wrapped operation, no faults or types."""
    return {
        "endpoints": [
            {
                "qualified_name": "com.acme.Svc",
                "namespace": "ns1",
                "operations": [
                    {
                        "name": "doThing",
                        "parameters": [
                            {"element_name": "a", "type": "int"},
                            {"element_name": "b", "type": "java.lang.String"},
                        ],
                        "result": {"name": "result", "type": "java.lang.String"},
                        "messages": [
                            {
                                "kind": "request-wrapper",
                                "element_name": "DoThing",
                                "bean_name": "com.acme.jaxws.DoThing",
                                "children": [
                                    {"element_name": "a", "type": "int"},
                                    {"element_name": "b", "type": "java.lang.String"},
                                ],
                            },
                            {
                                "kind": "response-wrapper",
                                "element_name": "DoThingResponse",
                                "bean_name": "com.acme.jaxws.DoThingResponse",
                                "children": [{"element_name": "result", "type": "java.lang.String"}],
                            },
                        ],
                    }
                ],
            }
        ]
    }


SOLD_OUT = {
    "kind": "fault",
    "qualified_name": "com.acme.SoldOut",
    "element_name": "SoldOut",
    "implicit_bean_name": "com.acme.jaxws.SoldOutBean",
    "children": [{"element_name": "message", "type": "java.lang.String"}],
}

DENIED = {
    "kind": "fault",
    "qualified_name": "com.acme.Denied",
    "element_name": "Denied",
    "explicit_bean": {"qualified_name": "com.acme.DenialInfo", "name": "denial", "namespace": "urn:shop"},
}


def shop_document() -> dict[str, Any]:
    """Two operations sharing a fault, an explicit fault, an RPC operation and schema types."""
    return {
        "endpoints": [
            {
                "qualified_name": "com.acme.Shop",
                "namespace": "urn:shop",
                "operations": [
                    {
                        "name": "buy",
                        "action": "urn:shop:buy",
                        "parameters": [{"element_name": "item", "type": "com.acme.Item"}],
                        "result": {"name": "receipt", "type": "java.lang.String"},
                        "messages": [
                            {
                                "kind": "request-wrapper",
                                "element_name": "buy",
                                "bean_name": "com.acme.jaxws.Buy",
                                "children": [{"element_name": "item", "type": "com.acme.Item"}],
                            },
                            {
                                "kind": "response-wrapper",
                                "element_name": "buyResponse",
                                "bean_name": "com.acme.jaxws.BuyResponse",
                                "children": [{"element_name": "receipt", "type": "java.lang.String"}],
                            },
                            SOLD_OUT,
                        ],
                    },
                    {
                        "name": "cancel",
                        "one_way": True,
                        "parameters": [{"element_name": "orderId", "type": "long"}],
                        "messages": [
                            {
                                "kind": "request-wrapper",
                                "element_name": "cancel",
                                "bean_name": "com.acme.jaxws.Cancel",
                                "children": [{"element_name": "orderId", "type": "long"}],
                            },
                            SOLD_OUT,
                            DENIED,
                        ],
                    },
                    {
                        "name": "lookup",
                        "binding": {"style": "rpc"},
                        "parameters": [
                            {"element_name": "sku", "type": "java.lang.String"},
                            {"element_name": "trace", "type": "java.lang.String", "header": True},
                        ],
                        "result": {"name": "item", "type": "com.acme.Item"},
                        "messages": [{"kind": "rpc-input"}, {"kind": "rpc-output"}],
                    },
                ],
            }
        ],
        "types": [
            {
                "qualified_name": "com.acme.Item",
                "namespace": "urn:shop",
                "members": [
                    {"name": "name", "type": "java.lang.String"},
                    {"name": "tags", "type": "java.lang.String[]"},
                    {"name": "counts", "type": "int[]"},
                    {"name": "id", "type": "long", "attribute": True},
                ],
            },
            {"qualified_name": "com.acme.Color", "namespace": "urn:shop", "kind": "enum", "values": ["red", "green"]},
            {"qualified_name": "com.acme.Base", "namespace": "urn:shop", "abstract": True},
            {
                "qualified_name": "com.acme.DenialInfo",
                "namespace": "urn:shop",
                "members": [{"name": "reason", "type": "java.lang.String"}],
            },
        ],
        "root_elements": [
            {"qualified_name": "com.acme.Item", "name": "item", "namespace": "urn:shop"},
            {"qualified_name": "com.acme.DenialInfo", "name": "denial", "namespace": "urn:shop"},
        ],
    }


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def _reset_log_context():
    """Keep run context from leaking between tests."""
    clear_context()
    yield
    clear_context()


@pytest.fixture
def renderer() -> RecordingRenderer:
    return RecordingRenderer()


@pytest.fixture
def compiler() -> FakeCompiler:
    return FakeCompiler()


@pytest.fixture
def settings(tmp_path: Path) -> ClientGenSettings:
    return ClientGenSettings(run_id=RUN_ID, output_dir=tmp_path / "out")


@pytest.fixture
def do_thing_model() -> ServiceModel:
    return model_from_dict(do_thing_document())


@pytest.fixture
def shop_model() -> ServiceModel:
    return model_from_dict(shop_document())


@pytest.fixture
def empty_model() -> ServiceModel:
    return ServiceModel()
