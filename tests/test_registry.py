"""Tests for clientgen.registry module."""

import pytest

from clientgen.errors import ClientGenError, ModelIntegrityError
from clientgen.registry import (
    BindingMetadataRegistry,
    DescriptorKind,
    OneWayDescriptor,
    ServiceDescriptor,
    WrapperDescriptor,
    descriptor_from_fields,
    descriptor_to_fields,
)


@pytest.fixture
def registry():
    return BindingMetadataRegistry()


class TestRecording:
    """Tests for recording descriptors."""

    def test_record_and_get(self, registry):
        registry.record_service(
            "com.acme.Svc", name="Svc", port_name="SvcSOAPPort", service_name="SvcService", target_namespace="ns1"
        )

        service = registry.get("com.acme.Svc", DescriptorKind.SERVICE)
        assert service == ServiceDescriptor("Svc", "SvcSOAPPort", "SvcService", "ns1")
        assert registry.get("com.acme.Svc", "service") == service

    def test_one_descriptor_per_kind(self, registry):
        """Different kinds under one key coexist."""
        registry.record_soap_binding("com.acme.Svc.run", style="document", parameter_style="wrapped", use="literal")
        registry.record_operation("com.acme.Svc.run", operation_name="run", action="")
        registry.mark_one_way("com.acme.Svc.run")

        assert len(registry) == 3
        assert registry.keys() == ["com.acme.Svc.run"]
        assert registry.get("com.acme.Svc.run", DescriptorKind.ONE_WAY) == OneWayDescriptor()

    def test_wrapper_keeps_property_order(self, registry):
        registry.record_wrapper(
            "com.acme.jaxws.Run",
            element_name="run",
            namespace="ns1",
            direction="request",
            operation="com.acme.Svc.run",
            property_order=["z", "a", "m"],
        )

        wrapper = registry.get("com.acme.jaxws.Run", DescriptorKind.WRAPPER)
        assert wrapper.property_order == ("z", "a", "m")

    def test_identical_rewrite_is_silent(self, registry):
        registry.record_operation("k", operation_name="run", action="")
        registry.record_operation("k", operation_name="run", action="")

        assert registry.conflicts == []
        assert len(registry) == 1

    def test_conflict_last_write_wins(self, registry):
        """A differing rewrite is kept as a conflict and replaces the old value."""
        registry.record_operation("k", operation_name="run", action="")
        registry.record_operation("k", operation_name="run", action="urn:run")

        assert registry.get("k", DescriptorKind.OPERATION).action == "urn:run"
        (conflict,) = registry.conflicts
        assert conflict.key == "k"
        assert conflict.previous.action == ""
        assert conflict.current.action == "urn:run"

    def test_empty_key(self, registry):
        with pytest.raises(ModelIntegrityError):
            registry.mark_one_way("")

    def test_records_in_insertion_order(self, registry):
        registry.mark_one_way("b")
        registry.mark_one_way("a")

        assert [record.key for record in registry.records()] == ["b", "a"]
        assert "a" in registry
        assert "c" not in registry


class TestLifecycle:
    """Tests for freeze and overlay."""

    def test_frozen_rejects_writes(self, registry):
        registry.mark_one_way("k")
        registry.freeze()

        assert registry.frozen
        with pytest.raises(ClientGenError, match="frozen"):
            registry.mark_one_way("other")

    def test_overlay_requires_frozen_parent(self, registry):
        with pytest.raises(ClientGenError):
            registry.overlay()

    def test_overlay_reads_through(self, registry):
        registry.record_root_element("com.acme.Item", name="item", namespace="ns1")
        overlay = registry.freeze().overlay()
        overlay.mark_one_way("com.acme.Svc.ping")

        assert overlay.get("com.acme.Item", DescriptorKind.ROOT_ELEMENT).name == "item"
        assert len(overlay) == 2
        assert len(registry) == 1
        assert [record.key for record in overlay.records()] == ["com.acme.Item", "com.acme.Svc.ping"]

    def test_overlay_cannot_redefine_parent(self, registry):
        registry.record_root_element("com.acme.Item", name="item", namespace="ns1")
        overlay = registry.freeze().overlay()

        with pytest.raises(ModelIntegrityError, match="cannot redefine"):
            overlay.record_root_element("com.acme.Item", name="other", namespace="ns1")

    def test_overlay_may_add_other_kinds_for_parent_key(self, registry):
        registry.record_root_element("com.acme.Item", name="item", namespace="ns1")
        overlay = registry.freeze().overlay()

        overlay.record_service(
            "com.acme.Item", name="Item", port_name="p", service_name="s", target_namespace="ns1"
        )

        assert overlay.get("com.acme.Item", DescriptorKind.SERVICE).name == "Item"

    def test_equality(self):
        first = BindingMetadataRegistry()
        second = BindingMetadataRegistry()
        for registry in (first, second):
            registry.mark_one_way("k")

        assert first == second
        second.mark_one_way("j")
        assert first != second


class TestFields:
    """Tests for descriptor field conversion."""

    def test_round_trip(self):
        wrapper = WrapperDescriptor("run", "ns1", "request", "com.acme.Svc.run", ("a", "b"))

        fields = descriptor_to_fields(wrapper)

        assert fields["property_order"] == ["a", "b"]
        assert descriptor_from_fields("wrapper", fields) == wrapper

    def test_one_way_has_no_fields(self):
        assert descriptor_to_fields(OneWayDescriptor()) == {}
        assert descriptor_from_fields(DescriptorKind.ONE_WAY, {}) == OneWayDescriptor()

    def test_operation_wrappers(self, registry):
        """An operation descriptor names its wrapper beans for lookup by method key."""
        recorded = registry.record_operation(
            "com.acme.Svc.run",
            operation_name="run",
            action="",
            request_wrapper="com.acme.jaxws.Run",
            response_wrapper="com.acme.jaxws.RunResponse",
        )

        assert descriptor_from_fields("operation", descriptor_to_fields(recorded)) == recorded
        assert descriptor_from_fields("operation", {"operation_name": "run", "action": ""}).request_wrapper is None

    def test_unknown_kind(self):
        with pytest.raises(ValueError):
            descriptor_from_fields("annotation", {})
