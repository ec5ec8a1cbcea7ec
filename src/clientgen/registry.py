"""
Binding metadata registry.

Accumulates the descriptors a client runtime needs to marshal and unmarshal
messages for the generated classes without reading annotations from them.
Descriptors are keyed either by class identifier (``com.acme.Foo``) or by a
member key (``com.acme.Foo.doThing`` or ``com.acme.Foo.doThing.0`` for the
first parameter).

Architecture:
    ::

        Common phase                      Variant phases
        ────────────                      ──────────────
        registry.record_*(...)            overlay = registry.overlay()
              │                           overlay.record_*(...)  (new keys only)
              ▼                                  │
        registry.freeze() ───────────────► reads fall through to the frozen parent

Each ``(key, kind)`` slot holds one descriptor. Writing a slot twice with
different content means the model is inconsistent: the registry logs a
``descriptor_conflict`` warning, keeps the conflict in :attr:`conflicts`,
and the last write wins.

Wrapper descriptors keep the child-element order exactly as declared; the
runtime marshals wrapper content positionally from it.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import MISSING, dataclass, fields
from enum import Enum
from typing import Any, ClassVar, Union

from clientgen.errors import ClientGenError, ModelIntegrityError
from clientgen.logging import get_logger

log = get_logger(__name__)


class DescriptorKind(str, Enum):
    SERVICE = "service"
    SOAP_BINDING = "soap-binding"
    OPERATION = "operation"
    RESULT = "result"
    PARAMETER = "parameter"
    WRAPPER = "wrapper"
    FAULT_MAPPING = "fault-mapping"
    ROOT_ELEMENT = "root-element"
    ONE_WAY = "one-way"


@dataclass(frozen=True)
class ServiceDescriptor:
    name: str
    port_name: str
    service_name: str
    target_namespace: str

    kind: ClassVar[DescriptorKind] = DescriptorKind.SERVICE


@dataclass(frozen=True)
class SoapBindingDescriptor:
    style: str
    parameter_style: str
    use: str

    kind: ClassVar[DescriptorKind] = DescriptorKind.SOAP_BINDING


@dataclass(frozen=True)
class OperationDescriptor:
    """Operation binding; the wrapper fields name the request/response beans, if any."""

    operation_name: str
    action: str
    request_wrapper: str | None = None
    response_wrapper: str | None = None

    kind: ClassVar[DescriptorKind] = DescriptorKind.OPERATION


@dataclass(frozen=True)
class ResultDescriptor:
    name: str
    part_name: str | None
    target_namespace: str
    header: bool

    kind: ClassVar[DescriptorKind] = DescriptorKind.RESULT


@dataclass(frozen=True)
class ParameterDescriptor:
    name: str
    part_name: str | None
    mode: str
    header: bool

    kind: ClassVar[DescriptorKind] = DescriptorKind.PARAMETER


@dataclass(frozen=True)
class WrapperDescriptor:
    """Request/response bean binding; ``property_order`` is load-bearing."""

    element_name: str
    namespace: str
    direction: str
    operation: str
    property_order: tuple[str, ...]

    kind: ClassVar[DescriptorKind] = DescriptorKind.WRAPPER


@dataclass(frozen=True)
class FaultMappingDescriptor:
    element_name: str
    namespace: str
    bean: str
    implicit: bool

    kind: ClassVar[DescriptorKind] = DescriptorKind.FAULT_MAPPING


@dataclass(frozen=True)
class RootElementDescriptor:
    name: str
    namespace: str

    kind: ClassVar[DescriptorKind] = DescriptorKind.ROOT_ELEMENT


@dataclass(frozen=True)
class OneWayDescriptor:
    kind: ClassVar[DescriptorKind] = DescriptorKind.ONE_WAY


Descriptor = Union[
    ServiceDescriptor,
    SoapBindingDescriptor,
    OperationDescriptor,
    ResultDescriptor,
    ParameterDescriptor,
    WrapperDescriptor,
    FaultMappingDescriptor,
    RootElementDescriptor,
    OneWayDescriptor,
]

DESCRIPTOR_TYPES: dict[DescriptorKind, type] = {
    cls.kind: cls
    for cls in (
        ServiceDescriptor,
        SoapBindingDescriptor,
        OperationDescriptor,
        ResultDescriptor,
        ParameterDescriptor,
        WrapperDescriptor,
        FaultMappingDescriptor,
        RootElementDescriptor,
        OneWayDescriptor,
    )
}


def descriptor_to_fields(descriptor: Descriptor) -> dict[str, Any]:
    """Payload fields of a descriptor as JSON-compatible values."""
    result = {}
    for f in fields(descriptor):
        value = getattr(descriptor, f.name)
        result[f.name] = list(value) if isinstance(value, tuple) else value
    return result


def descriptor_from_fields(kind: DescriptorKind | str, payload: dict[str, Any]) -> Descriptor:
    """Rebuild a descriptor from its kind tag and payload fields."""
    cls = DESCRIPTOR_TYPES[DescriptorKind(kind)]
    values = {}
    for f in fields(cls):
        if f.name not in payload and f.default is not MISSING:
            continue
        value = payload[f.name]
        values[f.name] = tuple(value) if isinstance(value, list) else value
    return cls(**values)


@dataclass(frozen=True)
class BindingRecord:
    key: str
    kind: DescriptorKind
    descriptor: Descriptor


@dataclass(frozen=True)
class DescriptorConflict:
    key: str
    kind: DescriptorKind
    previous: Descriptor
    current: Descriptor


class BindingMetadataRegistry:
    """
    In-memory index of binding descriptors.

    Examples:
        >>> registry = BindingMetadataRegistry()
        >>> registry.record_operation("com.acme.Shop.buy", operation_name="buy", action="")
        OperationDescriptor(operation_name='buy', action='')
        >>> registry.get("com.acme.Shop.buy", DescriptorKind.OPERATION).operation_name
        'buy'
    """

    def __init__(self, parent: BindingMetadataRegistry | None = None):
        self._records: dict[tuple[str, DescriptorKind], Descriptor] = {}
        self._parent = parent
        self._frozen = False
        self.conflicts: list[DescriptorConflict] = []

    # ── recording ────────────────────────────────────────────────

    def record_service(
        self, key: str, *, name: str, port_name: str, service_name: str, target_namespace: str
    ) -> ServiceDescriptor:
        return self.record(key, ServiceDescriptor(name, port_name, service_name, target_namespace))

    def record_soap_binding(self, key: str, *, style: str, parameter_style: str, use: str) -> SoapBindingDescriptor:
        return self.record(key, SoapBindingDescriptor(style, parameter_style, use))

    def record_operation(
        self,
        key: str,
        *,
        operation_name: str,
        action: str,
        request_wrapper: str | None = None,
        response_wrapper: str | None = None,
    ) -> OperationDescriptor:
        return self.record(key, OperationDescriptor(operation_name, action, request_wrapper, response_wrapper))

    def record_result(
        self, key: str, *, name: str, part_name: str | None, target_namespace: str, header: bool
    ) -> ResultDescriptor:
        return self.record(key, ResultDescriptor(name, part_name, target_namespace, header))

    def record_parameter(
        self, key: str, *, name: str, part_name: str | None, mode: str, header: bool
    ) -> ParameterDescriptor:
        return self.record(key, ParameterDescriptor(name, part_name, mode, header))

    def record_wrapper(
        self,
        key: str,
        *,
        element_name: str,
        namespace: str,
        direction: str,
        operation: str,
        property_order: list[str] | tuple[str, ...],
    ) -> WrapperDescriptor:
        return self.record(
            key, WrapperDescriptor(element_name, namespace, direction, operation, tuple(property_order))
        )

    def record_fault_mapping(
        self, key: str, *, element_name: str, namespace: str, bean: str, implicit: bool
    ) -> FaultMappingDescriptor:
        return self.record(key, FaultMappingDescriptor(element_name, namespace, bean, implicit))

    def record_root_element(self, key: str, *, name: str, namespace: str) -> RootElementDescriptor:
        return self.record(key, RootElementDescriptor(name, namespace))

    def mark_one_way(self, key: str) -> OneWayDescriptor:
        return self.record(key, OneWayDescriptor())

    def record(self, key: str, descriptor: Descriptor) -> Descriptor:
        """Store a descriptor under ``(key, descriptor.kind)``."""
        if self._frozen:
            raise ClientGenError(f"Binding registry is frozen; cannot record {descriptor.kind.value} for '{key}'")
        if not key:
            raise ModelIntegrityError(f"Cannot record {descriptor.kind.value} descriptor without a key")

        slot = (key, descriptor.kind)
        if self._parent is not None and self._parent.get(key, descriptor.kind) is not None:
            raise ModelIntegrityError(
                f"Variant overlay cannot redefine common {descriptor.kind.value} descriptor"
            ).with_context(entity=key)

        previous = self._records.get(slot)
        if previous is not None and previous != descriptor:
            self.conflicts.append(DescriptorConflict(key, descriptor.kind, previous, descriptor))
            log.warning(
                "descriptor_conflict",
                key=key,
                kind=descriptor.kind.value,
                previous=descriptor_to_fields(previous),
                current=descriptor_to_fields(descriptor),
            )
        self._records[slot] = descriptor
        return descriptor

    # ── lifecycle ────────────────────────────────────────────────

    def freeze(self) -> BindingMetadataRegistry:
        """Make the registry read-only and return it."""
        self._frozen = True
        return self

    @property
    def frozen(self) -> bool:
        return self._frozen

    def overlay(self) -> BindingMetadataRegistry:
        """Return a writable child registry that reads through to this frozen one."""
        if not self._frozen:
            raise ClientGenError("Binding registry must be frozen before creating an overlay")
        return BindingMetadataRegistry(parent=self)

    # ── reading ──────────────────────────────────────────────────

    def get(self, key: str, kind: DescriptorKind | str) -> Descriptor | None:
        kind = DescriptorKind(kind)
        found = self._records.get((key, kind))
        if found is None and self._parent is not None:
            return self._parent.get(key, kind)
        return found

    def records(self) -> Iterator[BindingRecord]:
        """All records, parent first, each in insertion order."""
        if self._parent is not None:
            yield from self._parent.records()
        for (key, kind), descriptor in self._records.items():
            yield BindingRecord(key, kind, descriptor)

    def keys(self) -> list[str]:
        seen: dict[str, None] = {}
        for record in self.records():
            seen.setdefault(record.key, None)
        return list(seen)

    def __iter__(self) -> Iterator[BindingRecord]:
        return self.records()

    def __len__(self) -> int:
        own = len(self._records)
        return own + (len(self._parent) if self._parent is not None else 0)

    def __contains__(self, key: object) -> bool:
        return any(record.key == key for record in self.records())

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, BindingMetadataRegistry):
            return NotImplemented
        return list(self.records()) == list(other.records())

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"BindingMetadataRegistry(records={len(self)}, frozen={self._frozen})"
