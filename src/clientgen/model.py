"""
Abstract service model consumed by the compiler.

The model is produced once per run by an upstream parser (see
:mod:`clientgen.loader` for the document-based one shipped here) and is
read-only afterwards: every type is a frozen dataclass and every sequence a
tuple, so nothing in the generation walk can mutate it.

Layout::

    ServiceModel
      ├── endpoint_groups: namespace -> EndpointGroup
      │       └── Endpoint ── Operation ── Parameter / Result
      │                              └── messages (RequestWrapper, ResponseWrapper,
      │                                            RPCInputMessage, RPCOutputMessage, Fault)
      └── schema_groups: namespace -> SchemaGroup
              ├── TypeDefinition (enum | simple | complex)
              └── RootElementDeclaration
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Union


class Variant(str, Enum):
    """Target runtime flavor a client library is generated for."""

    LEGACY = "legacy"   # no generics, no typesafe enums
    MODERN = "modern"


class BindingStyle(str, Enum):
    DOCUMENT = "document"
    RPC = "rpc"


class ParameterStyle(str, Enum):
    WRAPPED = "wrapped"
    BARE = "bare"


class BindingUse(str, Enum):
    LITERAL = "literal"
    ENCODED = "encoded"


class ParameterMode(str, Enum):
    IN = "in"
    OUT = "out"
    INOUT = "inout"


class TypeKind(str, Enum):
    ENUM = "enum"
    SIMPLE = "simple"
    COMPLEX = "complex"


class MessageKind(str, Enum):
    REQUEST_WRAPPER = "request-wrapper"
    RESPONSE_WRAPPER = "response-wrapper"
    RPC_INPUT = "rpc-input"
    RPC_OUTPUT = "rpc-output"
    FAULT = "fault"


def split_qualified_name(name: str) -> tuple[str, str]:
    """Split ``a.b.C`` into ``("a.b", "C")``; the package may be empty."""
    package, _, simple = name.rpartition(".")
    return package, simple


def capitalize(name: str) -> str:
    return name[:1].upper() + name[1:]


@dataclass(frozen=True)
class SoapBinding:
    """SOAP binding style / parameter-style / use triple."""

    style: BindingStyle = BindingStyle.DOCUMENT
    parameter_style: ParameterStyle = ParameterStyle.WRAPPED
    use: BindingUse = BindingUse.LITERAL


@dataclass(frozen=True)
class TypeRef:
    """
    Reference to a member's value type.

    For a repeated member (``collection=True``) ``qualified_name`` names the
    element type, not the container.
    """

    qualified_name: str | None
    collection: bool = False


@dataclass(frozen=True)
class ChildElement:
    element_name: str
    type: TypeRef | None = None


@dataclass(frozen=True)
class Parameter:
    element_name: str
    part_name: str | None = None
    mode: ParameterMode = ParameterMode.IN
    header: bool = False
    type: TypeRef | None = None


@dataclass(frozen=True)
class Result:
    name: str = "return"
    part_name: str | None = "return"
    target_namespace: str = ""
    header: bool = False
    type: TypeRef | None = None

    @property
    def is_void(self) -> bool:
        return self.type is None


@dataclass(frozen=True)
class RootElementDeclaration:
    """A global element bound to the class named by ``qualified_name``."""

    qualified_name: str | None
    name: str
    namespace: str = ""


# =============================================================================
# Messages
# =============================================================================


@dataclass(frozen=True)
class RequestWrapper:
    element_name: str
    namespace: str
    bean_name: str | None
    children: tuple[ChildElement, ...] = ()

    kind = MessageKind.REQUEST_WRAPPER


@dataclass(frozen=True)
class ResponseWrapper:
    element_name: str
    namespace: str
    bean_name: str | None
    children: tuple[ChildElement, ...] = ()

    kind = MessageKind.RESPONSE_WRAPPER


@dataclass(frozen=True)
class RPCInputMessage:
    """RPC input message adapted to the shape of a request wrapper."""

    element_name: str
    namespace: str
    bean_name: str | None
    children: tuple[ChildElement, ...] = ()

    kind = MessageKind.RPC_INPUT

    @classmethod
    def adapt(
        cls,
        operation_name: str,
        namespace: str,
        bean_name: str | None,
        parameters: tuple[Parameter, ...],
    ) -> RPCInputMessage:
        """Build the message from the operation's non-header in/inout parameters."""
        children = tuple(
            ChildElement(p.element_name, p.type)
            for p in parameters
            if not p.header and p.mode in (ParameterMode.IN, ParameterMode.INOUT)
        )
        return cls(operation_name, namespace, bean_name, children)


@dataclass(frozen=True)
class RPCOutputMessage:
    """RPC output message adapted to the shape of a response wrapper."""

    element_name: str
    namespace: str
    bean_name: str | None
    children: tuple[ChildElement, ...] = ()

    kind = MessageKind.RPC_OUTPUT

    @classmethod
    def adapt(
        cls,
        operation_name: str,
        namespace: str,
        bean_name: str | None,
        result: Result,
        parameters: tuple[Parameter, ...],
    ) -> RPCOutputMessage:
        """Build the message from the non-void result followed by out/inout parameters."""
        children: list[ChildElement] = []
        if not result.is_void and not result.header:
            children.append(ChildElement(result.name, result.type))
        children.extend(
            ChildElement(p.element_name, p.type)
            for p in parameters
            if not p.header and p.mode in (ParameterMode.OUT, ParameterMode.INOUT)
        )
        return cls(f"{operation_name}Response", namespace, bean_name, tuple(children))


@dataclass(frozen=True)
class Fault:
    """
    A fault thrown by an operation.

    Either ``explicit_bean`` references a declared carrier element, or the
    carrier is implicit and will be generated under ``implicit_bean_name``.
    """

    qualified_name: str | None
    element_name: str
    namespace: str
    implicit_bean_name: str | None = None
    explicit_bean: RootElementDeclaration | None = None
    children: tuple[ChildElement, ...] = ()

    kind = MessageKind.FAULT

    @property
    def is_implicit(self) -> bool:
        return self.explicit_bean is None


Message = Union[RequestWrapper, ResponseWrapper, RPCInputMessage, RPCOutputMessage, Fault]

BEAN_MESSAGES = (RequestWrapper, ResponseWrapper, RPCInputMessage, RPCOutputMessage)
REQUEST_MESSAGES = (RequestWrapper, RPCInputMessage)


# =============================================================================
# Endpoints
# =============================================================================


@dataclass(frozen=True)
class Operation:
    name: str
    operation_name: str | None = None
    action: str = ""
    one_way: bool = False
    binding: SoapBinding = field(default_factory=SoapBinding)
    parameters: tuple[Parameter, ...] = ()
    result: Result = field(default_factory=Result)
    messages: tuple[Message, ...] = ()

    @property
    def wire_name(self) -> str:
        return self.operation_name or self.name


@dataclass(frozen=True)
class Endpoint:
    qualified_name: str | None
    target_namespace: str
    port_type_name: str | None = None
    service_name: str | None = None
    binding: SoapBinding = field(default_factory=SoapBinding)
    operations: tuple[Operation, ...] = ()

    @property
    def simple_name(self) -> str:
        return split_qualified_name(self.qualified_name or "")[1]

    @property
    def package(self) -> str:
        return split_qualified_name(self.qualified_name or "")[0]

    @property
    def port_type(self) -> str:
        return self.port_type_name or self.simple_name

    @property
    def service(self) -> str:
        return self.service_name or f"{self.simple_name}Service"


@dataclass(frozen=True)
class EndpointGroup:
    namespace: str
    endpoints: tuple[Endpoint, ...] = ()


# =============================================================================
# Schema types
# =============================================================================


@dataclass(frozen=True)
class Member:
    name: str
    type: TypeRef
    attribute: bool = False


@dataclass(frozen=True)
class TypeDefinition:
    qualified_name: str | None
    namespace: str
    kind: TypeKind = TypeKind.COMPLEX
    abstract: bool = False
    members: tuple[Member, ...] = ()
    values: tuple[str, ...] = ()
    base: TypeRef | None = None


@dataclass(frozen=True)
class SchemaGroup:
    namespace: str
    type_definitions: tuple[TypeDefinition, ...] = ()
    root_elements: tuple[RootElementDeclaration, ...] = ()


@dataclass(frozen=True)
class ServiceModel:
    """Root container of the service model."""

    endpoint_groups: Mapping[str, EndpointGroup] = field(default_factory=dict)
    schema_groups: Mapping[str, SchemaGroup] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "endpoint_groups", MappingProxyType(dict(self.endpoint_groups)))
        object.__setattr__(self, "schema_groups", MappingProxyType(dict(self.schema_groups)))

    def endpoints(self) -> Iterator[Endpoint]:
        for group in self.endpoint_groups.values():
            yield from group.endpoints

    def type_definitions(self) -> Iterator[TypeDefinition]:
        for group in self.schema_groups.values():
            yield from group.type_definitions

    def root_elements(self) -> Iterator[RootElementDeclaration]:
        for group in self.schema_groups.values():
            yield from group.root_elements

    def find_root_element(self, type_definition: TypeDefinition) -> RootElementDeclaration | None:
        """Return the global element declared for a type definition, if any."""
        if type_definition.qualified_name is None:
            return None
        for element in self.root_elements():
            if element.qualified_name == type_definition.qualified_name:
                return element
        return None
