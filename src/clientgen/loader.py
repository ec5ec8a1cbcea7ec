"""
Build a :class:`~clientgen.model.ServiceModel` from a YAML or JSON document.

This is a structural loader, not a WSDL parser: the document already names
every endpoint, operation, message and type. Missing qualified names are
kept as ``None`` so the compiler, which knows the phase and entity, reports
them as model integrity errors.

Document layout::

    endpoints:
      - qualified_name: com.acme.shop.Shop
        namespace: urn:shop
        operations:
          - name: buy
            parameters: [{element_name: item, type: com.acme.shop.Item}]
            result: {name: receipt, type: com.acme.shop.Receipt}
            messages:
              - kind: request-wrapper
                element_name: buy
                bean_name: com.acme.shop.jaxws.Buy
                children: [{element_name: item, type: com.acme.shop.Item}]
              - kind: fault
                qualified_name: com.acme.shop.SoldOut
                element_name: SoldOut
                implicit_bean_name: com.acme.shop.jaxws.SoldOutBean
    types:
      - qualified_name: com.acme.shop.Item
        namespace: urn:shop
        members: [{name: tags, type: "string[]"}]
    root_elements:
      - {qualified_name: com.acme.shop.Item, name: item, namespace: urn:shop}

A type written as ``"x.Y[]"`` (or ``{qualified_name: x.Y, collection: true}``)
is a repeated member of element type ``x.Y``. RPC messages (``rpc-input``,
``rpc-output``) list no children; they are derived from the operation's
parameters and result.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import yaml

from clientgen.errors import ModelIntegrityError
from clientgen.model import (
    BindingStyle,
    BindingUse,
    ChildElement,
    Endpoint,
    EndpointGroup,
    Fault,
    Member,
    Message,
    MessageKind,
    Operation,
    Parameter,
    ParameterMode,
    ParameterStyle,
    RequestWrapper,
    ResponseWrapper,
    Result,
    RootElementDeclaration,
    RPCInputMessage,
    RPCOutputMessage,
    SchemaGroup,
    ServiceModel,
    SoapBinding,
    TypeDefinition,
    TypeKind,
    TypeRef,
    capitalize,
    split_qualified_name,
)


def load_model(path: Path) -> ServiceModel:
    """Load a service model document (``.json`` or YAML)."""
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
        data = json.loads(text) if path.suffix == ".json" else yaml.safe_load(text)
    except (OSError, json.JSONDecodeError, yaml.YAMLError) as e:
        raise ModelIntegrityError(f"Cannot load service model from {path}", cause=e) from e
    return model_from_dict(data or {})


def model_from_dict(data: dict[str, Any]) -> ServiceModel:
    """Build a service model from a plain mapping."""
    endpoint_groups: dict[str, list[Endpoint]] = {}
    for raw in data.get("endpoints", []):
        endpoint = _endpoint(raw)
        endpoint_groups.setdefault(endpoint.target_namespace, []).append(endpoint)

    schema_types: dict[str, list[TypeDefinition]] = {}
    for raw in data.get("types", []):
        type_definition = _type_definition(raw)
        schema_types.setdefault(type_definition.namespace, []).append(type_definition)

    schema_elements: dict[str, list[RootElementDeclaration]] = {}
    for raw in data.get("root_elements", []):
        element = _root_element(raw)
        schema_elements.setdefault(element.namespace, []).append(element)

    namespaces = list(dict.fromkeys([*schema_types, *schema_elements]))
    return ServiceModel(
        endpoint_groups={ns: EndpointGroup(ns, tuple(eps)) for ns, eps in endpoint_groups.items()},
        schema_groups={
            ns: SchemaGroup(ns, tuple(schema_types.get(ns, ())), tuple(schema_elements.get(ns, ())))
            for ns in namespaces
        },
    )


def _type_ref(raw: Any) -> TypeRef | None:
    if raw is None:
        return None
    if isinstance(raw, str):
        if raw.endswith("[]"):
            return TypeRef(raw[:-2], collection=True)
        return TypeRef(raw)
    return TypeRef(raw.get("qualified_name"), bool(raw.get("collection", False)))


def _binding(raw: dict[str, Any] | None, default: SoapBinding | None = None) -> SoapBinding:
    default = default or SoapBinding()
    if not raw:
        return default
    return SoapBinding(
        style=BindingStyle(raw.get("style", default.style)),
        parameter_style=ParameterStyle(raw.get("parameter_style", default.parameter_style)),
        use=BindingUse(raw.get("use", default.use)),
    )


def _children(raw: list[dict[str, Any]] | None) -> tuple[ChildElement, ...]:
    return tuple(ChildElement(c["element_name"], _type_ref(c.get("type"))) for c in raw or [])


def _root_element(raw: dict[str, Any]) -> RootElementDeclaration:
    return RootElementDeclaration(raw.get("qualified_name"), raw["name"], raw.get("namespace", ""))


def _endpoint(raw: dict[str, Any]) -> Endpoint:
    namespace = raw.get("namespace", "")
    binding = _binding(raw.get("binding"))
    package = split_qualified_name(raw.get("qualified_name") or "")[0]
    operations = tuple(_operation(op, namespace, package, binding) for op in raw.get("operations", []))
    return Endpoint(
        qualified_name=raw.get("qualified_name"),
        target_namespace=namespace,
        port_type_name=raw.get("port_type_name"),
        service_name=raw.get("service_name"),
        binding=binding,
        operations=operations,
    )


def _operation(raw: dict[str, Any], namespace: str, package: str, default_binding: SoapBinding) -> Operation:
    name = raw["name"]
    parameters = tuple(
        Parameter(
            element_name=p["element_name"],
            part_name=p.get("part_name", p["element_name"]),
            mode=ParameterMode(p.get("mode", "in")),
            header=bool(p.get("header", False)),
            type=_type_ref(p.get("type")),
        )
        for p in raw.get("parameters", [])
    )
    raw_result = raw.get("result") or {}
    result = Result(
        name=raw_result.get("name", "return"),
        part_name=raw_result.get("part_name", raw_result.get("name", "return")),
        target_namespace=raw_result.get("target_namespace", ""),
        header=bool(raw_result.get("header", False)),
        type=_type_ref(raw_result.get("type")),
    )
    operation_name = raw.get("operation_name") or name
    bean_prefix = f"{package}.jaxws." if package else "jaxws."
    messages: list[Message] = []
    for message in raw.get("messages", []):
        kind = MessageKind(message["kind"])
        msg_namespace = message.get("namespace", namespace)
        if kind is MessageKind.REQUEST_WRAPPER:
            messages.append(RequestWrapper(
                message.get("element_name", operation_name), msg_namespace,
                message.get("bean_name"), _children(message.get("children")),
            ))
        elif kind is MessageKind.RESPONSE_WRAPPER:
            messages.append(ResponseWrapper(
                message.get("element_name", f"{operation_name}Response"), msg_namespace,
                message.get("bean_name"), _children(message.get("children")),
            ))
        elif kind is MessageKind.RPC_INPUT:
            bean = message.get("bean_name", f"{bean_prefix}{capitalize(name)}")
            messages.append(RPCInputMessage.adapt(operation_name, msg_namespace, bean, parameters))
        elif kind is MessageKind.RPC_OUTPUT:
            bean = message.get("bean_name", f"{bean_prefix}{capitalize(name)}Response")
            messages.append(RPCOutputMessage.adapt(operation_name, msg_namespace, bean, result, parameters))
        else:
            explicit = message.get("explicit_bean")
            messages.append(Fault(
                qualified_name=message.get("qualified_name"),
                element_name=message.get("element_name", ""),
                namespace=msg_namespace,
                implicit_bean_name=message.get("implicit_bean_name"),
                explicit_bean=_root_element(explicit) if explicit else None,
                children=_children(message.get("children")),
            ))

    return Operation(
        name=name,
        operation_name=raw.get("operation_name"),
        action=raw.get("action", ""),
        one_way=bool(raw.get("one_way", False)),
        binding=_binding(raw.get("binding"), default_binding),
        parameters=parameters,
        result=result,
        messages=tuple(messages),
    )


def _type_definition(raw: dict[str, Any]) -> TypeDefinition:
    return TypeDefinition(
        qualified_name=raw.get("qualified_name"),
        namespace=raw.get("namespace", ""),
        kind=TypeKind(raw.get("kind", "complex")),
        abstract=bool(raw.get("abstract", False)),
        members=tuple(
            Member(m["name"], _type_ref(m.get("type")) or TypeRef(None), bool(m.get("attribute", False)))
            for m in raw.get("members", [])
        ),
        values=tuple(raw.get("values", [])),
        base=_type_ref(raw.get("base")),
    )
