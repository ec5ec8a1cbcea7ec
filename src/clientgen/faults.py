"""
Fault resolution.

Collects the faults thrown across all operations into one ordered list of
distinct fault types and decides, for each, which carrier bean the runtime
marshals it through:

- implicit fault: the compiler generates a carrier bean, named after the
  fault's implicit bean name with package conversion applied
- explicit fault: the carrier is an existing declared element; nothing new
  is generated

Two operations throwing the same fault type share one entry. When the
declarations differ only in element name or namespace, the smallest
declaration wins; declarations that disagree on the carrier bean are
rejected. Entries are sorted by resolved identifier, so two runs over the
same model always produce the same manifest regardless of the order
operations were visited in.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from clientgen.errors import ModelIntegrityError
from clientgen.logging import get_logger
from clientgen.model import Fault
from clientgen.naming import NameResolver

log = get_logger(__name__)


@dataclass(frozen=True)
class ResolvedFault:
    """Resolution record for one distinct fault type."""

    fault_identifier: str
    carrier_bean_identifier: str
    is_implicit: bool
    element_name: str
    element_namespace: str
    fault: Fault


class FaultResolver:
    def __init__(self, resolver: NameResolver):
        self.resolver = resolver

    def resolve(self, faults: Iterable[Fault]) -> list[ResolvedFault]:
        """
        Deduplicate, order and resolve a collection of faults.

        Raises:
            ModelIntegrityError: if a fault lacks a qualified name or carrier
                bean name, two declarations of one fault type name different
                carriers, or two distinct fault types resolve to the same
                identifier
        """
        declarations: dict[str, list[Fault]] = {}
        for fault in faults:
            if fault.qualified_name is None:
                raise ModelIntegrityError("Fault has no qualified name").with_context(entity=fault.element_name)
            declarations.setdefault(fault.qualified_name, []).append(fault)

        resolved: dict[str, ResolvedFault] = {}
        seen: dict[str, str] = {}
        for name, declared in declarations.items():
            fault = self._representative(name, declared)
            identifier = self.resolver.resolve(fault)
            if identifier in seen:
                first, second = sorted((seen[identifier], name))
                raise ModelIntegrityError(
                    f"Faults '{first}' and '{second}' both resolve to '{identifier}'"
                ).with_context(entity=identifier)
            seen[identifier] = name
            resolved[identifier] = self._resolve_one(identifier, fault)

        log.debug(
            "faults_resolved",
            declared=len(declarations),
            implicit=sum(1 for r in resolved.values() if r.is_implicit),
        )
        return [resolved[identifier] for identifier in sorted(resolved)]

    @staticmethod
    def _representative(name: str, declared: list[Fault]) -> Fault:
        """Pick one declaration of a fault type independently of declaration order."""
        carriers = {_carrier(fault) for fault in declared}
        if len(carriers) > 1:
            described = ", ".join(f"{kind} {bean or '<unnamed>'}" for kind, bean in sorted(carriers, key=str))
            raise ModelIntegrityError(
                f"Fault '{name}' is declared with conflicting carriers: {described}"
            ).with_context(entity=name)
        return min(declared, key=_declaration_key)

    def _resolve_one(self, identifier: str, fault: Fault) -> ResolvedFault:
        if fault.is_implicit:
            if not fault.implicit_bean_name:
                raise ModelIntegrityError(
                    "Implicit fault has no carrier bean name"
                ).with_context(entity=fault.qualified_name)
            return ResolvedFault(
                fault_identifier=identifier,
                carrier_bean_identifier=self.resolver.resolve(fault.implicit_bean_name),
                is_implicit=True,
                element_name=fault.element_name,
                element_namespace=fault.namespace,
                fault=fault,
            )

        bean = fault.explicit_bean
        return ResolvedFault(
            fault_identifier=identifier,
            carrier_bean_identifier=self.resolver.resolve(bean),
            is_implicit=False,
            element_name=bean.name,
            element_namespace=bean.namespace,
            fault=fault,
        )


def _carrier(fault: Fault) -> tuple[str, str]:
    if fault.is_implicit:
        return "implicit", fault.implicit_bean_name or ""
    return "explicit", fault.explicit_bean.qualified_name or ""


def _declaration_key(fault: Fault) -> tuple:
    children = tuple(
        (child.element_name, child.type.qualified_name or "", child.type.collection) if child.type
        else (child.element_name, "", False)
        for child in fault.children
    )
    return (fault.namespace, fault.element_name, *_carrier(fault), children)
