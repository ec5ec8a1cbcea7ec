"""
Name resolution for generated client types.

Maps model entities to the identifiers used in generated source, applying
package conversion rules. A rule ``org.enunciate -> com.client`` rewrites
``org.enunciate.api.Foo`` to ``com.client.api.Foo``: only the matched
package prefix changes, the rest of the package and the simple name are
left alone, and matching happens on whole dotted segments so the rule never
touches ``org.enunciatex.Foo``.

Resolution is idempotent. A package that already lies under one of the
rules' target prefixes is treated as resolved, which is why a rule set whose
source prefix sits at or under another rule's target is rejected as
malformed: with such chained rules, one name would have to be both an input
and an output of the conversion.

Examples:
    >>> resolver = NameResolver([PackageConversionRule("org.enunciate", "com.client")])
    >>> resolver.resolve("org.enunciate.api.Foo")
    'com.client.api.Foo'
    >>> resolver.resolve("org.enunciatex.Foo")
    'org.enunciatex.Foo'
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

from clientgen.errors import ModelIntegrityError
from clientgen.model import TypeRef, Variant, split_qualified_name

_SEGMENT = re.compile(r"^[A-Za-z_$][A-Za-z0-9_$]*$")

LIST_CONTAINER = "java.util.List"

PRIMITIVE_BOXES = {
    "boolean": "java.lang.Boolean",
    "byte": "java.lang.Byte",
    "char": "java.lang.Character",
    "short": "java.lang.Short",
    "int": "java.lang.Integer",
    "long": "java.lang.Long",
    "float": "java.lang.Float",
    "double": "java.lang.Double",
}


@dataclass(frozen=True)
class PackageConversionRule:
    """Rewrites packages starting with ``from_prefix`` to start with ``to_prefix``."""

    from_prefix: str
    to_prefix: str


def _segments(package: str) -> tuple[str, ...]:
    return tuple(package.split(".")) if package else ()


def _is_segment_prefix(prefix: tuple[str, ...], segments: tuple[str, ...]) -> bool:
    return len(prefix) <= len(segments) and segments[: len(prefix)] == prefix


def _validate_rule(rule: PackageConversionRule) -> None:
    for label, value in (("from", rule.from_prefix), ("to", rule.to_prefix)):
        if not value or not all(_SEGMENT.match(s) for s in value.split(".")):
            raise ModelIntegrityError(
                f"Malformed package conversion rule: '{label}' package {value!r} is not a dotted identifier"
            ).with_context(entity=f"{rule.from_prefix}->{rule.to_prefix}")


class NameResolver:
    """
    Resolve entities and type references to target identifiers.

    Resolution of class names does not depend on the variant; the variant
    only changes how repeated member types are rendered (see
    :meth:`resolve_type` and :meth:`resolve_component_type`).
    """

    def __init__(self, rules: Iterable[PackageConversionRule] = ()):
        conversions: dict[tuple[str, ...], tuple[str, ...]] = {}
        for rule in rules:
            _validate_rule(rule)
            # Later rules for the same source package win.
            conversions[_segments(rule.from_prefix)] = _segments(rule.to_prefix)
        self._conversions = conversions
        self._check_chained(conversions)

    @staticmethod
    def _check_chained(conversions: dict[tuple[str, ...], tuple[str, ...]]) -> None:
        for source in conversions:
            for origin, target in conversions.items():
                if origin == target:
                    continue
                if _is_segment_prefix(target, source):
                    raise ModelIntegrityError(
                        f"Malformed package conversion rules: source package '{'.'.join(source)}' "
                        f"lies under target package '{'.'.join(target)}'"
                    ).with_context(entity=".".join(source))

    @property
    def rules(self) -> list[PackageConversionRule]:
        return [PackageConversionRule(".".join(s), ".".join(t)) for s, t in self._conversions.items()]

    def resolve(self, entity: Any, variant: Variant | str = Variant.LEGACY) -> str:
        """
        Resolve an entity (or a qualified name) to its target identifier.

        Raises:
            ModelIntegrityError: if the entity has no qualified name
        """
        package, simple = split_qualified_name(self._qualified_name(entity))
        converted = self.resolve_package(package)
        return f"{converted}.{simple}" if converted else simple

    def bean_name(self, qualified_name: str) -> str:
        """Identifier of a generated bean: converted package, untouched simple name."""
        return self.resolve(qualified_name)

    def resolve_package(self, package: str) -> str:
        """Apply the longest matching conversion to a package name."""
        segments = _segments(package)
        if not segments or self._is_resolved(segments):
            return package

        best: tuple[str, ...] | None = None
        for source in self._conversions:
            if _is_segment_prefix(source, segments) and (best is None or len(source) > len(best)):
                best = source
        if best is None:
            return package
        return ".".join(self._conversions[best] + segments[len(best):])

    def resolve_type(self, ref: TypeRef | None, variant: Variant | str) -> str:
        """
        Resolve a member's declared type.

        Repeated members render as the raw list container for the legacy
        variant and as a parameterized list for the modern one.
        """
        if ref is None:
            return "void"
        if not ref.collection:
            return self.resolve(ref)
        if Variant(variant) is Variant.LEGACY:
            return LIST_CONTAINER
        return f"{LIST_CONTAINER}<{self.resolve_component_type(ref, variant)}>"

    def resolve_component_type(self, ref: TypeRef, variant: Variant | str) -> str:
        """
        Resolve the element type of a repeated member.

        The legacy variant gets the plain element type. The modern variant
        gets a type usable as a generic parameter, so primitives are boxed.
        """
        element = self.resolve(ref)
        if Variant(variant) is Variant.MODERN:
            return PRIMITIVE_BOXES.get(element, element)
        return element

    def _is_resolved(self, segments: tuple[str, ...]) -> bool:
        return any(
            _is_segment_prefix(target, segments)
            for source, target in self._conversions.items()
            if source != target
        )

    @staticmethod
    def _qualified_name(entity: Any) -> str:
        name = entity if isinstance(entity, str) else getattr(entity, "qualified_name", None)
        if not name:
            raise ModelIntegrityError(
                f"{type(entity).__name__} has no qualified name"
            ).with_context(entity=repr(entity)[:120])
        return name
