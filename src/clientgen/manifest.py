"""
Generated type manifest.

The ordered list of every class the client library generates: one entry
per non-abstract schema type and per generated bean (request/response
wrappers, RPC adapters, implicit fault carriers), in the order the Common
phase produced them. The client runtime reads it to register its known
types, so it must never list an identifier twice.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator

from clientgen.errors import ClientGenError, ModelIntegrityError


class GeneratedTypeManifest:
    """Append-only, duplicate-free sequence of resolved type identifiers."""

    def __init__(self, identifiers: Iterable[str] = ()):
        self._origins: dict[str, str] = {}
        self._frozen = False
        for identifier in identifiers:
            self.add(identifier)

    def freeze(self) -> GeneratedTypeManifest:
        """Make the manifest read-only and return it."""
        self._frozen = True
        return self

    @property
    def frozen(self) -> bool:
        return self._frozen

    def add(self, identifier: str, origin: str | None = None) -> bool:
        """
        Append an identifier.

        ``origin`` is the pre-conversion name of the entity that produced the
        identifier. Adding an identifier again from the same origin is a
        no-op and returns False.

        Raises:
            ModelIntegrityError: if a different origin already produced the
                same identifier (a collision introduced by package conversion)
        """
        if self._frozen:
            raise ClientGenError(f"Type manifest is frozen; cannot add '{identifier}'")
        origin = origin or identifier
        existing = self._origins.get(identifier)
        if existing is not None:
            if existing != origin:
                raise ModelIntegrityError(
                    f"'{origin}' and '{existing}' both resolve to generated type '{identifier}'"
                ).with_context(entity=identifier)
            return False
        self._origins[identifier] = origin
        return True

    @property
    def identifiers(self) -> list[str]:
        return list(self._origins)

    def to_lines(self) -> str:
        return "".join(f"{identifier}\n" for identifier in self._origins)

    @classmethod
    def from_lines(cls, text: str) -> GeneratedTypeManifest:
        return cls(line.strip() for line in text.splitlines() if line.strip())

    def __iter__(self) -> Iterator[str]:
        return iter(self._origins)

    def __len__(self) -> int:
        return len(self._origins)

    def __contains__(self, identifier: object) -> bool:
        return identifier in self._origins

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, GeneratedTypeManifest):
            return NotImplemented
        return self.identifiers == other.identifiers

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"GeneratedTypeManifest({self.identifiers!r})"
