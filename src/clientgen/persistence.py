"""
Metadata persistence.

Writes the two artifacts a client runtime loads next to the compiled
classes of one variant:

- ``<run_id>.types``: the generated type manifest, one identifier per line
- ``<run_id>.bindings.json``: the binding registry as a list of
  ``{"key", "kind", "fields"}`` records under a format/version header

Both files are staged as temporary files in the destination directory and
only moved into place once both were written. If moving either one fails,
the files a previous run left at both paths are put back, so a reader never
sees a partial file or a pair from two different runs. The run id in the
file names keeps concurrent runs writing to a shared output directory from
clobbering each other.

Usage:
    paths = persist(manifest, registry, compile_dir / "legacy", run_id="1700000000000")
    registry = load_registry(paths.bindings_path)
"""

from __future__ import annotations

import contextlib
import json
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from clientgen.errors import PersistenceError
from clientgen.logging import get_logger
from clientgen.manifest import GeneratedTypeManifest
from clientgen.registry import (
    BindingMetadataRegistry,
    DescriptorKind,
    descriptor_from_fields,
    descriptor_to_fields,
)

log = get_logger(__name__)

BINDINGS_FORMAT = "clientgen-binding-metadata"
BINDINGS_VERSION = 1
TYPES_SUFFIX = ".types"
BINDINGS_SUFFIX = ".bindings.json"


@dataclass(frozen=True)
class PersistedMetadata:
    types_path: Path
    bindings_path: Path


def types_path_for(destination: Path, run_id: str) -> Path:
    return Path(destination) / f"{run_id}{TYPES_SUFFIX}"


def bindings_path_for(destination: Path, run_id: str) -> Path:
    return Path(destination) / f"{run_id}{BINDINGS_SUFFIX}"


def serialize_registry(registry: BindingMetadataRegistry, run_id: str, variant: str | None = None) -> dict[str, Any]:
    """Registry as a self-describing JSON-compatible document."""
    return {
        "format": BINDINGS_FORMAT,
        "version": BINDINGS_VERSION,
        "run_id": run_id,
        "variant": variant,
        "records": [
            {
                "key": record.key,
                "kind": record.kind.value,
                "fields": descriptor_to_fields(record.descriptor),
            }
            for record in registry.records()
        ],
    }


def deserialize_registry(document: dict[str, Any]) -> BindingMetadataRegistry:
    """Rebuild a (frozen) registry from :func:`serialize_registry` output."""
    if document.get("format") != BINDINGS_FORMAT:
        raise PersistenceError(f"Not a binding metadata document: format={document.get('format')!r}")
    if document.get("version") != BINDINGS_VERSION:
        raise PersistenceError(f"Unsupported binding metadata version {document.get('version')!r}")

    registry = BindingMetadataRegistry()
    try:
        for record in document["records"]:
            registry.record(record["key"], descriptor_from_fields(DescriptorKind(record["kind"]), record["fields"]))
    except (KeyError, TypeError, ValueError) as e:
        raise PersistenceError("Malformed binding metadata record", cause=e) from e
    return registry.freeze()


def persist(
    manifest: GeneratedTypeManifest | None,
    registry: BindingMetadataRegistry | None,
    destination: Path,
    run_id: str,
    variant: str | None = None,
) -> PersistedMetadata:
    """
    Write the types file and the binding metadata file for one variant.

    Raises:
        PersistenceError: if the manifest or registry has not been populated,
            or the destination cannot be written
    """
    if manifest is None:
        raise PersistenceError("No type list to write").with_context(run_id=run_id, variant=variant)
    if registry is None:
        raise PersistenceError("No binding metadata to write").with_context(run_id=run_id, variant=variant)

    destination = Path(destination)
    types_path = types_path_for(destination, run_id)
    bindings_path = bindings_path_for(destination, run_id)
    document = serialize_registry(registry, run_id, variant)

    try:
        destination.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise PersistenceError(f"Cannot create {destination}", cause=e).with_context(
            run_id=run_id, variant=variant, entity=str(destination)
        ) from e

    staged: list[tuple[str, Path]] = []
    try:
        staged.append((_stage(types_path, manifest.to_lines()), types_path))
        staged.append((_stage(bindings_path, json.dumps(document, indent=2) + "\n"), bindings_path))
        _publish(staged)
    except OSError as e:
        for temp, _ in staged:
            with contextlib.suppress(OSError):
                os.unlink(temp)
        raise PersistenceError(f"Cannot write binding metadata to {destination}", cause=e).with_context(
            run_id=run_id, variant=variant, entity=str(destination)
        ) from e

    log.info(
        "metadata_persisted",
        types_file=str(types_path),
        bindings_file=str(bindings_path),
        types=len(manifest),
        records=len(document["records"]),
    )
    return PersistedMetadata(types_path, bindings_path)


def _publish(staged: list[tuple[str, Path]]) -> None:
    """
    Move staged files over their final paths as one unit.

    Files already at a final path are set aside first. If any move fails,
    every final path touched so far is restored to its previous state.
    """
    published: list[tuple[Path, str | None]] = []
    try:
        for temp, final in staged:
            backup = _set_aside(final)
            published.append((final, backup))
            os.replace(temp, final)
    except OSError:
        for final, backup in reversed(published):
            with contextlib.suppress(OSError):
                if backup is None:
                    final.unlink(missing_ok=True)
                else:
                    os.replace(backup, final)
        raise
    for _, backup in published:
        if backup is not None:
            with contextlib.suppress(OSError):
                os.unlink(backup)


def _set_aside(path: Path) -> str | None:
    if not path.exists():
        return None
    fd, backup = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".bak", dir=path.parent)
    os.close(fd)
    try:
        os.replace(path, backup)
    except OSError:
        with contextlib.suppress(OSError):
            os.unlink(backup)
        raise
    return backup


def _stage(path: Path, text: str) -> str:
    fd, temp = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            fh.write(text)
            fh.flush()
            os.fsync(fh.fileno())
    except OSError:
        with contextlib.suppress(OSError):
            os.unlink(temp)
        raise
    return temp


def load_manifest(path: Path) -> GeneratedTypeManifest:
    """Read a ``.types`` file back into a manifest."""
    try:
        text = Path(path).read_text(encoding="utf-8")
    except OSError as e:
        raise PersistenceError(f"Cannot read type list {path}", cause=e) from e
    return GeneratedTypeManifest.from_lines(text)


def load_registry(path: Path) -> BindingMetadataRegistry:
    """Read a ``.bindings.json`` file back into a frozen registry."""
    try:
        document = json.loads(Path(path).read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise PersistenceError(f"Cannot read binding metadata {path}", cause=e) from e
    return deserialize_registry(document)
