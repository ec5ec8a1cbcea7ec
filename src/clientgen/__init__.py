"""
clientgen - SOAP client library generator.

Compiles an abstract service model into client stub sources for two runtime
variants (legacy and modern), the binding metadata a client runtime needs
to marshal them, and packaged client libraries.

- clientgen.naming: package conversion and generated identifiers
- clientgen.faults: fault deduplication and carrier beans
- clientgen.registry: binding metadata registry
- clientgen.orchestrator: Common and variant generation phases
- clientgen.persistence: ``.types`` / ``.bindings.json`` files
"""

__version__ = "0.1.0"

from clientgen.config import ClientGenSettings, load_settings  # noqa: E402
from clientgen.errors import (  # noqa: E402
    ClientGenError,
    ConfigurationError,
    DownstreamCompileError,
    ModelIntegrityError,
    PersistenceError,
)
from clientgen.faults import FaultResolver, ResolvedFault  # noqa: E402
from clientgen.manifest import GeneratedTypeManifest  # noqa: E402
from clientgen.model import ServiceModel, Variant  # noqa: E402
from clientgen.naming import NameResolver, PackageConversionRule  # noqa: E402
from clientgen.orchestrator import GenerationOrchestrator  # noqa: E402
from clientgen.persistence import load_manifest, load_registry, persist  # noqa: E402
from clientgen.registry import BindingMetadataRegistry  # noqa: E402

__all__ = [
    "__version__",
    "BindingMetadataRegistry",
    "ClientGenError",
    "ClientGenSettings",
    "ConfigurationError",
    "DownstreamCompileError",
    "FaultResolver",
    "GeneratedTypeManifest",
    "GenerationOrchestrator",
    "ModelIntegrityError",
    "NameResolver",
    "PackageConversionRule",
    "PersistenceError",
    "ResolvedFault",
    "ServiceModel",
    "Variant",
    "load_manifest",
    "load_registry",
    "load_settings",
    "persist",
]
