"""
Generation orchestrator.

Drives one client-library build: a single Common phase over the service
model, then one phase per runtime variant, then compilation, metadata
persistence and packaging per variant.

Manifesto:
    Everything the two variants share is decided exactly once. The Common
    phase resolves every generated name, deduplicates faults, fills the
    type manifest and the binding registry, and hands the variants a frozen
    result. Variant phases only add their own stubs on top of it, so the
    two client libraries can never disagree about a bean name, a fault
    carrier or a wire element.

Architecture:
    ::

        ServiceModel + ClientGenSettings
                    │
                    ▼
            run_common()  ──► generate/common/**.java
                    │         manifest + registry (frozen)
                    ▼
        ┌───────────┴───────────┐
        ▼                       ▼
    run_variant(LEGACY)    run_variant(MODERN)     (optionally in parallel)
    generate/legacy/**     generate/modern/**
        │                       │
        ▼                       ▼
    compile() + persist()  compile() + persist()  ──► compile/<variant>/<run_id>.types
        │                       │                              <run_id>.bindings.json
        └───────────┬───────────┘
                    ▼
                 build()  ──► build/<archive>-<variant>.jar, -src.jar

Guardrails:
    - Variant phases read the Common result; they never write to it
    - A compile failure in one variant leaves the other variant's output intact
    - Errors leave here tagged with run id, phase and variant

Tags:
    orchestrator, generation, soap, client, clientgen
"""

from __future__ import annotations

import os
import tempfile
import zipfile
from collections.abc import Iterable, Mapping
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

from clientgen.compiler import JavacCompiler, SourceCompiler
from clientgen.config import ClientGenSettings
from clientgen.errors import ClientGenError, DownstreamCompileError, ModelIntegrityError
from clientgen.faults import FaultResolver, ResolvedFault
from clientgen.logging import get_logger, log_phase
from clientgen.manifest import GeneratedTypeManifest
from clientgen.model import (
    REQUEST_MESSAGES,
    Endpoint,
    Fault,
    Operation,
    RootElementDeclaration,
    ServiceModel,
    TypeDefinition,
    TypeKind,
    TypeRef,
    Variant,
    split_qualified_name,
)
from clientgen.naming import NameResolver
from clientgen.persistence import PersistedMetadata, persist
from clientgen.registry import BindingMetadataRegistry, DescriptorKind
from clientgen.rendering import JinjaTemplateRenderer, TemplateId, TemplateRenderer

log = get_logger(__name__)

VARIANTS: tuple[Variant, ...] = (Variant.LEGACY, Variant.MODERN)
COMMON_SOURCES = "common"
TYPE_BINDING_SUFFIX = "TypeBinding"
IMPL_SUFFIX = "Impl"
UNTYPED = "java.lang.Object"


class ArtifactCategory(str, Enum):
    REQUEST_BEAN = "request-bean"
    RESPONSE_BEAN = "response-bean"
    FAULT_BEAN = "fault-bean"
    TYPE_BINDING = "type-binding"
    ENDPOINT_INTERFACE = "endpoint-interface"
    ENDPOINT_IMPL = "endpoint-impl"
    FAULT = "fault"
    TYPE = "type"


_TYPE_BINDING_TEMPLATES = {
    TypeKind.ENUM: TemplateId.ENUM_TYPE_BINDING,
    TypeKind.SIMPLE: TemplateId.SIMPLE_TYPE_BINDING,
    TypeKind.COMPLEX: TemplateId.COMPLEX_TYPE_BINDING,
}

_TYPE_TEMPLATES = {
    (TypeKind.ENUM, Variant.LEGACY): TemplateId.LEGACY_ENUM_TYPE,
    (TypeKind.ENUM, Variant.MODERN): TemplateId.MODERN_ENUM_TYPE,
    (TypeKind.SIMPLE, Variant.LEGACY): TemplateId.SIMPLE_TYPE,
    (TypeKind.SIMPLE, Variant.MODERN): TemplateId.SIMPLE_TYPE,
    (TypeKind.COMPLEX, Variant.LEGACY): TemplateId.COMPLEX_TYPE,
    (TypeKind.COMPLEX, Variant.MODERN): TemplateId.COMPLEX_TYPE,
}


# =============================================================================
# Results
# =============================================================================


@dataclass(frozen=True)
class GeneratedArtifact:
    """One rendered source file."""

    category: ArtifactCategory
    template: str
    identifier: str
    path: Path
    variant: Variant | None = None


@dataclass(frozen=True)
class OperationPlan:
    """Names fixed for one operation during the Common phase."""

    method_key: str
    operation: Operation
    request_bean: str | None = None
    response_bean: str | None = None
    faults: tuple[str, ...] = ()


@dataclass(frozen=True)
class EndpointPlan:
    identifier: str
    impl_identifier: str
    endpoint: Endpoint
    operations: tuple[OperationPlan, ...] = ()


@dataclass(frozen=True)
class TypePlan:
    identifier: str
    type_definition: TypeDefinition
    root_element: RootElementDeclaration | None = None


@dataclass(frozen=True)
class CommonResult:
    """Frozen output of the Common phase, shared by both variant phases."""

    run_id: str
    manifest: GeneratedTypeManifest
    registry: BindingMetadataRegistry
    faults: tuple[ResolvedFault, ...]
    endpoints: tuple[EndpointPlan, ...]
    types: tuple[TypePlan, ...]
    artifacts: tuple[GeneratedArtifact, ...]
    source_dir: Path


@dataclass(frozen=True)
class VariantResult:
    variant: Variant
    registry: BindingMetadataRegistry
    artifacts: tuple[GeneratedArtifact, ...]
    source_dir: Path


@dataclass(frozen=True)
class CompiledVariant:
    variant: Variant
    output_dir: Path
    metadata: PersistedMetadata


@dataclass(frozen=True)
class ClientLibraryArtifact:
    """A packaged client library: compiled classes plus sources."""

    id: str
    name: str
    variant: Variant
    binaries: Path
    sources: Path
    description: str = ""


@dataclass
class GenerationReport:
    """Everything one :meth:`GenerationOrchestrator.run` produced."""

    common: CommonResult
    variants: dict[Variant, VariantResult]
    compiled: dict[Variant, CompiledVariant] = field(default_factory=dict)
    libraries: list[ClientLibraryArtifact] = field(default_factory=list)
    failures: dict[Variant, DownstreamCompileError] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.failures

    def raise_for_failures(self) -> None:
        """Raise the first variant's compile error, if any variant failed."""
        for error in self.failures.values():
            raise error


# =============================================================================
# Orchestrator
# =============================================================================


class GenerationOrchestrator:
    """
    Run the Common phase, both variant phases, compilation and packaging.

    Examples:
        >>> orchestrator = GenerationOrchestrator(model, settings)
        >>> common = orchestrator.run_common()
        >>> legacy = orchestrator.run_variant(Variant.LEGACY, common)
    """

    def __init__(
        self,
        model: ServiceModel,
        settings: ClientGenSettings | None = None,
        renderer: TemplateRenderer | None = None,
        compiler: SourceCompiler | None = None,
    ):
        self.model = model
        self.settings = settings or ClientGenSettings()
        self.resolver = NameResolver(self.settings.conversion_rules())
        self.fault_resolver = FaultResolver(self.resolver)
        self.renderer = renderer or JinjaTemplateRenderer(self.settings.template_dir)
        self.compiler = compiler or JavacCompiler(self.settings.javac, timeout=self.settings.javac_timeout)
        self.output_dir = Path(self.settings.output_dir)
        self.common: CommonResult | None = None

    @property
    def run_id(self) -> str:
        return self.settings.run_id

    @property
    def generate_dir(self) -> Path:
        return self.output_dir / "generate"

    @property
    def compile_dir(self) -> Path:
        return self.output_dir / "compile"

    @property
    def build_dir(self) -> Path:
        return self.output_dir / "build"

    def source_dir(self, variant: Variant | None = None) -> Path:
        return self.generate_dir / (Variant(variant).value if variant else COMMON_SOURCES)

    # ── Common phase ─────────────────────────────────────────────

    def run_common(self) -> CommonResult:
        """
        Resolve names, faults and binding metadata shared by every variant.

        Raises:
            ModelIntegrityError: if an entity has no qualified name, or two
                entities resolve to the same generated identifier
        """
        with log_phase("common", run_id=self.run_id):
            try:
                self.common = self._run_common()
            except ClientGenError as e:
                raise e.with_context(run_id=self.run_id, phase="common")
        log.info(
            "common_generated",
            types=len(self.common.manifest),
            faults=len(self.common.faults),
            records=len(self.common.registry),
            artifacts=len(self.common.artifacts),
        )
        return self.common

    def _run_common(self) -> CommonResult:
        manifest = GeneratedTypeManifest()
        registry = BindingMetadataRegistry()
        artifacts: list[GeneratedArtifact] = []
        faults: list[Fault] = []
        endpoints: list[EndpointPlan] = []

        for endpoint in self.model.endpoints():
            identifier = self.resolver.resolve(endpoint)
            self._record_endpoint(registry, identifier, endpoint)
            operations = []
            for operation in endpoint.operations:
                plan = self._common_operation(identifier, operation, manifest, registry, artifacts)
                faults.extend(m for m in operation.messages if isinstance(m, Fault))
                operations.append(plan)
            endpoints.append(EndpointPlan(identifier, identifier + IMPL_SUFFIX, endpoint, tuple(operations)))

        resolved_faults = self.fault_resolver.resolve(faults)
        for resolved in resolved_faults:
            if resolved.is_implicit:
                manifest.add(resolved.carrier_bean_identifier, origin=resolved.fault.implicit_bean_name)
                artifacts.append(self._emit(
                    ArtifactCategory.FAULT_BEAN,
                    TemplateId.FAULT_BEAN,
                    resolved.carrier_bean_identifier,
                    {
                        "fault": resolved.fault_identifier,
                        "element_name": resolved.element_name,
                        "namespace": resolved.element_namespace,
                        "properties": self._properties(resolved.fault.children, Variant.LEGACY),
                    },
                ))
            registry.record_fault_mapping(
                resolved.fault_identifier,
                element_name=resolved.element_name,
                namespace=resolved.element_namespace,
                bean=resolved.carrier_bean_identifier,
                implicit=resolved.is_implicit,
            )

        types = []
        for type_definition in self.model.type_definitions():
            identifier = self.resolver.resolve(type_definition)
            plan = TypePlan(identifier, type_definition, self.model.find_root_element(type_definition))
            if not type_definition.abstract:
                manifest.add(identifier, origin=type_definition.qualified_name)
            package, simple = split_qualified_name(identifier)
            binding_identifier = f"{package}.{simple}{TYPE_BINDING_SUFFIX}" if package else simple + TYPE_BINDING_SUFFIX
            artifacts.append(self._emit(
                ArtifactCategory.TYPE_BINDING,
                _TYPE_BINDING_TEMPLATES[type_definition.kind],
                binding_identifier,
                {**self._type_bindings(plan, Variant.LEGACY), "type_identifier": identifier},
            ))
            types.append(plan)

        for element in self.model.root_elements():
            registry.record_root_element(
                self.resolver.resolve(element), name=element.name, namespace=element.namespace
            )

        return CommonResult(
            run_id=self.run_id,
            manifest=manifest.freeze(),
            registry=registry.freeze(),
            faults=tuple(resolved_faults),
            endpoints=tuple(endpoints),
            types=tuple(types),
            artifacts=tuple(artifacts),
            source_dir=self.source_dir(),
        )

    def _record_endpoint(self, registry: BindingMetadataRegistry, identifier: str, endpoint: Endpoint) -> None:
        registry.record_service(
            identifier,
            name=endpoint.port_type,
            port_name=f"{endpoint.simple_name}SOAPPort",
            service_name=endpoint.service,
            target_namespace=endpoint.target_namespace,
        )
        registry.record_soap_binding(
            identifier,
            style=endpoint.binding.style.value,
            parameter_style=endpoint.binding.parameter_style.value,
            use=endpoint.binding.use.value,
        )

    def _common_operation(
        self,
        endpoint_identifier: str,
        operation: Operation,
        manifest: GeneratedTypeManifest,
        registry: BindingMetadataRegistry,
        artifacts: list[GeneratedArtifact],
    ) -> OperationPlan:
        method_key = f"{endpoint_identifier}.{operation.name}"
        beans: dict[str, str] = {}
        fault_identifiers: dict[str, None] = {}

        for message in operation.messages:
            if isinstance(message, Fault):
                fault_identifiers.setdefault(self.resolver.resolve(message), None)
                continue
            if not message.bean_name:
                raise ModelIntegrityError(
                    f"{type(message).__name__} '{message.element_name}' has no bean name"
                ).with_context(entity=method_key)

            bean = self.resolver.bean_name(message.bean_name)
            manifest.add(bean, origin=message.bean_name)
            direction = "request" if isinstance(message, REQUEST_MESSAGES) else "response"
            beans[direction] = bean
            registry.record_wrapper(
                bean,
                element_name=message.element_name,
                namespace=message.namespace,
                direction=direction,
                operation=method_key,
                property_order=[child.element_name for child in message.children],
            )
            artifacts.append(self._emit(
                ArtifactCategory.REQUEST_BEAN if direction == "request" else ArtifactCategory.RESPONSE_BEAN,
                TemplateId.REQUEST_BEAN if direction == "request" else TemplateId.RESPONSE_BEAN,
                bean,
                {
                    "operation": method_key,
                    "element_name": message.element_name,
                    "namespace": message.namespace,
                    "properties": self._properties(message.children, Variant.LEGACY),
                },
            ))

        binding = operation.binding
        registry.record_soap_binding(
            method_key,
            style=binding.style.value,
            parameter_style=binding.parameter_style.value,
            use=binding.use.value,
        )
        registry.record_operation(
            method_key,
            operation_name=operation.wire_name,
            action=operation.action,
            request_wrapper=beans.get("request"),
            response_wrapper=beans.get("response"),
        )
        result = operation.result
        registry.record_result(
            method_key,
            name=result.name,
            part_name=result.part_name,
            target_namespace=result.target_namespace,
            header=result.header,
        )
        if operation.one_way:
            registry.mark_one_way(method_key)
        for index, parameter in enumerate(operation.parameters):
            registry.record_parameter(
                f"{method_key}.{index}",
                name=parameter.element_name,
                part_name=parameter.part_name,
                mode=parameter.mode.value,
                header=parameter.header,
            )

        return OperationPlan(
            method_key=method_key,
            operation=operation,
            request_bean=beans.get("request"),
            response_bean=beans.get("response"),
            faults=tuple(fault_identifiers),
        )

    # ── Variant phases ───────────────────────────────────────────

    def run_variant(self, variant: Variant | str, common: CommonResult | None = None) -> VariantResult:
        """
        Generate the stubs specific to one variant on top of the Common result.

        The variant's registry is an overlay of the frozen Common registry,
        so Common descriptors are visible but cannot be changed.
        """
        variant = Variant(variant)
        common = common or self.common
        if common is None:
            raise ClientGenError("The common phase must run before a variant phase").with_context(
                run_id=self.run_id, phase="variant", variant=variant.value
            )

        with log_phase("variant", run_id=common.run_id, variant=variant.value):
            try:
                result = self._run_variant(variant, common)
            except ClientGenError as e:
                raise e.with_context(run_id=common.run_id, phase="variant", variant=variant.value)
        log.info("variant_generated", variant=variant.value, artifacts=len(result.artifacts))
        return result

    def _run_variant(self, variant: Variant, common: CommonResult) -> VariantResult:
        registry = common.registry.overlay()
        artifacts: list[GeneratedArtifact] = []
        endpoint_context = self.settings.endpoint_context

        for plan in common.endpoints:
            bindings = self._endpoint_bindings(plan, variant)
            bindings["default_url"] = endpoint_context.url_for(plan.endpoint.service)
            artifacts.append(self._emit(
                ArtifactCategory.ENDPOINT_INTERFACE, TemplateId.ENDPOINT_INTERFACE,
                plan.identifier, bindings, variant,
            ))
            artifacts.append(self._emit(
                ArtifactCategory.ENDPOINT_IMPL, TemplateId.ENDPOINT_IMPL,
                plan.impl_identifier, bindings, variant,
            ))
            service = common.registry.get(plan.identifier, DescriptorKind.SERVICE)
            registry.record(plan.impl_identifier, service)

        for resolved in common.faults:
            artifacts.append(self._emit(
                ArtifactCategory.FAULT,
                TemplateId.WEB_FAULT,
                resolved.fault_identifier,
                {
                    "bean": resolved.carrier_bean_identifier,
                    "implicit": resolved.is_implicit,
                    "element_name": resolved.element_name,
                    "namespace": resolved.element_namespace,
                },
                variant,
            ))

        for plan in common.types:
            artifacts.append(self._emit(
                ArtifactCategory.TYPE,
                _TYPE_TEMPLATES[(plan.type_definition.kind, variant)],
                plan.identifier,
                self._type_bindings(plan, variant),
                variant,
            ))

        return VariantResult(variant, registry, tuple(artifacts), self.source_dir(variant))

    def _endpoint_bindings(self, plan: EndpointPlan, variant: Variant) -> dict[str, Any]:
        endpoint = plan.endpoint
        operations = []
        for op in plan.operations:
            operation = op.operation
            operations.append({
                "name": operation.name,
                "operation_name": operation.wire_name,
                "action": operation.action,
                "one_way": operation.one_way,
                "request_bean": op.request_bean,
                "response_bean": op.response_bean,
                "return_type": self.resolver.resolve_type(operation.result.type, variant),
                "parameters": [
                    {"name": p.element_name, "type": self._value_type(p.type, variant)}
                    for p in operation.parameters
                ],
                "faults": list(op.faults),
            })
        return {
            "class_name": split_qualified_name(plan.identifier)[1],
            "impl_class_name": split_qualified_name(plan.impl_identifier)[1],
            "target_namespace": endpoint.target_namespace,
            "port_type": endpoint.port_type,
            "service_name": endpoint.service,
            "variant": variant.value,
            "operations": operations,
        }

    # ── Shared helpers ───────────────────────────────────────────

    def _value_type(self, ref: TypeRef | None, variant: Variant) -> str:
        if ref is None:
            return UNTYPED
        return self.resolver.resolve_type(ref, variant)

    def _properties(self, children: Iterable[Any], variant: Variant) -> list[dict[str, Any]]:
        return [
            {
                "name": child.element_name,
                "type": self._value_type(child.type, variant),
                "collection": bool(child.type and child.type.collection),
            }
            for child in children
        ]

    def _type_bindings(self, plan: TypePlan, variant: Variant) -> dict[str, Any]:
        type_definition = plan.type_definition
        members = []
        for member in type_definition.members:
            members.append({
                "name": member.name,
                "type": self.resolver.resolve_type(member.type, variant),
                "component_type": (
                    self.resolver.resolve_component_type(member.type, variant)
                    if member.type.collection else None
                ),
                "collection": member.type.collection,
                "attribute": member.attribute,
            })
        root = plan.root_element
        return {
            "namespace": type_definition.namespace,
            "kind": type_definition.kind.value,
            "abstract": type_definition.abstract,
            "base": self.resolver.resolve(type_definition.base) if type_definition.base else None,
            "root_element": {"name": root.name, "namespace": root.namespace} if root else None,
            "members": members,
            "values": list(type_definition.values),
            "variant": variant.value,
        }

    def _emit(
        self,
        category: ArtifactCategory,
        template: TemplateId,
        identifier: str,
        bindings: Mapping[str, Any],
        variant: Variant | None = None,
    ) -> GeneratedArtifact:
        package, simple = split_qualified_name(identifier)
        target = self.source_dir(variant).joinpath(*identifier.split(".")).with_suffix(".java")
        context = {
            "run_id": self.run_id,
            "identifier": identifier,
            "package": package,
            "class_name": simple,
            **bindings,
        }
        path = self.renderer.render(template.value, context, target)
        return GeneratedArtifact(category, template.value, identifier, Path(path), variant)

    # ── Orchestration ────────────────────────────────────────────

    def generate(self, parallel: bool | None = None) -> tuple[CommonResult, dict[Variant, VariantResult]]:
        """
        Run the Common phase, then both variant phases.

        With ``parallel`` the variant phases run on a thread pool; they only
        read the frozen Common result and write to disjoint directories.
        """
        parallel = self.settings.parallel_variants if parallel is None else parallel
        common = self.run_common()

        if not parallel:
            return common, {variant: self.run_variant(variant, common) for variant in VARIANTS}

        with ThreadPoolExecutor(max_workers=len(VARIANTS), thread_name_prefix="clientgen") as pool:
            futures = {variant: pool.submit(self.run_variant, variant, common) for variant in VARIANTS}
            return common, {variant: future.result() for variant, future in futures.items()}

    def compile(self, result: VariantResult, common: CommonResult | None = None) -> CompiledVariant:
        """
        Compile one variant and persist its metadata next to the classes.

        Raises:
            DownstreamCompileError: if the compiler rejects the sources
            PersistenceError: if the metadata files cannot be written
        """
        common = common or self.common
        if common is None:
            raise ClientGenError("The common phase must run before compilation")

        variant = result.variant
        output_dir = self.compile_dir / variant.value
        sources = list(dict.fromkeys(a.path for a in (*common.artifacts, *result.artifacts)))

        with log_phase("compile", run_id=common.run_id, variant=variant.value):
            try:
                report = self.compiler.compile(sources, self.settings.classpath, output_dir, variant)
                if not report.success:
                    raise DownstreamCompileError(
                        f"Compilation of the {variant.value} client library failed",
                        report=report,
                    )
                metadata = persist(common.manifest, result.registry, output_dir, common.run_id, variant.value)
            except ClientGenError as e:
                raise e.with_context(run_id=common.run_id, phase="compile", variant=variant.value)

        return CompiledVariant(variant, output_dir, metadata)

    def build(
        self,
        compiled: Mapping[Variant, CompiledVariant],
        variants: Mapping[Variant, VariantResult] | None = None,
    ) -> list[ClientLibraryArtifact]:
        """Package each compiled variant into a binary and a source archive."""
        common = self.common
        base = self.settings.client_archive_name
        libraries = []
        with log_phase("build", run_id=self.run_id):
            for variant, output in compiled.items():
                binaries = self.build_dir / f"{base}-{variant.value}.jar"
                sources = self.build_dir / f"{base}-{variant.value}-src.jar"
                _write_archive(binaries, [output.output_dir])
                source_roots = [common.source_dir] if common else []
                if variants and variant in variants:
                    source_roots.append(variants[variant].source_dir)
                else:
                    source_roots.append(self.source_dir(variant))
                _write_archive(sources, source_roots)
                libraries.append(ClientLibraryArtifact(
                    id=f"client.{variant.value}.library",
                    name=binaries.name,
                    variant=variant,
                    binaries=binaries,
                    sources=sources,
                    description=f"SOAP client library for {variant.value} runtimes.",
                ))
        return libraries

    def run(self, compile: bool = True, parallel: bool | None = None) -> GenerationReport:
        """
        Generate, compile, persist and package both variants.

        A compile failure is recorded per variant; the other variant is
        still compiled and packaged. Call
        :meth:`GenerationReport.raise_for_failures` to turn failures into an
        exception.
        """
        common, variants = self.generate(parallel)
        report = GenerationReport(common, variants)
        if not compile:
            return report

        for variant, result in variants.items():
            try:
                report.compiled[variant] = self.compile(result, common)
            except DownstreamCompileError as e:
                log.error("variant_compile_failed", variant=variant.value, error=str(e))
                report.failures[variant] = e

        if report.compiled:
            report.libraries = self.build(report.compiled, variants)
        return report


def _write_archive(archive: Path, roots: Iterable[Path]) -> None:
    """Zip the files under ``roots`` into ``archive``, replacing it atomically."""
    archive.parent.mkdir(parents=True, exist_ok=True)
    fd, temp = tempfile.mkstemp(prefix=f".{archive.name}.", suffix=".tmp", dir=archive.parent)
    os.close(fd)
    try:
        with zipfile.ZipFile(temp, "w", zipfile.ZIP_DEFLATED) as zf:
            for root in roots:
                if not root.is_dir():
                    continue
                for path in sorted(p for p in root.rglob("*") if p.is_file()):
                    zf.write(path, path.relative_to(root).as_posix())
        os.replace(temp, archive)
    except BaseException:
        Path(temp).unlink(missing_ok=True)
        raise
