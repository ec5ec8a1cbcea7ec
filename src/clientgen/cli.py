"""
Command line interface.

Usage:
    clientgen generate service-model.yaml --config clientgen.yaml
    clientgen generate service-model.yaml --skip-compile --parallel
    clientgen inspect build/clientgen/compile/legacy/1700000000000.bindings.json
"""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from clientgen import __version__
from clientgen.config import load_settings
from clientgen.errors import ClientGenError
from clientgen.loader import load_model
from clientgen.logging import configure_logging
from clientgen.orchestrator import GenerationOrchestrator
from clientgen.persistence import BINDINGS_SUFFIX, TYPES_SUFFIX, load_manifest, load_registry

app = typer.Typer(
    name="clientgen",
    help="SOAP client library generator.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

console = Console()


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"clientgen {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(  # noqa: UP007
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """Generate legacy and modern SOAP client libraries from a service model."""


def _fail(error: ClientGenError) -> typer.Exit:
    console.print(f"[red]{type(error).__name__}:[/red] {error}")
    return typer.Exit(1)


@app.command("generate")
def generate(
    model_path: Path = typer.Argument(..., exists=True, dir_okay=False, help="Service model (YAML or JSON)"),
    config: Path | None = typer.Option(None, "--config", "-c", exists=True, dir_okay=False, help="YAML settings file"),  # noqa: UP007
    output_dir: Path | None = typer.Option(None, "--output-dir", "-o", help="Root output directory"),  # noqa: UP007
    run_id: str | None = typer.Option(None, "--run-id", help="Identifier used in persisted file names"),  # noqa: UP007
    parallel: bool = typer.Option(False, "--parallel", help="Run the variant phases concurrently"),
    skip_compile: bool = typer.Option(False, "--skip-compile", help="Only generate sources"),
) -> None:
    """Generate, compile and package both client libraries."""
    try:
        settings = load_settings(config, output_dir=output_dir, run_id=run_id, parallel_variants=parallel or None)
        configure_logging(level=settings.log_level, format=settings.log_format)
        model = load_model(model_path)
        orchestrator = GenerationOrchestrator(model, settings)
        report = orchestrator.run(compile=not skip_compile)
    except ClientGenError as e:
        raise _fail(e) from e

    table = Table(title=f"clientgen run {report.common.run_id}")
    table.add_column("Variant")
    table.add_column("Sources", justify="right")
    table.add_column("Status")
    table.add_column("Library")
    libraries = {library.variant: library for library in report.libraries}
    for variant, result in report.variants.items():
        if variant in report.failures:
            status = "[red]compile failed[/red]"
        elif variant in report.compiled:
            status = "[green]ok[/green]"
        else:
            status = "generated"
        library = libraries.get(variant)
        table.add_row(
            variant.value,
            str(len(report.common.artifacts) + len(result.artifacts)),
            status,
            str(library.binaries) if library else "-",
        )
    console.print(table)
    console.print(
        f"[bold]Types:[/bold] {len(report.common.manifest)}  "
        f"[bold]Faults:[/bold] {len(report.common.faults)}  "
        f"[bold]Binding records:[/bold] {len(report.common.registry)}"
    )

    for variant, error in report.failures.items():
        console.print(f"[red]{variant.value}:[/red] {error}")
        if error.report is not None:
            for line in error.report.diagnostics[:20]:
                console.print(f"  {line}")
    if not report.ok:
        raise typer.Exit(1)


@app.command("inspect")
def inspect(
    bindings_file: Path = typer.Argument(..., exists=True, dir_okay=False, help="A persisted .bindings.json file"),
) -> None:
    """Show the persisted binding metadata and type list of a run."""
    try:
        registry = load_registry(bindings_file)
        run_id = bindings_file.name.removesuffix(BINDINGS_SUFFIX)
        types_file = bindings_file.with_name(run_id + TYPES_SUFFIX)
        manifest = load_manifest(types_file) if types_file.exists() else None
    except ClientGenError as e:
        raise _fail(e) from e

    table = Table(title=str(bindings_file))
    table.add_column("Key")
    table.add_column("Kind")
    table.add_column("Descriptor")
    for record in registry.records():
        table.add_row(record.key, record.kind.value, repr(record.descriptor))
    console.print(table)

    if manifest is not None:
        console.print(f"\n[bold]Generated types ({len(manifest)}):[/bold]")
        for identifier in manifest:
            console.print(f"  • {identifier}")
