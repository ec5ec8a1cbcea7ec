"""
Downstream source compilation.

The orchestrator compiles each variant's generated sources (the shared
Common sources plus the variant's own) through a :class:`SourceCompiler`.
A compiler never raises for rejected sources: it returns a
:class:`CompileReport`, and the orchestrator turns an unsuccessful report
into a :class:`~clientgen.errors.DownstreamCompileError` for that variant.
"""

from __future__ import annotations

import os
import subprocess
import time
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol, runtime_checkable

from clientgen.logging import get_logger
from clientgen.model import Variant

log = get_logger(__name__)


@dataclass(frozen=True)
class CompileReport:
    """Outcome of compiling one variant."""

    success: bool
    returncode: int = 0
    output: str = ""
    command: tuple[str, ...] = ()
    sources: int = 0
    duration_seconds: float = 0.0

    @property
    def diagnostics(self) -> list[str]:
        """Non-empty compiler output lines."""
        return [line for line in self.output.splitlines() if line.strip()]


@runtime_checkable
class SourceCompiler(Protocol):
    def compile(
        self,
        sources: Sequence[Path],
        classpath: Sequence[str],
        output_dir: Path,
        variant: Variant,
    ) -> CompileReport: ...


@dataclass
class JavacCompiler:
    """
    Compile generated sources with ``javac``.

    The legacy variant is compiled against an older language level so the
    library stays loadable on older runtimes.
    """

    executable: str = "javac"
    timeout: int = 600
    options: dict[Variant, tuple[str, ...]] = field(
        default_factory=lambda: {
            Variant.LEGACY: ("-g", "--release", "8"),
            Variant.MODERN: ("-g",),
        }
    )

    def command(
        self, sources: Sequence[Path], classpath: Sequence[str], output_dir: Path, variant: Variant
    ) -> list[str]:
        cmd = [self.executable, *self.options.get(Variant(variant), ()), "-d", str(output_dir)]
        if classpath:
            cmd.extend(["-classpath", os.pathsep.join(classpath)])
        cmd.extend(str(source) for source in sources)
        return cmd

    def compile(
        self,
        sources: Sequence[Path],
        classpath: Sequence[str],
        output_dir: Path,
        variant: Variant,
    ) -> CompileReport:
        output_dir = Path(output_dir)
        output_dir.mkdir(parents=True, exist_ok=True)
        if not sources:
            return CompileReport(success=True)

        cmd = self.command(sources, classpath, output_dir, variant)
        start = time.time()
        try:
            proc = subprocess.run(cmd, capture_output=True, text=True, timeout=self.timeout)
        except FileNotFoundError:
            return CompileReport(
                success=False,
                returncode=127,
                output=f"Compiler executable not found: {self.executable}",
                command=tuple(cmd),
                sources=len(sources),
            )
        except subprocess.TimeoutExpired:
            return CompileReport(
                success=False,
                returncode=-1,
                output=f"Compilation timed out after {self.timeout}s",
                command=tuple(cmd),
                sources=len(sources),
                duration_seconds=time.time() - start,
            )

        report = CompileReport(
            success=proc.returncode == 0,
            returncode=proc.returncode,
            output=(proc.stdout or "") + (proc.stderr or ""),
            command=tuple(cmd),
            sources=len(sources),
            duration_seconds=time.time() - start,
        )
        log.debug("javac_finished", variant=Variant(variant).value, returncode=proc.returncode, sources=len(sources))
        return report
