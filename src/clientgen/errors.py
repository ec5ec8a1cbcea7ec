"""
Structured error types for the client stub compiler.

Every failure raised by clientgen carries a category and a context naming
the run, the phase, the variant, and the entity involved, so a failed build
can be diagnosed from a single log line without re-running in verbose mode.

Architecture:
    ::

        ┌───────────────────────────────────────────────────────────┐
        │                     ClientGenError                        │
        │        (category, context, cause)                         │
        ├───────────────────────────────────────────────────────────┤
        │  ConfigurationError     ModelIntegrityError               │
        │  (CONFIG)               (MODEL)                           │
        │                                                           │
        │  PersistenceError       DownstreamCompileError            │
        │  (STORAGE)              (COMPILE, carries CompileReport)  │
        └───────────────────────────────────────────────────────────┘

Guardrails:
    ❌ DON'T: Raise plain Exception from the compiler core
    ✅ DO: Raise the ClientGenError subclass for the failing concern

    ❌ DON'T: Swallow the original exception
    ✅ DO: Pass it as cause= for error chaining

Tags:
    error-handling, exception-hierarchy, error-context, clientgen
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Error categories used for classification and reporting."""

    CONFIG = "CONFIG"         # Missing or invalid run configuration
    MODEL = "MODEL"           # Service model cannot be resolved consistently
    STORAGE = "STORAGE"       # Persisted artifacts cannot be written
    COMPILE = "COMPILE"       # Downstream compiler/packager failure
    INTERNAL = "INTERNAL"     # Bugs, unexpected state


@dataclass
class ErrorContext:
    """
    Structured metadata attached to an error.

    Attributes:
        run_id: Compiler run identifier
        phase: Generation phase (``common``, ``variant``, ``compile``, ``build``)
        variant: Target variant (``legacy`` or ``modern``)
        entity: Identifier of the model entity being processed
        metadata: Additional key-value pairs
    """

    run_id: str | None = None
    phase: str | None = None
    variant: str | None = None
    entity: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result = {}
        for key in ["run_id", "phase", "variant", "entity"]:
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class ClientGenError(Exception):
    """
    Base exception for all clientgen errors.

    Subclasses set ``default_category``. Context can be added after creation
    with the fluent :meth:`with_context`, which is how the orchestrator tags
    errors raised deep in the resolvers with the phase and variant.

    Examples:
        >>> error = ModelIntegrityError("No qualified name")
        >>> error.with_context(phase="common", entity="DoThing").context.phase
        'common'
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> ClientGenError:
        """
        Add context to this error (fluent API).

        Fields already set are kept, so the innermost (most specific) context
        wins when an error is re-tagged on its way up the call stack.
        """
        for key, value in kwargs.items():
            if value is None:
                continue
            if hasattr(self.context, key) and key != "metadata":
                if getattr(self.context, key) is None:
                    setattr(self.context, key, value)
            else:
                self.context.metadata.setdefault(key, value)
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
        }
        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __str__(self) -> str:
        context_dict = self.context.to_dict()
        if not context_dict:
            return self.message
        details = ", ".join(f"{k}={v}" for k, v in context_dict.items())
        return f"{self.message} ({details})"

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


class ConfigurationError(ClientGenError):
    """Invalid run configuration, reported before generation starts."""

    default_category = ErrorCategory.CONFIG


class ModelIntegrityError(ClientGenError):
    """
    The service model cannot be resolved consistently.

    Raised for entities without a qualified name, malformed package
    conversion rules, and identifiers that collide after conversion.
    """

    default_category = ErrorCategory.MODEL


class PersistenceError(ClientGenError):
    """Types or binding metadata could not be persisted."""

    default_category = ErrorCategory.STORAGE


class DownstreamCompileError(ClientGenError):
    """The downstream compiler rejected a variant's generated sources."""

    default_category = ErrorCategory.COMPILE

    def __init__(self, message: str, *, report: Any = None, **kwargs: Any):
        super().__init__(message, **kwargs)
        self.report = report
