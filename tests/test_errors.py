"""Tests for clientgen.errors module."""

from clientgen.errors import (
    ClientGenError,
    ConfigurationError,
    DownstreamCompileError,
    ErrorCategory,
    ErrorContext,
    ModelIntegrityError,
    PersistenceError,
)


class TestErrorContext:
    """Test ErrorContext dataclass."""

    def test_empty(self):
        ctx = ErrorContext()
        assert ctx.to_dict() == {}

    def test_to_dict_includes_set_fields(self):
        ctx = ErrorContext(run_id="42", variant="legacy", metadata={"operation": "com.acme.Svc.run"})

        assert ctx.to_dict() == {"run_id": "42", "variant": "legacy", "operation": "com.acme.Svc.run"}


class TestClientGenError:
    """Test the error hierarchy."""

    def test_categories(self):
        assert ConfigurationError("x").category is ErrorCategory.CONFIG
        assert ModelIntegrityError("x").category is ErrorCategory.MODEL
        assert PersistenceError("x").category is ErrorCategory.STORAGE
        assert DownstreamCompileError("x").category is ErrorCategory.COMPILE
        assert ClientGenError("x").category is ErrorCategory.INTERNAL

    def test_subclasses(self):
        for cls in (ConfigurationError, ModelIntegrityError, PersistenceError, DownstreamCompileError):
            assert issubclass(cls, ClientGenError)

    def test_with_context_keeps_inner_values(self):
        """Context set closer to the failure is not overwritten."""
        error = ModelIntegrityError("No qualified name").with_context(entity="DoThing", phase="common")

        error.with_context(phase="variant", run_id="42", operation="run")

        assert error.context.phase == "common"
        assert error.context.run_id == "42"
        assert error.context.entity == "DoThing"
        assert error.context.metadata == {"operation": "run"}

    def test_with_context_ignores_none(self):
        error = ClientGenError("boom").with_context(variant=None)
        assert error.context.variant is None

    def test_str_includes_context(self):
        error = ModelIntegrityError("No qualified name").with_context(phase="common")

        assert str(error) == "No qualified name (phase=common)"
        assert str(ModelIntegrityError("plain")) == "plain"

    def test_cause_is_chained(self):
        cause = OSError("disk full")
        error = PersistenceError("Cannot write", cause=cause)

        assert error.__cause__ is cause
        assert error.to_dict()["cause"] == "disk full"

    def test_to_dict(self):
        error = ConfigurationError("bad").with_context(run_id="1")

        assert error.to_dict() == {
            "error_type": "ConfigurationError",
            "message": "bad",
            "category": "CONFIG",
            "context": {"run_id": "1"},
        }

    def test_compile_error_carries_report(self):
        report = object()
        error = DownstreamCompileError("failed", report=report)

        assert error.report is report
        assert repr(error) == "DownstreamCompileError('failed', category=COMPILE)"
