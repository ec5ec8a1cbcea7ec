"""Tests for clientgen.logging module."""

import threading

import pytest

from clientgen.logging import (
    LogContext,
    add_context_processor,
    bind_context,
    clear_context,
    configure_logging,
    get_context,
    get_logger,
    log_phase,
    scoped_context,
)


class TestLogContext:
    """Tests for LogContext."""

    def test_to_dict_skips_none(self):
        assert LogContext(run_id="1").to_dict() == {"run_id": "1"}

    def test_merge(self):
        ctx = LogContext(run_id="1").merge(phase="common", variant=None)

        assert ctx == LogContext(run_id="1", phase="common")


class TestContextPropagation:
    """Tests for the context helpers."""

    def test_bind_and_clear(self):
        bind_context(run_id="1")
        bind_context(phase="common")

        assert get_context() == LogContext(run_id="1", phase="common")
        clear_context()
        assert get_context() == LogContext()

    def test_scoped_context_restores(self):
        bind_context(run_id="1")

        with scoped_context(variant="legacy") as ctx:
            assert ctx.variant == "legacy"
            assert get_context().run_id == "1"

        assert get_context() == LogContext(run_id="1")

    def test_processor_adds_context(self):
        with scoped_context(run_id="1", phase="compile"):
            event = add_context_processor(None, "info", {"event": "x", "phase": "explicit"})

        assert event == {"event": "x", "run_id": "1", "phase": "explicit"}

    def test_threads_have_their_own_context(self):
        seen = {}

        def worker():
            with scoped_context(variant="modern"):
                seen["worker"] = get_context().variant

        with scoped_context(variant="legacy"):
            thread = threading.Thread(target=worker)
            thread.start()
            thread.join()
            assert get_context().variant == "legacy"

        assert seen["worker"] == "modern"


class TestLogPhase:
    """Tests for log_phase."""

    def test_binds_phase_context(self):
        with log_phase("variant", run_id="1", variant="legacy") as ctx:
            assert ctx == LogContext(run_id="1", phase="variant", variant="legacy")
            assert get_context().phase == "variant"

        assert get_context() == LogContext()

    def test_reraises(self):
        with pytest.raises(ValueError, match="boom"):
            with log_phase("common"):
                raise ValueError("boom")

        assert get_context() == LogContext()


class TestConfigureLogging:
    """Tests for configure_logging."""

    @pytest.mark.parametrize("fmt", ["json", "console"])
    def test_configures_both_formats(self, fmt):
        configure_logging(level="DEBUG", format=fmt, force=True)

        get_logger("clientgen.test").info("configured", fmt=fmt)
