"""
Tests for the logging module.
"""

import json
import logging

import pytest
import structlog


class TestConfigureLogging:

    def test_configure_console_and_json(self):
        from core.logging import configure_logging

        configure_logging(json_logs=False, log_level="DEBUG")
        configure_logging(json_logs=True, log_level="INFO")

    def test_configure_log_level(self):
        from core.logging import configure_logging

        configure_logging(log_level="WARNING")

        assert logging.getLogger().level == logging.WARNING

    def test_http_client_loggers_are_quieted(self):
        from core.logging import configure_logging

        configure_logging(log_level="DEBUG")

        assert logging.getLogger("httpx").level == logging.WARNING
        assert logging.getLogger("postgrest").level == logging.WARNING


class TestContextBinding:

    def test_bind_and_clear(self):
        from core.logging import bind_context, clear_context

        clear_context()
        bind_context(user_id="rider-1", request_id="abc")

        ctx = structlog.contextvars.get_contextvars()
        assert ctx.get("user_id") == "rider-1"
        assert ctx.get("request_id") == "abc"

        clear_context()
        assert structlog.contextvars.get_contextvars() == {}

    def test_unbind_specific_context(self):
        from core.logging import bind_context, clear_context, unbind_context

        clear_context()
        bind_context(user_id="rider-1", algorithm="trending")
        unbind_context("algorithm")

        ctx = structlog.contextvars.get_contextvars()
        assert ctx.get("user_id") == "rider-1"
        assert "algorithm" not in ctx

        clear_context()


class TestLoggerMixin:

    def test_generator_logs_through_mixin(self):
        from core.logging import LoggerMixin, configure_logging

        configure_logging(json_logs=False)

        class TrendingProbe(LoggerMixin):
            def run(self):
                self.logger.info("Generator finished", algorithm="trending", count=3)

        TrendingProbe().run()


class TestJSONOutput:

    def test_json_output_is_valid_json(self, capsys):
        from core.logging import configure_logging, get_logger

        configure_logging(json_logs=True, log_level="INFO")
        get_logger("json_test").info("Hybrid merge complete", total=12)

        captured = capsys.readouterr()
        for line in captured.out.strip().split("\n"):
            if line:
                data = json.loads(line)
                assert "event" in data


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
