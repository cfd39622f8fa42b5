"""Tests for the observability module.

Tests for metrics collection, operation timing and logging configuration.
"""
import logging

import pytest

from dgarden.observability import (
    ROOT_LOGGER_NAME,
    MetricsCollector,
    configure_logging,
    metrics,
    timed_operation,
)


@pytest.fixture(autouse=True)
def clean_metrics():
    metrics.reset()
    yield
    metrics.reset()


class TestMetricsCollector:
    """Tests for MetricsCollector."""

    def test_record_success(self):
        collector = MetricsCollector()
        collector.record_operation("load_notes", 10.0, True)
        collector.record_operation("load_notes", 30.0, True)
        snapshot = collector.get_metrics()["load_notes"]
        assert snapshot["count"] == 2
        assert snapshot["error_count"] == 0
        assert snapshot["avg_duration_ms"] == 20.0
        assert snapshot["max_duration_ms"] == 30.0
        assert snapshot["last_error"] is None

    def test_record_error(self):
        collector = MetricsCollector()
        collector.record_operation("lint", 5.0, False, "boom")
        snapshot = collector.get_metrics()["lint"]
        assert snapshot["error_count"] == 1
        assert snapshot["last_error"] == "boom"

    def test_reset(self):
        collector = MetricsCollector()
        collector.record_operation("lint", 1.0, True)
        collector.reset()
        assert collector.get_metrics() == {}

    def test_log_summary(self, caplog):
        collector = MetricsCollector()
        collector.record_operation("load_notes", 4.0, True)
        collector.record_operation("lint", 9.0, False, "boom")
        with caplog.at_level(logging.DEBUG, logger=ROOT_LOGGER_NAME):
            collector.log_summary()
        messages = [r.getMessage() for r in caplog.records]
        assert messages == [
            "lint: 1 run(s), 1 failed, avg 9.0ms, max 9.0ms",
            "load_notes: 1 run(s), 0 failed, avg 4.0ms, max 4.0ms",
        ]


class TestTimedOperation:
    """Tests for the timed_operation context manager."""

    def test_records_success(self):
        with timed_operation("build_index", notes=3) as op:
            op["tag_count"] = 2
        assert op["correlation_id"]
        assert metrics.get_metrics()["build_index"]["count"] == 1

    def test_records_and_reraises_errors(self):
        with pytest.raises(ValueError):
            with timed_operation("lint"):
                raise ValueError("bad vault")
        snapshot = metrics.get_metrics()["lint"]
        assert snapshot["error_count"] == 1
        assert snapshot["last_error"] == "bad vault"

    def test_vault_load_is_timed(self, repository):
        metrics.reset()
        repository.load_notes()
        snapshot = metrics.get_metrics()["load_notes"]
        assert snapshot["count"] == 1
        assert snapshot["error_count"] == 0


class TestConfigureLogging:
    """Tests for configure_logging."""

    def test_console_only(self):
        assert configure_logging(level=logging.DEBUG) is None
        root = logging.getLogger(ROOT_LOGGER_NAME)
        assert root.level == logging.DEBUG
        assert len(root.handlers) == 1

    def test_console_handler_not_duplicated(self):
        configure_logging()
        configure_logging()
        assert len(logging.getLogger(ROOT_LOGGER_NAME).handlers) == 1

    def test_log_file(self, tmp_path):
        log_dir = tmp_path / "logs"
        assert configure_logging(log_dir=log_dir, console=False) == log_dir
        logging.getLogger("dgarden.test").info("hello garden")
        for handler in logging.getLogger(ROOT_LOGGER_NAME).handlers:
            handler.flush()
        assert "hello garden" in (log_dir / "dgarden.log").read_text(encoding="utf-8")
