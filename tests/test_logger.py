"""
Tests for run-level structured logging (logger.py).
"""

import pytest
import json
import logging
import threading
from io import StringIO

from src.autoconfigure import ModuleDescriptor, resolve
from src.logger import StructuredLogger, logger


@pytest.fixture
def capture(monkeypatch):
    """Return (make_logger, stream); make_logger attaches a StringIO handler."""
    stream = StringIO()

    def make_logger(name, log_format="readable"):
        monkeypatch.setenv("LOG_FORMAT", log_format)
        log = StructuredLogger(f"autoconfigure.{name}")
        log.logger.handlers.clear()
        handler = logging.StreamHandler(stream)
        handler.setLevel(logging.DEBUG)
        log.logger.addHandler(handler)
        log.logger.setLevel(logging.DEBUG)
        return log

    yield make_logger, stream
    logger.clear_run()


class TestRunTracking:

    def test_set_and_clear_run(self):
        log = StructuredLogger("autoconfigure.run_id")
        assert log.run_id is None

        log.set_run("run_123")
        assert log.run_id == "run_123"

        log.clear_run()
        assert log.run_id is None

    def test_run_id_shared_by_loggers_in_same_context(self):
        first = StructuredLogger("autoconfigure.first")
        second = StructuredLogger("autoconfigure.second")
        first.set_run("shared")
        try:
            assert second.run_id == "shared"
        finally:
            first.clear_run()

    def test_run_id_isolated_between_threads(self):
        log = StructuredLogger("autoconfigure.threads")
        seen = {}

        def worker(run_id):
            log.set_run(run_id)
            seen[run_id] = log.run_id

        threads = [threading.Thread(target=worker, args=(f"run_{i}",)) for i in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert seen == {f"run_{i}": f"run_{i}" for i in range(4)}
        assert log.run_id is None


class TestOutput:

    def test_readable_event(self, capture):
        make_logger, stream = capture
        log = make_logger("readable")

        log.set_run("r1")
        log.event("module_activated", module_id="cache.simple")
        log.clear_run()

        assert stream.getvalue().strip() == "[r1] EVENT module_activated [module_id=cache.simple]"

    def test_readable_without_run_or_fields(self, capture):
        make_logger, stream = capture
        make_logger("bare").event("activation_run_started")
        assert stream.getvalue().strip() == "EVENT activation_run_started"

    def test_json_metric(self, capture):
        make_logger, stream = capture
        log = make_logger("json", log_format="json")

        log.set_run("r2")
        log.metric("activation_run_modules", 14, matched=6)
        log.clear_run()

        data = json.loads(stream.getvalue().strip())
        assert data["kind"] == "METRIC"
        assert data["name"] == "activation_run_modules"
        assert data["logger"] == "autoconfigure.json"
        assert data["run_id"] == "r2"
        assert data["value"] == 14
        assert data["matched"] == 6
        assert data["timestamp"].endswith("Z")

    def test_json_event_without_run(self, capture):
        make_logger, stream = capture
        make_logger("json_event", log_format="json").event("module_activated", group="datasource")

        data = json.loads(stream.getvalue().strip())
        assert data["kind"] == "EVENT"
        assert data["group"] == "datasource"
        assert "run_id" not in data


class TestResolverIntegration:

    def test_resolver_clears_run_after_pass(self, make_provider):
        resolve([ModuleDescriptor("m")], make_provider())
        assert logger.run_id is None
