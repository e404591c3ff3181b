"""
Pytest fixtures for the multi-send test suite.

Provides:
- Structured logging configured once per session
- LogContext isolation between tests
- captured_logs: the multisend log stream as parsed JSON dicts
- scenario_dir: the YAML scenario fixtures
"""

import json
import logging
from io import StringIO

import pytest

from multisend_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from tests.builders import SCENARIO_DIR


class _JsonRecordCollector(logging.Handler):
    """Keeps every formatted record, parsed back into a dict."""

    def __init__(self):
        super().__init__(level=logging.DEBUG)
        self.setFormatter(StructuredFormatter())
        self.records: list[dict] = []

    def emit(self, record: logging.LogRecord) -> None:
        self.records.append(json.loads(self.format(record)))


@pytest.fixture(autouse=True, scope="session")
def _session_logging():
    """JSON logging into a throwaway buffer for the whole run."""
    reset_logging()
    configure_logging(level=logging.DEBUG, stream=StringIO())
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _fresh_log_context():
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Records emitted under the ``multisend`` namespace during the test.

    Usage::

        def test_rejection_logged(captured_logs):
            ...
            messages = [r["message"] for r in captured_logs()]
            assert "balance_changes_rejected" in messages
    """
    collector = _JsonRecordCollector()
    namespace = logging.getLogger("multisend")
    saved_level = namespace.level
    namespace.setLevel(logging.DEBUG)
    namespace.addHandler(collector)
    yield lambda: list(collector.records)
    namespace.removeHandler(collector)
    namespace.setLevel(saved_level)


@pytest.fixture
def scenario_dir():
    return SCENARIO_DIR


def pytest_configure(config):
    config.addinivalue_line("markers", "property: hypothesis property-based test")
