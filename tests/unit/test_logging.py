"""Tests for structured logging setup."""

import logging

import pytest
import structlog

from labcollab.shared.utils.logging import (
    _level,
    bind_view_context,
    clear_view_context,
    configure_logging,
)


@pytest.fixture(autouse=True)
def clean_context():
    structlog.contextvars.clear_contextvars()
    yield
    structlog.contextvars.clear_contextvars()
    structlog.reset_defaults()


class TestConfigureLogging:
    """Test configure_logging."""

    def test_binds_service_name(self):
        configure_logging(level="INFO", json_format=True, service_name="labcollab-test")
        assert structlog.contextvars.get_contextvars() == {"service": "labcollab-test"}

    def test_httpx_quiet_unless_debug(self):
        configure_logging(level="info", json_format=False)
        assert logging.getLogger("httpx").level == logging.WARNING

        configure_logging(level="DEBUG", json_format=False)
        assert logging.getLogger("httpx").level == logging.DEBUG

    def test_unknown_level_falls_back_to_info(self):
        assert _level("verbose") == logging.INFO
        assert _level("warning") == logging.WARNING


class TestViewContext:
    """Test binding and clearing sample view context."""

    def test_bind_and_clear(self):
        structlog.contextvars.bind_contextvars(service="labcollab")

        bind_view_context("sample-1", view_id="view-7", order_id="order-1")
        assert structlog.contextvars.get_contextvars() == {
            "service": "labcollab",
            "sample_id": "sample-1",
            "view_id": "view-7",
            "order_id": "order-1",
        }

        clear_view_context()
        assert structlog.contextvars.get_contextvars() == {
            "service": "labcollab",
            "order_id": "order-1",
        }

    def test_view_id_is_optional(self):
        bind_view_context("sample-2")
        assert structlog.contextvars.get_contextvars() == {"sample_id": "sample-2"}
        clear_view_context()
        assert structlog.contextvars.get_contextvars() == {}
