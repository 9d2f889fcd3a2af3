"""Unit tests for logging functionality."""

import logging
import time

import pytest

from ddnscert._logging import (
    Timer,
    get_domain_extra,
    get_logger,
    reset_domains,
    set_domains,
)


class TestGetLogger:
    """Tests for the get_logger function."""

    def test_logger_hierarchy(self) -> None:
        """Module loggers sit under the ddnscert namespace."""
        parent = logging.getLogger("ddnscert")
        child = get_logger("ddnscert.renewal")
        assert child.name == "ddnscert.renewal"
        assert child.parent is parent


class TestTimer:
    """Tests for the Timer context manager."""

    def test_measures_elapsed_time(self) -> None:
        with Timer() as t:
            time.sleep(0.01)

        assert t.elapsed_ms >= 9
        assert t.elapsed_ms < 1000

    def test_elapsed_starts_at_zero(self) -> None:
        assert Timer().elapsed_ms == 0


class TestNullHandler:
    """Tests for the library's silent default."""

    def test_root_logger_has_null_handler(self) -> None:
        root = logging.getLogger("ddnscert")
        assert any(isinstance(h, logging.NullHandler) for h in root.handlers)

    def test_library_silent_by_default(self, capsys: pytest.CaptureFixture[str]) -> None:
        """Nothing is printed unless the host configures logging."""
        get_logger("ddnscert.test").info("This should not appear")

        captured = capsys.readouterr()
        assert captured.out == ""
        assert captured.err == ""


class TestLogCapture:
    """Tests for the log_capture fixture."""

    @pytest.mark.parametrize(
        "level", [logging.DEBUG, logging.INFO, logging.WARNING, logging.ERROR]
    )
    def test_captures_level(self, log_capture, level) -> None:
        get_logger("ddnscert.test").log(level, "Some message")

        assert log_capture.get_messages(level) == ["Some message"]

    def test_filter_by_logger_name(self, log_capture) -> None:
        get_logger("ddnscert.client").info("Client message")
        get_logger("ddnscert.providers.duckdns").info("Provider message")

        assert log_capture.get_messages(name="ddnscert.client") == ["Client message"]
        assert log_capture.get_messages(name="ddnscert.providers") == ["Provider message"]

    def test_extra_fields_captured(self, log_capture) -> None:
        get_logger("ddnscert.test").info(
            "TXT record created", extra={"record_name": "_acme-challenge.foo.duckdns.org"}
        )

        (record,) = log_capture.get_records(logging.INFO)
        assert record.record_name == "_acme-challenge.foo.duckdns.org"

    def test_clear_removes_records(self, log_capture) -> None:
        logger = get_logger("ddnscert.test")
        logger.info("Message 1")
        logger.info("Message 2")

        assert len(log_capture.records) == 2
        log_capture.clear()
        assert len(log_capture.records) == 0


class TestDomainContext:
    """Tests for the domain context variable."""

    def test_empty_without_context(self) -> None:
        assert get_domain_extra() == {}

    def test_single_domain(self) -> None:
        token = set_domains(["foo.duckdns.org"])
        try:
            assert get_domain_extra() == {"domain": "foo.duckdns.org"}
        finally:
            reset_domains(token)

    def test_multiple_domains(self) -> None:
        token = set_domains(["foo.duckdns.org", "bar.duckdns.org"])
        try:
            assert get_domain_extra() == {"domains": ["foo.duckdns.org", "bar.duckdns.org"]}
        finally:
            reset_domains(token)

    def test_reset_restores_previous_context(self) -> None:
        outer = set_domains(["outer.duckdns.org"])
        try:
            inner = set_domains(["inner.duckdns.org"])
            assert get_domain_extra() == {"domain": "inner.duckdns.org"}
            reset_domains(inner)
            assert get_domain_extra() == {"domain": "outer.duckdns.org"}
        finally:
            reset_domains(outer)

        assert get_domain_extra() == {}

    def test_none_gives_empty(self) -> None:
        token = set_domains(None)
        try:
            assert get_domain_extra() == {}
        finally:
            reset_domains(token)

    def test_domain_context_merges_into_extra(self, log_capture) -> None:
        token = set_domains(["foo.duckdns.org"])
        try:
            get_logger("ddnscert.test").info(
                "Order created", extra={"url": "https://ca.test/order/1", **get_domain_extra()}
            )
        finally:
            reset_domains(token)

        (record,) = log_capture.get_records(logging.INFO)
        assert record.domain == "foo.duckdns.org"
        assert record.url == "https://ca.test/order/1"
