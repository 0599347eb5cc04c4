"""Testes de logging estruturado e contexto de correlação."""

from __future__ import annotations

import io
import json
import logging

from medconnect_client.observability.context import correlation_scope, get_correlation_id
from medconnect_client.observability.logging import (
    CorrelationIdFilter,
    configure_logging,
    mask_identifier,
)


class TestCorrelationScope:
    def test_scope_sets_and_resets(self) -> None:
        assert get_correlation_id() == ""
        with correlation_scope("abc") as value:
            assert value == "abc"
            assert get_correlation_id() == "abc"
        assert get_correlation_id() == ""

    def test_generates_id(self) -> None:
        with correlation_scope() as value:
            assert len(value) == 36


class TestCorrelationIdFilter:
    def test_injects_fields(self) -> None:
        record = logging.LogRecord("x", logging.INFO, __file__, 1, "msg", None, None)
        with correlation_scope("corr-9"):
            assert CorrelationIdFilter("medconnect").filter(record) is True
        assert record.correlation_id == "corr-9"
        assert record.service == "medconnect"

    def test_configure_logging_installs_single_handler(self) -> None:
        configure_logging("DEBUG", "medconnect")
        root = logging.getLogger()
        assert len(root.handlers) == 1
        assert root.level == logging.DEBUG


class TestMaskIdentifier:
    def test_truncates(self) -> None:
        assert mask_identifier("1234567890abc") == "12345678..."

    def test_short_and_empty(self) -> None:
        assert mask_identifier("u1") == "u1"
        assert mask_identifier(None) is None


class TestRedaction:
    def test_sensitive_extra_fields_are_redacted(self) -> None:
        record = logging.LogRecord("x", logging.INFO, __file__, 1, "login", None, None)
        record.email = "ana@x.com"
        record.password = "pw"
        record.user_id = "u1"

        CorrelationIdFilter("medconnect").filter(record)

        assert record.email == "[redacted]"
        assert record.password == "[redacted]"
        assert record.user_id == "u1"

    def test_configure_logging_emits_json(self) -> None:
        stream = io.StringIO()
        configure_logging("INFO", "medconnect", stream=stream)

        logging.getLogger("medconnect.test").info("hello", extra={"token": "secret"})

        payload = json.loads(stream.getvalue().strip().splitlines()[-1])
        assert payload["message"] == "hello"
        assert payload["service"] == "medconnect"
        assert payload["level"] == "INFO"
        assert payload["token"] == "[redacted]"
