"""Tests for the structured logging system (ledger_kernel/logging_config.py)."""

import json
import logging
from decimal import Decimal
from io import StringIO
from uuid import uuid4

import pytest

from ledger_kernel.domain.values import FunctionalRole, JournalEntryStatus
from ledger_kernel.exceptions import ClosedPeriodError, PermissionDeniedError
from ledger_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    get_logger,
    reset_logging,
)


@pytest.fixture(autouse=True)
def _fresh_logging():
    reset_logging()
    LogContext.clear()
    yield
    LogContext.clear()
    reset_logging()
    configure_logging(level=logging.DEBUG)


@pytest.fixture
def json_lines():
    """Configure kernel logging into a buffer; return a reader of parsed lines."""
    stream = StringIO()

    def _configure(level: int = logging.INFO):
        handler = logging.StreamHandler(stream)
        configure_logging(handler=handler, level=level)

    def _read() -> list[dict]:
        return [json.loads(line) for line in stream.getvalue().splitlines() if line]

    _read.configure = _configure
    return _read


# ---------------------------------------------------------------------------
# Record format
# ---------------------------------------------------------------------------


class TestRecordFormat:

    def test_envelope(self, json_lines):
        json_lines.configure()
        get_logger("services.period").info("period_transitioned")

        [record] = json_lines()
        assert record["level"] == "INFO"
        assert record["message"] == "period_transitioned"
        assert record["logger"] == "ledger_kernel.services.period"
        assert record["ts"].endswith("+00:00")

    def test_extra_fields(self, json_lines):
        json_lines.configure()
        get_logger("services.journal_entry").info(
            "journal_entry_posted", extra={"entry_number": "JE-2024-0001", "line_count": 2}
        )

        [record] = json_lines()
        assert record["entry_number"] == "JE-2024-0001"
        assert record["line_count"] == 2

    def test_domain_values_are_serialized(self, json_lines):
        json_lines.configure()
        entry_id = uuid4()
        get_logger("test").info(
            "values",
            extra={
                "entry_uuid": entry_id,
                "amount": Decimal("1000.00"),
                "status": JournalEntryStatus.PENDING_APPROVAL,
                "functional_roles": frozenset({FunctionalRole.PERIOD_ADMIN, FunctionalRole.CONTROLLER}),
                "period": (2024, 1),
            },
        )

        [record] = json_lines()
        assert record["entry_uuid"] == str(entry_id)
        assert record["amount"] == "1000.00"
        assert record["status"] == "PendingApproval"
        assert record["functional_roles"] == ["controller", "period_admin"]
        assert record["period"] == [2024, 1]

    def test_level_filtering(self, json_lines):
        json_lines.configure(level=logging.WARNING)
        logger = get_logger("test")
        logger.info("dropped")
        logger.warning("journal_entry_post_blocked")

        assert [r["message"] for r in json_lines()] == ["journal_entry_post_blocked"]

    def test_formatter_standalone(self):
        record = logging.LogRecord("ledger_kernel.x", logging.ERROR, __file__, 1, "boom %s", ("now",), None)
        payload = json.loads(StructuredFormatter().format(record))
        assert payload["message"] == "boom now"
        assert payload["level"] == "ERROR"


class TestExceptionFields:

    def test_plain_exception(self, json_lines):
        json_lines.configure()
        try:
            raise ValueError("bad amount")
        except ValueError:
            get_logger("test").exception("failed")

        [record] = json_lines()
        assert record["exc_type"] == "ValueError"
        assert record["exc_message"] == "bad amount"
        assert "exc_code" not in record
        assert "Traceback" in record["traceback"]

    def test_kernel_error_attributes_flattened(self, json_lines):
        json_lines.configure()
        try:
            raise ClosedPeriodError("company-1", "FY2024-P01", "Closed")
        except ClosedPeriodError:
            get_logger("test").error("post_failed", exc_info=True)

        [record] = json_lines()
        assert record["exc_code"] == "PERIOD_CLOSED"
        assert record["exc_type"] == "ClosedPeriodError"
        assert record["exc_fiscal_period"] == "FY2024-P01"
        assert record["exc_status"] == "Closed"

    def test_permission_denied_carries_reason(self, json_lines):
        json_lines.configure()
        error = PermissionDeniedError("journal_entry:post", "journal_entry", "No matching allow policy found - default deny")
        try:
            raise error
        except PermissionDeniedError:
            get_logger("test").warning("denied", exc_info=True)

        [record] = json_lines()
        assert record["exc_code"] == "PERMISSION_DENIED"
        assert record["exc_action"] == "journal_entry:post"
        assert record["exc_policy_id"] is None


# ---------------------------------------------------------------------------
# LogContext
# ---------------------------------------------------------------------------


class TestLogContext:

    def test_context_fields_in_records(self, json_lines):
        json_lines.configure()
        organization_id = uuid4()
        LogContext.set(correlation_id="req-42", organization_id=organization_id)
        get_logger("test").info("with_context")

        [record] = json_lines()
        assert record["correlation_id"] == "req-42"
        assert record["organization_id"] == str(organization_id)

    def test_empty_context_adds_nothing(self, json_lines):
        json_lines.configure()
        get_logger("test").info("bare")

        [record] = json_lines()
        assert set(record) == {"ts", "level", "logger", "message"}

    def test_set_is_additive(self):
        LogContext.set(correlation_id="a")
        LogContext.set(company_id="b")
        assert LogContext.get_all() == {"correlation_id": "a", "company_id": "b"}

    def test_set_ignores_none(self):
        LogContext.set(actor_id="kept")
        LogContext.set(actor_id=None, entry_id="e")
        assert LogContext.get_all() == {"actor_id": "kept", "entry_id": "e"}

    def test_clear(self):
        LogContext.set(correlation_id="x", actor_id="y")
        LogContext.clear()
        assert LogContext.get_all() == {}

    def test_bind_overrides_and_restores(self):
        LogContext.set(correlation_id="outer")
        with LogContext.bind(correlation_id="inner", entry_id="temp"):
            assert LogContext.get_all() == {"correlation_id": "inner", "entry_id": "temp"}
        assert LogContext.get_all() == {"correlation_id": "outer"}

    def test_bind_restores_after_error(self):
        with pytest.raises(RuntimeError):
            with LogContext.bind(company_id="c"):
                raise RuntimeError("inside")
        assert LogContext.get_all() == {}

    def test_bind_ignores_unknown_and_none(self):
        with LogContext.bind(company_id=None, tenant="t", actor_id="a"):
            assert LogContext.get_all() == {"actor_id": "a"}

    def test_all_fields(self):
        LogContext.set(
            correlation_id="c",
            organization_id="o",
            company_id="co",
            actor_id="a",
            entry_id="n",
        )
        assert len(LogContext.get_all()) == 5


# ---------------------------------------------------------------------------
# configure_logging
# ---------------------------------------------------------------------------


class TestConfigureLogging:

    def test_only_first_call_applies(self):
        first = logging.StreamHandler(StringIO())
        second = logging.StreamHandler(StringIO())
        configure_logging(handler=first)
        configure_logging(handler=second)

        handlers = logging.getLogger("ledger_kernel").handlers
        assert first in handlers
        assert second not in handlers
        assert [h for h in handlers if isinstance(h.formatter, StructuredFormatter)] == [first]

    def test_kernel_logger_does_not_propagate(self):
        configure_logging(handler=logging.StreamHandler(StringIO()))
        assert logging.getLogger("ledger_kernel").propagate is False

    def test_reset_removes_handlers(self):
        configure_logging(handler=logging.StreamHandler(StringIO()))
        reset_logging()
        root = logging.getLogger("ledger_kernel")
        assert not any(isinstance(h.formatter, StructuredFormatter) for h in root.handlers)
        assert root.level == logging.WARNING

    def test_nested_logger_names(self, json_lines):
        json_lines.configure(level=logging.DEBUG)
        get_logger("deep.nested.module").debug("hierarchy_test")

        [record] = json_lines()
        assert record["logger"] == "ledger_kernel.deep.nested.module"
