"""
Tests for the exception-to-category boundary mapping.
"""

import inspect
from uuid import uuid4

import pytest
from sqlalchemy.exc import OperationalError

from ledger_kernel import exceptions as exc
from ledger_kernel.error_mapping import (
    ERROR_CATEGORIES,
    ErrorCategory,
    categorize,
    to_error_payload,
)

_FAMILY_BASES = {
    exc.LedgerKernelError,
    exc.ValidationError,
    exc.JournalEntryError,
    exc.PeriodError,
    exc.AccountError,
    exc.OrganizationError,
    exc.AuthorizationError,
    exc.PolicyError,
}


def _concrete_errors():
    return [
        klass
        for _, klass in inspect.getmembers(exc, inspect.isclass)
        if issubclass(klass, exc.LedgerKernelError) and klass not in _FAMILY_BASES
    ]


class TestExhaustiveMapping:

    def test_every_concrete_error_is_mapped(self):
        missing = [klass.__name__ for klass in _concrete_errors() if klass not in ERROR_CATEGORIES]
        assert missing == []

    def test_codes_are_unique(self):
        codes = [klass.code for klass in _concrete_errors()]
        assert len(codes) == len(set(codes))


class TestCategorize:

    @pytest.mark.parametrize(
        "error, category",
        [
            (exc.InvalidCurrencyError("usd"), ErrorCategory.VALIDATION),
            (exc.AccountNotFoundError(str(uuid4())), ErrorCategory.NOT_FOUND),
            (exc.UnbalancedEntryError("1000.00", "999.99", "USD"), ErrorCategory.BUSINESS_RULE),
            (exc.ClosedPeriodError("c", "FY2024-P01", "Closed"), ErrorCategory.BUSINESS_RULE),
            (exc.MembershipAlreadyExistsError("o", "u"), ErrorCategory.CONFLICT),
            (
                exc.PermissionDeniedError("journal_entry:post", "journal_entry", "no"),
                ErrorCategory.FORBIDDEN,
            ),
        ],
    )
    def test_categories(self, error, category):
        assert categorize(error) == category

    def test_unmapped_subclass_inherits_parent_category(self):
        class CustomNotFound(exc.AccountNotFoundError):
            pass

        assert categorize(CustomNotFound("x")) == ErrorCategory.NOT_FOUND

    def test_non_kernel_errors_are_infrastructure(self):
        assert categorize(RuntimeError("boom")) == ErrorCategory.INFRASTRUCTURE
        assert categorize(OperationalError("SELECT 1", {}, Exception("gone"))) == ErrorCategory.INFRASTRUCTURE


class TestErrorPayload:

    def test_kernel_error_payload(self):
        payload = to_error_payload(exc.UnbalancedEntryError("1000.00", "999.99", "USD"))
        assert payload["category"] == "business_rule"
        assert payload["code"] == "UNBALANCED_ENTRY"
        assert payload["details"] == {"debits": "1000.00", "credits": "999.99", "currency": "USD"}
        assert "999.99" in payload["message"]

    def test_infrastructure_details_are_hidden(self):
        payload = to_error_payload(RuntimeError("password=hunter2"))
        assert payload == {
            "category": "infrastructure",
            "code": "INTERNAL_ERROR",
            "message": "An internal error occurred",
            "details": {},
        }
