"""
Module: ledger_kernel.error_mapping
Responsibility: Boundary translation from typed kernel exceptions to the
    user-facing error categories (validation, not found, business rule,
    conflict, forbidden, infrastructure) and to an API-safe payload.
Architecture position: Kernel top level.  Imports exceptions.py only.  Called
    by whatever outer layer (HTTP handler, CLI, job runner) surfaces errors.

Invariants enforced:
    - Exhaustive mapping: every concrete LedgerKernelError subclass defined in
      exceptions.py has exactly one entry in ERROR_CATEGORIES.  A new
      exception class without an entry is caught by the test suite.
    - Opaque infrastructure failures: anything that is not a
      LedgerKernelError (SQLAlchemy errors, programming errors) maps to
      INFRASTRUCTURE and its message is never exposed.

Failure modes:
    - None.  categorize() never raises.

Audit relevance:
    The category decides how a failure is reported to the caller; the code
    and structured attributes are carried through unchanged so logs and API
    responses refer to the same rule.
"""

from enum import Enum
from typing import Any

from ledger_kernel import exceptions as exc


class ErrorCategory(str, Enum):
    """User-facing error categories."""

    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    BUSINESS_RULE = "business_rule"
    CONFLICT = "conflict"
    FORBIDDEN = "forbidden"
    INFRASTRUCTURE = "infrastructure"


ERROR_CATEGORIES: dict[type[exc.LedgerKernelError], ErrorCategory] = {
    # Validation
    exc.InvalidCurrencyError: ErrorCategory.VALIDATION,
    exc.InvalidAmountError: ErrorCategory.VALIDATION,
    exc.InvalidFiscalPeriodError: ErrorCategory.VALIDATION,
    exc.InvalidPolicyConditionError: ErrorCategory.VALIDATION,
    exc.InvalidResourceTypeError: ErrorCategory.VALIDATION,
    # Not found
    exc.JournalEntryNotFoundError: ErrorCategory.NOT_FOUND,
    exc.AccountNotFoundError: ErrorCategory.NOT_FOUND,
    exc.ParentAccountNotFoundError: ErrorCategory.NOT_FOUND,
    exc.PeriodNotFoundError: ErrorCategory.NOT_FOUND,
    exc.OrganizationNotFoundError: ErrorCategory.NOT_FOUND,
    exc.CompanyNotFoundError: ErrorCategory.NOT_FOUND,
    exc.MembershipNotFoundError: ErrorCategory.NOT_FOUND,
    exc.PolicyNotFoundError: ErrorCategory.NOT_FOUND,
    # Business rules
    exc.EmptyEntryError: ErrorCategory.BUSINESS_RULE,
    exc.DuplicateLineNumberError: ErrorCategory.BUSINESS_RULE,
    exc.InvalidLineNumberError: ErrorCategory.BUSINESS_RULE,
    exc.UnbalancedEntryError: ErrorCategory.BUSINESS_RULE,
    exc.InvalidStatusTransitionError: ErrorCategory.BUSINESS_RULE,
    exc.EntryAlreadyReversedError: ErrorCategory.BUSINESS_RULE,
    exc.PeriodNotOpenError: ErrorCategory.BUSINESS_RULE,
    exc.ClosedPeriodError: ErrorCategory.BUSINESS_RULE,
    exc.InvalidPeriodTransitionError: ErrorCategory.BUSINESS_RULE,
    exc.AccountNotActiveError: ErrorCategory.BUSINESS_RULE,
    exc.AccountNotPostableError: ErrorCategory.BUSINESS_RULE,
    exc.ParentAccountDifferentCompanyError: ErrorCategory.BUSINESS_RULE,
    exc.CircularAccountReferenceError: ErrorCategory.BUSINESS_RULE,
    exc.HasActiveChildAccountsError: ErrorCategory.BUSINESS_RULE,
    exc.PolicyPriorityValidationError: ErrorCategory.BUSINESS_RULE,
    exc.SystemPolicyCannotBeModifiedError: ErrorCategory.BUSINESS_RULE,
    # Conflicts
    exc.JournalEntryStatusConflictError: ErrorCategory.CONFLICT,
    exc.AccountNumberAlreadyExistsError: ErrorCategory.CONFLICT,
    exc.PeriodAlreadyExistsError: ErrorCategory.CONFLICT,
    exc.MembershipAlreadyExistsError: ErrorCategory.CONFLICT,
    # Authorization
    exc.PermissionDeniedError: ErrorCategory.FORBIDDEN,
}

_OPAQUE_MESSAGE = "An internal error occurred"


def categorize(error: BaseException) -> ErrorCategory:
    """Return the user-facing category for an exception.

    Walks the MRO so that an unmapped subclass inherits its parent's
    category.  Non-kernel exceptions are infrastructure failures.
    """
    if not isinstance(error, exc.LedgerKernelError):
        return ErrorCategory.INFRASTRUCTURE
    for klass in type(error).__mro__:
        category = ERROR_CATEGORIES.get(klass)
        if category is not None:
            return category
    return ErrorCategory.INFRASTRUCTURE


def to_error_payload(error: BaseException) -> dict[str, Any]:
    """Build an API-safe error payload.

    Kernel errors expose their code, message and public attributes.
    Everything else is reduced to an opaque infrastructure payload.
    """
    category = categorize(error)
    if not isinstance(error, exc.LedgerKernelError):
        return {
            "category": category.value,
            "code": "INTERNAL_ERROR",
            "message": _OPAQUE_MESSAGE,
            "details": {},
        }

    details = {
        key: value
        for key, value in vars(error).items()
        if not key.startswith("_") and key != "args"
    }
    return {
        "category": category.value,
        "code": error.code,
        "message": str(error),
        "details": details,
    }
