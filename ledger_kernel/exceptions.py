"""
Typed Exception Hierarchy for the Ledger Kernel.

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

All exceptions inherit from LedgerKernelError.  Each family is closed: the
boundary in ``ledger_kernel.error_mapping`` maps every leaf to exactly one
user-facing category.

    LedgerKernelError (base)
    |
    +-- ValidationError
    |   +-- InvalidCurrencyError
    |   +-- InvalidAmountError
    |   +-- InvalidFiscalPeriodError
    |   +-- InvalidPolicyConditionError
    |
    +-- JournalEntryError
    |   +-- JournalEntryNotFoundError
    |   +-- EmptyEntryError
    |   +-- DuplicateLineNumberError
    |   +-- InvalidLineNumberError
    |   +-- UnbalancedEntryError
    |   +-- InvalidStatusTransitionError
    |   +-- JournalEntryStatusConflictError
    |   +-- EntryAlreadyReversedError
    |
    +-- PeriodError
    |   +-- PeriodNotFoundError
    |   +-- PeriodNotOpenError
    |   |   +-- ClosedPeriodError
    |   +-- PeriodAlreadyExistsError
    |   +-- InvalidPeriodTransitionError
    |
    +-- AccountError
    |   +-- AccountNotFoundError
    |   +-- AccountNotActiveError
    |   +-- AccountNotPostableError
    |   +-- AccountNumberAlreadyExistsError
    |   +-- ParentAccountNotFoundError
    |   +-- ParentAccountDifferentCompanyError
    |   +-- CircularAccountReferenceError
    |   +-- HasActiveChildAccountsError
    |
    +-- OrganizationError
    |   +-- OrganizationNotFoundError
    |   +-- CompanyNotFoundError
    |   +-- MembershipNotFoundError
    |   +-- MembershipAlreadyExistsError
    |
    +-- AuthorizationError
    |   +-- PermissionDeniedError
    |
    +-- PolicyError
        +-- PolicyNotFoundError
        +-- PolicyPriorityValidationError
        +-- SystemPolicyCannotBeModifiedError
        +-- InvalidResourceTypeError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                        | When Raised
----------------|-----------------------------|-----------------------------------------
Validation      | INVALID_CURRENCY            | Not a valid ISO 4217 code
                | INVALID_AMOUNT              | Negative or non-decimal line amount
                | INVALID_FISCAL_PERIOD       | Period number outside 1..13
                | INVALID_POLICY_CONDITION    | Malformed stored/submitted condition
----------------|-----------------------------|-----------------------------------------
Journal entry   | JOURNAL_ENTRY_NOT_FOUND     | Entry absent or outside caller's tenant
                | EMPTY_ENTRY                 | Entry submitted without lines
                | DUPLICATE_LINE_NUMBER       | Two lines share a line number
                | INVALID_LINE_NUMBER         | Line number below 1
                | UNBALANCED_ENTRY            | Functional debits != credits
                | INVALID_STATUS_TRANSITION   | Transition not in the lifecycle table
                | ENTRY_STATUS_CONFLICT       | Update/delete of a non-Draft entry
                | ALREADY_REVERSED            | Entry already has a reversing entry
----------------|-----------------------------|-----------------------------------------
Period          | PERIOD_NOT_FOUND            | No period for company + year + number
                | PERIOD_NOT_OPEN             | Entry created in a non-Open period
                | PERIOD_CLOSED               | Period no longer Open at post time
                | PERIOD_ALREADY_EXISTS       | Duplicate year + period number
                | INVALID_PERIOD_TRANSITION   | Period status change not allowed
----------------|-----------------------------|-----------------------------------------
Account         | ACCOUNT_NOT_FOUND           | Account ID doesn't exist
                | ACCOUNT_NOT_ACTIVE          | Account is deactivated
                | ACCOUNT_NOT_POSTABLE        | Summary account used on a line
                | ACCOUNT_NUMBER_EXISTS       | Duplicate number within a company
                | PARENT_ACCOUNT_NOT_FOUND    | Parent account doesn't exist
                | PARENT_DIFFERENT_COMPANY    | Parent belongs to another company
                | CIRCULAR_REFERENCE          | Account made its own parent
                | HAS_ACTIVE_CHILDREN         | Deactivating a parent of active accounts
----------------|-----------------------------|-----------------------------------------
Organization    | ORGANIZATION_NOT_FOUND      | Organization ID doesn't exist
                | COMPANY_NOT_FOUND           | Company absent from organization
                | MEMBERSHIP_NOT_FOUND        | User has no active membership
                | MEMBERSHIP_ALREADY_EXISTS   | User already a member
----------------|-----------------------------|-----------------------------------------
Authorization   | PERMISSION_DENIED           | Policy engine or RBAC denied the action
----------------|-----------------------------|-----------------------------------------
Policy          | POLICY_NOT_FOUND            | Policy absent or in another organization
                | POLICY_PRIORITY_INVALID     | User policy priority outside 0..899
                | SYSTEM_POLICY_IMMUTABLE     | Update/delete of a system policy
                | INVALID_RESOURCE_TYPE       | Unknown resource type in a policy test

===============================================================================
HANDLING PATTERNS
===============================================================================

Catch by type and read structured attributes, never parse messages:

    try:
        service.post_entry(...)
    except ClosedPeriodError as e:
        respond(code=e.code, status=e.status)
    except JournalEntryError as e:
        respond(code=e.code)

Map to an HTTP-ish category at the boundary:

    except LedgerKernelError as e:
        payload = error_mapping.to_error_payload(e)
"""


class LedgerKernelError(Exception):
    """
    Base exception for all ledger kernel errors.

    All subclasses carry a ``code`` class attribute for machine-readable
    identification.
    """

    code: str = "LEDGER_KERNEL_ERROR"


# Validation exceptions


class ValidationError(LedgerKernelError):
    """Base exception for malformed input shape."""

    code: str = "VALIDATION_ERROR"


class InvalidCurrencyError(ValidationError):
    """Currency code is not a valid ISO 4217 code."""

    code: str = "INVALID_CURRENCY"

    def __init__(self, currency: str):
        self.currency = currency
        super().__init__(f"Invalid ISO 4217 currency code: '{currency}'")


class InvalidAmountError(ValidationError):
    """Line amount is negative or not representable as a decimal."""

    code: str = "INVALID_AMOUNT"

    def __init__(self, field: str, value: str):
        self.field = field
        self.value = value
        super().__init__(f"Invalid amount for {field}: {value}")


class InvalidFiscalPeriodError(ValidationError):
    """Fiscal period reference is out of range."""

    code: str = "INVALID_FISCAL_PERIOD"

    def __init__(self, fiscal_year: int, period_number: int):
        self.fiscal_year = fiscal_year
        self.period_number = period_number
        super().__init__(
            f"Invalid fiscal period {fiscal_year}-P{period_number}: "
            "period number must be between 1 and 13"
        )


class InvalidPolicyConditionError(ValidationError):
    """A policy condition document cannot be parsed."""

    code: str = "INVALID_POLICY_CONDITION"

    def __init__(self, condition: str, reason: str):
        self.condition = condition
        self.reason = reason
        super().__init__(f"Invalid {condition} condition: {reason}")


# Journal entry exceptions


class JournalEntryError(LedgerKernelError):
    """Base exception for journal entry lifecycle errors."""

    code: str = "JOURNAL_ENTRY_ERROR"


class JournalEntryNotFoundError(JournalEntryError):
    """Journal entry does not exist or is not visible to the caller."""

    code: str = "JOURNAL_ENTRY_NOT_FOUND"

    def __init__(self, entry_id: str):
        self.entry_id = entry_id
        super().__init__(f"Journal entry not found: {entry_id}")


class EmptyEntryError(JournalEntryError):
    """Journal entry has no lines."""

    code: str = "EMPTY_ENTRY"

    def __init__(self):
        super().__init__("Journal entry must have at least one line")


class DuplicateLineNumberError(JournalEntryError):
    """Two or more lines share the same line number."""

    code: str = "DUPLICATE_LINE_NUMBER"

    def __init__(self, line_number: int):
        self.line_number = line_number
        super().__init__(f"Duplicate line number: {line_number}")


class InvalidLineNumberError(JournalEntryError):
    """Explicit line number is not a positive integer."""

    code: str = "INVALID_LINE_NUMBER"

    def __init__(self, line_number: int):
        self.line_number = line_number
        super().__init__(f"Line number must be a positive integer, got {line_number}")


class UnbalancedEntryError(JournalEntryError):
    """Functional-currency debits do not equal credits."""

    code: str = "UNBALANCED_ENTRY"

    def __init__(self, debits: str, credits: str, currency: str):
        self.debits = debits
        self.credits = credits
        self.currency = currency
        super().__init__(
            f"Unbalanced entry in {currency}: debits={debits}, credits={credits}"
        )


class InvalidStatusTransitionError(JournalEntryError):
    """Requested lifecycle transition is not in the transition table."""

    code: str = "INVALID_STATUS_TRANSITION"

    def __init__(
        self,
        entry_id: str,
        current_status: str,
        target_status: str,
        required_status: str,
        operation: str,
    ):
        self.entry_id = entry_id
        self.current_status = current_status
        self.target_status = target_status
        self.required_status = required_status
        self.operation = operation
        super().__init__(
            f"Cannot {operation} journal entry {entry_id}: status is "
            f"{current_status}, requires {required_status}"
        )


class JournalEntryStatusConflictError(JournalEntryError):
    """
    Entry exists but its status forbids the mutation.

    Distinct from InvalidStatusTransitionError: the request names a real
    entry whose state is wrong for an edit, rather than a lifecycle move.
    """

    code: str = "ENTRY_STATUS_CONFLICT"

    def __init__(self, entry_id: str, current_status: str, operation: str):
        self.entry_id = entry_id
        self.current_status = current_status
        self.required_status = "Draft"
        self.operation = operation
        super().__init__(
            f"Cannot {operation} journal entry {entry_id} in status "
            f"{current_status}: only Draft entries can be changed"
        )


class EntryAlreadyReversedError(JournalEntryError):
    """Entry already has a reversing entry."""

    code: str = "ALREADY_REVERSED"

    def __init__(self, entry_id: str, reversing_entry_id: str):
        self.entry_id = entry_id
        self.reversing_entry_id = reversing_entry_id
        super().__init__(
            f"Journal entry {entry_id} already reversed by {reversing_entry_id}"
        )


# Period exceptions


class PeriodError(LedgerKernelError):
    """Base exception for fiscal period errors."""

    code: str = "PERIOD_ERROR"


class PeriodNotFoundError(PeriodError):
    """No fiscal period exists for the company and period reference."""

    code: str = "PERIOD_NOT_FOUND"

    def __init__(self, company_id: str, fiscal_period: str):
        self.company_id = company_id
        self.fiscal_period = fiscal_period
        super().__init__(
            f"Fiscal period {fiscal_period} not found for company {company_id}"
        )


class PeriodNotOpenError(PeriodError):
    """Fiscal period is not Open."""

    code: str = "PERIOD_NOT_OPEN"

    def __init__(self, company_id: str, fiscal_period: str, status: str):
        self.company_id = company_id
        self.fiscal_period = fiscal_period
        self.status = status
        super().__init__(
            f"Fiscal period {fiscal_period} is {status}, not Open"
        )


class ClosedPeriodError(PeriodNotOpenError):
    """Fiscal period stopped being Open between approval and posting."""

    code: str = "PERIOD_CLOSED"


class PeriodAlreadyExistsError(PeriodError):
    """A period with the same year and number already exists."""

    code: str = "PERIOD_ALREADY_EXISTS"

    def __init__(self, company_id: str, fiscal_period: str):
        self.company_id = company_id
        self.fiscal_period = fiscal_period
        super().__init__(
            f"Fiscal period {fiscal_period} already exists for company {company_id}"
        )


class InvalidPeriodTransitionError(PeriodError):
    """Fiscal period status change is not allowed."""

    code: str = "INVALID_PERIOD_TRANSITION"

    def __init__(self, fiscal_period: str, from_status: str, to_status: str):
        self.fiscal_period = fiscal_period
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(
            f"Fiscal period {fiscal_period} cannot move from {from_status} to {to_status}"
        )


# Account exceptions


class AccountError(LedgerKernelError):
    """Base exception for chart-of-accounts errors."""

    code: str = "ACCOUNT_ERROR"


class AccountNotFoundError(AccountError):
    """Account with given ID was not found."""

    code: str = "ACCOUNT_NOT_FOUND"

    def __init__(self, account_id: str):
        self.account_id = account_id
        super().__init__(f"Account not found: {account_id}")


class AccountNotActiveError(AccountError):
    """Account is deactivated and cannot be used on new lines."""

    code: str = "ACCOUNT_NOT_ACTIVE"

    def __init__(self, account_id: str, account_number: str):
        self.account_id = account_id
        self.account_number = account_number
        super().__init__(f"Account {account_number} is not active")


class AccountNotPostableError(AccountError):
    """Account is a summary node and cannot receive lines."""

    code: str = "ACCOUNT_NOT_POSTABLE"

    def __init__(self, account_id: str, account_number: str):
        self.account_id = account_id
        self.account_number = account_number
        super().__init__(f"Account {account_number} is not postable")


class AccountNumberAlreadyExistsError(AccountError):
    """Account number already used within the company."""

    code: str = "ACCOUNT_NUMBER_EXISTS"

    def __init__(self, account_number: str, company_id: str):
        self.account_number = account_number
        self.company_id = company_id
        super().__init__(
            f"Account number {account_number} already exists in company {company_id}"
        )


class ParentAccountNotFoundError(AccountError):
    """Referenced parent account does not exist."""

    code: str = "PARENT_ACCOUNT_NOT_FOUND"

    def __init__(self, parent_account_id: str):
        self.parent_account_id = parent_account_id
        super().__init__(f"Parent account not found: {parent_account_id}")


class ParentAccountDifferentCompanyError(AccountError):
    """Parent account belongs to a different company."""

    code: str = "PARENT_DIFFERENT_COMPANY"

    def __init__(self, account_company_id: str, parent_company_id: str):
        self.account_company_id = account_company_id
        self.parent_company_id = parent_company_id
        super().__init__(
            f"Parent account belongs to company {parent_company_id}, "
            f"not {account_company_id}"
        )


class CircularAccountReferenceError(AccountError):
    """Re-parenting would make an account its own ancestor."""

    code: str = "CIRCULAR_REFERENCE"

    def __init__(self, account_id: str, parent_account_id: str):
        self.account_id = account_id
        self.parent_account_id = parent_account_id
        super().__init__(
            f"Account {account_id} cannot have {parent_account_id} as parent"
        )


class HasActiveChildAccountsError(AccountError):
    """Account still has active children."""

    code: str = "HAS_ACTIVE_CHILDREN"

    def __init__(self, account_id: str, child_count: int):
        self.account_id = account_id
        self.child_count = child_count
        super().__init__(
            f"Account {account_id} has {child_count} active child account(s)"
        )


# Organization exceptions


class OrganizationError(LedgerKernelError):
    """Base exception for organization, company and membership errors."""

    code: str = "ORGANIZATION_ERROR"


class OrganizationNotFoundError(OrganizationError):
    """Organization with given ID was not found."""

    code: str = "ORGANIZATION_NOT_FOUND"

    def __init__(self, organization_id: str):
        self.organization_id = organization_id
        super().__init__(f"Organization not found: {organization_id}")


class CompanyNotFoundError(OrganizationError):
    """Company does not exist within the organization."""

    code: str = "COMPANY_NOT_FOUND"

    def __init__(self, company_id: str):
        self.company_id = company_id
        super().__init__(f"Company not found: {company_id}")


class MembershipNotFoundError(OrganizationError):
    """User has no active membership in the organization."""

    code: str = "MEMBERSHIP_NOT_FOUND"

    def __init__(self, organization_id: str, user_id: str):
        self.organization_id = organization_id
        self.user_id = user_id
        super().__init__(
            f"User {user_id} is not a member of organization {organization_id}"
        )


class MembershipAlreadyExistsError(OrganizationError):
    """User is already a member of the organization."""

    code: str = "MEMBERSHIP_ALREADY_EXISTS"

    def __init__(self, organization_id: str, user_id: str):
        self.organization_id = organization_id
        self.user_id = user_id
        super().__init__(
            f"User {user_id} is already a member of organization {organization_id}"
        )


# Authorization exceptions


class AuthorizationError(LedgerKernelError):
    """Base exception for authorization decisions."""

    code: str = "AUTHORIZATION_ERROR"


class PermissionDeniedError(AuthorizationError):
    """Policy evaluation (or the RBAC fallback) denied the action."""

    code: str = "PERMISSION_DENIED"

    def __init__(
        self,
        action: str,
        resource_type: str,
        reason: str,
        policy_id: str | None = None,
    ):
        self.action = action
        self.resource_type = resource_type
        self.reason = reason
        self.policy_id = policy_id
        super().__init__(f"Permission denied for {action}: {reason}")


# Policy exceptions


class PolicyError(LedgerKernelError):
    """Base exception for policy administration errors."""

    code: str = "POLICY_ERROR"


class PolicyNotFoundError(PolicyError):
    """Policy does not exist in the caller's organization."""

    code: str = "POLICY_NOT_FOUND"

    def __init__(self, policy_id: str):
        self.policy_id = policy_id
        super().__init__(f"Policy not found: {policy_id}")


class PolicyPriorityValidationError(PolicyError):
    """User policy priority falls in the reserved system band."""

    code: str = "POLICY_PRIORITY_INVALID"

    def __init__(self, priority: int, max_allowed: int = 899):
        self.priority = priority
        self.max_allowed = max_allowed
        super().__init__(
            f"Policy priority {priority} is not allowed: user policies must "
            f"use priority 0-{max_allowed}"
        )


class SystemPolicyCannotBeModifiedError(PolicyError):
    """System policies are immutable sentinels."""

    code: str = "SYSTEM_POLICY_IMMUTABLE"

    def __init__(self, policy_id: str, policy_name: str, operation: str):
        self.policy_id = policy_id
        self.policy_name = policy_name
        self.operation = operation
        super().__init__(
            f"System policy '{policy_name}' cannot be {operation}"
        )


class InvalidResourceTypeError(PolicyError):
    """Resource type is not one of the known policy resource types."""

    code: str = "INVALID_RESOURCE_TYPE"

    def __init__(self, resource_type: str, valid_types: tuple[str, ...]):
        self.resource_type = resource_type
        self.valid_types = valid_types
        super().__init__(
            f"Invalid resource type '{resource_type}'. "
            f"Valid types: {', '.join(valid_types)}"
        )
