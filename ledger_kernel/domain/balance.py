"""
Balance validator -- double-entry check in the functional currency.

Responsibility:
    Confirms that the functional-currency debits of a line set equal its
    functional-currency credits.  Natural-currency amounts are ignored:
    a multi-currency entry balances once converted.

Architecture position:
    Kernel > Domain -- pure function, zero I/O.  Called by
    JournalEntryService on create and on full line replacement.

Invariants enforced:
    - Exact Decimal arithmetic.  A missing amount counts as zero.
    - Fails on the first check with both totals reported as strings.

Failure modes:
    - UnbalancedEntryError(debits, credits, currency).
"""

from __future__ import annotations

from decimal import Decimal
from typing import Iterable, Protocol

from ledger_kernel.exceptions import UnbalancedEntryError

_ZERO = Decimal("0")


class FunctionalAmounts(Protocol):
    """Anything carrying functional-currency debit/credit amounts."""

    functional_debit_amount: Decimal | None
    functional_credit_amount: Decimal | None


def sum_debits(lines: Iterable[FunctionalAmounts]) -> Decimal:
    return sum((line.functional_debit_amount or _ZERO for line in lines), _ZERO)


def sum_credits(lines: Iterable[FunctionalAmounts]) -> Decimal:
    return sum((line.functional_credit_amount or _ZERO for line in lines), _ZERO)


def validate_balance(
    lines: Iterable[FunctionalAmounts], functional_currency: str
) -> None:
    """Raise UnbalancedEntryError unless functional debits equal credits.

    Preconditions: amounts are Decimal or None.
    Postconditions: returns None iff sum(debits) == sum(credits).
    """
    materialized = list(lines)
    debits = sum_debits(materialized)
    credits = sum_credits(materialized)
    if debits != credits:
        raise UnbalancedEntryError(
            debits=str(debits),
            credits=str(credits),
            currency=functional_currency,
        )
