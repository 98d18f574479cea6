"""
SequenceService -- gap-safe number allocation via locked counter rows.

Responsibility:
    Hands out strictly increasing integers per named sequence and formats
    journal entry numbers (``JE-2024-0001``) from them.  One counter row per
    (company, fiscal year) keeps entry numbering independent across
    companies and years.

Architecture position:
    Kernel > Services -- imperative shell.  Called by JournalEntryService
    when an entry or a reversal is created.

Invariants enforced:
    - The counter row is the sole source of the next value; the
      aggregate-max-plus-one query is never used.
    - The increment is transactional: a rolled-back creation returns its
      number to the sequence.

Failure modes:
    - IntegrityError on a concurrent first use of a sequence: handled by
      rolling back a savepoint and re-reading the row the other
      transaction created.

Audit relevance:
    Allocations are logged at DEBUG with the sequence name and value.
"""

from dataclasses import dataclass
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.sequence import SequenceCounter

logger = get_logger("services.sequence")


@dataclass(frozen=True)
class EntryNumberFormat:
    """Shape of journal entry numbers: ``{prefix}-{year}-{n}`` zero-padded to width."""

    prefix: str = "JE"
    width: int = 4

    def format(self, fiscal_year: int, value: int) -> str:
        return f"{self.prefix}-{fiscal_year}-{value:0{self.width}d}"


def entry_sequence_name(company_id: UUID, fiscal_year: int) -> str:
    return f"journal_entry:{company_id}:{fiscal_year}"


class SequenceService:
    """
    Transactional sequence numbers.

    Usage:
        with session_scope() as session:
            number = SequenceService(session).next_entry_number(company_id, 2024)
            # Rolled back with the transaction if the caller fails later
    """

    def __init__(self, session: Session):
        self._session = session

    def _locked_counter(self, sequence_name: str) -> SequenceCounter | None:
        # populate_existing refreshes a counter already in the identity map
        # without expiring the caller's pending changes.
        return self._session.execute(
            select(SequenceCounter)
            .where(SequenceCounter.name == sequence_name)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def next_value(self, sequence_name: str) -> int:
        """
        Lock (or create) the counter row, increment it and return the new value.

        Postconditions:
            - The result is > 0 and greater than every value previously
              returned for ``sequence_name`` in committed transactions.
        """
        counter = self._locked_counter(sequence_name)

        if counter is None:
            savepoint = self._session.begin_nested()
            try:
                counter = SequenceCounter(name=sequence_name, current_value=1)
                self._session.add(counter)
                self._session.flush()
                savepoint.commit()
                logger.debug(
                    "sequence_allocated",
                    extra={"sequence_name": sequence_name, "value": 1},
                )
                return 1
            except IntegrityError:
                logger.debug(
                    "sequence_counter_race_retry",
                    extra={"sequence_name": sequence_name},
                )
                savepoint.rollback()
                counter = self._locked_counter(sequence_name)
                if counter is None:
                    raise

        counter.current_value += 1
        self._session.flush()
        logger.debug(
            "sequence_allocated",
            extra={"sequence_name": sequence_name, "value": counter.current_value},
        )
        return counter.current_value

    def current_value(self, sequence_name: str) -> int | None:
        """Current value without incrementing, or None if never used."""
        counter = self._session.execute(
            select(SequenceCounter).where(SequenceCounter.name == sequence_name)
        ).scalar_one_or_none()
        return counter.current_value if counter else None

    def next_entry_number(
        self,
        company_id: UUID,
        fiscal_year: int,
        number_format: EntryNumberFormat | None = None,
    ) -> str:
        """Next journal entry number for the company and fiscal year."""
        number_format = number_format or EntryNumberFormat()
        value = self.next_value(entry_sequence_name(company_id, fiscal_year))
        return number_format.format(fiscal_year, value)
