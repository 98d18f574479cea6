"""
Sequence allocation tests.
"""

from uuid import uuid4

from ledger_kernel.services import EntryNumberFormat, SequenceService


class TestSequenceService:

    def test_first_value_is_one(self, session):
        sequences = SequenceService(session)
        assert sequences.current_value("test:fresh") is None
        assert sequences.next_value("test:fresh") == 1
        assert sequences.current_value("test:fresh") == 1

    def test_values_increase(self, session):
        sequences = SequenceService(session)
        values = [sequences.next_value("test:increasing") for _ in range(5)]
        assert values == [1, 2, 3, 4, 5]

    def test_sequences_are_independent(self, session):
        sequences = SequenceService(session)
        sequences.next_value("test:a")
        sequences.next_value("test:a")
        assert sequences.next_value("test:b") == 1

    def test_entry_numbers_per_company_and_year(self, session):
        sequences = SequenceService(session)
        company_a, company_b = uuid4(), uuid4()

        assert sequences.next_entry_number(company_a, 2024) == "JE-2024-0001"
        assert sequences.next_entry_number(company_a, 2024) == "JE-2024-0002"
        assert sequences.next_entry_number(company_a, 2025) == "JE-2025-0001"
        assert sequences.next_entry_number(company_b, 2024) == "JE-2024-0001"

    def test_rolled_back_allocation_is_reused(self, session):
        sequences = SequenceService(session)
        sequences.next_value("test:rollback")

        savepoint = session.begin_nested()
        assert sequences.next_value("test:rollback") == 2
        savepoint.rollback()

        assert sequences.next_value("test:rollback") == 2


class TestEntryNumberFormat:

    def test_default_format(self):
        assert EntryNumberFormat().format(2024, 7) == "JE-2024-0007"

    def test_custom_prefix_and_width(self):
        assert EntryNumberFormat(prefix="GJ", width=6).format(2025, 42) == "GJ-2025-000042"

    def test_width_is_a_minimum(self):
        assert EntryNumberFormat(width=2).format(2024, 1234) == "JE-2024-1234"
