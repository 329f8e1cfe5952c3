"""
Unit tests - LedgerService tegen een SQLite-database met standaard rekeningschema.
"""

from datetime import date
from decimal import Decimal

import pytest

from zzpboek.application.dto.ledger_dto import AccountCreateDTO, JournalEntryUpdateDTO, JournalLineCreateDTO
from zzpboek.application.services.ledger_service import LedgerService
from zzpboek.domain.entities import JournalLine
from zzpboek.domain.exceptions import (
    BookkeepingError,
    DuplicateError,
    EntryLockedError,
    NotFoundError,
    UnbalancedEntryError,
)
from zzpboek.infrastructure.database.models import AuditLog, JournalEntry


@pytest.fixture
def service(db_session):
    return LedgerService(db_session)


class TestAccounts:
    def test_create_infers_tax_category(self, service):
        account = service.create_account(AccountCreateDTO(code="5100", name="Huur kantoor", account_type="Expense"))
        assert account.tax_category == "Huisvestingskosten"
        assert account.is_system is False

    def test_duplicate_code(self, service):
        with pytest.raises(DuplicateError):
            service.create_account(AccountCreateDTO(code="1100", name="Tweede bank", account_type="Asset"))

    def test_system_account_is_protected(self, service, accounts):
        with pytest.raises(BookkeepingError):
            service.deactivate_account(accounts["1100"].id)
        with pytest.raises(BookkeepingError):
            service.delete_account(accounts["1300"].id)

    def test_account_with_lines_cannot_be_deleted(self, service, accounts, book):
        book(accounts["6200"], accounts["1100"], "50.00")
        with pytest.raises(BookkeepingError):
            service.delete_account(accounts["6200"].id)

        service.deactivate_account(accounts["6200"].id)
        assert accounts["6200"].is_active is False

    def test_list_sorted_numerically(self, service):
        codes = [a.code for a in service.list_accounts(account_type="Revenue")]
        assert codes == sorted(codes, key=int)

    def test_bulk_infer_dry_run(self, service, accounts, db_session):
        accounts["6200"].tax_category = None
        db_session.commit()

        result = service.bulk_infer_tax_categories(dry_run=True)
        suggestion = next(s for s in result["suggestions"] if s["code"] == "6200")
        assert result["dry_run"] is True
        assert suggestion["suggested_category"] is None
        assert result["unresolved"] >= 1
        assert accounts["6200"].tax_category is None


class TestEntries:
    """Concept mag uit balans; definitief niet, en definitief is onveranderlijk."""

    def test_draft_may_be_unbalanced(self, service, accounts):
        entry = service.create_entry(
            date(2024, 3, 1),
            "Concept",
            [JournalLine(account_id=accounts["1100"].id, debit=Decimal("100"))],
        )
        assert entry.status == "Draft"
        assert service.balance_check(entry.id)["is_balanced"] is False

    def test_final_must_balance(self, service, accounts):
        with pytest.raises(UnbalancedEntryError):
            service.create_entry(
                date(2024, 3, 1),
                "Uit balans",
                [
                    JournalLine(account_id=accounts["1100"].id, debit=Decimal("100")),
                    JournalLine(account_id=accounts["8000"].id, credit=Decimal("90")),
                ],
                status="Final",
            )

    def test_sub_cent_lines_are_balanced_after_rounding(self, service, accounts, db_session):
        lines = [JournalLine(account_id=accounts["6200"].id, debit=Decimal("0.005")) for _ in range(10)]
        lines.append(JournalLine(account_id=accounts["1100"].id, credit=Decimal("0.05")))

        with pytest.raises(UnbalancedEntryError):
            service.create_entry(date(2024, 3, 1), "Centen", lines, status="Final")
        assert db_session.query(JournalEntry).count() == 0

    def test_stored_final_entry_stays_balanced(self, service, accounts):
        entry = service.create_entry(
            date(2024, 3, 1),
            "Afronding",
            [
                JournalLine(account_id=accounts["6200"].id, debit=Decimal("33.333")),
                JournalLine(account_id=accounts["6200"].id, debit=Decimal("66.667")),
                JournalLine(account_id=accounts["1100"].id, credit=Decimal("100.00")),
            ],
            status="Final",
        )
        check = service.balance_check(entry.id)
        assert check["is_balanced"] is True
        assert [line.debit for line in entry.lines] == [Decimal("33.33"), Decimal("66.67"), Decimal("0.00")]

    def test_unknown_or_inactive_account(self, service, accounts, db_session):
        from uuid import uuid4

        with pytest.raises(NotFoundError):
            service.create_entry(date(2024, 3, 1), "X", [JournalLine(account_id=uuid4(), debit=Decimal("1"))])

        accounts["6210"].is_active = False
        db_session.commit()
        with pytest.raises(BookkeepingError):
            service.create_entry(date(2024, 3, 1), "X", [JournalLine(account_id=accounts["6210"].id, debit=Decimal("1"))])

    def test_finalize_and_lock(self, service, accounts):
        entry = service.create_entry(
            date(2024, 3, 1),
            "Verkoop",
            [
                JournalLine(account_id=accounts["1300"].id, debit=Decimal("121")),
                JournalLine(account_id=accounts["8000"].id, credit=Decimal("100")),
                JournalLine(account_id=accounts["1500"].id, credit=Decimal("21")),
            ],
        )
        service.finalize_entry(entry.id)
        assert entry.status == "Final"
        assert entry.finalized_at is not None

        with pytest.raises(EntryLockedError):
            service.update_entry(entry.id, JournalEntryUpdateDTO(description="Gewijzigd"))
        with pytest.raises(EntryLockedError):
            service.delete_entry(entry.id)
        with pytest.raises(EntryLockedError):
            service.finalize_entry(entry.id)

    def test_update_draft_replaces_lines(self, service, accounts):
        entry = service.create_entry(
            date(2024, 3, 1), "Concept", [JournalLine(account_id=accounts["1100"].id, debit=Decimal("10"))]
        )
        service.update_entry(entry.id, JournalEntryUpdateDTO(lines=[
            JournalLineCreateDTO(account_id=accounts["6200"].id, debit=Decimal("25")),
            JournalLineCreateDTO(account_id=accounts["1100"].id, credit=Decimal("25")),
        ]))
        assert [(l.line_number, l.debit, l.credit) for l in entry.lines] == [
            (1, Decimal("25.00"), Decimal("0.00")),
            (2, Decimal("0.00"), Decimal("25.00")),
        ]
        assert service.balance_check(entry.id)["is_balanced"] is True

    def test_delete_draft(self, service, accounts, db_session):
        entry = service.create_entry(
            date(2024, 3, 1), "Concept", [JournalLine(account_id=accounts["1100"].id, debit=Decimal("10"))]
        )
        service.delete_entry(entry.id)
        assert db_session.query(JournalEntry).count() == 0

    def test_reverse(self, service, accounts, book, db_session):
        original = book(accounts["6200"], accounts["1100"], "50.00", description="KPN")
        reversal = service.reverse_entry(original.id, date(2024, 4, 1))

        assert reversal.status == "Final"
        assert reversal.memoriaal_type == "Correctie"
        assert reversal.description == "Correctie: KPN"
        assert reversal.reference == str(original.id)[:8]
        assert [(l.debit, l.credit) for l in reversal.lines] == [
            (Decimal("0.00"), Decimal("50.00")),
            (Decimal("50.00"), Decimal("0.00")),
        ]
        actions = {a.action for a in db_session.query(AuditLog).all()}
        assert {"CREATE", "REVERSE"} <= actions

    def test_audit_trail_records_role(self, db_session, accounts):
        LedgerService(db_session, user_role="client").create_entry(
            date(2024, 3, 1), "Concept", [JournalLine(account_id=accounts["1100"].id, debit=Decimal("10"))]
        )
        log = db_session.query(AuditLog).one()
        assert log.action == "CREATE"
        assert log.user_role == "client"
        assert log.entity_type == "JournalEntry"


class TestAccountLedger:
    def test_running_balance_from_final_entries(self, service, accounts, book):
        bank = accounts["1100"]
        book(bank, accounts["8000"], "1000.00", entry_date=date(2024, 1, 15))
        book(bank, accounts["8000"], "500.00", entry_date=date(2024, 3, 1))
        book(accounts["6200"], bank, "200.00", entry_date=date(2024, 3, 10))
        service.create_entry(date(2024, 3, 5), "Concept", [JournalLine(account_id=bank.id, debit=Decimal("999"))])

        ledger = service.account_ledger(bank.id, start_date=date(2024, 2, 1), end_date=date(2024, 3, 31))

        assert ledger["opening_balance"] == Decimal("1000.00")
        assert [l["balance"] for l in ledger["lines"]] == [Decimal("1500.00"), Decimal("1300.00")]
        assert ledger["closing_balance"] == Decimal("1300.00")
