"""
Unit tests - BankService: importeren, afletteren, boeken en ongedaan maken.
"""

from datetime import date
from decimal import Decimal

import pytest

from zzpboek.application.dto.bank_dto import BankRuleCreateDTO
from zzpboek.application.dto.invoice_dto import PurchaseInvoiceBookDTO
from zzpboek.application.services.bank_service import BankService
from zzpboek.application.services.purchase_invoice_service import PurchaseInvoiceService
from zzpboek.domain.exceptions import BookkeepingError, EntryLockedError
from zzpboek.infrastructure.database.models import BankTransaction, Contact, JournalEntry, JournalLine

STATEMENT = """\
Datum;Omschrijving;Bedrag;Tegenrekening;Naam
2024-03-01;Factuur 2024-001;121,00;NL91ABNA0417164300;Bakkerij De Korenschoof
2024-03-05;KPN abonnement;-45,50;NL20INGB0001234567;KPN B.V.
2024-03-07;BEA 12:00 SHELL UTRECHT 12345;-60,00;;Shell
2024-03-09;Onbekend;-10,00;;
"""


@pytest.fixture
def service(db_session):
    return BankService(db_session)


@pytest.fixture
def transactions(service, db_session, customer, supplier):
    service.import_file(STATEMENT.encode("utf-8"))
    return {t.description: t for t in db_session.query(BankTransaction).all()}


def account_balance(db_session, account) -> Decimal:
    lines = (
        db_session.query(JournalLine)
        .join(JournalEntry, JournalLine.journal_entry_id == JournalEntry.id)
        .filter(JournalLine.account_id == account.id, JournalEntry.status == "Final")
        .all()
    )
    return sum((l.debit - l.credit for l in lines), Decimal("0"))


class TestImport:
    def test_import_and_deduplicate(self, service, db_session):
        first = service.import_file(STATEMENT.encode("utf-8"))
        second = service.import_file(STATEMENT)

        assert first["source_format"] == "CSV"
        assert first["imported"] == 4
        assert second["imported"] == 0
        assert second["duplicates"] == 4
        assert db_session.query(BankTransaction).count() == 4

    def test_transaction_type_and_status(self, transactions):
        income = transactions["Factuur 2024-001"]
        assert income.transaction_type == "Credit"
        assert income.status == "Unmatched"
        assert income.amount == Decimal("121.00")
        assert transactions["KPN abonnement"].transaction_type == "Debit"

    def test_latin1_file(self, service):
        content = "Datum;Omschrijving;Bedrag\n2024-03-01;Café de Kroon;-12,50\n".encode("latin-1")
        assert service.import_file(content)["imported"] == 1


class TestAutoMatch:
    """Eerst relatie (IBAN, naam), dan bankregels."""

    def test_contacts_then_rules(self, service, transactions, accounts, customer, supplier):
        service.create_rule(BankRuleCreateDTO(keyword="shell", target_account_id=accounts["4000"].id))

        result = service.auto_match()

        assert result == {"processed": 4, "matched_by_contact": 2, "matched_by_rule": 1, "unmatched": 1}
        income = transactions["Factuur 2024-001"]
        assert income.status == "Matched"
        assert income.contact_id == customer.id
        assert transactions["KPN abonnement"].contact_id == supplier.id
        assert transactions["Onbekend"].status == "Unmatched"

        proposal = service.ledger.get_entry(income.journal_entry_id)
        assert proposal.status == "Draft"
        assert proposal.memoriaal_type == "Bank"
        assert [(l.account_id, l.debit, l.credit) for l in proposal.lines] == [
            (accounts["1100"].id, Decimal("121.00"), Decimal("0.00")),
            (accounts["8000"].id, Decimal("0.00"), Decimal("121.00")),
        ]

    def test_inactive_contact_account_falls_back_to_rules(self, service, transactions, accounts, db_session):
        db_session.add(Contact(company_name="Shell", relation_type="Supplier",
                               default_ledger_account_id=accounts["6210"].id))
        accounts["6210"].is_active = False
        db_session.commit()
        service.create_rule(BankRuleCreateDTO(keyword="shell", target_account_id=accounts["4000"].id))

        result = service.auto_match()

        assert result == {"processed": 4, "matched_by_contact": 2, "matched_by_rule": 1, "unmatched": 1}
        shell = transactions["BEA 12:00 SHELL UTRECHT 12345"]
        assert shell.status == "Matched"
        assert shell.contact_id is None

    def test_inactive_rule_target_leaves_only_that_transaction(self, service, transactions, accounts, db_session):
        service.create_rule(BankRuleCreateDTO(keyword="shell", target_account_id=accounts["4000"].id))
        accounts["4000"].is_active = False
        db_session.commit()

        result = service.auto_match()

        assert result["matched_by_contact"] == 2
        assert result["matched_by_rule"] == 0
        assert transactions["BEA 12:00 SHELL UTRECHT 12345"].status == "Unmatched"
        assert transactions["KPN abonnement"].status == "Matched"
        assert db_session.query(JournalEntry).count() == 2

    def test_short_contra_name_does_not_match_longer_company(self, service, customer, supplier, db_session):
        service.import_file("Datum;Omschrijving;Bedrag;Tegenrekening;Naam\n2024-03-11;Betaling;-5,00;;B\n")
        transaction = db_session.query(BankTransaction).one()

        assert service.match_contact(transaction) is None

    def test_confirm_finalizes_proposal(self, service, transactions):
        service.auto_match()
        income = service.confirm(transactions["Factuur 2024-001"].id)

        assert income.status == "Booked"
        assert service.ledger.get_entry(income.journal_entry_id).status == "Final"
        with pytest.raises(EntryLockedError):
            service.unbook(income.id)

    def test_unbook_removes_proposal(self, service, transactions, db_session):
        service.auto_match()
        kpn = transactions["KPN abonnement"]
        entry_id = kpn.journal_entry_id

        service.unbook(kpn.id)

        assert kpn.status == "Unmatched"
        assert kpn.journal_entry_id is None
        assert kpn.contact_id is None
        assert db_session.get(JournalEntry, entry_id) is None

    def test_suggest_rule(self, service, transactions):
        suggestion = service.suggest_rule(transactions["BEA 12:00 SHELL UTRECHT 12345"].id)
        assert suggestion["keyword"] == "Shell"
        assert suggestion["cleaned_description"] == "SHELL UTRECHT"


class TestBooking:
    def test_direct_booking(self, service, transactions, accounts):
        shell = service.book(transactions["BEA 12:00 SHELL UTRECHT 12345"].id, accounts["4000"].id, "Tanken")

        assert shell.status == "Booked"
        entry = service.ledger.get_entry(shell.journal_entry_id)
        assert entry.description == "Tanken"
        assert [(l.account_id, l.debit) for l in entry.lines][0] == (accounts["4000"].id, Decimal("60.00"))

        with pytest.raises(BookkeepingError):
            service.book(shell.id, accounts["4000"].id)

    def test_ignore(self, service, transactions, accounts):
        ignored = service.ignore(transactions["Onbekend"].id)
        assert ignored.status == "Ignored"
        with pytest.raises(BookkeepingError):
            service.book(ignored.id, accounts["4000"].id)

    def test_via_relation_without_invoice(self, service, transactions, customer, accounts, db_session):
        income = service.book_via_relation(transactions["Factuur 2024-001"].id, customer.id)

        assert income.status == "Booked"
        assert income.contact_id == customer.id
        entries = db_session.query(JournalEntry).filter(JournalEntry.status == "Final").all()
        assert sorted(e.memoriaal_type for e in entries) == ["Bank", "Verkoopfactuur"]
        assert account_balance(db_session, accounts["1300"]) == Decimal("0")
        assert account_balance(db_session, accounts["1100"]) == Decimal("121.00")
        assert account_balance(db_session, accounts["8000"]) == Decimal("-121.00")

    def test_via_relation_settles_open_invoice(self, service, transactions, supplier, accounts, db_session):
        invoice = PurchaseInvoiceService(db_session).book_invoice(PurchaseInvoiceBookDTO(
            contact_id=supplier.id,
            invoice_number="KPN-2024-03",
            invoice_date=date(2024, 3, 1),
            total_amount=Decimal("45.50"),
            vat_amount=Decimal("7.90"),
            expense_account_id=accounts["6200"].id,
        ))

        service.book_via_relation(transactions["KPN abonnement"].id, supplier.id)

        assert invoice.status == "Paid"
        assert invoice.paid_at == date(2024, 3, 5)
        assert db_session.query(JournalEntry).count() == 2
        assert account_balance(db_session, accounts["1600"]) == Decimal("0")

    def test_expense_via_relation_needs_account(self, service, transactions, db_session):
        from zzpboek.infrastructure.database.models import Contact

        shell = Contact(company_name="Shell", relation_type="Supplier")
        db_session.add(shell)
        db_session.commit()

        with pytest.raises(BookkeepingError):
            service.book_via_relation(transactions["BEA 12:00 SHELL UTRECHT 12345"].id, shell.id)
