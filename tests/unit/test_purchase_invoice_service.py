"""
Unit tests - inkoop: documentinbox met (nep-)AI-extractie en boeken van inkoopfacturen.
"""

import json
from datetime import date, timedelta
from decimal import Decimal, InvalidOperation
from pathlib import Path
from types import SimpleNamespace

import pytest

from zzpboek.application.dto.invoice_dto import PurchaseInvoiceBookDTO
from zzpboek.application.services.purchase_invoice_service import PurchaseInvoiceService
from zzpboek.core.config import AISettings
from zzpboek.domain.exceptions import BookkeepingError, DuplicateError, ExternalServiceError
from zzpboek.infrastructure.ai.invoice_extractor import InvoiceExtractor
from zzpboek.infrastructure.database.models import Contact, JournalEntry


@pytest.fixture
def service(db_session, fake_extractor):
    return PurchaseInvoiceService(db_session, extractor=fake_extractor)


def invoice_dto(accounts, **overrides) -> PurchaseInvoiceBookDTO:
    data = dict(
        supplier_name="KPN B.V.",
        invoice_number="KPN-2024-0042",
        invoice_date=date(2024, 3, 15),
        total_amount=Decimal("121.00"),
        vat_amount=Decimal("21.00"),
        expense_account_id=accounts["6200"].id,
    )
    data.update(overrides)
    return PurchaseInvoiceBookDTO(**data)


class TestInbox:
    def test_upload_stores_file_and_extracts(self, service, fake_extractor, supplier):
        item = service.upload("factuur kpn.png", "image/png", b"\x89PNG data")

        assert item.status == "Review_Needed"
        assert item.extracted_data["invoice_number"] == "KPN-2024-0042"
        assert Path(item.file_path).read_bytes() == b"\x89PNG data"
        assert Path(item.file_path).name.endswith("_factuur_kpn.png")
        assert fake_extractor.calls == [("image/png", 9, 1)]

    def test_extraction_failure_marks_error(self, service, fake_extractor):
        fake_extractor.error = ExternalServiceError("AI-service niet bereikbaar")
        item = service.upload("bon.jpg", "image/jpeg", b"jpg")

        assert item.status == "Error"
        assert "niet bereikbaar" in item.error_message

    def test_unreadable_amount_in_answer_marks_error(self, db_session):
        answer = json.dumps({"invoice_number": "X-1", "total_amount": "honderd", "vat_amount": "21,00"})

        def transport(url, json=None, headers=None, timeout=None):
            return SimpleNamespace(
                status_code=200, text=answer, json=lambda: {"choices": [{"message": {"content": answer}}]}
            )

        extractor = InvoiceExtractor(AISettings(api_key="k"), transport, sleep=lambda _: None)
        service = PurchaseInvoiceService(db_session, extractor=extractor)

        item = service.upload("bon.png", "image/png", b"\x89PNG")

        assert item.status == "Error"
        assert "total_amount" in item.error_message
        assert [i.status for i in service.list_inbox()] == ["Error"]

    def test_arithmetic_failure_marks_error(self, service, fake_extractor):
        fake_extractor.error = InvalidOperation("ConversionSyntax")
        item = service.upload("bon.jpg", "image/jpeg", b"jpg")
        assert item.status == "Error"

    @pytest.mark.parametrize(
        "mime_type, data",
        [("text/plain", b"hallo"), ("image/png", b"")],
    )
    def test_rejected_uploads(self, service, mime_type, data):
        with pytest.raises(BookkeepingError):
            service.upload("x", mime_type, data)

    def test_delete_removes_file(self, service):
        item = service.upload("bon.jpg", "image/jpeg", b"jpg")
        path = Path(item.file_path)

        service.delete_inbox_item(item.id)

        assert not path.exists()
        assert service.list_inbox() == []


class TestBookInvoice:
    """Kosten en voorbelasting debet, crediteuren credit."""

    def test_booking_lines(self, service, accounts, supplier):
        invoice = service.book_invoice(invoice_dto(accounts, contact_id=supplier.id))

        assert invoice.status == "Pending"
        assert invoice.net_amount == Decimal("100.00")
        assert invoice.vat_percentage == Decimal("21.00")

        entry = service.db.get(JournalEntry, invoice.journal_entry_id)
        assert entry.status == "Final"
        assert entry.memoriaal_type == "Inkoopfactuur"
        assert [(l.account_id, l.debit, l.credit) for l in entry.lines] == [
            (accounts["6200"].id, Decimal("100.00"), Decimal("0.00")),
            (accounts["1450"].id, Decimal("21.00"), Decimal("0.00")),
            (accounts["1600"].id, Decimal("0.00"), Decimal("121.00")),
        ]

    def test_new_supplier_created_from_name(self, service, accounts, db_session):
        invoice = service.book_invoice(invoice_dto(accounts, supplier_name="Adobe Systems"))

        contact = db_session.get(Contact, invoice.contact_id)
        assert contact.company_name == "Adobe Systems"
        assert contact.relation_type == "Supplier"
        assert contact.default_ledger_account_id == accounts["6200"].id

    def test_existing_supplier_matched_by_name(self, service, accounts, supplier):
        invoice = service.book_invoice(invoice_dto(accounts, supplier_name="kpn b.v."))
        assert invoice.contact_id == supplier.id

    def test_duplicate_invoice_number(self, service, accounts, supplier):
        service.book_invoice(invoice_dto(accounts, contact_id=supplier.id))
        with pytest.raises(DuplicateError):
            service.book_invoice(invoice_dto(accounts, contact_id=supplier.id))

    def test_revenue_account_rejected(self, service, accounts, supplier):
        with pytest.raises(BookkeepingError):
            service.book_invoice(invoice_dto(accounts, contact_id=supplier.id, expense_account_id=accounts["8000"].id))

    def test_inbox_item_marked_booked(self, service, accounts, supplier):
        item = service.upload("kpn.png", "image/png", b"png")
        invoice = service.book_invoice(invoice_dto(accounts, contact_id=supplier.id, inbox_id=item.id))

        assert item.status == "Booked"
        assert item.purchase_invoice_id == invoice.id
        with pytest.raises(BookkeepingError):
            service.delete_inbox_item(item.id)

    def test_overdue_and_paid(self, service, accounts, supplier):
        invoice = service.book_invoice(
            invoice_dto(accounts, contact_id=supplier.id, due_date=date.today() - timedelta(days=1))
        )
        assert [i.status for i in service.list_invoices()] == ["Overdue"]

        service.mark_paid(invoice.id, date(2024, 4, 1))
        assert invoice.status == "Paid"
        with pytest.raises(BookkeepingError):
            service.mark_paid(invoice.id)
