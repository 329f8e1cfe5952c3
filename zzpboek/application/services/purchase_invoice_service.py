"""
Inkoop: documentinbox, AI-extractie en het boeken van inkoopfacturen.
"""

from datetime import date, datetime
from pathlib import Path
from uuid import UUID, uuid4

from sqlalchemy import or_
from sqlalchemy.orm import Session

from zzpboek.application.services.audit import record_audit
from zzpboek.application.services.ledger_service import LedgerService, _enum_value
from zzpboek.application.services.system_accounts import SystemAccounts
from zzpboek.core.config import Settings, get_settings
from zzpboek.core.logging import get_logger
from zzpboek.domain.entities import JournalLine as DomainLine
from zzpboek.domain.exceptions import (
    BookkeepingError,
    DuplicateError,
    ExternalServiceError,
    NotFoundError,
)
from zzpboek.domain.value_objects import (
    BALANCE_TOLERANCE,
    AccountType,
    EntryStatus,
    InboxStatus,
    MemoriaalType,
    PurchaseInvoiceStatus,
    RelationType,
    round_cents,
    to_decimal,
)
from zzpboek.infrastructure.ai import InvoiceExtractor
from zzpboek.infrastructure.database.models import Account, Contact, DocumentInbox, PurchaseInvoice

logger = get_logger(__name__)


def _safe_name(file_name: str) -> str:
    name = Path(file_name or "document").name
    return "".join(c if c.isalnum() or c in "._-" else "_" for c in name) or "document"


class PurchaseInvoiceService:
    def __init__(
        self,
        db: Session,
        extractor: InvoiceExtractor | None = None,
        settings: Settings | None = None,
        user_role: str = "expert",
    ):
        self.db = db
        self.settings = settings or get_settings()
        self.extractor = extractor or InvoiceExtractor(self.settings.ai)
        self.user_role = user_role

    # --- Inbox -------------------------------------------------------------

    def _supplier_options(self) -> list[dict]:
        suppliers = (
            self.db.query(Contact)
            .filter(
                Contact.is_active.is_(True),
                Contact.relation_type.in_((RelationType.SUPPLIER.value, RelationType.BOTH.value)),
            )
            .order_by(Contact.company_name)
            .all()
        )
        return [
            {"id": str(c.id), "name": c.company_name, "city": c.city, "iban": c.iban}
            for c in suppliers
        ]

    def upload(self, file_name: str, mime_type: str, data: bytes) -> DocumentInbox:
        """Document opslaan en laten uitlezen; resultaat Review_Needed of Error."""
        mime_type = (mime_type or "").lower()
        if mime_type not in self.settings.supported_upload_types_list:
            raise BookkeepingError(
                f"Bestandstype {mime_type or 'onbekend'} wordt niet ondersteund "
                f"({', '.join(self.settings.supported_upload_types_list)})"
            )
        if not data:
            raise BookkeepingError("Leeg bestand")
        if len(data) > self.settings.max_upload_size_bytes:
            raise BookkeepingError(f"Bestand is groter dan {self.settings.max_upload_size_mb} MB")

        upload_dir = self.settings.upload_path
        upload_dir.mkdir(parents=True, exist_ok=True)
        stored = upload_dir / f"{uuid4().hex}_{_safe_name(file_name)}"
        stored.write_bytes(data)

        item = DocumentInbox(
            file_name=file_name or stored.name,
            file_path=str(stored),
            mime_type=mime_type,
            status=InboxStatus.PROCESSING.value,
        )
        self.db.add(item)
        self.db.commit()

        accounts = self.db.query(Account).filter(Account.is_active.is_(True)).all()
        try:
            item.extracted_data = self.extractor.extract(data, mime_type, accounts, self._supplier_options())
            item.status = InboxStatus.REVIEW_NEEDED.value
            item.error_message = None
        except (ExternalServiceError, BookkeepingError, ValueError, ArithmeticError) as e:
            logger.warning("invoice_extraction_failed", inbox_id=str(item.id), error=str(e))
            item.status = InboxStatus.ERROR.value
            item.error_message = str(e)
        item.processed_at = datetime.utcnow()
        self.db.commit()
        self.db.refresh(item)
        return item

    def list_inbox(self, status: InboxStatus | None = None) -> list[DocumentInbox]:
        query = self.db.query(DocumentInbox)
        if status:
            query = query.filter(DocumentInbox.status == _enum_value(status))
        return query.order_by(DocumentInbox.uploaded_at.desc()).all()

    def get_inbox_item(self, inbox_id: UUID) -> DocumentInbox:
        item = self.db.get(DocumentInbox, inbox_id)
        if item is None:
            raise NotFoundError("Document", inbox_id)
        return item

    def delete_inbox_item(self, inbox_id: UUID) -> None:
        item = self.get_inbox_item(inbox_id)
        if item.status == InboxStatus.BOOKED.value:
            raise BookkeepingError("Een geboekt document kan niet worden verwijderd")
        Path(item.file_path).unlink(missing_ok=True)
        self.db.delete(item)
        self.db.commit()

    # --- Boeken ------------------------------------------------------------

    def _resolve_contact(self, dto, expense_account: Account) -> Contact:
        if dto.contact_id:
            contact = self.db.get(Contact, dto.contact_id)
            if contact is None:
                raise NotFoundError("Relatie", dto.contact_id)
            return contact

        name = (dto.supplier_name or "").strip()
        if not name:
            raise BookkeepingError("Kies een leverancier of geef een leveranciersnaam op")
        contact = (
            self.db.query(Contact)
            .filter(
                Contact.company_name.ilike(name),
                or_(
                    Contact.relation_type == RelationType.SUPPLIER.value,
                    Contact.relation_type == RelationType.BOTH.value,
                ),
            )
            .first()
        )
        if contact is None:
            contact = Contact(
                company_name=name,
                relation_type=RelationType.SUPPLIER.value,
                default_ledger_account_id=expense_account.id,
            )
            self.db.add(contact)
            self.db.flush()
            logger.info("supplier_created", contact_id=str(contact.id), name=name)
        return contact

    def _creditor_account(self, contact: Contact, system: SystemAccounts) -> Account:
        if contact.default_ledger_account_id:
            account = self.db.get(Account, contact.default_ledger_account_id)
            if account is not None and account.account_type == AccountType.LIABILITY.value:
                return account
        return system.get("crediteuren")

    def book_invoice(self, dto) -> PurchaseInvoice:
        """
        Inkoopfactuur boeken: kosten (netto) en voorbelasting debet,
        crediteuren (totaal) credit. Altijd een definitieve post.
        """
        total = round_cents(dto.total_amount)
        if total <= 0:
            raise BookkeepingError("Totaalbedrag moet groter zijn dan 0")
        vat = round_cents(dto.vat_amount or 0)
        net = round_cents(dto.net_amount) if dto.net_amount is not None else total - vat
        vat_percentage = round_cents(vat / net * 100) if net else to_decimal(21)

        expense_account = self.db.get(Account, dto.expense_account_id)
        if expense_account is None:
            raise NotFoundError("Rekening", dto.expense_account_id)
        if expense_account.account_type not in (AccountType.EXPENSE.value, AccountType.ASSET.value):
            raise BookkeepingError("Kies een kosten- of activarekening")

        item = self.get_inbox_item(dto.inbox_id) if dto.inbox_id else None
        if item is not None and item.status == InboxStatus.BOOKED.value:
            raise BookkeepingError("Dit document is al geboekt")

        contact = self._resolve_contact(dto, expense_account)
        existing = (
            self.db.query(PurchaseInvoice)
            .filter(PurchaseInvoice.contact_id == contact.id, PurchaseInvoice.invoice_number == dto.invoice_number)
            .first()
        )
        if existing is not None:
            raise DuplicateError(
                f"Factuur {dto.invoice_number} van {contact.company_name} is al geboekt"
            )

        system = SystemAccounts(self.db)
        creditor = self._creditor_account(contact, system)
        description = f"Inkoopfactuur {dto.invoice_number} - {contact.company_name}"
        lines = [DomainLine(account_id=expense_account.id, debit=net, description=dto.description)]
        if vat > BALANCE_TOLERANCE:
            lines.append(DomainLine(account_id=system.get("vat_receivable").id, debit=vat))
        lines.append(DomainLine(account_id=creditor.id, credit=total))

        entry = LedgerService(self.db, self.user_role).create_entry(
            entry_date=dto.invoice_date,
            description=description,
            lines=lines,
            status=EntryStatus.FINAL,
            memoriaal_type=MemoriaalType.INKOOPFACTUUR,
            reference=dto.invoice_number,
            contact_id=contact.id,
            commit=False,
        )
        invoice = PurchaseInvoice(
            contact_id=contact.id,
            invoice_number=dto.invoice_number,
            invoice_date=dto.invoice_date,
            due_date=dto.due_date,
            total_amount=total,
            vat_amount=vat,
            net_amount=net,
            vat_percentage=vat_percentage,
            expense_account_id=expense_account.id,
            description=dto.description,
            status=PurchaseInvoiceStatus.PENDING.value,
            journal_entry_id=entry.id,
        )
        self.db.add(invoice)
        self.db.flush()
        if item is not None:
            item.status = InboxStatus.BOOKED.value
            item.purchase_invoice_id = invoice.id
        record_audit(self.db, "CREATE", "PurchaseInvoice", invoice.id,
                     new_value={"number": dto.invoice_number, "total": total}, user_role=self.user_role)
        self.db.commit()
        self.db.refresh(invoice)
        logger.info("purchase_invoice_booked", invoice_id=str(invoice.id), total=str(total))
        return invoice

    # --- Facturen ----------------------------------------------------------

    def _refresh_overdue(self, invoices: list[PurchaseInvoice]) -> None:
        today = date.today()
        changed = False
        for invoice in invoices:
            if (
                invoice.due_date
                and invoice.due_date < today
                and invoice.status == PurchaseInvoiceStatus.PENDING.value
            ):
                invoice.status = PurchaseInvoiceStatus.OVERDUE.value
                changed = True
        if changed:
            self.db.commit()

    def list_invoices(
        self,
        status: PurchaseInvoiceStatus | None = None,
        contact_id: UUID | None = None,
    ) -> list[PurchaseInvoice]:
        self._refresh_overdue(self.db.query(PurchaseInvoice).all())
        query = self.db.query(PurchaseInvoice)
        if status:
            query = query.filter(PurchaseInvoice.status == _enum_value(status))
        if contact_id:
            query = query.filter(PurchaseInvoice.contact_id == contact_id)
        return query.order_by(PurchaseInvoice.invoice_date.desc()).all()

    def get_invoice(self, invoice_id: UUID) -> PurchaseInvoice:
        invoice = self.db.get(PurchaseInvoice, invoice_id)
        if invoice is None:
            raise NotFoundError("Inkoopfactuur", invoice_id)
        self._refresh_overdue([invoice])
        return invoice

    def mark_paid(self, invoice_id: UUID, paid_at: date | None = None) -> PurchaseInvoice:
        invoice = self.get_invoice(invoice_id)
        if invoice.status == PurchaseInvoiceStatus.PAID.value:
            raise BookkeepingError("Factuur is al betaald")
        invoice.status = PurchaseInvoiceStatus.PAID.value
        invoice.paid_at = paid_at or date.today()
        self.db.commit()
        self.db.refresh(invoice)
        return invoice
