"""
Verkoop: facturen, offertes (met publieke akkoordlink) en notificaties.
"""

from collections import defaultdict
from datetime import date, datetime, timedelta
from decimal import Decimal
from uuid import UUID

from sqlalchemy.orm import Session

from zzpboek.application.services.audit import record_audit
from zzpboek.application.services.ledger_service import LedgerService, _enum_value
from zzpboek.application.services.system_accounts import SystemAccounts
from zzpboek.core.logging import get_logger
from zzpboek.domain.entities import JournalLine as DomainLine
from zzpboek.domain.exceptions import BookkeepingError, NotFoundError
from zzpboek.domain.value_objects import (
    BALANCE_TOLERANCE,
    ZERO,
    EntryStatus,
    LineItem,
    MemoriaalType,
    QuotationStatus,
    SalesInvoiceStatus,
    round_cents,
    to_decimal,
)
from zzpboek.infrastructure.database.models import (
    CompanySettings,
    Contact,
    Notification,
    Quotation,
    SalesInvoice,
)

logger = get_logger(__name__)

DEFAULT_PAYMENT_TERM_DAYS = 14
DEFAULT_QUOTE_VALIDITY_DAYS = 30


def to_line_items(items) -> list[LineItem]:
    """DTO's of opgeslagen JSON-regels omzetten naar LineItems."""
    result = []
    for item in items:
        data = item if isinstance(item, dict) else item.model_dump()
        line = LineItem(
            description=(data.get("description") or "").strip(),
            quantity=to_decimal(data.get("quantity")),
            price=to_decimal(data.get("price")),
            vat_percentage=to_decimal(data.get("vat_percentage", 21)),
        )
        if not line.description:
            raise BookkeepingError("Elke regel heeft een omschrijving nodig")
        if line.quantity <= 0 or line.price <= 0:
            raise BookkeepingError(f"Aantal en prijs moeten groter zijn dan 0 ({line.description})")
        result.append(line)
    if not result:
        raise BookkeepingError("Minimaal één regel is verplicht")
    return result


def line_totals(items: list[LineItem]) -> tuple[Decimal, Decimal, Decimal]:
    subtotal = round_cents(sum((i.subtotal for i in items), ZERO))
    vat = round_cents(sum((i.vat_amount for i in items), ZERO))
    return subtotal, vat, subtotal + vat


def items_payload(items: list[LineItem]) -> list[dict]:
    return [
        {
            "description": i.description,
            "quantity": float(i.quantity),
            "price": float(i.price),
            "vat_percentage": float(i.vat_percentage),
            "total": float(round_cents(i.subtotal)),
        }
        for i in items
    ]


def next_number(db: Session, column, prefix: str, year: int) -> str:
    """Volgnummer per jaar: {prefix}-{jaar}-{NNNN}."""
    stem = f"{prefix}-{year}-"
    sequence = 0
    for (number,) in db.query(column).filter(column.like(f"{stem}%")).all():
        suffix = number[len(stem):]
        if suffix.isdigit():
            sequence = max(sequence, int(suffix))
    return f"{stem}{sequence + 1:04d}"


class SalesService:
    def __init__(self, db: Session, user_role: str = "expert"):
        self.db = db
        self.user_role = user_role

    def _company(self) -> CompanySettings:
        company = self.db.query(CompanySettings).first()
        if company is None:
            company = CompanySettings()
            self.db.add(company)
            self.db.flush()
        return company

    def _contact(self, contact_id: UUID) -> Contact:
        contact = self.db.get(Contact, contact_id)
        if contact is None:
            raise NotFoundError("Relatie", contact_id)
        return contact

    def _notify(self, type_: str, title: str, message: str, reference_id: UUID, reference_type: str) -> None:
        self.db.add(
            Notification(
                type=type_,
                title=title,
                message=message,
                reference_id=reference_id,
                reference_type=reference_type,
            )
        )

    # --- Verkoopfacturen ---------------------------------------------------

    def create_invoice(self, dto) -> SalesInvoice:
        contact = self._contact(dto.contact_id)
        items = to_line_items(dto.items)
        subtotal, vat, total = line_totals(items)
        term = contact.payment_term_days if contact.payment_term_days is not None else DEFAULT_PAYMENT_TERM_DAYS

        invoice = SalesInvoice(
            contact_id=contact.id,
            invoice_number=next_number(self.db, SalesInvoice.invoice_number, "INV", dto.invoice_date.year),
            invoice_date=dto.invoice_date,
            due_date=dto.due_date or dto.invoice_date + timedelta(days=term),
            status=SalesInvoiceStatus.DRAFT.value,
            items=items_payload(items),
            subtotal=subtotal,
            vat_amount=vat,
            total_amount=total,
            notes=dto.notes,
        )
        self.db.add(invoice)
        self.db.flush()
        if dto.book:
            self._book(invoice, contact, items)
        record_audit(self.db, "CREATE", "SalesInvoice", invoice.id,
                     new_value={"number": invoice.invoice_number, "total": total}, user_role=self.user_role)
        self.db.commit()
        self.db.refresh(invoice)
        logger.info("sales_invoice_created", invoice_number=invoice.invoice_number, booked=dto.book)
        return invoice

    def _book(self, invoice: SalesInvoice, contact: Contact, items: list[LineItem]) -> None:
        """Debiteuren (totaal) debet; omzet per tarief en af te dragen BTW credit."""
        system = SystemAccounts(self.db)
        revenue = defaultdict(lambda: ZERO)
        for item in items:
            revenue[system.revenue_for_rate(item.vat_percentage).id] += item.subtotal

        description = f"Verkoopfactuur {invoice.invoice_number} - {contact.company_name}"
        total = to_decimal(invoice.total_amount)
        vat = to_decimal(invoice.vat_amount)
        lines = [DomainLine(account_id=system.get("debiteuren").id, debit=total)]
        revenue_lines = [
            DomainLine(account_id=account_id, credit=round_cents(amount))
            for account_id, amount in revenue.items()
        ]
        # rounding difference goes on the first revenue line
        drift = total - vat - sum((line.credit for line in revenue_lines), ZERO)
        if drift and revenue_lines:
            first = revenue_lines[0]
            revenue_lines[0] = DomainLine(account_id=first.account_id, credit=first.credit + drift)
        lines.extend(revenue_lines)
        if vat > BALANCE_TOLERANCE:
            lines.append(DomainLine(account_id=system.get("vat_payable").id, credit=vat))

        entry = LedgerService(self.db, self.user_role).create_entry(
            entry_date=invoice.invoice_date,
            description=description,
            lines=lines,
            status=EntryStatus.FINAL,
            memoriaal_type=MemoriaalType.VERKOOPFACTUUR,
            reference=invoice.invoice_number,
            contact_id=contact.id,
            commit=False,
        )
        invoice.journal_entry_id = entry.id

    def _refresh_overdue(self, invoices: list[SalesInvoice]) -> None:
        today = date.today()
        changed = False
        for invoice in invoices:
            if invoice.status == SalesInvoiceStatus.SENT.value and invoice.due_date and invoice.due_date < today:
                invoice.status = SalesInvoiceStatus.OVERDUE.value
                changed = True
        if changed:
            self.db.commit()

    def list_invoices(self, status: SalesInvoiceStatus | None = None, contact_id: UUID | None = None) -> list[SalesInvoice]:
        self._refresh_overdue(
            self.db.query(SalesInvoice).filter(SalesInvoice.status == SalesInvoiceStatus.SENT.value).all()
        )
        query = self.db.query(SalesInvoice)
        if status:
            query = query.filter(SalesInvoice.status == _enum_value(status))
        if contact_id:
            query = query.filter(SalesInvoice.contact_id == contact_id)
        return query.order_by(SalesInvoice.invoice_date.desc(), SalesInvoice.invoice_number.desc()).all()

    def get_invoice(self, invoice_id: UUID) -> SalesInvoice:
        invoice = self.db.get(SalesInvoice, invoice_id)
        if invoice is None:
            raise NotFoundError("Verkoopfactuur", invoice_id)
        self._refresh_overdue([invoice])
        return invoice

    def send_invoice(self, invoice_id: UUID) -> SalesInvoice:
        """Factuur versturen; een nog niet geboekte factuur wordt eerst geboekt."""
        invoice = self.get_invoice(invoice_id)
        if invoice.status != SalesInvoiceStatus.DRAFT.value:
            raise BookkeepingError(f"Alleen conceptfacturen kunnen worden verstuurd (status: {invoice.status})")
        if invoice.journal_entry_id is None:
            self._book(invoice, self._contact(invoice.contact_id), to_line_items(invoice.items))
        invoice.status = SalesInvoiceStatus.SENT.value
        invoice.sent_at = datetime.utcnow()
        self.db.commit()
        self.db.refresh(invoice)
        return invoice

    def mark_paid(self, invoice_id: UUID, paid_at: date | None = None) -> SalesInvoice:
        invoice = self.get_invoice(invoice_id)
        if invoice.status == SalesInvoiceStatus.PAID.value:
            raise BookkeepingError("Factuur is al betaald")
        invoice.status = SalesInvoiceStatus.PAID.value
        invoice.paid_at = paid_at or date.today()
        self.db.commit()
        self.db.refresh(invoice)
        return invoice

    # --- Offertes ----------------------------------------------------------

    def list_quotations(self, status: QuotationStatus | None = None) -> list[Quotation]:
        query = self.db.query(Quotation)
        if status:
            query = query.filter(Quotation.status == _enum_value(status))
        return query.order_by(Quotation.quote_date.desc(), Quotation.quote_number.desc()).all()

    def get_quotation(self, quotation_id: UUID) -> Quotation:
        quotation = self.db.get(Quotation, quotation_id)
        if quotation is None:
            raise NotFoundError("Offerte", quotation_id)
        return quotation

    def create_quotation(self, dto) -> Quotation:
        contact = self._contact(dto.contact_id)
        items = to_line_items(dto.items)
        subtotal, vat, total = line_totals(items)
        validity = self._company().quote_validity_days or DEFAULT_QUOTE_VALIDITY_DAYS

        quotation = Quotation(
            contact_id=contact.id,
            quote_number=next_number(self.db, Quotation.quote_number, "OFF", dto.quote_date.year),
            quote_date=dto.quote_date,
            valid_until=dto.valid_until or dto.quote_date + timedelta(days=validity),
            status=QuotationStatus.DRAFT.value,
            items=items_payload(items),
            subtotal=subtotal,
            vat_amount=vat,
            total_amount=total,
            notes=dto.notes,
            terms=dto.terms,
        )
        self.db.add(quotation)
        self.db.commit()
        self.db.refresh(quotation)
        logger.info("quotation_created", quote_number=quotation.quote_number)
        return quotation

    def _ensure_draft(self, quotation: Quotation) -> None:
        if quotation.status != QuotationStatus.DRAFT.value:
            raise BookkeepingError(f"Alleen concept-offertes kunnen worden gewijzigd (status: {quotation.status})")

    def update_quotation(self, quotation_id: UUID, dto) -> Quotation:
        quotation = self.get_quotation(quotation_id)
        self._ensure_draft(quotation)
        data = dto.model_dump(exclude_unset=True)
        if data.get("contact_id"):
            self._contact(data["contact_id"])
        items = data.pop("items", None)
        for field, value in data.items():
            setattr(quotation, field, value)
        if items is not None:
            line_items = to_line_items(items)
            quotation.items = items_payload(line_items)
            quotation.subtotal, quotation.vat_amount, quotation.total_amount = line_totals(line_items)
        quotation.updated_at = datetime.utcnow()
        self.db.commit()
        self.db.refresh(quotation)
        return quotation

    def send_quotation(self, quotation_id: UUID) -> Quotation:
        quotation = self.get_quotation(quotation_id)
        self._ensure_draft(quotation)
        quotation.status = QuotationStatus.SENT.value
        quotation.sent_at = datetime.utcnow()
        quotation.updated_at = datetime.utcnow()
        self.db.commit()
        self.db.refresh(quotation)
        return quotation

    def delete_quotation(self, quotation_id: UUID) -> None:
        quotation = self.get_quotation(quotation_id)
        if quotation.status != QuotationStatus.DRAFT.value:
            raise BookkeepingError("Alleen concept-offertes kunnen worden verwijderd")
        self.db.delete(quotation)
        self.db.commit()

    def _by_token(self, token: UUID) -> Quotation:
        quotation = self.db.query(Quotation).filter(Quotation.public_token == token).first()
        if quotation is None:
            raise NotFoundError("Offerte", token)
        return quotation

    @staticmethod
    def is_expired(quotation: Quotation, today: date | None = None) -> bool:
        if quotation.status == QuotationStatus.EXPIRED.value:
            return True
        answered = quotation.status in (QuotationStatus.ACCEPTED.value, QuotationStatus.REJECTED.value)
        return not answered and quotation.valid_until < (today or date.today())

    def public_view(self, token: UUID) -> dict:
        """Offerte zoals de klant hem via de publieke link ziet."""
        quotation = self._by_token(token)
        expired = self.is_expired(quotation)
        if expired and quotation.status == QuotationStatus.SENT.value:
            quotation.status = QuotationStatus.EXPIRED.value
            self.db.commit()
            self.db.refresh(quotation)
        contact = self.db.get(Contact, quotation.contact_id)
        return {
            "quote_number": quotation.quote_number,
            "quote_date": quotation.quote_date,
            "valid_until": quotation.valid_until,
            "status": quotation.status,
            "company_name": self._company().name,
            "customer_name": contact.company_name if contact else "",
            "items": quotation.items or [],
            "subtotal": quotation.subtotal,
            "vat_amount": quotation.vat_amount,
            "total_amount": quotation.total_amount,
            "notes": quotation.notes,
            "terms": quotation.terms,
            "is_expired": expired,
        }

    def _answer(self, token: UUID, accepted: bool) -> Quotation:
        quotation = self._by_token(token)
        if quotation.status != QuotationStatus.SENT.value:
            raise BookkeepingError(f"Deze offerte kan niet meer worden beantwoord (status: {quotation.status})")
        if self.is_expired(quotation):
            quotation.status = QuotationStatus.EXPIRED.value
            self.db.commit()
            raise BookkeepingError("Deze offerte is verlopen")

        contact = self.db.get(Contact, quotation.contact_id)
        customer = contact.company_name if contact else "De klant"
        quotation.status = QuotationStatus.ACCEPTED.value if accepted else QuotationStatus.REJECTED.value
        quotation.accepted_at = datetime.utcnow()
        quotation.updated_at = datetime.utcnow()
        if accepted:
            self._notify("quote_accepted", "Offerte Geaccepteerd",
                         f"{customer} heeft offerte {quotation.quote_number} geaccepteerd.",
                         quotation.id, "quotation")
        else:
            self._notify("quote_rejected", "Offerte Afgewezen",
                         f"{customer} heeft offerte {quotation.quote_number} afgewezen.",
                         quotation.id, "quotation")
        self.db.commit()
        self.db.refresh(quotation)
        logger.info("quotation_answered", quote_number=quotation.quote_number, accepted=accepted)
        return quotation

    def approve(self, token: UUID) -> Quotation:
        return self._answer(token, accepted=True)

    def reject(self, token: UUID) -> Quotation:
        return self._answer(token, accepted=False)

    def convert_to_invoice(self, quotation_id: UUID, invoice_date: date | None = None) -> SalesInvoice:
        """Geaccepteerde offerte omzetten naar een conceptfactuur."""
        quotation = self.get_quotation(quotation_id)
        if quotation.converted_invoice_id is not None:
            raise BookkeepingError("Deze offerte is al omgezet naar een factuur")
        if quotation.status != QuotationStatus.ACCEPTED.value:
            raise BookkeepingError("Alleen geaccepteerde offertes kunnen worden omgezet")

        invoice_date = invoice_date or date.today()
        invoice = SalesInvoice(
            contact_id=quotation.contact_id,
            invoice_number=next_number(self.db, SalesInvoice.invoice_number, "INV", invoice_date.year),
            invoice_date=invoice_date,
            due_date=invoice_date + timedelta(days=DEFAULT_PAYMENT_TERM_DAYS),
            status=SalesInvoiceStatus.DRAFT.value,
            items=list(quotation.items or []),
            subtotal=quotation.subtotal,
            vat_amount=quotation.vat_amount,
            total_amount=quotation.total_amount,
            notes=quotation.notes or f"Gebaseerd op offerte {quotation.quote_number}",
            quotation_id=quotation.id,
        )
        self.db.add(invoice)
        self.db.flush()
        quotation.converted_invoice_id = invoice.id
        quotation.updated_at = datetime.utcnow()
        self._notify("system", "Factuur Aangemaakt",
                     f"Factuur {invoice.invoice_number} is aangemaakt op basis van offerte {quotation.quote_number}.",
                     invoice.id, "invoice")
        self.db.commit()
        self.db.refresh(invoice)
        return invoice

    # --- Notificaties ------------------------------------------------------

    def list_notifications(self, unread_only: bool = False, limit: int = 50) -> list[Notification]:
        query = self.db.query(Notification)
        if unread_only:
            query = query.filter(Notification.is_read.is_(False))
        return query.order_by(Notification.created_at.desc()).limit(limit).all()

    def mark_notification_read(self, notification_id: UUID) -> Notification:
        notification = self.db.get(Notification, notification_id)
        if notification is None:
            raise NotFoundError("Notificatie", notification_id)
        notification.is_read = True
        self.db.commit()
        self.db.refresh(notification)
        return notification

    def mark_all_notifications_read(self) -> int:
        count = (
            self.db.query(Notification)
            .filter(Notification.is_read.is_(False))
            .update({Notification.is_read: True}, synchronize_session=False)
        )
        self.db.commit()
        return count
