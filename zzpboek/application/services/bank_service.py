"""
Bank: afschriften importeren, bankregels, automatisch afletteren en boeken.
"""

from uuid import UUID

from sqlalchemy.orm import Session

from zzpboek.application.services.audit import record_audit
from zzpboek.application.services.ledger_service import LedgerService, _enum_value
from zzpboek.application.services.system_accounts import SystemAccounts
from zzpboek.core.logging import get_logger
from zzpboek.domain.bank_matching import (
    clean_transaction_description,
    rule_matches,
    suggest_keyword,
    transaction_fingerprint,
)
from zzpboek.domain.entities import JournalLine as DomainLine
from zzpboek.domain.exceptions import BookkeepingError, EntryLockedError, NotFoundError
from zzpboek.domain.value_objects import (
    BALANCE_TOLERANCE,
    EntryStatus,
    MatchType,
    MemoriaalType,
    PurchaseInvoiceStatus,
    SalesInvoiceStatus,
    TransactionStatus,
    TransactionType,
    round_cents,
    to_decimal,
)
from zzpboek.infrastructure.bank.parsers import parse_bank_file
from zzpboek.infrastructure.database.models import (
    Account,
    BankRule,
    BankTransaction,
    Contact,
    PurchaseInvoice,
    SalesInvoice,
)

logger = get_logger(__name__)


class BankService:
    def __init__(self, db: Session, user_role: str = "expert"):
        self.db = db
        self.user_role = user_role
        self.ledger = LedgerService(db, user_role)
        self.system = SystemAccounts(db)

    # --- Import ------------------------------------------------------------

    def import_file(self, content: bytes | str) -> dict:
        """Afschrift inlezen; bestaande mutaties (zelfde vingerafdruk) worden overgeslagen."""
        if isinstance(content, bytes):
            try:
                text = content.decode("utf-8-sig")
            except UnicodeDecodeError:
                text = content.decode("latin-1")
        else:
            text = content

        parsed = parse_bank_file(text)
        known = {h for (h,) in self.db.query(BankTransaction.import_hash).all()}

        imported = 0
        duplicates = 0
        errors: list[str] = []
        for number, line in enumerate(parsed.transactions, start=1):
            fingerprint = transaction_fingerprint(
                line.transaction_date, line.amount, line.description, line.contra_name
            )
            if fingerprint in known:
                duplicates += 1
                continue
            try:
                amount = round_cents(line.amount)
                self.db.add(
                    BankTransaction(
                        transaction_date=line.transaction_date,
                        amount=amount,
                        description=line.description,
                        contra_name=line.contra_name,
                        contra_iban=line.contra_iban,
                        reference=line.reference,
                        balance_after=line.balance_after,
                        transaction_type=(
                            TransactionType.CREDIT.value if amount > 0 else TransactionType.DEBIT.value
                        ),
                        status=TransactionStatus.UNMATCHED.value,
                        import_hash=fingerprint,
                        source_format=parsed.source_format,
                    )
                )
            except (ArithmeticError, ValueError) as exc:
                errors.append(f"Transactie {number}: {exc}")
                continue
            known.add(fingerprint)
            imported += 1

        self.db.commit()
        logger.info(
            "bank_import_completed",
            source_format=parsed.source_format,
            imported=imported,
            duplicates=duplicates,
            skipped=parsed.skipped,
        )
        return {
            "source_format": parsed.source_format,
            "imported": imported,
            "duplicates": duplicates,
            "skipped": parsed.skipped,
            "errors": errors,
        }

    # --- Transacties -------------------------------------------------------

    def list_transactions(
        self,
        status: TransactionStatus | None = None,
        start_date=None,
        end_date=None,
        skip: int = 0,
        limit: int = 200,
    ) -> list[BankTransaction]:
        query = self.db.query(BankTransaction)
        if status:
            query = query.filter(BankTransaction.status == _enum_value(status))
        if start_date:
            query = query.filter(BankTransaction.transaction_date >= start_date)
        if end_date:
            query = query.filter(BankTransaction.transaction_date <= end_date)
        return (
            query.order_by(BankTransaction.transaction_date.desc(), BankTransaction.created_at.desc())
            .offset(skip)
            .limit(limit)
            .all()
        )

    def get_transaction(self, transaction_id: UUID) -> BankTransaction:
        transaction = self.db.get(BankTransaction, transaction_id)
        if transaction is None:
            raise NotFoundError("Banktransactie", transaction_id)
        return transaction

    # --- Regels ------------------------------------------------------------

    def list_rules(self, is_active: bool | None = None) -> list[BankRule]:
        query = self.db.query(BankRule)
        if is_active is not None:
            query = query.filter(BankRule.is_active.is_(is_active))
        return query.order_by(BankRule.priority.desc(), BankRule.keyword).all()

    def get_rule(self, rule_id: UUID) -> BankRule:
        rule = self.db.get(BankRule, rule_id)
        if rule is None:
            raise NotFoundError("Bankregel", rule_id)
        return rule

    def _check_rule_targets(self, dto) -> None:
        if dto.target_account_id and self.db.get(Account, dto.target_account_id) is None:
            raise NotFoundError("Rekening", dto.target_account_id)
        if dto.contact_id and self.db.get(Contact, dto.contact_id) is None:
            raise NotFoundError("Relatie", dto.contact_id)

    def create_rule(self, dto) -> BankRule:
        self._check_rule_targets(dto)
        data = dto.model_dump()
        data["match_type"] = _enum_value(data["match_type"])
        rule = BankRule(**data)
        self.db.add(rule)
        self.db.commit()
        self.db.refresh(rule)
        return rule

    def update_rule(self, rule_id: UUID, dto) -> BankRule:
        rule = self.get_rule(rule_id)
        self._check_rule_targets(dto)
        for field, value in dto.model_dump().items():
            setattr(rule, field, _enum_value(value))
        self.db.commit()
        self.db.refresh(rule)
        return rule

    def delete_rule(self, rule_id: UUID) -> None:
        self.db.delete(self.get_rule(rule_id))
        self.db.commit()

    def suggest_rule(self, transaction_id: UUID) -> dict:
        transaction = self.get_transaction(transaction_id)
        return {
            "transaction_id": transaction.id,
            "keyword": suggest_keyword(transaction.description, transaction.contra_name),
            "cleaned_description": clean_transaction_description(transaction.description),
            "match_type": MatchType.CONTAINS.value,
        }

    # --- Afletteren --------------------------------------------------------

    def match_contact(self, transaction: BankTransaction) -> Contact | None:
        """Relatie op IBAN, anders op naam; alleen relaties met een standaard grootboekrekening."""
        contacts = (
            self.db.query(Contact)
            .filter(Contact.is_active.is_(True), Contact.default_ledger_account_id.is_not(None))
            .all()
        )
        iban = (transaction.contra_iban or "").replace(" ", "").upper()
        if iban:
            for contact in contacts:
                if contact.iban and contact.iban.replace(" ", "").upper() == iban:
                    return contact

        name = (transaction.contra_name or "").strip().lower()
        if name:
            for contact in contacts:
                company = contact.company_name.strip().lower()
                if company and company in name:
                    return contact
        return None

    def match_rule(self, transaction: BankTransaction) -> BankRule | None:
        for rule in self.list_rules(is_active=True):
            if rule_matches(rule.keyword, rule.match_type, transaction.description, transaction.contra_name):
                return rule
        return None

    def _bank_lines(self, transaction: BankTransaction, account_id: UUID, description: str | None):
        bank = self.system.get("bank")
        amount = abs(to_decimal(transaction.amount))
        if transaction.amount > 0:
            return [
                DomainLine(account_id=bank.id, debit=amount, description=description),
                DomainLine(account_id=account_id, credit=amount, description=description),
            ]
        return [
            DomainLine(account_id=account_id, debit=amount, description=description),
            DomainLine(account_id=bank.id, credit=amount, description=description),
        ]

    def _propose(self, transaction: BankTransaction, account_id: UUID, description: str,
                 contact_id: UUID | None = None) -> None:
        entry = self.ledger.create_entry(
            entry_date=transaction.transaction_date,
            description=description,
            lines=self._bank_lines(transaction, account_id, description),
            status=EntryStatus.DRAFT,
            memoriaal_type=MemoriaalType.BANK,
            reference=transaction.reference,
            contact_id=contact_id,
            commit=False,
        )
        transaction.journal_entry_id = entry.id
        transaction.contact_id = contact_id
        transaction.status = TransactionStatus.MATCHED.value

    def _try_propose(self, transaction: BankTransaction, account_id: UUID, description: str,
                     contact_id: UUID | None = None) -> bool:
        try:
            self._propose(transaction, account_id, description, contact_id=contact_id)
        except (BookkeepingError, NotFoundError) as e:
            logger.warning("bank_proposal_skipped", transaction_id=str(transaction.id), error=str(e))
            return False
        return True

    def auto_match(self) -> dict:
        """Voorstellen aanmaken voor alle onverwerkte mutaties: eerst relaties, dan regels."""
        transactions = (
            self.db.query(BankTransaction)
            .filter(BankTransaction.status == TransactionStatus.UNMATCHED.value)
            .all()
        )
        by_contact = 0
        by_rule = 0
        for transaction in transactions:
            contact = self.match_contact(transaction)
            if contact is not None and self._try_propose(
                transaction,
                contact.default_ledger_account_id,
                transaction.description or contact.company_name,
                contact_id=contact.id,
            ):
                by_contact += 1
                continue

            rule = self.match_rule(transaction)
            if rule is None:
                continue
            target = rule.target_account_id
            if target is None and rule.contact_id:
                contact = self.db.get(Contact, rule.contact_id)
                target = contact.default_ledger_account_id if contact else None
            if target is None:
                continue
            if self._try_propose(
                transaction,
                target,
                rule.description_template or transaction.description,
                contact_id=rule.contact_id,
            ):
                by_rule += 1

        self.db.commit()
        result = {
            "processed": len(transactions),
            "matched_by_contact": by_contact,
            "matched_by_rule": by_rule,
            "unmatched": len(transactions) - by_contact - by_rule,
        }
        logger.info("bank_auto_match_completed", **result)
        return result

    # --- Boeken ------------------------------------------------------------

    def _ensure_unbooked(self, transaction: BankTransaction) -> None:
        if transaction.status in (TransactionStatus.BOOKED.value, TransactionStatus.IGNORED.value):
            raise BookkeepingError(f"Transactie heeft al status {transaction.status}")
        if transaction.journal_entry_id is not None:
            raise BookkeepingError("Transactie heeft al een voorstel; bevestig of maak het eerst ongedaan")

    def book(self, transaction_id: UUID, account_id: UUID, description: str | None = None) -> BankTransaction:
        """Directe boeking tegen één grootboekrekening (concept)."""
        transaction = self.get_transaction(transaction_id)
        self._ensure_unbooked(transaction)
        description = description or transaction.description
        entry = self.ledger.create_entry(
            entry_date=transaction.transaction_date,
            description=description,
            lines=self._bank_lines(transaction, account_id, description),
            status=EntryStatus.DRAFT,
            memoriaal_type=MemoriaalType.BANK,
            reference=transaction.reference,
            commit=False,
        )
        transaction.journal_entry_id = entry.id
        transaction.status = TransactionStatus.BOOKED.value
        record_audit(self.db, "BOOK", "BankTransaction", transaction.id,
                     new_value={"journal_entry_id": entry.id}, user_role=self.user_role)
        self.db.commit()
        self.db.refresh(transaction)
        return transaction

    def _open_invoice(self, transaction: BankTransaction, contact: Contact):
        amount = abs(to_decimal(transaction.amount))
        if transaction.amount > 0:
            candidates = (
                self.db.query(SalesInvoice)
                .filter(
                    SalesInvoice.contact_id == contact.id,
                    SalesInvoice.journal_entry_id.is_not(None),
                    SalesInvoice.status.in_((SalesInvoiceStatus.SENT.value, SalesInvoiceStatus.OVERDUE.value)),
                )
                .all()
            )
        else:
            candidates = (
                self.db.query(PurchaseInvoice)
                .filter(
                    PurchaseInvoice.contact_id == contact.id,
                    PurchaseInvoice.status.in_(
                        (PurchaseInvoiceStatus.PENDING.value, PurchaseInvoiceStatus.OVERDUE.value)
                    ),
                )
                .all()
            )
        return next(
            (inv for inv in candidates if abs(to_decimal(inv.total_amount) - amount) < BALANCE_TOLERANCE),
            None,
        )

    def book_via_relation(
        self,
        transaction_id: UUID,
        contact_id: UUID,
        account_id: UUID | None = None,
        description: str | None = None,
    ) -> BankTransaction:
        """
        Boeking via debiteuren/crediteuren: factuurpost (A) en betaalpost (B),
        beide definitief. Staat er al een openstaande factuur van de relatie
        voor hetzelfde bedrag, dan alleen de betaalpost en de factuur op betaald.
        """
        transaction = self.get_transaction(transaction_id)
        self._ensure_unbooked(transaction)
        contact = self.ledger.get_contact(contact_id)
        is_income = transaction.amount > 0
        amount = abs(to_decimal(transaction.amount))
        bank = self.system.get("bank")
        relation_account = self.system.get("debiteuren" if is_income else "crediteuren")
        description = description or transaction.description or contact.company_name

        invoice = self._open_invoice(transaction, contact)
        if invoice is None:
            target = account_id or contact.default_ledger_account_id
            if target is None:
                if not is_income:
                    raise BookkeepingError(
                        f"Geen kostenrekening opgegeven en {contact.company_name} heeft geen standaard grootboekrekening"
                    )
                target = self.system.get("revenue").id
            if is_income:
                invoice_lines = [
                    DomainLine(account_id=relation_account.id, debit=amount, description=description),
                    DomainLine(account_id=target, credit=amount, description=description),
                ]
            else:
                invoice_lines = [
                    DomainLine(account_id=target, debit=amount, description=description),
                    DomainLine(account_id=relation_account.id, credit=amount, description=description),
                ]
            self.ledger.create_entry(
                entry_date=transaction.transaction_date,
                description=description,
                lines=invoice_lines,
                status=EntryStatus.FINAL,
                memoriaal_type=MemoriaalType.VERKOOPFACTUUR if is_income else MemoriaalType.INKOOPFACTUUR,
                reference=transaction.reference,
                contact_id=contact.id,
                commit=False,
            )

        if is_income:
            payment_lines = [
                DomainLine(account_id=bank.id, debit=amount, description=description),
                DomainLine(account_id=relation_account.id, credit=amount, description=description),
            ]
        else:
            payment_lines = [
                DomainLine(account_id=relation_account.id, debit=amount, description=description),
                DomainLine(account_id=bank.id, credit=amount, description=description),
            ]
        payment = self.ledger.create_entry(
            entry_date=transaction.transaction_date,
            description=f"Betaling {description}",
            lines=payment_lines,
            status=EntryStatus.FINAL,
            memoriaal_type=MemoriaalType.BANK,
            reference=transaction.reference,
            contact_id=contact.id,
            commit=False,
        )

        if invoice is not None:
            invoice.status = (
                SalesInvoiceStatus.PAID.value if is_income else PurchaseInvoiceStatus.PAID.value
            )
            invoice.paid_at = transaction.transaction_date

        transaction.journal_entry_id = payment.id
        transaction.contact_id = contact.id
        transaction.status = TransactionStatus.BOOKED.value
        record_audit(
            self.db, "BOOK", "BankTransaction", transaction.id,
            new_value={"journal_entry_id": payment.id, "contact_id": contact.id,
                       "invoice_id": getattr(invoice, "id", None)},
            user_role=self.user_role,
        )
        self.db.commit()
        self.db.refresh(transaction)
        logger.info(
            "bank_transaction_booked_via_relation",
            transaction_id=str(transaction.id),
            contact=contact.company_name,
            invoice_matched=invoice is not None,
        )
        return transaction

    def confirm(self, transaction_id: UUID) -> BankTransaction:
        """Voorstel definitief maken."""
        transaction = self.get_transaction(transaction_id)
        if transaction.journal_entry_id is None:
            raise BookkeepingError("Transactie heeft geen voorstel om te bevestigen")
        entry = self.ledger.get_entry(transaction.journal_entry_id)
        if entry.status != EntryStatus.FINAL.value:
            self.ledger.finalize_entry(entry.id, commit=False)
        transaction.status = TransactionStatus.BOOKED.value
        self.db.commit()
        self.db.refresh(transaction)
        return transaction

    def ignore(self, transaction_id: UUID) -> BankTransaction:
        transaction = self.get_transaction(transaction_id)
        if transaction.journal_entry_id is not None:
            raise BookkeepingError("Maak de boeking eerst ongedaan")
        transaction.status = TransactionStatus.IGNORED.value
        self.db.commit()
        self.db.refresh(transaction)
        return transaction

    def unbook(self, transaction_id: UUID) -> BankTransaction:
        """Conceptboeking verwijderen en de mutatie terugzetten naar Unmatched."""
        transaction = self.get_transaction(transaction_id)
        entry_id = transaction.journal_entry_id
        if entry_id is not None:
            if self.ledger.get_entry(entry_id).status == EntryStatus.FINAL.value:
                raise EntryLockedError("Een definitieve boeking kan niet ongedaan worden gemaakt; maak een correctieboeking")
            transaction.journal_entry_id = None
            self.db.flush()
            self.ledger.delete_entry(entry_id, commit=False)
        transaction.status = TransactionStatus.UNMATCHED.value
        transaction.contact_id = None
        self.db.commit()
        self.db.refresh(transaction)
        return transaction

