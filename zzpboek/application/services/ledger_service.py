"""
Ledger use cases: grootboekrekeningen, relaties en journaalposten.

Definitieve posten worden hier server-side op balans gecontroleerd en zijn
daarna onveranderlijk; correcties lopen via een tegenboeking.
"""

from datetime import date, datetime
from uuid import UUID

from sqlalchemy import or_
from sqlalchemy.orm import Session

from zzpboek.application.services.audit import record_audit
from zzpboek.core.logging import get_logger
from zzpboek.domain import entities
from zzpboek.domain.exceptions import (
    BookkeepingError,
    DuplicateError,
    EntryLockedError,
    NotFoundError,
)
from zzpboek.domain.services import code_sort_key, signed_balance
from zzpboek.domain.tax_categories import infer_tax_category, infer_tax_category_with_confidence
from zzpboek.domain.value_objects import (
    ZERO,
    AccountType,
    EntryStatus,
    MemoriaalType,
    round_cents,
)
from zzpboek.infrastructure.database.models import (
    Account,
    Contact,
    JournalEntry,
    JournalLine,
)

logger = get_logger(__name__)


def _enum_value(value):
    return getattr(value, "value", value)


def to_domain_entry(entry: JournalEntry) -> entities.JournalEntry:
    return entities.JournalEntry(
        id=entry.id,
        entry_date=entry.entry_date,
        description=entry.description,
        reference=entry.reference,
        status=EntryStatus(entry.status),
        memoriaal_type=MemoriaalType(entry.memoriaal_type),
        contact_id=entry.contact_id,
        lines=[
            entities.JournalLine(account_id=line.account_id, debit=line.debit, credit=line.credit,
                                 description=line.description)
            for line in entry.lines
        ],
        finalized_at=entry.finalized_at,
    )


def entry_snapshot(entry: JournalEntry) -> dict:
    return {
        "entry_date": entry.entry_date,
        "description": entry.description,
        "status": entry.status,
        "lines": [
            {"account_id": line.account_id, "debit": line.debit, "credit": line.credit}
            for line in entry.lines
        ],
    }


class LedgerService:
    def __init__(self, db: Session, user_role: str = "expert"):
        self.db = db
        self.user_role = user_role

    # --- Accounts ----------------------------------------------------------

    def list_accounts(
        self,
        account_type: str | None = None,
        is_active: bool | None = None,
        search: str | None = None,
    ) -> list[Account]:
        query = self.db.query(Account)
        if account_type:
            query = query.filter(Account.account_type == _enum_value(account_type))
        if is_active is not None:
            query = query.filter(Account.is_active.is_(is_active))
        if search:
            pattern = f"%{search}%"
            query = query.filter(or_(Account.code.ilike(pattern), Account.name.ilike(pattern)))
        return sorted(query.all(), key=lambda a: code_sort_key(a.code))

    def get_account(self, account_id: UUID) -> Account:
        account = self.db.get(Account, account_id)
        if account is None:
            raise NotFoundError("Rekening", account_id)
        return account

    def create_account(self, dto) -> Account:
        if self.db.query(Account).filter(Account.code == dto.code).first():
            raise DuplicateError(f"Rekeningnummer {dto.code} bestaat al")

        account_type = _enum_value(dto.account_type)
        account = Account(
            code=dto.code,
            name=dto.name,
            account_type=account_type,
            tax_category=dto.tax_category or infer_tax_category(dto.name, dto.code, account_type),
            rgs_code=dto.rgs_code,
            vat_code=_enum_value(dto.vat_code),
            description=dto.description,
        )
        self.db.add(account)
        self.db.commit()
        self.db.refresh(account)
        logger.info("account_created", code=account.code, tax_category=account.tax_category)
        return account

    def update_account(self, account_id: UUID, dto) -> Account:
        account = self.get_account(account_id)
        for field, value in dto.model_dump(exclude_unset=True).items():
            setattr(account, field, _enum_value(value))
        account.updated_at = datetime.utcnow()
        self.db.commit()
        self.db.refresh(account)
        return account

    def deactivate_account(self, account_id: UUID) -> Account:
        account = self.get_account(account_id)
        if account.is_system:
            raise BookkeepingError(f"Systeemrekening {account.code} kan niet worden gedeactiveerd")
        account.is_active = False
        account.updated_at = datetime.utcnow()
        self.db.commit()
        self.db.refresh(account)
        return account

    def delete_account(self, account_id: UUID) -> None:
        account = self.get_account(account_id)
        if account.is_system:
            raise BookkeepingError(f"Systeemrekening {account.code} kan niet worden verwijderd")
        if self.db.query(JournalLine).filter(JournalLine.account_id == account_id).first():
            raise BookkeepingError(
                f"Rekening {account.code} heeft boekingen en kan alleen worden gedeactiveerd"
            )
        self.db.delete(account)
        record_audit(self.db, "DELETE", "Account", account_id, old_value={"code": account.code},
                     user_role=self.user_role)
        self.db.commit()

    def bulk_infer_tax_categories(self, dry_run: bool = False) -> dict:
        """Vul ontbrekende fiscale categorieën aan voor alle rekeningen."""
        suggestions = []
        updated = unresolved = 0
        for account in self.list_accounts():
            if account.tax_category:
                continue
            suggestion = infer_tax_category_with_confidence(account.name, account.code, account.account_type)
            suggestions.append({
                "account_id": account.id,
                "code": account.code,
                "name": account.name,
                "current_category": account.tax_category,
                "suggested_category": suggestion.category,
                "confidence": suggestion.confidence,
            })
            if suggestion.category is None:
                unresolved += 1
                continue
            if not dry_run:
                account.tax_category = suggestion.category
                account.updated_at = datetime.utcnow()
            updated += 1

        if not dry_run:
            self.db.commit()
        logger.info("tax_categories_inferred", updated=updated, unresolved=unresolved, dry_run=dry_run)
        return {"dry_run": dry_run, "updated": updated, "unresolved": unresolved, "suggestions": suggestions}

    # --- Contacts ----------------------------------------------------------

    def list_contacts(
        self,
        relation_type: str | None = None,
        search: str | None = None,
        is_active: bool | None = None,
    ) -> list[Contact]:
        query = self.db.query(Contact)
        if relation_type:
            relation_type = _enum_value(relation_type)
            query = query.filter(or_(Contact.relation_type == relation_type, Contact.relation_type == "Both"))
        if is_active is not None:
            query = query.filter(Contact.is_active.is_(is_active))
        if search:
            pattern = f"%{search}%"
            query = query.filter(or_(Contact.company_name.ilike(pattern), Contact.email.ilike(pattern)))
        return query.order_by(Contact.company_name).all()

    def get_contact(self, contact_id: UUID) -> Contact:
        contact = self.db.get(Contact, contact_id)
        if contact is None:
            raise NotFoundError("Relatie", contact_id)
        return contact

    def _check_default_account(self, account_id: UUID | None) -> None:
        if account_id is not None:
            self.get_account(account_id)

    def create_contact(self, dto) -> Contact:
        self._check_default_account(dto.default_ledger_account_id)
        data = {k: _enum_value(v) for k, v in dto.model_dump().items()}
        contact = Contact(**data)
        self.db.add(contact)
        self.db.commit()
        self.db.refresh(contact)
        return contact

    def update_contact(self, contact_id: UUID, dto) -> Contact:
        contact = self.get_contact(contact_id)
        data = dto.model_dump(exclude_unset=True)
        if "default_ledger_account_id" in data:
            self._check_default_account(data["default_ledger_account_id"])
        for field, value in data.items():
            setattr(contact, field, _enum_value(value))
        contact.updated_at = datetime.utcnow()
        self.db.commit()
        self.db.refresh(contact)
        return contact

    def deactivate_contact(self, contact_id: UUID) -> Contact:
        contact = self.get_contact(contact_id)
        contact.is_active = False
        contact.updated_at = datetime.utcnow()
        self.db.commit()
        self.db.refresh(contact)
        return contact

    # --- Journal entries ---------------------------------------------------

    def _validate_lines(self, lines: list[entities.JournalLine]) -> None:
        account_ids = {line.account_id for line in lines}
        accounts = {
            a.id: a for a in self.db.query(Account).filter(Account.id.in_(account_ids)).all()
        } if account_ids else {}
        for line in lines:
            account = accounts.get(line.account_id)
            if account is None:
                raise NotFoundError("Rekening", line.account_id)
            if not account.is_active:
                raise BookkeepingError(f"Rekening {account.code} is niet actief")

    def _add_lines(self, entry: JournalEntry, lines: list[entities.JournalLine]) -> None:
        for number, line in enumerate(lines, start=1):
            entry.lines.append(
                JournalLine(
                    account_id=line.account_id,
                    line_number=number,
                    debit=round_cents(line.debit),
                    credit=round_cents(line.credit),
                    description=line.description,
                )
            )

    def create_entry(
        self,
        entry_date: date,
        description: str,
        lines: list[entities.JournalLine],
        status: EntryStatus | str = EntryStatus.DRAFT,
        memoriaal_type: MemoriaalType | str = MemoriaalType.MEMORIAAL,
        reference: str | None = None,
        contact_id: UUID | None = None,
        commit: bool = True,
    ) -> JournalEntry:
        """Nieuwe journaalpost. Definitieve posten moeten in balans zijn."""
        status = EntryStatus(status)
        domain_entry = entities.JournalEntry(
            entry_date=entry_date,
            description=description,
            reference=reference,
            memoriaal_type=MemoriaalType(memoriaal_type),
            contact_id=contact_id,
            lines=list(lines),
        )
        if status == EntryStatus.FINAL:
            domain_entry.validate_final()
        self._validate_lines(domain_entry.lines)

        entry = JournalEntry(
            id=domain_entry.id,
            entry_date=entry_date,
            description=description,
            reference=reference,
            status=status.value,
            memoriaal_type=domain_entry.memoriaal_type.value,
            contact_id=contact_id,
            finalized_at=datetime.utcnow() if status == EntryStatus.FINAL else None,
        )
        self._add_lines(entry, domain_entry.lines)
        self.db.add(entry)
        record_audit(self.db, "CREATE", "JournalEntry", entry.id, new_value=entry_snapshot(entry),
                     user_role=self.user_role)

        if commit:
            self.db.commit()
            self.db.refresh(entry)
        else:
            self.db.flush()
        logger.info(
            "journal_entry_created",
            entry_id=str(entry.id),
            status=entry.status,
            memoriaal_type=entry.memoriaal_type,
            total=str(domain_entry.total_debit.amount),
        )
        return entry

    def get_entry(self, entry_id: UUID) -> JournalEntry:
        entry = self.db.get(JournalEntry, entry_id)
        if entry is None:
            raise NotFoundError("Journaalpost", entry_id)
        return entry

    def list_entries(
        self,
        start_date: date | None = None,
        end_date: date | None = None,
        status: str | None = None,
        memoriaal_type: str | None = None,
        contact_id: UUID | None = None,
        skip: int = 0,
        limit: int = 100,
    ) -> list[JournalEntry]:
        query = self.db.query(JournalEntry)
        if start_date:
            query = query.filter(JournalEntry.entry_date >= start_date)
        if end_date:
            query = query.filter(JournalEntry.entry_date <= end_date)
        if status:
            query = query.filter(JournalEntry.status == _enum_value(status))
        if memoriaal_type:
            query = query.filter(JournalEntry.memoriaal_type == _enum_value(memoriaal_type))
        if contact_id:
            query = query.filter(JournalEntry.contact_id == contact_id)
        return (
            query.order_by(JournalEntry.entry_date.desc(), JournalEntry.created_at.desc())
            .offset(skip)
            .limit(limit)
            .all()
        )

    def update_entry(self, entry_id: UUID, dto) -> JournalEntry:
        entry = self.get_entry(entry_id)
        if entry.status == EntryStatus.FINAL.value:
            raise EntryLockedError("Een definitieve boeking kan niet worden gewijzigd")

        old = entry_snapshot(entry)
        data = dto.model_dump(exclude_unset=True, exclude={"lines"})
        for field, value in data.items():
            setattr(entry, field, value)

        if dto.lines is not None:
            lines = [
                entities.JournalLine(account_id=l.account_id, debit=l.debit, credit=l.credit,
                                     description=l.description)
                for l in dto.lines
            ]
            self._validate_lines(lines)
            entry.lines.clear()
            self.db.flush()
            self._add_lines(entry, lines)

        entry.updated_at = datetime.utcnow()
        record_audit(self.db, "UPDATE", "JournalEntry", entry.id, old_value=old,
                     new_value=entry_snapshot(entry), user_role=self.user_role)
        self.db.commit()
        self.db.refresh(entry)
        return entry

    def finalize_entry(self, entry_id: UUID, commit: bool = True) -> JournalEntry:
        """Concept definitief maken: vereist debet = credit en minimaal één bedrag."""
        entry = self.get_entry(entry_id)
        finalized = to_domain_entry(entry).finalize()

        entry.status = finalized.status.value
        entry.finalized_at = finalized.finalized_at
        entry.updated_at = datetime.utcnow()
        record_audit(self.db, "FINALIZE", "JournalEntry", entry.id,
                     new_value={"total": finalized.total_debit.amount}, user_role=self.user_role)
        if commit:
            self.db.commit()
            self.db.refresh(entry)
        else:
            self.db.flush()
        logger.info("journal_entry_finalized", entry_id=str(entry.id))
        return entry

    def delete_entry(self, entry_id: UUID, commit: bool = True) -> None:
        entry = self.get_entry(entry_id)
        if entry.status == EntryStatus.FINAL.value:
            raise EntryLockedError("Een definitieve boeking kan niet worden verwijderd; maak een correctieboeking")
        record_audit(self.db, "DELETE", "JournalEntry", entry.id, old_value=entry_snapshot(entry),
                     user_role=self.user_role)
        self.db.delete(entry)
        if commit:
            self.db.commit()
        else:
            self.db.flush()
        logger.info("journal_entry_deleted", entry_id=str(entry_id))

    def balance_check(self, entry_id: UUID) -> dict:
        domain_entry = to_domain_entry(self.get_entry(entry_id))
        return {
            "entry_id": entry_id,
            "total_debit": domain_entry.total_debit.amount,
            "total_credit": domain_entry.total_credit.amount,
            "difference": domain_entry.difference.amount,
            "is_balanced": domain_entry.is_balanced(),
        }

    def reverse_entry(self, entry_id: UUID, entry_date: date | None = None) -> JournalEntry:
        """Tegenboeking van een definitieve post (definitieve posten worden nooit gewijzigd)."""
        original = self.get_entry(entry_id)
        reversal = to_domain_entry(original).reversal(entry_date)
        entry = self.create_entry(
            entry_date=reversal.entry_date,
            description=reversal.description,
            lines=reversal.lines,
            status=reversal.status,
            memoriaal_type=reversal.memoriaal_type,
            reference=reversal.reference or str(original.id)[:8],
            contact_id=reversal.contact_id,
            commit=False,
        )
        record_audit(self.db, "REVERSE", "JournalEntry", original.id, new_value={"reversal_id": entry.id},
                     user_role=self.user_role)
        self.db.commit()
        self.db.refresh(entry)
        return entry

    def account_ledger(
        self,
        account_id: UUID,
        start_date: date | None = None,
        end_date: date | None = None,
    ) -> dict:
        """Grootboekkaart: definitieve regels met lopend saldo volgens de normale kant."""
        account = self.get_account(account_id)
        account_type = AccountType(account.account_type)

        base = (
            self.db.query(JournalLine, JournalEntry)
            .join(JournalEntry, JournalLine.journal_entry_id == JournalEntry.id)
            .filter(JournalLine.account_id == account_id, JournalEntry.status == EntryStatus.FINAL.value)
        )

        opening = ZERO
        if start_date:
            for line, _ in base.filter(JournalEntry.entry_date < start_date).all():
                opening += signed_balance(account_type, line.debit, line.credit)

        query = base
        if start_date:
            query = query.filter(JournalEntry.entry_date >= start_date)
        if end_date:
            query = query.filter(JournalEntry.entry_date <= end_date)
        rows = query.order_by(JournalEntry.entry_date, JournalEntry.created_at, JournalLine.line_number).all()

        balance = opening
        lines = []
        for line, entry in rows:
            balance += signed_balance(account_type, line.debit, line.credit)
            lines.append({
                "entry_id": entry.id,
                "entry_date": entry.entry_date,
                "description": line.description or entry.description,
                "reference": entry.reference,
                "debit": line.debit,
                "credit": line.credit,
                "balance": round_cents(balance),
            })

        return {
            "account": account,
            "start_date": start_date,
            "end_date": end_date,
            "opening_balance": round_cents(opening),
            "closing_balance": round_cents(balance),
            "lines": lines,
        }
