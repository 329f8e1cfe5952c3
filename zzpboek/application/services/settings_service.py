"""
Bedrijfsinstellingen en beheer: rekeningschema seeden, administratie resetten,
configuratie-backup.
"""

from datetime import datetime

from sqlalchemy.orm import Session

from zzpboek import __version__
from zzpboek.application.services.audit import record_audit
from zzpboek.application.services.system_accounts import SystemAccounts
from zzpboek.core.logging import get_logger
from zzpboek.domain.exceptions import BookkeepingError, NotFoundError
from zzpboek.infrastructure.database import seed_default_accounts
from zzpboek.infrastructure.database.models import (
    Account,
    BankRule,
    BankTransaction,
    CompanySettings,
    Contact,
    DocumentInbox,
    FiscalYear,
    FixedAsset,
    JournalEntry,
    JournalLine,
    Notification,
    PurchaseInvoice,
    Quotation,
    SalesInvoice,
)

logger = get_logger(__name__)

# Volgorde waarin tabellen bij een reset worden geleegd (afhankelijke tabellen eerst)
RESET_ORDER = [
    ("notifications", Notification),
    ("document_inbox", DocumentInbox),
    ("bank_transactions", BankTransaction),
    ("purchase_invoices", PurchaseInvoice),
    ("sales_invoices", SalesInvoice),
    ("quotations", Quotation),
    ("fixed_assets", FixedAsset),
    ("fiscal_years", FiscalYear),
    ("journal_lines", JournalLine),
    ("journal_entries", JournalEntry),
    ("contacts", Contact),
]


def _row(model, exclude: tuple[str, ...] = ()) -> dict:
    return model.model_dump(exclude=set(exclude))


class SettingsService:
    def __init__(self, db: Session, user_role: str = "expert"):
        self.db = db
        self.user_role = user_role

    def get_company(self) -> CompanySettings:
        company = self.db.query(CompanySettings).first()
        if company is None:
            company = CompanySettings()
            self.db.add(company)
            self.db.commit()
            self.db.refresh(company)
        return company

    def update_company(self, dto) -> CompanySettings:
        company = self.get_company()
        data = dto.model_dump(exclude_unset=True)
        for field in ("cash_account_id", "private_account_id"):
            if data.get(field) and self.db.get(Account, data[field]) is None:
                raise NotFoundError("Rekening", data[field])
        for field, value in data.items():
            setattr(company, field, value)
        company.updated_at = datetime.utcnow()
        record_audit(self.db, "UPDATE", "CompanySettings", company.id, new_value=data, user_role=self.user_role)
        self.db.commit()
        self.db.refresh(company)
        return company

    def system_accounts(self) -> list[dict]:
        resolved = SystemAccounts(self.db).resolve_all()
        return [
            {
                "role": role,
                "account_id": account.id if account else None,
                "code": account.code if account else None,
                "name": account.name if account else None,
            }
            for role, account in resolved.items()
        ]

    def seed(self) -> dict:
        return {"created": seed_default_accounts(self.db)}

    def reset_administration(self) -> dict:
        """
        Alle boekingsdata verwijderen. Rekeningschema, bankregels en
        bedrijfsinstellingen blijven staan; de audit trail ook.
        """
        if self.user_role != "expert":
            raise BookkeepingError("Alleen een expert mag de administratie resetten")

        self.db.query(BankRule).update({BankRule.contact_id: None}, synchronize_session=False)
        deleted = {}
        for name, model in RESET_ORDER:
            deleted[name] = self.db.query(model).delete(synchronize_session=False)

        record_audit(self.db, "RESET", "Administration", new_value=deleted, user_role=self.user_role)
        self.db.commit()
        self.db.expire_all()
        logger.warning("administration_reset", **deleted)
        return {"deleted": deleted}

    def configuration_backup(self) -> dict:
        """Rekeningschema, relaties, bankregels en instellingen als JSON-structuur."""
        accounts = self.db.query(Account).order_by(Account.code).all()
        contacts = self.db.query(Contact).order_by(Contact.company_name).all()
        rules = self.db.query(BankRule).order_by(BankRule.priority.desc()).all()
        return {
            "export_date": datetime.utcnow().isoformat(),
            "version": __version__,
            "settings": _row(self.get_company(), exclude=("created_at", "updated_at")),
            "accounts": [_row(a, exclude=("created_at", "updated_at")) for a in accounts],
            "contacts": [_row(c, exclude=("created_at", "updated_at")) for c in contacts],
            "bank_rules": [_row(r, exclude=("created_at",)) for r in rules],
        }

