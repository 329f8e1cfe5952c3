"""Infrastructure layer."""

from zzpboek.infrastructure.database import SessionLocal, get_db, init_db, seed_default_accounts
from zzpboek.infrastructure.database.models import (
    Account,
    AuditLog,
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
