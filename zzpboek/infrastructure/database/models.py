"""
Infrastructure - SQLModel database models.
"""

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy import JSON, CheckConstraint, Column, UniqueConstraint
from sqlmodel import Field, Relationship, SQLModel

from zzpboek.core.config import Settings


def money_field(**kwargs):
    return Field(default=Decimal("0"), max_digits=14, decimal_places=2, **kwargs)


class CompanySettings(SQLModel, table=True):
    """Bedrijfsgegevens en financiële instellingen van de administratie."""

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    name: str = "Mijn Onderneming"
    kvk_number: str | None = None
    vat_number: str | None = None
    iban: str | None = None
    address: str | None = None
    postal_code: str | None = None
    city: str | None = None
    email: str | None = None
    phone: str | None = None
    payment_term_days: int = 14
    quote_validity_days: int = 30
    cash_account_id: UUID | None = Field(default=None, foreign_key="account.id")
    private_account_id: UUID | None = Field(default=None, foreign_key="account.id")
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)


class Account(SQLModel, table=True):
    """Grootboekrekening."""

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    code: str = Field(unique=True, index=True)
    name: str
    account_type: str = Field(index=True)  # Asset, Liability, Equity, Revenue, Expense
    tax_category: str | None = Field(default=None, index=True)
    rgs_code: str | None = None
    vat_code: str | None = None  # hoog, laag, nul, verlegd
    description: str | None = None
    is_active: bool = True
    is_system: bool = False
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    journal_lines: list["JournalLine"] = Relationship(back_populates="account")


class Contact(SQLModel, table=True):
    """Relatie: klant, leverancier of beide."""

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    company_name: str = Field(index=True)
    contact_person: str | None = None
    email: str | None = None
    phone: str | None = None
    address: str | None = None
    postal_code: str | None = None
    city: str | None = None
    country: str = "NL"
    vat_number: str | None = None
    coc_number: str | None = None
    iban: str | None = Field(default=None, index=True)
    relation_type: str = "Customer"  # Customer, Supplier, Both
    default_ledger_account_id: UUID | None = Field(default=None, foreign_key="account.id")
    payment_term_days: int = 14
    is_active: bool = True
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)


class JournalEntry(SQLModel, table=True):
    """Journaalpost."""

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    entry_date: date = Field(index=True)
    description: str
    reference: str | None = None
    status: str = Field(default="Draft", index=True)  # Draft, Final
    memoriaal_type: str = "Memoriaal"
    contact_id: UUID | None = Field(default=None, foreign_key="contact.id")
    finalized_at: datetime | None = None
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    lines: list["JournalLine"] = Relationship(
        back_populates="journal_entry",
        sa_relationship_kwargs={"cascade": "all, delete-orphan", "order_by": "JournalLine.line_number"},
    )


class JournalLine(SQLModel, table=True):
    """Journaalregel: debet of credit op één rekening."""

    __table_args__ = (
        CheckConstraint("debit >= 0", name="ck_journalline_debit_non_negative"),
        CheckConstraint("credit >= 0", name="ck_journalline_credit_non_negative"),
        CheckConstraint("NOT (debit > 0 AND credit > 0)", name="ck_journalline_single_side"),
    )

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    journal_entry_id: UUID = Field(foreign_key="journalentry.id", index=True)
    account_id: UUID = Field(foreign_key="account.id", index=True)
    line_number: int = 1
    debit: Decimal = money_field()
    credit: Decimal = money_field()
    description: str | None = None

    journal_entry: "JournalEntry" = Relationship(back_populates="lines")
    account: "Account" = Relationship(back_populates="journal_lines")


class BankTransaction(SQLModel, table=True):
    """Geïmporteerde bankmutatie."""

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    transaction_date: date = Field(index=True)
    amount: Decimal = money_field()  # positief = ontvangst
    description: str
    contra_name: str | None = None
    contra_iban: str | None = None
    reference: str | None = None
    balance_after: Decimal | None = Field(default=None, max_digits=14, decimal_places=2)
    transaction_type: str = "Credit"  # Credit, Debit
    status: str = Field(default="Unmatched", index=True)
    import_hash: str = Field(unique=True, index=True)
    source_format: str | None = None  # MT940, CSV, CAMT053
    journal_entry_id: UUID | None = Field(default=None, foreign_key="journalentry.id")
    contact_id: UUID | None = Field(default=None, foreign_key="contact.id")
    created_at: datetime = Field(default_factory=datetime.utcnow)


class BankRule(SQLModel, table=True):
    """Automatische boekingsregel voor bankmutaties."""

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    keyword: str
    match_type: str = "Contains"  # Contains, Exact
    target_account_id: UUID | None = Field(default=None, foreign_key="account.id")
    contact_id: UUID | None = Field(default=None, foreign_key="contact.id")
    description_template: str | None = None
    priority: int = 0
    is_active: bool = True
    created_at: datetime = Field(default_factory=datetime.utcnow)


class DocumentInbox(SQLModel, table=True):
    """Geüploade inkoopfactuur die op verwerking wacht."""

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    file_name: str
    file_path: str
    mime_type: str
    status: str = Field(default="Processing", index=True)
    extracted_data: dict | None = Field(default=None, sa_column=Column(JSON))
    error_message: str | None = None
    purchase_invoice_id: UUID | None = Field(default=None, foreign_key="purchaseinvoice.id")
    uploaded_at: datetime = Field(default_factory=datetime.utcnow)
    processed_at: datetime | None = None


class PurchaseInvoice(SQLModel, table=True):
    """Inkoopfactuur."""

    __table_args__ = (
        UniqueConstraint("contact_id", "invoice_number", name="uq_purchaseinvoice_contact_number"),
    )

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    contact_id: UUID = Field(foreign_key="contact.id", index=True)
    invoice_number: str
    invoice_date: date = Field(index=True)
    due_date: date | None = None
    total_amount: Decimal = money_field()
    vat_amount: Decimal = money_field()
    net_amount: Decimal = money_field()
    vat_percentage: Decimal = Field(default=Decimal("21"), max_digits=5, decimal_places=2)
    expense_account_id: UUID = Field(foreign_key="account.id")
    description: str | None = None
    status: str = "Pending"  # Draft, Pending, Paid, Overdue
    journal_entry_id: UUID | None = Field(default=None, foreign_key="journalentry.id")
    paid_at: date | None = None
    created_at: datetime = Field(default_factory=datetime.utcnow)


class SalesInvoice(SQLModel, table=True):
    """Verkoopfactuur."""

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    contact_id: UUID = Field(foreign_key="contact.id", index=True)
    invoice_number: str = Field(unique=True, index=True)
    invoice_date: date = Field(index=True)
    due_date: date | None = None
    status: str = "draft"  # draft, sent, paid, overdue
    items: list = Field(default_factory=list, sa_column=Column(JSON))
    subtotal: Decimal = money_field()
    vat_amount: Decimal = money_field()
    total_amount: Decimal = money_field()
    notes: str | None = None
    quotation_id: UUID | None = Field(default=None, foreign_key="quotation.id")
    journal_entry_id: UUID | None = Field(default=None, foreign_key="journalentry.id")
    sent_at: datetime | None = None
    paid_at: date | None = None
    created_at: datetime = Field(default_factory=datetime.utcnow)


class Quotation(SQLModel, table=True):
    """Offerte."""

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    contact_id: UUID = Field(foreign_key="contact.id", index=True)
    quote_number: str = Field(unique=True, index=True)
    quote_date: date
    valid_until: date
    status: str = "draft"  # draft, sent, accepted, rejected, expired
    items: list = Field(default_factory=list, sa_column=Column(JSON))
    subtotal: Decimal = money_field()
    vat_amount: Decimal = money_field()
    total_amount: Decimal = money_field()
    notes: str | None = None
    terms: str | None = None
    public_token: UUID = Field(default_factory=uuid4, unique=True, index=True)
    accepted_at: datetime | None = None
    sent_at: datetime | None = None
    converted_invoice_id: UUID | None = None
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)


class Notification(SQLModel, table=True):
    id: UUID = Field(default_factory=uuid4, primary_key=True)
    type: str  # quote_accepted, quote_rejected, system
    title: str
    message: str
    reference_id: UUID | None = None
    reference_type: str | None = None  # quotation, invoice
    is_read: bool = Field(default=False, index=True)
    created_at: datetime = Field(default_factory=datetime.utcnow, index=True)


class FiscalYear(SQLModel, table=True):
    """Gegevens voor de IB-aangifte van één jaar."""

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    year: int = Field(unique=True, index=True)
    hours_criterion_met: bool = False
    is_starter: bool = False
    private_use_car_amount: Decimal = money_field()
    manual_corrections: Decimal = money_field()
    current_step: int = 1
    draft_data: dict | None = Field(default=None, sa_column=Column(JSON))
    status: str = "Open"  # Open, Finalized
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)


class FixedAsset(SQLModel, table=True):
    """Bedrijfsmiddel voor afschrijving en KIA."""

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    name: str
    purchase_date: date = Field(index=True)
    purchase_price: Decimal = money_field()
    residual_value: Decimal = money_field()
    useful_life_years: int = 5
    asset_account_id: UUID | None = Field(default=None, foreign_key="account.id")
    depreciation_account_id: UUID | None = Field(default=None, foreign_key="account.id")
    accumulated_depreciation: Decimal = money_field()
    last_depreciation_year: int | None = None
    is_active: bool = True
    created_at: datetime = Field(default_factory=datetime.utcnow)


class AuditLog(SQLModel, table=True):
    """Audit trail van boekhoudkundige mutaties."""

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    user_role: str = Field(default="expert", index=True)
    action: str = Field(index=True)  # CREATE, UPDATE, DELETE, FINALIZE, REVERSE, RESET

    entity_type: str  # JournalEntry, BankTransaction, ...
    entity_id: UUID | None = None

    old_value: str | None = None  # JSON
    new_value: str | None = None  # JSON

    created_at: datetime = Field(default_factory=datetime.utcnow, index=True)


def get_engine_url(settings: Settings) -> str:
    """Database URL uit de instellingen."""
    if settings.database_url:
        return settings.database_url

    if settings.database_type == "sqlite":
        return f"sqlite:///{settings.database_path}"

    import os

    host = os.getenv("DB_HOST", "localhost")
    port = os.getenv("DB_PORT", "5432")
    dbname = os.getenv("DB_NAME", "zzpboek")
    user = os.getenv("DB_USER", "postgres")
    password = os.getenv("DB_PASSWORD", "postgres")
    return f"postgresql://{user}:{password}@{host}:{port}/{dbname}"
