"""
Ledger DTOs - accounts, contacts and journal entries.
"""

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from zzpboek.domain.value_objects import AccountType, EntryStatus, MemoriaalType, RelationType, VatCode


class AccountCreateDTO(BaseModel):
    """DTO - Nieuwe grootboekrekening."""
    code: str = Field(..., min_length=1, max_length=10, description="Rekeningnummer")
    name: str = Field(..., min_length=1, description="Naam")
    account_type: AccountType = Field(..., description="Asset, Liability, Equity, Revenue, Expense")
    tax_category: str | None = Field(None, description="Fiscale categorie; leeg = afleiden")
    rgs_code: str | None = Field(None, description="RGS-referentiecode")
    vat_code: VatCode | None = Field(None, description="hoog, laag, nul, verlegd")
    description: str | None = None


class AccountUpdateDTO(BaseModel):
    name: str | None = None
    account_type: AccountType | None = None
    tax_category: str | None = None
    rgs_code: str | None = None
    vat_code: VatCode | None = None
    description: str | None = None
    is_active: bool | None = None


class AccountResponseDTO(BaseModel):
    """DTO - Grootboekrekening."""
    id: UUID
    code: str
    name: str
    account_type: str
    tax_category: str | None
    rgs_code: str | None
    vat_code: str | None
    description: str | None
    is_active: bool
    is_system: bool

    model_config = ConfigDict(from_attributes=True)


class TaxCategorySuggestionDTO(BaseModel):
    account_id: UUID
    code: str
    name: str
    current_category: str | None
    suggested_category: str | None
    confidence: int


class BulkInferResultDTO(BaseModel):
    """DTO - Resultaat van het afleiden van ontbrekende fiscale categorieën."""
    dry_run: bool
    updated: int
    unresolved: int
    suggestions: list[TaxCategorySuggestionDTO]


class ContactCreateDTO(BaseModel):
    """DTO - Nieuwe relatie."""
    company_name: str = Field(..., min_length=1, description="Bedrijfsnaam")
    contact_person: str | None = None
    email: str | None = None
    phone: str | None = None
    address: str | None = None
    postal_code: str | None = None
    city: str | None = None
    country: str = "NL"
    vat_number: str | None = Field(None, description="BTW-nummer")
    coc_number: str | None = Field(None, description="KvK-nummer")
    iban: str | None = None
    relation_type: RelationType = RelationType.CUSTOMER
    default_ledger_account_id: UUID | None = Field(None, description="Standaard grootboekrekening")
    payment_term_days: int = Field(14, ge=0, le=365)


class ContactUpdateDTO(BaseModel):
    company_name: str | None = None
    contact_person: str | None = None
    email: str | None = None
    phone: str | None = None
    address: str | None = None
    postal_code: str | None = None
    city: str | None = None
    country: str | None = None
    vat_number: str | None = None
    coc_number: str | None = None
    iban: str | None = None
    relation_type: RelationType | None = None
    default_ledger_account_id: UUID | None = None
    payment_term_days: int | None = Field(None, ge=0, le=365)
    is_active: bool | None = None


class ContactResponseDTO(BaseModel):
    id: UUID
    company_name: str
    contact_person: str | None
    email: str | None
    phone: str | None
    address: str | None
    postal_code: str | None
    city: str | None
    country: str
    vat_number: str | None
    coc_number: str | None
    iban: str | None
    relation_type: str
    default_ledger_account_id: UUID | None
    payment_term_days: int
    is_active: bool

    model_config = ConfigDict(from_attributes=True)


class JournalLineCreateDTO(BaseModel):
    """DTO - Journaalregel."""
    account_id: UUID = Field(..., description="Grootboekrekening")
    debit: Decimal = Field(Decimal("0"), ge=0, description="Debet")
    credit: Decimal = Field(Decimal("0"), ge=0, description="Credit")
    description: str | None = None


class JournalEntryCreateDTO(BaseModel):
    """DTO - Nieuwe journaalpost (memoriaal)."""
    entry_date: date = Field(..., description="Boekdatum")
    description: str = Field(..., min_length=1, description="Omschrijving")
    reference: str | None = None
    memoriaal_type: MemoriaalType = MemoriaalType.MEMORIAAL
    contact_id: UUID | None = None
    status: EntryStatus = Field(EntryStatus.DRAFT, description="Draft of Final")
    lines: list[JournalLineCreateDTO] = Field(..., min_length=1)


class JournalEntryUpdateDTO(BaseModel):
    """DTO - Concept bijwerken; regels worden vervangen."""
    entry_date: date | None = None
    description: str | None = None
    reference: str | None = None
    contact_id: UUID | None = None
    lines: list[JournalLineCreateDTO] | None = None


class JournalLineResponseDTO(BaseModel):
    id: UUID
    account_id: UUID
    line_number: int
    debit: Decimal
    credit: Decimal
    description: str | None

    model_config = ConfigDict(from_attributes=True)


class JournalEntryResponseDTO(BaseModel):
    """DTO - Journaalpost."""
    id: UUID
    entry_date: date
    description: str
    reference: str | None
    status: str
    memoriaal_type: str
    contact_id: UUID | None
    finalized_at: datetime | None
    created_at: datetime
    lines: list[JournalLineResponseDTO]

    model_config = ConfigDict(from_attributes=True)


class BalanceCheckResultDTO(BaseModel):
    """DTO - Resultaat balanscontrole debet = credit."""
    entry_id: UUID
    total_debit: Decimal
    total_credit: Decimal
    difference: Decimal
    is_balanced: bool


class LedgerLineDTO(BaseModel):
    entry_id: UUID
    entry_date: date
    description: str
    reference: str | None
    debit: Decimal
    credit: Decimal
    balance: Decimal


class AccountLedgerDTO(BaseModel):
    """DTO - Grootboekkaart met lopend saldo."""
    account: AccountResponseDTO
    start_date: date | None
    end_date: date | None
    opening_balance: Decimal
    closing_balance: Decimal
    lines: list[LedgerLineDTO]
