"""
Bank DTOs - import, regels en afletteren.
"""

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from zzpboek.domain.value_objects import MatchType


class BankTransactionResponseDTO(BaseModel):
    """DTO - Bankmutatie."""
    id: UUID
    transaction_date: date
    amount: Decimal
    description: str
    contra_name: str | None
    contra_iban: str | None
    reference: str | None
    balance_after: Decimal | None
    transaction_type: str
    status: str
    source_format: str | None
    journal_entry_id: UUID | None
    contact_id: UUID | None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ImportResultDTO(BaseModel):
    """DTO - Resultaat bankimport."""
    source_format: str
    imported: int
    duplicates: int
    skipped: int
    errors: list[str] = []


class BankRuleCreateDTO(BaseModel):
    """DTO - Boekingsregel."""
    keyword: str = Field(..., min_length=1, description="Trefwoord")
    match_type: MatchType = MatchType.CONTAINS
    target_account_id: UUID | None = Field(None, description="Tegenrekening")
    contact_id: UUID | None = None
    description_template: str | None = None
    priority: int = Field(0, description="Hoger = eerder toegepast")
    is_active: bool = True


class BankRuleResponseDTO(BaseModel):
    id: UUID
    keyword: str
    match_type: str
    target_account_id: UUID | None
    contact_id: UUID | None
    description_template: str | None
    priority: int
    is_active: bool

    model_config = ConfigDict(from_attributes=True)


class RuleSuggestionDTO(BaseModel):
    transaction_id: UUID
    keyword: str | None
    cleaned_description: str
    match_type: str = MatchType.CONTAINS.value


class AutoMatchResultDTO(BaseModel):
    """DTO - Resultaat automatisch afletteren."""
    processed: int
    matched_by_contact: int
    matched_by_rule: int
    unmatched: int


class BookTransactionDTO(BaseModel):
    """DTO - Directe boeking tegen een grootboekrekening."""
    account_id: UUID = Field(..., description="Tegenrekening")
    description: str | None = None


class BookViaRelationDTO(BaseModel):
    """DTO - Boeking via debiteuren/crediteuren."""
    contact_id: UUID
    account_id: UUID | None = Field(None, description="Omzet- of kostenrekening; standaard die van de relatie")
    description: str | None = None
