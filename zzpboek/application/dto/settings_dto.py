"""
Settings DTOs - bedrijfsgegevens, systeemrekeningen en beheer.
"""

from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class CompanySettingsDTO(BaseModel):
    """DTO - Bedrijfsgegevens."""
    id: UUID
    name: str
    kvk_number: str | None
    vat_number: str | None
    iban: str | None
    address: str | None
    postal_code: str | None
    city: str | None
    email: str | None
    phone: str | None
    payment_term_days: int
    quote_validity_days: int
    cash_account_id: UUID | None
    private_account_id: UUID | None

    model_config = ConfigDict(from_attributes=True)


class CompanySettingsUpdateDTO(BaseModel):
    name: str | None = Field(None, min_length=1)
    kvk_number: str | None = None
    vat_number: str | None = None
    iban: str | None = None
    address: str | None = None
    postal_code: str | None = None
    city: str | None = None
    email: str | None = None
    phone: str | None = None
    payment_term_days: int | None = Field(None, ge=0, le=365)
    quote_validity_days: int | None = Field(None, ge=1, le=365)
    cash_account_id: UUID | None = None
    private_account_id: UUID | None = None


class SystemAccountDTO(BaseModel):
    role: str
    account_id: UUID | None
    code: str | None
    name: str | None


class SeedResultDTO(BaseModel):
    created: int


class ResetResultDTO(BaseModel):
    """DTO - Aantal verwijderde records per tabel."""
    deleted: dict[str, int]


class ImportRowErrorDTO(BaseModel):
    row: int
    error: str


class ImportReportDTO(BaseModel):
    """DTO - Resultaat Excel-import."""
    created: int
    updated: int
    errors: list[ImportRowErrorDTO]
