"""
Income tax DTOs - IB-aangifte wizard en vaste activa.
"""

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class FiscalYearSaveDTO(BaseModel):
    """DTO - Wizardstatus opslaan."""
    hours_criterion_met: bool | None = Field(None, description="Urencriterium (1225 uur) gehaald")
    is_starter: bool | None = None
    private_use_car_amount: Decimal | None = Field(None, description="Bijtelling privégebruik auto")
    manual_corrections: Decimal | None = None
    current_step: int | None = Field(None, ge=1, le=7)
    draft_data: dict | None = None


class FiscalYearResponseDTO(BaseModel):
    id: UUID
    year: int
    hours_criterion_met: bool
    is_starter: bool
    private_use_car_amount: Decimal
    manual_corrections: Decimal
    current_step: int
    draft_data: dict | None
    status: str
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class FiscalIncomeDTO(BaseModel):
    """DTO - Winst uit onderneming."""
    year: int
    revenue: Decimal
    expenses: Decimal
    commercial_profit: Decimal
    private_use_car: Decimal
    manual_corrections: Decimal
    adjusted_profit: Decimal
    zelfstandigenaftrek: Decimal
    startersaftrek: Decimal
    total_deductions: Decimal
    profit_after_deductions: Decimal
    mkb_winstvrijstelling: Decimal
    taxable_income: Decimal
    kia_investments: Decimal
    kia_deduction: Decimal

    model_config = ConfigDict(from_attributes=True)


class TaxBalanceGroupDTO(BaseModel):
    category: str
    total: Decimal
    accounts: list[dict]


class TaxBalanceSheetDTO(BaseModel):
    """DTO - Fiscale balans per 31 december."""
    year: int
    assets: list[TaxBalanceGroupDTO]
    liabilities: list[TaxBalanceGroupDTO]
    total_assets: Decimal
    total_liabilities: Decimal
    is_balanced: bool


class FixedAssetCreateDTO(BaseModel):
    """DTO - Nieuw bedrijfsmiddel."""
    name: str = Field(..., min_length=1)
    purchase_date: date
    purchase_price: Decimal = Field(..., gt=0)
    residual_value: Decimal = Field(Decimal("0"), ge=0)
    useful_life_years: int = Field(5, ge=1, le=50)
    asset_account_id: UUID | None = None
    depreciation_account_id: UUID | None = None


class FixedAssetUpdateDTO(BaseModel):
    name: str | None = None
    residual_value: Decimal | None = Field(None, ge=0)
    useful_life_years: int | None = Field(None, ge=1, le=50)
    asset_account_id: UUID | None = None
    depreciation_account_id: UUID | None = None
    is_active: bool | None = None


class FixedAssetResponseDTO(BaseModel):
    id: UUID
    name: str
    purchase_date: date
    purchase_price: Decimal
    residual_value: Decimal
    useful_life_years: int
    asset_account_id: UUID | None
    depreciation_account_id: UUID | None
    accumulated_depreciation: Decimal
    last_depreciation_year: int | None
    is_active: bool

    model_config = ConfigDict(from_attributes=True)


class DepreciationLineDTO(BaseModel):
    asset_id: UUID
    name: str
    amount: Decimal
    journal_entry_id: UUID


class DepreciationResultDTO(BaseModel):
    """DTO - Afschrijvingen geboekt voor een jaar."""
    year: int
    total: Decimal
    booked: list[DepreciationLineDTO]
    skipped: int
