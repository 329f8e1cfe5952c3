"""
Report DTOs - proefbalans, winst- en verliesrekening, balans, BTW, dashboard.
"""

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict


class AccountBalanceDTO(BaseModel):
    account_id: UUID
    code: str
    name: str
    account_type: str
    tax_category: str | None
    debit: Decimal
    credit: Decimal
    balance: Decimal

    model_config = ConfigDict(from_attributes=True)


class CategoryGroupDTO(BaseModel):
    """DTO - Rekeningen gegroepeerd per fiscale categorie."""
    category: str
    total: Decimal
    accounts: list[AccountBalanceDTO]

    model_config = ConfigDict(from_attributes=True)


class TrialBalanceDTO(BaseModel):
    """DTO - Proefbalans."""
    start_date: date | None
    end_date: date | None
    accounts: list[AccountBalanceDTO]
    total_debit: Decimal
    total_credit: Decimal
    difference: Decimal
    is_balanced: bool


class ProfitAndLossDTO(BaseModel):
    """DTO - Winst- en verliesrekening."""
    start_date: date
    end_date: date
    revenue_groups: list[CategoryGroupDTO]
    expense_groups: list[CategoryGroupDTO]
    total_revenue: Decimal
    total_expenses: Decimal
    net_profit: Decimal


class BalanceSheetDTO(BaseModel):
    """DTO - Balans per einddatum."""
    end_date: date
    asset_groups: list[CategoryGroupDTO]
    liability_groups: list[CategoryGroupDTO]
    equity_groups: list[CategoryGroupDTO]
    total_assets: Decimal
    total_liabilities: Decimal
    total_equity: Decimal
    undistributed_result: Decimal
    total_liabilities_equity: Decimal
    difference: Decimal


class VatRubriekDTO(BaseModel):
    rubriek: str
    description: str
    grondslag: Decimal
    btw: Decimal


class VatReturnDTO(BaseModel):
    """DTO - BTW-aangifte uit het grootboek."""
    start_date: date
    end_date: date
    rubrieken: list[VatRubriekDTO]
    box1_revenue: Decimal
    box1_vat: Decimal
    box5b: Decimal
    net_payable: Decimal
    is_refund: bool


class VatBucketDTO(BaseModel):
    grondslag: Decimal
    btw: Decimal

    model_config = ConfigDict(from_attributes=True)


class InvoiceVatDTO(BaseModel):
    """DTO - BTW per kwartaal op basis van facturen."""
    year: int
    quarter: int
    start_date: date
    end_date: date
    omzet_hoog: VatBucketDTO
    omzet_laag: VatBucketDTO
    omzet_nul: VatBucketDTO
    voorbelasting: Decimal
    verschuldigd: Decimal
    teruggave: Decimal
    totaal: Decimal


class MonthlyAmountDTO(BaseModel):
    month: int
    revenue: Decimal
    expenses: Decimal


class DashboardDTO(BaseModel):
    """DTO - Kerncijfers voor het dashboard."""
    year: int
    revenue: Decimal
    expenses: Decimal
    profit: Decimal
    monthly: list[MonthlyAmountDTO]
    bank_balance: Decimal
    receivables: Decimal
    payables: Decimal
    liquidity_ratio: Decimal | None
    solvency_ratio: Decimal | None
    open_sales_invoices: int
    unread_notifications: int


class AuditLogResponseDTO(BaseModel):
    """DTO - Audit log."""
    id: UUID
    user_role: str
    action: str
    entity_type: str
    entity_id: UUID | None
    old_value: str | None
    new_value: str | None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
