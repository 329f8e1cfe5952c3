"""
Domain Services - rekenregels die over meerdere entiteiten gaan:
saldi per rekening, groeperen per fiscale categorie, BTW en IB.
"""

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal

from .value_objects import (
    BALANCE_TOLERANCE,
    ZERO,
    AccountType,
    LineItem,
    round_cents,
    to_decimal,
)

DEFAULT_CATEGORY = "Overig"


def signed_balance(account_type: AccountType | str, debit: Decimal, credit: Decimal) -> Decimal:
    """Saldo volgens de normale kant van de rekening.

    Activa en kosten: debet - credit. Schulden, eigen vermogen en opbrengsten:
    credit - debet.
    """
    if AccountType(account_type).is_debit_normal:
        return debit - credit
    return credit - debit


def code_sort_key(code: str) -> tuple[int, str]:
    try:
        return int(code), code
    except (TypeError, ValueError):
        return 10**9, code or ""


@dataclass
class AccountTotal:
    """Opgetelde debet/credit van één grootboekrekening over een periode."""
    account_id: object
    code: str
    name: str
    account_type: AccountType
    tax_category: str | None = None
    debit: Decimal = ZERO
    credit: Decimal = ZERO

    def add(self, debit, credit) -> None:
        self.debit += to_decimal(debit)
        self.credit += to_decimal(credit)

    @property
    def balance(self) -> Decimal:
        return signed_balance(self.account_type, self.debit, self.credit)

    @property
    def category(self) -> str:
        return self.tax_category or DEFAULT_CATEGORY


@dataclass
class CategoryGroup:
    category: str
    accounts: list[AccountTotal] = field(default_factory=list)

    @property
    def total(self) -> Decimal:
        return sum((a.balance for a in self.accounts), ZERO)


def group_by_category(totals: Iterable[AccountTotal]) -> list[CategoryGroup]:
    """Groepeer rekeningen met saldo per fiscale categorie.

    Rekeningen zonder saldo vallen weg; binnen een groep staan ze op
    numerieke code, groepen in volgorde van hun eerste rekening.
    """
    groups: dict[str, CategoryGroup] = {}
    for total in sorted(totals, key=lambda t: code_sort_key(t.code)):
        if total.balance == 0:
            continue
        groups.setdefault(total.category, CategoryGroup(total.category)).accounts.append(total)
    return list(groups.values())


def sum_groups(groups: Iterable[CategoryGroup]) -> Decimal:
    return sum((g.total for g in groups), ZERO)


# --- BTW -------------------------------------------------------------------


@dataclass
class VatBucket:
    grondslag: Decimal = ZERO
    btw: Decimal = ZERO


@dataclass
class InvoiceVatSummary:
    """BTW-aangifte per kwartaal op basis van facturen."""
    omzet_hoog: VatBucket
    omzet_laag: VatBucket
    omzet_nul: VatBucket
    voorbelasting: Decimal
    verschuldigd: Decimal
    teruggave: Decimal
    totaal: Decimal


def quarter_period(year: int, quarter: int) -> tuple[date, date]:
    if quarter not in (1, 2, 3, 4):
        raise ValueError(f"Kwartaal moet 1 t/m 4 zijn, niet {quarter}")
    start_month = 3 * (quarter - 1) + 1
    end_month = start_month + 2
    end_day = 31 if end_month in (3, 12) else 30
    return date(year, start_month, 1), date(year, end_month, end_day)


def calculate_invoice_vat(
    sales_items: Iterable[LineItem],
    purchase_vat_amounts: Iterable[Decimal],
) -> InvoiceVatSummary:
    """Tel verkoopregels per tarief en trek de voorbelasting af.

    21% is hoog, 9% is laag, 0% is nul; elk ander tarief telt als hoog.
    """
    hoog, laag, nul = VatBucket(), VatBucket(), VatBucket()
    for item in sales_items:
        rate = to_decimal(item.vat_percentage)
        if rate == 9:
            bucket = laag
        elif rate == 0:
            bucket = nul
        else:
            bucket = hoog
        bucket.grondslag += item.subtotal
        bucket.btw += item.vat_amount

    voorbelasting = sum((to_decimal(v) for v in purchase_vat_amounts), ZERO)
    verschuldigd = hoog.btw + laag.btw
    totaal = round_cents(verschuldigd - voorbelasting)

    return InvoiceVatSummary(
        omzet_hoog=VatBucket(round_cents(hoog.grondslag), round_cents(hoog.btw)),
        omzet_laag=VatBucket(round_cents(laag.grondslag), round_cents(laag.btw)),
        omzet_nul=VatBucket(round_cents(nul.grondslag), ZERO),
        voorbelasting=round_cents(voorbelasting),
        verschuldigd=round_cents(verschuldigd),
        teruggave=abs(totaal) if totaal < 0 else ZERO,
        totaal=totaal,
    )


# --- Inkomstenbelasting ----------------------------------------------------


@dataclass(frozen=True)
class TaxRates:
    """Ondernemersaftrekken en vrijstellingen voor één belastingjaar."""
    zelfstandigenaftrek: Decimal
    startersaftrek: Decimal
    mkb_winstvrijstelling_percentage: Decimal
    kia_percentage: Decimal
    kia_minimum: Decimal


TAX_RATES_2024 = TaxRates(
    zelfstandigenaftrek=Decimal("3750"),
    startersaftrek=Decimal("2123"),
    mkb_winstvrijstelling_percentage=Decimal("0.1331"),
    kia_percentage=Decimal("0.28"),
    kia_minimum=Decimal("2800"),
)


@dataclass
class FiscalIncome:
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


class IncomeTaxCalculator:
    """Winst uit onderneming voor de IB-aangifte."""

    def __init__(self, rates: TaxRates = TAX_RATES_2024):
        self.rates = rates

    def calculate(
        self,
        year: int,
        revenue: Decimal,
        expenses: Decimal,
        hours_criterion_met: bool = False,
        is_starter: bool = False,
        private_use_car: Decimal = ZERO,
        manual_corrections: Decimal = ZERO,
        investments: Decimal = ZERO,
    ) -> FiscalIncome:
        revenue = to_decimal(revenue)
        expenses = to_decimal(expenses)
        private_use_car = to_decimal(private_use_car)
        manual_corrections = to_decimal(manual_corrections)
        investments = to_decimal(investments)

        commercial_profit = revenue - expenses
        adjusted_profit = commercial_profit + private_use_car + manual_corrections

        zelfstandigenaftrek = self.rates.zelfstandigenaftrek if hours_criterion_met else ZERO
        startersaftrek = self.rates.startersaftrek if is_starter else ZERO
        total_deductions = zelfstandigenaftrek + startersaftrek

        profit_after_deductions = max(ZERO, adjusted_profit - total_deductions)
        mkb = round_cents(profit_after_deductions * self.rates.mkb_winstvrijstelling_percentage)
        taxable_income = profit_after_deductions - mkb

        kia = (
            round_cents(investments * self.rates.kia_percentage)
            if investments > self.rates.kia_minimum
            else ZERO
        )

        return FiscalIncome(
            year=year,
            revenue=round_cents(revenue),
            expenses=round_cents(expenses),
            commercial_profit=round_cents(commercial_profit),
            private_use_car=round_cents(private_use_car),
            manual_corrections=round_cents(manual_corrections),
            adjusted_profit=round_cents(adjusted_profit),
            zelfstandigenaftrek=zelfstandigenaftrek,
            startersaftrek=startersaftrek,
            total_deductions=total_deductions,
            profit_after_deductions=round_cents(profit_after_deductions),
            mkb_winstvrijstelling=mkb,
            taxable_income=round_cents(taxable_income),
            kia_investments=round_cents(investments),
            kia_deduction=kia,
        )


TAX_ASSET_CATEGORIES = [
    "Materiële Vaste Activa",
    "Financiële Vaste Activa",
    "Voorraden",
    "Vorderingen",
    "Liquide Middelen",
]

TAX_LIABILITY_CATEGORIES = [
    "Ondernemingsvermogen",
    "Langlopende Schulden",
    "Kortlopende Schulden",
]


@dataclass
class TaxBalanceSheet:
    assets: list[CategoryGroup]
    liabilities: list[CategoryGroup]

    @property
    def total_assets(self) -> Decimal:
        return sum_groups(self.assets)

    @property
    def total_liabilities(self) -> Decimal:
        return sum_groups(self.liabilities)

    @property
    def is_balanced(self) -> bool:
        return abs(self.total_assets - self.total_liabilities) < BALANCE_TOLERANCE


def build_tax_balance_sheet(totals: Iterable[AccountTotal]) -> TaxBalanceSheet:
    """Fiscale balans: vaste rubrieken, categorie case-insensitive gematcht."""
    totals = sorted(totals, key=lambda t: code_sort_key(t.code))

    def collect(categories: list[str]) -> list[CategoryGroup]:
        groups = []
        for category in categories:
            wanted = category.lower()
            accounts = [
                t for t in totals
                if t.tax_category and t.tax_category.lower() == wanted and t.balance != 0
            ]
            groups.append(CategoryGroup(category, accounts))
        return groups

    return TaxBalanceSheet(
        assets=collect(TAX_ASSET_CATEGORIES),
        liabilities=collect(TAX_LIABILITY_CATEGORIES),
    )


# --- Afschrijvingen --------------------------------------------------------


def yearly_depreciation(
    purchase_price: Decimal,
    residual_value: Decimal,
    useful_life_years: int,
    purchase_date: date,
    year: int,
    already_depreciated: Decimal = ZERO,
) -> Decimal:
    """Lineaire afschrijving voor `year`, naar rato in het aanschafjaar.

    Nooit verder dan tot de restwaarde.
    """
    purchase_price = to_decimal(purchase_price)
    residual_value = to_decimal(residual_value)
    if useful_life_years <= 0 or year < purchase_date.year:
        return ZERO

    depreciable = purchase_price - residual_value
    remaining = depreciable - to_decimal(already_depreciated)
    if remaining <= 0:
        return ZERO

    annual = depreciable / Decimal(useful_life_years)
    if year == purchase_date.year:
        months = Decimal(13 - purchase_date.month)
        annual = annual * months / Decimal(12)

    return round_cents(min(annual, remaining))
