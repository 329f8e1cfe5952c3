"""
Domain Layer - value objects and enumerations for Dutch ZZP bookkeeping.
"""

import re
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from enum import Enum
from typing import NewType

AccountCode = NewType("AccountCode", str)

CENT = Decimal("0.01")
ZERO = Decimal("0")

# Tolerantie voor de balanscontrole debet = credit
BALANCE_TOLERANCE = Decimal("0.01")


def to_decimal(value) -> Decimal:
    """Coerce float/int/str/None to Decimal without binary float noise."""
    if value is None or value == "":
        return ZERO
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def round_cents(value) -> Decimal:
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def parse_amount(raw) -> Decimal | None:
    """
    Bedrag uit tekst zoals banken en facturen het schrijven.

    Accepteert `€`, spaties, decimale komma en duizendtalscheiding
    (`1.234,56` en `1,234.56`). Geeft None bij een leeg of onleesbaar bedrag.
    """
    if raw is None:
        return None
    if isinstance(raw, (int, float, Decimal)) and not isinstance(raw, bool):
        value = to_decimal(raw)
        return value if value.is_finite() else None
    cleaned = re.sub(r"[€\s'\"]", "", str(raw))
    if not cleaned:
        return None
    if "," in cleaned and "." in cleaned:
        # 1.234,56 -> 1234.56 and 1,234.56 -> 1234.56
        if cleaned.rfind(",") > cleaned.rfind("."):
            cleaned = cleaned.replace(".", "").replace(",", ".")
        else:
            cleaned = cleaned.replace(",", "")
    else:
        cleaned = cleaned.replace(",", ".")
    try:
        value = Decimal(cleaned)
    except InvalidOperation:
        return None
    return value if value.is_finite() else None


class AccountType(str, Enum):
    """Rekeningtype in het grootboek."""
    ASSET = "Asset"          # Activa
    LIABILITY = "Liability"  # Schulden
    EQUITY = "Equity"        # Eigen vermogen
    REVENUE = "Revenue"      # Opbrengsten
    EXPENSE = "Expense"      # Kosten

    @property
    def is_debit_normal(self) -> bool:
        return self in (AccountType.ASSET, AccountType.EXPENSE)

    @property
    def is_balance_sheet(self) -> bool:
        return self in (AccountType.ASSET, AccountType.LIABILITY, AccountType.EQUITY)


class EntryStatus(str, Enum):
    DRAFT = "Draft"
    FINAL = "Final"


class MemoriaalType(str, Enum):
    """Soort journaalpost."""
    MEMORIAAL = "Memoriaal"
    BANK = "Bank"
    INKOOPFACTUUR = "Inkoopfactuur"
    VERKOOPFACTUUR = "Verkoopfactuur"
    AFSCHRIJVING = "Afschrijving"
    CORRECTIE = "Correctie"


class VatCode(str, Enum):
    HOOG = "hoog"        # 21%
    LAAG = "laag"        # 9%
    NUL = "nul"          # 0%
    VERLEGD = "verlegd"  # BTW verlegd


VAT_RATES: dict[VatCode, Decimal] = {
    VatCode.HOOG: Decimal("21"),
    VatCode.LAAG: Decimal("9"),
    VatCode.NUL: Decimal("0"),
    VatCode.VERLEGD: Decimal("0"),
}


class RelationType(str, Enum):
    CUSTOMER = "Customer"
    SUPPLIER = "Supplier"
    BOTH = "Both"


class TransactionStatus(str, Enum):
    UNMATCHED = "Unmatched"
    MATCHED = "Matched"    # voorstel aangemaakt, nog niet bevestigd
    BOOKED = "Booked"
    IGNORED = "Ignored"


class TransactionType(str, Enum):
    CREDIT = "Credit"
    DEBIT = "Debit"


class MatchType(str, Enum):
    CONTAINS = "Contains"
    EXACT = "Exact"


class PurchaseInvoiceStatus(str, Enum):
    DRAFT = "Draft"
    PENDING = "Pending"
    PAID = "Paid"
    OVERDUE = "Overdue"


class InboxStatus(str, Enum):
    PROCESSING = "Processing"
    REVIEW_NEEDED = "Review_Needed"
    BOOKED = "Booked"
    ERROR = "Error"


class SalesInvoiceStatus(str, Enum):
    DRAFT = "draft"
    SENT = "sent"
    PAID = "paid"
    OVERDUE = "overdue"


class QuotationStatus(str, Enum):
    DRAFT = "draft"
    SENT = "sent"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    EXPIRED = "expired"


class FiscalYearStatus(str, Enum):
    OPEN = "Open"
    FINALIZED = "Finalized"


@dataclass(frozen=True, slots=True)
class Money:
    """Value Object - bedrag in euro."""
    amount: Decimal
    currency: str = "EUR"

    def __add__(self, other: "Money") -> "Money":
        if self.currency != other.currency:
            raise ValueError("Kan geen bedragen in verschillende valuta optellen")
        return Money(amount=self.amount + other.amount, currency=self.currency)

    def __sub__(self, other: "Money") -> "Money":
        if self.currency != other.currency:
            raise ValueError("Kan geen bedragen in verschillende valuta aftrekken")
        return Money(amount=self.amount - other.amount, currency=self.currency)

    @classmethod
    def zero(cls) -> "Money":
        return cls(ZERO)

    def rounded(self) -> "Money":
        return Money(round_cents(self.amount), self.currency)


@dataclass(frozen=True, slots=True)
class LineItem:
    """Factuur- of offerteregel."""
    description: str
    quantity: Decimal
    price: Decimal
    vat_percentage: Decimal = Decimal("21")

    @property
    def subtotal(self) -> Decimal:
        return self.quantity * self.price

    @property
    def vat_amount(self) -> Decimal:
        return self.subtotal * self.vat_percentage / Decimal("100")
