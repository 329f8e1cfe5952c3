"""
Systeemrekeningen (bank, debiteuren, crediteuren, BTW, omzet) opzoeken.

Eerst op standaardcode, daarna op trefwoorden in de naam; bij meerdere
kandidaten wint de laagste code.
"""

from dataclasses import dataclass

from sqlalchemy.orm import Session

from zzpboek.domain.exceptions import BookkeepingError
from zzpboek.domain.services import code_sort_key
from zzpboek.domain.value_objects import AccountType, to_decimal
from zzpboek.infrastructure.database.models import Account


@dataclass(frozen=True)
class SystemAccountSpec:
    label: str
    account_type: AccountType
    codes: tuple[str, ...]
    keywords: tuple[str, ...]


SYSTEM_ACCOUNTS: dict[str, SystemAccountSpec] = {
    "bank": SystemAccountSpec("Bank", AccountType.ASSET, ("1100",), ("bank", "betaalrekening")),
    "cash": SystemAccountSpec("Kas", AccountType.ASSET, ("1000",), ("kas",)),
    "debiteuren": SystemAccountSpec(
        "Debiteuren", AccountType.ASSET, ("1300",), ("debiteuren", "accounts receivable", "klanten")
    ),
    "crediteuren": SystemAccountSpec(
        "Crediteuren", AccountType.LIABILITY, ("1600",), ("crediteur", "accounts payable", "leveranciers")
    ),
    "vat_receivable": SystemAccountSpec(
        "BTW te vorderen", AccountType.ASSET, ("1450",), ("te vorderen btw", "btw te vorderen", "voorbelasting")
    ),
    "vat_payable": SystemAccountSpec(
        "BTW af te dragen", AccountType.LIABILITY, ("1500",), ("af te dragen btw", "btw af te dragen", "btw te betalen")
    ),
    "revenue": SystemAccountSpec("Omzet", AccountType.REVENUE, ("8000",), ("omzet",)),
    "equity": SystemAccountSpec("Eigen vermogen", AccountType.EQUITY, ("0500",), ("eigen vermogen", "kapitaal")),
    "private": SystemAccountSpec("Privé", AccountType.EQUITY, ("0510",), ("privé", "prive")),
    "fixed_assets": SystemAccountSpec("Inventaris", AccountType.ASSET, ("0100",), ("inventaris",)),
    "depreciation": SystemAccountSpec("Afschrijvingen", AccountType.EXPENSE, ("6000",), ("afschrijving",)),
}


class SystemAccounts:
    """Resolve system accounts for one session."""

    def __init__(self, db: Session):
        self.db = db
        self._cache: dict[str, Account | None] = {}

    def find(self, role: str) -> Account | None:
        if role in self._cache:
            return self._cache[role]
        definition = SYSTEM_ACCOUNTS[role]
        candidates = (
            self.db.query(Account)
            .filter(Account.account_type == definition.account_type.value, Account.is_active.is_(True))
            .all()
        )
        candidates.sort(key=lambda a: code_sort_key(a.code))

        account = next((a for a in candidates if a.code in definition.codes), None)
        if account is None:
            account = next(
                (a for a in candidates if any(k in a.name.lower() for k in definition.keywords)),
                None,
            )
        self._cache[role] = account
        return account

    def get(self, role: str) -> Account:
        account = self.find(role)
        if account is None:
            definition = SYSTEM_ACCOUNTS[role]
            raise BookkeepingError(
                f"Kan geen grootboekrekening vinden voor '{definition.label}'. "
                f"Maak een {definition.account_type.value}-rekening aan met '{definition.label}' in de naam."
            )
        return account

    def resolve_all(self) -> dict[str, Account | None]:
        return {role: self.find(role) for role in SYSTEM_ACCOUNTS}

    def revenue_for_rate(self, vat_percentage) -> Account:
        """Omzetrekening met de BTW-code van het tarief, anders de standaard omzetrekening."""
        rate = to_decimal(vat_percentage)
        vat_code = "laag" if rate == 9 else "nul" if rate == 0 else "hoog"
        accounts = (
            self.db.query(Account)
            .filter(
                Account.account_type == AccountType.REVENUE.value,
                Account.vat_code == vat_code,
                Account.is_active.is_(True),
            )
            .all()
        )
        if accounts:
            return min(accounts, key=lambda a: code_sort_key(a.code))
        return self.get("revenue")
