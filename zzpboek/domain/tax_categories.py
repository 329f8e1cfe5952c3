"""
Fiscale categorie afleiden uit rekeningcode, naam en type.

Eerst de vaste codereeksen van het Nederlandse rekeningschema, daarna
trefwoorden in de rekeningnaam.
"""

from dataclasses import dataclass

from .value_objects import AccountType

BALANCE_SHEET_CATEGORIES = [
    "Materiële vaste activa",
    "Immateriële vaste activa",
    "Financiële vaste activa",
    "Voorraden",
    "Vorderingen",
    "Liquide middelen",
    "Kortlopende schulden",
    "Langlopende schulden",
    "Ondernemingsvermogen",
]

PROFIT_LOSS_CATEGORIES = [
    "Netto Omzet",
    "Inkoopwaarde van de omzet",
    "Afschrijvingen",
    "Huisvestingskosten",
    "Kantoorkosten",
    "Kosten van vervoer",
    "Verkoopkosten",
    "Personeelskosten",
    "Algemene kosten",
    "Rente en bankkosten",
]

ALL_TAX_CATEGORIES = BALANCE_SHEET_CATEGORIES + PROFIT_LOSS_CATEGORIES


@dataclass(frozen=True)
class KeywordRule:
    category: str
    keywords: tuple[str, ...]
    allowed_types: tuple[AccountType, ...]


KEYWORD_RULES: list[KeywordRule] = [
    KeywordRule(
        "Netto Omzet",
        ("omzet", "verkoop", "opbrengst", "dienstverlening", "uurtarief", "factuur", "sales"),
        (AccountType.REVENUE,),
    ),
    KeywordRule(
        "Inkoopwaarde van de omzet",
        ("inkoop", "grondstof", "materiaal", "cogs"),
        (AccountType.EXPENSE,),
    ),
    KeywordRule(
        "Huisvestingskosten",
        ("huur", "gas", "water", "licht", "energie", "pand", "schoonmaak", "elektra", "stroom", "huisvesting"),
        (AccountType.EXPENSE,),
    ),
    KeywordRule(
        "Kosten van vervoer",
        ("brandstof", "benzine", "diesel", "parkeren", "trein", "reiskosten", "km", "lease",
         "vervoer", "transport", "ov", "onderhoud auto"),
        (AccountType.EXPENSE,),
    ),
    KeywordRule(
        "Kantoorkosten",
        ("telefoon", "internet", "mobiel", "software", "licentie", "kantoor", "papier", "porto",
         "drukwerk", "abonnement", "subscriptie"),
        (AccountType.EXPENSE,),
    ),
    KeywordRule(
        "Verkoopkosten",
        ("reclame", "advertentie", "marketing", "google", "facebook", "relatiegeschenk",
         "representatie", "etentje", "linkedin", "social media"),
        (AccountType.EXPENSE,),
    ),
    KeywordRule(
        "Algemene kosten",
        ("verzekering", "administratie", "boekhouder", "advies", "contributie", "accountant",
         "juridisch", "algemeen"),
        (AccountType.EXPENSE,),
    ),
    KeywordRule(
        "Rente en bankkosten",
        ("bankkosten", "rente", "interest", "transactiekosten"),
        (AccountType.EXPENSE,),
    ),
    KeywordRule(
        "Afschrijvingen",
        ("afschrijving", "depreciation", "afschrijvingskosten"),
        (AccountType.EXPENSE,),
    ),
    KeywordRule(
        "Materiële vaste activa",
        ("inventaris", "laptop", "computer", "machine", "meubilair", "apparatuur", "vaste activa",
         "auto", "bus", "bedrijfswagen", "gebouw"),
        (AccountType.ASSET,),
    ),
    KeywordRule(
        "Liquide middelen",
        ("bank", "kas", "rabobank", "ing", "bunq", "knab", "abn", "liquide", "betaalrekening",
         "spaarrekening", "giro"),
        (AccountType.ASSET,),
    ),
    KeywordRule(
        "Vorderingen",
        ("debiteuren", "vordering", "receivable", "te ontvangen", "nog te factureren"),
        (AccountType.ASSET,),
    ),
    KeywordRule(
        "Voorraden",
        ("voorraad", "inventory", "stock"),
        (AccountType.ASSET,),
    ),
    KeywordRule(
        "Kortlopende schulden",
        ("crediteuren", "schuld", "te betalen", "payable", "kort", "btw", "loonheffing",
         "belasting te betalen"),
        (AccountType.LIABILITY,),
    ),
    KeywordRule(
        "Langlopende schulden",
        ("lening", "hypotheek", "langlopend", "long term"),
        (AccountType.LIABILITY,),
    ),
    KeywordRule(
        "Ondernemingsvermogen",
        ("kapitaal", "eigen vermogen", "winst", "equity", "privé"),
        (AccountType.EQUITY,),
    ),
]


@dataclass(frozen=True)
class TaxCategorySuggestion:
    category: str | None
    confidence: int


def _by_code_range(name: str, code: int, account_type: AccountType) -> tuple[bool, str | None]:
    """Returns (range_applies, category). A range that applies is final."""
    if 8000 <= code <= 8999:
        return True, "Netto Omzet" if account_type == AccountType.REVENUE else None

    if 7000 <= code <= 7999:
        return True, "Inkoopwaarde van de omzet" if account_type == AccountType.EXPENSE else None

    if 0 <= code <= 999:
        if account_type != AccountType.ASSET:
            return True, None
        if "immaterieel" in name:
            return True, "Immateriële vaste activa"
        if "financieel" in name or "deelneming" in name:
            return True, "Financiële vaste activa"
        return True, "Materiële vaste activa"

    if 1000 <= code <= 1999:
        if account_type == AccountType.ASSET:
            if "bank" in name or "kas" in name or "liquide" in name:
                return True, "Liquide middelen"
            if "voorraad" in name or "inventory" in name:
                return True, "Voorraden"
            return True, "Vorderingen"
        if account_type == AccountType.LIABILITY:
            return True, "Kortlopende schulden"
        return True, None

    if 9000 <= code <= 9999:
        if account_type != AccountType.EXPENSE:
            return True, None
        if "rente" in name or "interest" in name:
            return True, "Rente en bankkosten"
        return True, "Algemene kosten"

    if 4000 <= code <= 4999:
        return True, "Kosten van vervoer" if account_type == AccountType.EXPENSE else None

    if 6000 <= code <= 6999:
        if account_type == AccountType.EXPENSE and "afschrijving" in name:
            return True, "Afschrijvingen"
        return True, None

    return False, None


def _by_keywords(name: str, account_type: AccountType) -> str | None:
    for rule in KEYWORD_RULES:
        if account_type not in rule.allowed_types:
            continue
        for keyword in rule.keywords:
            if keyword in name:
                if account_type.is_balance_sheet and rule.category in BALANCE_SHEET_CATEGORIES:
                    return rule.category
                if not account_type.is_balance_sheet and rule.category in PROFIT_LOSS_CATEGORIES:
                    return rule.category
    return None


def infer_tax_category(account_name: str, account_code: str, account_type: AccountType | str) -> str | None:
    if not account_name or not account_code or not account_type:
        return None
    try:
        code = int(account_code)
        account_type = AccountType(account_type)
    except ValueError:
        return None

    name = account_name.lower().strip()
    applies, category = _by_code_range(name, code, account_type)
    if applies:
        return category
    return _by_keywords(name, account_type)


def infer_tax_category_with_confidence(
    account_name: str, account_code: str, account_type: AccountType | str
) -> TaxCategorySuggestion:
    category = infer_tax_category(account_name, account_code, account_type)
    if category is None:
        return TaxCategorySuggestion(None, 0)

    code = int(account_code)
    if 7000 <= code <= 8999:
        return TaxCategorySuggestion(category, 100)
    if 0 <= code <= 999:
        return TaxCategorySuggestion(category, 95)

    name = account_name.lower().strip()
    matches = 0
    for rule in KEYWORD_RULES:
        if rule.category == category:
            matches = sum(1 for keyword in rule.keywords if keyword in name)
            break

    confidence = min(90, 60 + matches * 15) if matches > 0 else 50
    return TaxCategorySuggestion(category, confidence)
