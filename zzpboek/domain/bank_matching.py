"""
Bankmutaties herkennen: trefwoorden op woordgrenzen, omschrijving opschonen,
vingerafdruk voor dubbele imports.
"""

import hashlib
import re
from datetime import date
from decimal import Decimal

from .value_objects import MatchType

_NOISE_PATTERNS = [
    # betaalwijzen en -platforms
    r"\b(Apple Pay|Google Pay|Samsung Pay|Garmin Pay)\b",
    r"\b(CCV|Mollie|Buckaroo|Adyen|MultiSafepay|Pay\.nl|Sisow)\b",
    r"\b(Betaalautomaat|Betaal automaat|Pinautomaat|Pin automaat)\b",
    r"\b(Contactloos|Mobiele betaling|Mobile payment|NFC)\b",
    r"\b(Pasnummer|Pasnr\.?|Pas nr\.?|Kaart nr\.?|Card nr\.?)",
    # datums en tijden
    r"\b\d{1,2}[-/.]\d{1,2}[-/.]\d{2,4}\b",
    r"\b\d{4}[-/.]\d{1,2}[-/.]\d{1,2}\b",
    r"\b\d{1,2}:\d{2}(:\d{2})?\b",
    # bankcodes
    r"\b(BEA|SEPA|TRX|PAS|NR|REF|IBAN|BIC|TERM|PIN|ID|CODE|Omschrijving|Incasso)\b",
    # transactie- en terminalnummers
    r"\b\d{4,}\b",
]


def matches_with_word_boundary(text: str, keyword: str) -> bool:
    """"BP" matcht "BP Station", maar niet "BPost"."""
    if not text or not keyword:
        return False
    return re.search(rf"\b{re.escape(keyword)}\b", text, re.IGNORECASE) is not None


def clean_transaction_description(description: str | None) -> str:
    """
    "BEA 12:00 24-12-2024 SHELL UTRECHT NR 12345 PAS 678" -> "SHELL UTRECHT 678"
    """
    if not description:
        return ""
    cleaned = description
    for pattern in _NOISE_PATTERNS:
        cleaned = re.sub(pattern, "", cleaned, flags=re.IGNORECASE)
    return re.sub(r"\s+", " ", cleaned).strip()


def rule_matches(keyword: str, match_type: MatchType | str, description: str, contra_name: str | None = None) -> bool:
    """Exact: hele omschrijving gelijk (hoofdletterongevoelig); anders trefwoord op woordgrens."""
    if not keyword:
        return False
    if MatchType(match_type) == MatchType.EXACT:
        return (description or "").strip().lower() == keyword.strip().lower()
    return matches_with_word_boundary(description or "", keyword) or matches_with_word_boundary(
        contra_name or "", keyword
    )


def suggest_keyword(description: str | None, contra_name: str | None = None) -> str | None:
    """Voorstel voor een bankregel: tegenpartij, anders de eerste woorden van de opgeschoonde omschrijving."""
    if contra_name and contra_name.strip():
        return contra_name.strip()
    cleaned = clean_transaction_description(description)
    if not cleaned:
        return None
    return " ".join(cleaned.split()[:2])


def transaction_fingerprint(
    transaction_date: date,
    amount: Decimal,
    description: str | None,
    contra_name: str | None,
) -> str:
    """SHA-256 over datum, bedrag, omschrijving en tegenpartij zonder witruimte."""
    raw = f"{transaction_date.isoformat()}_{Decimal(amount):.2f}_{description or ''}_{contra_name or ''}"
    raw = re.sub(r"\s+", "", raw)
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()
