"""
Bank statement parsers: MT940, CSV and CAMT.053.

`parse_bank_file` detects the format and returns a `ParseResult`. Parsers raise
`BankFileError` when a file yields nothing usable; individual bad lines are
skipped and logged.
"""

import csv
import io
import re
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal

from zzpboek.core.logging import get_logger
from zzpboek.domain.exceptions import BankFileError
from zzpboek.domain.value_objects import parse_amount

logger = get_logger(__name__)

MT940 = "MT940"
CSV = "CSV"
CAMT053 = "CAMT053"

_MT940_TAGS = (":20:", ":25:", ":60F:", ":60M:", ":61:", ":86:", ":62F:", ":62M:", ":64:")
_IBAN_RE = re.compile(r"([A-Z]{2}[0-9]{2}[A-Z0-9]+)")
_NAME_RE = re.compile(r"(?:Naam|Name):\s*([^,]+)", re.IGNORECASE)


@dataclass
class ParsedTransaction:
    transaction_date: date
    amount: Decimal
    description: str
    contra_name: str | None = None
    contra_iban: str | None = None
    reference: str | None = None
    balance_after: Decimal | None = None


@dataclass
class ParseResult:
    source_format: str
    transactions: list[ParsedTransaction] = field(default_factory=list)
    skipped: int = 0


def detect_format(content: str) -> str:
    """MT940 when :61: and :86: occur (or two MT940 tags), CAMT.053 for XML, else CSV."""
    if ":61:" in content and ":86:" in content:
        return MT940
    if sum(1 for tag in _MT940_TAGS if tag in content) >= 2:
        return MT940
    head = content.lstrip()[:2000]
    if head.startswith("<") and "BkToCstmrStmt" in content:
        return CAMT053
    return CSV


def parse_bank_file(content: str) -> ParseResult:
    source_format = detect_format(content)
    if source_format == MT940:
        return parse_mt940(content)
    if source_format == CAMT053:
        return parse_camt053(content)
    return parse_csv(content)


# --- MT940 -----------------------------------------------------------------


def _parse_mt940_statement_line(line: str) -> ParsedTransaction:
    content = line[4:]
    match = re.match(r"^(\d{2})(\d{2})(\d{2})", content)
    if not match:
        raise ValueError("missing date")
    year, month, day = (int(part) for part in match.groups())
    transaction_date = date(2000 + year, month, day)

    rest = content[6:]
    indicator = re.search(r"[CD]", rest)
    if not indicator:
        raise ValueError("missing D/C indicator")
    # optional funds code letter, then digits with a decimal comma
    amount_match = re.match(r"[A-Z]?(\d+(?:,\d*)?)", rest[indicator.end():])
    if not amount_match:
        raise ValueError("missing amount")
    amount = Decimal(amount_match.group(1).replace(",", "."))
    if indicator.group(0) == "D":
        amount = -amount

    reference = None
    ref_match = re.search(r"//(.+)$", content)
    if ref_match:
        reference = ref_match.group(1).strip()

    return ParsedTransaction(
        transaction_date=transaction_date,
        amount=amount,
        description="Bank transaction",
        reference=reference,
    )


def parse_mt940(content: str) -> ParseResult:
    lines = [line.strip() for line in content.strip().splitlines()]
    result = ParseResult(MT940)
    current: ParsedTransaction | None = None

    i = 0
    while i < len(lines):
        line = lines[i]
        if line.startswith(":61:"):
            if current is not None:
                result.transactions.append(current)
            try:
                current = _parse_mt940_statement_line(line)
            except (ValueError, ArithmeticError) as e:
                logger.warning("mt940_line_skipped", line_number=i + 1, error=str(e))
                result.skipped += 1
                current = None
        elif line.startswith(":86:") and current is not None:
            parts = [line[4:].strip()]
            while i + 1 < len(lines) and not lines[i + 1].startswith(":"):
                i += 1
                parts.append(lines[i])
            description = " ".join(p for p in parts if p)
            current.description = description or "Bank transaction"

            name_match = _NAME_RE.search(description)
            if name_match:
                current.contra_name = name_match.group(1).strip()
            iban_match = _IBAN_RE.search(description)
            if iban_match:
                current.contra_iban = iban_match.group(1)
        i += 1

    if current is not None:
        result.transactions.append(current)

    if not result.transactions:
        raise BankFileError("Geen geldige transacties gevonden in MT940-bestand")
    return result


# --- CSV -------------------------------------------------------------------


def _parse_date(raw: str) -> date | None:
    raw = raw.strip().strip("'\"")
    for fmt in ("%Y-%m-%d", "%d-%m-%Y", "%d/%m/%Y"):
        try:
            return datetime.strptime(raw, fmt).date()
        except ValueError:
            continue
    return None


def _find_column(header: list[str], *keywords: str) -> int | None:
    for index, name in enumerate(header):
        if any(keyword in name for keyword in keywords):
            return index
    return None


def parse_csv(content: str) -> ParseResult:
    lines = [line for line in content.strip().splitlines() if line.strip()]
    if len(lines) < 2:
        raise BankFileError("CSV-bestand is leeg of ongeldig")

    delimiter = ";" if lines[0].count(";") > lines[0].count(",") else ","
    rows = list(csv.reader(io.StringIO("\n".join(lines)), delimiter=delimiter))
    header = [h.strip().lower() for h in rows[0]]

    date_idx = _find_column(header, "date", "datum")
    desc_idx = _find_column(header, "desc", "omschrijving", "memo")
    amount_idx = _find_column(header, "amount", "bedrag")
    iban_idx = _find_column(header, "contra", "rekening", "iban")
    name_idx = _find_column(header, "name", "naam", "tegenpartij")
    ref_idx = _find_column(header, "ref", "kenmerk")
    balance_idx = _find_column(header, "balance", "saldo")

    if date_idx is None or desc_idx is None:
        raise BankFileError(
            "CSV moet kolommen voor datum en omschrijving bevatten. Gevonden: " + ", ".join(header)
        )

    def cell(row: list[str], index: int | None) -> str | None:
        if index is None or index >= len(row):
            return None
        value = row[index].strip()
        return value or None

    result = ParseResult(CSV)
    for row in rows[1:]:
        raw_date = cell(row, date_idx)
        description = cell(row, desc_idx)
        amount = parse_amount(cell(row, amount_idx))
        transaction_date = _parse_date(raw_date) if raw_date else None
        if not transaction_date or not description or amount is None:
            result.skipped += 1
            continue
        result.transactions.append(
            ParsedTransaction(
                transaction_date=transaction_date,
                amount=amount,
                description=description,
                contra_iban=cell(row, iban_idx),
                contra_name=cell(row, name_idx),
                reference=cell(row, ref_idx),
                balance_after=parse_amount(cell(row, balance_idx)),
            )
        )
    return result


# --- CAMT.053 --------------------------------------------------------------


def _strip_namespaces(root: ET.Element) -> ET.Element:
    for element in root.iter():
        if isinstance(element.tag, str) and "}" in element.tag:
            element.tag = element.tag.split("}", 1)[1]
    return root


def _text(element: ET.Element | None, path: str) -> str | None:
    if element is None:
        return None
    found = element.find(path)
    if found is None or found.text is None:
        return None
    return found.text.strip() or None


def _camt_date(entry: ET.Element) -> date | None:
    for path in ("BookgDt/Dt", "BookgDt/DtTm", "ValDt/Dt", "ValDt/DtTm"):
        raw = _text(entry, path)
        if raw:
            try:
                return datetime.fromisoformat(raw[:19]).date() if "T" in raw else date.fromisoformat(raw[:10])
            except ValueError:
                continue
    return None


def parse_camt053(content: str) -> ParseResult:
    try:
        root = _strip_namespaces(ET.fromstring(content.strip()))
    except ET.ParseError as e:
        raise BankFileError(f"CAMT.053-bestand kon niet worden gelezen: {e}") from e

    result = ParseResult(CAMT053)
    entries = root.findall(".//Ntry")
    if not entries:
        logger.warning("camt053_no_entries")

    for entry in entries:
        transaction_date = _camt_date(entry)
        if transaction_date is None:
            result.skipped += 1
            continue
        amount = parse_amount(_text(entry, "Amt"))
        if amount is None or amount == 0:
            result.skipped += 1
            continue
        is_debit = _text(entry, "CdtDbtInd") == "DBIT"
        if is_debit:
            amount = -abs(amount)

        details = entry.find(".//NtryDtls/TxDtls")
        description = (
            _text(details, ".//RmtInf/Ustrd")
            or _text(entry, "AddtlNtryInf")
            or "Bank Transaction"
        )

        party = "Cdtr" if is_debit else "Dbtr"
        contra_name = _text(details, f".//RltdPties/{party}/Nm") or _text(details, f".//{party}/Nm")
        contra_iban = _text(details, f".//RltdPties/{party}Acct/Id/IBAN")
        reference = _text(details, ".//Refs/EndToEndId") or _text(entry, "AcctSvcrRef")
        if reference == "NOTPROVIDED":
            reference = _text(entry, "AcctSvcrRef")

        result.transactions.append(
            ParsedTransaction(
                transaction_date=transaction_date,
                amount=amount,
                description=description[:500],
                contra_name=contra_name[:200] if contra_name else None,
                contra_iban=contra_iban[:34] if contra_iban else None,
                reference=reference,
            )
        )

    if result.skipped:
        logger.warning("camt053_entries_skipped", skipped=result.skipped)
    return result
