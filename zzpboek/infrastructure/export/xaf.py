"""
XML Auditfile Financieel (XAF) 3.2 writer.
"""

import xml.etree.ElementTree as ET
from collections.abc import Iterable, Mapping
from datetime import date
from decimal import Decimal

from zzpboek.domain.value_objects import ZERO

XAF_NAMESPACE = "http://www.auditfiles.nl/XAF/3.2"


def xaf_filename(fiscal_year: int) -> str:
    return f"RGS_Brugstaat_{fiscal_year}.xaf"


def _amount(value) -> str:
    return f"{Decimal(value or 0):.2f}"


def _sub(parent: ET.Element, tag: str, text=None) -> ET.Element:
    element = ET.SubElement(parent, f"{{{XAF_NAMESPACE}}}{tag}")
    if text is not None:
        element.text = str(text)
    return element


def build_xaf(
    fiscal_year: int,
    start_date: date,
    end_date: date,
    company_name: str,
    company_vat: str | None,
    accounts: Iterable,
    opening_balances: Mapping[object, tuple[Decimal, Decimal]],
    entries: Iterable,
    software_name: str,
    software_version: str,
    date_created: date | None = None,
) -> bytes:
    """
    Build the auditfile.

    accounts: ledger accounts (code, name, account_type, rgs_code, id).
    opening_balances: account id -> (debit, credit) of Final lines before start_date.
    entries: Final journal entries in the period, with their lines.
    """
    ET.register_namespace("", XAF_NAMESPACE)
    root = ET.Element(f"{{{XAF_NAMESPACE}}}auditfile")

    header = _sub(root, "header")
    _sub(header, "fiscalYear", fiscal_year)
    _sub(header, "startDate", start_date.isoformat())
    _sub(header, "endDate", end_date.isoformat())
    _sub(header, "curCode", "EUR")
    _sub(header, "dateCreated", (date_created or date.today()).isoformat())
    _sub(header, "softwareDesc", software_name)
    _sub(header, "softwareVersion", software_version)

    company = _sub(root, "company")
    _sub(company, "companyIdent", company_vat or "")
    _sub(company, "companyName", company_name)
    _sub(company, "taxRegistrationCountry", "NL")

    ledger = _sub(root, "generalLedger")
    ledger_accounts = _sub(ledger, "ledgerAccounts")
    codes = {}
    for account in accounts:
        codes[account.id] = account.code
        debit, credit = opening_balances.get(account.id, (ZERO, ZERO))
        node = _sub(ledger_accounts, "ledgerAccount")
        _sub(node, "accID", account.code)
        _sub(node, "accDesc", account.name)
        _sub(node, "accTp", account.account_type or "Asset")
        _sub(node, "taxonomy", account.rgs_code or "")
        _sub(node, "leadCode", "")
        for amount, amount_type in ((debit, "debit"), (credit, "credit")):
            opening = _sub(node, "openingBalance")
            _sub(opening, "amnt", _amount(amount))
            _sub(opening, "amntTp", amount_type)

    transactions = _sub(ledger, "transactions")
    for entry in entries:
        if not entry.lines:
            continue
        transaction_id = str(entry.id)[:8]
        entry_date = entry.entry_date.isoformat()
        node = _sub(transactions, "transaction")
        _sub(node, "trID", transaction_id)
        _sub(node, "desc", entry.description or "")
        _sub(node, "periodNumber", entry.entry_date.month)
        _sub(node, "trDt", entry_date)
        _sub(node, "trTp", entry.memoriaal_type or "general")
        lines = _sub(node, "lines")
        for line in entry.lines:
            code = codes.get(line.account_id)
            if code is None:
                continue
            is_debit = Decimal(line.debit or 0) > 0
            xml_line = _sub(lines, "line")
            _sub(xml_line, "accID", code)
            _sub(xml_line, "docRef", transaction_id)
            _sub(xml_line, "effDate", entry_date)
            _sub(xml_line, "desc", line.description or entry.description or "")
            _sub(xml_line, "amnt", _amount(line.debit if is_debit else line.credit))
            _sub(xml_line, "amntTp", "debit" if is_debit else "credit")

    ET.indent(root)
    return ET.tostring(root, encoding="utf-8", xml_declaration=True)
