"""
Unit tests - XAF 3.2 auditfile en Excel-werkboeken.
"""

import io
import xml.etree.ElementTree as ET
from datetime import date
from decimal import Decimal
from types import SimpleNamespace
from uuid import uuid4

import pytest
from openpyxl import Workbook, load_workbook

from zzpboek.domain.exceptions import BookkeepingError
from zzpboek.infrastructure.export import (
    XAF_NAMESPACE,
    Column,
    Sheet,
    build_xaf,
    export_workbook,
    read_rows,
    xaf_filename,
)

NS = {"x": XAF_NAMESPACE}


@pytest.fixture
def ledger():
    bank = SimpleNamespace(id=uuid4(), code="1100", name="Bank", account_type="Asset", rgs_code="BLimBan")
    revenue = SimpleNamespace(id=uuid4(), code="8000", name="Omzet hoog", account_type="Revenue", rgs_code=None)
    entry = SimpleNamespace(
        id=uuid4(),
        entry_date=date(2024, 3, 1),
        description="Factuur 2024-001",
        memoriaal_type="Verkoop",
        lines=[
            SimpleNamespace(account_id=bank.id, debit=Decimal("121.00"), credit=Decimal("0"), description=None),
            SimpleNamespace(account_id=revenue.id, debit=Decimal("0"), credit=Decimal("121.00"), description="Advies"),
            SimpleNamespace(account_id=uuid4(), debit=Decimal("5"), credit=Decimal("0"), description=None),
        ],
    )
    return bank, revenue, entry


class TestXaf:
    def test_filename(self):
        assert xaf_filename(2024) == "RGS_Brugstaat_2024.xaf"

    def test_auditfile_structure(self, ledger):
        bank, revenue, entry = ledger
        content = build_xaf(
            fiscal_year=2024,
            start_date=date(2024, 1, 1),
            end_date=date(2024, 12, 31),
            company_name="Demo Onderneming",
            company_vat="NL001234567B01",
            accounts=[bank, revenue],
            opening_balances={bank.id: (Decimal("1000"), Decimal("0"))},
            entries=[entry, SimpleNamespace(lines=[])],
            software_name="ZZP Boekhouding",
            software_version="0.1.0",
            date_created=date(2025, 1, 15),
        )

        assert content.startswith(b"<?xml")
        root = ET.fromstring(content)
        assert root.tag == f"{{{XAF_NAMESPACE}}}auditfile"
        assert root.findtext("x:header/x:fiscalYear", namespaces=NS) == "2024"
        assert root.findtext("x:header/x:dateCreated", namespaces=NS) == "2025-01-15"
        assert root.findtext("x:company/x:companyIdent", namespaces=NS) == "NL001234567B01"

        ledger_accounts = root.findall("x:generalLedger/x:ledgerAccounts/x:ledgerAccount", NS)
        assert [a.findtext("x:accID", namespaces=NS) for a in ledger_accounts] == ["1100", "8000"]
        opening = ledger_accounts[0].findall("x:openingBalance", NS)
        assert [(o.findtext("x:amnt", namespaces=NS), o.findtext("x:amntTp", namespaces=NS)) for o in opening] == [
            ("1000.00", "debit"),
            ("0.00", "credit"),
        ]

        transactions = root.findall("x:generalLedger/x:transactions/x:transaction", NS)
        assert len(transactions) == 1
        transaction = transactions[0]
        assert transaction.findtext("x:trID", namespaces=NS) == str(entry.id)[:8]
        assert transaction.findtext("x:periodNumber", namespaces=NS) == "3"

        lines = transaction.findall("x:lines/x:line", NS)
        assert [
            (l.findtext("x:accID", namespaces=NS), l.findtext("x:amnt", namespaces=NS),
             l.findtext("x:amntTp", namespaces=NS), l.findtext("x:desc", namespaces=NS))
            for l in lines
        ] == [
            ("1100", "121.00", "debit", "Factuur 2024-001"),
            ("8000", "121.00", "credit", "Advies"),
        ]


class TestExcel:
    def test_export_layout(self):
        content = export_workbook([
            Sheet(
                name="Rekeningschema",
                title="Rekeningschema",
                columns=[Column("code", "Code", 10), Column("balance", "Saldo", numeric=True),
                         Column("active", "Actief")],
                rows=[{"code": "1100", "balance": Decimal("1500.25"), "active": True}],
            ),
            Sheet(name="Leeg", title="Leeg", columns=[Column("x", "X")]),
        ])

        workbook = load_workbook(io.BytesIO(content))
        assert workbook.sheetnames == ["Rekeningschema", "Leeg"]
        ws = workbook["Rekeningschema"]
        assert ws["A1"].value == "Rekeningschema"
        assert [ws.cell(row=4, column=i).value for i in (1, 2, 3)] == ["Code", "Saldo", "Actief"]
        assert ws["A5"].value == "1100"
        assert ws["B5"].value == 1500.25
        assert ws["B5"].number_format == "#,##0.00"
        assert ws["C5"].value == "Ja"

    def test_read_rows(self):
        workbook = Workbook()
        ws = workbook.active
        ws.append(["Code", "Naam", "Type"])
        ws.append([1100, "Bank", "Asset"])
        ws.append([None, None, None])
        ws.append(["8000 ", "Omzet", "Revenue"])
        buffer = io.BytesIO()
        workbook.save(buffer)

        assert read_rows(buffer.getvalue()) == [
            {"code": "1100", "naam": "Bank", "type": "Asset"},
            {"code": "8000", "naam": "Omzet", "type": "Revenue"},
        ]

    def test_read_rows_rejects_garbage(self):
        with pytest.raises(BookkeepingError):
            read_rows(b"geen excel")
