"""
API tests - rapportages, IB-wizard en exports.
"""

import io
import xml.etree.ElementTree as ET
from datetime import date
from decimal import Decimal

import pytest
from openpyxl import load_workbook

from zzpboek.infrastructure.export import XAF_NAMESPACE

VIEWER = {"X-Role": "viewer"}


@pytest.fixture
def booked(accounts, book):
    book(accounts["1100"], accounts["0500"], "5000.00", entry_date=date(2024, 1, 2))
    book(accounts["1300"], accounts["8000"], "1000.00", entry_date=date(2024, 3, 1))
    book(accounts["6200"], accounts["1100"], "250.00", entry_date=date(2024, 3, 5))


class TestReports:
    def test_trial_balance_for_viewer(self, client, booked):
        response = client.get("/api/v1/reports/trial-balance", headers=VIEWER)

        assert response.status_code == 200
        body = response.json()
        assert body["is_balanced"] is True
        assert Decimal(body["total_debit"]) == Decimal("6250.00")
        assert [a["code"] for a in body["accounts"]] == ["0500", "1100", "1300", "6200", "8000"]

    def test_profit_and_loss(self, client, booked):
        body = client.get(
            "/api/v1/reports/profit-loss", params={"start_date": "2024-01-01", "end_date": "2024-12-31"}
        ).json()
        assert Decimal(body["net_profit"]) == Decimal("750.00")

    def test_profit_and_loss_needs_period(self, client):
        assert client.get("/api/v1/reports/profit-loss").status_code == 422

    def test_balance_sheet(self, client, booked):
        body = client.get("/api/v1/reports/balance-sheet", params={"end_date": "2024-12-31"}).json()
        assert Decimal(body["total_assets"]) == Decimal("5750.00")
        assert Decimal(body["undistributed_result"]) == Decimal("750.00")

    def test_vat_quarter_validation(self, client):
        response = client.get("/api/v1/reports/vat/quarter", params={"year": 2024, "quarter": 5})
        assert response.status_code == 422

    def test_dashboard(self, client, booked):
        body = client.get("/api/v1/reports/dashboard", params={"year": 2024}).json()
        assert Decimal(body["revenue"]) == Decimal("1000.00")
        assert Decimal(body["bank_balance"]) == Decimal("4750.00")
        assert len(body["monthly"]) == 12

    def test_audit_logs(self, client, booked):
        logs = client.get("/api/v1/reports/audit-logs", params={"action": "create"}).json()
        assert len(logs) == 3
        assert {log["entity_type"] for log in logs} == {"JournalEntry"}

    def test_unknown_role_is_forbidden(self, client):
        response = client.get("/api/v1/reports/trial-balance", headers={"X-Role": "hacker"})
        assert response.status_code == 403


class TestIncomeTax:
    def test_wizard_flow(self, client, booked):
        saved = client.put("/api/v1/income-tax/2024", json={"hours_criterion_met": True, "draft_data": {"uren": 1400}})
        assert saved.status_code == 200
        assert saved.json()["hours_criterion_met"] is True

        calculation = client.get("/api/v1/income-tax/2024/calculation").json()
        assert Decimal(calculation["commercial_profit"]) == Decimal("750.00")
        assert Decimal(calculation["taxable_income"]) == Decimal("0.00")

        finalized = client.post("/api/v1/income-tax/2024/finalize").json()
        assert finalized["status"] == "Finalized"
        assert client.put("/api/v1/income-tax/2024", json={"is_starter": True}).status_code == 400

    def test_client_cannot_finalize(self, client):
        response = client.post("/api/v1/income-tax/2024/finalize", headers={"X-Role": "client"})
        assert response.status_code == 403

    def test_assets_and_depreciation(self, client):
        created = client.post("/api/v1/fixed-assets", json={
            "name": "Laptop", "purchase_date": "2024-01-01", "purchase_price": "1500.00", "useful_life_years": 3,
        })
        assert created.status_code == 201

        result = client.post("/api/v1/income-tax/2024/depreciation").json()
        assert Decimal(result["total"]) == Decimal("500.00")
        assert client.delete(f"/api/v1/fixed-assets/{created.json()['id']}").status_code == 400

    def test_tax_balance_sheet(self, client, booked):
        body = client.get("/api/v1/income-tax/2024/balance-sheet").json()
        categories = [g["category"] for g in body["assets"]]
        assert "Liquide Middelen" in categories


class TestExports:
    def test_xaf_download(self, client, booked):
        response = client.get("/api/v1/exports/xaf/2024")

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("application/xml")
        assert 'filename="RGS_Brugstaat_2024.xaf"' in response.headers["content-disposition"]
        root = ET.fromstring(response.content)
        assert len(root.findall(".//x:transaction", {"x": XAF_NAMESPACE})) == 3

    def test_viewer_cannot_export(self, client):
        assert client.get("/api/v1/exports/xaf/2024", headers=VIEWER).status_code == 403

    def test_excel_trial_balance(self, client, booked):
        response = client.get("/api/v1/exports/excel/trial-balance")
        workbook = load_workbook(io.BytesIO(response.content))
        assert workbook.active.title == "Proefbalans"

    def test_import_accounts_roundtrip(self, client, accounts):
        content = client.get("/api/v1/exports/excel/accounts").content
        response = client.post(
            "/api/v1/exports/import/accounts",
            files={"file": ("rekeningschema.xlsx", content, "application/octet-stream")},
        )
        assert response.status_code == 200
        assert response.json()["updated"] == len(accounts)
