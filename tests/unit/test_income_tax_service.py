"""
Unit tests - IB-wizard, fiscale balans, vaste activa en afschrijvingen.
"""

from datetime import date
from decimal import Decimal

import pytest

from zzpboek.application.dto.tax_dto import FiscalYearSaveDTO, FixedAssetCreateDTO, FixedAssetUpdateDTO
from zzpboek.application.services.income_tax_service import IncomeTaxService
from zzpboek.domain.exceptions import BookkeepingError, EntryLockedError
from zzpboek.infrastructure.database.models import AuditLog, JournalEntry


@pytest.fixture
def service(db_session):
    return IncomeTaxService(db_session)


def laptop(**overrides) -> FixedAssetCreateDTO:
    data = dict(
        name="Laptop",
        purchase_date=date(2024, 7, 1),
        purchase_price=Decimal("3600.00"),
        useful_life_years=4,
    )
    data.update(overrides)
    return FixedAssetCreateDTO(**data)


class TestWizard:
    def test_fiscal_year_created_on_first_access(self, service):
        fiscal_year = service.get_fiscal_year(2024)
        assert fiscal_year.status == "Open"
        assert fiscal_year.current_step == 1
        assert service.get_fiscal_year(2024).id == fiscal_year.id

    def test_save_merges_draft_data(self, service):
        service.save_state(2024, FiscalYearSaveDTO(draft_data={"uren": 1300}))
        fiscal_year = service.save_state(
            2024, FiscalYearSaveDTO(hours_criterion_met=True, draft_data={"notitie": "auto van de zaak"})
        )
        assert fiscal_year.hours_criterion_met is True
        assert fiscal_year.draft_data == {"uren": 1300, "notitie": "auto van de zaak"}

    @pytest.mark.parametrize("step", [0, 8])
    def test_invalid_step(self, service, step):
        with pytest.raises(BookkeepingError):
            service.go_to_step(2024, step)

    def test_go_to_step(self, service):
        assert service.go_to_step(2024, 3).current_step == 3


class TestFiscalIncome:
    def test_from_final_entries(self, service, accounts, book):
        book(accounts["1300"], accounts["8000"], "60000.00", entry_date=date(2024, 6, 1))
        book(accounts["6200"], accounts["1100"], "10000.00", entry_date=date(2024, 6, 2))
        book(accounts["1300"], accounts["8000"], "999.00", entry_date=date(2023, 6, 1))
        service.save_state(2024, FiscalYearSaveDTO(hours_criterion_met=True))

        income = service.calculate_fiscal_income(2024)

        assert income.revenue == Decimal("60000.00")
        assert income.expenses == Decimal("10000.00")
        assert income.zelfstandigenaftrek == Decimal("3750")
        assert income.mkb_winstvrijstelling == Decimal("6155.88")
        assert income.taxable_income == Decimal("40094.12")

    def test_investments_from_fixed_assets(self, service):
        service.create_asset(laptop())
        service.create_asset(laptop(name="Oude printer", purchase_date=date(2023, 2, 1)))

        income = service.calculate_fiscal_income(2024)
        assert income.kia_investments == Decimal("3600.00")
        assert income.kia_deduction == Decimal("1008.00")

    def test_finalize_locks_year(self, service, db_session, accounts, book):
        book(accounts["1300"], accounts["8000"], "1000.00", entry_date=date(2024, 6, 1))

        fiscal_year = service.finalize(2024)

        assert fiscal_year.status == "Finalized"
        assert fiscal_year.current_step == 7
        assert fiscal_year.draft_data["summary"]["commercial_profit"] == "1000.00"
        assert db_session.query(AuditLog).filter(AuditLog.action == "FINALIZE").count() == 1
        with pytest.raises(EntryLockedError):
            service.save_state(2024, FiscalYearSaveDTO(is_starter=True))
        with pytest.raises(EntryLockedError):
            service.go_to_step(2024, 2)
        with pytest.raises(EntryLockedError):
            service.finalize(2024)


class TestTaxBalanceSheet:
    def test_fixed_categories(self, service, accounts, book):
        book(accounts["1100"], accounts["0500"], "5000.00", entry_date=date(2024, 1, 2))

        sheet = service.tax_balance_sheet(2024)

        assets = {g["category"]: g for g in sheet["assets"]}
        assert list(assets) == [
            "Materiële Vaste Activa",
            "Financiële Vaste Activa",
            "Voorraden",
            "Vorderingen",
            "Liquide Middelen",
        ]
        assert assets["Liquide Middelen"]["total"] == Decimal("5000.00")
        assert assets["Liquide Middelen"]["accounts"] == [
            {"code": "1100", "name": "Bank", "balance": Decimal("5000.00")}
        ]
        assert sheet["total_liabilities"] == Decimal("5000.00")
        assert sheet["is_balanced"] is True


class TestFixedAssets:
    def test_residual_value_below_price(self, service):
        with pytest.raises(BookkeepingError):
            service.create_asset(laptop(residual_value=Decimal("3600.00")))

        asset = service.create_asset(laptop())
        with pytest.raises(BookkeepingError):
            service.update_asset(asset.id, FixedAssetUpdateDTO(residual_value=Decimal("5000")))

    def test_book_depreciation(self, service, accounts, db_session):
        asset = service.create_asset(laptop())

        result = service.book_depreciation(2024)

        assert result["total"] == Decimal("450.00")
        assert result["skipped"] == 0
        assert asset.accumulated_depreciation == Decimal("450.00")
        assert asset.last_depreciation_year == 2024

        entry = db_session.get(JournalEntry, result["booked"][0]["journal_entry_id"])
        assert entry.status == "Final"
        assert entry.entry_date == date(2024, 12, 31)
        assert entry.memoriaal_type == "Afschrijving"
        assert entry.reference == "AFS-2024"
        assert [(l.account_id, l.debit, l.credit) for l in entry.lines] == [
            (accounts["6000"].id, Decimal("450.00"), Decimal("0.00")),
            (accounts["0100"].id, Decimal("0.00"), Decimal("450.00")),
        ]

    def test_depreciation_runs_once_per_year(self, service):
        asset = service.create_asset(laptop())
        service.book_depreciation(2024)

        again = service.book_depreciation(2024)
        assert again["booked"] == []
        assert again["skipped"] == 1

        assert service.book_depreciation(2025)["total"] == Decimal("900.00")
        assert asset.accumulated_depreciation == Decimal("1350.00")

    def test_delete_refused_after_depreciation(self, service):
        fresh = service.create_asset(laptop(name="Monitor"))
        service.delete_asset(fresh.id)
        assert service.list_assets() == []

        asset = service.create_asset(laptop())
        service.book_depreciation(2024)
        with pytest.raises(BookkeepingError):
            service.delete_asset(asset.id)
