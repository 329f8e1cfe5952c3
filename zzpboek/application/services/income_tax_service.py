"""
IB-aangifte: wizardstatus per fiscaal jaar, fiscale winst, fiscale balans,
vaste activa en afschrijvingen.
"""

from datetime import date, datetime
from uuid import UUID

from sqlalchemy.orm import Session

from zzpboek.application.services.audit import record_audit
from zzpboek.application.services.ledger_service import LedgerService
from zzpboek.application.services.report_service import ReportService
from zzpboek.application.services.system_accounts import SystemAccounts
from zzpboek.core.logging import get_logger
from zzpboek.domain.entities import JournalLine as DomainLine
from zzpboek.domain.exceptions import BookkeepingError, EntryLockedError, NotFoundError
from zzpboek.domain.services import (
    FiscalIncome,
    IncomeTaxCalculator,
    build_tax_balance_sheet,
    yearly_depreciation,
)
from zzpboek.domain.value_objects import (
    ZERO,
    AccountType,
    EntryStatus,
    FiscalYearStatus,
    MemoriaalType,
    round_cents,
    to_decimal,
)
from zzpboek.infrastructure.database.models import FiscalYear, FixedAsset

logger = get_logger(__name__)

WIZARD_STEPS = 7


class IncomeTaxService:
    def __init__(self, db: Session, calculator: IncomeTaxCalculator | None = None, user_role: str = "expert"):
        self.db = db
        self.calculator = calculator or IncomeTaxCalculator()
        self.user_role = user_role

    # --- Wizard ------------------------------------------------------------

    def get_fiscal_year(self, year: int) -> FiscalYear:
        """Wizardstatus voor `year`; wordt aangemaakt als hij nog niet bestaat."""
        fiscal_year = self.db.query(FiscalYear).filter(FiscalYear.year == year).first()
        if fiscal_year is None:
            fiscal_year = FiscalYear(year=year)
            self.db.add(fiscal_year)
            self.db.commit()
            self.db.refresh(fiscal_year)
        return fiscal_year

    def _ensure_open(self, fiscal_year: FiscalYear) -> None:
        if fiscal_year.status == FiscalYearStatus.FINALIZED.value:
            raise EntryLockedError(f"IB-aangifte {fiscal_year.year} is afgerond en kan niet meer worden gewijzigd")

    def save_state(self, year: int, dto) -> FiscalYear:
        fiscal_year = self.get_fiscal_year(year)
        self._ensure_open(fiscal_year)
        data = dto.model_dump(exclude_unset=True, exclude_none=True)
        if "draft_data" in data:
            fiscal_year.draft_data = {**(fiscal_year.draft_data or {}), **data.pop("draft_data")}
        for field, value in data.items():
            setattr(fiscal_year, field, value)
        fiscal_year.updated_at = datetime.utcnow()
        self.db.commit()
        self.db.refresh(fiscal_year)
        return fiscal_year

    def go_to_step(self, year: int, step: int) -> FiscalYear:
        if not 1 <= step <= WIZARD_STEPS:
            raise BookkeepingError(f"Stap moet tussen 1 en {WIZARD_STEPS} liggen")
        fiscal_year = self.get_fiscal_year(year)
        self._ensure_open(fiscal_year)
        fiscal_year.current_step = step
        fiscal_year.updated_at = datetime.utcnow()
        self.db.commit()
        self.db.refresh(fiscal_year)
        return fiscal_year

    def calculate_fiscal_income(self, year: int) -> FiscalIncome:
        totals = ReportService(self.db).account_totals(date(year, 1, 1), date(year, 12, 31))
        revenue = sum((t.balance for t in totals if t.account_type == AccountType.REVENUE), ZERO)
        expenses = sum((t.balance for t in totals if t.account_type == AccountType.EXPENSE), ZERO)

        fiscal_year = self.get_fiscal_year(year)
        investments = sum(
            (
                to_decimal(asset.purchase_price)
                for asset in self.db.query(FixedAsset).filter(
                    FixedAsset.purchase_date >= date(year, 1, 1),
                    FixedAsset.purchase_date <= date(year, 12, 31),
                )
            ),
            ZERO,
        )
        return self.calculator.calculate(
            year=year,
            revenue=revenue,
            expenses=expenses,
            hours_criterion_met=fiscal_year.hours_criterion_met,
            is_starter=fiscal_year.is_starter,
            private_use_car=fiscal_year.private_use_car_amount,
            manual_corrections=fiscal_year.manual_corrections,
            investments=investments,
        )

    def tax_balance_sheet(self, year: int) -> dict:
        totals = ReportService(self.db).account_totals(None, date(year, 12, 31))
        sheet = build_tax_balance_sheet(totals)

        def groups(items):
            return [
                {
                    "category": group.category,
                    "total": round_cents(group.total),
                    "accounts": [
                        {"code": a.code, "name": a.name, "balance": round_cents(a.balance)}
                        for a in group.accounts
                    ],
                }
                for group in items
            ]

        return {
            "year": year,
            "assets": groups(sheet.assets),
            "liabilities": groups(sheet.liabilities),
            "total_assets": round_cents(sheet.total_assets),
            "total_liabilities": round_cents(sheet.total_liabilities),
            "is_balanced": sheet.is_balanced,
        }

    def finalize(self, year: int) -> FiscalYear:
        """Aangifte afronden: berekening vastleggen, daarna geen wijzigingen meer."""
        fiscal_year = self.get_fiscal_year(year)
        self._ensure_open(fiscal_year)
        income = self.calculate_fiscal_income(year)
        summary = {key: str(value) for key, value in vars(income).items()}
        fiscal_year.draft_data = {**(fiscal_year.draft_data or {}), "summary": summary}
        fiscal_year.status = FiscalYearStatus.FINALIZED.value
        fiscal_year.current_step = WIZARD_STEPS
        fiscal_year.updated_at = datetime.utcnow()
        record_audit(self.db, "FINALIZE", "FiscalYear", fiscal_year.id, new_value=summary, user_role=self.user_role)
        self.db.commit()
        self.db.refresh(fiscal_year)
        logger.info("fiscal_year_finalized", year=year, taxable_income=summary["taxable_income"])
        return fiscal_year

    # --- Vaste activa ------------------------------------------------------

    def list_assets(self, is_active: bool | None = None) -> list[FixedAsset]:
        query = self.db.query(FixedAsset)
        if is_active is not None:
            query = query.filter(FixedAsset.is_active.is_(is_active))
        return query.order_by(FixedAsset.purchase_date).all()

    def get_asset(self, asset_id: UUID) -> FixedAsset:
        asset = self.db.get(FixedAsset, asset_id)
        if asset is None:
            raise NotFoundError("Bedrijfsmiddel", asset_id)
        return asset

    def create_asset(self, dto) -> FixedAsset:
        if dto.residual_value >= dto.purchase_price:
            raise BookkeepingError("Restwaarde moet lager zijn dan de aanschafprijs")
        asset = FixedAsset(**dto.model_dump())
        self.db.add(asset)
        self.db.commit()
        self.db.refresh(asset)
        return asset

    def update_asset(self, asset_id: UUID, dto) -> FixedAsset:
        asset = self.get_asset(asset_id)
        for field, value in dto.model_dump(exclude_unset=True).items():
            setattr(asset, field, value)
        if to_decimal(asset.residual_value) >= to_decimal(asset.purchase_price):
            raise BookkeepingError("Restwaarde moet lager zijn dan de aanschafprijs")
        self.db.commit()
        self.db.refresh(asset)
        return asset

    def delete_asset(self, asset_id: UUID) -> None:
        asset = self.get_asset(asset_id)
        if to_decimal(asset.accumulated_depreciation) > 0:
            raise BookkeepingError("Op dit bedrijfsmiddel is al afgeschreven; deactiveer het in plaats daarvan")
        self.db.delete(asset)
        self.db.commit()

    def book_depreciation(self, year: int) -> dict:
        """Eén definitieve afschrijvingspost per actief bedrijfsmiddel."""
        system = SystemAccounts(self.db)
        ledger = LedgerService(self.db, self.user_role)
        booked = []
        skipped = 0
        total = ZERO

        for asset in self.list_assets(is_active=True):
            if asset.last_depreciation_year is not None and asset.last_depreciation_year >= year:
                skipped += 1
                continue
            amount = yearly_depreciation(
                asset.purchase_price,
                asset.residual_value,
                asset.useful_life_years,
                asset.purchase_date,
                year,
                asset.accumulated_depreciation,
            )
            if amount <= 0:
                skipped += 1
                continue

            expense_id = asset.depreciation_account_id or system.get("depreciation").id
            asset_account_id = asset.asset_account_id or system.get("fixed_assets").id
            entry = ledger.create_entry(
                entry_date=date(year, 12, 31),
                description=f"Afschrijving {asset.name} {year}",
                lines=[
                    DomainLine(account_id=expense_id, debit=amount),
                    DomainLine(account_id=asset_account_id, credit=amount),
                ],
                status=EntryStatus.FINAL,
                memoriaal_type=MemoriaalType.AFSCHRIJVING,
                reference=f"AFS-{year}",
                commit=False,
            )
            asset.accumulated_depreciation = round_cents(to_decimal(asset.accumulated_depreciation) + amount)
            asset.last_depreciation_year = year
            total += amount
            booked.append({"asset_id": asset.id, "name": asset.name, "amount": amount, "journal_entry_id": entry.id})

        self.db.commit()
        logger.info("depreciation_booked", year=year, assets=len(booked), total=str(total))
        return {"year": year, "total": total, "booked": booked, "skipped": skipped}
