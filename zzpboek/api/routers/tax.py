"""
API Routers - IB-aangifte wizard, vaste activa en afschrijvingen.
"""

from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from zzpboek.application.dto.tax_dto import (
    DepreciationResultDTO,
    FiscalIncomeDTO,
    FiscalYearResponseDTO,
    FiscalYearSaveDTO,
    FixedAssetCreateDTO,
    FixedAssetResponseDTO,
    FixedAssetUpdateDTO,
    TaxBalanceSheetDTO,
)
from zzpboek.application.services.income_tax_service import WIZARD_STEPS, IncomeTaxService
from zzpboek.core.security import Permission, UserRole, require_permission
from zzpboek.infrastructure.database import get_db

router = APIRouter(prefix="/api/v1/income-tax", tags=["Inkomstenbelasting"])


@router.get("/{year}", response_model=FiscalYearResponseDTO)
def get_fiscal_year(year: int, db: Session = Depends(get_db)):
    """Wizardstatus van het jaar (wordt aangemaakt bij eerste opvraag)."""
    return IncomeTaxService(db).get_fiscal_year(year)


@router.put("/{year}", response_model=FiscalYearResponseDTO)
def save_fiscal_year(
    year: int,
    dto: FiscalYearSaveDTO,
    db: Session = Depends(get_db),
    role: UserRole = Depends(require_permission(Permission.ENTRY_CREATE)),
):
    return IncomeTaxService(db, user_role=role.value).save_state(year, dto)


@router.post("/{year}/step", response_model=FiscalYearResponseDTO)
def go_to_step(
    year: int,
    step: int = Query(..., ge=1, le=WIZARD_STEPS),
    db: Session = Depends(get_db),
    role: UserRole = Depends(require_permission(Permission.ENTRY_CREATE)),
):
    return IncomeTaxService(db, user_role=role.value).go_to_step(year, step)


@router.get("/{year}/calculation", response_model=FiscalIncomeDTO)
def get_calculation(
    year: int,
    db: Session = Depends(get_db),
    role: UserRole = Depends(require_permission(Permission.REPORT_VIEW)),
):
    """
    Fiscale winst: winst volgens de boekhouding, bijtelling en correcties,
    ondernemersaftrek, MKB-winstvrijstelling en KIA.
    """
    return IncomeTaxService(db, user_role=role.value).calculate_fiscal_income(year)


@router.get("/{year}/balance-sheet", response_model=TaxBalanceSheetDTO)
def get_tax_balance_sheet(
    year: int,
    db: Session = Depends(get_db),
    role: UserRole = Depends(require_permission(Permission.REPORT_VIEW)),
):
    return IncomeTaxService(db, user_role=role.value).tax_balance_sheet(year)


@router.post("/{year}/finalize", response_model=FiscalYearResponseDTO)
def finalize_fiscal_year(
    year: int,
    db: Session = Depends(get_db),
    role: UserRole = Depends(require_permission(Permission.ENTRY_FINALIZE)),
):
    return IncomeTaxService(db, user_role=role.value).finalize(year)


@router.post("/{year}/depreciation", response_model=DepreciationResultDTO)
def book_depreciation(
    year: int,
    db: Session = Depends(get_db),
    role: UserRole = Depends(require_permission(Permission.ENTRY_FINALIZE)),
):
    """Jaarlijkse afschrijvingen boeken (lineair, naar rato in het aanschafjaar)."""
    return IncomeTaxService(db, user_role=role.value).book_depreciation(year)


assets_router = APIRouter(prefix="/api/v1/fixed-assets", tags=["Vaste activa"])


@assets_router.get("", response_model=list[FixedAssetResponseDTO])
def list_assets(is_active: bool | None = Query(None), db: Session = Depends(get_db)):
    return IncomeTaxService(db).list_assets(is_active)


@assets_router.post("", response_model=FixedAssetResponseDTO, status_code=status.HTTP_201_CREATED)
def create_asset(
    dto: FixedAssetCreateDTO,
    db: Session = Depends(get_db),
    role: UserRole = Depends(require_permission(Permission.ENTRY_CREATE)),
):
    return IncomeTaxService(db, user_role=role.value).create_asset(dto)


@assets_router.get("/{asset_id}", response_model=FixedAssetResponseDTO)
def get_asset(asset_id: UUID, db: Session = Depends(get_db)):
    return IncomeTaxService(db).get_asset(asset_id)


@assets_router.patch("/{asset_id}", response_model=FixedAssetResponseDTO)
def update_asset(
    asset_id: UUID,
    dto: FixedAssetUpdateDTO,
    db: Session = Depends(get_db),
    role: UserRole = Depends(require_permission(Permission.ENTRY_CREATE)),
):
    return IncomeTaxService(db, user_role=role.value).update_asset(asset_id, dto)


@assets_router.delete("/{asset_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_asset(
    asset_id: UUID,
    db: Session = Depends(get_db),
    role: UserRole = Depends(require_permission(Permission.ENTRY_DELETE)),
):
    IncomeTaxService(db, user_role=role.value).delete_asset(asset_id)
