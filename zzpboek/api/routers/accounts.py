"""
API Routers - rekeningschema en fiscale categorieën.
"""

from datetime import date
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from zzpboek.application.dto.ledger_dto import (
    AccountCreateDTO,
    AccountLedgerDTO,
    AccountResponseDTO,
    AccountUpdateDTO,
    BulkInferResultDTO,
    TaxCategorySuggestionDTO,
)
from zzpboek.application.services.ledger_service import LedgerService
from zzpboek.core.security import Permission, UserRole, get_current_role, require_permission
from zzpboek.domain.tax_categories import ALL_TAX_CATEGORIES, infer_tax_category_with_confidence
from zzpboek.domain.value_objects import AccountType
from zzpboek.infrastructure.database import get_db

router = APIRouter(prefix="/api/v1/accounts", tags=["Rekeningschema"])


@router.get("", response_model=list[AccountResponseDTO])
def list_accounts(
    account_type: AccountType | None = Query(None, description="Asset, Liability, Equity, Revenue, Expense"),
    is_active: bool | None = Query(None),
    search: str | None = Query(None, description="Zoek op code of naam"),
    db: Session = Depends(get_db),
    role: UserRole = Depends(get_current_role),
):
    return LedgerService(db, role.value).list_accounts(account_type, is_active, search)


@router.get("/tax-categories", response_model=list[str])
def list_tax_categories():
    """Alle fiscale categorieën (balans en winst- en verliesrekening)."""
    return ALL_TAX_CATEGORIES


@router.post("/infer-tax-categories", response_model=BulkInferResultDTO)
def infer_tax_categories(
    dry_run: bool = Query(False, description="Alleen voorstellen, niets opslaan"),
    db: Session = Depends(get_db),
    role: UserRole = Depends(require_permission(Permission.SETTINGS_EDIT)),
):
    """Ontbrekende fiscale categorieën afleiden uit naam, code en type."""
    return LedgerService(db, role.value).bulk_infer_tax_categories(dry_run=dry_run)


@router.post("", response_model=AccountResponseDTO, status_code=status.HTTP_201_CREATED)
def create_account(
    dto: AccountCreateDTO,
    db: Session = Depends(get_db),
    role: UserRole = Depends(require_permission(Permission.SETTINGS_EDIT)),
):
    return LedgerService(db, role.value).create_account(dto)


@router.get("/{account_id}", response_model=AccountResponseDTO)
def get_account(account_id: UUID, db: Session = Depends(get_db)):
    return LedgerService(db).get_account(account_id)


@router.get("/{account_id}/tax-category", response_model=TaxCategorySuggestionDTO)
def suggest_tax_category(account_id: UUID, db: Session = Depends(get_db)):
    account = LedgerService(db).get_account(account_id)
    suggestion = infer_tax_category_with_confidence(account.name, account.code, account.account_type)
    return TaxCategorySuggestionDTO(
        account_id=account.id,
        code=account.code,
        name=account.name,
        current_category=account.tax_category,
        suggested_category=suggestion.category,
        confidence=suggestion.confidence,
    )


@router.get("/{account_id}/ledger", response_model=AccountLedgerDTO)
def get_account_ledger(
    account_id: UUID,
    start_date: date | None = Query(None, description="Vanaf"),
    end_date: date | None = Query(None, description="Tot en met"),
    db: Session = Depends(get_db),
    role: UserRole = Depends(require_permission(Permission.REPORT_VIEW)),
):
    """Grootboekkaart met beginsaldo en lopend saldo."""
    result = LedgerService(db, role.value).account_ledger(account_id, start_date, end_date)
    return AccountLedgerDTO.model_validate(result, from_attributes=True)


@router.patch("/{account_id}", response_model=AccountResponseDTO)
def update_account(
    account_id: UUID,
    dto: AccountUpdateDTO,
    db: Session = Depends(get_db),
    role: UserRole = Depends(require_permission(Permission.SETTINGS_EDIT)),
):
    return LedgerService(db, role.value).update_account(account_id, dto)


@router.post("/{account_id}/deactivate", response_model=AccountResponseDTO)
def deactivate_account(
    account_id: UUID,
    db: Session = Depends(get_db),
    role: UserRole = Depends(require_permission(Permission.SETTINGS_EDIT)),
):
    return LedgerService(db, role.value).deactivate_account(account_id)


@router.delete("/{account_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_account(
    account_id: UUID,
    db: Session = Depends(get_db),
    role: UserRole = Depends(require_permission(Permission.SETTINGS_EDIT)),
):
    """Alleen rekeningen zonder boekingen en zonder systeemrol."""
    LedgerService(db, role.value).delete_account(account_id)
