"""
API Routers - bedrijfsinstellingen en beheer.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from zzpboek.application.dto.settings_dto import (
    CompanySettingsDTO,
    CompanySettingsUpdateDTO,
    ResetResultDTO,
    SeedResultDTO,
    SystemAccountDTO,
)
from zzpboek.application.services.settings_service import SettingsService
from zzpboek.core.security import Permission, UserRole, get_current_role, require_permission
from zzpboek.infrastructure.database import get_db

router = APIRouter(prefix="/api/v1/settings", tags=["Instellingen"])


@router.get("/company", response_model=CompanySettingsDTO)
def get_company(db: Session = Depends(get_db)):
    return SettingsService(db).get_company()


@router.patch("/company", response_model=CompanySettingsDTO)
def update_company(
    dto: CompanySettingsUpdateDTO,
    db: Session = Depends(get_db),
    role: UserRole = Depends(require_permission(Permission.SETTINGS_EDIT)),
):
    return SettingsService(db, role.value).update_company(dto)


@router.get("/system-accounts", response_model=list[SystemAccountDTO])
def get_system_accounts(db: Session = Depends(get_db)):
    """Rekeningen die automatische boekingen gebruiken (bank, debiteuren, BTW, ...)."""
    return SettingsService(db).system_accounts()


@router.get("/role")
def get_role(role: UserRole = Depends(get_current_role)):
    return {"role": role.value}


@router.post("/admin/seed", response_model=SeedResultDTO)
def seed_chart_of_accounts(
    db: Session = Depends(get_db),
    role: UserRole = Depends(require_permission(Permission.SETTINGS_EDIT)),
):
    """Standaard rekeningschema aanvullen; bestaande codes blijven ongemoeid."""
    return SettingsService(db, role.value).seed()


@router.post("/admin/reset", response_model=ResetResultDTO)
def reset_administration(
    db: Session = Depends(get_db),
    role: UserRole = Depends(require_permission(Permission.ADMIN_RESET)),
):
    """
    Administratie leegmaken.

    Verwijdert boekingen, facturen, offertes, bankmutaties, activa en relaties.
    Rekeningschema, bankregels, instellingen en de audit trail blijven bewaard.
    """
    return SettingsService(db, role.value).reset_administration()


@router.get("/admin/backup")
def configuration_backup(
    db: Session = Depends(get_db),
    role: UserRole = Depends(require_permission(Permission.SETTINGS_EDIT)),
):
    return SettingsService(db, role.value).configuration_backup()
