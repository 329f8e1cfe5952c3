"""
API Routers - relaties (klanten en leveranciers).
"""

from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from zzpboek.application.dto.ledger_dto import ContactCreateDTO, ContactResponseDTO, ContactUpdateDTO
from zzpboek.application.services.ledger_service import LedgerService
from zzpboek.core.security import Permission, UserRole, require_permission
from zzpboek.domain.value_objects import RelationType
from zzpboek.infrastructure.database import get_db

router = APIRouter(prefix="/api/v1/contacts", tags=["Relaties"])


@router.get("", response_model=list[ContactResponseDTO])
def list_contacts(
    relation_type: RelationType | None = Query(None, description="Customer of Supplier (Both telt mee)"),
    search: str | None = Query(None),
    is_active: bool | None = Query(None),
    db: Session = Depends(get_db),
):
    return LedgerService(db).list_contacts(relation_type, search, is_active)


@router.post("", response_model=ContactResponseDTO, status_code=status.HTTP_201_CREATED)
def create_contact(
    dto: ContactCreateDTO,
    db: Session = Depends(get_db),
    role: UserRole = Depends(require_permission(Permission.ENTRY_CREATE)),
):
    return LedgerService(db, role.value).create_contact(dto)


@router.get("/{contact_id}", response_model=ContactResponseDTO)
def get_contact(contact_id: UUID, db: Session = Depends(get_db)):
    return LedgerService(db).get_contact(contact_id)


@router.patch("/{contact_id}", response_model=ContactResponseDTO)
def update_contact(
    contact_id: UUID,
    dto: ContactUpdateDTO,
    db: Session = Depends(get_db),
    role: UserRole = Depends(require_permission(Permission.ENTRY_CREATE)),
):
    return LedgerService(db, role.value).update_contact(contact_id, dto)


@router.delete("/{contact_id}", response_model=ContactResponseDTO)
def deactivate_contact(
    contact_id: UUID,
    db: Session = Depends(get_db),
    role: UserRole = Depends(require_permission(Permission.ENTRY_CREATE)),
):
    """Relaties worden gedeactiveerd, niet verwijderd (boekingen verwijzen ernaar)."""
    return LedgerService(db, role.value).deactivate_contact(contact_id)
