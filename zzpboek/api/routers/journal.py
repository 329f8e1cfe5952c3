"""
API Routers - journaalposten (memoriaal).
"""

from datetime import date
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from zzpboek.application.dto.ledger_dto import (
    BalanceCheckResultDTO,
    JournalEntryCreateDTO,
    JournalEntryResponseDTO,
    JournalEntryUpdateDTO,
)
from zzpboek.application.services.ledger_service import LedgerService
from zzpboek.core.security import Permission, RBACService, UserRole, require_permission
from zzpboek.domain.entities import JournalLine
from zzpboek.domain.value_objects import EntryStatus, MemoriaalType
from zzpboek.infrastructure.database import get_db

router = APIRouter(prefix="/api/v1/journal-entries", tags=["Journaalposten"])


@router.post("", response_model=JournalEntryResponseDTO, status_code=status.HTTP_201_CREATED)
def create_entry(
    dto: JournalEntryCreateDTO,
    db: Session = Depends(get_db),
    role: UserRole = Depends(require_permission(Permission.ENTRY_CREATE)),
):
    """
    Nieuwe journaalpost.

    - Concept mag (tijdelijk) uit balans zijn
    - Definitief vereist totaal debet = totaal credit (marge 0,01)
    """
    if dto.status == EntryStatus.FINAL and not RBACService().has_permission(role, Permission.ENTRY_FINALIZE):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Geen recht om definitief te boeken")
    lines = [
        JournalLine(account_id=line.account_id, debit=line.debit, credit=line.credit, description=line.description)
        for line in dto.lines
    ]
    return LedgerService(db, role.value).create_entry(
        entry_date=dto.entry_date,
        description=dto.description,
        lines=lines,
        status=dto.status,
        memoriaal_type=dto.memoriaal_type,
        reference=dto.reference,
        contact_id=dto.contact_id,
    )


@router.get("", response_model=list[JournalEntryResponseDTO])
def list_entries(
    start_date: date | None = Query(None),
    end_date: date | None = Query(None),
    entry_status: EntryStatus | None = Query(None, alias="status"),
    memoriaal_type: MemoriaalType | None = Query(None),
    contact_id: UUID | None = Query(None),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=1000),
    db: Session = Depends(get_db),
):
    return LedgerService(db).list_entries(start_date, end_date, entry_status, memoriaal_type, contact_id, skip, limit)


@router.get("/{entry_id}", response_model=JournalEntryResponseDTO)
def get_entry(entry_id: UUID, db: Session = Depends(get_db)):
    return LedgerService(db).get_entry(entry_id)


@router.patch("/{entry_id}", response_model=JournalEntryResponseDTO)
def update_entry(
    entry_id: UUID,
    dto: JournalEntryUpdateDTO,
    db: Session = Depends(get_db),
    role: UserRole = Depends(require_permission(Permission.ENTRY_CREATE)),
):
    """Alleen concepten kunnen worden gewijzigd."""
    return LedgerService(db, role.value).update_entry(entry_id, dto)


@router.get("/{entry_id}/balance-check", response_model=BalanceCheckResultDTO)
def balance_check(entry_id: UUID, db: Session = Depends(get_db)):
    return LedgerService(db).balance_check(entry_id)


@router.post("/{entry_id}/finalize", response_model=JournalEntryResponseDTO)
def finalize_entry(
    entry_id: UUID,
    db: Session = Depends(get_db),
    role: UserRole = Depends(require_permission(Permission.ENTRY_FINALIZE)),
):
    """Concept definitief maken; daarna is de post niet meer te wijzigen of te verwijderen."""
    return LedgerService(db, role.value).finalize_entry(entry_id)


@router.post("/{entry_id}/reverse", response_model=JournalEntryResponseDTO, status_code=status.HTTP_201_CREATED)
def reverse_entry(
    entry_id: UUID,
    entry_date: date | None = Query(None, description="Datum van de correctieboeking"),
    db: Session = Depends(get_db),
    role: UserRole = Depends(require_permission(Permission.ENTRY_FINALIZE)),
):
    return LedgerService(db, role.value).reverse_entry(entry_id, entry_date)


@router.delete("/{entry_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_entry(
    entry_id: UUID,
    db: Session = Depends(get_db),
    role: UserRole = Depends(require_permission(Permission.ENTRY_DELETE)),
):
    LedgerService(db, role.value).delete_entry(entry_id)
