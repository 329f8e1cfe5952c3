"""
API Routers - bankimport, bankregels en afletteren.
"""

from datetime import date
from uuid import UUID

from fastapi import APIRouter, Depends, File, Query, UploadFile, status
from sqlalchemy.orm import Session

from zzpboek.application.dto.bank_dto import (
    AutoMatchResultDTO,
    BankRuleCreateDTO,
    BankRuleResponseDTO,
    BankTransactionResponseDTO,
    BookTransactionDTO,
    BookViaRelationDTO,
    ImportResultDTO,
    RuleSuggestionDTO,
)
from zzpboek.application.services.bank_service import BankService
from zzpboek.core.security import Permission, UserRole, require_permission
from zzpboek.domain.value_objects import TransactionStatus
from zzpboek.infrastructure.database import get_db

router = APIRouter(prefix="/api/v1/bank", tags=["Bank"])


@router.post("/import", response_model=ImportResultDTO)
def import_statement(
    file: UploadFile = File(..., description="MT940, CSV of CAMT.053"),
    db: Session = Depends(get_db),
    role: UserRole = Depends(require_permission(Permission.BANK_IMPORT)),
):
    """
    Bankafschrift importeren.

    - Formaat wordt automatisch herkend
    - Dubbele mutaties (zelfde datum, bedrag, omschrijving, tegenpartij) worden overgeslagen
    """
    content = file.file.read()
    return BankService(db, role.value).import_file(content)


@router.get("/transactions", response_model=list[BankTransactionResponseDTO])
def list_transactions(
    transaction_status: TransactionStatus | None = Query(None, alias="status"),
    start_date: date | None = Query(None),
    end_date: date | None = Query(None),
    skip: int = Query(0, ge=0),
    limit: int = Query(200, ge=1, le=1000),
    db: Session = Depends(get_db),
):
    return BankService(db).list_transactions(transaction_status, start_date, end_date, skip, limit)


@router.get("/transactions/{transaction_id}", response_model=BankTransactionResponseDTO)
def get_transaction(transaction_id: UUID, db: Session = Depends(get_db)):
    return BankService(db).get_transaction(transaction_id)


@router.post("/auto-match", response_model=AutoMatchResultDTO)
def auto_match(
    db: Session = Depends(get_db),
    role: UserRole = Depends(require_permission(Permission.BANK_BOOK)),
):
    """Voorstellen maken voor onverwerkte mutaties op basis van relaties en bankregels."""
    return BankService(db, role.value).auto_match()


@router.post("/transactions/{transaction_id}/book", response_model=BankTransactionResponseDTO)
def book_transaction(
    transaction_id: UUID,
    dto: BookTransactionDTO,
    db: Session = Depends(get_db),
    role: UserRole = Depends(require_permission(Permission.BANK_BOOK)),
):
    """Direct boeken tegen een grootboekrekening."""
    return BankService(db, role.value).book(transaction_id, dto.account_id, dto.description)


@router.post("/transactions/{transaction_id}/book-relation", response_model=BankTransactionResponseDTO)
def book_via_relation(
    transaction_id: UUID,
    dto: BookViaRelationDTO,
    db: Session = Depends(get_db),
    role: UserRole = Depends(require_permission(Permission.BANK_BOOK)),
):
    """Boeken via debiteuren of crediteuren; een openstaande factuur met hetzelfde bedrag wordt betaald gemeld."""
    return BankService(db, role.value).book_via_relation(
        transaction_id, dto.contact_id, dto.account_id, dto.description
    )


@router.post("/transactions/{transaction_id}/confirm", response_model=BankTransactionResponseDTO)
def confirm_transaction(
    transaction_id: UUID,
    db: Session = Depends(get_db),
    role: UserRole = Depends(require_permission(Permission.BANK_BOOK)),
):
    return BankService(db, role.value).confirm(transaction_id)


@router.post("/transactions/{transaction_id}/ignore", response_model=BankTransactionResponseDTO)
def ignore_transaction(
    transaction_id: UUID,
    db: Session = Depends(get_db),
    role: UserRole = Depends(require_permission(Permission.BANK_BOOK)),
):
    return BankService(db, role.value).ignore(transaction_id)


@router.post("/transactions/{transaction_id}/unbook", response_model=BankTransactionResponseDTO)
def unbook_transaction(
    transaction_id: UUID,
    db: Session = Depends(get_db),
    role: UserRole = Depends(require_permission(Permission.BANK_BOOK)),
):
    """Conceptboeking verwijderen; definitieve boekingen vragen een correctieboeking."""
    return BankService(db, role.value).unbook(transaction_id)


@router.get("/transactions/{transaction_id}/suggest-rule", response_model=RuleSuggestionDTO)
def suggest_rule(transaction_id: UUID, db: Session = Depends(get_db)):
    return BankService(db).suggest_rule(transaction_id)


@router.get("/rules", response_model=list[BankRuleResponseDTO])
def list_rules(is_active: bool | None = Query(None), db: Session = Depends(get_db)):
    return BankService(db).list_rules(is_active)


@router.post("/rules", response_model=BankRuleResponseDTO, status_code=status.HTTP_201_CREATED)
def create_rule(
    dto: BankRuleCreateDTO,
    db: Session = Depends(get_db),
    role: UserRole = Depends(require_permission(Permission.BANK_BOOK)),
):
    return BankService(db, role.value).create_rule(dto)


@router.put("/rules/{rule_id}", response_model=BankRuleResponseDTO)
def update_rule(
    rule_id: UUID,
    dto: BankRuleCreateDTO,
    db: Session = Depends(get_db),
    role: UserRole = Depends(require_permission(Permission.BANK_BOOK)),
):
    return BankService(db, role.value).update_rule(rule_id, dto)


@router.delete("/rules/{rule_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_rule(
    rule_id: UUID,
    db: Session = Depends(get_db),
    role: UserRole = Depends(require_permission(Permission.BANK_BOOK)),
):
    BankService(db, role.value).delete_rule(rule_id)
