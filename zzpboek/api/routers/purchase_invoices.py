"""
API Routers - documentinbox en inkoopfacturen.
"""

from datetime import date
from uuid import UUID

from fastapi import APIRouter, Depends, File, Query, UploadFile, status
from sqlalchemy.orm import Session

from zzpboek.application.dto.invoice_dto import (
    DocumentInboxResponseDTO,
    PurchaseInvoiceBookDTO,
    PurchaseInvoiceResponseDTO,
)
from zzpboek.application.services.purchase_invoice_service import PurchaseInvoiceService
from zzpboek.core.config import get_settings
from zzpboek.core.security import Permission, UserRole, require_permission
from zzpboek.domain.value_objects import InboxStatus, PurchaseInvoiceStatus
from zzpboek.infrastructure.ai import InvoiceExtractor
from zzpboek.infrastructure.database import get_db

router = APIRouter(prefix="/api/v1/purchase-invoices", tags=["Inkoop"])


def get_invoice_extractor() -> InvoiceExtractor:
    """Dependency - AI-client voor het uitlezen van facturen."""
    return InvoiceExtractor(get_settings().ai)


@router.post("/inbox", response_model=DocumentInboxResponseDTO, status_code=status.HTTP_201_CREATED)
def upload_document(
    file: UploadFile = File(..., description="PDF, PNG, JPEG of WebP"),
    db: Session = Depends(get_db),
    extractor: InvoiceExtractor = Depends(get_invoice_extractor),
    role: UserRole = Depends(require_permission(Permission.INVOICE_BOOK)),
):
    """
    Factuur of bon uploaden.

    Het document wordt opgeslagen en door de AI uitgelezen; het resultaat
    staat daarna klaar ter controle (Review_Needed) of met een foutmelding (Error).
    """
    data = file.file.read()
    service = PurchaseInvoiceService(db, extractor=extractor, user_role=role.value)
    return service.upload(file.filename, file.content_type, data)


@router.get("/inbox", response_model=list[DocumentInboxResponseDTO])
def list_inbox(
    inbox_status: InboxStatus | None = Query(None, alias="status"),
    db: Session = Depends(get_db),
    extractor: InvoiceExtractor = Depends(get_invoice_extractor),
):
    return PurchaseInvoiceService(db, extractor=extractor).list_inbox(inbox_status)


@router.get("/inbox/{inbox_id}", response_model=DocumentInboxResponseDTO)
def get_inbox_item(
    inbox_id: UUID,
    db: Session = Depends(get_db),
    extractor: InvoiceExtractor = Depends(get_invoice_extractor),
):
    return PurchaseInvoiceService(db, extractor=extractor).get_inbox_item(inbox_id)


@router.delete("/inbox/{inbox_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_inbox_item(
    inbox_id: UUID,
    db: Session = Depends(get_db),
    extractor: InvoiceExtractor = Depends(get_invoice_extractor),
    role: UserRole = Depends(require_permission(Permission.INVOICE_BOOK)),
):
    PurchaseInvoiceService(db, extractor=extractor, user_role=role.value).delete_inbox_item(inbox_id)


@router.post("", response_model=PurchaseInvoiceResponseDTO, status_code=status.HTTP_201_CREATED)
def book_invoice(
    dto: PurchaseInvoiceBookDTO,
    db: Session = Depends(get_db),
    extractor: InvoiceExtractor = Depends(get_invoice_extractor),
    role: UserRole = Depends(require_permission(Permission.INVOICE_BOOK)),
):
    """
    Inkoopfactuur boeken (uit de inbox of handmatig).

    - Kosten (excl. BTW) en voorbelasting debet, crediteuren (incl. BTW) credit
    - Zelfde factuurnummer bij dezelfde leverancier geeft 409
    """
    return PurchaseInvoiceService(db, extractor=extractor, user_role=role.value).book_invoice(dto)


@router.get("", response_model=list[PurchaseInvoiceResponseDTO])
def list_invoices(
    invoice_status: PurchaseInvoiceStatus | None = Query(None, alias="status"),
    contact_id: UUID | None = Query(None),
    db: Session = Depends(get_db),
    extractor: InvoiceExtractor = Depends(get_invoice_extractor),
):
    return PurchaseInvoiceService(db, extractor=extractor).list_invoices(invoice_status, contact_id)


@router.get("/{invoice_id}", response_model=PurchaseInvoiceResponseDTO)
def get_invoice(
    invoice_id: UUID,
    db: Session = Depends(get_db),
    extractor: InvoiceExtractor = Depends(get_invoice_extractor),
):
    return PurchaseInvoiceService(db, extractor=extractor).get_invoice(invoice_id)


@router.post("/{invoice_id}/paid", response_model=PurchaseInvoiceResponseDTO)
def mark_paid(
    invoice_id: UUID,
    paid_at: date | None = Query(None),
    db: Session = Depends(get_db),
    extractor: InvoiceExtractor = Depends(get_invoice_extractor),
    role: UserRole = Depends(require_permission(Permission.INVOICE_BOOK)),
):
    return PurchaseInvoiceService(db, extractor=extractor, user_role=role.value).mark_paid(invoice_id, paid_at)
