"""
API Routers - verkoopfacturen, offertes, publieke offertelink en notificaties.
"""

from datetime import date
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from zzpboek.application.dto.sales_dto import (
    NotificationResponseDTO,
    PublicQuotationDTO,
    QuotationCreateDTO,
    QuotationResponseDTO,
    QuotationUpdateDTO,
    SalesInvoiceCreateDTO,
    SalesInvoiceResponseDTO,
)
from zzpboek.application.services.sales_service import SalesService
from zzpboek.core.security import Permission, UserRole, require_permission
from zzpboek.domain.value_objects import QuotationStatus, SalesInvoiceStatus
from zzpboek.infrastructure.database import get_db

router = APIRouter(prefix="/api/v1/sales", tags=["Verkoop"])
public_router = APIRouter(prefix="/api/v1/public/quotations", tags=["Offerte (publiek)"])


# --- Verkoopfacturen -------------------------------------------------------


@router.post("/invoices", response_model=SalesInvoiceResponseDTO, status_code=status.HTTP_201_CREATED)
def create_invoice(
    dto: SalesInvoiceCreateDTO,
    db: Session = Depends(get_db),
    role: UserRole = Depends(require_permission(Permission.INVOICE_BOOK)),
):
    """
    Nieuwe verkoopfactuur (INV-jaar-volgnummer).

    Met `book=true` direct een definitieve verkoopboeking: debiteuren debet,
    omzet per BTW-tarief en af te dragen BTW credit.
    """
    return SalesService(db, role.value).create_invoice(dto)


@router.get("/invoices", response_model=list[SalesInvoiceResponseDTO])
def list_invoices(
    invoice_status: SalesInvoiceStatus | None = Query(None, alias="status"),
    contact_id: UUID | None = Query(None),
    db: Session = Depends(get_db),
):
    return SalesService(db).list_invoices(invoice_status, contact_id)


@router.get("/invoices/{invoice_id}", response_model=SalesInvoiceResponseDTO)
def get_invoice(invoice_id: UUID, db: Session = Depends(get_db)):
    return SalesService(db).get_invoice(invoice_id)


@router.post("/invoices/{invoice_id}/send", response_model=SalesInvoiceResponseDTO)
def send_invoice(
    invoice_id: UUID,
    db: Session = Depends(get_db),
    role: UserRole = Depends(require_permission(Permission.INVOICE_BOOK)),
):
    return SalesService(db, role.value).send_invoice(invoice_id)


@router.post("/invoices/{invoice_id}/paid", response_model=SalesInvoiceResponseDTO)
def mark_invoice_paid(
    invoice_id: UUID,
    paid_at: date | None = Query(None),
    db: Session = Depends(get_db),
    role: UserRole = Depends(require_permission(Permission.INVOICE_BOOK)),
):
    return SalesService(db, role.value).mark_paid(invoice_id, paid_at)


# --- Offertes --------------------------------------------------------------


@router.post("/quotations", response_model=QuotationResponseDTO, status_code=status.HTTP_201_CREATED)
def create_quotation(
    dto: QuotationCreateDTO,
    db: Session = Depends(get_db),
    role: UserRole = Depends(require_permission(Permission.INVOICE_BOOK)),
):
    return SalesService(db, role.value).create_quotation(dto)


@router.get("/quotations", response_model=list[QuotationResponseDTO])
def list_quotations(
    quotation_status: QuotationStatus | None = Query(None, alias="status"),
    db: Session = Depends(get_db),
):
    return SalesService(db).list_quotations(quotation_status)


@router.get("/quotations/{quotation_id}", response_model=QuotationResponseDTO)
def get_quotation(quotation_id: UUID, db: Session = Depends(get_db)):
    return SalesService(db).get_quotation(quotation_id)


@router.patch("/quotations/{quotation_id}", response_model=QuotationResponseDTO)
def update_quotation(
    quotation_id: UUID,
    dto: QuotationUpdateDTO,
    db: Session = Depends(get_db),
    role: UserRole = Depends(require_permission(Permission.INVOICE_BOOK)),
):
    return SalesService(db, role.value).update_quotation(quotation_id, dto)


@router.post("/quotations/{quotation_id}/send", response_model=QuotationResponseDTO)
def send_quotation(
    quotation_id: UUID,
    db: Session = Depends(get_db),
    role: UserRole = Depends(require_permission(Permission.INVOICE_BOOK)),
):
    """Offerte versturen; de klant kan daarna via de publieke link akkoord geven."""
    return SalesService(db, role.value).send_quotation(quotation_id)


@router.post(
    "/quotations/{quotation_id}/convert",
    response_model=SalesInvoiceResponseDTO,
    status_code=status.HTTP_201_CREATED,
)
def convert_quotation(
    quotation_id: UUID,
    invoice_date: date | None = Query(None),
    db: Session = Depends(get_db),
    role: UserRole = Depends(require_permission(Permission.INVOICE_BOOK)),
):
    return SalesService(db, role.value).convert_to_invoice(quotation_id, invoice_date)


@router.delete("/quotations/{quotation_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_quotation(
    quotation_id: UUID,
    db: Session = Depends(get_db),
    role: UserRole = Depends(require_permission(Permission.INVOICE_BOOK)),
):
    SalesService(db, role.value).delete_quotation(quotation_id)


# --- Notificaties ----------------------------------------------------------


@router.get("/notifications", response_model=list[NotificationResponseDTO])
def list_notifications(
    unread_only: bool = Query(False),
    limit: int = Query(50, ge=1, le=500),
    db: Session = Depends(get_db),
):
    return SalesService(db).list_notifications(unread_only, limit)


@router.post("/notifications/{notification_id}/read", response_model=NotificationResponseDTO)
def mark_notification_read(notification_id: UUID, db: Session = Depends(get_db)):
    return SalesService(db).mark_notification_read(notification_id)


@router.post("/notifications/read-all")
def mark_all_notifications_read(db: Session = Depends(get_db)):
    return {"updated": SalesService(db).mark_all_notifications_read()}


# --- Publieke offertelink (geen rol nodig) ---------------------------------


@public_router.get("/{token}", response_model=PublicQuotationDTO)
def view_quotation(token: UUID, db: Session = Depends(get_db)):
    return SalesService(db, user_role="public").public_view(token)


@public_router.post("/{token}/approve", response_model=PublicQuotationDTO)
def approve_quotation(token: UUID, db: Session = Depends(get_db)):
    service = SalesService(db, user_role="public")
    service.approve(token)
    return service.public_view(token)


@public_router.post("/{token}/reject", response_model=PublicQuotationDTO)
def reject_quotation(token: UUID, db: Session = Depends(get_db)):
    service = SalesService(db, user_role="public")
    service.reject(token)
    return service.public_view(token)
