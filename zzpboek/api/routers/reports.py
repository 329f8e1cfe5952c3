"""
API Routers - rapportages: proefbalans, W&V, balans, BTW, dashboard, audit trail.
"""

from datetime import date
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from zzpboek.application.dto.report_dto import (
    AuditLogResponseDTO,
    BalanceSheetDTO,
    DashboardDTO,
    InvoiceVatDTO,
    ProfitAndLossDTO,
    TrialBalanceDTO,
    VatReturnDTO,
)
from zzpboek.application.services.report_service import ReportService
from zzpboek.core.security import Permission, require_permission
from zzpboek.infrastructure.database import get_db
from zzpboek.infrastructure.database.models import AuditLog

router = APIRouter(
    prefix="/api/v1/reports",
    tags=["Rapportages"],
    dependencies=[Depends(require_permission(Permission.REPORT_VIEW))],
)


@router.get("/trial-balance", response_model=TrialBalanceDTO)
def get_trial_balance(
    start_date: date | None = Query(None, description="Vanaf"),
    end_date: date | None = Query(None, description="Tot en met"),
    db: Session = Depends(get_db),
):
    """
    Proefbalans over definitieve boekingen.

    Totaal debet moet gelijk zijn aan totaal credit.
    """
    result = ReportService(db).trial_balance(start_date, end_date)
    return TrialBalanceDTO.model_validate(result, from_attributes=True)


@router.get("/profit-loss", response_model=ProfitAndLossDTO)
def get_profit_and_loss(
    start_date: date = Query(..., description="Vanaf"),
    end_date: date = Query(..., description="Tot en met"),
    db: Session = Depends(get_db),
):
    """Winst- en verliesrekening, gegroepeerd per fiscale categorie."""
    result = ReportService(db).profit_and_loss(start_date, end_date)
    return ProfitAndLossDTO.model_validate(result, from_attributes=True)


@router.get("/balance-sheet", response_model=BalanceSheetDTO)
def get_balance_sheet(
    end_date: date = Query(..., description="Balansdatum"),
    db: Session = Depends(get_db),
):
    """Balans per datum; het resultaat van het lopende jaar staat als onverdeeld resultaat."""
    result = ReportService(db).balance_sheet(end_date)
    return BalanceSheetDTO.model_validate(result, from_attributes=True)


@router.get("/vat", response_model=VatReturnDTO)
def get_vat_return(
    start_date: date = Query(..., description="Begin aangifteperiode"),
    end_date: date = Query(..., description="Einde aangifteperiode"),
    db: Session = Depends(get_db),
):
    """BTW-aangifte (rubrieken 1a, 1b, 1e, 2a en 5b) uit het grootboek."""
    return ReportService(db).vat_return(start_date, end_date)


@router.get("/vat/quarter", response_model=InvoiceVatDTO)
def get_quarterly_vat(
    year: int = Query(..., ge=2000, le=2100),
    quarter: int = Query(..., ge=1, le=4),
    db: Session = Depends(get_db),
):
    """BTW per kwartaal op basis van verkoop- en inkoopfacturen."""
    result = ReportService(db).quarterly_vat_from_invoices(year, quarter)
    return InvoiceVatDTO.model_validate(result, from_attributes=True)


@router.get("/dashboard", response_model=DashboardDTO)
def get_dashboard(
    year: int | None = Query(None, description="Standaard het lopende jaar"),
    db: Session = Depends(get_db),
):
    return ReportService(db).dashboard(year or date.today().year)


@router.get("/audit-logs", response_model=list[AuditLogResponseDTO])
def get_audit_logs(
    entity_type: str | None = Query(None, description="JournalEntry, BankTransaction, ..."),
    entity_id: UUID | None = Query(None),
    action: str | None = Query(None, description="CREATE, UPDATE, DELETE, FINALIZE, ..."),
    limit: int = Query(100, ge=1, le=1000),
    db: Session = Depends(get_db),
):
    """Audit trail, nieuwste eerst."""
    query = db.query(AuditLog)
    if entity_type:
        query = query.filter(AuditLog.entity_type == entity_type)
    if entity_id:
        query = query.filter(AuditLog.entity_id == entity_id)
    if action:
        query = query.filter(AuditLog.action == action.upper())
    return query.order_by(AuditLog.created_at.desc()).limit(limit).all()
