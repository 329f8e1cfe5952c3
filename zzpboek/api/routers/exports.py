"""
API Routers - XAF auditfile, Excel-exports en Excel-import.
"""

from datetime import date

from fastapi import APIRouter, Depends, File, Query, UploadFile
from fastapi.responses import Response
from sqlalchemy.orm import Session

from zzpboek.application.dto.settings_dto import ImportReportDTO
from zzpboek.application.services.export_service import ExportService
from zzpboek.core.security import Permission, UserRole, require_permission
from zzpboek.infrastructure.database import get_db
from zzpboek.infrastructure.export import XLSX_CONTENT_TYPE

router = APIRouter(prefix="/api/v1/exports", tags=["Export"])


def _download(content: bytes, filename: str, media_type: str) -> Response:
    return Response(
        content=content,
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


def _xlsx(content: bytes, filename: str) -> Response:
    return _download(content, filename, XLSX_CONTENT_TYPE)


@router.get("/xaf/{year}")
def export_xaf(
    year: int,
    db: Session = Depends(get_db),
    role: UserRole = Depends(require_permission(Permission.REPORT_EXPORT)),
):
    """
    XML Auditfile Financieel (XAF 3.2) voor de Belastingdienst.

    Bevat bedrijfsgegevens, rekeningschema met openingsbalans en alle
    definitieve boekingen van het jaar.
    """
    filename, content = ExportService(db).xaf(year)
    return _download(content, filename, "application/xml")


@router.get("/excel/accounts")
def export_accounts(
    db: Session = Depends(get_db),
    role: UserRole = Depends(require_permission(Permission.REPORT_EXPORT)),
):
    return _xlsx(ExportService(db).accounts_workbook(), "rekeningschema.xlsx")


@router.get("/excel/journal")
def export_journal(
    start_date: date | None = Query(None),
    end_date: date | None = Query(None),
    db: Session = Depends(get_db),
    role: UserRole = Depends(require_permission(Permission.REPORT_EXPORT)),
):
    return _xlsx(ExportService(db).journal_workbook(start_date, end_date), "journaal.xlsx")


@router.get("/excel/trial-balance")
def export_trial_balance(
    start_date: date | None = Query(None),
    end_date: date | None = Query(None),
    db: Session = Depends(get_db),
    role: UserRole = Depends(require_permission(Permission.REPORT_EXPORT)),
):
    return _xlsx(ExportService(db).trial_balance_workbook(start_date, end_date), "proefbalans.xlsx")


@router.get("/excel/profit-loss")
def export_profit_and_loss(
    start_date: date = Query(...),
    end_date: date = Query(...),
    db: Session = Depends(get_db),
    role: UserRole = Depends(require_permission(Permission.REPORT_EXPORT)),
):
    return _xlsx(ExportService(db).profit_and_loss_workbook(start_date, end_date), "winst-verlies.xlsx")


@router.get("/excel/balance-sheet")
def export_balance_sheet(
    end_date: date = Query(...),
    db: Session = Depends(get_db),
    role: UserRole = Depends(require_permission(Permission.REPORT_EXPORT)),
):
    return _xlsx(ExportService(db).balance_sheet_workbook(end_date), f"balans-{end_date.isoformat()}.xlsx")


@router.post("/import/accounts", response_model=ImportReportDTO)
def import_accounts(
    file: UploadFile = File(..., description="Excel met kolommen code, naam, type"),
    db: Session = Depends(get_db),
    role: UserRole = Depends(require_permission(Permission.SETTINGS_EDIT)),
):
    """Rekeningschema importeren; bestaande codes worden bijgewerkt."""
    return ExportService(db).import_accounts(file.file.read())


@router.post("/import/contacts", response_model=ImportReportDTO)
def import_contacts(
    file: UploadFile = File(..., description="Excel met kolommen bedrijfsnaam, type, e-mail, IBAN"),
    db: Session = Depends(get_db),
    role: UserRole = Depends(require_permission(Permission.ENTRY_CREATE)),
):
    return ExportService(db).import_contacts(file.file.read())
