"""
Main FastAPI application - ZZP Boekhouding.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from zzpboek import __version__
from zzpboek.api.routers import (
    accounts,
    bank,
    contacts,
    exports,
    journal,
    purchase_invoices,
    reports,
    sales,
    settings,
    tax,
)
from zzpboek.core.config import get_settings
from zzpboek.core.logging import configure_logging, get_logger
from zzpboek.domain.exceptions import (
    BookkeepingError,
    DuplicateError,
    ExternalServiceError,
    NotFoundError,
)
from zzpboek.infrastructure.database import SessionLocal, init_db, seed_default_accounts

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """Application lifespan - startup and shutdown events."""
    config = get_settings()
    configure_logging(config.log_level, config.log_json)
    init_db()
    db = SessionLocal()
    try:
        seed_default_accounts(db)
    finally:
        db.close()
    logger.info("application_started", environment=config.environment, version=__version__)
    yield
    logger.info("application_stopped")


app = FastAPI(
    title="ZZP Boekhouding API",
    description="""
## Dubbel boekhouden voor zelfstandigen (ZZP)

### Functies:
- **Grootboek**: rekeningschema met fiscale categorieën, relaties, journaalposten (debet = credit)
- **Bank**: MT940/CSV/CAMT.053 import, bankregels, automatisch afletteren
- **Inkoop**: documentinbox met AI-herkenning van facturen en bonnen
- **Verkoop**: facturen, offertes met publieke akkoordlink, notificaties
- **Rapportages**: proefbalans, winst & verlies, balans, BTW-aangifte, dashboard
- **Inkomstenbelasting**: aangiftewizard, fiscale winst, vaste activa en afschrijvingen
- **Export**: XAF 3.2 auditfile en Excel

### Uitgangspunten:
- Definitieve boekingen zijn onveranderlijk; corrigeren gaat via een tegenboeking
- Rapportages rekenen alleen met definitieve boekingen
- Audit trail van elke wijziging
    """,
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(accounts.router)
app.include_router(contacts.router)
app.include_router(journal.router)
app.include_router(reports.router)
app.include_router(bank.router)
app.include_router(purchase_invoices.router)
app.include_router(sales.router)
app.include_router(sales.public_router)
app.include_router(tax.router)
app.include_router(tax.assets_router)
app.include_router(settings.router)
app.include_router(exports.router)


@app.get("/")
def root():
    return {
        "name": "ZZP Boekhouding API",
        "version": __version__,
        "docs": "/docs",
    }


@app.get("/health")
def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "database": "connected"}


@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError):
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.exception_handler(DuplicateError)
async def duplicate_handler(request: Request, exc: DuplicateError):
    return JSONResponse(status_code=409, content={"detail": str(exc)})


@app.exception_handler(BookkeepingError)
async def bookkeeping_error_handler(request: Request, exc: BookkeepingError):
    """Business rule violations (unbalanced entry, locked entry, ...)."""
    return JSONResponse(status_code=400, content={"detail": str(exc)})


@app.exception_handler(ValueError)
async def value_error_handler(request: Request, exc: ValueError):
    """Handle validation errors."""
    return JSONResponse(status_code=400, content={"detail": str(exc)})


@app.exception_handler(ExternalServiceError)
async def external_service_handler(request: Request, exc: ExternalServiceError):
    logger.error("external_service_failed", path=request.url.path, error=str(exc))
    return JSONResponse(status_code=502, content={"detail": str(exc)})


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
