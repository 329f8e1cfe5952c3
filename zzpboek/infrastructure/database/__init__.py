"""
Database initialization and session management.
"""

from collections.abc import Generator
from pathlib import Path

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from zzpboek.core.config import get_settings
from zzpboek.core.logging import get_logger
from zzpboek.domain.tax_categories import infer_tax_category
from zzpboek.infrastructure.database.models import (
    Account,
    AuditLog,
    BankRule,
    BankTransaction,
    CompanySettings,
    Contact,
    DocumentInbox,
    FiscalYear,
    FixedAsset,
    JournalEntry,
    JournalLine,
    Notification,
    PurchaseInvoice,
    Quotation,
    SalesInvoice,
    get_engine_url,
)

logger = get_logger(__name__)

DATABASE_URL = get_engine_url(get_settings())

if DATABASE_URL.startswith("sqlite"):
    engine = create_engine(DATABASE_URL, echo=False, connect_args={"check_same_thread": False})
else:
    engine = create_engine(DATABASE_URL, echo=False)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Generator[Session, None, None]:
    """Dependency - Get database session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db(bind=None) -> None:
    """Initialize database - create all tables."""
    from sqlmodel import SQLModel

    bind = bind or engine
    if str(bind.url).startswith("sqlite:///") and not str(bind.url).endswith(":memory:"):
        Path(bind.url.database).parent.mkdir(parents=True, exist_ok=True)
    SQLModel.metadata.create_all(bind=bind)


# Standaard rekeningschema voor een ZZP'er:
# (code, naam, type, fiscale categorie of None = afleiden, btw-code, rgs-code, systeemrekening)
DEFAULT_CHART_OF_ACCOUNTS = [
    ("0100", "Inventaris", "Asset", None, None, "BMvaBedInv", False),
    ("0110", "Cumulatieve afschrijving inventaris", "Asset", "Materiële vaste activa", None, "BMvaBedCae", False),
    ("0200", "Vervoermiddelen", "Asset", None, None, "BMvaVer", False),
    ("0210", "Cumulatieve afschrijving vervoermiddelen", "Asset", "Materiële vaste activa", None, "BMvaVerCae", False),
    ("0500", "Eigen vermogen", "Equity", "Ondernemingsvermogen", None, "BEivOkaOka", True),
    ("0510", "Privé opnamen", "Equity", "Ondernemingsvermogen", None, "BEivPro", True),
    ("0520", "Privé stortingen", "Equity", "Ondernemingsvermogen", None, "BEivPrs", False),
    ("0700", "Lening o/g", "Liability", "Langlopende schulden", None, "BLasSchLen", False),
    ("1000", "Kas", "Asset", None, None, "BLimKas", True),
    ("1100", "Bank", "Asset", None, None, "BLimBan", True),
    ("1300", "Debiteuren", "Asset", "Vorderingen", None, "BVorDeb", True),
    ("1310", "Tussenrekening ontvangsten debiteuren", "Asset", "Vorderingen", None, "BVorOvr", False),
    ("1450", "Te vorderen BTW (voorbelasting)", "Asset", "Vorderingen", None, "BVorBtwVoo", True),
    ("1500", "Af te dragen BTW", "Liability", "Kortlopende schulden", None, "BSchBtwAfd", True),
    ("1510", "Af te dragen BTW laag", "Liability", "Kortlopende schulden", None, "BSchBtwAfl", False),
    ("1520", "BTW afdracht / teruggave", "Liability", "Kortlopende schulden", None, "BSchBtwAft", False),
    ("1600", "Crediteuren", "Liability", "Kortlopende schulden", None, "BSchCre", True),
    ("1700", "Nog te betalen kosten", "Liability", "Kortlopende schulden", None, "BSchOvsNtb", False),
    ("2000", "Tussenrekening", "Asset", "Vorderingen", None, "BVorOvr", False),
    ("2300", "Nog te ontvangen inkoopfacturen", "Liability", "Kortlopende schulden", None, "BSchOvs", False),
    ("4000", "Brandstof", "Expense", None, None, "WBedVkfBra", False),
    ("4010", "Onderhoud auto", "Expense", None, None, "WBedVkfOnd", False),
    ("4020", "Parkeerkosten", "Expense", None, None, "WBedVkfPar", False),
    ("4030", "Openbaar vervoer en reiskosten", "Expense", None, None, "WBedVkfRei", False),
    ("4200", "Privégebruik auto (correctie)", "Expense", "Kosten van vervoer", None, "WBedVkfPri", False),
    ("6000", "Afschrijving inventaris", "Expense", None, None, "WAfsMvaBed", False),
    ("6010", "Afschrijving vervoermiddelen", "Expense", None, None, "WAfsMvaVer", False),
    ("6100", "Huur werkruimte", "Expense", "Huisvestingskosten", None, "WBedHuiHur", False),
    ("6200", "Telefoon en internet", "Expense", "Kantoorkosten", None, "WBedKanTel", False),
    ("6210", "Software en abonnementen", "Expense", "Kantoorkosten", None, "WBedKanSof", False),
    ("6220", "Kantoorbenodigdheden", "Expense", "Kantoorkosten", None, "WBedKanKan", False),
    ("6300", "Reclame en marketing", "Expense", "Verkoopkosten", None, "WBedVerRec", False),
    ("6310", "Representatiekosten", "Expense", "Verkoopkosten", None, "WBedVerRep", False),
    ("6400", "Verzekeringen", "Expense", "Algemene kosten", None, "WBedAlgVez", False),
    ("6410", "Administratie- en advieskosten", "Expense", "Algemene kosten", None, "WBedAlgAdv", False),
    ("6420", "Opleidingskosten", "Expense", "Algemene kosten", None, "WBedAlgOpl", False),
    ("6900", "Overige algemene kosten", "Expense", "Algemene kosten", None, "WBedAlgOvr", False),
    ("7000", "Inkoopwaarde van de omzet", "Expense", None, None, "WKprInk", False),
    ("8000", "Omzet hoog tarief", "Revenue", None, "hoog", "WOmzNopOlh", True),
    ("8010", "Omzet laag tarief", "Revenue", None, "laag", "WOmzNopOll", False),
    ("8020", "Omzet 0% / vrijgesteld", "Revenue", None, "nul", "WOmzNopOlv", False),
    ("8030", "Omzet BTW verlegd", "Revenue", None, "verlegd", "WOmzNopOlr", False),
    ("9000", "Bankkosten", "Expense", "Rente en bankkosten", None, "WFbeRlsBan", False),
    ("9010", "Rentelasten", "Expense", None, None, "WFbeRlsRel", False),
]


def seed_default_accounts(db: Session) -> int:
    """Seed het standaard rekeningschema. Bestaande codes worden overgeslagen."""
    existing = {code for (code,) in db.query(Account.code).all()}
    created = 0
    for code, name, acc_type, category, vat_code, rgs_code, is_system in DEFAULT_CHART_OF_ACCOUNTS:
        if code in existing:
            continue
        db.add(
            Account(
                code=code,
                name=name,
                account_type=acc_type,
                tax_category=category or infer_tax_category(name, code, acc_type),
                vat_code=vat_code,
                rgs_code=rgs_code,
                is_system=is_system,
            )
        )
        created += 1

    if db.query(CompanySettings).first() is None:
        db.add(CompanySettings())

    db.commit()
    logger.info("chart_of_accounts_seeded", created=created, existing=len(existing))
    return created
