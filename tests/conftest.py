"""
Pytest configuration and fixtures.

Every test gets a fresh in-memory SQLite database with the default chart of
accounts seeded.
"""

from datetime import date
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from zzpboek.core.config import get_settings
from zzpboek.domain.entities import JournalLine
from zzpboek.infrastructure.database import get_db, init_db, seed_default_accounts
from zzpboek.infrastructure.database.models import Account, Contact


class FakeExtractor:
    """Stands in for the AI client; returns a fixed extraction or raises."""

    def __init__(self, result: dict | None = None, error: Exception | None = None):
        self.result = result or {
            "supplier_name": "KPN B.V.",
            "invoice_number": "KPN-2024-0042",
            "invoice_date": "2024-03-15",
            "total_amount": 121.0,
            "vat_amount": 21.0,
            "net_amount": 100.0,
            "vat_percentage": 21.0,
            "contact_id": None,
            "is_new_supplier": True,
            "confidence": 0.9,
        }
        self.error = error
        self.calls = []

    def extract(self, data, mime_type, accounts, contacts):
        self.calls.append((mime_type, len(data), len(contacts)))
        if self.error is not None:
            raise self.error
        return dict(self.result)


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path, monkeypatch):
    monkeypatch.setenv("ZZP_UPLOAD_DIR", str(tmp_path / "uploads"))
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db_session(engine):
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    seed_default_accounts(session)
    yield session
    session.close()


@pytest.fixture
def accounts(db_session) -> dict[str, Account]:
    """Seeded accounts by code."""
    return {a.code: a for a in db_session.query(Account).all()}


@pytest.fixture
def customer(db_session, accounts) -> Contact:
    contact = Contact(
        company_name="Bakkerij De Korenschoof",
        relation_type="Customer",
        iban="NL91ABNA0417164300",
        default_ledger_account_id=accounts["8000"].id,
        payment_term_days=30,
    )
    db_session.add(contact)
    db_session.commit()
    return contact


@pytest.fixture
def supplier(db_session, accounts) -> Contact:
    contact = Contact(
        company_name="KPN B.V.",
        relation_type="Supplier",
        iban="NL20INGB0001234567",
        default_ledger_account_id=accounts["6200"].id,
    )
    db_session.add(contact)
    db_session.commit()
    return contact


@pytest.fixture
def fake_extractor() -> FakeExtractor:
    return FakeExtractor()


@pytest.fixture
def client(db_session, fake_extractor):
    from zzpboek.api.routers.purchase_invoices import get_invoice_extractor
    from zzpboek.main import app

    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_invoice_extractor] = lambda: fake_extractor
    yield TestClient(app)
    app.dependency_overrides.clear()


def balanced_lines(debit_account: Account, credit_account: Account, amount: str) -> list[JournalLine]:
    return [
        JournalLine(account_id=debit_account.id, debit=Decimal(amount)),
        JournalLine(account_id=credit_account.id, credit=Decimal(amount)),
    ]


@pytest.fixture
def book(db_session):
    """Create a Final entry: book(debit_account, credit_account, "100.00", date)."""
    from zzpboek.application.services.ledger_service import LedgerService

    def _book(debit_account, credit_account, amount, entry_date=date(2024, 3, 1), description="Test"):
        return LedgerService(db_session).create_entry(
            entry_date=entry_date,
            description=description,
            lines=balanced_lines(debit_account, credit_account, amount),
            status="Final",
        )

    return _book
