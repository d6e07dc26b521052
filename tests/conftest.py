import pytest
from datetime import date
from fastapi.testclient import TestClient
from invoice_tracker.core.config import Settings
from invoice_tracker.db.storage import InMemoryStorage
from invoice_tracker.db.store import InvoiceStore
from invoice_tracker.main import create_app
from invoice_tracker.schemas.invoice import Invoice


@pytest.fixture
def app_settings(tmp_path):
    return Settings(STORAGE_PATH=str(tmp_path / "local_storage.json"))


@pytest.fixture
def app(app_settings):
    return create_app(app_settings)


@pytest.fixture
def client(app):
    return TestClient(app)


@pytest.fixture
def store():
    return InvoiceStore(InMemoryStorage(), "test_invoices")


@pytest.fixture
def scenario_invoices():
    """Three invoices across two months and two clients."""
    return [
        Invoice(id="a1", number="F-001", date=date(2024, 1, 15), client="A", amount=100000, status="pending"),
        Invoice(id="a2", number="F-002", date=date(2024, 2, 10), client="A", amount=50000, status="paid"),
        Invoice(id="b1", number="F-003", date=date(2024, 2, 20), client="B", amount=200000, status="paid"),
    ]
