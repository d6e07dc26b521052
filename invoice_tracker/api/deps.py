from fastapi import Request
from invoice_tracker.core.config import Settings
from invoice_tracker.db.store import InvoiceStore


def get_store(request: Request) -> InvoiceStore:
    return request.app.state.store


def get_settings(request: Request) -> Settings:
    return request.app.state.settings
