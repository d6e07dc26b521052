from fastapi import FastAPI
from pathlib import Path
from typing import Optional
from invoice_tracker.core.config import Settings, settings
from invoice_tracker.core.logging_config import configure_logging
from invoice_tracker.core.middleware import RequestLogMiddleware
from invoice_tracker.db.storage import JsonFileStorage
from invoice_tracker.db.store import InvoiceStore
from invoice_tracker.api import health, invoices, dashboard, exports


def create_app(app_settings: Optional[Settings] = None) -> FastAPI:
    """Composition root: builds the storage and store, loads once, wires routers."""
    app_settings = app_settings or settings
    configure_logging(app_settings.LOG_LEVEL)

    storage = JsonFileStorage(Path(app_settings.STORAGE_PATH), quota_bytes=app_settings.STORAGE_QUOTA_BYTES)
    store = InvoiceStore(storage, app_settings.STORAGE_KEY)
    store.load()

    app = FastAPI(title=app_settings.PROJECT_NAME)
    app.state.settings = app_settings
    app.state.store = store
    app.add_middleware(RequestLogMiddleware)

    app.include_router(health.router)
    app.include_router(invoices.router)
    app.include_router(dashboard.router)
    app.include_router(exports.router)
    return app


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("invoice_tracker.main:create_app", factory=True, host="127.0.0.1", port=8000)
