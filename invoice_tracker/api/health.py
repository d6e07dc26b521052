from fastapi import APIRouter, Depends
from invoice_tracker.api.deps import get_store
from invoice_tracker.db.store import InvoiceStore

router = APIRouter()

@router.get("/health")
async def health(store: InvoiceStore = Depends(get_store)):
    return {"status": "ok", "invoices": len(store)}
