from fastapi import APIRouter, Body, Depends, HTTPException, Query, Response
from typing import Any, Dict, Optional
import logging
from pydantic import ValidationError
from invoice_tracker.api.deps import get_store
from invoice_tracker.db.store import InvoiceStore
from invoice_tracker.schemas.invoice import (
    Invoice, InvoiceForm, InvoiceListResponse, InvoiceMutationResponse, form_errors,
)

router = APIRouter(prefix="/invoices", tags=["invoices"])
logger = logging.getLogger(__name__)


def _validate_form(payload: Dict[str, Any]) -> InvoiceForm:
    try:
        return InvoiceForm(**payload)
    except ValidationError as e:
        errors = form_errors(e)
        logger.info(f"Invoice form rejected: {sorted(errors)}")
        raise HTTPException(status_code=422, detail={"errors": errors})


@router.get("", response_model=InvoiceListResponse)
async def list_invoices(
    q: Optional[str] = Query(None, description="Filter by invoice number or client"),
    store: InvoiceStore = Depends(get_store),
):
    invoices = store.search(q)
    return InvoiceListResponse(
        invoices=invoices,
        count=len(invoices),
        total_count=len(store),
        total_amount=sum(inv.amount for inv in invoices),
    )


@router.post("", response_model=InvoiceMutationResponse, status_code=201)
async def create_invoice(
    payload: Dict[str, Any] = Body(...),
    store: InvoiceStore = Depends(get_store),
):
    form = _validate_form(payload)
    invoice = store.create(form.to_fields())
    return InvoiceMutationResponse(invoice=invoice, persisted=store.last_persist_ok)


@router.get("/{invoice_id}", response_model=Invoice)
async def get_invoice(invoice_id: str, store: InvoiceStore = Depends(get_store)):
    invoice = store.get(invoice_id)
    if invoice is None:
        raise HTTPException(status_code=404, detail=f"Invoice '{invoice_id}' not found")
    return invoice


@router.put("/{invoice_id}", response_model=InvoiceMutationResponse)
async def update_invoice(
    invoice_id: str,
    payload: Dict[str, Any] = Body(...),
    store: InvoiceStore = Depends(get_store),
):
    form = _validate_form(payload)
    invoice = store.update(invoice_id, form.to_fields())
    if invoice is None:
        raise HTTPException(status_code=404, detail=f"Invoice '{invoice_id}' not found")
    return InvoiceMutationResponse(invoice=invoice, persisted=store.last_persist_ok)


@router.delete("/{invoice_id}", status_code=204)
async def delete_invoice(invoice_id: str, store: InvoiceStore = Depends(get_store)):
    # Confirmation is the caller's job; this deletes immediately
    if not store.remove(invoice_id):
        raise HTTPException(status_code=404, detail=f"Invoice '{invoice_id}' not found")
    return Response(status_code=204, headers={"X-Persisted": str(store.last_persist_ok).lower()})
