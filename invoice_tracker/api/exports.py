from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import StreamingResponse
from typing import Callable, Optional
import io
import logging
from invoice_tracker.api.deps import get_settings, get_store
from invoice_tracker.core.config import Settings
from invoice_tracker.core.export import export_file_name, render_excel, render_pdf
from invoice_tracker.db.store import InvoiceStore

router = APIRouter(prefix="/exports", tags=["exports"])
logger = logging.getLogger(__name__)

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def _export_response(
    store: InvoiceStore,
    cfg: Settings,
    q: Optional[str],
    render: Callable,
    extension: str,
    media_type: str,
) -> StreamingResponse:
    invoices = store.search(q)
    if not invoices:
        raise HTTPException(status_code=404, detail="No invoices to export")

    logger.info(f"{extension.upper()} export STARTED for {len(invoices)} invoices")
    try:
        content = render(invoices, cfg)
    except Exception as e:
        logger.error(f"{extension.upper()} export failed: {e}")
        raise HTTPException(status_code=500, detail=f"{extension.upper()} export failed")

    file_name = export_file_name(cfg.EXPORT_FILE_PREFIX, extension)
    return StreamingResponse(
        io.BytesIO(content),
        media_type=media_type,
        headers={
            "Content-Disposition": f"attachment; filename={file_name}",
            "Content-Length": str(len(content)),
        },
    )


@router.get("/excel")
async def export_excel(
    q: Optional[str] = Query(None),
    store: InvoiceStore = Depends(get_store),
    cfg: Settings = Depends(get_settings),
):
    return _export_response(store, cfg, q, render_excel, "xlsx", XLSX_MEDIA_TYPE)


@router.get("/pdf")
async def export_pdf(
    q: Optional[str] = Query(None),
    store: InvoiceStore = Depends(get_store),
    cfg: Settings = Depends(get_settings),
):
    return _export_response(store, cfg, q, render_pdf, "pdf", "application/pdf")
