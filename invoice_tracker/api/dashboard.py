from fastapi import APIRouter, Depends, Query
from datetime import date
from typing import Optional
import logging
from invoice_tracker.api.deps import get_settings, get_store
from invoice_tracker.core.aggregation import build_dashboard, resolve_window
from invoice_tracker.core.config import Settings
from invoice_tracker.db.store import InvoiceStore
from invoice_tracker.schemas.dashboard import DashboardResponse, PeriodMode

router = APIRouter(tags=["dashboard"])
logger = logging.getLogger(__name__)


@router.get("/dashboard", response_model=DashboardResponse)
async def get_dashboard(
    period: Optional[PeriodMode] = Query(None, description="Defaults to custom when start and end are given, else the configured period when invoices exist"),
    start: Optional[date] = Query(None),
    end: Optional[date] = Query(None),
    store: InvoiceStore = Depends(get_store),
    cfg: Settings = Depends(get_settings),
):
    invoices = store.list()
    if period is None:
        if start and end:
            period = PeriodMode.CUSTOM
        else:
            period = PeriodMode(cfg.DEFAULT_PERIOD) if invoices else PeriodMode.ALL

    window = resolve_window(period, start=start, end=end)
    dashboard = build_dashboard(invoices, window, top_limit=cfg.TOP_CLIENTS_LIMIT)
    logger.info(
        f"Dashboard computed: window={window.mode.value} "
        f"showing {dashboard.filtered_count} of {dashboard.total_count} invoices"
    )
    return dashboard
