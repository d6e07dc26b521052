from pydantic import BaseModel
from datetime import date
from enum import Enum
from typing import List, Optional
from invoice_tracker.schemas.invoice import InvoiceStatus


class PeriodMode(str, Enum):
    ALL = "all"
    LAST_MONTH = "last-month"
    LAST_QUARTER = "last-quarter"
    LAST_YEAR = "last-year"
    CUSTOM = "custom"


class PeriodWindow(BaseModel):
    mode: PeriodMode = PeriodMode.ALL
    start: Optional[date] = None
    end: Optional[date] = None


class SummaryStats(BaseModel):
    total: int = 0
    count: int = 0
    paid_count: int = 0
    pending_count: int = 0
    overdue_count: int = 0
    average_amount: int = 0
    paid_percentage: int = 0
    pending_percentage: int = 0
    overdue_percentage: int = 0


class StatusSlice(BaseModel):
    status: InvoiceStatus
    label: str
    count: int = 0


class MonthlyBucket(BaseModel):
    month: str  # YYYY-MM
    total: int = 0
    paid_total: int = 0
    pending_total: int = 0
    count: int = 0


class TrendPoint(BaseModel):
    month: str
    total: int = 0
    # None when the previous month billed nothing
    growth_percent: Optional[float] = 0.0


class ClientRanking(BaseModel):
    client: str
    total: int = 0
    paid_total: int = 0
    pending_total: int = 0
    count: int = 0


class DashboardResponse(BaseModel):
    window: PeriodWindow
    filtered_count: int = 0
    total_count: int = 0
    summary: SummaryStats
    status_distribution: List[StatusSlice] = []
    monthly: List[MonthlyBucket] = []
    trend: List[TrendPoint] = []
    top_clients: List[ClientRanking] = []
