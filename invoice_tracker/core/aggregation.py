from calendar import monthrange
from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, List, Optional, Sequence, Tuple
from invoice_tracker.schemas.invoice import Invoice, InvoiceStatus, STATUS_LABELS
from invoice_tracker.schemas.dashboard import (
    PeriodMode, PeriodWindow, SummaryStats, StatusSlice, MonthlyBucket,
    TrendPoint, ClientRanking, DashboardResponse,
)

# Aggregation is read-only: every function here derives new values from the
# invoices it is given and never touches the store.

PRESET_MONTHS = {
    PeriodMode.LAST_MONTH: 1,
    PeriodMode.LAST_QUARTER: 3,
    PeriodMode.LAST_YEAR: 12,
}

TOP_CLIENTS_DEFAULT = 5


def round_half_up(numerator: int, denominator: int, places: int = 0) -> Decimal:
    quantum = Decimal(1).scaleb(-places)
    return (Decimal(numerator) / Decimal(denominator)).quantize(quantum, rounding=ROUND_HALF_UP)


def subtract_months(day: date, months: int) -> date:
    """Steps back whole calendar months, clamping to the last day of the target month."""
    month_index = day.year * 12 + (day.month - 1) - months
    year, month = divmod(month_index, 12)
    month += 1
    return date(year, month, min(day.day, monthrange(year, month)[1]))


def resolve_window(
    mode: PeriodMode,
    start: Optional[date] = None,
    end: Optional[date] = None,
    today: Optional[date] = None,
) -> PeriodWindow:
    today = today or date.today()
    mode = PeriodMode(mode)

    if mode in PRESET_MONTHS:
        return PeriodWindow(mode=mode, start=subtract_months(today, PRESET_MONTHS[mode]), end=today)
    if mode == PeriodMode.CUSTOM and start and end:
        return PeriodWindow(mode=mode, start=start, end=end)
    # A custom window missing a bound selects everything
    return PeriodWindow(mode=PeriodMode.ALL)


def filter_by_period(invoices: Sequence[Invoice], window: PeriodWindow) -> List[Invoice]:
    if window.mode == PeriodMode.ALL or window.start is None or window.end is None:
        return list(invoices)
    return [inv for inv in invoices if window.start <= inv.date <= window.end]


def _percentage(part: int, count: int) -> int:
    if count == 0:
        return 0
    return int(round_half_up(part * 100, count))


def summarize(invoices: Sequence[Invoice]) -> SummaryStats:
    total = 0
    counts = {status: 0 for status in InvoiceStatus}
    for inv in invoices:
        total += inv.amount
        counts[inv.status] += 1

    count = len(invoices)
    return SummaryStats(
        total=total,
        count=count,
        paid_count=counts[InvoiceStatus.PAID],
        pending_count=counts[InvoiceStatus.PENDING],
        overdue_count=counts[InvoiceStatus.OVERDUE],
        average_amount=int(round_half_up(total, count)) if count else 0,
        paid_percentage=_percentage(counts[InvoiceStatus.PAID], count),
        pending_percentage=_percentage(counts[InvoiceStatus.PENDING], count),
        overdue_percentage=_percentage(counts[InvoiceStatus.OVERDUE], count),
    )


def status_distribution(summary: SummaryStats) -> List[StatusSlice]:
    counts = {
        InvoiceStatus.PAID: summary.paid_count,
        InvoiceStatus.PENDING: summary.pending_count,
        InvoiceStatus.OVERDUE: summary.overdue_count,
    }
    return [StatusSlice(status=s, label=STATUS_LABELS[s], count=c) for s, c in counts.items()]


def monthly_series(invoices: Sequence[Invoice]) -> List[MonthlyBucket]:
    """
    One bucket per calendar month between the earliest and latest invoice,
    months without invoices included.
    """
    if not invoices:
        return []

    month_map: Dict[Tuple[int, int], Dict[str, int]] = {}
    for inv in invoices:
        key = (inv.date.year, inv.date.month)
        if key not in month_map:
            month_map[key] = {"total": 0, "paid_total": 0, "count": 0}
        month_map[key]["total"] += inv.amount
        month_map[key]["count"] += 1
        if inv.status == InvoiceStatus.PAID:
            month_map[key]["paid_total"] += inv.amount

    first = min(inv.date for inv in invoices)
    last = max(inv.date for inv in invoices)

    buckets = []
    year, month = first.year, first.month
    while (year, month) <= (last.year, last.month):
        data = month_map.get((year, month), {"total": 0, "paid_total": 0, "count": 0})
        buckets.append(MonthlyBucket(
            month=f"{year:04d}-{month:02d}",
            total=data["total"],
            paid_total=data["paid_total"],
            pending_total=data["total"] - data["paid_total"],
            count=data["count"],
        ))
        year, month = (year + 1, 1) if month == 12 else (year, month + 1)
    return buckets


def growth_series(monthly: Sequence[MonthlyBucket]) -> List[TrendPoint]:
    if len(monthly) < 2:
        return []

    points = [TrendPoint(month=monthly[0].month, total=monthly[0].total, growth_percent=0.0)]
    for previous, current in zip(monthly, monthly[1:]):
        if previous.total == 0:
            growth = None
        else:
            growth = float(round_half_up((current.total - previous.total) * 100, previous.total, places=1))
        points.append(TrendPoint(month=current.month, total=current.total, growth_percent=growth))
    return points


def top_clients(invoices: Sequence[Invoice], limit: int = TOP_CLIENTS_DEFAULT) -> List[ClientRanking]:
    client_map: Dict[str, Dict[str, int]] = {}

    for inv in invoices:
        if inv.client not in client_map:
            client_map[inv.client] = {"total": 0, "paid_total": 0, "count": 0}
        client_map[inv.client]["total"] += inv.amount
        client_map[inv.client]["count"] += 1
        if inv.status == InvoiceStatus.PAID:
            client_map[inv.client]["paid_total"] += inv.amount

    rankings = [
        ClientRanking(
            client=client,
            total=data["total"],
            paid_total=data["paid_total"],
            pending_total=data["total"] - data["paid_total"],
            count=data["count"],
        )
        for client, data in client_map.items()
    ]
    # sorted() is stable, so equal totals keep first-appearance order
    return sorted(rankings, key=lambda x: -x.total)[:limit]


def build_dashboard(
    invoices: Sequence[Invoice],
    window: PeriodWindow,
    top_limit: int = TOP_CLIENTS_DEFAULT,
) -> DashboardResponse:
    filtered = filter_by_period(invoices, window)
    summary = summarize(filtered)
    monthly = monthly_series(filtered)

    return DashboardResponse(
        window=window,
        filtered_count=len(filtered),
        total_count=len(invoices),
        summary=summary,
        status_distribution=status_distribution(summary),
        monthly=monthly,
        trend=growth_series(monthly),
        top_clients=top_clients(filtered, top_limit),
    )
