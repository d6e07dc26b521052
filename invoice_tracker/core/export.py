"""
Spreadsheet and PDF renderings of an invoice list.

`render_*` return the file bytes and let errors propagate; `export_to_*`
write the file into a directory and report success as a boolean.
"""
from datetime import date, datetime
from pathlib import Path
from typing import Optional, Sequence
import io
import logging

from openpyxl import Workbook
from openpyxl.styles import Font
from openpyxl.utils import get_column_letter
from reportlab.lib import colors
from reportlab.lib.enums import TA_RIGHT
from reportlab.lib.pagesizes import letter, landscape
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.lib.units import mm
from reportlab.pdfgen import canvas
from reportlab.platypus import SimpleDocTemplate, Table, TableStyle, Paragraph, Spacer

from invoice_tracker.core.config import settings as default_settings, Settings
from invoice_tracker.schemas.invoice import Invoice, InvoiceStatus

logger = logging.getLogger(__name__)

EXPORT_HEADERS = ["Number", "Date", "Client", "Amount", "Status", "Notes"]
EXCEL_COLUMN_WIDTHS = [15, 12, 25, 15, 12, 40]
EXCEL_SHEET_TITLE = "Invoices"
EXCEL_AMOUNT_FORMAT = "#,##0"

PDF_TITLE = "INVOICE LIST"
PDF_COLUMN_WIDTHS = [25 * mm, 25 * mm, 50 * mm, 30 * mm, 25 * mm, 61 * mm]
PDF_HEADER_FILL = colors.Color(41 / 255, 128 / 255, 185 / 255)

# (background, text) per status
STATUS_COLORS = {
    InvoiceStatus.PAID: (colors.Color(212 / 255, 237 / 255, 218 / 255), colors.Color(21 / 255, 87 / 255, 36 / 255)),
    InvoiceStatus.PENDING: (colors.Color(255 / 255, 243 / 255, 205 / 255), colors.Color(133 / 255, 100 / 255, 4 / 255)),
    InvoiceStatus.OVERDUE: (colors.Color(248 / 255, 215 / 255, 218 / 255), colors.Color(114 / 255, 28 / 255, 36 / 255)),
}

STATUS_COLUMN = 4
AMOUNT_COLUMN = 3


def export_file_name(prefix: str, extension: str, today: Optional[date] = None) -> str:
    today = today or date.today()
    return f"{prefix}_{today.isoformat()}.{extension}"


def format_amount(amount: int, cfg: Settings = default_settings) -> str:
    grouped = f"{amount:,}".replace(",", cfg.THOUSANDS_SEPARATOR)
    return f"{cfg.CURRENCY_SYMBOL}{grouped}"


def render_excel(invoices: Sequence[Invoice], cfg: Settings = default_settings) -> bytes:
    workbook = Workbook()
    sheet = workbook.active
    sheet.title = EXCEL_SHEET_TITLE

    sheet.append(EXPORT_HEADERS)
    for cell in sheet[1]:
        cell.font = Font(bold=True)

    for inv in invoices:
        sheet.append([
            inv.number,
            inv.date.strftime(cfg.EXPORT_DATE_FORMAT),
            inv.client,
            inv.amount,
            inv.status_label,
            inv.notes or "",
        ])
        sheet.cell(row=sheet.max_row, column=AMOUNT_COLUMN + 1).number_format = EXCEL_AMOUNT_FORMAT

    for index, width in enumerate(EXCEL_COLUMN_WIDTHS, start=1):
        sheet.column_dimensions[get_column_letter(index)].width = width

    buffer = io.BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


class _NumberedCanvas(canvas.Canvas):
    """Defers page output until the total page count is known, then draws the footer."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._saved_page_states = []

    def showPage(self):
        self._saved_page_states.append(dict(self.__dict__))
        self._startPage()

    def save(self):
        page_count = len(self._saved_page_states)
        for state in self._saved_page_states:
            self.__dict__.update(state)
            self._draw_footer(page_count)
            super().showPage()
        super().save()

    def _draw_footer(self, page_count: int):
        width, _height = self._pagesize
        self.saveState()
        self.setStrokeColor(colors.Color(200 / 255, 200 / 255, 200 / 255))
        self.setLineWidth(0.3)
        self.line(14 * mm, 15 * mm, width - 14 * mm, 15 * mm)
        self.setFont("Helvetica", 8)
        self.setFillColor(colors.grey)
        self.drawCentredString(width / 2, 10 * mm, f"Page {self._pageNumber} of {page_count}")
        self.restoreState()


def render_pdf(
    invoices: Sequence[Invoice],
    cfg: Settings = default_settings,
    generated_at: Optional[datetime] = None,
) -> bytes:
    generated_at = generated_at or datetime.now()

    buffer = io.BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=landscape(letter),
        leftMargin=14 * mm,
        rightMargin=14 * mm,
        topMargin=14 * mm,
        bottomMargin=22 * mm,
        title="Invoices",
    )
    styles = getSampleStyleSheet()
    meta_style = ParagraphStyle(name="Meta", parent=styles["Normal"], fontSize=10, textColor=colors.Color(0.4, 0.4, 0.4))
    totals_style = ParagraphStyle(name="Totals", parent=meta_style, fontSize=11, alignment=TA_RIGHT)
    cell_style = ParagraphStyle(name="Cell", parent=styles["Normal"], fontSize=9, leading=11)
    note_style = ParagraphStyle(name="Note", parent=styles["Normal"], fontSize=8, textColor=colors.Color(0.6, 0.6, 0.6))
    elements = []

    # 1. Header block
    elements.append(Paragraph(PDF_TITLE, ParagraphStyle(name="ListTitle", parent=styles["Title"], fontSize=18, alignment=0)))
    total_amount = sum(inv.amount for inv in invoices)
    header = Table(
        [
            [Paragraph(f"Generated on: {generated_at.strftime(cfg.EXPORT_DATE_FORMAT)}", meta_style),
             Paragraph(f"Total invoices: {len(invoices)}", totals_style)],
            [Paragraph(f"Time: {generated_at.strftime('%H:%M')}", meta_style),
             Paragraph(f"Total billed: {format_amount(total_amount, cfg)}", totals_style)],
        ],
        colWidths=[doc.width / 2, doc.width / 2],
    )
    header.setStyle(TableStyle([
        ("LEFTPADDING", (0, 0), (-1, -1), 0),
        ("RIGHTPADDING", (0, 0), (-1, -1), 0),
    ]))
    elements.append(header)
    elements.append(Spacer(1, 6 * mm))

    # 2. Invoice table
    rows = [["Invoice No.", "Date", "Client", "Amount", "Status", "Notes"]]
    for inv in invoices:
        rows.append([
            Paragraph(_escape(inv.number), cell_style),
            inv.date.strftime(cfg.EXPORT_DATE_FORMAT),
            Paragraph(_escape(inv.client), cell_style),
            format_amount(inv.amount, cfg),
            inv.status_label,
            Paragraph(_escape(inv.notes) or "-", cell_style),
        ])

    table_style = [
        ("BACKGROUND", (0, 0), (-1, 0), PDF_HEADER_FILL),
        ("TEXTCOLOR", (0, 0), (-1, 0), colors.white),
        ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
        ("FONTSIZE", (0, 0), (-1, 0), 10),
        ("FONTSIZE", (0, 1), (-1, -1), 9),
        ("FONTNAME", (AMOUNT_COLUMN, 1), (AMOUNT_COLUMN, -1), "Helvetica-Bold"),
        ("ALIGN", (0, 0), (1, -1), "CENTER"),
        ("ALIGN", (AMOUNT_COLUMN, 1), (AMOUNT_COLUMN, -1), "RIGHT"),
        ("ALIGN", (STATUS_COLUMN, 0), (STATUS_COLUMN, -1), "CENTER"),
        ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
        ("TOPPADDING", (0, 0), (-1, -1), 3),
        ("BOTTOMPADDING", (0, 0), (-1, -1), 3),
        ("GRID", (0, 0), (-1, -1), 0.1, colors.grey),
    ]
    for row_index, inv in enumerate(invoices, start=1):
        background, text = STATUS_COLORS[inv.status]
        table_style.append(("BACKGROUND", (STATUS_COLUMN, row_index), (STATUS_COLUMN, row_index), background))
        table_style.append(("TEXTCOLOR", (STATUS_COLUMN, row_index), (STATUS_COLUMN, row_index), text))

    invoice_table = Table(rows, colWidths=PDF_COLUMN_WIDTHS, repeatRows=1)
    invoice_table.setStyle(TableStyle(table_style))
    elements.append(invoice_table)

    # 3. Closing note
    elements.append(Spacer(1, 10 * mm))
    elements.append(Paragraph("Document generated by Invoice Tracker", note_style))
    elements.append(Paragraph("The figures shown are for information only", note_style))

    doc.build(elements, canvasmaker=_NumberedCanvas)
    return buffer.getvalue()


def _escape(text: str) -> str:
    return (text or "").replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;")


def _write_export(content: bytes, output_dir: Path, file_name: str) -> Path:
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    path = output_dir / file_name
    path.write_bytes(content)
    return path


def export_to_excel(invoices: Sequence[Invoice], output_dir: Path, cfg: Settings = default_settings) -> bool:
    file_name = export_file_name(cfg.EXPORT_FILE_PREFIX, "xlsx")
    try:
        path = _write_export(render_excel(invoices, cfg), output_dir, file_name)
    except Exception as e:
        logger.error(f"Excel export failed: {e}")
        return False
    logger.info(f"Exported {len(invoices)} invoices to {path}")
    return True


def export_to_pdf(invoices: Sequence[Invoice], output_dir: Path, cfg: Settings = default_settings) -> bool:
    file_name = export_file_name(cfg.EXPORT_FILE_PREFIX, "pdf")
    try:
        path = _write_export(render_pdf(invoices, cfg), output_dir, file_name)
    except Exception as e:
        logger.error(f"PDF export failed: {e}")
        return False
    logger.info(f"Exported {len(invoices)} invoices to {path}")
    return True
