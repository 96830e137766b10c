"""
Excel and PDF renderers for suppliers and transactions.

Renderers take already-loaded ORM objects and return the document as bytes;
they never touch the session, so nothing they do can affect balances.
"""

import io
import logging
from datetime import date
from decimal import Decimal
from typing import Dict, Iterable, List, Optional

from fpdf import FPDF
from fpdf.enums import XPos, YPos
from openpyxl import Workbook
from openpyxl.styles import Alignment, Font, PatternFill
from openpyxl.utils import get_column_letter

from models.suppliers import Supplier
from models.transactions import Transaction, TransactionType
from utils.formatting import amount_to_words, format_currency

logger = logging.getLogger(__name__)

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
PDF_MEDIA_TYPE = "application/pdf"

TYPE_LABELS = {
    TransactionType.DEBIT: "Purchase (debit)",
    TransactionType.CREDIT: "Payment (credit)",
}

SUPPLIER_COLUMNS = [("Name", 25), ("Phone", 15), ("Email", 25), ("Address", 30), ("Category", 18), ("Balance", 15), ("Notes", 30)]
TRANSACTION_COLUMNS = [("Date", 12), ("Supplier", 25), ("Type", 18), ("Amount", 15), ("Description", 40)]

HEADER_FILL = PatternFill(start_color="3B82F6", end_color="3B82F6", fill_type="solid")
HEADER_FONT = Font(bold=True, color="FFFFFF")
TOTAL_FONT = Font(bold=True)


def _type_label(transaction_type) -> str:
    return TYPE_LABELS.get(transaction_type, str(transaction_type))


def _write_sheet(ws, columns, rows):
    ws.append([title for title, _ in columns])
    for col_idx, (_, width) in enumerate(columns, start=1):
        cell = ws.cell(row=1, column=col_idx)
        cell.fill = HEADER_FILL
        cell.font = HEADER_FONT
        cell.alignment = Alignment(horizontal="center", vertical="center")
        ws.column_dimensions[get_column_letter(col_idx)].width = width
    for row in rows:
        ws.append(row)
    ws.freeze_panes = "A2"


def _workbook_bytes(wb: Workbook) -> bytes:
    buffer = io.BytesIO()
    wb.save(buffer)
    return buffer.getvalue()


def suppliers_to_excel(suppliers: Iterable[Supplier]) -> bytes:
    suppliers = list(suppliers)
    wb = Workbook()
    ws = wb.active
    ws.title = "Suppliers"
    rows = [
        [s.name, s.phone or "-", s.email or "-", s.address or "-", s.category.value, float(s.balance), s.notes or "-"]
        for s in suppliers
    ]
    _write_sheet(ws, SUPPLIER_COLUMNS, rows)
    ws.append(["TOTAL", "", "", "", "", float(sum((s.balance for s in suppliers), Decimal("0"))), ""])
    for cell in ws[ws.max_row]:
        cell.font = TOTAL_FONT
    logger.info(f"Rendered suppliers workbook with {len(suppliers)} rows")
    return _workbook_bytes(wb)


def transactions_to_excel(transactions: Iterable[Transaction], supplier_names: Dict[int, str]) -> bytes:
    transactions = list(transactions)
    wb = Workbook()
    ws = wb.active
    ws.title = "Transactions"
    rows = [
        [t.date, supplier_names.get(t.supplier_id, "-"), _type_label(t.type), float(t.amount), t.description or "-"]
        for t in transactions
    ]
    _write_sheet(ws, TRANSACTION_COLUMNS, rows)
    for row in ws.iter_rows(min_row=2, min_col=1, max_col=1):
        row[0].number_format = "yyyy-mm-dd"
    logger.info(f"Rendered transactions workbook with {len(transactions)} rows")
    return _workbook_bytes(wb)


def _pdf_text(value) -> str:
    # Core PDF fonts are latin-1 only
    return str(value).encode("latin-1", "replace").decode("latin-1")


class LedgerPDF(FPDF):
    def __init__(self, title: str, orientation: str = "L"):
        super().__init__(orientation=orientation, format="A4")
        self.report_title = title
        self.set_auto_page_break(auto=True, margin=15)

    def header(self):
        self.set_font("Helvetica", "B", 16)
        self.cell(0, 10, _pdf_text(self.report_title), border=0, align="C", new_x=XPos.LMARGIN, new_y=YPos.NEXT)
        self.set_font("Helvetica", "", 9)
        self.cell(0, 6, f"Report date: {date.today().isoformat()}", border=0, align="R", new_x=XPos.LMARGIN, new_y=YPos.NEXT)
        self.ln(4)

    def footer(self):
        self.set_y(-15)
        self.set_font("Helvetica", "I", 8)
        self.cell(0, 10, f"Page {self.page_no()}", border=0, align="C")

    def draw_table(self, headers: List[str], widths: List[int], rows: List[List[str]], aligns: Optional[List[str]] = None):
        aligns = aligns or ["L"] * len(headers)
        self.set_font("Helvetica", "B", 10)
        self.set_fill_color(59, 130, 246)
        self.set_text_color(255, 255, 255)
        for header, width in zip(headers, widths):
            self.cell(width, 8, _pdf_text(header), border=1, align="C", fill=True)
        self.ln()
        self.set_text_color(0, 0, 0)
        self.set_font("Helvetica", "", 9)
        for index, row in enumerate(rows):
            # Alternate row shading
            if index % 2:
                self.set_fill_color(245, 247, 250)
            else:
                self.set_fill_color(255, 255, 255)
            for value, width, align in zip(row, widths, aligns):
                self.cell(width, 7, _pdf_text(value)[:60], border=1, align=align, fill=True)
            self.ln()

    def summary_line(self, text: str, bold: bool = True):
        self.set_font("Helvetica", "B" if bold else "", 11)
        self.cell(0, 8, _pdf_text(text), border=0, new_x=XPos.LMARGIN, new_y=YPos.NEXT)

    def to_bytes(self) -> bytes:
        return bytes(self.output())


def suppliers_to_pdf(suppliers: Iterable[Supplier]) -> bytes:
    suppliers = list(suppliers)
    pdf = LedgerPDF("Suppliers Report")
    pdf.add_page()
    pdf.draw_table(
        ["Name", "Phone", "Category", "Balance", "Notes"],
        [70, 40, 45, 45, 77],
        [[s.name, s.phone or "-", s.category.value, format_currency(s.balance), s.notes or "-"] for s in suppliers],
        ["L", "L", "L", "R", "L"],
    )
    pdf.ln(6)
    total_balance = sum((s.balance for s in suppliers), Decimal("0"))
    pdf.summary_line(f"Total balance: {format_currency(total_balance)}")
    pdf.summary_line(f"Number of suppliers: {len(suppliers)}", bold=False)
    return pdf.to_bytes()


def transactions_to_pdf(transactions: Iterable[Transaction], supplier_names: Dict[int, str]) -> bytes:
    transactions = list(transactions)
    pdf = LedgerPDF("Transactions Report")
    pdf.add_page()
    pdf.draw_table(
        ["Date", "Supplier", "Type", "Amount", "Description"],
        [30, 65, 40, 45, 97],
        [
            [t.date.isoformat(), supplier_names.get(t.supplier_id, "-"), _type_label(t.type), format_currency(t.amount), t.description or "-"]
            for t in transactions
        ],
        ["L", "L", "L", "R", "L"],
    )
    total_debits = sum((t.amount for t in transactions if t.type == TransactionType.DEBIT), Decimal("0"))
    total_credits = sum((t.amount for t in transactions if t.type == TransactionType.CREDIT), Decimal("0"))
    pdf.ln(6)
    pdf.summary_line(f"Total purchases: {format_currency(total_debits)}")
    pdf.summary_line(f"Total payments: {format_currency(total_credits)}")
    pdf.summary_line(f"Number of transactions: {len(transactions)}", bold=False)
    return pdf.to_bytes()


def supplier_statement_to_pdf(supplier: Supplier, transactions: Iterable[Transaction]) -> bytes:
    """Account statement: oldest first, with the running balance after each line."""
    transactions = sorted(transactions, key=lambda t: (t.date, t.id))
    pdf = LedgerPDF(f"Account Statement: {supplier.name}", orientation="P")
    pdf.add_page()

    pdf.set_font("Helvetica", "", 10)
    for label, value in (
        ("Category", supplier.category.value),
        ("Phone", supplier.phone),
        ("Email", supplier.email),
        ("Address", supplier.address),
    ):
        if value:
            pdf.cell(0, 6, _pdf_text(f"{label}: {value}"), border=0, new_x=XPos.LMARGIN, new_y=YPos.NEXT)
    pdf.ln(4)

    running = Decimal(supplier.opening_balance or 0)
    rows = [["", "Opening balance", "", "", format_currency(running)]]
    for t in transactions:
        running += t.balance_delta
        rows.append([t.date.isoformat(), t.description or "-", _type_label(t.type), format_currency(t.amount), format_currency(running)])
    pdf.draw_table(["Date", "Description", "Type", "Amount", "Balance"], [25, 60, 35, 35, 35], rows, ["L", "L", "L", "R", "R"])

    pdf.ln(6)
    pdf.summary_line(f"Closing balance: {format_currency(supplier.balance)}")
    pdf.summary_line(amount_to_words(supplier.balance), bold=False)
    return pdf.to_bytes()
