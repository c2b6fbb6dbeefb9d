"""Flatten a defaulters report into one row per (student, overdue installment) for download."""

import csv
import io
from decimal import Decimal
from typing import Iterator

from openpyxl import Workbook

from .schemas import DefaultersReport

EXPORT_HEADERS = (
    "Student Name",
    "Roll Number",
    "Class",
    "Total Due",
    "Fee Structure",
    "Installment",
    "Amount",
    "Due Date",
    "Days Overdue",
)
SHEET_NAME = "Defaulters"
XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def _fmt_amount(value: Decimal) -> str:
    """5000.00 -> '5000', 1250.50 -> '1250.5'."""
    return format(Decimal(value).normalize(), "f")


def _rows(report: DefaultersReport) -> Iterator[list]:
    for d in report.defaulters:
        for inst in d.overdue_installments:
            yield [
                d.name,
                d.roll_number,
                d.class_name,
                d.total_due,
                inst.fee_structure_title,
                inst.installment_label,
                inst.amount,
                inst.due_date,
                inst.days_overdue,
            ]


def defaulters_to_csv(report: DefaultersReport) -> str:
    """
    Header plus one line per overdue installment, lines joined with '\\n'.
    Fields containing a comma, quote or newline are quoted.
    """
    out = io.StringIO()
    writer = csv.writer(out, lineterminator="\n")
    writer.writerow(EXPORT_HEADERS)
    for row in _rows(report):
        row[3] = _fmt_amount(row[3])
        row[6] = _fmt_amount(row[6])
        row[7] = row[7].isoformat()
        writer.writerow(row)
    return out.getvalue()[: -len("\n")]


def defaulters_to_xlsx(report: DefaultersReport) -> bytes:
    wb = Workbook()
    ws = wb.active
    ws.title = SHEET_NAME
    ws.append(list(EXPORT_HEADERS))
    for row in _rows(report):
        row[3] = float(row[3])
        row[6] = float(row[6])
        ws.append(row)
    for cell in ws["H"][1:]:
        cell.number_format = "yyyy-mm-dd"
    ws.freeze_panes = "A2"

    bio = io.BytesIO()
    wb.save(bio)
    return bio.getvalue()


def export_filename(extension: str, day) -> str:
    return f"defaulters-report-{day.isoformat()}.{extension}"

