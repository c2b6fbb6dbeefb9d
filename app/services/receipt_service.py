"""PDF fee receipts written with reportlab."""

import logging
import os
from datetime import datetime
from decimal import Decimal
from pathlib import Path
from typing import Optional

from pydantic import BaseModel
from reportlab.lib.pagesizes import A4
from reportlab.pdfgen import canvas

from app.core.config import settings

logger = logging.getLogger(__name__)

RECEIPTS_URL_PREFIX = "/receipts"


class ReceiptData(BaseModel):
    receipt_number: str
    issued_at: datetime
    institution_name: str
    institution_address: str = ""
    currency: str = "PKR"
    student_name: str
    roll_number: str
    class_name: str
    fee_structure_title: str
    installment_label: str
    amount: Decimal
    payment_method: str
    transaction_id: Optional[str] = None


class ReceiptGenerator:
    def __init__(self, output_dir: Optional[str] = None):
        self.output_dir = Path(output_dir or settings.receipts_dir)

    def path_for(self, receipt_url: str) -> Path:
        """Local file behind a receipt URL produced by generate()."""
        return self.output_dir / os.path.basename(receipt_url)

    def generate(self, data: ReceiptData) -> str:
        """Write the receipt PDF and return its URL path, e.g. /receipts/receipt-RCPT-1A2B.pdf."""
        self.output_dir.mkdir(parents=True, exist_ok=True)
        file_name = f"receipt-{data.receipt_number}-{data.issued_at.strftime('%Y%m%d%H%M%S')}.pdf"
        file_path = self.output_dir / file_name

        p = canvas.Canvas(str(file_path), pagesize=A4)
        width, height = A4

        # Header
        p.setFont("Helvetica-Bold", 20)
        p.drawCentredString(width / 2, height - 60, data.institution_name)
        p.setFont("Helvetica", 12)
        if data.institution_address:
            p.drawCentredString(width / 2, height - 80, data.institution_address)
        p.setFont("Helvetica-Bold", 16)
        p.drawCentredString(width / 2, height - 120, "FEE PAYMENT RECEIPT")

        y = height - 160
        p.setFont("Helvetica-Bold", 12)
        p.drawString(50, y, f"Receipt No: {data.receipt_number}")
        p.drawRightString(width - 50, y, f"Date: {data.issued_at.strftime('%d-%b-%Y')}")

        y -= 40
        p.setFont("Helvetica", 11)
        details = [
            ("Student Name:", data.student_name),
            ("Roll Number:", data.roll_number),
            ("Class:", data.class_name),
            ("Fee Structure:", data.fee_structure_title),
            ("Installment:", data.installment_label),
            ("Amount:", f"{data.currency} {data.amount:,.2f}"),
            ("Payment Method:", data.payment_method.replace("_", " ").title()),
        ]
        if data.transaction_id:
            details.append(("Transaction ID:", data.transaction_id))
        for label, value in details:
            p.drawString(70, y, label)
            p.drawString(250, y, str(value))
            y -= 20

        # Footer
        p.setFont("Helvetica", 10)
        p.drawCentredString(width / 2, 70, "This is a computer-generated receipt. No signature required.")
        p.drawCentredString(width / 2, 55, "Thank you for your payment!")

        p.showPage()
        p.save()

        logger.info("Receipt %s written to %s", data.receipt_number, file_path)
        return f"{RECEIPTS_URL_PREFIX}/{file_name}"


def get_receipt_generator() -> ReceiptGenerator:
    """FastAPI dependency; tests override it."""
    return ReceiptGenerator()
