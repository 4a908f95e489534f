import io
import time
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from reportlab.lib.pagesizes import A4
from reportlab.pdfgen import canvas

from app.config import settings
from app.models.payment import Payment
from app.models.purchase import Purchase
from app.models.user import User
from app.models.visa import Visa, VisaOption
from app.utils.template import format_rupiah


@dataclass
class InvoiceItem:
    description: str
    quantity: int
    price: float

    @property
    def total(self) -> float:
        return self.price * self.quantity


@dataclass
class InvoiceData:
    invoice_number: str
    date: datetime
    customer_name: str
    customer_email: str
    subtotal: float
    total: float
    payment_method: str
    status: str
    items: List[InvoiceItem] = field(default_factory=list)


def make_invoice_number(purchase_id: int) -> str:
    # microsecond suffix so two renders of one purchase never share a number
    return f"INV-{purchase_id}-{time.time_ns() // 1000}"


def build_invoice_data(
    purchase: Purchase,
    visa: Visa,
    option: Optional[VisaOption],
    user: User,
    payment: Payment,
) -> InvoiceData:
    items = [
        InvoiceItem(
            description=f"{visa.country} Visa - {visa.type}",
            quantity=1,
            price=visa.price,
        )
    ]

    if purchase.visa_option_id is not None and option is not None:
        items.append(InvoiceItem(description=option.name, quantity=1, price=option.price))

    return InvoiceData(
        invoice_number=make_invoice_number(purchase.id),
        date=datetime.utcnow(),
        customer_name=user.name,
        customer_email=user.email,
        items=items,
        # stored total is authoritative; options may have been repriced since purchase
        subtotal=purchase.total_price,
        total=purchase.total_price,
        payment_method=payment.payment_method,
        status=payment.status,
    )


def render_invoice_pdf(data: InvoiceData) -> bytes:
    buffer = io.BytesIO()
    c = canvas.Canvas(buffer, pagesize=A4)
    width, height = A4
    y = height - 60

    # Header
    c.setFont("Helvetica-Bold", 18)
    c.drawString(50, y, settings.STORE_NAME.upper())
    y -= 22
    c.setFont("Helvetica", 12)
    c.drawString(50, y, "Invoice")
    y -= 20

    c.setFont("Helvetica", 10)
    c.drawString(50, y, f"Invoice Number: {data.invoice_number}")
    y -= 14
    c.drawString(50, y, f"Date: {data.date.strftime('%B %d, %Y')}")
    y -= 28

    # Bill to
    c.setFont("Helvetica-Bold", 12)
    c.drawString(50, y, "Bill To:")
    y -= 16
    c.setFont("Helvetica", 10)
    c.drawString(50, y, data.customer_name)
    y -= 14
    c.drawString(50, y, data.customer_email)
    y -= 30

    # Items
    columns = (50, 330, 400, 480)
    c.setFont("Helvetica-Bold", 10)
    for x, title in zip(columns, ("Description", "Qty", "Price", "Total")):
        c.drawString(x, y, title)
    y -= 6
    c.line(50, y, width - 50, y)
    y -= 14

    c.setFont("Helvetica", 10)
    for item in data.items:
        c.drawString(columns[0], y, item.description[:55])
        c.drawString(columns[1], y, str(item.quantity))
        c.drawString(columns[2], y, format_rupiah(item.price))
        c.drawString(columns[3], y, format_rupiah(item.total))
        y -= 16

    y -= 10
    c.line(330, y, width - 50, y)
    y -= 16
    c.drawString(400, y, "Subtotal:")
    c.drawString(480, y, format_rupiah(data.subtotal))
    y -= 16
    c.setFont("Helvetica-Bold", 10)
    c.drawString(400, y, "Total:")
    c.drawString(480, y, format_rupiah(data.total))
    y -= 34

    # Payment footer
    c.setFont("Helvetica", 10)
    c.drawString(50, y, f"Payment Method: {data.payment_method}")
    y -= 14
    c.drawString(50, y, f"Status: {data.status}")

    c.setFont("Helvetica-Oblique", 8)
    c.drawCentredString(width / 2, 40, "Thank you for your business!")

    c.showPage()
    c.save()
    return buffer.getvalue()


def save_invoice_pdf(pdf_bytes: bytes, invoice_number: str) -> Path:
    invoice_dir = Path(settings.UPLOAD_DIR) / "invoices"
    invoice_dir.mkdir(parents=True, exist_ok=True)
    path = invoice_dir / f"invoice_{invoice_number}.pdf"
    path.write_bytes(pdf_bytes)
    return path
