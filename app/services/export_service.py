import io
from datetime import datetime
from typing import List, NamedTuple, Optional

from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter
from reportlab.lib.pagesizes import A4, landscape
from reportlab.pdfgen import canvas
from sqlmodel import Session, select

from app.constants.statuses import UserRole
from app.models.purchase import Purchase
from app.models.user import User
from app.models.visa import Visa, VisaOption

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

CURRENCY = "Rp #,##0.00"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class PurchaseRow(NamedTuple):
    purchase: Purchase
    user: User
    visa: Visa
    option: Optional[VisaOption]


def purchase_rows(session: Session, current_user: User) -> List[PurchaseRow]:
    """Customer purchases; admins see every customer, customers only their own."""
    query = (
        select(Purchase, User, Visa, VisaOption)
        .join(User, User.id == Purchase.user_id)
        .join(Visa, Visa.id == Purchase.visa_id)
        .outerjoin(VisaOption, VisaOption.id == Purchase.visa_option_id)
        .where(
            User.role == UserRole.customer.value,
            Purchase.deleted_at.is_(None),
        )
        .order_by(Purchase.created_at.desc())
    )
    if not current_user.is_admin:
        query = query.where(Purchase.user_id == current_user.id)

    return [PurchaseRow(*r) for r in session.exec(query).all()]


VISA_HEADERS = [
    "ID", "User Name", "User Email", "Country", "Visa Type", "Description",
    "Price", "Option", "Total Price", "Status", "Created At",
]

PURCHASE_HEADERS = [
    "Purchase ID", "User ID", "User Name", "User Email", "Visa ID", "Country",
    "Visa Type", "Total Price", "Status", "Created At",
]


def _visa_values(r: PurchaseRow):
    return [
        r.purchase.id,
        r.user.name,
        r.user.email,
        r.visa.country,
        r.visa.type,
        r.visa.description or "",
        r.visa.price,
        r.option.name if r.option else "-",
        r.purchase.total_price,
        r.purchase.status,
        r.purchase.created_at.strftime(DATE_FORMAT),
    ]


def _purchase_values(r: PurchaseRow):
    return [
        r.purchase.id,
        r.purchase.user_id,
        r.user.name,
        r.user.email,
        r.purchase.visa_id,
        r.visa.country,
        r.visa.type,
        r.purchase.total_price,
        r.purchase.status,
        r.purchase.created_at.strftime(DATE_FORMAT),
    ]


def _workbook(title: str, headers: List[str], rows: List[list], money_columns: List[int]) -> bytes:
    wb = Workbook()
    thin = Border(
        left=Side(style="thin"),
        right=Side(style="thin"),
        top=Side(style="thin"),
        bottom=Side(style="thin"),
    )
    header_font = Font(bold=True, color="FFFFFF")
    header_fill = PatternFill("solid", fgColor="4F81BD")
    center = Alignment(horizontal="center")

    ws = wb.active
    ws.title = title
    ws.append(headers)
    for cell in ws[1]:
        cell.font = header_font
        cell.fill = header_fill
        cell.border = thin
        cell.alignment = center

    for values in rows:
        ws.append(values)

    for row in ws.iter_rows(min_row=2):
        for cell in row:
            cell.border = thin
        for idx in money_columns:
            row[idx].number_format = CURRENCY

    for i, header in enumerate(headers, start=1):
        ws.column_dimensions[get_column_letter(i)].width = max(15, len(header) + 4)

    buffer = io.BytesIO()
    wb.save(buffer)
    return buffer.getvalue()


def visas_workbook(rows: List[PurchaseRow]) -> bytes:
    return _workbook("Visas", VISA_HEADERS, [_visa_values(r) for r in rows], money_columns=[6, 8])


def purchases_workbook(rows: List[PurchaseRow]) -> bytes:
    return _workbook("Purchases", PURCHASE_HEADERS, [_purchase_values(r) for r in rows], money_columns=[7])


def _table_pdf(title: str, headers: List[str], widths: List[int], rows: List[list]) -> bytes:
    buffer = io.BytesIO()
    c = canvas.Canvas(buffer, pagesize=landscape(A4))
    width, height = landscape(A4)
    left = 30
    row_height = 16

    def header(y):
        c.setFont("Helvetica-Bold", 8)
        x = left
        for h, w in zip(headers, widths):
            c.rect(x, y - 4, w, row_height, stroke=1, fill=0)
            c.drawString(x + 3, y, h)
            x += w
        return y - row_height

    c.setFont("Helvetica-Bold", 16)
    c.drawString(left, height - 40, title)
    c.setFont("Helvetica", 9)
    c.drawString(left, height - 56, f"Generated: {datetime.utcnow().strftime(DATE_FORMAT)} UTC")
    y = header(height - 85)

    c.setFont("Helvetica", 8)
    for values in rows:
        if y < 40:
            c.showPage()
            y = header(height - 40)
            c.setFont("Helvetica", 8)
        x = left
        for value, w in zip(values, widths):
            text = f"{value:,.0f}" if isinstance(value, float) else str(value)
            max_chars = max(3, int(w / 4.6))
            c.rect(x, y - 4, w, row_height, stroke=1, fill=0)
            c.drawString(x + 3, y, text[:max_chars])
            x += w
        y -= row_height

    c.showPage()
    c.save()
    return buffer.getvalue()


def visas_pdf(rows: List[PurchaseRow]) -> bytes:
    headers = ["ID", "User", "Email", "Country", "Type", "Price", "Total", "Status", "Date"]
    widths = [35, 100, 150, 90, 90, 80, 80, 70, 85]
    data = [
        [
            r.purchase.id, r.user.name, r.user.email, r.visa.country, r.visa.type,
            r.visa.price, r.purchase.total_price, r.purchase.status,
            r.purchase.created_at.strftime("%Y-%m-%d"),
        ]
        for r in rows
    ]
    return _table_pdf("Visa Export Report", headers, widths, data)


def purchases_pdf(rows: List[PurchaseRow]) -> bytes:
    headers = ["ID", "User ID", "User Name", "Email", "Visa ID", "Country", "Type", "Total Price", "Status", "Date"]
    widths = [35, 45, 100, 150, 45, 90, 90, 80, 70, 75]
    data = [
        [
            r.purchase.id, r.purchase.user_id, r.user.name, r.user.email,
            r.purchase.visa_id, r.visa.country, r.visa.type,
            r.purchase.total_price, r.purchase.status,
            r.purchase.created_at.strftime("%Y-%m-%d"),
        ]
        for r in rows
    ]
    return _table_pdf("Purchase Export Report", headers, widths, data)
