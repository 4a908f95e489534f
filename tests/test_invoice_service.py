from app.models.payment import Payment
from app.models.purchase import Purchase
from app.models.user import User
from app.models.visa import Visa, VisaOption
from app.services.invoice_service import (
    build_invoice_data,
    make_invoice_number,
    render_invoice_pdf,
    save_invoice_pdf,
)

VISA = Visa(id=3, country="Japan", type="Tourist", price=500000, duration=30)
OPTION = VisaOption(id=5, visa_id=3, name="Express", price=150000)
USER = User(id=1, email="customer@example.com", password="x", name="Test User")
PAYMENT = Payment(id=7, user_id=1, purchase_id=42, payment_method="qris", amount=650000, status="paid")


def _purchase(option_id=None, total=650000):
    return Purchase(id=42, user_id=1, visa_id=3, visa_option_id=option_id, total_price=total)


def test_option_line_present_when_purchase_has_option():
    data = build_invoice_data(_purchase(option_id=5), VISA, OPTION, USER, PAYMENT)

    assert [i.description for i in data.items] == ["Japan Visa - Tourist", "Express"]
    assert data.subtotal == data.total == 650000


def test_no_option_line_without_option():
    data = build_invoice_data(_purchase(total=500000), VISA, OPTION, USER, PAYMENT)

    assert len(data.items) == 1
    assert data.total == 500000


def test_total_is_the_stored_purchase_total():
    # option repriced after purchase; the invoice keeps what was charged
    data = build_invoice_data(_purchase(option_id=5, total=600000), VISA, OPTION, USER, PAYMENT)

    assert data.subtotal == 600000
    assert data.total == 600000


def test_footer_fields_come_from_payment():
    data = build_invoice_data(_purchase(option_id=5), VISA, OPTION, USER, PAYMENT)

    assert data.payment_method == "qris"
    assert data.status == "paid"
    assert data.customer_name == "Test User"


def test_invoice_numbers_differ_per_render():
    first = make_invoice_number(42)
    second = make_invoice_number(42)

    assert first.startswith("INV-42-")
    assert first != second


def test_render_produces_pdf_bytes(tmp_path, monkeypatch):
    data = build_invoice_data(_purchase(option_id=5), VISA, OPTION, USER, PAYMENT)

    pdf = render_invoice_pdf(data)
    assert pdf.startswith(b"%PDF")

    monkeypatch.setattr("app.services.invoice_service.settings.UPLOAD_DIR", str(tmp_path))
    path = save_invoice_pdf(pdf, data.invoice_number)
    assert path.read_bytes() == pdf
    assert path.parent.name == "invoices"
