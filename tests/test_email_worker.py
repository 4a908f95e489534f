import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from app.database import SessionFactory, engine
from app.schemas.job_schemas import EmailJob
from app.utils.exceptions import PermanentJobError, TransientJobError
from app.workers.email_worker import EmailJobHandler, decode_job, process_message


def _message(body: bytes):
    message = MagicMock()
    message.body = body
    message.ack = AsyncMock()
    message.reject = AsyncMock()
    return message


def _job_body(**overrides):
    job = {"purchase_id": 42, "user_id": 1, "email": "customer@example.com", "type": "payment_success"}
    job.update(overrides)
    return json.dumps(job).encode()


class RecordingMailer:
    def __init__(self, result=True):
        self.result = result
        self.sent = []

    def __call__(self, to, subject, html, attachments=None):
        self.sent.append({"to": to, "subject": subject, "html": html, "attachments": attachments or []})
        return self.result


def test_decode_job_rejects_garbage():
    with pytest.raises(PermanentJobError):
        decode_job(b"{not json")

    with pytest.raises(PermanentJobError):
        decode_job(json.dumps({"purchase_id": "x"}).encode())


async def test_undecodable_message_is_rejected_without_requeue():
    message = _message(b"\x00garbage")
    handle = MagicMock()

    await process_message(message, handle, "email-worker-test-1")

    message.reject.assert_awaited_once_with(requeue=False)
    message.ack.assert_not_awaited()
    handle.assert_not_called()


async def test_successful_job_is_acked():
    message = _message(_job_body())
    handle = MagicMock()

    await process_message(message, handle, "email-worker-test-1")

    handle.assert_called_once()
    job = handle.call_args.args[0]
    assert isinstance(job, EmailJob)
    assert job.purchase_id == 42
    message.ack.assert_awaited_once()
    message.reject.assert_not_awaited()


async def test_transient_failure_is_requeued():
    message = _message(_job_body())
    handle = MagicMock(side_effect=TransientJobError("purchase 42 not found"))

    await process_message(message, handle, "email-worker-test-1")

    message.reject.assert_awaited_once_with(requeue=True)
    message.ack.assert_not_awaited()


async def test_unexpected_failure_is_requeued():
    message = _message(_job_body())
    handle = MagicMock(side_effect=RuntimeError("smtp exploded"))

    await process_message(message, handle, "email-worker-test-1")

    message.reject.assert_awaited_once_with(requeue=True)


async def test_job_for_missing_purchase_is_requeued():
    """A purchase not visible yet leads to reject with requeue."""
    mailer = RecordingMailer()
    handler = EmailJobHandler(SessionFactory(engine), send_email=mailer, save_pdf=None)
    message = _message(_job_body(purchase_id=999, type="invoice"))

    await process_message(message, handler.send_invoice, "email-worker-test-1")

    message.reject.assert_awaited_once_with(requeue=True)
    assert mailer.sent == []


def test_send_invoice_emails_the_customer(customer, purchase):
    mailer = RecordingMailer()
    handler = EmailJobHandler(SessionFactory(engine), send_email=mailer, save_pdf=None)

    handler.send_invoice(EmailJob(purchase_id=42, user_id=customer.id, email=customer.email, type="invoice"))

    assert len(mailer.sent) == 1
    mail = mailer.sent[0]
    assert mail["to"] == customer.email
    assert mail["subject"] == "Invoice for Visa Purchase - Japan"
    assert "Express" in mail["html"]
    assert mail["attachments"] == []


def test_payment_success_attaches_rendered_pdf(customer, payment):
    mailer = RecordingMailer()
    rendered = []

    def render(data):
        rendered.append(data)
        return b"%PDF-1.4 fake"

    handler = EmailJobHandler(SessionFactory(engine), send_email=mailer, render_pdf=render, save_pdf=None)
    handler.send_payment_success(
        EmailJob(purchase_id=42, user_id=customer.id, email=customer.email, type="payment_success")
    )

    assert rendered[0].total == 650000
    mail = mailer.sent[0]
    assert mail["subject"] == "Payment Successful - Invoice #42"
    filename, content, mime = mail["attachments"][0]
    assert filename.startswith("invoice_INV-42-") and filename.endswith(".pdf")
    assert content == b"%PDF-1.4 fake"
    assert mime == "application/pdf"


def test_payment_success_without_payment_is_transient(customer, purchase):
    handler = EmailJobHandler(SessionFactory(engine), send_email=RecordingMailer(), save_pdf=None)

    with pytest.raises(TransientJobError):
        handler.send_payment_success(
            EmailJob(purchase_id=42, user_id=customer.id, email=customer.email, type="payment_success")
        )


def test_render_failure_is_transient(customer, payment):
    def broken_render(data):
        raise OSError("disk full")

    handler = EmailJobHandler(
        SessionFactory(engine), send_email=RecordingMailer(), render_pdf=broken_render, save_pdf=None
    )

    with pytest.raises(TransientJobError):
        handler.send_payment_success(
            EmailJob(purchase_id=42, user_id=customer.id, email=customer.email, type="payment_success")
        )


def test_transport_failure_is_transient(customer, purchase):
    handler = EmailJobHandler(SessionFactory(engine), send_email=RecordingMailer(result=False), save_pdf=None)

    with pytest.raises(TransientJobError):
        handler.send_invoice(EmailJob(purchase_id=42, user_id=customer.id, email=customer.email, type="invoice"))


def test_missing_visa_option_is_transient(session, customer, payment, purchase):
    purchase.visa_option_id = 999
    session.add(purchase)
    session.commit()
    mailer = RecordingMailer()
    handler = EmailJobHandler(SessionFactory(engine), send_email=mailer, save_pdf=None)

    with pytest.raises(TransientJobError):
        handler.send_payment_success(
            EmailJob(purchase_id=42, user_id=customer.id, email=customer.email, type="payment_success")
        )
    assert mailer.sent == []
