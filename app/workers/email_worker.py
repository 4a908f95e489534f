import asyncio
import logging
from typing import Callable, Optional

from pydantic import ValidationError as PydanticValidationError
from sqlmodel import Session, select

from app.models.payment import Payment
from app.models.purchase import Purchase
from app.models.user import User
from app.models.visa import Visa, VisaOption
from app.schemas.job_schemas import EmailJob
from app.services import email_service
from app.services.invoice_service import (
    build_invoice_data,
    render_invoice_pdf,
    save_invoice_pdf,
)
from app.utils.exceptions import PermanentJobError, TransientJobError
from app.utils.template import render_template

logger = logging.getLogger(__name__)


def decode_job(body: bytes) -> EmailJob:
    try:
        return EmailJob.model_validate_json(body)
    except PydanticValidationError as e:
        raise PermanentJobError(f"Undecodable job body: {e}") from e


class EmailJobHandler:
    """Blocking job bodies; run off the event loop by ``process_message``."""

    def __init__(
        self,
        session_factory,
        send_email: Optional[Callable[..., bool]] = None,
        render_pdf: Callable = render_invoice_pdf,
        save_pdf: Optional[Callable] = save_invoice_pdf,
    ):
        self.session_factory = session_factory
        self.send_email = send_email or email_service.send_email
        self.render_pdf = render_pdf
        self.save_pdf = save_pdf

    def _load(self, session: Session, job: EmailJob, require_payment: bool):
        purchase = session.get(Purchase, job.purchase_id)
        if purchase is None or purchase.deleted_at is not None:
            raise TransientJobError(f"purchase {job.purchase_id} not found")

        user = session.get(User, job.user_id)
        if user is None:
            raise TransientJobError(f"user {job.user_id} not found")

        visa = session.get(Visa, purchase.visa_id)
        if visa is None:
            raise TransientJobError(f"visa {purchase.visa_id} not found")

        option = None
        if purchase.visa_option_id is not None:
            option = session.get(VisaOption, purchase.visa_option_id)
            if option is None:
                raise TransientJobError(f"visa option {purchase.visa_option_id} not found")

        payment = session.exec(
            select(Payment)
            .where(Payment.purchase_id == purchase.id)
            .order_by(Payment.created_at.desc(), Payment.id.desc())
        ).first()
        if payment is None and require_payment:
            raise TransientJobError(f"no payment for purchase {purchase.id}")

        return purchase, user, visa, option, payment

    def send_invoice(self, job: EmailJob):
        with self.session_factory() as session:
            purchase, user, visa, option, payment = self._load(session, job, require_payment=False)
            html = render_template(
                "emails/invoice.html",
                purchase=purchase,
                user=user,
                visa=visa,
                option=option,
                payment=payment,
            )

        subject = f"Invoice for Visa Purchase - {visa.country}"
        if not self.send_email(job.email, subject, html):
            raise TransientJobError(f"failed to send invoice email to {job.email}")

    def send_payment_success(self, job: EmailJob):
        with self.session_factory() as session:
            purchase, user, visa, option, payment = self._load(session, job, require_payment=True)
            invoice = build_invoice_data(purchase, visa, option, user, payment)
            html = render_template(
                "emails/payment_success.html",
                purchase=purchase,
                user=user,
                visa=visa,
                payment=payment,
            )

        try:
            pdf_bytes = self.render_pdf(invoice)
            if self.save_pdf is not None:
                self.save_pdf(pdf_bytes, invoice.invoice_number)
        except Exception as e:
            raise TransientJobError(f"failed to render invoice PDF: {e}") from e

        subject = f"Payment Successful - Invoice #{purchase.id}"
        attachments = [(f"invoice_{invoice.invoice_number}.pdf", pdf_bytes, "application/pdf")]
        if not self.send_email(job.email, subject, html, attachments):
            raise TransientJobError(f"failed to send payment email to {job.email}")


async def process_message(message, handle: Callable[[EmailJob], None], worker_name: str):
    """
    Ack on success, reject without requeue for an undecodable body, reject
    with requeue for anything a redelivery might fix.
    """
    try:
        job = decode_job(message.body)
    except PermanentJobError as e:
        logger.error("[%s] Failed to decode job: %s", worker_name, e)
        await message.reject(requeue=False)
        return

    logger.info("[%s] Processing %s job for purchase %s", worker_name, job.type, job.purchase_id)

    try:
        await asyncio.to_thread(handle, job)
    except TransientJobError as e:
        logger.warning("[%s] Requeueing job for purchase %s: %s", worker_name, job.purchase_id, e)
        await message.reject(requeue=True)
        return
    except Exception:
        logger.exception("[%s] Job for purchase %s failed", worker_name, job.purchase_id)
        await message.reject(requeue=True)
        return

    await message.ack()
    logger.info("[%s] %s email sent to %s", worker_name, job.type, job.email)
