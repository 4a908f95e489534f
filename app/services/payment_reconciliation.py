import logging
from datetime import datetime
from typing import Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from app.constants.queues import JOB_TYPE_PAYMENT_SUCCESS, QUEUE_EMAIL_PAYMENT_SUCCESS
from app.constants.statuses import (
    ALLOWED_PURCHASE_TRANSITIONS,
    ActivityEntity,
    PaymentStatus,
    PurchaseStatus,
    TERMINAL_PAYMENT_STATUSES,
)
from app.models.payment import Payment
from app.models.purchase import Purchase
from app.models.user import User
from app.schemas.job_schemas import EmailJob
from app.services.xendit_client import map_gateway_status
from app.utils.exceptions import PersistenceError

logger = logging.getLogger(__name__)


def find_payment_by_gateway_id(session: Session, xendit_id: str) -> Optional[Payment]:
    return session.exec(
        select(Payment).where(
            Payment.xendit_id == xendit_id,
            Payment.deleted_at.is_(None),
        )
    ).first()


def payment_entity_name(payment: Payment) -> str:
    return f"Payment #{payment.id} - {payment.payment_method}"


def apply_gateway_status(
    session: Session,
    payment: Payment,
    gateway_status: str,
    *,
    publisher,
    activity_logger,
    actor_id: int = 0,
    meta: Optional[dict] = None,
) -> Tuple[Payment, bool]:
    """
    Move ``payment`` to the status the gateway reports.

    Returns ``(payment, changed)``. Nothing is written, logged or enqueued when
    the mapped status equals the stored one, so a redelivered webhook is a no-op.
    A payment already in a terminal state is not moved again, and a paid
    payment never reopens a cancelled purchase or sends its success email.
    """
    old_status = payment.status
    new_status = map_gateway_status(gateway_status)

    if old_status == new_status:
        return payment, False

    if (old_status or "").lower() in TERMINAL_PAYMENT_STATUSES:
        logger.warning(
            "Ignoring %s -> %s for payment %s, already terminal",
            old_status, new_status, payment.id,
        )
        return payment, False

    now = datetime.utcnow()
    payment.status = new_status
    payment.updated_at = now
    session.add(payment)

    purchase = None
    old_purchase_status = None
    if new_status == PaymentStatus.paid.value:
        purchase = session.get(Purchase, payment.purchase_id)
        if purchase is not None and purchase.status != PurchaseStatus.completed.value:
            if PurchaseStatus.completed.value in ALLOWED_PURCHASE_TRANSITIONS.get(purchase.status, []):
                old_purchase_status = purchase.status
                purchase.status = PurchaseStatus.completed.value
                purchase.updated_at = now
                session.add(purchase)
            else:
                logger.warning(
                    "Payment %s paid but purchase %s is %s, leaving it unchanged",
                    payment.id, purchase.id, purchase.status,
                )
                purchase = None

    try:
        session.commit()
    except SQLAlchemyError as e:
        session.rollback()
        logger.error("Failed to save payment %s status: %s", payment.id, e)
        raise PersistenceError("Failed to update payment status")
    session.refresh(payment)

    activity_logger.log_update(
        actor_id,
        ActivityEntity.payment,
        payment.id,
        payment_entity_name(payment),
        {"status": old_status},
        {"status": new_status},
        meta,
    )

    if old_purchase_status is not None:
        activity_logger.log_update(
            actor_id,
            ActivityEntity.purchase,
            purchase.id,
            f"Purchase #{purchase.id}",
            {"status": old_purchase_status},
            {"status": purchase.status},
            meta,
        )

    if new_status == PaymentStatus.paid.value and purchase is not None:
        user = session.get(User, payment.user_id)
        if user is not None:
            job = EmailJob(
                purchase_id=purchase.id,
                user_id=user.id,
                email=user.email,
                type=JOB_TYPE_PAYMENT_SUCCESS,
            )
            if publisher.publish_job(QUEUE_EMAIL_PAYMENT_SUCCESS, job.model_dump()):
                logger.info("Payment success email job published for purchase %s", purchase.id)

    return payment, True
