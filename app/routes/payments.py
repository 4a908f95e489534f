import logging
import time

from fastapi import APIRouter, Depends, Request
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from app.constants.statuses import ActivityEntity, PaymentStatus
from app.database import get_session
from app.dependencies.services import get_activity_logger, get_gateway, get_publisher
from app.models.payment import Payment
from app.models.user import User
from app.models.visa import Visa
from app.routes.purchases import get_own_purchase_or_404
from app.schemas.payment_schemas import PaymentCreate, PaymentOut
from app.services.activity_logger import request_meta
from app.services.payment_reconciliation import apply_gateway_status, payment_entity_name
from app.services.xendit_client import payment_methods_for
from app.utils.exceptions import GatewayError, NotFoundError, PersistenceError
from app.utils.responses import success_response
from app.utils.token import get_current_user

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/payments")
def create_payment(
    payload: PaymentCreate,
    request: Request,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
    gateway=Depends(get_gateway),
    activity_logger=Depends(get_activity_logger),
):
    purchase = get_own_purchase_or_404(session, payload.purchase_id, current_user.id)
    visa = session.get(Visa, purchase.visa_id)

    amount = payload.amount or purchase.total_price
    method = payload.payment_method.value

    invoice = gateway.create_invoice(
        external_id=f"payment_{purchase.id}_{int(time.time())}",
        amount=amount,
        description=f"Payment for visa purchase {purchase.id}",
        customer_name=payload.customer_name or current_user.name,
        customer_email=payload.customer_email or current_user.email,
        payment_methods=payment_methods_for(method, payload.bank_code),
        item_name=visa.display_name if visa else f"Purchase #{purchase.id}",
    )
    if not invoice.get("id"):
        raise GatewayError("Payment gateway returned no invoice id", code="PARSE_ERROR")

    payment = Payment(
        user_id=current_user.id,
        purchase_id=purchase.id,
        payment_method=method,
        amount=amount,
        status=PaymentStatus.pending.value,
        xendit_id=invoice.get("id"),
        external_id=invoice.get("external_id"),
        payment_url=invoice.get("invoice_url"),
    )
    session.add(payment)

    try:
        session.commit()
    except SQLAlchemyError as e:
        session.rollback()
        logger.error("Failed to save payment for purchase %s: %s", purchase.id, e)
        raise PersistenceError("Failed to save payment record")
    session.refresh(payment)

    payment_out = PaymentOut.model_validate(payment)
    activity_logger.log_create(
        current_user.id, ActivityEntity.payment, payment.id, payment_entity_name(payment),
        payment_out.model_dump(), request_meta(request),
    )

    logger.info("Created payment %s (xendit %s) for purchase %s", payment.id, payment.xendit_id, purchase.id)

    return success_response(
        "Payment created successfully",
        {
            "payment": payment_out,
            "payment_url": payment.payment_url,
            "xendit_id": payment.xendit_id,
            "status": invoice.get("status", payment.status),
        },
    )


@router.get("/payments/{payment_id}/status")
def get_payment_status(
    payment_id: int,
    request: Request,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
    gateway=Depends(get_gateway),
    publisher=Depends(get_publisher),
    activity_logger=Depends(get_activity_logger),
):
    payment = session.exec(
        select(Payment).where(
            Payment.id == payment_id,
            Payment.user_id == current_user.id,
            Payment.deleted_at.is_(None),
        )
    ).first()
    if not payment or not payment.xendit_id:
        raise NotFoundError(
            "Payment not found",
            "PAYMENT_NOT_FOUND",
            "Payment with this ID does not exist or does not belong to you",
        )

    invoice = gateway.get_invoice(payment.xendit_id)
    if not invoice.get("status"):
        raise GatewayError("Payment gateway returned no status", code="PARSE_ERROR")

    payment, _ = apply_gateway_status(
        session,
        payment,
        invoice["status"],
        publisher=publisher,
        activity_logger=activity_logger,
        actor_id=current_user.id,
        meta=request_meta(request),
    )

    return success_response("Payment status retrieved successfully", PaymentOut.model_validate(payment))
