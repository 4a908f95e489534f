import logging
from typing import Any

import pydantic
from fastapi import APIRouter, Body, Depends, Request
from sqlmodel import Session

from app.database import get_session
from app.dependencies.services import get_activity_logger, get_publisher
from app.schemas.payment_schemas import XenditWebhookPayload
from app.services.activity_logger import request_meta
from app.services.payment_reconciliation import apply_gateway_status, find_payment_by_gateway_id
from app.utils.exceptions import NotFoundError, ValidationError
from app.utils.responses import success_response

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/webhooks/xendit")
def xendit_webhook(
    request: Request,
    body: Any = Body(None),
    session: Session = Depends(get_session),
    publisher=Depends(get_publisher),
    activity_logger=Depends(get_activity_logger),
):
    """
    Xendit invoice callback.

    The payload carries no user identity; the invoice id is the only key
    used to find the payment. Replays of the same status change nothing.
    """
    try:
        payload = XenditWebhookPayload.model_validate(body)
    except pydantic.ValidationError as e:
        logger.warning("[webhook] Rejected payload: %s", e.errors(include_url=False))
        raise ValidationError(
            "Invalid webhook payload",
            details=e.errors(include_url=False, include_context=False),
        )

    logger.info(
        "[webhook] Received Xendit webhook: id=%s status=%s external_id=%s",
        payload.id, payload.status, payload.external_id,
    )

    payment = find_payment_by_gateway_id(session, payload.id)
    if not payment:
        logger.warning("[webhook] Payment not found for Xendit id %s", payload.id)
        raise NotFoundError(
            "Payment not found",
            "PAYMENT_NOT_FOUND",
            "Payment with this Xendit ID does not exist",
        )

    payment, changed = apply_gateway_status(
        session,
        payment,
        payload.status,
        publisher=publisher,
        activity_logger=activity_logger,
        actor_id=0,
        meta=request_meta(request),
    )

    if not changed:
        logger.info("[webhook] Payment %s already %s, nothing to do", payment.id, payment.status)

    return success_response(
        "Webhook processed successfully",
        {"payment_id": payment.id, "status": payment.status},
    )
