import logging
from datetime import datetime

from fastapi import APIRouter, Depends, Query, Request
from sqlmodel import Session, select

from app.constants.queues import JOB_TYPE_INVOICE, QUEUE_EMAIL_INVOICE
from app.constants.statuses import (
    ALLOWED_PURCHASE_TRANSITIONS,
    ActivityEntity,
    PurchaseStatus,
)
from app.database import get_session
from app.dependencies.services import get_activity_logger, get_publisher
from app.models.purchase import Purchase
from app.models.user import User
from app.models.visa import Visa, VisaOption
from app.schemas.job_schemas import EmailJob
from app.schemas.purchase_schemas import PurchaseCreate, PurchaseOut, PurchaseStatusUpdate
from app.schemas.visa_schemas import VisaOptionOut, VisaOut
from app.services.activity_logger import request_meta
from app.services.visa_service import get_visa_or_404
from app.utils.exceptions import ConflictError, NotFoundError
from app.utils.pagination import normalize_page, paginate
from app.utils.responses import paginated_response, success_response
from app.utils.token import get_current_user

logger = logging.getLogger(__name__)

router = APIRouter()


def _purchase_data(session: Session, purchase: Purchase) -> dict:
    data = PurchaseOut.model_validate(purchase).model_dump(mode="json")

    visa = session.get(Visa, purchase.visa_id)
    data["visa"] = VisaOut.model_validate(visa).model_dump(mode="json") if visa else None

    option = session.get(VisaOption, purchase.visa_option_id) if purchase.visa_option_id else None
    data["visa_option"] = VisaOptionOut.model_validate(option).model_dump(mode="json") if option else None
    return data


def get_own_purchase_or_404(session: Session, purchase_id: int, user_id: int) -> Purchase:
    purchase = session.exec(
        select(Purchase).where(
            Purchase.id == purchase_id,
            Purchase.user_id == user_id,
            Purchase.deleted_at.is_(None),
        )
    ).first()
    if not purchase:
        raise NotFoundError(
            "Purchase not found",
            "PURCHASE_NOT_FOUND",
            "Purchase with this ID does not exist or does not belong to you",
        )
    return purchase


@router.post("/purchases", status_code=201)
def create_purchase(
    payload: PurchaseCreate,
    request: Request,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
    publisher=Depends(get_publisher),
    activity_logger=Depends(get_activity_logger),
):
    visa = get_visa_or_404(session, payload.visa_id)
    total_price = visa.price

    if payload.visa_option_id is not None:
        option = session.exec(
            select(VisaOption).where(
                VisaOption.id == payload.visa_option_id,
                VisaOption.visa_id == visa.id,
                VisaOption.is_active == True,  # noqa: E712
                VisaOption.deleted_at.is_(None),
            )
        ).first()
        if not option:
            raise NotFoundError(
                "Visa option not found",
                "VISA_OPTION_NOT_FOUND",
                "Option does not exist or does not belong to this visa",
            )
        total_price += option.price

    purchase = Purchase(
        user_id=current_user.id,
        visa_id=visa.id,
        visa_option_id=payload.visa_option_id,
        total_price=total_price,
        status=PurchaseStatus.pending.value,
    )
    session.add(purchase)
    session.commit()
    session.refresh(purchase)

    data = _purchase_data(session, purchase)

    activity_logger.log_create(
        current_user.id, ActivityEntity.purchase, purchase.id,
        f"Purchase #{purchase.id} - {visa.display_name}",
        data, request_meta(request),
    )

    job = EmailJob(
        purchase_id=purchase.id,
        user_id=current_user.id,
        email=current_user.email,
        type=JOB_TYPE_INVOICE,
    )
    publisher.publish_job(QUEUE_EMAIL_INVOICE, job.model_dump())

    return success_response("Visa purchased successfully", data)


@router.get("/purchases")
def list_purchases(
    page: int = Query(1),
    per_page: int = Query(10),
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    page, per_page = normalize_page(page, per_page)
    query = (
        select(Purchase)
        .where(Purchase.user_id == current_user.id, Purchase.deleted_at.is_(None))
        .order_by(Purchase.created_at.desc(), Purchase.id.desc())
    )
    purchases, total = paginate(session=session, query=query, page=page, per_page=per_page)

    return paginated_response(
        "Purchases retrieved successfully",
        [_purchase_data(session, p) for p in purchases],
        page,
        per_page,
        total,
    )


@router.get("/purchases/{purchase_id}")
def get_purchase(
    purchase_id: int,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    purchase = get_own_purchase_or_404(session, purchase_id, current_user.id)
    return success_response("Purchase retrieved successfully", _purchase_data(session, purchase))


@router.put("/purchases/{purchase_id}/status")
def update_purchase_status(
    purchase_id: int,
    payload: PurchaseStatusUpdate,
    request: Request,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
    activity_logger=Depends(get_activity_logger),
):
    purchase = get_own_purchase_or_404(session, purchase_id, current_user.id)

    old_status = purchase.status
    new_status = payload.status.value

    if new_status == old_status:
        return success_response(
            "Purchase status unchanged", _purchase_data(session, purchase)
        )

    if new_status not in ALLOWED_PURCHASE_TRANSITIONS.get(old_status, []):
        raise ConflictError(
            f"Cannot change purchase status from {old_status} to {new_status}",
            "INVALID_STATUS_TRANSITION",
        )

    purchase.status = new_status
    purchase.updated_at = datetime.utcnow()
    session.add(purchase)
    session.commit()
    session.refresh(purchase)

    activity_logger.log_update(
        current_user.id, ActivityEntity.purchase, purchase.id, f"Purchase #{purchase.id}",
        {"status": old_status}, {"status": new_status}, request_meta(request),
    )

    return success_response("Purchase status updated successfully", _purchase_data(session, purchase))
