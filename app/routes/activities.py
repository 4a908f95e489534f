from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlmodel import Session, select

from app.constants.statuses import ActivityAction, ActivityEntity
from app.database import get_session
from app.models.activity import ActivityLog
from app.models.payment import Payment
from app.models.purchase import Purchase
from app.models.user import User
from app.schemas.activity_schemas import ActivityOut
from app.services.visa_service import get_visa_or_404
from app.utils.exceptions import ForbiddenError, NotFoundError
from app.utils.pagination import normalize_page, paginate
from app.utils.responses import paginated_response
from app.utils.token import get_current_user

router = APIRouter()

ACTIVITY_PAGE_SIZE = 20


def _activity_page(session: Session, query, page: int, per_page: int, action: Optional[ActivityAction]):
    page, per_page = normalize_page(page, per_page, ACTIVITY_PAGE_SIZE)
    if action is not None:
        query = query.where(ActivityLog.action == action.value)
    query = query.order_by(ActivityLog.created_at.desc(), ActivityLog.id.desc())

    rows, total = paginate(session=session, query=query, page=page, per_page=per_page)
    return paginated_response(
        "Activities retrieved successfully",
        [ActivityOut.model_validate(r) for r in rows],
        page,
        per_page,
        total,
    )


def _entity_query(entity: ActivityEntity, entity_id: int):
    return select(ActivityLog).where(
        ActivityLog.entity_type == entity.value,
        ActivityLog.entity_id == entity_id,
    )


@router.get("/activities")
def list_user_activities(
    user_id: Optional[int] = None,
    action: Optional[ActivityAction] = None,
    entity_type: Optional[ActivityEntity] = None,
    page: int = Query(1),
    per_page: int = Query(ACTIVITY_PAGE_SIZE),
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    target_user_id = current_user.id
    if user_id is not None and user_id != current_user.id:
        if not current_user.is_admin:
            raise ForbiddenError(
                "Access denied",
                details="Only admins can view other users' activities",
            )
        target_user_id = user_id

    query = select(ActivityLog).where(ActivityLog.user_id == target_user_id)
    if entity_type is not None:
        query = query.where(ActivityLog.entity_type == entity_type.value)

    return _activity_page(session, query, page, per_page, action)


@router.get("/activities/visa/{visa_id}")
def list_visa_activities(
    visa_id: int,
    action: Optional[ActivityAction] = None,
    page: int = Query(1),
    per_page: int = Query(ACTIVITY_PAGE_SIZE),
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    get_visa_or_404(session, visa_id, active_only=False)
    return _activity_page(session, _entity_query(ActivityEntity.visa, visa_id), page, per_page, action)


@router.get("/activities/purchase/{purchase_id}")
def list_purchase_activities(
    purchase_id: int,
    action: Optional[ActivityAction] = None,
    page: int = Query(1),
    per_page: int = Query(ACTIVITY_PAGE_SIZE),
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    purchase = session.get(Purchase, purchase_id)
    if not purchase:
        raise NotFoundError("Purchase not found", "PURCHASE_NOT_FOUND")
    if not current_user.is_admin and purchase.user_id != current_user.id:
        raise ForbiddenError(
            "Access denied",
            details="You can only view activities for your own purchases",
        )

    return _activity_page(session, _entity_query(ActivityEntity.purchase, purchase_id), page, per_page, action)


@router.get("/activities/payment/{payment_id}")
def list_payment_activities(
    payment_id: int,
    action: Optional[ActivityAction] = None,
    page: int = Query(1),
    per_page: int = Query(ACTIVITY_PAGE_SIZE),
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    payment = session.get(Payment, payment_id)
    if not payment:
        raise NotFoundError("Payment not found", "PAYMENT_NOT_FOUND")
    if not current_user.is_admin and payment.user_id != current_user.id:
        raise ForbiddenError(
            "Access denied",
            details="You can only view activities for your own payments",
        )

    return _activity_page(session, _entity_query(ActivityEntity.payment, payment_id), page, per_page, action)
