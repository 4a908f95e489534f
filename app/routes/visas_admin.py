from datetime import datetime

from fastapi import APIRouter, Depends, Request
from sqlmodel import Session

from app.constants.statuses import ActivityEntity
from app.database import get_session
from app.dependencies.admin import require_admin
from app.dependencies.services import get_activity_logger, get_cache
from app.models.user import User
from app.models.visa import Visa, VisaOption
from app.schemas.visa_schemas import (
    VisaCreate,
    VisaOptionCreate,
    VisaOptionOut,
    VisaOut,
    VisaUpdate,
)
from app.services.activity_logger import request_meta
from app.services.visa_service import get_visa_or_404, invalidate_visa_cache
from app.utils.responses import success_response

router = APIRouter()


@router.post("/visas", status_code=201)
def create_visa(
    payload: VisaCreate,
    request: Request,
    session: Session = Depends(get_session),
    admin: User = Depends(require_admin),
    cache=Depends(get_cache),
    activity_logger=Depends(get_activity_logger),
):
    visa = Visa(**payload.model_dump())
    session.add(visa)
    session.commit()
    session.refresh(visa)

    invalidate_visa_cache(cache)

    visa_out = VisaOut.model_validate(visa)
    activity_logger.log_create(
        admin.id, ActivityEntity.visa, visa.id, visa.display_name,
        visa_out.model_dump(), request_meta(request),
    )

    return success_response("Visa created successfully", visa_out)


@router.put("/visas/{visa_id}")
def update_visa(
    visa_id: int,
    payload: VisaUpdate,
    request: Request,
    session: Session = Depends(get_session),
    admin: User = Depends(require_admin),
    cache=Depends(get_cache),
    activity_logger=Depends(get_activity_logger),
):
    visa = get_visa_or_404(session, visa_id, active_only=False)

    changes = payload.model_dump(exclude_unset=True, exclude_none=True)
    old_values = {field: getattr(visa, field) for field in changes}

    for field, value in changes.items():
        setattr(visa, field, value)
    visa.updated_at = datetime.utcnow()

    session.add(visa)
    session.commit()
    session.refresh(visa)

    invalidate_visa_cache(cache, visa.id)

    if changes:
        activity_logger.log_update(
            admin.id, ActivityEntity.visa, visa.id, visa.display_name,
            old_values, changes, request_meta(request),
        )

    return success_response("Visa updated successfully", VisaOut.model_validate(visa))


@router.delete("/visas/{visa_id}")
def delete_visa(
    visa_id: int,
    request: Request,
    session: Session = Depends(get_session),
    admin: User = Depends(require_admin),
    cache=Depends(get_cache),
    activity_logger=Depends(get_activity_logger),
):
    visa = get_visa_or_404(session, visa_id, active_only=False)
    snapshot = VisaOut.model_validate(visa).model_dump()

    visa.deleted_at = datetime.utcnow()
    session.add(visa)
    session.commit()

    invalidate_visa_cache(cache, visa.id)

    activity_logger.log_delete(
        admin.id, ActivityEntity.visa, visa.id, visa.display_name,
        snapshot, request_meta(request),
    )

    return success_response("Visa deleted successfully")


@router.post("/visas/{visa_id}/options", status_code=201)
def create_visa_option(
    visa_id: int,
    payload: VisaOptionCreate,
    request: Request,
    session: Session = Depends(get_session),
    admin: User = Depends(require_admin),
    cache=Depends(get_cache),
    activity_logger=Depends(get_activity_logger),
):
    visa = get_visa_or_404(session, visa_id, active_only=False)

    option = VisaOption(visa_id=visa.id, **payload.model_dump())
    session.add(option)
    session.commit()
    session.refresh(option)

    invalidate_visa_cache(cache, visa.id)

    option_out = VisaOptionOut.model_validate(option)
    activity_logger.log_update(
        admin.id, ActivityEntity.visa, visa.id, visa.display_name,
        {}, {"option_added": option_out.model_dump()}, request_meta(request),
    )

    return success_response("Visa option created successfully", option_out)
