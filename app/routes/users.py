from datetime import datetime

from fastapi import APIRouter, Depends, Request
from sqlmodel import Session, select

from app.constants.statuses import ActivityEntity
from app.database import get_session
from app.dependencies.services import get_activity_logger
from app.models.user import User
from app.schemas.auth_schemas import UserOut, UserUpdate
from app.services.activity_logger import request_meta
from app.utils.exceptions import ConflictError, ValidationError
from app.utils.hash import hash_password, verify_password
from app.utils.responses import success_response
from app.utils.token import get_current_user

router = APIRouter()


# -------- USER PROFILE --------

@router.put("/user")
def update_user(
    payload: UserUpdate,
    request: Request,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
    activity_logger=Depends(get_activity_logger),
):
    old_values = {"name": current_user.name, "email": current_user.email}

    if payload.name:
        current_user.name = payload.name

    if payload.email and payload.email != current_user.email:
        taken = session.exec(
            select(User).where(User.email == payload.email, User.id != current_user.id)
        ).first()
        if taken:
            raise ConflictError("Email already in use", "USER_EXISTS")
        current_user.email = payload.email

    password_changed = False
    if payload.new_password:
        if not payload.current_password or not verify_password(
            payload.current_password, current_user.password
        ):
            raise ValidationError("Current password is incorrect", "INVALID_PASSWORD")
        current_user.password = hash_password(payload.new_password)
        password_changed = True

    current_user.updated_at = datetime.utcnow()
    session.add(current_user)
    session.commit()
    session.refresh(current_user)

    new_values = {"name": current_user.name, "email": current_user.email}
    if password_changed:
        old_values["password"] = "***"
        new_values["password"] = "changed"

    if new_values != old_values:
        activity_logger.log_update(
            current_user.id, ActivityEntity.user, current_user.id, current_user.email,
            old_values, new_values, request_meta(request),
        )

    return success_response("User updated successfully", {"user": UserOut.model_validate(current_user)})
