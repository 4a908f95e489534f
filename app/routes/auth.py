import logging
from datetime import datetime, timedelta

from fastapi import APIRouter, Depends, Request
from fastapi.responses import RedirectResponse
from sqlmodel import Session, select

from app.constants.statuses import ActivityEntity, UserRole
from app.database import get_session
from app.dependencies.services import get_activity_logger
from app.models.auth_tokens import OTPCode, PasswordResetToken
from app.models.user import User
from app.schemas.auth_schemas import (
    ForgotPassword,
    RequestOTP,
    ResetPassword,
    UserLogin,
    UserOut,
    UserRegister,
    VerifyOTP,
)
from app.services.activity_logger import request_meta
from app.services.email_service import send_otp_email, send_password_reset_email
from app.utils.exceptions import (
    ConflictError,
    UnauthorizedError,
    ValidationError,
)
from app.utils.google_auth import (
    build_authorization_url,
    exchange_code,
    verify_google_token,
)
from app.utils.hash import (
    generate_otp,
    generate_secure_token,
    hash_password,
    unusable_password_hash,
    verify_password,
)
from app.utils.responses import success_response
from app.utils.token import create_access_token

logger = logging.getLogger(__name__)

router = APIRouter()

OTP_TTL = timedelta(minutes=10)
RESET_TOKEN_TTL = timedelta(minutes=30)
OAUTH_STATE_COOKIE = "oauth_state"


def _active_user_by_email(session: Session, email: str):
    return session.exec(
        select(User).where(
            User.email == email,
            User.is_active == True,  # noqa: E712
            User.deleted_at.is_(None),
        )
    ).first()


def _login_payload(session: Session, user: User) -> dict:
    user.last_login_at = datetime.utcnow()
    session.add(user)
    session.commit()
    session.refresh(user)

    token = create_access_token({"user_id": user.id})
    return {"token": token, "user": UserOut.model_validate(user)}


# -------- REGISTER / LOGIN --------

@router.post("/register", status_code=201)
def register_user(
    payload: UserRegister,
    request: Request,
    session: Session = Depends(get_session),
    activity_logger=Depends(get_activity_logger),
):
    existing_user = session.exec(select(User).where(User.email == payload.email)).first()
    if existing_user:
        raise ConflictError(
            "User with this email already exists",
            "USER_EXISTS",
            "Please use a different email address",
        )

    user = User(
        email=payload.email,
        password=hash_password(payload.password),
        name=payload.name,
        role=UserRole.customer.value,
    )

    session.add(user)
    session.commit()
    session.refresh(user)

    user_out = UserOut.model_validate(user)
    activity_logger.log_create(
        user.id, ActivityEntity.user, user.id, user.email,
        user_out.model_dump(), request_meta(request),
    )

    return success_response("User registered successfully", {"user": user_out})


@router.post("/login")
def login(payload: UserLogin, session: Session = Depends(get_session)):
    user = _active_user_by_email(session, payload.email)

    if not user or not verify_password(payload.password, user.password):
        raise UnauthorizedError(
            "Invalid email or password",
            "INVALID_CREDENTIALS",
            "Please check your email and password",
        )

    return success_response("Login successful", _login_payload(session, user))


# -------- OTP LOGIN --------

@router.post("/auth/request-otp")
def request_otp(payload: RequestOTP, session: Session = Depends(get_session)):
    generic = success_response("If the email exists, an OTP code has been sent")

    user = _active_user_by_email(session, payload.email)
    if not user:
        return generic

    # only the newest code stays valid
    earlier = session.exec(
        select(OTPCode).where(OTPCode.email == payload.email, OTPCode.used == False)  # noqa: E712
    ).all()
    for otp in earlier:
        otp.used = True
        session.add(otp)

    code = generate_otp()
    session.add(
        OTPCode(
            email=payload.email,
            code=code,
            expires_at=datetime.utcnow() + OTP_TTL,
        )
    )
    session.commit()

    if not send_otp_email(payload.email, code):
        logger.warning("OTP email to %s could not be sent", payload.email)
        return generic

    return success_response("OTP code has been sent to your email")


@router.post("/auth/verify-otp")
def verify_otp(payload: VerifyOTP, session: Session = Depends(get_session)):
    otp = session.exec(
        select(OTPCode)
        .where(
            OTPCode.email == payload.email,
            OTPCode.code == payload.code,
            OTPCode.used == False,  # noqa: E712
        )
        .order_by(OTPCode.created_at.desc())
    ).first()

    if not otp:
        raise UnauthorizedError(
            "Invalid or expired OTP code",
            "INVALID_OTP",
            "Please request a new OTP code",
        )

    if datetime.utcnow() > otp.expires_at:
        raise UnauthorizedError("OTP code has expired", "OTP_EXPIRED", "Please request a new OTP code")

    otp.used = True
    session.add(otp)
    session.commit()

    user = _active_user_by_email(session, payload.email)
    if not user:
        raise UnauthorizedError("User not found or inactive", "USER_NOT_FOUND")

    return success_response("Login successful", _login_payload(session, user))


# -------- PASSWORD RESET --------

@router.post("/auth/forgot-password")
def forgot_password(payload: ForgotPassword, session: Session = Depends(get_session)):
    generic = success_response("If the email exists, a reset link has been sent")

    user = _active_user_by_email(session, payload.email)
    if not user:
        return generic

    token = generate_secure_token(32)
    session.add(
        PasswordResetToken(
            user_id=user.id,
            token=token,
            expires_at=datetime.utcnow() + RESET_TOKEN_TTL,
        )
    )
    session.commit()

    if not send_password_reset_email(user.email, token):
        logger.warning("Password reset email to %s could not be sent", user.email)

    return generic


@router.post("/auth/reset-password")
def reset_password(payload: ResetPassword, session: Session = Depends(get_session)):
    prt = session.exec(
        select(PasswordResetToken).where(
            PasswordResetToken.token == payload.token,
            PasswordResetToken.used == False,  # noqa: E712
        )
    ).first()

    if not prt:
        raise ValidationError("Invalid or expired token", "INVALID_TOKEN")

    if datetime.utcnow() > prt.expires_at:
        raise ValidationError("Token expired", "TOKEN_EXPIRED")

    user = session.get(User, prt.user_id)
    if not user or user.deleted_at is not None:
        raise ValidationError("User not found", "USER_NOT_FOUND")

    user.password = hash_password(payload.new_password)
    user.updated_at = datetime.utcnow()
    prt.used = True
    session.add(user)
    session.add(prt)
    session.commit()

    return success_response("Password updated successfully")


# -------- GOOGLE OAUTH --------

@router.get("/auth/google/login")
def google_login():
    state = generate_secure_token(16)
    response = RedirectResponse(build_authorization_url(state), status_code=302)
    response.set_cookie(
        OAUTH_STATE_COOKIE,
        state,
        max_age=600,
        httponly=True,
        samesite="lax",
        path="/",
    )
    return response


@router.get("/auth/google/callback")
def google_callback(
    request: Request,
    code: str = "",
    state: str = "",
    session: Session = Depends(get_session),
    activity_logger=Depends(get_activity_logger),
):
    cookie_state = request.cookies.get(OAUTH_STATE_COOKIE)
    if not state or cookie_state != state:
        raise ValidationError("Invalid state", "INVALID_STATE")

    if not code:
        raise ValidationError("Missing authorization code", "OAUTH_ERROR")

    token_response = exchange_code(code)
    if not token_response:
        raise ValidationError("OAuth exchange failed", "OAUTH_ERROR")

    google_user = verify_google_token(token_response["id_token"])
    if not google_user:
        raise UnauthorizedError("Invalid Google token", "OAUTH_ERROR")

    user = session.exec(
        select(User).where(
            (User.google_id == google_user["sub"]) | (User.email == google_user["email"])
        )
    ).first()

    if user is None:
        user = User(
            email=google_user["email"],
            name=google_user["name"],
            google_id=google_user["sub"],
            avatar_url=google_user.get("picture"),
            password=unusable_password_hash(),
            role=UserRole.customer.value,
        )
        session.add(user)
        session.commit()
        session.refresh(user)
        activity_logger.log_create(
            user.id, ActivityEntity.user, user.id, user.email,
            {"email": user.email, "name": user.name, "google": True},
            request_meta(request),
        )
    elif not user.google_id:
        user.google_id = google_user["sub"]
        session.add(user)

    if not user.is_active or user.deleted_at is not None:
        raise UnauthorizedError("User not found or inactive", "USER_NOT_FOUND")

    return success_response("Login successful", _login_payload(session, user))
