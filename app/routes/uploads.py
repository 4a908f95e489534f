import logging
import os
import time
from datetime import datetime

from fastapi import APIRouter, Depends, File, Request, UploadFile
from sqlmodel import Session

from app.config import settings
from app.constants.statuses import ActivityEntity
from app.database import get_session
from app.dependencies.admin import require_admin
from app.dependencies.services import get_activity_logger, get_cache, get_storage
from app.models.user import User
from app.services.activity_logger import request_meta
from app.services.image_service import AVATAR_IMAGE, VISA_DOCUMENT_IMAGE, ImageConfig, compress_image
from app.services.visa_service import get_visa_or_404, invalidate_visa_cache
from app.utils.exceptions import ValidationError
from app.utils.responses import success_response
from app.utils.token import get_current_user

logger = logging.getLogger(__name__)

router = APIRouter()

AVATAR_EXTENSIONS = [".jpg", ".jpeg", ".png", ".gif", ".webp"]
VISA_DOCUMENT_EXTENSIONS = [".pdf", ".jpg", ".jpeg", ".png", ".doc", ".docx"]


def _read_upload(file: UploadFile, allowed_extensions: list, image_config: ImageConfig):
    """Validate size and extension, returning ``(bytes, extension)`` ready to store."""
    data = file.file.read()
    if len(data) > settings.MAX_UPLOAD_SIZE:
        raise ValidationError(
            "File too large",
            "FILE_TOO_LARGE",
            f"File size must be less than {settings.MAX_UPLOAD_SIZE} bytes",
        )

    ext = os.path.splitext(file.filename or "")[1].lower()
    if ext not in allowed_extensions:
        raise ValidationError(
            "Invalid file type",
            "INVALID_FILE_TYPE",
            f"Allowed file types: {', '.join(allowed_extensions)}",
        )

    return compress_image(data, ext, image_config), ext


@router.post("/uploads/avatar")
def upload_avatar(
    request: Request,
    file: UploadFile = File(...),
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
    storage=Depends(get_storage),
    activity_logger=Depends(get_activity_logger),
):
    data, ext = _read_upload(file, AVATAR_EXTENSIONS, AVATAR_IMAGE)

    filename = f"{current_user.id}_{int(time.time())}{ext}"
    url = storage.save(data, f"avatars/{filename}", file.content_type)

    old_url = current_user.avatar_url
    current_user.avatar_url = url
    current_user.updated_at = datetime.utcnow()
    session.add(current_user)
    session.commit()

    if old_url and old_url != url:
        storage.delete(old_url)

    activity_logger.log_update(
        current_user.id, ActivityEntity.user, current_user.id, current_user.email,
        {"avatar_url": old_url}, {"avatar_url": url}, request_meta(request),
    )

    return success_response(
        "Avatar uploaded successfully",
        {"avatar_url": url, "filename": filename},
    )


@router.post("/uploads/visa/{visa_id}")
def upload_visa_document(
    visa_id: int,
    request: Request,
    file: UploadFile = File(...),
    session: Session = Depends(get_session),
    admin: User = Depends(require_admin),
    storage=Depends(get_storage),
    cache=Depends(get_cache),
    activity_logger=Depends(get_activity_logger),
):
    data, ext = _read_upload(file, VISA_DOCUMENT_EXTENSIONS, VISA_DOCUMENT_IMAGE)
    visa = get_visa_or_404(session, visa_id, active_only=False)

    filename = f"visa_{visa.id}_{int(time.time())}{ext}"
    url = storage.save(data, f"visas/{filename}", file.content_type)

    old_url = visa.visa_document_url
    visa.visa_document_url = url
    visa.updated_at = datetime.utcnow()
    session.add(visa)
    session.commit()

    if old_url and old_url != url:
        storage.delete(old_url)

    invalidate_visa_cache(cache, visa.id)

    activity_logger.log_update(
        admin.id, ActivityEntity.visa, visa.id, visa.display_name,
        {"visa_document_url": old_url}, {"visa_document_url": url}, request_meta(request),
    )

    return success_response(
        "Visa document uploaded successfully",
        {"visa_document_url": url, "filename": filename},
    )
