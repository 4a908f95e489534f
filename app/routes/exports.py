import io
from datetime import datetime

from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse
from sqlmodel import Session

from app.database import get_session
from app.models.user import User
from app.services.export_service import (
    XLSX_MEDIA_TYPE,
    purchase_rows,
    purchases_pdf,
    purchases_workbook,
    visas_pdf,
    visas_workbook,
)
from app.utils.token import get_current_user

router = APIRouter()


def _download(content: bytes, prefix: str, extension: str, media_type: str) -> StreamingResponse:
    filename = f"{prefix}_{datetime.utcnow().strftime('%Y%m%d_%H%M%S')}.{extension}"
    return StreamingResponse(
        io.BytesIO(content),
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/exports/visas/excel")
def export_visas_excel(
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    rows = purchase_rows(session, current_user)
    return _download(visas_workbook(rows), "visas_export", "xlsx", XLSX_MEDIA_TYPE)


@router.get("/exports/visas/pdf")
def export_visas_pdf(
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    rows = purchase_rows(session, current_user)
    return _download(visas_pdf(rows), "visas_export", "pdf", "application/pdf")


@router.get("/exports/purchases/excel")
def export_purchases_excel(
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    rows = purchase_rows(session, current_user)
    return _download(purchases_workbook(rows), "purchases_export", "xlsx", XLSX_MEDIA_TYPE)


@router.get("/exports/purchases/pdf")
def export_purchases_pdf(
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    rows = purchase_rows(session, current_user)
    return _download(purchases_pdf(rows), "purchases_export", "pdf", "application/pdf")
