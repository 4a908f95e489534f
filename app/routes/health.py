import logging

from fastapi import APIRouter, Depends, Request
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, text

from app.database import get_session
from app.utils.responses import success_response

logger = logging.getLogger(__name__)

router = APIRouter()

API_VERSION = "1.1.0"


@router.get("/health")
def health_check(request: Request, session: Session = Depends(get_session)):
    db_status = "ok"

    try:
        # simple DB ping
        session.exec(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.error("Health check database ping failed: %s", e)
        db_status = "failed"

    state = request.app.state
    broker = getattr(state, "broker", None)
    cache = getattr(state, "cache", None)

    return success_response(
        "Visa Desk API is running",
        {
            "version": API_VERSION,
            "status": "healthy" if db_status == "ok" else "degraded",
            "database": db_status,
            "queue": "connected" if broker is not None and broker.connected else "unavailable",
            "cache": "connected" if cache is not None and cache.available else "disabled",
        },
    )
