from fastapi import APIRouter, Depends, Query
from sqlmodel import Session

from app.database import get_session
from app.dependencies.services import get_cache
from app.services.visa_service import (
    get_visa_or_404,
    list_visas,
    visa_cache_key,
    visa_detail,
    visa_list_cache_key,
)
from app.utils.pagination import normalize_page
from app.utils.responses import paginated_response, success_response

router = APIRouter()


@router.get("/visas")
def get_visas(
    country: str = "",
    type: str = "",
    page: int = Query(1),
    per_page: int = Query(10),
    session: Session = Depends(get_session),
    cache=Depends(get_cache),
):
    page, per_page = normalize_page(page, per_page)
    cache_key = visa_list_cache_key(country, type, page, per_page)

    cached = cache.get(cache_key)
    if cached is not None:
        return paginated_response(
            "Visas retrieved successfully (cached)",
            cached["visas"],
            page,
            per_page,
            cached["total"],
        )

    visas, total = list_visas(
        session, country=country, visa_type=type, page=page, per_page=per_page
    )
    cache.set(cache_key, {"visas": visas, "total": total})

    return paginated_response("Visas retrieved successfully", visas, page, per_page, total)


@router.get("/visas/{visa_id}")
def get_visa(
    visa_id: int,
    session: Session = Depends(get_session),
    cache=Depends(get_cache),
):
    cache_key = visa_cache_key(visa_id)
    cached = cache.get(cache_key)
    if cached is not None:
        return success_response("Visa retrieved successfully (cached)", cached)

    visa = get_visa_or_404(session, visa_id)
    data = visa_detail(session, visa)
    cache.set(cache_key, data)

    return success_response("Visa retrieved successfully", data)
