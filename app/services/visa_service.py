from typing import List, Optional, Tuple

from sqlmodel import Session, select

from app.models.visa import Visa, VisaOption
from app.schemas.visa_schemas import VisaDetailOut, VisaOptionOut, VisaOut
from app.services.cache import list_cache_key
from app.utils.exceptions import NotFoundError
from app.utils.pagination import paginate

VISA_LIST_PREFIX = "visas"


def visa_cache_key(visa_id: int) -> str:
    return f"visa:{visa_id}"


def visa_list_cache_key(country: str, visa_type: str, page: int, per_page: int) -> str:
    return list_cache_key(
        VISA_LIST_PREFIX, country=country, type=visa_type, page=page, per_page=per_page
    )


def invalidate_visa_cache(cache, visa_id: Optional[int] = None):
    if visa_id is not None:
        cache.delete(visa_cache_key(visa_id))
    cache.delete_pattern(f"{VISA_LIST_PREFIX}:*")


def get_visa_or_404(session: Session, visa_id: int, active_only: bool = True) -> Visa:
    visa = session.get(Visa, visa_id)
    if visa is None or visa.deleted_at is not None or (active_only and not visa.is_active):
        raise NotFoundError("Visa not found", "VISA_NOT_FOUND")
    return visa


def active_options(session: Session, visa_id: int) -> List[VisaOption]:
    return session.exec(
        select(VisaOption)
        .where(
            VisaOption.visa_id == visa_id,
            VisaOption.is_active == True,  # noqa: E712
            VisaOption.deleted_at.is_(None),
        )
        .order_by(VisaOption.price.asc())
    ).all()


def list_visas(
    session: Session,
    *,
    country: str = "",
    visa_type: str = "",
    page: int = 1,
    per_page: int = 10,
) -> Tuple[List[dict], int]:
    query = select(Visa).where(
        Visa.is_active == True,  # noqa: E712
        Visa.deleted_at.is_(None),
    )
    if country:
        query = query.where(Visa.country.ilike(f"%{country}%"))
    if visa_type:
        query = query.where(Visa.type.ilike(f"%{visa_type}%"))

    query = query.order_by(Visa.created_at.desc(), Visa.id.desc())
    visas, total = paginate(session=session, query=query, page=page, per_page=per_page)
    return [VisaOut.model_validate(v).model_dump(mode="json") for v in visas], total


def visa_detail(session: Session, visa: Visa) -> dict:
    options = [VisaOptionOut.model_validate(o) for o in active_options(session, visa.id)]
    detail = VisaDetailOut(**VisaOut.model_validate(visa).model_dump(), options=options)
    return detail.model_dump(mode="json")
