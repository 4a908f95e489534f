from sqlalchemy import func
from sqlmodel import select

MAX_PER_PAGE = 100


def normalize_page(page: int, per_page: int, default_per_page: int = 10):
    if page < 1:
        page = 1

    if per_page < 1 or per_page > MAX_PER_PAGE:
        per_page = default_per_page

    return page, per_page


def paginate(
    *,
    session,
    query,
    page: int = 1,
    per_page: int = 10,
):
    """Returns (rows, total) for one page of ``query``."""
    offset = (page - 1) * per_page

    total = session.exec(
        select(func.count()).select_from(query.subquery())
    ).one()

    results = session.exec(
        query.offset(offset).limit(per_page)
    ).all()

    return results, total
