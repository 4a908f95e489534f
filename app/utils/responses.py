from datetime import datetime
from typing import Any, Optional

from fastapi.encoders import jsonable_encoder


def _now() -> str:
    return datetime.utcnow().isoformat() + "Z"


def success_response(message: str, data: Any = None) -> dict:
    body = {"success": True, "message": message, "timestamp": _now()}
    if data is not None:
        body["data"] = jsonable_encoder(data)
    return body


def error_response(message: str, code: str, details: Optional[Any] = None) -> dict:
    error = {"code": code, "message": message}
    if details is not None:
        error["details"] = jsonable_encoder(details)
    return {
        "success": False,
        "message": message,
        "error": error,
        "timestamp": _now(),
    }


def paginated_response(message: str, data: Any, page: int, per_page: int, total: int) -> dict:
    total_pages = (total + per_page - 1) // per_page if per_page else 0
    body = success_response(message, data)
    body.setdefault("data", [])
    body["meta"] = {
        "page": page,
        "per_page": per_page,
        "total": total,
        "total_pages": total_pages,
    }
    return body
