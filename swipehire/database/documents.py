# Helpers for turning raw MongoDB documents and query strings into plain data
import math
from datetime import datetime
from typing import Any, Dict, Mapping, Optional, Tuple

from bson import ObjectId

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100

# Fields never returned from the users collection
USER_PUBLIC_PROJECTION = {
    "password": 0,
    "firebaseUid": 0,
    "__v": 0,
    "preferences": 0,
    "companyVerificationDocuments": 0,
    "likedCandidateIds": 0,
    "likedCompanyIds": 0,
    "passedCandidateProfileIds": 0,
    "passedCompanyProfileIds": 0,
}


def parse_object_id(value: Any) -> Optional[ObjectId]:
    """Returns an ObjectId for a valid id (string or ObjectId), else None."""
    if isinstance(value, ObjectId):
        return value
    if isinstance(value, str) and ObjectId.is_valid(value):
        return ObjectId(value)
    return None


def normalize_id(value: Any) -> Optional[str]:
    """Canonical (lowercase hex) form of an id, so keys and owners always match."""
    object_id = parse_object_id(value)
    return None if object_id is None else str(object_id)


def to_jsonable(value: Any) -> Any:
    """Recursively converts ObjectIds and datetimes so results are JSON-ready."""
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Mapping):
        return {k: to_jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_jsonable(v) for v in value]
    return value


def _as_int(value: Any, default: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def normalize_pagination(params: Optional[Mapping[str, Any]], default_limit: int = DEFAULT_PAGE_SIZE) -> Tuple[int, int]:
    """Clamp ``page``/``limit`` query values the way every list endpoint does."""
    params = params or {}
    page = max(_as_int(params.get("page"), 1), 1)
    limit = _as_int(params.get("limit"), default_limit)
    if limit < 1:
        limit = default_limit
    return page, min(limit, MAX_PAGE_SIZE)


def pick_filters(params: Optional[Mapping[str, Any]], allowed: Tuple[str, ...]) -> Dict[str, str]:
    """Keep only whitelisted, non-empty filters as strings."""
    params = params or {}
    return {
        name: str(params[name])
        for name in allowed
        if params.get(name) not in (None, "")
    }


def pagination_block(page: int, limit: int, total: int) -> Dict[str, int]:
    return {
        "page": page,
        "limit": limit,
        "total": total,
        "pages": math.ceil(total / limit) if limit else 0,
    }
