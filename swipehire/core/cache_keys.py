"""Cache key derivation and per-resource TTL policy."""
import json
from enum import Enum
from typing import Any, Dict, Mapping, NamedTuple, Optional, Tuple
from urllib.parse import quote


class ResourceType(str, Enum):
    USER = "user"
    USERS_ALL = "users_all"
    JOBSEEKERS = "jobseekers"
    PUBLIC_JOBS = "public_jobs"
    USER_JOBS = "user_jobs"
    MATCHES = "matches"
    NOTIFICATIONS = "notifications"
    REVIEWS = "reviews"
    REVIEW_SUMMARY = "review_summary"
    CHAT = "chat"
    DIARY = "diary"
    DIARY_POST = "diary_post"
    EVENTS = "events"
    EVENT = "event"
    REMINDERS = "reminders"


# Seconds. Volatile, collaborative data gets the short tiers.
TTL_SECONDS: Dict[ResourceType, float] = {
    ResourceType.USER: 300,
    ResourceType.USERS_ALL: 30,
    ResourceType.JOBSEEKERS: 60,
    ResourceType.PUBLIC_JOBS: 60,
    ResourceType.USER_JOBS: 60,
    ResourceType.MATCHES: 10,
    ResourceType.NOTIFICATIONS: 5,
    ResourceType.REVIEWS: 120,
    ResourceType.REVIEW_SUMMARY: 300,
    ResourceType.CHAT: 10,
    ResourceType.DIARY: 60,
    ResourceType.DIARY_POST: 60,
    ResourceType.EVENTS: 120,
    ResourceType.EVENT: 120,
    ResourceType.REMINDERS: 30,
}

Scope = Tuple[str, Optional[str]]
NO_OWNER = "*"


def ttl_for(resource: ResourceType) -> float:
    return TTL_SECONDS[resource]


def scope_of(resource: ResourceType, owner: Any = None) -> Scope:
    """Invalidation scope shared by every key of ``resource`` under ``owner``."""
    return (resource.value, None if owner is None else str(owner))


def canonical_params(params: Optional[Mapping[str, Any]]) -> str:
    """Stable serialization: sorted keys, no whitespace, ``None`` values dropped."""
    if not params:
        return ""
    cleaned = {str(k): v for k, v in params.items() if v is not None}
    if not cleaned:
        return ""
    return json.dumps(cleaned, sort_keys=True, separators=(",", ":"), default=str)


class CacheKey(NamedTuple):
    resource: ResourceType
    owner: Optional[str] = None
    params: str = ""

    @property
    def scope(self) -> Scope:
        return scope_of(self.resource, self.owner)

    def __str__(self) -> str:
        # quote() always escapes "*", so no real owner can collide with the marker
        owner = NO_OWNER if self.owner is None else quote(self.owner, safe="")
        return f"{self.resource.value}|{owner}|{self.params}"


def derive_key(resource: ResourceType, owner: Any = None, params: Optional[Mapping[str, Any]] = None) -> CacheKey:
    """
    Build the cache key for a read.

    ``owner`` is the identifying id (user, company, match, post ...) and
    ``params`` the already-normalized pagination and filter values. Equal
    inputs always give equal keys regardless of dict ordering, and the
    percent-encoded owner keeps separators out of the owner segment.
    """
    return CacheKey(resource, None if owner is None else str(owner), canonical_params(params))
