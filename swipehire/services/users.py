import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from swipehire.core.cache_keys import ResourceType, derive_key, scope_of
from swipehire.database.documents import USER_PUBLIC_PROJECTION, normalize_id, parse_object_id, to_jsonable
from swipehire.services.base import CachedResourceAccessor

logger = logging.getLogger(__name__)

JOBSEEKER_FIELDS = (
    "name", "email", "profileAvatarUrl", "profileHeadline", "profileExperienceSummary",
    "profileSkills", "country", "address", "profileDesiredWorkStyle", "profileWorkExperienceLevel",
    "profileEducationLevel", "profileLocationPreference", "profileLanguages", "profileAvailability",
    "profileJobTypePreference", "profileSalaryExpectationMin", "profileSalaryExpectationMax",
    "createdAt", "updatedAt",
)


def user_lookup_query(identifier: str) -> Dict[str, Any]:
    """A user can be addressed by ObjectId, email or Firebase uid."""
    object_id = parse_object_id(identifier)
    if object_id is not None:
        return {"_id": object_id}
    if "@" in identifier:
        return {"email": identifier}
    return {"firebaseUid": identifier}


def public_user(document: Dict[str, Any]) -> Dict[str, Any]:
    return to_jsonable({k: v for k, v in document.items() if k not in USER_PUBLIC_PROJECTION})


def user_scopes(result: Dict[str, Any]):
    # Index every alias of a profile under the user's _id
    return [scope_of(ResourceType.USER, result["user"]["_id"])]


class UserAccessor(CachedResourceAccessor):
    collection = "users"

    async def get_users(self) -> Dict[str, Any]:
        async def load():
            users = await self.store.find(
                self.collection, {}, projection=USER_PUBLIC_PROJECTION, sort=[("createdAt", -1)], limit=50
            )
            return {"users": [public_user(u) for u in users]}

        return await self._read_through(derive_key(ResourceType.USERS_ALL), load)

    async def get_user(self, identifier: str) -> Optional[Dict[str, Any]]:
        identifier = normalize_id(identifier) or identifier

        async def load():
            user = await self.store.find_one(self.collection, user_lookup_query(identifier), USER_PUBLIC_PROJECTION)
            if user is None:
                return None
            return {"user": public_user(user)}

        return await self._read_through(derive_key(ResourceType.USER, identifier), load, scopes=user_scopes)

    async def get_jobseeker_profiles(self) -> Dict[str, Any]:
        async def load():
            jobseekers = await self.store.find(
                self.collection,
                {"selectedRole": "jobseeker", "profileVisibility": {"$ne": "private"}},
                projection={field: 1 for field in JOBSEEKER_FIELDS},
                sort=[("createdAt", -1)],
                limit=100,
            )
            return {"jobseekers": [to_jsonable(j) for j in jobseekers]}

        return await self._read_through(derive_key(ResourceType.JOBSEEKERS), load)

    async def create_user(self, user_data: Dict[str, Any]) -> Dict[str, Any]:
        now = datetime.now(timezone.utc)
        new_user = {**user_data, "createdAt": now, "updatedAt": now}
        new_user.pop("_id", None)
        new_user["_id"] = await self.store.insert_one(self.collection, new_user)

        self._invalidate(
            derive_key(ResourceType.USER, user_data.get("email")),
            derive_key(ResourceType.USER, user_data.get("firebaseUid")),
            scope_of(ResourceType.USERS_ALL),
            scope_of(ResourceType.JOBSEEKERS),
        )
        logger.info(f"Created user {new_user['_id']}")
        return {"user": public_user(new_user)}

    async def update_user(self, identifier: str, updates: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        identifier = normalize_id(identifier) or identifier
        changes = {k: v for k, v in updates.items() if k != "_id"}
        changes["updatedAt"] = datetime.now(timezone.utc)
        user = await self.store.find_one_and_update(
            self.collection, user_lookup_query(identifier), {"$set": changes}
        )
        if user is None:
            return None

        # The user scope also covers match and review lists embedding this profile
        self._invalidate(
            derive_key(ResourceType.USER, identifier),
            scope_of(ResourceType.USER, user["_id"]),
            scope_of(ResourceType.USERS_ALL),
            scope_of(ResourceType.JOBSEEKERS),
        )
        return {"user": public_user(user)}
