import asyncio
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional

from swipehire.core.cache_keys import ResourceType, derive_key, scope_of
from swipehire.database.documents import (
    normalize_id,
    normalize_pagination,
    pagination_block,
    parse_object_id,
    pick_filters,
    to_jsonable,
)
from swipehire.services.base import CachedResourceAccessor

REMINDER_PROJECTION = {
    "userId": 1, "type": 1, "title": 1, "description": 1,
    "scheduledDate": 1, "status": 1, "createdAt": 1, "updatedAt": 1,
}


class ReminderAccessor(CachedResourceAccessor):
    collection = "followupreminders"

    async def get_reminders(self, user_id: str, params: Optional[Mapping[str, Any]] = None) -> Optional[Dict[str, Any]]:
        user_id = normalize_id(user_id)
        if user_id is None:
            return None
        page, limit = normalize_pagination(params)
        filters = pick_filters(params, ("status", "type"))

        async def load():
            query = {"userId": user_id, **filters}
            reminders, total = await asyncio.gather(
                self.store.find(
                    self.collection,
                    query,
                    projection=REMINDER_PROJECTION,
                    sort=[("scheduledDate", 1)],
                    skip=(page - 1) * limit,
                    limit=limit,
                ),
                self.store.count_documents(self.collection, query),
            )
            return {"reminders": to_jsonable(reminders), "pagination": pagination_block(page, limit, total)}

        key = derive_key(ResourceType.REMINDERS, user_id, {"page": page, "limit": limit, **filters})
        return await self._read_through(key, load)

    async def create_reminder(self, user_id: str, reminder_data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        user_id = normalize_id(user_id)
        if user_id is None:
            return None
        now = datetime.now(timezone.utc)
        new_reminder = {
            **{k: v for k, v in reminder_data.items() if k not in ("_id", "userId")},
            "userId": user_id,
            "createdAt": now,
            "updatedAt": now,
        }
        new_reminder["_id"] = await self.store.insert_one(self.collection, new_reminder)

        self._invalidate(scope_of(ResourceType.REMINDERS, user_id))
        return {"reminder": to_jsonable(new_reminder)}

    async def update_reminder(self, reminder_id: str, user_id: str, updates: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        object_id = parse_object_id(reminder_id)
        user_id = normalize_id(user_id)
        if object_id is None or user_id is None:
            return None
        changes = {k: v for k, v in updates.items() if k not in ("_id", "userId")}
        changes["updatedAt"] = datetime.now(timezone.utc)
        reminder = await self.store.find_one_and_update(
            self.collection, {"_id": object_id, "userId": user_id}, {"$set": changes}
        )
        if reminder is None:
            return None

        self._invalidate(scope_of(ResourceType.REMINDERS, user_id))
        return {"reminder": to_jsonable(reminder)}

    async def delete_reminder(self, reminder_id: str, user_id: str) -> Optional[Dict[str, bool]]:
        object_id = parse_object_id(reminder_id)
        user_id = normalize_id(user_id)
        if object_id is None or user_id is None:
            return None
        deleted = await self.store.delete_one(self.collection, {"_id": object_id, "userId": user_id})
        if not deleted:
            return None

        self._invalidate(scope_of(ResourceType.REMINDERS, user_id))
        return {"deleted": True}
