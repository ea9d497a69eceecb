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

NOTIFICATION_FIELDS = ("userId", "type", "title", "message", "data", "isRead", "createdAt", "updatedAt")


class NotificationAccessor(CachedResourceAccessor):
    collection = "notifications"

    async def get_notifications(self, user_id: str, params: Optional[Mapping[str, Any]] = None) -> Optional[Dict[str, Any]]:
        user_id = normalize_id(user_id)
        if user_id is None:
            return None
        page, limit = normalize_pagination(params)
        filters = pick_filters(params, ("type", "isRead"))
        if "isRead" in filters:
            filters["isRead"] = "true" if filters["isRead"].lower() == "true" else "false"

        async def load():
            query: Dict[str, Any] = {"userId": user_id}
            if "type" in filters:
                query["type"] = filters["type"]
            if "isRead" in filters:
                query["isRead"] = filters["isRead"] == "true"
            notifications, total, unread = await asyncio.gather(
                self.store.find(
                    self.collection,
                    query,
                    projection={field: 1 for field in NOTIFICATION_FIELDS},
                    sort=[("createdAt", -1)],
                    skip=(page - 1) * limit,
                    limit=limit,
                ),
                self.store.count_documents(self.collection, query),
                self.store.count_documents(self.collection, {"userId": user_id, "isRead": False}),
            )
            return {
                "notifications": to_jsonable(notifications),
                "summary": {"total": total, "unread": unread, "read": total - unread},
                "pagination": pagination_block(page, limit, total),
            }

        key = derive_key(ResourceType.NOTIFICATIONS, user_id, {"page": page, "limit": limit, **filters})
        return await self._read_through(key, load)

    async def create_notification(self, user_id: str, notification: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        user_id = normalize_id(user_id)
        if user_id is None:
            return None
        now = datetime.now(timezone.utc)
        new_notification = {
            **{k: v for k, v in notification.items() if k != "_id"},
            "userId": user_id,
            "isRead": False,
            "createdAt": now,
            "updatedAt": now,
        }
        new_notification["_id"] = await self.store.insert_one(self.collection, new_notification)

        self._invalidate(scope_of(ResourceType.NOTIFICATIONS, user_id))
        return {"notification": to_jsonable(new_notification)}

    async def mark_as_read(self, notification_id: str) -> Optional[Dict[str, Any]]:
        object_id = parse_object_id(notification_id)
        if object_id is None:
            return None
        notification = await self.store.find_one_and_update(
            self.collection,
            {"_id": object_id},
            {"$set": {"isRead": True, "updatedAt": datetime.now(timezone.utc)}},
        )
        if notification is None:
            return None

        self._invalidate(scope_of(ResourceType.NOTIFICATIONS, notification.get("userId")))
        return {"notification": to_jsonable(notification)}

    async def mark_all_as_read(self, user_id: str) -> Optional[Dict[str, int]]:
        user_id = normalize_id(user_id)
        if user_id is None:
            return None
        modified = await self.store.update_many(
            self.collection,
            {"userId": user_id, "isRead": False},
            {"$set": {"isRead": True, "updatedAt": datetime.now(timezone.utc)}},
        )

        self._invalidate(scope_of(ResourceType.NOTIFICATIONS, user_id))
        return {"modifiedCount": modified}
