import asyncio
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional

from swipehire.core.cache_keys import ResourceType, derive_key, scope_of
from swipehire.database.documents import normalize_id, normalize_pagination, pagination_block, parse_object_id, to_jsonable
from swipehire.services.base import CachedResourceAccessor

DIARY_PROJECTION = {"userId": 1, "title": 1, "content": 1, "images": 1, "createdAt": 1, "updatedAt": 1}


class DiaryAccessor(CachedResourceAccessor):
    collection = "diaryposts"

    async def get_diary_posts(self, user_id: str, params: Optional[Mapping[str, Any]] = None) -> Optional[Dict[str, Any]]:
        user_id = normalize_id(user_id)
        if user_id is None:
            return None
        page, limit = normalize_pagination(params)

        async def load():
            query = {"userId": user_id}
            posts, total = await asyncio.gather(
                self.store.find(
                    self.collection,
                    query,
                    projection=DIARY_PROJECTION,
                    sort=[("createdAt", -1)],
                    skip=(page - 1) * limit,
                    limit=limit,
                ),
                self.store.count_documents(self.collection, query),
            )
            return {"posts": to_jsonable(posts), "pagination": pagination_block(page, limit, total)}

        key = derive_key(ResourceType.DIARY, user_id, {"page": page, "limit": limit})
        return await self._read_through(key, load)

    async def get_diary_post(self, post_id: str) -> Optional[Dict[str, Any]]:
        object_id = parse_object_id(post_id)
        if object_id is None:
            return None

        async def load():
            post = await self.store.find_one(self.collection, {"_id": object_id}, DIARY_PROJECTION)
            return None if post is None else {"post": to_jsonable(post)}

        return await self._read_through(derive_key(ResourceType.DIARY_POST, str(object_id)), load)

    def _invalidate_post(self, user_id: str, post_id: str) -> None:
        self._invalidate(scope_of(ResourceType.DIARY, user_id), derive_key(ResourceType.DIARY_POST, post_id))

    async def create_diary_post(self, user_id: str, post_data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        user_id = normalize_id(user_id)
        if user_id is None:
            return None
        now = datetime.now(timezone.utc)
        new_post = {
            **{k: v for k, v in post_data.items() if k not in ("_id", "userId")},
            "userId": user_id,
            "createdAt": now,
            "updatedAt": now,
        }
        new_post["_id"] = await self.store.insert_one(self.collection, new_post)

        self._invalidate_post(user_id, str(new_post["_id"]))
        return {"post": to_jsonable(new_post)}

    async def update_diary_post(self, post_id: str, user_id: str, updates: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        object_id = parse_object_id(post_id)
        user_id = normalize_id(user_id)
        if object_id is None or user_id is None:
            return None
        changes = {k: v for k, v in updates.items() if k not in ("_id", "userId")}
        changes["updatedAt"] = datetime.now(timezone.utc)
        post = await self.store.find_one_and_update(
            self.collection, {"_id": object_id, "userId": user_id}, {"$set": changes}
        )
        if post is None:
            return None

        self._invalidate_post(user_id, str(object_id))
        return {"post": to_jsonable(post)}

    async def delete_diary_post(self, post_id: str, user_id: str) -> Optional[Dict[str, bool]]:
        object_id = parse_object_id(post_id)
        user_id = normalize_id(user_id)
        if object_id is None or user_id is None:
            return None
        deleted = await self.store.delete_one(self.collection, {"_id": object_id, "userId": user_id})
        if not deleted:
            return None

        self._invalidate_post(user_id, str(object_id))
        return {"deleted": True}
