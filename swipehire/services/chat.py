import asyncio
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional

from swipehire.core.cache_keys import ResourceType, derive_key, scope_of
from swipehire.database.documents import normalize_id, normalize_pagination, pagination_block, to_jsonable
from swipehire.services.base import CachedResourceAccessor

CHAT_PAGE_SIZE = 50


class ChatAccessor(CachedResourceAccessor):
    collection = "chatmessages"

    async def get_chat_messages(self, match_id: str, params: Optional[Mapping[str, Any]] = None) -> Optional[Dict[str, Any]]:
        match_id = normalize_id(match_id)
        if match_id is None:
            return None
        page, limit = normalize_pagination(params, default_limit=CHAT_PAGE_SIZE)

        async def load():
            query = {"matchId": match_id}
            messages, total = await asyncio.gather(
                self.store.find(
                    self.collection,
                    query,
                    projection={"matchId": 1, "senderId": 1, "message": 1, "createdAt": 1},
                    sort=[("createdAt", -1)],
                    skip=(page - 1) * limit,
                    limit=limit,
                ),
                self.store.count_documents(self.collection, query),
            )
            # Newest page is fetched first, shown oldest first
            return {"messages": to_jsonable(messages[::-1]), "pagination": pagination_block(page, limit, total)}

        key = derive_key(ResourceType.CHAT, match_id, {"page": page, "limit": limit})
        return await self._read_through(key, load)

    async def create_chat_message(self, match_id: str, sender_id: str, message: str) -> Optional[Dict[str, Any]]:
        match_id, sender_id = normalize_id(match_id), normalize_id(sender_id)
        if match_id is None or sender_id is None:
            return None
        new_message = {
            "matchId": match_id,
            "senderId": sender_id,
            "message": message,
            "createdAt": datetime.now(timezone.utc),
        }
        new_message["_id"] = await self.store.insert_one(self.collection, new_message)

        self._invalidate(scope_of(ResourceType.CHAT, match_id))
        return {"message": to_jsonable(new_message)}
