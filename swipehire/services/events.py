import asyncio
import re
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional

from swipehire.core.cache_keys import ResourceType, derive_key, scope_of
from swipehire.database.documents import normalize_pagination, pagination_block, parse_object_id, pick_filters, to_jsonable
from swipehire.services.base import CachedResourceAccessor

EVENT_LIST_PROJECTION = {
    "title": 1, "description": 1, "date": 1, "location": 1, "industry": 1, "type": 1,
    "registrationUrl": 1, "company": 1, "createdAt": 1, "updatedAt": 1,
}


class EventAccessor(CachedResourceAccessor):
    collection = "industryevents"

    async def get_industry_events(self, params: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
        page, limit = normalize_pagination(params)
        filters = pick_filters(params, ("location", "industry", "type"))

        async def load():
            query: Dict[str, Any] = {"isActive": True}
            if "location" in filters:
                query["location"] = {"$regex": re.escape(filters["location"]), "$options": "i"}
            if "industry" in filters:
                query["industry"] = filters["industry"]
            if "type" in filters:
                query["type"] = filters["type"]
            events, total = await asyncio.gather(
                self.store.find(
                    self.collection,
                    query,
                    projection=EVENT_LIST_PROJECTION,
                    sort=[("date", 1)],
                    skip=(page - 1) * limit,
                    limit=limit,
                ),
                self.store.count_documents(self.collection, query),
            )
            return {"events": to_jsonable(events), "pagination": pagination_block(page, limit, total)}

        key = derive_key(ResourceType.EVENTS, params={"page": page, "limit": limit, **filters})
        return await self._read_through(key, load)

    async def get_event(self, event_id: str) -> Optional[Dict[str, Any]]:
        object_id = parse_object_id(event_id)
        if object_id is None:
            return None

        async def load():
            event = await self.store.find_one(self.collection, {"_id": object_id})
            return None if event is None else {"event": to_jsonable(event)}

        return await self._read_through(derive_key(ResourceType.EVENT, str(object_id)), load)

    async def create_event(self, event_data: Dict[str, Any]) -> Dict[str, Any]:
        now = datetime.now(timezone.utc)
        new_event = {
            "isActive": True,
            **{k: v for k, v in event_data.items() if k != "_id"},
            "createdAt": now,
            "updatedAt": now,
        }
        new_event["_id"] = await self.store.insert_one(self.collection, new_event)

        self._invalidate(scope_of(ResourceType.EVENTS))
        return {"event": to_jsonable(new_event)}

    async def update_event(self, event_id: str, updates: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        object_id = parse_object_id(event_id)
        if object_id is None:
            return None
        changes = {k: v for k, v in updates.items() if k != "_id"}
        changes["updatedAt"] = datetime.now(timezone.utc)
        event = await self.store.find_one_and_update(self.collection, {"_id": object_id}, {"$set": changes})
        if event is None:
            return None

        self._invalidate(scope_of(ResourceType.EVENTS), derive_key(ResourceType.EVENT, str(object_id)))
        return {"event": to_jsonable(event)}
