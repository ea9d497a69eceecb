from datetime import datetime, timezone
from typing import Any, Dict, Optional

from swipehire.core.cache_keys import ResourceType, derive_key, scope_of
from swipehire.database.documents import USER_PUBLIC_PROJECTION, normalize_id, parse_object_id, to_jsonable
from swipehire.services.base import CachedResourceAccessor
from swipehire.services.users import public_user


class MatchAccessor(CachedResourceAccessor):
    collection = "matches"

    async def get_user_matches(self, user_id: str) -> Optional[Dict[str, Any]]:
        user_id = normalize_id(user_id)
        if user_id is None:
            return None

        async def load():
            matches = await self.store.find(
                self.collection,
                {"$or": [{"userId1": user_id}, {"userId2": user_id}], "isArchived": {"$ne": True}},
                sort=[("createdAt", -1)],
                limit=50,
            )
            participant_ids = {str(m[field]) for m in matches for field in ("userId1", "userId2") if m.get(field)}
            object_ids = [oid for oid in map(parse_object_id, participant_ids) if oid is not None]
            users = {}
            if object_ids:
                found = await self.store.find("users", {"_id": {"$in": object_ids}}, projection=USER_PUBLIC_PROJECTION)
                users = {str(u["_id"]): public_user(u) for u in found}
            return {
                "matches": [
                    {
                        "_id": str(m["_id"]),
                        "status": m.get("status"),
                        "createdAt": to_jsonable(m.get("createdAt")),
                        "updatedAt": to_jsonable(m.get("updatedAt")),
                        "user1": users.get(str(m.get("userId1"))),
                        "user2": users.get(str(m.get("userId2"))),
                    }
                    for m in matches
                ]
            }

        def embedded_users(result):
            # Partner profiles are embedded, so their updates must reach this list
            return [
                scope_of(ResourceType.USER, match[slot]["_id"])
                for match in result["matches"]
                for slot in ("user1", "user2")
                if match.get(slot)
            ]

        return await self._read_through(derive_key(ResourceType.MATCHES, user_id), load, scopes=embedded_users)

    def _invalidate_participants(self, match: Dict[str, Any]) -> None:
        self._invalidate(
            scope_of(ResourceType.MATCHES, match.get("userId1")),
            scope_of(ResourceType.MATCHES, match.get("userId2")),
        )

    async def create_match(self, match_data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        user_id1, user_id2 = normalize_id(match_data.get("userId1")), normalize_id(match_data.get("userId2"))
        if user_id1 is None or user_id2 is None:
            return None
        now = datetime.now(timezone.utc)
        new_match = {
            **{k: v for k, v in match_data.items() if k != "_id"},
            "userId1": user_id1,
            "userId2": user_id2,
            "createdAt": now,
            "updatedAt": now,
            "status": "pending",
        }
        new_match["_id"] = await self.store.insert_one(self.collection, new_match)

        self._invalidate_participants(new_match)
        return {"match": to_jsonable(new_match)}

    async def update_match_status(self, match_id: str, status: str, user_id: Optional[str] = None) -> Optional[Dict[str, Any]]:
        object_id = parse_object_id(match_id)
        if object_id is None:
            return None
        match = await self.store.find_one_and_update(
            self.collection,
            {"_id": object_id},
            {"$set": {"status": status, "updatedAt": datetime.now(timezone.utc), "updatedBy": user_id}},
        )
        if match is None:
            return None

        self._invalidate_participants(match)
        return {"match": to_jsonable(match)}
