import asyncio
import re
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

JOB_LIST_PROJECTION = {
    "_id": 1, "title": 1, "description": 1, "location": 1, "salary": 1,
    "jobType": 1, "workStyle": 1, "companyName": 1, "companyIndustry": 1,
    "companyLogo": 1, "companySize": 1, "isPublic": 1, "userId": 1,
    "createdAt": 1, "updatedAt": 1,
    "applicationCount": {"$size": {"$ifNull": ["$applications", []]}},
}

PUBLIC_JOB_FILTERS = ("location", "jobType", "search")


def _contains(text: str) -> Dict[str, str]:
    return {"$regex": re.escape(text), "$options": "i"}


class JobAccessor(CachedResourceAccessor):
    collection = "jobs"

    async def _list(self, query: Dict[str, Any], page: int, limit: int) -> Dict[str, Any]:
        pipeline = [
            {"$match": query},
            {"$sort": {"createdAt": -1}},
            {"$skip": (page - 1) * limit},
            {"$limit": limit},
            {"$project": JOB_LIST_PROJECTION},
        ]
        jobs, total = await asyncio.gather(
            self.store.aggregate(self.collection, pipeline),
            self.store.count_documents(self.collection, query),
        )
        return {"jobs": to_jsonable(jobs), "pagination": pagination_block(page, limit, total)}

    async def get_public_jobs(self, params: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
        page, limit = normalize_pagination(params)
        filters = pick_filters(params, PUBLIC_JOB_FILTERS)

        async def load():
            query: Dict[str, Any] = {"isPublic": True}
            if "location" in filters:
                query["location"] = _contains(filters["location"])
            if "jobType" in filters:
                query["jobType"] = filters["jobType"]
            if "search" in filters:
                query["$or"] = [
                    {"title": _contains(filters["search"])},
                    {"description": _contains(filters["search"])},
                    {"companyName": _contains(filters["search"])},
                ]
            return await self._list(query, page, limit)

        key = derive_key(ResourceType.PUBLIC_JOBS, params={"page": page, "limit": limit, **filters})
        return await self._read_through(key, load)

    async def get_user_jobs(self, user_id: str, params: Optional[Mapping[str, Any]] = None) -> Optional[Dict[str, Any]]:
        user_id = normalize_id(user_id)
        if user_id is None:
            return None
        page, limit = normalize_pagination(params)

        async def load():
            return await self._list({"userId": user_id}, page, limit)

        key = derive_key(ResourceType.USER_JOBS, user_id, {"page": page, "limit": limit})
        return await self._read_through(key, load)

    def _invalidate_jobs(self, owner_id: str) -> None:
        self._invalidate(scope_of(ResourceType.USER_JOBS, owner_id), scope_of(ResourceType.PUBLIC_JOBS))

    async def create_job(self, user_id: str, job_data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        user_id = normalize_id(user_id)
        if user_id is None:
            return None
        now = datetime.now(timezone.utc)
        new_job = {
            **{k: v for k, v in job_data.items() if k != "_id"},
            "userId": user_id,
            "createdAt": now,
            "updatedAt": now,
            "applications": [],
            "views": 0,
        }
        new_job["_id"] = await self.store.insert_one(self.collection, new_job)

        self._invalidate_jobs(user_id)
        return {"job": to_jsonable(new_job)}

    async def update_job(self, job_id: str, user_id: str, updates: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        object_id = parse_object_id(job_id)
        user_id = normalize_id(user_id)
        if object_id is None or user_id is None:
            return None
        changes = {k: v for k, v in updates.items() if k not in ("_id", "userId")}
        changes["updatedAt"] = datetime.now(timezone.utc)
        job = await self.store.find_one_and_update(
            self.collection, {"_id": object_id, "userId": user_id}, {"$set": changes}
        )
        if job is None:
            return None

        self._invalidate_jobs(user_id)
        return {"job": to_jsonable(job)}

    async def delete_job(self, job_id: str, user_id: str) -> Optional[Dict[str, bool]]:
        object_id = parse_object_id(job_id)
        user_id = normalize_id(user_id)
        if object_id is None or user_id is None:
            return None
        deleted = await self.store.delete_one(self.collection, {"_id": object_id, "userId": user_id})
        if not deleted:
            return None

        self._invalidate_jobs(user_id)
        return {"deleted": True}
