import asyncio
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional

from swipehire.core.cache_keys import ResourceType, derive_key, scope_of
from swipehire.database.documents import (
    normalize_id,
    normalize_pagination,
    pagination_block,
    parse_object_id,
    to_jsonable,
)
from swipehire.services.base import CachedResourceAccessor

EMPTY_SUMMARY = {"totalReviews": 0, "averageRating": 0, "ratingDistribution": [0, 0, 0, 0, 0]}


class ReviewAccessor(CachedResourceAccessor):
    collection = "companyreviews"

    async def get_company_reviews(self, company_user_id: str, params: Optional[Mapping[str, Any]] = None) -> Optional[Dict[str, Any]]:
        company_user_id = normalize_id(company_user_id)
        if company_user_id is None:
            return None
        page, limit = normalize_pagination(params)

        async def load():
            query = {"companyUserId": company_user_id}
            reviews, total = await asyncio.gather(
                self.store.find(self.collection, query, sort=[("createdAt", -1)], skip=(page - 1) * limit, limit=limit),
                self.store.count_documents(self.collection, query),
            )
            reviewer_ids = [oid for oid in {parse_object_id(r.get("reviewerId")) for r in reviews} if oid is not None]
            reviewers = {}
            if reviewer_ids:
                found = await self.store.find(
                    "users", {"_id": {"$in": reviewer_ids}}, projection={"name": 1, "profileAvatarUrl": 1}
                )
                reviewers = {str(u["_id"]): u for u in found}

            items = []
            for review in reviews:
                reviewer = reviewers.get(str(review.get("reviewerId")))
                if reviewer is None:
                    # Reviews from deleted accounts are hidden
                    continue
                items.append({
                    "_id": review["_id"],
                    "companyUserId": review.get("companyUserId"),
                    "reviewerId": review.get("reviewerId"),
                    "rating": review.get("rating"),
                    "comment": review.get("comment"),
                    "createdAt": review.get("createdAt"),
                    "updatedAt": review.get("updatedAt"),
                    "reviewerName": reviewer.get("name"),
                    "reviewerAvatar": reviewer.get("profileAvatarUrl"),
                })
            return {"reviews": to_jsonable(items), "pagination": pagination_block(page, limit, total)}

        def reviewer_scopes(result):
            return [scope_of(ResourceType.USER, r["reviewerId"]) for r in result["reviews"]]

        key = derive_key(ResourceType.REVIEWS, company_user_id, {"page": page, "limit": limit})
        return await self._read_through(key, load, scopes=reviewer_scopes)

    async def get_company_review_summary(self, company_user_id: str) -> Optional[Dict[str, Any]]:
        company_user_id = normalize_id(company_user_id)
        if company_user_id is None:
            return None

        async def load():
            groups = await self.store.aggregate(
                self.collection,
                [
                    {"$match": {"companyUserId": company_user_id}},
                    {"$group": {"_id": "$rating", "count": {"$sum": 1}}},
                ],
            )
            counts = {g["_id"]: g["count"] for g in groups}
            total = sum(counts.values())
            if not total:
                return dict(EMPTY_SUMMARY, ratingDistribution=[0, 0, 0, 0, 0])
            rating_sum = sum(rating * count for rating, count in counts.items() if isinstance(rating, (int, float)))
            return {
                "totalReviews": total,
                "averageRating": round(rating_sum / total, 2),
                "ratingDistribution": [counts.get(star, 0) for star in range(1, 6)],
            }

        return await self._read_through(derive_key(ResourceType.REVIEW_SUMMARY, company_user_id), load)

    async def create_review(self, company_user_id: str, review_data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        company_user_id = normalize_id(company_user_id)
        reviewer_id = normalize_id(review_data.get("reviewerId"))
        if company_user_id is None or reviewer_id is None:
            return None
        now = datetime.now(timezone.utc)
        new_review = {
            **{k: v for k, v in review_data.items() if k != "_id"},
            "companyUserId": company_user_id,
            "reviewerId": reviewer_id,
            "createdAt": now,
            "updatedAt": now,
        }
        new_review["_id"] = await self.store.insert_one(self.collection, new_review)

        self._invalidate(
            scope_of(ResourceType.REVIEWS, company_user_id),
            scope_of(ResourceType.REVIEW_SUMMARY, company_user_id),
        )
        return {"review": to_jsonable(new_review)}
