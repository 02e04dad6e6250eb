"""
Store ranking: tag frequencies and top-rated stores.

Both are read-only aggregation pipelines re-run on every request.
"""

from typing import Any, Dict, List

from pymongo.database import Database

TOP_STORES_LIMIT = 10
MIN_REVIEWS = 2


def tags_pipeline() -> List[Dict[str, Any]]:
    return [
        {"$unwind": "$tags"},
        {"$group": {"_id": "$tags", "count": {"$sum": 1}}},
        {"$sort": {"count": -1, "_id": 1}},
    ]


def top_stores_pipeline(limit: int = TOP_STORES_LIMIT) -> List[Dict[str, Any]]:
    return [
        # join each store with its reviews
        {"$lookup": {
            "from": "review",
            "localField": "_id",
            "foreignField": "store",
            "as": "reviews",
        }},
        # only stores where reviews[MIN_REVIEWS - 1] exists
        {"$match": {f"reviews.{MIN_REVIEWS - 1}": {"$exists": True}}},
        {"$unwind": "$reviews"},
        {"$group": {
            "_id": "$_id",
            "photo": {"$first": "$photo"},
            "name": {"$first": "$name"},
            "slug": {"$first": "$slug"},
            "reviews": {"$push": "$reviews"},
            "averageRating": {"$avg": "$reviews.rating"},
        }},
        {"$sort": {"averageRating": -1}},
        {"$limit": limit},
    ]


class RankingEngine:
    def __init__(self, database: Database):
        self.stores = database["store"]

    def tag_counts(self) -> List[Dict[str, Any]]:
        return list(self.stores.aggregate(tags_pipeline()))

    def top_stores(self, limit: int = TOP_STORES_LIMIT) -> List[Dict[str, Any]]:
        return list(self.stores.aggregate(top_stores_pipeline(limit)))
