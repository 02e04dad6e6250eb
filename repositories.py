"""
Repositories over the user, store and review collections.

Each repository wraps one pymongo collection of an explicitly passed
`Database`; services receive them through FastAPI dependencies instead of
looking models up by name.
"""

from typing import Any, Dict, List, Optional

from bson import ObjectId
from pymongo import DESCENDING, ReturnDocument
from pymongo.database import Database

STORES_PER_PAGE = 6


class UserRepository:
    def __init__(self, database: Database):
        self.collection = database["user"]

    def get(self, user_id: ObjectId) -> Optional[Dict[str, Any]]:
        return self.collection.find_one({"_id": user_id})

    def find_by_email(self, email: str) -> Optional[Dict[str, Any]]:
        return self.collection.find_one({"email": email.strip().lower()})

    def insert(self, doc: Dict[str, Any]) -> ObjectId:
        return self.collection.insert_one(doc).inserted_id

    def update_fields(self, user_id: ObjectId, updates: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """Apply `$set` to an existing user and return the updated document, or None."""
        return self.collection.find_one_and_update(
            {"_id": user_id},
            {"$set": updates},
            return_document=ReturnDocument.AFTER,
        )

    def toggle_heart(self, user_id: ObjectId, store_id: ObjectId) -> Optional[Dict[str, Any]]:
        user = self.get(user_id)
        if user is None:
            return None
        operator = "$pull" if store_id in user.get("hearts", []) else "$addToSet"
        return self.collection.find_one_and_update(
            {"_id": user_id},
            {operator: {"hearts": store_id}},
            return_document=ReturnDocument.AFTER,
        )


class StoreRepository:
    def __init__(self, database: Database):
        self.collection = database["store"]
        self.reviews = database["review"]

    def get(self, store_id: ObjectId) -> Optional[Dict[str, Any]]:
        return self.collection.find_one({"_id": store_id})

    def find_slug_matches(self, pattern: str) -> List[Dict[str, Any]]:
        query = {"slug": {"$regex": pattern, "$options": "i"}}
        return list(self.collection.find(query, {"slug": 1}))

    def insert(self, doc: Dict[str, Any]) -> ObjectId:
        return self.collection.insert_one(doc).inserted_id

    def replace_fields(self, store_id: ObjectId, updates: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        return self.collection.find_one_and_update(
            {"_id": store_id},
            {"$set": updates},
            return_document=ReturnDocument.AFTER,
        )

    def list_page(self, page: int = 1, per_page: int = STORES_PER_PAGE) -> Dict[str, Any]:
        page = max(page, 1)
        skip = (page - 1) * per_page
        stores = list(
            self.collection.find().sort("created", DESCENDING).skip(skip).limit(per_page)
        )
        count = self.collection.count_documents({})
        pages = max((count + per_page - 1) // per_page, 1)
        return {"stores": stores, "page": page, "pages": pages, "count": count}

    def get_by_slug_with_reviews(self, slug: str) -> Optional[Dict[str, Any]]:
        store = self.collection.find_one({"slug": slug})
        if store is None:
            return None
        store["reviews"] = list(self.reviews.find({"store": store["_id"]}).sort("created", DESCENDING))
        return store

    def find_many(self, store_ids: List[ObjectId]) -> List[Dict[str, Any]]:
        if not store_ids:
            return []
        return list(self.collection.find({"_id": {"$in": store_ids}}))

    def find_by_tag(self, tag: Optional[str]) -> List[Dict[str, Any]]:
        query: Dict[str, Any] = {"tags": tag} if tag else {"tags.0": {"$exists": True}}
        return list(self.collection.find(query))

    def search(self, text: str, limit: int = 5) -> List[Dict[str, Any]]:
        cursor = self.collection.find(
            {"$text": {"$search": text}},
            {"score": {"$meta": "textScore"}, "name": 1, "slug": 1, "description": 1},
        ).sort([("score", {"$meta": "textScore"})]).limit(limit)
        return list(cursor)

    def near(self, lng: float, lat: float, max_distance: int = 10000, limit: int = 10) -> List[Dict[str, Any]]:
        query = {
            "location": {
                "$near": {
                    "$geometry": {"type": "Point", "coordinates": [lng, lat]},
                    "$maxDistance": max_distance,
                }
            }
        }
        projection = {"slug": 1, "name": 1, "description": 1, "location": 1, "photo": 1}
        return list(self.collection.find(query, projection).limit(limit))


class ReviewRepository:
    def __init__(self, database: Database):
        self.collection = database["review"]

    def insert(self, doc: Dict[str, Any]) -> ObjectId:
        return self.collection.insert_one(doc).inserted_id
