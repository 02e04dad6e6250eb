"""
Store write path and store-facing reads.

Creating a store always derives a slug; editing one derives a new slug only
when the name actually changed. The slug is settled before anything is
written, so a failing slug lookup leaves the collection untouched.
"""

import logging
from typing import Any, Dict, List, Optional

from bson import ObjectId
from pydantic import ValidationError

from errors import Forbidden, NotFound, from_pydantic
from repositories import ReviewRepository, StoreRepository, UserRepository
from schemas import Review, Store
from slugs import SlugGenerator

logger = logging.getLogger(__name__)

NOT_OWNER = "You must own a store in order to edit it!"


def store_fields(name: Optional[str], description: Optional[str], tags: Optional[List[str]], address: Optional[str], lng: Optional[float], lat: Optional[float]) -> Dict[str, Any]:
    """Shape submitted form values like a store document."""
    coordinates = [lng, lat] if lng is not None and lat is not None else []
    return {
        "name": name,
        "description": description,
        "tags": tags or [],
        "location": {"type": "Point", "coordinates": coordinates, "address": address},
    }


class StoreService:
    def __init__(self, stores: StoreRepository, users: UserRepository, reviews: ReviewRepository):
        self.stores = stores
        self.users = users
        self.reviews = reviews
        self.slugs = SlugGenerator(stores)

    def _validate(self, data: Dict[str, Any]) -> Store:
        try:
            return Store.model_validate(data)
        except ValidationError as exc:
            body = {k: v for k, v in data.items() if k not in ("author", "_id")}
            raise from_pydantic(exc, body=body)

    def create(self, author_id: ObjectId, fields: Dict[str, Any], photo: Optional[str] = None) -> Dict[str, Any]:
        store = self._validate({**fields, "author": author_id, "photo": photo})
        store.slug = self.slugs.generate(store.name)
        doc = store.model_dump()
        doc["_id"] = self.stores.insert(doc)
        logger.info("Created store %s with slug %r", doc["_id"], doc["slug"])
        return doc

    def update(self, store_id: ObjectId, user_id: ObjectId, fields: Dict[str, Any], photo: Optional[str] = None) -> Dict[str, Any]:
        existing = self.stores.get(store_id)
        if existing is None:
            raise NotFound("Store not found")
        if existing.get("author") != user_id:
            raise Forbidden(NOT_OWNER)

        merged = {**existing, **fields}
        if photo:
            merged["photo"] = photo
        store = self._validate(merged)

        needs_slug = store.name != existing.get("name") or not existing.get("slug")
        if needs_slug:
            store.slug = self.slugs.generate(store.name)
        else:
            store.slug = existing["slug"]

        # created and author never change on edit
        updates = store.model_dump(exclude={"created", "author"})
        updated = self.stores.replace_fields(store_id, updates)
        if updated is None:
            raise NotFound("Store not found")
        logger.info("Updated store %s (slug %r%s)", store_id, store.slug, ", renamed" if needs_slug else "")
        return updated

    def get_by_slug(self, slug: str) -> Dict[str, Any]:
        store = self.stores.get_by_slug_with_reviews(slug)
        if store is None:
            raise NotFound("Store not found")
        return store

    def toggle_heart(self, user_id: ObjectId, store_id: ObjectId) -> Dict[str, Any]:
        if self.stores.get(store_id) is None:
            raise NotFound("Store not found")
        user = self.users.toggle_heart(user_id, store_id)
        if user is None:
            raise NotFound("User not found")
        return user

    def hearted(self, user: Dict[str, Any]) -> List[Dict[str, Any]]:
        return self.stores.find_many(list(user.get("hearts", [])))

    def add_review(self, author_id: ObjectId, store_id: ObjectId, text: str, rating: int) -> Dict[str, Any]:
        if self.stores.get(store_id) is None:
            raise NotFound("Store not found")
        try:
            review = Review(author=author_id, store=store_id, text=text, rating=rating)
        except ValidationError as exc:
            raise from_pydantic(exc, body={"text": text, "rating": rating})
        doc = review.model_dump()
        doc["_id"] = self.reviews.insert(doc)
        return doc
