"""
Catalog store: users, categories and products.

Every entity collection exposes the same operations (create, get, list,
update, delete). Listings are newest-first, paginated with skip/limit and
filtered by a case-insensitive substring search over a fixed set of fields.
"""
import logging
import math
import re
from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel
from pymongo import ReturnDocument
from pymongo.collection import Collection
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError

from database import (
    CATEGORIES,
    PRODUCTS,
    UNIQUE_FIELDS,
    USERS,
    create_document,
    serialize,
    store_operation,
    to_object_id,
)
from errors import Conflict, NotFound, ValidationError

logger = logging.getLogger(__name__)

NEWEST_FIRST = [("created_at", -1), ("_id", -1)]


def substring_pattern(text: str) -> dict:
    return {"$regex": re.escape(text), "$options": "i"}


def price_text(value) -> str:
    """Print a price the way MongoDB's $toString does: 12.0 -> "12", 12.5 -> "12.5"."""
    text = repr(float(value))
    return text[:-2] if text.endswith(".0") else text



def paginate(
    collection: Collection,
    query: dict,
    page: int,
    limit: int,
    total_key: str,
) -> Tuple[List[dict], dict]:
    """Return one newest-first page of `query` plus its pagination metadata."""
    if page < 1:
        raise ValidationError("page must be at least 1")
    if limit < 1:
        raise ValidationError("limit must be at least 1")

    skip = (page - 1) * limit
    with store_operation(f"list {collection.name}"):
        cursor = collection.find(query).sort(NEWEST_FIRST).skip(skip).limit(limit)
        items = [serialize(doc) for doc in cursor]
        total = collection.count_documents(query)

    total_pages = math.ceil(total / limit)
    pagination = {
        "currentPage": page,
        "totalPages": total_pages,
        total_key: total,
        "hasNext": page < total_pages,
        "hasPrev": page > 1,
        "limit": limit,
    }
    return items, pagination


class EntityCollection:
    collection_name: str = ""
    label: str = ""
    plural: str = ""
    search_fields: Tuple[str, ...] = ()

    def __init__(self, db: Database):
        self.db = db
        self.collection = db[self.collection_name]

    @property
    def unique_field(self) -> str:
        return UNIQUE_FIELDS[self.collection_name]

    def conflict_message(self) -> str:
        return f"{self.label} with this {self.unique_field} already exists"

    def not_found_message(self) -> str:
        return f"{self.label} not found"

    def search_query(self, search: Optional[str]) -> dict:
        if not search:
            return {}
        pattern = substring_pattern(search)
        return {"$or": [{field: pattern} for field in self.search_fields]}

    def decorate(self, items: List[dict]) -> List[dict]:
        return items

    def create(self, payload: BaseModel) -> dict:
        data = payload.model_dump()
        value = data[self.unique_field]
        with store_operation(f"create {self.label.lower()}"):
            if self.collection.find_one({self.unique_field: value}, {"_id": 1}):
                logger.warning("Duplicate %s %s=%r", self.label.lower(), self.unique_field, value)
                raise Conflict(self.conflict_message())
            try:
                record = create_document(self.db, self.collection_name, data)
            except DuplicateKeyError:
                logger.warning("Duplicate %s %s=%r caught by index", self.label.lower(), self.unique_field, value)
                raise Conflict(self.conflict_message())
        logger.info("Created %s %s", self.label.lower(), record["id"])
        return self.decorate([record])[0]

    def _lookup_id(self, record_id: str):
        oid = to_object_id(record_id)
        if oid is None:
            logger.warning("%s id %r is not a valid ObjectId", self.label, record_id)
            raise NotFound(self.not_found_message())
        return oid

    def get(self, record_id: str) -> dict:
        oid = self._lookup_id(record_id)
        with store_operation(f"fetch {self.label.lower()}"):
            doc = self.collection.find_one({"_id": oid})
        if doc is None:
            raise NotFound(self.not_found_message())
        return self.decorate([serialize(doc)])[0]

    def list(self, page: int = 1, limit: int = 10, search: Optional[str] = None) -> Tuple[List[dict], dict]:
        items, pagination = paginate(
            self.collection,
            self.search_query(search),
            page,
            limit,
            total_key=f"total{self.plural}",
        )
        return self.decorate(items), pagination

    def update(self, record_id: str, changes: BaseModel) -> dict:
        oid = self._lookup_id(record_id)
        fields = changes.model_dump(exclude_unset=True, exclude_none=True)
        fields["updated_at"] = datetime.now(timezone.utc)
        with store_operation(f"update {self.label.lower()}"):
            try:
                doc = self.collection.find_one_and_update(
                    {"_id": oid},
                    {"$set": fields},
                    return_document=ReturnDocument.AFTER,
                )
            except DuplicateKeyError:
                raise Conflict(self.conflict_message())
        if doc is None:
            logger.warning("Update of missing %s %s", self.label.lower(), record_id)
            raise NotFound(self.not_found_message())
        logger.info("Updated %s %s", self.label.lower(), record_id)
        return self.decorate([serialize(doc)])[0]

    def delete(self, record_id: str) -> dict:
        oid = self._lookup_id(record_id)
        with store_operation(f"delete {self.label.lower()}"):
            doc = self.collection.find_one_and_delete({"_id": oid})
        if doc is None:
            logger.warning("Delete of missing %s %s", self.label.lower(), record_id)
            raise NotFound(self.not_found_message())
        logger.info("Deleted %s %s", self.label.lower(), record_id)
        return self.decorate([serialize(doc)])[0]


class UserCollection(EntityCollection):
    collection_name = USERS
    label = "User"
    plural = "Users"
    search_fields = ("name", "email", "phone")


class CategoryCollection(EntityCollection):
    collection_name = CATEGORIES
    label = "Category"
    plural = "Categories"
    search_fields = ("name", "description")


class ProductCollection(EntityCollection):
    collection_name = PRODUCTS
    label = "Product"
    plural = "Products"
    search_fields = ("productName",)

    def conflict_message(self) -> str:
        return "Product with this name already exists"

    def search_query(self, search: Optional[str]) -> dict:
        if not search:
            return {}
        pattern = substring_pattern(search)
        clauses: List[dict] = [{"productName": pattern}]

        # price is numeric, so match the search text against its printed form
        needle = search.lower()
        with store_operation("search prices"):
            priced_ids = [
                doc["_id"]
                for doc in self.collection.find({"price": {"$exists": True}}, {"price": 1})
                if needle in price_text(doc["price"]).lower()
            ]
        if priced_ids:
            clauses.append({"_id": {"$in": priced_ids}})

        with store_operation("search categories"):
            category_ids = [
                str(doc["_id"]) for doc in self.db[CATEGORIES].find({"name": pattern}, {"_id": 1})
            ]
        if category_ids:
            clauses.append({"categoryId": {"$in": category_ids}})
        return {"$or": clauses}

    def decorate(self, items: List[dict]) -> List[dict]:
        """Attach the referenced category's name; None when it no longer exists."""
        ids = {to_object_id(item.get("categoryId")) for item in items}
        ids.discard(None)
        names: Dict[str, str] = {}
        if ids:
            with store_operation("resolve categories"):
                for doc in self.db[CATEGORIES].find({"_id": {"$in": list(ids)}}, {"name": 1}):
                    names[str(doc["_id"])] = doc["name"]
        for item in items:
            item["categoryName"] = names.get(item.get("categoryId"))
        return items


class CatalogStore:
    """The three catalog collections bound to one database handle."""

    def __init__(self, db: Database):
        self.users = UserCollection(db)
        self.categories = CategoryCollection(db)
        self.products = ProductCollection(db)
