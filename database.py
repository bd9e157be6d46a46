"""
MongoDB access for the admin API.

Connection settings come from the environment (a .env file is honoured):
- DATABASE_URL  -> MongoDB connection string
- DATABASE_NAME -> database to use

When either is missing `db` stays None and every data route answers
"Database not configured".

Each entity lives in its own collection named after the lowercase entity:
"user", "category", "product", "order".
"""
import logging
import os
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Optional, Union

from bson import ObjectId
from bson.errors import InvalidId
from dotenv import load_dotenv
from pydantic import BaseModel
from pymongo import ASCENDING, DESCENDING, MongoClient
from pymongo.database import Database
from pymongo.errors import PyMongoError

from errors import StoreFailure

load_dotenv()

logger = logging.getLogger(__name__)

DATABASE_URL = os.getenv("DATABASE_URL")
DATABASE_NAME = os.getenv("DATABASE_NAME")

USERS = "user"
CATEGORIES = "category"
PRODUCTS = "product"
ORDERS = "order"

# Enforced by unique indexes; the pre-checks in catalog.py are only a shortcut.
UNIQUE_FIELDS = {
    USERS: "email",
    CATEGORIES: "name",
    PRODUCTS: "productName",
}

client: Optional[MongoClient] = None
db: Optional[Database] = None

if DATABASE_URL and DATABASE_NAME:
    client = MongoClient(DATABASE_URL, serverSelectionTimeoutMS=5000)
    db = client[DATABASE_NAME]


def get_db() -> Database:
    """FastAPI dependency returning the configured database handle."""
    if db is None:
        raise StoreFailure("Database not configured")
    return db


@contextmanager
def store_operation(action: str):
    """Turn driver errors raised inside the block into StoreFailure."""
    try:
        yield
    except PyMongoError as exc:
        logger.error("%s failed: %s", action, exc, exc_info=True)
        raise StoreFailure(f"Failed to {action}") from exc


def ensure_indexes(database: Database) -> None:
    with store_operation("create indexes"):
        for collection_name, field in UNIQUE_FIELDS.items():
            database[collection_name].create_index([(field, ASCENDING)], unique=True)
        for collection_name in (USERS, CATEGORIES, PRODUCTS, ORDERS):
            database[collection_name].create_index([("created_at", DESCENDING)])
    logger.info("Indexes ensured on %s", database.name)


def to_object_id(value) -> Optional[ObjectId]:
    try:
        return ObjectId(value)
    except (InvalidId, TypeError):
        return None


def serialize(doc: dict) -> dict:
    doc = dict(doc)
    doc["id"] = str(doc.pop("_id"))
    return doc


def create_document(database: Database, collection_name: str, data: Union[BaseModel, dict]) -> dict:
    """Insert one record stamped with created_at/updated_at and return it serialized.

    Driver errors propagate untouched so callers can tell a DuplicateKeyError
    apart from other failures.
    """
    if isinstance(data, BaseModel):
        data = data.model_dump()
    now = datetime.now(timezone.utc)
    doc = {**data, "created_at": now, "updated_at": now}
    doc["_id"] = database[collection_name].insert_one(doc).inserted_id
    return serialize(doc)
