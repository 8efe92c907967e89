"""
Database helpers

MongoDB connection plus small document helpers. The connection is created at
import time when DATABASE_URL and DATABASE_NAME are set; otherwise `db` stays
None and callers report the database as unavailable.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel
from pymongo import MongoClient

from config import DATABASE_NAME, DATABASE_URL

db = None
client = None

if DATABASE_URL and DATABASE_NAME:
    client = MongoClient(DATABASE_URL)
    db = client[DATABASE_NAME]


def now_utc() -> datetime:
    return datetime.now(timezone.utc)


def clean(doc: Optional[dict]) -> Optional[dict]:
    """Make a Mongo document JSON serializable."""
    if doc is not None and "_id" in doc:
        doc["_id"] = str(doc["_id"])
    return doc


def create_document(database, collection_name: str, data: Union[BaseModel, dict]) -> dict:
    """Insert a document, stamping created_at/updated_at. Returns the stored document."""
    doc = data.model_dump() if isinstance(data, BaseModel) else dict(data)
    doc["created_at"] = now_utc()
    doc["updated_at"] = now_utc()
    inserted_id = database[collection_name].insert_one(doc).inserted_id
    doc["_id"] = str(inserted_id)
    return doc


def get_documents(database, collection_name: str, filter_dict: Optional[Dict[str, Any]] = None, limit: Optional[int] = None) -> List[dict]:
    cursor = database[collection_name].find(filter_dict or {})
    if limit:
        cursor = cursor.limit(limit)
    return [clean(d) for d in cursor]
