"""
MongoDB access helpers.

The client is created once at import time from settings. Handlers go through
`get_collection` so the handle is looked up on every call.
"""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union

from bson import ObjectId
from fastapi import HTTPException
from pydantic import BaseModel
from pymongo import MongoClient

from config import settings

logger = logging.getLogger(__name__)

_client = None
db = None

if settings.DATABASE_URL and settings.DATABASE_NAME:
    _client = MongoClient(settings.DATABASE_URL)
    db = _client[settings.DATABASE_NAME]
    logger.info("Database client created for %s", settings.DATABASE_NAME)
else:
    logger.warning("DATABASE_URL / DATABASE_NAME not set, database not available")


def now_utc() -> datetime:
    return datetime.now(timezone.utc)


def get_collection(name: str):
    if db is None:
        raise HTTPException(status_code=500, detail="Database not available")
    return db[name]


def create_document(collection_name: str, data: Union[BaseModel, dict]) -> str:
    """Insert a document and return its id as a string."""
    if isinstance(data, BaseModel):
        data_dict = data.model_dump()
    else:
        data_dict = data.copy()

    data_dict["created_at"] = now_utc()
    data_dict["updated_at"] = now_utc()

    result = get_collection(collection_name).insert_one(data_dict)
    return str(result.inserted_id)


def get_documents(collection_name: str, filter_dict: Optional[dict] = None, limit: Optional[int] = None) -> List[dict]:
    cursor = get_collection(collection_name).find(filter_dict or {})
    if limit:
        cursor = cursor.limit(limit)
    return list(cursor)


def to_object_id(value: Any) -> Optional[ObjectId]:
    """Parse an id, returning None for anything that is not a valid ObjectId."""
    if isinstance(value, ObjectId):
        return value
    try:
        return ObjectId(str(value))
    except Exception:
        return None


def _clean(value: Any) -> Any:
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, dict):
        return {k: _clean(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_clean(v) for v in value]
    return value


def serialize(doc: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    if not doc:
        return doc
    doc = dict(doc)
    if "_id" in doc:
        doc["id"] = str(doc.pop("_id"))
    return _clean(doc)
