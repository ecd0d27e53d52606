"""
MongoDB access for the BookWorm API.

Each pydantic model in `schemas.py` maps to a collection named after the
lowercased class name (Book -> "book"). The database handle is created once at
startup, kept on `app.state.db` and handed to routes through `get_db`.
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Union

from bson import ObjectId
from bson.errors import InvalidId
from fastapi import Request
from pydantic import BaseModel
from pymongo import ASCENDING, MongoClient
from pymongo.database import Database

from config import Settings
from services.errors import NotFoundError

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    # BSON dates come back naive (UTC) from pymongo, keep ours the same
    return datetime.now(timezone.utc).replace(tzinfo=None)


def connect(settings: Settings) -> MongoClient:
    client = MongoClient(settings.mongodb_uri)
    logger.info("mongo client created for database %s", settings.database_name)
    return client


def close(client: MongoClient) -> None:
    client.close()
    logger.info("mongo client closed")


def ensure_indexes(db: Database) -> None:
    db["userbook"].create_index([("user_id", ASCENDING), ("book_id", ASCENDING)], unique=True)
    db["review"].create_index([("user_id", ASCENDING), ("book_id", ASCENDING)], unique=True)
    db["libraryuser"].create_index("email", unique=True)
    db["book"].create_index("genre_id")


def get_db(request: Request) -> Database:
    return request.app.state.db


def to_object_id(value: Union[str, ObjectId], what: str = "Document") -> ObjectId:
    if isinstance(value, ObjectId):
        return value
    try:
        return ObjectId(value)
    except (InvalidId, TypeError):
        raise NotFoundError(f"{what} not found")


def create_document(db: Database, collection_name: str, data: Union[BaseModel, Dict[str, Any]]) -> str:
    if isinstance(data, BaseModel):
        data = data.dict()
    doc = dict(data)
    now = utcnow()
    doc.setdefault("created_at", now)
    doc["updated_at"] = now
    result = db[collection_name].insert_one(doc)
    return str(result.inserted_id)


def fetch_by_ids(
    db: Database, collection_name: str, ids: Iterable[str], fields: List[str]
) -> Dict[str, Dict[str, Any]]:
    """Explicit join: id string -> {"_id", *fields} for every id that exists."""
    oids = []
    for i in set(ids):
        if not i:
            continue
        try:
            oids.append(ObjectId(i))
        except (InvalidId, TypeError):
            continue
    projection = {f: 1 for f in fields}
    return {
        str(d["_id"]): {"_id": str(d["_id"]), **{f: d.get(f) for f in fields}}
        for d in db[collection_name].find({"_id": {"$in": oids}}, projection)
    }


def serialize(doc: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """Make a raw document JSON friendly (ObjectId -> str)."""
    if doc is None:
        return None
    doc["_id"] = str(doc["_id"])
    doc.pop("password_hash", None)
    return doc
