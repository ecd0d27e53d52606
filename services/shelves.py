"""
Per-user shelving state and the book-level shelf counters it drives.

Counters live on the book as `shelved_count.<shelf>` and are moved with single
document `$inc` updates. Decrements only match while the counter is positive,
so they never go below zero.
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from pymongo.database import Database
from pymongo.errors import DuplicateKeyError

from database import fetch_by_ids, serialize, to_object_id, utcnow
from schemas import Progress, UserBook
from services.errors import ConflictError, NotFoundError

logger = logging.getLogger(__name__)

SHELVES = ("wantToRead", "currentlyReading", "read")


def _bump(db: Database, book_id: str, shelf: str, delta: int) -> None:
    filt: Dict[str, Any] = {"_id": to_object_id(book_id, "Book")}
    if delta < 0:
        filt[f"shelved_count.{shelf}"] = {"$gt": 0}
    db["book"].update_one(filt, {"$inc": {f"shelved_count.{shelf}": delta}})


def _move_counters(db: Database, book_id: str, old: Optional[str], new: str) -> None:
    if old == new:
        return
    if old is not None:
        _bump(db, book_id, old, -1)
    _bump(db, book_id, new, 1)


def _enter_shelf(entry: Dict[str, Any], shelf: str, now: datetime) -> Dict[str, Any]:
    """Field changes for an entry arriving on `shelf`."""
    changes: Dict[str, Any] = {"shelf": shelf}
    if entry.get("shelf") == "read" and shelf != "read":
        changes["progress.percentage"] = 0
    if shelf == "currentlyReading" and not entry.get("started_reading"):
        changes["started_reading"] = now
    elif shelf == "read":
        changes["progress.percentage"] = 100
        if not entry.get("finished_reading"):
            changes["finished_reading"] = now
    return changes


def _unchanged(entry: Dict[str, Any], changes: Dict[str, Any]) -> bool:
    for key, value in changes.items():
        current: Any = entry
        for part in key.split("."):
            current = (current or {}).get(part)
        if current != value:
            return False
    return True


def set_shelf(
    db: Database, user_id: str, book_id: str, shelf: str, now: Optional[datetime] = None
) -> Dict[str, Any]:
    if shelf not in SHELVES:
        raise ValueError(f"unknown shelf {shelf!r}")
    now = now or utcnow()
    book = db["book"].find_one({"_id": to_object_id(book_id, "Book")}, {"_id": 1})
    if not book:
        raise NotFoundError("Book not found")
    book_id = str(book["_id"])

    key = {"user_id": user_id, "book_id": book_id}
    entry = db["userbook"].find_one(key)
    if entry is None:
        doc = UserBook(
            **key,
            shelf=shelf,
            progress=Progress(percentage=100 if shelf == "read" else 0),
        ).dict()
        doc.update(
            started_reading=now if shelf == "currentlyReading" else None,
            finished_reading=now if shelf == "read" else None,
            created_at=now,
            updated_at=now,
        )
        try:
            db["userbook"].insert_one(doc)
        except DuplicateKeyError:
            raise ConflictError("Book is already on your shelf")
        _move_counters(db, book_id, None, shelf)
        logger.info("user %s shelved book %s as %s", user_id, book_id, shelf)
        return serialize(doc)

    old = entry["shelf"]
    changes = _enter_shelf(entry, shelf, now)
    if old == shelf and _unchanged(entry, changes):
        return serialize(entry)
    changes["updated_at"] = now
    db["userbook"].update_one({"_id": entry["_id"]}, {"$set": changes})
    _move_counters(db, book_id, old, shelf)
    if old != shelf:
        logger.info("user %s moved book %s from %s to %s", user_id, book_id, old, shelf)
    return serialize(db["userbook"].find_one({"_id": entry["_id"]}))


def update_progress(
    db: Database,
    user_id: str,
    book_id: str,
    pages_read: Optional[int] = None,
    percentage: Optional[float] = None,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    now = now or utcnow()
    book_id = str(to_object_id(book_id, "Book"))
    entry = db["userbook"].find_one({"user_id": user_id, "book_id": book_id})
    if entry is None:
        raise NotFoundError("Book not found in your library")

    changes: Dict[str, Any] = {"updated_at": now}
    if pages_read is not None:
        changes["progress.pages_read"] = pages_read
    moved_from = None
    if percentage is not None:
        changes["progress.percentage"] = min(100, max(0, percentage))
        if percentage >= 100 and entry["shelf"] != "read":
            moved_from = entry["shelf"]
            changes.update(_enter_shelf(entry, "read", now))

    db["userbook"].update_one({"_id": entry["_id"]}, {"$set": changes})
    if moved_from is not None:
        _move_counters(db, book_id, moved_from, "read")
        logger.info("user %s finished book %s", user_id, book_id)
    return serialize(db["userbook"].find_one({"_id": entry["_id"]}))


def get_library(db: Database, user_id: str, shelf: Optional[str] = None) -> Dict[str, List[Dict[str, Any]]]:
    query: Dict[str, Any] = {"user_id": user_id}
    if shelf in SHELVES:
        query["shelf"] = shelf
    entries = list(db["userbook"].find(query).sort("updated_at", -1))

    books = fetch_by_ids(db, "book", [e["book_id"] for e in entries], ["title", "author", "cover_url", "genre_id"])
    genres = fetch_by_ids(db, "genre", [b["genre_id"] for b in books.values()], ["name"])

    library: Dict[str, List[Dict[str, Any]]] = {s: [] for s in SHELVES}
    for e in entries:
        book = books.get(e["book_id"])
        if book is not None:
            book["genre"] = genres.get(book["genre_id"])
        e = serialize(e)
        e["book"] = book
        library[e["shelf"]].append(e)
    return library
