from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any, Dict, List, Mapping, Optional

from pymongo import DESCENDING
from pymongo.database import Database

from database import fetch_by_ids, utcnow

FEED_WINDOW = timedelta(days=30)
FEED_SIZE = 20


def build_feed(db: Database, user: Mapping[str, Any], now: Optional[datetime] = None) -> List[Dict[str, Any]]:
    """Recent shelf moves and approved reviews by the people `user` follows.

    Newest first, at most FEED_SIZE events from the last FEED_WINDOW.
    """
    following = list(user.get("following") or [])
    if not following:
        return []

    since = (now or utcnow()) - FEED_WINDOW
    shelf_moves = list(
        db["userbook"]
        .find({"user_id": {"$in": following}, "updated_at": {"$gte": since}})
        .sort("updated_at", DESCENDING)
        .limit(FEED_SIZE)
    )
    reviews = list(
        db["review"]
        .find({"user_id": {"$in": following}, "status": "approved", "created_at": {"$gte": since}})
        .sort("created_at", DESCENDING)
        .limit(FEED_SIZE)
    )

    users = fetch_by_ids(db, "libraryuser", [d["user_id"] for d in shelf_moves + reviews], ["name", "photo_url"])
    books = fetch_by_ids(db, "book", [d["book_id"] for d in shelf_moves + reviews], ["title", "author", "cover_url"])

    activities: List[Dict[str, Any]] = []
    for entry in shelf_moves:
        activities.append({
            "type": "shelf_update",
            "user": users.get(entry["user_id"]),
            "book": books.get(entry["book_id"]),
            "shelf": entry["shelf"],
            "timestamp": entry["updated_at"],
        })
    for review in reviews:
        activities.append({
            "type": "review",
            "user": users.get(review["user_id"]),
            "book": books.get(review["book_id"]),
            "rating": review["rating"],
            "timestamp": review["created_at"],
        })

    activities.sort(key=lambda a: a["timestamp"], reverse=True)
    return activities[:FEED_SIZE]
