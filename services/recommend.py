from __future__ import annotations

import logging
from collections import Counter
from typing import Any, Dict, Iterable, List

from pymongo import DESCENDING
from pymongo.database import Database

from database import serialize, to_object_id

logger = logging.getLogger(__name__)

MIN_READ_BOOKS = 3
TOP_GENRES = 3
MIN_RATING = 3.5
POPULAR_ORDER = [("average_rating", DESCENDING), ("ratings_count", DESCENDING)]


def rank_genres(genre_ids: Iterable[str], top: int = TOP_GENRES) -> List[str]:
    """Most frequent genres first; equal counts fall back to ascending genre id."""
    counts = Counter(g for g in genre_ids if g)
    ranked = sorted(counts.items(), key=lambda kv: (-kv[1], kv[0]))
    return [genre_id for genre_id, _ in ranked[:top]]


def recommend_books(db: Database, user_id: str, limit: int = 12) -> List[Dict[str, Any]]:
    read_ids = [e["book_id"] for e in db["userbook"].find({"user_id": user_id, "shelf": "read"}, {"book_id": 1})]
    read_oids = [to_object_id(b, "Book") for b in read_ids]

    picks: List[Dict[str, Any]] = []
    if len(read_oids) >= MIN_READ_BOOKS:
        read_books = db["book"].find({"_id": {"$in": read_oids}}, {"genre_id": 1})
        favourites = rank_genres(b.get("genre_id") for b in read_books)
        picks = list(
            db["book"]
            .find({
                "genre_id": {"$in": favourites},
                "_id": {"$nin": read_oids},
                "average_rating": {"$gte": MIN_RATING},
            })
            .sort(POPULAR_ORDER)
            .limit(limit)
        )
        logger.debug("user %s favourite genres %s -> %d picks", user_id, favourites, len(picks))

    if len(picks) < limit:
        seen = read_oids + [b["_id"] for b in picks]
        padding = (
            db["book"]
            .find({"_id": {"$nin": seen}})
            .sort(POPULAR_ORDER)
            .limit(limit - len(picks))
        )
        picks.extend(padding)

    return [serialize(b) for b in picks[:limit]]
