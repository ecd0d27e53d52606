"""
Book rating aggregates.

`average_rating` / `ratings_count` on a book are a materialised view of its
approved reviews. They are rebuilt from scratch on every trigger, so calling
the recompute twice is harmless.
"""
from __future__ import annotations

import logging
import math
from typing import Dict, Iterable, Optional

from pymongo.database import Database
from pymongo.errors import PyMongoError

from database import to_object_id, utcnow

logger = logging.getLogger(__name__)


def round_half_up(value: float, digits: int = 0) -> float:
    scale = 10 ** digits
    return math.floor(value * scale + 0.5) / scale


def compute_rating(ratings: Iterable[int]) -> Dict[str, float]:
    ratings = list(ratings)
    if not ratings:
        return {"average_rating": 0, "ratings_count": 0}
    return {
        "average_rating": round_half_up(sum(ratings) / len(ratings), 1),
        "ratings_count": len(ratings),
    }


def recompute_book_rating(db: Database, book_id: str) -> Dict[str, float]:
    approved = db["review"].find({"book_id": book_id, "status": "approved"}, {"rating": 1})
    aggregate = compute_rating(r["rating"] for r in approved)
    db["book"].update_one(
        {"_id": to_object_id(book_id, "Book")},
        {"$set": {**aggregate, "updated_at": utcnow()}},
    )
    return aggregate


def refresh_book_rating(db: Database, book_id: str) -> Optional[Dict[str, float]]:
    """Best-effort recompute used after review mutations.

    A failure here is logged and swallowed; the review change that triggered it
    stays in place.
    """
    try:
        return recompute_book_rating(db, book_id)
    except PyMongoError:
        logger.exception("rating recompute failed for book %s", book_id)
        return None
