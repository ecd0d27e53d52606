"""
Yearly reading summary for a single user.

`summarize_entries` is a pure projection over already-fetched shelf entries,
books and genre names; `compute_stats` does the fetching.
"""
from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional

from pymongo.database import Database

from database import fetch_by_ids, utcnow
from services.ratings import round_half_up


def summarize_entries(
    entries: List[Mapping[str, Any]],
    books: Mapping[str, Mapping[str, Any]],
    genre_names: Mapping[str, str],
    year: int,
    goal: Optional[Mapping[str, Any]] = None,
) -> Dict[str, Any]:
    stats: Dict[str, Any] = {
        "total_books": len(entries),
        "books_read": 0,
        "books_reading": 0,
        "books_want_to_read": 0,
        "total_pages": 0,
        "books_this_year": 0,
        "genre_breakdown": {},
        "monthly_progress": [0] * 12,
    }
    for entry in entries:
        shelf = entry.get("shelf")
        if shelf == "currentlyReading":
            stats["books_reading"] += 1
            continue
        if shelf == "wantToRead":
            stats["books_want_to_read"] += 1
            continue
        if shelf != "read":
            continue

        stats["books_read"] += 1
        book = books.get(entry.get("book_id")) or {}
        stats["total_pages"] += book.get("total_pages") or 0

        finished = entry.get("finished_reading")
        if finished is not None and finished.year == year:
            stats["books_this_year"] += 1
            stats["monthly_progress"][finished.month - 1] += 1

        name = genre_names.get(book.get("genre_id")) or "Unknown"
        stats["genre_breakdown"][name] = stats["genre_breakdown"].get(name, 0) + 1

    goal = dict(goal or {})
    target = goal.get("target") or 0
    goal.setdefault("year", year)
    goal["target"] = target
    goal["completed"] = stats["books_this_year"]
    goal["percentage"] = int(round_half_up(stats["books_this_year"] / target * 100)) if target > 0 else 0
    stats["reading_goal"] = goal
    return stats


def compute_stats(db: Database, user: Mapping[str, Any], year: Optional[int] = None) -> Dict[str, Any]:
    year = year or utcnow().year
    user_id = str(user["_id"])
    entries = list(db["userbook"].find({"user_id": user_id}))

    books = fetch_by_ids(db, "book", [e["book_id"] for e in entries], ["total_pages", "genre_id"])
    genres = fetch_by_ids(db, "genre", [b["genre_id"] for b in books.values()], ["name"])
    genre_names = {gid: g["name"] for gid, g in genres.items()}

    return summarize_entries(entries, books, genre_names, year, user.get("reading_goal"))
