import logging

from bson import ObjectId
from pymongo.errors import OperationFailure

from database import create_document
from schemas import Review
from services.ratings import compute_rating, recompute_book_rating, refresh_book_rating, round_half_up
from tests.conftest import make_book, make_genre


def _review(db, book_id: str, rating: int, status: str = "approved") -> str:
    user_id = str(ObjectId())
    return create_document(
        db, "review", Review(book_id=book_id, user_id=user_id, rating=rating, comment="Really enjoyed it", status=status)
    )


def test_compute_rating_empty() -> None:
    assert compute_rating([]) == {"average_rating": 0, "ratings_count": 0}


def test_compute_rating_rounds_half_up() -> None:
    assert compute_rating([3, 3, 4, 3]) == {"average_rating": 3.3, "ratings_count": 4}
    assert compute_rating([5, 4, 4]) == {"average_rating": 4.3, "ratings_count": 3}
    assert round_half_up(2.5) == 3


def test_recompute_counts_only_approved(db) -> None:
    book_id = make_book(db, make_genre(db, "Fiction"))
    _review(db, book_id, 5)
    _review(db, book_id, 4)
    _review(db, book_id, 1, status="pending")
    _review(db, book_id, 1, status="rejected")

    result = recompute_book_rating(db, book_id)

    assert result == {"average_rating": 4.5, "ratings_count": 2}
    book = db["book"].find_one({"_id": ObjectId(book_id)})
    assert book["average_rating"] == 4.5
    assert book["ratings_count"] == 2


def test_recompute_resets_when_nothing_approved(db) -> None:
    book_id = make_book(db, make_genre(db, "Fiction"), average_rating=4.0, ratings_count=3)
    _review(db, book_id, 2, status="pending")

    recompute_book_rating(db, book_id)

    book = db["book"].find_one({"_id": ObjectId(book_id)})
    assert (book["average_rating"], book["ratings_count"]) == (0, 0)


def test_recompute_is_idempotent(db) -> None:
    book_id = make_book(db, make_genre(db, "Fiction"))
    _review(db, book_id, 3)
    first = recompute_book_rating(db, book_id)
    assert recompute_book_rating(db, book_id) == first


class _BrokenCollection:
    def find(self, *args, **kwargs):
        raise OperationFailure("store unavailable")


class _BrokenDb:
    def __getitem__(self, name):
        return _BrokenCollection()


def test_refresh_swallows_store_errors(caplog) -> None:
    with caplog.at_level(logging.ERROR):
        assert refresh_book_rating(_BrokenDb(), str(ObjectId())) is None
    assert "rating recompute failed" in caplog.text
