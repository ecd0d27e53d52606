from datetime import datetime

import pytest
from bson import ObjectId

from services.errors import NotFoundError
from services.shelves import SHELVES, get_library, set_shelf, update_progress
from tests.conftest import make_book, make_genre

T0 = datetime(2024, 3, 1, 9, 0, 0)
T1 = datetime(2024, 3, 5, 9, 0, 0)
T2 = datetime(2024, 3, 9, 9, 0, 0)


@pytest.fixture
def book_id(db):
    return make_book(db, make_genre(db, "Fiction"), total_pages=320)


def _counts(db, book_id):
    return db["book"].find_one({"_id": ObjectId(book_id)})["shelved_count"]


def test_first_shelve_as_read(db, book_id) -> None:
    entry = set_shelf(db, "u1", book_id, "read", now=T0)

    assert entry["shelf"] == "read"
    assert entry["progress"]["percentage"] == 100
    assert entry["finished_reading"] == T0
    assert entry["started_reading"] is None
    assert _counts(db, book_id) == {"wantToRead": 0, "currentlyReading": 0, "read": 1}


def test_first_shelve_as_currently_reading(db, book_id) -> None:
    entry = set_shelf(db, "u1", book_id, "currentlyReading", now=T0)

    assert entry["started_reading"] == T0
    assert entry["progress"]["percentage"] == 0
    assert _counts(db, book_id)["currentlyReading"] == 1


def test_moving_shelves_moves_counters(db, book_id) -> None:
    set_shelf(db, "u1", book_id, "wantToRead", now=T0)
    set_shelf(db, "u1", book_id, "currentlyReading", now=T1)
    entry = set_shelf(db, "u1", book_id, "read", now=T2)

    assert _counts(db, book_id) == {"wantToRead": 0, "currentlyReading": 0, "read": 1}
    assert entry["started_reading"] == T1
    assert entry["finished_reading"] == T2
    assert entry["progress"]["percentage"] == 100
    assert db["userbook"].count_documents({"user_id": "u1", "book_id": book_id}) == 1


def test_started_reading_is_never_overwritten(db, book_id) -> None:
    set_shelf(db, "u1", book_id, "currentlyReading", now=T0)
    set_shelf(db, "u1", book_id, "wantToRead", now=T1)
    entry = set_shelf(db, "u1", book_id, "currentlyReading", now=T2)

    assert entry["started_reading"] == T0


def test_same_shelf_keeps_counters(db, book_id) -> None:
    set_shelf(db, "u1", book_id, "wantToRead", now=T0)
    set_shelf(db, "u1", book_id, "wantToRead", now=T1)

    assert _counts(db, book_id)["wantToRead"] == 1


def test_counters_never_go_negative(db, book_id) -> None:
    set_shelf(db, "u1", book_id, "wantToRead", now=T0)
    db["book"].update_one({"_id": ObjectId(book_id)}, {"$set": {"shelved_count.wantToRead": 0}})

    set_shelf(db, "u1", book_id, "read", now=T1)

    assert _counts(db, book_id) == {"wantToRead": 0, "currentlyReading": 0, "read": 1}


def test_shelve_missing_book(db) -> None:
    with pytest.raises(NotFoundError):
        set_shelf(db, "u1", str(ObjectId()), "read")


def test_progress_requires_entry(db, book_id) -> None:
    with pytest.raises(NotFoundError):
        update_progress(db, "u1", book_id, percentage=10)


def test_progress_is_clamped(db, book_id) -> None:
    set_shelf(db, "u1", book_id, "currentlyReading", now=T0)

    entry = update_progress(db, "u1", book_id, pages_read=40, percentage=-5, now=T1)

    assert entry["progress"] == {"pages_read": 40, "percentage": 0}
    assert entry["shelf"] == "currentlyReading"


def test_progress_at_100_finishes_once(db, book_id) -> None:
    set_shelf(db, "u1", book_id, "currentlyReading", now=T0)

    entry = update_progress(db, "u1", book_id, percentage=120, now=T1)
    assert entry["shelf"] == "read"
    assert entry["progress"]["percentage"] == 100
    assert entry["finished_reading"] == T1

    again = update_progress(db, "u1", book_id, percentage=100, now=T2)
    assert again["finished_reading"] == T1
    assert _counts(db, book_id) == {"wantToRead": 0, "currentlyReading": 0, "read": 1}


def test_progress_finish_from_want_to_read(db, book_id) -> None:
    set_shelf(db, "u1", book_id, "wantToRead", now=T0)

    update_progress(db, "u1", book_id, percentage=100, now=T1)

    assert _counts(db, book_id) == {"wantToRead": 0, "currentlyReading": 0, "read": 1}


def test_library_groups_by_shelf(db, book_id) -> None:
    other = make_book(db, make_genre(db, "Poetry"), title="Verses")
    set_shelf(db, "u1", book_id, "read", now=T0)
    set_shelf(db, "u1", other, "wantToRead", now=T1)

    library = get_library(db, "u1")

    assert [e["book"]["title"] for e in library["read"]] == ["A Book"]
    assert library["wantToRead"][0]["book"]["genre"]["name"] == "Poetry"
    assert library["currentlyReading"] == []
    assert list(get_library(db, "u1", shelf="read")["wantToRead"]) == []


@pytest.mark.parametrize("start", SHELVES)
@pytest.mark.parametrize("target", SHELVES)
def test_every_move_keeps_entry_consistent(db, book_id, start, target) -> None:
    set_shelf(db, "u1", book_id, start, now=T0)

    entry = set_shelf(db, "u1", book_id, target, now=T1)

    assert entry["shelf"] == target
    assert (entry["progress"]["percentage"] == 100) == (target == "read")
    if target == "read":
        assert entry["finished_reading"] is not None
    assert _counts(db, book_id) == {s: int(s == target) for s in SHELVES}


def test_leaving_read_resets_percentage(db, book_id) -> None:
    set_shelf(db, "u1", book_id, "read", now=T0)

    entry = set_shelf(db, "u1", book_id, "wantToRead", now=T1)

    assert entry["progress"]["percentage"] == 0
    assert entry["finished_reading"] == T0


def test_same_shelf_without_changes_writes_nothing(db, book_id) -> None:
    set_shelf(db, "u1", book_id, "currentlyReading", now=T0)

    entry = set_shelf(db, "u1", book_id, "currentlyReading", now=T1)

    assert entry["updated_at"] == T0
    assert db["userbook"].find_one({"user_id": "u1"})["updated_at"] == T0


def test_reshelving_read_restores_full_progress(db, book_id) -> None:
    set_shelf(db, "u1", book_id, "read", now=T0)
    update_progress(db, "u1", book_id, percentage=40, now=T1)

    entry = set_shelf(db, "u1", book_id, "read", now=T2)

    assert entry["progress"]["percentage"] == 100
    assert entry["updated_at"] == T2
    assert entry["finished_reading"] == T0


def test_id_spelling_does_not_split_entries(db, book_id) -> None:
    set_shelf(db, "u1", book_id, "currentlyReading", now=T0)

    entry = set_shelf(db, "u1", book_id.upper(), "read", now=T1)
    update_progress(db, "u1", book_id.upper(), pages_read=10, now=T2)

    assert entry["book_id"] == book_id
    assert db["userbook"].count_documents({"user_id": "u1"}) == 1
    assert _counts(db, book_id) == {"wantToRead": 0, "currentlyReading": 0, "read": 1}
