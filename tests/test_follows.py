import pytest
from bson import ObjectId

from services.errors import ConflictError, NotFoundError
from services.follows import toggle_follow
from tests.conftest import make_user


def _user(db, user_id):
    return db["libraryuser"].find_one({"_id": ObjectId(user_id)})


def test_follow_then_unfollow_is_symmetric(db) -> None:
    a = make_user(db, "Alice")
    b = make_user(db, "Bob")

    assert toggle_follow(db, a, b) is True
    assert _user(db, a)["following"] == [b]
    assert _user(db, b)["followers"] == [a]
    assert _user(db, b)["following"] == []

    assert toggle_follow(db, a, b) is False
    assert _user(db, a)["following"] == []
    assert _user(db, b)["followers"] == []


def test_cannot_follow_self(db) -> None:
    a = make_user(db, "Alice")
    with pytest.raises(ConflictError):
        toggle_follow(db, a, a)


def test_unknown_target(db) -> None:
    a = make_user(db, "Alice")
    with pytest.raises(NotFoundError):
        toggle_follow(db, a, str(ObjectId()))
    with pytest.raises(NotFoundError):
        toggle_follow(db, a, "not-an-id")


def test_upper_case_ids_name_the_same_user(db) -> None:
    a = make_user(db, "Alice")
    b = make_user(db, "Bob")

    assert toggle_follow(db, a, b.upper()) is True
    assert _user(db, a)["following"] == [b]
    assert toggle_follow(db, a, b) is False
    with pytest.raises(ConflictError):
        toggle_follow(db, a, a.upper())
