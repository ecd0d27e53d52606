import mongomock
import pytest
from fastapi.testclient import TestClient

import main
from database import create_document, ensure_indexes, get_db
from schemas import Book, Genre, LibraryUser, ReadingGoal


@pytest.fixture
def db():
    database = mongomock.MongoClient()["bookworm_test"]
    ensure_indexes(database)
    return database


@pytest.fixture
def client(db):
    main.app.dependency_overrides[get_db] = lambda: db
    yield TestClient(main.app)
    main.app.dependency_overrides.clear()


def make_user(db, name: str, role: str = "user", target: int = 0, year: int = 2024) -> str:
    user = LibraryUser(
        name=name,
        email=f"{name.lower()}@example.com",
        password_hash=main.hash_password("secret123"),
        role=role,
        reading_goal=ReadingGoal(year=year, target=target),
    )
    return create_document(db, "libraryuser", user)


def auth(user_id: str) -> dict:
    return {"Authorization": f"Bearer {main.make_token(user_id)}"}


def make_genre(db, name: str) -> str:
    return create_document(db, "genre", Genre(name=name))


def make_book(db, genre_id: str, title: str = "A Book", **fields) -> str:
    book = Book(
        title=title,
        author=fields.pop("author", "Some Author"),
        description=fields.pop("description", "A long enough description."),
        genre_id=genre_id,
        **fields,
    )
    return create_document(db, "book", book)
