import logging
import math
import re
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone
from typing import List, Literal, Optional
import hashlib

from bson import ObjectId
from bson.errors import InvalidId
from fastapi import FastAPI, File, HTTPException, Depends, Query, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.security import OAuth2PasswordBearer, OAuth2PasswordRequestForm
from pydantic import BaseModel, Field, ValidationError, field_validator
from pymongo import ASCENDING, DESCENDING, ReturnDocument
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError

from config import Settings, get_settings
from database import (
    close,
    connect,
    create_document,
    ensure_indexes,
    fetch_by_ids,
    get_db,
    serialize,
    to_object_id,
    utcnow,
)
from schemas import Book, Genre, LibraryUser, ReadingGoal, Review, Shelf, Tutorial, TutorialCategory
from services.covers import upload_cover
from services.errors import ConflictError, NotFoundError, ServiceError, ValidationFailed
from services.feed import build_feed
from services.follows import toggle_follow
from services.ratings import refresh_book_rating
from services.recommend import recommend_books
from services.shelves import get_library, set_shelf, update_progress
from services.stats import compute_stats
from services.tutorials import YOUTUBE_URL, thumbnail_url, youtube_video_id

settings = get_settings()

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    client = connect(settings)
    app.state.db = client[settings.database_name]
    ensure_indexes(app.state.db)
    try:
        yield
    finally:
        close(client)


app = FastAPI(title="BookWorm API", version="1.0.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=list(settings.cors_origins),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(ServiceError)
async def service_error_handler(request, exc: ServiceError):
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


@app.exception_handler(ValidationError)
async def record_validation_handler(request, exc: ValidationError):
    return JSONResponse(status_code=422, content={"detail": exc.errors(include_url=False, include_context=False)})


# Simple token system: token is user_id|expiry signed with the secret, valid for 24h
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login")


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"


# Utility functions

def hash_password(pw: str) -> str:
    return hashlib.sha256((pw + settings.secret_key).encode()).hexdigest()


def verify_password(pw: str, hashed: str) -> bool:
    return hash_password(pw) == hashed


def make_token(user_id: str) -> str:
    expiry = int((datetime.now(timezone.utc) + timedelta(hours=24)).timestamp())
    payload = f"{user_id}|{expiry}"
    signature = hashlib.sha256((payload + settings.secret_key).encode()).hexdigest()
    return f"{payload}|{signature}"


def parse_token(token: str) -> Optional[str]:
    try:
        user_id, expiry, signature = token.split("|")
    except ValueError:
        return None
    payload = f"{user_id}|{expiry}"
    if hashlib.sha256((payload + settings.secret_key).encode()).hexdigest() != signature:
        return None
    if not expiry.isdigit() or int(expiry) < int(datetime.now(timezone.utc).timestamp()):
        return None
    return user_id


def get_current_user(token: str = Depends(oauth2_scheme), db: Database = Depends(get_db)) -> dict:
    uid = parse_token(token)
    if not uid:
        raise HTTPException(status_code=401, detail="Invalid or expired token")
    try:
        user = db["libraryuser"].find_one({"_id": ObjectId(uid)})
    except InvalidId:
        user = None
    if not user:
        raise HTTPException(status_code=401, detail="User not found")
    return user


def require_admin(current: dict = Depends(get_current_user)) -> dict:
    if current.get("role") != "admin":
        raise HTTPException(status_code=403, detail="Admins only")
    return current


def paginate(db: Database, collection: str, query: dict, sort: list, page: int, limit: int):
    total = db[collection].count_documents(query)
    cursor = db[collection].find(query).sort(sort).skip((page - 1) * limit).limit(limit)
    return list(cursor), {"total": total, "total_pages": math.ceil(total / limit), "current_page": page}


def attach(db: Database, docs: List[dict], key: str, collection: str, fields: List[str], as_: str) -> List[dict]:
    found = fetch_by_ids(db, collection, [d.get(key) for d in docs], fields)
    for d in docs:
        serialize(d)
        d[as_] = found.get(d.get(key))
    return docs


def iname(name: str) -> dict:
    return {"$regex": f"^{re.escape(name)}$", "$options": "i"}


# Health
@app.get("/")
def root():
    return {"name": "BookWorm API", "status": "ok"}


@app.get("/test")
def test_database(db: Database = Depends(get_db)):
    response = {"backend": "running", "database": "not available"}
    try:
        response["collections"] = db.list_collection_names()
        response["database"] = "connected"
    except Exception as e:
        logger.warning("database check failed: %s", e)
        response["database"] = f"error: {str(e)[:80]}"
    return response


# Auth
class RegisterPayload(BaseModel):
    name: str = Field(..., min_length=1)
    email: str = Field(..., min_length=3)
    password: str = Field(..., min_length=6)


@app.post("/auth/register", response_model=Token)
def register(payload: RegisterPayload, db: Database = Depends(get_db)):
    if db["libraryuser"].find_one({"email": payload.email}):
        raise HTTPException(status_code=400, detail="Email already registered")
    user = LibraryUser(
        name=payload.name,
        email=payload.email,
        password_hash=hash_password(payload.password),
        role="user",
        reading_goal=ReadingGoal(year=utcnow().year, target=0),
    )
    uid = create_document(db, "libraryuser", user)
    logger.info("registered user %s", uid)
    return Token(access_token=make_token(uid))


@app.post("/auth/login", response_model=Token)
def login(form_data: OAuth2PasswordRequestForm = Depends(), db: Database = Depends(get_db)):
    user = db["libraryuser"].find_one({"email": form_data.username})
    if not user or not verify_password(form_data.password, user.get("password_hash", "")):
        raise HTTPException(status_code=401, detail="Invalid credentials")
    return Token(access_token=make_token(str(user["_id"])))


@app.get("/me")
def me(current=Depends(get_current_user)):
    return serialize(current)


# Books
class BookPayload(BaseModel):
    title: str = Field(..., min_length=1)
    author: str = Field(..., min_length=1)
    description: str = Field(..., min_length=10)
    genre_id: str
    cover_url: Optional[str] = None
    total_pages: int = Field(0, ge=0)
    published_year: Optional[int] = None
    isbn: Optional[str] = None


class UpdateBookPayload(BaseModel):
    title: Optional[str] = Field(None, min_length=1)
    author: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = Field(None, min_length=10)
    genre_id: Optional[str] = None
    cover_url: Optional[str] = None
    total_pages: Optional[int] = Field(None, ge=0)
    published_year: Optional[int] = None
    isbn: Optional[str] = None


def require_genre(db: Database, genre_id: str) -> dict:
    try:
        genre = db["genre"].find_one({"_id": ObjectId(genre_id)})
    except InvalidId:
        genre = None
    if not genre:
        raise ValidationFailed("Invalid genre")
    return genre


def find_book(db: Database, book_id: str) -> dict:
    book = db["book"].find_one({"_id": to_object_id(book_id, "Book")})
    if not book:
        raise NotFoundError("Book not found")
    return book


def with_genre(db: Database, book: dict) -> dict:
    genre = fetch_by_ids(db, "genre", [book.get("genre_id")], ["name"]).get(book.get("genre_id"))
    book = serialize(book)
    book["genre"] = genre
    return book


@app.get("/books")
def list_books(
    page: int = Query(1, ge=1),
    limit: int = Query(12, ge=1, le=100),
    search: Optional[str] = None,
    genre: Optional[str] = None,
    min_rating: Optional[float] = Query(None, ge=0, le=5),
    max_rating: Optional[float] = Query(None, ge=0, le=5),
    sort_by: Literal["created_at", "title", "author", "average_rating", "ratings_count"] = "created_at",
    sort_order: Literal["asc", "desc"] = "desc",
    db: Database = Depends(get_db),
):
    filt = {}
    if search:
        regex = {"$regex": re.escape(search), "$options": "i"}
        filt["$or"] = [{"title": regex}, {"author": regex}, {"description": regex}]
    if genre:
        filt["genre_id"] = str(to_object_id(genre, "Genre"))
    if min_rating is not None or max_rating is not None:
        filt["average_rating"] = {}
        if min_rating is not None:
            filt["average_rating"]["$gte"] = min_rating
        if max_rating is not None:
            filt["average_rating"]["$lte"] = max_rating

    order = DESCENDING if sort_order == "desc" else ASCENDING
    books, meta = paginate(db, "book", filt, [(sort_by, order)], page, limit)
    genres = fetch_by_ids(db, "genre", [b.get("genre_id") for b in books], ["name"])
    items = []
    for b in books:
        b = serialize(b)
        b["genre"] = genres.get(b.get("genre_id"))
        items.append(b)
    return {"books": items, **meta}


@app.get("/books/recommendations/for-me")
def my_recommendations(
    limit: int = Query(12, ge=1, le=50),
    current=Depends(get_current_user),
    db: Database = Depends(get_db),
):
    return {"recommendations": recommend_books(db, str(current["_id"]), limit=limit)}


@app.get("/books/{book_id}")
def get_book(book_id: str, db: Database = Depends(get_db)):
    book = find_book(db, book_id)
    query = {"book_id": str(book["_id"]), "status": "approved"}
    reviews = list(db["review"].find(query).sort("created_at", DESCENDING))
    attach(db, reviews, "user_id", "libraryuser", ["name", "photo_url"], as_="user")
    return {"book": with_genre(db, book), "reviews": reviews}


@app.post("/books", status_code=201)
def create_book(payload: BookPayload, current=Depends(require_admin), db: Database = Depends(get_db)):
    data = payload.dict()
    data["genre_id"] = str(require_genre(db, payload.genre_id)["_id"])
    book = Book(**data)
    bid = create_document(db, "book", book)
    logger.info("admin %s created book %s", current["_id"], bid)
    return {"message": "Book created successfully", "book": with_genre(db, find_book(db, bid))}


@app.put("/books/{book_id}")
def update_book(
    book_id: str, payload: UpdateBookPayload, current=Depends(require_admin), db: Database = Depends(get_db)
):
    oid = find_book(db, book_id)["_id"]
    update = {k: v for k, v in payload.dict().items() if v is not None}
    if "genre_id" in update:
        update["genre_id"] = str(require_genre(db, update["genre_id"])["_id"])
    update["updated_at"] = utcnow()
    book = db["book"].find_one_and_update({"_id": oid}, {"$set": update}, return_document=ReturnDocument.AFTER)
    logger.info("admin %s updated book %s", current["_id"], book_id)
    return {"message": "Book updated successfully", "book": with_genre(db, book)}


@app.post("/books/{book_id}/cover")
async def upload_book_cover(
    book_id: str,
    file: UploadFile = File(...),
    current=Depends(require_admin),
    db: Database = Depends(get_db),
    config: Settings = Depends(get_settings),
):
    oid = find_book(db, book_id)["_id"]
    body = await file.read()
    url = upload_cover(body, file.content_type, str(oid), config)
    db["book"].update_one({"_id": oid}, {"$set": {"cover_url": url, "updated_at": utcnow()}})
    logger.info("admin %s uploaded cover for book %s", current["_id"], book_id)
    return {"message": "Cover uploaded successfully", "cover_url": url}


@app.delete("/books/{book_id}")
def delete_book(book_id: str, current=Depends(require_admin), db: Database = Depends(get_db)):
    oid = find_book(db, book_id)["_id"]
    book_id = str(oid)
    shelved = db["userbook"].delete_many({"book_id": book_id}).deleted_count
    reviews = db["review"].delete_many({"book_id": book_id}).deleted_count
    db["book"].delete_one({"_id": oid})
    logger.info(
        "admin %s deleted book %s (%d shelf entries, %d reviews)", current["_id"], book_id, shelved, reviews
    )
    return {"message": "Book deleted successfully"}


class ShelfPayload(BaseModel):
    shelf: Shelf


class ProgressPayload(BaseModel):
    pages_read: Optional[int] = Field(None, ge=0)
    percentage: Optional[float] = None


@app.post("/books/{book_id}/shelf")
def shelve_book(book_id: str, payload: ShelfPayload, current=Depends(get_current_user), db: Database = Depends(get_db)):
    entry = set_shelf(db, str(current["_id"]), book_id, payload.shelf)
    return {"message": "Book added to shelf successfully", "user_book": entry}


@app.put("/books/{book_id}/progress")
def book_progress(
    book_id: str, payload: ProgressPayload, current=Depends(get_current_user), db: Database = Depends(get_db)
):
    entry = update_progress(db, str(current["_id"]), book_id, payload.pages_read, payload.percentage)
    return {"message": "Progress updated successfully", "user_book": entry}


# Genres
def find_genre(db: Database, genre_id: str) -> dict:
    genre = db["genre"].find_one({"_id": to_object_id(genre_id, "Genre")})
    if not genre:
        raise NotFoundError("Genre not found")
    return genre


@app.get("/genres")
def list_genres(db: Database = Depends(get_db)):
    return {"genres": [serialize(g) for g in db["genre"].find({}).sort("name", ASCENDING)]}


@app.get("/genres/{genre_id}")
def get_genre(genre_id: str, db: Database = Depends(get_db)):
    return {"genre": serialize(find_genre(db, genre_id))}


@app.post("/genres", status_code=201)
def create_genre(genre: Genre, current=Depends(require_admin), db: Database = Depends(get_db)):
    if db["genre"].find_one({"name": iname(genre.name)}):
        raise ConflictError("Genre already exists")
    gid = create_document(db, "genre", genre)
    logger.info("admin %s created genre %s", current["_id"], genre.name)
    return {"message": "Genre created successfully", "genre": serialize(find_genre(db, gid))}


@app.put("/genres/{genre_id}")
def update_genre(genre_id: str, genre: Genre, current=Depends(require_admin), db: Database = Depends(get_db)):
    oid = find_genre(db, genre_id)["_id"]
    if db["genre"].find_one({"name": iname(genre.name), "_id": {"$ne": oid}}):
        raise ConflictError("Genre with this name already exists")
    updated = db["genre"].find_one_and_update(
        {"_id": oid},
        {"$set": {**genre.dict(), "updated_at": utcnow()}},
        return_document=ReturnDocument.AFTER,
    )
    return {"message": "Genre updated successfully", "genre": serialize(updated)}


@app.delete("/genres/{genre_id}")
def delete_genre(genre_id: str, current=Depends(require_admin), db: Database = Depends(get_db)):
    oid = find_genre(db, genre_id)["_id"]
    in_use = db["book"].count_documents({"genre_id": str(oid)})
    if in_use > 0:
        raise ConflictError(f"Cannot delete genre. {in_use} books are using this genre.")
    db["genre"].delete_one({"_id": oid})
    logger.info("admin %s deleted genre %s", current["_id"], genre_id)
    return {"message": "Genre deleted successfully"}


# Reviews & Ratings
class ReviewPayload(BaseModel):
    book_id: str
    rating: int = Field(..., ge=1, le=5)
    comment: str = Field(..., min_length=10)

    @field_validator("comment", mode="before")
    @classmethod
    def strip_comment(cls, v):
        return v.strip() if isinstance(v, str) else v


class EditReviewPayload(BaseModel):
    rating: Optional[int] = Field(None, ge=1, le=5)
    comment: Optional[str] = Field(None, min_length=10)

    @field_validator("comment", mode="before")
    @classmethod
    def strip_comment(cls, v):
        return v.strip() if isinstance(v, str) else v


class ReviewStatusPayload(BaseModel):
    status: Literal["approved", "rejected"]


def find_review(db: Database, review_id: str) -> dict:
    review = db["review"].find_one({"_id": to_object_id(review_id, "Review")})
    if not review:
        raise NotFoundError("Review not found")
    return review


@app.get("/reviews")
def list_reviews(
    status: Literal["all", "pending", "approved", "rejected"] = "all",
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    current=Depends(require_admin),
    db: Database = Depends(get_db),
):
    query = {} if status == "all" else {"status": status}
    reviews, meta = paginate(db, "review", query, [("created_at", DESCENDING)], page, limit)
    attach(db, reviews, "book_id", "book", ["title", "author", "cover_url"], as_="book")
    attach(db, reviews, "user_id", "libraryuser", ["name", "email", "photo_url"], as_="user")
    return {"reviews": reviews, **meta}


@app.get("/reviews/book/{book_id}")
def book_reviews(book_id: str, db: Database = Depends(get_db)):
    book_id = str(to_object_id(book_id, "Book"))
    reviews = list(db["review"].find({"book_id": book_id, "status": "approved"}).sort("created_at", DESCENDING))
    return {"reviews": attach(db, reviews, "user_id", "libraryuser", ["name", "photo_url"], as_="user")}


@app.post("/reviews", status_code=201)
def add_review(payload: ReviewPayload, current=Depends(get_current_user), db: Database = Depends(get_db)):
    book_id = str(find_book(db, payload.book_id)["_id"])
    review = Review(user_id=str(current["_id"]), book_id=book_id, rating=payload.rating, comment=payload.comment)
    if db["review"].find_one({"user_id": review.user_id, "book_id": review.book_id}):
        raise ConflictError("You have already reviewed this book")
    try:
        rid = create_document(db, "review", review)
    except DuplicateKeyError:
        raise ConflictError("You have already reviewed this book")
    return {
        "message": "Review submitted successfully. It will be visible after admin approval.",
        "review": serialize(find_review(db, rid)),
    }


@app.put("/reviews/{review_id}")
def edit_review(
    review_id: str, payload: EditReviewPayload, current=Depends(get_current_user), db: Database = Depends(get_db)
):
    review = find_review(db, review_id)
    if review["user_id"] != str(current["_id"]):
        raise HTTPException(status_code=403, detail="Forbidden")
    # an edit goes back to moderation
    changes = {k: v for k, v in payload.dict().items() if v is not None}
    updated = db["review"].find_one_and_update(
        {"_id": review["_id"]},
        {"$set": {**changes, "status": "pending", "updated_at": utcnow()}},
        return_document=ReturnDocument.AFTER,
    )
    if review["status"] == "approved":
        refresh_book_rating(db, review["book_id"])
    return {"message": "Review updated successfully", "review": serialize(updated)}


@app.put("/reviews/{review_id}/status")
def moderate_review(
    review_id: str, payload: ReviewStatusPayload, current=Depends(require_admin), db: Database = Depends(get_db)
):
    before = db["review"].find_one_and_update(
        {"_id": to_object_id(review_id, "Review")},
        {"$set": {"status": payload.status, "updated_at": utcnow()}},
        return_document=ReturnDocument.BEFORE,
    )
    if not before:
        raise NotFoundError("Review not found")
    if payload.status == "approved" or before["status"] == "approved":
        refresh_book_rating(db, before["book_id"])
    logger.info("admin %s %s review %s", current["_id"], payload.status, review_id)
    review = attach(db, [find_review(db, review_id)], "book_id", "book", ["title", "author"], as_="book")[0]
    return {"message": f"Review {payload.status} successfully", "review": review}


@app.delete("/reviews/{review_id}")
def delete_review(review_id: str, current=Depends(require_admin), db: Database = Depends(get_db)):
    review = find_review(db, review_id)
    db["review"].delete_one({"_id": review["_id"]})
    refresh_book_rating(db, review["book_id"])
    logger.info("admin %s deleted review %s", current["_id"], review_id)
    return {"message": "Review deleted successfully"}


# Users
class GoalPayload(BaseModel):
    target: int = Field(..., ge=1)


class RolePayload(BaseModel):
    role: Literal["user", "admin"]


@app.get("/users")
def list_users(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    current=Depends(require_admin),
    db: Database = Depends(get_db),
):
    users, meta = paginate(db, "libraryuser", {}, [("created_at", DESCENDING)], page, limit)
    return {"users": [serialize(u) for u in users], **meta}


@app.get("/users/library")
def my_library(shelf: Optional[Shelf] = None, current=Depends(get_current_user), db: Database = Depends(get_db)):
    return {"library": get_library(db, str(current["_id"]), shelf)}


@app.get("/users/stats")
def my_stats(
    year: Optional[int] = Query(None, ge=1900, le=3000),
    current=Depends(get_current_user),
    db: Database = Depends(get_db),
):
    return {"stats": compute_stats(db, current, year)}


@app.put("/users/reading-goal")
def set_reading_goal(payload: GoalPayload, current=Depends(get_current_user), db: Database = Depends(get_db)):
    goal = ReadingGoal(year=utcnow().year, target=payload.target)
    db["libraryuser"].update_one(
        {"_id": current["_id"]}, {"$set": {"reading_goal": goal.dict(), "updated_at": utcnow()}}
    )
    return {"message": "Reading goal updated successfully", "reading_goal": goal.dict()}


@app.get("/users/activity-feed")
def activity_feed(current=Depends(get_current_user), db: Database = Depends(get_db)):
    return {"activities": build_feed(db, current)}


@app.put("/users/{user_id}/role")
def set_role(user_id: str, payload: RolePayload, current=Depends(require_admin), db: Database = Depends(get_db)):
    user = db["libraryuser"].find_one_and_update(
        {"_id": to_object_id(user_id, "User")},
        {"$set": {"role": payload.role, "updated_at": utcnow()}},
        return_document=ReturnDocument.AFTER,
    )
    if not user:
        raise NotFoundError("User not found")
    logger.info("admin %s set role of %s to %s", current["_id"], user_id, payload.role)
    return {"message": "User role updated successfully", "user": serialize(user)}


@app.post("/users/{user_id}/follow")
def follow_user(user_id: str, current=Depends(get_current_user), db: Database = Depends(get_db)):
    following = toggle_follow(db, str(current["_id"]), user_id)
    return {
        "message": "User followed successfully" if following else "User unfollowed successfully",
        "is_following": following,
    }


# Tutorials
class TutorialPayload(BaseModel):
    title: str = Field(..., min_length=1)
    youtube_url: str = Field(..., pattern=YOUTUBE_URL.pattern)
    category: TutorialCategory = "other"
    description: Optional[str] = None
    is_active: bool = True


def find_tutorial(db: Database, tutorial_id: str) -> dict:
    tutorial = db["tutorial"].find_one({"_id": to_object_id(tutorial_id, "Tutorial")})
    if not tutorial:
        raise NotFoundError("Tutorial not found")
    return tutorial


def build_tutorial(payload: TutorialPayload) -> Tutorial:
    video_id = youtube_video_id(payload.youtube_url)
    if not video_id:
        raise ValidationFailed("Invalid YouTube URL")
    return Tutorial(**payload.dict(), thumbnail=thumbnail_url(video_id))


@app.get("/tutorials")
def list_tutorials(
    category: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(12, ge=1, le=100),
    current=Depends(get_current_user),
    db: Database = Depends(get_db),
):
    query = {"is_active": True}
    if category and category != "all":
        query["category"] = category
    tutorials, meta = paginate(db, "tutorial", query, [("created_at", DESCENDING)], page, limit)
    return {"tutorials": [serialize(t) for t in tutorials], **meta}


@app.get("/tutorials/admin")
def admin_tutorials(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    current=Depends(require_admin),
    db: Database = Depends(get_db),
):
    tutorials, meta = paginate(db, "tutorial", {}, [("created_at", DESCENDING)], page, limit)
    return {"tutorials": [serialize(t) for t in tutorials], **meta}


@app.get("/tutorials/{tutorial_id}")
def get_tutorial(tutorial_id: str, current=Depends(get_current_user), db: Database = Depends(get_db)):
    return {"tutorial": serialize(find_tutorial(db, tutorial_id))}


@app.post("/tutorials", status_code=201)
def create_tutorial(payload: TutorialPayload, current=Depends(require_admin), db: Database = Depends(get_db)):
    tid = create_document(db, "tutorial", build_tutorial(payload))
    logger.info("admin %s created tutorial %s", current["_id"], tid)
    return {"message": "Tutorial created successfully", "tutorial": serialize(find_tutorial(db, tid))}


@app.put("/tutorials/{tutorial_id}")
def update_tutorial(
    tutorial_id: str, payload: TutorialPayload, current=Depends(require_admin), db: Database = Depends(get_db)
):
    tutorial = build_tutorial(payload)
    updated = db["tutorial"].find_one_and_update(
        {"_id": to_object_id(tutorial_id, "Tutorial")},
        {"$set": {**tutorial.dict(), "updated_at": utcnow()}},
        return_document=ReturnDocument.AFTER,
    )
    if not updated:
        raise NotFoundError("Tutorial not found")
    return {"message": "Tutorial updated successfully", "tutorial": serialize(updated)}


@app.delete("/tutorials/{tutorial_id}")
def delete_tutorial(tutorial_id: str, current=Depends(require_admin), db: Database = Depends(get_db)):
    res = db["tutorial"].delete_one({"_id": to_object_id(tutorial_id, "Tutorial")})
    if res.deleted_count == 0:
        raise NotFoundError("Tutorial not found")
    logger.info("admin %s deleted tutorial %s", current["_id"], tutorial_id)
    return {"message": "Tutorial deleted successfully"}


@app.patch("/tutorials/{tutorial_id}/toggle")
def toggle_tutorial(tutorial_id: str, current=Depends(require_admin), db: Database = Depends(get_db)):
    tutorial = find_tutorial(db, tutorial_id)
    active = not tutorial.get("is_active", True)
    db["tutorial"].update_one({"_id": tutorial["_id"]}, {"$set": {"is_active": active, "updated_at": utcnow()}})
    tutorial["is_active"] = active
    return {
        "message": f"Tutorial {'activated' if active else 'deactivated'} successfully",
        "tutorial": serialize(tutorial),
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=settings.port)
