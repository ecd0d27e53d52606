"""
Database Schemas for the BookWorm reading tracker

Each Pydantic model represents a MongoDB collection. The collection name is the
lowercase of the class name (e.g., Book -> "book", UserBook -> "userbook").
References to other documents are stored as the target `_id` string.
"""
from pydantic import BaseModel, Field, field_validator
from typing import Literal, Optional, List

Shelf = Literal["wantToRead", "currentlyReading", "read"]
ReviewStatus = Literal["pending", "approved", "rejected"]
TutorialCategory = Literal["review", "recommendation", "reading-tips", "author-interview", "other"]


def _strip(v):
    return v.strip() if isinstance(v, str) else v


class ReadingGoal(BaseModel):
    year: int
    target: int = Field(0, ge=0)


class LibraryUser(BaseModel):
    name: str = Field(..., description="Full name")
    email: str = Field(..., description="Email address")
    password_hash: str = Field(..., description="Hashed password")
    role: Literal["user", "admin"] = Field("user", description="Role: user or admin")
    photo_url: Optional[str] = Field(None, description="Optional profile photo URL")
    following: List[str] = Field(default_factory=list, description="Ids of users this user follows")
    followers: List[str] = Field(default_factory=list, description="Ids of users following this user")
    reading_goal: ReadingGoal


class ShelvedCount(BaseModel):
    wantToRead: int = Field(0, ge=0)
    currentlyReading: int = Field(0, ge=0)
    read: int = Field(0, ge=0)


class Book(BaseModel):
    title: str = Field(..., min_length=1)
    author: str = Field(..., min_length=1)
    description: str = Field(..., min_length=10)
    genre_id: str = Field(..., description="Reference to Genre _id as string")
    cover_url: Optional[str] = None
    total_pages: int = Field(0, ge=0)
    published_year: Optional[int] = None
    isbn: Optional[str] = None
    average_rating: float = Field(0, ge=0, le=5)
    ratings_count: int = Field(0, ge=0)
    shelved_count: ShelvedCount = Field(default_factory=ShelvedCount)

    @field_validator("title", "author", "description", mode="before")
    @classmethod
    def strip_text(cls, v):
        return _strip(v)


class Genre(BaseModel):
    name: str = Field(..., min_length=1)
    description: Optional[str] = None

    @field_validator("name", "description", mode="before")
    @classmethod
    def strip_text(cls, v):
        return _strip(v)


class Tutorial(BaseModel):
    title: str = Field(..., min_length=1)
    description: Optional[str] = None
    youtube_url: str = Field(..., pattern=r"^(https?://)?(www\.)?(youtube\.com|youtu\.be)/.+")
    thumbnail: Optional[str] = None
    category: TutorialCategory = "other"
    is_active: bool = True

    @field_validator("title", "description", mode="before")
    @classmethod
    def strip_text(cls, v):
        return _strip(v)


class Progress(BaseModel):
    pages_read: int = Field(0, ge=0)
    percentage: float = Field(0, ge=0, le=100)


class UserBook(BaseModel):
    user_id: str
    book_id: str
    shelf: Shelf
    progress: Progress = Field(default_factory=Progress)
    personal_rating: Optional[int] = Field(None, ge=1, le=5)


class Review(BaseModel):
    book_id: str
    user_id: str
    rating: int = Field(..., ge=1, le=5)
    comment: str = Field(..., min_length=10)
    status: ReviewStatus = "pending"

    @field_validator("comment", mode="before")
    @classmethod
    def strip_text(cls, v):
        return _strip(v)
