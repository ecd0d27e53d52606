"""
Runtime configuration for the BookWorm API.

Values come from the process environment, optionally seeded from a `.env`
file next to the working directory.
"""
from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import List, Optional

from dotenv import load_dotenv


def _split_csv(raw: str) -> List[str]:
    return [p.strip() for p in raw.split(",") if p.strip()]


@dataclass(frozen=True)
class Settings:
    mongodb_uri: str = "mongodb://localhost:27017"
    database_name: str = "bookworm"
    secret_key: str = "dev-secret"
    cors_origins: tuple = ("*",)
    log_level: str = "info"
    s3_bucket: Optional[str] = None
    aws_region: Optional[str] = None
    cover_base_url: Optional[str] = None
    port: int = 8000

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            mongodb_uri=os.getenv("MONGODB_URI", cls.mongodb_uri),
            database_name=os.getenv("DATABASE_NAME", cls.database_name),
            secret_key=os.getenv("SECRET_KEY", cls.secret_key),
            cors_origins=tuple(_split_csv(os.getenv("CORS_ORIGINS", "*"))) or ("*",),
            log_level=os.getenv("LOG_LEVEL", cls.log_level),
            s3_bucket=os.getenv("S3_BUCKET") or None,
            aws_region=os.getenv("AWS_REGION") or None,
            cover_base_url=(os.getenv("COVER_BASE_URL") or "").rstrip("/") or None,
            port=int(os.getenv("PORT", cls.port)),
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    load_dotenv()
    return Settings.from_env()
