# backend/comercial/config.py
from __future__ import annotations
import os


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored next to the instance folder by default
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///comercial.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Seconds a SQLite writer waits for BEGIN IMMEDIATE before giving up
    SQLITE_BUSY_TIMEOUT = float(os.environ.get("SQLITE_BUSY_TIMEOUT", "15"))

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Header set by the upstream authentication layer with the caller's user id
    IDENTITY_HEADER = os.environ.get("IDENTITY_HEADER", "X-User-Id")

    SALES_PAGE_SIZE = int(os.environ.get("SALES_PAGE_SIZE", "10"))
    SALES_MAX_PAGE_SIZE = 100

    # Callable (actor, operation, owner_user_id) -> bool; None selects the role/ownership policy
    SALE_ACCESS_POLICY = None
