# backend/app/config.py
from __future__ import annotations
import os


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/pantry.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///pantry.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Sales CSV upload limits
    SALES_CSV_MAX_BYTES = int(os.environ.get("SALES_CSV_MAX_BYTES", 2 * 1024 * 1024))
    SALES_CSV_TX_TIMEOUT_SECONDS = float(os.environ.get("SALES_CSV_TX_TIMEOUT_SECONDS", 20))
    DEFAULT_TX_TIMEOUT_SECONDS = float(os.environ.get("DEFAULT_TX_TIMEOUT_SECONDS", 5))

    # Leave headroom for multipart boundaries and form fields around the CSV
    MAX_CONTENT_LENGTH = SALES_CSV_MAX_BYTES + 64 * 1024

    # Used by `flask system init`
    SEED_OWNER_EMAIL = os.environ.get("SEED_OWNER_EMAIL", "owner@example.com")
    SEED_OWNER_USERNAME = os.environ.get("SEED_OWNER_USERNAME", "owner")
    SEED_OWNER_PASSWORD = os.environ.get("SEED_OWNER_PASSWORD", "Owner12345!")
