# backend/bizledger/config.py
from __future__ import annotations
import os


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # Document store lives in a single SQL table; SQLite by default
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///bizledger.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Upper bound on a single storage round-trip (driver busy timeout / pool wait)
    STORAGE_TIMEOUT_SECONDS = float(os.environ.get("STORAGE_TIMEOUT_SECONDS", "10"))

    # Read-only storage calls are retried this many times on transient errors
    STORAGE_READ_RETRIES = int(os.environ.get("STORAGE_READ_RETRIES", "3"))

    # Max wait for a per-entity lock before the operation is failed as retryable
    LOCK_TIMEOUT_SECONDS = float(os.environ.get("LOCK_TIMEOUT_SECONDS", "30"))

    # Tenant header read by the HTTP layer
    TENANT_HEADER = os.environ.get("TENANT_HEADER", "X-Tenant-Id")
