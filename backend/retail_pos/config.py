# backend/retail_pos/config.py
from __future__ import annotations
import os


def _env_flag(name: str, default: bool = False) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/retail_pos.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///retail_pos.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # New products start with this reorder threshold
    DEFAULT_REORDER_THRESHOLD = int(os.environ.get("DEFAULT_REORDER_THRESHOLD", "10"))

    # bcrypt cost factor (tests lower this)
    BCRYPT_ROUNDS = int(os.environ.get("BCRYPT_ROUNDS", "12"))

    # False: stock is decremented after the sale commits (legacy behaviour).
    # True: availability check, sale insert and decrement share one locked transaction.
    SALE_LOCK_INVENTORY = _env_flag("SALE_LOCK_INVENTORY", False)
