# app/models/base.py
import time

from sqlalchemy.orm import declarative_base

Base = declarative_base()


def now_ms() -> int:
    """Milliseconds since the epoch, the timestamp unit used across all tables."""
    return int(time.time() * 1000)
