"""FastAPI dependencies.

Provides:
- get_db: one SQLAlchemy session per request, always closed.
- valid_task_id: path id check for task mutations.
"""

from fastapi import Path

from . import schemas
from .database import get_sessionmaker
from .errors import ApiError, ErrorKind


def get_db():
    """Yield a SQLAlchemy session and ensure it is closed afterwards."""
    db = get_sessionmaker()()
    try:
        yield db
    finally:
        db.close()


def valid_task_id(task_id: str = Path(...)) -> str:
    """Reject ids that cannot have been generated by the store (400)."""
    if not schemas.looks_like_id(task_id):
        raise ApiError(ErrorKind.VALIDATION, "Invalid task ID")
    return task_id
