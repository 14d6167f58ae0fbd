"""Error taxonomy and the store-error mapper.

Every failure leaving a handler is an `ApiError` carrying one `ErrorKind`:

- validation (400): malformed, missing or mistyped input
- not-found (404): the addressed record does not exist
- conflict (409): a unique constraint was violated
- invalid-reference (400): a foreign key does not resolve
- internal (500): anything else

`classify_store_error` maps a low-level SQLAlchemy/DBAPI failure onto that
taxonomy; `store_errors` applies it at the handler boundary.
"""

import enum
import logging
from contextlib import contextmanager
from typing import Iterator, Mapping, Optional

from fastapi import status
from sqlalchemy.exc import IntegrityError, NoResultFound
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

logger = logging.getLogger(__name__)


class ErrorKind(str, enum.Enum):
    VALIDATION = "validation"
    NOT_FOUND = "not-found"
    CONFLICT = "conflict"
    INVALID_REFERENCE = "invalid-reference"
    INTERNAL = "internal"

    @property
    def status_code(self) -> int:
        return ERROR_KIND_TO_STATUS[self]


ERROR_KIND_TO_STATUS: dict[ErrorKind, int] = {
    ErrorKind.VALIDATION: status.HTTP_400_BAD_REQUEST,
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.CONFLICT: status.HTTP_409_CONFLICT,
    ErrorKind.INVALID_REFERENCE: status.HTTP_400_BAD_REQUEST,
    ErrorKind.INTERNAL: status.HTTP_500_INTERNAL_SERVER_ERROR,
}

# SQLSTATE classes reported by server databases (PostgreSQL, MySQL via drivers)
_UNIQUE_SQLSTATES = {"23505"}
_FOREIGN_KEY_SQLSTATES = {"23503"}


class ApiError(Exception):
    """A failure already classified into the public taxonomy."""

    def __init__(self, kind: ErrorKind, message: str) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message

    @property
    def status_code(self) -> int:
        return self.kind.status_code


def _sqlstate(exc: IntegrityError) -> Optional[str]:
    orig = exc.orig
    return getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)


def classify_store_error(exc: BaseException) -> ErrorKind:
    """Map a store-level failure onto the error taxonomy."""
    if isinstance(exc, ApiError):
        return exc.kind
    if isinstance(exc, (NoResultFound, StaleDataError)):
        return ErrorKind.NOT_FOUND
    if isinstance(exc, IntegrityError):
        code = _sqlstate(exc)
        if code in _UNIQUE_SQLSTATES:
            return ErrorKind.CONFLICT
        if code in _FOREIGN_KEY_SQLSTATES:
            return ErrorKind.INVALID_REFERENCE
        text = str(exc.orig).lower()
        if "unique" in text or "duplicate" in text:
            return ErrorKind.CONFLICT
        if "foreign key" in text:
            return ErrorKind.INVALID_REFERENCE
    return ErrorKind.INTERNAL


@contextmanager
def store_errors(
    db: Session,
    fallback: str,
    messages: Optional[Mapping[ErrorKind, str]] = None,
) -> Iterator[None]:
    """Run a store operation, converting its failures into `ApiError`.

    `messages` gives the public message per error kind; kinds without an entry
    get `fallback`. Raw driver text never reaches the caller.
    """
    try:
        yield
    except ApiError:
        raise
    except Exception as exc:
        db.rollback()
        kind = classify_store_error(exc)
        if kind is ErrorKind.INTERNAL:
            logger.exception("Unclassified store failure: %s", fallback)
        else:
            logger.info("Store rejected operation (%s): %s", kind.value, exc)
        message = (messages or {}).get(kind, fallback)
        raise ApiError(kind, message) from exc
