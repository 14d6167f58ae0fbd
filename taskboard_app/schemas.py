"""Pydantic schemas for users, categories and tasks.

Request models carry the input rules of each endpoint. Every rule raises a
`PydanticCustomError` of type ``validation`` whose message is what the caller
sees; fields are declared in the order their rules are checked, so the first
error reported is the first rule that failed.

Response models serialize with camelCase keys (``userId``, ``createdAt``...).
"""

import re
from datetime import datetime, timezone
from typing import Any, Optional

from dateutil import parser as dateutil_parser
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel
from pydantic_core import PydanticCustomError

from .models import Priority

EMAIL_PATTERN = re.compile(r"[^\s@]+@[^\s@]+\.[^\s@]+")
COLOR_PATTERN = re.compile(r"#([A-Fa-f0-9]{6}|[A-Fa-f0-9]{3})")
PRIORITY_VALUES = frozenset(p.value for p in Priority)
MIN_ID_LENGTH = 10


def _invalid(message: str) -> PydanticCustomError:
    return PydanticCustomError("validation", message)


def _is_text(value: Any) -> bool:
    return isinstance(value, str) and bool(value.strip())


def _check_optional_string(value: Any, message: str) -> Optional[str]:
    if value is not None and not isinstance(value, str):
        raise _invalid(message)
    return value


def _check_priority(value: Any) -> Any:
    if not isinstance(value, str) or value not in PRIORITY_VALUES:
        raise _invalid("Invalid priority value")
    return value


def parse_due_date(value: Any) -> datetime:
    """Parse a date string (or epoch milliseconds) into an aware datetime.

    ISO-8601 is tried first; other common forms such as ``2024/01/15`` or
    ``Jan 15 2024`` go through dateutil. Naive results are taken as UTC.
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.strip())
        except ValueError:
            try:
                parsed = dateutil_parser.parse(value)
            except (ValueError, OverflowError):
                raise _invalid("Invalid due date format")
    elif isinstance(value, (int, float)) and not isinstance(value, bool):
        try:
            parsed = datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            raise _invalid("Invalid due date format")
    else:
        raise _invalid("Invalid due date format")
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def looks_like_id(value: Any) -> bool:
    """True when `value` is plausibly an identifier generated by the store."""
    return isinstance(value, str) and len(value.strip()) >= MIN_ID_LENGTH


class _Payload(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class _Out(BaseModel):
    model_config = ConfigDict(from_attributes=True, alias_generator=to_camel, populate_by_name=True)


# ---------- Users ----------
class UserCreate(_Payload):
    """Payload for creating a user."""
    email: str = Field(default=None, validate_default=True)
    name: Optional[str] = None

    @field_validator("email", mode="before")
    @classmethod
    def check_email(cls, v: Any) -> str:
        if not v or not isinstance(v, str):
            raise _invalid("Valid email is required")
        if not EMAIL_PATTERN.fullmatch(v):
            raise _invalid("Invalid email format")
        return v

    @field_validator("name", mode="before")
    @classmethod
    def check_name(cls, v: Any) -> Optional[str]:
        return _check_optional_string(v, "Name must be a string")


class TaskCounts(BaseModel):
    tasks: int = 0


class UserSummary(_Out):
    id: str
    name: Optional[str] = None
    email: str


class UserOut(_Out):
    """Public representation of a user with the number of tasks it owns."""
    id: str
    email: str
    name: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    counts: TaskCounts = Field(default_factory=TaskCounts, alias="_count")

    @classmethod
    def from_row(cls, user, task_count: int) -> "UserOut":
        out = cls.model_validate(user)
        out.counts = TaskCounts(tasks=task_count)
        return out


# ---------- Categories ----------
class CategoryCreate(_Payload):
    """Payload for creating a category."""
    name: str = Field(default=None, validate_default=True)
    description: Optional[str] = None
    color: Optional[str] = None

    @field_validator("name", mode="before")
    @classmethod
    def check_name(cls, v: Any) -> str:
        if not _is_text(v):
            raise _invalid("Valid name is required")
        return v

    @field_validator("description", mode="before")
    @classmethod
    def check_description(cls, v: Any) -> Optional[str]:
        return _check_optional_string(v, "Description must be a string")

    @field_validator("color", mode="before")
    @classmethod
    def check_color(cls, v: Any) -> Optional[str]:
        if v is None or v == "":
            return None
        if not isinstance(v, str) or not COLOR_PATTERN.fullmatch(v):
            raise _invalid("Invalid color format. Use hex format like #3B82F6")
        return v


class CategorySummary(_Out):
    id: str
    name: str
    color: str


class CategoryOut(_Out):
    """Representation of a category with the number of tasks filed under it."""
    id: str
    name: str
    description: Optional[str] = None
    color: str
    created_at: datetime
    updated_at: datetime
    counts: TaskCounts = Field(default_factory=TaskCounts, alias="_count")

    @classmethod
    def from_row(cls, category, task_count: int) -> "CategoryOut":
        out = cls.model_validate(category)
        out.counts = TaskCounts(tasks=task_count)
        return out


# ---------- Tasks ----------
class TaskCreate(_Payload):
    """Payload for creating a task. Blank optional values mean "not given"."""
    title: str = Field(default=None, validate_default=True)
    user_id: str = Field(default=None, validate_default=True)
    priority: Optional[Priority] = None
    description: Optional[str] = None
    category_id: Optional[str] = None
    due_date: Optional[datetime] = None

    @field_validator("title", mode="before")
    @classmethod
    def check_title(cls, v: Any) -> str:
        if not _is_text(v):
            raise _invalid("Valid title is required")
        return v

    @field_validator("user_id", mode="before")
    @classmethod
    def check_user_id(cls, v: Any) -> str:
        if not v or not isinstance(v, str):
            raise _invalid("Valid userId is required")
        return v

    @field_validator("priority", mode="before")
    @classmethod
    def check_priority(cls, v: Any) -> Any:
        if v is None or v == "":
            return None
        return _check_priority(v)

    @field_validator("description", mode="before")
    @classmethod
    def check_description(cls, v: Any) -> Optional[str]:
        return _check_optional_string(v, "Description must be a string")

    @field_validator("category_id", mode="before")
    @classmethod
    def check_category_id(cls, v: Any) -> Optional[str]:
        v = _check_optional_string(v, "CategoryId must be a string")
        return v or None

    @field_validator("due_date", mode="before")
    @classmethod
    def check_due_date(cls, v: Any) -> Optional[datetime]:
        if v is None or v == "":
            return None
        return parse_due_date(v)


class TaskUpdate(_Payload):
    """Partial update of a task.

    Only keys present in the body are applied (see ``model_fields_set``).
    ``null`` clears ``description``, ``dueDate`` and ``categoryId``; ``title``,
    ``completed`` and ``priority`` cannot be cleared.
    """
    title: Optional[str] = None
    description: Optional[str] = None
    completed: Optional[bool] = None
    priority: Optional[Priority] = None
    category_id: Optional[str] = None
    due_date: Optional[datetime] = None

    @field_validator("title", mode="before")
    @classmethod
    def check_title(cls, v: Any) -> str:
        if not _is_text(v):
            raise _invalid("Valid title is required")
        return v

    @field_validator("description", mode="before")
    @classmethod
    def check_description(cls, v: Any) -> Optional[str]:
        return _check_optional_string(v, "Description must be a string")

    @field_validator("completed", mode="before")
    @classmethod
    def check_completed(cls, v: Any) -> bool:
        if not isinstance(v, bool):
            raise _invalid("Completed must be a boolean")
        return v

    @field_validator("priority", mode="before")
    @classmethod
    def check_priority(cls, v: Any) -> Any:
        return _check_priority(v)

    @field_validator("category_id", mode="before")
    @classmethod
    def check_category_id(cls, v: Any) -> Optional[str]:
        return _check_optional_string(v, "CategoryId must be a string")

    @field_validator("due_date", mode="before")
    @classmethod
    def check_due_date(cls, v: Any) -> Optional[datetime]:
        if v is None:
            return None
        return parse_due_date(v)

    def changes(self) -> dict[str, Any]:
        """Return only the fields the caller supplied, keyed by attribute name."""
        return self.model_dump(exclude_unset=True)


class TaskOut(_Out):
    """Representation of a task with its owner and category summaries."""
    id: str
    title: str
    description: Optional[str] = None
    completed: bool
    priority: Priority
    due_date: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime
    user_id: str
    category_id: Optional[str] = None
    user: UserSummary
    category: Optional[CategorySummary] = None


class MessageOut(BaseModel):
    message: str
