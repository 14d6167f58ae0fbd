"""CRUD helpers for users, categories and tasks.

This module contains the store operations used by the API layer. Functions
take validated schemas, normalize them (trim, lowercase email, defaults) and
commit. Lookups by id return None when the row does not exist; constraint
violations surface as SQLAlchemy errors for the caller to classify.
"""

import logging
from typing import Optional

from sqlalchemy import asc, desc, func
from sqlalchemy.orm import Session, joinedload

from . import models, schemas

logger = logging.getLogger(__name__)


def _clean(value: Optional[str]) -> Optional[str]:
    """Trim a string; blank or missing becomes None."""
    if value is None:
        return None
    value = value.strip()
    return value or None


# -----------------------------------------------------------------------------
# USERS
# -----------------------------------------------------------------------------
def list_users(db: Session) -> list[tuple[models.User, int]]:
    """Return every user with its task count, newest first."""
    return (
        db.query(models.User, func.count(models.Task.id))
        .outerjoin(models.Task, models.Task.user_id == models.User.id)
        .group_by(models.User.id)
        .order_by(desc(models.User.created_at), desc(models.User.id))
        .all()
    )


def get_user(db: Session, user_id: str) -> models.User | None:
    return db.get(models.User, user_id)


def create_user(db: Session, user_in: schemas.UserCreate) -> models.User:
    """Create a user with a normalized (trimmed, lowercase) email."""
    user = models.User(
        email=user_in.email.strip().lower(),
        name=_clean(user_in.name),
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("Created user %s", user.id)
    return user


def delete_user(db: Session, user_id: str) -> bool:
    """Delete a user and, by cascade, all of its tasks."""
    user = get_user(db, user_id)
    if not user:
        return False
    db.delete(user)
    db.commit()
    logger.info("Deleted user %s", user_id)
    return True


# -----------------------------------------------------------------------------
# CATEGORIES
# -----------------------------------------------------------------------------
def list_categories(db: Session) -> list[tuple[models.Category, int]]:
    """Return every category with its task count, by name."""
    return (
        db.query(models.Category, func.count(models.Task.id))
        .outerjoin(models.Task, models.Task.category_id == models.Category.id)
        .group_by(models.Category.id)
        .order_by(asc(models.Category.name))
        .all()
    )


def get_category(db: Session, category_id: str) -> models.Category | None:
    return db.get(models.Category, category_id)


def create_category(db: Session, category_in: schemas.CategoryCreate) -> models.Category:
    category = models.Category(
        name=category_in.name.strip(),
        description=_clean(category_in.description),
        color=category_in.color or models.DEFAULT_CATEGORY_COLOR,
    )
    db.add(category)
    db.commit()
    db.refresh(category)
    logger.info("Created category %s", category.id)
    return category


def delete_category(db: Session, category_id: str) -> bool:
    """Delete a category; tasks filed under it keep existing with no category."""
    category = get_category(db, category_id)
    if not category:
        return False
    db.delete(category)
    db.commit()
    logger.info("Deleted category %s", category_id)
    return True


# -----------------------------------------------------------------------------
# TASKS
# -----------------------------------------------------------------------------
def _task_query(db: Session):
    return db.query(models.Task).options(
        joinedload(models.Task.user),
        joinedload(models.Task.category),
    )


def list_tasks(
    db: Session,
    completed: Optional[bool] = None,
    category_id: Optional[str] = None,
    priority: Optional[models.Priority] = None,
) -> list[models.Task]:
    """List tasks matching every given filter.

    Open tasks come before completed ones, then by stored priority text
    descending, then newest first.
    """
    q = _task_query(db)

    if completed is not None:
        q = q.filter(models.Task.completed == completed)
    if category_id:
        q = q.filter(models.Task.category_id == category_id)
    if priority is not None:
        q = q.filter(models.Task.priority == priority)

    # priority is stored as its name, so this sorts URGENT, MEDIUM, LOW, HIGH
    q = q.order_by(
        asc(models.Task.completed),
        desc(models.Task.priority),
        desc(models.Task.created_at),
        desc(models.Task.id),
    )
    return q.all()


def get_task(db: Session, task_id: str) -> models.Task | None:
    """Return a task by its ID or None if not found."""
    return _task_query(db).filter(models.Task.id == task_id).first()


def create_task(db: Session, task_in: schemas.TaskCreate) -> models.Task:
    obj = models.Task(
        title=task_in.title.strip(),
        description=_clean(task_in.description),
        priority=task_in.priority or models.Priority.MEDIUM,
        completed=False,
        user_id=task_in.user_id,
        category_id=task_in.category_id or None,
        due_date=task_in.due_date,
    )
    db.add(obj)
    db.commit()
    logger.info("Created task %s for user %s", obj.id, obj.user_id)
    return get_task(db, obj.id)


def update_task(db: Session, task_id: str, task_in: schemas.TaskUpdate) -> models.Task | None:
    """Apply only the supplied fields; return the updated task or None."""
    obj = get_task(db, task_id)
    if not obj:
        return None
    for field, value in task_in.changes().items():
        if field == "title":
            value = value.strip()
        elif field == "description":
            value = _clean(value)
        setattr(obj, field, value)
    db.commit()
    return get_task(db, task_id)


def delete_task(db: Session, task_id: str) -> bool:
    """Delete a task by ID; return True if it existed and was deleted."""
    obj = db.get(models.Task, task_id)
    if not obj:
        return False
    db.delete(obj)
    db.commit()
    logger.info("Deleted task %s", task_id)
    return True
