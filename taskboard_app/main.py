import logging
import sys
from contextlib import asynccontextmanager
from typing import List, Optional

from fastapi import FastAPI, Depends, Query
from fastapi.middleware.cors import CORSMiddleware

from sqlalchemy.orm import Session

from sqladmin import Admin, ModelView

from .settings import settings
from . import crud, database, deps, models, schemas
from .admin_auth import AdminAuth
from .errors import ApiError, ErrorKind, store_errors
from .exception_handlers import setup_exception_handlers


def configure_logging() -> None:
    """Console logging for the app; SQLAlchemy stays at WARNING."""
    level = getattr(logging, settings.LOG_LEVEL, logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stdout,
    )
    logging.getLogger("taskboard_app").setLevel(level)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_: FastAPI):
    configure_logging()
    logger.info("Starting Taskboard API (env=%s)", settings.APP_ENV)
    database.init_db()
    yield
    logger.info("Shutting down Taskboard API")
    database.shutdown()


# -----------------------------------------------------------------------------
# App & CORS
# -----------------------------------------------------------------------------
app = FastAPI(title="Taskboard", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS or ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

setup_exception_handlers(app)

# -----------------------------------------------------------------------------
# Admin UI (/admin) with sqladmin + authentication
# -----------------------------------------------------------------------------
authentication_backend = AdminAuth(secret_key=settings.SECRET_KEY)
admin = Admin(app, database.get_engine(), authentication_backend=authentication_backend)

class UserAdmin(ModelView, model=models.User):
    column_list = [
        models.User.id,
        models.User.email,
        models.User.name,
        models.User.created_at,
        models.User.updated_at,
    ]
    column_searchable_list = [models.User.email, models.User.name]
    column_sortable_list = [models.User.email, models.User.created_at, models.User.updated_at]
    name = "User"
    name_plural = "Users"
    icon = "fa-solid fa-user"

class CategoryAdmin(ModelView, model=models.Category):
    column_list = [
        models.Category.id,
        models.Category.name,
        models.Category.color,
        models.Category.description,
        models.Category.created_at,
    ]
    column_searchable_list = [models.Category.name]
    column_sortable_list = [models.Category.name, models.Category.created_at]
    name = "Category"
    name_plural = "Categories"
    icon = "fa-solid fa-tag"

class TaskAdmin(ModelView, model=models.Task):
    column_list = [
        models.Task.id,
        models.Task.title,
        models.Task.completed,
        models.Task.priority,
        models.Task.due_date,
        models.Task.user_id,
        models.Task.category_id,
        models.Task.created_at,
    ]
    column_searchable_list = [models.Task.title]
    column_sortable_list = [models.Task.priority, models.Task.completed, models.Task.created_at]
    name = "Task"
    name_plural = "Tasks"
    icon = "fa-solid fa-list-check"

admin.add_view(UserAdmin)
admin.add_view(CategoryAdmin)
admin.add_view(TaskAdmin)

# -----------------------------------------------------------------------------
# Health
# -----------------------------------------------------------------------------
@app.get("/health")
def health():
    return {"status": "ok"}

# -----------------------------------------------------------------------------
# Users
# -----------------------------------------------------------------------------
@app.get("/users", response_model=List[schemas.UserOut])
def list_users(db: Session = Depends(deps.get_db)):
    with store_errors(db, "Failed to fetch users"):
        rows = crud.list_users(db)
    return [schemas.UserOut.from_row(user, count) for user, count in rows]

@app.post("/users", response_model=schemas.UserOut, status_code=201)
def create_user(user_in: schemas.UserCreate, db: Session = Depends(deps.get_db)):
    with store_errors(db, "Failed to create user", {ErrorKind.CONFLICT: "Email already exists"}):
        user = crud.create_user(db, user_in)
    return schemas.UserOut.from_row(user, 0)

@app.delete("/users/{user_id}", response_model=schemas.MessageOut)
def delete_user(user_id: str, db: Session = Depends(deps.get_db)):
    with store_errors(db, "Failed to delete user", {ErrorKind.NOT_FOUND: "User not found"}):
        ok = crud.delete_user(db, user_id)
    if not ok:
        raise ApiError(ErrorKind.NOT_FOUND, "User not found")
    return {"message": "User deleted successfully"}

# -----------------------------------------------------------------------------
# Categories
# -----------------------------------------------------------------------------
@app.get("/categories", response_model=List[schemas.CategoryOut])
def list_categories(db: Session = Depends(deps.get_db)):
    with store_errors(db, "Failed to fetch categories"):
        rows = crud.list_categories(db)
    return [schemas.CategoryOut.from_row(category, count) for category, count in rows]

@app.post("/categories", response_model=schemas.CategoryOut, status_code=201)
def create_category(category_in: schemas.CategoryCreate, db: Session = Depends(deps.get_db)):
    with store_errors(db, "Failed to create category", {ErrorKind.CONFLICT: "Category name already exists"}):
        category = crud.create_category(db, category_in)
    return schemas.CategoryOut.from_row(category, 0)

@app.delete("/categories/{category_id}", response_model=schemas.MessageOut)
def delete_category(category_id: str, db: Session = Depends(deps.get_db)):
    with store_errors(db, "Failed to delete category", {ErrorKind.NOT_FOUND: "Category not found"}):
        ok = crud.delete_category(db, category_id)
    if not ok:
        raise ApiError(ErrorKind.NOT_FOUND, "Category not found")
    return {"message": "Category deleted successfully"}

# -----------------------------------------------------------------------------
# Tasks
# -----------------------------------------------------------------------------
@app.get("/tasks", response_model=List[schemas.TaskOut])
def list_tasks(
    completed: Optional[str] = Query(None),
    category_id: Optional[str] = Query(None, alias="categoryId"),
    priority: Optional[models.Priority] = Query(None),
    db: Session = Depends(deps.get_db),
):
    # empty means no filter; any value other than "true" filters on open tasks
    done = completed.strip().lower() == "true" if completed else None
    with store_errors(db, "Failed to fetch tasks"):
        tasks = crud.list_tasks(db, completed=done, category_id=category_id, priority=priority)
        return [schemas.TaskOut.model_validate(t) for t in tasks]

@app.post("/tasks", response_model=schemas.TaskOut, status_code=201)
def create_task(task_in: schemas.TaskCreate, db: Session = Depends(deps.get_db)):
    with store_errors(
        db,
        "Failed to create task",
        {ErrorKind.INVALID_REFERENCE: "Invalid user or category reference"},
    ):
        task = crud.create_task(db, task_in)
        return schemas.TaskOut.model_validate(task)

@app.get("/tasks/{task_id}", response_model=schemas.TaskOut)
def get_task(task_id: str, db: Session = Depends(deps.get_db)):
    with store_errors(db, "Failed to fetch task"):
        t = crud.get_task(db, task_id)
    if not t:
        raise ApiError(ErrorKind.NOT_FOUND, "Task not found")
    return schemas.TaskOut.model_validate(t)

@app.put("/tasks/{task_id}", response_model=schemas.TaskOut)
def update_task(
    task_in: schemas.TaskUpdate,
    task_id: str = Depends(deps.valid_task_id),
    db: Session = Depends(deps.get_db),
):
    with store_errors(
        db,
        "Failed to update task",
        {
            ErrorKind.NOT_FOUND: "Task not found",
            ErrorKind.INVALID_REFERENCE: "Invalid category reference",
        },
    ):
        t = crud.update_task(db, task_id, task_in)
        if not t:
            raise ApiError(ErrorKind.NOT_FOUND, "Task not found")
        return schemas.TaskOut.model_validate(t)

@app.delete("/tasks/{task_id}", response_model=schemas.MessageOut)
def delete_task(task_id: str = Depends(deps.valid_task_id), db: Session = Depends(deps.get_db)):
    with store_errors(db, "Failed to delete task", {ErrorKind.NOT_FOUND: "Task not found"}):
        ok = crud.delete_task(db, task_id)
    if not ok:
        raise ApiError(ErrorKind.NOT_FOUND, "Task not found")
    return {"message": "Task deleted successfully"}
