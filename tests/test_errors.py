import pytest
from sqlalchemy.exc import IntegrityError, NoResultFound, OperationalError
from sqlalchemy.orm.exc import StaleDataError

from taskboard_app.errors import ApiError, ErrorKind, classify_store_error, store_errors
from taskboard_app.exception_handlers import first_error_message


class _DriverError(Exception):
    def __init__(self, message, sqlstate=None):
        super().__init__(message)
        self.sqlstate = sqlstate


def _integrity(message, sqlstate=None):
    return IntegrityError("INSERT ...", {}, _DriverError(message, sqlstate))


@pytest.mark.parametrize(
    "exc, kind",
    [
        (_integrity("UNIQUE constraint failed: users.email"), ErrorKind.CONFLICT),
        (_integrity("FOREIGN KEY constraint failed"), ErrorKind.INVALID_REFERENCE),
        (_integrity("duplicate key value", sqlstate="23505"), ErrorKind.CONFLICT),
        (_integrity("insert or update violates", sqlstate="23503"), ErrorKind.INVALID_REFERENCE),
        (_integrity("NOT NULL constraint failed: tasks.title"), ErrorKind.INTERNAL),
        (NoResultFound(), ErrorKind.NOT_FOUND),
        (StaleDataError(), ErrorKind.NOT_FOUND),
        (OperationalError("SELECT 1", {}, _DriverError("database is locked")), ErrorKind.INTERNAL),
        (RuntimeError("boom"), ErrorKind.INTERNAL),
    ],
)
def test_classify_store_error(exc, kind):
    assert classify_store_error(exc) is kind


def test_error_kinds_map_to_statuses():
    assert ErrorKind.VALIDATION.status_code == 400
    assert ErrorKind.NOT_FOUND.status_code == 404
    assert ErrorKind.CONFLICT.status_code == 409
    assert ErrorKind.INVALID_REFERENCE.status_code == 400
    assert ErrorKind.INTERNAL.status_code == 500


class _FakeSession:
    def __init__(self):
        self.rolled_back = False

    def rollback(self):
        self.rolled_back = True


def test_store_errors_rolls_back_and_uses_kind_message():
    session = _FakeSession()
    with pytest.raises(ApiError) as info:
        with store_errors(session, "Failed to create user", {ErrorKind.CONFLICT: "Email already exists"}):
            raise _integrity("UNIQUE constraint failed: users.email")
    assert session.rolled_back
    assert info.value.kind is ErrorKind.CONFLICT
    assert info.value.message == "Email already exists"
    assert info.value.status_code == 409


def test_store_errors_hides_driver_detail_behind_fallback():
    session = _FakeSession()
    with pytest.raises(ApiError) as info:
        with store_errors(session, "Failed to fetch tasks"):
            raise OperationalError("SELECT 1", {}, _DriverError("no such table: tasks"))
    assert info.value.kind is ErrorKind.INTERNAL
    assert info.value.message == "Failed to fetch tasks"


def test_store_errors_passes_api_errors_through():
    session = _FakeSession()
    with pytest.raises(ApiError) as info:
        with store_errors(session, "Failed to update task"):
            raise ApiError(ErrorKind.NOT_FOUND, "Task not found")
    assert info.value.message == "Task not found"
    assert not session.rolled_back


def test_first_error_message():
    assert first_error_message([]) == "Invalid request"
    assert first_error_message(
        [{"type": "validation", "loc": ("body", "title"), "msg": "Valid title is required"},
         {"type": "validation", "loc": ("body", "userId"), "msg": "Valid userId is required"}]
    ) == "Valid title is required"
    assert first_error_message([{"type": "json_invalid", "loc": ("body", 1), "msg": "x"}]) == "Invalid JSON body"
    assert first_error_message([{"type": "missing", "loc": ("body",), "msg": "Field required"}]) == "Request body is required"
    assert first_error_message(
        [{"type": "enum", "loc": ("query", "priority"), "msg": "Input should be 'LOW'"}]
    ) == "Invalid value for 'priority': Input should be 'LOW'"
