# taskboard_app/admin_auth.py
from __future__ import annotations

from typing import Optional

from sqladmin.authentication import AuthenticationBackend
from starlette.requests import Request

from . import utils
from .settings import settings


class AdminAuth(AuthenticationBackend):
    """
    Authentication backend for /admin:
    - A single operator account: ADMIN_USERNAME + ADMIN_PASSWORD_HASH (passlib hash).
      With no hash configured nobody gets in (fail closed).
    - The session cookie stores the admin name under `session_key`.
    """

    def __init__(
        self,
        *,
        secret_key: str,
        username: Optional[str] = None,
        password_hash: Optional[str] = None,
        session_key: str = "admin",
    ) -> None:
        super().__init__(secret_key=secret_key)
        self.session_key = session_key
        self.username = (username if username is not None else settings.ADMIN_USERNAME).strip().lower()
        self.password_hash = password_hash if password_hash is not None else settings.ADMIN_PASSWORD_HASH

    def check_credentials(self, username: str, password: str) -> bool:
        if not self.password_hash:
            return False
        if not username or not password:
            return False
        if username.strip().lower() != self.username:
            return False
        return utils.verify_password(password, self.password_hash)

    async def login(self, request: Request) -> bool:
        """sqladmin renders the form at /admin/login and posts username + password here."""
        form = await request.form()
        username = str(form.get("username") or "")
        password = str(form.get("password") or "")

        if not self.check_credentials(username, password):
            return False

        request.session.update({self.session_key: username.strip().lower()})
        return True

    async def logout(self, request: Request) -> bool:
        request.session.clear()
        return True

    async def authenticate(self, request: Request) -> bool:
        return bool(request.session.get(self.session_key))
