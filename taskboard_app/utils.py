"""Password hashing helpers for the admin login."""

from passlib.context import CryptContext

_pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


def hash_password(plain: str) -> str:
    """Hash a plaintext password (pbkdf2-sha256)."""
    return _pwd_context.hash(plain)


def verify_password(plain: str, hashed: str) -> bool:
    """Verify a plaintext password against its hash; malformed hashes never match."""
    try:
        return _pwd_context.verify(plain, hashed)
    except (ValueError, TypeError):
        return False
