from __future__ import annotations

from passlib.context import CryptContext

from phoneauth.settings import get_settings

_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def hash_password(plain: str, *, rounds: int | None = None) -> str:
    """bcrypt hash; the cost defaults to BCRYPT_ROUNDS."""
    cost = rounds if rounds is not None else get_settings().bcrypt_rounds
    return _context.hash(plain, rounds=cost)


def verify_password(plain: str, password_hash: str) -> bool:
    # unknown or corrupt hashes count as a mismatch
    try:
        return _context.verify(plain, password_hash)
    except ValueError:
        return False
