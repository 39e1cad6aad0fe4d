# phoneauth/domain/services.py
from __future__ import annotations

import hashlib
import hmac
import secrets

from phoneauth.domain.errors import InvalidCode, InvalidPhone, WeakPassword

MIN_CODE_LENGTH = 4
MAX_CODE_LENGTH = 8

_PHONE_SEPARATORS = frozenset(" -()")


def generate_numeric_code(length: int = 6) -> str:
    """Zero-padded numeric code drawn from the OS CSPRNG."""
    if not MIN_CODE_LENGTH <= length <= MAX_CODE_LENGTH:
        raise ValueError(
            f"code length must be {MIN_CODE_LENGTH}..{MAX_CODE_LENGTH}, got {length}"
        )
    return "".join(str(secrets.randbelow(10)) for _ in range(length))


def secure_compare(a: str, b: str) -> bool:
    """
    Constant-time comparison for secrets.
    Accepts strings; falls back to bytes if needed.
    """
    try:
        # hmac.compare_digest supports str if types match
        return hmac.compare_digest(a, b)
    except TypeError:
        return hmac.compare_digest(a.encode("utf-8"), b.encode("utf-8"))


def keyed_digest(binding: str, code: str, secret: str) -> str:
    """
    Hex HMAC-SHA256 of "binding:code" under the server secret.

    `binding` is the subject key for verification codes and the session id
    for action sessions, so a digest is only valid for what it was made for.
    """
    message = f"{binding}:{code}".encode("utf-8")
    return hmac.new(secret.encode("utf-8"), message, hashlib.sha256).hexdigest()


def normalize_phone(raw: str | None) -> str:
    """
    Normalize to E.164 (`+<digits>`), tolerating the separators people type.
    """
    s = (raw or "").strip()
    if not s:
        raise InvalidPhone("phone is required")

    digits: list[str] = []
    for ch in s:
        if ch.isdigit() and ch.isascii():
            digits.append(ch)
        elif ch == "+" or ch in _PHONE_SEPARATORS:
            continue
        else:
            raise InvalidPhone("phone contains invalid characters")

    if not 8 <= len(digits) <= 15:
        raise InvalidPhone("phone must be in E.164 format")
    return "+" + "".join(digits)


def mask_phone(phone: str) -> str:
    """`+998901234567` -> `+99890*****67`, for logs."""
    if len(phone) <= 7:
        return "*" * len(phone)
    return phone[:6] + "*" * (len(phone) - 8) + phone[-2:]


def validate_otp(raw: str | None) -> str:
    otp = (raw or "").strip()
    if not (
        MIN_CODE_LENGTH <= len(otp) <= MAX_CODE_LENGTH
        and otp.isascii()
        and otp.isdigit()
    ):
        raise InvalidCode(
            f"otp must be numeric {MIN_CODE_LENGTH}..{MAX_CODE_LENGTH} digits"
        )
    return otp


def validate_password(password: str) -> None:
    if len(password) < 6:
        raise WeakPassword("password must be at least 6 characters")
    if not any(ch.isalpha() for ch in password):
        raise WeakPassword("password must contain at least 1 letter")
