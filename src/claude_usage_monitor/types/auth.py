"""Authentication result types."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class AuthState(str, Enum):
    NO_SESSION = "no_session"
    VALID = "valid"
    INVALID = "invalid"


@dataclass(frozen=True)
class CookieCheck:
    exists: bool
    expired: bool
    cookie: Optional[dict] = None


NO_COOKIE = CookieCheck(exists=False, expired=True, cookie=None)


@dataclass(frozen=True)
class SessionValidation:
    valid: bool
    reason: str  # valid | no_page | no_cookie | cookie_expired | server_rejected | validation_error


@dataclass(frozen=True)
class ClearResult:
    success: bool
    message: str
