from __future__ import annotations

import bcrypt
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import Optional

from fastapi import Cookie, Depends, Header, HTTPException
from jose import JWTError, jwt

from .config import settings
from .models import User

_ALGORITHM = "HS256"
_EXPIRE_HOURS = 24

TOKEN_COOKIE = "dthstore_token"


class NotAuthenticated(Exception):
    """Raised by require_staff when no valid JWT is present."""


# ---------------------------------------------------------------------------
# Demo accounts (DEMO_MODE only)
# ---------------------------------------------------------------------------

_DEMO_ACCOUNTS: dict[str, tuple[User, str]] = {
    "admin": (User(id="demo-admin", username="admin", name="Demo Admin", role="ADMIN"), "admin123"),
    "staff": (User(id="demo-staff", username="staff", name="Demo Staff", role="STAFF"), "staff123"),
}


def hash_password(plain: str) -> str:
    return bcrypt.hashpw(plain.encode(), bcrypt.gensalt()).decode()


def verify_password(plain: str, hashed: str) -> bool:
    return bcrypt.checkpw(plain.encode(), hashed.encode())


@lru_cache(maxsize=None)
def _demo_hash(username: str) -> str:
    return hash_password(_DEMO_ACCOUNTS[username][1])


def _demo_username(username_or_email: str) -> Optional[str]:
    name = username_or_email.lower().strip()
    if name in _DEMO_ACCOUNTS:
        return name
    # admin@demo.com -> admin
    if "@" in name and name.split("@", 1)[0] in _DEMO_ACCOUNTS:
        return name.split("@", 1)[0]
    return None


def authenticate(username_or_email: str, password: str) -> Optional[User]:
    if not settings.demo_mode:
        return None
    username = _demo_username(username_or_email)
    if username is None or not verify_password(password, _demo_hash(username)):
        return None
    return _DEMO_ACCOUNTS[username][0]


# ---------------------------------------------------------------------------
# JWT helpers
# ---------------------------------------------------------------------------

def create_jwt(user: User) -> str:
    expire = datetime.now(timezone.utc) + timedelta(hours=_EXPIRE_HOURS)
    payload = {
        "sub": user.id,
        "username": user.username,
        "name": user.name,
        "role": user.role,
        "exp": expire,
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=_ALGORITHM)


def decode_jwt(token: str) -> User:
    try:
        payload = jwt.decode(token, settings.jwt_secret, algorithms=[_ALGORITHM])
        return User(
            id=payload["sub"],
            username=payload["username"],
            name=payload["name"],
            role=payload["role"],
        )
    except (JWTError, KeyError, ValueError):
        raise NotAuthenticated()


# ---------------------------------------------------------------------------
# Dependencies
# ---------------------------------------------------------------------------

async def require_staff(
    authorization: Optional[str] = Header(default=None),
    dthstore_token: Optional[str] = Cookie(default=None),
) -> User:
    """Accepts `Authorization: Bearer <jwt>` or the session cookie."""
    token = None
    if authorization and authorization.lower().startswith("bearer "):
        token = authorization[7:].strip()
    token = token or dthstore_token
    if not token:
        raise NotAuthenticated()
    return decode_jwt(token)


async def require_admin(user: User = Depends(require_staff)) -> User:
    """Extends require_staff; raises 403 if role is not ADMIN."""
    if user.role != "ADMIN":
        raise HTTPException(status_code=403, detail="Admin access required")
    return user
