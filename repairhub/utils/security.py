# repairhub/utils/security.py
import base64
import hashlib
from datetime import datetime, timedelta, timezone
from typing import Optional

import bcrypt
from jose import JWTError, jwt

from repairhub.config import settings

# bcrypt only reads the first 72 bytes of its input
BCRYPT_MAX_BYTES = 72

def _prehash(password: str) -> bytes:
    """Fixed-length bcrypt input: base64 of the SHA-256 digest (44 bytes)"""
    return base64.b64encode(hashlib.sha256(password.encode()).digest())

def hash_password(password: str) -> str:
    """One-way bcrypt hash for storage"""
    return bcrypt.hashpw(_prehash(password), bcrypt.gensalt(rounds=settings.BCRYPT_ROUNDS)).decode()

def verify_password(password: str, hashed_password: Optional[str]) -> bool:
    if not hashed_password:
        return False
    try:
        if bcrypt.checkpw(_prehash(password), hashed_password.encode()):
            return True
        # Accounts hashed before pre-hashing store bcrypt of the raw password
        raw = password.encode()
        return len(raw) <= BCRYPT_MAX_BYTES and bcrypt.checkpw(raw, hashed_password.encode())
    except ValueError:
        # Stored value is not a bcrypt hash
        return False

def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """
    Sign a session token.

    `data` should carry `sub` (user id) and `role`; `exp` and `iat` are added here.
    """
    to_encode = data.copy()
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(days=settings.JWT_EXPIRES_DAYS))
    to_encode.update({"exp": expire, "iat": now})
    return jwt.encode(to_encode, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)

def decode_access_token(token: str) -> dict:
    """Verify signature and expiry. Raises JWTError on any failure."""
    return jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])

def token_subject(payload: dict) -> Optional[str]:
    """User id carried by a decoded payload; older tokens used userId or id."""
    user_id = payload.get("sub") or payload.get("userId") or payload.get("id")
    return str(user_id) if user_id else None

__all__ = [
    "JWTError",
    "hash_password",
    "verify_password",
    "create_access_token",
    "decode_access_token",
    "token_subject",
]
