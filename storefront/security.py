import os
from datetime import datetime, timedelta, timezone
from jose import jwt, JWTError
from passlib.context import CryptContext
from fastapi import HTTPException, status

from storefront.models import UserRole


# =====================================================
# SECURITY CONFIG (ENV ONLY)
# =====================================================

SECRET_KEY = os.getenv("SECRET_KEY")
if not SECRET_KEY:
    raise RuntimeError("SECRET_KEY must be set in environment variables")

ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_DAYS = 7
ACCESS_TOKEN_TTL = timedelta(days=ACCESS_TOKEN_EXPIRE_DAYS)


# =====================================================
# PASSWORDS
# =====================================================

# bcrypt ignores everything past 72 bytes, so longer input is refused outright.
BCRYPT_MAX_BYTES = 72

_passwords = CryptContext(schemes=["bcrypt"], deprecated="auto")


def _refuse_oversized(password: str) -> None:
    if len(password.encode("utf-8")) > BCRYPT_MAX_BYTES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Password is too long (maximum {BCRYPT_MAX_BYTES} bytes allowed).",
        )


def hash_password(password: str) -> str:
    """bcrypt with a fresh salt on every call."""
    _refuse_oversized(password)
    return _passwords.hash(password)


def verify_password(password: str, stored_hash: str) -> bool:
    _refuse_oversized(password)
    return _passwords.verify(password, stored_hash)


# =====================================================
# ACCESS TOKENS
# =====================================================

def create_access_token(user_id: int, role: UserRole | str) -> str:
    """
    Signed HS256 token for one user. ``sub`` carries the numeric id as a
    string; ``role`` is informational only, authorization reads the stored
    role.
    """
    issued_at = datetime.now(timezone.utc)
    claims = {
        "sub": str(int(user_id)),
        "role": UserRole(role).value,
        "iat": issued_at,
        "exp": issued_at + ACCESS_TOKEN_TTL,
    }
    return jwt.encode(claims, SECRET_KEY, algorithm=ALGORITHM)


def decode_access_token(token: str) -> dict | None:
    """Verified claims, or None for a bad signature or an expired token."""
    try:
        return jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError:
        return None


def token_user_id(claims: dict) -> int | None:
    subject = claims.get("sub")
    if not isinstance(subject, str) or not subject.isdigit():
        return None
    return int(subject)
