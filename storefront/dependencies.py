from fastapi import Depends, HTTPException, status, Request
from sqlalchemy.orm import Session

from storefront.database import get_db
from storefront.models import User
from storefront.security import decode_access_token, token_user_id


def get_token_from_request(request: Request) -> str | None:
    # 1️⃣ Authorization header (PRIMARY)
    auth_header = request.headers.get("Authorization")
    if auth_header and auth_header.startswith("Bearer "):
        return auth_header.split(" ", 1)[1]

    # 2️⃣ Fallback: HTTP-only cookie
    return request.cookies.get("access_token")


# =========================
# CURRENT USER
# =========================
def get_current_user(
    request: Request,
    db: Session = Depends(get_db),
) -> User:
    token = get_token_from_request(request)

    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="No token provided",
        )

    claims = decode_access_token(token)
    if not claims:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token",
        )

    user_id = token_user_id(claims)
    if user_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token payload",
        )

    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
        )

    if user.is_blocked:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User is blocked",
        )

    return user


# =========================
# ADMIN
# =========================
def require_admin(
    user: User = Depends(get_current_user),
) -> User:
    # Stored role, not the token claim
    if not user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Access denied: Admins only",
        )
    return user
