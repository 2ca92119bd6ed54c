import os
import logging
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, status, Response
from sqlalchemy.orm import Session
from pydantic import BaseModel
import redis

from storefront.cache import get_redis
from storefront.database import get_db
from storefront.delivery import is_tricity
from storefront.dependencies import get_current_user
from storefront.models import User, UserRole
from storefront.security import (
    verify_password,
    hash_password,
    create_access_token,
    ACCESS_TOKEN_EXPIRE_DAYS,
)
from storefront.serializers import serialize_user
from storefront.utils.email import (
    send_verification_code_email,
    send_password_reset_code_email,
)
from storefront import verification

router = APIRouter(prefix="/auth", tags=["auth"])

logger = logging.getLogger(__name__)

COOKIE_SECURE = os.getenv("COOKIE_SECURE", "true").lower() == "true"
REQUIRE_EMAIL_VERIFICATION = os.getenv("REQUIRE_EMAIL_VERIFICATION", "false").lower() == "true"


# =====================================================
# SCHEMAS
# =====================================================

class RegisterPayload(BaseModel):
    name: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None
    city: Optional[str] = None
    code: Optional[str] = None
    verificationCode: Optional[str] = None


class LoginPayload(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None


class EmailPayload(BaseModel):
    email: Optional[str] = None


class CodePayload(BaseModel):
    email: Optional[str] = None
    code: Optional[str] = None


class ResetPasswordPayload(BaseModel):
    email: Optional[str] = None
    newPassword: Optional[str] = None
    resetToken: Optional[str] = None


class ProfileAddressPayload(BaseModel):
    address: Optional[str] = None
    city: Optional[str] = None
    phone: Optional[str] = None


# =====================================================
# HELPERS
# =====================================================

def _auth_response(user: User, response: Response) -> dict:
    token = create_access_token(user.id, user.role)

    response.set_cookie(
        key="access_token",
        value=token,
        httponly=True,
        secure=COOKIE_SECURE,
        samesite="none" if COOKIE_SECURE else "lax",
        path="/",
        max_age=60 * 60 * 24 * ACCESS_TOKEN_EXPIRE_DAYS,
    )

    return {"user": serialize_user(user), "token": token}


# =====================================================
# REGISTER
# =====================================================

@router.post("/register", status_code=status.HTTP_201_CREATED)
def register(
    payload: RegisterPayload,
    response: Response,
    db: Session = Depends(get_db),
    cache: redis.Redis = Depends(get_redis),
):
    if not all([payload.name, payload.phone, payload.email, payload.password, payload.city]):
        raise HTTPException(status.HTTP_400_BAD_REQUEST, "All fields are required")

    if db.query(User).filter(User.email == payload.email).first():
        raise HTTPException(status.HTTP_400_BAD_REQUEST, "User already exists")

    code = payload.code or payload.verificationCode
    if code:
        try:
            verification.verify_code(cache, payload.email, code)
        except verification.CodeNotFound:
            raise HTTPException(
                status.HTTP_400_BAD_REQUEST,
                "No verification code found. Please request a new one.",
            )
        except verification.CodeMismatch:
            raise HTTPException(status.HTTP_400_BAD_REQUEST, "Invalid verification code")
    elif REQUIRE_EMAIL_VERIFICATION:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, "Verification code is required")

    user = User(
        name=payload.name,
        phone=payload.phone,
        email=payload.email,
        password=hash_password(payload.password),
        city=payload.city,
        is_tricity=is_tricity(payload.city),
        role=UserRole.customer.value,
    )

    db.add(user)
    db.commit()
    db.refresh(user)

    logger.info("User registered | user_id=%s | email=%s", user.id, user.email)

    return _auth_response(user, response)


# =====================================================
# LOGIN
# =====================================================

@router.post("/login")
def login(
    payload: LoginPayload,
    response: Response,
    db: Session = Depends(get_db),
):
    if not payload.email or not payload.password:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, "Email and password required")

    user = db.query(User).filter(User.email == payload.email).first()
    if not user:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, "Invalid credentials")

    if not verify_password(payload.password, user.password):
        raise HTTPException(status.HTTP_400_BAD_REQUEST, "Wrong password")

    if user.is_blocked:
        raise HTTPException(status.HTTP_403_FORBIDDEN, "User is blocked")

    return _auth_response(user, response)


# =====================================================
# CURRENT USER / LOGOUT / DELETE
# =====================================================

@router.get("/me")
def get_me(user: User = Depends(get_current_user)):
    return serialize_user(user)


@router.post("/logout")
def logout(response: Response, user: User = Depends(get_current_user)):
    response.delete_cookie(key="access_token", path="/")
    return {"message": "Logout success (client deletes token)"}


@router.delete("/delete")
def delete_me(
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    user_id = user.id
    db.delete(user)
    db.commit()

    logger.info("User deleted own account | user_id=%s", user_id)
    return {"message": "User deleted successfully"}


# =====================================================
# PROFILE ADDRESS
# =====================================================

@router.put("/address")
def update_profile_address(
    payload: ProfileAddressPayload,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    if not payload.address or not payload.city or not payload.phone:
        raise HTTPException(
            status.HTTP_400_BAD_REQUEST,
            "Address, city, and phone are required",
        )

    if not is_tricity(payload.city):
        raise HTTPException(status.HTTP_400_BAD_REQUEST, "Only Tricity users allowed")

    user.address = payload.address
    user.city = payload.city
    user.phone = payload.phone
    db.commit()
    db.refresh(user)

    return {"message": "Address updated successfully", "user": serialize_user(user)}


# =====================================================
# EMAIL VERIFICATION CODE
# =====================================================

@router.post("/send-code")
def send_code(
    payload: EmailPayload,
    cache: redis.Redis = Depends(get_redis),
):
    if not payload.email:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, "Email is required")

    code = verification.issue_code(cache, payload.email)

    if not send_verification_code_email(payload.email, code):
        raise HTTPException(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "Failed to send verification code via email",
        )

    return {"message": "Verification code sent to your email"}


@router.post("/verify-otp")
def verify_otp(
    payload: CodePayload,
    cache: redis.Redis = Depends(get_redis),
):
    if not payload.email or not payload.code:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, "Email and code are required")

    try:
        verification.verify_code(cache, payload.email, payload.code)
    except verification.CodeNotFound:
        raise HTTPException(
            status.HTTP_400_BAD_REQUEST,
            "No verification code found. Please request a new one.",
        )
    except verification.CodeMismatch:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, "Invalid verification code")

    return {"message": "OTP verified successfully!", "email": payload.email}


# =====================================================
# FORGOT / RESET PASSWORD
# =====================================================

@router.post("/forgot-password")
def forgot_password(
    payload: EmailPayload,
    db: Session = Depends(get_db),
    cache: redis.Redis = Depends(get_redis),
):
    if not payload.email:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, "Email is required")

    user = db.query(User).filter(User.email == payload.email).first()
    if not user:
        raise HTTPException(status.HTTP_404_NOT_FOUND, "User not found")

    code = verification.issue_code(cache, payload.email)

    if not send_password_reset_code_email(payload.email, code):
        raise HTTPException(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "Failed to send password reset code via email",
        )

    return {"message": "Password reset code sent to your email"}


@router.post("/verify-forgot-password-code")
def verify_forgot_password_code(
    payload: CodePayload,
    cache: redis.Redis = Depends(get_redis),
):
    if not payload.email or not payload.code:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, "Email and code are required")

    try:
        verification.verify_code(cache, payload.email, payload.code)
    except verification.CodeNotFound:
        raise HTTPException(status.HTTP_404_NOT_FOUND, "Code not found or expired")
    except verification.CodeMismatch:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, "Invalid code")

    reset_token = verification.issue_reset_token(cache, payload.email)

    return {
        "message": "Code verified successfully",
        "resetToken": reset_token,
        "email": payload.email,
    }


@router.post("/reset-password")
def reset_password(
    payload: ResetPasswordPayload,
    db: Session = Depends(get_db),
    cache: redis.Redis = Depends(get_redis),
):
    if not payload.email or not payload.newPassword or not payload.resetToken:
        raise HTTPException(
            status.HTTP_400_BAD_REQUEST,
            "Email, new password, and reset token are required",
        )

    # Claimed before the password write; a token is good for one reset only.
    try:
        verification.consume_reset_token(cache, payload.email, payload.resetToken)
    except verification.CodeNotFound:
        raise HTTPException(
            status.HTTP_401_UNAUTHORIZED,
            "Reset token not found or expired. Please verify your OTP again.",
        )
    except verification.CodeMismatch:
        raise HTTPException(
            status.HTTP_401_UNAUTHORIZED,
            "Invalid reset token. Please verify your OTP again.",
        )

    user = db.query(User).filter(User.email == payload.email).first()
    if not user:
        raise HTTPException(status.HTTP_404_NOT_FOUND, "User not found")

    user.password = hash_password(payload.newPassword)
    db.commit()

    logger.info("Password reset | user_id=%s", user.id)
    return {
        "message": "Password reset successfully. You can now login with your new password.",
    }
