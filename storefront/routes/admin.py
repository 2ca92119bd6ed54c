import logging
from typing import Optional, Union
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload
from pydantic import BaseModel

from storefront.database import get_db
from storefront.delivery import parse_pincode, upsert_pincode
from storefront.dependencies import require_admin
from storefront.models import (
    Order,
    OrderItem,
    OrderStatus,
    Pincode,
    Product,
    User,
    UserRole,
)
from storefront.serializers import (
    pagination_block,
    serialize_order,
    serialize_pincode,
    serialize_user_summary,
)

# Every route in this module is admin-only.
router = APIRouter(
    prefix="/admin",
    tags=["admin"],
    dependencies=[Depends(require_admin)],
)

logger = logging.getLogger(__name__)

MAX_PINCODE_PAGE_SIZE = 100


# =====================================================
# Pydantic Schemas
# =====================================================

class PincodePayload(BaseModel):
    pincode: Optional[Union[int, str]] = None
    deliveryPrice: Optional[float] = None


class RolePayload(BaseModel):
    role: Optional[str] = None


class BlockPayload(BaseModel):
    isBlocked: Optional[bool] = None


def _get_user_or_404(db: Session, user_id: int) -> User:
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise HTTPException(status.HTTP_404_NOT_FOUND, "User not found")
    return user


# =====================================================
# ADMIN: USERS
# =====================================================
@router.get("/users")
def list_users(
    db: Session = Depends(get_db),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1),
):
    users = (
        db.query(User)
        .order_by(User.created_at.desc(), User.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    total = db.query(User).count()

    return {
        "users": [serialize_user_summary(u) for u in users],
        "pagination": pagination_block(page, limit, total, "totalUsers"),
    }


@router.put("/users/{user_id}/role")
def change_role(
    user_id: int,
    payload: RolePayload,
    db: Session = Depends(get_db),
):
    allowed = [r.value for r in UserRole]
    if payload.role not in allowed:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, "Invalid role")

    user = _get_user_or_404(db, user_id)
    user.role = payload.role
    db.commit()

    logger.info("User role changed | user_id=%s | role=%s", user.id, user.role)
    return serialize_user_summary(user)


@router.put("/users/{user_id}/block")
def set_blocked(
    user_id: int,
    payload: BlockPayload,
    db: Session = Depends(get_db),
):
    if payload.isBlocked is None:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, "isBlocked is required")

    user = _get_user_or_404(db, user_id)
    user.is_blocked = payload.isBlocked
    db.commit()

    logger.info("User block flag changed | user_id=%s | blocked=%s", user.id, user.is_blocked)
    return serialize_user_summary(user)


# =====================================================
# ADMIN: OPEN ORDERS
# =====================================================
@router.get("/orders")
def list_open_orders(
    db: Session = Depends(get_db),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1),
):
    query = db.query(Order).filter(Order.status != OrderStatus.delivered.value)
    total = query.count()

    orders = (
        query.options(
            joinedload(Order.user),
            joinedload(Order.items).joinedload(OrderItem.product),
            joinedload(Order.payments),
            joinedload(Order.address),
        )
        .order_by(Order.created_at.desc(), Order.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )

    return {
        "orders": [
            serialize_order(o, include_user=True, include_payments=True)
            for o in orders
        ],
        "pagination": pagination_block(page, limit, total, "totalOrders"),
    }


# =====================================================
# ADMIN: DASHBOARD
# =====================================================
@router.get("/dashboard/stats")
def dashboard_stats(db: Session = Depends(get_db)):
    revenue = db.query(func.sum(Order.total_price)).scalar()

    return {
        "totalUsers": db.query(func.count(User.id)).scalar(),
        "totalOrders": db.query(func.count(Order.id)).scalar(),
        "totalProducts": db.query(func.count(Product.id)).scalar(),
        "totalRevenue": revenue or 0,
    }


# =====================================================
# ADMIN: PINCODES
# =====================================================
@router.post("/pincode")
def manage_pincode(payload: PincodePayload, db: Session = Depends(get_db)):
    if payload.pincode is None or payload.deliveryPrice is None:
        raise HTTPException(
            status.HTTP_400_BAD_REQUEST,
            "Pincode and delivery price are required",
        )

    code = parse_pincode(payload.pincode)
    if code is None:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, "Pincode must be numeric")

    pincode = upsert_pincode(db, code, payload.deliveryPrice)

    logger.info(
        "Pincode delivery price set | code=%s | price=%s",
        pincode.code,
        pincode.delivery_price,
    )
    return {
        "message": "Pincode delivery price updated successfully",
        "pincode": pincode.code,
        "deliveryPrice": pincode.delivery_price,
    }


@router.get("/pincodes")
def list_pincodes(
    db: Session = Depends(get_db),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1),
):
    limit = min(limit, MAX_PINCODE_PAGE_SIZE)
    total = db.query(Pincode).count()

    pincodes = (
        db.query(Pincode)
        .order_by(Pincode.code.asc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )

    return {
        "pincodes": [serialize_pincode(p) for p in pincodes],
        "pagination": pagination_block(page, limit, total, "totalPincodes"),
    }
