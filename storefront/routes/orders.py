import logging
from typing import Any, Optional, List
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session, joinedload
from pydantic import BaseModel

from storefront.database import get_db
from storefront.dependencies import get_current_user, require_admin
from storefront.models import Order, OrderItem, OrderStatus, Product, User
from storefront.pricing import create_order_from_cart, create_order_from_items
from storefront.serializers import serialize_order

router = APIRouter(prefix="/orders", tags=["orders"])

logger = logging.getLogger(__name__)


# =====================================================
# Pydantic Schemas
# =====================================================

class CreateOrderPayload(BaseModel):
    total_amount: Optional[Any] = None
    order_items: Optional[List[Any]] = None
    addressId: Optional[Any] = None
    payment_method: Optional[str] = None
    payment_id: Optional[str] = None
    # Accepted for compatibility; orders always belong to the caller.
    user_id: Optional[Any] = None
    delivery_address: Optional[Any] = None


class UpdateOrderStatusPayload(BaseModel):
    status: Optional[str] = None


# =====================================================
# USER: CREATE ORDER
# =====================================================
@router.post("", status_code=status.HTTP_201_CREATED)
def create_order(
    payload: CreateOrderPayload,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    if payload.total_amount and payload.order_items:
        order = create_order_from_items(
            db,
            user,
            total_amount=payload.total_amount,
            order_items=payload.order_items,
            address_id=payload.addressId,
            payment_method=payload.payment_method,
            payment_id=payload.payment_id,
        )
    else:
        order = create_order_from_cart(
            db,
            user,
            address_id=payload.addressId,
            payment_method=payload.payment_method,
        )

    return serialize_order(order)


# =====================================================
# USER: MY ORDERS
# =====================================================
@router.get("")
def get_my_orders(
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    orders = (
        db.query(Order)
        .options(
            joinedload(Order.items)
            .joinedload(OrderItem.product)
            .joinedload(Product.category),
            joinedload(Order.address),
        )
        .filter(Order.user_id == user.id)
        .order_by(Order.created_at.desc(), Order.id.desc())
        .all()
    )
    return [serialize_order(o) for o in orders]


# =====================================================
# ADMIN: UPDATE ORDER STATUS
# =====================================================
@router.put("/{order_id}/status", dependencies=[Depends(require_admin)])
def update_order_status(
    order_id: int,
    payload: UpdateOrderStatusPayload,
    db: Session = Depends(get_db),
):
    if not payload.status:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, "Status is required")

    allowed = [s.value for s in OrderStatus]
    if payload.status not in allowed:
        raise HTTPException(
            status.HTTP_400_BAD_REQUEST,
            f"Invalid status. Allowed: {', '.join(allowed)}",
        )

    order = db.query(Order).filter(Order.id == order_id).first()
    if not order:
        raise HTTPException(status.HTTP_404_NOT_FOUND, "Order not found")

    previous = order.status
    order.status = payload.status
    db.commit()
    db.refresh(order)

    logger.info(
        "Order status changed | order_id=%s | %s -> %s",
        order.id,
        previous,
        order.status,
    )
    return serialize_order(order)
