import logging
from typing import Optional, Union
from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from pydantic import BaseModel

from storefront.database import get_db
from storefront.dependencies import get_current_user
from storefront.gateway import GatewayError, create_gateway_order, verify_signature
from storefront.models import Order, OrderStatus, Payment, PaymentStatus, User
from storefront.serializers import serialize_payment

router = APIRouter(prefix="/payment", tags=["payments"])

logger = logging.getLogger(__name__)


# =====================================================
# Pydantic Schemas
# =====================================================

class GatewayOrderPayload(BaseModel):
    amount: Optional[float] = None


class VerifyPaymentPayload(BaseModel):
    razorpay_order_id: Optional[str] = None
    razorpay_payment_id: Optional[str] = None
    razorpay_signature: Optional[str] = None
    orderId: Optional[Union[int, str]] = None
    amount: Optional[float] = None


# =====================================================
# USER: OPEN GATEWAY ORDER
# =====================================================
@router.post("/order")
def create_payment_order(
    payload: GatewayOrderPayload,
    user: User = Depends(get_current_user),
):
    if payload.amount is None or payload.amount <= 0:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, "A positive amount is required")

    try:
        gateway_order = create_gateway_order(payload.amount)
    except GatewayError as e:
        logger.error("Payment initiation failed | user_id=%s | error=%s", user.id, e)
        raise HTTPException(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "Payment initiation failed",
        )

    logger.info(
        "Gateway order opened | user_id=%s | gateway_order_id=%s",
        user.id,
        gateway_order.get("id"),
    )
    return gateway_order


# =====================================================
# USER: VERIFY SIGNATURE AND RECORD PAYMENT
# =====================================================
@router.post("/verify")
def verify_payment(
    payload: VerifyPaymentPayload,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    if not payload.razorpay_order_id or not payload.razorpay_payment_id:
        raise HTTPException(
            status.HTTP_400_BAD_REQUEST,
            "razorpay_order_id and razorpay_payment_id are required",
        )

    if not verify_signature(
        payload.razorpay_order_id,
        payload.razorpay_payment_id,
        payload.razorpay_signature,
    ):
        logger.warning(
            "Payment signature mismatch | user_id=%s | gateway_order_id=%s",
            user.id,
            payload.razorpay_order_id,
        )
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"message": "Invalid signature", "success": False},
        )

    try:
        order_id = int(payload.orderId)
    except (TypeError, ValueError):
        raise HTTPException(status.HTTP_400_BAD_REQUEST, "orderId is required")

    order = db.query(Order).filter(Order.id == order_id).first()
    if not order or order.user_id != user.id:
        raise HTTPException(status.HTTP_404_NOT_FOUND, "Order not found")

    payment = Payment(
        order_id=order.id,
        payment_id=payload.razorpay_payment_id,
        order_ref=payload.razorpay_order_id,
        signature=payload.razorpay_signature,
        amount=payload.amount if payload.amount is not None else order.total_amount,
        status=PaymentStatus.success.value,
    )

    try:
        db.add(payment)
        order.status = OrderStatus.paid.value
        order.payment_id = payload.razorpay_payment_id
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(payment)

    logger.info(
        "Payment recorded | order_id=%s | payment_id=%s",
        order.id,
        payment.payment_id,
    )
    return {
        "message": "Payment verified & saved",
        "success": True,
        "payment": serialize_payment(payment),
    }
