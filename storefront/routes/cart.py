import logging
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload
from pydantic import BaseModel

from storefront.database import get_db
from storefront.dependencies import get_current_user
from storefront.models import CartItem, Product, User
from storefront.serializers import serialize_cart_item

router = APIRouter(prefix="/cart", tags=["cart"])

logger = logging.getLogger(__name__)


# =====================================================
# Pydantic Schemas
# =====================================================

class AddToCartPayload(BaseModel):
    productId: Optional[int] = None
    quantity: int = 1


# =====================================================
# HELPERS
# =====================================================

def _find_item(db: Session, user: User, product_id: int) -> CartItem | None:
    return (
        db.query(CartItem)
        .filter(CartItem.user_id == user.id, CartItem.product_id == product_id)
        .first()
    )


def _load_item(db: Session, item_id: int) -> CartItem:
    return (
        db.query(CartItem)
        .options(joinedload(CartItem.product).joinedload(Product.category))
        .filter(CartItem.id == item_id)
        .first()
    )


# =====================================================
# USER: ADD TO CART
# =====================================================
@router.post("", status_code=status.HTTP_201_CREATED)
def add_to_cart(
    payload: AddToCartPayload,
    response: Response,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    if not payload.productId or payload.quantity < 1:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, "Invalid product or quantity")

    if not db.query(Product).filter(Product.id == payload.productId).first():
        raise HTTPException(status.HTTP_404_NOT_FOUND, "Product not found")

    existing = _find_item(db, user, payload.productId)
    if existing:
        existing.quantity += payload.quantity
        db.commit()
        response.status_code = status.HTTP_200_OK
        return serialize_cart_item(_load_item(db, existing.id))

    item = CartItem(
        user_id=user.id,
        product_id=payload.productId,
        quantity=payload.quantity,
    )
    db.add(item)
    try:
        db.commit()
    except IntegrityError:
        # Same product added concurrently; fold into the winning row.
        db.rollback()
        existing = _find_item(db, user, payload.productId)
        if existing is None:
            raise
        existing.quantity += payload.quantity
        db.commit()
        response.status_code = status.HTTP_200_OK
        return serialize_cart_item(_load_item(db, existing.id))

    return serialize_cart_item(_load_item(db, item.id))


# =====================================================
# USER: GET CART
# =====================================================
@router.get("")
def get_cart(
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    items = (
        db.query(CartItem)
        .options(joinedload(CartItem.product).joinedload(Product.category))
        .filter(CartItem.user_id == user.id)
        .order_by(CartItem.id)
        .all()
    )
    return [serialize_cart_item(item) for item in items]


# =====================================================
# USER: REMOVE ALL UNITS OF A PRODUCT
# =====================================================
@router.delete("/all/{product_id}")
def delete_all_from_cart(
    product_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    deleted = (
        db.query(CartItem)
        .filter(CartItem.user_id == user.id, CartItem.product_id == product_id)
        .delete(synchronize_session=False)
    )
    db.commit()

    if deleted == 0:
        raise HTTPException(status.HTTP_404_NOT_FOUND, "No cart items found to delete")

    return {"message": "All items removed from cart", "deletedCount": deleted}


# =====================================================
# USER: REMOVE ONE UNIT
# =====================================================
@router.delete("/{product_id}")
def remove_from_cart(
    product_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    item = _find_item(db, user, product_id)
    if not item:
        raise HTTPException(status.HTTP_404_NOT_FOUND, "Cart item not found")

    if item.quantity <= 1:
        db.delete(item)
        db.commit()
        return {"message": "Item removed"}

    item.quantity -= 1
    db.commit()

    logger.debug(
        "Cart quantity decremented | user_id=%s | product_id=%s | quantity=%s",
        user.id,
        product_id,
        item.quantity,
    )
    return {"message": "Item quantity decremented"}
