"""
Order pricing and assembly.

Two ways to place an order:

1. Explicit items: the client sends ``total_amount`` and ``order_items``
   (``product_id``, ``quantity``, ``price``). The client's total and prices
   are stored as-is and the cart is left alone.
2. Cart checkout: everything in the caller's cart is priced with tax
   (``price + price * tax_percent / 100``), written as order items, and the
   cart is emptied in the same transaction.

Item prices are captured at order time and never follow later product
price changes.
"""
import logging
from fastapi import HTTPException, status
from sqlalchemy.orm import Session, joinedload

from storefront.models import (
    Address,
    CartItem,
    Order,
    OrderItem,
    OrderStatus,
    Product,
    User,
)

logger = logging.getLogger(__name__)


def unit_price_with_tax(product: Product) -> float:
    price = product.price or 0
    return price + price * (product.tax_percent or 0) / 100


def cart_lines(items: list[CartItem]) -> list[dict]:
    return [
        {
            "product_id": item.product_id,
            "quantity": item.quantity,
            "price": unit_price_with_tax(item.product),
        }
        for item in items
    ]


def lines_total(lines: list[dict]) -> float:
    return sum(line["price"] * line["quantity"] for line in lines)


def resolve_order_address(db: Session, user: User, address_id) -> Address | None:
    if not address_id:
        return None

    try:
        address_id = int(address_id)
    except (TypeError, ValueError):
        raise HTTPException(status.HTTP_400_BAD_REQUEST, "Invalid address selected")

    address = db.query(Address).filter(Address.id == address_id).first()
    if not address or address.user_id != user.id:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, "Invalid address selected")
    return address


def _load_order(db: Session, order_id: int) -> Order:
    return (
        db.query(Order)
        .options(
            joinedload(Order.items).joinedload(OrderItem.product),
            joinedload(Order.address),
        )
        .filter(Order.id == order_id)
        .first()
    )


def _persist_order(
    db: Session,
    user: User,
    lines: list[dict],
    total: float,
    address: Address | None,
    payment_method: str | None,
    payment_id: str | None = None,
    clear_cart: bool = False,
) -> Order:
    order = Order(
        user_id=user.id,
        total_price=total,
        total_amount=total,
        address_id=address.id if address else None,
        payment_method=payment_method,
        payment_id=payment_id,
        status=OrderStatus.pending.value,
    )
    try:
        db.add(order)
        db.flush()

        for line in lines:
            db.add(OrderItem(
                order_id=order.id,
                product_id=line["product_id"],
                quantity=line["quantity"],
                price=line["price"],
            ))

        if clear_cart:
            db.query(CartItem).filter(CartItem.user_id == user.id).delete(
                synchronize_session=False
            )

        db.commit()
    except Exception:
        db.rollback()
        raise

    return _load_order(db, order.id)


# =====================================================
# EXPLICIT ITEMS
# =====================================================

def create_order_from_items(
    db: Session,
    user: User,
    total_amount,
    order_items: list,
    address_id=None,
    payment_method: str | None = None,
    payment_id: str | None = None,
) -> Order:
    address = resolve_order_address(db, user, address_id)

    try:
        total = float(total_amount)
        lines = [
            {
                "product_id": int(item["product_id"]),
                "quantity": int(item["quantity"]),
                "price": float(item["price"]),
            }
            for item in order_items
        ]
    except (KeyError, TypeError, ValueError):
        raise HTTPException(
            status.HTTP_400_BAD_REQUEST,
            "Each order item needs product_id, quantity and price",
        )

    if any(line["quantity"] < 1 for line in lines):
        raise HTTPException(status.HTTP_400_BAD_REQUEST, "Quantity must be at least 1")

    product_ids = {line["product_id"] for line in lines}
    found = {
        row.id
        for row in db.query(Product.id).filter(Product.id.in_(product_ids)).all()
    }
    missing = product_ids - found
    if missing:
        raise HTTPException(
            status.HTTP_404_NOT_FOUND,
            f"Product {sorted(missing)[0]} not found",
        )

    # Client total is stored without recomputation.
    logger.info(
        "Creating order from explicit items | user_id=%s | items=%s | client_total=%s | items_total=%s",
        user.id,
        len(lines),
        total,
        lines_total(lines),
    )

    return _persist_order(
        db,
        user,
        lines,
        total,
        address,
        payment_method,
        payment_id=payment_id,
    )


# =====================================================
# CART CHECKOUT
# =====================================================

def create_order_from_cart(
    db: Session,
    user: User,
    address_id=None,
    payment_method: str | None = None,
) -> Order:
    address = resolve_order_address(db, user, address_id)

    cart_items = (
        db.query(CartItem)
        .options(joinedload(CartItem.product))
        .filter(CartItem.user_id == user.id)
        .all()
    )

    if not cart_items:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, "Cart is empty")

    lines = cart_lines(cart_items)
    total = lines_total(lines)

    order = _persist_order(
        db,
        user,
        lines,
        total,
        address,
        payment_method,
        clear_cart=True,
    )
    logger.info(
        "Order created from cart | user_id=%s | order_id=%s | total=%s",
        user.id,
        order.id,
        total,
    )
    return order
