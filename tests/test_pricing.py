import pytest

from storefront.models import CartItem, Order, OrderItem, Product
from storefront.pricing import (
    cart_lines,
    create_order_from_cart,
    lines_total,
    unit_price_with_tax,
)


def test_unit_price_adds_tax_percent():
    assert unit_price_with_tax(Product(price=100.0, tax_percent=18.0)) == pytest.approx(118.0)
    assert unit_price_with_tax(Product(price=250.0, tax_percent=0.0)) == pytest.approx(250.0)


def test_unit_price_treats_missing_tax_as_zero():
    assert unit_price_with_tax(Product(price=40.0, tax_percent=None)) == pytest.approx(40.0)


def test_cart_total_sums_tax_inclusive_lines():
    items = [
        CartItem(product_id=1, quantity=2, product=Product(price=100.0, tax_percent=18.0)),
        CartItem(product_id=2, quantity=3, product=Product(price=50.0, tax_percent=5.0)),
    ]

    lines = cart_lines(items)

    assert [line["price"] for line in lines] == pytest.approx([118.0, 52.5])
    assert lines_total(lines) == pytest.approx(2 * 118.0 + 3 * 52.5)


def test_cart_checkout_writes_order_and_clears_cart(db, customer, product, cheap_product):
    db.add_all([
        CartItem(user_id=customer.id, product_id=product.id, quantity=2),
        CartItem(user_id=customer.id, product_id=cheap_product.id, quantity=1),
    ])
    db.commit()

    order = create_order_from_cart(db, customer)

    assert order.total_price == pytest.approx(2 * 118.0 + 50.0)
    assert order.total_amount == order.total_price
    assert sorted((i.product_id, i.quantity) for i in order.items) == sorted([
        (product.id, 2),
        (cheap_product.id, 1),
    ])
    assert db.query(CartItem).filter(CartItem.user_id == customer.id).count() == 0


def test_order_item_price_is_fixed_at_order_time(db, customer, product):
    db.add(CartItem(user_id=customer.id, product_id=product.id, quantity=1))
    db.commit()

    order = create_order_from_cart(db, customer)

    product.price = 999.0
    db.commit()

    item = db.query(OrderItem).filter(OrderItem.order_id == order.id).one()
    assert item.price == pytest.approx(118.0)


def test_failed_checkout_keeps_cart(db, customer, product, monkeypatch):
    db.add(CartItem(user_id=customer.id, product_id=product.id, quantity=1))
    db.commit()

    def broken_commit():
        raise RuntimeError("database went away")

    monkeypatch.setattr(db, "commit", broken_commit)

    with pytest.raises(RuntimeError):
        create_order_from_cart(db, customer)

    monkeypatch.undo()
    assert db.query(Order).count() == 0
    assert db.query(CartItem).filter(CartItem.user_id == customer.id).count() == 1
