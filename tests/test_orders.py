import pytest

from storefront.models import Address, CartItem, Order, Pincode


def _add_address(db, user, code=160017):
    pincode = db.query(Pincode).filter(Pincode.code == code).first()
    if not pincode:
        pincode = Pincode(code=code, delivery_price=100.0)
        db.add(pincode)
        db.commit()
    address = Address(
        user_id=user.id,
        pincode_id=pincode.id,
        label="Home",
        house="12",
        street="Sector 17",
        city="chandigarh",
    )
    db.add(address)
    db.commit()
    db.refresh(address)
    return address


def test_order_from_cart_mirrors_cart_and_empties_it(client, db, customer, customer_headers, product, cheap_product):
    client.post("/api/cart", json={"productId": product.id, "quantity": 2}, headers=customer_headers)
    client.post("/api/cart", json={"productId": cheap_product.id, "quantity": 3}, headers=customer_headers)

    response = client.post("/api/orders", json={}, headers=customer_headers)

    assert response.status_code == 201
    body = response.json()
    assert body["status"] == "pending"
    assert body["totalPrice"] == pytest.approx(2 * 118.0 + 3 * 50.0)
    assert body["total_amount"] == pytest.approx(body["totalPrice"])
    assert sorted((i["productId"], i["quantity"]) for i in body["items"]) == sorted([
        (product.id, 2),
        (cheap_product.id, 3),
    ])

    cart = client.get("/api/cart", headers=customer_headers).json()
    assert cart == []


def test_order_from_empty_cart_is_rejected(client, db, customer_headers):
    response = client.post("/api/orders", json={}, headers=customer_headers)

    assert response.status_code == 400
    assert response.json()["detail"] == "Cart is empty"
    assert db.query(Order).count() == 0


def test_explicit_items_keep_client_total_and_cart(client, db, customer, customer_headers, product):
    client.post("/api/cart", json={"productId": product.id, "quantity": 1}, headers=customer_headers)

    response = client.post(
        "/api/orders",
        json={
            "total_amount": 350,
            "order_items": [{"product_id": product.id, "quantity": 2, "price": 125}],
            "payment_method": "razorpay",
        },
        headers=customer_headers,
    )

    assert response.status_code == 201
    body = response.json()
    assert body["totalAmount"] == pytest.approx(350.0)
    assert body["payment_method"] == "razorpay"
    assert body["items"][0]["price"] == pytest.approx(125.0)
    assert db.query(CartItem).filter(CartItem.user_id == customer.id).count() == 1


def test_explicit_items_ignore_foreign_user_id(client, db, customer, other_customer, customer_headers, product):
    response = client.post(
        "/api/orders",
        json={
            "total_amount": 118,
            "order_items": [{"product_id": product.id, "quantity": 1, "price": 118}],
            "user_id": other_customer.id,
        },
        headers=customer_headers,
    )

    assert response.status_code == 201
    assert response.json()["userId"] == customer.id


def test_explicit_items_with_unknown_product(client, db, customer_headers):
    response = client.post(
        "/api/orders",
        json={"total_amount": 10, "order_items": [{"product_id": 9999, "quantity": 1, "price": 10}]},
        headers=customer_headers,
    )

    assert response.status_code == 404
    assert db.query(Order).count() == 0


def test_order_with_address_of_another_user_is_rejected(client, db, customer_headers, other_customer, product):
    foreign = _add_address(db, other_customer)
    client.post("/api/cart", json={"productId": product.id, "quantity": 1}, headers=customer_headers)

    response = client.post("/api/orders", json={"addressId": foreign.id}, headers=customer_headers)

    assert response.status_code == 400
    assert response.json()["detail"] == "Invalid address selected"
    assert db.query(Order).count() == 0
    # Nothing was checked out
    assert len(client.get("/api/cart", headers=customer_headers).json()) == 1


def test_order_with_own_address_includes_delivery_address(client, db, customer, customer_headers, product):
    address = _add_address(db, customer)
    client.post("/api/cart", json={"productId": product.id, "quantity": 1}, headers=customer_headers)

    response = client.post("/api/orders", json={"addressId": address.id}, headers=customer_headers)

    assert response.status_code == 201
    body = response.json()
    assert body["address_id"] == address.id
    assert body["delivery_address"]["street"] == "Sector 17"


def test_my_orders_lists_only_callers_orders(client, db, customer_headers, other_headers, product):
    for headers in (customer_headers, other_headers):
        client.post("/api/cart", json={"productId": product.id, "quantity": 1}, headers=headers)
        client.post("/api/orders", json={}, headers=headers)
    client.post("/api/cart", json={"productId": product.id, "quantity": 1}, headers=customer_headers)
    client.post("/api/orders", json={}, headers=customer_headers)

    orders = client.get("/api/orders", headers=customer_headers).json()

    assert len(orders) == 2
    assert orders[0]["id"] > orders[1]["id"]


def test_admin_updates_order_status(client, db, customer_headers, admin_headers, product):
    client.post("/api/cart", json={"productId": product.id, "quantity": 1}, headers=customer_headers)
    order_id = client.post("/api/orders", json={}, headers=customer_headers).json()["id"]

    response = client.put(f"/api/orders/{order_id}/status", json={"status": "shipped"}, headers=admin_headers)

    assert response.status_code == 200
    assert response.json()["status"] == "shipped"


def test_order_status_rejects_unknown_value(client, db, customer_headers, admin_headers, product):
    client.post("/api/cart", json={"productId": product.id, "quantity": 1}, headers=customer_headers)
    order_id = client.post("/api/orders", json={}, headers=customer_headers).json()["id"]

    response = client.put(f"/api/orders/{order_id}/status", json={"status": "lost"}, headers=admin_headers)

    assert response.status_code == 400


def test_customer_cannot_update_order_status(client, customer_headers):
    response = client.put("/api/orders/1/status", json={"status": "paid"}, headers=customer_headers)

    assert response.status_code == 403
