import pytest

from storefront import delivery
from storefront.database import SessionLocal
from storefront.models import Address, Order, Pincode


ADDRESS = {
    "label": "Home",
    "house": "221",
    "street": "Sector 8",
    "city": "Mohali",
    "pincode": "160062",
}


def _create_address(client, headers, **overrides):
    response = client.post("/api/addresses", json={**ADDRESS, **overrides}, headers=headers)
    assert response.status_code == 201
    return response.json()["address"]


def test_create_address_creates_pincode_with_default_price(client, db, customer_headers):
    response = client.post("/api/addresses", json=ADDRESS, headers=customer_headers)

    assert response.status_code == 201
    body = response.json()
    assert body["deliveryPrice"] == 100.0
    assert body["address"]["pincodeValue"] == 160062
    assert db.query(Pincode).filter(Pincode.code == 160062).count() == 1


def test_create_address_requires_fields(client, customer_headers):
    response = client.post("/api/addresses", json={"label": "Home"}, headers=customer_headers)

    assert response.status_code == 400
    assert response.json()["detail"] == "House, street, city, label, and pincode are required"


def test_create_address_does_not_check_city(client, customer_headers):
    address = _create_address(client, customer_headers, city="Delhi")

    assert address["city"] == "Delhi"


def test_update_rejects_city_outside_service_area(client, customer_headers):
    address = _create_address(client, customer_headers)

    response = client.put(f"/api/addresses/{address['id']}", json={"city": "Delhi"}, headers=customer_headers)

    assert response.status_code == 400


def test_update_lowercases_city_and_moves_pincode(client, customer_headers):
    address = _create_address(client, customer_headers)

    response = client.put(
        f"/api/addresses/{address['id']}",
        json={"city": "Panchkula", "pincode": 134109, "landmark": "Near park"},
        headers=customer_headers,
    )

    assert response.status_code == 200
    updated = response.json()["address"]
    assert updated["city"] == "panchkula"
    assert updated["pincodeValue"] == 134109
    assert updated["landmark"] == "Near park"
    assert updated["street"] == ADDRESS["street"]


def test_update_of_foreign_address_is_not_found(client, customer_headers, other_headers):
    address = _create_address(client, other_headers)

    response = client.put(f"/api/addresses/{address['id']}", json={"label": "Work"}, headers=customer_headers)

    assert response.status_code == 404


def test_list_returns_only_own_addresses(client, customer_headers, other_headers):
    _create_address(client, customer_headers)
    _create_address(client, other_headers)

    body = client.get("/api/addresses", headers=customer_headers).json()

    assert len(body["addresses"]) == 1
    assert body["addresses"][0]["deliveryPrice"] == 100.0


def test_delete_address(client, db, customer_headers):
    address = _create_address(client, customer_headers)

    response = client.delete(f"/api/addresses/{address['id']}", headers=customer_headers)

    assert response.status_code == 200
    assert db.query(Address).count() == 0


def test_delete_address_used_by_order_conflicts(client, db, customer, customer_headers):
    address = _create_address(client, customer_headers)
    db.add(Order(user_id=customer.id, address_id=address["id"], total_price=10, total_amount=10))
    db.commit()

    response = client.delete(f"/api/addresses/{address['id']}", headers=customer_headers)

    assert response.status_code == 409
    assert response.json()["detail"] == "Cannot delete address used in an order"
    assert db.query(Address).filter(Address.id == address["id"]).count() == 1
    assert db.query(Order).count() == 1


def test_delivery_price_for_unseen_pincode_persists_default(client, db, customer_headers):
    first = client.get("/api/addresses/delivery-price/pincode/140301", headers=customer_headers)
    second = client.get("/api/addresses/delivery-price/pincode/140301", headers=customer_headers)

    assert first.json() == {"pincode": 140301, "deliveryPrice": 100.0, "found": False}
    assert second.json() == {"pincode": 140301, "deliveryPrice": 100.0, "found": True}
    assert db.query(Pincode).filter(Pincode.code == 140301).count() == 1


def test_delivery_price_for_non_numeric_pincode(client, customer_headers):
    response = client.get("/api/addresses/delivery-price/pincode/abc", headers=customer_headers)

    assert response.status_code == 400


@pytest.mark.parametrize("raw", ["-160017", "1_600_17", "99999999999999999999", "1600170", "+160017", "١٦٠٠١٧"])
def test_delivery_price_rejects_malformed_pincode(client, db, customer_headers, raw):
    response = client.get(f"/api/addresses/delivery-price/pincode/{raw}", headers=customer_headers)

    assert response.status_code == 400
    assert db.query(Pincode).count() == 0


def test_address_with_signed_pincode_is_rejected(client, db, customer_headers):
    response = client.post("/api/addresses", json={**ADDRESS, "pincode": "-160062"}, headers=customer_headers)

    assert response.status_code == 400
    assert db.query(Address).count() == 0
    assert db.query(Pincode).count() == 0


def test_parse_pincode_accepts_plain_digits():
    assert delivery.parse_pincode(" 160062 ") == 160062
    assert delivery.parse_pincode(134109) == 134109
    assert delivery.parse_pincode(None) is None
    assert delivery.parse_pincode(True) is None


def test_delivery_price_for_address(client, customer_headers, other_headers):
    address = _create_address(client, customer_headers)

    own = client.get(f"/api/addresses/delivery-price/address/{address['id']}", headers=customer_headers)
    foreign = client.get(f"/api/addresses/delivery-price/address/{address['id']}", headers=other_headers)

    assert own.json() == {"addressId": address["id"], "pincode": 160062, "deliveryPrice": 100.0}
    assert foreign.status_code == 404


def test_get_or_create_recovers_from_concurrent_insert(db, monkeypatch):
    # Another request inserts the code between our lookup and our insert.
    winner = SessionLocal()
    winner.add(Pincode(code=160101, delivery_price=100.0))
    winner.commit()
    winner.close()

    real_find = delivery.find_pincode
    calls = []

    def racing_find(session, code):
        calls.append(code)
        if len(calls) == 1:
            return None
        return real_find(session, code)

    monkeypatch.setattr(delivery, "find_pincode", racing_find)

    pincode, created = delivery.get_or_create_pincode(db, 160101)

    assert created is False
    assert pincode.code == 160101
    assert db.query(Pincode).filter(Pincode.code == 160101).count() == 1


def test_upsert_pincode_overrides_price(db):
    delivery.upsert_pincode(db, 160001, 40.0)
    pincode = delivery.upsert_pincode(db, 160001, 60.0)

    assert pincode.delivery_price == 60.0
    assert db.query(Pincode).count() == 1


def test_upsert_pincode_inserts_with_given_price_in_one_commit(db, monkeypatch):
    commits = []
    real_commit = db.commit

    def counting_commit():
        commits.append(1)
        real_commit()

    monkeypatch.setattr(db, "commit", counting_commit)

    pincode = delivery.upsert_pincode(db, 160017, 45.0)

    assert len(commits) == 1
    assert pincode.delivery_price == 45.0
    assert db.query(Pincode).filter(Pincode.code == 160017).one().delivery_price == 45.0
