import pytest

from storefront.models import User


@pytest.fixture
def outbox(monkeypatch):
    sent = []

    def capture(to_email, code):
        sent.append((to_email, code))
        return True

    monkeypatch.setattr("storefront.routes.auth.send_verification_code_email", capture)
    monkeypatch.setattr("storefront.routes.auth.send_password_reset_code_email", capture)
    return sent


REGISTRATION = {
    "name": "Asha",
    "phone": "9876543210",
    "email": "asha@example.com",
    "password": "secret123",
    "city": "Mohali",
}


def test_register_returns_user_and_token(client, db):
    response = client.post("/api/auth/register", json=REGISTRATION)

    assert response.status_code == 201
    body = response.json()
    assert body["token"]
    assert body["user"]["email"] == "asha@example.com"
    assert body["user"]["isTricity"] is True
    assert "password" not in body["user"]
    assert response.cookies.get("access_token") == body["token"]


def test_register_outside_tricity(client):
    body = client.post("/api/auth/register", json={**REGISTRATION, "city": "Delhi"}).json()

    assert body["user"]["isTricity"] is False


def test_duplicate_registration_is_rejected(client, db):
    client.post("/api/auth/register", json=REGISTRATION)

    response = client.post("/api/auth/register", json=REGISTRATION)

    assert response.status_code == 400
    assert response.json()["detail"] == "User already exists"
    assert db.query(User).count() == 1


def test_register_requires_all_fields(client):
    response = client.post("/api/auth/register", json={"email": "a@b.com"})

    assert response.status_code == 400


def test_register_with_code_consumes_it(client, cache, outbox):
    client.post("/api/auth/send-code", json={"email": REGISTRATION["email"]})
    code = outbox[-1][1]

    response = client.post("/api/auth/register", json={**REGISTRATION, "code": code})

    assert response.status_code == 201
    assert cache.get(f"otp:{REGISTRATION['email']}") is None


def test_register_with_wrong_code(client, outbox):
    client.post("/api/auth/send-code", json={"email": REGISTRATION["email"]})

    response = client.post("/api/auth/register", json={**REGISTRATION, "code": "000000"})

    # Issued codes are always in 100000-999999
    assert response.status_code == 400
    assert response.json()["detail"] == "Invalid verification code"


def test_login_and_me(client, customer):
    login = client.post("/api/auth/login", json={"email": customer.email, "password": "secret123"})

    assert login.status_code == 200
    token = login.json()["token"]

    me = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert me.json()["id"] == customer.id


def test_login_with_cookie_only(client, customer):
    client.post("/api/auth/login", json={"email": customer.email, "password": "secret123"})

    me = client.get("/api/auth/me")

    assert me.status_code == 200
    assert me.json()["email"] == customer.email


def test_login_failures(client, customer):
    missing = client.post("/api/auth/login", json={"email": customer.email})
    unknown = client.post("/api/auth/login", json={"email": "nobody@example.com", "password": "x"})
    wrong = client.post("/api/auth/login", json={"email": customer.email, "password": "nope"})

    assert missing.status_code == 400
    assert unknown.json()["detail"] == "Invalid credentials"
    assert wrong.json()["detail"] == "Wrong password"


def test_blocked_user_is_refused(client, db, customer, customer_headers):
    customer.is_blocked = True
    db.commit()

    login = client.post("/api/auth/login", json={"email": customer.email, "password": "secret123"})
    me = client.get("/api/auth/me", headers=customer_headers)

    assert login.status_code == 403
    assert me.status_code == 403


def test_invalid_token_is_rejected(client):
    response = client.get("/api/auth/me", headers={"Authorization": "Bearer not-a-token"})

    assert response.status_code == 401
    assert response.json()["detail"] == "Invalid token"


def test_send_code_and_verify_otp_once(client, outbox):
    sent = client.post("/api/auth/send-code", json={"email": "user@x.com"})
    assert sent.status_code == 200
    code = outbox[-1][1]

    first = client.post("/api/auth/verify-otp", json={"email": "user@x.com", "code": code})
    second = client.post("/api/auth/verify-otp", json={"email": "user@x.com", "code": code})

    assert first.json() == {"message": "OTP verified successfully!", "email": "user@x.com"}
    assert second.status_code == 400
    assert second.json()["detail"] == "No verification code found. Please request a new one."


def test_send_code_fails_when_email_fails(client, monkeypatch):
    monkeypatch.setattr("storefront.routes.auth.send_verification_code_email", lambda to, code: False)

    response = client.post("/api/auth/send-code", json={"email": "user@x.com"})

    assert response.status_code == 500


def test_forgot_password_flow(client, cache, customer, outbox):
    forgot = client.post("/api/auth/forgot-password", json={"email": customer.email})
    assert forgot.status_code == 200
    code = outbox[-1][1]

    verified = client.post(
        "/api/auth/verify-forgot-password-code",
        json={"email": customer.email, "code": code},
    )
    assert verified.status_code == 200
    reset_token = verified.json()["resetToken"]

    reset = client.post(
        "/api/auth/reset-password",
        json={"email": customer.email, "newPassword": "brand-new-pass", "resetToken": reset_token},
    )
    assert reset.status_code == 200
    assert cache.get(f"reset:{customer.email}") is None

    replay = client.post(
        "/api/auth/reset-password",
        json={"email": customer.email, "newPassword": "another", "resetToken": reset_token},
    )
    assert replay.status_code == 401

    old = client.post("/api/auth/login", json={"email": customer.email, "password": "secret123"})
    new = client.post("/api/auth/login", json={"email": customer.email, "password": "brand-new-pass"})
    assert old.status_code == 400
    assert new.status_code == 200


def test_forgot_password_for_unknown_email(client, outbox):
    response = client.post("/api/auth/forgot-password", json={"email": "ghost@example.com"})

    assert response.status_code == 404
    assert outbox == []


def test_verify_forgot_password_code_errors(client, cache, customer):
    missing = client.post(
        "/api/auth/verify-forgot-password-code",
        json={"email": customer.email, "code": "123456"},
    )
    assert missing.status_code == 404

    cache.set(f"otp:{customer.email}", "123456", ex=600)
    wrong = client.post(
        "/api/auth/verify-forgot-password-code",
        json={"email": customer.email, "code": "654321"},
    )
    assert wrong.status_code == 400
    assert wrong.json()["detail"] == "Invalid code"
    assert cache.get(f"otp:{customer.email}") == "123456"


def test_reset_password_with_wrong_token(client, cache, customer):
    cache.set(f"reset:{customer.email}", "a" * 64, ex=900)

    response = client.post(
        "/api/auth/reset-password",
        json={"email": customer.email, "newPassword": "x", "resetToken": "b" * 64},
    )

    assert response.status_code == 401
    assert cache.get(f"reset:{customer.email}") == "a" * 64


def test_profile_address_requires_tricity(client, customer_headers):
    bad = client.put(
        "/api/auth/address",
        json={"address": "House 1", "city": "Delhi", "phone": "1"},
        headers=customer_headers,
    )
    good = client.put(
        "/api/auth/address",
        json={"address": "House 1", "city": "Panchkula", "phone": "1"},
        headers=customer_headers,
    )

    assert bad.status_code == 400
    assert good.status_code == 200
    assert good.json()["user"]["city"] == "Panchkula"


def test_delete_own_account(client, db, customer, customer_headers):
    response = client.delete("/api/auth/delete", headers=customer_headers)

    assert response.status_code == 200
    assert db.query(User).count() == 0


def test_logout_clears_cookie(client, customer):
    client.post("/api/auth/login", json={"email": customer.email, "password": "secret123"})

    response = client.post("/api/auth/logout")

    assert response.status_code == 200
    assert client.get("/api/auth/me").status_code == 401
