import os
import tempfile

# Module-level configuration is read at import time, so it has to be in
# place before anything from storefront is imported.
_TEST_DIR = tempfile.mkdtemp(prefix="storefront-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_TEST_DIR, 'test.db')}"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["CLOUDINARY_CLOUD_NAME"] = "test-cloud"
os.environ["CLOUDINARY_API_KEY"] = "test-key"
os.environ["CLOUDINARY_API_SECRET"] = "test-secret"
os.environ["RAZORPAY_KEY_ID"] = "rzp_test_key"
os.environ["RAZORPAY_KEY_SECRET"] = "rzp_test_secret"
os.environ["COOKIE_SECURE"] = "false"
os.environ.pop("ADMIN_EMAIL", None)
os.environ.pop("ADMIN_PASSWORD", None)

import fakeredis
import pytest
from fastapi.testclient import TestClient

from storefront.cache import get_redis
from storefront.database import Base, SessionLocal, engine
from storefront.main import app
from storefront.models import Category, Product, User, UserRole
from storefront.security import create_access_token, hash_password


@pytest.fixture(autouse=True)
def fresh_schema():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture
def cache():
    return fakeredis.FakeRedis(decode_responses=True)


@pytest.fixture
def client(cache):
    app.dependency_overrides[get_redis] = lambda: cache
    # Not used as a context manager: startup would try to reach a real Redis.
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def db():
    session = SessionLocal()
    yield session
    session.close()


# =====================================================
# USERS
# =====================================================

def make_user(db, email, role=UserRole.customer.value, city="Chandigarh", password="secret123"):
    user = User(
        name=email.split("@")[0],
        email=email,
        password=hash_password(password),
        phone="9999999999",
        city=city,
        role=role,
        is_tricity=city in ("Chandigarh", "Mohali", "Panchkula"),
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def auth_headers(user):
    return {"Authorization": f"Bearer {create_access_token(user.id, user.role)}"}


@pytest.fixture
def customer(db):
    return make_user(db, "customer@example.com")


@pytest.fixture
def other_customer(db):
    return make_user(db, "other@example.com")


@pytest.fixture
def admin_user(db):
    return make_user(db, "admin@example.com", role=UserRole.admin.value)


@pytest.fixture
def customer_headers(customer):
    return auth_headers(customer)


@pytest.fixture
def other_headers(other_customer):
    return auth_headers(other_customer)


@pytest.fixture
def admin_headers(admin_user):
    return auth_headers(admin_user)


# =====================================================
# CATALOG
# =====================================================

@pytest.fixture
def category(db):
    category = Category(name="Pipes", description="PVC and CPVC pipes")
    db.add(category)
    db.commit()
    db.refresh(category)
    return category


def make_product(db, category, name="Elbow 20mm", price=100.0, tax_percent=18.0, **extra):
    product = Product(
        name=name,
        price=price,
        tax_percent=tax_percent,
        category_id=category.id,
        item_code=extra.pop("item_code", f"ITEM-{name.replace(' ', '-')}"),
        **extra,
    )
    db.add(product)
    db.commit()
    db.refresh(product)
    return product


@pytest.fixture
def product(db, category):
    return make_product(db, category)


@pytest.fixture
def cheap_product(db, category):
    return make_product(db, category, name="Tee 15mm", price=50.0, tax_percent=0.0)
