import enum
from sqlalchemy import (
    Column,
    String,
    Text,
    Integer,
    Float,
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    UniqueConstraint,
)
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship

from storefront.database import Base


# =========================
# ENUMS
# =========================

class UserRole(str, enum.Enum):
    customer = "customer"
    admin = "admin"


class OrderStatus(str, enum.Enum):
    pending = "pending"
    confirmed = "confirmed"
    paid = "paid"
    shipped = "shipped"
    delivered = "delivered"
    cancelled = "cancelled"


class PaymentStatus(str, enum.Enum):
    success = "success"


DEFAULT_DELIVERY_PRICE = 100.0


# =========================
# USER
# =========================

class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)

    name = Column(String, nullable=False)
    email = Column(String, nullable=False, unique=True, index=True)
    password = Column(String, nullable=False)

    phone = Column(String)
    city = Column(String)
    address = Column(Text)

    role = Column(String, default=UserRole.customer.value, nullable=False)
    is_tricity = Column(Boolean, default=False, nullable=False)
    is_blocked = Column(Boolean, default=False, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
    )

    # Orders go first on delete; they reference addresses.
    orders = relationship(
        "Order",
        back_populates="user",
        cascade="all, delete-orphan",
    )
    addresses = relationship(
        "Address",
        back_populates="user",
        cascade="all, delete-orphan",
    )
    cart_items = relationship(
        "CartItem",
        back_populates="user",
        cascade="all, delete-orphan",
    )

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.admin.value


# =========================
# PINCODE
# =========================

class Pincode(Base):
    __tablename__ = "pincodes"

    id = Column(Integer, primary_key=True, autoincrement=True)

    code = Column(Integer, nullable=False, unique=True, index=True)
    delivery_price = Column(Float, nullable=False, default=DEFAULT_DELIVERY_PRICE)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    addresses = relationship("Address", back_populates="pincode")


# =========================
# ADDRESS
# =========================

class Address(Base):
    __tablename__ = "addresses"

    id = Column(Integer, primary_key=True, autoincrement=True)

    user_id = Column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    pincode_id = Column(
        Integer,
        ForeignKey("pincodes.id"),
        nullable=False,
    )

    label = Column(String, nullable=False)
    house = Column(String, nullable=False)
    street = Column(String, nullable=False)
    landmark = Column(String)
    address1 = Column(String)
    city = Column(String, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    user = relationship("User", back_populates="addresses")
    pincode = relationship("Pincode", back_populates="addresses")


# =========================
# CATEGORY
# =========================

class Category(Base):
    __tablename__ = "categories"

    id = Column(Integer, primary_key=True, autoincrement=True)

    name = Column(String, nullable=False)
    description = Column(Text)
    image_url = Column(String)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    products = relationship("Product", back_populates="category")


# =========================
# PRODUCT
# =========================

class Product(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, autoincrement=True)

    name = Column(String, nullable=False)
    description = Column(Text)
    image_url = Column(String)

    price = Column(Float, nullable=False, default=0)
    original_price = Column(Float)
    tax_percent = Column(Float, default=0)

    category_id = Column(
        Integer,
        ForeignKey("categories.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    available_stock = Column(Integer, default=0)
    stock_quantity = Column(Integer, default=0)

    rating = Column(Float, default=0)
    reviews_count = Column(Integer, default=0)

    is_featured = Column(Boolean, default=False)
    is_bestseller = Column(Boolean, default=False)
    is_pipe = Column(Boolean, default=False)

    # Supplier catalog feed columns
    item_code = Column(String, nullable=False, unique=True)
    brand_group = Column(String)
    sdp = Column(Float)
    nrp = Column(Float)
    mrp = Column(Float)
    hsn = Column(String)
    sgst = Column(Float)
    cgst = Column(Float)
    igst = Column(Float)
    cess = Column(Float)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
    )

    category = relationship("Category", back_populates="products")
    images = relationship(
        "ProductImage",
        back_populates="product",
        cascade="all, delete-orphan",
        order_by="ProductImage.sort_order",
    )


Index("idx_products_price", Product.price)
Index("idx_products_created_at", Product.created_at)
Index("idx_products_flags", Product.is_featured, Product.is_bestseller, Product.is_pipe)


# =========================
# PRODUCT IMAGES
# =========================

class ProductImage(Base):
    __tablename__ = "product_images"

    id = Column(Integer, primary_key=True, autoincrement=True)

    product_id = Column(
        Integer,
        ForeignKey("products.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    image_url = Column(String, nullable=False)
    alt_text = Column(String)
    sort_order = Column(Integer, default=0)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    product = relationship("Product", back_populates="images")


# =========================
# CART
# =========================

class CartItem(Base):
    __tablename__ = "cart_items"
    __table_args__ = (
        UniqueConstraint("user_id", "product_id", name="uq_cart_items_user_product"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)

    user_id = Column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    product_id = Column(
        Integer,
        ForeignKey("products.id", ondelete="CASCADE"),
        nullable=False,
    )

    quantity = Column(Integer, nullable=False, default=1)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    user = relationship("User", back_populates="cart_items")
    product = relationship("Product")


# =========================
# ORDER
# =========================

class Order(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, autoincrement=True)

    user_id = Column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    address_id = Column(
        Integer,
        ForeignKey("addresses.id", ondelete="RESTRICT"),
        index=True,
    )

    total_price = Column(Float, nullable=False)
    total_amount = Column(Float, nullable=False)

    payment_method = Column(String)
    payment_id = Column(String)

    status = Column(String, default=OrderStatus.pending.value, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    user = relationship("User", back_populates="orders")
    address = relationship("Address")
    items = relationship(
        "OrderItem",
        back_populates="order",
        cascade="all, delete-orphan",
    )
    payments = relationship(
        "Payment",
        back_populates="order",
        cascade="all, delete-orphan",
    )


Index("idx_orders_status", Order.status)


class OrderItem(Base):
    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True, autoincrement=True)

    order_id = Column(
        Integer,
        ForeignKey("orders.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    product_id = Column(
        Integer,
        ForeignKey("products.id"),
        nullable=False,
    )

    quantity = Column(Integer, nullable=False)
    price = Column(Float, nullable=False)

    order = relationship("Order", back_populates="items")
    product = relationship("Product")


# =========================
# PAYMENT
# =========================

class Payment(Base):
    __tablename__ = "payments"

    id = Column(Integer, primary_key=True, autoincrement=True)

    order_id = Column(
        Integer,
        ForeignKey("orders.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    payment_id = Column(String, nullable=False)   # gateway payment id
    order_ref = Column(String, nullable=False)    # gateway order id
    signature = Column(String, nullable=False)

    amount = Column(Float, nullable=False)
    status = Column(String, default=PaymentStatus.success.value, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    order = relationship("Order", back_populates="payments")
