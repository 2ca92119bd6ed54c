import logging
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from storefront.models import Pincode, DEFAULT_DELIVERY_PRICE

logger = logging.getLogger(__name__)

# Address updates (lowercase comparison)
SERVICE_CITIES = ("panchkula", "mohali", "chandigarh")

# Registration and profile address (exact match)
TRICITY_CITIES = ("Chandigarh", "Mohali", "Panchkula")

MAX_PINCODE_DIGITS = 6


def parse_pincode(value) -> int | None:
    """Plain ASCII digits only, at most six of them. No sign, no separators."""
    if value is None or isinstance(value, bool):
        return None
    text = str(value).strip()
    if not (text.isascii() and text.isdigit()) or len(text) > MAX_PINCODE_DIGITS:
        return None
    return int(text)


def is_service_city(city: str) -> bool:
    return city.lower() in SERVICE_CITIES


def is_tricity(city: str) -> bool:
    return city in TRICITY_CITIES


def find_pincode(db: Session, code: int) -> Pincode | None:
    return db.query(Pincode).filter(Pincode.code == code).first()


def get_or_create_pincode(db: Session, code: int) -> tuple[Pincode, bool]:
    """
    Return ``(pincode, created)`` for a numeric code, inserting it with the
    default delivery price on first use.

    Commits the insert. Two first-time requests racing on the same code both
    miss the lookup; the loser hits the unique constraint, rolls back and
    reads the winner's row.
    """
    pincode = find_pincode(db, code)
    if pincode:
        return pincode, False

    pincode = Pincode(code=code, delivery_price=DEFAULT_DELIVERY_PRICE)
    db.add(pincode)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        existing = find_pincode(db, code)
        if existing is None:
            raise
        logger.info("Pincode created concurrently, reusing | code=%s", code)
        return existing, False

    db.refresh(pincode)
    logger.info("Pincode created with default delivery price | code=%s", code)
    return pincode, True


def upsert_pincode(db: Session, code: int, delivery_price: float) -> Pincode:
    """Set the delivery price for a code, inserting the row if needed. One commit."""
    pincode = find_pincode(db, code)
    if pincode is None:
        pincode = Pincode(code=code)
        db.add(pincode)
    pincode.delivery_price = delivery_price

    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        pincode = find_pincode(db, code)
        if pincode is None:
            raise
        pincode.delivery_price = delivery_price
        db.commit()

    db.refresh(pincode)
    return pincode
