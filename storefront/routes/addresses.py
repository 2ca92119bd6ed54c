import logging
from typing import Optional, Union
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session, joinedload
from pydantic import BaseModel

from storefront.database import get_db
from storefront.delivery import (
    SERVICE_CITIES,
    get_or_create_pincode,
    is_service_city,
    parse_pincode,
)
from storefront.dependencies import get_current_user
from storefront.models import Address, Order, User
from storefront.serializers import serialize_address

router = APIRouter(prefix="/addresses", tags=["addresses"])

logger = logging.getLogger(__name__)


# =====================================================
# Pydantic Schemas
# =====================================================

class AddressPayload(BaseModel):
    label: Optional[str] = None
    house: Optional[str] = None
    street: Optional[str] = None
    landmark: Optional[str] = None
    address1: Optional[str] = None
    city: Optional[str] = None
    pincode: Optional[Union[int, str]] = None


# =====================================================
# HELPERS
# =====================================================

def _get_owned_address(db: Session, user: User, address_id: int) -> Address:
    address = (
        db.query(Address)
        .options(joinedload(Address.pincode))
        .filter(Address.id == address_id)
        .first()
    )
    if not address or address.user_id != user.id:
        raise HTTPException(status.HTTP_404_NOT_FOUND, "Address not found")
    return address


def _pincode_or_400(db: Session, raw):
    code = parse_pincode(raw)
    if code is None:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, "Pincode must be numeric")
    pincode, _ = get_or_create_pincode(db, code)
    return pincode


def _address_response(address: Address, message: str) -> dict:
    return {
        "message": message,
        "address": serialize_address(address),
        "deliveryPrice": address.pincode.delivery_price,
    }


# =====================================================
# USER: ADD ADDRESS
# =====================================================
@router.post("", status_code=status.HTTP_201_CREATED)
def add_address(
    payload: AddressPayload,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    if not all([payload.house, payload.street, payload.city, payload.label, payload.pincode]):
        raise HTTPException(
            status.HTTP_400_BAD_REQUEST,
            "House, street, city, label, and pincode are required",
        )

    pincode = _pincode_or_400(db, payload.pincode)

    address = Address(
        user_id=user.id,
        pincode_id=pincode.id,
        label=payload.label,
        house=payload.house,
        street=payload.street,
        landmark=payload.landmark,
        address1=payload.address1,
        city=payload.city,
    )
    db.add(address)
    db.commit()
    db.refresh(address)

    logger.info("Address added | user_id=%s | address_id=%s", user.id, address.id)
    return _address_response(address, "Address added")


# =====================================================
# USER: LIST ADDRESSES
# =====================================================
@router.get("")
def list_addresses(
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    addresses = (
        db.query(Address)
        .options(joinedload(Address.pincode))
        .filter(Address.user_id == user.id)
        .order_by(Address.id)
        .all()
    )
    return {"addresses": [serialize_address(a) for a in addresses]}


# =====================================================
# USER: DELIVERY PRICE
# =====================================================
@router.get("/delivery-price/pincode/{pincode}")
def delivery_price_for_pincode(
    pincode: str,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    code = parse_pincode(pincode)
    if code is None:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, "Pincode must be numeric")

    record, created = get_or_create_pincode(db, code)

    return {
        "pincode": record.code,
        "deliveryPrice": record.delivery_price,
        "found": not created,
    }


@router.get("/delivery-price/address/{address_id}")
def delivery_price_for_address(
    address_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    address = _get_owned_address(db, user, address_id)

    return {
        "addressId": address.id,
        "pincode": address.pincode.code,
        "deliveryPrice": address.pincode.delivery_price,
    }


# =====================================================
# USER: UPDATE ADDRESS
# =====================================================
@router.put("/{address_id}")
def update_address(
    address_id: int,
    payload: AddressPayload,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    address = _get_owned_address(db, user, address_id)

    if payload.city is not None and not is_service_city(payload.city):
        raise HTTPException(
            status.HTTP_400_BAD_REQUEST,
            f"City must be one of: {', '.join(SERVICE_CITIES)}",
        )

    # Resolved before any field changes; get-or-create commits on its own.
    if payload.pincode is not None:
        address.pincode_id = _pincode_or_400(db, payload.pincode).id

    if payload.city is not None:
        address.city = payload.city.lower()

    for field in ("label", "house", "street", "landmark", "address1"):
        value = getattr(payload, field)
        if value is not None:
            setattr(address, field, value)

    db.commit()
    db.expire(address, ["pincode"])
    db.refresh(address)

    return _address_response(address, "Address updated")


# =====================================================
# USER: DELETE ADDRESS
# =====================================================
@router.delete("/{address_id}")
def delete_address(
    address_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    address = _get_owned_address(db, user, address_id)

    if db.query(Order.id).filter(Order.address_id == address.id).first():
        raise HTTPException(
            status.HTTP_409_CONFLICT,
            "Cannot delete address used in an order",
        )

    db.delete(address)
    db.commit()

    return {"message": "Address deleted"}
