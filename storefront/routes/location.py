import os
from typing import Any
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from pydantic import BaseModel

from storefront.database import get_db
from storefront.dependencies import get_current_user
from storefront.models import User

router = APIRouter(prefix="/location", tags=["location"])

WHATSAPP_NUMBER = os.getenv("WHATSAPP_NUMBER")


SERVICE_AVAILABLE = "Service available in your area"
SERVICE_UNAVAILABLE = "Service not available in your area"
SERVICE_UNAVAILABLE_CONTACT = f"{SERVICE_UNAVAILABLE}. Please contact us on WhatsApp for queries."


class TricityPayload(BaseModel):
    isTricity: Any = None


# =====================================================
# USER: SERVICE-AREA STATUS (checked before payment)
# =====================================================
@router.get("/istricity")
def get_tricity_status(user: User = Depends(get_current_user)):
    return {
        "success": True,
        "data": {
            "isTricity": user.is_tricity,
            "message": SERVICE_AVAILABLE if user.is_tricity else SERVICE_UNAVAILABLE_CONTACT,
            "whatsappNumber": None if user.is_tricity else WHATSAPP_NUMBER,
        },
    }


# =====================================================
# USER: SET SERVICE-AREA STATUS (sent on login)
# =====================================================
@router.post("/istricity")
def set_tricity_status(
    payload: TricityPayload,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    if not isinstance(payload.isTricity, bool):
        raise HTTPException(
            status.HTTP_400_BAD_REQUEST,
            "isTricity must be a boolean value (true or false)",
        )

    user.is_tricity = payload.isTricity
    db.commit()
    db.refresh(user)

    return {
        "success": True,
        "message": "Tricity status updated successfully",
        "data": {
            "isTricity": user.is_tricity,
            "message": SERVICE_AVAILABLE if user.is_tricity else SERVICE_UNAVAILABLE,
            "user": {
                "id": user.id,
                "name": user.name,
                "email": user.email,
                "city": user.city,
                "isTricity": user.is_tricity,
            },
        },
    }
