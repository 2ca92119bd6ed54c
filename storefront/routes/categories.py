from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, UploadFile, File, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from pydantic import BaseModel

from storefront.database import get_db
from storefront.dependencies import require_admin
from storefront.models import Category, Product
from storefront.serializers import serialize_category, serialize_product
from storefront.uploads.service import handle_upload

router = APIRouter(prefix="/categories", tags=["categories"])


class CategoryPayload(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    imageUrl: Optional[str] = None
    image_url: Optional[str] = None


def _get_category_or_404(db: Session, category_id: int) -> Category:
    category = db.query(Category).filter(Category.id == category_id).first()
    if not category:
        raise HTTPException(status.HTTP_404_NOT_FOUND, "Category not found")
    return category


# =====================================================
# PUBLIC
# =====================================================

@router.get("")
def list_categories(db: Session = Depends(get_db)):
    categories = db.query(Category).order_by(Category.id).all()
    return [serialize_category(c) for c in categories]


@router.get("/{category_id}")
def get_category(category_id: int, db: Session = Depends(get_db)):
    category = _get_category_or_404(db, category_id)

    products = db.query(Product).filter(Product.category_id == category_id).all()

    data = serialize_category(category)
    data["products"] = [serialize_product(p, include_category=False) for p in products]
    return data


# =====================================================
# ADMIN
# =====================================================

@router.post("", status_code=status.HTTP_201_CREATED, dependencies=[Depends(require_admin)])
def create_category(payload: CategoryPayload, db: Session = Depends(get_db)):
    if not payload.name:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, "Name is required")

    category = Category(
        name=payload.name,
        description=payload.description,
        image_url=payload.image_url or payload.imageUrl,
    )
    db.add(category)
    db.commit()
    db.refresh(category)

    return {"success": True, "category": serialize_category(category)}


@router.put("/{category_id}", dependencies=[Depends(require_admin)])
def update_category(
    category_id: int,
    payload: CategoryPayload,
    db: Session = Depends(get_db),
):
    category = _get_category_or_404(db, category_id)

    if payload.name is not None:
        category.name = payload.name
    if payload.description is not None:
        category.description = payload.description
    image_url = payload.image_url or payload.imageUrl
    if image_url is not None:
        category.image_url = image_url

    db.commit()
    db.refresh(category)
    return serialize_category(category)


@router.post("/{category_id}/image", dependencies=[Depends(require_admin)])
def upload_category_image(
    category_id: int,
    file: UploadFile = File(...),
    db: Session = Depends(get_db),
):
    category = _get_category_or_404(db, category_id)

    category.image_url = handle_upload(
        file=file,
        folder="categories",
        owner_id=str(category.id),
    )
    db.commit()
    db.refresh(category)
    return serialize_category(category)


@router.delete("/{category_id}", dependencies=[Depends(require_admin)])
def delete_category(category_id: int, db: Session = Depends(get_db)):
    category = _get_category_or_404(db, category_id)

    if db.query(Product).filter(Product.category_id == category_id).first():
        raise HTTPException(
            status.HTTP_409_CONFLICT,
            "Cannot delete a category that still has products",
        )

    db.delete(category)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(
            status.HTTP_409_CONFLICT,
            "Cannot delete a category that still has products",
        )
    return {"message": "Category deleted"}
