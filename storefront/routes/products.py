import random
import string
import time
import logging
from typing import Any, Optional, List
from fastapi import APIRouter, Depends, HTTPException, UploadFile, File, Query, status
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload, selectinload
from pydantic import BaseModel

from storefront.database import get_db
from storefront.dependencies import get_current_user, require_admin
from storefront.models import Category, Product, ProductImage
from storefront.serializers import (
    pagination_block,
    serialize_image,
    serialize_image_short,
    serialize_product,
)
from storefront.uploads.service import handle_upload, is_data_uri, upload_data_uri

router = APIRouter(prefix="/products", tags=["products"])

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 50
MAX_SIMPLE_PAGE_SIZE = 20

# Payload keys backed by NOT NULL columns.
NON_NULLABLE_FIELDS = ("name", "price", "categoryId")

SORTABLE_COLUMNS = {
    "createdAt": Product.created_at,
    "updatedAt": Product.updated_at,
    "price": Product.price,
    "name": Product.name,
    "rating": Product.rating,
    "id": Product.id,
}


# =====================================================
# Pydantic Schemas
# =====================================================

class ProductPayload(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    imageUrl: Optional[str] = None
    image_url: Optional[str] = None
    price: Optional[float] = None
    originalPrice: Optional[float] = None
    original_price: Optional[float] = None
    isFeatured: Optional[bool] = None
    isBestseller: Optional[bool] = None
    isPipe: Optional[bool] = None
    is_pipe: Optional[bool] = None
    categoryId: Optional[int] = None
    availableStock: Optional[int] = None
    stockQuantity: Optional[int] = None
    stock_quantity: Optional[int] = None
    rating: Optional[float] = None
    reviewsCount: Optional[int] = None
    reviews_count: Optional[int] = None
    taxPercent: Optional[float] = None
    # Supplier catalog feed
    itemCode: Optional[str] = None
    brandGroup: Optional[str] = None
    sdp: Optional[float] = None
    nrp: Optional[float] = None
    mrp: Optional[float] = None
    hsn: Optional[str] = None
    sgst: Optional[float] = None
    cgst: Optional[float] = None
    igst: Optional[float] = None
    cess: Optional[float] = None
    # Either a list of URLs / data URIs, or a list of {imageUrl, altText, sortOrder}
    images: Optional[List[Any]] = None
    imageUrls: Optional[List[Any]] = None


class ProductImagePayload(BaseModel):
    imageUrl: Optional[str] = None
    image_url: Optional[str] = None
    altText: Optional[str] = None
    alt_text: Optional[str] = None
    sortOrder: Optional[int] = None
    sort_order: Optional[int] = None


# =====================================================
# HELPERS
# =====================================================

def generate_item_code() -> str:
    suffix = "".join(random.choices(string.ascii_lowercase + string.digits, k=9))
    return f"ITEM-{int(time.time() * 1000)}-{suffix}"


def _first(*values):
    for value in values:
        if value is not None:
            return value
    return None


def _product_fields(payload: ProductPayload) -> dict:
    """
    Map the (possibly dual-named) fields the client actually sent onto
    column names. Unsent fields are left out; an explicit null on a
    required column is a 400.
    """
    sent = payload.model_dump(exclude_unset=True)

    for key in NON_NULLABLE_FIELDS:
        if key in sent and sent[key] is None:
            raise HTTPException(status.HTTP_400_BAD_REQUEST, f"{key} cannot be null")

    # A null itemCode means "generate one" on create and "keep" on update.
    if sent.get("itemCode") is None:
        sent.pop("itemCode", None)

    fields = {}

    simple = {
        "name": "name",
        "description": "description",
        "price": "price",
        "isFeatured": "is_featured",
        "isBestseller": "is_bestseller",
        "categoryId": "category_id",
        "rating": "rating",
        "taxPercent": "tax_percent",
        "itemCode": "item_code",
        "brandGroup": "brand_group",
        "sdp": "sdp",
        "nrp": "nrp",
        "mrp": "mrp",
        "hsn": "hsn",
        "sgst": "sgst",
        "cgst": "cgst",
        "igst": "igst",
        "cess": "cess",
    }
    for key, column in simple.items():
        if key in sent:
            fields[column] = sent[key]

    image_url = _first(sent.get("image_url"), sent.get("imageUrl"))
    if image_url is not None:
        fields["image_url"] = image_url

    original_price = _first(sent.get("original_price"), sent.get("originalPrice"))
    if original_price is not None:
        fields["original_price"] = original_price

    is_pipe = _first(sent.get("is_pipe"), sent.get("isPipe"))
    if is_pipe is not None:
        fields["is_pipe"] = is_pipe

    stock = _first(
        sent.get("stock_quantity"),
        sent.get("stockQuantity"),
        sent.get("availableStock"),
    )
    if stock is not None:
        fields["available_stock"] = stock
        fields["stock_quantity"] = stock

    reviews = _first(sent.get("reviews_count"), sent.get("reviewsCount"))
    if reviews is not None:
        fields["reviews_count"] = reviews

    return fields


def _image_specs(images: list, default_alt: str) -> list[dict]:
    """
    Validate an incoming image list without touching the media host.
    Each spec carries either a ready ``image_url`` or a ``data_uri`` still
    to be uploaded.
    """
    specs = []
    for index, image in enumerate(images):
        spec = {
            "image_url": None,
            "data_uri": None,
            "alt_text": f"{default_alt} image {index + 1}",
            "sort_order": index,
        }

        if is_data_uri(image):
            spec["data_uri"] = image
        elif isinstance(image, str) and image:
            spec["image_url"] = image
        elif isinstance(image, dict) and (image.get("imageUrl") or image.get("image_url")):
            spec["image_url"] = image.get("imageUrl") or image.get("image_url")
            spec["alt_text"] = image.get("altText") or image.get("alt_text") or spec["alt_text"]
            spec["sort_order"] = _first(image.get("sortOrder"), image.get("sort_order"), index)
        else:
            raise HTTPException(
                status.HTTP_400_BAD_REQUEST,
                f"Invalid image format at index {index}",
            )

        specs.append(spec)
    return specs


def _upload_pending(specs: list[dict], owner_id: str) -> list[str]:
    """Upload data-URI specs in place. Returns the URLs created on the media host."""
    uploaded = []
    for spec in specs:
        if spec["data_uri"]:
            spec["image_url"] = upload_data_uri(spec["data_uri"], folder="products", owner_id=owner_id)
            uploaded.append(spec["image_url"])
    return uploaded


def _image_rows(product_id: int, specs: list[dict]) -> list[ProductImage]:
    return [
        ProductImage(
            product_id=product_id,
            image_url=spec["image_url"],
            alt_text=spec["alt_text"],
            sort_order=spec["sort_order"],
        )
        for spec in specs
    ]


def _ensure_item_code_free(db: Session, item_code: str, product_id: int | None = None):
    query = db.query(Product.id).filter(Product.item_code == item_code)
    if product_id is not None:
        query = query.filter(Product.id != product_id)
    if query.first():
        raise HTTPException(status.HTTP_409_CONFLICT, "A product with this itemCode already exists")


def _is_item_code_conflict(exc: IntegrityError) -> bool:
    # A unique-index race that slipped past the pre-check.
    return "item_code" in str(exc.orig)


def _log_orphans(urls: list[str]):
    for url in urls:
        logger.warning("Uploaded image left without a product row | url=%s", url)


def _load_product(db: Session, product_id: int) -> Product | None:
    return (
        db.query(Product)
        .options(joinedload(Product.category), selectinload(Product.images))
        .filter(Product.id == product_id)
        .first()
    )


def _get_product_or_404(db: Session, product_id: int) -> Product:
    product = _load_product(db, product_id)
    if not product:
        raise HTTPException(status.HTTP_404_NOT_FOUND, "Product not found")
    return product


def _flag(value: Optional[str]) -> Optional[bool]:
    if value is None:
        return None
    return value == "true"


# =====================================================
# PUBLIC: LIST PRODUCTS
# =====================================================
@router.get("")
def list_products(
    db: Session = Depends(get_db),
    category: Optional[int] = None,
    categoryId: Optional[int] = None,
    search: Optional[str] = None,
    isFeatured: Optional[str] = None,
    isBestseller: Optional[str] = None,
    isPipe: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1),
    sortBy: str = "createdAt",
    sortOrder: str = "desc",
):
    limit = min(limit, MAX_PAGE_SIZE)

    if sortBy not in SORTABLE_COLUMNS:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, f"Invalid sortBy: '{sortBy}'")
    if sortOrder not in ("asc", "desc"):
        raise HTTPException(status.HTTP_400_BAD_REQUEST, f"Invalid sortOrder: '{sortOrder}'")

    query = db.query(Product)

    if category is not None:
        query = query.filter(Product.category_id == category)
    if categoryId is not None:
        query = query.filter(Product.category_id == categoryId)
    if search:
        pattern = f"%{search}%"
        query = query.filter(or_(
            Product.name.ilike(pattern),
            Product.description.ilike(pattern),
            Product.item_code.ilike(pattern),
        ))

    for column, value in (
        (Product.is_featured, isFeatured),
        (Product.is_bestseller, isBestseller),
        (Product.is_pipe, isPipe),
    ):
        flag = _flag(value)
        if flag is not None:
            query = query.filter(column == flag)

    total = query.count()

    sort_column = SORTABLE_COLUMNS[sortBy]
    ordering = sort_column.asc() if sortOrder == "asc" else sort_column.desc()

    products = (
        query.options(joinedload(Product.category), selectinload(Product.images))
        .order_by(ordering, Product.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )

    results = []
    for p in products:
        data = serialize_product(p)
        data["images"] = [
            {
                "image_url": img.image_url,
                "alt_text": img.alt_text,
                "sort_order": img.sort_order,
            }
            for img in p.images
        ]
        results.append(data)

    logger.debug("Returning %s products (page %s)", len(results), page)

    return {
        "products": results,
        "pagination": pagination_block(page, limit, total, "totalProducts"),
    }


# =====================================================
# PUBLIC: SIMPLE LIST
# =====================================================
@router.get("/simple")
def list_products_simple(
    db: Session = Depends(get_db),
    categoryId: Optional[int] = None,
    search: Optional[str] = None,
    limit: int = Query(10, ge=1),
):
    query = db.query(Product).options(joinedload(Product.category))

    if categoryId is not None:
        query = query.filter(Product.category_id == categoryId)
    if search:
        pattern = f"%{search}%"
        query = query.filter(or_(
            Product.name.ilike(pattern),
            Product.item_code.ilike(pattern),
        ))

    products = (
        query.order_by(Product.created_at.desc(), Product.id.desc())
        .limit(min(limit, MAX_SIMPLE_PAGE_SIZE))
        .all()
    )
    return [serialize_product(p) for p in products]


# =====================================================
# ADMIN: DELETE SINGLE IMAGE
# =====================================================
@router.delete("/images/{image_id}", dependencies=[Depends(require_admin)])
def delete_product_image(image_id: int, db: Session = Depends(get_db)):
    image = db.query(ProductImage).filter(ProductImage.id == image_id).first()
    if not image:
        raise HTTPException(status.HTTP_404_NOT_FOUND, "Image not found")

    deleted = serialize_image_short(image)
    db.delete(image)
    db.commit()

    return {"message": "Image deleted successfully", "deletedImage": deleted}


# =====================================================
# PUBLIC: SINGLE PRODUCT
# =====================================================
@router.get("/{product_id}")
def get_product(product_id: int, db: Session = Depends(get_db)):
    product = _get_product_or_404(db, product_id)
    return serialize_product(product, include_images=True)


# =====================================================
# ADMIN: CREATE PRODUCT
# =====================================================
@router.post("", status_code=status.HTTP_201_CREATED, dependencies=[Depends(require_admin)])
def create_product(payload: ProductPayload, db: Session = Depends(get_db)):
    fields = _product_fields(payload)

    if not fields.get("name") or not fields.get("category_id"):
        raise HTTPException(status.HTTP_400_BAD_REQUEST, "Name and categoryId are required")

    if not db.query(Category).filter(Category.id == fields["category_id"]).first():
        raise HTTPException(status.HTTP_404_NOT_FOUND, "Category not found")

    fields.setdefault("price", 0)
    fields.setdefault("rating", 0)
    fields.setdefault("available_stock", 0)
    fields.setdefault("stock_quantity", 0)
    fields.setdefault("reviews_count", 0)
    fields.setdefault("tax_percent", 0)
    fields.setdefault("is_featured", False)
    fields.setdefault("is_bestseller", False)
    fields.setdefault("is_pipe", False)
    if fields.get("item_code"):
        _ensure_item_code_free(db, fields["item_code"])
    else:
        fields["item_code"] = generate_item_code()

    images = payload.images if payload.images is not None else payload.imageUrls
    specs = _image_specs(images or [], fields["name"])
    uploaded = _upload_pending(specs, owner_id=fields["item_code"])

    product = Product(**fields)
    try:
        db.add(product)
        db.flush()
        db.add_all(_image_rows(product.id, specs))
        db.commit()
    except Exception as e:
        db.rollback()
        _log_orphans(uploaded)
        if isinstance(e, IntegrityError) and _is_item_code_conflict(e):
            raise HTTPException(status.HTTP_409_CONFLICT, "A product with this itemCode already exists")
        raise

    logger.info("Product created | product_id=%s | item_code=%s", product.id, product.item_code)

    return serialize_product(_load_product(db, product.id), include_images=True)


# =====================================================
# ADMIN: UPDATE PRODUCT
# =====================================================
@router.put("/{product_id}", dependencies=[Depends(require_admin)])
def update_product(
    product_id: int,
    payload: ProductPayload,
    db: Session = Depends(get_db),
):
    product = _get_product_or_404(db, product_id)
    fields = _product_fields(payload)

    if "category_id" in fields and not db.query(Category).filter(Category.id == fields["category_id"]).first():
        raise HTTPException(status.HTTP_404_NOT_FOUND, "Category not found")

    if "item_code" in fields:
        _ensure_item_code_free(db, fields["item_code"], product_id=product_id)

    images = payload.images if payload.images is not None else payload.imageUrls
    specs = None
    uploaded = []
    if isinstance(images, list):
        specs = _image_specs(images, fields.get("name") or product.name)
        uploaded = _upload_pending(specs, owner_id=str(product_id))

    # Field update and image replacement commit together.
    try:
        for column, value in fields.items():
            setattr(product, column, value)

        if specs is not None:
            product.images.clear()
            db.flush()
            db.add_all(_image_rows(product_id, specs))

        db.commit()
    except Exception as e:
        db.rollback()
        _log_orphans(uploaded)
        if isinstance(e, IntegrityError) and _is_item_code_conflict(e):
            raise HTTPException(status.HTTP_409_CONFLICT, "A product with this itemCode already exists")
        raise

    db.expire_all()
    return serialize_product(_load_product(db, product_id), include_images=True)


# =====================================================
# ADMIN: DELETE PRODUCT
# =====================================================
@router.delete("/{product_id}", dependencies=[Depends(require_admin)])
def delete_product(product_id: int, db: Session = Depends(get_db)):
    product = _get_product_or_404(db, product_id)

    deleted = serialize_product(product, include_category=False)
    deleted_images = len(product.images)

    db.delete(product)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(
            status.HTTP_409_CONFLICT,
            "Product is referenced by existing orders",
        )

    return {
        "message": "Product deleted successfully",
        "product": deleted,
        "deletedImagesCount": deleted_images,
    }


# =====================================================
# PRODUCT IMAGES
# =====================================================
@router.get("/{product_id}/images")
def list_product_images(
    product_id: int,
    db: Session = Depends(get_db),
    user=Depends(get_current_user),
):
    images = (
        db.query(ProductImage)
        .filter(ProductImage.product_id == product_id)
        .order_by(ProductImage.sort_order.asc(), ProductImage.id.asc())
        .all()
    )
    return {"images": [serialize_image_short(img) for img in images]}


@router.post(
    "/{product_id}/images",
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_admin)],
)
def add_product_image(
    product_id: int,
    payload: ProductImagePayload,
    db: Session = Depends(get_db),
):
    if not db.query(Product).filter(Product.id == product_id).first():
        raise HTTPException(status.HTTP_404_NOT_FOUND, "Product not found")

    image_url = payload.image_url or payload.imageUrl
    if not image_url:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, "Image URL is required")

    image = ProductImage(
        product_id=product_id,
        image_url=image_url,
        alt_text=payload.alt_text or payload.altText or "Product image",
        sort_order=payload.sort_order or payload.sortOrder or 0,
    )
    db.add(image)
    db.commit()
    db.refresh(image)

    return {
        "message": "Image added successfully",
        "image": {
            "id": image.id,
            "image_url": image.image_url,
            "alt_text": image.alt_text,
            "sort_order": image.sort_order,
        },
    }


@router.post(
    "/{product_id}/images/upload",
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_admin)],
)
def upload_product_image(
    product_id: int,
    file: UploadFile = File(...),
    db: Session = Depends(get_db),
):
    product = _get_product_or_404(db, product_id)

    url = handle_upload(file=file, folder="products", owner_id=str(product.id))

    image = ProductImage(
        product_id=product.id,
        image_url=url,
        alt_text=f"{product.name} image {len(product.images) + 1}",
        sort_order=len(product.images),
    )
    db.add(image)
    db.commit()
    db.refresh(image)

    return {"message": "Image uploaded successfully", "image": serialize_image(image)}


@router.put("/{product_id}/images/{image_id}", dependencies=[Depends(require_admin)])
def update_product_image(
    product_id: int,
    image_id: int,
    payload: ProductImagePayload,
    db: Session = Depends(get_db),
):
    image = (
        db.query(ProductImage)
        .filter(ProductImage.id == image_id, ProductImage.product_id == product_id)
        .first()
    )
    if not image:
        raise HTTPException(status.HTTP_404_NOT_FOUND, "Image not found")

    image_url = payload.image_url or payload.imageUrl
    alt_text = payload.alt_text or payload.altText
    sort_order = _first(payload.sort_order, payload.sortOrder)

    if image_url is not None:
        image.image_url = image_url
    if alt_text is not None:
        image.alt_text = alt_text
    if sort_order is not None:
        image.sort_order = sort_order

    db.commit()
    db.refresh(image)

    return {"message": "Image updated successfully", "image": serialize_image(image)}
