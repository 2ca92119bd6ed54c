"""
Response shapes for the storefront frontend.

The frontend reads a mix of camelCase fields and snake_case aliases
(``imageUrl`` and ``image_url``, ``availableStock`` and ``stock_quantity``,
...). Every serializer here emits both where the frontend expects both, and
nothing else should build these dicts by hand.
"""
from storefront.models import (
    Address,
    CartItem,
    Category,
    Order,
    OrderItem,
    Payment,
    Pincode,
    Product,
    ProductImage,
    User,
)


# =====================================================
# USERS
# =====================================================

def serialize_user(u: User) -> dict:
    return {
        "id": u.id,
        "name": u.name,
        "email": u.email,
        "phone": u.phone,
        "city": u.city,
        "address": u.address,
        "role": u.role,
        "isTricity": u.is_tricity,
        "isBlocked": u.is_blocked,
        "createdAt": u.created_at,
        "updatedAt": u.updated_at,
    }


def serialize_user_summary(u: User) -> dict:
    return {
        "id": u.id,
        "name": u.name,
        "email": u.email,
        "role": u.role,
        "isBlocked": u.is_blocked,
    }


# =====================================================
# CATALOG
# =====================================================

def serialize_category(c: Category) -> dict:
    return {
        "id": c.id,
        "name": c.name,
        "description": c.description,
        "imageUrl": c.image_url,
        "createdAt": c.created_at,
        "image_url": c.image_url,
    }


def serialize_image(img: ProductImage) -> dict:
    return {
        "id": img.id,
        "imageUrl": img.image_url,
        "image_url": img.image_url,
        "altText": img.alt_text,
        "alt_text": img.alt_text,
        "sortOrder": img.sort_order,
        "sort_order": img.sort_order,
    }


def serialize_image_short(img: ProductImage) -> dict:
    return {
        "id": img.id,
        "image_url": img.image_url,
        "alt_text": img.alt_text,
        "sort_order": img.sort_order,
        "created_at": img.created_at,
    }


def serialize_product(
    p: Product,
    include_category: bool = True,
    include_images: bool = False,
) -> dict:
    data = {
        "id": p.id,
        "name": p.name,
        "description": p.description,
        "imageUrl": p.image_url,
        "price": p.price,
        "originalPrice": p.original_price,
        "taxPercent": p.tax_percent,
        "categoryId": p.category_id,
        "availableStock": p.available_stock,
        "stockQuantity": p.stock_quantity,
        "rating": p.rating,
        "reviewsCount": p.reviews_count,
        "isFeatured": p.is_featured,
        "isBestseller": p.is_bestseller,
        "isPipe": p.is_pipe,
        "itemCode": p.item_code,
        "brandGroup": p.brand_group,
        "sdp": p.sdp,
        "nrp": p.nrp,
        "mrp": p.mrp,
        "hsn": p.hsn,
        "sgst": p.sgst,
        "cgst": p.cgst,
        "igst": p.igst,
        "cess": p.cess,
        "createdAt": p.created_at,
        "updatedAt": p.updated_at,
        # snake_case aliases
        "image_url": p.image_url,
        "stock_quantity": p.available_stock,
        "original_price": p.original_price,
        "reviews_count": p.reviews_count or 0,
        "is_pipe": p.is_pipe,
    }
    if include_category:
        data["category"] = serialize_category(p.category) if p.category else None
    if include_images:
        data["images"] = [serialize_image(img) for img in p.images]
    return data


# =====================================================
# CART
# =====================================================

def serialize_cart_item(item: CartItem) -> dict:
    return {
        "id": item.id,
        "userId": item.user_id,
        "productId": item.product_id,
        "quantity": item.quantity,
        "createdAt": item.created_at,
        "product": serialize_product(item.product) if item.product else None,
    }


# =====================================================
# ADDRESSES
# =====================================================

def serialize_pincode(pc: Pincode) -> dict:
    return {
        "id": pc.id,
        "code": pc.code,
        "deliveryPrice": pc.delivery_price,
        "createdAt": pc.created_at,
    }


def serialize_address_fields(a: Address) -> dict:
    return {
        "id": a.id,
        "userId": a.user_id,
        "label": a.label,
        "house": a.house,
        "street": a.street,
        "city": a.city,
        "landmark": a.landmark,
        "address1": a.address1,
        "createdAt": a.created_at,
    }


def serialize_address(a: Address) -> dict:
    data = serialize_address_fields(a)
    data.update({
        "pincodeId": a.pincode_id,
        "pincode": serialize_pincode(a.pincode) if a.pincode else None,
        "deliveryPrice": a.pincode.delivery_price if a.pincode else None,
        "pincodeValue": a.pincode.code if a.pincode else None,
    })
    return data


# =====================================================
# ORDERS
# =====================================================

def serialize_order_item(i: OrderItem) -> dict:
    return {
        "id": i.id,
        "orderId": i.order_id,
        "productId": i.product_id,
        "quantity": i.quantity,
        "price": i.price,
        "product": serialize_product(i.product) if i.product else None,
    }


def serialize_payment(p: Payment) -> dict:
    return {
        "id": p.id,
        "orderId": p.order_id,
        "paymentId": p.payment_id,
        "orderRef": p.order_ref,
        "signature": p.signature,
        "amount": p.amount,
        "status": p.status,
        "createdAt": p.created_at,
    }


def serialize_order(o: Order, include_user: bool = False, include_payments: bool = False) -> dict:
    delivery_address = serialize_address_fields(o.address) if o.address else None
    data = {
        "id": o.id,
        "userId": o.user_id,
        "totalPrice": o.total_price,
        "totalAmount": o.total_amount,
        "addressId": o.address_id,
        "paymentMethod": o.payment_method,
        "paymentId": o.payment_id,
        "status": o.status,
        "createdAt": o.created_at,
        "updatedAt": o.updated_at,
        "items": [serialize_order_item(i) for i in o.items],
        # snake_case aliases
        "total_amount": o.total_amount or o.total_price,
        "address_id": o.address_id,
        "delivery_address": delivery_address,
        "payment_method": o.payment_method,
        "payment_id": o.payment_id,
    }
    if include_user and o.user:
        data["user"] = {"id": o.user.id, "name": o.user.name, "email": o.user.email}
    if include_payments:
        data["payment"] = [serialize_payment(p) for p in o.payments]
    return data


def pagination_block(page: int, limit: int, total: int, total_key: str) -> dict:
    total_pages = (total + limit - 1) // limit if limit else 0
    return {
        "currentPage": page,
        "totalPages": total_pages,
        total_key: total,
        "hasNextPage": page < total_pages,
        "hasPreviousPage": page > 1,
        "limit": limit,
    }
