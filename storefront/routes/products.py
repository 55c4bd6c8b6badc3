# storefront/routes/products.py
import re
from typing import List, Literal, Optional

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy import func, or_
from sqlalchemy.orm import Session, selectinload

from storefront.database import get_db
from storefront.errors import NotFound, ValidationError
from storefront.models.product import Product, ProductCategory, ProductVariant
from storefront.schemas.common import ApiResponse, Message
from storefront.schemas import product as product_schemas
from storefront.utils.audit import write_log, client_ip
from storefront.utils.pagination import paginate
from storefront.utils.tokenJWT import Principal, role_required

router = APIRouter(prefix="/products", tags=["Products"])

# ---- HELPERS ----
def _slugify(name: str) -> str:
    slug = re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-")
    return slug or "product"

def _unique_slug(db: Session, name: str, exclude_id: Optional[int] = None) -> str:
    base = _slugify(name)
    slug, n = base, 2
    while True:
        q = db.query(Product.id).filter(Product.slug == slug)
        if exclude_id is not None:
            q = q.filter(Product.id != exclude_id)
        if not q.first():
            return slug
        slug, n = f"{base}-{n}", n + 1

def _group_variants(variants: List[ProductVariant]) -> List[product_schemas.VariantGroup]:
    groups = {}
    for v in variants:
        groups.setdefault(v.name, []).append(product_schemas.VariantOption.model_validate(v))
    return [product_schemas.VariantGroup(name=name, options=options) for name, options in groups.items()]

def _flatten_variants(groups: List[product_schemas.VariantGroup]) -> List[ProductVariant]:
    seen = set()
    rows = []
    for group in groups:
        for option in group.options:
            key = (group.name, option.value)
            if key in seen:
                raise ValidationError(f"Duplicate variant option {group.name}={option.value}")
            seen.add(key)
            rows.append(ProductVariant(name=group.name, value=option.value, price=option.price,
                                       stock=option.stock, sku=option.sku))
    return rows

def product_to_out(product: Product) -> product_schemas.ProductOut:
    data = {
        field: getattr(product, field)
        for field in product_schemas.ProductOut.model_fields
        if field != "variants"
    }
    data["variants"] = _group_variants(product.variants)
    return product_schemas.ProductOut.model_validate(data)

def _active(db: Session):
    return db.query(Product).options(selectinload(Product.variants)).filter(Product.is_active == True)  # noqa: E712

SORTS = {
    "price-low": Product.price.asc(),
    "price-high": Product.price.desc(),
    "newest": Product.created_at.desc(),
    "popular": Product.sold.desc(),
}


# =========================
# CATALOG (public)
# =========================
@router.get("", response_model=ApiResponse[product_schemas.ProductListPage])
def list_products(
    category: Optional[ProductCategory] = Query(None),
    search: Optional[str] = Query(None, description="Search by name or description"),
    min_price: Optional[float] = Query(None, ge=0),
    max_price: Optional[float] = Query(None, ge=0),
    sort: Literal["price-low", "price-high", "newest", "popular"] = "newest",
    page: int = Query(1, ge=1),
    limit: int = Query(12, ge=1, le=100),
    db: Session = Depends(get_db),
):
    query = _active(db)

    if category:
        query = query.filter(Product.category == category)
    if search:
        like = f"%{search}%"
        query = query.filter(or_(Product.name.ilike(like), Product.description.ilike(like)))
    if min_price is not None:
        query = query.filter(Product.price >= min_price)
    if max_price is not None:
        query = query.filter(Product.price <= max_price)

    query = query.order_by(SORTS[sort], Product.id.desc())
    rows, pagination = paginate(query, page, limit)
    return ApiResponse(data=product_schemas.ProductListPage(
        products=[product_to_out(p) for p in rows], pagination=pagination
    ))


@router.get("/featured", response_model=ApiResponse[List[product_schemas.ProductOut]])
def get_featured_products(
    limit: int = Query(8, ge=1, le=50),
    db: Session = Depends(get_db),
):
    rows = _active(db).filter(Product.is_featured == True).order_by(  # noqa: E712
        Product.created_at.desc(), Product.id.desc()
    ).limit(limit).all()
    return ApiResponse(data=[product_to_out(p) for p in rows])


# Active product count per category
@router.get("/categories", response_model=ApiResponse[List[product_schemas.CategoryCount]])
def get_categories(db: Session = Depends(get_db)):
    rows = (
        db.query(Product.category, func.count(Product.id))
        .filter(Product.is_active == True)  # noqa: E712
        .group_by(Product.category)
        .all()
    )
    return ApiResponse(data=[product_schemas.CategoryCount(category=c, count=n) for c, n in rows])


@router.get("/category/{category}", response_model=ApiResponse[product_schemas.ProductListPage])
def get_products_by_category(
    category: ProductCategory,
    page: int = Query(1, ge=1),
    limit: int = Query(12, ge=1, le=100),
    db: Session = Depends(get_db),
):
    query = _active(db).filter(Product.category == category).order_by(Product.created_at.desc(), Product.id.desc())
    rows, pagination = paginate(query, page, limit)
    return ApiResponse(data=product_schemas.ProductListPage(
        products=[product_to_out(p) for p in rows], pagination=pagination
    ))


@router.get("/slug/{slug}", response_model=ApiResponse[product_schemas.ProductOut])
def get_product_by_slug(slug: str, db: Session = Depends(get_db)):
    product = _active(db).filter(Product.slug == slug).first()
    if not product:
        raise NotFound("Product not found")
    return ApiResponse(data=product_to_out(product))


@router.get("/{product_id}", response_model=ApiResponse[product_schemas.ProductOut])
def get_product(product_id: int, db: Session = Depends(get_db)):
    product = db.get(Product, product_id)
    if not product:
        raise NotFound("Product not found")
    return ApiResponse(data=product_to_out(product))


# =========================
# ADMIN CRUD
# =========================
@router.post("", response_model=ApiResponse[product_schemas.ProductOut], status_code=status.HTTP_201_CREATED)
def create_product(
    payload: product_schemas.ProductCreate,
    request: Request,
    db: Session = Depends(get_db),
    principal: Principal = Depends(role_required("admin")),
):
    if payload.sku and db.query(Product).filter(Product.sku == payload.sku).first():
        raise ValidationError("Product with this SKU already exists")

    data = payload.model_dump(exclude={"variants"})
    product = Product(**data, slug=_unique_slug(db, payload.name), created_by=principal.id, sold=0)
    product.variants = _flatten_variants(payload.variants)
    db.add(product)
    db.commit()
    db.refresh(product)

    write_log(db, user_id=principal.id, action="PRODUCT_CREATE", resource="products", status="SUCCESS",
              ip=client_ip(request), meta={"product_id": product.id, "name": product.name})
    return ApiResponse(data=product_to_out(product))


@router.put("/{product_id}", response_model=ApiResponse[product_schemas.ProductOut])
def update_product(
    product_id: int,
    payload: product_schemas.ProductEditRequest,
    request: Request,
    db: Session = Depends(get_db),
    principal: Principal = Depends(role_required("admin")),
):
    product = db.get(Product, product_id)
    if not product:
        raise NotFound("Product not found")

    changes = payload.model_dump(exclude_unset=True, exclude={"variants"})
    if "sku" in changes and changes["sku"]:
        clash = db.query(Product).filter(Product.sku == changes["sku"], Product.id != product.id).first()
        if clash:
            raise ValidationError("Product with this SKU already exists")

    for field, value in changes.items():
        setattr(product, field, value)
    if "name" in changes:
        product.slug = _unique_slug(db, product.name, exclude_id=product.id)
    if payload.variants is not None:
        # Old options must be deleted before their replacements are inserted
        product.variants = []
        db.flush()
        product.variants = _flatten_variants(payload.variants)

    db.commit()
    db.refresh(product)

    write_log(db, user_id=principal.id, action="PRODUCT_UPDATE", resource="products", status="SUCCESS",
              ip=client_ip(request), meta={"product_id": product.id, "fields": sorted(changes)})
    return ApiResponse(data=product_to_out(product))


# Soft delete: product stays referenced by carts and orders
@router.delete("/{product_id}", response_model=ApiResponse[Message])
def delete_product(
    product_id: int,
    request: Request,
    db: Session = Depends(get_db),
    principal: Principal = Depends(role_required("admin")),
):
    product = db.get(Product, product_id)
    if not product:
        raise NotFound("Product not found")

    product.is_active = False
    db.commit()

    write_log(db, user_id=principal.id, action="PRODUCT_DELETE", resource="products", status="SUCCESS",
              ip=client_ip(request), meta={"product_id": product_id})
    return ApiResponse(data=Message(message="Product deleted successfully"))
