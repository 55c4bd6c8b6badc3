# storefront/services/cart.py
"""Cart operations.

Every mutating operation recomputes the derived totals with
``compute_totals`` before committing. Concurrent mutations of the same
cart are not versioned; the last commit wins.
"""
from typing import Iterable, Optional, Tuple

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from storefront.errors import NotFound, OutOfStock
from storefront.models.cart import Cart, CartItem
from storefront.models.product import Product, ProductCategory
from storefront.utils.tokenJWT import Principal


def compute_totals(items: Iterable[CartItem]) -> Tuple[int, float]:
    items = list(items)
    total_items = sum(item.quantity for item in items)
    total_price = round(sum(item.price * item.quantity for item in items), 2)
    return total_items, total_price


def _refresh_totals(cart: Cart) -> None:
    cart.total_items, cart.total_price = compute_totals(cart.items)


def _variant_key(variant: Optional[dict]) -> Tuple[Optional[str], Optional[str]]:
    if not variant:
        return None, None
    return variant.get("name"), variant.get("value")


def check_stock(product: Product, quantity: int, variant: Optional[dict] = None) -> None:
    """Raise OutOfStock when a merch product cannot cover ``quantity``."""
    if product.category != ProductCategory.MERCH:
        return
    if variant:
        option = product.find_variant(*_variant_key(variant))
        if option is None or option.stock < quantity:
            raise OutOfStock("Insufficient stock for selected variant")
    elif product.stock < quantity:
        raise OutOfStock("Insufficient stock")


def resolve_unit_price(product: Product, variant: Optional[dict] = None) -> float:
    if variant:
        option = product.find_variant(*_variant_key(variant))
        if option is not None and option.price is not None:
            return option.price
    return product.price


# Retrieve the user's cart or create an empty one
def get_or_create(db: Session, principal: Principal) -> Cart:
    cart = db.query(Cart).filter(Cart.user_id == principal.id).first()
    if cart:
        return cart
    cart = Cart(user_id=principal.id, total_items=0, total_price=0.0)
    db.add(cart)
    try:
        db.commit()
    except IntegrityError:
        # Another request created the cart first
        db.rollback()
        return db.query(Cart).filter(Cart.user_id == principal.id).one()
    db.refresh(cart)
    return cart


def add_item(db: Session, principal: Principal, product_id: int, quantity: int = 1,
             variant: Optional[dict] = None) -> Cart:
    product = db.get(Product, product_id)
    if not product or not product.is_active:
        raise NotFound("Product not found or inactive")

    check_stock(product, quantity, variant)

    cart = get_or_create(db, principal)
    variant_name, variant_value = _variant_key(variant)

    existing = next(
        (it for it in cart.items
         if it.product_id == product.id
         and it.variant_name == variant_name
         and it.variant_value == variant_value),
        None,
    )
    if existing:
        existing.quantity += quantity
    else:
        cart.items.append(CartItem(
            product_id=product.id,
            product=product,
            quantity=quantity,
            price=resolve_unit_price(product, variant),
            variant_name=variant_name,
            variant_value=variant_value,
        ))

    _refresh_totals(cart)
    db.commit()
    db.refresh(cart)
    return cart


def _find_item(cart: Cart, item_id: int) -> Optional[CartItem]:
    return next((it for it in cart.items if it.id == item_id), None)


def update_item_quantity(db: Session, principal: Principal, item_id: int, quantity: int) -> Cart:
    cart = get_or_create(db, principal)
    item = _find_item(cart, item_id)
    if not item:
        raise NotFound("Item not found in cart")

    if item.product is None:
        raise NotFound("Product not found")
    check_stock(item.product, quantity, item.variant)

    item.quantity = quantity
    _refresh_totals(cart)
    db.commit()
    db.refresh(cart)
    return cart


def remove_item(db: Session, principal: Principal, item_id: int) -> Cart:
    cart = get_or_create(db, principal)
    item = _find_item(cart, item_id)
    if item:
        cart.items.remove(item)
    _refresh_totals(cart)
    db.commit()
    db.refresh(cart)
    return cart


def empty(cart: Cart) -> None:
    """Drop every line without committing; used inside larger transactions."""
    cart.items.clear()
    _refresh_totals(cart)


def clear(db: Session, principal: Principal) -> Cart:
    cart = get_or_create(db, principal)
    empty(cart)
    db.commit()
    db.refresh(cart)
    return cart


def summary(db: Session, principal: Principal) -> dict:
    cart = db.query(Cart).filter(Cart.user_id == principal.id).first()
    if not cart:
        return {"total_items": 0, "total_price": 0.0, "item_count": 0}
    return {
        "total_items": cart.total_items,
        "total_price": cart.total_price,
        "item_count": len(cart.items),
    }
