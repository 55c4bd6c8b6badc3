# storefront/services/checkout.py
"""Checkout workflow: payment intent creation and order confirmation.

``create_intent`` only talks to the gateway; no order exists until
``confirm`` sees a succeeded intent. ``confirm`` writes the order, the
inventory updates and the emptied cart in one transaction. Stock that
turns out to be short at that point is not decremented below zero; the
shortfall is recorded as a StockReconciliation entry for an admin to
resolve, and the order stands because the payment was already captured.
"""
import logging
from dataclasses import dataclass
from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from storefront.config import settings
from storefront.errors import (
    EmptyCart, Forbidden, PaymentAlreadyProcessed, PaymentNotSucceeded, ValidationError
)
from storefront.models.cart import Cart, CartItem
from storefront.models.order import Order, OrderItem, OrderStatus, PaymentMethod, PaymentStatus
from storefront.models.product import Product, ProductCategory, ProductVariant
from storefront.models.reconciliation import StockReconciliation
from storefront.models.users import User
from storefront.services import cart as cart_service
from storefront.services.order_numbers import next_order_number
from storefront.services.orders import record_status
from storefront.utils.stripe_client import SUCCEEDED
from storefront.utils.tokenJWT import Principal

logger = logging.getLogger(__name__)


@dataclass
class Quote:
    subtotal: float
    tax: float
    shipping: float
    total: float


def quote(subtotal: float) -> Quote:
    subtotal = round(subtotal, 2)
    tax = round(subtotal * settings.TAX_RATE, 2)
    shipping = 0.0 if subtotal >= settings.FREE_SHIPPING_THRESHOLD else float(settings.SHIPPING_COST)
    return Quote(subtotal=subtotal, tax=tax, shipping=shipping, total=round(subtotal + tax + shipping, 2))


def to_minor_units(amount: float) -> int:
    return int(round(amount * 100))


def _stripe_shipping(address: Optional[dict]) -> Optional[dict]:
    if not address:
        return None
    return {
        "name": address.get("name"),
        "address": {
            "line1": address.get("street"),
            "city": address.get("city"),
            "state": address.get("state"),
            "postal_code": address.get("zip_code"),
            "country": address.get("country") or "US",
        },
    }


def _summary_items(items: List[CartItem]) -> list:
    return [
        {
            "name": it.product.name if it.product else "",
            "quantity": it.quantity,
            "price": it.price,
            "variant": it.variant,
        }
        for it in items
    ]


# Retrieve the linked gateway customer, creating and persisting it on first use
def ensure_customer(db: Session, user: User, gateway) -> str:
    if user.stripe_customer_id:
        return gateway.retrieve_customer(user.stripe_customer_id)
    customer_id = gateway.create_customer(email=user.email, name=user.name, user_id=user.id)
    user.stripe_customer_id = customer_id
    db.commit()
    return customer_id


def create_intent(db: Session, principal: Principal, gateway,
                  shipping_address: Optional[dict] = None) -> dict:
    cart = cart_service.get_or_create(db, principal)
    if not cart.items:
        raise EmptyCart()

    _, subtotal = cart_service.compute_totals(cart.items)
    amounts = quote(subtotal)

    user = db.get(User, principal.id)
    customer_id = ensure_customer(db, user, gateway)

    intent = gateway.create_payment_intent(
        amount=to_minor_units(amounts.total),
        currency=settings.CURRENCY,
        customer=customer_id,
        metadata={
            "user_id": str(principal.id),
            "cart_id": str(cart.id),
            "subtotal": str(amounts.subtotal),
            "tax": str(amounts.tax),
            "shipping": str(amounts.shipping),
            "total": str(amounts.total),
        },
        shipping=_stripe_shipping(shipping_address),
    )
    logger.info("Payment intent %s created for user %s (total %.2f)", intent.id, principal.id, amounts.total)

    return {
        "client_secret": intent.client_secret,
        "payment_intent_id": intent.id,
        "amount": amounts.total,
        "currency": settings.CURRENCY,
        "order_summary": {
            "subtotal": amounts.subtotal,
            "tax": amounts.tax,
            "shipping": amounts.shipping,
            "total": amounts.total,
            "items": _summary_items(cart.items),
        },
    }


def _charged_amounts(metadata: dict) -> Quote:
    try:
        return Quote(
            subtotal=float(metadata["subtotal"]),
            tax=float(metadata["tax"]),
            shipping=float(metadata["shipping"]),
            total=float(metadata["total"]),
        )
    except (KeyError, TypeError, ValueError):
        raise ValidationError("Payment intent is missing order amounts")


def _decrement_stock(db: Session, order: Order, line: CartItem) -> None:
    product = line.product
    if product is None or product.category != ProductCategory.MERCH:
        return

    if line.variant_name is not None:
        query = db.query(ProductVariant).filter(
            ProductVariant.product_id == product.id,
            ProductVariant.name == line.variant_name,
            ProductVariant.value == line.variant_value,
        )
        stock_col = ProductVariant.stock
    else:
        query = db.query(Product).filter(Product.id == product.id)
        stock_col = Product.stock

    updated = query.filter(stock_col >= line.quantity).update(
        {stock_col: stock_col - line.quantity}, synchronize_session=False
    )
    if updated:
        return

    available = query.with_entities(stock_col).scalar() or 0
    db.add(StockReconciliation(
        order_id=order.id,
        product_id=product.id,
        variant_name=line.variant_name,
        variant_value=line.variant_value,
        requested=line.quantity,
        available=available,
    ))
    logger.warning(
        "Stock shortfall on order %s: product %s variant %s requested %s available %s",
        order.order_number, product.id, line.variant, line.quantity, available,
    )


def _apply_inventory(db: Session, order: Order, lines: List[CartItem]) -> None:
    for line in lines:
        db.query(Product).filter(Product.id == line.product_id).update(
            {Product.sold: Product.sold + line.quantity}, synchronize_session=False
        )
        _decrement_stock(db, order, line)


def _build_order(db: Session, principal: Principal, cart: Cart, intent, amounts: Quote,
                 shipping_address: Optional[dict], billing_address: Optional[dict]) -> Order:
    order = Order(
        order_number=next_order_number(db),
        user_id=principal.id,
        payment_method=PaymentMethod.CARD,
        payment_status=PaymentStatus.PAID,
        subtotal=amounts.subtotal,
        tax=amounts.tax,
        shipping=amounts.shipping,
        total=amounts.total,
        stripe_payment_intent_id=intent.id,
        stripe_customer_id=intent.customer,
        receipt_url=intent.receipt_url,
        shipping_address=shipping_address,
        billing_address=billing_address,
    )
    order.items = [
        OrderItem(
            product_id=line.product_id,
            name=line.product.name if line.product else "Deleted product",
            price=line.price,
            quantity=line.quantity,
            variant_name=line.variant_name,
            variant_value=line.variant_value,
        )
        for line in cart.items
    ]
    record_status(order, OrderStatus.PROCESSING, notes="Order created", updated_by=principal.id)
    return order


def confirm(db: Session, principal: Principal, gateway, payment_intent_id: str,
            shipping_address: Optional[dict] = None, billing_address: Optional[dict] = None) -> Order:
    intent = gateway.retrieve_payment_intent(payment_intent_id)
    if intent.status != SUCCEEDED:
        raise PaymentNotSucceeded()

    owner = intent.metadata.get("user_id")
    if owner is not None and str(owner) != str(principal.id):
        raise Forbidden("Payment does not belong to this user")

    cart = cart_service.get_or_create(db, principal)
    if not cart.items:
        raise EmptyCart()

    if db.query(Order).filter(Order.stripe_payment_intent_id == intent.id).first():
        raise PaymentAlreadyProcessed()

    amounts = _charged_amounts(intent.metadata)

    try:
        order = _build_order(db, principal, cart, intent, amounts, shipping_address, billing_address)
        db.add(order)
        db.flush()
        _apply_inventory(db, order, list(cart.items))
        cart_service.empty(cart)
        db.commit()
    except IntegrityError:
        db.rollback()
        if db.query(Order).filter(Order.stripe_payment_intent_id == intent.id).first():
            # A concurrent confirm for the same intent committed first
            raise PaymentAlreadyProcessed()
        raise

    db.refresh(order)
    logger.info("Order %s created from payment intent %s", order.order_number, intent.id)
    return order


def handle_webhook(gateway, payload: bytes, signature: Optional[str]) -> dict:
    event = gateway.construct_event(payload, signature)
    event_type = event["type"]
    obj = event["object"]

    if event_type == "payment_intent.succeeded":
        logger.info("Payment succeeded: %s", obj.get("id"))
    elif event_type == "payment_intent.payment_failed":
        logger.warning("Payment failed: %s", obj.get("id"))
    else:
        logger.info("Unhandled event type %s", event_type)

    return {"received": True}


def list_payment_methods(db: Session, principal: Principal, gateway) -> list:
    user = db.get(User, principal.id)
    if not user or not user.stripe_customer_id:
        return []
    return gateway.list_card_payment_methods(user.stripe_customer_id)


def save_payment_method(db: Session, principal: Principal, gateway, payment_method_id: str) -> None:
    user = db.get(User, principal.id)
    if not user or not user.stripe_customer_id:
        raise ValidationError("No Stripe customer found")
    gateway.attach_payment_method(payment_method_id, user.stripe_customer_id)
