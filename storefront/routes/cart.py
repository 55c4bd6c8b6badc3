# storefront/routes/cart.py
from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from storefront.database import get_db
from storefront.schemas.cart import CartAddItem, CartUpdateItem, CartOut, CartSummary
from storefront.schemas.common import ApiResponse, Message
from storefront.services import cart as cart_service
from storefront.utils.audit import write_log, client_ip
from storefront.utils.tokenJWT import Principal, get_current_principal

router = APIRouter(prefix="/cart", tags=["Cart"])


def _cart_response(cart) -> ApiResponse[CartOut]:
    return ApiResponse(data=CartOut.model_validate(cart))


@router.get("", response_model=ApiResponse[CartOut])
def get_cart(
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    cart = cart_service.get_or_create(db, principal)
    return _cart_response(cart)


@router.get("/summary", response_model=ApiResponse[CartSummary])
def get_cart_summary(
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    return ApiResponse(data=CartSummary(**cart_service.summary(db, principal)))


@router.post("/items", response_model=ApiResponse[CartOut])
def add_to_cart(
    payload: CartAddItem,
    request: Request,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    variant = payload.variant.model_dump() if payload.variant else None
    cart = cart_service.add_item(db, principal, payload.product_id, payload.quantity, variant)

    write_log(
        db,
        user_id=principal.id,
        action="CART_ADD",
        resource="cart",
        status="SUCCESS",
        ip=client_ip(request),
        meta={"product_id": payload.product_id, "quantity": payload.quantity, "variant": variant,
              "total_price": cart.total_price},
    )
    return _cart_response(cart)


@router.put("/items/{item_id}", response_model=ApiResponse[CartOut])
def update_cart_item(
    item_id: int,
    payload: CartUpdateItem,
    request: Request,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    cart = cart_service.update_item_quantity(db, principal, item_id, payload.quantity)

    write_log(
        db,
        user_id=principal.id,
        action="CART_UPDATE",
        resource="cart",
        status="SUCCESS",
        ip=client_ip(request),
        meta={"item_id": item_id, "quantity": payload.quantity, "total_price": cart.total_price},
    )
    return _cart_response(cart)


@router.delete("/items/{item_id}", response_model=ApiResponse[CartOut])
def remove_from_cart(
    item_id: int,
    request: Request,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    cart = cart_service.remove_item(db, principal, item_id)

    write_log(
        db,
        user_id=principal.id,
        action="CART_DELETE",
        resource="cart",
        status="SUCCESS",
        ip=client_ip(request),
        meta={"item_id": item_id, "cart_items": len(cart.items), "total_price": cart.total_price},
    )
    return _cart_response(cart)


@router.delete("", response_model=ApiResponse[Message])
def clear_cart(
    request: Request,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    cart_service.clear(db, principal)
    write_log(db, user_id=principal.id, action="CART_CLEAR", resource="cart",
              status="SUCCESS", ip=client_ip(request))
    return ApiResponse(data=Message(message="Cart cleared successfully"))
