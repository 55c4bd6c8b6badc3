# storefront/routes/payment.py
import logging

from fastapi import APIRouter, Depends, Header, Request, status
from sqlalchemy.orm import Session

from storefront.database import get_db
from storefront.errors import AppError
from storefront.schemas.common import ApiResponse, Message
from storefront.schemas.order import OrderResponse
from storefront.schemas.payment import (
    CreateIntentPayload, ConfirmPaymentPayload, PaymentIntentOut, PaymentConfirmation,
    PaymentMethodsOut, SavePaymentMethodPayload,
)
from storefront.services import checkout
from storefront.utils.audit import write_log, client_ip
from storefront.utils.stripe_client import get_payment_gateway
from storefront.utils.tokenJWT import Principal, get_current_principal

router = APIRouter(prefix="/payment", tags=["Payment"])
logger = logging.getLogger(__name__)


def _dump(model):
    return model.model_dump() if model else None


# Gateway event receiver; authenticated by signature, reads the raw body
@router.post("/webhook")
async def stripe_webhook(
    request: Request,
    stripe_signature: str = Header(None, alias="Stripe-Signature"),
    gateway=Depends(get_payment_gateway),
):
    body = await request.body()
    return checkout.handle_webhook(gateway, body, stripe_signature)


@router.post("/create-intent", response_model=ApiResponse[PaymentIntentOut])
def create_payment_intent(
    payload: CreateIntentPayload,
    request: Request,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
    gateway=Depends(get_payment_gateway),
):
    result = checkout.create_intent(db, principal, gateway, _dump(payload.shipping_address))
    write_log(
        db, user_id=principal.id, action="PAYMENT_INTENT", resource="payment", status="SUCCESS",
        ip=client_ip(request),
        meta={"payment_intent_id": result["payment_intent_id"], "amount": result["amount"]},
    )
    return ApiResponse(data=PaymentIntentOut(**result))


@router.post("/confirm", response_model=ApiResponse[PaymentConfirmation], status_code=status.HTTP_201_CREATED)
def confirm_payment(
    payload: ConfirmPaymentPayload,
    request: Request,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
    gateway=Depends(get_payment_gateway),
):
    try:
        order = checkout.confirm(
            db, principal, gateway, payload.payment_intent_id,
            shipping_address=_dump(payload.shipping_address),
            billing_address=_dump(payload.billing_address),
        )
    except AppError as e:
        write_log(
            db, user_id=principal.id, action="PAYMENT_CONFIRM", resource="payment", status="FAIL",
            ip=client_ip(request),
            meta={"payment_intent_id": payload.payment_intent_id, "reason": e.message},
        )
        raise

    write_log(
        db, user_id=principal.id, action="PAYMENT_CONFIRM", resource="payment", status="SUCCESS",
        ip=client_ip(request),
        meta={"payment_intent_id": payload.payment_intent_id, "order_id": order.id,
              "order_number": order.order_number, "total": order.total},
    )
    return ApiResponse(data=PaymentConfirmation(
        order=OrderResponse.model_validate(order),
        message="Payment successful and order created",
    ))


@router.get("/methods", response_model=ApiResponse[PaymentMethodsOut])
def get_payment_methods(
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
    gateway=Depends(get_payment_gateway),
):
    methods = checkout.list_payment_methods(db, principal, gateway)
    return ApiResponse(data=PaymentMethodsOut(payment_methods=methods))


@router.post("/save-method", response_model=ApiResponse[Message])
def save_payment_method(
    payload: SavePaymentMethodPayload,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
    gateway=Depends(get_payment_gateway),
):
    checkout.save_payment_method(db, principal, gateway, payload.payment_method_id)
    return ApiResponse(data=Message(message="Payment method saved"))
